from __future__ import annotations

import asyncio

from prospect_triage.backoff import Backoff, BackoffPolicy


def test_policy_delays_grow_and_cap() -> None:
    policy = BackoffPolicy(initial_delay=1, max_delay=5, factor=2, max_attempts=5)

    assert list(policy.delays()) == [1, 2, 4, 5, 5]


def test_policy_from_config_reads_options() -> None:
    policy = BackoffPolicy.from_config({"initial_delay": "0.5", "max_delay": 10, "max_attempts": 3})

    assert policy.initial_delay == 0.5
    assert policy.max_delay == 10.0
    assert policy.factor == 2.0
    assert policy.max_attempts == 3
    assert BackoffPolicy.from_config(None) == BackoffPolicy()


def test_backoff_sleeps_and_gives_up() -> None:
    slept: list[float] = []

    async def fake_sleep(delay: float) -> None:
        slept.append(delay)

    backoff = Backoff(BackoffPolicy(initial_delay=1, factor=3, max_attempts=2), sleep=fake_sleep)

    async def scenario() -> list[bool]:
        return [await backoff.wait(), await backoff.wait(), await backoff.wait()]

    assert asyncio.run(scenario()) == [True, True, False]
    assert slept == [1, 3]
    assert backoff.attempts == 2

    backoff.reset()
    assert backoff.attempts == 0
    assert asyncio.run(backoff.wait()) is True
    assert slept == [1, 3, 1]
