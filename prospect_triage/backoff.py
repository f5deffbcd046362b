"""Reconnect delay policy for the realtime change feed."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterator, Optional

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class BackoffPolicy:
    """Exponential delay between reconnect attempts, capped at ``max_delay``."""

    initial_delay: float = 1.0
    max_delay: float = 30.0
    factor: float = 2.0
    max_attempts: Optional[int] = None

    @classmethod
    def from_config(cls, options: Optional[Dict[str, Any]]) -> "BackoffPolicy":
        options = dict(options or {})
        max_attempts = options.get("max_attempts")
        return cls(
            initial_delay=float(options.get("initial_delay", 1.0)),
            max_delay=float(options.get("max_delay", 30.0)),
            factor=float(options.get("factor", 2.0)),
            max_attempts=int(max_attempts) if max_attempts else None,
        )

    def delays(self) -> Iterator[float]:
        """Yield the delay before each attempt; stops after ``max_attempts``."""

        delay = max(0.0, self.initial_delay)
        attempt = 0
        while self.max_attempts is None or attempt < self.max_attempts:
            attempt += 1
            yield min(delay, self.max_delay)
            delay = delay * self.factor if delay > 0 else 0.0


class Backoff:
    """Stateful helper that sleeps according to a :class:`BackoffPolicy`."""

    def __init__(self, policy: Optional[BackoffPolicy] = None, *, sleep: Optional[Sleep] = None) -> None:
        self.policy = policy or BackoffPolicy()
        self._sleep = sleep or asyncio.sleep
        self._delays = self.policy.delays()
        self.attempts = 0

    async def wait(self) -> bool:
        """Sleep before the next attempt; return False once attempts are exhausted."""

        try:
            delay = next(self._delays)
        except StopIteration:
            return False
        self.attempts += 1
        if delay > 0:
            await self._sleep(delay)
        return True

    def reset(self) -> None:
        self._delays = self.policy.delays()
        self.attempts = 0


__all__ = ["Backoff", "BackoffPolicy"]
