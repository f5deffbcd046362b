"""Triage controller applying operator actions to prospects."""
from __future__ import annotations

import logging
from typing import Callable, Optional, Set, Union

from ..merge import ProspectList
from ..models import (
    DEFAULT_CHANNEL,
    OutreachTask,
    ProspectStatus,
    TriageAction,
    TriageError,
    TriageErrorKind,
    TriageResult,
    can_transition,
    utc_now_iso,
)
from ..store.base import ProspectStore, StoreError

LOGGER = logging.getLogger(__name__)


class TriageController:
    """Runs approve / video-audit / reject against the store and the local list.

    Each action updates the local list optimistically before the first
    write, then either keeps the change or rolls it back depending on what
    the store reports. Failures come back as :class:`TriageResult` objects
    rather than exceptions. Only one action per prospect may be in flight.
    """

    def __init__(
        self,
        store: ProspectStore,
        prospects: ProspectList,
        *,
        channel: str = DEFAULT_CHANNEL,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self._store = store
        self._prospects = prospects
        self._channel = channel
        self._clock = clock
        self._in_flight: Set[str] = set()

    @property
    def channel(self) -> str:
        return self._channel

    def is_pending(self, prospect_id: str) -> bool:
        return prospect_id in self._in_flight

    # ------------------------------------------------------------------
    async def approve(self, prospect_id: str) -> TriageResult:
        """Qualify the prospect and queue one outreach task for it."""

        return await self._run(prospect_id, TriageAction.APPROVE)

    async def flag_for_video_audit(self, prospect_id: str) -> TriageResult:
        return await self._run(prospect_id, TriageAction.VIDEO_AUDIT)

    async def reject(self, prospect_id: str) -> TriageResult:
        return await self._run(prospect_id, TriageAction.REJECT)

    async def perform(self, prospect_id: str, action: Union[TriageAction, str]) -> TriageResult:
        return await self._run(prospect_id, TriageAction(action))

    async def retry(self, result: TriageResult) -> TriageResult:
        """Re-issue whatever produced a failed ``result``."""

        if result.ok:
            return result
        if result.needs_requeue:
            return await self.requeue_outreach(result.prospect_id)
        return await self._run(result.prospect_id, result.action)

    async def requeue_outreach(self, prospect_id: str) -> TriageResult:
        """Queue the outreach task for a qualified prospect whose insert failed."""

        action = TriageAction.APPROVE
        prospect = self._prospects.get(prospect_id)
        if prospect is None:
            return self._failure(prospect_id, action, TriageErrorKind.UNKNOWN_PROSPECT, "Unknown prospect")
        if prospect_id in self._in_flight:
            return self._failure(
                prospect_id, action, TriageErrorKind.ACTION_IN_PROGRESS,
                "Another action is already running", status=prospect.status,
            )
        if prospect.status is not ProspectStatus.QUALIFIED:
            return self._failure(
                prospect_id, action, TriageErrorKind.INVALID_TRANSITION,
                f"Only qualified prospects can be re-queued (status is {prospect.status.value})",
                status=prospect.status,
            )

        self._in_flight.add(prospect_id)
        self._prospects.pin(prospect_id)
        try:
            task = self._new_task(prospect_id)
            try:
                await self._store.enqueue_outreach(task)
            except StoreError as exc:
                LOGGER.warning("Re-queue of outreach for prospect %s failed: %s", prospect_id, exc)
                return self._failure(
                    prospect_id, action, TriageErrorKind.COMPENSATION_FAILED,
                    "Prospect is qualified but the outreach task could not be queued",
                    status=ProspectStatus.QUALIFIED, cause=exc, retryable=True,
                )
            LOGGER.info("Re-queued %s outreach for prospect %s", task.channel, prospect_id)
            return TriageResult(prospect_id, action, True, status=ProspectStatus.QUALIFIED, outreach_task=task)
        finally:
            self._release(prospect_id)

    # ------------------------------------------------------------------
    async def _run(self, prospect_id: str, action: TriageAction) -> TriageResult:
        prospect = self._prospects.get(prospect_id)
        if prospect is None:
            return self._failure(prospect_id, action, TriageErrorKind.UNKNOWN_PROSPECT, "Unknown prospect")
        if prospect_id in self._in_flight:
            LOGGER.info("Ignoring %s for prospect %s: another action is in flight", action.value, prospect_id)
            return self._failure(
                prospect_id, action, TriageErrorKind.ACTION_IN_PROGRESS,
                "Another action is already running", status=prospect.status,
            )

        target = action.target_status
        if not can_transition(prospect.status, target):
            return self._failure(
                prospect_id, action, TriageErrorKind.INVALID_TRANSITION,
                f"Cannot move prospect from {prospect.status.value} to {target.value}",
                status=prospect.status,
            )

        self._in_flight.add(prospect_id)
        # Page merges must not overwrite the optimistic status while writes are pending.
        self._prospects.pin(prospect_id)
        previous = self._prospects.set_status(prospect_id, target)
        try:
            try:
                await self._store.update_status(prospect_id, target)
            except StoreError as exc:
                LOGGER.warning("Status update to %s failed for prospect %s: %s", target.value, prospect_id, exc)
                self._rollback(prospect_id, target, previous)
                return self._failure(
                    prospect_id, action, TriageErrorKind.STATUS_WRITE_FAILED,
                    f"Could not save status {target.value}", status=previous, cause=exc, retryable=True,
                )
            except Exception:
                self._rollback(prospect_id, target, previous)
                raise

            if action is not TriageAction.APPROVE:
                LOGGER.info("Prospect %s marked %s", prospect_id, target.value)
                return TriageResult(prospect_id, action, True, status=target)

            task = self._new_task(prospect_id)
            try:
                await self._store.enqueue_outreach(task)
            except StoreError as exc:
                return await self._compensate(prospect_id, action, target, previous, exc)
            except Exception as exc:
                await self._compensate(prospect_id, action, target, previous, exc)
                raise

            LOGGER.info("Prospect %s qualified, %s outreach queued", prospect_id, task.channel)
            return TriageResult(prospect_id, action, True, status=target, outreach_task=task)
        finally:
            self._release(prospect_id)

    async def _compensate(
        self,
        prospect_id: str,
        action: TriageAction,
        target: ProspectStatus,
        previous: ProspectStatus,
        queue_error: Exception,
    ) -> TriageResult:
        LOGGER.warning("Outreach insert failed for prospect %s, reverting status: %s", prospect_id, queue_error)
        try:
            await self._store.update_status(prospect_id, previous)
        except StoreError as exc:
            LOGGER.error(
                "Prospect %s stays %s without a queued outreach task; revert failed: %s",
                prospect_id, target.value, exc,
            )
            return self._failure(
                prospect_id, action, TriageErrorKind.COMPENSATION_FAILED,
                "Prospect is qualified but the outreach task could not be queued",
                status=target, cause=exc, retryable=True,
            )
        self._rollback(prospect_id, target, previous)
        return self._failure(
            prospect_id, action, TriageErrorKind.QUEUE_INSERT_FAILED,
            "Outreach task could not be queued; approval was reverted",
            status=previous, cause=queue_error, retryable=True,
        )

    def _release(self, prospect_id: str) -> None:
        self._in_flight.discard(prospect_id)
        self._prospects.unpin(prospect_id)

    def _rollback(self, prospect_id: str, applied: ProspectStatus, previous: ProspectStatus) -> None:
        current = self._prospects.get(prospect_id)
        # Leave the entry alone if something else (e.g. a resync) changed it meanwhile.
        if current is not None and current.status is applied:
            self._prospects.set_status(prospect_id, previous)

    def _new_task(self, prospect_id: str) -> OutreachTask:
        return OutreachTask(lead_id=prospect_id, channel=self._channel, status="pending", scheduled_for=self._clock())

    @staticmethod
    def _failure(
        prospect_id: str,
        action: TriageAction,
        kind: TriageErrorKind,
        message: str,
        *,
        status: Optional[ProspectStatus] = None,
        cause: Optional[BaseException] = None,
        retryable: bool = False,
    ) -> TriageResult:
        return TriageResult(
            prospect_id,
            action,
            False,
            status=status,
            error=TriageError(kind, message, cause=cause),
            retryable=retryable,
        )


__all__ = ["TriageController"]
