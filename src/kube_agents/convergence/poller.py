"""Bounded polling of resource expectations until the cluster converges."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence

from .config import DEFAULT_POLL_INTERVAL
from .dsl.model import Expectation
from .errors import ConvergenceEvaluationError, ConvergenceTimeoutError
from .paths import InvalidPathError, PathStructureError, lookup_path, values_equal
from .resources import DEFAULT_NAMESPACE, ResourceStore

logger = logging.getLogger(__name__)


class MismatchReason(str, Enum):
    VALUE = "value"
    NOT_FOUND = "not_found"
    FETCH_FAILED = "fetch_failed"
    STRUCTURE = "structure"


@dataclass(frozen=True, slots=True)
class Mismatch:
    """One unmet condition, as seen on the most recent check."""

    resource: str
    path: str | None
    expected: Any
    actual: Any
    reason: MismatchReason
    message: str | None = None

    def describe(self) -> str:
        if self.reason is MismatchReason.FETCH_FAILED:
            return f"{self.resource}: fetch failed: {self.message}"
        if self.reason is MismatchReason.STRUCTURE:
            return f"{self.resource} {self.message}"
        if self.reason is MismatchReason.NOT_FOUND:
            return f"{self.resource} path {self.path}: not found"
        return (
            f"{self.resource} path {self.path}: "
            f"got {_render(self.actual)}, want {_render(self.expected)}"
        )

    def __str__(self) -> str:
        return self.describe()


async def _discard(tasks: set[asyncio.Future[Any]]) -> None:
    """Cancel whatever is still pending and wait for it to unwind."""

    for task in tasks:
        if not task.done():
            task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


def _render(value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return str(value)


class ConvergencePoller:
    """Re-check expectations on a fixed interval until all hold or time runs out.

    The first check happens immediately. Expectations are evaluated in
    order and a tick stops at the first unmet one; that mismatch is kept
    and reported if the deadline passes. Waiting between ticks is a plain
    asyncio sleep, optionally woken early by a cancellation event. The same
    event also abandons a check that is still waiting on the store.
    """

    def __init__(
        self,
        store: ResourceStore,
        *,
        interval: float = DEFAULT_POLL_INTERVAL,
        default_namespace: str = DEFAULT_NAMESPACE,
    ) -> None:
        if interval <= 0:
            msg = "Poll interval must be positive"
            raise ValueError(msg)
        self._store = store
        self._interval = interval
        self._default_namespace = default_namespace

    @property
    def interval(self) -> float:
        return self._interval

    async def check(self, expectations: Sequence[Expectation]) -> Mismatch | None:
        """Return the first unmet condition, or ``None`` when everything holds."""

        for expectation in expectations:
            mismatch = await self._check_expectation(expectation)
            if mismatch is not None:
                return mismatch
        return None

    async def wait(
        self,
        expectations: Sequence[Expectation],
        timeout: float,
        *,
        cancel: asyncio.Event | None = None,
    ) -> None:
        if timeout <= 0:
            msg = "Convergence timeout must be positive"
            raise ValueError(msg)

        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline = started + timeout
        next_tick = started
        last_mismatch: Mismatch | None = None
        checks = 0

        while True:
            if cancel is not None and cancel.is_set():
                raise self._cancelled(last_mismatch)
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise self._timed_out(timeout, last_mismatch)

            check = asyncio.ensure_future(self.check(expectations))
            waiting = {check}
            cancelled = None
            if cancel is not None:
                cancelled = asyncio.ensure_future(cancel.wait())
                waiting.add(cancelled)
            try:
                done, _ = await asyncio.wait(
                    waiting, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
                )
            finally:
                await _discard(waiting)
            if check not in done:
                if cancelled is not None and cancelled in done:
                    raise self._cancelled(last_mismatch)
                raise self._timed_out(timeout, last_mismatch)

            mismatch = check.result()
            checks += 1
            if mismatch is None:
                logger.debug("Expectations met after %d check(s)", checks)
                return
            last_mismatch = mismatch
            logger.debug("Check %d unmet: %s", checks, mismatch)

            now = loop.time()
            next_tick += self._interval
            while next_tick <= now:
                next_tick += self._interval
            delay = min(next_tick, deadline) - now
            if await self._sleep(delay, cancel):
                raise self._cancelled(last_mismatch)

    async def _sleep(self, delay: float, cancel: asyncio.Event | None) -> bool:
        """Sleep for ``delay``; return True if ``cancel`` fired first."""

        if cancel is None:
            await asyncio.sleep(delay)
            return False
        try:
            await asyncio.wait_for(cancel.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True

    async def _check_expectation(self, expectation: Expectation) -> Mismatch | None:
        ref = expectation.resource.with_default_namespace(self._default_namespace)
        try:
            document = await self._store.fetch(ref)
        except Exception as exc:
            # Resources routinely do not exist yet early in a run.
            return Mismatch(
                resource=ref.label,
                path=None,
                expected=None,
                actual=None,
                reason=MismatchReason.FETCH_FAILED,
                message=str(exc) or type(exc).__name__,
            )

        for condition in expectation.conditions:
            try:
                lookup = lookup_path(document, condition.path)
            except (PathStructureError, InvalidPathError) as exc:
                return Mismatch(
                    resource=ref.label,
                    path=condition.path,
                    expected=condition.value,
                    actual=None,
                    reason=MismatchReason.STRUCTURE,
                    message=str(exc),
                )
            if not lookup.found:
                return Mismatch(
                    resource=ref.label,
                    path=condition.path,
                    expected=condition.value,
                    actual=None,
                    reason=MismatchReason.NOT_FOUND,
                )
            if not values_equal(lookup.value, condition.value):
                return Mismatch(
                    resource=ref.label,
                    path=condition.path,
                    expected=condition.value,
                    actual=lookup.value,
                    reason=MismatchReason.VALUE,
                )
        return None

    @staticmethod
    def _timed_out(timeout: float, last_mismatch: Mismatch | None) -> ConvergenceTimeoutError:
        if last_mismatch is None:
            msg = f"timed out after {timeout:g}s before any check completed"
            return ConvergenceTimeoutError(msg)
        msg = f"timed out after {timeout:g}s; last mismatch: {last_mismatch}"
        if last_mismatch.reason is MismatchReason.STRUCTURE:
            return ConvergenceEvaluationError(msg, last_mismatch=last_mismatch)
        return ConvergenceTimeoutError(msg, last_mismatch=last_mismatch)

    @staticmethod
    def _cancelled(last_mismatch: Mismatch | None) -> ConvergenceTimeoutError:
        msg = "wait cancelled"
        if last_mismatch is not None:
            msg = f"{msg}; last mismatch: {last_mismatch}"
        return ConvergenceTimeoutError(msg, last_mismatch=last_mismatch, cancelled=True)
