"""
Parser escalation controller.

Runs the parser backends cheapest first and stops at the first candidate
whose confidence reaches the threshold:

    IDLE -> TRYING_HEURISTIC -> TRYING_LOCAL_LLM -> TRYING_CLOUD_LLM
         -> SUCCEEDED | EXHAUSTED_FAILED

A timed backend whose cached status says "down" is skipped; backends
without a time bound (the heuristic) are always tried. Each call gets one
retry on a transient failure; after that a timed backend is marked
unavailable in the status cache and the next one is tried. When no
candidate reaches the threshold, the best one seen is returned flagged as
low confidence.
"""
import asyncio
import time
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from backends.base import ParserBackend
from config.logging_setup import get_logger
from core.constants import DEFAULT_CONFIDENCE_THRESHOLD
from core.errors import BackendError, BackendTimeoutError
from core.models import (
    BackendAttempt,
    BackendName,
    EscalationState,
    OCRResult,
    ParsedRecipe,
    ParseError,
    ParseOutcome,
    ParserBackendStatus,
)
from utils.text_utils import normalize_text

logger = get_logger(__name__)

BACKEND_STATES = {
    BackendName.HEURISTIC: EscalationState.TRYING_HEURISTIC,
    BackendName.LOCAL_LLM: EscalationState.TRYING_LOCAL_LLM,
    BackendName.CLOUD_LLM: EscalationState.TRYING_CLOUD_LLM,
}


class OperationCancelled(Exception):
    """Raised internally when the caller's cancellation token fires."""


class CancellationToken:
    """
    Caller-owned cancellation signal for one parse request.

    Calling cancel() aborts the backend call in flight; the run then ends
    with ParseError.CANCELLED.
    """

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self):
        await self._event.wait()


class BackendStatusCache:
    """
    Availability of each backend, shared by concurrent parse runs.

    A status older than the TTL is re-probed before the backend is used.
    Probes are single-flight per backend: callers that find the same stale
    entry wait for one probe instead of starting their own.
    """

    def __init__(
        self,
        backends: Sequence[ParserBackend],
        ttl: float = 60.0,
        clock: Callable[[], float] = time.monotonic
    ):
        self.ttl = ttl
        self._clock = clock
        self._statuses: Dict[BackendName, ParserBackendStatus] = {
            b.name: ParserBackendStatus(name=b.name) for b in backends
        }
        self._locks: Dict[BackendName, asyncio.Lock] = {
            b.name: asyncio.Lock() for b in backends
        }

    def get(self, name: BackendName) -> ParserBackendStatus:
        return self._statuses[name]

    def is_stale(self, name: BackendName) -> bool:
        status = self._statuses[name]
        return status.checked_at is None or self._clock() - status.checked_at > self.ttl

    async def ensure_fresh(self, backend: ParserBackend, force: bool = False) -> bool:
        """
        Re-probe a backend if its status is stale.

        Args:
            backend: Backend to check
            force: Probe even when the status is fresh

        Returns:
            Whether the backend is available
        """
        name = backend.name
        if not force and not self.is_stale(name):
            return self._statuses[name].available

        async with self._locks[name]:
            # Another caller may have probed while we waited for the lock
            if not force and not self.is_stale(name):
                return self._statuses[name].available

            started = self._clock()
            try:
                available = bool(await backend.check_available())
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(f"Availability probe for {name.value} failed: {e}")
                available = False

            status = self._statuses[name]
            status.available = available
            status.checked_at = self._clock()
            status.last_latency_ms = int((status.checked_at - started) * 1000)
            logger.debug(f"Probed {name.value}: available={available}")
            return available

    def record_success(self, name: BackendName, latency_ms: int):
        status = self._statuses[name]
        status.available = True
        status.last_latency_ms = latency_ms
        status.checked_at = self._clock()

    def mark_unavailable(self, name: BackendName):
        status = self._statuses[name]
        status.available = False
        status.checked_at = self._clock()

    def snapshot(self) -> List[ParserBackendStatus]:
        """Copies of all statuses, in backend order."""
        return [
            ParserBackendStatus(
                name=s.name,
                available=s.available,
                last_latency_ms=s.last_latency_ms,
                checked_at=s.checked_at,
            )
            for s in self._statuses.values()
        ]


async def _run_cancellable(awaitable, token: Optional[CancellationToken]):
    """
    Await a coroutine, aborting it if the token fires first.

    Raises:
        OperationCancelled: The token fired; the coroutine has been cancelled
    """
    if token is None:
        return await awaitable

    if token.cancelled:
        awaitable.close()
        raise OperationCancelled()

    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(token.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        if not waiter.done():
            waiter.cancel()

    if task in done:
        return task.result()

    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
    raise OperationCancelled()


class _Run:
    """Mutable bookkeeping of one escalation run."""

    def __init__(self):
        self.state = EscalationState.IDLE
        self.outcome = ParseOutcome()

    def transition(self, new_state: EscalationState):
        self.outcome.transitions.append((self.state, new_state))
        logger.info(f"Escalation: {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.outcome.final_state = new_state


class ParserEscalationController:
    """
    Orchestrates parser backends in cost order.

    One controller is shared per process; every call to
    parse_with_escalation runs its own state machine and only the backend
    status cache is shared between runs.
    """

    def __init__(
        self,
        backends: Sequence[ParserBackend],
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        status_ttl: float = 60.0,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            backends: Backends in escalation order, cheapest first
            confidence_threshold: Default acceptance threshold
            status_ttl: Seconds a backend status stays fresh
            clock: Monotonic clock (tests inject a fake one)
        """
        if not backends:
            raise ValueError("At least one parser backend is required")

        self.backends: List[ParserBackend] = list(backends)
        self.confidence_threshold = confidence_threshold
        self._clock = clock
        self.status_cache = BackendStatusCache(self.backends, ttl=status_ttl, clock=clock)

    async def check_availability(self, force: bool = False) -> List[ParserBackendStatus]:
        """
        Refresh stale backend statuses and return them.

        Args:
            force: Probe every backend regardless of age

        Returns:
            Status per backend, in escalation order
        """
        await asyncio.gather(*(
            self.status_cache.ensure_fresh(backend, force=force)
            for backend in self.backends
        ))
        return self.status_cache.snapshot()

    async def parse_with_escalation(
        self,
        ocr_result: OCRResult,
        confidence_threshold: Optional[float] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> ParseOutcome:
        """
        Parse an OCR result, escalating through backends as needed.

        Args:
            ocr_result: OCR output to parse
            confidence_threshold: Override of the default threshold
            cancel_token: Optional caller cancellation signal

        Returns:
            ParseOutcome with either a recipe or a ParseError
        """
        threshold = self.confidence_threshold if confidence_threshold is None else confidence_threshold
        run = _Run()

        if not ocr_result.text or not ocr_result.text.strip():
            logger.info("Empty OCR text, nothing to parse")
            run.outcome.error = ParseError.EMPTY_INPUT
            run.transition(EscalationState.EXHAUSTED_FAILED)
            return run.outcome

        text = normalize_text(ocr_result.text)
        best: Optional[Tuple[ParsedRecipe, BackendName]] = None
        failures: List[BackendError] = []

        try:
            for backend in self.backends:
                # Backends without a time bound keep no availability state
                if backend.timeout is not None:
                    available = await _run_cancellable(
                        self.status_cache.ensure_fresh(backend), cancel_token
                    )
                    if not available:
                        logger.info(f"Skipping {backend.name.value}: marked unavailable")
                        run.outcome.attempts.append(
                            BackendAttempt(backend=backend.name, error="unavailable")
                        )
                        continue

                run.transition(BACKEND_STATES.get(backend.name, run.state))
                candidate = await self._attempt(backend, text, ocr_result, cancel_token, run, failures)
                if candidate is None:
                    continue

                if best is None or candidate.confidence > best[0].confidence:
                    best = (candidate, backend.name)

                if candidate.confidence >= threshold:
                    break
                logger.info(
                    f"{backend.name.value} confidence {candidate.confidence:.2f} "
                    f"below threshold {threshold:.2f}"
                )

        except OperationCancelled:
            logger.info("Parse cancelled by caller")
            run.outcome.error = ParseError.CANCELLED
            run.transition(EscalationState.EXHAUSTED_FAILED)
            return run.outcome

        if best is not None:
            recipe, backend_name = best
            run.outcome.recipe = recipe
            run.outcome.backend_used = backend_name
            run.outcome.low_confidence = recipe.confidence < threshold
            run.transition(EscalationState.SUCCEEDED)
            logger.info(
                f"Parsed with {backend_name.value} at confidence {recipe.confidence:.2f}"
                + (" (low confidence)" if run.outcome.low_confidence else "")
            )
            return run.outcome

        if failures and all(isinstance(e, BackendTimeoutError) for e in failures):
            run.outcome.error = ParseError.TIMEOUT
        else:
            run.outcome.error = ParseError.ALL_BACKENDS_UNAVAILABLE
        run.transition(EscalationState.EXHAUSTED_FAILED)
        logger.warning(f"No backend produced a candidate: {run.outcome.error.value}")
        return run.outcome

    async def _attempt(
        self,
        backend: ParserBackend,
        text: str,
        ocr_result: OCRResult,
        cancel_token: Optional[CancellationToken],
        run: _Run,
        failures: List[BackendError]
    ) -> Optional[ParsedRecipe]:
        """
        Call one backend with its time bound and one retry on a transient
        failure. Returns the candidate, or None once the backend has failed.
        """
        retried = False
        while True:
            started = self._clock()
            try:
                candidate = await _run_cancellable(
                    self._call(backend, text, ocr_result), cancel_token
                )
            except BackendError as e:
                if e.transient and not retried:
                    logger.warning(f"{backend.name.value} failed ({e}), retrying once")
                    retried = True
                    continue
                error = e
            except (OperationCancelled, asyncio.CancelledError):
                raise
            except Exception as e:
                logger.warning(f"{backend.name.value} raised unexpectedly: {e!r}", exc_info=True)
                error = BackendError(str(e) or e.__class__.__name__, backend=backend.name.value)
            else:
                latency_ms = int((self._clock() - started) * 1000)
                self.status_cache.record_success(backend.name, latency_ms)
                run.outcome.attempts.append(BackendAttempt(
                    backend=backend.name,
                    confidence=candidate.confidence,
                    latency_ms=latency_ms,
                    retried=retried,
                ))
                return candidate

            if backend.timeout is None:
                logger.warning(f"{backend.name.value} failed: {error}")
            else:
                logger.warning(f"{backend.name.value} marked unavailable: {error}")
                self.status_cache.mark_unavailable(backend.name)
            failures.append(error)
            run.outcome.attempts.append(BackendAttempt(
                backend=backend.name,
                error=f"{error.__class__.__name__}: {error}",
                latency_ms=int((self._clock() - started) * 1000),
                retried=retried,
            ))
            return None

    @staticmethod
    async def _call(backend: ParserBackend, text: str, ocr_result: OCRResult) -> ParsedRecipe:
        """One backend call under its time bound."""
        if backend.timeout is None:
            return await backend.try_parse(text, ocr_result)
        try:
            return await asyncio.wait_for(backend.try_parse(text, ocr_result), backend.timeout)
        except asyncio.TimeoutError as e:
            raise BackendTimeoutError(
                f"{backend.name.value} did not answer within {backend.timeout}s",
                backend=backend.name.value,
            ) from e
