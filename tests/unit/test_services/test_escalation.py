"""
Unit tests for services.escalation module.
"""
import asyncio

import pytest
from conftest import FakeClock, ScriptedBackend, make_recipe
from core.errors import (
    BackendAuthError,
    BackendTimeoutError,
    BackendUnavailableError,
    MalformedResponseError,
)
from core.models import BackendName, EscalationState, OCRResult, ParseError
from services.escalation import (
    BackendStatusCache,
    CancellationToken,
    ParserEscalationController,
)

HEURISTIC = BackendName.HEURISTIC
LOCAL = BackendName.LOCAL_LLM
CLOUD = BackendName.CLOUD_LLM

OCR = OCRResult(text="Soup\n1 l water\n2 carrots\nBoil water\nAdd carrots", confidence=0.9)


def _chain(heuristic, local, cloud, **kwargs):
    return (
        ScriptedBackend(HEURISTIC, heuristic),
        ScriptedBackend(LOCAL, local, **kwargs.get('local_kwargs', {})),
        ScriptedBackend(CLOUD, cloud, **kwargs.get('cloud_kwargs', {})),
    )


def _parse(controller, ocr=OCR, **kwargs):
    return asyncio.run(controller.parse_with_escalation(ocr, **kwargs))


class TestEscalationScenarios:
    """End-to-end escalation runs with scripted backends."""

    def test_empty_input(self):
        """Test empty text fails immediately without calling any backend."""
        backends = _chain([make_recipe(0.9)], [make_recipe(0.9)], [make_recipe(0.9)])
        controller = ParserEscalationController(backends)

        outcome = _parse(controller, ocr=OCRResult(text="  \n ", confidence=0.9))

        assert outcome.error == ParseError.EMPTY_INPUT
        assert outcome.recipe is None
        assert outcome.final_state == EscalationState.EXHAUSTED_FAILED
        assert outcome.transitions == [(EscalationState.IDLE, EscalationState.EXHAUSTED_FAILED)]
        assert all(b.parse_calls == 0 and b.probe_calls == 0 for b in backends)

    def test_heuristic_accepted(self):
        """Test a confident heuristic result stops the escalation."""
        heuristic, local, cloud = _chain([make_recipe(0.8)], [make_recipe(0.9)], [make_recipe(0.95)])
        controller = ParserEscalationController([heuristic, local, cloud])

        outcome = _parse(controller)

        assert outcome.backend_used == HEURISTIC
        assert not outcome.low_confidence
        assert local.parse_calls == 0
        assert local.probe_calls == 0
        assert cloud.parse_calls == 0

    def test_local_llm_accepted(self):
        """Test a low heuristic score escalates to the local model only."""
        heuristic, local, cloud = _chain([make_recipe(0.4)], [make_recipe(0.8, title="Local")], [make_recipe(0.95)])
        controller = ParserEscalationController([heuristic, local, cloud], confidence_threshold=0.6)

        outcome = _parse(controller)

        assert outcome.is_success
        assert outcome.recipe.title == "Local"
        assert outcome.backend_used == LOCAL
        assert not outcome.low_confidence
        assert cloud.parse_calls == 0
        assert cloud.probe_calls == 0
        assert outcome.transitions == [
            (EscalationState.IDLE, EscalationState.TRYING_HEURISTIC),
            (EscalationState.TRYING_HEURISTIC, EscalationState.TRYING_LOCAL_LLM),
            (EscalationState.TRYING_LOCAL_LLM, EscalationState.SUCCEEDED),
        ]

    def test_local_timeout_cloud_low_confidence(self):
        """Test the last backend's low score is returned flagged, not as an error."""
        heuristic, local, cloud = _chain(
            [make_recipe(0.4)],
            [BackendTimeoutError("slow", backend="ollama")],
            [make_recipe(0.5, title="Cloud")],
        )
        controller = ParserEscalationController([heuristic, local, cloud])

        outcome = _parse(controller)

        assert outcome.error is None
        assert outcome.recipe.title == "Cloud"
        assert outcome.confidence == 0.5
        assert outcome.backend_used == CLOUD
        assert outcome.low_confidence
        assert outcome.final_state == EscalationState.SUCCEEDED
        assert local.parse_calls == 2
        assert not controller.status_cache.get(LOCAL).available

    def test_real_time_bound(self):
        """Test a backend exceeding its time bound is cancelled and skipped."""
        heuristic, local, cloud = _chain(
            [make_recipe(0.4)],
            [make_recipe(0.9)],
            [make_recipe(0.7, title="Cloud")],
            local_kwargs={'timeout': 0.05, 'delay': 5.0},
        )
        controller = ParserEscalationController([heuristic, local, cloud])

        outcome = _parse(controller)

        assert outcome.backend_used == CLOUD
        assert local.cancelled
        assert local.parse_calls == 2
        local_attempt = [a for a in outcome.attempts if a.backend == LOCAL][0]
        assert local_attempt.retried
        assert local_attempt.error.startswith("BackendTimeoutError")

    def test_threshold_override(self):
        """Test a per-call threshold replaces the default."""
        heuristic, local, cloud = _chain([make_recipe(0.4)], [make_recipe(0.8)], [make_recipe(0.9)])
        controller = ParserEscalationController([heuristic, local, cloud], confidence_threshold=0.6)

        outcome = _parse(controller, confidence_threshold=0.3)

        assert outcome.backend_used == HEURISTIC
        assert local.parse_calls == 0


class TestBestCandidate:
    """Tests for picking the best candidate across backends."""

    @pytest.mark.parametrize("first,second,expected", [
        (0.75, 0.65, HEURISTIC),
        (0.65, 0.75, LOCAL),
    ])
    def test_highest_confidence_wins(self, first, second, expected):
        """Test the most confident candidate is returned regardless of order."""
        heuristic, local, cloud = _chain(
            [make_recipe(first)], [make_recipe(second)], [make_recipe(0.99)],
            cloud_kwargs={'available': False},
        )
        controller = ParserEscalationController([heuristic, local, cloud], confidence_threshold=0.8)

        outcome = _parse(controller)

        assert outcome.backend_used == expected
        assert outcome.confidence == 0.75
        assert outcome.low_confidence
        assert cloud.parse_calls == 0

    def test_empty_candidate_beats_failures(self):
        """Test a weak heuristic candidate is still returned when LLMs fail."""
        heuristic, local, cloud = _chain(
            [make_recipe(0.2)],
            [BackendUnavailableError("down")],
            [BackendAuthError("bad key")],
        )
        controller = ParserEscalationController([heuristic, local, cloud])

        outcome = _parse(controller)

        assert outcome.backend_used == HEURISTIC
        assert outcome.low_confidence
        assert outcome.error is None


class TestRetries:
    """Tests for the single retry on transient failures."""

    def test_transient_failure_retried_once(self):
        """Test a transient error is retried and the retry can succeed."""
        heuristic, local, cloud = _chain(
            [make_recipe(0.4)],
            [BackendUnavailableError("blip"), make_recipe(0.9)],
            [make_recipe(0.9)],
        )
        controller = ParserEscalationController([heuristic, local, cloud])

        outcome = _parse(controller)

        assert outcome.backend_used == LOCAL
        assert local.parse_calls == 2
        assert outcome.attempts[-1].retried
        assert controller.status_cache.get(LOCAL).available

    def test_malformed_response_retried(self):
        """Test malformed replies count as transient."""
        heuristic, local, cloud = _chain(
            [make_recipe(0.4)],
            [MalformedResponseError("not json")],
            [make_recipe(0.9)],
        )
        controller = ParserEscalationController([heuristic, local, cloud])

        outcome = _parse(controller)

        assert local.parse_calls == 2
        assert outcome.backend_used == CLOUD

    def test_auth_failure_not_retried(self):
        """Test non-transient errors fail the backend at once."""
        heuristic, local, cloud = _chain(
            [make_recipe(0.4)],
            [make_recipe(0.4)],
            [BackendAuthError("bad key")],
        )
        controller = ParserEscalationController([heuristic, local, cloud])

        _parse(controller)

        assert cloud.parse_calls == 1
        assert not controller.status_cache.get(CLOUD).available

    def test_unexpected_exception_contained(self):
        """Test a bug in a backend does not escape the controller."""
        heuristic, local, cloud = _chain(
            [make_recipe(0.4)],
            [RuntimeError("boom")],
            [make_recipe(0.7)],
        )
        controller = ParserEscalationController([heuristic, local, cloud])

        outcome = _parse(controller)

        assert local.parse_calls == 1
        assert outcome.backend_used == CLOUD


class TestFailureOutcomes:
    """Tests for runs that produce no candidate."""

    def test_all_timeouts(self):
        """Test only timeouts give ParseError.TIMEOUT."""
        error = BackendTimeoutError("slow")
        backends = _chain([error], [error], [error])
        controller = ParserEscalationController(backends)

        outcome = _parse(controller)

        assert outcome.error == ParseError.TIMEOUT
        assert outcome.recipe is None
        assert outcome.final_state == EscalationState.EXHAUSTED_FAILED

    def test_mixed_failures(self):
        """Test other failures give ALL_BACKENDS_UNAVAILABLE."""
        backends = _chain(
            [BackendTimeoutError("slow")],
            [BackendUnavailableError("down")],
            [BackendAuthError("bad key")],
        )
        controller = ParserEscalationController(backends)

        outcome = _parse(controller)

        assert outcome.error == ParseError.ALL_BACKENDS_UNAVAILABLE

    def test_every_backend_down(self):
        """Test a run where the heuristic fails and every LLM probe fails."""
        heuristic, local, cloud = _chain(
            [ValueError("bad input")],
            [make_recipe(0.9)],
            [make_recipe(0.9)],
            local_kwargs={'available': False},
            cloud_kwargs={'available': False},
        )
        controller = ParserEscalationController([heuristic, local, cloud])

        outcome = _parse(controller)

        assert outcome.error == ParseError.ALL_BACKENDS_UNAVAILABLE
        assert outcome.attempts[0].error == "BackendError: bad input"
        assert [a.error for a in outcome.attempts[1:]] == ["unavailable", "unavailable"]
        assert local.parse_calls == 0 and cloud.parse_calls == 0

    def test_heuristic_failure_not_cached(self):
        """Test one failing heuristic run does not disable later runs."""
        heuristic = ScriptedBackend(HEURISTIC, [ValueError("bad input"), make_recipe(0.9)])
        controller = ParserEscalationController([heuristic], status_ttl=60, clock=FakeClock())

        first = _parse(controller)
        second = _parse(controller)

        assert first.error == ParseError.ALL_BACKENDS_UNAVAILABLE
        assert second.is_success
        assert second.backend_used == HEURISTIC
        assert heuristic.parse_calls == 2
        assert heuristic.probe_calls == 0

    def test_no_backends(self):
        """Test a controller needs at least one backend."""
        with pytest.raises(ValueError):
            ParserEscalationController([])


class TestStatusCache:
    """Tests for backend status caching across runs."""

    def test_unavailable_backend_skipped_until_ttl(self):
        """Test a failed backend is skipped until its status expires."""
        clock = FakeClock()
        heuristic, local, cloud = _chain(
            [make_recipe(0.4)],
            [BackendUnavailableError("down")],
            [make_recipe(0.9)],
        )
        controller = ParserEscalationController([heuristic, local, cloud], status_ttl=60, clock=clock)

        async def runs():
            await controller.parse_with_escalation(OCR)
            assert local.parse_calls == 2
            assert local.probe_calls == 1

            clock.advance(30)
            skipped = await controller.parse_with_escalation(OCR)
            assert local.parse_calls == 2
            assert local.probe_calls == 1
            assert any(a.backend == LOCAL and a.error == "unavailable" for a in skipped.attempts)

            clock.advance(31)
            await controller.parse_with_escalation(OCR)
            assert local.probe_calls == 2
            assert local.parse_calls == 4

        asyncio.run(runs())

    def test_concurrent_runs_share_one_probe(self):
        """Test concurrent runs wait on a single probe per backend."""
        heuristic, local, cloud = _chain(
            [make_recipe(0.4)],
            [make_recipe(0.9)],
            [make_recipe(0.9)],
            local_kwargs={'probe_delay': 0.05},
        )
        controller = ParserEscalationController([heuristic, local, cloud])

        async def runs():
            return await asyncio.gather(*(controller.parse_with_escalation(OCR) for _ in range(3)))

        outcomes = asyncio.run(runs())

        assert all(o.backend_used == LOCAL for o in outcomes)
        assert local.probe_calls == 1
        assert heuristic.probe_calls == 0
        assert local.parse_calls == 3

    def test_check_availability(self):
        """Test forced probes report every backend in order."""
        backends = [
            ScriptedBackend(HEURISTIC, [make_recipe(0.9)]),
            ScriptedBackend(LOCAL, [make_recipe(0.9)], available=False),
        ]
        controller = ParserEscalationController(backends)

        statuses = asyncio.run(controller.check_availability(force=True))

        assert [s.name for s in statuses] == [HEURISTIC, LOCAL]
        assert [s.available for s in statuses] == [True, False]
        assert all(s.checked_at is not None for s in statuses)

    def test_probe_exception_means_unavailable(self):
        """Test a crashing probe marks the backend down."""
        class BrokenProbe(ScriptedBackend):
            async def check_available(self):
                raise ConnectionError("probe crashed")

        backend = BrokenProbe(LOCAL, [make_recipe(0.9)])
        cache = BackendStatusCache([backend], ttl=60, clock=FakeClock())

        assert asyncio.run(cache.ensure_fresh(backend)) is False
        assert not cache.get(LOCAL).available

    def test_staleness(self):
        """Test statuses expire after the TTL."""
        clock = FakeClock()
        backend = ScriptedBackend(LOCAL, [make_recipe(0.9)])
        cache = BackendStatusCache([backend], ttl=10, clock=clock)

        assert cache.is_stale(LOCAL)
        cache.record_success(LOCAL, latency_ms=120)
        assert not cache.is_stale(LOCAL)
        assert cache.get(LOCAL).last_latency_ms == 120

        clock.advance(11)
        assert cache.is_stale(LOCAL)


class TestCancellation:
    """Tests for caller cancellation."""

    def test_cancel_during_llm_call(self):
        """Test cancelling aborts the in-flight call and returns CANCELLED."""
        heuristic, local, cloud = _chain(
            [make_recipe(0.4)],
            [make_recipe(0.9)],
            [make_recipe(0.9)],
            local_kwargs={'delay': 5.0},
        )
        controller = ParserEscalationController([heuristic, local, cloud])

        async def run():
            token = CancellationToken()
            task = asyncio.ensure_future(controller.parse_with_escalation(OCR, cancel_token=token))
            await asyncio.sleep(0.05)
            token.cancel()
            return await task

        outcome = asyncio.run(run())

        assert outcome.error == ParseError.CANCELLED
        assert outcome.recipe is None
        assert outcome.final_state == EscalationState.EXHAUSTED_FAILED
        assert local.cancelled
        assert cloud.parse_calls == 0

    def test_cancelled_before_start(self):
        """Test an already cancelled token calls no backend."""
        backends = _chain([make_recipe(0.9)], [make_recipe(0.9)], [make_recipe(0.9)])
        controller = ParserEscalationController(backends)

        async def run():
            token = CancellationToken()
            token.cancel()
            return await controller.parse_with_escalation(OCR, cancel_token=token)

        outcome = asyncio.run(run())

        assert outcome.error == ParseError.CANCELLED
        assert all(b.parse_calls == 0 for b in backends)
