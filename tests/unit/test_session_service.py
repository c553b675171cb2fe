"""
Unit Tests for Test Sessions and the Assessment Service
"""
import pytest
import numpy as np

from neurosynapse.config import Settings
from neurosynapse.core.errors import (
    DeviceUnavailableError,
    InvalidConfigError,
    SessionClosedError,
    SessionNotFoundError,
)
from neurosynapse.core.inference import RiskLevel
from neurosynapse.core.scoring import Domain, Severity, TremorConfig, TremorScorer
from neurosynapse.core.session import SessionState, TestSession
from neurosynapse.core.signal.buffer import Sample
from neurosynapse.services import AssessmentService

STEP_MS = 1000.0 / 60.0


def tremor_samples(n: int = 300, amplitude: float = 0.002):
    t = np.arange(n) / 60.0
    return [Sample(i * STEP_MS, v) for i, v in enumerate(amplitude * np.sin(2 * np.pi * 5.0 * t))]


@pytest.fixture
def service() -> AssessmentService:
    return AssessmentService()


class TestTestSession:
    """Tests for the session lifecycle."""

    def test_auto_finalize_at_max_duration(self):
        session = TestSession(TremorScorer(TremorConfig(max_duration_s=1.0)))
        samples = tremor_samples(120)

        for sample in samples:
            if not session.is_active:
                break
            session.tick(sample)

        assert session.state == SessionState.FINALIZED
        assert session.result is not None
        with pytest.raises(SessionClosedError):
            session.tick(samples[-1])

    def test_out_of_order_sample_rejected(self):
        session = TestSession(TremorScorer(TremorConfig()))
        assert session.tick(Sample(100.0, 0.0))
        assert not session.tick(Sample(50.0, 0.0))
        assert session.scorer.sample_count == 1
        assert session.rejected_samples == 1
        assert session.is_active

    def test_cancel_before_metrics(self):
        session = TestSession(TremorScorer(TremorConfig()))
        session.tick(Sample(0.0, 0.0))
        session.cancel()
        assert session.state == SessionState.CANCELLED
        assert session.result is None
        with pytest.raises(SessionClosedError):
            session.finalize()

    def test_finalize_is_idempotent(self):
        session = TestSession(TremorScorer(TremorConfig()))
        for sample in tremor_samples(60):
            session.tick(sample)
        first = session.finalize()
        assert session.finalize() is first

    def test_finalize_after_one_sample(self):
        for value in (0.0, (0.1, 0.2), [0.3, 0.3]):
            session = TestSession(TremorScorer(TremorConfig()))
            session.tick(Sample(0.0, value))
            result = session.finalize()
            assert result.insufficient_data

    def test_start_anchor(self):
        session = TestSession(TremorScorer(TremorConfig(max_duration_s=1.0)), start_ms=0.0)
        session.tick(Sample(1500.0, 0.0))
        assert session.state == SessionState.FINALIZED


class TestAssessmentService:
    """Tests for the assessment service."""

    def test_tremor_end_to_end(self, service):
        handle = service.start_session("tremor", patient_id="P1")
        for sample in tremor_samples():
            assert service.ingest(handle, sample)

        result = service.finalize(handle)
        assert 4.5 <= result.metrics.value("frequency_hz") <= 5.5
        assert result.metrics.value("amplitude_mm") == pytest.approx(1.414, abs=0.02)
        assert result.severity in (Severity.NORMAL, Severity.MILD)

    def test_invalid_config_at_start(self, service):
        with pytest.raises(InvalidConfigError):
            service.start_session(Domain.VOICE, config={"max_duration_s": -1})
        with pytest.raises(InvalidConfigError):
            service.start_session("cardiology")

    def test_one_active_test_per_patient(self, service):
        first = service.start_session(Domain.TREMOR, patient_id="P1")
        other = service.start_session(Domain.TREMOR, patient_id="P2")
        second = service.start_session(Domain.GAIT, patient_id="P1")

        assert service.get_session(first).state == SessionState.CANCELLED
        assert service.get_session(other).is_active
        assert service.active_session("P1").session_id == second.session_id

    def test_device_failure(self, service):
        failing = service.start_session(Domain.VOICE, patient_id="P1")
        healthy = service.start_session(Domain.VOICE, patient_id="P2")

        with pytest.raises(DeviceUnavailableError):
            service.report_device_failure(failing, "microphone disconnected")

        assert service.get_session(failing).state == SessionState.FAILED
        assert service.get_session(healthy).is_active
        with pytest.raises(SessionClosedError):
            service.ingest(failing, Sample(0.0, np.zeros(2048)))

    def test_unknown_session(self, service):
        with pytest.raises(SessionNotFoundError):
            service.finalize("SES-MISSING")

    def test_sink_receives_result_once(self):
        received = []
        service = AssessmentService(sink=lambda patient_id, score: received.append((patient_id, score)))
        handle = service.start_session(Domain.TAPPING, patient_id="P9")
        for i in range(20):
            service.ingest(handle, Sample(i * 400.0, 1))
        service.finalize(handle)
        service.finalize(handle)

        assert len(received) == 1
        assert received[0][0] == "P9"
        assert received[0][1].domain == Domain.TAPPING

    def test_auto_finalized_result_published(self, service):
        handle = service.start_session(Domain.TREMOR, config={"max_duration_s": 1.0}, patient_id="P3")
        for sample in tremor_samples(90):
            if not service.get_session(handle).is_active:
                break
            service.ingest(handle, sample)
        assert Domain.TREMOR in service.results["P3"]

    def test_raw_values_use_clock(self):
        now = iter([0.0, 100.0, 200.0])
        service = AssessmentService(clock=lambda: next(now))
        handle = service.start_session(Domain.TAPPING)
        for _ in range(3):
            service.ingest(handle, 1)
        assert service.get_session(handle).scorer.elapsed_s == pytest.approx(0.2)

    def test_patient_aggregate(self, service):
        tremor = service.start_session(Domain.TREMOR, patient_id="P4")
        for sample in tremor_samples():
            service.ingest(tremor, sample)
        service.finalize(tremor)

        assert service.aggregate_patient("P4").overall_risk == RiskLevel.INCOMPLETE

        questionnaire = service.start_session(Domain.QUESTIONNAIRE, patient_id="P4")
        service.ingest(questionnaire, Sample(0.0, {"q1": 0, "q2": 0, "q3": 0}))
        service.finalize(questionnaire)

        result = service.aggregate_patient("P4")
        assert result.overall_risk == RiskLevel.LOW
        assert set(result.radar) == {"tremor", "questionnaire"}

    def test_empty_tests_leave_aggregate_incomplete(self, service):
        for domain, value in ((Domain.TREMOR, 0.0), (Domain.SPIRAL, (300.0, 300.0))):
            handle = service.start_session(domain, patient_id="P5")
            service.ingest(handle, Sample(0.0, value))
            assert service.finalize(handle).insufficient_data

        result = service.aggregate_patient("P5")
        assert result.overall_risk == RiskLevel.INCOMPLETE
        assert result.completed_domains == []

    def test_finished_sessions_are_evicted(self):
        service = AssessmentService(settings=Settings(max_retained_sessions=2))
        handles = [service.start_session(Domain.TAPPING, patient_id=f"P{i}") for i in range(3)]
        for handle in handles:
            service.cancel(handle)

        service.start_session(Domain.TAPPING, patient_id="P9")

        with pytest.raises(SessionNotFoundError):
            service.get_session(handles[0])
        assert service.get_session(handles[2]).state == SessionState.CANCELLED
        assert service.active_count() == 1
