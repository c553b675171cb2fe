"""
Test Session

Explicit, caller-owned session value wrapping one domain scorer for one
patient test, from start to a terminal state. There are no timers here:
an external scheduler (or a test) drives the session with tick().
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional
import uuid

from neurosynapse.core.errors import (
    DeviceUnavailableError,
    OutOfOrderSampleError,
    SessionClosedError,
)
from neurosynapse.core.scoring.base import Domain, DomainScore, DomainScorer
from neurosynapse.core.signal.buffer import Sample
from neurosynapse.utils import get_logger

logger = get_logger(__name__)


class SessionState(str, Enum):
    """Lifecycle states; everything but ACTIVE is terminal."""
    ACTIVE = "active"
    FINALIZED = "finalized"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class SessionHandle:
    """Opaque reference to a session held by the service."""
    session_id: str
    patient_id: str
    domain: Domain


class TestSession:
    """
    One patient-test instance.

    The session exclusively owns its scorer. It finalizes itself as soon as
    the elapsed sample time reaches the configured maximum duration.
    """

    __test__ = False  # not a pytest test class

    def __init__(
        self,
        scorer: DomainScorer,
        patient_id: str = "ANONYMOUS",
        start_ms: Optional[float] = None,
        session_id: Optional[str] = None
    ):
        self.session_id = session_id or f"SES-{uuid.uuid4().hex[:8].upper()}"
        self.patient_id = patient_id
        self.scorer = scorer
        self.state = SessionState.ACTIVE
        self.result: Optional[DomainScore] = None
        self.failure_reason: Optional[str] = None
        self.rejected_samples = 0

        if start_ms is not None:
            scorer.start(start_ms)

        logger.info(
            f"Session {self.session_id} started: {self.domain.value} "
            f"for patient {patient_id} (max {self.max_duration_s:.0f}s)"
        )

    @property
    def domain(self) -> Domain:
        return self.scorer.domain

    @property
    def max_duration_s(self) -> float:
        return float(self.scorer.config.max_duration_s)

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    @property
    def handle(self) -> SessionHandle:
        return SessionHandle(self.session_id, self.patient_id, self.domain)

    def tick(self, sample: Sample) -> bool:
        """
        Feed one sample.

        Returns:
            True if the sample was accepted, False if it was rejected
            as out of order (the session state is unchanged)

        Raises:
            SessionClosedError: If the session already reached a terminal state
        """
        self._require_active()

        try:
            self.scorer.ingest(sample)
        except OutOfOrderSampleError as e:
            self.rejected_samples += 1
            logger.warning(f"Session {self.session_id}: rejected sample ({e})")
            return False

        if self.scorer.elapsed_s >= self.max_duration_s:
            logger.info(f"Session {self.session_id}: max duration reached, finalizing")
            self.finalize()
        return True

    def live_score(self) -> DomainScore:
        """Score from the data ingested so far, without ending the session."""
        if self.result is not None:
            return self.result
        return self.scorer.score()

    def finalize(self) -> DomainScore:
        """
        Freeze the session and return its final DomainScore.

        Finalizing an already finalized session returns the same result.
        """
        if self.state == SessionState.FINALIZED:
            return self.result
        self._require_active()

        self.result = self.scorer.score()
        self.state = SessionState.FINALIZED
        logger.info(
            f"Session {self.session_id} finalized: {self.domain.value} "
            f"status={self.result.status}, severity={self.result.severity.value}, "
            f"samples={self.scorer.sample_count}"
        )
        return self.result

    def cancel(self) -> None:
        """Stop the session before any final metrics are produced."""
        if not self.is_active:
            return
        self.state = SessionState.CANCELLED
        logger.info(f"Session {self.session_id} cancelled")

    def fail(self, reason: str) -> DeviceUnavailableError:
        """Mark the session failed; returns the error for the caller to raise."""
        if self.is_active:
            self.state = SessionState.FAILED
            self.failure_reason = reason
            logger.warning(f"Session {self.session_id} failed: {reason}")
        return DeviceUnavailableError(f"Device unavailable for session {self.session_id}: {reason}")

    def _require_active(self) -> None:
        if not self.is_active:
            raise SessionClosedError(f"Session {self.session_id} is {self.state.value}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "patient_id": self.patient_id,
            "domain": self.domain.value,
            "state": self.state.value,
            "sample_count": self.scorer.sample_count,
            "rejected_samples": self.rejected_samples,
            "elapsed_s": round(self.scorer.elapsed_s, 3),
            "max_duration_s": self.max_duration_s,
            "failure_reason": self.failure_reason,
            "result": self.result.to_dict() if self.result else None,
        }
