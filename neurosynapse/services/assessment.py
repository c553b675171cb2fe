"""
Assessment Service - Test Session Orchestration

Owns the registry of test sessions, enforces one active test per patient,
publishes finalized results and aggregates them per patient.
"""
from typing import Any, Callable, Dict, Mapping, Optional, Union

from neurosynapse.config import Settings, get_settings
from neurosynapse.core.errors import InvalidConfigError, SessionNotFoundError
from neurosynapse.core.inference.aggregator import AggregateResult, AssessmentAggregator
from neurosynapse.core.scoring import SCORERS, Domain, DomainScore
from neurosynapse.core.session import SessionHandle, SessionState, TestSession
from neurosynapse.core.signal.buffer import Sample
from neurosynapse.utils import get_logger

logger = get_logger(__name__)

ResultSink = Callable[[str, DomainScore], None]
Clock = Callable[[], float]

HandleLike = Union[SessionHandle, str]


class AssessmentService:
    """
    Service class for the screening test workflow.
    Decouples session bookkeeping from the HTTP layer.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        aggregator: Optional[AssessmentAggregator] = None,
        sink: Optional[ResultSink] = None,
        clock: Optional[Clock] = None
    ):
        """
        Args:
            settings: Defaults for every scorer config
            aggregator: Cross-domain aggregator
            sink: Extra consumer of finalized results (patient_id, score)
            clock: Wall clock in ms, used to timestamp raw sample values
        """
        self.settings = settings or get_settings()
        self.aggregator = aggregator or AssessmentAggregator(self.settings)
        self.sink = sink
        self.clock = clock

        self._sessions: Dict[str, TestSession] = {}
        self._active_by_patient: Dict[str, str] = {}
        self._published: set = set()
        self.results: Dict[str, Dict[Domain, DomainScore]] = {}

    # ---- lifecycle ----

    def start_session(
        self,
        domain: Union[Domain, str],
        config: Optional[Dict[str, Any]] = None,
        patient_id: str = "ANONYMOUS",
        start_ms: Optional[float] = None
    ) -> SessionHandle:
        """
        Start a test, cancelling any test already running for the patient.

        Raises:
            InvalidConfigError: Unknown domain or invalid config, before any sampling
        """
        try:
            domain = domain if isinstance(domain, Domain) else Domain.from_string(domain)
        except ValueError as e:
            raise InvalidConfigError(str(e))

        scorer_class = SCORERS[domain]
        scorer_config = scorer_class.config_class.from_settings(self.settings, **(config or {}))

        previous = self._active_by_patient.get(patient_id)
        if previous is not None and self._sessions[previous].is_active:
            logger.info(f"Patient {patient_id} started a new test; cancelling {previous}")
            self._sessions[previous].cancel()

        session = TestSession(scorer_class(scorer_config), patient_id=patient_id, start_ms=start_ms)
        self._sessions[session.session_id] = session
        self._active_by_patient[patient_id] = session.session_id
        self._evict_finished()
        return session.handle

    def ingest(self, handle: HandleLike, sample: Any) -> bool:
        """
        Feed one sample (a Sample, or a raw value stamped with the clock).

        Returns:
            False if the sample was rejected as out of order
        """
        session = self.get_session(handle)
        if not isinstance(sample, Sample):
            if self.clock is None:
                raise ValueError("Raw sample values need a service clock")
            sample = Sample(self.clock(), sample)

        accepted = session.tick(sample)
        if session.state == SessionState.FINALIZED:
            self._publish(session)
        return accepted

    def finalize(self, handle: HandleLike) -> DomainScore:
        session = self.get_session(handle)
        result = session.finalize()
        self._publish(session)
        return result

    def cancel(self, handle: HandleLike) -> None:
        session = self.get_session(handle)
        session.cancel()
        self._release(session)

    def report_device_failure(self, handle: HandleLike, reason: str) -> None:
        """
        Mark the session failed after an acquisition error and surface it.

        Raises:
            DeviceUnavailableError: Always
        """
        session = self.get_session(handle)
        error = session.fail(reason)
        self._release(session)
        raise error

    # ---- queries ----

    def get_session(self, handle: HandleLike) -> TestSession:
        session_id = handle.session_id if isinstance(handle, SessionHandle) else str(handle)
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session not found: {session_id}")
        return session

    def active_session(self, patient_id: str) -> Optional[TestSession]:
        session_id = self._active_by_patient.get(patient_id)
        if session_id is None:
            return None
        session = self._sessions[session_id]
        return session if session.is_active else None

    def active_count(self) -> int:
        return sum(1 for s in self._sessions.values() if s.is_active)

    def aggregate(self, results: Mapping[Any, DomainScore]) -> AggregateResult:
        return self.aggregator.aggregate(results)

    def aggregate_patient(self, patient_id: str) -> AggregateResult:
        """Aggregate the latest finalized result of each domain for a patient."""
        return self.aggregator.aggregate(self.results.get(patient_id, {}))

    # ---- internals ----

    def _release(self, session: TestSession) -> None:
        if self._active_by_patient.get(session.patient_id) == session.session_id:
            del self._active_by_patient[session.patient_id]

    def _evict_finished(self) -> None:
        """Drop the oldest finished sessions beyond max_retained_sessions."""
        finished = [sid for sid, s in self._sessions.items() if not s.is_active]
        excess = len(finished) - self.settings.max_retained_sessions
        for session_id in finished[:max(0, excess)]:
            del self._sessions[session_id]
            self._published.discard(session_id)
        if excess > 0:
            logger.debug(f"Evicted {excess} finished sessions")

    def _publish(self, session: TestSession) -> None:
        """Record a finalized result once and hand it to the sink."""
        if session.session_id in self._published:
            return
        self._published.add(session.session_id)
        self._release(session)

        self.results.setdefault(session.patient_id, {})[session.domain] = session.result
        if self.sink is not None:
            try:
                self.sink(session.patient_id, session.result)
            except Exception as e:
                logger.error(f"Result sink failed for {session.session_id}: {e}", exc_info=True)
