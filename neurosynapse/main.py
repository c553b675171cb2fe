"""
NeuroSynapse-PD Screening Core - FastAPI Application

Thin HTTP surface over the assessment service:
- Domain test sessions (start, stream samples, finalize, cancel)
- Device failure reporting
- Cross-domain aggregation
"""
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from typing import Dict, Any
from datetime import datetime
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from neurosynapse.config import settings
from neurosynapse.core.errors import (
    DeviceUnavailableError,
    InvalidConfigError,
    ScreeningError,
    SessionClosedError,
    SessionNotFoundError,
)
from neurosynapse.core.scoring import SCORERS, Domain, DomainScore, Metric, MetricSet, Severity
from neurosynapse.core.session import SessionState
from neurosynapse.core.signal.buffer import Sample
from neurosynapse.models import (
    AggregateRequest,
    AggregateResponse,
    DeviceErrorRequest,
    DomainInfo,
    DomainScoreInput,
    HealthResponse,
    SamplesRequest,
    SamplesResponse,
    SessionResponse,
    StartSessionRequest,
)
from neurosynapse.services import AssessmentService
from neurosynapse.utils import configure_logging, get_logger

configure_logging(settings.log_level)
logger = get_logger(__name__)

API = settings.api_prefix


# ---- FastAPI Application ----

app = FastAPI(
    title=settings.app_name,
    description="Parkinson's motor-sign screening: per-domain scoring and aggregation",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---- Service (in-memory session registry) ----
_service = AssessmentService(settings)


def get_service() -> AssessmentService:
    return _service


_STATUS_CODES = {
    SessionNotFoundError: 404,
    SessionClosedError: 409,
    InvalidConfigError: 422,
    DeviceUnavailableError: 503,
}


def _http_error(e: ScreeningError) -> HTTPException:
    for error_type, status_code in _STATUS_CODES.items():
        if isinstance(e, error_type):
            return HTTPException(status_code=status_code, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


def _to_domain_score(domain: Domain, item: DomainScoreInput) -> DomainScore:
    metrics = MetricSet(domain=domain)
    for name, value in item.metrics.items():
        metrics.add(Metric(name=name, value=float(value), unit=""))
    return DomainScore(
        domain=domain,
        metrics=metrics.freeze(),
        status=item.status,
        severity=Severity(item.severity.lower()),
        score=item.score,
        radar=item.radar,
        insufficient_data=item.insufficient_data,
    )


def _session_response(session_id: str) -> SessionResponse:
    session = get_service().get_session(session_id)
    payload = session.to_dict()
    if session.is_active:
        payload["live"] = session.live_score().to_dict()
    return SessionResponse(**payload)


# ---- API Endpoints ----

@app.get(f"{API}/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        timestamp=datetime.now().isoformat(),
        active_sessions=get_service().active_count(),
    )


@app.get(f"{API}/domains", tags=["Reference"])
async def list_domains():
    """List supported test domains with their default configuration."""
    domains = []
    for domain, scorer_class in SCORERS.items():
        config = scorer_class.config_class.from_settings(settings)
        domains.append(DomainInfo(
            name=domain.value,
            max_duration_s=config.max_duration_s,
            config=config.to_dict(),
        ))
    return {"domains": domains}


@app.post(f"{API}/sessions", response_model=SessionResponse, status_code=201, tags=["Sessions"])
async def start_session(request: StartSessionRequest):
    """Start a domain test; any running test of the same patient is cancelled."""
    try:
        handle = get_service().start_session(
            request.domain,
            config=request.config,
            patient_id=request.patient_id,
            start_ms=request.start_ms,
        )
    except ScreeningError as e:
        raise _http_error(e)
    return _session_response(handle.session_id)


@app.post(f"{API}/sessions/{{session_id}}/samples", response_model=SamplesResponse, tags=["Sessions"])
async def ingest_samples(session_id: str, request: SamplesRequest):
    """
    Stream a batch of samples into a session.

    Samples after an automatic finalization (max duration reached) are
    counted as ignored.
    """
    service = get_service()
    accepted = rejected = ignored = 0
    try:
        session = service.get_session(session_id)
        if not session.is_active:
            raise SessionClosedError(f"Session {session_id} is {session.state.value}")

        for item in request.samples:
            if not session.is_active:
                ignored += 1
                continue
            if service.ingest(session_id, Sample(item.timestamp_ms, item.value)):
                accepted += 1
            else:
                rejected += 1
    except ScreeningError as e:
        raise _http_error(e)
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=422, detail=f"Malformed sample: {e}")

    return SamplesResponse(
        session_id=session_id,
        accepted=accepted,
        rejected=rejected,
        ignored=ignored,
        state=session.state.value,
        result=session.result.to_dict() if session.state == SessionState.FINALIZED else None,
    )


@app.get(f"{API}/sessions/{{session_id}}", response_model=SessionResponse, tags=["Sessions"])
async def get_session(session_id: str):
    """Session status, with the live score while the test is running."""
    try:
        return _session_response(session_id)
    except ScreeningError as e:
        raise _http_error(e)


@app.post(f"{API}/sessions/{{session_id}}/finalize", tags=["Sessions"])
async def finalize_session(session_id: str) -> Dict[str, Any]:
    """Stop the test and return its final domain score."""
    try:
        result = get_service().finalize(session_id)
    except ScreeningError as e:
        raise _http_error(e)
    return result.to_dict()


@app.post(f"{API}/sessions/{{session_id}}/cancel", response_model=SessionResponse, tags=["Sessions"])
async def cancel_session(session_id: str):
    try:
        get_service().cancel(session_id)
        return _session_response(session_id)
    except ScreeningError as e:
        raise _http_error(e)


@app.post(f"{API}/sessions/{{session_id}}/device-error", tags=["Sessions"])
async def report_device_error(session_id: str, request: DeviceErrorRequest):
    """Report an acquisition failure; the session is marked failed."""
    try:
        get_service().report_device_failure(session_id, request.reason)
    except ScreeningError as e:
        raise _http_error(e)


@app.post(f"{API}/aggregate", response_model=AggregateResponse, tags=["Aggregation"])
async def aggregate(request: AggregateRequest):
    """Aggregate caller-supplied domain results."""
    try:
        results = {
            Domain.from_string(name): _to_domain_score(Domain.from_string(name), item)
            for name, item in request.results.items()
        }
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return AggregateResponse(**get_service().aggregate(results).to_dict())


@app.get(f"{API}/patients/{{patient_id}}/aggregate", response_model=AggregateResponse, tags=["Aggregation"])
async def aggregate_patient(patient_id: str):
    """Aggregate the latest finalized result of each domain for a patient."""
    return AggregateResponse(**get_service().aggregate_patient(patient_id).to_dict())


# ---- Application Lifecycle ----

@app.on_event("startup")
async def startup_event():
    logger.info(f"{settings.app_name} v{settings.app_version} starting up...")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"{settings.app_name} shutting down...")


# ---- Run with uvicorn ----
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
