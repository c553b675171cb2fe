"""
Assessment API Models
"""
from pydantic import BaseModel, Field
from typing import Dict, Any, List, Optional


class StartSessionRequest(BaseModel):
    """Request to start one domain test."""
    domain: str = Field(..., description="Domain: voice, tremor, gait, facial, spiral, tapping, questionnaire")
    patient_id: str = Field(default="ANONYMOUS")
    config: Optional[Dict[str, Any]] = Field(default=None, description="Per-session config overrides")
    start_ms: Optional[float] = Field(default=None, description="Session start on the sample clock")


class SampleInput(BaseModel):
    """One timestamped raw sample."""
    timestamp_ms: float
    value: Any = Field(..., description="Scalar, vector, audio frame or answer mapping")


class SamplesRequest(BaseModel):
    """Batch of samples, applied in order."""
    samples: List[SampleInput]


class SamplesResponse(BaseModel):
    """Outcome of a sample batch."""
    session_id: str
    accepted: int
    rejected: int
    ignored: int = 0
    state: str
    result: Optional[Dict[str, Any]] = None


class DeviceErrorRequest(BaseModel):
    """Acquisition failure reported by the capture client."""
    reason: str = Field(default="device unavailable")


class SessionResponse(BaseModel):
    """Session status."""
    session_id: str
    patient_id: str
    domain: str
    state: str
    sample_count: int
    rejected_samples: int
    elapsed_s: float
    max_duration_s: float
    failure_reason: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    live: Optional[Dict[str, Any]] = None


class DomainScoreInput(BaseModel):
    """A finalized domain result supplied by the caller."""
    status: str = ""
    severity: str = "normal"
    score: float = Field(..., ge=0.0, le=4.0)
    radar: float
    insufficient_data: bool = False
    metrics: Dict[str, float] = Field(default_factory=dict)


class AggregateRequest(BaseModel):
    """Domain name -> finalized result."""
    results: Dict[str, DomainScoreInput]


class AggregateResponse(BaseModel):
    """Cross-domain assessment."""
    radar: Dict[str, float]
    overall_risk: str
    mean_severity: Optional[float] = None
    completed_domains: List[str]
    risk_index: float
    risk_factors: List[str]
    contributing_domains: List[str]


class DomainInfo(BaseModel):
    name: str
    max_duration_s: float
    config: Dict[str, Any]


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    timestamp: str
    active_sessions: int
