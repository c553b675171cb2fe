from .sessions import (
    StartSessionRequest,
    SampleInput,
    SamplesRequest,
    SamplesResponse,
    DeviceErrorRequest,
    SessionResponse,
    DomainScoreInput,
    AggregateRequest,
    AggregateResponse,
    DomainInfo,
    HealthResponse,
)

__all__ = [
    "StartSessionRequest",
    "SampleInput",
    "SamplesRequest",
    "SamplesResponse",
    "DeviceErrorRequest",
    "SessionResponse",
    "DomainScoreInput",
    "AggregateRequest",
    "AggregateResponse",
    "DomainInfo",
    "HealthResponse",
]
