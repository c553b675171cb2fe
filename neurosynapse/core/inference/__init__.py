"""
Inference Module

Aggregates per-domain scores into an overall screening verdict.
"""
from .aggregator import AssessmentAggregator, AggregateResult, RiskLevel, RISK_RULES

__all__ = [
    "AssessmentAggregator",
    "AggregateResult",
    "RiskLevel",
    "RISK_RULES",
]
