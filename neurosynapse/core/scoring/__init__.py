"""
Domain Scorers

One scorer per test modality. Each turns a raw sample stream into a
MetricSet, a status label, a severity and a radar value.
"""
from typing import Any, Dict, Optional, Type

from .base import (
    Domain,
    Severity,
    Metric,
    MetricSet,
    DomainScore,
    ScorerConfig,
    DomainScorer,
)
from .voice import VoiceScorer, VoiceConfig, classify_voice
from .tremor import TremorScorer, TremorConfig, tremor_severity_score, classify_tremor
from .gait import GaitScorer, GaitConfig, gait_symmetry
from .facial import (
    FacialScorer,
    FacialConfig,
    eye_aspect_ratio,
    eye_aspect_ratios_from_mesh,
    facial_symmetry,
    LEFT_EYE_INDICES,
    RIGHT_EYE_INDICES,
)
from .spiral import SpiralScorer, SpiralConfig
from .tapping import TappingScorer, TappingConfig
from .questionnaire import QuestionnaireScorer, QuestionnaireConfig

SCORERS: Dict[Domain, Type[DomainScorer]] = {
    Domain.VOICE: VoiceScorer,
    Domain.TREMOR: TremorScorer,
    Domain.GAIT: GaitScorer,
    Domain.FACIAL: FacialScorer,
    Domain.SPIRAL: SpiralScorer,
    Domain.TAPPING: TappingScorer,
    Domain.QUESTIONNAIRE: QuestionnaireScorer,
}


def create_scorer(domain: Domain, overrides: Optional[Dict[str, Any]] = None) -> DomainScorer:
    """
    Build a scorer with settings defaults plus per-session overrides.

    Raises:
        InvalidConfigError: If an override is unknown or out of range
    """
    scorer_class = SCORERS[Domain(domain)]
    config = scorer_class.config_class.from_settings(**(overrides or {}))
    return scorer_class(config)


__all__ = [
    "Domain",
    "Severity",
    "Metric",
    "MetricSet",
    "DomainScore",
    "ScorerConfig",
    "DomainScorer",
    "SCORERS",
    "create_scorer",
    "VoiceScorer",
    "VoiceConfig",
    "classify_voice",
    "TremorScorer",
    "TremorConfig",
    "tremor_severity_score",
    "classify_tremor",
    "GaitScorer",
    "GaitConfig",
    "gait_symmetry",
    "FacialScorer",
    "FacialConfig",
    "eye_aspect_ratio",
    "eye_aspect_ratios_from_mesh",
    "facial_symmetry",
    "LEFT_EYE_INDICES",
    "RIGHT_EYE_INDICES",
    "SpiralScorer",
    "SpiralConfig",
    "TappingScorer",
    "TappingConfig",
    "QuestionnaireScorer",
    "QuestionnaireConfig",
]
