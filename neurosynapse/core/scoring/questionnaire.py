"""
Questionnaire Domain Scorer

Self-reported symptom questionnaire. Each sample value maps question ids to
answers on a 0-2 scale; later answers to the same question replace earlier
ones. The total is rescaled onto the 0-4 aggregation scale.
"""
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from neurosynapse.core.errors import InvalidConfigError
from neurosynapse.core.signal.buffer import Sample
from neurosynapse.utils import get_logger
from .base import Domain, DomainScorer, MetricSet, ScorerConfig, Severity, _require_positive

logger = get_logger(__name__)

DEFAULT_QUESTIONS = ("q1", "q2", "q3")


@dataclass
class QuestionnaireConfig(ScorerConfig):
    """Questionnaire configuration."""
    max_duration_s: float = 600.0
    questions: Tuple[str, ...] = DEFAULT_QUESTIONS
    max_answer: int = 2

    settings_fields = {
        "max_duration_s": "questionnaire_test_duration_s",
    }

    def validate(self) -> None:
        super().validate()
        _require_positive("max_answer", self.max_answer)
        if not self.questions:
            raise InvalidConfigError("questions must not be empty")


def questionnaire_score(total: float, n_questions: int, max_answer: int = 2) -> int:
    """min(4, round(total / (max_answer * n) * 4))."""
    if n_questions <= 0:
        return 0
    return int(min(4, round(total / (max_answer * n_questions) * 4)))


class QuestionnaireScorer(DomainScorer):
    domain = Domain.QUESTIONNAIRE
    config_class = QuestionnaireConfig

    def __init__(self, config: Optional[QuestionnaireConfig] = None):
        super().__init__(config)
        self.answers: Dict[str, int] = {}

    def _ingest(self, sample: Sample) -> None:
        if not isinstance(sample.value, dict):
            self._warnings.append(f"Ignored non-mapping questionnaire sample at {sample.timestamp_ms:.0f}ms")
            return

        for question, answer in sample.value.items():
            if question not in self.config.questions:
                logger.warning(f"questionnaire: unknown question {question!r} ignored")
                continue
            try:
                value = int(answer)
            except (TypeError, ValueError, OverflowError):
                logger.warning(f"questionnaire: non-numeric answer {answer!r} to {question} ignored")
                self._warnings.append(f"Ignored non-numeric answer to {question}")
                continue
            if not 0 <= value <= self.config.max_answer:
                logger.warning(f"questionnaire: answer {value} to {question} clamped")
                value = max(0, min(self.config.max_answer, value))
            self.answers[question] = value

    def compute_metrics(self) -> MetricSet:
        metric_set = self._create_metric_set()
        total = sum(self.answers.values())
        n = len(self.config.questions)
        score = questionnaire_score(total, n, self.config.max_answer)

        self._add_metric(metric_set, "score", score, "score_0_4",
                         normal_range=(0.0, 0.0),
                         description="Symptom score on the 0-4 scale")
        self._add_metric(metric_set, "total", total, "points")
        self._add_metric(metric_set, "answered", len(self.answers), "count")

        metric_set.metadata["answers"] = dict(self.answers)
        metric_set.metadata["insufficient_data"] = len(self.answers) < n
        return metric_set

    def classify(self, metrics: MetricSet) -> str:
        return Severity.from_ordinal(metrics.value("score")).value

    def severity(self, status: str, metrics: MetricSet) -> Severity:
        return Severity(status)

    def ordinal_score(self, severity: Severity, metrics: MetricSet) -> float:
        return metrics.value("score")

    def radar_value(self, status: str, metrics: MetricSet) -> float:
        return 1.0 - metrics.value("score") / 4.0
