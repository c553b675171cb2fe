from .assessment import AssessmentService, ResultSink

__all__ = ["AssessmentService", "ResultSink"]
