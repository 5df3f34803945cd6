from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.schemas.analysis import QualityGateResult


class EngineError(RuntimeError):
    def __init__(self, message: str, *, code: str = "engine_error", status_code: int = 500):
        super().__init__(message)
        self.code = code
        self.status_code = status_code


class ExtractionFailure(EngineError):
    def __init__(self, message: str = "Could not extract usable text from the document."):
        super().__init__(message, code="extraction_failed", status_code=400)


class StructuringFailure(EngineError):
    def __init__(self, message: str = "Resume structuring failed."):
        super().__init__(message, code="structuring_failed", status_code=502)


class GenerationError(EngineError):
    """Any failure raised by the text-generation collaborator."""

    def __init__(self, message: str, *, code: str = "llm_unavailable", status_code: int = 503):
        super().__init__(message, code=code, status_code=status_code)


class QuotaExceeded(GenerationError):
    def __init__(
        self,
        message: str = "AI API rate limit exceeded. Please check your API quota or wait a few minutes.",
    ):
        super().__init__(message, code="quota_exceeded", status_code=429)


class AccessForbidden(GenerationError):
    def __init__(
        self,
        message: str = "AI API access forbidden (403). Check API key or IP restrictions.",
    ):
        super().__init__(message, code="access_forbidden", status_code=403)


class LowConfidenceRejection(EngineError):
    def __init__(self, confidence: int, warnings: list[str], *, threshold: int):
        super().__init__(
            f"Resume parse confidence {confidence} is below the reject threshold {threshold}.",
            code="low_confidence",
            status_code=422,
        )
        self.confidence = confidence
        self.threshold = threshold
        self.warnings = list(warnings)


class ValidationFailed(EngineError):
    """Quality gate rejected a rewrite. The pipeline records this as data; callers may raise it to block."""

    def __init__(self, result: "QualityGateResult"):
        summary = "; ".join(result.issues[:3]) or "quality gate failed"
        super().__init__(f"Rewrite failed validation: {summary}", code="validation_failed", status_code=422)
        self.result = result
