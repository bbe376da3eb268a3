"""
Error taxonomy for the dream analysis pipeline
"""
from typing import Any, Dict, Optional


class DreamAnalysisError(Exception):
    """Base class for all pipeline errors"""

    code = "dream_analysis_error"
    status_code = 500

    def __init__(self, message: str, metadata: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.metadata = metadata or {}

    def to_dict(self) -> Dict[str, Any]:
        """Client-safe representation"""
        return {"error": self.code, "detail": self.message}


class ValidationError(DreamAnalysisError):
    """Input rejected locally before any network call"""

    code = "validation_error"
    status_code = 400


class InferenceUnavailable(DreamAnalysisError):
    """Transport failure or non-success status from the generation service"""

    code = "inference_unavailable"
    status_code = 500


class MalformedInferenceOutput(DreamAnalysisError):
    """Model output has no usable JSON object or a field has the wrong type"""

    code = "malformed_inference_output"
    status_code = 500

    def __init__(self, message: str, raw_output: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None):
        super().__init__(message, metadata)
        # Kept for diagnostics only; never part of to_dict()
        self.raw_output = raw_output


class MoonPhaseUnavailable(DreamAnalysisError):
    """Astronomy lookup failed; always absorbed by the caller"""

    code = "moon_phase_unavailable"
    status_code = 200


class PersistenceError(DreamAnalysisError):
    """Analysis succeeded but the record could not be stored"""

    code = "persistence_error"
    status_code = 500

    def __init__(self, message: str, record: Any = None, metadata: Optional[Dict[str, Any]] = None):
        super().__init__(message, metadata)
        self.record = record

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.record is not None:
            data["analysis"] = self.record.to_response()
        return data


class SubmissionInProgress(DreamAnalysisError):
    """A session already has a submission in flight"""

    code = "submission_in_progress"
    status_code = 409


class DreamNotFound(DreamAnalysisError):
    """No saved dream with the given id"""

    code = "dream_not_found"
    status_code = 404
