from __future__ import annotations


class ScreeningError(RuntimeError):
    """Base for every failure the orchestration layer reports to a caller."""

    code = "screening_error"

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class ReferentialError(ScreeningError):
    code = "not_found"

    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class InsufficientDataError(ScreeningError):
    code = "insufficient_data"

    def __init__(self, message: str = "Session has no finalized candidate responses."):
        super().__init__(message, status_code=422)


class DuplicateAssessmentError(ScreeningError):
    code = "already_assessed"

    def __init__(self, session_id: str):
        super().__init__(f"Assessment already exists for session {session_id}.", status_code=409)
        self.session_id = session_id


class DuplicateCandidateError(ScreeningError):
    code = "duplicate_candidate"

    def __init__(self, email: str):
        super().__init__(f"Candidate with email {email} already exists.", status_code=409)
        self.email = email


class SessionStateError(ScreeningError):
    code = "invalid_session_state"

    def __init__(self, message: str):
        super().__init__(message, status_code=409)


class ExternalFetchError(ScreeningError):
    code = "vendor_fetch_failed"

    def __init__(self, message: str):
        super().__init__(message, status_code=502)


class ConfigurationError(ScreeningError):
    code = "configuration_error"

    def __init__(self, message: str):
        super().__init__(message, status_code=500)
