"""
Domain errors raised by LMS services and request handlers.

Every error carries a stable ``error_code``.  Conversion to HTTP responses
happens in one place, ``api.errors``; nothing in the domain layer knows about
status codes or content types.
"""

from __future__ import annotations

from typing import Any


class LmsError(Exception):
    """Base class for errors that are recovered at the request boundary."""

    error_code: str = "internal_error"

    def extras(self) -> dict[str, Any]:
        """Additional fields included in structured (JSON) error bodies."""
        return {}

    def interpolations(self) -> dict[str, Any]:
        """Values substituted into the localized message."""
        return {}


class NotFound(LmsError):
    """A required record (asset processor, context, submission, tool) is missing."""

    error_code = "not_found"


class Unauthorized(LmsError):
    """No user, or the user may not act on the resolved context."""

    error_code = "unauthorized"


class MissingRequiredPermission(LmsError):
    """The user lacks every one of the rights an endpoint accepts."""

    error_code = "missing_required_permission"


class MissingGroupmateSubmission(LmsError):
    """A group submission has no groupmate submission made by the submitter."""

    error_code = "groupmate_submission_not_found"

    def __init__(self, submission_id: int | None = None):
        super().__init__(f"Groupmate submission not found for submission {submission_id}")
        self.submission_id = submission_id


class ParameterMissing(LmsError):
    """A required request parameter is absent or blank."""

    error_code = "parameter_missing"

    def __init__(self, param: str):
        super().__init__(f"param is missing or the value is empty: {param}")
        self.param = param

    def interpolations(self) -> dict[str, Any]:
        return {"param": self.param}


class UnsupportedLaunchMessageType(LmsError):
    """An LTI message type with no adapter operation reached dispatch."""

    error_code = "unsupported_message_type"

    def __init__(self, message_type: Any):
        super().__init__(f"Unsupported message type: {message_type}")
        self.message_type = message_type

    def extras(self) -> dict[str, Any]:
        return {"message_type": self.message_type}

    def interpolations(self) -> dict[str, Any]:
        return {"message_type": self.message_type}


class Lti13ToolRequired(LmsError):
    """The launch needs an LTI 1.3 tool but the tool is LTI 1.1."""

    error_code = "lti_1_3_required"


class InvalidAuthorizationRequest(LmsError):
    """The OIDC authorization leg of a launch was rejected.

    ``error_code`` is one of the OpenID Connect error codes
    (``invalid_request``, ``invalid_scope``, ``unsupported_response_type``,
    ``login_required``, ``launch_no_longer_valid``, ``invalid_redirect_uri``).
    """

    def __init__(self, error_code: str = "invalid_request", detail: str = ""):
        super().__init__(detail or error_code)
        self.error_code = error_code
        self.detail = detail

    def extras(self) -> dict[str, Any]:
        return {"error_description": self.detail} if self.detail else {}
