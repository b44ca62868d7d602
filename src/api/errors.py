"""
Error responses.

Maps every ``LmsError`` to a status code and a localized message, and
renders it according to what the client asked for:

* JSON requests get ``{"errors": [{"message": ..., "error_code": ..., ...}]}``
* HTML and every other request type get the message as plain text

``register_error_handlers`` installs the mapping on the FastAPI app so
handlers only need to raise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from api.settings import get_settings
from lms.errors import (
    InvalidAuthorizationRequest,
    LmsError,
    Lti13ToolRequired,
    MissingGroupmateSubmission,
    MissingRequiredPermission,
    NotFound,
    ParameterMissing,
    Unauthorized,
    UnsupportedLaunchMessageType,
)
from lms.i18n import negotiate_locale, translate

logger = logging.getLogger(__name__)

ASSET_PROCESSOR_DEFAULT_MESSAGE = "Invalid request"


@dataclass(frozen=True)
class ErrorSpec:
    status_code: int
    message_key: str
    default: str | None = None


ERROR_SPECS: dict[type[LmsError], ErrorSpec] = {
    UnsupportedLaunchMessageType: ErrorSpec(400, "lti.launches.unsupported_message_type"),
    Lti13ToolRequired: ErrorSpec(
        400, "lti.launches.lti_1_3_required", "Only LTI 1.3 tools support this launch"
    ),
    ParameterMissing: ErrorSpec(400, "errors.parameter_missing"),
    Unauthorized: ErrorSpec(401, "errors.unauthorized"),
    MissingRequiredPermission: ErrorSpec(
        403,
        "lti.asset_processor.errors.missing_required_permission",
        ASSET_PROCESSOR_DEFAULT_MESSAGE,
    ),
    MissingGroupmateSubmission: ErrorSpec(
        404,
        "lti.asset_processor.errors.groupmate_submission_not_found",
        "Groupmate submission could not be found",
    ),
    NotFound: ErrorSpec(404, "errors.not_found", "The specified resource does not exist."),
}

_FALLBACK_SPEC = ErrorSpec(500, "errors.internal", "An error occurred")


def spec_for(error: LmsError) -> ErrorSpec:
    if isinstance(error, InvalidAuthorizationRequest):
        return ErrorSpec(
            400,
            f"lti.authorize.errors.{error.error_code}",
            error.detail or "The authorization request is invalid.",
        )
    for error_class in type(error).__mro__:
        spec = ERROR_SPECS.get(error_class)
        if spec is not None:
            return spec
    return _FALLBACK_SPEC


def wants_json(request: Request) -> bool:
    """Whether the client asked for a JSON response."""
    if request.url.path.endswith(".json") or request.query_params.get("format") == "json":
        return True
    accept = request.headers.get("accept", "")
    if "application/json" not in accept:
        return False
    # Browsers send html first; only prefer JSON when it outranks html
    html_at = accept.find("text/html")
    return html_at == -1 or accept.find("application/json") < html_at


def request_locale(request: Request) -> str:
    return negotiate_locale(request.headers.get("accept-language"), get_settings().default_locale)


def render_error(request: Request, error: LmsError) -> Response:
    spec = spec_for(error)
    message = translate(
        spec.message_key,
        default=spec.default,
        locale=request_locale(request),
        **error.interpolations(),
    )

    if wants_json(request):
        return JSONResponse(
            status_code=spec.status_code,
            content={
                "errors": [
                    {"message": message, "error_code": error.error_code, **error.extras()}
                ]
            },
        )
    return PlainTextResponse(message, status_code=spec.status_code)


async def lms_error_handler(request: Request, exc: LmsError) -> Response:
    logger.info(
        "%s %s -> %s (%s)", request.method, request.url.path, exc.error_code, exc
    )
    return render_error(request, exc)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LmsError, lms_error_handler)
