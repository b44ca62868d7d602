"""
LTI platform endpoints.

POST     /api/lti/asset_processors/{id}/resubmit_notice  - re-notify a processor
GET      /api/lti/asset_processors/{id}/launch           - processor settings launch
GET      /api/lti/asset_processors/{id}/report           - report review launch
GET      /api/lti/courses/{course_id}/tools/{tool_id}/eula - EULA launch
GET/POST /api/lti/authorize_redirect                     - OIDC authorization
GET      /api/lti/security/jwks                          - platform public keys
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.auth import RequestContext, get_request_context
from api.database import get_db
from api.lti.asset_processor_launch import AssetProcessorLaunchController
from api.lti.asset_processors import AssetProcessorController
from api.lti.authorize import AuthorizationController
from api.lti.config import get_key_set
from api.lti.eula_launch import EulaLaunchController
from api.settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/lti", tags=["lti"])


async def _get_request_data(request: Request) -> dict:
    """Extract params from GET or POST request."""
    if request.method == "GET":
        return dict(request.query_params)
    form = await request.form()
    return dict(form)


@router.post("/asset_processors/{asset_processor_id}/resubmit_notice")
async def resubmit_notice(
    request: Request,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    """Send the asset processor a fresh notice for a student's submission."""
    params = await _get_request_data(request)
    controller = AssetProcessorController(request, db, ctx, params=params, settings=get_settings())
    return await controller.process("resubmit_notice")


@router.get("/asset_processors/{asset_processor_id}/launch")
async def launch_asset_processor_settings(
    request: Request,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    controller = AssetProcessorLaunchController(request, db, ctx, settings=get_settings())
    return await controller.process("launch_settings")


@router.get("/asset_processors/{asset_processor_id}/report")
async def launch_asset_processor_report(
    request: Request,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    controller = AssetProcessorLaunchController(request, db, ctx, settings=get_settings())
    return await controller.process("launch_report")


@router.get("/courses/{course_id}/tools/{tool_id}/eula")
async def launch_eula(
    request: Request,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    controller = EulaLaunchController(request, db, ctx, settings=get_settings())
    return await controller.process("launch")


@router.api_route("/authorize_redirect", methods=["GET", "POST"])
async def authorize_redirect(
    request: Request,
    db: AsyncSession = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
):
    """
    OIDC authorization request from a tool.

    Returns a page that posts the signed id_token and ``state`` to the
    tool's ``redirect_uri``.
    """
    params = await _get_request_data(request)
    controller = AuthorizationController(request, db, ctx, params=params, settings=get_settings())
    return await controller.process("authorize_redirect")


@router.get("/security/jwks")
async def jwks():
    """Platform public key set, used by tools to verify id_tokens."""
    return get_key_set().jwks_document()
