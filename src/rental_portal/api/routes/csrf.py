"""Anti-forgery token issuance endpoint."""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from rental_portal.api.deps import get_gatekeeper
from rental_portal.api.schemas import CsrfTokenResponse, ErrorEnvelope
from rental_portal.auth.csrf import generate_csrf_token, set_csrf_cookie
from rental_portal.auth.gatekeeper import Gatekeeper

logger = structlog.get_logger()

# Mounted at Settings.csrf_token_path by create_app.
router = APIRouter(tags=["csrf"])


@router.get(
    "",
    response_model=CsrfTokenResponse,
    responses={500: {"model": ErrorEnvelope}},
)
async def issue_csrf_token(
    response: Response,
    gatekeeper: Annotated[Gatekeeper, Depends(get_gatekeeper)],
) -> CsrfTokenResponse | JSONResponse:
    """Issue a fresh token and bind it to the caller via cookie.

    Every call replaces the previous token; concurrent calls from one
    client resolve to whichever cookie is written last.
    """
    settings = gatekeeper.settings
    try:
        token = generate_csrf_token()
        set_csrf_cookie(
            response,
            token,
            secure=settings.is_prod,
            max_age=settings.csrf_cookie_max_age,
        )
    except Exception:
        logger.exception("csrf_token_issue_failed")
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Failed to generate CSRF token"},
        )

    logger.debug("csrf_token_issued")
    return CsrfTokenResponse(csrf_token=token)
