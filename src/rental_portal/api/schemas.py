"""Request/response schemas for the API layer."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ErrorEnvelope(BaseModel):
    """Body of every gatekeeper rejection on API routes."""

    success: bool = False
    message: str


class CsrfTokenResponse(BaseModel):
    """Response for ``GET /api/csrf-token``.

    The same token is set as the ``csrf-token`` cookie; clients echo it
    back in the ``X-CSRF-Token`` header of mutating requests.
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    csrf_token: str = Field(alias="csrfToken")


class HealthResponse(BaseModel):
    status: str
