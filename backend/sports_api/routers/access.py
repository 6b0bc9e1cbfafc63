"""
Sport-scoped access router.

Every route under /api/v1/{sport} runs the admission dependency for
that sport first: AUTH → SCOPE → RATE LIMIT → ROUTE.

Endpoints:
  GET /api/v1/soccer/access      — admitted key's view of soccer access
  GET /api/v1/basketball/access  — same, for basketball

Sports not listed in SPORTS have no routes and 404.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from sports_api.auth.dependencies import require_sport
from sports_api.auth.gate import Allow
from sports_api.schemas.responses import ErrorResponse, KeyAccessOut, KeyAccessResponse

SPORTS: tuple[str, ...] = ("soccer", "basketball")

_ERROR_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Missing, unknown, revoked or expired key"},
    403: {"model": ErrorResponse, "description": "Key has no access to this sport"},
    429: {"model": ErrorResponse, "description": "Per-minute quota exhausted"},
    503: {"model": ErrorResponse, "description": "Key storage unavailable"},
}


def build_sport_router(sport: str) -> APIRouter:
    """One router per sport so the scope check is bound at import time."""
    sport_router = APIRouter(prefix=f"/{sport}", tags=[sport.title()])
    Auth = Annotated[Allow, Depends(require_sport(sport))]

    @sport_router.get(
        "/access",
        response_model=KeyAccessResponse,
        responses=_ERROR_RESPONSES,
        summary=f"Check API key access to {sport} data",
    )
    async def get_access(auth: Auth) -> KeyAccessResponse:
        return KeyAccessResponse(
            data=KeyAccessOut(
                key_id=auth.key_id,
                key_prefix=auth.key_prefix,
                sport=sport,
                rate_limit=auth.rate_limit,
                remaining=auth.remaining,
            )
        )

    return sport_router


router = APIRouter()
for _sport in SPORTS:
    router.include_router(build_sport_router(_sport))
