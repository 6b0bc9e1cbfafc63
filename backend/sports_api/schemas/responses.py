"""
Pydantic v2 response envelopes.

Every JSON response is wrapped:
  • success → {"success": true,  "data": {...}}
  • failure → {"success": false, "error": {"code": "...", "message": "..."}}
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorInfo(BaseModel):
    code: str = Field(..., examples=["RATE_LIMIT_EXCEEDED"])
    message: str = Field(..., examples=["Rate limit exceeded. Please wait before making more requests."])


class ErrorResponse(BaseModel):
    """Body of every 4xx/5xx response."""

    success: bool = False
    error: ErrorInfo


class KeyAccessOut(BaseModel):
    """What the admitted key can see for one sport."""

    key_id: int
    key_prefix: str = Field(..., examples=["sk_live_a1b2"])
    sport: str = Field(..., examples=["soccer"])
    rate_limit: int = Field(..., description="Requests per minute.")
    remaining: int = Field(..., description="Requests left in the current window.")


class KeyAccessResponse(BaseModel):
    success: bool = True
    data: KeyAccessOut
