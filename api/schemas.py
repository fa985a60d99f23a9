"""
API Schemas Module

Response models for the checkout routes. Request bodies use
payments.models.AuthorizationRequest directly so that the set of fields the
caller actually sent survives into the encoder.
"""

from typing import Any, Literal

from pydantic import BaseModel

from payments.models import FlowKind


class AuthorizationStarted(BaseModel):
    redirect_url: str
    flow: FlowKind
    correlation_id: str | None = None


class AuthorizationCompleted(BaseModel):
    status: Literal["authorized"] = "authorized"
    nonce: str
    type: str
    details: dict[str, Any] = {}


class AuthorizationCancelled(BaseModel):
    status: Literal["cancelled"] = "cancelled"


class ErrorOut(BaseModel):
    detail: str
    code: str
