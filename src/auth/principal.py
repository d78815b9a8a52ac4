"""The resolved identity attached to an authenticated request."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from fastapi import Request
from pydantic import BaseModel, ConfigDict, Field


class AuthenticatedPrincipal(BaseModel):
    """Who is making the request. Lives for one request and is never stored."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    email: Optional[str] = None
    business_name: Optional[str] = Field(None, alias="businessName")
    business_address: Optional[str] = Field(None, alias="businessAddress")
    subscription_tier: str = Field("free", alias="subscriptionTier")
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    @classmethod
    def from_supabase_user(cls, user: Any) -> "AuthenticatedPrincipal":
        """Build a principal from a Supabase auth ``User`` object."""
        metadata = getattr(user, "user_metadata", None) or {}
        return cls(
            id=str(user.id),
            email=getattr(user, "email", None),
            business_name=metadata.get("business_name"),
            business_address=metadata.get("business_address"),
            subscription_tier=metadata.get("subscription_tier") or "free",
            created_at=getattr(user, "created_at", None),
        )


@dataclass(frozen=True)
class AuthenticatedRequest:
    """An inbound request paired with its resolved, non-null principal."""

    request: Request
    principal: AuthenticatedPrincipal
