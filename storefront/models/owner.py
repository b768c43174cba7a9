"""Cart ownership models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class OwnerKind(str, Enum):
    """Who a cart row belongs to."""

    USER = "user"
    GUEST = "guest"


class ResolveMode(str, Enum):
    """Whether owner resolution may provision a new guest identity.

    ``READ_ONLY`` is for render/read paths, which must never write cookies.
    ``MAY_CREATE`` is for cart writes, which mint a guest id on first use.
    """

    READ_ONLY = "read_only"
    MAY_CREATE = "may_create"


class Owner(BaseModel):
    """The acting party for one request: a signed-in user or a guest."""

    kind: OwnerKind
    id: str = Field(..., min_length=1)
    # Caller's session token, forwarded so RLS sees the user. Never serialized.
    access_token: Optional[str] = Field(default=None, repr=False, exclude=True)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def user(cls, user_id: str, access_token: Optional[str] = None) -> "Owner":
        return cls(kind=OwnerKind.USER, id=user_id, access_token=access_token)

    @classmethod
    def guest(cls, guest_id: str) -> "Owner":
        return cls(kind=OwnerKind.GUEST, id=guest_id)

    @property
    def is_guest(self) -> bool:
        return self.kind == OwnerKind.GUEST

    @property
    def owner_column(self) -> str:
        """Column on ``cart_items`` holding this owner's id."""
        return "guest_id" if self.is_guest else "user_id"
