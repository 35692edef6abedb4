from eventboard.api.v1.schemas.auth import AuthTokensOut, LoginIn, MeOut
from eventboard.api.v1.schemas.events import (
    EventCreate,
    EventListOut,
    EventOut,
    EventUpdate,
)
from eventboard.api.v1.schemas.users import (
    RoleChangeIn,
    RoleIn,
    RoleOut,
    RoleUpdate,
    UserCreate,
    UserOut,
    UserUpdate,
)

__all__ = [
    "AuthTokensOut",
    "LoginIn",
    "MeOut",
    "EventCreate",
    "EventUpdate",
    "EventOut",
    "EventListOut",
    "UserCreate",
    "UserUpdate",
    "UserOut",
    "RoleChangeIn",
    "RoleIn",
    "RoleUpdate",
    "RoleOut",
]
