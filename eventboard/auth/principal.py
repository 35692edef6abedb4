from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from eventboard.auth.permissions import PermissionSet


@dataclass(frozen=True)
class Principal:
    """The resolved identity behind a request. Rebuilt per request, never stored."""

    id: uuid.UUID
    username: str
    email: str
    role_id: int
    role_name: str
    permissions: PermissionSet = field(default_factory=frozenset)
    is_active: bool = True
