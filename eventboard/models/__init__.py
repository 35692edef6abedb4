from eventboard.models.base import Base
from eventboard.models.event import Event
from eventboard.models.role import Role
from eventboard.models.user import User

__all__ = ["Base", "Role", "User", "Event"]
