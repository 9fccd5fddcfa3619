from .user import User
from .note import Note

__all__ = ["User", "Note"]
