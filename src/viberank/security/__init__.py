"""Authentication for submitters, signed-in users and admins."""

from .auth import (
    SessionIdentity,
    get_session,
    get_submitter,
    require_admin,
    require_session,
)
from .tokens import create_session_token, decode_token

__all__ = [
    "SessionIdentity",
    "create_session_token",
    "decode_token",
    "get_session",
    "get_submitter",
    "require_admin",
    "require_session",
]
