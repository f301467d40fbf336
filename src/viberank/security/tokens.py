"""Session token creation and validation.

Session tokens are issued after a GitHub sign-in and carry the user's GitHub
identity. They are signed with the application SECRET_KEY using HS256 via
python-jose.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt

from ..config import get_settings

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
TOKEN_TYPE = "session"


def create_session_token(
    github_username: str,
    name: Optional[str] = None,
    avatar: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed session token.

    Args:
        github_username: GitHub login, used as the ``sub`` claim.
        name: Display name from the GitHub profile.
        avatar: Avatar URL from the GitHub profile.
        expires_delta: Custom expiry. Falls back to ``session_token_expire_minutes``.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.session_token_expire_minutes)

    payload: Dict[str, Any] = {
        "sub": github_username,
        "name": name,
        "avatar": avatar,
        "type": TOKEN_TYPE,
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a session token.

    Raises:
        JWTError: On invalid signature, expired token, or malformed JWT.
    """
    settings = get_settings()
    return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
