"""Request identity resolution.

Callers identify themselves one of three ways:

- ``Authorization: Bearer <session token>``: a signed-in GitHub user. Their
  submissions are recorded with source ``oauth`` and marked verified.
- ``X-GitHub-User: <name>``: the CLI. Submissions are recorded with source
  ``cli`` and stay unverified until claimed.
- ``X-Admin-Key: <key>``: admin endpoints only.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from jose import JWTError

from ..config import Settings, get_settings
from ..services.submissions import Submitter
from .tokens import TOKEN_TYPE, decode_token

logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"


@dataclass
class SessionIdentity:
    github_username: str
    name: Optional[str] = None
    avatar: Optional[str] = None


def _authenticate_session(token: str) -> Optional[SessionIdentity]:
    """Return the identity in a session token, or None if it is not valid."""
    try:
        payload = decode_token(token)
    except JWTError:
        return None

    if payload.get("type") != TOKEN_TYPE:
        return None
    github_username = payload.get("sub")
    if not github_username:
        return None

    return SessionIdentity(
        github_username=github_username,
        name=payload.get("name"),
        avatar=payload.get("avatar"),
    )


def get_session(request: Request) -> Optional[SessionIdentity]:
    """Session identity from the Authorization header, if one is sent.

    Raises 401 when a bearer token is present but invalid.
    """
    auth_header = request.headers.get("authorization", "")
    if not auth_header:
        return None
    if not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header")

    identity = _authenticate_session(auth_header[7:])
    if identity is None:
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    return identity


def require_session(
    identity: Optional[SessionIdentity] = Depends(get_session),
) -> SessionIdentity:
    if identity is None:
        raise HTTPException(status_code=401, detail="Sign in with GitHub to continue")
    return identity


def get_submitter(
    identity: Optional[SessionIdentity] = Depends(get_session),
    x_github_user: Optional[str] = Header(default=None),
) -> Submitter:
    """Resolve who is submitting: a signed-in user or the CLI."""
    if identity is not None:
        return Submitter(
            username=identity.github_username,
            source="oauth",
            verified=True,
            github_username=identity.github_username,
            github_name=identity.name,
            github_avatar=identity.avatar,
        )

    username = (x_github_user or "").strip() or ANONYMOUS
    return Submitter(
        username=username,
        source="cli",
        verified=False,
        github_username=username,
    )


def require_admin(
    x_admin_key: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Guard for admin endpoints using the configured shared key."""
    if not settings.admin_api_key:
        raise HTTPException(status_code=503, detail="Admin API is not configured")
    if not x_admin_key or not secrets.compare_digest(x_admin_key, settings.admin_api_key):
        logger.warning("Rejected admin request with invalid key")
        raise HTTPException(status_code=401, detail="Invalid admin key")
