"""
Identity Service — resolves the optional bearer token to an owner id.

Authentication itself belongs to an external auth provider; this module
only asks it who the token belongs to. Any failure means "anonymous":
the audit still runs, it just is not stored.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

import requests

from carbo_audit.config import Settings, get_settings
from carbo_audit.utils.hashing import short_digest

logger = logging.getLogger(__name__)

_BEARER_PREFIX_RE = re.compile(r"^\s*bearer(?:\s+|$)", re.IGNORECASE)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    value = _BEARER_PREFIX_RE.sub("", authorization, count=1).strip()
    return value or None


class IdentityService:

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def resolve(self, authorization: Optional[str]) -> Optional[str]:
        token = bearer_token(authorization)
        if token is None:
            return None

        if self.settings.mock_mode:
            # No auth provider offline: the token itself is the identity
            return f"user-{short_digest(token)}"

        return self._lookup_user(token)

    def _lookup_user(self, token: str) -> Optional[str]:
        url = self.settings.auth_user_url
        if not url:
            logger.warning("[AUTH] AUTH_USER_URL not configured — treating caller as anonymous")
            return None

        headers = {"Authorization": f"Bearer {token}"}
        if self.settings.auth_api_key:
            headers["apikey"] = self.settings.auth_api_key

        try:
            response = requests.get(url, headers=headers, timeout=self.settings.auth_timeout_seconds)
        except requests.RequestException as exc:
            logger.warning(f"[AUTH] Identity lookup failed: {exc}")
            return None

        if response.status_code != 200:
            logger.warning(f"[AUTH] Identity lookup returned {response.status_code} — anonymous")
            return None

        try:
            user_id = response.json().get("id")
        except (ValueError, AttributeError):
            logger.warning("[AUTH] Identity lookup returned invalid JSON — anonymous")
            return None
        return str(user_id) if user_id else None
