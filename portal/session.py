"""
Caller identity: signed session value (no server-side store). Never raises.
Carries user id and email; the email decides admin access, the id decides resource ownership.
"""
import base64
import hashlib
import hmac
import json
import os
import time
from typing import NamedTuple, Optional

# 24h
SESSION_TTL_SECONDS = 24 * 3600


class SessionUser(NamedTuple):
    id: str
    email: str


def _secret() -> bytes:
    s = os.environ.get("PORTAL_SESSION_SECRET", "portal-dev-secret-change-me").strip()
    return (s or "portal-dev-secret-change-me").encode("utf-8")


def _sign(payload: str) -> str:
    return hmac.new(_secret(), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def create_session_value(user_id: str, email: str = "") -> str:
    """Produce cookie value: base64(json{id,email,exp}.signature)."""
    expiry = int(time.time()) + SESSION_TTL_SECONDS
    payload = json.dumps({"id": user_id, "email": email, "exp": expiry}, separators=(",", ":"), sort_keys=True)
    raw = f"{payload}.{_sign(payload)}"
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")


def verify_session_value(value: str) -> Optional[SessionUser]:
    """Return the session user if value is valid and not expired, else None."""
    if not value or not value.strip():
        return None
    try:
        pad = 4 - len(value) % 4
        if pad != 4:
            value += "=" * pad
        raw = base64.urlsafe_b64decode(value.encode("ascii")).decode("utf-8")
        payload, sep, sig = raw.rpartition(".")
        if not sep or not payload:
            return None
        if not hmac.compare_digest(_sign(payload), sig):
            return None
        data = json.loads(payload)
        if int(data.get("exp", 0)) < int(time.time()):
            return None
        user_id = str(data.get("id") or "")
        if not user_id:
            return None
        return SessionUser(id=user_id, email=str(data.get("email") or ""))
    except Exception:
        return None
