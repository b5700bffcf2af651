from __future__ import annotations

import base64
import hashlib
import hmac
import json
from datetime import timedelta

from precalc.config import settings
from precalc.core.time_provider import TimeProvider, default_time_provider
from precalc.models import Role


TOKEN_VERSION = 'v1'


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode('ascii').rstrip('=')


def _unb64(value: str) -> bytes:
    return base64.urlsafe_b64decode(value.encode('ascii') + b'=' * (-len(value) % 4))


def _signature(body: str) -> bytes:
    return hmac.new(settings.auth_secret.encode('utf-8'), f'{TOKEN_VERSION}.{body}'.encode('ascii'), hashlib.sha256).digest()


def _seal(claims: dict) -> str:
    body = _b64(json.dumps(claims, separators=(',', ':'), sort_keys=True).encode('utf-8'))
    return f'{TOKEN_VERSION}.{body}.{_b64(_signature(body))}'


def _unseal(token: str) -> dict | None:
    """Returns the signed claims, or ``None`` for any malformed or forged token."""
    try:
        version, body, signature = token.split('.')
        if version != TOKEN_VERSION or not hmac.compare_digest(_unb64(signature), _signature(body)):
            return None
        claims = json.loads(_unb64(body).decode('utf-8'))
    except ValueError:
        # binascii, unicode and JSON decoding errors all derive from ValueError.
        return None
    return claims if isinstance(claims, dict) else None


def issue_session_token(
    user_id: str,
    role: str = Role.STUDENT.value,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> str:
    now = time_provider.now()
    expires_at = now + timedelta(hours=settings.auth_session_expiry_hours)
    return _seal(
        {
            'sub': user_id,
            'role': role,
            'iat': int(now.timestamp()),
            'exp': int(expires_at.timestamp()),
        }
    )


def validate_session_token(
    token: str | None,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> dict | None:
    if not token:
        return None
    claims = _unseal(token)
    if not claims:
        return None

    user_id = claims.get('sub')
    role = claims.get('role')
    expires_at = int(claims.get('exp') or 0)
    if not user_id or not role:
        return None
    if expires_at and expires_at < int(time_provider.now().timestamp()):
        return None
    return {'user_id': str(user_id), 'role': role}
