from __future__ import annotations

from fastapi import HTTPException, Request

from precalc.models import Role
from precalc.services.session_service import validate_session_token


def _resolve_token(request: Request) -> str | None:
    token = request.cookies.get('auth_session')
    if token:
        return token
    authorization = request.headers.get('authorization', '')
    if authorization.lower().startswith('bearer '):
        return authorization[7:].strip()
    return None


def require_auth_user(request: Request) -> dict:
    session = validate_session_token(_resolve_token(request))
    if not session:
        raise HTTPException(status_code=401, detail='Unauthorized')
    return {
        'user_id': str(session.get('user_id') or ''),
        'role': str(session.get('role') or '').strip().lower(),
    }


def is_effective_user(user: dict, student_id: str) -> bool:
    return bool(student_id) and user.get('user_id') == student_id


def assert_student_scope(user: dict, student_id: str) -> None:
    if user.get('role') == Role.ADMIN.value:
        return
    if not is_effective_user(user, student_id):
        raise HTTPException(status_code=403, detail='Forbidden')
