from __future__ import annotations

from fastapi import HTTPException, Request

from drivedesk.domain.snapshot import SchoolStore
from drivedesk.services.auth_service import validate_session_token
from drivedesk.services.document_store import WriteResult


SESSION_COOKIE = 'auth_session'


def resolve_token(request: Request) -> str | None:
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        return token
    authorization = request.headers.get('authorization', '')
    if authorization.lower().startswith('bearer '):
        return authorization[7:].strip()
    return None


def require_auth_user(request: Request) -> dict:
    session = validate_session_token(resolve_token(request))
    if not session:
        raise HTTPException(status_code=401, detail='Unauthorized')
    return session


def get_school_store(request: Request) -> SchoolStore:
    store = getattr(request.app.state, 'school_store', None)
    if store is None:
        raise HTTPException(status_code=503, detail='Store not ready')
    return store


def ensure_written(result: WriteResult) -> WriteResult:
    """Turn a failed store write into the HTTP error shown by the initiating action."""
    if result.ok:
        return result
    if result.code == 'not_found':
        raise HTTPException(status_code=404, detail=result.error or 'Not found')
    raise HTTPException(status_code=503, detail=result.error or 'Store write failed')
