from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates

from drivedesk.config import settings
from drivedesk.core.router_guard import SESSION_COOKIE, resolve_token
from drivedesk.schemas import LoginPayload
from drivedesk.services.auth_service import AuthError, clear_session_token, login, validate_session_token
from drivedesk.services.report_service import TEMPLATES_DIR
from drivedesk.route_logging import EndpointNameRoute


templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
router = APIRouter(tags=['Auth'], route_class=EndpointNameRoute)


def _safe_next(next_url: str | None) -> str:
    # Only same-site relative paths.
    if not next_url or not next_url.startswith('/') or next_url.startswith('//'):
        return '/'
    return next_url


@router.get('/ui/login')
def login_page(request: Request, next: str = '/'):
    return templates.TemplateResponse(
        request,
        'login.html',
        {'app_name': settings.app_name, 'next': _safe_next(next)},
    )


@router.post('/auth/login')
def auth_login(payload: LoginPayload):
    try:
        data = login(payload.email, payload.password)
    except AuthError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    response = JSONResponse(
        {
            'ok': True,
            'user': {'user_id': data['user_id'], 'email': data['email']},
            'expires_at': data['expires_at'],
            'next': _safe_next(payload.next),
        }
    )
    response.set_cookie(
        key=SESSION_COOKIE,
        value=data['token'],
        httponly=True,
        samesite='lax',
        secure=False,
        max_age=settings.auth_session_expiry_hours * 3600,
    )
    return response


@router.get('/auth/session')
def auth_session(request: Request):
    return {'user': validate_session_token(resolve_token(request)), 'loading': False}


@router.post('/auth/logout')
def auth_logout(request: Request):
    clear_session_token(resolve_token(request))
    response = JSONResponse({'ok': True})
    response.delete_cookie(SESSION_COOKIE)
    return response
