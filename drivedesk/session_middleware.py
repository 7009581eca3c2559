from urllib.parse import quote

from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from drivedesk.core.router_guard import resolve_token
from drivedesk.services.auth_service import validate_session_token


class SessionAuthMiddleware(BaseHTTPMiddleware):
    """Route guard: ``/ui`` pages redirect to the login screen, ``/api`` calls get 401."""

    def __init__(self, app):
        super().__init__(app)
        self._public_prefixes = (
            '/ui/login',
            '/auth/',
            '/health',
        )

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if path.startswith(self._public_prefixes) or path == '/':
            return await call_next(request)
        if not (path.startswith('/ui') or path.startswith('/api')):
            return await call_next(request)

        session = validate_session_token(resolve_token(request))
        if not session:
            if path.startswith('/api'):
                return JSONResponse(status_code=401, content={'detail': 'Unauthorized'})
            next_url = quote(path, safe='/')
            return RedirectResponse(url=f'/ui/login?next={next_url}', status_code=303)

        request.state.auth_user = session
        return await call_next(request)
