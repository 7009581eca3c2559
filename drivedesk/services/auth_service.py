from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import threading
from datetime import timedelta

import httpx

from drivedesk.config import settings
from drivedesk.core.time_provider import TimeProvider, default_time_provider


_REVOKED_TOKENS: dict[str, int] = {}
_TOKENS_LOCK = threading.RLock()
logger = logging.getLogger(__name__)

MSG_BAD_CREDENTIALS = 'Incorrect email or password.'
MSG_INVALID_EMAIL = 'Invalid email format.'
MSG_METHOD_DISABLED = 'Email/password sign-in is not enabled for this project.'

_ERROR_MESSAGES = {
    'EMAIL_NOT_FOUND': MSG_BAD_CREDENTIALS,
    'INVALID_PASSWORD': MSG_BAD_CREDENTIALS,
    'INVALID_LOGIN_CREDENTIALS': MSG_BAD_CREDENTIALS,
    'USER_NOT_FOUND': MSG_BAD_CREDENTIALS,
    'INVALID_EMAIL': MSG_INVALID_EMAIL,
    'OPERATION_NOT_ALLOWED': MSG_METHOD_DISABLED,
    'PASSWORD_LOGIN_DISABLED': MSG_METHOD_DISABLED,
}


class AuthError(ValueError):
    """Sign-in rejected; ``str(exc)`` is safe to show to the user."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(auth_error_message(code))


def auth_error_message(code: str) -> str:
    # Identity service codes may carry a suffix: "INVALID_PASSWORD : details".
    normalized = (code or '').split(':', 1)[0].strip().upper()
    message = _ERROR_MESSAGES.get(normalized)
    if message:
        return message
    return f'Unexpected error: {normalized}'.strip()


def _mask_email(email: str) -> str:
    local, _, domain = (email or '').partition('@')
    if not domain:
        return '***'
    return f'{local[:1]}***@{domain}'


class IdentityClient:
    """Email/password sign-in against the hosted identity REST service."""

    def __init__(
        self,
        *,
        api_base: str | None = None,
        api_key: str | None = None,
        http_client: httpx.Client | None = None,
        timeout: float | None = None,
    ) -> None:
        self._api_base = (api_base or settings.identity_api_base).rstrip('/')
        self._api_key = api_key if api_key is not None else settings.identity_api_key
        self._client = http_client
        self._timeout = timeout if timeout is not None else settings.identity_timeout_seconds

    def _post(self, url: str, payload: dict) -> httpx.Response:
        if self._client is not None:
            return self._client.post(url, params={'key': self._api_key}, json=payload, timeout=self._timeout)
        return httpx.post(url, params={'key': self._api_key}, json=payload, timeout=self._timeout)

    def sign_in(self, email: str, password: str) -> dict:
        if not self._api_key:
            raise AuthError('CONFIGURATION_NOT_FOUND')
        url = f'{self._api_base}/accounts:signInWithPassword'
        try:
            response = self._post(url, {'email': email, 'password': password, 'returnSecureToken': True})
        except httpx.HTTPError as exc:
            logger.warning('identity_request_failed email=%s error=%s', _mask_email(email), exc.__class__.__name__)
            raise AuthError('NETWORK_REQUEST_FAILED') from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.status_code >= 400:
            code = str(((body or {}).get('error') or {}).get('message') or f'HTTP_{response.status_code}')
            logger.info('identity_sign_in_rejected email=%s code=%s', _mask_email(email), code)
            raise AuthError(code)
        user_id = str(body.get('localId') or '')
        if not user_id:
            raise AuthError('INVALID_RESPONSE')
        return {'user_id': user_id, 'email': str(body.get('email') or email)}


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b'=').decode('ascii')


def _b64url_decode(value: str) -> bytes:
    padding = '=' * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


def _sign(signing_input: bytes) -> bytes:
    return hmac.new(settings.auth_secret.encode('utf-8'), signing_input, hashlib.sha256).digest()


def _encode_jwt(payload: dict) -> str:
    header = {'alg': 'HS256', 'typ': 'JWT'}
    header_part = _b64url_encode(json.dumps(header, separators=(',', ':')).encode('utf-8'))
    payload_part = _b64url_encode(json.dumps(payload, separators=(',', ':')).encode('utf-8'))
    signature_part = _b64url_encode(_sign(f'{header_part}.{payload_part}'.encode('ascii')))
    return f'{header_part}.{payload_part}.{signature_part}'


def _decode_jwt(token: str) -> dict | None:
    try:
        header_part, payload_part, signature_part = token.split('.')
        provided_signature = _b64url_decode(signature_part)
    except ValueError:
        return None
    expected_signature = _sign(f'{header_part}.{payload_part}'.encode('ascii'))
    if not hmac.compare_digest(provided_signature, expected_signature):
        return None
    try:
        payload = json.loads(_b64url_decode(payload_part).decode('utf-8'))
    except (ValueError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def issue_session_token(
    user_id: str,
    email: str,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    now = time_provider.now()
    expires_at = now + timedelta(hours=settings.auth_session_expiry_hours)
    token = _encode_jwt(
        {
            'sub': user_id,
            'email': email,
            'iat': int(now.timestamp()),
            'exp': int(expires_at.timestamp()),
        }
    )
    return {'token': token, 'user_id': user_id, 'email': email, 'expires_at': expires_at.isoformat()}


def login(
    email: str,
    password: str,
    *,
    identity: IdentityClient | None = None,
    time_provider: TimeProvider = default_time_provider,
) -> dict:
    client = identity or IdentityClient()
    account = client.sign_in((email or '').strip(), password or '')
    logger.info('auth_login_succeeded email=%s', _mask_email(account['email']))
    return issue_session_token(account['user_id'], account['email'], time_provider=time_provider)


def _prune_revoked(now_ts: int) -> None:
    # Expired tokens fail validation on their own; their revocation entries can go.
    for token in [token for token, expires in _REVOKED_TOKENS.items() if expires <= now_ts]:
        del _REVOKED_TOKENS[token]


def validate_session_token(token: str | None, *, time_provider: TimeProvider = default_time_provider) -> dict | None:
    if not token:
        return None
    now_ts = int(time_provider.now().timestamp())
    with _TOKENS_LOCK:
        _prune_revoked(now_ts)
        if token in _REVOKED_TOKENS:
            return None

    payload = _decode_jwt(token)
    if not payload:
        return None
    user_id = payload.get('sub')
    if not user_id:
        return None
    expires = int(payload.get('exp') or 0)
    if expires <= now_ts:
        return None
    return {'user_id': str(user_id), 'email': str(payload.get('email') or '')}


def clear_session_token(token: str | None) -> None:
    if not token:
        return
    payload = _decode_jwt(token) or {}
    with _TOKENS_LOCK:
        _REVOKED_TOKENS[token] = int(payload.get('exp') or 0)
