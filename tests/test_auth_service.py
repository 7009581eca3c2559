import json
import unittest
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import httpx

from drivedesk.core.time_provider import TimeProvider
from drivedesk.services.auth_service import (
    MSG_BAD_CREDENTIALS,
    MSG_INVALID_EMAIL,
    MSG_METHOD_DISABLED,
    _REVOKED_TOKENS,
    AuthError,
    IdentityClient,
    auth_error_message,
    clear_session_token,
    issue_session_token,
    login,
    validate_session_token,
)


class FixedTimeProvider(TimeProvider):
    def __init__(self, frozen_dt: datetime):
        self._frozen_dt = frozen_dt

    def now(self) -> datetime:
        return self._frozen_dt


def identity_with(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return IdentityClient(api_base='https://identity.test/v1', api_key='test-key', http_client=client)


class ErrorMessageTests(unittest.TestCase):
    def test_known_codes(self):
        for code in ('EMAIL_NOT_FOUND', 'INVALID_PASSWORD', 'INVALID_LOGIN_CREDENTIALS'):
            self.assertEqual(auth_error_message(code), MSG_BAD_CREDENTIALS)
        self.assertEqual(auth_error_message('INVALID_EMAIL'), MSG_INVALID_EMAIL)
        self.assertEqual(auth_error_message('OPERATION_NOT_ALLOWED'), MSG_METHOD_DISABLED)

    def test_suffix_and_unknown_codes(self):
        self.assertEqual(auth_error_message('INVALID_PASSWORD : wrong'), MSG_BAD_CREDENTIALS)
        self.assertEqual(auth_error_message('TOO_MANY_ATTEMPTS_TRY_LATER'), 'Unexpected error: TOO_MANY_ATTEMPTS_TRY_LATER')


class IdentityClientTests(unittest.TestCase):
    def test_successful_sign_in(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen['url'] = str(request.url)
            seen['body'] = json.loads(request.content)
            return httpx.Response(200, json={'localId': 'uid-1', 'email': 'admin@school.test'})

        account = identity_with(handler).sign_in('admin@school.test', 'secret')
        self.assertEqual(account, {'user_id': 'uid-1', 'email': 'admin@school.test'})
        self.assertTrue(seen['url'].startswith('https://identity.test/v1/accounts:signInWithPassword'))
        self.assertIn('key=test-key', seen['url'])
        self.assertEqual(seen['body']['password'], 'secret')

    def test_rejection_maps_to_fixed_message(self):
        def handler(request):
            return httpx.Response(400, json={'error': {'code': 400, 'message': 'INVALID_LOGIN_CREDENTIALS'}})

        with self.assertRaises(AuthError) as ctx:
            identity_with(handler).sign_in('admin@school.test', 'wrong')
        self.assertEqual(ctx.exception.code, 'INVALID_LOGIN_CREDENTIALS')
        self.assertEqual(str(ctx.exception), MSG_BAD_CREDENTIALS)

    def test_transport_failure_is_unexpected_error(self):
        def handler(request):
            raise httpx.ConnectError('offline', request=request)

        with self.assertRaises(AuthError) as ctx:
            identity_with(handler).sign_in('admin@school.test', 'secret')
        self.assertEqual(str(ctx.exception), 'Unexpected error: NETWORK_REQUEST_FAILED')

    def test_missing_api_key(self):
        client = IdentityClient(api_key='', http_client=httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200))))
        with self.assertRaises(AuthError) as ctx:
            client.sign_in('admin@school.test', 'secret')
        self.assertEqual(ctx.exception.code, 'CONFIGURATION_NOT_FOUND')


class SessionTokenTests(unittest.TestCase):
    def setUp(self):
        self.clock = FixedTimeProvider(datetime(2024, 3, 1, 10, 0, tzinfo=ZoneInfo('UTC')))

    def test_login_issues_valid_token(self):
        identity = identity_with(lambda request: httpx.Response(200, json={'localId': 'uid-1', 'email': 'a@b.test'}))
        data = login('a@b.test', 'pw', identity=identity, time_provider=self.clock)
        session = validate_session_token(data['token'], time_provider=self.clock)
        self.assertEqual(session, {'user_id': 'uid-1', 'email': 'a@b.test'})

    def test_expired_and_tampered_tokens_rejected(self):
        token = issue_session_token('uid-1', 'a@b.test', time_provider=self.clock)['token']
        later = FixedTimeProvider(self.clock.now() + timedelta(hours=13))
        self.assertIsNone(validate_session_token(token, time_provider=later))
        other = issue_session_token('uid-9', 'a@b.test', time_provider=self.clock)['token']
        forged = token.rsplit('.', 1)[0] + '.' + other.rsplit('.', 1)[1]
        self.assertIsNone(validate_session_token(forged, time_provider=self.clock))
        self.assertIsNone(validate_session_token('not-a-token', time_provider=self.clock))
        self.assertIsNone(validate_session_token(None))

    def test_logout_revokes_token(self):
        token = issue_session_token('uid-2', 'c@d.test', time_provider=self.clock)['token']
        clear_session_token(token)
        self.assertIsNone(validate_session_token(token, time_provider=self.clock))

    def test_expired_revocations_are_pruned(self):
        token = issue_session_token('uid-3', 'e@f.test', time_provider=self.clock)['token']
        clear_session_token(token)
        self.assertIn(token, _REVOKED_TOKENS)
        later = FixedTimeProvider(self.clock.now() + timedelta(hours=13))
        self.assertIsNone(validate_session_token(token, time_provider=later))
        self.assertNotIn(token, _REVOKED_TOKENS)


if __name__ == '__main__':
    unittest.main()
