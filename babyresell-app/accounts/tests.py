from datetime import timedelta
from unittest.mock import patch

import jwt
from django.contrib.auth.models import AnonymousUser, User
from django.http import JsonResponse
from django.test import RequestFactory, TestCase, override_settings
from django.utils import timezone

from .decorators import admin_required, api_login_required
from .middleware import BearerTokenMiddleware
from .models import Profile
from .tokens import decode_token, issue_token


@override_settings(JWT_SECRET='test-secret')
class TokenTests(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='parent', password='testpass123')

    def test_issue_and_decode(self):
        token = issue_token(self.user)
        self.assertEqual(decode_token(token), self.user.pk)

    def test_expired_token(self):
        with patch('accounts.tokens.timezone.now', return_value=timezone.now() - timedelta(days=60)):
            token = issue_token(self.user)
        with self.assertRaises(jwt.ExpiredSignatureError):
            decode_token(token)

    def test_wrong_secret(self):
        token = jwt.encode({'id': self.user.pk}, 'another-secret', algorithm='HS256')
        with self.assertRaises(jwt.InvalidTokenError):
            decode_token(token)

    def test_token_without_user_id(self):
        token = jwt.encode({'sub': 'nobody'}, 'test-secret', algorithm='HS256')
        with self.assertRaises(jwt.InvalidTokenError):
            decode_token(token)


class BearerTokenMiddlewareTests(TestCase):

    def setUp(self):
        self.factory = RequestFactory()
        self.user = User.objects.create_user(username='parent', password='testpass123')
        self.middleware = BearerTokenMiddleware(lambda request: request)

    def _request(self, header=None):
        extra = {'HTTP_AUTHORIZATION': header} if header else {}
        request = self.factory.get('/api/test', **extra)
        request.user = AnonymousUser()
        return request

    def test_valid_token_sets_user(self):
        request = self.middleware(self._request(f"Bearer {issue_token(self.user)}"))
        self.assertEqual(request.user, self.user)

    def test_garbage_token_is_ignored(self):
        request = self.middleware(self._request('Bearer not-a-token'))
        self.assertFalse(request.user.is_authenticated)

    def test_inactive_user_is_ignored(self):
        token = issue_token(self.user)
        self.user.is_active = False
        self.user.save()
        request = self.middleware(self._request(f"Bearer {token}"))
        self.assertFalse(request.user.is_authenticated)

    def test_no_header(self):
        request = self.middleware(self._request())
        self.assertFalse(request.user.is_authenticated)


class DecoratorTests(TestCase):

    def setUp(self):
        self.factory = RequestFactory()

        def view(request):
            return JsonResponse({'success': True})

        self.login_view = api_login_required(view)
        self.admin_view = admin_required(view)

    def _request(self, user):
        request = self.factory.get('/')
        request.user = user
        return request

    def test_anonymous(self):
        self.assertEqual(self.login_view(self._request(AnonymousUser())).status_code, 401)
        self.assertEqual(self.admin_view(self._request(AnonymousUser())).status_code, 401)

    def test_regular_user(self):
        user = User.objects.create_user(username='parent')
        self.assertEqual(self.login_view(self._request(user)).status_code, 200)
        self.assertEqual(self.admin_view(self._request(user)).status_code, 403)

    def test_staff_user(self):
        admin = User.objects.create_user(username='admin', is_staff=True)
        self.assertEqual(self.admin_view(self._request(admin)).status_code, 200)


class ProfileSignalTests(TestCase):

    def test_profile_created_with_user(self):
        user = User.objects.create_user(username='parent')
        self.assertTrue(Profile.objects.filter(user=user).exists())
        self.assertFalse(user.profile.is_premium_seller)

    def test_active_subscription_is_premium(self):
        user = User.objects.create_user(username='parent')
        user.profile.subscription_status = Profile.ACTIVE
        self.assertTrue(user.profile.is_premium_seller)
