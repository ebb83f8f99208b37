import logging

import jwt
from django.contrib.auth.models import User

from .tokens import decode_token

logger = logging.getLogger(__name__)


class BearerTokenMiddleware:
    """
    Authenticate API requests carrying `Authorization: Bearer <token>`.

    Requests authenticated this way are not subject to CSRF checks since no
    cookie is involved.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        header = request.headers.get('Authorization', '')
        if header.startswith('Bearer '):
            token = header[len('Bearer '):].strip()
            try:
                user_id = decode_token(token)
                request.user = User.objects.get(pk=user_id, is_active=True)
                request._dont_enforce_csrf_checks = True
            except jwt.InvalidTokenError as e:
                logger.info(f"Rejected bearer token: {e}")
            except User.DoesNotExist:
                logger.info("Bearer token for unknown or inactive user")
        return self.get_response(request)
