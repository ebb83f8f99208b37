"""
Bearer tokens for the API (HS256 JWT carrying the user id)
"""
from datetime import timedelta

import jwt
from django.conf import settings
from django.utils import timezone


def issue_token(user):
    """Sign a token for the given user"""
    now = timezone.now()
    payload = {
        'id': user.pk,
        'iat': int(now.timestamp()),
        'exp': int((now + timedelta(days=getattr(settings, 'JWT_EXPIRE_DAYS', 30))).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm='HS256')


def decode_token(token):
    """
    Return the user id carried by the token.

    Raises jwt.InvalidTokenError (or a subclass such as ExpiredSignatureError)
    when the token cannot be trusted.
    """
    payload = jwt.decode(token, settings.JWT_SECRET, algorithms=['HS256'])
    user_id = payload.get('id')
    if user_id is None:
        raise jwt.InvalidTokenError("Token carries no user id")
    return user_id
