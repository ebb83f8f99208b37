"""
Admin endpoints for the platform settings
"""
import json
import logging

from django.conf import settings as django_settings
from django.core.mail import send_mail
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods, require_POST

from accounts.decorators import admin_required
from .models import SiteSetting

logger = logging.getLogger(__name__)


def _json_body(request):
    """Decoded JSON object body; ValueError for anything else"""
    if not request.body:
        return {}
    data = json.loads(request.body)
    if not isinstance(data, dict):
        raise ValueError("Body must be an object")
    return data


@require_http_methods(["GET", "PUT"])
@admin_required
def site_settings(request):
    """
    GET returns every section merged over its defaults.
    PUT deep-merges the provided sections into the stored ones.
    """
    site_setting = SiteSetting.get_settings()

    if request.method == 'PUT':
        try:
            payload = _json_body(request)
        except ValueError:
            return JsonResponse({'success': False, 'error': 'Settings must be a JSON object'}, status=400)

        site_setting.update_sections(payload, user=request.user)
        logger.info(f"Settings updated by {request.user.username}: {', '.join(payload) or 'nothing'}")

    return JsonResponse({'success': True, 'data': site_setting.as_dict()})


@require_POST
@admin_required
def send_test_email(request):
    """Send a test message through the configured mail backend"""
    try:
        payload = _json_body(request)
    except ValueError:
        return JsonResponse({'success': False, 'error': 'Body must be a JSON object'}, status=400)

    email = payload.get('email') or request.user.email
    if not email:
        return JsonResponse({'success': False, 'error': 'Please provide an email address'}, status=400)

    site_name = SiteSetting.get_settings().section('general')['siteName']
    try:
        send_mail(
            subject=f"{site_name} test email",
            message=f"This is a test email from {site_name}. Your email configuration works.",
            from_email=django_settings.DEFAULT_FROM_EMAIL,
            recipient_list=[email],
        )
    except Exception as e:
        logger.exception(f"Test email to {email} failed: {e}")
        return JsonResponse({'success': False, 'error': 'Failed to send test email'}, status=500)

    return JsonResponse({'success': True, 'message': f"Test email sent to {email}"})
