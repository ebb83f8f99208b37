"""
Theme endpoints. Reads are public, writes are for admins.
"""
import json
import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.http import HttpResponseNotModified, JsonResponse
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from accounts.decorators import admin_required
from .models import Theme
from .services import ThemeService

logger = logging.getLogger(__name__)

# API key -> model field
FIELDS = {
    'name': 'name',
    'displayName': 'display_name',
    'description': 'description',
    'colors': 'colors',
    'backgroundImage': 'background_image',
    'isHoliday': 'is_holiday',
    'isSeasonal': 'is_seasonal',
}
DATE_FIELDS = {
    'startDate': 'start_date',
    'endDate': 'end_date',
}


def _error(message, status):
    return JsonResponse({'success': False, 'error': message}, status=status)


def _json_body(request):
    if not request.body:
        return {}
    data = json.loads(request.body)
    if not isinstance(data, dict):
        raise ValueError("Body must be an object")
    return data


def _not_found(theme_id):
    return _error(f"Theme not found with id of {theme_id}", 404)


def _apply(theme, data):
    """Copy API fields onto the theme; raises ValidationError on bad input"""
    for key, field in FIELDS.items():
        if key in data:
            setattr(theme, field, data[key])
    if isinstance(theme.name, str):
        theme.name = theme.name.strip().lower()
    for key, field in DATE_FIELDS.items():
        if key in data:
            value = data[key]
            try:
                parsed = parse_datetime(value) if isinstance(value, str) and value else None
            except ValueError:
                parsed = None
            if value and parsed is None:
                raise ValidationError({field: [f"Invalid date: {value}"]})
            setattr(theme, field, parsed)


def _save(theme, data, user):
    """Validate and store; `isActive: true` deactivates every other theme first"""
    _apply(theme, data)
    with transaction.atomic():
        if data.get('isActive') is True:
            ThemeService.deactivate_all(exclude=theme)
            theme.is_active = True
            theme.activated_by = user
            theme.activated_at = timezone.now()
        elif data.get('isActive') is False:
            theme.is_active = False
        theme.full_clean()
        theme.save()
    return theme


@require_http_methods(["GET", "POST"])
def theme_list(request):
    if request.method == 'POST':
        return _create_theme(request)

    themes = Theme.objects.all()
    if request.GET.get('active') == 'true':
        themes = themes.filter(is_active=True)
    if request.GET.get('holiday') == 'true':
        themes = themes.filter(is_holiday=True)
    elif request.GET.get('seasonal') == 'true':
        themes = themes.filter(is_seasonal=True)

    data = [theme.to_dict() for theme in themes.order_by('name')]
    return JsonResponse({'success': True, 'count': len(data), 'data': data})


@admin_required
def _create_theme(request):
    try:
        data = _json_body(request)
    except ValueError:
        return _error('Invalid JSON body', 400)

    theme = Theme(created_by=request.user)
    try:
        _save(theme, data, request.user)
    except ValidationError as e:
        return JsonResponse({'success': False, 'error': 'Invalid theme', 'details': e.message_dict}, status=400)

    logger.info(f"Theme {theme.name} created by {request.user.username}")
    return JsonResponse({'success': True, 'data': theme.to_dict()}, status=201)


@require_GET
def active_theme(request):
    """
    The theme every client should render. Pass the last seen `version` as
    `?since=` to get a 304 while nothing changed.
    """
    theme = Theme.objects.filter(is_active=True).first()
    if theme is None:
        return _error('No active theme found', 404)

    if request.GET.get('since') == theme.version:
        return HttpResponseNotModified()
    return JsonResponse({'success': True, 'data': theme.to_dict()})


@require_http_methods(["GET", "PUT", "DELETE"])
def theme_detail(request, theme_id):
    if request.method == 'PUT':
        return _update_theme(request, theme_id)
    if request.method == 'DELETE':
        return _delete_theme(request, theme_id)

    theme = Theme.objects.filter(pk=theme_id).first()
    if theme is None:
        return _not_found(theme_id)
    return JsonResponse({'success': True, 'data': theme.to_dict()})


@admin_required
def _update_theme(request, theme_id):
    theme = Theme.objects.filter(pk=theme_id).first()
    if theme is None:
        return _not_found(theme_id)
    try:
        data = _json_body(request)
    except ValueError:
        return _error('Invalid JSON body', 400)

    try:
        _save(theme, data, request.user)
    except ValidationError as e:
        return JsonResponse({'success': False, 'error': 'Invalid theme', 'details': e.message_dict}, status=400)
    return JsonResponse({'success': True, 'data': theme.to_dict()})


@admin_required
def _delete_theme(request, theme_id):
    theme = Theme.objects.filter(pk=theme_id).first()
    if theme is None:
        return _not_found(theme_id)
    if theme.is_active:
        return _error('Cannot delete the active theme', 400)

    theme.delete()
    logger.info(f"Theme {theme_id} deleted by {request.user.username}")
    return JsonResponse({'success': True, 'data': {}})


@require_POST
@admin_required
def activate_theme(request, theme_id):
    theme = Theme.objects.filter(pk=theme_id).first()
    if theme is None:
        return _not_found(theme_id)

    ThemeService.activate(theme, request.user)
    return JsonResponse({
        'success': True,
        'message': f'Theme "{theme.display_name or theme.name}" has been activated globally',
        'data': theme.to_dict(),
    })


@require_POST
@admin_required
def activate_by_name(request):
    """Activate a stored theme by name, creating predefined palettes on demand"""
    try:
        data = _json_body(request)
    except ValueError:
        return _error('Invalid JSON body', 400)

    name = data.get('themeName')
    if not name or not isinstance(name, str):
        return _error('Theme name is required', 400)

    try:
        theme = ThemeService.activate_by_name(name, request.user)
    except Theme.DoesNotExist as e:
        return _error(str(e), 404)

    return JsonResponse({
        'success': True,
        'message': f'Theme "{theme.display_name or theme.name}" has been activated globally',
        'data': theme.to_dict(),
    })


@require_POST
@admin_required
def activate_seasonal(request):
    theme = ThemeService.activate_seasonal(request.user)
    return JsonResponse({
        'success': True,
        'message': f'Seasonal theme "{theme.display_name}" has been activated globally',
        'data': theme.to_dict(),
    })
