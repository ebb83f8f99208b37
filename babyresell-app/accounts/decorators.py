from functools import wraps

from django.http import JsonResponse


def api_login_required(view_func):
    """JSON counterpart of login_required"""
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({'success': False, 'error': 'Not authorized to access this route'}, status=401)
        return view_func(request, *args, **kwargs)
    return _wrapped


def admin_required(view_func):
    """Only staff members may call the view"""
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({'success': False, 'error': 'Not authorized to access this route'}, status=401)
        if not request.user.is_staff:
            return JsonResponse(
                {'success': False, 'error': 'User role is not authorized to access this route'}, status=403)
        return view_func(request, *args, **kwargs)
    return _wrapped
