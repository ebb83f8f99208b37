import logging
from functools import wraps

from django.http import JsonResponse

from .exceptions import PaymentError

logger = logging.getLogger(__name__)


def json_errors(view_func):
    """Answer PaymentError (and anything unexpected) as {'success': False, 'error': ...}"""
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except PaymentError as e:
            return JsonResponse({'success': False, 'error': e.message}, status=e.status_code)
        except Exception as e:
            logger.exception(f"Unexpected error in {view_func.__name__}: {e}")
            return JsonResponse({'success': False, 'error': 'Server Error'}, status=500)
    return _wrapped
