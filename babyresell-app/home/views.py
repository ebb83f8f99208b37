"""
Diagnostic endpoints used by the client and the hosting health checks
"""
import json
import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods, require_POST

logger = logging.getLogger(__name__)


@require_http_methods(["GET"])
def api_root(request):
    return JsonResponse({'message': 'BabyResell API is running'})


@require_http_methods(["GET"])
def health(request):
    return JsonResponse({'status': 'ok'})


@require_http_methods(["GET"])
def api_test(request):
    """Check that the API answers"""
    return JsonResponse({
        'success': True,
        'message': 'API is working correctly',
    })


@csrf_exempt
@require_POST
def api_test_echo(request):
    """Echo back the JSON body"""
    try:
        data = json.loads(request.body) if request.body else {}
    except ValueError:
        logger.warning("Echo endpoint received a non-JSON body")
        return JsonResponse({'success': False, 'error': 'Invalid JSON body'}, status=400)

    return JsonResponse({
        'success': True,
        'message': 'Echo endpoint working',
        'data': data,
    })
