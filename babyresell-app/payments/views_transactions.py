"""
Transaction history endpoints for buyers, sellers and admins
"""
import logging

from django.core.paginator import EmptyPage, Paginator
from django.db.models import Count, Q, Sum
from django.db.models.functions import ExtractMonth
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from accounts.decorators import admin_required, api_login_required
from .decorators import json_errors
from .escrow_service import EscrowService
from .exceptions import PermissionDeniedError
from .models import Transaction
from .views import _json_body

logger = logging.getLogger(__name__)


def _positive_int(value, default):
    try:
        value = int(value)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


@require_GET
@api_login_required
def transaction_list(request):
    """
    The user's transactions, newest first.

    Query params: status, role (buyer|seller), page, limit
    """
    user = request.user
    role = request.GET.get('role')
    if role == 'buyer':
        query = Q(buyer=user)
    elif role == 'seller':
        query = Q(seller=user)
    else:
        query = Q(buyer=user) | Q(seller=user)

    transactions = Transaction.objects.filter(query).select_related('buyer', 'seller', 'item')
    status = request.GET.get('status')
    if status:
        transactions = transactions.filter(status=status)

    page_number = _positive_int(request.GET.get('page'), 1)
    limit = min(_positive_int(request.GET.get('limit'), 20), 100)
    paginator = Paginator(transactions.order_by('-created_at'), limit)
    try:
        page = paginator.page(page_number)
        results = [transaction.to_dict() for transaction in page.object_list]
    except EmptyPage:
        results = []

    return JsonResponse({
        'success': True,
        'count': len(results),
        'pagination': {
            'total': paginator.count,
            'page': page_number,
            'pages': paginator.num_pages if paginator.count else 0,
        },
        'data': results,
    })


@require_http_methods(["GET", "PUT"])
@api_login_required
@json_errors
def transaction_detail(request, transaction_id):
    transaction = EscrowService.get_transaction(transaction_id)

    if request.method == 'PUT':
        data = _json_body(request)
        EscrowService.update_transaction(
            transaction, request.user,
            status=data.get('status'),
            tracking_number=data.get('trackingNumber'),
            notes=data.get('notes'),
        )
    elif not (transaction.is_party(request.user) or request.user.is_staff):
        raise PermissionDeniedError('Not authorized to access this transaction')

    return JsonResponse({'success': True, 'data': transaction.to_dict()})


@require_POST
@api_login_required
@json_errors
def rate_transaction(request, transaction_id):
    data = _json_body(request)
    transaction = EscrowService.get_transaction(transaction_id)
    EscrowService.rate_transaction(transaction, request.user, data.get('rating'), data.get('comment') or '')
    return JsonResponse({'success': True, 'message': 'Thanks for your rating', 'data': transaction.to_dict()})


@require_GET
@admin_required
def transaction_stats(request):
    """Sales totals, monthly sales of the current year and counts per status"""
    completed = Transaction.objects.filter(status=Transaction.COMPLETED)

    sales = completed.aggregate(totalSales=Sum('amount'), totalFees=Sum('platform_fee'), count=Count('id'))

    year = timezone.localtime().year
    monthly = (
        completed.filter(created_at__year=year)
        .annotate(month=ExtractMonth('created_at'))
        .values('month')
        .annotate(totalSales=Sum('amount'), totalFees=Sum('platform_fee'), count=Count('id'))
        .order_by('month')
    )
    by_status = Transaction.objects.values('status').annotate(count=Count('id')).order_by('status')

    return JsonResponse({
        'success': True,
        'data': {
            'sales': {
                'totalSales': float(sales['totalSales'] or 0),
                'totalFees': float(sales['totalFees'] or 0),
                'count': sales['count'],
            },
            'monthly': [
                {
                    'month': row['month'],
                    'totalSales': float(row['totalSales'] or 0),
                    'totalFees': float(row['totalFees'] or 0),
                    'count': row['count'],
                }
                for row in monthly
            ],
            'status': [{'status': row['status'], 'count': row['count']} for row in by_status],
        },
    })
