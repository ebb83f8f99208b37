"""
Payment endpoints: checkout, fulfilment, disputes and revenue
"""
import json
import logging

from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET, require_POST

from accounts.decorators import admin_required, api_login_required
from settings.models import SiteSetting
from .decorators import json_errors
from .escrow_service import EscrowService, is_premium_seller, revenue_totals
from .exceptions import InvalidStateError
from .fees import calculate_fees
from .models import Transaction

logger = logging.getLogger(__name__)


def _json_body(request):
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except ValueError:
        raise InvalidStateError('Invalid JSON body')
    if not isinstance(data, dict):
        raise InvalidStateError('Invalid JSON body')
    return data


@require_POST
@api_login_required
@json_errors
def create_payment_intent(request):
    """Hold the price of an item on the buyer's card"""
    data = _json_body(request)
    item_id = data.get('itemId')
    if not item_id:
        raise InvalidStateError('Please provide an item')

    intent = EscrowService.create_payment_intent(item_id, request.user)
    return JsonResponse({'success': True, **intent})


@require_POST
@api_login_required
@json_errors
def create_transaction(request):
    """Record the purchase once the card authorization succeeded"""
    data = _json_body(request)
    transaction = EscrowService.create_transaction(
        buyer=request.user,
        item_id=data.get('itemId') or data.get('pinId'),
        payment_intent_id=data.get('paymentIntentId'),
        payment_method=data.get('paymentMethod'),
        shipping_address=data.get('shippingAddress'),
    )
    return JsonResponse({'success': True, 'data': transaction.to_dict()}, status=201)


@require_POST
@api_login_required
@json_errors
def confirm_delivery(request, transaction_id):
    transaction = EscrowService.get_transaction(transaction_id)
    EscrowService.confirm_delivery(transaction, request.user)
    return JsonResponse({
        'success': True,
        'message': 'Delivery confirmed and payment released',
        'data': transaction.to_dict(),
    })


@require_POST
@api_login_required
@json_errors
def mark_shipped(request, transaction_id):
    data = _json_body(request)
    transaction = EscrowService.get_transaction(transaction_id)
    EscrowService.mark_as_shipped(
        transaction, request.user,
        tracking_number=data.get('trackingNumber'),
        carrier=data.get('carrier'),
    )
    return JsonResponse({'success': True, 'message': 'Item marked as shipped', 'data': transaction.to_dict()})


@require_POST
@api_login_required
@json_errors
def mark_delivered(request, transaction_id):
    transaction = EscrowService.get_transaction(transaction_id)
    EscrowService.mark_as_delivered(transaction, request.user)
    return JsonResponse({'success': True, 'message': 'Item marked as delivered', 'data': transaction.to_dict()})


@require_POST
@api_login_required
@json_errors
def create_dispute(request, transaction_id):
    data = _json_body(request)
    transaction = EscrowService.get_transaction(transaction_id)
    EscrowService.create_dispute(
        transaction, request.user,
        reason=data.get('reason'),
        description=data.get('description') or '',
    )
    return JsonResponse({'success': True, 'message': 'Dispute created successfully', 'data': transaction.to_dict()})


@require_POST
@admin_required
@json_errors
def resolve_dispute(request, transaction_id):
    data = _json_body(request)
    transaction = EscrowService.get_transaction(transaction_id)
    EscrowService.resolve_dispute(
        transaction, request.user,
        resolution=data.get('resolution') or '',
        action=data.get('action'),
    )
    return JsonResponse({'success': True, 'message': 'Dispute resolved', 'data': transaction.to_dict()})


@require_GET
@api_login_required
def payment_methods(request):
    """Payment methods the checkout can offer"""
    payments = SiteSetting.get_settings().section('payments')
    methods = [{
        'id': 'card',
        'name': 'Credit or debit card',
        'provider': 'stripe',
    }]
    if payments.get('paypalClientId'):
        methods.append({'id': 'paypal', 'name': 'PayPal', 'provider': 'paypal'})
    return JsonResponse({'success': True, 'data': methods})


@require_GET
@json_errors
def calculate_fees_preview(request, item_id):
    """Fee breakdown shown before checkout"""
    item = EscrowService.get_item(item_id)
    premium = is_premium_seller(item.seller)
    fees = calculate_fees(item.price, premium)

    return JsonResponse({
        'success': True,
        'fees': {
            'itemPrice': float(item.price),
            'platformFee': float(fees['platform_fee']),
            'platformFeePercentage': f"{fees['platform_fee_percentage'].normalize():f}%",
            'sellerReceives': float(fees['seller_payout']),
            'buyerPays': float(item.price + item.get_shipping_cost()),
            'platformRevenue': float(fees['net_revenue']),
            'isPremiumSeller': premium,
            'breakdown': {
                'stripeFee': float(fees['stripe_fee']),
                'platformProfit': float(fees['net_revenue']),
            },
        },
    })


@require_GET
@admin_required
def revenue_summary(request):
    """Platform revenue of completed transactions, today and this month"""
    today = timezone.localtime().replace(hour=0, minute=0, second=0, microsecond=0)
    month_start = today.replace(day=1)
    completed = Transaction.objects.filter(status=Transaction.COMPLETED)

    return JsonResponse({
        'success': True,
        'revenue': {
            'today': revenue_totals(completed.filter(created_at__gte=today)),
            'thisMonth': revenue_totals(completed.filter(created_at__gte=month_start)),
        },
    })
