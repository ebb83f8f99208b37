"""
Stripe webhook handling
"""
import json
import logging

from django.http import HttpResponse, JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from accounts.models import Profile
from .escrow_service import EscrowService
from .models import StripeWebhookLog, Transaction
from .services.stripe_gateway import stripe_gateway

logger = logging.getLogger(__name__)

# Stripe dispute reasons mapped onto ours
DISPUTE_REASONS = {
    'product_not_received': 'not_received',
    'product_unacceptable': 'not_as_described',
}


def _find_transaction(payment_intent_id):
    if not payment_intent_id:
        return None
    return Transaction.objects.select_related('buyer', 'seller', 'item').filter(
        payment_id=payment_intent_id).first()


def handle_payment_succeeded(intent):
    transaction = _find_transaction(intent.get('id'))
    if transaction:
        logger.info(f"Payment confirmed for transaction {transaction.pk}")
    return transaction


def handle_payment_failed(intent):
    transaction = _find_transaction(intent.get('id'))
    if transaction:
        EscrowService.mark_as_failed(transaction)
    return transaction


def handle_dispute_created(dispute):
    transaction = _find_transaction(dispute.get('payment_intent'))
    if transaction is None:
        logger.warning(f"Stripe dispute {dispute.get('id')} matches no transaction")
        return None

    if transaction.can_transition_to(Transaction.DISPUTED):
        transaction.status = Transaction.DISPUTED
    transaction.dispute_active = True
    transaction.dispute_reason = DISPUTE_REASONS.get(dispute.get('reason'), 'other')
    transaction.stripe_dispute_id = dispute.get('id')
    transaction.dispute_created_at = timezone.now()
    transaction.save()

    logger.info(f"Stripe dispute {dispute.get('id')} recorded on transaction {transaction.pk}")
    return transaction


def handle_account_updated(account):
    updated = Profile.objects.filter(stripe_account_id=account.get('id')).update(
        charges_enabled=bool(account.get('charges_enabled')),
        payouts_enabled=bool(account.get('payouts_enabled')),
        details_submitted=bool(account.get('details_submitted')),
    )
    if updated:
        logger.info(f"Stripe account {account.get('id')} updated")
    return None


EVENT_HANDLERS = {
    'payment_intent.succeeded': handle_payment_succeeded,
    'payment_intent.payment_failed': handle_payment_failed,
    'charge.dispute.created': handle_dispute_created,
    'account.updated': handle_account_updated,
}


@csrf_exempt
@require_POST
def stripe_webhook(request):
    """
    Endpoint called by Stripe. The signature is checked against the raw body
    and every call is logged; unknown event types are acknowledged.
    """
    payload = request.body
    signature = request.headers.get('Stripe-Signature', '')

    is_valid, event = stripe_gateway.construct_webhook_event(payload, signature)
    if not is_valid:
        try:
            raw = json.loads(payload)
        except ValueError:
            raw = {}
        StripeWebhookLog.objects.create(
            event_id=raw.get('id') if isinstance(raw, dict) else None,
            event_type=raw.get('type') if isinstance(raw, dict) else None,
            payload=raw if isinstance(raw, dict) else {},
            signature=signature[:500],
            is_valid=False,
            error_message=event.get('error'),
        )
        return HttpResponse(f"Webhook Error: {event.get('error')}", status=400)

    webhook_log = StripeWebhookLog.objects.create(
        event_id=event.get('id'),
        event_type=event['type'],
        payload=event,
        signature=signature[:500],
        is_valid=True,
    )

    handler = EVENT_HANDLERS.get(event['type'])
    if handler is None:
        logger.info(f"Unhandled Stripe event type {event['type']}")
        return JsonResponse({'received': True})

    try:
        data_object = event.get('data', {}).get('object', {})
        webhook_log.transaction = handler(data_object)
        webhook_log.processed = True
    except Exception as e:
        logger.exception(f"Error handling Stripe event {event['type']}: {e}")
        webhook_log.error_message = str(e)
    webhook_log.save()

    return JsonResponse({'received': True})
