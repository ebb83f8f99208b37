"""
Escrow service for marketplace payments

Funds are authorized on the buyer's card when the purchase is made and only
captured once the buyer confirms delivery, an admin resolves a dispute in the
seller's favour, or the hourly sweep finds a delivered order whose grace
period has run out.
"""
import logging
from datetime import timedelta
from decimal import Decimal
from typing import Dict, Optional

from django.conf import settings
from django.contrib.auth.models import User
from django.db import transaction as db_transaction
from django.db.models import Count, Sum
from django.utils import timezone

from accounts.models import BabyItem, Profile
from . import notifications
from .exceptions import InvalidStateError, NotFoundError, PaymentProviderError, PermissionDeniedError
from .fees import calculate_fees, to_cents
from .models import Transaction
from .services.stripe_gateway import stripe_gateway

logger = logging.getLogger(__name__)

REQUIRED_ADDRESS_FIELDS = ('name', 'line1', 'city', 'state', 'postalCode')


def auto_release_grace():
    return timedelta(hours=getattr(settings, 'ESCROW_AUTO_RELEASE_HOURS', 72))


def _profile(user: User) -> Optional[Profile]:
    try:
        return user.profile
    except Profile.DoesNotExist:
        return None


def is_premium_seller(user: User) -> bool:
    profile = _profile(user)
    return bool(profile and profile.is_premium_seller)


class EscrowService:
    """Payment lifecycle of a Transaction"""

    @staticmethod
    def get_transaction(transaction_id) -> Transaction:
        try:
            return Transaction.objects.select_related('buyer', 'seller', 'item').get(pk=transaction_id)
        except (Transaction.DoesNotExist, ValueError):
            raise NotFoundError('Transaction not found')

    @staticmethod
    def get_item(item_id) -> BabyItem:
        try:
            return BabyItem.objects.select_related('seller').get(pk=item_id)
        except (BabyItem.DoesNotExist, ValueError, TypeError):
            raise NotFoundError('Item not found')

    @staticmethod
    def create_payment_intent(item_id, buyer: User) -> Dict:
        """
        Authorize the item price plus shipping on the buyer's card (manual capture).

        Returns the client secret the front end needs to confirm the card,
        plus the fee breakdown shown at checkout.
        """
        item = EscrowService.get_item(item_id)

        if item.seller_id == buyer.pk:
            raise InvalidStateError('You cannot buy your own item')
        if not item.is_available():
            raise InvalidStateError('Item is no longer available')

        premium = is_premium_seller(item.seller)
        fees = calculate_fees(item.price, premium)
        shipping_cost = item.get_shipping_cost()
        total = item.price + shipping_cost
        amount = to_cents(total)

        success, response = stripe_gateway.create_payment_intent(
            amount=amount,
            currency=item.currency.lower(),
            metadata={
                'itemId': str(item.pk),
                'buyerId': str(buyer.pk),
                'sellerId': str(item.seller_id),
                'platformFee': str(to_cents(fees['platform_fee'])),
                'netRevenue': str(to_cents(fees['net_revenue'])),
                'isPremiumSeller': str(premium).lower(),
            },
            description=f"Purchase of {item.title}",
            receipt_email=buyer.email or None,
        )
        if not success:
            logger.error(f"Payment intent creation failed for item {item.pk}: {response.get('error')}")
            raise PaymentProviderError('Payment processing failed')

        logger.info(f"Payment intent {response['id']} created for item {item.pk} by user {buyer.pk}")
        return {
            'clientSecret': response['client_secret'],
            'paymentIntentId': response['id'],
            'amount': amount,
            'breakdown': {
                'itemPrice': float(item.price),
                'platformFee': float(fees['platform_fee']),
                'platformFeePercentage': float(fees['platform_fee_percentage']),
                'shipping': float(shipping_cost),
                'total': float(total),
                'sellerWillReceive': float(fees['seller_payout']),
                'platformRevenue': float(fees['net_revenue']),
                'stripeFee': float(fees['stripe_fee']),
            },
        }

    @staticmethod
    def create_transaction(
        buyer: User,
        item_id,
        payment_intent_id: str,
        payment_method: str,
        shipping_address: Dict,
    ) -> Transaction:
        """Record a purchase whose payment is authorized and held"""
        if not item_id or not payment_intent_id:
            raise InvalidStateError('Please provide an item and a payment intent')

        shipping_address = shipping_address or {}
        missing = [field for field in REQUIRED_ADDRESS_FIELDS if not shipping_address.get(field)]
        if missing:
            raise InvalidStateError(f"Shipping address is missing: {', '.join(missing)}")

        if Transaction.objects.filter(payment_id=payment_intent_id).exists():
            raise InvalidStateError('A transaction already exists for this payment')

        success, intent = stripe_gateway.retrieve_payment_intent(payment_intent_id)
        if not success:
            raise PaymentProviderError('Payment processing failed')
        if intent.get('status') != 'requires_capture':
            raise InvalidStateError('Invalid payment status')

        with db_transaction.atomic():
            try:
                item = BabyItem.objects.select_for_update().filter(pk=item_id).select_related('seller').first()
            except (ValueError, TypeError):
                item = None

            if item is None or not item.is_available() or item.seller_id == buyer.pk:
                # Release the authorization so the buyer is not left with a hold
                stripe_gateway.cancel_payment_intent(payment_intent_id)
                logger.warning(f"Cancelled payment intent {payment_intent_id}: item {item_id} unavailable")
                raise InvalidStateError('Item is no longer available')

            fees = calculate_fees(item.price, is_premium_seller(item.seller))
            transaction = Transaction.objects.create(
                buyer=buyer,
                seller=item.seller,
                item=item,
                amount=item.price,
                currency=item.currency,
                platform_fee=fees['platform_fee'],
                platform_fee_percentage=fees['platform_fee_percentage'],
                seller_payout=fees['seller_payout'],
                stripe_fee=fees['stripe_fee'],
                net_revenue=fees['net_revenue'],
                status=Transaction.PENDING,
                escrow_status=Transaction.ESCROW_HELD,
                payment_method=payment_method or 'card',
                payment_id=payment_intent_id,
                shipping_name=shipping_address['name'],
                shipping_line1=shipping_address['line1'],
                shipping_line2=shipping_address.get('line2') or '',
                shipping_city=shipping_address['city'],
                shipping_state=shipping_address['state'],
                shipping_country=shipping_address.get('country') or 'US',
                shipping_postal_code=shipping_address['postalCode'],
            )

            item.status = BabyItem.PENDING
            item.save(update_fields=['status', 'updated_at'])

        logger.info(f"Transaction {transaction.pk} created: item {item.pk}, buyer {buyer.pk}, "
                    f"amount {transaction.amount}, platform fee {transaction.platform_fee}")
        notifications.notify_purchase(transaction)
        return transaction

    @staticmethod
    def mark_as_shipped(transaction: Transaction, user: User, tracking_number=None, carrier=None) -> Transaction:
        if transaction.seller_id != user.pk:
            raise PermissionDeniedError('Not authorized to update this transaction')
        if transaction.status != Transaction.PENDING:
            raise InvalidStateError('Invalid transaction status')
        if carrier and carrier not in dict(Transaction.CARRIER_CHOICES):
            raise InvalidStateError('Invalid carrier')

        transaction.status = Transaction.SHIPPED
        transaction.tracking_number = tracking_number or transaction.tracking_number
        transaction.carrier = carrier or transaction.carrier
        transaction.shipped_at = timezone.now()
        transaction.save()

        logger.info(f"Transaction {transaction.pk} shipped ({transaction.carrier} {transaction.tracking_number})")
        notifications.notify_shipped(transaction)
        return transaction

    @staticmethod
    def mark_as_delivered(transaction: Transaction, user: User) -> Transaction:
        """Start the grace period after which held funds are released automatically"""
        if transaction.seller_id != user.pk and not user.is_staff:
            raise PermissionDeniedError('Not authorized to update this transaction')
        if transaction.status != Transaction.SHIPPED:
            raise InvalidStateError('Item has not been marked as shipped yet')

        now = timezone.now()
        transaction.status = Transaction.DELIVERED
        transaction.delivered_at = now
        transaction.auto_release_date = now + auto_release_grace()
        transaction.save()

        logger.info(f"Transaction {transaction.pk} delivered, auto release at {transaction.auto_release_date}")
        notifications.notify_delivered(transaction)
        return transaction

    @staticmethod
    def confirm_delivery(transaction: Transaction, user: User) -> Transaction:
        """Buyer confirms receipt: capture the payment and pay the seller"""
        if transaction.buyer_id != user.pk:
            raise PermissionDeniedError('Not authorized to confirm this delivery')
        if transaction.status not in (Transaction.SHIPPED, Transaction.DELIVERED):
            raise InvalidStateError('Item has not been marked as shipped yet')

        EscrowService.release_payment(transaction, Transaction.ESCROW_RELEASED)
        transaction.delivery_confirmed_at = transaction.escrow_release_date
        transaction.save(update_fields=['delivery_confirmed_at', 'updated_at'])
        return transaction

    @staticmethod
    def release_payment(transaction: Transaction, escrow_status: str) -> Transaction:
        """
        Capture the held funds and complete the transaction.

        Raises PaymentProviderError when Stripe refuses the capture; the
        transaction is left untouched in that case.
        """
        if transaction.escrow_status != Transaction.ESCROW_HELD:
            raise InvalidStateError('Payment has already been released')

        success, response = stripe_gateway.capture_payment_intent(transaction.payment_id)
        if not success or response.get('status') != 'succeeded':
            logger.error(f"Capture failed for transaction {transaction.pk}: {response}")
            raise PaymentProviderError('Failed to release payment')

        with db_transaction.atomic():
            transaction.status = Transaction.COMPLETED
            transaction.escrow_status = escrow_status
            transaction.escrow_release_date = timezone.now()
            transaction.rating_enabled = True
            transaction.save()
            BabyItem.objects.filter(pk=transaction.item_id).update(status=BabyItem.SOLD)

        logger.info(f"Payment {escrow_status} for transaction {transaction.pk}")

        seller_profile = _profile(transaction.seller)
        if seller_profile and seller_profile.stripe_account_id:
            EscrowService.create_seller_payout(transaction)
        notifications.notify_payment_released(transaction)
        return transaction

    @staticmethod
    def create_seller_payout(transaction: Transaction) -> bool:
        """Transfer the seller's share to their connected Stripe account"""
        seller_profile = _profile(transaction.seller)
        if not seller_profile or not seller_profile.stripe_account_id:
            logger.warning(f"Seller {transaction.seller_id} has no Stripe account, payout skipped")
            return False

        transaction.payout_status = Transaction.PAYOUT_PROCESSING
        transaction.save(update_fields=['payout_status', 'updated_at'])

        success, response = stripe_gateway.create_transfer(
            amount=to_cents(transaction.seller_payout),
            destination=seller_profile.stripe_account_id,
            currency=transaction.currency.lower(),
            transfer_group=f"ORDER_{transaction.pk}",
            metadata={
                'transactionId': str(transaction.pk),
                'platformFee': str(transaction.platform_fee),
                'netRevenue': str(transaction.net_revenue),
            },
        )

        if success:
            transaction.stripe_transfer_id = response['id']
            transaction.payout_status = Transaction.PAYOUT_COMPLETED
            transaction.payout_error = None
            logger.info(f"Payout {response['id']} of {transaction.seller_payout} for transaction {transaction.pk}")
        else:
            transaction.payout_status = Transaction.PAYOUT_FAILED
            transaction.payout_error = response.get('error')
            logger.error(f"Payout failed for transaction {transaction.pk}: {transaction.payout_error}")
        transaction.save(update_fields=['stripe_transfer_id', 'payout_status', 'payout_error', 'updated_at'])
        return success

    @staticmethod
    def create_dispute(transaction: Transaction, user: User, reason: str, description: str = '') -> Transaction:
        """Freeze the funds until an admin resolves the dispute"""
        if not transaction.is_party(user):
            raise PermissionDeniedError('Not authorized to dispute this transaction')
        if transaction.status not in (Transaction.PENDING, Transaction.SHIPPED, Transaction.DELIVERED):
            raise InvalidStateError('Cannot dispute this transaction')
        if reason not in dict(Transaction.DISPUTE_REASON_CHOICES):
            raise InvalidStateError('Invalid dispute reason')

        transaction.status = Transaction.DISPUTED
        transaction.dispute_active = True
        transaction.dispute_reason = reason
        transaction.dispute_description = description
        transaction.dispute_created_by = user
        transaction.dispute_created_at = timezone.now()
        transaction.save()

        logger.info(f"Dispute opened on transaction {transaction.pk} by user {user.pk}: {reason}")
        notifications.notify_dispute(transaction)
        return transaction

    @staticmethod
    def resolve_dispute(transaction: Transaction, admin: User, resolution: str, action: str) -> Transaction:
        """
        Close a dispute.

        action 'release' pays the seller, action 'refund' returns the money
        to the buyer and puts the item back on sale.
        """
        if not admin.is_staff:
            raise PermissionDeniedError('Not authorized to resolve disputes')
        if transaction.status != Transaction.DISPUTED:
            raise InvalidStateError('Transaction is not disputed')
        if action not in ('release', 'refund'):
            raise InvalidStateError("Action must be 'release' or 'refund'")

        if action == 'release':
            EscrowService.release_payment(transaction, Transaction.ESCROW_RELEASED)
        else:
            EscrowService.refund_transaction(transaction, reason=resolution)

        transaction.dispute_active = False
        transaction.dispute_resolved_at = timezone.now()
        transaction.dispute_resolution = resolution
        transaction.save(update_fields=['dispute_active', 'dispute_resolved_at', 'dispute_resolution', 'updated_at'])

        logger.info(f"Dispute on transaction {transaction.pk} resolved by {admin.username}: {action}")
        return transaction

    @staticmethod
    def _return_funds(transaction: Transaction, reason: Optional[str] = None):
        """Void the authorization, or refund the charge when it was already captured"""
        if transaction.escrow_status == Transaction.ESCROW_HELD:
            success, response = stripe_gateway.cancel_payment_intent(transaction.payment_id)
        else:
            success, response = stripe_gateway.create_refund(transaction.payment_id, reason=reason)
        if not success:
            logger.error(f"Refund failed for transaction {transaction.pk}: {response}")
            raise PaymentProviderError('Refund failed')

    @staticmethod
    def refund_transaction(transaction: Transaction, reason: Optional[str] = None) -> Transaction:
        if not transaction.can_transition_to(Transaction.REFUNDED):
            raise InvalidStateError('Transaction cannot be refunded')

        # Stripe only accepts its own refund reasons
        stripe_reason = reason if reason in ('duplicate', 'fraudulent', 'requested_by_customer') else None
        EscrowService._return_funds(transaction, stripe_reason)

        with db_transaction.atomic():
            transaction.status = Transaction.REFUNDED
            transaction.escrow_status = Transaction.ESCROW_REFUNDED
            transaction.save()
            BabyItem.objects.filter(pk=transaction.item_id).update(status=BabyItem.ACTIVE)

        logger.info(f"Transaction {transaction.pk} refunded")
        notifications.notify_refund(transaction)
        return transaction

    @staticmethod
    def cancel_transaction(transaction: Transaction, user: User) -> Transaction:
        """Admin cancellation of a purchase that has not shipped"""
        if not user.is_staff:
            raise PermissionDeniedError('Only an admin can cancel a transaction')
        if not transaction.can_transition_to(Transaction.CANCELLED):
            raise InvalidStateError('Transaction cannot be cancelled')

        EscrowService._return_funds(transaction)

        with db_transaction.atomic():
            transaction.status = Transaction.CANCELLED
            transaction.escrow_status = Transaction.ESCROW_REFUNDED
            transaction.save()
            BabyItem.objects.filter(pk=transaction.item_id).update(status=BabyItem.ACTIVE)

        logger.info(f"Transaction {transaction.pk} cancelled by {user.username}")
        return transaction

    @staticmethod
    def mark_as_failed(transaction: Transaction) -> Transaction:
        """The card payment failed: drop the purchase and relist the item"""
        if not transaction.can_transition_to(Transaction.FAILED):
            logger.info(f"Transaction {transaction.pk} is {transaction.status}, payment failure ignored")
            return transaction

        with db_transaction.atomic():
            transaction.status = Transaction.FAILED
            transaction.save()
            BabyItem.objects.filter(pk=transaction.item_id).update(status=BabyItem.ACTIVE)

        logger.info(f"Transaction {transaction.pk} marked as failed")
        return transaction

    @staticmethod
    def update_transaction(transaction: Transaction, user: User, status=None, tracking_number=None,
                           notes=None) -> Transaction:
        """
        Generic update used by PUT /api/transactions/<id>/.

        Status changes must follow Transaction.TRANSITIONS and go through the
        operation that moves the money. The seller ships, the buyer completes
        or asks for a refund, an admin may do either and is the only one who
        can cancel.
        """
        is_buyer = transaction.buyer_id == user.pk
        is_seller = transaction.seller_id == user.pk
        is_admin = user.is_staff

        if not (is_buyer or is_seller or is_admin):
            raise PermissionDeniedError('Not authorized to update this transaction')

        if status and status != transaction.status:
            if status not in dict(Transaction.STATUS_CHOICES):
                raise InvalidStateError('Invalid status')
            if not transaction.can_transition_to(status):
                raise InvalidStateError(f"Cannot change status from {transaction.status} to {status}")

            if status == Transaction.SHIPPED:
                if not (is_seller or is_admin):
                    raise PermissionDeniedError('Only the seller can mark as shipped')
                EscrowService.mark_as_shipped(transaction, transaction.seller, tracking_number)
                tracking_number = None
            elif status == Transaction.DELIVERED:
                EscrowService.mark_as_delivered(transaction, user)
            elif status == Transaction.COMPLETED:
                if not (is_buyer or is_admin):
                    raise PermissionDeniedError('Only the buyer can complete or request refund')
                if is_buyer:
                    EscrowService.confirm_delivery(transaction, user)
                else:
                    EscrowService.release_payment(transaction, Transaction.ESCROW_RELEASED)
            elif status == Transaction.REFUNDED:
                if not (is_buyer or is_admin):
                    raise PermissionDeniedError('Only the buyer can complete or request refund')
                EscrowService.refund_transaction(transaction, reason='requested_by_customer')
            elif status == Transaction.CANCELLED:
                EscrowService.cancel_transaction(transaction, user)
            elif status == Transaction.DISPUTED:
                if not (is_buyer or is_seller):
                    raise PermissionDeniedError('Not authorized to dispute this transaction')
                EscrowService.create_dispute(transaction, user, 'other', notes or '')
            elif status == Transaction.FAILED:
                if not is_admin:
                    raise PermissionDeniedError('Only an admin can mark a payment as failed')
                EscrowService.mark_as_failed(transaction)

        if tracking_number:
            if not (is_seller or is_admin):
                raise PermissionDeniedError('Only the seller can set the tracking number')
            transaction.tracking_number = tracking_number
        if notes:
            transaction.notes = notes
        if tracking_number or notes:
            transaction.save(update_fields=['tracking_number', 'notes', 'updated_at'])
        return transaction

    @staticmethod
    def rate_transaction(transaction: Transaction, user: User, rating, comment: str = '') -> Transaction:
        """A party rates the other one once the transaction is completed"""
        if not transaction.is_party(user):
            raise PermissionDeniedError('Not authorized to rate this transaction')
        if transaction.status != Transaction.COMPLETED or not transaction.rating_enabled:
            raise InvalidStateError('Rating is not available for this transaction')
        try:
            rating = int(rating)
        except (TypeError, ValueError):
            raise InvalidStateError('Rating must be a number between 1 and 5')
        if not 1 <= rating <= 5:
            raise InvalidStateError('Rating must be a number between 1 and 5')

        prefix = 'buyer' if transaction.buyer_id == user.pk else 'seller'
        if getattr(transaction, f"{prefix}_rating") is not None:
            raise InvalidStateError('You have already rated this transaction')

        setattr(transaction, f"{prefix}_rating", rating)
        setattr(transaction, f"{prefix}_rating_comment", comment or '')
        setattr(transaction, f"{prefix}_rated_at", timezone.now())
        transaction.save()
        return transaction

    @staticmethod
    def due_for_release(now=None):
        """Delivered transactions still held once the grace period is over"""
        now = now or timezone.now()
        return Transaction.objects.filter(
            status=Transaction.DELIVERED,
            escrow_status=Transaction.ESCROW_HELD,
            delivered_at__lte=now - auto_release_grace(),
        )

    @staticmethod
    def auto_release_payments(now=None) -> Dict[str, int]:
        """
        Release held funds of delivered transactions whose grace period is over.

        Each row is handled on its own: a failure is logged and the sweep
        moves on to the next transaction.

        Rows are not locked against a buyer confirming at the same moment;
        Stripe refuses the second capture of an intent.
        """
        due = EscrowService.due_for_release(now).select_related('buyer', 'seller', 'item')

        released = failed = 0
        for transaction in due:
            try:
                EscrowService.release_payment(transaction, Transaction.ESCROW_AUTO_RELEASED)
                released += 1
            except Exception as e:
                failed += 1
                logger.exception(f"Failed to auto-release payment for transaction {transaction.pk}: {e}")

        if released or failed:
            logger.info(f"Auto-release sweep: {released} released, {failed} failed")
        return {'released': released, 'failed': failed}


def revenue_totals(queryset) -> Dict:
    """Aggregate platform revenue over completed transactions"""
    totals = queryset.aggregate(
        net=Sum('net_revenue'),
        gross=Sum('platform_fee'),
        stripe_fees=Sum('stripe_fee'),
        transactions=Count('id'),
    )
    return {
        'net': float(totals['net'] or Decimal('0')),
        'gross': float(totals['gross'] or Decimal('0')),
        'stripeFees': float(totals['stripe_fees'] or Decimal('0')),
        'transactions': totals['transactions'],
    }
