"""
Tests for the escrow payment lifecycle
"""
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.core import mail
from django.test import TestCase, override_settings
from django.utils import timezone

from accounts.models import BabyItem
from .escrow_service import EscrowService
from .exceptions import InvalidStateError, NotFoundError, PaymentProviderError, PermissionDeniedError
from .models import Transaction
from .test_utils import ADDRESS, make_item, make_transaction, make_user


@patch('payments.escrow_service.stripe_gateway')
class CreatePaymentIntentTests(TestCase):

    def setUp(self):
        self.seller = make_user('seller')
        self.buyer = make_user('buyer')
        self.item = make_item(self.seller, price='100.00', shipping=True, shipping_cost=Decimal('7.50'))

    def test_intent_holds_price_plus_shipping(self, gateway):
        gateway.create_payment_intent.return_value = (True, {
            'id': 'pi_123', 'client_secret': 'pi_123_secret', 'status': 'requires_payment_method', 'amount': 10750,
        })

        result = EscrowService.create_payment_intent(self.item.pk, self.buyer)

        kwargs = gateway.create_payment_intent.call_args.kwargs
        self.assertEqual(kwargs['amount'], 10750)
        self.assertEqual(kwargs['metadata']['itemId'], str(self.item.pk))
        self.assertEqual(kwargs['metadata']['platformFee'], '800')
        self.assertEqual(result['clientSecret'], 'pi_123_secret')
        self.assertEqual(result['amount'], 10750)
        self.assertEqual(result['breakdown']['platformFee'], 8.0)
        self.assertEqual(result['breakdown']['sellerWillReceive'], 92.0)
        self.assertEqual(result['breakdown']['shipping'], 7.5)

    def test_premium_seller_gets_lower_rate(self, gateway):
        self.seller.profile.subscription_status = 'active'
        self.seller.profile.save()
        gateway.create_payment_intent.return_value = (True, {
            'id': 'pi_1', 'client_secret': 's', 'status': 'requires_payment_method', 'amount': 10750,
        })

        result = EscrowService.create_payment_intent(self.item.pk, self.buyer)

        self.assertEqual(result['breakdown']['platformFee'], 5.0)
        self.assertEqual(result['breakdown']['platformFeePercentage'], 5.0)

    def test_unknown_item(self, gateway):
        with self.assertRaises(NotFoundError):
            EscrowService.create_payment_intent(999999, self.buyer)
        gateway.create_payment_intent.assert_not_called()

    def test_item_not_active(self, gateway):
        self.item.status = BabyItem.SOLD
        self.item.save()
        with self.assertRaisesMessage(InvalidStateError, 'Item is no longer available'):
            EscrowService.create_payment_intent(self.item.pk, self.buyer)

    def test_seller_cannot_buy_own_item(self, gateway):
        with self.assertRaises(InvalidStateError):
            EscrowService.create_payment_intent(self.item.pk, self.seller)

    def test_provider_failure(self, gateway):
        gateway.create_payment_intent.return_value = (False, {'error': 'card_declined'})
        with self.assertRaisesMessage(PaymentProviderError, 'Payment processing failed') as ctx:
            EscrowService.create_payment_intent(self.item.pk, self.buyer)
        self.assertEqual(ctx.exception.status_code, 500)


@patch('payments.escrow_service.stripe_gateway')
class CreateTransactionTests(TestCase):

    def setUp(self):
        self.seller = make_user('seller')
        self.buyer = make_user('buyer')
        self.item = make_item(self.seller, price='100.00')

    def test_records_held_transaction_with_fees(self, gateway):
        gateway.retrieve_payment_intent.return_value = (True, {'id': 'pi_1', 'status': 'requires_capture'})

        transaction = EscrowService.create_transaction(self.buyer, self.item.pk, 'pi_1', 'card', ADDRESS)

        self.assertEqual(transaction.status, Transaction.PENDING)
        self.assertEqual(transaction.escrow_status, Transaction.ESCROW_HELD)
        self.assertEqual(transaction.amount, Decimal('100.00'))
        self.assertEqual(transaction.platform_fee, Decimal('8.00'))
        self.assertEqual(transaction.seller_payout, Decimal('92.00'))
        self.assertEqual(transaction.seller, self.seller)
        self.item.refresh_from_db()
        self.assertEqual(self.item.status, BabyItem.PENDING)

    def test_purchase_emails_sent(self, gateway):
        gateway.retrieve_payment_intent.return_value = (True, {'id': 'pi_1', 'status': 'requires_capture'})
        EscrowService.create_transaction(self.buyer, self.item.pk, 'pi_1', 'card', ADDRESS)
        recipients = sorted(address for message in mail.outbox for address in message.to)
        self.assertEqual(recipients, ['buyer@example.com', 'seller@example.com'])

    def test_rejects_uncaptureable_intent(self, gateway):
        gateway.retrieve_payment_intent.return_value = (True, {'id': 'pi_1', 'status': 'requires_payment_method'})
        with self.assertRaisesMessage(InvalidStateError, 'Invalid payment status'):
            EscrowService.create_transaction(self.buyer, self.item.pk, 'pi_1', 'card', ADDRESS)
        self.assertFalse(Transaction.objects.exists())

    def test_unavailable_item_cancels_intent(self, gateway):
        gateway.retrieve_payment_intent.return_value = (True, {'id': 'pi_1', 'status': 'requires_capture'})
        self.item.status = BabyItem.SOLD
        self.item.save()

        with self.assertRaisesMessage(InvalidStateError, 'Item is no longer available'):
            EscrowService.create_transaction(self.buyer, self.item.pk, 'pi_1', 'card', ADDRESS)

        gateway.cancel_payment_intent.assert_called_once_with('pi_1')
        self.assertFalse(Transaction.objects.exists())

    def test_malformed_item_id_cancels_intent(self, gateway):
        gateway.retrieve_payment_intent.return_value = (True, {'id': 'pi_1', 'status': 'requires_capture'})

        with self.assertRaisesMessage(InvalidStateError, 'Item is no longer available'):
            EscrowService.create_transaction(self.buyer, 'abc', 'pi_1', 'card', ADDRESS)

        gateway.cancel_payment_intent.assert_called_once_with('pi_1')
        self.assertFalse(Transaction.objects.exists())

    def test_incomplete_address(self, gateway):
        with self.assertRaises(InvalidStateError):
            EscrowService.create_transaction(self.buyer, self.item.pk, 'pi_1', 'card', {'name': 'Jane'})
        gateway.retrieve_payment_intent.assert_not_called()

    def test_duplicate_payment_intent(self, gateway):
        make_transaction(self.buyer, self.seller, payment_id='pi_dup')
        with self.assertRaises(InvalidStateError):
            EscrowService.create_transaction(self.buyer, self.item.pk, 'pi_dup', 'card', ADDRESS)


@patch('payments.escrow_service.stripe_gateway')
class FulfilmentTests(TestCase):

    def setUp(self):
        self.seller = make_user('seller')
        self.buyer = make_user('buyer')
        self.other = make_user('other')
        self.admin = make_user('admin', is_staff=True)
        self.transaction = make_transaction(self.buyer, self.seller)

    def test_seller_marks_shipped(self, gateway):
        EscrowService.mark_as_shipped(self.transaction, self.seller, '1Z999', 'ups')
        self.transaction.refresh_from_db()
        self.assertEqual(self.transaction.status, Transaction.SHIPPED)
        self.assertEqual(self.transaction.tracking_number, '1Z999')
        self.assertEqual(self.transaction.carrier, 'ups')
        self.assertIsNotNone(self.transaction.shipped_at)

    def test_only_seller_marks_shipped(self, gateway):
        with self.assertRaises(PermissionDeniedError) as ctx:
            EscrowService.mark_as_shipped(self.transaction, self.buyer, '1Z999', 'ups')
        self.assertEqual(ctx.exception.status_code, 401)

    def test_cannot_ship_twice(self, gateway):
        EscrowService.mark_as_shipped(self.transaction, self.seller, '1Z999', 'ups')
        with self.assertRaisesMessage(InvalidStateError, 'Invalid transaction status'):
            EscrowService.mark_as_shipped(self.transaction, self.seller, '1Z999', 'ups')

    def test_rejects_unknown_carrier(self, gateway):
        with self.assertRaises(InvalidStateError):
            EscrowService.mark_as_shipped(self.transaction, self.seller, '1Z999', 'pigeon')

    @override_settings(ESCROW_AUTO_RELEASE_HOURS=48)
    def test_mark_delivered_sets_auto_release_date(self, gateway):
        EscrowService.mark_as_shipped(self.transaction, self.seller, '1Z999', 'ups')
        EscrowService.mark_as_delivered(self.transaction, self.seller)
        self.transaction.refresh_from_db()
        self.assertEqual(self.transaction.status, Transaction.DELIVERED)
        self.assertEqual(self.transaction.auto_release_date - self.transaction.delivered_at, timedelta(hours=48))

    def test_admin_can_mark_delivered(self, gateway):
        EscrowService.mark_as_shipped(self.transaction, self.seller, '1Z999', 'ups')
        EscrowService.mark_as_delivered(self.transaction, self.admin)
        self.assertEqual(self.transaction.status, Transaction.DELIVERED)

    def test_cannot_deliver_before_shipping(self, gateway):
        with self.assertRaises(InvalidStateError):
            EscrowService.mark_as_delivered(self.transaction, self.seller)

    def test_confirm_delivery_captures_and_completes(self, gateway):
        gateway.capture_payment_intent.return_value = (True, {'id': 'pi', 'status': 'succeeded'})
        EscrowService.mark_as_shipped(self.transaction, self.seller, '1Z999', 'ups')

        EscrowService.confirm_delivery(self.transaction, self.buyer)

        self.transaction.refresh_from_db()
        gateway.capture_payment_intent.assert_called_once_with(self.transaction.payment_id)
        self.assertEqual(self.transaction.status, Transaction.COMPLETED)
        self.assertEqual(self.transaction.escrow_status, Transaction.ESCROW_RELEASED)
        self.assertTrue(self.transaction.rating_enabled)
        self.assertIsNotNone(self.transaction.delivery_confirmed_at)
        self.assertEqual(BabyItem.objects.get(pk=self.transaction.item_id).status, BabyItem.SOLD)
        # Seller has no connected account
        gateway.create_transfer.assert_not_called()

    def test_confirm_delivery_pays_out_connected_seller(self, gateway):
        gateway.capture_payment_intent.return_value = (True, {'id': 'pi', 'status': 'succeeded'})
        gateway.create_transfer.return_value = (True, {'id': 'tr_1', 'amount': 9200, 'destination': 'acct_1'})
        self.seller.profile.stripe_account_id = 'acct_1'
        self.seller.profile.save()
        EscrowService.mark_as_shipped(self.transaction, self.seller, '1Z999', 'ups')

        EscrowService.confirm_delivery(self.transaction, self.buyer)

        kwargs = gateway.create_transfer.call_args.kwargs
        self.assertEqual(kwargs['amount'], 9200)
        self.assertEqual(kwargs['destination'], 'acct_1')
        self.transaction.refresh_from_db()
        self.assertEqual(self.transaction.stripe_transfer_id, 'tr_1')
        self.assertEqual(self.transaction.payout_status, Transaction.PAYOUT_COMPLETED)

    def test_failed_payout_is_recorded(self, gateway):
        gateway.capture_payment_intent.return_value = (True, {'id': 'pi', 'status': 'succeeded'})
        gateway.create_transfer.return_value = (False, {'error': 'insufficient funds'})
        self.seller.profile.stripe_account_id = 'acct_1'
        self.seller.profile.save()
        EscrowService.mark_as_shipped(self.transaction, self.seller, '1Z999', 'ups')

        EscrowService.confirm_delivery(self.transaction, self.buyer)

        self.transaction.refresh_from_db()
        self.assertEqual(self.transaction.status, Transaction.COMPLETED)
        self.assertEqual(self.transaction.payout_status, Transaction.PAYOUT_FAILED)
        self.assertEqual(self.transaction.payout_error, 'insufficient funds')

    def test_only_buyer_confirms(self, gateway):
        EscrowService.mark_as_shipped(self.transaction, self.seller, '1Z999', 'ups')
        with self.assertRaises(PermissionDeniedError):
            EscrowService.confirm_delivery(self.transaction, self.seller)

    def test_confirm_requires_shipment(self, gateway):
        with self.assertRaisesMessage(InvalidStateError, 'Item has not been marked as shipped yet'):
            EscrowService.confirm_delivery(self.transaction, self.buyer)
        gateway.capture_payment_intent.assert_not_called()

    def test_capture_failure_leaves_transaction_untouched(self, gateway):
        gateway.capture_payment_intent.return_value = (False, {'error': 'expired'})
        EscrowService.mark_as_shipped(self.transaction, self.seller, '1Z999', 'ups')

        with self.assertRaisesMessage(PaymentProviderError, 'Failed to release payment'):
            EscrowService.confirm_delivery(self.transaction, self.buyer)

        self.transaction.refresh_from_db()
        self.assertEqual(self.transaction.status, Transaction.SHIPPED)
        self.assertEqual(self.transaction.escrow_status, Transaction.ESCROW_HELD)


@patch('payments.escrow_service.stripe_gateway')
class DisputeTests(TestCase):

    def setUp(self):
        self.seller = make_user('seller')
        self.buyer = make_user('buyer')
        self.other = make_user('other')
        self.admin = make_user('admin', is_staff=True)
        self.transaction = make_transaction(self.buyer, self.seller, status=Transaction.SHIPPED)

    def test_buyer_opens_dispute(self, gateway):
        EscrowService.create_dispute(self.transaction, self.buyer, 'damaged', 'Arrived broken')
        self.transaction.refresh_from_db()
        self.assertEqual(self.transaction.status, Transaction.DISPUTED)
        self.assertTrue(self.transaction.dispute_active)
        self.assertEqual(self.transaction.dispute_created_by, self.buyer)

    def test_stranger_cannot_dispute(self, gateway):
        with self.assertRaises(PermissionDeniedError):
            EscrowService.create_dispute(self.transaction, self.other, 'damaged')

    def test_invalid_reason(self, gateway):
        with self.assertRaises(InvalidStateError):
            EscrowService.create_dispute(self.transaction, self.buyer, 'changed_my_mind')

    def test_completed_transaction_cannot_be_disputed(self, gateway):
        self.transaction.status = Transaction.COMPLETED
        self.transaction.save()
        with self.assertRaisesMessage(InvalidStateError, 'Cannot dispute this transaction'):
            EscrowService.create_dispute(self.transaction, self.buyer, 'damaged')

    def test_resolve_with_refund(self, gateway):
        gateway.cancel_payment_intent.return_value = (True, {'id': 'pi', 'status': 'canceled'})
        EscrowService.create_dispute(self.transaction, self.buyer, 'not_received')

        EscrowService.resolve_dispute(self.transaction, self.admin, 'Never arrived', 'refund')

        self.transaction.refresh_from_db()
        gateway.cancel_payment_intent.assert_called_once_with(self.transaction.payment_id)
        self.assertEqual(self.transaction.status, Transaction.REFUNDED)
        self.assertEqual(self.transaction.escrow_status, Transaction.ESCROW_REFUNDED)
        self.assertFalse(self.transaction.dispute_active)
        self.assertEqual(self.transaction.dispute_resolution, 'Never arrived')
        self.assertEqual(BabyItem.objects.get(pk=self.transaction.item_id).status, BabyItem.ACTIVE)

    def test_resolve_with_release(self, gateway):
        gateway.capture_payment_intent.return_value = (True, {'id': 'pi', 'status': 'succeeded'})
        EscrowService.create_dispute(self.transaction, self.buyer, 'not_as_described')

        EscrowService.resolve_dispute(self.transaction, self.admin, 'Item matched the listing', 'release')

        self.transaction.refresh_from_db()
        self.assertEqual(self.transaction.status, Transaction.COMPLETED)
        self.assertEqual(self.transaction.escrow_status, Transaction.ESCROW_RELEASED)
        self.assertIsNotNone(self.transaction.dispute_resolved_at)

    def test_only_admin_resolves(self, gateway):
        EscrowService.create_dispute(self.transaction, self.buyer, 'damaged')
        with self.assertRaises(PermissionDeniedError):
            EscrowService.resolve_dispute(self.transaction, self.buyer, 'mine', 'refund')

    def test_resolve_requires_valid_action(self, gateway):
        EscrowService.create_dispute(self.transaction, self.buyer, 'damaged')
        with self.assertRaises(InvalidStateError):
            EscrowService.resolve_dispute(self.transaction, self.admin, 'hmm', 'split')


@patch('payments.escrow_service.stripe_gateway')
class UpdateTransactionTests(TestCase):

    def setUp(self):
        self.seller = make_user('seller')
        self.buyer = make_user('buyer')
        self.other = make_user('other')
        self.admin = make_user('admin', is_staff=True)
        self.transaction = make_transaction(self.buyer, self.seller)

    def test_pending_cannot_jump_to_completed(self, gateway):
        with self.assertRaisesMessage(InvalidStateError, 'Cannot change status from pending to completed'):
            EscrowService.update_transaction(self.transaction, self.buyer, status=Transaction.COMPLETED)
        gateway.capture_payment_intent.assert_not_called()

    def test_buyer_cannot_ship(self, gateway):
        with self.assertRaises(PermissionDeniedError):
            EscrowService.update_transaction(self.transaction, self.buyer, status=Transaction.SHIPPED)

    def test_seller_ships_with_tracking(self, gateway):
        EscrowService.update_transaction(
            self.transaction, self.seller, status=Transaction.SHIPPED, tracking_number='9400')
        self.transaction.refresh_from_db()
        self.assertEqual(self.transaction.status, Transaction.SHIPPED)
        self.assertEqual(self.transaction.tracking_number, '9400')

    def test_only_admin_cancels(self, gateway):
        gateway.cancel_payment_intent.return_value = (True, {'id': 'pi', 'status': 'canceled'})
        with self.assertRaises(PermissionDeniedError):
            EscrowService.update_transaction(self.transaction, self.buyer, status=Transaction.CANCELLED)

        EscrowService.update_transaction(self.transaction, self.admin, status=Transaction.CANCELLED)
        self.transaction.refresh_from_db()
        self.assertEqual(self.transaction.status, Transaction.CANCELLED)
        self.assertEqual(BabyItem.objects.get(pk=self.transaction.item_id).status, BabyItem.ACTIVE)

    def test_stranger_cannot_update(self, gateway):
        with self.assertRaises(PermissionDeniedError):
            EscrowService.update_transaction(self.transaction, self.other, notes='hello')

    def test_notes_update(self, gateway):
        EscrowService.update_transaction(self.transaction, self.buyer, notes='Leave at the door')
        self.transaction.refresh_from_db()
        self.assertEqual(self.transaction.notes, 'Leave at the door')

    def test_terminal_status_is_final(self, gateway):
        self.transaction.status = Transaction.REFUNDED
        self.transaction.save()
        with self.assertRaises(InvalidStateError):
            EscrowService.update_transaction(self.transaction, self.admin, status=Transaction.SHIPPED)


class RatingTests(TestCase):

    def setUp(self):
        self.seller = make_user('seller')
        self.buyer = make_user('buyer')
        self.transaction = make_transaction(
            self.buyer, self.seller, status=Transaction.COMPLETED, rating_enabled=True)

    def test_each_party_rates_once(self):
        EscrowService.rate_transaction(self.transaction, self.buyer, 5, 'Great seller')
        EscrowService.rate_transaction(self.transaction, self.seller, '4')
        self.transaction.refresh_from_db()
        self.assertEqual(self.transaction.buyer_rating, 5)
        self.assertEqual(self.transaction.buyer_rating_comment, 'Great seller')
        self.assertEqual(self.transaction.seller_rating, 4)

        with self.assertRaisesMessage(InvalidStateError, 'You have already rated this transaction'):
            EscrowService.rate_transaction(self.transaction, self.buyer, 3)

    def test_rating_out_of_range(self):
        with self.assertRaises(InvalidStateError):
            EscrowService.rate_transaction(self.transaction, self.buyer, 6)

    def test_rating_requires_completion(self):
        self.transaction.status = Transaction.SHIPPED
        self.transaction.save()
        with self.assertRaises(InvalidStateError):
            EscrowService.rate_transaction(self.transaction, self.buyer, 5)


@patch('payments.escrow_service.stripe_gateway')
class AutoReleaseTests(TestCase):

    def setUp(self):
        self.seller = make_user('seller')
        self.buyer = make_user('buyer')
        self.now = timezone.now()

    def _delivered(self, hours_ago, **extra):
        return make_transaction(
            self.buyer, self.seller, status=Transaction.DELIVERED,
            delivered_at=self.now - timedelta(hours=hours_ago), **extra)

    def test_releases_only_transactions_past_grace_period(self, gateway):
        gateway.capture_payment_intent.return_value = (True, {'id': 'pi', 'status': 'succeeded'})
        due = self._delivered(73)
        recent = self._delivered(10)
        shipped = make_transaction(
            self.buyer, self.seller, status=Transaction.SHIPPED, shipped_at=self.now - timedelta(days=30))
        disputed = self._delivered(100)
        disputed.status = Transaction.DISPUTED
        disputed.save()

        result = EscrowService.auto_release_payments(now=self.now)

        self.assertEqual(result, {'released': 1, 'failed': 0})
        due.refresh_from_db()
        self.assertEqual(due.status, Transaction.COMPLETED)
        self.assertEqual(due.escrow_status, Transaction.ESCROW_AUTO_RELEASED)
        for untouched, status in ((recent, Transaction.DELIVERED), (shipped, Transaction.SHIPPED),
                                  (disputed, Transaction.DISPUTED)):
            untouched.refresh_from_db()
            self.assertEqual(untouched.status, status)
            self.assertEqual(untouched.escrow_status, Transaction.ESCROW_HELD)

    def test_failure_on_one_row_does_not_stop_the_batch(self, gateway):
        first = self._delivered(80)
        second = self._delivered(90)
        gateway.capture_payment_intent.side_effect = lambda payment_id: (
            (False, {'error': 'expired'}) if payment_id == first.payment_id
            else (True, {'id': payment_id, 'status': 'succeeded'})
        )

        result = EscrowService.auto_release_payments(now=self.now)

        self.assertEqual(result, {'released': 1, 'failed': 1})
        first.refresh_from_db()
        second.refresh_from_db()
        self.assertEqual(first.status, Transaction.DELIVERED)
        self.assertEqual(second.status, Transaction.COMPLETED)

    @override_settings(ESCROW_AUTO_RELEASE_HOURS=24)
    def test_grace_period_is_configurable(self, gateway):
        gateway.capture_payment_intent.return_value = (True, {'id': 'pi', 'status': 'succeeded'})
        self._delivered(30)
        self.assertEqual(EscrowService.auto_release_payments(now=self.now)['released'], 1)

    def test_nothing_due(self, gateway):
        self._delivered(1)
        self.assertEqual(EscrowService.auto_release_payments(now=self.now), {'released': 0, 'failed': 0})
        gateway.capture_payment_intent.assert_not_called()
