import json
from unittest.mock import Mock, patch

from django.test import TestCase, override_settings

from accounts.models import BabyItem
from .models import StripeWebhookLog, Transaction
from .test_utils import make_transaction, make_user


def event(event_type, obj, event_id='evt_1'):
    return json.dumps({'id': event_id, 'type': event_type, 'data': {'object': obj}})


@override_settings(STRIPE_BYPASS_API=True)
class StripeWebhookTests(TestCase):

    def setUp(self):
        self.seller = make_user('seller')
        self.buyer = make_user('buyer')
        self.transaction = make_transaction(self.buyer, self.seller, payment_id='pi_hook')

    def _post(self, payload, signature='t=1,v1=abc'):
        return self.client.post('/api/payments/webhooks/stripe/', data=payload,
                                content_type='application/json', HTTP_STRIPE_SIGNATURE=signature)

    def test_payment_failed_marks_transaction_failed(self):
        response = self._post(event('payment_intent.payment_failed', {'id': 'pi_hook'}))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'received': True})
        self.transaction.refresh_from_db()
        self.assertEqual(self.transaction.status, Transaction.FAILED)
        self.assertEqual(BabyItem.objects.get(pk=self.transaction.item_id).status, BabyItem.ACTIVE)
        log = StripeWebhookLog.objects.get()
        self.assertTrue(log.processed)
        self.assertEqual(log.transaction, self.transaction)

    def test_dispute_created(self):
        self._post(event('charge.dispute.created', {
            'id': 'dp_1', 'payment_intent': 'pi_hook', 'reason': 'product_not_received',
        }))
        self.transaction.refresh_from_db()
        self.assertEqual(self.transaction.status, Transaction.DISPUTED)
        self.assertTrue(self.transaction.dispute_active)
        self.assertEqual(self.transaction.dispute_reason, 'not_received')
        self.assertEqual(self.transaction.stripe_dispute_id, 'dp_1')

    def test_account_updated(self):
        self.seller.profile.stripe_account_id = 'acct_9'
        self.seller.profile.save()

        self._post(event('account.updated', {
            'id': 'acct_9', 'charges_enabled': True, 'payouts_enabled': True, 'details_submitted': True,
        }))

        self.seller.profile.refresh_from_db()
        self.assertTrue(self.seller.profile.payouts_enabled)
        self.assertTrue(self.seller.profile.charges_enabled)

    def test_unknown_event_is_acknowledged(self):
        response = self._post(event('customer.created', {'id': 'cus_1'}))
        self.assertEqual(response.status_code, 200)
        log = StripeWebhookLog.objects.get()
        self.assertEqual(log.event_type, 'customer.created')
        self.assertFalse(log.processed)

    def test_payment_succeeded_keeps_status(self):
        self._post(event('payment_intent.succeeded', {'id': 'pi_hook'}))
        self.transaction.refresh_from_db()
        self.assertEqual(self.transaction.status, Transaction.PENDING)

    def test_invalid_payload(self):
        response = self._post('not json')
        self.assertEqual(response.status_code, 400)
        self.assertFalse(StripeWebhookLog.objects.get().is_valid)

    @override_settings(STRIPE_BYPASS_API=False, STRIPE_WEBHOOK_SECRET='whsec_test')
    def test_bad_signature_is_rejected(self):
        response = self._post(event('payment_intent.payment_failed', {'id': 'pi_hook'}), signature='t=1,v1=bad')

        self.assertEqual(response.status_code, 400)
        self.transaction.refresh_from_db()
        self.assertEqual(self.transaction.status, Transaction.PENDING)
        log = StripeWebhookLog.objects.get()
        self.assertFalse(log.is_valid)
        self.assertEqual(log.event_type, 'payment_intent.payment_failed')

    def test_handler_error_is_logged(self):
        failing = Mock(side_effect=RuntimeError('db down'))
        with patch.dict('payments.webhooks.EVENT_HANDLERS', {'payment_intent.payment_failed': failing}):
            response = self._post(event('payment_intent.payment_failed', {'id': 'pi_hook'}))

        self.assertEqual(response.status_code, 200)
        log = StripeWebhookLog.objects.get()
        self.assertFalse(log.processed)
        self.assertEqual(log.error_message, 'db down')
