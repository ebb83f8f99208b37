"""
HTTP tests for /api/payments/ and /api/transactions/
"""
from unittest.mock import patch

from django.test import TestCase, override_settings
from django.utils import timezone

from accounts.models import BabyItem
from settings.models import SiteSetting
from .models import Transaction
from .test_utils import ADDRESS, auth_header, make_item, make_transaction, make_user


@override_settings(STRIPE_BYPASS_API=True)
class CheckoutFlowTests(TestCase):
    """Full purchase flow against the simulated Stripe gateway"""

    def setUp(self):
        self.seller = make_user('seller')
        self.buyer = make_user('buyer')
        self.item = make_item(self.seller, price='100.00')

    def _post(self, url, user, data=None):
        return self.client.post(url, data=data or {}, content_type='application/json', **auth_header(user))

    def test_purchase_ship_deliver_confirm(self):
        response = self._post('/api/payments/create-intent/', self.buyer, {'itemId': self.item.pk})
        self.assertEqual(response.status_code, 200)
        intent = response.json()
        self.assertTrue(intent['success'])
        self.assertEqual(intent['amount'], 10000)
        self.assertTrue(intent['clientSecret'])

        response = self._post('/api/payments/create-transaction/', self.buyer, {
            'pinId': self.item.pk,
            'paymentIntentId': intent['paymentIntentId'],
            'paymentMethod': 'card',
            'shippingAddress': ADDRESS,
        })
        self.assertEqual(response.status_code, 201)
        data = response.json()['data']
        self.assertEqual(data['status'], 'pending')
        self.assertEqual(data['platformFee'], 8.0)
        self.assertEqual(data['sellerPayout'], 92.0)
        transaction_id = data['id']

        response = self._post(f'/api/payments/mark-shipped/{transaction_id}/', self.seller,
                              {'trackingNumber': '1Z999', 'carrier': 'ups'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['status'], 'shipped')

        response = self._post(f'/api/payments/mark-delivered/{transaction_id}/', self.seller)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['status'], 'delivered')

        response = self._post(f'/api/payments/confirm-delivery/{transaction_id}/', self.buyer)
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['message'], 'Delivery confirmed and payment released')
        self.assertEqual(body['data']['status'], 'completed')
        self.assertEqual(body['data']['escrowStatus'], 'released')
        self.item.refresh_from_db()
        self.assertEqual(self.item.status, BabyItem.SOLD)

    def test_create_intent_without_trailing_slash(self):
        response = self._post('/api/payments/create-intent', self.buyer, {'itemId': self.item.pk})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['amount'], 10000)

    @patch('payments.escrow_service.stripe_gateway.cancel_payment_intent', return_value=(True, {}))
    def test_malformed_item_id_releases_hold(self, mock_cancel):
        response = self._post('/api/payments/create-transaction', self.buyer, {
            'itemId': 'abc',
            'paymentIntentId': 'pi_held',
            'shippingAddress': ADDRESS,
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Item is no longer available')
        mock_cancel.assert_called_once_with('pi_held')

    def test_create_intent_requires_login(self):
        response = self.client.post('/api/payments/create-intent/', data={'itemId': self.item.pk},
                                    content_type='application/json')
        self.assertEqual(response.status_code, 401)

    def test_create_intent_unknown_item(self):
        response = self._post('/api/payments/create-intent/', self.buyer, {'itemId': 424242})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {'success': False, 'error': 'Item not found'})

    def test_create_intent_sold_item(self):
        self.item.status = BabyItem.SOLD
        self.item.save()
        response = self._post('/api/payments/create-intent/', self.buyer, {'itemId': self.item.pk})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Item is no longer available')

    def test_invalid_json_body(self):
        response = self.client.post('/api/payments/create-intent/', data='{nope', content_type='application/json',
                                    **auth_header(self.buyer))
        self.assertEqual(response.status_code, 400)

    def test_buyer_cannot_mark_shipped(self):
        transaction = make_transaction(self.buyer, self.seller)
        response = self._post(f'/api/payments/mark-shipped/{transaction.pk}/', self.buyer,
                              {'trackingNumber': '1', 'carrier': 'ups'})
        self.assertEqual(response.status_code, 401)

    def test_confirm_before_shipping(self):
        transaction = make_transaction(self.buyer, self.seller)
        response = self._post(f'/api/payments/confirm-delivery/{transaction.pk}/', self.buyer)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Item has not been marked as shipped yet')

    def test_unknown_transaction(self):
        response = self._post('/api/payments/confirm-delivery/99999/', self.buyer)
        self.assertEqual(response.status_code, 404)

    @patch('payments.escrow_service.stripe_gateway.capture_payment_intent',
           return_value=(False, {'error': 'expired'}))
    def test_capture_failure_answers_500(self, mock_capture):
        transaction = make_transaction(self.buyer, self.seller, status=Transaction.SHIPPED)
        response = self._post(f'/api/payments/confirm-delivery/{transaction.pk}/', self.buyer)
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()['error'], 'Failed to release payment')

    def test_dispute_and_admin_refund(self):
        admin = make_user('admin', is_staff=True)
        transaction = make_transaction(self.buyer, self.seller, status=Transaction.SHIPPED)

        response = self._post(f'/api/payments/dispute/{transaction.pk}/', self.buyer,
                              {'reason': 'damaged', 'description': 'Broken leg'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['status'], 'disputed')

        response = self._post(f'/api/payments/resolve-dispute/{transaction.pk}/', self.buyer,
                              {'resolution': 'x', 'action': 'refund'})
        self.assertEqual(response.status_code, 403)

        response = self._post(f'/api/payments/resolve-dispute/{transaction.pk}/', admin,
                              {'resolution': 'Refunded in full', 'action': 'refund'})
        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(data['status'], 'refunded')
        self.assertEqual(data['dispute']['resolution'], 'Refunded in full')
        self.assertFalse(data['dispute']['active'])


class PaymentInfoViewTests(TestCase):

    def setUp(self):
        self.seller = make_user('seller')
        self.buyer = make_user('buyer')
        self.admin = make_user('admin', is_staff=True)
        self.item = make_item(self.seller, price='100.00')

    def test_calculate_fees_is_public(self):
        response = self.client.get(f'/api/payments/calculate-fees/{self.item.pk}/')
        self.assertEqual(response.status_code, 200)
        fees = response.json()['fees']
        self.assertEqual(fees['platformFee'], 8.0)
        self.assertEqual(fees['platformFeePercentage'], '8%')
        self.assertEqual(fees['sellerReceives'], 92.0)
        self.assertFalse(fees['isPremiumSeller'])

    def test_calculate_fees_unknown_item(self):
        response = self.client.get('/api/payments/calculate-fees/98765/')
        self.assertEqual(response.status_code, 404)

    def test_payment_methods(self):
        response = self.client.get('/api/payments/methods/', **auth_header(self.buyer))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([method['id'] for method in response.json()['data']], ['card'])

        SiteSetting.get_settings().update_sections({'payments': {'paypalClientId': 'client-id'}})
        response = self.client.get('/api/payments/methods/', **auth_header(self.buyer))
        self.assertEqual([method['id'] for method in response.json()['data']], ['card', 'paypal'])

    def test_revenue_summary_admin_only(self):
        response = self.client.get('/api/payments/revenue-summary/', **auth_header(self.buyer))
        self.assertEqual(response.status_code, 403)

    def test_revenue_summary(self):
        make_transaction(self.buyer, self.seller, status=Transaction.COMPLETED)
        make_transaction(self.buyer, self.seller, status=Transaction.COMPLETED)
        make_transaction(self.buyer, self.seller, status=Transaction.PENDING)

        response = self.client.get('/api/payments/revenue-summary/', **auth_header(self.admin))

        self.assertEqual(response.status_code, 200)
        today = response.json()['revenue']['today']
        self.assertEqual(today['transactions'], 2)
        self.assertEqual(today['gross'], 16.0)
        self.assertEqual(today['net'], 9.6)
        self.assertEqual(today['stripeFees'], 6.4)


class TransactionViewTests(TestCase):

    def setUp(self):
        self.seller = make_user('seller')
        self.buyer = make_user('buyer')
        self.other = make_user('other')
        self.admin = make_user('admin', is_staff=True)
        self.purchase = make_transaction(self.buyer, self.seller)
        self.sale = make_transaction(self.seller, self.buyer, status=Transaction.SHIPPED)
        make_transaction(self.other, self.seller)

    def test_list_own_transactions(self):
        response = self.client.get('/api/transactions/', **auth_header(self.buyer))
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['count'], 2)
        self.assertEqual(body['pagination']['total'], 2)
        self.assertEqual({row['id'] for row in body['data']}, {self.purchase.pk, self.sale.pk})

    def test_list_filters_by_role_and_status(self):
        response = self.client.get('/api/transactions/?role=buyer', **auth_header(self.buyer))
        self.assertEqual([row['id'] for row in response.json()['data']], [self.purchase.pk])

        response = self.client.get('/api/transactions/?status=shipped', **auth_header(self.buyer))
        self.assertEqual([row['id'] for row in response.json()['data']], [self.sale.pk])

    def test_list_pagination(self):
        response = self.client.get('/api/transactions/?limit=1&page=2', **auth_header(self.buyer))
        body = response.json()
        self.assertEqual(body['count'], 1)
        self.assertEqual(body['pagination'], {'total': 2, 'page': 2, 'pages': 2})

        response = self.client.get('/api/transactions/?limit=1&page=5', **auth_header(self.buyer))
        self.assertEqual(response.json()['data'], [])

    def test_detail_restricted_to_parties_and_admin(self):
        url = f'/api/transactions/{self.purchase.pk}/'
        self.assertEqual(self.client.get(url, **auth_header(self.buyer)).status_code, 200)
        self.assertEqual(self.client.get(url, **auth_header(self.admin)).status_code, 200)
        self.assertEqual(self.client.get(url, **auth_header(self.other)).status_code, 401)

    def test_update_rejects_skipping_states(self):
        response = self.client.put(
            f'/api/transactions/{self.purchase.pk}/', data={'status': 'completed'},
            content_type='application/json', **auth_header(self.buyer))
        self.assertEqual(response.status_code, 400)
        self.purchase.refresh_from_db()
        self.assertEqual(self.purchase.status, Transaction.PENDING)

    def test_update_notes(self):
        response = self.client.put(
            f'/api/transactions/{self.purchase.pk}/', data={'notes': 'Ring the bell'},
            content_type='application/json', **auth_header(self.buyer))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['notes'], 'Ring the bell')

    def test_routes_without_trailing_slash(self):
        response = self.client.put(
            f'/api/transactions/{self.purchase.pk}', data={'notes': 'Leave at the door'},
            content_type='application/json', **auth_header(self.buyer))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['notes'], 'Leave at the door')

        response = self.client.get('/api/transactions', **auth_header(self.buyer))
        self.assertEqual(response.json()['count'], 2)

    def test_rate_completed_transaction(self):
        self.purchase.status = Transaction.COMPLETED
        self.purchase.rating_enabled = True
        self.purchase.save()

        response = self.client.post(
            f'/api/transactions/{self.purchase.pk}/rate/', data={'rating': 5, 'comment': 'Smooth'},
            content_type='application/json', **auth_header(self.buyer))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['buyerRating']['rating'], 5)

    def test_stats_summary(self):
        self.purchase.status = Transaction.COMPLETED
        self.purchase.save()

        response = self.client.get('/api/transactions/stats/summary/', **auth_header(self.admin))

        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(data['sales'], {'totalSales': 100.0, 'totalFees': 8.0, 'count': 1})
        self.assertEqual(len(data['monthly']), 1)
        self.assertEqual(data['monthly'][0]['month'], timezone.localtime().month)
        counts = {row['status']: row['count'] for row in data['status']}
        self.assertEqual(counts, {'completed': 1, 'pending': 1, 'shipped': 1})

    def test_stats_admin_only(self):
        response = self.client.get('/api/transactions/stats/summary/', **auth_header(self.buyer))
        self.assertEqual(response.status_code, 403)
