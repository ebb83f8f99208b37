"""
Stripe integration for BabyResell

Wraps the PaymentIntent (manual capture), Transfer, Refund and webhook
calls used by the escrow flow. Every method returns a (success, data)
tuple and never raises to the caller.
"""
import json
import logging
import uuid
from typing import Dict, Optional, Tuple

import stripe
from django.conf import settings

logger = logging.getLogger(__name__)


class StripeGateway:
    """
    Service talking to the Stripe API.
    Documentation: https://stripe.com/docs/api
    """

    @property
    def secret_key(self) -> str:
        return getattr(settings, 'STRIPE_SECRET_KEY', '')

    @property
    def webhook_secret(self) -> str:
        return getattr(settings, 'STRIPE_WEBHOOK_SECRET', '')

    @property
    def bypass_api(self) -> bool:
        # Local mode: simulate Stripe answers
        return getattr(settings, 'STRIPE_BYPASS_API', not self.secret_key)

    def _call(self, operation: str, func, *args, **params) -> Tuple[bool, object]:
        """Run a Stripe SDK call, turning Stripe errors into (False, {'error': ...})"""
        try:
            return True, func(*args, api_key=self.secret_key, **params)
        except stripe.StripeError as e:
            logger.error(f"Stripe {operation} failed: {e.user_message or e}")
            return False, {'error': str(e.user_message or e), 'code': getattr(e, 'code', None)}

    def _simulated(self, operation: str, **data) -> Tuple[bool, Dict]:
        logger.info(f"Stripe API BYPASS MODE - {operation}")
        return True, data

    def create_payment_intent(
        self,
        amount: int,
        currency: str = 'usd',
        metadata: Optional[Dict] = None,
        description: str = '',
        receipt_email: Optional[str] = None,
    ) -> Tuple[bool, Dict]:
        """
        Authorize `amount` cents on the buyer's card without charging it.

        Returns:
            Tuple (success, {'id', 'client_secret', 'status', 'amount'})
        """
        if self.bypass_api:
            intent_id = f"pi_test_{uuid.uuid4().hex[:24]}"
            return self._simulated(
                'create_payment_intent',
                id=intent_id,
                client_secret=f"{intent_id}_secret_{uuid.uuid4().hex[:12]}",
                status='requires_payment_method',
                amount=amount,
            )

        params = {
            'amount': amount,
            'currency': currency,
            'payment_method_types': ['card'],
            'capture_method': 'manual',
            'metadata': metadata or {},
            'description': description,
        }
        if receipt_email:
            params['receipt_email'] = receipt_email

        success, intent = self._call('create_payment_intent', stripe.PaymentIntent.create, **params)
        if not success:
            return False, intent
        return True, {
            'id': intent.id,
            'client_secret': intent.client_secret,
            'status': intent.status,
            'amount': intent.amount,
        }

    def retrieve_payment_intent(self, payment_intent_id: str) -> Tuple[bool, Dict]:
        if self.bypass_api:
            return self._simulated(
                'retrieve_payment_intent', id=payment_intent_id, status='requires_capture', metadata={})

        success, intent = self._call('retrieve_payment_intent', stripe.PaymentIntent.retrieve, payment_intent_id)
        if not success:
            return False, intent
        return True, {
            'id': intent.id,
            'status': intent.status,
            'amount': intent.amount,
            'metadata': dict(intent.metadata or {}),
        }

    def capture_payment_intent(self, payment_intent_id: str) -> Tuple[bool, Dict]:
        """Charge funds previously authorized; data['status'] is 'succeeded' on success"""
        if self.bypass_api:
            return self._simulated('capture_payment_intent', id=payment_intent_id, status='succeeded')

        success, intent = self._call('capture_payment_intent', stripe.PaymentIntent.capture, payment_intent_id)
        if not success:
            return False, intent
        return True, {'id': intent.id, 'status': intent.status}

    def cancel_payment_intent(self, payment_intent_id: str) -> Tuple[bool, Dict]:
        """Release an authorization that was never captured"""
        if self.bypass_api:
            return self._simulated('cancel_payment_intent', id=payment_intent_id, status='canceled')

        success, intent = self._call('cancel_payment_intent', stripe.PaymentIntent.cancel, payment_intent_id)
        if not success:
            return False, intent
        return True, {'id': intent.id, 'status': intent.status}

    def create_transfer(
        self,
        amount: int,
        destination: str,
        currency: str = 'usd',
        transfer_group: Optional[str] = None,
        metadata: Optional[Dict] = None,
    ) -> Tuple[bool, Dict]:
        """Pay `amount` cents out to a connected account"""
        if self.bypass_api:
            return self._simulated(
                'create_transfer', id=f"tr_test_{uuid.uuid4().hex[:24]}", amount=amount, destination=destination)

        params = {
            'amount': amount,
            'currency': currency,
            'destination': destination,
            'metadata': metadata or {},
        }
        if transfer_group:
            params['transfer_group'] = transfer_group

        success, transfer = self._call('create_transfer', stripe.Transfer.create, **params)
        if not success:
            return False, transfer
        return True, {'id': transfer.id, 'amount': transfer.amount, 'destination': transfer.destination}

    def create_refund(
        self,
        payment_intent_id: str,
        amount: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> Tuple[bool, Dict]:
        """Refund a captured payment, fully unless `amount` cents is given"""
        if self.bypass_api:
            return self._simulated(
                'create_refund', id=f"re_test_{uuid.uuid4().hex[:24]}", status='succeeded',
                payment_intent=payment_intent_id)

        params = {'payment_intent': payment_intent_id}
        if amount is not None:
            params['amount'] = amount
        if reason:
            params['reason'] = reason

        success, refund = self._call('create_refund', stripe.Refund.create, **params)
        if not success:
            return False, refund
        return True, {'id': refund.id, 'status': refund.status, 'payment_intent': payment_intent_id}

    def construct_webhook_event(self, payload: bytes, signature: str) -> Tuple[bool, Dict]:
        """
        Verify a webhook signature and return the decoded event.

        Args:
            payload: raw request body
            signature: value of the Stripe-Signature header

        Returns:
            Tuple (success, event dict or {'error': ...})
        """
        if not self.bypass_api:
            try:
                stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
            except stripe.SignatureVerificationError as e:
                logger.warning(f"Stripe webhook signature verification failed: {e}")
                return False, {'error': str(e)}
            except ValueError as e:
                logger.warning(f"Stripe webhook payload is not valid JSON: {e}")
                return False, {'error': 'Invalid payload'}

        try:
            event = json.loads(payload)
        except ValueError:
            return False, {'error': 'Invalid payload'}
        if not isinstance(event, dict) or 'type' not in event:
            return False, {'error': 'Invalid payload'}
        return True, event


stripe_gateway = StripeGateway()
