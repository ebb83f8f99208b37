"""
Escrowed marketplace transactions and Stripe webhook logs
"""
from decimal import Decimal

from django.contrib.auth.models import User
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from accounts.models import BabyItem


def _money(value):
    return float(value) if value is not None else None


def _date(value):
    return value.isoformat() if value else None


class Transaction(models.Model):
    """
    A purchase of a BabyItem. Funds are authorized on the buyer's card and
    held (escrow) until delivery is confirmed, a dispute is resolved, or the
    hourly sweep releases them.
    """
    # Statuses
    PENDING = 'pending'
    SHIPPED = 'shipped'
    DELIVERED = 'delivered'
    COMPLETED = 'completed'
    DISPUTED = 'disputed'
    REFUNDED = 'refunded'
    CANCELLED = 'cancelled'
    FAILED = 'failed'

    STATUS_CHOICES = [
        (PENDING, _('Payment held')),
        (SHIPPED, _('Shipped')),
        (DELIVERED, _('Delivered')),
        (COMPLETED, _('Completed')),
        (DISPUTED, _('Disputed')),
        (REFUNDED, _('Refunded')),
        (CANCELLED, _('Cancelled')),
        (FAILED, _('Failed')),
    ]

    # Allowed status changes; anything absent is terminal
    TRANSITIONS = {
        PENDING: (SHIPPED, DISPUTED, REFUNDED, CANCELLED, FAILED),
        SHIPPED: (DELIVERED, COMPLETED, DISPUTED, REFUNDED),
        DELIVERED: (COMPLETED, DISPUTED, REFUNDED),
        DISPUTED: (COMPLETED, REFUNDED),
    }

    # Escrow
    ESCROW_HELD = 'held'
    ESCROW_RELEASED = 'released'
    ESCROW_AUTO_RELEASED = 'auto_released'
    ESCROW_REFUNDED = 'refunded'

    ESCROW_STATUS_CHOICES = [
        (ESCROW_HELD, _('Held')),
        (ESCROW_RELEASED, _('Released')),
        (ESCROW_AUTO_RELEASED, _('Auto released')),
        (ESCROW_REFUNDED, _('Refunded')),
    ]

    # Seller payouts
    PAYOUT_PENDING = 'pending'
    PAYOUT_PROCESSING = 'processing'
    PAYOUT_COMPLETED = 'completed'
    PAYOUT_FAILED = 'failed'

    PAYOUT_STATUS_CHOICES = [
        (PAYOUT_PENDING, _('Pending')),
        (PAYOUT_PROCESSING, _('Processing')),
        (PAYOUT_COMPLETED, _('Completed')),
        (PAYOUT_FAILED, _('Failed')),
    ]

    CARRIER_CHOICES = [
        ('usps', 'USPS'),
        ('ups', 'UPS'),
        ('fedex', 'FedEx'),
        ('dhl', 'DHL'),
        ('other', _('Other')),
    ]

    DISPUTE_REASON_CHOICES = [
        ('not_as_described', _('Not as described')),
        ('not_received', _('Not received')),
        ('damaged', _('Damaged')),
        ('other', _('Other')),
    ]

    CURRENCY_CHOICES = [
        ('USD', 'USD'),
        ('EUR', 'EUR'),
        ('GBP', 'GBP'),
        ('JPY', 'JPY'),
    ]

    # Parties
    buyer = models.ForeignKey(
        User, on_delete=models.PROTECT, related_name='purchases', verbose_name=_("Buyer"))
    seller = models.ForeignKey(
        User, on_delete=models.PROTECT, related_name='sales', verbose_name=_("Seller"))
    item = models.ForeignKey(
        BabyItem, on_delete=models.PROTECT, related_name='transactions', verbose_name=_("Item"))

    # Amounts, fixed at creation
    amount = models.DecimalField(max_digits=10, decimal_places=2, verbose_name=_("Amount"))
    currency = models.CharField(
        max_length=3, choices=CURRENCY_CHOICES, default='USD', verbose_name=_("Currency"))
    platform_fee = models.DecimalField(max_digits=10, decimal_places=2, verbose_name=_("Platform fee"))
    platform_fee_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal('8'), verbose_name=_("Platform fee (%)"))
    seller_payout = models.DecimalField(max_digits=10, decimal_places=2, verbose_name=_("Seller payout"))
    stripe_fee = models.DecimalField(max_digits=10, decimal_places=2, verbose_name=_("Stripe fee"))
    net_revenue = models.DecimalField(max_digits=10, decimal_places=2, verbose_name=_("Net platform revenue"))

    payout_status = models.CharField(
        max_length=20, choices=PAYOUT_STATUS_CHOICES, default=PAYOUT_PENDING, verbose_name=_("Payout status"))
    stripe_transfer_id = models.CharField(max_length=100, blank=True, null=True, verbose_name=_("Stripe transfer"))
    payout_error = models.TextField(blank=True, null=True, verbose_name=_("Payout error"))

    status = models.CharField(
        max_length=20, choices=STATUS_CHOICES, default=PENDING, verbose_name=_("Status"))
    escrow_status = models.CharField(
        max_length=20, choices=ESCROW_STATUS_CHOICES, default=ESCROW_HELD, verbose_name=_("Escrow status"))

    payment_method = models.CharField(max_length=50, verbose_name=_("Payment method"))
    payment_id = models.CharField(
        max_length=100, unique=True, verbose_name=_("Payment intent"),
        help_text=_("Stripe PaymentIntent id"))

    # Shipping address
    shipping_name = models.CharField(max_length=200, verbose_name=_("Recipient"))
    shipping_line1 = models.CharField(max_length=200, verbose_name=_("Address line 1"))
    shipping_line2 = models.CharField(max_length=200, blank=True, default='', verbose_name=_("Address line 2"))
    shipping_city = models.CharField(max_length=100, verbose_name=_("City"))
    shipping_state = models.CharField(max_length=100, verbose_name=_("State"))
    shipping_country = models.CharField(max_length=2, default='US', verbose_name=_("Country"))
    shipping_postal_code = models.CharField(max_length=20, verbose_name=_("Postal code"))

    # Fulfilment
    tracking_number = models.CharField(max_length=100, blank=True, null=True, verbose_name=_("Tracking number"))
    carrier = models.CharField(
        max_length=10, choices=CARRIER_CHOICES, blank=True, null=True, verbose_name=_("Carrier"))
    shipped_at = models.DateTimeField(blank=True, null=True, verbose_name=_("Shipped at"))
    delivered_at = models.DateTimeField(blank=True, null=True, verbose_name=_("Delivered at"))
    delivery_confirmed_at = models.DateTimeField(blank=True, null=True, verbose_name=_("Delivery confirmed at"))
    escrow_release_date = models.DateTimeField(blank=True, null=True, verbose_name=_("Escrow released at"))
    auto_release_date = models.DateTimeField(blank=True, null=True, verbose_name=_("Auto release date"))
    notes = models.TextField(blank=True, null=True, verbose_name=_("Notes"))

    # Dispute
    dispute_active = models.BooleanField(default=False, verbose_name=_("Dispute open"))
    dispute_reason = models.CharField(
        max_length=20, choices=DISPUTE_REASON_CHOICES, blank=True, null=True, verbose_name=_("Dispute reason"))
    dispute_description = models.TextField(blank=True, null=True, verbose_name=_("Dispute description"))
    dispute_created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, blank=True, null=True, related_name='+',
        verbose_name=_("Dispute opened by"))
    dispute_created_at = models.DateTimeField(blank=True, null=True, verbose_name=_("Dispute opened at"))
    dispute_resolved_at = models.DateTimeField(blank=True, null=True, verbose_name=_("Dispute resolved at"))
    dispute_resolution = models.TextField(blank=True, null=True, verbose_name=_("Dispute resolution"))
    stripe_dispute_id = models.CharField(max_length=100, blank=True, null=True, verbose_name=_("Stripe dispute"))

    # Ratings, each left by one party about the other
    rating_enabled = models.BooleanField(default=False, verbose_name=_("Rating enabled"))
    buyer_rating = models.PositiveSmallIntegerField(
        blank=True, null=True, validators=[MinValueValidator(1), MaxValueValidator(5)],
        verbose_name=_("Rating by buyer"))
    buyer_rating_comment = models.TextField(blank=True, null=True, verbose_name=_("Buyer comment"))
    buyer_rated_at = models.DateTimeField(blank=True, null=True)
    seller_rating = models.PositiveSmallIntegerField(
        blank=True, null=True, validators=[MinValueValidator(1), MaxValueValidator(5)],
        verbose_name=_("Rating by seller"))
    seller_rating_comment = models.TextField(blank=True, null=True, verbose_name=_("Seller comment"))
    seller_rated_at = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Created"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("Updated"))

    class Meta:
        ordering = ('-created_at',)
        verbose_name = _("Transaction")
        verbose_name_plural = _("Transactions")
        indexes = [
            models.Index(fields=['buyer', 'status'], name='transaction_buyer_status_idx'),
            models.Index(fields=['seller', 'status'], name='transaction_seller_status_idx'),
            models.Index(fields=['status', 'delivered_at'], name='transaction_release_idx'),
            models.Index(fields=['escrow_status'], name='transaction_escrow_idx'),
        ]

    def __str__(self):
        return f"Transaction #{self.pk} - {self.item.title} ({self.status})"

    def can_transition_to(self, status):
        return status in self.TRANSITIONS.get(self.status, ())

    def is_party(self, user):
        return user.pk in (self.buyer_id, self.seller_id)

    @property
    def shipping_address(self):
        return {
            'name': self.shipping_name,
            'line1': self.shipping_line1,
            'line2': self.shipping_line2,
            'city': self.shipping_city,
            'state': self.shipping_state,
            'country': self.shipping_country,
            'postalCode': self.shipping_postal_code,
        }

    def to_dict(self):
        """JSON representation returned by the API"""
        return {
            'id': self.pk,
            'buyer': {'id': self.buyer_id, 'username': self.buyer.username},
            'seller': {'id': self.seller_id, 'username': self.seller.username},
            'item': {'id': self.item_id, 'title': self.item.title, 'price': _money(self.item.price)},
            'amount': _money(self.amount),
            'currency': self.currency,
            'platformFee': _money(self.platform_fee),
            'platformFeePercentage': _money(self.platform_fee_percentage),
            'sellerPayout': _money(self.seller_payout),
            'stripeFee': _money(self.stripe_fee),
            'netRevenue': _money(self.net_revenue),
            'payoutStatus': self.payout_status,
            'status': self.status,
            'escrowStatus': self.escrow_status,
            'paymentMethod': self.payment_method,
            'paymentId': self.payment_id,
            'shippingAddress': self.shipping_address,
            'trackingNumber': self.tracking_number,
            'carrier': self.carrier,
            'shippedAt': _date(self.shipped_at),
            'deliveredAt': _date(self.delivered_at),
            'deliveryConfirmedAt': _date(self.delivery_confirmed_at),
            'escrowReleaseDate': _date(self.escrow_release_date),
            'autoReleaseDate': _date(self.auto_release_date),
            'notes': self.notes,
            'dispute': {
                'active': self.dispute_active,
                'reason': self.dispute_reason,
                'description': self.dispute_description,
                'createdBy': self.dispute_created_by_id,
                'createdAt': _date(self.dispute_created_at),
                'resolvedAt': _date(self.dispute_resolved_at),
                'resolution': self.dispute_resolution,
            },
            'ratingEnabled': self.rating_enabled,
            'buyerRating': {
                'rating': self.buyer_rating,
                'comment': self.buyer_rating_comment,
                'createdAt': _date(self.buyer_rated_at),
            },
            'sellerRating': {
                'rating': self.seller_rating,
                'comment': self.seller_rating_comment,
                'createdAt': _date(self.seller_rated_at),
            },
            'createdAt': _date(self.created_at),
            'updatedAt': _date(self.updated_at),
        }


class StripeWebhookLog(models.Model):
    """Every webhook call received from Stripe"""
    event_id = models.CharField(max_length=100, blank=True, null=True, verbose_name=_("Event id"))
    event_type = models.CharField(max_length=100, blank=True, null=True, verbose_name=_("Event type"))
    payload = models.JSONField(default=dict, blank=True, verbose_name=_("Payload"))
    signature = models.CharField(max_length=500, blank=True, default='', verbose_name=_("Signature"))
    is_valid = models.BooleanField(default=False, verbose_name=_("Valid signature"))
    processed = models.BooleanField(default=False, verbose_name=_("Processed"))
    error_message = models.TextField(blank=True, null=True, verbose_name=_("Error"))
    transaction = models.ForeignKey(
        Transaction, on_delete=models.SET_NULL, blank=True, null=True,
        related_name='webhook_logs', verbose_name=_("Transaction"))
    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Received at"))

    class Meta:
        ordering = ('-created_at',)
        verbose_name = _("Stripe webhook")
        verbose_name_plural = _("Stripe webhooks")

    def __str__(self):
        return f"{self.event_type or 'unknown'} - {self.created_at}"
