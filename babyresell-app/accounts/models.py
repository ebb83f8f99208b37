from decimal import Decimal

from django.contrib.auth.models import User
from django.core.validators import MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _


class Profile(models.Model):
    user = models.OneToOneField(
        User, on_delete=models.CASCADE, related_name='profile')
    bio = models.TextField(blank=True, null=True)
    phone = models.CharField(max_length=30, blank=True, null=True)
    location = models.CharField(max_length=100, blank=True, null=True)
    profile_image = models.URLField(max_length=500, blank=True, null=True)

    # Stripe Connect account receiving payouts
    stripe_account_id = models.CharField(max_length=100, blank=True, null=True)
    charges_enabled = models.BooleanField(default=False)
    payouts_enabled = models.BooleanField(default=False)
    details_submitted = models.BooleanField(default=False)

    NONE = 'none'
    ACTIVE = 'active'
    CANCELLED = 'cancelled'
    SUBSCRIPTION_CHOICES = [
        (NONE, _('No subscription')),
        (ACTIVE, _('Active')),
        (CANCELLED, _('Cancelled')),
    ]
    subscription_status = models.CharField(
        max_length=20, choices=SUBSCRIPTION_CHOICES, default=NONE)

    date = models.DateTimeField(auto_now_add=True)
    date_update = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.user.username

    @property
    def is_premium_seller(self):
        return self.subscription_status == self.ACTIVE


class BabyItem(models.Model):
    """An item listed for sale by a parent"""
    seller = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name='baby_items', verbose_name=_("Seller"))
    title = models.CharField(max_length=100, verbose_name=_("Title"))
    description = models.TextField(max_length=1000, verbose_name=_("Description"))
    price = models.DecimalField(
        max_digits=10, decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))], verbose_name=_("Price"))
    currency = models.CharField(max_length=3, default='USD', verbose_name=_("Currency"))

    CATEGORY_CHOICES = [
        ('Clothing', 'Clothing'),
        ('Footwear', 'Footwear'),
        ('Toys', 'Toys'),
        ('Feeding', 'Feeding'),
        ('Diapering', 'Diapering'),
        ('Bathing', 'Bathing'),
        ('Nursery', 'Nursery'),
        ('Gear', 'Gear'),
        ('Strollers', 'Strollers'),
        ('Car Seats', 'Car Seats'),
        ('Health & Safety', 'Health & Safety'),
        ('Books', 'Books'),
        ('Other', 'Other'),
    ]
    category = models.CharField(max_length=30, choices=CATEGORY_CHOICES, verbose_name=_("Category"))
    age_group = models.CharField(max_length=30, blank=True, default='', verbose_name=_("Age group"))

    CONDITION_CHOICES = [
        ('New', 'New'),
        ('Like New', 'Like New'),
        ('Good', 'Good'),
        ('Fair', 'Fair'),
        ('Poor', 'Poor'),
    ]
    condition = models.CharField(
        max_length=20, choices=CONDITION_CHOICES, default='Good', verbose_name=_("Condition"))

    ACTIVE = 'active'
    PENDING = 'pending'
    SOLD = 'sold'
    INACTIVE = 'inactive'
    STATUS_CHOICES = [
        (ACTIVE, _('Active')),
        (PENDING, _('Pending sale')),
        (SOLD, _('Sold')),
        (INACTIVE, _('Inactive')),
    ]
    status = models.CharField(
        max_length=13, choices=STATUS_CHOICES, default=ACTIVE, verbose_name=_("Status"))

    # Shipping
    local_pickup = models.BooleanField(default=True, verbose_name=_("Local pickup"))
    shipping = models.BooleanField(default=False, verbose_name=_("Ships"))
    shipping_cost = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal('0'), verbose_name=_("Shipping cost"))

    images = models.JSONField(default=list, blank=True, verbose_name=_("Image URLs"))

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Created"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("Updated"))

    class Meta:
        ordering = ('-created_at',)
        verbose_name = _("Baby item")
        verbose_name_plural = _("Baby items")
        indexes = [
            models.Index(fields=['status'], name='babyitem_status_idx'),
            models.Index(fields=['seller', 'status'], name='babyitem_seller_status_idx'),
        ]

    def __str__(self):
        return f"{self.title} - {self.seller.username}"

    def is_available(self):
        return self.status == self.ACTIVE and self.price > 0

    def get_shipping_cost(self):
        if self.shipping:
            return self.shipping_cost or Decimal('0')
        return Decimal('0')
