"""
Marketplace fee calculation
"""
from decimal import Decimal, ROUND_HALF_UP

from settings.models import SiteSetting

# Stripe card pricing: 2.9% + 0.30 per charge
STRIPE_PERCENT = Decimal('2.9')
STRIPE_FIXED = Decimal('0.30')

CENT = Decimal('0.01')


def to_cents(amount):
    """Decimal amount to the integer number of cents Stripe expects"""
    return int((Decimal(str(amount)) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def _round(value):
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def platform_fee_percent(is_premium_seller=False, site_setting=None):
    site_setting = site_setting or SiteSetting.get_settings()
    if is_premium_seller:
        return site_setting.premium_fee_percent
    return site_setting.transaction_fee_percent


def calculate_fees(price, is_premium_seller=False, site_setting=None):
    """
    Split an item price between the seller, the platform and Stripe.

    Returns a dict of Decimals rounded to cents:
        item_price, stripe_fee, platform_fee, platform_fee_percentage,
        net_revenue, seller_payout
    """
    price = Decimal(str(price))
    percent = platform_fee_percent(is_premium_seller, site_setting)

    stripe_fee = price * STRIPE_PERCENT / 100 + STRIPE_FIXED
    platform_fee = _round(price * percent / 100)

    return {
        'item_price': _round(price),
        'stripe_fee': _round(stripe_fee),
        'platform_fee': platform_fee,
        'platform_fee_percentage': percent,
        'net_revenue': _round(platform_fee - stripe_fee),
        'seller_payout': _round(price - platform_fee),
    }
