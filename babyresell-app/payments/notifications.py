"""
Transaction emails sent to buyers and sellers

Mail failures are logged and never interrupt the payment flow.
"""
import logging

from django.conf import settings
from django.core.mail import send_mail

from settings.models import SiteSetting

logger = logging.getLogger(__name__)


def _alerts_enabled():
    notifications = SiteSetting.get_settings().section('notifications')
    return notifications['emailNotifications'] and notifications['transactionAlerts']


def _send(subject, message, recipients):
    recipients = [email for email in recipients if email]
    if not recipients or not _alerts_enabled():
        return False
    try:
        send_mail(
            subject=subject,
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=recipients,
        )
        return True
    except Exception as e:
        logger.exception(f"Failed to send '{subject}' to {', '.join(recipients)}: {e}")
        return False


def notify_purchase(transaction):
    item = transaction.item.title
    _send(
        f"Your purchase of {item}",
        f"Thanks for your purchase! Your payment of ${transaction.amount} for {item} is held "
        f"securely until you confirm delivery.",
        [transaction.buyer.email],
    )
    _send(
        f"{item} has sold",
        f"Good news! {transaction.buyer.username} bought {item}. Please ship it and add the "
        f"tracking number. You will receive ${transaction.seller_payout} once delivery is confirmed.",
        [transaction.seller.email],
    )


def notify_shipped(transaction):
    carrier = transaction.get_carrier_display() if transaction.carrier else 'the carrier'
    _send(
        f"{transaction.item.title} is on its way",
        f"{transaction.item.title} was shipped with {carrier}. "
        f"Tracking number: {transaction.tracking_number or 'not provided'}.",
        [transaction.buyer.email],
    )


def notify_delivered(transaction):
    hours = getattr(settings, 'ESCROW_AUTO_RELEASE_HOURS', 72)
    _send(
        f"{transaction.item.title} was delivered",
        f"{transaction.item.title} was marked as delivered. Please confirm delivery or open a "
        f"dispute; payment is released to the seller automatically after {hours} hours.",
        [transaction.buyer.email],
    )


def notify_payment_released(transaction):
    _send(
        f"Payment released for {transaction.item.title}",
        f"The payment for {transaction.item.title} was released. "
        f"Your payout: ${transaction.seller_payout}.",
        [transaction.seller.email],
    )


def notify_dispute(transaction):
    recipients = [transaction.buyer.email, transaction.seller.email]
    recipients.extend(email for _name, email in getattr(settings, 'ADMINS', []))
    _send(
        f"Dispute opened on transaction #{transaction.pk}",
        f"A dispute was opened for {transaction.item.title}. "
        f"Reason: {transaction.get_dispute_reason_display() or 'unspecified'}. "
        f"Funds stay on hold until the dispute is resolved.",
        recipients,
    )


def notify_refund(transaction):
    _send(
        f"Refund for {transaction.item.title}",
        f"Your payment of ${transaction.amount} for {transaction.item.title} was refunded.",
        [transaction.buyer.email],
    )
