import logging

from celery import shared_task

from .escrow_service import EscrowService

logger = logging.getLogger(__name__)


@shared_task
def auto_release_payments_task():
    """
    Hourly sweep releasing escrow of delivered transactions past the grace period.

    Failures are logged; the next scheduled run picks up whatever is still due.
    """
    logger.info("Running auto-release payment check...")
    try:
        return EscrowService.auto_release_payments()
    except Exception as e:
        logger.exception(f"Auto-release sweep failed: {e}")
        return {'released': 0, 'failed': 0, 'error': str(e)}
