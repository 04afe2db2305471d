import logging

from celery import shared_task

from quotes import notifications
from quotes.models import Quote

logger = logging.getLogger(__name__)


def _load(quote_id):
    quote = Quote.objects.filter(pk=quote_id).first()
    if quote is None:
        logger.warning("Quote %s vanished before its notification was sent", quote_id)
    return quote


@shared_task(ignore_result=True)
def send_quote_approved_email(quote_id):
    quote = _load(quote_id)
    if quote is None:
        return False
    return notifications.send_approved_email(quote)


@shared_task(ignore_result=True)
def send_quote_rejected_email(quote_id):
    quote = _load(quote_id)
    if quote is None:
        return False
    return notifications.send_rejected_email(quote)


@shared_task(ignore_result=True)
def post_quote_webhook(quote_id, event):
    quote = _load(quote_id)
    if quote is None:
        return False
    return notifications.post_webhook(quote, event)
