"""Delivery of quote outcome notifications (email and webhook).

These functions do the actual I/O and are run from Celery tasks; they
report failure through their return value and the log, never by raising
into the signature flow.
"""

import json
import logging
from decimal import Decimal

import requests
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import get_connection, send_mail
from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone

from quotes.serializers import quote_to_dict

logger = logging.getLogger(__name__)

EVENT_SIGNED = 'quote.signed'
EVENT_REJECTED = 'quote.rejected'


def format_currency(value):
    amount = f"{Decimal(value):,.2f}"
    return 'R$ ' + amount.replace(',', '_').replace('.', ',').replace('_', '.')


def _line_items_text(quote):
    lines = []
    for item in quote.products:
        line = f"- {item.get('name')} x {item.get('quantity')}: {format_currency(item.get('subtotal', 0))}"
        if item.get('finishing'):
            line += f" (acabamento: {item['finishing']})"
        lines.append(line)
    return '\n'.join(lines)


def approved_email(quote):
    subject = f"Orçamento {quote.quote_number} aprovado - {quote.customer_name}"
    body = '\n'.join([
        f"O orçamento {quote.quote_number} foi aprovado pelo cliente.",
        '',
        f"Cliente: {quote.customer_name}",
        f"Empresa: {quote.customer_company or '-'}",
        f"Email: {quote.customer_email or '-'}",
        f"Telefone: {quote.customer_phone or '-'}",
        f"Assinado em: {quote.signed_at.isoformat() if quote.signed_at else '-'}",
        '',
        'Itens:',
        _line_items_text(quote),
        '',
        f"Total: {format_currency(quote.total_price)}",
    ])
    return subject, body


def rejected_email(quote):
    subject = f"Orçamento {quote.quote_number} recusado - {quote.customer_name}"
    body = '\n'.join([
        f"O orçamento {quote.quote_number} foi recusado pelo cliente.",
        '',
        f"Cliente: {quote.customer_name}",
        f"Recusado em: {quote.rejected_at.isoformat() if quote.rejected_at else '-'}",
        f"Motivo: {quote.rejection_reason or 'não informado'}",
        '',
        f"Total: {format_currency(quote.total_price)}",
    ])
    return subject, body


def creator_email(quote):
    """Address of the staff member who created the quote, if one is known."""
    if not quote.created_by_id:
        return None
    user_model = get_user_model()
    try:
        user = user_model.objects.filter(pk=quote.created_by_id).first()
    except (ValueError, TypeError):
        return None
    if user is None:
        return None
    if user.email:
        return user.email
    username = user.get_username()
    return username if '@' in username else None


def _send(subject, body, recipients):
    if not settings.EMAIL_ENABLED:
        logger.info("Email disabled, not sending '%s'", subject)
        return False
    if not recipients:
        logger.warning("No recipients for '%s'", subject)
        return False
    try:
        connection = get_connection(timeout=settings.EMAIL_TIMEOUT)
        send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, recipients, connection=connection)
    except Exception:
        logger.exception("Failed to send '%s' to %s", subject, ', '.join(recipients))
        return False
    logger.info("Sent '%s' to %s", subject, ', '.join(recipients))
    return True


def send_approved_email(quote):
    subject, body = approved_email(quote)
    return _send(subject, body, list(settings.PRODUCTION_EMAILS))


def send_rejected_email(quote):
    recipient = creator_email(quote)
    if recipient is None:
        logger.warning("Quote %s has no creator email; rejection not mailed", quote.quote_number)
        return False
    subject, body = rejected_email(quote)
    return _send(subject, body, [recipient])


def webhook_payload(quote, event):
    data = quote_to_dict(quote)
    return {
        'event': event,
        'timestamp': timezone.now(),
        'data': data,
    }


def webhook_url(event):
    if event == EVENT_REJECTED:
        return settings.WEBHOOK_QUOTE_REJECTED
    return settings.WEBHOOK_QUOTE_SIGNED


def post_webhook(quote, event):
    url = webhook_url(event)
    if not url:
        logger.debug("No webhook configured for %s", event)
        return False

    body = json.dumps(webhook_payload(quote, event), cls=DjangoJSONEncoder)
    try:
        response = requests.post(
            url,
            data=body,
            headers={'Content-Type': 'application/json', 'X-Quote-Event': event},
            timeout=settings.WEBHOOK_TIMEOUT,
        )
        response.raise_for_status()
    except requests.RequestException as exc:
        logger.error("Webhook %s for quote %s failed: %s", event, quote.quote_number, exc)
        return False
    logger.info("Webhook %s delivered for quote %s (%d)", event, quote.quote_number, response.status_code)
    return True
