import logging
import uuid

from django.db import DatabaseError, transaction
from django.utils import timezone

from catalog.cache import CatalogCache
from core.exceptions import ConflictError, ExpiredError, NotFoundError, ValidationError
from quotes.dispatch import QuoteNotifier
from quotes.models import Quote, QuoteView
from quotes.serializers import public_quote_to_dict

logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 2000

# Statuses reported back to the customer instead of the quote itself.
SETTLED = {
    Quote.STATUS_APPROVED: ('ALREADY_SIGNED', 'This quote has already been signed'),
    Quote.STATUS_CONVERTED: ('ALREADY_SIGNED', 'This quote has already been signed'),
    Quote.STATUS_REJECTED: ('REJECTED', 'This quote was rejected'),
}


class SignatureService:
    """The customer side of a quote: opened, approved or rejected via its link."""

    def __init__(self, cache=None, notifier=None):
        self.cache = cache or CatalogCache()
        self.notifier = notifier or QuoteNotifier()

    def _lookup(self, token):
        try:
            token = uuid.UUID(str(token))
        except ValueError:
            raise NotFoundError("Quote not found or invalid link", success=False)
        quote = Quote.objects.filter(signature_token=token).first()
        if quote is None:
            raise NotFoundError("Quote not found or invalid link", success=False)
        return quote

    def get_by_token(self, token):
        quote = self._lookup(token)
        if quote.status in SETTLED:
            code, message = SETTLED[quote.status]
            return {
                'code': code,
                'message': message,
                'quoteNumber': quote.quote_number,
                'signedAt': quote.signed_at,
                'rejectedAt': quote.rejected_at,
            }
        if quote.link_expired():
            raise ExpiredError("This link has expired", expiredAt=quote.expires_at)
        return public_quote_to_dict(quote)

    def record_view(self, token, ip_address=None, user_agent=None, geolocation=None):
        """Log that the customer opened the page. Failing to log is not an error."""
        quote = self._lookup(token)
        try:
            with transaction.atomic():
                QuoteView.objects.create(
                    quote=quote,
                    ip_address=(ip_address or '')[:45] or None,
                    user_agent=user_agent,
                    geolocation=geolocation,
                )
        except DatabaseError:
            logger.exception("Could not record view of quote %s", quote.quote_number)
            return False
        return True

    def _check_actionable(self, quote, now):
        if quote.link_expired(now):
            raise ExpiredError("This link has expired", expiredAt=quote.expires_at)
        if quote.status != Quote.STATUS_SENT:
            raise ConflictError(
                "This quote can no longer be signed or rejected",
                currentStatus=quote.status,
            )

    def _transition(self, quote, **changes):
        """Apply ``changes`` only if the quote is still awaiting this same link."""
        updated = Quote.objects.filter(
            pk=quote.pk,
            status=Quote.STATUS_SENT,
            signature_token=quote.signature_token,
        ).update(updated_at=timezone.now(), **changes)
        if not updated:
            quote.refresh_from_db()
            raise ConflictError(
                "This quote can no longer be signed or rejected",
                currentStatus=quote.status,
            )
        quote.refresh_from_db()
        return quote

    def confirm(self, token, ip_address=None, user_agent=None, geolocation=None):
        quote = self._lookup(token)
        now = timezone.now()
        self._check_actionable(quote, now)

        signature_data = {
            'ip': ip_address,
            'userAgent': user_agent,
            'timestamp': now.isoformat(),
            'geolocation': geolocation,
            'productValidation': self._validate_products(quote),
        }
        with transaction.atomic():
            self._transition(quote, status=Quote.STATUS_APPROVED, signed_at=now, signature_data=signature_data)
            self.notifier.quote_approved(quote)
        logger.info("Quote %s approved by customer (%s)", quote.quote_number, ip_address)
        return quote

    def reject(self, token, reason=None, ip_address=None, user_agent=None):
        if reason is not None:
            if not isinstance(reason, str):
                raise ValidationError("reason must be a string")
            if len(reason) > MAX_REASON_LENGTH:
                raise ValidationError(f"reason must be at most {MAX_REASON_LENGTH} characters")
            reason = reason.strip() or None

        quote = self._lookup(token)
        now = timezone.now()
        self._check_actionable(quote, now)

        with transaction.atomic():
            self._transition(
                quote,
                status=Quote.STATUS_REJECTED,
                rejected_at=now,
                rejection_reason=reason,
                signature_data={'ip': ip_address, 'userAgent': user_agent, 'timestamp': now.isoformat()},
            )
            self.notifier.quote_rejected(quote)
        logger.info("Quote %s rejected by customer (%s)", quote.quote_number, ip_address)
        return quote

    def _validate_products(self, quote):
        """Snapshot of which quoted products still exist in the catalog cache.

        Informational only: a cache failure never blocks the signature.
        """
        ids = []
        unknown = []
        for item in quote.products:
            product_id = item.get('productId', item.get('id'))
            if product_id is None:
                continue
            try:
                ids.append(int(product_id))
            except (TypeError, ValueError):
                unknown.append(product_id)
        try:
            result = self.cache.validate_products(ids)
        except Exception as exc:
            logger.warning("Product validation skipped for quote %s: %s", quote.quote_number, exc)
            return {'valid': [], 'invalid': [], 'missing': ids + unknown, 'error': str(exc)}
        result['missing'] = list(result['missing']) + unknown
        return result
