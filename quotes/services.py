import logging
import uuid
from datetime import datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Count, Max, Q
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from core.exceptions import ConflictError, NotFoundError, ValidationError
from quotes.models import Quote, QuoteView
from quotes.serializers import fields_from_payload

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')
MAX_AMOUNT = Decimal('10000000000')
QUOTE_NUMBER_PREFIX = 'ORC'
NUMBER_ATTEMPTS = 3

# Statuses from which a (first or fresh) signature link may be issued.
LINKABLE_STATUSES = (Quote.STATUS_DRAFT, Quote.STATUS_SENT)


def _number(item, key, index, required=True):
    value = item.get(key)
    if value is None:
        if required:
            raise ValidationError(f"products[{index}].{key} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"products[{index}].{key} must be a number")
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"products[{index}].{key} must be a number")
    if not number.is_finite():
        raise ValidationError(f"products[{index}].{key} must be a number")
    return number


def _amount(value, label):
    # Amounts must fit DecimalField(max_digits=12, decimal_places=2).
    if value >= MAX_AMOUNT:
        raise ValidationError(f"{label} is too large")
    amount = value.quantize(CENTS, rounding=ROUND_HALF_UP)
    if amount >= MAX_AMOUNT:
        raise ValidationError(f"{label} is too large")
    return amount


def validate_line_items(products):
    """Check the line items of a quote and return them as plain dicts.

    Every item needs a name, a positive quantity and either a subtotal or a
    unit price; a missing subtotal is derived from price x quantity. Price and
    subtotal come back as Decimals rounded to cents.
    """
    if not isinstance(products, list) or not products:
        raise ValidationError("A quote needs at least one product")

    items = []
    for index, raw in enumerate(products):
        if not isinstance(raw, dict):
            raise ValidationError(f"products[{index}] must be an object")
        item = dict(raw)
        if not isinstance(item.get('name'), str) or not item['name'].strip():
            raise ValidationError(f"products[{index}].name is required")

        quantity = _number(item, 'quantity', index)
        if quantity <= 0:
            raise ValidationError(f"products[{index}].quantity must be positive")
        price = _number(item, 'price', index, required=False)
        if price is not None:
            if price < 0:
                raise ValidationError(f"products[{index}].price must not be negative")
            item['price'] = _amount(price, f"products[{index}].price")

        subtotal = _number(item, 'subtotal', index, required=price is None)
        if subtotal is None:
            subtotal = price * quantity
        if subtotal < 0:
            raise ValidationError(f"products[{index}].subtotal must not be negative")
        item['subtotal'] = _amount(subtotal, f"products[{index}].subtotal")
        items.append(item)
    return items


def compute_total(items):
    total = sum((Decimal(str(item['subtotal'])) for item in items), Decimal('0'))
    return _amount(total, "totalPrice")


def _parse_bound(value, name, end=False):
    if not value:
        return None
    moment = parse_datetime(value)
    if moment is None:
        day = parse_date(value)
        if day is None:
            raise ValidationError(f"'{name}' must be an ISO date or datetime")
        moment = datetime.combine(day, time.max if end else time.min)
    if timezone.is_naive(moment):
        moment = timezone.make_aware(moment, timezone.get_current_timezone())
    return moment


class QuoteService:
    """Staff-side operations on quotes.

    Every state transition locks the quote row for the duration of the
    change, so concurrent edits and link issuance serialize per quote.
    """

    def __init__(self, link_ttl_days=None):
        if link_ttl_days is None:
            link_ttl_days = settings.QUOTE_LINK_TTL_DAYS
        self.link_ttl = timedelta(days=link_ttl_days)

    def create(self, data, created_by_id=None, created_by_name=None):
        fields = fields_from_payload(data)
        if not fields.get('customer_name'):
            raise ValidationError("Customer name and products are required")
        items = validate_line_items(data.get('products'))

        for attempt in range(1, NUMBER_ATTEMPTS + 1):
            try:
                with transaction.atomic():
                    quote = Quote(
                        **fields,
                        products=items,
                        total_price=compute_total(items),
                        status=Quote.STATUS_DRAFT,
                        created_by_id=created_by_id,
                        created_by_name=created_by_name,
                    )
                    quote.quote_number = self._next_quote_number(timezone.now().year)
                    quote.save()
                break
            except IntegrityError:
                # Two creations raced for the same number.
                if attempt == NUMBER_ATTEMPTS:
                    raise
                logger.warning("Quote number collision, retrying (attempt %d)", attempt)

        logger.info("Quote %s created by %s", quote.quote_number, created_by_name or 'anonymous')
        return quote

    def _next_quote_number(self, year):
        prefix = f"{QUOTE_NUMBER_PREFIX}-{year}-"
        last = (
            Quote.objects
            .filter(quote_number__startswith=prefix)
            .order_by('-quote_number')
            .values_list('quote_number', flat=True)
            .first()
        )
        sequence = 1
        if last:
            try:
                sequence = int(last[len(prefix):]) + 1
            except ValueError:
                sequence = Quote.objects.filter(quote_number__startswith=prefix).count() + 1
        return f"{prefix}{sequence:05d}"

    def get(self, quote_id):
        quote = Quote.objects.filter(pk=quote_id).first()
        if quote is None:
            raise NotFoundError("Quote not found")
        return quote

    def _locked(self, quote_id):
        quote = Quote.objects.select_for_update().filter(pk=quote_id).first()
        if quote is None:
            raise NotFoundError("Quote not found")
        return quote

    def list(self, status=None, search=None, start_date=None, end_date=None, created_by_id=None):
        qs = Quote.objects.annotate(
            view_count=Count('views'),
            last_viewed_at=Max('views__viewed_at'),
        )
        if status:
            valid = {choice for choice, _ in Quote.STATUS_CHOICES}
            if status not in valid:
                raise ValidationError(f"status must be one of: {', '.join(sorted(valid))}")
            qs = qs.filter(status=status)
        if created_by_id:
            qs = qs.filter(created_by_id=created_by_id)
        if search:
            qs = qs.filter(
                Q(customer_name__icontains=search)
                | Q(quote_number__icontains=search)
                | Q(customer_email__icontains=search)
                | Q(customer_company__icontains=search)
            )
        start = _parse_bound(start_date, 'startDate')
        end = _parse_bound(end_date, 'endDate', end=True)
        if start:
            qs = qs.filter(created_at__gte=start)
        if end:
            qs = qs.filter(created_at__lte=end)
        return qs.order_by('-created_at')

    def update(self, quote_id, data):
        fields = fields_from_payload(data)
        items = validate_line_items(data['products']) if 'products' in data else None
        if 'customer_name' in fields and not fields['customer_name']:
            raise ValidationError("Customer name cannot be empty")

        with transaction.atomic():
            quote = self._locked(quote_id)
            if quote.status == Quote.STATUS_CONVERTED:
                raise ConflictError("Converted quotes cannot be edited", code='QUOTE_CONVERTED')

            for field, value in fields.items():
                setattr(quote, field, value)
            if items is not None:
                quote.products = items
                quote.total_price = compute_total(items)

            changed = bool(fields) or items is not None
            if changed and quote.status == Quote.STATUS_SENT and quote.signature_token:
                logger.warning(
                    "Quote %s edited while awaiting signature; link v%d invalidated",
                    quote.quote_number, quote.signature_link_version,
                )
                quote.signature_token = None
                quote.signature_link_created_at = None
                quote.expires_at = None
                quote.status = Quote.STATUS_DRAFT
            quote.save()
        return quote

    def generate_signature_link(self, quote_id):
        with transaction.atomic():
            quote = self._locked(quote_id)
            if quote.status not in LINKABLE_STATUSES:
                raise ConflictError(
                    f"Cannot issue a signature link for a quote in status '{quote.status}'",
                    currentStatus=quote.status,
                )
            self._issue_link(quote)
        return quote

    def regenerate_link(self, quote_id):
        with transaction.atomic():
            quote = self._locked(quote_id)
            if quote.status != Quote.STATUS_SENT:
                raise ConflictError(
                    "Only quotes awaiting signature can have their link regenerated",
                    currentStatus=quote.status,
                )
            if not quote.link_expired():
                raise ConflictError(
                    "The current signature link is still valid",
                    code='LINK_STILL_VALID',
                    expiresAt=quote.expires_at,
                )
            self._issue_link(quote)
        return quote

    def _issue_link(self, quote):
        now = timezone.now()
        quote.signature_token = uuid.uuid4()
        quote.signature_link_created_at = now
        quote.expires_at = now + self.link_ttl
        quote.signature_link_version += 1
        quote.status = Quote.STATUS_SENT
        quote.save()
        logger.info(
            "Signature link v%d issued for quote %s (expires %s)",
            quote.signature_link_version, quote.quote_number, quote.expires_at.isoformat(),
        )

    def list_views(self, quote_id):
        if not Quote.objects.filter(pk=quote_id).exists():
            raise NotFoundError("Quote not found")
        return list(QuoteView.objects.filter(quote_id=quote_id).order_by('-viewed_at', '-id'))

    def delete(self, quote_id):
        with transaction.atomic():
            quote = self._locked(quote_id)
            if quote.status == Quote.STATUS_CONVERTED:
                raise ConflictError("Converted quotes cannot be deleted", code='QUOTE_CONVERTED')
            number = quote.quote_number
            quote.delete()
        logger.info("Quote %s deleted", number)

    def mark_converted(self, quote_id, order_id):
        if order_id in (None, ''):
            raise ValidationError("orderId is required")
        with transaction.atomic():
            quote = self._locked(quote_id)
            if quote.status == Quote.STATUS_CONVERTED:
                raise ConflictError(
                    "Quote was already converted to an order",
                    code='QUOTE_CONVERTED',
                    convertedToOrderId=quote.converted_to_order_id,
                )
            quote.status = Quote.STATUS_CONVERTED
            quote.converted_to_order_id = str(order_id)
            quote.save()
        logger.info("Quote %s converted to order %s", quote.quote_number, order_id)
        return quote
