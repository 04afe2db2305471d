import json
import logging
from datetime import timezone as dt_timezone
from decimal import Decimal, InvalidOperation

from django.utils import timezone
from django.utils.dateparse import parse_datetime

logger = logging.getLogger(__name__)

TIER_PRICING_META_KEY = 'precos_por_quantidade'


def to_decimal(value):
    """WooCommerce sends prices as strings; '' means no price."""
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise ValueError(f"non-numeric price: {value!r}")
    try:
        return Decimal(str(value)).quantize(Decimal('0.01'))
    except InvalidOperation:
        raise ValueError(f"non-numeric price: {value!r}")


def parse_source_datetime(raw):
    value = raw.get('date_modified_gmt') or raw.get('date_modified')
    if not value:
        return timezone.now()
    parsed = parse_datetime(value)
    if parsed is None:
        return timezone.now()
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


def _valid_id(raw):
    external_id = raw.get('id')
    return isinstance(external_id, int) and not isinstance(external_id, bool) and external_id > 0


def validate_product(raw):
    """Returns (is_valid, reason)."""
    if not _valid_id(raw):
        return False, f"invalid id {raw.get('id')!r}"
    external_id = raw['id']

    if not raw.get('name'):
        return False, f"{external_id}: missing name"

    for field in ('price', 'regular_price'):
        try:
            to_decimal(raw.get(field))
        except ValueError:
            return False, f"{external_id}: non-numeric {field}"

    return True, ""


def validate_customer(raw):
    """Returns (is_valid, reason)."""
    if not _valid_id(raw):
        return False, f"invalid id {raw.get('id')!r}"
    if not raw.get('email'):
        return False, f"{raw['id']}: missing email"
    return True, ""


def extract_tier_pricing(meta_data):
    for meta in meta_data or []:
        if not isinstance(meta, dict) or meta.get('key') != TIER_PRICING_META_KEY:
            continue
        value = meta.get('value')
        if not value:
            return None
        if isinstance(value, str):
            try:
                return json.loads(value)
            except ValueError:
                logger.warning("Unparsable %s value: %.80s", TIER_PRICING_META_KEY, value)
                return None
        return value
    return None


def transform_product(raw):
    stock_quantity = raw.get('stock_quantity')
    return {
        'id': raw['id'],
        'name': raw['name'],
        'product_type': raw.get('type') or 'simple',
        'sku': raw.get('sku') or None,
        'price': to_decimal(raw.get('price')),
        'regular_price': to_decimal(raw.get('regular_price')),
        'description': raw.get('description') or '',
        'short_description': raw.get('short_description') or '',
        'stock_status': raw.get('stock_status') or None,
        'stock_quantity': int(stock_quantity) if stock_quantity is not None else None,
        'manage_stock': bool(raw.get('manage_stock')),
        'images': raw.get('images') or [],
        'categories': raw.get('categories') or [],
        'attributes': raw.get('attributes') or [],
        'variations': raw.get('variations') or [],
        'meta_data': raw.get('meta_data') or [],
        'tier_pricing': extract_tier_pricing(raw.get('meta_data')),
        'source_modified_at': parse_source_datetime(raw),
    }


def transform_customer(raw):
    return {
        'id': raw['id'],
        'email': raw['email'],
        'first_name': raw.get('first_name') or None,
        'last_name': raw.get('last_name') or None,
        'username': raw.get('username') or None,
        'role': raw.get('role') or None,
        'billing': raw.get('billing') or {},
        'shipping': raw.get('shipping') or {},
        'source_modified_at': parse_source_datetime(raw),
    }


def deduplicate(records):
    seen = {}
    for record in records:
        seen[record.get('id')] = record
    return list(seen.values())
