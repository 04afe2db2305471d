"""Mapping between API payloads (camelCase) and Quote model fields.

This is the only place where field names are translated; services and
views never spell out the two conventions side by side.
"""

from django.conf import settings

from core.exceptions import ValidationError

# API key -> model field, for the plain text fields a client may set.
EDITABLE_FIELDS = {
    'customerName': 'customer_name',
    'customerEmail': 'customer_email',
    'customerPhone': 'customer_phone',
    'customerCompany': 'customer_company',
    'customerCpf': 'customer_cpf',
    'customerCnpj': 'customer_cnpj',
    'customerCep': 'customer_postal_code',
    'customerAddress': 'customer_address',
    'customerNumber': 'customer_address_number',
    'customerComplement': 'customer_complement',
    'customerNeighborhood': 'customer_neighborhood',
    'customerCity': 'customer_city',
    'customerState': 'customer_state',
    'notes': 'notes',
}


def fields_from_payload(payload):
    """Model field values for the editable keys present in ``payload``.

    ``products`` is left to the service since it drives the total.
    """
    fields = {}
    for key, field in EDITABLE_FIELDS.items():
        if key not in payload:
            continue
        value = payload[key]
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"'{key}' must be a string")
        fields[field] = value or None
    if 'paymentMethod' in payload:
        payment = payload['paymentMethod']
        if payment is not None and not isinstance(payment, dict):
            raise ValidationError("'paymentMethod' must be an object")
        fields['payment_method'] = payment or None
    return fields


def signature_url(token):
    if token is None:
        return None
    return f"{settings.APP_BASE_URL.rstrip('/')}/sign/{token}"


def link_to_dict(quote):
    return {
        'signatureLink': signature_url(quote.signature_token),
        'token': quote.signature_token,
        'expiresAt': quote.expires_at,
        'version': quote.signature_link_version,
    }


def quote_to_dict(quote):
    data = {api_key: getattr(quote, field) for api_key, field in EDITABLE_FIELDS.items()}
    data.update({
        'id': quote.pk,
        'quoteNumber': quote.quote_number,
        'products': quote.products,
        'totalPrice': quote.total_price,
        'status': quote.status,
        'createdById': quote.created_by_id,
        'createdByName': quote.created_by_name,
        'createdAt': quote.created_at,
        'updatedAt': quote.updated_at,
        'expiresAt': quote.expires_at,
        'signatureLink': signature_url(quote.signature_token),
        'signatureLinkCreatedAt': quote.signature_link_created_at,
        'signatureLinkVersion': quote.signature_link_version,
        'signedAt': quote.signed_at,
        'signatureData': quote.signature_data,
        'rejectedAt': quote.rejected_at,
        'rejectionReason': quote.rejection_reason,
        'convertedToOrderId': quote.converted_to_order_id,
        'paymentMethod': quote.payment_method,
    })
    if hasattr(quote, 'view_count'):
        data['viewCount'] = quote.view_count
        data['lastViewedAt'] = quote.last_viewed_at
    return data


def public_quote_to_dict(quote):
    """Customer-facing projection: no internal ids, no creator identity."""
    return {
        'quoteNumber': quote.quote_number,
        'customerName': quote.customer_name,
        'customerEmail': quote.customer_email,
        'customerPhone': quote.customer_phone,
        'customerCompany': quote.customer_company,
        'products': quote.products,
        'totalPrice': quote.total_price,
        'notes': quote.notes,
        'paymentMethod': quote.payment_method,
        'expiresAt': quote.expires_at,
        'status': quote.status,
    }


def view_to_dict(view):
    return {
        'id': view.pk,
        'quoteId': view.quote_id,
        'viewedAt': view.viewed_at,
        'ipAddress': view.ip_address,
        'userAgent': view.user_agent,
        'geolocation': view.geolocation,
    }
