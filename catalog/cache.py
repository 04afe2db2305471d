import logging
from datetime import timedelta

from django.contrib.postgres.search import SearchQuery, SearchVector
from django.db import connection, transaction
from django.db.models import Max, Q
from django.utils import timezone

from catalog.models import CachedCustomer, CachedProduct

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
SEARCH_CONFIG = 'portuguese'


class CatalogCache:
    """Read/write access to the local mirror of the external catalog.

    Writes are local only; nothing here talks to the upstream shop.
    """

    def upsert_product(self, record):
        return self._upsert(CachedProduct, record)

    def upsert_customer(self, record):
        return self._upsert(CachedCustomer, record)

    def _upsert(self, model, record):
        fields = dict(record)
        external_id = fields.pop('id')
        fields['synced_at'] = timezone.now()
        fields['is_active'] = True
        with transaction.atomic():
            _, created = model.objects.update_or_create(id=external_id, defaults=fields)
            if connection.vendor == 'postgresql':
                model.objects.filter(id=external_id).update(search_vector=search_vector(model))
        return 'created' if created else 'updated'

    def cleanup(self, days_to_keep=30):
        """Mark rows not seen by a sync within the window as inactive."""
        cutoff = timezone.now() - timedelta(days=days_to_keep)
        cleaned = 0
        for model in (CachedProduct, CachedCustomer):
            cleaned += model.objects.filter(is_active=True, synced_at__lt=cutoff).update(is_active=False)
        logger.info("Cache cleanup marked %d rows inactive (older than %d days)", cleaned, days_to_keep)
        return cleaned

    def get_product(self, product_id):
        return CachedProduct.objects.filter(id=product_id).first()

    def get_products(self, ids, include_inactive=False):
        if not ids:
            return []
        qs = CachedProduct.objects.filter(id__in=ids)
        if not include_inactive:
            qs = qs.filter(is_active=True)
        return list(qs)

    def search_products(self, search=None, sku=None, category=None,
                        include_inactive=False, limit=DEFAULT_PAGE_SIZE, offset=0):
        qs = self._product_queryset(search, sku, category, include_inactive).order_by('name', 'id')
        return list(qs[offset:offset + limit])

    def count_products(self, search=None, sku=None, category=None, include_inactive=False):
        return self._product_queryset(search, sku, category, include_inactive).count()

    def _product_queryset(self, search, sku, category, include_inactive):
        qs = CachedProduct.objects.all()
        if not include_inactive:
            qs = qs.filter(is_active=True)
        if search:
            qs = _text_search(qs, search, CachedProduct.SEARCH_FIELDS)
        if sku:
            qs = qs.filter(sku__icontains=sku)
        if category:
            qs = _category_filter(qs, category)
        return qs

    def validate_products(self, product_ids):
        """Partition ids into valid (active), invalid (inactive) and missing."""
        requested = list(dict.fromkeys(product_ids))
        active_by_id = dict(
            CachedProduct.objects.filter(id__in=requested).values_list('id', 'is_active')
        )
        result = {'valid': [], 'invalid': [], 'missing': []}
        for product_id in requested:
            if product_id not in active_by_id:
                result['missing'].append(product_id)
            elif active_by_id[product_id]:
                result['valid'].append(product_id)
            else:
                result['invalid'].append(product_id)
        return result

    def get_customer(self, customer_id):
        return CachedCustomer.objects.filter(id=customer_id).first()

    def get_customers(self, ids, include_inactive=False):
        if not ids:
            return []
        qs = CachedCustomer.objects.filter(id__in=ids)
        if not include_inactive:
            qs = qs.filter(is_active=True)
        return list(qs)

    def get_customer_by_email(self, email):
        return CachedCustomer.objects.filter(email__iexact=email, is_active=True).first()

    def search_customers(self, search=None, email=None, include_inactive=False,
                         limit=DEFAULT_PAGE_SIZE, offset=0):
        qs = self._customer_queryset(search, email, include_inactive).order_by('email', 'id')
        return list(qs[offset:offset + limit])

    def count_customers(self, search=None, email=None, include_inactive=False):
        return self._customer_queryset(search, email, include_inactive).count()

    def _customer_queryset(self, search, email, include_inactive):
        qs = CachedCustomer.objects.all()
        if not include_inactive:
            qs = qs.filter(is_active=True)
        if search:
            qs = _text_search(qs, search, CachedCustomer.SEARCH_FIELDS)
        if email:
            qs = qs.filter(email__icontains=email)
        return qs

    def stats(self):
        return {
            'products': _entity_stats(CachedProduct),
            'customers': _entity_stats(CachedCustomer),
        }

    def is_empty(self):
        return (
            not CachedProduct.objects.filter(is_active=True).exists()
            and not CachedCustomer.objects.filter(is_active=True).exists()
        )

    def latest_source_modified(self, entity):
        model = CachedProduct if entity == 'products' else CachedCustomer
        return model.objects.aggregate(latest=Max('source_modified_at'))['latest']


def _entity_stats(model):
    total = model.objects.count()
    active = model.objects.filter(is_active=True).count()
    last_sync = model.objects.aggregate(latest=Max('synced_at'))['latest']
    return {
        'total': total,
        'active': active,
        'inactive': total - active,
        'lastSync': last_sync,
    }


def search_vector(model):
    return SearchVector(*model.SEARCH_FIELDS, config=SEARCH_CONFIG)


def _text_search(qs, search, fields):
    terms = search.split()
    if not terms:
        return qs
    if connection.vendor == 'postgresql':
        return qs.filter(search_vector=SearchQuery(search, search_type='plain', config=SEARCH_CONFIG))
    # Other backends: every term must appear in at least one field.
    for term in terms:
        term_q = Q()
        for field in fields:
            term_q |= Q(**{f'{field}__icontains': term})
        qs = qs.filter(term_q)
    return qs


def _category_filter(qs, category):
    if connection.features.supports_json_field_contains:
        return qs.filter(categories__contains=[{'name': category}])
    wanted = category.lower()
    matching_ids = [
        product_id
        for product_id, categories in qs.values_list('id', 'categories')
        if any(
            isinstance(c, dict) and str(c.get('name', '')).lower() == wanted
            for c in categories or []
        )
    ]
    return qs.filter(id__in=matching_ids)
