import logging

from catalog.cache import CatalogCache
from catalog.models import SyncRun
from catalog.serializers import customer_to_dict, product_to_dict
from catalog.sync import build_sync_engine
from catalog.tasks import run_catalog_sync
from core.exceptions import NotFoundError, ValidationError
from core.http import ApiView, json_response, query_bool, query_int

logger = logging.getLogger(__name__)

SYNC_KINDS = {choice for choice, _ in SyncRun.KIND_CHOICES}
MAX_PAGE_SIZE = 500


class SyncTriggerView(ApiView):
    """Start a catalog sync in the background and return immediately."""

    sync_task = run_catalog_sync
    error_message = 'Failed to start catalog sync'

    def post(self, request):
        body = self.json_body(request)
        kind = body.get('syncType', SyncRun.KIND_INCREMENTAL)
        if kind not in SYNC_KINDS:
            raise ValidationError(f"syncType must be one of: {', '.join(sorted(SYNC_KINDS))}")
        force_full_sync = body.get('forceFullSync', False)
        if not isinstance(force_full_sync, bool):
            raise ValidationError("forceFullSync must be a boolean")

        user_id = str(request.user.pk) if request.user.is_authenticated else None
        triggered_by = 'login' if user_id else 'manual'

        self.sync_task.delay(
            kind=kind,
            triggered_by=triggered_by,
            user_id=user_id,
            force_full_sync=force_full_sync,
        )
        logger.info("Queued %s catalog sync (triggered by %s)", kind, triggered_by)
        return json_response({
            'message': 'Sync started in background',
            'syncType': kind,
            'triggeredBy': triggered_by,
        })


class SyncStatusView(ApiView):
    engine_factory = staticmethod(build_sync_engine)
    error_message = 'Failed to fetch sync status'

    def get(self, request):
        kind = request.GET.get('syncType') or None
        if kind is not None and kind not in SYNC_KINDS:
            raise ValidationError(f"syncType must be one of: {', '.join(sorted(SYNC_KINDS))}")
        engine = self.engine_factory()
        last = engine.last_run(kind)
        return json_response({
            'lastSync': last.as_dict() if last else None,
            'isStale': engine.is_cache_stale(),
        })


class CacheStatsView(ApiView):
    cache_class = CatalogCache
    error_message = 'Failed to fetch cache statistics'

    def get(self, request):
        cache = self.cache_class()
        return json_response({**cache.stats(), 'isEmpty': cache.is_empty()})


class CacheCleanupView(ApiView):
    cache_class = CatalogCache
    error_message = 'Failed to clean up cache'

    def post(self, request):
        days_to_keep = self.json_body(request).get('daysToKeep', 30)
        if not isinstance(days_to_keep, int) or isinstance(days_to_keep, bool) or days_to_keep < 0:
            raise ValidationError("daysToKeep must be a non-negative integer")
        cleaned = self.cache_class().cleanup(days_to_keep)
        return json_response({
            'message': 'Cache cleaned up',
            'cleanedCount': cleaned,
            'daysToKeep': days_to_keep,
        })


class ProductListView(ApiView):
    cache_class = CatalogCache

    def get(self, request):
        cache = self.cache_class()
        filters = {
            'search': request.GET.get('search') or None,
            'sku': request.GET.get('sku') or None,
            'category': request.GET.get('category') or None,
            'include_inactive': query_bool(request, 'includeInactive'),
        }
        products = cache.search_products(
            limit=query_int(request, 'limit', 100, minimum=1, maximum=MAX_PAGE_SIZE),
            offset=query_int(request, 'offset', 0),
            **filters,
        )
        return json_response({
            'results': [product_to_dict(p) for p in products],
            'count': cache.count_products(**filters),
        })


class ProductDetailView(ApiView):
    cache_class = CatalogCache

    def get(self, request, product_id):
        product = self.cache_class().get_product(product_id)
        if product is None:
            raise NotFoundError("Product not found in cache")
        return json_response(product_to_dict(product))


class CustomerListView(ApiView):
    cache_class = CatalogCache

    def get(self, request):
        cache = self.cache_class()
        filters = {
            'search': request.GET.get('search') or None,
            'email': request.GET.get('email') or None,
            'include_inactive': query_bool(request, 'includeInactive'),
        }
        customers = cache.search_customers(
            limit=query_int(request, 'limit', 100, minimum=1, maximum=MAX_PAGE_SIZE),
            offset=query_int(request, 'offset', 0),
            **filters,
        )
        return json_response({
            'results': [customer_to_dict(c) for c in customers],
            'count': cache.count_customers(**filters),
        })
