import logging
from datetime import timedelta

from django.conf import settings
from django.db import DatabaseError, DataError, IntegrityError
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from django.utils.module_loading import import_string

from catalog.cache import CatalogCache
from catalog.models import SyncRun
from catalog.transforms import (
    deduplicate,
    transform_customer,
    transform_product,
    validate_customer,
    validate_product,
)

logger = logging.getLogger(__name__)

ENTITIES_BY_KIND = {
    SyncRun.KIND_PRODUCTS: ('products',),
    SyncRun.KIND_CUSTOMERS: ('customers',),
    SyncRun.KIND_FULL: ('products', 'customers'),
    SyncRun.KIND_INCREMENTAL: ('products', 'customers'),
}

COUNTER_FIELDS = ('items_processed', 'items_created', 'items_updated', 'items_failed')

# Errors that only concern the record being written; anything else aborts the run.
RECORD_ERRORS = (IntegrityError, DataError, ValueError, TypeError, KeyError)


class SyncEngine:
    """Pulls the external catalog page by page into the local cache.

    Every invocation is recorded as a ``SyncRun``. ``sync`` never raises:
    callers observe the outcome through the returned run.
    """

    def __init__(self, source, cache=None):
        self.source = source
        self.cache = cache or CatalogCache()
        self._handlers = {
            'products': (validate_product, transform_product, self.cache.upsert_product),
            'customers': (validate_customer, transform_customer, self.cache.upsert_customer),
        }

    def sync(self, kind=SyncRun.KIND_INCREMENTAL, triggered_by='manual', user_id=None,
             force_full_sync=False, batch_size=None):
        batch_size = batch_size or settings.CATALOG_SYNC_BATCH_SIZE
        known = isinstance(kind, str) and kind in ENTITIES_BY_KIND

        run = SyncRun.objects.create(
            kind=kind if known else str(kind)[:20],
            triggered_by=triggered_by,
            user_id=user_id,
            metadata={'forceFullSync': force_full_sync, 'batchSize': batch_size, 'watermarks': {}},
        )
        logger.info("Starting %s sync #%d (triggered by %s)", kind, run.pk, triggered_by)
        if not known:
            logger.error("Sync #%d has unknown kind %r", run.pk, kind)
            self._finish(run, SyncRun.STATUS_FAILED, error_message=f"Unknown sync kind: {kind}")
            return run

        previous = None if force_full_sync else self.last_run(kind, status=SyncRun.STATUS_COMPLETED)
        marks = {}
        try:
            for entity in ENTITIES_BY_KIND[kind]:
                watermark = _watermark(previous, entity)
                self._sync_entity(run, entity, watermark, batch_size)
                marks[entity] = _max_datetime(watermark, self.cache.latest_source_modified(entity))
        except Exception as exc:
            logger.exception("Sync #%d failed", run.pk)
            try:
                self._finish(run, SyncRun.STATUS_FAILED, error_message=str(exc) or exc.__class__.__name__)
            except DatabaseError:
                logger.exception("Could not record failure of sync #%d", run.pk)
            return run

        # The watermark only moves once the whole run has succeeded.
        run.metadata['watermarks'] = {
            entity: mark.isoformat() if mark else None for entity, mark in marks.items()
        }
        run.last_synced_at = _max_datetime(*marks.values())
        self._finish(run, SyncRun.STATUS_COMPLETED)
        logger.info(
            "Sync #%d complete: processed=%d created=%d updated=%d failed=%d",
            run.pk, run.items_processed, run.items_created, run.items_updated, run.items_failed,
        )
        return run

    def _sync_entity(self, run, entity, watermark, batch_size):
        validate, transform, upsert = self._handlers[entity]
        counters = run.metadata.setdefault(entity, {'processed': 0, 'created': 0, 'updated': 0, 'failed': 0})
        page = 1

        if watermark:
            logger.info("Fetching %s modified after %s", entity, watermark.isoformat())
        else:
            logger.info("Fetching all %s", entity)

        try:
            while True:
                records = self.source.fetch_page(entity, page, batch_size, modified_after=watermark)
                if not records:
                    break

                for raw in deduplicate(records):
                    is_valid, reason = validate(raw)
                    if not is_valid:
                        logger.warning("Skipping invalid %s record: %s", entity, reason)
                        self._count(run, counters, 'failed')
                        continue
                    try:
                        result = upsert(transform(raw))
                    except RECORD_ERRORS as exc:
                        logger.error("Failed to cache %s %s: %s", entity, raw.get('id'), exc)
                        self._count(run, counters, 'failed')
                        continue
                    self._count(run, counters, 'processed')
                    self._count(run, counters, result)

                self._save_progress(run)
                if len(records) < batch_size:
                    break
                page += 1
        finally:
            self._save_progress(run)

    def _count(self, run, counters, name):
        counters[name] += 1
        field = f'items_{name}'
        setattr(run, field, getattr(run, field) + 1)

    def _save_progress(self, run):
        run.save(update_fields=[*COUNTER_FIELDS, 'metadata'])

    def _finish(self, run, status, error_message=None):
        run.status = status
        run.error_message = error_message
        run.completed_at = timezone.now()
        run.save()

    def last_run(self, kind=None, status=None):
        qs = SyncRun.objects.all()
        if kind:
            qs = qs.filter(kind=kind)
        if status:
            qs = qs.filter(status=status)
        return qs.order_by('-started_at', '-id').first()

    def is_cache_stale(self, max_age_minutes=None):
        if max_age_minutes is None:
            max_age_minutes = settings.CATALOG_STALE_MINUTES
        last = (
            SyncRun.objects
            .filter(kind__in=[SyncRun.KIND_FULL, SyncRun.KIND_INCREMENTAL], status=SyncRun.STATUS_COMPLETED)
            .order_by('-completed_at', '-id')
            .first()
        )
        if last is None:
            return True
        finished = last.completed_at or last.started_at
        return timezone.now() - finished > timedelta(minutes=max_age_minutes)


def _watermark(previous, entity):
    if previous is None:
        return None
    stored = (previous.metadata or {}).get('watermarks', {}).get(entity)
    if stored:
        return parse_datetime(stored)
    if previous.kind == entity:
        return previous.last_synced_at
    return None


def _max_datetime(*values):
    present = [v for v in values if v is not None]
    return max(present) if present else None


def build_sync_engine():
    source_class = import_string(settings.CATALOG_SOURCE_CLASS)
    return SyncEngine(source=source_class(), cache=CatalogCache())
