import logging

from celery import shared_task

from catalog.cache import CatalogCache
from catalog.sync import build_sync_engine

logger = logging.getLogger(__name__)


@shared_task
def run_catalog_sync(kind='incremental', triggered_by='scheduled', user_id=None, force_full_sync=False):
    run = build_sync_engine().sync(
        kind=kind,
        triggered_by=triggered_by,
        user_id=user_id,
        force_full_sync=force_full_sync,
    )
    logger.info("Catalog sync #%d finished with status %s", run.pk, run.status)
    return run.pk


@shared_task
def cleanup_catalog_cache(days_to_keep=30):
    return CatalogCache().cleanup(days_to_keep)
