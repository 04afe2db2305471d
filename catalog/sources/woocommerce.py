import logging
import time

import requests
from django.conf import settings

from core.exceptions import DependencyError

from .base import BaseCatalogSource

logger = logging.getLogger(__name__)

API_PREFIX = '/wp-json/wc/v3'

MAX_RETRIES = 4
RETRY_BASE_DELAY = 1.0
RETRY_STATUSES = {429, 500, 502, 503, 504}


class WooCommerceSource(BaseCatalogSource):
    def __init__(self, base_url=None, consumer_key=None, consumer_secret=None, timeout=None):
        self.base_url = (base_url or settings.WOOCOMMERCE_URL).rstrip('/')
        self.consumer_key = consumer_key if consumer_key is not None else settings.WOOCOMMERCE_KEY
        self.consumer_secret = (
            consumer_secret if consumer_secret is not None else settings.WOOCOMMERCE_SECRET
        )
        self.timeout = timeout or settings.WOOCOMMERCE_TIMEOUT
        self._session = None

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = self.make_session()
        return self._session

    def make_session(self) -> requests.Session:
        session = requests.Session()
        session.auth = (self.consumer_key, self.consumer_secret)
        session.headers.update({'Accept': 'application/json'})
        return session

    def fetch_page(self, entity, page, per_page, modified_after=None):
        if entity not in self.ENTITIES:
            raise ValueError(f"Unknown catalog entity: {entity}")

        url = f"{self.base_url}{API_PREFIX}/{entity}"
        params = {'page': page, 'per_page': per_page, 'orderby': 'id', 'order': 'asc'}
        if entity == 'customers':
            params['role'] = 'all'
        if modified_after is not None:
            params['modified_after'] = modified_after.isoformat()

        response = self._get(url, params)
        try:
            data = response.json()
        except ValueError:
            raise DependencyError(f"WooCommerce returned non-JSON {entity} page {page}")
        if not isinstance(data, list):
            raise DependencyError(f"Unexpected {entity} payload on page {page}")
        return data

    def _get(self, url, params):
        for attempt in range(MAX_RETRIES):
            try:
                response = self.session.get(url, params=params, timeout=self.timeout)
            except requests.RequestException as exc:
                logger.warning(
                    "WooCommerce request failed for %s (attempt %d/%d): %s",
                    url, attempt + 1, MAX_RETRIES, exc,
                )
                if attempt == MAX_RETRIES - 1:
                    raise DependencyError(f"WooCommerce unreachable: {exc}")
                time.sleep(RETRY_BASE_DELAY * (2 ** attempt))
                continue

            if response.status_code in RETRY_STATUSES:
                retry_after = _retry_after(response)
                delay = max(retry_after, RETRY_BASE_DELAY * (2 ** attempt))
                logger.warning(
                    "WooCommerce returned %d for %s, attempt %d/%d, waiting %.1fs",
                    response.status_code, url, attempt + 1, MAX_RETRIES, delay,
                )
                if attempt < MAX_RETRIES - 1:
                    time.sleep(delay)
                continue

            try:
                response.raise_for_status()
            except requests.HTTPError as exc:
                raise DependencyError(f"WooCommerce error: {exc}")
            return response

        raise DependencyError(f"WooCommerce still failing after {MAX_RETRIES} attempts: {url}")


def _retry_after(response):
    try:
        return float(response.headers.get('Retry-After', 0))
    except ValueError:
        return 0.0
