from abc import ABC, abstractmethod


class BaseCatalogSource(ABC):
    ENTITIES = ('products', 'customers')

    @abstractmethod
    def fetch_page(self, entity, page, per_page, modified_after=None) -> list[dict]:
        """Fetch one page of raw records for ``entity`` ('products' or 'customers').

        Pages are 1-based. Raises ``core.exceptions.DependencyError`` when the
        upstream system cannot be reached.
        """
