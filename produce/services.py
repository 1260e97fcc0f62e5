# produce/services.py
import logging
from typing import Any, Dict, List, Optional, Union

from .cache import ProductCache
from .core import _make_product_dict
from .database import ProductRepository
from .models import Category, Product, Unit
from .units import to_grams

logger = logging.getLogger(__name__)


class CategoryService:
    """Add/remove/list for one category, with cache-aside reads.

    Writes go to the repository first and invalidate the category cache
    afterwards; if the write raises, the cache is left alone.
    """

    def __init__(self, repository: ProductRepository, cache: ProductCache):
        if repository.category is not cache.category:
            raise ValueError("repository and cache must serve the same category")
        self.repository = repository
        self.cache = cache
        self.category: Category = repository.category

    def add(self, name: str, quantity: float, unit: Union[Unit, str]) -> Dict[str, Any]:
        grams = to_grams(quantity, unit)
        product = self.repository.insert(name, grams)
        self.cache.invalidate_all()
        logger.info("added %s #%d %r (%.3f g)", self.category.value, product.id, product.name, grams)
        return _make_product_dict(product, Unit.GRAMS)

    def remove(self, product_id: int) -> bool:
        """Delete a product. Returns False when no such id exists."""
        if self.repository.find_by_id(product_id) is None:
            return False
        self.repository.delete(product_id)
        self.cache.invalidate_all()
        logger.info("removed %s #%d", self.category.value, product_id)
        return True

    def fetch(self, search: Optional[str] = None) -> List[Product]:
        cached = self.cache.lookup(search)
        if cached is not None:
            return cached
        if search is None:
            products = self.repository.find_all()
        else:
            products = self.repository.find_by_search(search)
        self.cache.store(search, products)
        return products

    def list(self, search: Optional[str] = None, unit: Union[Unit, str] = Unit.GRAMS) -> List[Dict[str, Any]]:
        unit = Unit(unit)
        return [_make_product_dict(p, unit) for p in self.fetch(search)]


def build_services(db, backend, ttl: int = 60) -> Dict[Category, CategoryService]:
    """One CategoryService per category, sharing the database and cache backend."""
    return {
        category: CategoryService(db.repository(category), ProductCache(backend, category, ttl=ttl))
        for category in Category
    }
