# tests/test_cache.py
import fakeredis
import pytest

from produce.cache import InMemoryKeyValueCache, ProductCache, RedisKeyValueCache
from produce.errors import CacheError
from produce.models import Category, Product

from conftest import BrokenCache


def _fruit(pid, name, grams):
    return Product(id=pid, name=name, quantity_grams=grams, category=Category.FRUIT)


@pytest.fixture
def fruits(backend):
    return ProductCache(backend, Category.FRUIT, ttl=60)


def test_lookup_returns_stored_products_unchanged(fruits):
    products = [_fruit(1, "Apple", 1500.0), _fruit(2, "Banana", 0.125)]
    fruits.store(None, products)
    cached = fruits.lookup()
    assert cached == products
    assert [(p.id, p.name, p.quantity_grams) for p in cached] == [(1, "Apple", 1500.0), (2, "Banana", 0.125)]


def test_miss_is_none_and_empty_list_is_a_hit(fruits):
    assert fruits.lookup() is None
    fruits.store(None, [])
    assert fruits.lookup() == []


def test_entry_expires_after_ttl(fruits, clock):
    fruits.store(None, [_fruit(1, "Apple", 10.0)], ttl=5)
    clock.advance(4)
    assert fruits.lookup() is not None
    clock.advance(1)
    assert fruits.lookup() is None


def test_search_key_is_distinct_from_listing(fruits):
    assert fruits.key_for() == "fruits:all"
    assert fruits.key_for("Apple") == "fruits:search:Apple"
    # a search for the literal word "all" must not collide with the listing
    assert fruits.key_for("all") != fruits.key_for()

    fruits.store(None, [_fruit(1, "Apple", 1.0), _fruit(2, "Pear", 2.0)])
    fruits.store("Apple", [_fruit(1, "Apple", 1.0)])
    assert len(fruits.lookup()) == 2
    assert len(fruits.lookup("Apple")) == 1


def test_invalidate_all_clears_listing_and_searches(fruits, backend):
    fruits.store(None, [_fruit(1, "Apple", 1.0)])
    fruits.store("Apple", [_fruit(1, "Apple", 1.0)])
    fruits.store("pe", [])
    fruits.invalidate_all()
    assert fruits.lookup() is None
    assert fruits.lookup("Apple") is None
    assert fruits.lookup("pe") is None
    assert backend.keys_with_prefix("fruits:") == []


def test_invalidate_leaves_other_category_alone(backend):
    fruits = ProductCache(backend, Category.FRUIT)
    vegetables = ProductCache(backend, Category.VEGETABLE)
    carrot = Product(id=1, name="Carrot", quantity_grams=10922.0, category=Category.VEGETABLE)
    fruits.store(None, [_fruit(1, "Apple", 1.0)])
    vegetables.store(None, [carrot])
    fruits.invalidate_all()
    assert vegetables.lookup() == [carrot]


def test_unreachable_backend_degrades_to_miss():
    cache = ProductCache(BrokenCache(), Category.FRUIT)
    assert cache.lookup() is None
    # neither of these may raise
    cache.store(None, [_fruit(1, "Apple", 1.0)])
    cache.invalidate_all()


def test_corrupt_entry_is_a_miss(fruits, backend):
    backend.set_with_ttl("fruits:all", b"{not json", 60)
    assert fruits.lookup() is None
    backend.set_with_ttl("fruits:all", b'[{"id": 1, "name": "Apple"}]', 60)
    assert fruits.lookup() is None


def test_in_memory_prefix_skips_expired_keys(clock):
    backend = InMemoryKeyValueCache(clock=clock)
    backend.set_with_ttl("fruits:all", b"[]", 1)
    backend.set_with_ttl("fruits:search:x", b"[]", 10)
    clock.advance(2)
    assert backend.keys_with_prefix("fruits:") == ["fruits:search:x"]


# ---------------------------
# Redis adapter
# ---------------------------
@pytest.fixture
def redis_server():
    return fakeredis.FakeServer()


@pytest.fixture
def redis_cache(redis_server):
    return RedisKeyValueCache(fakeredis.FakeRedis(server=redis_server))


def test_redis_round_trip_and_prefix_scan(redis_cache):
    redis_cache.set_with_ttl("fruits:all", b"[]", 60)
    redis_cache.set_with_ttl("fruits:search:Apple", b"[]", 60)
    redis_cache.set_with_ttl("vegetables:all", b"[]", 60)
    assert redis_cache.get("fruits:all") == b"[]"
    assert redis_cache.get("missing") is None
    assert sorted(redis_cache.keys_with_prefix("fruits:")) == ["fruits:all", "fruits:search:Apple"]
    redis_cache.delete("fruits:all")
    assert redis_cache.get("fruits:all") is None
    redis_cache.ping()


def test_redis_sets_expiry(redis_cache):
    redis_cache.set_with_ttl("fruits:all", b"[]", 30)
    assert 0 < redis_cache.client.ttl("fruits:all") <= 30


def test_redis_prefix_glob_characters_are_literal(redis_cache):
    redis_cache.set_with_ttl("a*:x", b"1", 60)
    redis_cache.set_with_ttl("ab:x", b"1", 60)
    assert redis_cache.keys_with_prefix("a*:") == ["a*:x"]


def test_redis_errors_become_cache_errors(redis_server, redis_cache):
    redis_server.connected = False
    with pytest.raises(CacheError):
        redis_cache.get("fruits:all")
    with pytest.raises(CacheError):
        redis_cache.ping()


def test_product_cache_over_redis_invalidates_searches(redis_cache):
    fruits = ProductCache(redis_cache, Category.FRUIT)
    fruits.store(None, [_fruit(1, "Apple", 1500.0)])
    fruits.store("Apple", [_fruit(1, "Apple", 1500.0)])
    assert fruits.lookup("Apple")[0].quantity_grams == 1500.0
    fruits.invalidate_all()
    assert fruits.lookup() is None
    assert fruits.lookup("Apple") is None


def test_explicit_zero_ttl_is_not_replaced_by_default(fruits):
    fruits.store(None, [_fruit(1, "Apple", 1.0)], ttl=0)
    assert fruits.lookup() is None
