# produce/database.py
import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterable, Iterator, List, Optional, Tuple

from .errors import StoreError
from .models import Category, Product

logger = logging.getLogger(__name__)

# SQLite INTEGER is a signed 64-bit value; larger ids cannot name a row
SQLITE_MAX_INTEGER = 2 ** 63 - 1

# One table per category; both share the same shape.
_SCHEMA = """
CREATE TABLE IF NOT EXISTS {table} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    quantity REAL NOT NULL CHECK (quantity >= 0),
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
)
"""


class Database:
    """SQLite-backed persistent store.

    A fresh connection is opened for every operation, so request handlers
    running on different threads never share a connection. Because of that,
    ``path`` must be a file; ``:memory:`` would give each call its own empty
    database.
    """

    def __init__(self, path: str, timeout: float = 5.0):
        self.path = path
        self.timeout = timeout

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.path, timeout=self.timeout)
        except sqlite3.Error as e:
            raise StoreError(f"cannot open database {self.path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        finally:
            conn.close()

    def init_schema(self) -> None:
        with self.connect() as conn:
            for category in Category:
                conn.execute(_SCHEMA.format(table=category.plural))
        logger.info("database schema ready at %s", self.path)

    def ping(self) -> None:
        with self.connect() as conn:
            conn.execute("SELECT 1").fetchone()

    def repository(self, category: Category) -> "ProductRepository":
        return ProductRepository(self, category)


def _valid_id(product_id: int) -> bool:
    return -SQLITE_MAX_INTEGER - 1 <= product_id <= SQLITE_MAX_INTEGER


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ProductRepository:
    """CRUD over one category's table. Quantities are grams."""

    def __init__(self, db: Database, category: Category):
        self.db = db
        self.category = category
        self.table = category.plural

    def _to_product(self, row: sqlite3.Row) -> Product:
        return Product(
            id=row["id"],
            name=row["name"],
            quantity_grams=row["quantity"],
            category=self.category,
        )

    def insert(self, name: str, quantity_grams: float) -> Product:
        with self.db.connect() as conn:
            cur = conn.execute(
                f"INSERT INTO {self.table} (name, quantity) VALUES (?, ?)",
                (name, quantity_grams),
            )
            product_id = cur.lastrowid
        return Product(id=product_id, name=name, quantity_grams=quantity_grams, category=self.category)

    def insert_many(self, rows: Iterable[Tuple[str, float]]) -> int:
        """Insert (name, grams) pairs in a single transaction; all or nothing."""
        rows = list(rows)
        if not rows:
            return 0
        with self.db.connect() as conn:
            conn.executemany(f"INSERT INTO {self.table} (name, quantity) VALUES (?, ?)", rows)
        return len(rows)

    def delete(self, product_id: int) -> None:
        if not _valid_id(product_id):
            return
        with self.db.connect() as conn:
            conn.execute(f"DELETE FROM {self.table} WHERE id = ?", (product_id,))

    def find_by_id(self, product_id: int) -> Optional[Product]:
        if not _valid_id(product_id):
            return None
        with self.db.connect() as conn:
            row = conn.execute(
                f"SELECT id, name, quantity FROM {self.table} WHERE id = ?", (product_id,)
            ).fetchone()
        return self._to_product(row) if row else None

    def find_all(self) -> List[Product]:
        with self.db.connect() as conn:
            rows = conn.execute(
                f"SELECT id, name, quantity FROM {self.table} ORDER BY name ASC, id ASC"
            ).fetchall()
        return [self._to_product(r) for r in rows]

    def find_by_search(self, term: str) -> List[Product]:
        # LIKE is case-insensitive for ASCII in SQLite
        with self.db.connect() as conn:
            rows = conn.execute(
                f"SELECT id, name, quantity FROM {self.table} "
                "WHERE name LIKE ? ESCAPE '\\' ORDER BY name ASC, id ASC",
                (f"%{_escape_like(term)}%",),
            ).fetchall()
        return [self._to_product(r) for r in rows]
