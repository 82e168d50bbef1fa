"""SQLite-backed catalog repository.

The candidate filter tree is compiled to a parameterised WHERE clause and
evaluated inside the chain partition. Trigram similarity is provided to SQL
through an application-defined ``similarity(a, b)`` function registered on
every connection; without it, search fails with
``DependencyUnavailableError`` instead of a generic internal error.

Blocking sqlite3 calls run in worker threads via ``anyio.to_thread`` so the
event loop never waits on catalog I/O.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import contextmanager
from decimal import Decimal
import json
import logging
from pathlib import Path
import sqlite3
import threading
from typing import Any, TypeVar

import anyio

from product_locator.adapters.catalog_repository import AbstractCatalogRepository
from product_locator.domain.errors import (
    DependencyUnavailableError,
    InternalSearchError,
    ProductSearchError,
    StoreNotFoundError,
)
from product_locator.domain.model import Chain, ChainSummary, Product, Store, StoreInventoryFact, StoreListing
from product_locator.search.filters import (
    AnyOf,
    FieldContains,
    FieldEquals,
    FieldStartsWith,
    FilterExpression,
    SimilarityAbove,
)
from product_locator.search.fuzzy import trigram_similarity


logger = logging.getLogger(__name__)

T = TypeVar("T")

SIMILARITY_FUNCTION = "similarity"

_SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS chains (
        chain_id INTEGER PRIMARY KEY,
        chain_name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS stores (
        store_id INTEGER PRIMARY KEY,
        chain_id INTEGER NOT NULL REFERENCES chains(chain_id),
        store_name TEXT NOT NULL,
        address TEXT,
        city TEXT,
        state TEXT,
        zip TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        map_image_url TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS products (
        product_id INTEGER PRIMARY KEY,
        chain_id INTEGER NOT NULL REFERENCES chains(chain_id),
        sku TEXT NOT NULL,
        product_name TEXT NOT NULL,
        description TEXT,
        category TEXT,
        base_price TEXT,
        image_url TEXT,
        UNIQUE (chain_id, sku)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS store_inventory (
        store_id INTEGER NOT NULL REFERENCES stores(store_id),
        product_id INTEGER NOT NULL REFERENCES products(product_id),
        aisle TEXT,
        shelf_position TEXT,
        stock_quantity INTEGER NOT NULL DEFAULT 0 CHECK (stock_quantity >= 0),
        is_available INTEGER NOT NULL DEFAULT 1,
        PRIMARY KEY (store_id, product_id)
    ) WITHOUT ROWID
    """,
    "CREATE INDEX IF NOT EXISTS idx_products_chain ON products (chain_id, product_name)",
    "CREATE INDEX IF NOT EXISTS idx_stores_chain ON stores (chain_id, store_name)",
)

_PRODUCT_COLUMNS = (
    "p.product_id, p.chain_id, p.sku, p.product_name, p.category, p.base_price, p.description, p.image_url"
)
_STORE_COLUMNS = "store_id, chain_id, store_name, address, city, state, zip, is_active, map_image_url"
_JOINED_STORE_COLUMNS = ", ".join(f"s.{column}" for column in _STORE_COLUMNS.split(", "))

_COLUMN_BY_FIELD = {
    "name": "product_name",
    "sku": "sku",
    "category": "category",
    "description": "description",
}


def _sql_lower(value: str | None) -> str | None:
    return value.lower() if isinstance(value, str) else value


def _sql_similarity(left: str | None, right: str | None) -> float:
    return trigram_similarity(left or "", right or "")


def register_text_functions(conn: sqlite3.Connection, *, similarity: bool = True) -> None:
    """Register Unicode-aware ``lower`` and, optionally, trigram ``similarity``.

    Overriding the built-in ``lower`` keeps SQL case folding identical to the
    Python scorer for non-ASCII names.
    """
    conn.create_function("lower", 1, _sql_lower, deterministic=True)
    if similarity:
        conn.create_function(SIMILARITY_FUNCTION, 2, _sql_similarity, deterministic=True)


def apply_read_pragmas(conn: sqlite3.Connection, *, busy_timeout_ms: int = 30000) -> None:
    conn.execute(f"PRAGMA busy_timeout = {busy_timeout_ms}")
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")
    conn.execute("PRAGMA temp_store = MEMORY")
    conn.execute("PRAGMA query_only = 1")


def apply_write_pragmas(conn: sqlite3.Connection) -> None:
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")


def compile_filter(expression: FilterExpression) -> tuple[str, list[object]]:
    """Compile a filter tree into a SQL boolean expression over ``products p``."""
    if isinstance(expression, AnyOf):
        if not expression.children:
            return "0", []
        clauses: list[str] = []
        params: list[object] = []
        for child in expression.children:
            clause, child_params = compile_filter(child)
            clauses.append(clause)
            params.extend(child_params)
        return "(" + " OR ".join(clauses) + ")", params

    if isinstance(expression, (FieldEquals, FieldStartsWith, FieldContains, SimilarityAbove)):
        column = f"LOWER(COALESCE(p.{_COLUMN_BY_FIELD[expression.field]}, ''))"
        if isinstance(expression, FieldEquals):
            return f"{column} = ?", [expression.value]
        if isinstance(expression, FieldStartsWith):
            return f"instr({column}, ?) = 1", [expression.value]
        if isinstance(expression, FieldContains):
            return f"instr({column}, ?) > 0", [expression.value]
        return f"{SIMILARITY_FUNCTION}({column}, ?) > ?", [expression.value, expression.threshold]

    raise TypeError(f"Unsupported filter expression: {type(expression).__name__}")


def translate_sqlite_error(exc: sqlite3.Error) -> ProductSearchError:
    """Map a sqlite3 failure onto the search error taxonomy."""
    message = str(exc)
    if isinstance(exc, sqlite3.OperationalError) and f"no such function: {SIMILARITY_FUNCTION}" in message.lower():
        return DependencyUnavailableError(
            "Catalog store does not provide trigram similarity; "
            "enable SIMILARITY_FUNCTION_ENABLED or install the similarity extension"
        )
    return InternalSearchError(f"Catalog query failed: {message}")


def _row_to_product(row: sqlite3.Row) -> Product:
    base_price = row["base_price"]
    return Product(
        id=row["product_id"],
        chain_id=row["chain_id"],
        sku=row["sku"],
        name=row["product_name"],
        category=row["category"],
        base_price=Decimal(str(base_price)) if base_price is not None else None,
        description=row["description"],
        image_url=row["image_url"],
    )


def _row_to_store(row: sqlite3.Row) -> Store:
    return Store(
        store_id=row["store_id"],
        chain_id=row["chain_id"],
        name=row["store_name"],
        address=row["address"],
        city=row["city"],
        state=row["state"],
        zip=row["zip"],
        is_active=bool(row["is_active"]),
        map_image_url=row["map_image_url"],
    )


def _row_to_fact(row: sqlite3.Row) -> StoreInventoryFact:
    return StoreInventoryFact(
        store_id=row["store_id"],
        product_id=row["product_id"],
        aisle=row["aisle"],
        shelf_position=row["shelf_position"],
        stock_quantity=int(row["stock_quantity"] or 0),
        is_available=bool(row["is_available"]),
    )


class SQLiteConnectionPool:
    """Thread-local read connections, all tracked so they can be closed together."""

    def __init__(self, db_path: Path, *, similarity_enabled: bool = True) -> None:
        self.db_path = db_path
        self.similarity_enabled = similarity_enabled
        self._local = threading.local()
        self._lock = threading.Lock()
        self._connections: list[sqlite3.Connection] = []

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get this thread's read connection, creating it on first use."""
        conn = getattr(self._local, "connection", None)
        if conn is None:
            conn = self._create_connection()
            self._local.connection = conn
        yield conn

    def _create_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        apply_read_pragmas(conn)
        register_text_functions(conn, similarity=self.similarity_enabled)
        with self._lock:
            self._connections.append(conn)
        return conn

    def close_all(self) -> None:
        with self._lock:
            connections, self._connections = self._connections, []
        for conn in connections:
            try:
                conn.close()
            except sqlite3.Error as exc:
                logger.debug("Failed to close catalog connection: %s", exc)
        self._local = threading.local()


class SqliteCatalogRepository(AbstractCatalogRepository):
    """Catalog repository over a single SQLite database file."""

    def __init__(self, db_path: Path | str, *, similarity_enabled: bool = True) -> None:
        self.db_path = Path(db_path)
        self.similarity_enabled = similarity_enabled
        self._pool = SQLiteConnectionPool(self.db_path, similarity_enabled=similarity_enabled)

    # ------------------------------------------------------------------
    # Bootstrap helpers (schema and fixture loading)
    # ------------------------------------------------------------------

    @contextmanager
    def _write_connection(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        try:
            apply_write_pragmas(conn)
            with conn:
                yield conn
        finally:
            conn.close()

    def create_schema(self) -> None:
        """Create catalog tables if they do not exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._write_connection() as conn:
            for statement in _SCHEMA_STATEMENTS:
                conn.execute(statement)
        logger.info("Catalog schema ready at %s", self.db_path)

    def load(
        self,
        *,
        chains: Iterable[Chain] = (),
        stores: Iterable[Store] = (),
        products: Iterable[Product] = (),
        inventory: Iterable[StoreInventoryFact] = (),
    ) -> None:
        """Upsert catalog snapshots in one transaction."""
        with self._write_connection() as conn:
            conn.executemany(
                "INSERT OR REPLACE INTO chains (chain_id, chain_name) VALUES (?, ?)",
                [(chain.chain_id, chain.name) for chain in chains],
            )
            conn.executemany(
                f"INSERT OR REPLACE INTO stores ({_STORE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        store.store_id,
                        store.chain_id,
                        store.name,
                        store.address,
                        store.city,
                        store.state,
                        store.zip,
                        int(store.is_active),
                        store.map_image_url,
                    )
                    for store in stores
                ],
            )
            conn.executemany(
                "INSERT OR REPLACE INTO products "
                "(product_id, chain_id, sku, product_name, category, base_price, description, image_url) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        product.id,
                        product.chain_id,
                        product.sku,
                        product.name,
                        product.category,
                        str(product.base_price) if product.base_price is not None else None,
                        product.description,
                        product.image_url,
                    )
                    for product in products
                ],
            )
            conn.executemany(
                "INSERT OR REPLACE INTO store_inventory "
                "(store_id, product_id, aisle, shelf_position, stock_quantity, is_available) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                [
                    (
                        fact.store_id,
                        fact.product_id,
                        fact.aisle,
                        fact.shelf_position,
                        fact.stock_quantity,
                        int(fact.is_available),
                    )
                    for fact in inventory
                ],
            )

    def close(self) -> None:
        self._pool.close_all()

    # ------------------------------------------------------------------
    # Query execution
    # ------------------------------------------------------------------

    async def _run(self, operation: str, func: Callable[..., T], *args: Any) -> T:
        try:
            return await anyio.to_thread.run_sync(func, *args)
        except sqlite3.Error as exc:
            error = translate_sqlite_error(exc)
            logger.error("Catalog %s failed (%s): %s", operation, error.code, exc, exc_info=True)
            raise error from exc

    def _fetch_all(self, sql: str, params: Sequence[object]) -> list[sqlite3.Row]:
        with self._pool.get_connection() as conn:
            return conn.execute(sql, tuple(params)).fetchall()

    def _fetch_one(self, sql: str, params: Sequence[object]) -> sqlite3.Row | None:
        with self._pool.get_connection() as conn:
            return conn.execute(sql, tuple(params)).fetchone()

    async def resolve_store_chain(self, store_id: int) -> int:
        row = await self._run(
            "store resolution", self._fetch_one, "SELECT chain_id FROM stores WHERE store_id = ?", (store_id,)
        )
        if row is None:
            raise StoreNotFoundError(store_id)
        return int(row["chain_id"])

    async def list_products(self, chain_id: int, candidate_filter: FilterExpression) -> list[Product]:
        where, params = compile_filter(candidate_filter)
        sql = f"SELECT {_PRODUCT_COLUMNS} FROM products p WHERE p.chain_id = ? AND {where} ORDER BY p.product_id"
        rows = await self._run("candidate fetch", self._fetch_all, sql, [chain_id, *params])
        return [_row_to_product(row) for row in rows]

    async def get_inventory(self, store_id: int, product_ids: Sequence[int]) -> list[StoreInventoryFact]:
        if not product_ids:
            return []
        sql = (
            "SELECT store_id, product_id, aisle, shelf_position, stock_quantity, is_available "
            "FROM store_inventory WHERE store_id = ? AND product_id IN (SELECT value FROM json_each(?))"
        )
        rows = await self._run("inventory fetch", self._fetch_all, sql, (store_id, json.dumps(list(product_ids))))
        return [_row_to_fact(row) for row in rows]

    async def get_store(self, store_id: int) -> Store:
        row = await self._run(
            "store lookup", self._fetch_one, f"SELECT {_STORE_COLUMNS} FROM stores WHERE store_id = ?", (store_id,)
        )
        if row is None:
            raise StoreNotFoundError(store_id)
        return _row_to_store(row)

    async def list_stores(self, chain_id: int) -> list[Store]:
        rows = await self._run(
            "store listing",
            self._fetch_all,
            f"SELECT {_STORE_COLUMNS} FROM stores WHERE chain_id = ? AND is_active = 1 ORDER BY store_name",
            (chain_id,),
        )
        return [_row_to_store(row) for row in rows]

    async def list_chains(self) -> list[ChainSummary]:
        sql = (
            "SELECT c.chain_id, c.chain_name, COUNT(s.store_id) AS store_count FROM chains c "
            "LEFT JOIN stores s ON s.chain_id = c.chain_id AND s.is_active = 1 "
            "GROUP BY c.chain_id, c.chain_name ORDER BY c.chain_name, c.chain_id"
        )
        rows = await self._run("chain listing", self._fetch_all, sql, ())
        return [
            ChainSummary(chain_id=row["chain_id"], name=row["chain_name"], store_count=row["store_count"])
            for row in rows
        ]

    async def list_active_stores(self) -> list[StoreListing]:
        sql = (
            f"SELECT {_JOINED_STORE_COLUMNS}, c.chain_name FROM stores s "
            "LEFT JOIN chains c ON c.chain_id = s.chain_id WHERE s.is_active = 1 "
            "ORDER BY c.chain_name, s.store_name, s.store_id"
        )
        rows = await self._run("store directory", self._fetch_all, sql, ())
        return [StoreListing(store=_row_to_store(row), chain_name=row["chain_name"]) for row in rows]

    async def browse_products(
        self,
        chain_id: int,
        *,
        category: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Product]:
        clauses = ["p.chain_id = ?"]
        params: list[object] = [chain_id]
        if category is not None:
            clauses.append("p.category = ?")
            params.append(category)
        sql = (
            f"SELECT {_PRODUCT_COLUMNS} FROM products p WHERE {' AND '.join(clauses)} "
            "ORDER BY p.product_name, p.product_id LIMIT ? OFFSET ?"
        )
        rows = await self._run("product browse", self._fetch_all, sql, [*params, limit, offset])
        return [_row_to_product(row) for row in rows]

    async def ping(self) -> dict[str, object]:
        def _probe() -> dict[str, object]:
            with self._pool.get_connection() as conn:
                product_count = conn.execute("SELECT COUNT(*) FROM products").fetchone()[0]
                try:
                    conn.execute(f"SELECT {SIMILARITY_FUNCTION}('probe', 'probe')").fetchone()
                    similarity_available = True
                except sqlite3.OperationalError:
                    similarity_available = False
            return {
                "status": "healthy" if similarity_available else "degraded",
                "backend": "sqlite",
                "products": int(product_count),
                "similarity": similarity_available,
            }

        return await self._run("health probe", _probe)
