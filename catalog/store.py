"""
catalog/store.py -- SQLAlchemy-backed persistence layer for the product catalog.

Uses SQLAlchemy Core (not ORM) so the domain dataclasses in catalog/models.py
remain the authoritative domain representation. Swapping SQLite for
PostgreSQL is a connection string change, not a rewrite.

Pattern: Repository + Data Mapper. ProductStore is the repository; the
_row_to_product function is the mapper. Route handlers never touch SQL
directly.

Security: all queries use bound parameters. No f-strings in SQL. Search terms
have LIKE wildcards escaped so "%" and "_" match literally.

Every write returns the row snapshot via RETURNING -- the post-update row for
updates, the removed row for deletes -- in the same statement that wrote it.

Usage:
    store = ProductStore(engine)
    product = store.create_product(Product(name="Lamp", description="Desk lamp",
                                           price=19.5, stock=4, category="Hogar"))
    store.update_stock(product.id, 10)
    store.search("lamp")
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, Numeric, String, Table, Text, func, or_, select, true
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from catalog.models import Product
from core.database import metadata
from core.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger("storefront.catalog.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_products = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("price", Numeric(10, 2, asdecimal=False), nullable=False),
    Column("stock", Integer, nullable=False, server_default="0"),
    Column("category", String(100), nullable=False),
    Column("active", Boolean, nullable=False, server_default=true()),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    CheckConstraint("price > 0", name="ck_products_price_positive"),
    CheckConstraint("stock >= 0", name="ck_products_stock_nonnegative"),
)

_DEMO_PRODUCTS: tuple[tuple[str, str, float, int, str], ...] = (
    ("Laptop Dell XPS 13", "Laptop ultrabook con procesador Intel i7", 1299.99, 10, "Tecnología"),
    ("iPhone 15 Pro", "Smartphone Apple con cámara profesional", 999.99, 25, "Tecnología"),
    ("Auriculares Sony WH-1000XM5", "Auriculares inalámbricos con cancelación de ruido", 349.99, 15, "Audio"),
    ("Mesa de Oficina", "Mesa ergonómica para trabajo", 299.99, 5, "Muebles"),
    ("Silla Gaming", "Silla cómoda para largas sesiones", 199.99, 8, "Muebles"),
)

_NOT_FOUND_MESSAGE = "Producto no encontrado"

# CHECK constraint name -> (message, code) reported when a write violates it.
_CHECK_VIOLATIONS: dict[str, tuple[str, str]] = {
    "ck_products_price_positive": ("El precio debe ser un número mayor a 0", "invalid_price"),
    "ck_products_stock_nonnegative": ("El stock debe ser un número mayor o igual a 0", "invalid_stock"),
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _like_pattern(term: str) -> str:
    """Wrap term in % for a substring match, escaping LIKE metacharacters."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _integrity_error(exc: IntegrityError) -> Exception:
    """Translate a failed write into the matching API error."""
    detail = str(exc.orig)
    for constraint, (message, code) in _CHECK_VIOLATIONS.items():
        if constraint in detail:
            return ValidationError(message, code=code)
    return ConflictError("El producto ya existe", code="product_conflict")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ProductStore:
    # Columns a general partial update may touch. Checked before .values(**fields).
    UPDATABLE_FIELDS: frozenset[str] = frozenset({"name", "description", "price", "stock", "category", "active"})

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(self.engine, tables=[_products])

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def count_products(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_products)).scalar()
        return result or 0

    def list_products(self, active: Optional[bool] = None) -> list[Product]:
        """Return all products ordered by id, optionally filtered by active flag."""
        stmt = _products.select().order_by(_products.c.id)
        if active is not None:
            stmt = stmt.where(_products.c.active == active)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_product(r) for r in rows]

    def get_product(self, product_id: int) -> Optional[Product]:
        """Fetch a single product by ID. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_products.select().where(_products.c.id == product_id)).fetchone()
        return _row_to_product(row) if row is not None else None

    def list_by_category(self, category: str) -> list[Product]:
        """Return active products in exactly this category, ordered by name."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _products.select()
                .where((_products.c.category == category) & (_products.c.active == true()))
                .order_by(_products.c.name)
            ).fetchall()
        return [_row_to_product(r) for r in rows]

    def search(self, term: str) -> list[Product]:
        """Case-insensitive substring search over name, description and category.

        Only active products are returned, ordered by name. On SQLite both sides
        go through the casefold() function registered in core/database.py so
        "TECNOLOGÍA" matches "Tecnología"; other backends use ILIKE.
        """
        columns = (_products.c.name, _products.c.description, _products.c.category)
        if self.engine.dialect.name == "sqlite":
            pattern = _like_pattern(term.casefold())
            clauses = [func.casefold(col).like(pattern, escape="\\") for col in columns]
        else:
            pattern = _like_pattern(term)
            clauses = [col.ilike(pattern, escape="\\") for col in columns]
        matches = or_(*clauses)
        with self.engine.connect() as conn:
            rows = conn.execute(
                _products.select().where(matches & (_products.c.active == true())).order_by(_products.c.name)
            ).fetchall()
        return [_row_to_product(r) for r in rows]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_product(self, product: Product) -> Product:
        """Insert a new product and return the stored snapshot."""
        now = _now_iso()
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    _products.insert()
                    .values(
                        name=product.name,
                        description=product.description,
                        price=product.price,
                        stock=product.stock,
                        category=product.category,
                        active=product.active,
                        created_at=now,
                        updated_at=now,
                    )
                    .returning(*_products.c)
                ).fetchone()
                conn.commit()
        except IntegrityError as exc:
            raise _integrity_error(exc) from exc
        return _row_to_product(row)

    def update_product(self, product_id: int, fields: dict) -> Product:
        """Apply a partial update, refresh updated_at, and return the new snapshot.

        Raises:
            ValidationError: fields is empty.
            ValueError:      fields names a column outside UPDATABLE_FIELDS.
            NotFoundError:   no product with product_id.
        """
        if not fields:
            raise ValidationError("No hay campos válidos para actualizar", code="no_changes")
        unknown = set(fields) - self.UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown product fields: {unknown!r}")
        return self._write(product_id, {**fields, "updated_at": _now_iso()})

    def update_stock(self, product_id: int, stock: int) -> Product:
        """Set the stock level only. Raises NotFoundError if no such product."""
        return self._write(product_id, {"stock": stock, "updated_at": _now_iso()})

    def delete_product(self, product_id: int) -> Product:
        """Delete a product and return the snapshot of the removed row.

        Raises NotFoundError if no such product exists.
        """
        with self.engine.connect() as conn:
            row = conn.execute(
                _products.delete().where(_products.c.id == product_id).returning(*_products.c)
            ).fetchone()
            conn.commit()
        if row is None:
            raise NotFoundError(_NOT_FOUND_MESSAGE, code="product_not_found")
        return _row_to_product(row)

    def _write(self, product_id: int, values: dict) -> Product:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    _products.update().where(_products.c.id == product_id).values(**values).returning(*_products.c)
                ).fetchone()
                conn.commit()
        except IntegrityError as exc:
            raise _integrity_error(exc) from exc
        if row is None:
            raise NotFoundError(_NOT_FOUND_MESSAGE, code="product_not_found")
        return _row_to_product(row)

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    def seed_demo_products(self) -> int:
        """Insert the demo catalog if the products table is empty.

        Returns the number of rows inserted; 0 when products already exist.
        """
        if self.count_products() > 0:
            return 0
        now = _now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                _products.insert(),
                [
                    {
                        "name": name,
                        "description": description,
                        "price": price,
                        "stock": stock,
                        "category": category,
                        "active": True,
                        "created_at": now,
                        "updated_at": now,
                    }
                    for name, description, price, stock, category in _DEMO_PRODUCTS
                ],
            )
            conn.commit()
        logger.info("Seeded %d demo products", len(_DEMO_PRODUCTS))
        return len(_DEMO_PRODUCTS)


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern -- DB row -> domain dataclass)
# ---------------------------------------------------------------------------


def _row_to_product(row) -> Product:
    return Product(
        id=row.id,
        name=row.name,
        description=row.description or "",
        price=float(row.price),
        stock=row.stock,
        category=row.category,
        active=bool(row.active),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
