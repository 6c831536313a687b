"""
api/routes/v1/products.py -- Product catalog routes.

Routes:
  GET    /products               -- list; ?search=, ?category=, ?active=
  GET    /products/{id}          -- single product
  POST   /products               -- create
  PUT    /products/{id}          -- partial update of any allowed field
  PATCH  /products/{id}/stock    -- set stock level only
  DELETE /products/{id}          -- hard delete; returns the removed product

Every route requires a valid bearer token (router-level dependency).

List filter precedence: a non-empty search term wins, then category, then the
full catalog (optionally filtered by active). search and category only return
active products.
"""

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.models import ProductCreate, ProductListResponse, ProductOut, ProductResponse, ProductUpdate, StockUpdate
from api.params import parse_id
from auth.dependencies import get_current_user
from auth.models import User
from catalog.models import MAX_PRICE, MAX_STOCK, RECOMMENDED_CATEGORIES, Product
from catalog.store import ProductStore
from core.errors import NotFoundError, ValidationError

logger = logging.getLogger("storefront.api.products")

router = APIRouter(dependencies=[Depends(get_current_user)])

_INVALID_ID = "ID de producto inválido"
_REQUIRED = ("name", "description", "price", "stock", "category")
_PRICE_MESSAGE = "El precio debe ser un número mayor a 0"
_STOCK_MESSAGE = "El stock debe ser un número mayor o igual a 0"


def _check_price(price) -> None:
    if not math.isfinite(price) or price <= 0:
        raise ValidationError(_PRICE_MESSAGE, code="invalid_price")
    if price > MAX_PRICE:
        raise ValidationError(f"El precio no puede superar {MAX_PRICE}", code="invalid_price")


def _check_stock(stock: int) -> None:
    if stock < 0:
        raise ValidationError(_STOCK_MESSAGE, code="invalid_stock")
    if stock > MAX_STOCK:
        raise ValidationError(f"El stock no puede superar {MAX_STOCK}", code="invalid_stock")


# ---------------------------------------------------------------------------
# GET /products
# ---------------------------------------------------------------------------


@router.get("/products", response_model=ProductListResponse, summary="Listar productos")
def list_products(
    request: Request,
    search: Optional[str] = Query(default=None, description="Substring match on name, description or category"),
    category: Optional[str] = Query(default=None, description="Exact category match"),
    active: Optional[str] = Query(default=None, description="'true' for active products, anything else for inactive"),
) -> ProductListResponse:
    product_store: ProductStore = request.app.state.product_store
    if search:
        products = product_store.search(search)
    elif category:
        products = product_store.list_by_category(category)
    else:
        flag = None if active is None else active == "true"
        products = product_store.list_products(active=flag)
    return ProductListResponse(
        message=f"{len(products)} productos encontrados",
        products=[ProductOut.from_product(p) for p in products],
        count=len(products),
    )


# ---------------------------------------------------------------------------
# GET /products/{product_id}
# ---------------------------------------------------------------------------


@router.get("/products/{product_id}", response_model=ProductResponse, summary="Obtener producto")
def get_product(request: Request, product_id: str) -> ProductResponse:
    pid = parse_id(product_id, _INVALID_ID)
    product_store: ProductStore = request.app.state.product_store
    product = product_store.get_product(pid)
    if product is None:
        raise NotFoundError("Producto no encontrado", code="product_not_found")
    return ProductResponse(message="Producto encontrado", product=ProductOut.from_product(product))


# ---------------------------------------------------------------------------
# POST /products
# ---------------------------------------------------------------------------


@router.post("/products", response_model=ProductResponse, status_code=201, summary="Crear producto")
def create_product(
    request: Request, body: ProductCreate, current_user: User = Depends(get_current_user)
) -> ProductResponse:
    """Create a product. active defaults to true when omitted."""
    values = body.model_dump()
    if any(values[f] is None or values[f] == "" for f in _REQUIRED):
        raise ValidationError("Faltan campos requeridos: " + ", ".join(_REQUIRED), code="missing_fields")
    _check_price(body.price)
    _check_stock(body.stock)
    if body.category not in RECOMMENDED_CATEGORIES:
        logger.debug("Product category outside the recommended list: %r", body.category)

    product_store: ProductStore = request.app.state.product_store
    created = product_store.create_product(
        Product(
            name=body.name,
            description=body.description,
            price=body.price,
            stock=body.stock,
            category=body.category,
            active=body.active,
        )
    )
    logger.info("Product created product_id=%s by user_id=%s", created.id, current_user.id)
    return ProductResponse(message="Producto creado exitosamente", product=ProductOut.from_product(created))


# ---------------------------------------------------------------------------
# PUT /products/{product_id}
# ---------------------------------------------------------------------------


@router.put("/products/{product_id}", response_model=ProductResponse, summary="Actualizar producto")
def update_product(request: Request, product_id: str, body: ProductUpdate) -> ProductResponse:
    """Apply the fields present in the body. Absent fields keep their value."""
    pid = parse_id(product_id, _INVALID_ID)
    fields = body.model_dump(exclude_unset=True)
    if not fields:
        raise ValidationError("No hay campos válidos para actualizar", code="no_changes")
    for field, value in fields.items():
        if value is None:
            raise ValidationError(f"El campo {field} no puede ser nulo", code="null_field")
    for field in ("name", "category"):
        if field in fields and not fields[field]:
            raise ValidationError(f"El campo {field} no puede estar vacío", code="empty_field")
    if "price" in fields:
        _check_price(fields["price"])
    if "stock" in fields:
        _check_stock(fields["stock"])

    product_store: ProductStore = request.app.state.product_store
    updated = product_store.update_product(pid, fields)
    return ProductResponse(message="Producto actualizado exitosamente", product=ProductOut.from_product(updated))


# ---------------------------------------------------------------------------
# PATCH /products/{product_id}/stock
# ---------------------------------------------------------------------------


@router.patch("/products/{product_id}/stock", response_model=ProductResponse, summary="Actualizar stock")
def update_stock(request: Request, product_id: str, body: StockUpdate) -> ProductResponse:
    pid = parse_id(product_id, _INVALID_ID)
    if body.stock is None:
        raise ValidationError(_STOCK_MESSAGE, code="invalid_stock")
    _check_stock(body.stock)

    product_store: ProductStore = request.app.state.product_store
    updated = product_store.update_stock(pid, body.stock)
    return ProductResponse(message="Stock actualizado exitosamente", product=ProductOut.from_product(updated))


# ---------------------------------------------------------------------------
# DELETE /products/{product_id}
# ---------------------------------------------------------------------------


@router.delete("/products/{product_id}", response_model=ProductResponse, summary="Eliminar producto")
def delete_product(
    request: Request, product_id: str, current_user: User = Depends(get_current_user)
) -> ProductResponse:
    """Hard-delete a product and return the removed record."""
    pid = parse_id(product_id, _INVALID_ID)
    product_store: ProductStore = request.app.state.product_store
    deleted = product_store.delete_product(pid)
    logger.info("Product deleted product_id=%s by user_id=%s", deleted.id, current_user.id)
    return ProductResponse(message="Producto eliminado exitosamente", product=ProductOut.from_product(deleted))
