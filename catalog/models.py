"""
catalog/models.py -- Domain dataclasses for the product catalog.

Pure data containers with zero logic. Range rules (price > 0, stock >= 0) are
enforced at the API boundary in api/routes/v1/products.py and again by CHECK
constraints in catalog/store.py, where persistence lives.
"""

from dataclasses import dataclass
from typing import Optional

# Column limits: price is Numeric(10, 2), stock a 32-bit INTEGER.
MAX_PRICE = 99_999_999.99
MAX_STOCK = 2**31 - 1

# Published in the API docs as suggestions. Not enforced: any non-empty string
# is accepted as a category.
RECOMMENDED_CATEGORIES: tuple[str, ...] = (
    "Tecnología",
    "Audio",
    "Muebles",
    "Electrodomésticos",
    "Deportes",
    "Hogar",
    "Jardín",
    "Ropa",
    "Libros",
    "Juguetes",
    "Belleza",
    "Mascotas",
)


@dataclass
class Product:
    """A sellable catalog item.

    Inactive products stay readable by id and in the unfiltered listing but
    are excluded from category browsing and search.

    id is None before the record is written to the database.
    """

    name: str
    description: str
    price: float
    stock: int
    category: str
    active: bool = True
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""  # ISO 8601, refreshed on every write
