"""
API request and response models for the Storefront REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
catalog/models.py, which own the internal domain representation. Route
handlers map between the two.

Request models make every field Optional on purpose. "Field missing" must be
a 400 with a message naming the field, produced by the route handler, rather
than FastAPI's generic 422. Type checks stay here: numeric fields are strict,
so "10" (a string) is rejected instead of being coerced to 10. Any type
failure reaches the RequestValidationError handler in api/main.py, which
also answers 400.

Separation of concerns: domain models = domain truth; api/ models = API contract.
"""

from typing import Annotated, Optional, Union

from pydantic import AllowInfNan, BaseModel, ConfigDict, Field, Strict, StrictBool, StrictInt

from auth.models import User
from catalog.models import RECOMMENDED_CATEGORIES, Product

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# JSON numbers only, and never Infinity or NaN (the JSON decoder accepts both).
_Number = Union[StrictInt, Annotated[float, Strict(), AllowInfNan(False)]]

_CATEGORY_DESCRIPTION = "Free text. Recommended values: " + ", ".join(RECOMMENDED_CATEGORIES)


# ---------------------------------------------------------------------------
# Request models -- auth and users
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    model_config = ConfigDict(json_schema_extra={"example": {"email": "juan@example.com", "password": "123456"}})

    email: Optional[str] = Field(default=None, max_length=255)
    # No length cap: an overlong password is just a wrong password (401).
    password: Optional[str] = None


class UserCreate(BaseModel):
    """Request body for POST /users. All three fields are required (checked in the route)."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        json_schema_extra={"example": {"name": "Ana López", "email": "ana@example.com", "password": "secreto"}},
    )

    name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=72)


class UserUpdate(BaseModel):
    """Request body for PUT /users/{id}. Any non-empty subset of the fields."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=72)


# ---------------------------------------------------------------------------
# Request models -- products
# ---------------------------------------------------------------------------


class ProductCreate(BaseModel):
    """Request body for POST /products."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "name": "Lámpara de escritorio",
                "description": "Lámpara LED regulable",
                "price": 39.9,
                "stock": 12,
                "category": "Hogar",
            }
        },
    )

    name: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    price: Optional[_Number] = Field(default=None, description="Must be greater than 0.")
    stock: Optional[StrictInt] = Field(default=None, description="Must be 0 or greater.")
    category: Optional[str] = Field(default=None, max_length=100, description=_CATEGORY_DESCRIPTION)
    active: StrictBool = True


class ProductUpdate(BaseModel):
    """Request body for PUT /products/{id}.

    Only the fields present in the JSON body are applied
    (model_dump(exclude_unset=True)); unknown keys are ignored.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    price: Optional[_Number] = None
    stock: Optional[StrictInt] = None
    category: Optional[str] = Field(default=None, max_length=100, description=_CATEGORY_DESCRIPTION)
    active: Optional[StrictBool] = None


class StockUpdate(BaseModel):
    """Request body for PATCH /products/{id}/stock."""

    stock: Optional[StrictInt] = None


# ---------------------------------------------------------------------------
# Resource representations
# ---------------------------------------------------------------------------


class UserOut(BaseModel):
    """Public view of a user. Never carries the password or its hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls(id=user.id, name=user.name, email=user.email, created_at=user.created_at or "")


class ProductOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    description: str
    price: float
    stock: int
    category: str
    active: bool
    created_at: str
    updated_at: str

    @classmethod
    def from_product(cls, product: Product) -> "ProductOut":
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            price=product.price,
            stock=product.stock,
            category=product.category,
            active=product.active,
            created_at=product.created_at,
            updated_at=product.updated_at,
        )


# ---------------------------------------------------------------------------
# Response envelopes -- every body carries success + message
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str


class UserResponse(MessageResponse):
    data: UserOut


class UserListResponse(MessageResponse):
    data: list[UserOut]
    count: int
    requested_by: UserOut


class LoginResponse(MessageResponse):
    user: UserOut
    token: str


class MeResponse(MessageResponse):
    user: UserOut


class ProductResponse(MessageResponse):
    product: ProductOut


class ProductListResponse(MessageResponse):
    products: list[ProductOut]
    count: int


class ErrorResponse(BaseModel):
    """Envelope returned on every 4xx/5xx response."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    message: str
    code: str
    detail: Optional[str] = None


# ---------------------------------------------------------------------------
# Health and service info
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str
    version: str
    components: dict[str, str]


class ProbeResponse(BaseModel):
    """Response for GET /health/ready and GET /health/live."""

    model_config = ConfigDict(frozen=True)

    status: str


class ServiceInfoResponse(BaseModel):
    """Response for GET / -- service description and endpoint map."""

    model_config = ConfigDict(frozen=True)

    message: str
    version: str
    docs_url: str
    authenticated_as: Optional[UserOut] = None
    endpoints: dict[str, dict[str, str]]
