"""
API Schemas

Pydantic models for every RPC input and output.

- Input models validate what the client sends; update inputs are partial and
  rely on ``model_fields_set``: an omitted field is left alone, an explicit
  null clears a nullable column.
- Output models are built from ORM rows (``from_attributes``). Money columns
  are Decimal in storage and plain numbers here.
"""
from datetime import datetime
from typing import Annotated, ClassVar, List, Literal, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator

UserRole = Literal["customer", "admin"]
ProductType = Literal["perfume", "shirt"]
Gender = Literal["male", "female", "unisex"]
OrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled"]
AddressType = Literal["shipping", "billing"]

HTTP_URL_PATTERN = r"^https?://[^\s/$.?#][^\s]*$"


def _check_email(value: str) -> str:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValueError(str(exc)) from exc
    return value


# same check as EmailStr, but the address is kept exactly as sent
Email = Annotated[str, AfterValidator(_check_email)]


class PatchModel(BaseModel):
    # columns where an explicit null means "clear it"
    nullable_fields: ClassVar[frozenset] = frozenset()

    def changes(self, *exclude: str) -> dict:
        """Fields the client actually sent, minus the identifying ones.

        A null sent for a column that cannot be null is treated as not sent.
        """
        sent = self.model_dump(include=self.model_fields_set, exclude=set(exclude))
        return {
            key: value
            for key, value in sent.items()
            if value is not None or key in self.nullable_fields
        }


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Auth

class AuthContext(BaseModel):
    user_id: int
    role: UserRole


class RegisterInput(BaseModel):
    email: Email
    password: str = Field(..., min_length=8)
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)


class LoginInput(BaseModel):
    email: Email
    password: str


class UpdateProfileInput(PatchModel):
    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = Field(None, min_length=1)
    email: Optional[Email] = None


class User(ORMModel):
    id: int
    email: str
    password_hash: str
    first_name: str
    last_name: str
    role: UserRole
    created_at: datetime
    updated_at: datetime


# Products

class ProductVariation(ORMModel):
    id: int
    product_id: int
    variation_type: str
    variation_value: str
    price_adjustment: float
    stock_quantity: int
    is_available: bool


class Product(ORMModel):
    id: int
    name: str
    description: str
    type: ProductType
    gender: Optional[Gender]
    base_price: float
    image_url: Optional[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ProductWithVariations(Product):
    variations: List[ProductVariation] = []


class ProductFilters(BaseModel):
    type: Optional[ProductType] = None
    gender: Optional[Gender] = None
    search: Optional[str] = None
    min_price: Optional[float] = Field(None, gt=0)
    max_price: Optional[float] = Field(None, gt=0)
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)


class PaginatedProducts(BaseModel):
    products: List[ProductWithVariations]
    total: int = Field(..., ge=0)
    page: int
    limit: int
    total_pages: int = Field(..., ge=0)


class CreateProductInput(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    type: ProductType
    gender: Optional[Gender] = None
    base_price: float = Field(..., gt=0)
    image_url: Optional[str] = Field(None, pattern=HTTP_URL_PATTERN)


class UpdateProductInput(PatchModel):
    nullable_fields = frozenset({"gender", "image_url"})

    id: int
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    type: Optional[ProductType] = None
    gender: Optional[Gender] = None
    base_price: Optional[float] = Field(None, gt=0)
    image_url: Optional[str] = Field(None, pattern=HTTP_URL_PATTERN)
    is_active: Optional[bool] = None


class CreateProductVariationInput(BaseModel):
    product_id: int
    variation_type: str = Field(..., min_length=1)
    variation_value: str = Field(..., min_length=1)
    price_adjustment: float = 0
    stock_quantity: int = Field(..., ge=0)


class UpdateProductVariationInput(PatchModel):
    id: int
    variation_type: Optional[str] = Field(None, min_length=1)
    variation_value: Optional[str] = Field(None, min_length=1)
    price_adjustment: Optional[float] = None
    stock_quantity: Optional[int] = Field(None, ge=0)
    is_available: Optional[bool] = None


# Cart

class CartItem(ORMModel):
    id: int
    cart_id: int
    product_id: int
    variation_id: Optional[int]
    quantity: int
    custom_design_text: Optional[str]
    custom_design_url: Optional[str]
    unit_price: float
    created_at: datetime


class CartItemWithProduct(CartItem):
    product: Product
    variation: Optional[ProductVariation]


class Cart(ORMModel):
    id: int
    user_id: int
    created_at: datetime
    updated_at: datetime


class CartWithItems(Cart):
    items: List[CartItemWithProduct] = []


class AddToCartInput(BaseModel):
    product_id: int
    variation_id: Optional[int] = None
    quantity: int = Field(1, gt=0)
    custom_design_text: Optional[str] = None
    custom_design_url: Optional[str] = Field(None, pattern=HTTP_URL_PATTERN)

    @field_validator("custom_design_text", "custom_design_url", mode="before")
    @classmethod
    def blank_design_is_none(cls, v):
        """An empty design field means no design."""
        return v or None


class UpdateCartItemInput(PatchModel):
    nullable_fields = frozenset({"custom_design_text", "custom_design_url"})

    cart_item_id: int
    # zero removes the line
    quantity: Optional[int] = Field(None, ge=0)
    custom_design_text: Optional[str] = None
    custom_design_url: Optional[str] = Field(None, pattern=HTTP_URL_PATTERN)


# Orders

class OrderItem(ORMModel):
    id: int
    order_id: int
    product_id: int
    variation_id: Optional[int]
    quantity: int
    custom_design_text: Optional[str]
    custom_design_url: Optional[str]
    unit_price: float
    total_price: float


class OrderItemWithProduct(OrderItem):
    product: Product
    variation: Optional[ProductVariation]


class Order(ORMModel):
    id: int
    user_id: int
    order_number: str
    status: OrderStatus
    total_amount: float
    shipping_address: str
    billing_address: str
    payment_method: str
    payment_status: str
    created_at: datetime
    updated_at: datetime


class OrderWithItems(Order):
    items: List[OrderItemWithProduct] = []


class CreateOrderInput(BaseModel):
    shipping_address: str = Field(..., min_length=1)
    billing_address: str = Field(..., min_length=1)
    payment_method: str = Field(..., min_length=1)


class UpdateOrderStatusInput(BaseModel):
    order_id: int
    status: OrderStatus


# Addresses

class UserAddress(ORMModel):
    id: int
    user_id: int
    type: str
    first_name: str
    last_name: str
    street_address: str
    city: str
    state: str
    postal_code: str
    country: str
    phone: Optional[str]
    is_default: bool
    created_at: datetime


class CreateAddressInput(BaseModel):
    type: AddressType
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    street_address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    postal_code: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)
    phone: Optional[str] = None
    is_default: bool = False


class UpdateAddressInput(PatchModel):
    nullable_fields = frozenset({"phone"})

    id: int
    type: Optional[AddressType] = None
    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = Field(None, min_length=1)
    street_address: Optional[str] = Field(None, min_length=1)
    city: Optional[str] = Field(None, min_length=1)
    state: Optional[str] = Field(None, min_length=1)
    postal_code: Optional[str] = Field(None, min_length=1)
    country: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = None
    is_default: Optional[bool] = None
