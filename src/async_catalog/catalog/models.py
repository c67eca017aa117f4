"""Domain model of the storefront.

Pydantic models for normalized catalog entities. Fields are snake_case in
Python and dump to camelCase with `model_dump(by_alias=True)`.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

PLACEHOLDER_IMAGE_URL = "/product-img-placeholder.svg"


class DomainModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Products
# ============================================================================


class Money(DomainModel):
    """Price representation."""

    value: float = Field(..., description="Amount in the currency unit")
    currency_code: Optional[str] = Field(default=None, description="Currency code")


class ProductImage(DomainModel):
    url: str
    alt_text: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


class ProductOptionValue(DomainModel):
    label: str
    hex_colors: Optional[List[str]] = None


class ProductOption(DomainModel):
    id: str = ""
    display_name: str
    values: List[ProductOptionValue] = Field(default_factory=list)


class ProductVariant(DomainModel):
    id: str
    options: List[ProductOption] = Field(default_factory=list)
    available_for_sale: Optional[bool] = None


class Product(DomainModel):
    """Normalized product.

    Fields of the catalog product that have no normalized counterpart are kept
    as extra attributes.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str
    name: str
    description: str = ""
    sku: str = ""
    slug: str = ""
    path: str = ""
    vendor: str = ""
    price: Money
    images: List[ProductImage] = Field(default_factory=list)
    variants: List[ProductVariant] = Field(default_factory=list)
    options: List[ProductOption] = Field(default_factory=list)


# ============================================================================
# Categories
# ============================================================================


class Category(DomainModel):
    id: str
    name: str
    slug: str
    path: str


# ============================================================================
# Carts
# ============================================================================


class LineItemImage(DomainModel):
    url: str = PLACEHOLDER_IMAGE_URL


class LineItemVariant(DomainModel):
    id: str
    sku: str = ""
    name: str
    image: LineItemImage = Field(default_factory=LineItemImage)
    requires_shipping: bool = False
    price: Optional[float] = None
    list_price: Optional[float] = None


class LineItemOption(DomainModel):
    name: str
    value: Optional[str] = None


class LineItem(DomainModel):
    id: str
    variant_id: str
    product_id: str
    name: str
    quantity: int
    variant: LineItemVariant
    path: str = ""
    discounts: List[dict] = Field(default_factory=list)
    options: List[LineItemOption] = Field(default_factory=list)


class CartCurrency(DomainModel):
    code: Optional[str] = None


class Cart(DomainModel):
    id: str
    url: Optional[str] = None
    customer_id: str = ""
    email: str = ""
    created_at: Optional[str] = None
    currency: CartCurrency = Field(default_factory=CartCurrency)
    taxes_included: Optional[bool] = None
    line_items: List[LineItem] = Field(default_factory=list)
    line_items_subtotal_price: Optional[float] = None
    subtotal_price: Optional[float] = None
    total_price: Optional[float] = None
    discounts: List[dict] = Field(default_factory=list)
