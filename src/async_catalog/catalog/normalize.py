"""Normalization of catalog API entities into the storefront domain model."""

import logging
import re
from typing import Any, Dict, List, Mapping, Optional

from async_catalog.base.utils import get_nested_value
from async_catalog.catalog.models import (
    PLACEHOLDER_IMAGE_URL,
    Cart,
    Category,
    LineItem,
    LineItemOption,
    Money,
    Product,
    ProductImage,
    ProductOption,
    ProductOptionValue,
)

logger = logging.getLogger(__name__)

_COLOUR_OPTION = re.compile(r"colou?r", re.IGNORECASE)

# Product fields consumed by `normalize_product`; everything else is carried over.
_PRODUCT_FIELDS = {
    "_id", "id", "name", "title", "brand", "media", "variants", "description",
    "price", "slug", "sku", "convertedPriceData", "priceData", "productOptions",
}


def _number(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring non-numeric amount {value!r}")
        return None


def normalize_money(price_data: Optional[Mapping[str, Any]]) -> Money:
    price_data = price_data or {}
    return Money(
        value=_number(price_data.get("price")) or 0.0,
        currency_code=price_data.get("currency"),
    )


def normalize_product_option(option: Mapping[str, Any]) -> ProductOption:
    display_name = option.get("name") or ""
    is_colour = bool(_COLOUR_OPTION.search(display_name))
    values = []
    for choice in option.get("choices") or []:
        values.append(
            ProductOptionValue(
                label=choice.get("description") or "",
                hex_colors=[choice.get("value")] if is_colour else None,
            )
        )
    return ProductOption(id="", display_name=display_name, values=values)


def normalize_product_images(media: Optional[Mapping[str, Any]]) -> List[ProductImage]:
    images = []
    for item in (media or {}).get("items") or []:
        image = item.get("image")
        if image and image.get("url"):
            images.append(
                ProductImage(
                    url=image["url"],
                    alt_text=image.get("altText"),
                    width=image.get("width"),
                    height=image.get("height"),
                )
            )
    return images


def normalize_product(product: Mapping[str, Any]) -> Product:
    """Normalizes a catalog product (public or wire field names)."""
    slug = product.get("slug") or ""
    price_data = (
        product.get("convertedPriceData") or product.get("priceData") or product.get("price")
    )
    rest = {
        key: value
        for key, value in product.items()
        if key not in _PRODUCT_FIELDS
        and key not in Product.model_fields
        and not key.startswith("_")
    }
    return Product(
        id=product.get("_id") or product.get("id") or "",
        name=product.get("name") or product.get("title") or "",
        vendor=product.get("brand") or "",
        sku=product.get("sku") or "",
        description=product.get("description") or "",
        path=f"/{slug}",
        slug=slug.strip("/"),
        price=normalize_money(price_data),
        images=normalize_product_images(product.get("media")),
        variants=[],
        options=[
            normalize_product_option(option)
            for option in product.get("productOptions") or []
        ],
        **rest,
    )


def normalize_line_item(item: Mapping[str, Any]) -> LineItem:
    catalog_item_id = get_nested_value(item, "catalogReference.catalogItemId", "")
    name = get_nested_value(item, "productName.translated") or get_nested_value(
        item, "productName.original", ""
    )
    relative_path = get_nested_value(item, "url.relativePath", "") or ""
    path_segments = relative_path.split("/")

    return LineItem(
        id=item["id"],
        variant_id=catalog_item_id,
        product_id=catalog_item_id,
        name=name,
        quantity=item.get("quantity", 1),
        variant={
            "id": catalog_item_id,
            "sku": get_nested_value(item, "physicalProperties.sku") or "",
            "name": name,
            "image": {"url": get_nested_value(item, "image.url") or PLACEHOLDER_IMAGE_URL},
            "requires_shipping": bool(get_nested_value(item, "physicalProperties.shippable", False)),
            "price": _number(get_nested_value(item, "price.amount")),
            "list_price": _number(get_nested_value(item, "priceBeforeDiscounts.amount")),
        },
        path=path_segments[2] if len(path_segments) > 2 else "",
        discounts=[],
        options=[_normalize_description_line(line) for line in item.get("descriptionLines") or []],
    )


def _normalize_description_line(line: Mapping[str, Any]) -> LineItemOption:
    return LineItemOption(
        name=get_nested_value(line, "name.translated") or get_nested_value(line, "name.original", ""),
        value=get_nested_value(line, "colorInfo.code") or get_nested_value(line, "plainText.translated"),
    )


def normalize_cart(response: Mapping[str, Any], checkout_url: Optional[str] = None) -> Cart:
    """Normalizes a get-cart response (`{"cart": {...}}`) or a bare cart."""
    cart: Dict[str, Any] = response.get("cart", response)
    subtotal = _number(get_nested_value(cart, "subtotal.amount"))
    return Cart(
        id=cart["id"],
        url=checkout_url,
        customer_id="",
        email="",
        created_at=cart.get("createdDate"),
        currency={"code": cart.get("currency")},
        taxes_included=cart.get("taxIncludedInPrices"),
        line_items=[normalize_line_item(item) for item in cart.get("lineItems") or []],
        line_items_subtotal_price=subtotal,
        subtotal_price=subtotal,
        total_price=subtotal,
        discounts=[],
    )


def normalize_category(collection: Mapping[str, Any]) -> Category:
    name = collection.get("name") or ""
    return Category(
        id=collection.get("_id") or collection.get("id") or "",
        name=name,
        slug=name,
        path=f"/{name}",
    )
