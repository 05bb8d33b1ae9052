"""
Shipping address <-> payment provider metadata.

The provider only stores a flat string-to-string map, so every address field
travels as its own key. Absent fields are omitted rather than sent empty.
"""
from typing import Dict, Mapping, Optional

from storefront.schemas.order_schema import ShippingAddress

SHIPPING_FIELDS = ("country", "city", "street", "details")


def shipping_to_metadata(address: Optional[ShippingAddress]) -> Dict[str, str]:
    if address is None:
        return {}
    meta: Dict[str, str] = {}
    for field in SHIPPING_FIELDS:
        value = getattr(address, field)
        if value is not None and str(value) != "":
            meta[field] = str(value)
    return meta


def metadata_to_shipping(metadata: Optional[Mapping[str, str]]) -> ShippingAddress:
    """Unknown keys are ignored; missing ones come back as None."""
    metadata = metadata or {}
    return ShippingAddress(
        **{field: (metadata.get(field) or None) for field in SHIPPING_FIELDS}
    )
