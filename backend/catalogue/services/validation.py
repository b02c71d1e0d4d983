"""
Payload validation for product and variant writes.

Everything here works on in-memory values only; no session, no queries.
Callers get back cleaned dicts ready to hand to the repositories, or an
InvalidInput carrying the message the API returns verbatim.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from catalogue.exceptions import InvalidInput
from catalogue.models.product import DEFAULT_STATUS, PRODUCT_STATUSES

VARIANT_FIELDS = ("sku", "name", "price_cents", "inventory_count")
PRODUCT_PATCH_FIELDS = ("name", "description", "category_id", "status")

# largest value SQLite stores in an INTEGER column
MAX_DB_INT = 2**63 - 1


@dataclass
class VariantPatch:
    fields: Dict[str, Any] = field(default_factory=dict)
    # the store only re-checks sku uniqueness when this is set
    sku_changed: bool = False


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def is_row_id(value: Any) -> bool:
    """True when value could be a primary key: an int in 1..MAX_DB_INT."""
    return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= MAX_DB_INT


def _non_negative_int(value: Any) -> Optional[int]:
    """Return value as int when it is a whole number >= 0, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if 0 <= value <= MAX_DB_INT else None
    if isinstance(value, float) and value.is_integer() and 0 <= value <= MAX_DB_INT:
        return int(value)
    return None


def _optional_int(value: Any, message: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(message)
    return value


def normalize_status(status: Any) -> str:
    return status if status in PRODUCT_STATUSES else DEFAULT_STATUS


def validate_variant_create(payload: Any, index: Optional[int] = None) -> Dict[str, Any]:
    where = f"Variant at index {index}" if index is not None else "Variant"
    if not isinstance(payload, dict):
        raise InvalidInput(f"{where} must be an object.")

    if not _non_empty_str(payload.get("sku")):
        raise InvalidInput(f"{where} requires a valid SKU.")
    if not _non_empty_str(payload.get("name")):
        raise InvalidInput(f"{where} requires a valid name.")

    price = _non_negative_int(payload.get("price_cents"))
    if price is None:
        raise InvalidInput(f"{where} requires price_cents >= 0.")
    inventory = _non_negative_int(payload.get("inventory_count"))
    if inventory is None:
        raise InvalidInput(f"{where} requires inventory_count >= 0.")

    return {
        "sku": payload["sku"],
        "name": payload["name"],
        "price_cents": price,
        "inventory_count": inventory,
    }


def validate_product_create(payload: Any) -> Dict[str, Any]:
    """
    Check a create payload and return it normalized:
      { name, description, category_id, status, variants: [ {sku, name, price_cents, inventory_count} ] }

    status falls back to 'active' when missing or not one of active/draft/archived.
    """
    if not isinstance(payload, dict):
        raise InvalidInput("Request body must be a JSON object.")

    name = payload.get("name")
    if not _non_empty_str(name):
        raise InvalidInput("Product name is required and must be a string.")

    variants = payload.get("variants")
    if not isinstance(variants, list) or len(variants) == 0:
        raise InvalidInput("At least one variant is required.")

    description = payload.get("description")
    if description is not None and not isinstance(description, str):
        raise InvalidInput("Product description must be a string.")

    category_id = _optional_int(payload.get("category_id"), "category_id must be an integer.")

    cleaned = [validate_variant_create(v, index=i) for i, v in enumerate(variants)]

    return {
        "name": name,
        # empty description is stored as null
        "description": description or None,
        "category_id": category_id,
        "status": normalize_status(payload.get("status")),
        "variants": cleaned,
    }


def validate_product_update(patch: Any) -> Dict[str, Any]:
    """Merge-patch for a product: absent or null fields keep their stored value."""
    if not isinstance(patch, dict):
        raise InvalidInput("Request body must be a JSON object.")

    fields: Dict[str, Any] = {}
    for key in PRODUCT_PATCH_FIELDS:
        value = patch.get(key)
        if value is None:
            continue
        if key == "name" and not _non_empty_str(value):
            raise InvalidInput("Product name must be a non-empty string.")
        if key == "description" and not isinstance(value, str):
            raise InvalidInput("Product description must be a string.")
        if key == "category_id":
            value = _optional_int(value, "category_id must be an integer.")
        if key == "status" and value not in PRODUCT_STATUSES:
            raise InvalidInput(f"status must be one of: {', '.join(PRODUCT_STATUSES)}.")
        fields[key] = value
    return fields


def validate_variant_update(existing: Any, patch: Any) -> VariantPatch:
    """
    Check only the fields present in patch. `existing` is the stored variant
    (anything with a `sku` attribute); it decides whether the sku moved.
    """
    if not isinstance(patch, dict):
        raise InvalidInput("Request body must be a JSON object.")

    result = VariantPatch()

    if "price_cents" in patch:
        price = _non_negative_int(patch["price_cents"])
        if price is None:
            raise InvalidInput("price_cents must be a positive number")
        result.fields["price_cents"] = price

    if "inventory_count" in patch:
        inventory = _non_negative_int(patch["inventory_count"])
        if inventory is None:
            raise InvalidInput("inventory_count must be a positive number")
        result.fields["inventory_count"] = inventory

    if "name" in patch:
        if not _non_empty_str(patch["name"]):
            raise InvalidInput("name must be a non-empty string")
        result.fields["name"] = patch["name"]

    if "sku" in patch:
        if not _non_empty_str(patch["sku"]):
            raise InvalidInput("sku must be a non-empty string")
        result.fields["sku"] = patch["sku"]
        result.sku_changed = patch["sku"] != existing.sku

    return result
