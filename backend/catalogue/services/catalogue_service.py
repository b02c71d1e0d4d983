from typing import Any, Dict, List

from sqlalchemy.orm import Session

from catalogue.exceptions import NotFound
from catalogue.repositories.product_repo import ProductRepository
from catalogue.repositories.variant_repo import VariantRepository
from catalogue.services.aggregation import CatalogueAggregator, ProductFilter
from catalogue.services.validation import (
    is_row_id,
    validate_product_create,
    validate_product_update,
    validate_variant_create,
    validate_variant_update,
)


def _require_id(value: int, message: str) -> int:
    # ids outside the integer column range can't exist and the driver rejects them
    if not is_row_id(value):
        raise NotFound(message)
    return value


class CatalogueService:
    """
    Entry point for every catalogue operation.

    Each method validates, performs one atomic store call, then re-reads the
    response shape. Errors from catalogue.exceptions propagate to the caller
    unchanged. Results are plain dicts, safe to return after the session closes.
    """

    def __init__(self, db: Session):
        self.db = db
        self.products = ProductRepository(db)
        self.variants = VariantRepository(db)
        self.reader = CatalogueAggregator(db)

    # --- products ---

    def create_product(self, payload: Any) -> Dict:
        data = validate_product_create(payload)
        variants = data.pop("variants")
        product = self.products.create_with_variants(data, variants)
        return self.reader.get_product(product.id)

    def list_products(self, search: Any = None, category_id: Any = None) -> List[Dict]:
        return self.reader.list_products(ProductFilter.parse(search, category_id))

    def get_product(self, product_id: int) -> Dict:
        _require_id(product_id, "Product not found")
        return self.reader.get_product(product_id)

    def update_product(self, product_id: int, patch: Any) -> Dict:
        _require_id(product_id, "Product not found")
        fields = validate_product_update(patch)
        product = self.products.update_fields(product_id, fields)
        return self.reader.get_product_fields(product.id)

    def delete_product(self, product_id: int) -> Dict:
        _require_id(product_id, "Product not found")
        self.products.soft_delete(product_id)
        return {"success": True}

    # --- variants ---

    def get_variant(self, variant_id: int) -> Dict:
        _require_id(variant_id, "Variant not found")
        return self.reader.variant(self.variants.get(variant_id))

    def add_variant(self, product_id: int, payload: Any) -> Dict:
        _require_id(product_id, "Product not found")
        fields = validate_variant_create(payload)
        return self.reader.variant(self.variants.add(product_id, fields))

    def update_variant(self, variant_id: int, patch: Any) -> Dict:
        _require_id(variant_id, "Variant not found")
        existing = self.variants.get(variant_id)
        checked = validate_variant_update(existing, patch)
        variant = self.variants.update_fields(
            variant_id, checked.fields, sku_changed=checked.sku_changed
        )
        return self.reader.variant(variant)

    def delete_variant(self, variant_id: int) -> Dict:
        _require_id(variant_id, "Variant not found")
        self.variants.delete(variant_id)
        return {"success": True}

    # --- categories ---

    def list_categories(self) -> List[Dict]:
        return self.reader.list_categories()

    def get_category(self, category_id: int) -> Dict:
        _require_id(category_id, "Category not found")
        return self.reader.get_category(category_id)
