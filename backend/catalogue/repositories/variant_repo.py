import logging
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from catalogue.exceptions import DuplicateSku, LastVariant, NotFound
from catalogue.models.product import Product
from catalogue.models.variant import Variant
from catalogue.utils.clock import utcnow
from catalogue.utils.transactions import smart_transaction

log = logging.getLogger(__name__)


def is_sku_conflict(exc: IntegrityError) -> bool:
    """True when the integrity error comes from the variants.sku unique constraint."""
    msg = str(exc.orig).lower()
    return "sku" in msg and ("unique" in msg or "duplicate" in msg)


class VariantRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, variant_id: int) -> Variant:
        with smart_transaction(self.db):
            variant = self.db.get(Variant, variant_id, populate_existing=True)
            if variant is None:
                raise NotFound("Variant not found")
            return variant

    def sku_taken(self, sku: str, exclude_id: Optional[int] = None) -> bool:
        qry = select(Variant.id).where(Variant.sku == sku)
        if exclude_id is not None:
            qry = qry.where(Variant.id != exclude_id)
        return self.db.execute(qry.limit(1)).first() is not None

    def add(self, product_id: int, fields: Dict[str, Any]) -> Variant:
        """
        Append a variant to an existing, live product.
        fields: {sku, name, price_cents, inventory_count} already validated.
        """
        try:
            with smart_transaction(self.db):
                product = self.db.get(Product, product_id, populate_existing=True)
                if product is None or product.deleted_at is not None:
                    raise NotFound("Product not found")
                if self.sku_taken(fields["sku"]):
                    raise DuplicateSku("SKU already exists")
                now = utcnow()
                variant = Variant(product_id=product_id, created_at=now, updated_at=now, **fields)
                self.db.add(variant)
                self.db.flush()
        except IntegrityError as exc:
            if is_sku_conflict(exc):
                raise DuplicateSku("SKU already exists") from exc
            raise
        log.info("Added variant id=%s sku=%s to product id=%s", variant.id, variant.sku, product_id)
        return variant

    def update_fields(
        self, variant_id: int, patch: Dict[str, Any], sku_changed: bool = False
    ) -> Variant:
        """
        Merge-patch a variant. sku_changed asks for an explicit uniqueness
        check first; the unique constraint catches anything that slips in between.
        """
        try:
            with smart_transaction(self.db):
                variant = self.db.get(Variant, variant_id, populate_existing=True)
                if variant is None:
                    raise NotFound("Variant not found")

                new_sku = patch.get("sku")
                if sku_changed and new_sku is not None:
                    if self.sku_taken(new_sku, exclude_id=variant.id):
                        log.warning("Variant id=%s: sku %r already in use", variant_id, new_sku)
                        raise DuplicateSku("SKU already exists")

                for key, value in patch.items():
                    setattr(variant, key, value)
                variant.updated_at = utcnow()
                self.db.flush()
        except IntegrityError as exc:
            if is_sku_conflict(exc):
                raise DuplicateSku("SKU already exists") from exc
            raise
        return variant

    def delete(self, variant_id: int) -> None:
        """Hard delete, refused when this is the product's last variant."""
        with smart_transaction(self.db):
            variant = self.db.get(Variant, variant_id, populate_existing=True)
            if variant is None:
                raise NotFound("Variant not found")

            # lock the sibling rows so two deletes can't both see a count of 2
            siblings = self.db.execute(
                select(Variant.id)
                .where(Variant.product_id == variant.product_id)
                .with_for_update()
            ).all()
            if len(siblings) <= 1:
                log.warning(
                    "Refusing to delete variant id=%s: last variant of product id=%s",
                    variant_id,
                    variant.product_id,
                )
                raise LastVariant("Cannot delete the last variant of a product")

            self.db.delete(variant)
            self.db.flush()
        log.info("Deleted variant id=%s (product id=%s)", variant_id, variant.product_id)
