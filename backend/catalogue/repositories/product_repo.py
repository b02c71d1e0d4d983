import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from catalogue.exceptions import AlreadyDeleted, DuplicateSku, InvalidInput, NotFound
from catalogue.models.category import Category
from catalogue.models.product import Product
from catalogue.models.variant import Variant
from catalogue.repositories.variant_repo import is_sku_conflict
from catalogue.services.validation import is_row_id
from catalogue.utils.clock import utcnow
from catalogue.utils.transactions import smart_transaction

log = logging.getLogger(__name__)


class ProductRepository:
    def __init__(self, db: Session):
        self.db = db

    def _check_category(self, category_id: Optional[int]) -> None:
        if category_id is None:
            return
        if not is_row_id(category_id) or self.db.get(Category, category_id) is None:
            raise InvalidInput("Category not found")

    def create_with_variants(
        self, fields: Dict[str, Any], variants: List[Dict[str, Any]]
    ) -> Product:
        """
        Insert the product and all of its variants as one unit of work.
        A clash on variants.sku (inside the batch or against stored rows)
        rolls the whole thing back.
        """
        try:
            with smart_transaction(self.db):
                self._check_category(fields.get("category_id"))
                now = utcnow()
                product = Product(
                    name=fields["name"],
                    description=fields.get("description"),
                    category_id=fields.get("category_id"),
                    status=fields["status"],
                    created_at=now,
                    updated_at=now,
                )
                self.db.add(product)
                self.db.flush()  # ensure id assigned

                for v in variants:
                    self.db.add(
                        Variant(product_id=product.id, created_at=now, updated_at=now, **v)
                    )
                self.db.flush()
        except IntegrityError as exc:
            if is_sku_conflict(exc):
                skus = [v["sku"] for v in variants]
                log.warning("Product %r rejected: duplicate sku among %s", fields["name"], skus)
                raise DuplicateSku("One or more SKUs are already in use.") from exc
            raise
        log.info("Created product id=%s with %d variant(s)", product.id, len(variants))
        return product

    def update_fields(self, product_id: int, patch: Dict[str, Any]) -> Product:
        with smart_transaction(self.db):
            # NOTE: soft-deleted products are still updatable here
            product = self.db.get(Product, product_id, populate_existing=True)
            if product is None:
                raise NotFound("Product not found")
            if "category_id" in patch:
                self._check_category(patch["category_id"])

            for key, value in patch.items():
                setattr(product, key, value)
            product.updated_at = utcnow()
            self.db.flush()
        return product

    def soft_delete(self, product_id: int) -> datetime:
        """
        Stamp deleted_at. The stamp is a single conditional UPDATE, so of any
        number of concurrent calls exactly one sees a changed row.
        Returns the stamp.
        """
        now = utcnow()
        with smart_transaction(self.db):
            result = self.db.execute(
                update(Product)
                .where(Product.id == product_id, Product.deleted_at.is_(None))
                .values(deleted_at=now, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            stamped = result.rowcount == 1
            existing = None
            if not stamped:
                existing = self.db.execute(
                    select(Product.id, Product.deleted_at).where(Product.id == product_id)
                ).first()

        if stamped:
            log.info("Soft-deleted product id=%s", product_id)
            return now
        if existing is None:
            raise NotFound("Product not found")
        log.warning("Product id=%s already deleted at %s", product_id, existing.deleted_at)
        raise AlreadyDeleted("Product has already been deleted", deleted_at=existing.deleted_at)
