"""
Read-side shapes for products and categories.

Every call re-derives its result from the current rows: plain column selects,
no ORM identity map, no caching. Nothing here writes.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from catalogue.exceptions import NotFound
from catalogue.models.category import Category
from catalogue.models.product import Product
from catalogue.models.variant import Variant
from catalogue.schemas.category_schema import CategoryOut
from catalogue.schemas.product_schema import ProductDetailOut, ProductOut, ProductSummaryOut
from catalogue.schemas.variant_schema import VariantOut
from catalogue.services.validation import is_row_id
from catalogue.utils.transactions import smart_transaction

PRODUCT_COLUMNS = (
    Product.id,
    Product.name,
    Product.description,
    Product.category_id,
    Category.name.label("category_name"),
    Product.status,
    Product.deleted_at,
    Product.created_at,
    Product.updated_at,
)


@dataclass
class ProductFilter:
    """
    Filter parameters for the product list.

    Attributes:
        search: Case-insensitive substring matched against name or description.
        category_id: Exact category match.
    """

    search: Optional[str] = None
    category_id: Optional[int] = None

    @classmethod
    def parse(cls, search: Any = None, category_id: Any = None) -> "ProductFilter":
        """Build a filter from raw query values; malformed values are dropped, not rejected."""
        term = search.strip() if isinstance(search, str) else None
        try:
            cat = int(category_id) if category_id not in (None, "") else None
        except (TypeError, ValueError):
            cat = None
        return cls(search=term or None, category_id=cat)


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class CatalogueAggregator:
    def __init__(self, db: Session):
        self.db = db

    def list_products(self, filters: Optional[ProductFilter] = None) -> List[Dict[str, Any]]:
        filters = filters or ProductFilter()
        stmt = (
            select(
                *PRODUCT_COLUMNS,
                func.count(Variant.id).label("variant_count"),
                func.min(Variant.price_cents).label("min_price_cents"),
                func.max(Variant.price_cents).label("max_price_cents"),
                func.coalesce(func.sum(Variant.inventory_count), 0).label("total_inventory"),
            )
            .select_from(Product)
            .outerjoin(Category, Product.category_id == Category.id)
            .outerjoin(Variant, Variant.product_id == Product.id)
            .where(Product.deleted_at.is_(None))
        )
        if filters.search:
            pattern = _like_pattern(filters.search)
            stmt = stmt.where(
                or_(
                    Product.name.ilike(pattern, escape="\\"),
                    Product.description.ilike(pattern, escape="\\"),
                )
            )
        if filters.category_id is not None:
            if not is_row_id(filters.category_id):
                return []
            stmt = stmt.where(Product.category_id == filters.category_id)

        stmt = stmt.group_by(Product.id, Category.id, Category.name).order_by(
            Product.created_at.desc(), Product.id.desc()
        )

        with smart_transaction(self.db):
            rows = self.db.execute(stmt).all()
        return [ProductSummaryOut.model_validate(dict(r._mapping)).model_dump() for r in rows]

    def _product_row(self, product_id: int, include_deleted: bool) -> Dict[str, Any]:
        stmt = (
            select(*PRODUCT_COLUMNS)
            .select_from(Product)
            .outerjoin(Category, Product.category_id == Category.id)
            .where(Product.id == product_id)
        )
        if not include_deleted:
            stmt = stmt.where(Product.deleted_at.is_(None))
        row = self.db.execute(stmt).first()
        if row is None:
            raise NotFound("Product not found")
        return dict(row._mapping)

    def _variant_rows(self, product_id: int) -> List[Dict[str, Any]]:
        stmt = (
            select(*Variant.__table__.columns)
            .where(Variant.product_id == product_id)
            .order_by(Variant.created_at.asc(), Variant.id.asc())
        )
        return [dict(r._mapping) for r in self.db.execute(stmt).all()]

    def get_product(self, product_id: int) -> Dict[str, Any]:
        """Live product with category_name and its variants in creation order."""
        with smart_transaction(self.db):
            data = self._product_row(product_id, include_deleted=False)
            data["variants"] = self._variant_rows(product_id)
        return ProductDetailOut.model_validate(data).model_dump()

    def get_product_fields(self, product_id: int) -> Dict[str, Any]:
        """Product columns plus category_name, soft-deleted rows included."""
        with smart_transaction(self.db):
            data = self._product_row(product_id, include_deleted=True)
        return ProductOut.model_validate(data).model_dump()

    def list_categories(self) -> List[Dict[str, Any]]:
        stmt = (
            select(
                Category.id,
                Category.name,
                func.count(Product.id).label("product_count"),
            )
            .select_from(Category)
            .outerjoin(
                Product,
                and_(Product.category_id == Category.id, Product.deleted_at.is_(None)),
            )
            .group_by(Category.id, Category.name)
        )
        with smart_transaction(self.db):
            rows = self.db.execute(stmt).all()
        # case-insensitive first, exact spelling breaks ties
        rows = sorted(rows, key=lambda r: (r.name.casefold(), r.name, r.id))
        return [CategoryOut.model_validate(dict(r._mapping)).model_dump() for r in rows]

    def get_category(self, category_id: int) -> Dict[str, Any]:
        stmt = (
            select(
                Category.id,
                Category.name,
                func.count(Product.id).label("product_count"),
            )
            .select_from(Category)
            .outerjoin(
                Product,
                and_(Product.category_id == Category.id, Product.deleted_at.is_(None)),
            )
            .where(Category.id == category_id)
            .group_by(Category.id, Category.name)
        )
        with smart_transaction(self.db):
            row = self.db.execute(stmt).first()
        if row is None:
            raise NotFound("Category not found")
        return CategoryOut.model_validate(dict(row._mapping)).model_dump()

    def variant(self, variant: Variant) -> Dict[str, Any]:
        return VariantOut.model_validate(variant).model_dump()
