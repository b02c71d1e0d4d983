from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from catalogue.schemas.variant_schema import VariantOut


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str
    description: Optional[str] = None
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    status: str
    deleted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ProductDetailOut(ProductOut):
    variants: List[VariantOut] = []


class ProductSummaryOut(ProductOut):
    variant_count: int = 0
    # null only for a product caught without variants
    min_price_cents: Optional[int] = None
    max_price_cents: Optional[int] = None
    total_inventory: int = 0
