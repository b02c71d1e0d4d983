from datetime import datetime

from pydantic import BaseModel, ConfigDict


class VariantOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    product_id: int
    sku: str
    name: str
    price_cents: int
    inventory_count: int
    created_at: datetime
    updated_at: datetime
