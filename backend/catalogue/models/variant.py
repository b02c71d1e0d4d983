from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from catalogue.db import Base
from catalogue.utils.clock import utcnow


class Variant(Base):
    __tablename__ = "variants"
    # sku is unique across the whole catalogue, not per product
    __table_args__ = (UniqueConstraint("sku", name="uq_variants_sku"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sku = Column(String(64), nullable=False, index=True)
    name = Column(String(256), nullable=False)
    price_cents = Column(Integer, nullable=False, default=0)
    inventory_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    product = relationship("Product", back_populates="variants")

    def __repr__(self):
        return f"<Variant sku={self.sku} product_id={self.product_id}>"
