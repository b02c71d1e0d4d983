from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from catalogue.db import Base
from catalogue.utils.clock import utcnow

PRODUCT_STATUSES = ("active", "draft", "archived")
DEFAULT_STATUS = "active"


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(256), nullable=False)
    description = Column(Text, nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    status = Column(String(16), nullable=False, default=DEFAULT_STATUS)  # active, draft, archived
    deleted_at = Column(DateTime, nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    category = relationship("Category", back_populates="products")
    variants = relationship(
        "Variant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="[Variant.created_at, Variant.id]",
    )

    def __repr__(self):
        return f"<Product id={self.id} name={self.name} status={self.status}>"
