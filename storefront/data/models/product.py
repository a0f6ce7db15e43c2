from sqlalchemy import Column, Integer, ForeignKey, String, Boolean, Numeric, JSON, Uuid
from sqlalchemy.orm import relationship
import uuid

from storefront.data.database import Base


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    store_id = Column(Uuid, ForeignKey("stores.id"), nullable=False, index=True)

    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    image_url = Column(String, nullable=True)

    is_available = Column(Boolean, nullable=False, default=True)
    status = Column(String, nullable=False, default="active")  # active, draft
    stock = Column(Integer, nullable=True)  # None = stan nie jest sledzony

    variants = relationship(
        "ProductVariantModel",
        back_populates="product",
        cascade="all, delete-orphan",
    )


class ProductVariantModel(Base):
    __tablename__ = "product_variants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id = Column(Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)

    price = Column(Numeric(10, 2), nullable=False)
    options = Column(JSON, nullable=False, default=dict)  # np. {"Size": "M", "Color": "Red"}
    is_available = Column(Boolean, nullable=False, default=True)
    stock = Column(Integer, nullable=True)

    product = relationship("ProductModel", back_populates="variants")
