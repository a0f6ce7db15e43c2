from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, JSON, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
import uuid

from storefront.data.database import Base, utcnow

ORDER_STATUSES = ("pending", "confirmed", "shipped", "delivered")


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    store_id = Column(Uuid, ForeignKey("stores.id"), nullable=False, index=True)
    order_number = Column(Integer, nullable=False)

    customer_name = Column(String, nullable=False)
    customer_phone = Column(String, nullable=False, index=True)
    customer_email = Column(String, nullable=True)
    customer_city = Column(String, nullable=True)
    customer_country = Column(String, nullable=True)
    customer_address = Column(String, nullable=False)
    note = Column(String, nullable=True)
    ip_address = Column(String, nullable=True)

    subtotal = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(8), nullable=False)
    payment_method = Column(String, nullable=False, default="cod")

    status = Column(String, nullable=False, default="pending")  # pending, confirmed, shipped, delivered
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    items = relationship("OrderItemModel", back_populates="order")

    __table_args__ = (UniqueConstraint("store_id", "order_number", name="u_store_order_number"),)


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    #referencje do katalogu, snapshot ponizej nigdy nie jest czytany ponownie z katalogu
    product_id = Column(Uuid, nullable=False)
    variant_id = Column(Uuid, nullable=True)

    product_name = Column(String, nullable=False)
    product_price = Column(Numeric(10, 2), nullable=False)
    variant_options = Column(JSON, nullable=True)
    image_url = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False)

    order = relationship("OrderModel", back_populates="items")
