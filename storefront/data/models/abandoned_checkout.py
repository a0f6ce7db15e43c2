from sqlalchemy import Column, ForeignKey, String, DateTime, JSON, Uuid
import uuid

from storefront.data.database import Base, utcnow

CHECKOUT_PENDING = "pending"
CHECKOUT_SENT = "sent"
CHECKOUT_RECOVERED = "recovered"
CHECKOUT_EXPIRED = "expired"


class AbandonedCheckoutModel(Base):
    __tablename__ = "abandoned_checkouts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    store_id = Column(Uuid, ForeignKey("stores.id"), nullable=False, index=True)

    customer_phone = Column(String, nullable=False, index=True)
    customer_name = Column(String, nullable=True)
    customer_email = Column(String, nullable=True)
    customer_country = Column(String, nullable=True)
    customer_city = Column(String, nullable=True)
    customer_address = Column(String, nullable=True)

    #ten sam ksztalt co snapshot w order_items
    cart_items = Column(JSON, nullable=False, default=list)
    currency = Column(String(8), nullable=False)

    status = Column(String, nullable=False, default=CHECKOUT_PENDING, index=True)  # pending, sent, recovered, expired

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    recovered_at = Column(DateTime(timezone=True), nullable=True)
    recovered_order_id = Column(Uuid, ForeignKey("orders.id"), nullable=True)
