from sqlalchemy import Column, Integer, String, Boolean, DateTime, Uuid
import uuid

from storefront.data.database import Base, utcnow


class StoreModel(Base):
    __tablename__ = "stores"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    slug = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    currency = Column(String(8), nullable=False, default="USD")
    language = Column(String(8), nullable=False, default="en")

    is_published = Column(Boolean, nullable=False, default=False)

    custom_domain = Column(String, nullable=True)
    domain_verified = Column(Boolean, nullable=False, default=False)

    #licznik numerow zamowien, podbijany pod row lockiem w OrderRepo
    last_order_number = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
