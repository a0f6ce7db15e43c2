from sqlalchemy import Column, ForeignKey, String, Boolean, DateTime, JSON, Text, Uuid, UniqueConstraint
import uuid

from storefront.data.database import Base, utcnow

EVENT_PROCESSING = "processing"
EVENT_COMPLETED = "completed"
EVENT_FAILED = "failed"


class IntegrationInstallationModel(Base):
    __tablename__ = "store_integrations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    store_id = Column(Uuid, ForeignKey("stores.id"), nullable=False, index=True)
    integration_id = Column(String, nullable=False)

    #ksztalt zalezy od integracji, dispatcher go nie interpretuje
    config = Column(JSON, nullable=False, default=dict)
    is_enabled = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (UniqueConstraint("store_id", "integration_id", name="u_store_integration"),)


class IntegrationEventModel(Base):
    __tablename__ = "integration_events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    store_id = Column(Uuid, ForeignKey("stores.id"), nullable=False, index=True)
    integration_id = Column(String, nullable=False, index=True)
    event_type = Column(String, nullable=False)
    payload = Column(JSON, nullable=False)

    status = Column(String, nullable=False, default=EVENT_PROCESSING)  # processing, completed, failed
    error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    processed_at = Column(DateTime(timezone=True), nullable=True)
