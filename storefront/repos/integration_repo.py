# storefront/repos/integration_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.database import utcnow
from storefront.data.models.integration import (
    IntegrationInstallationModel,
    IntegrationEventModel,
    EVENT_PROCESSING,
)


class IntegrationRepo:
    def __init__(self, db: Session):
        self.db = db

    #instalacje
    def get_enabled_installations(self, store_id) -> list[IntegrationInstallationModel]:
        return list(
            self.db.execute(
                select(IntegrationInstallationModel).where(
                    IntegrationInstallationModel.store_id == store_id,
                    IntegrationInstallationModel.is_enabled.is_(True),
                )
            ).scalars().all()
        )

    def get_installation(self, store_id, integration_id: str) -> IntegrationInstallationModel | None:
        return self.db.execute(
            select(IntegrationInstallationModel).where(
                IntegrationInstallationModel.store_id == store_id,
                IntegrationInstallationModel.integration_id == integration_id,
            )
        ).scalar_one_or_none()

    def save_installation(self, installation: IntegrationInstallationModel) -> IntegrationInstallationModel:
        self.db.add(installation)
        self.db.commit()
        self.db.refresh(installation)
        return installation

    def update_installation_config(self, installation: IntegrationInstallationModel, updates: dict) -> IntegrationInstallationModel:
        #nowy dict, zeby SQLAlchemy zauwazyl zmiane kolumny JSON
        installation.config = {**(installation.config or {}), **updates}
        self.db.commit()
        return installation

    def delete_installation(self, installation: IntegrationInstallationModel) -> None:
        self.db.delete(installation)
        self.db.commit()

    #eventy
    def create_event(self, store_id, integration_id: str, event_type: str, payload: dict) -> IntegrationEventModel:
        event = IntegrationEventModel(
            store_id=store_id,
            integration_id=integration_id,
            event_type=event_type,
            payload=payload,
            status=EVENT_PROCESSING,
        )
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)
        return event

    def settle_event(self, event: IntegrationEventModel, status: str, error: str | None = None) -> IntegrationEventModel:
        event.status = status
        event.error = error
        event.processed_at = utcnow()
        self.db.commit()
        return event

    def list_events(self, store_id, integration_id: str | None = None, limit: int = 100) -> list[IntegrationEventModel]:
        query = select(IntegrationEventModel).where(IntegrationEventModel.store_id == store_id)
        if integration_id:
            query = query.where(IntegrationEventModel.integration_id == integration_id)
        query = query.order_by(IntegrationEventModel.created_at.desc()).limit(limit)
        return list(self.db.execute(query).scalars().all())

    def rollback(self):
        self.db.rollback()
