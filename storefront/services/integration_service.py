# storefront/services/integration_service.py
from sqlalchemy.orm import Session

from storefront.data.models.integration import IntegrationInstallationModel, IntegrationEventModel
from storefront.domain.errors import NotFound
from storefront.integrations.registry import APPS
from storefront.repos.integration_repo import IntegrationRepo
from storefront.repos.store_repo import StoreRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class IntegrationService:
    """Instalacja / rekonfiguracja / odinstalowanie integracji sklepu."""

    def __init__(self, db: Session, registry=None):
        self.repo = IntegrationRepo(db)
        self.store_repo = StoreRepo(db)
        self.registry = APPS if registry is None else registry

    #query
    def available_apps(self) -> list[dict]:
        return [
            {
                "id": app.id,
                "name": app.name,
                "description": app.description,
                "category": app.category,
                "events": sorted(app.events),
            }
            for app in self.registry.values()
        ]

    #command
    def install(self, store_id, integration_id: str, config: dict | None = None, enabled: bool = True) -> IntegrationInstallationModel:
        if integration_id not in self.registry:
            raise NotFound(f"Unknown integration {integration_id}")
        if self.store_repo.get_store(store_id) is None:
            raise NotFound("Store not found")

        installation = self.repo.get_installation(store_id, integration_id)
        if installation is None:
            installation = IntegrationInstallationModel(store_id=store_id, integration_id=integration_id)
            logger.info(f"Installing {integration_id} for store {store_id}")
        else:
            logger.info(f"Reconfiguring {integration_id} for store {store_id}")

        # config jest nieprzezroczysty, zapisujemy jak przyszedl
        installation.config = dict(config or {})
        installation.is_enabled = enabled
        return self.repo.save_installation(installation)

    def uninstall(self, store_id, integration_id: str) -> None:
        installation = self.repo.get_installation(store_id, integration_id)
        if installation is None:
            raise NotFound(f"Integration {integration_id} is not installed")

        #historia eventow zostaje
        self.repo.delete_installation(installation)
        logger.info(f"Uninstalled {integration_id} from store {store_id}")

    #query
    def list_events(self, store_id, integration_id: str | None = None, limit: int = 100) -> list[IntegrationEventModel]:
        return self.repo.list_events(store_id, integration_id, limit)
