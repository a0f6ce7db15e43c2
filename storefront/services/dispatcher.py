# storefront/services/dispatcher.py
import copy
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.integration import EVENT_COMPLETED, EVENT_FAILED
from storefront.integrations.base import AppDefinition, StoreContext
from storefront.integrations.registry import APPS
from storefront.repos.integration_repo import IntegrationRepo
from storefront.repos.store_repo import StoreRepo
from storefront.utils.settings import Settings, settings as default_settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DispatchResult:
    integration_id: str
    event_id: object
    status: str
    error: str | None = None


def _error_text(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class IntegrationDispatcher:
    """
    Fan-out jednego eventu do zainstalowanych integracji sklepu.

    - jeden wiersz integration_events na integracje, tworzony w stanie processing
    - handlery odpalane rownolegle, kazdy z wlasnym limitem czasu
    - kazdy wiersz zamykany osobno (completed/failed), osobnym commitem
    - blad integracji nigdy nie wychodzi poza dispatch()
    - handler moze zwrocic dict zmian configu, zapisywany po sukcesie
    """

    def __init__(
        self,
        db: Session,
        registry: Mapping[str, AppDefinition] | None = None,
        settings: Settings | None = None,
    ):
        self.repo = IntegrationRepo(db)
        self.store_repo = StoreRepo(db)
        self.registry = APPS if registry is None else registry
        self.settings = settings or default_settings

    def eligible_installations(self, store_id, event_type: str):
        eligible = []
        for installation in self.repo.get_enabled_installations(store_id):
            app = self.registry.get(installation.integration_id)
            #nieznana integracja albo brak eventu w rejestrze -> po cichu pomijamy
            if app is None or not app.supports(event_type):
                continue
            eligible.append((installation, app))
        return eligible

    def dispatch(self, store_id, event_type: str, payload: dict) -> list[DispatchResult]:
        store = self.store_repo.get_store(store_id)
        if store is None:
            logger.warning(f"Dispatch of {event_type} skipped, store {store_id} not found")
            return []

        store_ctx = StoreContext(
            id=str(store.id),
            name=store.name,
            currency=store.currency,
            language=store.language or "en",
        )

        eligible = self.eligible_installations(store.id, event_type)
        if not eligible:
            logger.info(f"No integrations subscribed to {event_type} for store {store.id}")
            return []

        # wiersze w stanie processing, przed wywolaniem handlerow
        jobs = []
        for installation, app in eligible:
            try:
                event = self.repo.create_event(store.id, app.id, event_type, payload)
            except SQLAlchemyError as e:
                self.repo.rollback()
                logger.error(f"Could not record {event_type} event for {app.id}: {e}")
                continue
            jobs.append((installation, app, event))

        if not jobs:
            return []

        logger.info(f"Dispatching {event_type} for store {store.id} to {[app.id for _, app, _ in jobs]}")

        executor = ThreadPoolExecutor(max_workers=len(jobs), thread_name_prefix="integration")
        try:
            futures = [
                executor.submit(
                    app.handler,
                    event_type,
                    copy.deepcopy(payload),
                    copy.deepcopy(installation.config or {}),
                    store_ctx,
                    settings=self.settings,
                )
                for installation, app, _ in jobs
            ]
            # wszystkie startuja razem, wiec jeden wspolny deadline = limit per handler
            done, _ = wait(futures, timeout=self.settings.handler_timeout)
        finally:
            # nie czekamy na handlery, ktore przekroczyly limit
            executor.shutdown(wait=False, cancel_futures=True)

        results = []
        for (installation, app, event), future in zip(jobs, futures):
            if future not in done:
                future.cancel()
                status, error = EVENT_FAILED, f"Handler timed out after {self.settings.handler_timeout}s"
            elif future.exception() is not None:
                status, error = EVENT_FAILED, _error_text(future.exception())
            else:
                status, error = EVENT_COMPLETED, None
                self._save_config_updates(installation, app, future.result())

            if status == EVENT_FAILED:
                logger.warning(f"Integration {app.id} failed on {event_type}: {error}")

            try:
                self.repo.settle_event(event, status, error)
            except SQLAlchemyError as e:
                self.repo.rollback()
                logger.error(f"Could not settle event {event.id} for {app.id}: {e}")

            results.append(DispatchResult(integration_id=app.id, event_id=event.id, status=status, error=error))

        return results

    def _save_config_updates(self, installation, app: AppDefinition, updates) -> None:
        # handler moze zwrocic zmiany swojego configu (np. odswiezony token OAuth)
        if not isinstance(updates, dict) or not updates:
            return
        try:
            self.repo.update_installation_config(installation, updates)
            logger.info(f"Saved config update for {app.id} in store {installation.store_id}: {sorted(updates)}")
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Could not save config update for {app.id}: {e}")
