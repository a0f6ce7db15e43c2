# storefront/api/routers/integrations.py
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.errors import OrderIntakeError
from storefront.domain.schemas import (
    IntegrationAppOut,
    IntegrationInstallIn,
    IntegrationInstallationOut,
    IntegrationEventOut,
)
from storefront.services.integration_service import IntegrationService

router = APIRouter(tags=["integrations"])


def get_service(db: Session = Depends(get_db)) -> IntegrationService:
    return IntegrationService(db)


@router.get("/integrations", response_model=List[IntegrationAppOut])
def list_integrations(svc: IntegrationService = Depends(get_service)):
    return svc.available_apps()


@router.put("/stores/{store_id}/integrations/{integration_id}", response_model=IntegrationInstallationOut)
def install_integration(
    store_id: UUID,
    integration_id: str,
    payload: IntegrationInstallIn,
    svc: IntegrationService = Depends(get_service),
):
    """Instalacja albo rekonfiguracja, config zapisywany bez interpretacji."""
    try:
        return svc.install(store_id, integration_id, payload.config, payload.is_enabled)
    except OrderIntakeError as e:
        raise HTTPException(status_code=e.status_code, detail=e.as_detail())


@router.delete("/stores/{store_id}/integrations/{integration_id}")
def uninstall_integration(store_id: UUID, integration_id: str, svc: IntegrationService = Depends(get_service)):
    try:
        svc.uninstall(store_id, integration_id)
    except OrderIntakeError as e:
        raise HTTPException(status_code=e.status_code, detail=e.as_detail())
    return {"ok": True}


@router.get("/stores/{store_id}/integrations/events", response_model=List[IntegrationEventOut])
def list_integration_events(
    store_id: UUID,
    integration_id: str | None = None,
    limit: int = Query(20, gt=0, le=100),
    svc: IntegrationService = Depends(get_service),
):
    return svc.list_events(store_id, integration_id, limit)
