# storefront/api/routers/cron.py
import secrets

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.schemas import SweepOut
from storefront.services.lock_service import LockService
from storefront.services.recovery_service import RecoveryService
from storefront.utils.settings import Settings, settings as default_settings

router = APIRouter(prefix="/cron", tags=["cron"])

bearer = HTTPBearer(auto_error=False)


def get_settings() -> Settings:
    return default_settings


def require_cron_secret(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    settings: Settings = Depends(get_settings),
):
    #brak sekretu w konfiguracji = nikt nie przejdzie
    if (
        not settings.cron_secret
        or credentials is None
        or not secrets.compare_digest(credentials.credentials, settings.cron_secret)
    ):
        raise HTTPException(status_code=401, detail={"error": "Unauthorized", "message": "Unauthorized"})


def get_service(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)) -> RecoveryService:
    return RecoveryService(db, lock_service=LockService(settings=settings), settings=settings)


@router.post(
    "/abandoned-checkouts",
    response_model=SweepOut,
    dependencies=[Depends(require_cron_secret)],
)
def run_abandoned_checkout_sweep(svc: RecoveryService = Depends(get_service)):
    return svc.sweep().as_dict()
