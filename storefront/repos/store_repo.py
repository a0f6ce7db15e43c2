# storefront/repos/store_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.models.store import StoreModel


class StoreRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_store(self, store_id) -> StoreModel | None:
        return self.db.get(StoreModel, store_id)

    def get_published_by_slug(self, slug: str) -> StoreModel | None:
        return self.db.execute(
            select(StoreModel).where(
                StoreModel.slug == slug,
                StoreModel.is_published.is_(True),
            )
        ).scalar_one_or_none()
