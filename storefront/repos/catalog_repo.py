# storefront/repos/catalog_repo.py
from typing import Collection

from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel, ProductVariantModel


class CatalogRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_store_products(self, store_id, product_ids: Collection) -> list[ProductModel]:
        #tylko produkty tego sklepu, obce id po prostu nie wroca
        if not product_ids:
            return []
        return list(
            self.db.execute(
                select(ProductModel).where(
                    ProductModel.id.in_(product_ids),
                    ProductModel.store_id == store_id,
                )
            ).scalars().all()
        )

    def get_variants(self, variant_ids: Collection) -> list[ProductVariantModel]:
        if not variant_ids:
            return []
        return list(
            self.db.execute(
                select(ProductVariantModel).where(ProductVariantModel.id.in_(variant_ids))
            ).scalars().all()
        )
