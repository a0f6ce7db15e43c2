# storefront/services/catalog_resolver.py
from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from storefront.domain.errors import NotFound, InvalidSelection
from storefront.repos.catalog_repo import CatalogRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CartLine:
    product_id: UUID
    variant_id: UUID | None
    quantity: int


@dataclass(frozen=True)
class ResolvedLine:
    """Autorytatywny stan katalogu dla jednej pozycji koszyka."""

    product_id: UUID
    variant_id: UUID | None
    quantity: int
    unit_price: Decimal
    name: str
    available: bool
    stock: int | None
    variant_options: dict | None
    image_url: str | None


class CatalogResolver:
    """
    Rozwiazuje koszyk wzgledem katalogu sklepu, wszystko albo nic:
    jeden obcy/nieistniejacy produkt albo wariant wywala cale rozwiazanie.
    """

    def __init__(self, db: Session):
        self.repo = CatalogRepo(db)

    def resolve(self, store_id, lines: Sequence[CartLine]) -> list[ResolvedLine]:
        product_ids = {line.product_id for line in lines}
        products = {p.id: p for p in self.repo.get_store_products(store_id, product_ids)}

        if len(products) != len(product_ids):
            missing = product_ids - set(products)
            logger.info(f"Catalog resolution failed, unknown products for store {store_id}: {sorted(map(str, missing))}")
            raise NotFound("Some products are unavailable")

        variant_ids = {line.variant_id for line in lines if line.variant_id}
        variants = {v.id: v for v in self.repo.get_variants(variant_ids)}

        resolved = []
        for line in lines:
            product = products[line.product_id]

            if line.variant_id is None:
                resolved.append(
                    ResolvedLine(
                        product_id=product.id,
                        variant_id=None,
                        quantity=line.quantity,
                        unit_price=Decimal(product.price),
                        name=product.name,
                        available=bool(product.is_available) and product.status == "active",
                        stock=product.stock,
                        variant_options=None,
                        image_url=product.image_url,
                    )
                )
                continue

            variant = variants.get(line.variant_id)
            #wariant musi nalezec do produktu, ktory klient podal
            if variant is None or variant.product_id != product.id:
                logger.info(f"Variant {line.variant_id} does not belong to product {product.id}")
                raise InvalidSelection("Invalid or unavailable variant selection")

            resolved.append(
                ResolvedLine(
                    product_id=product.id,
                    variant_id=variant.id,
                    quantity=line.quantity,
                    unit_price=Decimal(variant.price),
                    name=product.name,
                    available=bool(variant.is_available),
                    stock=variant.stock,
                    variant_options={str(k): str(v) for k, v in (variant.options or {}).items()},
                    image_url=product.image_url,
                )
            )

        return resolved
