# storefront/repos/checkout_repo.py
from datetime import datetime

from sqlalchemy import and_, select, update
from sqlalchemy.orm import Session

from storefront.data.models.abandoned_checkout import (
    AbandonedCheckoutModel,
    CHECKOUT_PENDING,
    CHECKOUT_SENT,
    CHECKOUT_EXPIRED,
)
from storefront.data.models.order import OrderModel
from storefront.data.models.store import StoreModel


class CheckoutRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_checkout(self, checkout_id) -> AbandonedCheckoutModel | None:
        return self.db.get(AbandonedCheckoutModel, checkout_id)

    def get_pending_for_phone(self, store_id, customer_phone: str) -> AbandonedCheckoutModel | None:
        return self.db.execute(
            select(AbandonedCheckoutModel)
            .where(
                AbandonedCheckoutModel.store_id == store_id,
                AbandonedCheckoutModel.customer_phone == customer_phone,
                AbandonedCheckoutModel.status == CHECKOUT_PENDING,
            )
            .order_by(AbandonedCheckoutModel.created_at.desc())
            .limit(1)
        ).scalar_one_or_none()

    def save(self, checkout: AbandonedCheckoutModel) -> AbandonedCheckoutModel:
        self.db.add(checkout)
        self.db.commit()
        self.db.refresh(checkout)
        return checkout

    def expire_older_than(self, cutoff: datetime, now: datetime) -> int:
        """Wymuszone wygaszenie, hurtem, przed przetwarzaniem pojedynczych wierszy."""
        result = self.db.execute(
            update(AbandonedCheckoutModel)
            .where(
                AbandonedCheckoutModel.status.in_([CHECKOUT_PENDING, CHECKOUT_SENT]),
                AbandonedCheckoutModel.created_at < cutoff,
            )
            .values(status=CHECKOUT_EXPIRED, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount

    def get_due_pending(self, idle_before: datetime, created_after: datetime, limit: int) -> list[tuple[AbandonedCheckoutModel, StoreModel]]:
        return list(
            self.db.execute(
                select(AbandonedCheckoutModel, StoreModel)
                .join(StoreModel, StoreModel.id == AbandonedCheckoutModel.store_id)
                .where(
                    AbandonedCheckoutModel.status == CHECKOUT_PENDING,
                    AbandonedCheckoutModel.updated_at < idle_before,
                    AbandonedCheckoutModel.created_at > created_after,
                )
                .order_by(AbandonedCheckoutModel.created_at)
                .limit(limit)
            ).all()
        )

    def transition(self, checkout_id, old_status: str, new_data: dict) -> int:
        """
        Warunkowe przejscie stanu, np.
        update abandoned_checkouts set status='sent' where id=.. and status='pending'
        0 wierszy = ktos inny juz przestawil status, nic nie robimy
        """
        result = self.db.execute(
            update(AbandonedCheckoutModel)
            .where(
                AbandonedCheckoutModel.id == checkout_id,
                AbandonedCheckoutModel.status == old_status,
            )
            .values(**new_data)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount

    def get_sent_with_orders(self, created_after: datetime, limit: int) -> list[tuple]:
        """
        Checkouty w stanie sent, po ktorych klient zlozyl zamowienie
        (ten sam sklep i telefon, zamowienie mlodsze niz checkout).
        Zwraca (checkout_id, order_id) z najwczesniejszym pasujacym zamowieniem.
        """
        rows = self.db.execute(
            select(AbandonedCheckoutModel.id, OrderModel.id)
            .join(
                OrderModel,
                and_(
                    OrderModel.store_id == AbandonedCheckoutModel.store_id,
                    OrderModel.customer_phone == AbandonedCheckoutModel.customer_phone,
                    OrderModel.created_at > AbandonedCheckoutModel.created_at,
                ),
            )
            .where(
                AbandonedCheckoutModel.status == CHECKOUT_SENT,
                AbandonedCheckoutModel.created_at > created_after,
            )
            .order_by(AbandonedCheckoutModel.created_at, OrderModel.created_at)
        ).all()

        matched = {}
        for checkout_id, order_id in rows:
            matched.setdefault(checkout_id, order_id)
        return list(matched.items())[:limit]
