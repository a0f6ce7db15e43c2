# storefront/repos/order_repo.py
from datetime import datetime
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from storefront.data.models.order import OrderModel, OrderItemModel
from storefront.data.models.store import StoreModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        """
        Numer zamowienia nadawany w tej samej transakcji co insert.
        Wiersz sklepu jest blokowany (SELECT ... FOR UPDATE), wiec dwa
        rownolegle zamowienia w jednym sklepie nie dostana tego samego numeru.
        Unique (store_id, order_number) jest ostatnia linia obrony.
        """
        try:
            current = self.db.execute(
                select(StoreModel.last_order_number)
                .where(StoreModel.id == order.store_id)
                .with_for_update()
            ).scalar_one()

            next_number = (current or 0) + 1
            self.db.execute(
                update(StoreModel)
                .where(StoreModel.id == order.store_id)
                .values(last_order_number=next_number)
                .execution_options(synchronize_session=False)
            )

            order.order_number = next_number
            self.db.add(order)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(order)
        return order

    def add_items(self, items: Iterable[OrderItemModel]) -> list[OrderItemModel]:
        items = list(items)
        try:
            self.db.add_all(items)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return items

    def get_order(self, order_id) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .where(OrderModel.id == order_id)
        ).scalar_one_or_none()

    def update_order_status(self, order_id, status: str) -> OrderModel | None:
        order = self.get_order(order_id)
        if order:
            order.status = status
            self.db.commit()
            self.db.refresh(order)
        return order

    def first_order_since(self, store_id, customer_phone: str, since: datetime):
        """Id pierwszego zamowienia klienta (sklep + telefon) zlozonego po `since`, albo None."""
        return self.db.execute(
            select(OrderModel.id)
            .where(
                OrderModel.store_id == store_id,
                OrderModel.customer_phone == customer_phone,
                OrderModel.created_at > since,
            )
            .order_by(OrderModel.created_at)
            .limit(1)
        ).scalar_one_or_none()
