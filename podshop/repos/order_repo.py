# podshop/repos/order_repo.py
from sqlalchemy import select, func
from sqlalchemy.orm import Session, selectinload

from podshop.data.models.order import OrderModel, OrderItemModel, ProviderSubOrderModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_order_with_items(self, order_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .options(
                selectinload(OrderModel.items).selectinload(OrderItemModel.product),
                selectinload(OrderModel.sub_orders),
            )
        ).scalar_one_or_none()

    def get_by_provider_order_id(self, provider_order_id: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(OrderModel.provider_order_id == provider_order_id)
        ).scalars().first()

    def get_by_payment_order_id(self, payment_order_id: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(OrderModel.payment_order_id == payment_order_id)
        ).scalars().first()

    def list_user_orders(self, user_id: int) -> list[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(OrderModel.user_id == user_id)
                .options(selectinload(OrderModel.items), selectinload(OrderModel.sub_orders))
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars().all()
        )

    def list_orders(self, page: int, limit: int, status: str | None = None) -> tuple[list[OrderModel], int]:
        query = select(OrderModel)
        count = select(func.count(OrderModel.id))
        if status:
            query = query.where(OrderModel.status == status)
            count = count.where(OrderModel.status == status)

        orders = self.db.execute(
            query.options(selectinload(OrderModel.items), selectinload(OrderModel.sub_orders))
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).scalars().all()
        return list(orders), self.db.execute(count).scalar_one()

    def count_orders(self) -> int:
        return self.db.execute(select(func.count(OrderModel.id))).scalar_one()

    def revenue_for_status(self, status: str):
        return self.db.execute(
            select(func.coalesce(func.sum(OrderModel.total), 0)).where(OrderModel.status == status)
        ).scalar_one()

    def update_order_status(self, order_id: int, status: str) -> OrderModel | None:
        order = self.get_order(order_id)
        if order:
            order.status = status
            self.db.commit()
            self.db.refresh(order)
        return order

    # sub-ordery (saga fan-out)
    def get_sub_order(self, provider: str, provider_order_id: str) -> ProviderSubOrderModel | None:
        return self.db.execute(
            select(ProviderSubOrderModel).where(
                ProviderSubOrderModel.provider == provider,
                ProviderSubOrderModel.provider_order_id == provider_order_id,
            )
        ).scalar_one_or_none()

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
