# shop/repos/order_repo.py
from sqlalchemy import select, func
from sqlalchemy.orm import Session, selectinload

from shop.data.models.order import OrderModel
from shop.data.models.order_item import OrderItemModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def add_order_item(self, item: OrderItemModel) -> OrderItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .options(selectinload(OrderModel.items).selectinload(OrderItemModel.product))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_order_for_update(self, order_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def list_orders(self, offset: int, limit: int, user_id: int | None = None) -> tuple[list[OrderModel], int]:
        stmt = select(OrderModel)
        count_stmt = select(func.count(OrderModel.id))
        if user_id is not None:
            stmt = stmt.where(OrderModel.user_id == user_id)
            count_stmt = count_stmt.where(OrderModel.user_id == user_id)

        orders = self.db.execute(
            stmt.options(selectinload(OrderModel.items).selectinload(OrderItemModel.product))
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .offset(offset)
            .limit(limit)
        ).scalars().all()
        total = self.db.execute(count_stmt).scalar_one()
        return list(orders), total

    def get_stats(self, user_id: int | None = None) -> dict:
        totals_stmt = select(func.count(OrderModel.id), func.sum(OrderModel.total_amount))
        by_status_stmt = select(OrderModel.status, func.count(OrderModel.id)).group_by(OrderModel.status)
        if user_id is not None:
            totals_stmt = totals_stmt.where(OrderModel.user_id == user_id)
            by_status_stmt = by_status_stmt.where(OrderModel.user_id == user_id)

        total_orders, total_revenue = self.db.execute(totals_stmt).one()
        rows = self.db.execute(by_status_stmt).all()

        return {
            "total_orders": total_orders,
            "total_revenue": total_revenue,
            "orders_by_status": {status: count for status, count in rows},
        }
