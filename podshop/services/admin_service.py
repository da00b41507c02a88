# podshop/services/admin_service.py
from sqlalchemy.orm import Session

from podshop.domain.order_status import OrderStatus
from podshop.providers.normalizer import to_money
from podshop.repos.order_repo import OrderRepo
from podshop.repos.product_repo import ProductRepo
from podshop.repos.user_repo import UserRepo

RECENT_ORDERS = 10


class AdminService:
    """Zapytania tylko do odczytu dla panelu admina."""

    def __init__(self, db: Session):
        self.orders = OrderRepo(db)
        self.products = ProductRepo(db)
        self.users = UserRepo(db)

    def dashboard(self) -> dict:
        recent, _ = self.orders.list_orders(page=1, limit=RECENT_ORDERS)
        return {
            "total_orders": self.orders.count_orders(),
            # przychod tylko z zamowien dostarczonych
            "total_revenue": to_money(self.orders.revenue_for_status(OrderStatus.DELIVERED.value)),
            "total_products": self.products.count_active(),
            "total_users": self.users.count_by_role("USER"),
            "recent_orders": recent,
        }

    def list_orders(self, page: int, limit: int, status: str | None = None) -> dict:
        orders, total = self.orders.list_orders(page, limit, status)
        return {
            "orders": orders,
            "pagination": {"page": page, "limit": limit, "total": total, "pages": (total + limit - 1) // limit},
        }
