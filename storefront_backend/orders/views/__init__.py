from .admin_orders import OrderAdminViewSet
from .customer_orders import CustomerOrderViewSet
from .refunds import RefundViewSet

__all__ = ["CustomerOrderViewSet", "OrderAdminViewSet", "RefundViewSet"]
