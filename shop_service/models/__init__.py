from shop_service.models.order import Order, OrderItem, OrderStatus
from shop_service.models.product import Category, Product, SearchLog
from shop_service.models.user import Favorite, FavoriteItemType, Role, RoleName, User, UserRole

__all__ = [
    "Category",
    "Favorite",
    "FavoriteItemType",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Product",
    "Role",
    "RoleName",
    "SearchLog",
    "User",
    "UserRole",
]
