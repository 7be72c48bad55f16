"""
Domain exceptions.

Services raise these; the FastAPI exception handlers in ``main.py`` map each
family to an HTTP status code.
"""


class ShopError(Exception):
    """Base class for every failure reported to API callers"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# --- not found (404) ---

class NotFoundError(ShopError):
    pass


class OrderNotFound(NotFoundError):
    def __init__(self, order_id: int):
        super().__init__(f"order {order_id} not found")
        self.order_id = order_id


class ProductNotFound(NotFoundError):
    def __init__(self, product_id: int):
        super().__init__(f"product {product_id} not found")
        self.product_id = product_id


class CategoryNotFound(NotFoundError):
    def __init__(self, category_id: int):
        super().__init__(f"category {category_id} not found")
        self.category_id = category_id


class UserNotFound(NotFoundError):
    def __init__(self, user_id: int):
        super().__init__(f"user {user_id} not found")
        self.user_id = user_id


class RoleNotFound(NotFoundError):
    pass


class FavoriteNotFound(NotFoundError):
    def __init__(self, favorite_id: int):
        super().__init__(f"favorite {favorite_id} not found")
        self.favorite_id = favorite_id


# --- precondition violations (400) ---

class PreconditionFailed(ShopError):
    pass


class InvalidStatusTransition(PreconditionFailed):
    def __init__(self, current, target, message: str = None):
        current_value = getattr(current, "value", current)
        target_value = getattr(target, "value", target)
        super().__init__(message or f"cannot change order status from {current_value} to {target_value}")
        self.current = current
        self.target = target


class InsufficientStock(PreconditionFailed):
    def __init__(self, product_name: str, available: int = None, requested: int = None):
        super().__init__(f"insufficient stock for product {product_name}")
        self.product_name = product_name
        self.available = available
        self.requested = requested


class DuplicateRoleAssignment(PreconditionFailed):
    pass


class SelfRoleRemoval(PreconditionFailed):
    def __init__(self):
        super().__init__("cannot remove your own role")


class AlreadyExists(PreconditionFailed):
    pass


class ProductInUse(PreconditionFailed):
    pass


# --- auth (401 / 403) ---

class AuthenticationFailed(ShopError):
    pass


class AuthorizationDenied(ShopError):
    pass


# --- storage (500) ---

class PersistenceError(ShopError):
    """Transaction or commit failure; the cause is chained, not exposed"""
