"""
Role-gated management routes.

``/super-admin/*`` requires the super_admin role; ``/seller/*`` admits
sellers and super admins. Order transitions and stock adjustments made
here are written to the audit log.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from shop_service.api.dependencies import require_seller, require_super_admin
from shop_service.db.database import get_db
from shop_service.models.order import OrderStatus
from shop_service.models.schemas import (
    AssignRoleRequest,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    MessageResponse,
    OrderListResponse,
    OrderResponse,
    ProductCreate,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
    RemoveRoleRequest,
    RoleResponse,
    StockAdjustment,
    UserResponse,
    UserRoleResponse,
)
from shop_service.models.user import RoleName, User
from shop_service.services.category_service import CategoryService
from shop_service.services.order_service import OrderService
from shop_service.services.product_service import ProductService
from shop_service.services.role_service import RoleService
from shop_service.services.user_service import UserService
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("shop_service.audit")

super_admin_router = APIRouter(prefix="/super-admin", tags=["super-admin"])
seller_router = APIRouter(prefix="/seller", tags=["seller"])


def _audit_order(action: str, actor: User, order: OrderResponse):
    audit_logger.info(
        f"{action} order {order.id} by user {actor.id}",
        extra={
            "action": action,
            "actor_id": actor.id,
            "order_id": order.id,
            "status": order.status.value,
            "outcome": "success",
        }
    )


def _audit_stock(actor: User, product: ProductResponse, delta: int):
    audit_logger.info(
        f"adjust_stock product {product.id} by user {actor.id}",
        extra={
            "action": "adjust_stock",
            "actor_id": actor.id,
            "product_id": product.id,
            "delta": delta,
            "stock": product.stock,
            "outcome": "success",
        }
    )


def _list_orders(db: Session, skip: int, limit: int, order_status: Optional[OrderStatus]) -> OrderListResponse:
    orders, total = OrderService.get_all_orders(db, skip=skip, limit=limit, status=order_status)
    return OrderListResponse(
        total=total,
        orders=[OrderResponse.model_validate(o) for o in orders],
        page=skip // limit + 1,
        page_size=limit
    )


def _list_products(db: Session, skip: int, limit: int, category_id: Optional[int]) -> ProductListResponse:
    products, total = ProductService.get_products(db, skip=skip, limit=limit, category_id=category_id)
    return ProductListResponse(
        total=total,
        products=[ProductResponse.model_validate(p) for p in products],
        page=skip // limit + 1,
        page_size=limit
    )


# --- roles ---

@super_admin_router.post("/roles/assign", response_model=MessageResponse)
def assign_role(
    request: AssignRoleRequest,
    admin: User = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    RoleService.assign_role(db, request.user_id, request.role, acting_user_id=admin.id)
    return MessageResponse(message=f"role {request.role.value} assigned to user {request.user_id}")


@super_admin_router.delete("/roles/remove", response_model=MessageResponse)
def remove_role(
    request: RemoveRoleRequest,
    admin: User = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    RoleService.remove_role(db, request.user_id, acting_user_id=admin.id)
    return MessageResponse(message=f"role removed from user {request.user_id}")


@super_admin_router.get("/roles", response_model=List[RoleResponse])
def list_roles(admin: User = Depends(require_super_admin), db: Session = Depends(get_db)):
    return RoleService.list_roles(db)


@super_admin_router.get("/roles/users/{role}", response_model=List[UserResponse])
def users_by_role(role: RoleName, admin: User = Depends(require_super_admin), db: Session = Depends(get_db)):
    return RoleService.get_users_by_role(db, role)


@super_admin_router.get("/roles/user/{user_id}", response_model=UserRoleResponse)
def user_role(user_id: int, admin: User = Depends(require_super_admin), db: Session = Depends(get_db)):
    UserService.get_user(db, user_id)
    return UserRoleResponse(user_id=user_id, role=RoleService.get_role(db, user_id))


@super_admin_router.get("/roles/all-users", response_model=List[UserResponse])
def all_users(admin: User = Depends(require_super_admin), db: Session = Depends(get_db)):
    return RoleService.get_all_users_with_roles(db)


# --- catalog ---

@super_admin_router.get("/categories", response_model=List[CategoryResponse])
def admin_list_categories(admin: User = Depends(require_super_admin), db: Session = Depends(get_db)):
    return CategoryService.get_categories(db)


@super_admin_router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    category: CategoryCreate,
    admin: User = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    return CategoryService.create_category(db, category)


@super_admin_router.put("/categories/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: int,
    category: CategoryUpdate,
    admin: User = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    return CategoryService.update_category(db, category_id, category)


@super_admin_router.delete("/categories/{category_id}", response_model=MessageResponse)
def delete_category(category_id: int, admin: User = Depends(require_super_admin), db: Session = Depends(get_db)):
    CategoryService.delete_category(db, category_id)
    return MessageResponse(message=f"category {category_id} deleted")


@super_admin_router.get("/products", response_model=ProductListResponse)
def admin_list_products(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    category_id: Optional[int] = Query(None),
    admin: User = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    return _list_products(db, skip, limit, category_id)


@super_admin_router.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def admin_create_product(
    product: ProductCreate,
    admin: User = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    return ProductService.create_product(db, product)


@super_admin_router.put("/products/{product_id}", response_model=ProductResponse)
def admin_update_product(
    product_id: int,
    product: ProductUpdate,
    admin: User = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    return ProductService.update_product(db, product_id, product)


@super_admin_router.delete("/products/{product_id}", response_model=MessageResponse)
def admin_delete_product(product_id: int, admin: User = Depends(require_super_admin), db: Session = Depends(get_db)):
    ProductService.delete_product(db, product_id)
    return MessageResponse(message=f"product {product_id} deleted")


@super_admin_router.post("/products/{product_id}/stock", response_model=ProductResponse)
def admin_adjust_stock(
    product_id: int,
    adjustment: StockAdjustment,
    admin: User = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    """Restock or write off units; stock never goes below zero"""
    product = ProductResponse.model_validate(ProductService.adjust_stock(db, product_id, adjustment.delta))
    _audit_stock(admin, product, adjustment.delta)
    return product


# --- orders ---

@super_admin_router.get("/orders", response_model=OrderListResponse)
def admin_list_orders(
    skip: int = Query(0, ge=0, description="Number of items to skip"),
    limit: int = Query(20, ge=1, le=100, description="Max items to return"),
    status: Optional[OrderStatus] = Query(None, description="Filter by status"),
    admin: User = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    return _list_orders(db, skip, limit, status)


@super_admin_router.post("/orders/{order_id}/confirm", response_model=OrderResponse)
def confirm_order(order_id: int, admin: User = Depends(require_super_admin), db: Session = Depends(get_db)):
    """Confirm a paid order; decrements stock and bumps popularity"""
    order = OrderResponse.model_validate(OrderService.confirm_order(db, order_id))
    _audit_order("confirm_order", admin, order)
    return order


@super_admin_router.post("/orders/{order_id}/ship", response_model=OrderResponse)
def admin_ship_order(order_id: int, admin: User = Depends(require_super_admin), db: Session = Depends(get_db)):
    order = OrderResponse.model_validate(OrderService.ship_order(db, order_id))
    _audit_order("ship_order", admin, order)
    return order


@super_admin_router.post("/orders/{order_id}/deliver", response_model=OrderResponse)
def deliver_order(order_id: int, admin: User = Depends(require_super_admin), db: Session = Depends(get_db)):
    order = OrderResponse.model_validate(OrderService.deliver_order(db, order_id))
    _audit_order("deliver_order", admin, order)
    return order


@super_admin_router.post("/orders/{order_id}/cancel", response_model=OrderResponse)
def admin_cancel_order(order_id: int, admin: User = Depends(require_super_admin), db: Session = Depends(get_db)):
    order = OrderResponse.model_validate(OrderService.cancel_order(db, order_id))
    _audit_order("cancel_order", admin, order)
    return order


# --- seller ---

@seller_router.get("/products", response_model=ProductListResponse)
def seller_list_products(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    category_id: Optional[int] = Query(None),
    seller: User = Depends(require_seller),
    db: Session = Depends(get_db)
):
    return _list_products(db, skip, limit, category_id)


@seller_router.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def seller_create_product(
    product: ProductCreate,
    seller: User = Depends(require_seller),
    db: Session = Depends(get_db)
):
    return ProductService.create_product(db, product)


@seller_router.put("/products/{product_id}", response_model=ProductResponse)
def seller_update_product(
    product_id: int,
    product: ProductUpdate,
    seller: User = Depends(require_seller),
    db: Session = Depends(get_db)
):
    return ProductService.update_product(db, product_id, product)


@seller_router.post("/products/{product_id}/stock", response_model=ProductResponse)
def seller_adjust_stock(
    product_id: int,
    adjustment: StockAdjustment,
    seller: User = Depends(require_seller),
    db: Session = Depends(get_db)
):
    product = ProductResponse.model_validate(ProductService.adjust_stock(db, product_id, adjustment.delta))
    _audit_stock(seller, product, adjustment.delta)
    return product


@seller_router.get("/orders", response_model=OrderListResponse)
def seller_list_orders(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[OrderStatus] = Query(None),
    seller: User = Depends(require_seller),
    db: Session = Depends(get_db)
):
    return _list_orders(db, skip, limit, status)


@seller_router.post("/orders/{order_id}/ship", response_model=OrderResponse)
def seller_ship_order(order_id: int, seller: User = Depends(require_seller), db: Session = Depends(get_db)):
    order = OrderResponse.model_validate(OrderService.ship_order(db, order_id))
    _audit_order("ship_order", seller, order)
    return order
