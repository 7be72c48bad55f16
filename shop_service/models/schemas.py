# shop_service/models/schemas.py
"""
Pydantic schemas for request/response validation
"""
from pydantic import BaseModel, Field, EmailStr, ConfigDict, field_validator
from typing import Any, Dict, List, Optional
from datetime import datetime
from shop_service.models.order import OrderStatus
from shop_service.models.user import FavoriteItemType, RoleName
import enum


# --- orders ---

class OrderItemCreate(BaseModel):
    """Schema for one requested order line"""
    product_id: int = Field(..., gt=0, description="Product ID")
    quantity: int = Field(..., gt=0, description="Quantity")


class OrderCreate(BaseModel):
    """Schema for creating an order"""
    items: List[OrderItemCreate] = Field(..., min_length=1, description="At least one item required")


class OrderUpdate(BaseModel):
    """Schema for the user-facing status update"""
    status: OrderStatus


class OrderItemResponse(BaseModel):
    """Schema for order item response"""
    id: int
    order_id: int
    product_id: int
    quantity: int
    price_at_moment: float

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    """Schema for order response"""
    id: int
    user_id: int
    order_number: str
    status: OrderStatus
    total_amount: float
    items: List[OrderItemResponse] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OrderListResponse(BaseModel):
    """Schema for list of orders"""
    total: int
    orders: List[OrderResponse]
    page: int
    page_size: int


# --- catalog ---

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    description: str = Field("", max_length=500)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class CategoryResponse(BaseModel):
    id: int
    name: str
    description: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProductCreate(BaseModel):
    """Schema for creating a product"""
    category_id: int = Field(..., gt=0)
    title: str = Field(..., min_length=2, max_length=200)
    description: str = Field("", max_length=1000)
    images: List[str] = Field(default_factory=list)
    price: float = Field(..., ge=0, description="Unit price")
    model: str = Field("", max_length=100)
    extra_info: Optional[Dict[str, Any]] = None
    stock: int = Field(0, ge=0, description="Initial stock quantity")


class ProductUpdate(BaseModel):
    """Schema for updating catalog fields; stock changes go through StockAdjustment"""
    category_id: Optional[int] = Field(None, gt=0)
    title: Optional[str] = Field(None, min_length=2, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    images: Optional[List[str]] = None
    price: Optional[float] = Field(None, ge=0)
    model: Optional[str] = Field(None, max_length=100)
    extra_info: Optional[Dict[str, Any]] = None


class StockAdjustment(BaseModel):
    """Manual restock (positive) or write-off (negative)"""
    delta: int = Field(..., description="Units to add; negative removes units")

    @field_validator("delta")
    @classmethod
    def check_non_zero(cls, value: int) -> int:
        if value == 0:
            raise ValueError("delta must not be zero")
        return value


class ProductResponse(BaseModel):
    """Schema for product response"""
    id: int
    category_id: Optional[int] = None
    title: str
    description: str
    images: List[str] = []
    price: float
    model: str
    extra_info: Optional[Dict[str, Any]] = None
    stock: int
    order_count: int
    category: Optional[CategoryResponse] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProductListResponse(BaseModel):
    """Schema for list of products"""
    total: int
    products: List[ProductResponse]
    page: int
    page_size: int


class ProductSort(str, enum.Enum):
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    POPULARITY_ASC = "popularity_asc"
    POPULARITY_DESC = "popularity_desc"
    CREATED_AT_ASC = "created_at_asc"
    CREATED_AT_DESC = "created_at_desc"


class ProductSearchParams(BaseModel):
    """Filters and ordering for product search"""
    title: Optional[str] = None
    category_id: Optional[int] = None
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)
    sort_by: Optional[ProductSort] = None
    limit: int = Field(20, ge=1, le=100)
    offset: int = Field(0, ge=0)


class ProductSearchResponse(BaseModel):
    products: List[ProductResponse]
    total: int
    limit: int
    offset: int
    has_more: bool


# --- users & auth ---

class UserCreate(BaseModel):
    """Schema for registering a user"""
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)


class UserUpdate(BaseModel):
    """Schema for updating the own profile"""
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)


class UserResponse(BaseModel):
    """Schema for user response"""
    id: int
    email: str
    first_name: str
    last_name: str
    is_active: bool
    role: RoleName
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


# --- roles ---

class AssignRoleRequest(BaseModel):
    user_id: int = Field(..., gt=0)
    role: RoleName


class RemoveRoleRequest(BaseModel):
    user_id: int = Field(..., gt=0)


class RoleResponse(BaseModel):
    id: int
    name: RoleName
    description: str

    model_config = ConfigDict(from_attributes=True)


class UserRoleResponse(BaseModel):
    user_id: int
    role: RoleName


# --- favorites ---

class FavoriteCreate(BaseModel):
    item_id: int = Field(..., gt=0)
    item_type: FavoriteItemType


class FavoriteResponse(BaseModel):
    id: int
    user_id: int
    item_id: int
    item_type: FavoriteItemType
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FavoriteCheckResponse(BaseModel):
    item_id: int
    item_type: FavoriteItemType
    is_favorite: bool


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    service: str
    version: str
    timestamp: datetime
