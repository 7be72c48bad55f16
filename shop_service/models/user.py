# shop_service/models/user.py
"""
User, role and favorite models
"""
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Enum as SQLEnum, ForeignKey, UniqueConstraint
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from shop_service.db.database import Base
import enum


class RoleName(str, enum.Enum):
    """Closed set of roles; a user without an assignment is a regular user"""
    USER = "user"
    SELLER = "seller"
    SUPER_ADMIN = "super_admin"


DEFAULT_ROLE = RoleName.USER

ROLE_DESCRIPTIONS = {
    RoleName.SUPER_ADMIN: "Super Administrator with full access",
    RoleName.SELLER: "Seller with limited admin access",
    RoleName.USER: "Regular user",
}


class FavoriteItemType(str, enum.Enum):
    PRODUCT = "product"
    CATEGORY = "category"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class User(Base):
    """User model"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    role_assignment = relationship("UserRole", back_populates="user", uselist=False, lazy="selectin")

    @property
    def role(self) -> RoleName:
        if self.role_assignment is None:
            return DEFAULT_ROLE
        return self.role_assignment.role.name

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"


class Role(Base):
    """Role catalogue, seeded with every RoleName at startup"""
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(SQLEnum(RoleName, name="role_name", values_callable=_enum_values), unique=True, nullable=False)
    description = Column(String(255), nullable=False, default="")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Role(id={self.id}, name={self.name})>"


class UserRole(Base):
    """At most one role per user, enforced by the unique user_id"""
    __tablename__ = "user_roles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="role_assignment")
    role = relationship("Role", lazy="joined")

    def __repr__(self):
        return f"<UserRole(user_id={self.user_id}, role_id={self.role_id})>"


class Favorite(Base):
    """Product or category bookmarked by a user"""
    __tablename__ = "favorites"
    __table_args__ = (
        UniqueConstraint("user_id", "item_id", "item_type", name="uq_favorites_user_item"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    item_id = Column(Integer, nullable=False)
    item_type = Column(
        SQLEnum(FavoriteItemType, name="favorite_item_type", values_callable=_enum_values),
        nullable=False
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
