# shop_service/models/product.py
"""
Catalog models: categories, products and the search log
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, Text, JSON, ForeignKey, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from shop_service.db.database import Base


class Category(Base):
    """Product category"""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(String(500), nullable=False, default="")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    products = relationship("Product", back_populates="category")

    def __repr__(self):
        return f"<Category(id={self.id}, name={self.name})>"


class Product(Base):
    """
    Catalog product.

    ``stock`` and ``order_count`` form the inventory ledger. Orders write them
    on confirmation and cancellation; stock is otherwise changed only through
    ``ProductService.adjust_stock``.
    """
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("order_count >= 0", name="ck_products_order_count_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    title = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    images = Column(JSON, nullable=False, default=list)
    price = Column(Float, nullable=False)
    model = Column(String(100), nullable=False, default="")
    extra_info = Column(JSON, nullable=True)
    stock = Column(Integer, nullable=False, default=0)
    order_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    category = relationship("Category", back_populates="products", lazy="selectin")

    def __repr__(self):
        return f"<Product(id={self.id}, title={self.title}, stock={self.stock})>"


class SearchLog(Base):
    """Search query recorded for analytics"""
    __tablename__ = "search_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    query = Column(String(255), nullable=False, default="")
    filters = Column(JSON, nullable=True)
    results = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
