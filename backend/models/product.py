# backend/models/product.py
from sqlalchemy import Column, Integer, String, Text, Numeric, ForeignKey, DateTime, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base

# Largest values the price and stock_quantity columns can hold
MAX_PRICE = 99_999_999.99
MAX_STOCK = 2_147_483_647

# Model Product
# A sellable catalog entry. stock_quantity is the only contested mutable
# column: checkout decrements it, restock increments it.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)

    price = Column(Numeric(10, 2), CheckConstraint("price >= 0", name="ck_products_price_nonneg"), nullable=False)
    stock_quantity = Column(
        Integer, CheckConstraint("stock_quantity >= 0", name="ck_products_stock_nonneg"),
        nullable=False, default=0,
    )

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    category = relationship("Category", back_populates="products")
