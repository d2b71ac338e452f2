# shop/data/models/product.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Boolean, Numeric, DateTime, CheckConstraint

from shop.data.database import Base


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    # in_stock == (stock > 0) after every write, see ProductRepo
    stock = Column(Integer, nullable=False, default=0)
    in_stock = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),)
