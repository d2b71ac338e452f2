#shop/data/models/cart.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Numeric, DateTime
from sqlalchemy.orm import relationship

from shop.data.database import Base


class CartModel(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, unique=True, index=True)

    total = Column(Numeric(10, 2), nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # no cascade, the services delete cart items themselves
    items = relationship(
        "CartItemModel",
        back_populates="cart",
        order_by="CartItemModel.id",
    )
