#import all models so SQLAlchemy registers them in Base.metadata

from shop.data.models.product import ProductModel
from shop.data.models.cart import CartModel
from shop.data.models.cart_item import CartItemModel
from shop.data.models.order import OrderModel
from shop.data.models.order_item import OrderItemModel

__all__ = ["ProductModel", "CartModel", "CartItemModel", "OrderModel", "OrderItemModel"]
