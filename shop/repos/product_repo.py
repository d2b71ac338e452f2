# shop/repos/product_repo.py
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from shop.data.models.product import ProductModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.execute(
            select(ProductModel)
            .where(ProductModel.id == product_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_product_for_update(self, product_id: int) -> ProductModel | None:
        # SELECT ... FOR UPDATE, always re-read from the store
        return self.db.execute(
            select(ProductModel)
            .where(ProductModel.id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def create_product(self, product: ProductModel) -> ProductModel:
        product.in_stock = product.stock > 0
        self.db.add(product)
        self.db.flush()
        return product

    def decrement_stock(self, product_id: int, quantity: int) -> int:
        """
        Conditional decrement, single statement:
        UPDATE products SET stock = stock - q, in_stock = stock - q > 0
        WHERE id = :id AND in_stock AND stock >= q

        Returns rowcount, 0 means the stock was not there anymore.
        """
        result = self.db.execute(
            update(ProductModel)
            .where(
                ProductModel.id == product_id,
                ProductModel.in_stock.is_(True),
                ProductModel.stock >= quantity,
            )
            .values(
                stock=ProductModel.stock - quantity,
                in_stock=ProductModel.stock - quantity > 0,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def increment_stock(self, product_id: int, quantity: int) -> int:
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(
                stock=ProductModel.stock + quantity,
                in_stock=ProductModel.stock + quantity > 0,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
