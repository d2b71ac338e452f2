# shop/services/inventory_service.py
from sqlalchemy.orm import Session

from shop.data.models.product import ProductModel
from shop.domain.errors import InsufficientStockError, NotFoundError, InvalidInputError
from shop.repos.product_repo import ProductRepo
from shop.utils.logging import get_logger

logger = get_logger(__name__)


class InventoryService:
    """
    Stock ledger for products.

    reserve/release never commit. They run inside the caller's transaction
    (checkout, cancellation) so the stock change and the order change land
    in the same commit or not at all.
    """

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def reserve(self, product_id: int, quantity: int) -> ProductModel:
        if quantity <= 0:
            raise InvalidInputError("Reservation quantity must be positive")

        rowcount = self.repo.decrement_stock(product_id, quantity)

        if rowcount == 0:
            # nothing updated: either the product is gone or somebody took the stock first
            product = self.repo.get_product(product_id)
            if not product:
                raise NotFoundError(f"Product with ID {product_id} not found")
            logger.warning(
                f"Reservation of {quantity} x product {product_id} rejected, stock {product.stock}"
            )
            raise InsufficientStockError(product.name, product.stock, quantity)

        product = self.repo.get_product_for_update(product_id)
        logger.info(f"Reserved {quantity} x product {product_id}, stock left {product.stock}")
        return product

    def release(self, product_id: int, quantity: int) -> ProductModel:
        """Compensation for a cancelled order. Never fails on a known product."""
        if quantity <= 0:
            raise InvalidInputError("Release quantity must be positive")

        rowcount = self.repo.increment_stock(product_id, quantity)
        if rowcount == 0:
            raise NotFoundError(f"Product with ID {product_id} not found")

        product = self.repo.get_product_for_update(product_id)
        logger.info(f"Released {quantity} x product {product_id}, stock now {product.stock}")
        return product
