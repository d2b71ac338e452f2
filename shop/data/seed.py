# shop/data/seed.py
from decimal import Decimal

from shop.data.database import SessionLocal, init_db, transaction
from shop.data.models.product import ProductModel
from shop.repos.product_repo import ProductRepo
from shop.utils.logging import get_logger

logger = get_logger(__name__)

PRODUCTS = [
    {"name": "Keyboard", "price": Decimal("199.99"), "stock": 25},
    {"name": "Mouse", "price": Decimal("49.50"), "stock": 40},
    {"name": "Monitor", "price": Decimal("899.00"), "stock": 8},
    {"name": "USB-C Cable", "price": Decimal("12.00"), "stock": 0},
]


def seed():
    init_db()
    db = SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(ProductModel).first():
            logger.info("Products already present, skipping seed")
            return

        repo = ProductRepo(db)
        with transaction(db):
            for data in PRODUCTS:
                repo.create_product(ProductModel(**data))
        logger.info(f"Seeded {len(PRODUCTS)} products")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
