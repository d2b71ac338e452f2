# shop/main.py
import uvicorn

from shop.api import create_app
from shop.data.database import Base, init_db
from shop.utils.logging import get_logger

logger = get_logger(__name__)

logger.info("Initializing database...")
try:
    init_db()
    logger.info(f"Tables ready: {list(Base.metadata.tables.keys())}")
except Exception as e:
    logger.error(f"Failed to create tables: {e}")
    raise


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
