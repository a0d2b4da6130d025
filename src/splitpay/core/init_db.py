"""Initialize the database tables."""

import logging

from splitpay.core.database import init_db
from splitpay.core.dependencies import get_engine

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print("Creating database tables...")
    init_db(get_engine())
    print("Tables created successfully!")
