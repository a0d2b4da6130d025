"""
Create or update the dashboard administrator account.

Reads ADMIN_EMAIL, ADMIN_PASSWORD and ADMIN_DISPLAY_NAME from the environment
(or .env). Run with ``python -m splitpay.core.create_admin``.
"""

import logging
import os
import sys

from dotenv import load_dotenv

from splitpay.core.database import init_db
from splitpay.core.dependencies import get_engine, get_store
from splitpay.core.errors import SplitPayError
from splitpay.core.users import CreateUserRequest, create_or_update_user

logger = logging.getLogger("create_admin")


def main() -> int:
    load_dotenv()
    email = os.getenv("ADMIN_EMAIL", "admin@splitpay.com")
    password = os.getenv("ADMIN_PASSWORD")
    display_name = os.getenv("ADMIN_DISPLAY_NAME", "Administrator")

    if not password:
        logger.error("ADMIN_PASSWORD is not set")
        return 1

    init_db(get_engine())
    try:
        user = create_or_update_user(
            CreateUserRequest(email=email, password=password, display_name=display_name),
            get_store(),
        )
    except SplitPayError as e:
        logger.error("Could not manage admin user: %s %s", e.message, e.detail)
        return 1

    print(f"Admin user ready: {user.email} (uid {user.uid})")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(main())
