"""
Create (or repair) the admin account.

    python scripts/create_admin.py admin@example.com 'Admin123!' "System Administrator"

Safe to re-run: an existing login keeps its password, and a missing
``users/{uid}`` profile is written with the admin role.
"""
import sys
import os
import logging

# Ensure we can import perfhub modules
sys.path.append(os.getcwd())

from perfhub.database import init_db
from perfhub.core.init_system import ensure_admin
from perfhub.services.identity import get_identity_provider
from perfhub.store import get_record_store

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def create_admin_user(email: str, password: str, name: str = "System Administrator"):
    init_db()
    try:
        profile = ensure_admin(get_identity_provider(), get_record_store(), email, password, name)
    except Exception as e:
        logger.error(f"Error creating admin user: {e}")
        return 1
    logger.info(f"Admin ready: {profile.get('email')} (uid {profile.get('uid')}, role {profile.get('role')})")
    return 0


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(2)
    sys.exit(create_admin_user(*sys.argv[1:4]))
