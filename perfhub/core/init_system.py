import logging
from typing import Any, Dict, Optional

from perfhub.core.config import settings
from perfhub.services.identity import IdentityProvider
from perfhub.store import collections
from perfhub.store.adapter import RecordRepository
from perfhub.store.base import RecordStore

logger = logging.getLogger(__name__)


def ensure_admin(
    identity: IdentityProvider,
    store: RecordStore,
    email: str,
    password: str,
    name: str = "System Administrator",
) -> Dict[str, Any]:
    """
    Make sure an admin login and its ``users/{uid}`` admin profile exist.

    An existing login keeps its password; a missing profile is written with
    the admin role. Holds the authority-transition lock so the profile-sync
    listener does not write an employee profile for the new identity first.
    """
    records = RecordRepository(store)
    with identity.transition_lock.hold(email):
        admin = identity.find_by_email(email)
        if admin is None:
            admin = identity.register(email, password, display_name=name)
            logger.info(f"✓ Created admin login {admin.email}")

        profile = records.get_by_id(collections.USERS, admin.uid)
        if profile is None:
            profile = records.create(
                collections.USERS,
                {
                    "uid": admin.uid,
                    "email": admin.email,
                    "displayName": admin.display_name or name,
                    "role": "admin",
                    "active": True,
                },
                key=admin.uid,
            )
            logger.info(f"✓ Created admin profile for {admin.uid}")
        elif profile.get("role") != "admin":
            logger.warning(f"{admin.email} exists with role {profile.get('role')!r}; leaving it unchanged")
    return profile


def init_system_data(identity: Optional[IdentityProvider] = None, store: Optional[RecordStore] = None) -> None:
    """Bootstrap the admin account from BOOTSTRAP_ADMIN_* settings, when set."""
    if not (settings.bootstrap_admin_email and settings.bootstrap_admin_password):
        logger.info("System initialization check: no bootstrap admin configured.")
        return

    if identity is None:
        from perfhub.services.identity import get_identity_provider
        identity = get_identity_provider()
    if store is None:
        from perfhub.store import get_record_store
        store = get_record_store()

    try:
        ensure_admin(
            identity,
            store,
            settings.bootstrap_admin_email,
            settings.bootstrap_admin_password,
            settings.bootstrap_admin_name,
        )
    except Exception as e:
        logger.error(f"Error during system initialization check: {str(e)}", exc_info=True)
