"""
Profile sync: keeps ``users/{uid}`` in step with the identity provider.

When an identity registers or signs in without a profile in the record
store, a basic ``employee`` profile is recreated so the session can proceed,
unless an authority transition is in progress for that email (the operation
holding it writes the real profile itself).
"""
import logging
from typing import Any, Dict, Optional

from perfhub.services.identity import (
    AuthEvent,
    AuthEventType,
    AuthorityTransitionLock,
    Identity,
    IdentityProvider,
)
from perfhub.store import collections
from perfhub.store.adapter import RecordRepository
from perfhub.store.base import RecordStore

logger = logging.getLogger(__name__)


class ProfileSync:

    def __init__(self, store: RecordStore, transition_lock: AuthorityTransitionLock):
        self.records = RecordRepository(store)
        self.transition_lock = transition_lock

    def __call__(self, event: AuthEvent) -> None:
        if event.type in (AuthEventType.REGISTERED, AuthEventType.SIGNED_IN):
            self.ensure_profile(event.identity, signed_in=event.type == AuthEventType.SIGNED_IN)

    def ensure_profile(self, identity: Identity, signed_in: bool = False) -> Optional[Dict[str, Any]]:
        profile = self.records.get_by_id(collections.USERS, identity.uid)
        if profile is not None:
            if signed_in:
                now = self.records.clock.now_iso()
                self.records.update(collections.USERS, identity.uid, {"lastLogin": now})
                profile["lastLogin"] = now
            return profile

        if self.transition_lock.is_held(identity.email):
            logger.info(f"Authority transition in progress for {identity.uid}; not recreating profile")
            return None

        if not (identity.email and identity.display_name):
            logger.error(f"User profile is incomplete for {identity.uid}; cannot recreate it")
            return None

        logger.warning(f"Identity {identity.uid} has no profile; recreating it with the employee role")
        now = self.records.clock.now_iso()
        return self.records.create(
            collections.USERS,
            {
                "uid": identity.uid,
                "email": identity.email,
                "displayName": identity.display_name,
                "role": "employee",
                "photoURL": identity.photo_url,
                "lastLogin": now if signed_in else None,
                "active": True,
            },
            key=identity.uid,
        )


def connect_profile_sync(provider: IdentityProvider, store: RecordStore) -> ProfileSync:
    sync = ProfileSync(store, provider.transition_lock)
    provider.on_auth_state_changed(sync)
    return sync
