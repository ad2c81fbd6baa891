"""
Identity provider.

Owns credentials and login sessions, and tells listeners when identities are
registered, sign in, or sign out. Profiles (role, active flag) are not kept
here: they live in the record store under ``users/{uid}``.
"""
import enum
import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from perfhub.core.exceptions import AuthenticationError, RegistrationError
from perfhub.models.credential import Credential, UserSession
from perfhub.services import auth as auth_service

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class AuthEventType(str, enum.Enum):
    REGISTERED = "registered"
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"


@dataclass(frozen=True)
class Identity:
    uid: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


@dataclass(frozen=True)
class AuthEvent:
    type: AuthEventType
    identity: Identity


AuthListener = Callable[[AuthEvent], None]


class AuthorityTransitionLock:
    """
    Held by an operation that creates identities on someone else's behalf
    (an admin onboarding an employee, the startup admin bootstrap).

    Session listeners check it before reacting to an auth event for that
    email, so they do not write a default profile while the operation is
    still writing the real one.
    """

    def __init__(self):
        self._held: Dict[str, int] = {}
        self._lock = threading.Lock()

    @contextmanager
    def hold(self, email: str):
        email = email.strip().lower()
        with self._lock:
            self._held[email] = self._held.get(email, 0) + 1
        logger.info(f"Authority transition started for {email}")
        try:
            yield self
        finally:
            with self._lock:
                remaining = self._held.get(email, 1) - 1
                if remaining:
                    self._held[email] = remaining
                else:
                    self._held.pop(email, None)
            logger.info(f"Authority transition finished for {email}")

    def is_held(self, email: Optional[str]) -> bool:
        if not email:
            return False
        with self._lock:
            return email.strip().lower() in self._held


def _to_identity(credential: Credential) -> Identity:
    return Identity(
        uid=credential.uid,
        email=credential.email,
        display_name=credential.display_name,
        photo_url=credential.photo_url,
    )


class IdentityProvider:

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self.transition_lock = AuthorityTransitionLock()
        self._listeners: List[AuthListener] = []
        self._listeners_lock = threading.Lock()

    # --- session lifecycle events ---

    def on_auth_state_changed(self, listener: AuthListener) -> Callable[[], None]:
        with self._listeners_lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._listeners_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
        return unsubscribe

    def _emit(self, event_type: AuthEventType, identity: Identity) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(AuthEvent(event_type, identity))
            except Exception:
                logger.exception(f"Auth listener failed on {event_type.value} for {identity.uid}")

    # --- identities ---

    def register(self, email: str, password: str, display_name: Optional[str] = None) -> Identity:
        email = email.strip().lower()
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise RegistrationError(
                f"Password should be at least {MIN_PASSWORD_LENGTH} characters long.",
                error_code="WEAK_PASSWORD",
            )
        db = self._session_factory()
        try:
            if db.query(Credential).filter(Credential.email == email).first():
                raise RegistrationError(
                    "This email is already registered. Please use a different email address.",
                    error_code="EMAIL_IN_USE",
                )
            credential = Credential(
                uid=uuid.uuid4().hex[:28],
                email=email,
                hashed_password=auth_service.get_password_hash(password),
                display_name=display_name,
            )
            db.add(credential)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise RegistrationError(
                    "This email is already registered. Please use a different email address.",
                    error_code="EMAIL_IN_USE",
                )
            identity = _to_identity(credential)
        finally:
            db.close()

        logger.info(f"Registered identity {identity.uid}")
        self._emit(AuthEventType.REGISTERED, identity)
        return identity

    def get_identity(self, uid: str) -> Optional[Identity]:
        db = self._session_factory()
        try:
            credential = db.get(Credential, uid)
            return _to_identity(credential) if credential else None
        finally:
            db.close()

    def find_by_email(self, email: str) -> Optional[Identity]:
        db = self._session_factory()
        try:
            credential = db.query(Credential).filter(Credential.email == email.strip().lower()).first()
            return _to_identity(credential) if credential else None
        finally:
            db.close()

    def update_profile(self, uid: str, display_name: Optional[str] = None, photo_url: Optional[str] = None) -> None:
        db = self._session_factory()
        try:
            credential = db.get(Credential, uid)
            if credential is None:
                return
            if display_name is not None:
                credential.display_name = display_name
            if photo_url is not None:
                credential.photo_url = photo_url
            try:
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise
        finally:
            db.close()

    # --- sessions ---

    def sign_in(self, email: str, password: str) -> Identity:
        db = self._session_factory()
        try:
            credential = db.query(Credential).filter(Credential.email == email.strip().lower()).first()
            if not credential or not auth_service.verify_password(password, credential.hashed_password):
                logger.warning(f"Sign-in failed for {email}")
                raise AuthenticationError("Incorrect email or password")
            if credential.is_disabled:
                raise AuthenticationError("This account has been disabled")
            credential.last_sign_in_at = datetime.now(timezone.utc)
            try:
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise
            identity = _to_identity(credential)
        finally:
            db.close()

        self._emit(AuthEventType.SIGNED_IN, identity)
        return identity

    def issue_tokens(self, identity: Identity, role: Optional[str]) -> Dict[str, str]:
        access_token = auth_service.create_access_token(data={"sub": identity.uid, "email": identity.email, "role": role})
        refresh_token = auth_service.create_refresh_token(data={"sub": identity.uid})
        db = self._session_factory()
        try:
            db.add(UserSession(
                uid=identity.uid,
                refresh_token=refresh_token,
                expires_at=datetime.now(timezone.utc) + timedelta(days=auth_service.REFRESH_TOKEN_EXPIRE_DAYS),
            ))
            try:
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise
        finally:
            db.close()
        return {"access_token": access_token, "refresh_token": refresh_token, "token_type": "bearer"}

    def refresh(self, refresh_token: str, role: Optional[str] = None) -> Dict[str, str]:
        payload = auth_service.decode_access_token(refresh_token)
        if payload is None or payload.get("type") != "refresh":
            raise AuthenticationError("Invalid refresh token")
        db = self._session_factory()
        try:
            session = db.query(UserSession).filter(
                UserSession.refresh_token == refresh_token,
                UserSession.is_revoked == False,  # noqa: E712
            ).first()
            if session is None or _aware(session.expires_at) <= datetime.now(timezone.utc):
                raise AuthenticationError("Session expired or revoked")
            credential = db.get(Credential, session.uid)
            if credential is None or credential.is_disabled:
                raise AuthenticationError("User inactive or not found")
            # Rotation: revoke old, issue new
            session.is_revoked = True
            try:
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise
            identity = _to_identity(credential)
        finally:
            db.close()
        return self.issue_tokens(identity, role)

    def revoke(self, refresh_token: str) -> None:
        db = self._session_factory()
        try:
            session = db.query(UserSession).filter(UserSession.refresh_token == refresh_token).first()
            if session is None:
                return
            session.is_revoked = True
            try:
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise
        finally:
            db.close()

    def sign_out(self, uid: str) -> None:
        db = self._session_factory()
        try:
            credential = db.get(Credential, uid)
            if credential is None:
                return
            db.query(UserSession).filter(
                UserSession.uid == uid,
                UserSession.is_revoked == False,  # noqa: E712
            ).update({UserSession.is_revoked: True}, synchronize_session=False)
            try:
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise
            identity = _to_identity(credential)
        finally:
            db.close()
        self._emit(AuthEventType.SIGNED_OUT, identity)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


@lru_cache()
def get_identity_provider() -> IdentityProvider:
    from perfhub.database import SessionLocal
    from perfhub.services.session import connect_profile_sync
    from perfhub.store import get_record_store

    provider = IdentityProvider(SessionLocal)
    connect_profile_sync(provider, get_record_store())
    return provider


def get_identity() -> IdentityProvider:
    """FastAPI dependency."""
    return get_identity_provider()
