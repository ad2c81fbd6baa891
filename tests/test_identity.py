import pytest

from perfhub.core.exceptions import AuthenticationError, RegistrationError
from perfhub.core.init_system import ensure_admin, init_system_data
from perfhub.services.identity import AuthEventType, AuthorityTransitionLock
from perfhub.store import collections
from perfhub.store.adapter import RecordRepository


def test_register_rejects_short_password(identity):
    with pytest.raises(RegistrationError) as exc:
        identity.register("new@perfhub.io", "12345", display_name="New")
    assert exc.value.error_code == "WEAK_PASSWORD"


def test_register_rejects_duplicate_email(identity):
    identity.register("dup@perfhub.io", "Password123!", display_name="Dup")
    with pytest.raises(RegistrationError) as exc:
        identity.register("DUP@perfhub.io", "Password123!", display_name="Dup")
    assert exc.value.error_code == "EMAIL_IN_USE"


def test_registration_creates_default_profile(identity, store):
    """Self-registration without a transition in progress gets an employee profile."""
    created = identity.register("self@perfhub.io", "Password123!", display_name="Self Made")
    profile = RecordRepository(store).get_by_id(collections.USERS, created.uid)
    assert profile["role"] == "employee"
    assert profile["email"] == "self@perfhub.io"


def test_registration_without_display_name_is_left_without_profile(identity, store, caplog):
    created = identity.register("anon@perfhub.io", "Password123!")
    assert RecordRepository(store).get_by_id(collections.USERS, created.uid) is None
    assert "incomplete" in caplog.text


def test_transition_lock_blocks_profile_recreation(identity, store):
    with identity.transition_lock.hold("held@perfhub.io"):
        created = identity.register("held@perfhub.io", "Password123!", display_name="Held")
        assert RecordRepository(store).get_by_id(collections.USERS, created.uid) is None
    assert not identity.transition_lock.is_held("held@perfhub.io")


def test_transition_lock_is_counted_and_case_insensitive():
    lock = AuthorityTransitionLock()
    with lock.hold("Boss@PerfHub.io"):
        with lock.hold("boss@perfhub.io"):
            assert lock.is_held("BOSS@perfhub.io")
        assert lock.is_held("boss@perfhub.io")
    assert not lock.is_held("boss@perfhub.io")
    assert not lock.is_held(None)


def test_onboarding_writes_the_real_profile(employee, store):
    profile = RecordRepository(store).get_by_id(collections.USERS, employee["userId"])
    assert profile["role"] == "employee"
    assert profile["displayName"] == "Jane Doe"
    assert employee["performanceScore"] == 0


def test_sign_in_emits_event(identity, employee):
    events = []
    unsubscribe = identity.on_auth_state_changed(events.append)
    identity.sign_in("jane@perfhub.io", "Password123!")
    unsubscribe()
    identity.sign_out(employee["userId"])
    assert [e.type for e in events] == [AuthEventType.SIGNED_IN]
    assert events[0].identity.uid == employee["userId"]


def test_sign_in_with_wrong_password(identity, employee):
    with pytest.raises(AuthenticationError):
        identity.sign_in("jane@perfhub.io", "not-the-password")


def test_broken_listener_does_not_break_sign_in(identity, employee):
    def broken(event):
        raise RuntimeError("listener bug")

    identity.on_auth_state_changed(broken)
    assert identity.sign_in("jane@perfhub.io", "Password123!").uid == employee["userId"]


def test_ensure_admin_is_idempotent(identity, store):
    first = ensure_admin(identity, store, "root@perfhub.io", "Password123!", "Root")
    second = ensure_admin(identity, store, "root@perfhub.io", "Different123!", "Root")
    assert first["uid"] == second["uid"]
    assert second["role"] == "admin"
    # The existing login keeps its password
    assert identity.sign_in("root@perfhub.io", "Password123!").uid == first["uid"]


def test_ensure_admin_repairs_missing_profile(identity, store):
    admin = ensure_admin(identity, store, "root@perfhub.io", "Password123!", "Root")
    RecordRepository(store).delete(collections.USERS, admin["uid"])
    repaired = ensure_admin(identity, store, "root@perfhub.io", "Password123!", "Root")
    assert repaired["role"] == "admin"


def test_init_system_data_without_bootstrap_settings(identity, store):
    init_system_data(identity, store)
    assert RecordRepository(store).list_all(collections.USERS) == []


def test_init_system_data_creates_bootstrap_admin(identity, store, monkeypatch):
    from perfhub.core.config import settings
    monkeypatch.setattr(settings, "bootstrap_admin_email", "boot@perfhub.io")
    monkeypatch.setattr(settings, "bootstrap_admin_password", "Password123!")

    init_system_data(identity, store)
    admins = RecordRepository(store).list_all(collections.USERS)
    assert [a["role"] for a in admins] == ["admin"]
    assert admins[0]["email"] == "boot@perfhub.io"
