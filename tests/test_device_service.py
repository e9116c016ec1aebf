"""Tests for the device trust store."""
from unittest.mock import patch

import pytest

from adaptive_auth.models.device import DeviceFingerprint
from adaptive_auth.services.device_service import DeviceService
from adaptive_auth.services.security_event_service import SecurityEventService
from adaptive_auth.utils.errors import InvalidInputError, NotFoundError


def test_device_is_new_until_registered(db_session, user_id):
    assert DeviceService.is_new_device(db_session, user_id, "fp-1") is True

    device = DeviceService.register_device_fingerprint(
        db_session, user_id, "fp-1", device_name="Laptop", browser="Firefox", os="Linux",
    )
    assert device.is_trusted is False
    assert device.first_seen == device.last_seen
    assert DeviceService.is_new_device(db_session, user_id, "fp-1") is False


def test_fingerprints_are_per_user(db_session, user_id):
    import uuid

    DeviceService.register_device_fingerprint(db_session, user_id, "fp-shared")
    assert DeviceService.is_new_device(db_session, str(uuid.uuid4()), "fp-shared") is True


def test_empty_fingerprint_is_always_new(db_session, user_id):
    assert DeviceService.is_new_device(db_session, user_id, None) is True
    assert DeviceService.is_new_device(db_session, user_id, "") is True
    with pytest.raises(InvalidInputError):
        DeviceService.register_device_fingerprint(db_session, user_id, "")


def test_register_twice_updates_last_seen(db_session, user_id):
    first = DeviceService.register_device_fingerprint(db_session, user_id, "fp-1", device_name="Laptop")
    first_seen = first.first_seen

    again = DeviceService.register_device_fingerprint(db_session, user_id, "fp-1", ip_address="192.0.2.4")

    assert again.id == first.id
    assert again.first_seen == first_seen
    assert again.last_seen >= first_seen
    assert again.device_name == "Laptop"
    assert again.ip_address == "192.0.2.4"
    assert db_session.query(DeviceFingerprint).filter(DeviceFingerprint.user_id == user_id).count() == 1


def test_concurrent_duplicate_insert_degrades_to_update(db_session, user_id):
    from adaptive_auth.core.database import SessionLocal

    other = SessionLocal()
    try:
        DeviceService.register_device_fingerprint(other, user_id, "fp-race")
    finally:
        other.close()

    # Simulate losing the race: the existence check saw nothing
    real_lookup = DeviceService.get_device_by_fingerprint
    lookups = [None]

    def stale_lookup(db, uid, fp):
        return lookups.pop() if lookups else real_lookup(db, uid, fp)

    with patch.object(DeviceService, "get_device_by_fingerprint", side_effect=stale_lookup):
        device = DeviceService.register_device_fingerprint(db_session, user_id, "fp-race", device_name="Phone")

    assert device.device_name == "Phone"
    assert db_session.query(DeviceFingerprint).filter(DeviceFingerprint.fingerprint == "fp-race").count() == 1


def test_trust_device_records_event(db_session, user_id):
    device = DeviceService.register_device_fingerprint(db_session, user_id, "fp-1")

    trusted = DeviceService.trust_device(db_session, user_id, device.id)
    assert trusted.is_trusted is True
    assert DeviceService.is_trusted_device(db_session, user_id, "fp-1") is True

    events = SecurityEventService.get_security_events(db_session, user_id)
    assert [(e.event_type, e.severity) for e in events] == [("device_trusted", "info")]


def test_revoke_device_makes_it_new_again(db_session, user_id):
    device = DeviceService.register_device_fingerprint(db_session, user_id, "fp-1")
    DeviceService.trust_device(db_session, user_id, device.id)

    DeviceService.revoke_device(db_session, user_id, device.id)

    assert DeviceService.is_new_device(db_session, user_id, "fp-1") is True
    assert DeviceService.is_trusted_device(db_session, user_id, "fp-1") is False
    events = SecurityEventService.get_security_events(db_session, user_id)
    assert events[0].event_type == "device_revoked"
    assert events[0].severity == "medium"


def test_unknown_device_id_not_found(db_session, user_id):
    with pytest.raises(NotFoundError):
        DeviceService.trust_device(db_session, user_id, 9999)
    with pytest.raises(NotFoundError):
        DeviceService.revoke_device(db_session, user_id, 9999)


def test_other_users_device_not_found(db_session, user_id):
    import uuid

    device = DeviceService.register_device_fingerprint(db_session, user_id, "fp-1")
    with pytest.raises(NotFoundError):
        DeviceService.trust_device(db_session, str(uuid.uuid4()), device.id)


def test_get_user_devices(db_session, user_id):
    DeviceService.register_device_fingerprint(db_session, user_id, "fp-1")
    DeviceService.register_device_fingerprint(db_session, user_id, "fp-2")

    fingerprints = {d.fingerprint for d in DeviceService.get_user_devices(db_session, user_id)}
    assert fingerprints == {"fp-1", "fp-2"}
