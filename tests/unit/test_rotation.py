"""Unit tests for two-slot asset rotation."""

from datetime import datetime, timedelta
from types import SimpleNamespace

from app.services.oss.rotation import AssetRef
from app.utils.time import get_utc_now

PREFIX = "masjid_logo"
RETENTION = timedelta(days=30)


def _row(**values):
    fields = ["url", "object_key", "url_old", "object_key_old", "delete_pending_until"]
    row = SimpleNamespace(**{f"{PREFIX}_{f}": None for f in fields})
    for name, value in values.items():
        setattr(row, f"{PREFIX}_{name}", value)
    return row


def test_first_upload_has_no_old():
    ref = AssetRef().replace("k1", "https://cdn/k1", RETENTION)
    assert ref.current_object_key == "k1"
    assert ref.current_url == "https://cdn/k1"
    assert ref.old_url is None
    assert ref.delete_pending_until is None


def test_replace_twice_rotates_into_old():
    now = get_utc_now()
    ref = AssetRef().replace("k1", "https://cdn/k1", RETENTION)
    ref = ref.replace("k2", "https://cdn/k2", RETENTION)
    assert ref.current_object_key == "k2"
    assert ref.old_object_key == "k1"
    assert ref.old_url == "https://cdn/k1"
    assert ref.delete_pending_until is not None
    assert ref.delete_pending_until >= now


def test_replace_stamps_expiry_from_now():
    now = datetime(2024, 5, 1, 8, 0, 0)
    ref = AssetRef(current_url="u1", current_object_key="k1").replace("k2", "u2", RETENTION, now)
    assert ref.delete_pending_until == datetime(2024, 5, 31, 8, 0, 0)


def test_third_replace_drops_oldest():
    ref = AssetRef()
    for n in (1, 2, 3):
        ref = ref.replace(f"k{n}", f"u{n}", RETENTION)
    assert (ref.current_object_key, ref.old_object_key) == ("k3", "k2")


def test_row_round_trip():
    row = _row(url="u1", object_key="k1")
    ref = AssetRef.from_row(row, PREFIX).replace("k2", "u2", RETENTION)
    ref.apply_to(row, PREFIX)
    assert row.masjid_logo_url == "u2"
    assert row.masjid_logo_url_old == "u1"
    assert row.masjid_logo_object_key_old == "k1"
    assert row.masjid_logo_delete_pending_until is not None
    assert AssetRef.from_row(row, PREFIX) == ref


def test_pending_only_with_old_url():
    row = _row()
    AssetRef(current_url="u", current_object_key="k", delete_pending_until=get_utc_now()).apply_to(row, PREFIX)
    assert row.masjid_logo_delete_pending_until is None


def test_cleared_empties_every_column():
    row = _row(url="u2", object_key="k2", url_old="u1", object_key_old="k1",
               delete_pending_until=get_utc_now())
    AssetRef.from_row(row, PREFIX).cleared().apply_to(row, PREFIX)
    assert vars(row) == {
        "masjid_logo_url": None,
        "masjid_logo_object_key": None,
        "masjid_logo_url_old": None,
        "masjid_logo_object_key_old": None,
        "masjid_logo_delete_pending_until": None,
    }


def test_is_expired():
    now = datetime(2024, 1, 10)
    assert not AssetRef().is_expired(now)
    assert AssetRef(old_url="u", delete_pending_until=datetime(2024, 1, 9)).is_expired(now)
    assert not AssetRef(old_url="u", delete_pending_until=datetime(2024, 1, 11)).is_expired(now)
