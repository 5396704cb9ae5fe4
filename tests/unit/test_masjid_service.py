"""Unit tests for asset slot flows on masjid rows."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.masjid import Masjid, MasjidServicePlan, MasjidTeacher
from app.services.asset_service import AssetService
from app.services.masjid_service import MasjidService, ServicePlanService, TeacherService
from app.services.oss import CopyFailed


def _masjid() -> Masjid:
    return Masjid(id=uuid4(), name="Masjid Al-Ikhlas", slug="al-ikhlas")


@pytest.mark.asyncio
async def test_set_logo_twice_rotates(blob, fake_s3, png_bytes):
    db = AsyncMock(spec=AsyncSession)
    masjid = _masjid()

    first = await MasjidService.set_logo(db, masjid, "logo.png", png_bytes, blob)
    assert first.old_url is None
    assert masjid.masjid_logo_delete_pending_until is None

    second = await MasjidService.set_logo(db, masjid, "logo-baru.png", png_bytes, blob)

    assert masjid.masjid_logo_url == second.current_url
    assert masjid.masjid_logo_url_old == first.current_url
    assert masjid.masjid_logo_object_key_old == first.current_object_key
    assert masjid.masjid_logo_delete_pending_until is not None
    assert masjid.masjid_logo_object_key.startswith(f"uploads/masjids/{masjid.id}/logo/logo-baru_")
    # superseded object stays in the store until a delete flow trashes it
    assert first.current_object_key in fake_s3.objects
    assert db.commit.await_count == 2


@pytest.mark.asyncio
async def test_soft_delete_trashes_logo(blob, fake_s3, png_bytes):
    db = AsyncMock(spec=AsyncSession)
    masjid = _masjid()
    await MasjidService.set_logo(db, masjid, "a.png", png_bytes, blob)
    await MasjidService.set_logo(db, masjid, "b.png", png_bytes, blob)
    current, old = masjid.masjid_logo_object_key, masjid.masjid_logo_object_key_old

    moved = await MasjidService.soft_delete_masjid(db, masjid, blob)

    assert [m.source_key for m in moved] == [current, old]
    assert current not in fake_s3.objects and old not in fake_s3.objects
    assert all(m.spam_key in fake_s3.objects for m in moved)
    assert masjid.masjid_logo_url is None
    assert masjid.masjid_logo_url_old is None
    assert masjid.is_deleted


@pytest.mark.asyncio
async def test_trash_keeps_row_when_current_copy_fails(blob, fake_s3, png_bytes):
    db = AsyncMock(spec=AsyncSession)
    masjid = _masjid()
    await MasjidService.set_logo(db, masjid, "a.png", png_bytes, blob)
    url = masjid.masjid_logo_url
    fake_s3.fail_copy = True

    with pytest.raises(CopyFailed):
        await MasjidService.remove_logo(db, masjid, blob)

    assert masjid.masjid_logo_url == url


@pytest.mark.asyncio
async def test_trash_tolerates_missing_old_object(blob, fake_s3, png_bytes):
    db = AsyncMock(spec=AsyncSession)
    masjid = _masjid()
    await MasjidService.set_logo(db, masjid, "a.png", png_bytes, blob)
    await MasjidService.set_logo(db, masjid, "b.png", png_bytes, blob)
    del fake_s3.objects[masjid.masjid_logo_object_key_old]

    moved = await AssetService.trash(masjid, "masjid_logo", blob)

    assert len(moved) == 1
    assert masjid.masjid_logo_url is None
    assert masjid.masjid_logo_url_old is None


@pytest.mark.asyncio
async def test_trash_keeps_old_slot_when_old_copy_fails(blob, fake_s3, png_bytes):
    db = AsyncMock(spec=AsyncSession)
    masjid = _masjid()
    await MasjidService.set_logo(db, masjid, "a.png", png_bytes, blob)
    await MasjidService.set_logo(db, masjid, "b.png", png_bytes, blob)
    current_key = masjid.masjid_logo_object_key
    old_key = masjid.masjid_logo_object_key_old
    old_url = masjid.masjid_logo_url_old
    pending = masjid.masjid_logo_delete_pending_until
    fake_s3.fail_copy_keys.add(old_key)

    moved = await AssetService.trash(masjid, "masjid_logo", blob)

    assert [m.source_key for m in moved] == [current_key]
    assert current_key not in fake_s3.objects
    assert old_key in fake_s3.objects
    assert masjid.masjid_logo_url is None
    assert masjid.masjid_logo_object_key is None
    assert masjid.masjid_logo_url_old == old_url
    assert masjid.masjid_logo_object_key_old == old_key
    assert masjid.masjid_logo_delete_pending_until == pending

    # a later delete retries the move once the store recovers
    fake_s3.fail_copy_keys.clear()
    moved = await AssetService.trash(masjid, "masjid_logo", blob)

    assert [m.source_key for m in moved] == [old_key]
    assert old_key not in fake_s3.objects
    assert masjid.masjid_logo_url_old is None


@pytest.mark.asyncio
async def test_service_plan_image_path(blob, png_bytes):
    db = AsyncMock(spec=AsyncSession)
    plan = MasjidServicePlan(id=uuid4(), code="premium", name="Premium")

    ref = await ServicePlanService.set_image(db, plan, "cover.png", png_bytes, blob)

    assert ref.current_object_key.startswith("uploads/service-plans/premium/cover_")
    assert plan.masjid_service_plan_image_url == ref.current_url


@pytest.mark.asyncio
async def test_teacher_avatar_path(blob, jpeg_bytes):
    db = AsyncMock(spec=AsyncSession)
    teacher = MasjidTeacher(id=uuid4(), masjid_id=uuid4(), display_name="Ustadz Ahmad")

    ref = await TeacherService.set_avatar(db, teacher, "foto.jpg", jpeg_bytes, blob)

    expected = f"uploads/masjids/{teacher.masjid_id}/images/teachers-{teacher.id}/foto_"
    assert ref.current_object_key.startswith(expected)
    assert teacher.masjid_teacher_avatar_object_key == ref.current_object_key
