"""Integration tests: manual reaper run."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.scheduler import get_reaper
from app.services.reaper_service import Reaper
from app.utils.time import get_aware_utc_now

BASE = "http://test/api/v1"


def _client(api):
    return AsyncClient(transport=ASGITransport(app=api), base_url=BASE)


@pytest.fixture
def reaper(api, oss_service):
    instance = Reaper(oss_service, MagicMock(), [], retention=timedelta(days=30), trash_prefix="spam/")
    api.dependency_overrides[get_reaper] = lambda: instance
    return instance


@pytest.mark.asyncio
async def test_dry_run_reports_candidates(api, reaper, fake_s3, auth_headers):
    fake_s3.put("spam/2020/01/01/000000__a.webp", last_modified=get_aware_utc_now() - timedelta(days=31))
    fake_s3.put("spam/2020/01/01/000001__b.webp")

    async with _client(api) as client:
        resp = await client.post("/maintenance/reaper/run", params={"dry_run": "true"}, headers=auth_headers("owner"))

    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["dry_run"] is True
    assert data["objects_candidates"] == 1
    assert data["objects_deleted"] == 0
    assert len(fake_s3.objects) == 2


@pytest.mark.asyncio
async def test_run_purges_expired(api, reaper, fake_s3, auth_headers):
    fake_s3.put("spam/2020/01/01/000000__a.webp", last_modified=get_aware_utc_now() - timedelta(days=31))

    async with _client(api) as client:
        resp = await client.post("/maintenance/reaper/run", headers=auth_headers("owner"))

    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["objects_deleted"] == 1
    assert fake_s3.objects == {}


@pytest.mark.asyncio
async def test_requires_superadmin(api, reaper, auth_headers):
    async with _client(api) as client:
        resp = await client.post("/maintenance/reaper/run", headers=auth_headers("admin", None))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_conflict_when_running(api, auth_headers):
    busy = MagicMock()
    busy.run = AsyncMock(return_value=None)
    api.dependency_overrides[get_reaper] = lambda: busy

    async with _client(api) as client:
        resp = await client.post("/maintenance/reaper/run", headers=auth_headers("owner"))
    assert resp.status_code == 409
