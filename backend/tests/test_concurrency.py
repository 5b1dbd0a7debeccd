import asyncio
import random
from datetime import timedelta

import pytest

from api.blobs.repositories import blob_repository
from api.drops.repositories import drops_repository
from janitor import run_cleanup
from tests.conftest import ADMIN_HEADERS


def _assert_no_orphans(settings):
    codes = {d.code for d in drops_repository.list_all()}
    blobs = {p.name for p in settings.files_dir.iterdir()}
    assert codes == blobs
    for code in codes:
        assert blob_repository.exists(code)


@pytest.mark.asyncio
async def test_concurrent_creates_and_deletes_leave_no_orphans(client, settings):
    seeded = []
    for i in range(60):
        resp = await client.post("/drop", content=f"seed-{i}".encode(), headers=ADMIN_HEADERS)
        seeded.append(resp.json()["code"])
    doomed = random.sample(seeded, 50)

    creates = [
        client.post("/drop", content=f"new-{i}".encode(), headers=ADMIN_HEADERS) for i in range(100)
    ]
    deletes = [client.delete(f"/drop/{code}", headers=ADMIN_HEADERS) for code in doomed]
    results = await asyncio.gather(*creates, *deletes)

    create_results = results[:100]
    delete_results = results[100:]
    assert all(r.status_code == 201 for r in create_results)
    assert all(r.status_code == 204 for r in delete_results)

    new_codes = [r.json()["code"] for r in create_results]
    assert len(set(new_codes + seeded)) == 160

    for code in doomed:
        assert (await client.get(f"/drop/{code}")).status_code == 404
    for i, code in enumerate(new_codes):
        resp = await client.get(f"/drop/{code}")
        assert resp.content == f"new-{i}".encode()

    _assert_no_orphans(settings)


@pytest.mark.asyncio
async def test_reads_racing_a_delete_see_all_or_nothing(client):
    payload = b"z" * 200_000
    code = (await client.post("/drop", content=payload, headers=ADMIN_HEADERS)).json()["code"]

    reads = [client.get(f"/drop/{code}") for _ in range(20)]
    delete = client.delete(f"/drop/{code}", headers=ADMIN_HEADERS)
    results = await asyncio.gather(*reads[:10], delete, *reads[10:])

    assert results[10].status_code == 204
    for resp in results[:10] + results[11:]:
        assert resp.status_code in (200, 404)
        if resp.status_code == 200:
            assert resp.content == payload


@pytest.mark.asyncio
async def test_janitor_sweeping_during_traffic(client, settings, make_drop):
    expiring = [make_drop(f"old-{i}".encode(), ttl=timedelta(milliseconds=50)) for i in range(20)]
    await asyncio.sleep(0.1)

    sweep = asyncio.to_thread(run_cleanup, settings)
    deletes = [client.delete(f"/drop/{code}", headers=ADMIN_HEADERS) for code in expiring[:10]]
    creates = [client.post("/drop", content=b"fresh", headers=ADMIN_HEADERS) for _ in range(20)]
    report, *responses = await asyncio.gather(sweep, *deletes, *creates)

    assert report.failures == []
    assert all(r.status_code in (204, 404) for r in responses[:10])
    assert all(r.status_code == 201 for r in responses[10:])
    for code in expiring:
        assert not drops_repository.code_exists(code)
    _assert_no_orphans(settings)
