import time
from datetime import timedelta

import pytest

from api.drops.repositories import drops_repository
from api.drops.repositories.drops_repository import utc_now
from errors import NotFound, ValidationError


def test_reserved_codes_are_unique():
    codes = [drops_repository.reserve_code() for _ in range(200)]
    assert len(set(codes)) == len(codes)


def test_deleted_code_is_never_reissued(monkeypatch):
    first = drops_repository.reserve_code()
    drops_repository.create(code=first, size=1)
    drops_repository.delete_by_code(first)

    candidates = iter([first, "fresh-code"])
    monkeypatch.setattr(drops_repository.secrets, "token_urlsafe", lambda n: next(candidates))

    assert drops_repository.reserve_code() == "fresh-code"


def test_create_and_get():
    code = drops_repository.reserve_code()
    created = drops_repository.create(
        code=code,
        size=5,
        ttl=timedelta(hours=1),
        filename="notes.txt",
        content_type="text/plain",
    )

    fetched = drops_repository.get_by_code(code)
    assert fetched == created
    assert fetched.size == 5
    assert fetched.filename == "notes.txt"
    assert fetched.download_count == 0
    assert fetched.expires_at > fetched.created_at
    assert fetched.created_at.tzinfo is not None


def test_create_without_ttl_never_expires():
    code = drops_repository.reserve_code()
    drop = drops_repository.create(code=code, size=1)
    assert drop.expires_at is None
    assert drops_repository.get_by_code(code, now=utc_now() + timedelta(days=10000)) == drop


@pytest.mark.parametrize("ttl", [timedelta(0), timedelta(seconds=-5)])
def test_create_rejects_non_positive_ttl(ttl):
    code = drops_repository.reserve_code()
    with pytest.raises(ValidationError):
        drops_repository.create(code=code, size=1, ttl=ttl)
    assert not drops_repository.code_exists(code)


def test_get_unknown_code():
    with pytest.raises(NotFound):
        drops_repository.get_by_code("does-not-exist")


def test_get_treats_expired_row_as_missing(make_drop):
    code = make_drop(ttl=timedelta(milliseconds=100))
    time.sleep(0.2)

    with pytest.raises(NotFound):
        drops_repository.get_by_code(code)
    # Still on disk until the janitor runs.
    assert drops_repository.code_exists(code)


def test_delete_twice_reports_not_found(make_drop):
    code = make_drop()
    drops_repository.delete_by_code(code)
    with pytest.raises(NotFound):
        drops_repository.delete_by_code(code)
    with pytest.raises(NotFound):
        drops_repository.get_by_code(code)


def test_claim_download_stops_at_limit(make_drop):
    code = make_drop(max_downloads=2)
    drops_repository.claim_download(code)
    drops_repository.claim_download(code)

    with pytest.raises(NotFound):
        drops_repository.claim_download(code)
    with pytest.raises(NotFound):
        drops_repository.get_by_code(code)
    assert list(drops_repository.iter_exhausted()) == [code]


def test_iter_expired_only_returns_past_due(make_drop):
    expired = [make_drop(ttl=timedelta(milliseconds=50)) for _ in range(3)]
    live = make_drop(ttl=timedelta(hours=1))
    forever = make_drop()
    time.sleep(0.1)

    found = list(drops_repository.iter_expired())
    assert sorted(found) == sorted(expired)
    assert live not in found
    assert forever not in found


def test_iter_expired_walks_in_batches(make_drop):
    expired = [make_drop(ttl=timedelta(milliseconds=50)) for _ in range(7)]
    time.sleep(0.1)

    assert sorted(drops_repository.iter_expired(batch_size=3)) == sorted(expired)


def test_iter_expired_tolerates_deletes_mid_iteration(make_drop):
    expired = [make_drop(ttl=timedelta(milliseconds=50)) for _ in range(5)]
    time.sleep(0.1)

    seen = []
    for code in drops_repository.iter_expired(batch_size=2):
        seen.append(code)
        drops_repository.delete_by_code(code)

    assert sorted(seen) == sorted(expired)
    assert list(drops_repository.iter_expired()) == []


def test_iter_created_before(make_drop):
    old = make_drop()
    cutoff = utc_now() + timedelta(milliseconds=10)
    time.sleep(0.05)
    make_drop()

    assert list(drops_repository.iter_created_before(cutoff)) == [old]


def test_totals(make_drop):
    make_drop(b"abc")
    code = make_drop(b"defgh")
    drops_repository.claim_download(code)

    assert drops_repository.get_total_storage() == 8
    assert drops_repository.get_total_downloads() == 1
    assert [d.code for d in drops_repository.list_all()][0] == code


def test_count(make_drop):
    assert drops_repository.count() == 0
    make_drop(b"abc")
    code = make_drop(b"defgh")
    assert drops_repository.count() == 2

    drops_repository.delete_by_code(code)
    assert drops_repository.count() == 1
