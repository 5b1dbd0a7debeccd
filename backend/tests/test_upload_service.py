from datetime import timedelta

import pytest

from api.upload.services.upload_service import parse_max_downloads, parse_size, parse_ttl
from errors import ValidationError


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("30s", timedelta(seconds=30)),
        ("10m", timedelta(minutes=10)),
        ("2h", timedelta(hours=2)),
        ("3D", timedelta(days=3)),
        (" 1w ", timedelta(weeks=1)),
    ],
)
def test_parse_ttl(raw, expected):
    assert parse_ttl(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "never", "NEVER"])
def test_parse_ttl_never(raw):
    assert parse_ttl(raw) is None


@pytest.mark.parametrize("raw", ["0s", "5", "h", "1.5h", "-1h", "1y", "9" * 40 + "w", "99999d"])
def test_parse_ttl_rejects_malformed(raw):
    with pytest.raises(ValidationError):
        parse_ttl(raw)


def test_parse_size():
    assert parse_size("100MB") == 100 * 1024**2
    assert parse_size("1.5 kb") == 1536
    assert parse_size("") == 0
    assert parse_size("lots") == 0


def test_parse_max_downloads():
    assert parse_max_downloads(None) is None
    assert parse_max_downloads(" ") is None
    assert parse_max_downloads("3") == 3
    for raw in ["0", "-2", "many"]:
        with pytest.raises(ValidationError):
            parse_max_downloads(raw)
