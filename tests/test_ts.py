import platform
from datetime import datetime, timedelta, timezone
from importlib import reload
from types import ModuleType
from unittest.mock import patch

import pytest


@pytest.fixture(params=["windows", "emscripten", "linux"])
def imported_ts(request: pytest.FixtureRequest) -> ModuleType:
    with patch.object(platform, "system", return_value=request.param):
        from dissect.keyedarchive import ts

        return reload(ts)


@pytest.fixture
def ts() -> ModuleType:
    from dissect.keyedarchive import ts

    return reload(ts)


def test_cocoatimestamp(imported_ts: ModuleType) -> None:
    assert imported_ts.cocoatimestamp(0) == datetime(2001, 1, 1, tzinfo=timezone.utc)
    assert imported_ts.cocoatimestamp(622894123) == datetime(2020, 9, 27, 10, 8, 43, tzinfo=timezone.utc)
    assert imported_ts.cocoatimestamp(660837352.084823) == datetime(
        2021, 12, 10, 13, 55, 52, 84823, tzinfo=timezone.utc
    )


def test_cocoatimestamp_before_epoch(imported_ts: ModuleType) -> None:
    assert imported_ts.cocoatimestamp(-978307200) == datetime(1970, 1, 1, tzinfo=timezone.utc)


def test_to_utc(ts: ModuleType) -> None:
    naive = datetime(2021, 12, 10, 13, 55, 52)
    assert ts.to_utc(naive) == datetime(2021, 12, 10, 13, 55, 52, tzinfo=timezone.utc)
    assert ts.to_utc(naive).tzinfo is timezone.utc

    aware = datetime(2021, 12, 10, 8, 55, 52, tzinfo=timezone(timedelta(hours=-5)))
    assert ts.to_utc(aware) == naive.replace(tzinfo=timezone.utc)
    assert ts.to_utc(aware).tzinfo is timezone.utc
