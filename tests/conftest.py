from __future__ import annotations

from plistlib import UID
from typing import Any, Callable, Iterator

import pytest

from dissect.keyedarchive.feature import KEYEDARCHIVE_FEATURES_ENV, reset_feature_flags


@pytest.fixture(autouse=True)
def default_features(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.delenv(KEYEDARCHIVE_FEATURES_ENV, raising=False)
    reset_feature_flags()
    yield
    reset_feature_flags()


@pytest.fixture
def features(monkeypatch: pytest.MonkeyPatch) -> Callable[[str], None]:
    def set_features(value: str) -> None:
        monkeypatch.setenv(KEYEDARCHIVE_FEATURES_ENV, value)
        reset_feature_flags()

    return set_features


def _make_archive(objects: list[Any], root: int = 1) -> dict[str, Any]:
    return {
        "$version": 100000,
        "$archiver": "NSKeyedArchiver",
        "$top": {"root": UID(root)},
        "$objects": objects,
    }


DICTIONARY_CLASS = {
    "$classname": "NSMutableDictionary",
    "$classes": ["NSMutableDictionary", "NSDictionary", "NSObject"],
}


@pytest.fixture
def make_archive() -> Callable[..., dict[str, Any]]:
    return _make_archive


@pytest.fixture
def dictionary_class() -> dict[str, Any]:
    return dict(DICTIONARY_CLASS)
