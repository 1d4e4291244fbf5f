from __future__ import annotations

import functools
import os
from enum import Enum


# Register feature flags in a central place to avoid chaos
class Feature(Enum):
    LATEST = "latest"
    # Only decode NS.keys/NS.objects structures whose class is NSDictionary or NSMutableDictionary
    STRICT = "strict"
    # Decode plain structures without a $class into mappings instead of passing them through
    RAW = "raw"
    # Never materialize nested mappings into setter parameter types
    FLAT = "flat"


# Defines the default flags (as strings)
KEYEDARCHIVE_FEATURES_DEFAULT = "latest"

# Defines the environment variable to read the flags from
KEYEDARCHIVE_FEATURES_ENV = "DISSECT_KEYEDARCHIVE_FEATURES"


@functools.cache
def feature_flags() -> list[Feature]:
    flags = os.getenv(KEYEDARCHIVE_FEATURES_ENV, KEYEDARCHIVE_FEATURES_DEFAULT)
    return [Feature(name) for name in flags.split("/") if name]


@functools.cache
def feature_enabled(feature: Feature) -> bool:
    """Use this function for block-level feature flag control.

    Usage::

        if feature_enabled(Feature.STRICT):
            ...

    """
    return feature in feature_flags()


def reset_feature_flags() -> None:
    """Forget the cached flags, so that :data:`KEYEDARCHIVE_FEATURES_ENV` is read again."""
    feature_flags.cache_clear()
    feature_enabled.cache_clear()


def resolve_flag(value: bool | None, flag: Feature) -> bool:
    """Return an explicit keyword argument value, or the state of ``flag`` when it is ``None``."""
    return feature_enabled(flag) if value is None else value
