from dissect.keyedarchive.archive import KeyedArchive
from dissect.keyedarchive.decoder import Decoder
from dissect.keyedarchive.exceptions import (
    DepthLimitExceeded,
    Error,
    MismatchedKeyValueLength,
    MissingRoot,
    NoDefaultConstructor,
    NonTextKey,
    NotAKeyedArchive,
    NotAKeyedContainer,
    OutOfRangeReference,
    TypeCoercionFailure,
    UnmatchedProperty,
)
from dissect.keyedarchive.materialize import materialize, materialize_new, register_setter, setter
from dissect.keyedarchive.values import ArchivedSet, UnresolvedStructure

__all__ = [
    "ArchivedSet",
    "Decoder",
    "DepthLimitExceeded",
    "Error",
    "KeyedArchive",
    "MismatchedKeyValueLength",
    "MissingRoot",
    "NoDefaultConstructor",
    "NonTextKey",
    "NotAKeyedArchive",
    "NotAKeyedContainer",
    "OutOfRangeReference",
    "TypeCoercionFailure",
    "UnmatchedProperty",
    "UnresolvedStructure",
    "materialize",
    "materialize_new",
    "register_setter",
    "setter",
]
