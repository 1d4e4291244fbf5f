from __future__ import annotations

import logging
import numbers
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterator

from dissect.keyedarchive.exceptions import (
    DepthLimitExceeded,
    MismatchedKeyValueLength,
    NonTextKey,
    NotAKeyedContainer,
    OutOfRangeReference,
    TypeCoercionFailure,
)
from dissect.keyedarchive.feature import Feature, resolve_flag
from dissect.keyedarchive.ts import cocoatimestamp, to_utc
from dissect.keyedarchive.values import (
    NULL,
    ArchivedSet,
    UnresolvedStructure,
    is_reference,
    reference_index,
)

log = logging.getLogger(__name__)

CLASS_KEY = "$class"
KEYS_KEY = "NS.keys"
VALUES_KEY = "NS.objects"

DICTIONARY_CLASSES = ("NSDictionary", "NSMutableDictionary")

DEFAULT_MAX_DEPTH = 128


class Decoder:
    """Decodes nodes of the flat ``$objects`` store of a keyed archive into canonical values.

    Every node that is reached through a reference is decoded only once: the result is remembered by its index in
    the object store, so objects that are shared in the archive are also shared in the decoded values, and cyclic
    object graphs decode to cyclic Python structures instead of recursing forever.

    A decoder is meant for a single decode operation. Create a new one (e.g. through
    :meth:`dissect.keyedarchive.KeyedArchive.decoder`) to start with an empty cache.

    Args:
        objects: The ``$objects`` array of the archive.
        strict: Only decode ``NS.keys``/``NS.objects`` structures of the ``NSDictionary`` classes as mappings.
        raw: Decode plain structures (without a ``$class``) into mappings instead of passing them through.
        max_depth: Maximum nesting depth of the decoded values.
    """

    def __init__(
        self,
        objects: list[Any],
        *,
        strict: bool | None = None,
        raw: bool | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        self.objects = objects
        self.strict = resolve_flag(strict, Feature.STRICT)
        self.raw = resolve_flag(raw, Feature.RAW)
        self.max_depth = max_depth

        self._cache: dict[int, Any] = {}
        self._resolving: set[int] = set()
        self._depth = 0

    def resolve(self, ref: Any) -> Any:
        """Return the node in the object store that ``ref`` points to."""
        index = reference_index(ref)
        if not 0 <= index < len(self.objects):
            raise OutOfRangeReference(index, len(self.objects))
        return self.objects[index]

    def project(self, node: Any) -> Any:
        """Convert a node, or the node a reference points to, into a canonical value."""
        with self._discard_on_error():
            if is_reference(node):
                return self._project_reference(node)
            return self._project_node(node, None)

    def remember(self, index: int | None, value: Any) -> Any:
        """Cache the decoded value of object ``index``.

        Container values must be remembered before their contents are decoded, so that references back to the
        container find it.
        """
        if index is not None:
            self._cache[index] = value
        return value

    def is_keyed_container(self, node: Any, classes: list[str] | None = None) -> bool:
        if not isinstance(node, dict) or KEYS_KEY not in node or VALUES_KEY not in node:
            return False

        if self.strict:
            if classes is None:
                classes = self.class_chain(node)
            return bool(classes) and classes[0] in DICTIONARY_CLASSES

        return True

    def decode_container(self, node: dict[str, Any]) -> dict[str, Any]:
        """Decode a structure with parallel ``NS.keys`` and ``NS.objects`` arrays into a mapping.

        Keys must decode to text. If a key occurs more than once, the last value wins.
        """
        if not isinstance(node, dict) or KEYS_KEY not in node or VALUES_KEY not in node:
            raise NotAKeyedContainer(f"Structure has no {KEYS_KEY} and {VALUES_KEY} arrays")

        keys, values = _container_items(node)
        with self._discard_on_error():
            return self._fill_container(keys, values, {})

    def class_chain(self, node: dict[str, Any]) -> list[str]:
        """Return the class names of the archived object ``node``, most derived class first.

        Returns an empty list if the structure has no ``$class``.
        """
        ref = node.get(CLASS_KEY)
        if ref is None:
            return []

        klass = self.resolve(ref)
        if not isinstance(klass, dict):
            raise TypeError(f"Class descriptor is not a structure: {klass!r}")

        classes = klass.get("$classes")
        if classes is None:
            name = klass.get("$classname")
            return [name] if name is not None else []

        return [self.project(name) if is_reference(name) else name for name in classes]

    def classname(self, node: dict[str, Any]) -> str | None:
        classes = self.class_chain(node)
        return classes[0] if classes else None

    def decode_fields(self, obj: UnresolvedStructure | dict[str, Any]) -> dict[str, Any]:
        """Decode the encoded fields of an arbitrary archived object into a mapping.

        This is the counterpart of ``-[NSObject initWithCoder:]`` for classes this module does not know about: every
        key of the structure except ``$class`` is decoded.
        """
        node = obj.node if isinstance(obj, UnresolvedStructure) else obj
        if not isinstance(node, dict):
            raise TypeError(f"Can not decode the fields of {obj!r}")
        with self._discard_on_error():
            return {key: self.project(value) for key, value in node.items() if key != CLASS_KEY}

    @contextmanager
    def _discard_on_error(self) -> Iterator[None]:
        # Objects decoded by a failing top-level call may be incomplete, forget them
        if self._depth:
            yield
            return

        known = set(self._cache)
        try:
            yield
        except Exception:
            for index in set(self._cache) - known:
                del self._cache[index]
            raise

    def _project_reference(self, ref: Any) -> Any:
        index = reference_index(ref)
        if index in self._cache:
            log.debug("Reusing decoded object %d", index)
            return self._cache[index]

        if index in self._resolving:
            # A reference that (indirectly) points to itself without any structure in between
            log.debug("Reference loop at object %d", index)
            return UnresolvedStructure(ref, index)

        node = self.resolve(ref)
        self._resolving.add(index)
        try:
            return self._project_node(node, index)
        finally:
            self._resolving.discard(index)

    def _project_node(self, node: Any, index: int | None) -> Any:
        self._depth += 1
        try:
            if self._depth > self.max_depth:
                raise DepthLimitExceeded(self.max_depth)
            result = self._convert(node, index)
        finally:
            self._depth -= 1

        if index is not None:
            self._cache.setdefault(index, result)
        return result

    def _convert(self, node: Any, index: int | None) -> Any:
        if is_reference(node):
            return self._project_reference(node)

        if isinstance(node, bool) or node is None:
            return node

        if isinstance(node, numbers.Integral):
            return int(node)

        if isinstance(node, numbers.Real):
            return float(node)

        if isinstance(node, numbers.Number):
            raise TypeCoercionFailure(node)

        if isinstance(node, str):
            return None if node == NULL else node

        if isinstance(node, (bytes, bytearray)):
            return bytes(node)

        if isinstance(node, datetime):
            return to_utc(node)

        if isinstance(node, (list, tuple)):
            result = self.remember(index, [])
            result.extend(self.project(item) for item in node)
            return result

        if isinstance(node, (set, frozenset)):
            result = self.remember(index, ArchivedSet())
            for item in node:
                result.add(self.project(item))
            return result

        if isinstance(node, dict):
            return self._project_structure(node, index)

        log.debug("Passing through unknown node type %s", type(node).__name__)
        return UnresolvedStructure(node, index)

    def _project_structure(self, node: dict[str, Any], index: int | None) -> Any:
        classes = self.class_chain(node)

        if self.is_keyed_container(node, classes):
            keys, values = _container_items(node)
            return self._fill_container(keys, values, self.remember(index, {}))

        if classes:
            parse = CLASSES.get(classes[0])
            if parse is None:
                return UnresolvedStructure(node, index, classes)

            try:
                return parse(self, node, index)
            except KeyError as e:
                log.debug("Incomplete %s structure, missing %s", classes[0], e)
                return UnresolvedStructure(node, index, classes)

        if self.raw:
            result = self.remember(index, {})
            result.update((key, self.project(value)) for key, value in node.items())
            return result

        return UnresolvedStructure(node, index)

    def _fill_container(self, keys: list[Any], values: list[Any], result: dict[str, Any]) -> dict[str, Any]:
        for key_ref, value_ref in zip(keys, values):
            key = self.project(key_ref)
            if not isinstance(key, str):
                raise NonTextKey(key)

            value = self.project(value_ref)
            if key in result:
                log.debug("Duplicate key %r, keeping the last value", key)

            log.debug("%s = (%s) %r", key, type(value).__name__, value)
            result[key] = value

        return result


def _container_items(node: dict[str, Any]) -> tuple[list[Any], list[Any]]:
    keys = node[KEYS_KEY]
    values = node[VALUES_KEY]
    if len(keys) != len(values):
        raise MismatchedKeyValueLength(len(keys), len(values))
    return keys, values


def parse_nsarray(decoder: Decoder, obj: dict[str, Any], index: int | None) -> list[Any]:
    result = decoder.remember(index, [])
    result.extend(map(decoder.project, obj[VALUES_KEY]))
    return result


def parse_nsset(decoder: Decoder, obj: dict[str, Any], index: int | None) -> ArchivedSet:
    result = decoder.remember(index, ArchivedSet())
    for value in obj[VALUES_KEY]:
        result.add(decoder.project(value))
    return result


def parse_nsdata(decoder: Decoder, obj: dict[str, Any], index: int | None) -> bytes:
    return decoder.project(obj["NS.data"])


def parse_nsdate(decoder: Decoder, obj: dict[str, Any], index: int | None) -> datetime:
    return cocoatimestamp(obj["NS.time"])


def parse_nsstring(decoder: Decoder, obj: dict[str, Any], index: int | None) -> str:
    return decoder.project(obj["NS.string"])


def parse_nsuuid(decoder: Decoder, obj: dict[str, Any], index: int | None) -> str:
    return str(uuid.UUID(bytes=obj["NS.uuidbytes"]))


def parse_nsurl(decoder: Decoder, obj: dict[str, Any], index: int | None) -> str:
    base = decoder.project(obj["NS.base"])
    relative = decoder.project(obj["NS.relative"])
    if base:
        return f"{base}/{relative}"
    return relative


CLASSES: dict[str, Callable[[Decoder, dict[str, Any], int | None], Any]] = {
    "NSArray": parse_nsarray,
    "NSMutableArray": parse_nsarray,
    "NSOrderedSet": parse_nsarray,
    "NSMutableOrderedSet": parse_nsarray,
    "NSSet": parse_nsset,
    "NSMutableSet": parse_nsset,
    "NSData": parse_nsdata,
    "NSMutableData": parse_nsdata,
    "NSDate": parse_nsdate,
    "NSString": parse_nsstring,
    "NSMutableString": parse_nsstring,
    "NSUUID": parse_nsuuid,
    "NSURL": parse_nsurl,
    "NSNull": lambda decoder, obj, index: None,
}
