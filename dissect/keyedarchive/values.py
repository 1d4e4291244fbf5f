from __future__ import annotations

import plistlib
from typing import Any, Iterable

NULL = "$null"
UID_KEY = "CF$UID"


def is_reference(node: Any) -> bool:
    """Return whether ``node`` is an indirection into the ``$objects`` store.

    Besides :class:`plistlib.UID`, the ``{"CF$UID": n}`` dictionary form is accepted. That is how XML plists spell
    references and it survives conversions (e.g. to JSON) that ``plistlib`` did not get to see.
    """
    if isinstance(node, plistlib.UID):
        return True
    return isinstance(node, dict) and len(node) == 1 and isinstance(node.get(UID_KEY), int)


def reference_index(node: Any) -> int:
    """Return the (unsigned) object index a reference points to."""
    if isinstance(node, plistlib.UID):
        return node.data
    if is_reference(node):
        return node[UID_KEY]
    raise TypeError(f"Not a reference: {node!r}")


def same_value(a: Any, b: Any) -> bool:
    """Canonical value equality, which unlike ``==`` does not consider ``True`` and ``1`` to be the same value."""
    if a is b:
        return True
    return type(a) is type(b) and a == b


class ArchivedSet(list):
    """An unordered collection of unique canonical values.

    Decoded values are often unhashable (mappings, sequences), so this is a list that refuses duplicates
    instead of a :class:`set`. Comparing two instances ignores order.
    """

    def __init__(self, values: Iterable[Any] = ()):
        super().__init__()
        for value in values:
            self.add(value)

    def add(self, value: Any) -> None:
        if not any(same_value(value, existing) for existing in self):
            list.append(self, value)

    append = add

    def extend(self, values: Iterable[Any]) -> None:
        for value in values:
            self.add(value)

    def insert(self, index: int, value: Any) -> None:
        # Sets have no positions
        self.add(value)

    def __iadd__(self, values: Iterable[Any]) -> ArchivedSet:
        self.extend(values)
        return self

    def __setitem__(self, index: Any, value: Any) -> None:
        raise TypeError(f"{type(self).__name__} does not support item assignment")

    def __imul__(self, count: int) -> ArchivedSet:
        raise TypeError(f"{type(self).__name__} does not support repetition")

    def __contains__(self, value: Any) -> bool:
        return any(same_value(value, existing) for existing in self)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (set, frozenset)):
            other = ArchivedSet(other)
        if not isinstance(other, ArchivedSet):
            return NotImplemented
        return len(self) == len(other) and all(value in other for value in self)

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    __hash__ = None

    def __repr__(self) -> str:
        return f"ArchivedSet({list.__repr__(self)})"


class UnresolvedStructure:
    """A structure node that could not be decoded into a canonical value.

    The raw node is kept as-is (references inside it are not resolved) so that callers can inspect it further,
    for example with :meth:`dissect.keyedarchive.decoder.Decoder.decode_fields`.
    """

    def __init__(self, node: Any, index: int | None = None, classes: list[str] | None = None):
        self.node = node
        self.index = index
        self.classes = classes or []

    @property
    def classname(self) -> str | None:
        return self.classes[0] if self.classes else None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UnresolvedStructure):
            return NotImplemented
        return self.node == other.node and self.classes == other.classes

    __hash__ = None

    def __repr__(self) -> str:
        name = self.classname or type(self.node).__name__
        if self.index is None:
            return f"<UnresolvedStructure {name}>"
        return f"<UnresolvedStructure {name} @{self.index}>"
