from __future__ import annotations

from typing import Any


class Error(Exception):
    pass


class NotAKeyedArchive(Error, ValueError):
    pass


class OutOfRangeReference(Error, IndexError):
    def __init__(self, index: int, size: int):
        super().__init__(f"Reference to object {index} is out of range, archive has {size} objects")
        self.index = index
        self.size = size


class MismatchedKeyValueLength(Error, ValueError):
    def __init__(self, keys: int, values: int):
        super().__init__(f"Keyed container has {keys} keys but {values} values")
        self.keys = keys
        self.values = values


class NonTextKey(Error, TypeError):
    def __init__(self, key: Any):
        super().__init__(f"Keyed container key is not text: {key!r}")
        self.key = key


class NotAKeyedContainer(Error, TypeError):
    pass


class MissingRoot(Error, KeyError):
    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Archive has no usable $top entry {self.name!r}"


class NoDefaultConstructor(Error, TypeError):
    def __init__(self, cls: type):
        super().__init__(f"{getattr(cls, '__qualname__', cls)!s} can not be instantiated without arguments")
        self.cls = cls


class UnmatchedProperty(Error, AttributeError):
    def __init__(self, key: str):
        super().__init__(f"No setter accepts the value for property {key!r}")
        self.key = key


class TypeCoercionFailure(Error, TypeError):
    def __init__(self, value: Any):
        super().__init__(f"Unsupported numeric value: {value!r} ({type(value).__name__})")
        self.value = value


class DepthLimitExceeded(Error, RecursionError):
    def __init__(self, limit: int):
        super().__init__(f"Archive nesting exceeds the maximum depth of {limit}")
        self.limit = limit
