from __future__ import annotations

import logging
import plistlib
from typing import Any, BinaryIO, TypeVar

from dissect.keyedarchive.decoder import CLASS_KEY, DEFAULT_MAX_DEPTH, Decoder
from dissect.keyedarchive.exceptions import (
    MissingRoot,
    NotAKeyedArchive,
    NotAKeyedContainer,
    OutOfRangeReference,
)
from dissect.keyedarchive.materialize import materialize, materialize_new
from dissect.keyedarchive.values import UnresolvedStructure, is_reference

log = logging.getLogger(__name__)

T = TypeVar("T")

ARCHIVE_KEYS = ("$version", "$archiver", "$top", "$objects")


class KeyedArchive:
    """An ``NSKeyedArchiver`` archive.

    The archive is a property list with a flat ``$objects`` array, in which objects refer to each other by index.
    ``$top`` names the entry points into that array, usually just ``root``.

    Usage::

        with open("archive.plist", "rb") as fh:
            archive = KeyedArchive.load(fh)

        fields = archive.as_dict()
        person = archive.as_type(Person)

    Every decode call starts with its own decoder, so an archive can be decoded any number of times.

    Args:
        plist: The parsed property list.
        strict: See :class:`~dissect.keyedarchive.decoder.Decoder`.
        raw: See :class:`~dissect.keyedarchive.decoder.Decoder`.
        max_depth: See :class:`~dissect.keyedarchive.decoder.Decoder`.
    """

    def __init__(
        self,
        plist: dict[str, Any],
        *,
        strict: bool | None = None,
        raw: bool | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        if not isinstance(plist, dict) or not all(key in plist for key in ARCHIVE_KEYS):
            raise NotAKeyedArchive("File is not an NSKeyedArchiver plist")

        if not isinstance(plist["$top"], dict) or not isinstance(plist["$objects"], list):
            raise NotAKeyedArchive("Invalid $top or $objects in NSKeyedArchiver plist")

        self.plist = plist
        self.archiver = plist["$archiver"]
        self.version = plist["$version"]
        self.top: dict[str, Any] = plist["$top"]
        self.objects: list[Any] = plist["$objects"]

        self.strict = strict
        self.raw = raw
        self.max_depth = max_depth

    @classmethod
    def load(cls, fh: BinaryIO, **kwargs) -> KeyedArchive:
        return cls(plistlib.load(fh), **kwargs)

    @classmethod
    def loads(cls, data: bytes, **kwargs) -> KeyedArchive:
        return cls(plistlib.loads(data), **kwargs)

    def __repr__(self) -> str:
        return f"<KeyedArchive archiver={self.archiver!r} version={self.version!r} top={list(self.top)}>"

    def __getitem__(self, name: str) -> Any:
        return self.decode(name)

    @property
    def root(self) -> Any:
        return self.decode("root")

    def decoder(self) -> Decoder:
        return Decoder(self.objects, strict=self.strict, raw=self.raw, max_depth=self.max_depth)

    def decode(self, name: str = "root") -> Any:
        """Decode the ``$top`` entry ``name`` into a canonical value."""
        decoder = self.decoder()
        return self._decode_top(decoder, name)

    def as_dict(self, name: str = "root") -> dict[str, Any]:
        """Decode the ``$top`` entry ``name`` into a mapping.

        Keyed containers (``NSDictionary``) decode to their entries. Other archived objects decode to their
        encoded fields.
        """
        decoder = self.decoder()
        value = self._decode_top(decoder, name)

        if isinstance(value, dict):
            return value

        if isinstance(value, UnresolvedStructure) and isinstance(value.node, dict) and CLASS_KEY in value.node:
            log.debug("Decoding the fields of %s", value.classname)
            return decoder.decode_fields(value)

        raise NotAKeyedContainer(f"$top entry {name!r} does not decode to a mapping: {value!r}")

    def into(self, target: T, name: str = "root", *, nested: bool | None = None) -> T:
        """Populate ``target`` with the fields of the ``$top`` entry ``name``."""
        return materialize(self.as_dict(name), target, nested=nested)

    def as_type(self, cls: type[T], name: str = "root", *, nested: bool | None = None) -> T:
        """Create a new instance of ``cls`` from the fields of the ``$top`` entry ``name``."""
        return materialize_new(self.as_dict(name), cls, nested=nested)

    def _decode_top(self, decoder: Decoder, name: str) -> Any:
        ref = self.top.get(name)
        if ref is None or not is_reference(ref):
            raise MissingRoot(name)

        try:
            decoder.resolve(ref)
        except OutOfRangeReference as e:
            raise MissingRoot(name) from e

        return decoder.project(ref)
