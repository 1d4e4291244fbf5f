from __future__ import annotations

import argparse
import logging
import plistlib
from typing import Any
from xml.parsers.expat import ExpatError

from dissect.keyedarchive.archive import KeyedArchive
from dissect.keyedarchive.exceptions import Error
from dissect.keyedarchive.values import UnresolvedStructure


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("file", type=argparse.FileType("rb"), help="NSKeyedArchiver plist file to dump")
    parser.add_argument("-n", "--name", default="root", help="$top entry to dump")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="increase logging verbosity")
    args = parser.parse_args()

    logging.basicConfig(level=max(logging.WARNING - args.verbose * 10, logging.DEBUG))

    with args.file as fh:
        try:
            archive = KeyedArchive.load(fh)
            obj = archive.decode(args.name)
        except (Error, plistlib.InvalidFileException, ExpatError) as e:
            parser.exit(1, f"{e}\n")

        print(archive)
        print_object(obj)


def print_object(obj: Any, indent: int = 0, seen: set[int] | None = None) -> None:
    if seen is None:
        seen = set()

    if isinstance(obj, (dict, list)):
        if id(obj) in seen:
            print(fmt(f"Recursive -> <{type(obj).__name__} at {id(obj):#x}>", indent))
            return
        seen.add(id(obj))

    if isinstance(obj, list):
        for i, v in enumerate(obj):
            print(fmt(f"[{i}]:", indent))
            print_object(v, indent + 1, seen)

    elif isinstance(obj, dict):
        for k in sorted(obj.keys()):
            print(fmt(f"{k}:", indent))
            print_object(obj[k], indent + 1, seen)

    elif isinstance(obj, UnresolvedStructure):
        print(fmt(obj, indent))
        if isinstance(obj.node, dict):
            for k in sorted(obj.node.keys()):
                print(fmt(f"{k}: {obj.node[k]!r}", indent + 1))

    else:
        print(fmt(repr(obj) if isinstance(obj, (str, bytes)) else obj, indent))


def fmt(obj: Any, indent: int) -> str:
    return f"{' ' * (indent * 4)}{obj}"


if __name__ == "__main__":
    main()
