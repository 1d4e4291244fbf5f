from __future__ import annotations

from plistlib import UID

import pytest

from dissect.keyedarchive.values import ArchivedSet, UnresolvedStructure, is_reference, reference_index, same_value


def test_reference() -> None:
    assert is_reference(UID(3))
    assert is_reference({"CF$UID": 3})
    assert not is_reference({"CF$UID": 3, "other": 1})
    assert not is_reference({"CF$UID": "3"})
    assert not is_reference(3)

    assert reference_index(UID(2**40)) == 2**40
    assert reference_index({"CF$UID": 200}) == 200

    with pytest.raises(TypeError):
        reference_index("3")


def test_same_value() -> None:
    assert same_value(1, 1)
    assert same_value("a", "a")
    assert not same_value(1, True)
    assert not same_value(1, 1.0)

    value = {"a": 1}
    assert same_value(value, value)
    assert same_value(value, {"a": 1})


def test_archived_set() -> None:
    value = ArchivedSet([1, True, 1, {"a": 1}, {"a": 1}, [1]])

    assert len(value) == 4
    assert True in value
    assert {"a": 1} in value
    assert 1.0 not in value

    value.add([1])
    value.append(2)
    assert len(value) == 5

    assert value == ArchivedSet([2, [1], {"a": 1}, True, 1])
    assert value != ArchivedSet([2, [1], {"a": 1}, True])
    assert ArchivedSet([1, 2]) == {2, 1}

    with pytest.raises(TypeError):
        hash(value)


def test_archived_set_mutators() -> None:
    value = ArchivedSet([1, "a"])

    value.extend([1, 2, "a"])
    assert value == ArchivedSet([1, 2, "a"])
    assert len(value) == 3

    value.insert(0, 2)
    value.insert(0, 3)
    assert len(value) == 4

    alias = value
    value += [3, 4, True]
    assert value is alias
    assert value == ArchivedSet([1, 2, 3, 4, "a", True])

    with pytest.raises(TypeError):
        value[0] = 2

    with pytest.raises(TypeError):
        value[0:1] = [2]

    with pytest.raises(TypeError):
        value *= 2

    assert len(value) == 6


def test_unresolved_structure() -> None:
    node = {"$class": UID(2), "field": UID(3)}
    value = UnresolvedStructure(node, 1, ["Custom", "NSObject"])

    assert value.classname == "Custom"
    assert repr(value) == "<UnresolvedStructure Custom @1>"
    assert value == UnresolvedStructure(node, None, ["Custom", "NSObject"])
    assert value != UnresolvedStructure(node)

    assert UnresolvedStructure(object()).classname is None
    assert repr(UnresolvedStructure({})) == "<UnresolvedStructure dict>"
