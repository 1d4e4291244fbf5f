from __future__ import annotations

import functools
import inspect
import logging
import types
import typing
from typing import Any, Callable, NamedTuple, TypeVar

from dissect.keyedarchive.exceptions import NoDefaultConstructor, UnmatchedProperty
from dissect.keyedarchive.feature import Feature, resolve_flag

log = logging.getLogger(__name__)

T = TypeVar("T")

SETTER_PREFIX = "set"
SETTER_ATTR = "__keyedarchive_setters__"

# Decoded values of these types are never materialized into objects
CANONICAL_TYPES = (type(None), bool, int, float, str, bytes, list, dict, set, frozenset, tuple, object)


def setter_name(key: str) -> str:
    """Return the name of the setter for property ``key``.

    The first code point of the key is upper-cased and prefixed with ``set``, so ``"name"`` becomes ``"setName"``
    and ``"éclat"`` becomes ``"setÉclat"``.
    """
    return SETTER_PREFIX + key[:1].upper() + key[1:]


class Setter(NamedTuple):
    name: str
    func: Callable[[Any, Any], Any]
    accepts: tuple[type, ...]
    origin: str

    def exactly_accepts(self, value: Any) -> bool:
        return type(value) in self.accepts

    def accepts_instance(self, value: Any) -> bool:
        # Booleans and integers are distinct values, even though bool subclasses int
        if isinstance(value, bool) and bool not in self.accepts and object not in self.accepts:
            return False
        return isinstance(value, self.accepts)


def setter(*keys: str) -> Callable:
    """Mark a method as the setter of one or more archived properties.

    Unlike ``setName`` style methods, any number of methods can be registered for the same key, for example to
    accept different value types::

        class Document:
            @setter("title")
            def set_title_text(self, value: str) -> None: ...

            @setter("title")
            def set_title_bytes(self, value: bytes) -> None: ...
    """

    def decorator(func: Callable) -> Callable:
        names = getattr(func, SETTER_ATTR, ())
        setattr(func, SETTER_ATTR, (*names, *map(setter_name, keys)))
        return func

    return decorator


_registered: dict[type, list[tuple[str, Callable[[Any, Any], Any], Any]]] = {}


def register_setter(cls: type, key: str, func: Callable[[Any, Any], Any], accepts: Any = None) -> None:
    """Register ``func(target, value)`` as a setter of property ``key`` for instances of ``cls``.

    If ``accepts`` is not given, the annotation of the second parameter of ``func`` is used.
    """
    _registered.setdefault(cls, []).append((setter_name(key), func, accepts))
    registry_for.cache_clear()


class SetterRegistry:
    """All setters of a target type, grouped by setter name.

    Setters are collected from, in order of precedence:

    - methods named after the setter convention (``setName``) or decorated with :func:`setter`,
      in definition order;
    - properties with a setter;
    - annotated class attributes, such as dataclass fields;
    - functions registered with :func:`register_setter`.
    """

    def __init__(self, cls: type):
        self.cls = cls
        self.setters: dict[str, list[Setter]] = {}

        members: dict[str, Any] = {}
        for klass in reversed(cls.__mro__):
            if klass is not object:
                members.update(vars(klass))

        for attr, member in members.items():
            if isinstance(member, property):
                if member.fset is not None:
                    self.add(setter_name(attr), member.fset, _parameter_types(cls, member.fset), f"property {attr}")
                continue

            if not inspect.isfunction(member):
                continue

            names = list(getattr(member, SETTER_ATTR, ()))
            if attr.startswith(SETTER_PREFIX) and attr not in names:
                names.append(attr)

            if names and _takes_single_value(member):
                for name in names:
                    self.add(name, member, _parameter_types(cls, member), f"method {attr}")

        for attr, annotation in _field_annotations(cls).items():
            if isinstance(members.get(attr), property) or inspect.isfunction(members.get(attr)):
                continue
            self.add(setter_name(attr), _attribute_setter(attr), _accepted_types(annotation), f"attribute {attr}")

        for klass in reversed(cls.__mro__):
            for name, func, accepts in _registered.get(klass, ()):
                if accepts is None:
                    accepts = _parameter_types(cls, func)
                elif not isinstance(accepts, tuple):
                    accepts = _accepted_types(accepts)
                self.add(name, func, accepts, f"registered {getattr(func, '__qualname__', func)!r}")

    def __repr__(self) -> str:
        return f"<SetterRegistry {self.cls.__qualname__} setters={list(self.setters)}>"

    def add(self, name: str, func: Callable[[Any, Any], Any], accepts: tuple[type, ...], origin: str) -> None:
        self.setters.setdefault(name, []).append(Setter(name, func, accepts, origin))

    def candidates(self, name: str) -> list[Setter]:
        return self.setters.get(name, [])


@functools.cache
def registry_for(cls: type) -> SetterRegistry:
    return SetterRegistry(cls)


def is_materializable(tp: Any) -> bool:
    """Return whether nested mappings can be materialized into instances of ``tp``."""
    if not isinstance(tp, type) or tp in CANONICAL_TYPES or tp.__module__ == "builtins":
        return False
    return bool(registry_for(tp).setters)


def materialize(mapping: dict[str, Any], target: T, *, nested: bool | None = None) -> T:
    """Assign every entry of ``mapping`` to ``target`` through its setters, in mapping order.

    For every key, the setter is chosen as follows:

    1. a setter that accepts exactly the type of the value;
    2. the first setter whose parameter type the value is an instance of;
    3. if the value is a mapping, the first setter whose parameter type can itself be materialized. A new instance
       of that type is created from the mapping with :func:`materialize_new`.

    If no setter applies, :class:`UnmatchedProperty` is raised. Properties that were assigned before the failing
    key keep their new values.

    Args:
        mapping: Decoded mapping, e.g. from :meth:`dissect.keyedarchive.KeyedArchive.as_dict`.
        target: The object to populate.
        nested: Whether to materialize nested mappings (step 3). Disabled by the ``flat`` feature by default.
    """
    nested = not resolve_flag(None, Feature.FLAT) if nested is None else nested
    return _materialize(mapping, target, nested, {})


def materialize_new(mapping: dict[str, Any], cls: type[T], *, nested: bool | None = None) -> T:
    """Create an instance of ``cls`` without arguments and :func:`materialize` ``mapping`` into it."""
    return materialize(mapping, instantiate(cls), nested=nested)


def instantiate(cls: type[T]) -> T:
    if not isinstance(cls, type) or inspect.isabstract(cls):
        raise NoDefaultConstructor(cls)

    try:
        signature = inspect.signature(cls)
    except (TypeError, ValueError):
        signature = None

    if signature is not None:
        for param in signature.parameters.values():
            if param.default is param.empty and param.kind not in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                raise NoDefaultConstructor(cls)

    return cls()


def _materialize(mapping: dict[str, Any], target: T, nested: bool, seen: dict[int, Any]) -> T:
    # Mappings being materialized, by id, so that cyclic mappings produce cyclic objects
    seen[id(mapping)] = target
    registry = registry_for(type(target))

    for key, value in mapping.items():
        _assign(registry, target, key, value, nested, seen)

    return target


def _assign(registry: SetterRegistry, target: Any, key: str, value: Any, nested: bool, seen: dict[int, Any]) -> None:
    candidates = registry.candidates(setter_name(key))

    for match in (Setter.exactly_accepts, Setter.accepts_instance):
        for candidate in candidates:
            if match(candidate, value):
                log.debug("Setting %r on %s with %s", key, registry.cls.__qualname__, candidate.origin)
                candidate.func(target, value)
                return

    if nested and isinstance(value, dict):
        for candidate in candidates:
            for tp in candidate.accepts:
                if not is_materializable(tp):
                    continue

                obj = seen.get(id(value))
                if isinstance(obj, tp):
                    log.debug("Setting %r on %s with %s (existing %s)", key, registry.cls.__qualname__, candidate.origin, tp)
                    candidate.func(target, obj)
                    return

                try:
                    obj = _materialize(value, instantiate(tp), nested, seen)
                except (NoDefaultConstructor, UnmatchedProperty) as e:
                    log.debug("Can not materialize %r as %s: %s", key, tp.__qualname__, e)
                    seen.pop(id(value), None)
                    continue

                log.debug("Setting %r on %s with %s (new %s)", key, registry.cls.__qualname__, candidate.origin, tp)
                candidate.func(target, obj)
                return

    raise UnmatchedProperty(key)


def _takes_single_value(func: Callable) -> bool:
    params = [
        param
        for param in inspect.signature(func).parameters.values()
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD)
    ]
    # The first parameter is self
    return len(params) >= 2 and all(param.default is not param.empty for param in params[2:])


def _parameter_types(cls: type, func: Callable) -> tuple[type, ...]:
    """Return the types accepted by the value parameter of ``func(target, value)``."""
    params = list(inspect.signature(func).parameters.values())
    if len(params) < 2:
        raise TypeError(f"Setter {func!r} does not take a value")

    try:
        hints = typing.get_type_hints(func, localns={cls.__name__: cls})
    except (NameError, TypeError) as e:
        log.debug("Ignoring parameter annotations of %s: %s", getattr(func, "__qualname__", func), e)
        return (object,)

    return _accepted_types(hints.get(params[1].name, Any))


def _field_annotations(cls: type) -> dict[str, Any]:
    try:
        hints = typing.get_type_hints(cls)
    except (NameError, TypeError) as e:
        log.debug("Ignoring attribute annotations of %s: %s", cls.__qualname__, e)
        return {}
    return {
        attr: annotation
        for attr, annotation in hints.items()
        if not attr.startswith("_") and typing.get_origin(annotation) is not typing.ClassVar
    }


def _accepted_types(annotation: Any) -> tuple[type, ...]:
    if annotation is Any or annotation is inspect.Parameter.empty:
        return (object,)

    if annotation is None:
        return (type(None),)

    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        result = ()
        for arg in typing.get_args(annotation):
            result += _accepted_types(arg)
        return result

    if isinstance(origin, type):
        return (origin,)

    if isinstance(annotation, type):
        return (annotation,)

    # Literals, TypeVars and other special forms are not checked
    return (object,)


def _attribute_setter(attr: str) -> Callable[[Any, Any], None]:
    def set_attribute(target: Any, value: Any) -> None:
        setattr(target, attr, value)

    set_attribute.__qualname__ = f"set_attribute[{attr}]"
    return set_attribute
