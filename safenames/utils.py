"""
Safenames helpers shared by the descriptor, prototype and builder layers.

- Unset: the "argument not given" marker. Builders accept None as an ordinary
  property value, so absence needs its own falsy singleton.
- coalesce(value, default): materialize Unset into a default.
- rename(): give generated callables (accessors, "$$") a readable name.
- mirror(): expose a builder's private map as a read-only view.
"""
import builtins
import functools
from collections.abc import Sequence, Mapping, Set
from types import MappingProxyType
from typing import final


@final
class UnsetType:
    """
    Type of the Unset marker.

    Every call returns the same instance, copies and pickles included. The
    marker is falsy, prints as "Unset" and may appear in PEP 604 unions
    (`str | Unset`) for isinstance() checks.
    """

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __or__(self, other, /):
        try:
            return type(self) | other
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


Unset = UnsetType()


def coalesce(object, default=None, /):
    """
    Return `default` when `object` is Unset, `object` otherwise.

    None, 0, "" and other falsy values count as given:
    coalesce(None, "Object") is None, coalesce(Unset, "Object") is "Object".
    """
    return default if object is Unset else object


def rename(*parameters):
    """
    rename(function, name) sets __name__ and __qualname__ and returns the function;
    rename(name) returns a decorator doing the same.
    """
    if len(parameters) == 1:
        name, = parameters
        if not isinstance(name, str):
            raise TypeError("@rename() argument must be a string")
        return functools.partial(_rename, name=name)

    if len(parameters) != 2:
        raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))

    callable, name = parameters
    return _rename(callable, name)


def _rename(callable, name):
    if not builtins.callable(callable):
        raise TypeError("rename() first argument must be callable")
    if not isinstance(name, str):
        raise TypeError("rename() second argument must be a string")
    try:
        callable.__name__ = callable.__qualname__ = name
    except (AttributeError, TypeError):
        raise TypeError(f"cannot rename {type(callable).__name__!r} objects") from None
    return callable


def mirror(name, /):
    """
    Read-only property over the private attribute "_<name>".

    Containers are handed out as views the caller cannot mutate: mappings as a
    live MappingProxyType, other sequences as tuples and sets as frozensets.
    Strings and anything else are returned unchanged.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")
    field = "_" + name

    def getter(self):
        match getattr(self, field):
            case Mapping() as value:
                return MappingProxyType(value)
            case str() as value:
                return value
            case Sequence() as value:
                return tuple(value)
            case Set() as value:
                return frozenset(value)
            case value:
                return value

    getter.__name__ = getter.__qualname__ = name
    return property(getter)


__all__ = (
    "coalesce",
    "rename",
    "mirror",
    "UnsetType",
    "Unset",
)
