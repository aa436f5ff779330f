"""
Safenames value classification.

A default value handed to Builder.property() is inspected exactly once and
resolved into one tagged variant:

- Method(function)      callables (functions, classes, bound methods, ...)
- Nested(source, origin)
                        mappings, SimpleNamespace objects and other instances
                        carrying a __dict__; `source` maps the own keys to
                        decompose into a child builder, `origin` is the class
                        the child prototype is rooted at (Unset for plain data)
- Sequence(kind, items) lists and tuples; `kind` is the container type used
                        when materializing, `items` the elements in order
- Scalar(value)         everything else (None, numbers, strings, bytes, sets,
                        enum members, modules, slotted objects, ...); builders
                        hand every instance its own deep copy of it, modules
                        excepted

Builders store object-valued properties as these variants too: a sequence
default becomes a Sequence whose items are child builders, nested Sequences and
Scalar wrappers, so materialization never inspects raw values again.
"""
from collections.abc import Mapping
from enum import Enum
from types import ModuleType, SimpleNamespace
from typing import final

from .descriptors import own_keys
from .utils import Unset


class Resolution:
    """Base of the classification variants."""
    __slots__ = ()
    __match_args__ = ()

    def __eq__(self, other, /):
        if type(other) is not type(self):
            return NotImplemented
        return all(getattr(self, name) == getattr(other, name) for name in self.__match_args__)

    __hash__ = None

    def __rich_repr__(self):
        for name in self.__match_args__:
            yield name, getattr(self, name)

    def __repr__(self):
        return "%s(%s)" % (
            type(self).__name__.lower(),
            ", ".join("%s=%r" % pair for pair in self.__rich_repr__())
        )


@final
class Scalar(Resolution):
    __slots__ = ("value",)
    __match_args__ = ("value",)

    def __init__(self, value, /):
        self.value = value


@final
class Method(Resolution):
    __slots__ = ("function",)
    __match_args__ = ("function",)

    def __init__(self, function, /):
        self.function = function


@final
class Nested(Resolution):
    __slots__ = ("source", "origin")
    __match_args__ = ("source", "origin")

    def __init__(self, source, origin=Unset, /):
        self.source = source
        self.origin = origin


@final
class Sequence(Resolution):
    __slots__ = ("kind", "items")
    __match_args__ = ("kind", "items")

    def __init__(self, kind, items, /):
        self.kind = kind
        self.items = tuple(items)

    def __iter__(self):
        return iter(self.items)

    def __len__(self):
        return len(self.items)


def classify(value, /):
    """
    Resolve a default value into its classification variant.

    Order matters: callables win over everything (a callable mapping is a
    method), then mappings/namespaces, then lists/tuples, then any other
    instance with a __dict__, decomposed over its own keys and rooted at its
    class so the copies keep its methods and isinstance() relations.
    """
    if callable(value):
        return Method(value)
    if isinstance(value, Mapping):
        return Nested(value)
    if isinstance(value, SimpleNamespace):
        return Nested(vars(value))
    if isinstance(value, list | tuple):
        return Sequence(tuple if isinstance(value, tuple) else list, value)
    if value is Unset or isinstance(value, Enum | ModuleType):
        return Scalar(value)
    if hasattr(value, "__dict__"):
        return Nested({key: getattr(value, key) for key in own_keys(value)}, type(value))
    return Scalar(value)


__all__ = (
    "Resolution",
    "Scalar",
    "Method",
    "Nested",
    "Sequence",
    "classify",
)
