"""
Safenames property descriptors.

Overview
- Descriptor: an immutable, partial property descriptor. Every attribute
  (configurable, enumerable, writable, value, get, set) may be Unset, meaning
  "not specified by this source".
- merge(*descriptors) / a | b: fold descriptors left to right; for each
  attribute the last source that sets it wins, sources that omit it do not
  affect it.
- merge_maps(*maps): the same fold applied name by name over descriptor maps.
- compose(baseline, value, override): the precedence rule used by every
  property declaration (baseline, then override, then the explicit default).
- define_property(target, name, descriptor): install a property on a prototype
  class or on an instance, honouring configurable/writable locks.
- own_descriptor(target, name) / own_keys(target): read the installed state back.

Baselines
- REGULAR_PROPERTY: configurable=False, enumerable=True,  writable=True
- ACCESSOR:         configurable=False, enumerable=False, writable=False
- METHOD:           configurable=True,  enumerable=False, writable=False
- CONSTANT:         configurable=False, enumerable=False, writable=False

Storage
- Values live where Python keeps attributes (class namespace or instance
  __dict__). The attribute flags live next to them under the non-identifier key
  "-descriptors", which normal attribute access cannot reach.
"""
import functools
import operator
from collections.abc import Mapping

from .faults import *
from .utils import *

FIELDS = ("configurable", "enumerable", "writable", "value", "get", "set")

STORAGE = "-descriptors"


class Descriptor:
    """
    Immutable partial property descriptor.

    Construction accepts any subset of FIELDS as keywords; omitted attributes
    stay Unset. Descriptors are merged with `|` (right side wins for the
    attributes it sets) and copied with changes through __replace__.

    A descriptor carrying get/set is an accessor descriptor; it cannot carry a
    value nor a writable flag once installed.
    """
    __slots__ = FIELDS

    def __init__(
            self,
            configurable=Unset,
            enumerable=Unset,
            writable=Unset,
            value=Unset,
            get=Unset,
            set=Unset,
    ):
        for field, attribute in zip(FIELDS, (configurable, enumerable, writable, value, get, set)):
            object.__setattr__(self, field, attribute)

    def __setattr__(self, name, value, /):
        raise AttributeError("descriptor is immutable")

    def __delattr__(self, name, /):
        raise AttributeError("descriptor is immutable")

    def __reduce__(self):
        return type(self), tuple(getattr(self, field) for field in FIELDS)

    @classmethod
    def coerce(cls, source, /):
        """
        Normalize a caller supplied partial descriptor.

        Accepts Unset/None (empty descriptor), a Descriptor (returned as-is) or
        a Mapping whose keys are a subset of FIELDS.
        """
        if source is Unset or source is None:
            return EMPTY
        if isinstance(source, Descriptor):
            return source
        if not isinstance(source, Mapping):
            trigger(
                InvalidDescriptorError(f"property descriptor must be a mapping, not {type(source).__name__!r}"),
                code=FaultCode.INVALID_DESCRIPTOR,
                title="invalid descriptor",
                hint="pass a dict such as {'writable': False}",
            )
        if unknown := [key for key in source if key not in FIELDS]:
            trigger(
                InvalidDescriptorError(f"unknown descriptor attribute(s): {', '.join(map(repr, unknown))}"),
                code=FaultCode.INVALID_DESCRIPTOR,
                title="invalid descriptor",
                hint=f"valid attributes are {', '.join(FIELDS)}",
            )
        return cls(**source)

    @property
    def accessor(self):
        """True when get or set is specified."""
        return self.get is not Unset or self.set is not Unset

    def items(self):
        """Yield (attribute, value) for every specified attribute."""
        for field in FIELDS:
            if (value := getattr(self, field)) is not Unset:
                yield field, value

    def __or__(self, other, /):
        if not isinstance(other, Descriptor | Mapping):
            return NotImplemented
        return self.__replace__(**dict(Descriptor.coerce(other).items()))

    def __ror__(self, other, /):
        if not isinstance(other, Mapping):
            return NotImplemented
        return Descriptor.coerce(other) | self

    def __replace__(self, /, **changes):
        return type(self)(**{field: getattr(self, field) for field in FIELDS} | changes)

    def __eq__(self, other, /):
        if not isinstance(other, Descriptor):
            return NotImplemented
        return all(_same(getattr(self, field), getattr(other, field)) for field in FIELDS)

    __hash__ = None

    def __rich_repr__(self):
        yield from self.items()

    def __repr__(self):
        return "descriptor(%s)" % ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.items()))


EMPTY = Descriptor()

REGULAR_PROPERTY = Descriptor(configurable=False, enumerable=True, writable=True)
ACCESSOR = Descriptor(configurable=False, enumerable=False, writable=False)
METHOD = Descriptor(configurable=True, enumerable=False, writable=False)
CONSTANT = Descriptor(configurable=False, enumerable=False, writable=False)

# Attributes assumed for a property that the descriptor does not mention on first definition.
_INITIAL = Descriptor(configurable=False, enumerable=False, writable=False)


def _same(left, right, /):
    if left is right:
        return True
    try:
        return bool(left == right)
    except Exception:  # NOQA: objects with exotic __eq__ (arrays, ...) are simply "different"
        return False


def merge(*descriptors):
    """
    Fold partial descriptors left to right into one Descriptor.

    Unset/None entries are skipped; mappings are coerced.
    """
    return functools.reduce(operator.or_, map(Descriptor.coerce, descriptors), EMPTY)


def merge_maps(*maps):
    """
    Merge name -> descriptor maps attribute by attribute.

    The result is a fresh dict; the given maps are never aliased. Names keep the
    order of their first appearance.
    """
    result = {}
    for map in maps:
        for name, descriptor in map.items():
            result[name] = result.get(name, EMPTY) | descriptor
    return result


def compose(baseline, value=Unset, override=Unset, /):
    """
    Compose the final descriptor of a declared property.

    Precedence
    - no value, no override → baseline alone (no value attribute: useful for
      accessor-only pairs)
    - override only         → baseline | override (override's own value kept)
    - value only            → baseline | {value}
    - both                  → baseline | override | {value}

    The explicit default always wins over an override's literal `value`. That
    is easy to misread, so a ShadowedValueWarning is emitted when it happens.

    Raises
    - InvalidDescriptorError for malformed overrides (see validate()).
    """
    override = Descriptor.coerce(override)
    if value is Unset and override is EMPTY:
        descriptor = merge(baseline)
    elif override is EMPTY:
        descriptor = merge(baseline, Descriptor(value=value))
    elif value is Unset:
        descriptor = merge(baseline, override)
    else:
        if override.value is not Unset:
            trigger(
                ShadowedValueWarning(f"descriptor value {override.value!r} is shadowed by default {value!r}"),
                code=FaultCode.SHADOWED_VALUE,
                title="shadowed value",
                hint="omit the default to use the descriptor's value",
            )
        descriptor = merge(baseline, override, Descriptor(value=value))
    return validate(descriptor, override)


def validate(descriptor, explicit=EMPTY, /):
    """
    Check a composed descriptor before it is stored or installed.

    - accessor descriptors cannot carry a value, nor an explicit writable flag
      (a writable flag coming from a baseline is dropped instead);
    - get/set must be callable.
    """
    if not descriptor.accessor:
        return descriptor
    if descriptor.value is not Unset or explicit.writable is not Unset:
        trigger(
            InvalidDescriptorError("accessor descriptor cannot specify a value or writable attribute"),
            code=FaultCode.INVALID_DESCRIPTOR,
            title="invalid descriptor",
            hint="use either get/set or value/writable",
        )
    for field in ("get", "set"):
        if (function := getattr(descriptor, field)) is not Unset and not callable(function):
            trigger(
                InvalidDescriptorError(f"descriptor {field!r} must be callable"),
                code=FaultCode.INVALID_DESCRIPTOR,
                title="invalid descriptor",
                hint=f"pass a function taking the instance as {field} attribute",
            )
    return descriptor.__replace__(writable=Unset)


def _storage(target, /):
    """Return the namespace holding the target's own attributes."""
    if isinstance(target, type):
        return target.__dict__
    return object.__getattribute__(target, "__dict__")


def _flags(target, /):
    """Return the target's own flag table, creating it when missing."""
    if (flags := _storage(target).get(STORAGE)) is None:
        flags = {}
        if isinstance(target, type):
            type.__setattr__(target, STORAGE, flags)
        else:
            _storage(target)[STORAGE] = flags
    return flags


def flags_of(target, name, /):
    """Return the flags installed by define_property for an own name, or None."""
    return _storage(target).get(STORAGE, {}).get(name)


def inherited_flags(cls, name, /):
    """
    Return the flags of `name` as resolved along the class' MRO, or None when the
    nearest definition was not installed through define_property.
    """
    for klass in cls.__mro__:
        if name in klass.__dict__ or name in klass.__dict__.get(STORAGE, {}):
            return klass.__dict__.get(STORAGE, {}).get(name)
    return None


def own_descriptor(target, name, /):
    """
    Return the complete descriptor of an own property (value included), or
    Unset when the target has no such own property.

    Plain attributes not installed through define_property are reported as
    configurable, enumerable and writable data properties.
    """
    storage = _storage(target)
    if (flags := flags_of(target, name)) is None:
        if name == STORAGE or name not in storage:
            return Unset
        return Descriptor(configurable=True, enumerable=True, writable=True, value=storage[name])
    if flags.accessor:
        return flags
    return flags.__replace__(value=storage.get(name))


def own_keys(target, /):
    """
    Return the enumerable own property names of a prototype class or instance.

    Instances report their data properties in definition order followed by
    accessor properties. Classes skip dunder attributes unless they were
    installed through define_property.
    """
    storage = _storage(target)
    flags = storage.get(STORAGE, {})
    names = [name for name in storage if name != STORAGE]
    names += [name for name in flags if name not in storage]
    keys = []
    for name in names:
        if name in flags:
            if flags[name].enumerable:
                keys.append(name)
        elif not (isinstance(target, type) and name.startswith("__") and name.endswith("__")):
            keys.append(name)
    return keys


def _redefinable(current, descriptor, /):
    """
    Decide whether a non-configurable property accepts the given descriptor.

    Allowed: restating identical attributes, or changing the value / dropping
    writable of a property that is still writable.
    """
    changed = {field for field, value in descriptor.items() if not _same(getattr(current, field), value)}
    if not changed:
        return True
    if current.accessor or not current.writable:
        return False
    return changed <= {"value", "writable"} and descriptor.writable in (Unset, False)


def check_property(target, name, descriptor, /):
    """
    Resolve what define_property would install, without touching the target.

    Returns the resolved, complete descriptor. Raises the same faults
    define_property raises, so callers can validate several installations
    before performing any of them.
    """
    descriptor = validate(Descriptor.coerce(descriptor), Descriptor.coerce(descriptor))
    if (current := own_descriptor(target, name)) is Unset:
        resolved = _INITIAL | descriptor
    else:
        if current.configurable is False and not _redefinable(current, descriptor):
            trigger(
                RedefinitionError(f"cannot redefine property {name!r}"),
                code=FaultCode.REDEFINITION,
                title="redefinition",
                hint="the property is not configurable",
            )
        if descriptor.accessor and not current.accessor:
            current = current.__replace__(value=Unset, writable=Unset)
        elif not descriptor.accessor and (descriptor.value is not Unset or descriptor.writable is not Unset):
            current = current.__replace__(get=Unset, set=Unset)
        resolved = current | descriptor
    if resolved.accessor:
        return resolved.__replace__(value=Unset, writable=Unset)
    return resolved.__replace__(value=None) if resolved.value is Unset else resolved


def define_property(target, name, descriptor, /):
    """
    Install a property on a prototype class or an instance.

    Semantics
    - a new property takes False for every flag the descriptor omits and None
      as value when neither value nor get/set is given;
    - redefining keeps the existing attributes the descriptor omits;
    - redefining a non-configurable property with differing attributes raises
      RedefinitionError (only value changes of writable properties pass).

    On classes, accessor descriptors become builtin `property` objects; on
    instances the get/set pair is kept in the flag table and dispatched by the
    prototype's attribute hooks.
    """
    resolved = check_property(target, name, descriptor)
    flags = _flags(target)
    if isinstance(target, type):
        if resolved.accessor:
            getter, setter = coalesce(resolved.get), coalesce(resolved.set)
            type.__setattr__(target, name, property(getter, setter))
        else:
            type.__setattr__(target, name, resolved.value)
    elif resolved.accessor:
        _storage(target).pop(name, None)
    else:
        _storage(target)[name] = resolved.value
    flags[name] = resolved.__replace__(value=Unset)
    return target


def define_properties(target, descriptors, /):
    """Install every name -> descriptor entry on the target, in order."""
    for name, descriptor in descriptors.items():
        define_property(target, name, descriptor)
    return target


def delete_property(target, name, /):
    """
    Remove an own property, refusing non-configurable ones.
    """
    if (flags := flags_of(target, name)) is not None and not flags.configurable:
        trigger(
            RedefinitionError(f"cannot delete property {name!r}"),
            code=FaultCode.REDEFINITION,
            title="redefinition",
            hint="the property is not configurable",
        )
    if isinstance(target, type):
        if name in target.__dict__:
            type.__delattr__(target, name)
    else:
        _storage(target).pop(name, None)
    _storage(target).get(STORAGE, {}).pop(name, None)


__all__ = (
    # Types
    "Descriptor",

    # Baselines
    "EMPTY",
    "REGULAR_PROPERTY",
    "ACCESSOR",
    "METHOD",
    "CONSTANT",

    # Functions
    "merge",
    "merge_maps",
    "compose",
    "validate",
    "check_property",
    "define_property",
    "define_properties",
    "delete_property",
    "own_descriptor",
    "own_keys",
    "flags_of",
    "inherited_flags",
)
