"""
Safenames prototypes: the classes every built instance derives from.

Overview
- PrototypeType: metaclass of every prototype class. Guards class-level writes
  and deletes against the installed descriptor flags, hides the internal "-"
  storage, and gives exported constructors native isinstance() semantics.
- Prototype: base (or grafted mixin) of every prototype class. Guards
  instance-level attribute access the same way and dispatches per-instance
  accessor properties (get/set descriptors).
- accessor(name): the cached two-mode accessor installed as "$<name>":
  called without argument it returns the property, called with one argument
  it assigns the property and returns the receiver, so setters chain.
- derive(base, name): create a new prototype class chained under `base`
  (a prototype class, or any class which then gets Prototype grafted on).

Prototype chain
- Python class inheritance plays the role of the prototype chain: declared
  methods, constants and accessors are class attributes, instance properties
  live in the instance __dict__.

Thread-safety
- No locking. Reading and writing instances is as safe as for any Python object;
  declaring on a prototype while other threads use it is the caller's business.
"""
import functools
import reprlib
from types import MethodType

from .descriptors import *
from .descriptors import STORAGE
from .faults import *
from .utils import *

ACCESSOR_PREFIX = "$"


def accessor_name(name, /):
    """Return the name of the generated accessor of a property."""
    return ACCESSOR_PREFIX + name


@functools.cache
def accessor(name, /):
    """
    Build (once per property name) the two-mode accessor function.

    The same function object is reused for every prototype declaring `name`,
    so re-declaring a property restates an identical, non-configurable accessor
    instead of redefining it.
    """

    @rename(accessor_name(name))
    def function(self, value=Unset, /):
        if value is Unset:
            return getattr(self, name)
        setattr(self, name, value)
        return self

    function.__doc__ = f"Return {name!r} when called without argument; otherwise set it and return the receiver."
    return function


def name_fault(name, /, kind="property"):
    """
    Return the fault a declaration with this name would raise, or None.

    - None/Unset         → MissingNameError
    - non-string         → InvalidNameError
    - leading "-"        → InvalidNameError (reserved for internal storage)
    """
    if name is Unset or name is None:
        return MissingNameError(f"missing {kind} name").__replace__(
            code=FaultCode.MISSING_NAME,
            title="missing name",
            hint=f"pass the {kind} name as first argument",
        )
    if not isinstance(name, str):
        return InvalidNameError(f"{kind} name must be a string, not {type(name).__name__!r}").__replace__(
            code=FaultCode.INVALID_NAME,
            title="invalid name",
            hint="attribute names are strings",
        )
    if name.startswith("-"):
        return InvalidNameError(f"{kind} name {name!r} is reserved").__replace__(
            code=FaultCode.INVALID_NAME,
            title="invalid name",
            hint="names starting with '-' are internal storage",
        )
    return None


def check_name(name, /, kind="property"):
    """Raise the fault returned by name_fault(), if any."""
    if (fault := name_fault(name, kind)) is not None:
        trigger(fault)


def _read_only(name, /):
    trigger(
        ReadOnlyPropertyError(f"cannot assign to read-only property {name!r}"),
        code=FaultCode.READ_ONLY_PROPERTY,
        title="read-only property",
        hint="the property was declared non-writable",
    )


def _locked(flags, /):
    """True when flags describe a property that refuses assignment."""
    if flags.accessor:
        return flags.set is Unset
    return not flags.writable


class PrototypeType(type):
    """
    Metaclass of prototype classes.

    Responsibilities
    - Give every prototype class its own descriptor flag table.
    - Refuse assignment to class attributes installed as non-writable
      (constants, methods, accessors) and deletion of non-configurable ones.
    - Hide "-" prefixed internal storage from attribute access.
    - Delegate isinstance() checks of exported constructors to the prototype
      they were exported from.
    """

    def __new__(cls, name, bases, namespace, **options):
        return super().__new__(cls, name, bases, namespace | {STORAGE: {}}, **options)

    def __getattribute__(cls, name, /):
        if isinstance(name, str) and name.startswith("-"):
            raise AttributeError("internal storage is not accessible")
        return super().__getattribute__(name)

    def __setattr__(cls, name, value, /):
        if isinstance(name, str) and name.startswith("-"):
            raise AttributeError("internal storage is read-only")
        if (flags := inherited_flags(cls, name)) is not None and _locked(flags):
            _read_only(name)
        super().__setattr__(name, value)

    def __delattr__(cls, name, /):
        if flags_of(cls, name) is not None:
            return delete_property(cls, name)
        super().__delattr__(name)

    def __instancecheck__(cls, instance, /):
        if (origin := cls.__dict__.get("-origin")) is not None:
            return isinstance(instance, origin)
        return super().__instancecheck__(instance)

    def __repr__(cls):
        return f"<prototype {cls.__name__!r}>"


class Prototype(metaclass=PrototypeType):
    """
    Base of every prototype class.

    Instance rules
    - own properties installed with flags refuse writes when non-writable and
      deletes when non-configurable (ReadOnlyPropertyError / RedefinitionError);
    - assigning a name that resolves to a locked class attribute (constant,
      method, accessor) raises ReadOnlyPropertyError instead of shadowing it;
    - own accessor properties (get/set descriptors) are dispatched here;
    - undeclared names behave like ordinary attributes.
    """

    def __getattribute__(self, name, /):
        if isinstance(name, str) and name.startswith("-"):
            raise AttributeError("internal storage is not accessible")
        return super().__getattribute__(name)

    def __getattr__(self, name, /):
        # Regular lookup failed: only own accessor properties may still answer.
        if (flags := flags_of(self, name)) is not None and flags.accessor:
            if flags.get is Unset:
                return None
            return flags.get(self)
        raise AttributeError(f"{type(self).__name__!r} object has no property {name!r}", name=name, obj=self)

    def __setattr__(self, name, value, /):
        if isinstance(name, str) and name.startswith("-"):
            raise AttributeError("internal storage is read-only")
        if (flags := flags_of(self, name)) is not None:
            if _locked(flags):
                _read_only(name)
            if flags.accessor:
                flags.set(self, value)
            else:
                object.__getattribute__(self, "__dict__")[name] = value
            return
        if (flags := inherited_flags(type(self), name)) is not None and _locked(flags):
            _read_only(name)
        super().__setattr__(name, value)

    def __delattr__(self, name, /):
        if flags_of(self, name) is not None:
            return delete_property(self, name)
        super().__delattr__(name)

    def __rich_repr__(self):
        for name in own_keys(self):
            yield name, getattr(self, name)

    @reprlib.recursive_repr()
    def __repr__(self):
        return "%s(%s)" % (type(self).__name__, ", ".join("%s=%r" % pair for pair in self.__rich_repr__()))


@rename("$$")
def declare(self, name=Unset, value=Unset, descriptor=Unset, /):
    """
    Declare a regular property and its accessor on this very instance.

    The property follows the regular property baseline merged with the given
    descriptor and value; the accessor is bound to the instance. Returns the
    instance, so declarations chain.
    """
    check_name(name)
    resolved = compose(REGULAR_PROPERTY, value, descriptor)
    function = ACCESSOR | Descriptor(value=MethodType(accessor(name), self))
    check_property(self, name, resolved)
    check_property(self, accessor_name(name), function)
    define_property(self, name, resolved)
    define_property(self, accessor_name(name), function)
    return self


define_property(Prototype, "$$", METHOD | Descriptor(value=declare))


@functools.cache
def _blend(metaclass, /):
    """Combine PrototypeType with a foreign metaclass (ABCMeta, ...)."""
    return type(f"{metaclass.__name__}Prototype", (PrototypeType, metaclass), {})


def derive(base=Unset, /, name=Unset, namespace=Unset):
    """
    Create a new prototype class chained under `base`.

    - Unset           → fresh class deriving from Prototype
    - prototype class → plain subclass
    - any other class → subclass with the Prototype mixin grafted on

    Raises
    - NotAPrototypeError when `base` is not a class.
    """
    base = coalesce(base, Prototype)
    if not isinstance(base, type):
        trigger(
            NotAPrototypeError(f"prototype must be a class or a builder, not {type(base).__name__!r}"),
            code=FaultCode.NOT_A_PROTOTYPE,
            title="not a prototype",
            hint="pass a class, a builder, or nothing",
        )
    bases = (base,) if issubclass(base, Prototype) else (Prototype, base)
    metaclass = type(base)
    if not issubclass(metaclass, PrototypeType):
        metaclass = PrototypeType if issubclass(PrototypeType, metaclass) else _blend(metaclass)
    return metaclass(
        coalesce(name, "Object" if base is Prototype else base.__name__),
        bases,
        {"__module__": "dynamic-factory::prototypes"} | coalesce(namespace, {}),
    )


def instantiate(cls, /):
    """Allocate an instance without running any initializer."""
    return cls.__new__(cls)


__all__ = (
    "ACCESSOR_PREFIX",
    "PrototypeType",
    "Prototype",
    "accessor",
    "accessor_name",
    "check_name",
    "name_fault",
    "declare",
    "derive",
    "instantiate",
)
