r"""
Safenames builders: declare properties, methods and constants, then stamp out instances.

Overview
- Builder: a mutable accumulator of declarations.
  • scalars: name → Descriptor of non-object-valued properties.
  • objects: name → Descriptor whose value is a child Builder or a Sequence of
    child builders / nested sequences / Scalar wrappers.
  • proto: the prototype class shared by every instance.
  • parent: the enclosing builder when created by nested(), used by done().
- builder(prototype=Unset): factory entry point.

Declaring
- property(name, default, descriptor): classifies the default once
  (Method / Nested / Sequence / Scalar) and installs the "$<name>" accessor.
  Mapping defaults and plain objects are decomposed into child builders, so
  every instance gets its own deep copy with its own accessor layer. Other
  defaults are deep-copied on every create().
- raw_property(name, default, descriptor): same, but the default is stored
  as-is and shared by every instance. Values copy.deepcopy() rejects (locks,
  sockets, ...) have to be declared this way.
- method / constant / prototype_property: class-level declarations.
- nested(name, prototype, descriptor): returns a child builder; done() returns
  to the parent.
- properties(source): one property() call per own key, validated as a whole.

Instantiating
- create(), constructor(init), prototype(), descriptors(), creates_prototype_of(obj).

Quick example:
    >>> from safenames import builder
    >>> Point = (
    ...     builder(name="Point")
    ...         .property("x", 0)
    ...         .property("y", 0)
    ...         .method("norm", lambda self: (self.x ** 2 + self.y ** 2) ** .5)
    ...         .done()
    ... )
    >>> point = Point.create()
    >>> getattr(point, "$x")(3)
    ...

Thread-safety
- Declarations mutate the builder in place without locking. Concurrent create()
  calls are isolated from each other, but declaring while another thread creates
  instances is the caller's responsibility.
"""
import copy
from collections.abc import Mapping
from types import ModuleType, SimpleNamespace

from rich.text import Text
from rich.tree import Tree

from .descriptors import *
from .faults import *
from .prototypes import *
from .utils import *
from .values import *


def _fork(value, /):
    """Snapshot an object-valued descriptor value (child builders are forked too)."""
    match value:
        case Builder():
            return value._fork()
        case Sequence(kind, items):
            return Sequence(kind, map(_fork, items))
        case _:
            return value


def _detach(value, /):
    """Per-instance copy of a scalar default. Modules are shared."""
    if isinstance(value, ModuleType):
        return value
    return copy.deepcopy(value)


def _materialize(value, /):
    """Turn an object-valued descriptor value into fresh instance data."""
    match value:
        case Builder():
            return value.create()
        case Sequence(kind, items):
            return kind(map(_materialize, items))
        case Scalar(scalar):
            return _detach(scalar)
        case _:
            return value


def _source_items(source, /):
    """Return the own (key, value) pairs of a bulk declaration source, or Unset."""
    if isinstance(source, Mapping):
        return list(source.items())
    if isinstance(source, SimpleNamespace):
        return list(vars(source).items())
    return Unset


def _collect_faults(items, /):
    """
    Walk a bulk declaration (recursively through nested defaults) and return
    every name fault it would raise.
    """
    faults = []
    for key, value in items:
        if (fault := name_fault(key)) is not None:
            faults.append(fault)
        if isinstance(value, Builder):
            continue
        match classify(value):
            case Nested(source):
                faults.extend(_collect_faults(source.items()))
            case Sequence(_, elements):
                faults.extend(_collect_faults(("", element) for element in elements))
    return faults


class Builder:
    """
    Accumulates declarations and materializes them into instances.

    Construction
    - Builder()               → fresh prototype without super prototype
    - Builder(cls)            → prototype chained under the given class
    - Builder(other_builder)  → prototype chained under the other builder's
      prototype; the other builder's declarations are snapshot-copied, so every
      inherited property is available and independently overridable.

    Invariants
    - a name is either in scalars or in objects, never both;
    - every declared property / constant / nested name has a "$<name>" accessor
      on the prototype;
    - every declaration validates its inputs before mutating anything.
    """

    parent = mirror("parent")
    scalars = mirror("scalars")
    objects = mirror("objects")

    def __init__(self, prototype=Unset, /, *, parent=Unset, name=Unset):
        self._parent = parent
        self._scalars = {}
        self._objects = {}
        self._raw = set()
        match prototype:
            case UnsetType() | None:
                self._proto = derive(Prototype, name)
            case Builder():
                self._proto = derive(prototype.prototype(), name)
                self._scalars = merge_maps(prototype._scalars)
                self._raw = set(prototype._raw)
                self._objects = {
                    key: descriptor.__replace__(value=_fork(descriptor.value))
                    for key, descriptor in prototype._objects.items()
                }
            case _:
                self._proto = derive(prototype, name)

    @property
    def name(self):
        return self._proto.__name__

    def _fork(self):
        """Return a detached copy sharing the prototype but not the declaration maps."""
        clone = object.__new__(type(self))
        clone._parent = Unset
        clone._proto = self._proto
        clone._scalars = merge_maps(self._scalars)
        clone._raw = set(self._raw)
        clone._objects = {
            key: descriptor.__replace__(value=_fork(descriptor.value))
            for key, descriptor in self._objects.items()
        }
        return clone

    def _install(self, table, name, descriptor, /, raw=False):
        """
        Store a property descriptor and its accessor.

        The accessor goes first: define_property() refuses before touching the
        prototype, and the maps are only updated once it succeeded.
        """
        define_property(self._proto, accessor_name(name), ACCESSOR | Descriptor(value=accessor(name)))
        (self._objects if table is self._scalars else self._scalars).pop(name, None)
        table[name] = descriptor
        if raw:
            self._raw.add(name)
        else:
            self._raw.discard(name)
        return self

    def _child(self, name, source, origin=Unset, /):
        """Decompose `source` into a child builder, rooted at `origin` when given."""
        if origin is Unset:
            return Builder(name=name).properties(source)
        return Builder(origin).properties(source)

    def _elements(self, name, items, /):
        """Build the stored form of a sequence default."""
        elements = []
        for item in items:
            if isinstance(item, Builder):
                elements.append(item._fork())
                continue
            match classify(item):
                case Nested(source, origin):
                    elements.append(self._child(name, source, origin))
                case Sequence(kind, nested):
                    elements.append(Sequence(kind, self._elements(name, nested)))
                case _:
                    elements.append(Scalar(item))
        return elements

    def raw_property(self, name=Unset, default=Unset, /, descriptor=Unset):
        """
        Declare a property whose default is stored as-is.

        Mapping and sequence defaults are not decomposed: every instance shares
        the very same object. Useful for deliberately shared state, or to keep a
        function as per-instance data.
        """
        check_name(name)
        return self._install(self._scalars, name, compose(REGULAR_PROPERTY, default, descriptor), raw=True)

    def method(self, name=Unset, function=Unset, /, descriptor=Unset):
        """
        Declare a method shared by every instance (class attribute, no accessor).

        Flags default to configurable=True, enumerable=False, writable=False.
        """
        check_name(name, "method")
        if function is Unset:
            trigger(
                MissingArgumentError(f"missing function argument for method {name!r}"),
                code=FaultCode.MISSING_ARGUMENT,
                title="missing argument",
                hint="pass the method's function as second argument",
            )
        return self.prototype_property(name, function, merge(METHOD, descriptor))

    def constant(self, name=Unset, value=Unset, /, descriptor=Unset):
        """
        Declare a constant on the prototype, plus its "$<name>" accessor.

        Flags default to configurable=False, enumerable=False, writable=False:
        assigning it, directly or through the accessor, raises
        ReadOnlyPropertyError. Only the reference is constant; a mutable value
        can still be mutated in place.
        """
        check_name(name, "constant")
        if value is Unset:
            trigger(
                MissingArgumentError(f"missing value for constant {name!r}"),
                code=FaultCode.MISSING_ARGUMENT,
                title="missing argument",
                hint="pass the constant's value as second argument",
            )
        resolved = merge(CONSTANT, descriptor) | Descriptor(value=value)
        function = ACCESSOR | Descriptor(value=accessor(name))
        check_property(self._proto, name, resolved)
        check_property(self._proto, accessor_name(name), function)
        define_property(self._proto, accessor_name(name), function)
        define_property(self._proto, name, resolved)
        self._scalars.pop(name, None)
        self._objects.pop(name, None)
        self._raw.discard(name)
        return self

    def nested(self, name=Unset, prototype=Unset, /, descriptor=Unset):
        """
        Declare an object-valued property backed by a new child builder and
        return that child, shifting the declaration scope.

        `prototype` follows the same rules as the builder() factory. Use done()
        on the child to get back to this builder.
        """
        check_name(name)
        child = Builder(prototype, parent=self, name=name)
        self._install(self._objects, name, compose(REGULAR_PROPERTY, child, descriptor))
        return child

    def prototype_property(self, name=Unset, value=Unset, /, descriptor=Unset):
        """
        Define a property directly on the prototype.

        `value` overrides the descriptor's value unless Unset. Attributes the
        descriptor omits default to False (value to None).
        """
        check_name(name)
        resolved = Descriptor.coerce(descriptor)
        if value is not Unset:
            resolved = resolved | Descriptor(value=value)
        define_property(self._proto, name, resolved)
        return self

    def properties(self, source=None, /):
        """
        Declare one property per own key of `source` (a mapping or a
        SimpleNamespace), with the key's value as default.

        Every key (nested ones included) is validated before anything is
        declared; all invalid keys are reported together in DeclarationErrors.
        """
        if source is None or source is Unset:
            return self
        if (items := _source_items(source)) is Unset:
            trigger(
                NotAnObjectError(f"properties() argument must be a mapping, not {type(source).__name__!r}"),
                code=FaultCode.NOT_AN_OBJECT,
                title="not an object",
                hint="pass a dict or a SimpleNamespace",
            )
        if faults := _collect_faults(items):
            trigger(DeclarationErrors(faults), code=FaultCode.DECLARATION_ERRORS)
        for key, value in items:
            self._check_declaration(key, value)
        for key, value in items:
            self.property(key, value)
        return self

    def _check_declaration(self, name, default, /):
        """Raise what property(name, default) would raise on the prototype, changing nothing."""
        if not isinstance(default, Builder) and callable(default):
            check_property(self._proto, name, METHOD | Descriptor(value=default))
        else:
            check_property(self._proto, accessor_name(name), ACCESSOR | Descriptor(value=accessor(name)))

    def done(self):
        """Return the enclosing builder, or this builder when it has none."""
        return coalesce(self._parent, self)

    def descriptors(self):
        """
        Return the materialized descriptor map: scalars first, then
        object-valued properties whose child builders are freshly instantiated.

        Scalar defaults are deep-copied unless declared with raw_property().
        """
        descriptors = merge_maps(self._scalars, self._objects)
        for key in self._scalars.keys() - self._raw:
            if (value := descriptors[key].value) is not Unset:
                descriptors[key] = descriptors[key].__replace__(value=_detach(value))
        for key in self._objects:
            descriptors[key] = descriptors[key].__replace__(value=_materialize(descriptors[key].value))
        return descriptors

    def create(self):
        """Create a new instance with exactly the declared own properties."""
        return define_properties(instantiate(self._proto), self.descriptors())

    def constructor(self, init=Unset, /):
        """
        Export a class whose instantiation applies the declared properties and
        then, when given, calls init(instance, *args, **kwargs).

        isinstance() against the exported class holds for every instance built
        from this builder's prototype, create() ones included.
        """
        if init is not Unset and not callable(init):
            trigger(
                NotCallableError("constructor argument must be callable"),
                code=FaultCode.NOT_CALLABLE,
                title="not callable",
                hint="pass a function taking the new instance first",
            )
        builder = self

        if init is Unset:
            def __init__(self):
                define_properties(self, builder.descriptors())
        else:
            def __init__(self, *args, **kwargs):
                define_properties(self, builder.descriptors())
                init(self, *args, **kwargs)

        return derive(self._proto, self.name, {"__init__": __init__, "-origin": self._proto})

    def prototype(self):
        """Return the prototype class shared by every instance."""
        return self._proto

    def creates_prototype_of(self, object, /):
        """True when `object` was built on this builder's prototype."""
        return isinstance(object, self._proto)

    def property(self, name=Unset, default=Unset, /, descriptor=Unset):
        """
        Declare a property with an optional default and partial descriptor.

        Resolution of the default
        - builder              → forked and instantiated per instance
        - callable             → delegated to method()
        - mapping / namespace  → decomposed into a child builder (deep copy per instance)
        - object with __dict__ → decomposed into a child builder chained under its class
        - list / tuple         → one child builder per object element, scalars kept
        - anything else        → stored as scalar, deep-copied per instance

        Descriptor flags default to configurable=False, enumerable=True,
        writable=True. An explicit default wins over the descriptor's `value`.
        """
        check_name(name)
        if isinstance(default, Builder):
            return self._install(self._objects, name, compose(REGULAR_PROPERTY, default._fork(), descriptor))
        match classify(default):
            case Method(function):
                return self.method(name, function, descriptor)
            case Nested(source, origin):
                if faults := _collect_faults(source.items()):
                    trigger(DeclarationErrors(faults), code=FaultCode.DECLARATION_ERRORS)
                resolved = compose(REGULAR_PROPERTY, self._child(name, source, origin), descriptor)
                return self._install(self._objects, name, resolved)
            case Sequence(kind, items):
                if faults := _collect_faults(("", item) for item in items):
                    trigger(DeclarationErrors(faults), code=FaultCode.DECLARATION_ERRORS)
                resolved = compose(REGULAR_PROPERTY, Sequence(kind, self._elements(name, items)), descriptor)
                return self._install(self._objects, name, resolved)
            case Scalar(value):
                return self._install(self._scalars, name, compose(REGULAR_PROPERTY, value, descriptor))

    def __rich_repr__(self):
        yield "name", self.name
        yield "scalars", self.scalars
        yield "objects", self.objects

    def __repr__(self):
        return f"builder(name={self.name!r}, scalars={list(self._scalars)!r}, objects={list(self._objects)!r})"

    def __rich__(self):
        return self._tree(Tree(Text(self.name, "bold")))

    def _tree(self, tree, /):
        for key, descriptor in self._scalars.items():
            if descriptor.value is Unset:
                tree.add(Text(key))
            else:
                tree.add(Text(f"{key} = {descriptor.value!r}"))
        for key, descriptor in self._objects.items():
            self._branch(tree.add(Text(key)), descriptor.value)
        return tree

    def _branch(self, tree, value, /):
        match value:
            case Builder():
                value._tree(tree)
            case Sequence(_, items):
                for index, item in enumerate(items):
                    self._branch(tree.add(Text(f"[{index}]")), item)
            case Scalar(scalar):
                tree.label = Text.assemble(tree.label, f" = {scalar!r}")


def builder(prototype=Unset, /, *, name=Unset):
    """
    Factory entry point: return a fresh Builder.

    - builder()              → no super prototype
    - builder(cls)           → the given class as super prototype
    - builder(other_builder) → inherits the other builder's prototype and
                               declarations (snapshot, independently overridable)
    """
    return Builder(prototype, name=name)


__all__ = (
    "Builder",
    "builder",
)
