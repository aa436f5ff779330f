"""
Prototype layer tests.

Scope
- derive(): fresh prototypes, chaining, grafting onto foreign classes and metaclasses.
- Generated accessors and the instance-level "$$" declaration.
- Attribute guards: hidden internal storage, locked class attributes, own
  property flags, accessor dispatch.
"""
import unittest
from abc import ABC, ABCMeta, abstractmethod
from unittest import TestCase

from safenames.descriptors import *
from safenames.faults import *
from safenames.prototypes import *
from safenames.utils import Unset


class DeriveTest(TestCase):
    """
    Test suite for derive().
    """

    def testFreshPrototype(self) -> None:
        """
        Without base the class derives from Prototype and is named "Object".
        """
        cls = derive()
        self.assertIsInstance(cls, PrototypeType)
        self.assertTrue(issubclass(cls, Prototype))
        self.assertEqual(cls.__name__, "Object")
        self.assertEqual(repr(cls), "<prototype 'Object'>")

    def testExplicitName(self) -> None:
        """
        The name argument names the class.
        """
        self.assertEqual(derive(name="Point").__name__, "Point")

    def testChaining(self) -> None:
        """
        A prototype base is subclassed directly and lends its name.
        """
        parent = derive(name="Parent")
        child = derive(parent)
        self.assertEqual(child.__bases__, (parent,))
        self.assertEqual(child.__name__, "Parent")

    def testGraftOntoPlainClass(self) -> None:
        """
        An ordinary class gets the Prototype mixin grafted on.
        """
        class Animal:
            def speak(self):
                return "..."

        cls = derive(Animal)
        self.assertTrue(issubclass(cls, Animal))
        self.assertTrue(issubclass(cls, Prototype))
        self.assertEqual(instantiate(cls).speak(), "...")

    def testGraftOntoForeignMetaclass(self) -> None:
        """
        A foreign metaclass is blended with PrototypeType.
        """
        class Shape(ABC):
            @abstractmethod
            def area(self): ...

        cls = derive(Shape, namespace={"area": lambda self: 0})
        self.assertIsInstance(cls, PrototypeType)
        self.assertIsInstance(cls, ABCMeta)
        self.assertEqual(cls().area(), 0)

    def testNotAClass(self) -> None:
        """
        Anything but a class raises NotAPrototypeError.
        """
        with self.assertRaises(NotAPrototypeError) as context:
            derive(42)
        self.assertIsInstance(context.exception, TypeError)

    def testOriginDelegatesInstanceCheck(self) -> None:
        """
        "-origin" makes isinstance() hold for instances of the origin.
        """
        base = derive()
        exported = derive(base, namespace={"-origin": base})
        self.assertIsInstance(instantiate(base), exported)
        self.assertNotIsInstance(instantiate(derive()), exported)


class AccessorTest(TestCase):
    """
    Test suite for the generated "$<name>" accessors.
    """

    def testCachedPerName(self) -> None:
        """
        One accessor function exists per property name.
        """
        self.assertIs(accessor("x"), accessor("x"))
        self.assertIsNot(accessor("x"), accessor("y"))

    def testName(self) -> None:
        """
        Accessors are named after the "$" prefixed property name.
        """
        self.assertEqual(accessor_name("x"), "$x")
        self.assertEqual(accessor("x").__name__, "$x")

    def testTwoModes(self) -> None:
        """
        With an argument the accessor writes and chains, without it reads.
        """
        cls = derive()
        define_property(cls, "$x", ACCESSOR | Descriptor(value=accessor("x")))
        instance = instantiate(cls)
        self.assertIs(getattr(instance, "$x")(5), instance)
        self.assertEqual(getattr(instance, "$x")(), 5)
        self.assertEqual(instance.x, 5)


class NameFaultTest(TestCase):
    """
    Test suite for name_fault() and check_name().
    """

    def testValidName(self) -> None:
        """
        Ordinary strings pass.
        """
        self.assertIsNone(name_fault("name"))
        check_name("name")

    def testMissingName(self) -> None:
        """
        None and Unset are missing names.
        """
        self.assertIsInstance(name_fault(None), MissingNameError)
        with self.assertRaises(MissingNameError) as context:
            check_name(Unset)
        self.assertIsInstance(context.exception, AssertionError)
        self.assertEqual(context.exception.code, FaultCode.MISSING_NAME)

    def testInvalidName(self) -> None:
        """
        Non-strings and "-" prefixed names are invalid.
        """
        for name in (42, b"name", "-reserved"):
            with self.subTest(name=name):
                with self.assertRaises(InvalidNameError):
                    check_name(name)


class PrototypeTest(TestCase):
    """
    Test suite for the attribute guards of prototype classes and instances.
    """

    def setUp(self) -> None:
        """
        Prepare a prototype named "Thing" and one bare instance.
        """
        self.cls = derive(name="Thing")
        self.instance = instantiate(self.cls)

    def testInternalStorageIsHidden(self) -> None:
        """
        The flag storage can be neither read nor replaced.
        """
        with self.assertRaises(AttributeError):
            getattr(self.cls, "-descriptors")
        with self.assertRaises(AttributeError):
            getattr(self.instance, "-descriptors")
        with self.assertRaises(AttributeError):
            setattr(self.instance, "-descriptors", {})
        with self.assertRaises(AttributeError):
            setattr(self.cls, "-descriptors", {})

    def testUndeclaredAttributesAreOrdinary(self) -> None:
        """
        Names without flags behave like ordinary attributes.
        """
        self.instance.extra = 1
        self.assertEqual(self.instance.extra, 1)
        del self.instance.extra
        with self.assertRaises(AttributeError) as context:
            self.instance.extra  # NOQA: B018
        self.assertEqual(context.exception.name, "extra")

    def testLockedClassAttribute(self) -> None:
        """
        A constant refuses writes on the class and on instances.
        """
        define_property(self.cls, "PI", CONSTANT | {"value": 3})
        with self.assertRaises(ReadOnlyPropertyError):
            self.cls.PI = 4
        with self.assertRaises(ReadOnlyPropertyError):
            self.instance.PI = 4
        with self.assertRaises(RedefinitionError):
            del self.cls.PI
        self.assertEqual(self.instance.PI, 3)
        self.assertNotIn("PI", vars(self.instance))

    def testNonWritableOwnProperty(self) -> None:
        """
        A non-writable own property refuses assignment.
        """
        define_property(self.instance, "x", {"value": 1})
        with self.assertRaises(ReadOnlyPropertyError) as context:
            self.instance.x = 2
        self.assertIsInstance(context.exception, AttributeError)
        self.assertEqual(self.instance.x, 1)

    def testNonConfigurableOwnProperty(self) -> None:
        """
        A non-configurable own property can be written but not deleted.
        """
        define_property(self.instance, "x", REGULAR_PROPERTY | {"value": 1})
        self.instance.x = 2
        with self.assertRaises(RedefinitionError):
            del self.instance.x
        self.assertEqual(self.instance.x, 2)

    def testAccessorProperty(self) -> None:
        """
        Own get/set properties are dispatched on read and write.
        """
        storage = []
        define_property(self.instance, "item", {
            "get": lambda self: storage[-1],
            "set": lambda self, value: storage.append(value),
            "enumerable": True,
        })
        self.instance.item = 1
        self.instance.item = 2
        self.assertEqual(self.instance.item, 2)
        self.assertEqual(storage, [1, 2])
        self.assertEqual(own_keys(self.instance), ["item"])

    def testGetterOnlyAccessorIsReadOnly(self) -> None:
        """
        An accessor without setter refuses writes.
        """
        define_property(self.instance, "answer", {"get": lambda self: 42})
        self.assertEqual(self.instance.answer, 42)
        with self.assertRaises(ReadOnlyPropertyError):
            self.instance.answer = 0

    def testRepr(self) -> None:
        """
        repr() lists enumerable own properties only.
        """
        define_property(self.instance, "x", REGULAR_PROPERTY | {"value": 1})
        define_property(self.instance, "hidden", {"value": 2})
        self.assertEqual(repr(self.instance), "Thing(x=1)")

    def testRecursiveRepr(self) -> None:
        """
        Self references print as an ellipsis.
        """
        define_property(self.instance, "me", REGULAR_PROPERTY | {"value": self.instance})
        self.assertEqual(repr(self.instance), "Thing(me=...)")


class DeclareTest(TestCase):
    """
    Test suite for the instance-level "$$" declaration.
    """

    def setUp(self) -> None:
        """
        Prepare one bare instance of a fresh prototype.
        """
        self.instance = instantiate(derive())

    def testDeclareChains(self) -> None:
        """
        "$$" returns the instance and installs a bound accessor.
        """
        declare = getattr(self.instance, "$$")
        self.assertIs(declare("x", 1), self.instance)
        self.assertEqual(self.instance.x, 1)
        self.assertEqual(getattr(self.instance, "$x")(), 1)
        self.assertIs(getattr(self.instance, "$x")(2), self.instance)
        self.assertEqual(self.instance.x, 2)

    def testDeclaredPropertyIsRegular(self) -> None:
        """
        The declared property follows the regular property baseline.
        """
        getattr(self.instance, "$$")("x", 1)
        self.assertEqual(own_descriptor(self.instance, "x"), REGULAR_PROPERTY | {"value": 1})
        self.assertEqual(own_keys(self.instance), ["x"])

    def testDeclareWithDescriptor(self) -> None:
        """
        The optional descriptor applies to the declared property.
        """
        getattr(self.instance, "$$")("x", 1, {"writable": False})
        with self.assertRaises(ReadOnlyPropertyError):
            getattr(self.instance, "$x")(2)

    def testDeclareOnlyAffectsInstance(self) -> None:
        """
        Other instances of the prototype get nothing.
        """
        other = instantiate(type(self.instance))
        getattr(self.instance, "$$")("x", 1)
        self.assertFalse(hasattr(other, "$x"))

    def testDeclareWithoutName(self) -> None:
        """
        "$$" without name raises MissingNameError.
        """
        with self.assertRaises(MissingNameError):
            getattr(self.instance, "$$")()

    def testDeclareIsLocked(self) -> None:
        """
        "$$" itself cannot be overwritten.
        """
        with self.assertRaises(ReadOnlyPropertyError):
            setattr(self.instance, "$$", None)


if __name__ == '__main__':
    unittest.main()
