"""
Tests for the internal helpers.

This module verifies:
- The `Unset` sentinel: singleton identity, falsy semantics, representation,
  copying/pickling identity, thread safety and finality.
- coalesce(): only Unset is replaced.
- rename(): both call forms and their argument checks.
- mirror(): immutable views over private backing fields.
"""
import copy
import pickle
import unittest
from threading import Thread, Lock
from unittest import TestCase

from rich.console import Console

from safenames.utils import *


class UnsetTest(TestCase):
    """
    Test suite for the `UnsetType` singleton.
    """

    def setUp(self) -> None:
        """
        Prepare a reference to the singleton and its type for each test.
        """
        self.unset: UnsetType = UnsetType()
        self.unsettype: type[UnsetType] = UnsetType

    def testSingleton(self) -> None:
        """
        The constructor returns the same object reference on every call.
        """
        self.assertIs(self.unset, self.unsettype())

    def testModuleSingleton(self) -> None:
        """
        The exported `Unset` matches the constructed singleton instance.
        """
        self.assertIs(Unset, self.unset)
        self.assertIsInstance(Unset, self.unsettype)

    def testRepr(self) -> None:
        """
        repr() and str() both read 'Unset'.
        """
        self.assertEqual(repr(self.unset), "Unset")
        self.assertEqual(str(self.unset), "Unset")

    def testRichConsolePrint(self) -> None:
        """
        Console.print(...) renders 'Unset' without ANSI when color is disabled.
        """
        console = Console(color_system=None, force_terminal=False)
        with console.capture() as capture:
            console.print(self.unset)
        self.assertEqual(capture.get().strip(), "Unset")

    def testFalsely(self) -> None:
        """
        The sentinel is falsy.
        """
        self.assertFalse(bool(self.unset))

    def testNotEqualToNoneOrFalse(self) -> None:
        """
        Falsy does not imply equality with other falsy values (None/False).
        """
        self.assertNotEqual(self.unset, None)
        self.assertNotEqual(self.unset, False)  # noqa: E712

    def testUnion(self) -> None:
        """
        The sentinel takes part in PEP 604 unions on either side.
        """
        self.assertIsInstance(Unset, str | Unset)
        self.assertIsInstance("text", Unset | str)
        self.assertNotIsInstance(0, str | Unset)

    def testCopyDeepcopyPreserveSingleton(self) -> None:
        """
        copy() and deepcopy() return the singleton itself.
        """
        self.assertIs(copy.copy(self.unset), self.unset)
        self.assertIs(copy.deepcopy(self.unset), self.unset)

    def testPickleRoundTrip(self) -> None:
        """
        Unpickling yields the singleton itself.
        """
        data: bytes = pickle.dumps(self.unset)
        restored: UnsetType = pickle.loads(data)
        self.assertIs(restored, self.unset)

    def testThreadSafetySingleton(self) -> None:
        """
        Concurrent constructions return the same instance (thread-safe singleton).
        """
        results: list[UnsetType] = []
        lock: Lock = Lock()

        def worker():
            instance = self.unsettype()
            with lock:
                results.append(instance)

        threads: list[Thread] = [Thread(target=worker) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len(results), 16)
        for instance in results:
            self.assertIs(instance, self.unset)

    def testFinalClass(self) -> None:
        """
        The class is final: attempts to subclass must fail with TypeError.
        """
        with self.assertRaises(TypeError):
            type("UnsetType", (self.unsettype,), {})


class CoalesceTest(TestCase):
    """
    Test suite for coalesce().
    """

    def testReplacesUnset(self) -> None:
        """
        Unset becomes the default, None when no default is given.
        """
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(Unset))

    def testKeepsFalsyValues(self) -> None:
        """
        Other falsy values count as given.
        """
        for value in (None, 0, "", [], False):
            with self.subTest(value=value):
                self.assertIs(coalesce(value, "fallback"), value)


class RenameTest(TestCase):
    """
    Test suite for rename().
    """

    def testCallForm(self) -> None:
        """
        rename(function, name) renames in place and returns the function.
        """
        def function():
            pass

        self.assertIs(rename(function, "$x"), function)
        self.assertEqual(function.__name__, "$x")
        self.assertEqual(function.__qualname__, "$x")

    def testDecoratorForm(self) -> None:
        """
        rename(name) works as a decorator.
        """
        @rename("$$")
        def function():
            pass

        self.assertEqual(function.__name__, "$$")

    def testRejectsNonCallable(self) -> None:
        """
        Only callables can be renamed.
        """
        with self.assertRaises(TypeError):
            rename(42, "name")

    def testRejectsNonStringName(self) -> None:
        """
        Names must be strings in both forms.
        """
        with self.assertRaises(TypeError):
            rename(lambda: None, 42)
        with self.assertRaises(TypeError):
            rename(42)

    def testRejectsBuiltins(self) -> None:
        """
        Builtins whose name is read-only raise TypeError.
        """
        with self.assertRaises(TypeError):
            rename(len, "size")

    def testArity(self) -> None:
        """
        Zero or more than two arguments raise TypeError.
        """
        with self.assertRaises(TypeError):
            rename()
        with self.assertRaises(TypeError):
            rename(lambda: None, "a", "b")


class MirrorTest(TestCase):
    """
    Test suite for mirror() read-only views.
    """

    def setUp(self) -> None:
        """
        Prepare a holder mirroring one field of each container kind.
        """
        class Holder:
            mapping = mirror("mapping")
            sequence = mirror("sequence")
            set = mirror("set")
            text = mirror("text")

            def __init__(self):
                self._mapping = {"a": 1}
                self._sequence = [1, 2]
                self._set = {1}
                self._text = "abc"

        self.holder = Holder()

    def testMappingIsReadOnlyLiveView(self) -> None:
        """
        Mappings come back as a live read-only proxy.
        """
        view = self.holder.mapping
        with self.assertRaises(TypeError):
            view["b"] = 2  # type: ignore[index]
        self.holder._mapping["b"] = 2
        self.assertEqual(view["b"], 2)

    def testSequenceBecomesTuple(self) -> None:
        """
        Sequences come back as tuples.
        """
        self.assertEqual(self.holder.sequence, (1, 2))

    def testSetBecomesFrozenset(self) -> None:
        """
        Sets come back as frozensets.
        """
        self.assertEqual(self.holder.set, frozenset({1}))

    def testStringUntouched(self) -> None:
        """
        Strings are not turned into tuples.
        """
        self.assertEqual(self.holder.text, "abc")

    def testReadOnly(self) -> None:
        """
        The mirrored attribute cannot be assigned.
        """
        with self.assertRaises(AttributeError):
            self.holder.mapping = {}

    def testRejectsNonStringName(self) -> None:
        """
        mirror() only accepts string names.
        """
        with self.assertRaises(TypeError):
            mirror(42)


if __name__ == '__main__':
    unittest.main()
