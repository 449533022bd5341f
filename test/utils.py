"""
Tests for the Unset sentinel and the message helpers.

This module verifies semantic guarantees of the `UnsetType` sentinel:
- Singleton identity (single instance per interpreter process).
- Falsy semantics and representation behavior.
- Union support (`str | Unset`) for isinstance checks.
- Copying, deep copying and pickling preserve identity.
- Finality (type cannot be subclassed).
It also covers coalesce, rename, mirror and the fault message helpers.
"""
import copy
import pickle
import unittest
from unittest import TestCase

from cordage.utils import *


class UnsetTest(TestCase):
    """
    Test suite for the `UnsetType` singleton.

    This suite asserts that:
    - UnsetType() always returns the same instance (singleton).
    - The exported `Unset` object equals that instance.
    - The sentinel is falsy but not equal to other falsy values.
    - Copy/deepcopy/pickle round-trips preserve identity.
    - The type is final and cannot be subclassed.
    """

    def testSingleton(self) -> None:
        """
        The constructor returns the module-level instance on every call.
        """
        self.assertIs(UnsetType(), Unset)
        self.assertIs(UnsetType(), UnsetType())

    def testRepr(self) -> None:
        self.assertEqual(repr(Unset), "Unset")

    def testFalsely(self) -> None:
        self.assertFalse(bool(Unset))

    def testNotEqualToNoneOrFalse(self) -> None:
        """
        Falsy does not imply equality with other falsy values (None/False).
        """
        self.assertNotEqual(Unset, None)
        self.assertNotEqual(Unset, False)  # noqa: E712

    def testUnion(self) -> None:
        """
        `str | Unset` builds a type union usable with isinstance().
        """
        self.assertTrue(isinstance("name", str | Unset))
        self.assertTrue(isinstance(Unset, str | Unset))
        self.assertFalse(isinstance(3, str | Unset))
        self.assertTrue(isinstance(Unset, Unset | int))

    def testCopyDeepcopyPreserveSingleton(self) -> None:
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy(Unset), Unset)

    def testPickleRoundTrip(self) -> None:
        self.assertIs(pickle.loads(pickle.dumps(Unset)), Unset)

    def testFinalClass(self) -> None:
        """
        The class is final: attempts to subclass must fail with TypeError.
        """
        with self.assertRaises(TypeError):
            type("UnsetType", (UnsetType,), {})


class HelpersTest(TestCase):
    """
    Test suite for coalesce, rename, mirror and the message helpers.
    """

    def testCoalesce(self) -> None:
        """
        Only Unset is replaced; other falsy values are kept.
        """
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(Unset))
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 1), 0)

    def testRenameCallable(self) -> None:
        def function():
            pass

        self.assertIs(rename(function, "renamed"), function)
        self.assertEqual((function.__name__, function.__qualname__), ("renamed", "renamed"))

    def testRenameDecorator(self) -> None:
        @rename("renamed")
        def function():
            pass

        self.assertEqual(function.__name__, "renamed")

    def testRenameErrors(self) -> None:
        with self.assertRaises(TypeError):
            rename("not callable", "name")
        with self.assertRaises(TypeError):
            rename(lambda: None, 3)
        with self.assertRaises(TypeError):
            rename()

    def testMirrorCopiesContainers(self) -> None:
        """
        mirror() exposes copies; tuples come back as lists.
        """
        class Holder:
            values = mirror("values")

            def __init__(self):
                self._values = ("a", ["b"])

        holder = Holder()
        self.assertEqual(holder.values, ["a", ["b"]])
        holder.values[1].append("c")
        self.assertEqual(holder._values, ("a", ["b"]))
        with self.assertRaises(AttributeError):
            holder.values = []

    def testQuote(self) -> None:
        self.assertEqual(quote("abc"), '"abc"')
        self.assertEqual(quote('say "hi"'), '"say \\"hi\\""')

    def testListing(self) -> None:
        self.assertEqual(listing(("a", "b")), "['a', 'b']")

    def testPlural(self) -> None:
        self.assertEqual(plural(1, "argument"), "argument")
        self.assertEqual(plural(0, "argument"), "arguments")

    def testUnbounded(self) -> None:
        self.assertEqual(UNBOUNDED, -1)


if __name__ == '__main__':
    unittest.main()
