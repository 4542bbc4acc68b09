"""
Tests for the utility helpers.

This module verifies the guarantees of the `Unset` sentinel and the helpers
built around it:
- Singleton identity, falsy semantics and representation.
- Copying, deep copying and pickling preserve identity.
- Finality (type cannot be subclassed) and PEP 604 unions.
- coalesce, rename and ordinal behavior.
"""
import copy
import pickle
import unittest
from unittest import TestCase

from oberst.utils import *


class UnsetTest(TestCase):
    """
    Test suite for the `UnsetType` singleton.
    """

    def testSingleton(self) -> None:
        """
        The constructor returns the same object reference on every call.
        """
        self.assertIs(Unset, UnsetType())
        self.assertIs(UnsetType(), UnsetType())

    def testFalsely(self) -> None:
        self.assertFalse(Unset)
        self.assertIsNot(Unset, None)
        self.assertNotEqual(Unset, 0)

    def testRepr(self) -> None:
        self.assertEqual(repr(Unset), "Unset")
        self.assertEqual(str(Unset), "Unset")

    def testCopyAndPickle(self) -> None:
        """
        copy, deepcopy and pickle round-trips preserve identity.
        """
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy([Unset])[0], Unset)
        self.assertIs(pickle.loads(pickle.dumps(Unset)), Unset)

    def testFinal(self) -> None:
        with self.assertRaises(TypeError):
            class Derived(UnsetType):  # NOQA
                pass

    def testUnion(self) -> None:
        """
        `str | Unset` builds a union usable with isinstance.
        """
        self.assertTrue(isinstance("text", str | Unset))
        self.assertTrue(isinstance(Unset, str | Unset))
        self.assertFalse(isinstance(1, str | Unset))
        self.assertTrue(isinstance(Unset, Unset | None))


class HelpersTest(TestCase):
    """
    Test suite for coalesce, rename and ordinal.
    """

    def testCoalesce(self) -> None:
        self.assertEqual(coalesce("name", "fallback"), "name")
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(Unset))
        # Falsy values are kept.
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 1), 0)
        self.assertEqual(coalesce("", "fallback"), "")

    def testRenameInPlace(self) -> None:
        def function():
            pass

        self.assertIs(rename(function, "renamed"), function)
        self.assertEqual(function.__name__, "renamed")
        self.assertEqual(function.__qualname__, "renamed")

    def testRenameDecorator(self) -> None:
        @rename("renamed")
        def function():
            pass

        self.assertEqual(function.__name__, "renamed")

    def testRenameRejectsBadArguments(self) -> None:
        with self.assertRaises(TypeError):
            rename(1, "name")
        with self.assertRaises(TypeError):
            rename(lambda: None, 1)
        with self.assertRaises(TypeError):
            rename(1)
        with self.assertRaises(TypeError):
            rename()
        with self.assertRaises(TypeError):
            rename(len, "length")  # built-in names are read-only

    def testOrdinalWords(self) -> None:
        self.assertEqual(ordinal(1), "first")
        self.assertEqual(ordinal(2), "second")
        self.assertEqual(ordinal(10), "tenth")

    def testOrdinalSuffixes(self) -> None:
        self.assertEqual(ordinal(11), "11th")
        self.assertEqual(ordinal(12), "12th")
        self.assertEqual(ordinal(13), "13th")
        self.assertEqual(ordinal(21), "21st")
        self.assertEqual(ordinal(22), "22nd")
        self.assertEqual(ordinal(23), "23rd")
        self.assertEqual(ordinal(111), "111th")
        self.assertEqual(ordinal(101), "101st")

    def testOrdinalRejectsBadArguments(self) -> None:
        with self.assertRaises(ValueError):
            ordinal(0)
        with self.assertRaises(TypeError):
            ordinal(True)
        with self.assertRaises(TypeError):
            ordinal("1")


if __name__ == "__main__":
    unittest.main()
