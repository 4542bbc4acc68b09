"""
Arguments module behavioral tests (built-in types, registry, custom types).

Scope
- Validate the built-in integer, float, boolean and string capabilities.
- Validate registry resolution of identifiers and Python aliases.
- Validate custom registration, replacement, freezing and token counts.
- Validate the introspectable shape (properties, repr) of capabilities.

Conventions
- Test method names follow CamelCase per project convention.
- Tokens are passed as plain strings; parse() accepts any token sequence.
"""

from __future__ import annotations

import math
import unittest
from unittest import TestCase

from oberst import (
    ArgumentType,
    ConversionError,
    Integer,
    Float,
    Registry,
    FrozenTreeError,
    InvalidDigitError,
    InvalidFormatError,
    MissingValueError,
    UnknownArgumentTypeError,
    ValueOverflowError,
)


class Pair(ArgumentType):
    """Consumes two tokens."""

    def parse(self, tokens, /):
        if len(tokens) < 2:
            raise MissingValueError("a pair needs two tokens", type=self.name, raw=None)
        return (str(tokens[0]), str(tokens[1])), 2


class Greedy(ArgumentType):
    """Reports more tokens than it was given."""

    def parse(self, tokens, /):
        return None, len(tokens) + 1


class TestIntegers(TestCase):
    """Fixed-width base-10 integers."""

    def setUp(self):
        self.registry = Registry.default()

    def testUnsignedBounds(self):
        self.assertEqual(self.registry.parse("u8", ("0",)), (0, 1))
        self.assertEqual(self.registry.parse("u8", ("255",)), (255, 1))
        with self.assertRaises(ValueOverflowError):
            self.registry.parse("u8", ("256",))

    def testSignedBounds(self):
        self.assertEqual(self.registry.parse("i8", ("-128",)), (-128, 1))
        self.assertEqual(self.registry.parse("i8", ("127",)), (127, 1))
        with self.assertRaises(ValueOverflowError):
            self.registry.parse("i8", ("128",))
        with self.assertRaises(ValueOverflowError):
            self.registry.parse("i8", ("-129",))

    def testWideWidths(self):
        self.assertEqual(self.registry.parse("u128", (str(2 ** 128 - 1),))[0], 2 ** 128 - 1)
        self.assertEqual(self.registry.parse("usize", (str(2 ** 64 - 1),))[0], 2 ** 64 - 1)
        with self.assertRaises(ValueOverflowError):
            self.registry.parse("u64", (str(2 ** 64),))

    def testVeryLongDigitStringsOverflow(self):
        for identifier, raw in (("u64", "9" * 5000), ("i64", "-" + "9" * 5000), ("u128", "1" + "0" * 39)):
            with self.subTest(identifier=identifier, size=len(raw)):
                with self.assertRaises(ValueOverflowError) as context:
                    self.registry.parse(identifier, (raw,))
                self.assertEqual(context.exception.raw, raw)
                self.assertLess(len(context.exception.message), 80)

    def testLeadingZerosDoNotOverflow(self):
        self.assertEqual(self.registry.parse("u8", ("0" * 5000 + "7",)), (7, 1))
        self.assertEqual(self.registry.parse("i8", ("-" + "0" * 5000,)), (0, 1))

    def testUnsignedRejectsMinus(self):
        with self.assertRaises(InvalidDigitError):
            self.registry.parse("u64", ("-1",))

    def testInvalidDigits(self):
        for raw in ("", "+1", "1_000", "0x10", " 1", "1.0", "-"):
            with self.subTest(raw=raw):
                with self.assertRaises(InvalidDigitError) as context:
                    self.registry.parse("i32", (raw,))
                self.assertEqual(context.exception.raw, raw)
                self.assertEqual(context.exception.type, "i32")

    def testConsumesOnlyOneToken(self):
        self.assertEqual(self.registry.parse("u8", ("42", "times")), (42, 1))

    def testMissingValue(self):
        with self.assertRaises(MissingValueError):
            self.registry.parse("u8", ())

    def testLimits(self):
        integer = Integer("i16", bits=16, signed=True)
        self.assertEqual((integer.minimum, integer.maximum), (-32768, 32767))
        integer = Integer("u16", bits=16, signed=False)
        self.assertEqual((integer.minimum, integer.maximum), (0, 65535))

    def testRejectsBadWidth(self):
        with self.assertRaises(ValueError):
            Integer("u0", bits=0, signed=False)


class TestFloatsBooleansStrings(TestCase):
    """Floats, booleans and strings."""

    def setUp(self):
        self.registry = Registry.default()

    def testFloatNotations(self):
        self.assertEqual(self.registry.parse("f64", ("2.5",)), (2.5, 1))
        self.assertEqual(self.registry.parse("f64", ("-3",)), (-3.0, 1))
        self.assertEqual(self.registry.parse("f64", (".5",)), (0.5, 1))
        self.assertEqual(self.registry.parse("f64", ("1e3",)), (1000.0, 1))
        self.assertTrue(math.isnan(self.registry.parse("f64", ("NaN",))[0]))
        self.assertEqual(self.registry.parse("f64", ("-inf",))[0], -math.inf)

    def testFloatInvalidFormat(self):
        for raw in ("abc", "1,5", "", "1e", "0x1p3"):
            with self.subTest(raw=raw):
                with self.assertRaises(InvalidFormatError):
                    self.registry.parse("f64", (raw,))

    def testSinglePrecision(self):
        value, consumed = self.registry.parse("f32", ("0.1",))
        self.assertEqual(consumed, 1)
        self.assertNotEqual(value, 0.1)
        self.assertAlmostEqual(value, 0.1, places=6)

    def testSinglePrecisionOverflowsToInfinity(self):
        self.assertEqual(self.registry.parse("f32", ("1e39",))[0], math.inf)
        self.assertEqual(self.registry.parse("f32", ("-1e39",))[0], -math.inf)

    def testFloatRejectsBadWidth(self):
        with self.assertRaises(ValueError):
            Float("f16", bits=16)

    def testBooleans(self):
        self.assertEqual(self.registry.parse("bool", ("true",)), (True, 1))
        self.assertEqual(self.registry.parse("bool", ("false",)), (False, 1))
        for raw in ("True", "1", "yes", ""):
            with self.subTest(raw=raw):
                with self.assertRaises(InvalidFormatError):
                    self.registry.parse("bool", (raw,))

    def testStringsAreVerbatim(self):
        self.assertEqual(self.registry.parse("str", ("John Smith", "x")), ("John Smith", 1))
        self.assertEqual(self.registry.parse("str", ("",)), ("", 1))


class TestRegistry(TestCase):
    """Resolution, registration and freezing."""

    def setUp(self):
        self.registry = Registry.default()

    def testDefaultIdentifiers(self):
        expected = {
            "u8", "u16", "u32", "u64", "u128", "usize",
            "i8", "i16", "i32", "i64", "i128", "isize",
            "f32", "f64", "bool", "str",
        }
        self.assertEqual(set(self.registry), expected)
        self.assertEqual(len(self.registry), len(expected))

    def testResolveAliases(self):
        self.assertEqual(self.registry.resolve(str), "str")
        self.assertEqual(self.registry.resolve(int), "i64")
        self.assertEqual(self.registry.resolve("int"), "i64")
        self.assertEqual(self.registry.resolve(float), "f64")
        self.assertEqual(self.registry.resolve("float"), "f64")
        self.assertEqual(self.registry.resolve(bool), "bool")
        self.assertEqual(self.registry.resolve("u64"), "u64")

    def testResolveUnknown(self):
        for type in ("u65", list, ["u8"], None):
            with self.subTest(type=type):
                with self.assertRaises(UnknownArgumentTypeError):
                    self.registry.resolve(type)

    def testParseUnknown(self):
        with self.assertRaises(UnknownArgumentTypeError):
            self.registry.parse("u65", ("1",))

    def testCustomMultiTokenType(self):
        self.registry.register("pair", Pair("pair"))
        self.assertEqual(self.registry.parse("pair", ("a", "b", "c")), (("a", "b"), 2))
        with self.assertRaises(MissingValueError):
            self.registry.parse("pair", ("a",))

    def testRegisterExistingRequiresReplace(self):
        with self.assertRaises(ValueError):
            self.registry.register("u8", Integer("u8", bits=16, signed=False))
        replacement = Integer("u8", bits=16, signed=False)
        self.assertIs(self.registry.register("u8", replacement, replace=True), replacement)
        self.assertEqual(self.registry.parse("u8", ("300",)), (300, 1))

    def testRegisterRejectsBadArguments(self):
        with self.assertRaises(TypeError):
            self.registry.register(1, Pair("pair"))
        with self.assertRaises(ValueError):
            self.registry.register("two words", Pair("pair"))
        with self.assertRaises(TypeError):
            self.registry.register("pair", object())

    def testFrozenRegistryRejectsRegistration(self):
        self.assertFalse(self.registry.frozen)
        self.assertIs(self.registry.freeze(), self.registry)
        self.assertTrue(self.registry.frozen)
        with self.assertRaises(FrozenTreeError):
            self.registry.register("pair", Pair("pair"))
        # Parsing keeps working once frozen.
        self.assertEqual(self.registry.parse("u8", ("1",)), (1, 1))

    def testInvalidTokenCount(self):
        self.registry.register("greedy", Greedy("greedy"))
        with self.assertRaises(ConversionError) as context:
            self.registry.parse("greedy", ("a",))
        self.assertEqual(context.exception.type, "greedy")
        self.assertEqual(context.exception.raw, "a")

    def testIndependentDefaults(self):
        self.registry.register("pair", Pair("pair"))
        self.assertNotIn("pair", Registry.default())


class TestCapabilityShape(TestCase):
    """Introspectable properties and representation."""

    def testPropertiesAreReadOnly(self):
        integer = Integer("u8", bits=8, signed=False)
        self.assertEqual((integer.name, integer.bits, integer.signed), ("u8", 8, False))
        with self.assertRaises(AttributeError):
            integer.bits = 16

    def testRepr(self):
        self.assertEqual(repr(Integer("u8", bits=8, signed=False)), "integer(name='u8', bits=8, signed=False)")
        self.assertEqual(repr(Float("f32", bits=32)), "float(name='f32', bits=32)")
        self.assertEqual(repr(Pair("pair")), "pair(name='pair')")
        self.assertEqual(str(Pair("pair")), "pair")

    def testRichRepr(self):
        self.assertEqual(list(Float("f64").__rich_repr__()), [("name", "f64"), ("bits", 64)])

    def testNameValidation(self):
        with self.assertRaises(TypeError):
            Pair(1)
        with self.assertRaises(ValueError):
            Pair(" ")

    def testBaseParseIsAbstract(self):
        with self.assertRaises(NotImplementedError):
            ArgumentType("base").parse(("x",))


if __name__ == "__main__":
    unittest.main()
