# python
"""
Value pipeline behavioral tests (converters, validators, transformers).

Scope
- Validate boolean parsing, token conversion and rendering values back to tokens.
- Validate every built-in validator's accept/reject behavior and message.
- Validate transformers, including FileTransformer through the OS collaborator.

Conventions
- Test method names follow CamelCase per project convention.
- Validator rejections are checked through the argument fault message, which
  is what users see.
"""

from __future__ import annotations

import os
import tempfile
import unittest
from unittest import TestCase

from cordage import (
    EQ,
    GT,
    GTE,
    LT,
    LTE,
    NEQ,
    OS,
    Arg,
    Contains,
    Data,
    FileExists,
    FileTransformer,
    InList,
    Input,
    IsDir,
    IsFile,
    IsRegex,
    ListArg,
    Listify,
    MatchesRegex,
    MaxLength,
    MinLength,
    Mode,
    Negative,
    NonNegative,
    Not,
    Positive,
    Transformer,
    Validator,
    boolean,
    convert,
    to_tokens,
)
from cordage.faults import ConversionError, ValidationError


def rejection(validator, token, *, type=str, data=None):
    """
    message of the fault raised for token, or None when it is accepted.
    """
    argument = Arg("V", type=type, validators=(validator,))
    try:
        argument.match(Input([token]), Data() if data is None else data, Mode.EXECUTE)
    except ValidationError as error:
        return str(error)
    return None


class TestValues(TestCase):
    """Behavioral tests for conversion helpers."""

    def testBoolean(self):
        self.assertTrue(boolean("t"))
        self.assertTrue(boolean("True"))
        self.assertFalse(boolean("0"))
        with self.assertRaises(ValueError):
            boolean("yes")

    def testConvert(self):
        self.assertEqual(convert(int, ["1", "2"]), [1, 2])

    def testConvertFailure(self):
        with self.assertRaises(ConversionError) as context:
            convert(float, ["1.5", "x"], name="F")
        self.assertEqual(str(context.exception), "could not convert string to float: 'x'")
        self.assertEqual(context.exception.options["token"], "x")

    def testBooleanConversionMessage(self):
        with self.assertRaises(ConversionError) as context:
            convert(boolean, ["maybe"])
        self.assertEqual(str(context.exception), 'invalid syntax for boolean: "maybe"')

    def testToTokens(self):
        self.assertEqual(to_tokens([True, 2, "x"]), ["true", "2", "x"])
        self.assertEqual(to_tokens(False), ["false"])


class TestStringValidators(TestCase):
    """Behavioral tests for string validators."""

    def testContains(self):
        self.assertIsNone(rejection(Contains("ell"), "hello"))
        self.assertEqual(
            rejection(Contains("xyz"), "hello"),
            'validation for "V" failed: [Contains] value doesn\'t contain substring "xyz"'
        )

    def testMatchesRegex(self):
        self.assertIsNone(rejection(MatchesRegex("^a", "z$"), "abcz"))
        self.assertEqual(
            rejection(MatchesRegex("^a", "z$"), "abc"),
            'validation for "V" failed: [MatchesRegex] value "abc" doesn\'t match regex "z$"'
        )

    def testIsRegex(self):
        self.assertIsNone(rejection(IsRegex(), "a+"))
        self.assertTrue(rejection(IsRegex(), "(").startswith(
            'validation for "V" failed: [IsRegex] value "(" isn\'t a valid regex: '
        ))

    def testInList(self):
        self.assertIsNone(rejection(InList("a", "b"), "a"))
        self.assertEqual(
            rejection(InList("a", "b"), "c"),
            "validation for \"V\" failed: [InList] argument must be one of ['a', 'b']"
        )

    def testLengths(self):
        self.assertIsNone(rejection(MinLength(2), "ab"))
        self.assertEqual(
            rejection(MinLength(1), ""),
            'validation for "V" failed: [MinLength] value must be at least 1 character'
        )
        self.assertEqual(
            rejection(MaxLength(2), "abc"),
            'validation for "V" failed: [MaxLength] value must be at most 2 characters'
        )


class TestOrderingValidators(TestCase):
    """Behavioral tests for numeric comparisons."""

    def testComparisons(self):
        cases = [
            (EQ(3), "3", None),
            (EQ(3), "4", "value isn't equal to 3"),
            (NEQ(3), "3", "value cannot equal 3"),
            (LT(3), "3", "value isn't less than 3"),
            (LTE(3), "3", None),
            (LTE(3), "4", "value isn't less than or equal to 3"),
            (GT(3), "3", "value isn't greater than 3"),
            (GTE(3), "3", None),
            (GTE(3), "2", "value isn't greater than or equal to 3"),
        ]
        for validator, token, message in cases:
            with self.subTest(validator=validator.name, token=token):
                expected = None if message is None else f'validation for "V" failed: [{validator.name}] {message}'
                self.assertEqual(rejection(validator, token, type=int), expected)

    def testSigns(self):
        self.assertIsNone(rejection(Positive(), "1", type=int))
        self.assertIsNotNone(rejection(Positive(), "0", type=int))
        self.assertIsNone(rejection(NonNegative(), "0", type=int))
        self.assertIsNotNone(rejection(NonNegative(), "-1", type=int))
        self.assertIsNone(rejection(Negative(), "-1", type=int))
        self.assertEqual(
            rejection(Negative(), "0", type=int),
            'validation for "V" failed: [Negative] value isn\'t negative'
        )


class TestCombinators(TestCase):
    """Behavioral tests for Not, Listify and custom validators."""

    def testNot(self):
        self.assertIsNone(rejection(Not(Contains("x")), "abc"))
        self.assertEqual(
            rejection(Not(Contains("x")), "xyz"),
            'validation for "V" failed: [Not(Contains)] failed'
        )

    def testListify(self):
        argument = ListArg("L", minimum=1, optional=2, validators=(Listify(MinLength(2)),))
        argument.match(Input(["ab", "cd"]), Data(), Mode.EXECUTE)
        with self.assertRaises(ValidationError) as context:
            argument.match(Input(["ab", "c"]), Data(), Mode.EXECUTE)
        self.assertEqual(
            str(context.exception),
            'validation for "L" failed: [MinLength] value must be at least 2 characters'
        )

    def testCustomValidator(self):
        def even(value, data):
            if value % 2:
                raise ValueError("value must be even")

        self.assertEqual(
            rejection(Validator(even, "Even"), "3", type=int),
            'validation for "V" failed: [Even] value must be even'
        )

    def testValidatorNeedsName(self):
        with self.assertRaises(ValueError):
            Validator(lambda value, data: None, " ")


class TestFileValidators(TestCase):
    """Behavioral tests for file validators and FileTransformer."""

    def setUp(self):
        self.directory = tempfile.TemporaryDirectory()
        self.addCleanup(self.directory.cleanup)
        with open(os.path.join(self.directory.name, "notes.txt"), "w") as file:
            file.write("")
        os.mkdir(os.path.join(self.directory.name, "docs"))
        self.data = Data(os=OS(cwd=self.directory.name))

    def testFileExists(self):
        self.assertIsNone(rejection(FileExists(), "notes.txt", data=self.data))
        self.assertEqual(
            rejection(FileExists(), "gone.txt", data=self.data),
            'validation for "V" failed: [FileExists] file "gone.txt" does not exist'
        )

    def testIsDir(self):
        self.assertIsNone(rejection(IsDir(), "docs", data=self.data))
        self.assertEqual(
            rejection(IsDir(), "notes.txt", data=self.data),
            'validation for "V" failed: [IsDir] argument "notes.txt" is a file'
        )

    def testIsFile(self):
        self.assertIsNone(rejection(IsFile(), "notes.txt", data=self.data))
        self.assertEqual(
            rejection(IsFile(), "docs", data=self.data),
            'validation for "V" failed: [IsFile] argument "docs" is a directory'
        )

    def testFileTransformer(self):
        data = Data(os=OS(cwd="/work"))
        Arg("PATH", transformer=FileTransformer()).match(Input(["src/../lib"]), data, Mode.EXECUTE)
        self.assertEqual(data["PATH"], "/work/lib")

    def testFileTransformerEach(self):
        data = Data(os=OS(cwd="/work"))
        argument = ListArg("PATHS", minimum=2, transformer=FileTransformer(each=True))
        argument.match(Input(["a", "/b"]), data, Mode.EXECUTE)
        self.assertEqual(data["PATHS"], ["/work/a", "/b"])

    def testTransformerNeedsCallable(self):
        with self.assertRaises(TypeError):
            Transformer("nope")


if __name__ == "__main__":
    unittest.main()
