# python
"""
Arguments module behavioral tests (matching pipeline, faults, complete-for-execute).

Scope
- Validate spec construction and metadata sanitation (names, arity, options).
- Validate the execute pipeline: arity, conversion, validators, transformer,
  default and setter, in that order.
- Validate the completion mode of the same matching routine.
- Validate complete-for-execute resolution and its three faults.
- Validate breakers and MapArg.

Conventions
- Test method names follow CamelCase per project convention.
- Arguments are matched directly on an Input with a fresh Data.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from cordage import (
    UNBOUNDED,
    Arg,
    Argument,
    CompleteForExecute,
    CompleterFromFunc,
    Completion,
    Data,
    Input,
    ListArg,
    MapArg,
    MinLength,
    Mode,
    OptionalArg,
    SimpleCompleter,
    SimpleDistinctCompleter,
    Transformer,
    list_until_symbol,
)
from cordage.faults import (
    AmbiguousCompletionError,
    CompletionFetchError,
    ConversionError,
    DefaultError,
    NilCompletionError,
    NotEnoughArgsError,
    TransformError,
    TransformLengthError,
    ValidationError,
)


def match(argument, tokens, mode=Mode.EXECUTE, data=None):
    data = Data() if data is None else data
    input = Input(tokens)
    result = argument.match(input, data, mode)
    return data, input, result


class TestArgumentSpec(TestCase):
    """Behavioral tests for construction and sanitation."""

    def testTypenameFromClassName(self):
        self.assertEqual(Arg.__typename__, "arg")
        self.assertEqual(ListArg.__typename__, "list-arg")
        self.assertEqual(OptionalArg.__typename__, "optional-arg")

    def testReprShowsDisplayableFields(self):
        self.assertEqual(repr(Arg("S")), "arg(name='S', descr=None, minimum=1, optional=0, listed=False)")

    def testNameIsTrimmed(self):
        self.assertEqual(Arg("  S  ").name, "S")

    def testEmptyNameRejected(self):
        with self.assertRaises(ValueError):
            Arg(" ")

    def testNonStringDescrRejected(self):
        with self.assertRaises(TypeError):
            Arg("S", 3)

    def testSingleValueArityRejected(self):
        with self.assertRaises(ValueError):
            Argument("S", minimum=2)

    def testNegativeArityRejected(self):
        with self.assertRaises(ValueError):
            ListArg("L", minimum=-1)

    def testDefaultAndFactoryExclusive(self):
        with self.assertRaises(TypeError):
            OptionalArg("O", default="a", default_factory=lambda data: "b")

    def testValidatorsMustBeValidators(self):
        with self.assertRaises(TypeError):
            Arg("S", validators=(len,))

    def testCallableTransformerIsWrapped(self):
        self.assertIsInstance(Arg("S", transformer=lambda value, data: value).transformer, Transformer)

    def testCallableCompleterIsWrapped(self):
        self.assertIsInstance(Arg("S", completer=lambda value, data: None).completer, CompleterFromFunc)

    def testCompleteForExecuteTrueIsDefaultPolicy(self):
        self.assertIsInstance(Arg("S", complete_for_execute=True).complete_for_execute, CompleteForExecute)

    def testMirroredContainersAreCopies(self):
        argument = Arg("S", validators=(MinLength(1),))
        argument.validators.clear()
        self.assertEqual(len(argument.validators), 1)


class TestArgumentExecute(TestCase):
    """Behavioral tests for the execute pipeline."""

    def testSingleValueStored(self):
        data, input, _ = match(Arg("S"), ["abc", "def"])
        self.assertEqual(data["S"], "abc")
        self.assertEqual(input.remaining_values(), ["def"])

    def testUnboundedListKeepsLengthAndOrder(self):
        tokens = ["c", "a", "b", "a", "z"]
        data, input, _ = match(ListArg("SL", minimum=2, optional=UNBOUNDED), tokens)
        self.assertEqual(data["SL"], tokens)
        self.assertTrue(input.fully_processed())

    def testBoundedListStopsAtBound(self):
        data, input, _ = match(ListArg("SL", minimum=1, optional=1), ["a", "b", "c"])
        self.assertEqual(data["SL"], ["a", "b"])
        self.assertEqual(input.remaining_values(), ["c"])

    def testNotEnoughKeepsPartialValues(self):
        data = Data()
        with self.assertRaises(NotEnoughArgsError) as context:
            match(ListArg("SL", minimum=3, optional=2), ["a", "b"], data=data)
        self.assertEqual(str(context.exception), 'Argument "SL" requires at least 3 arguments, got 2')
        self.assertEqual(data["SL"], ["a", "b"])

    def testNotEnoughPartialValuesAreConvertedWhenPossible(self):
        data = Data()
        with self.assertRaises(NotEnoughArgsError):
            match(ListArg("IL", minimum=2, type=int), ["7"], data=data)
        self.assertEqual(data["IL"], [7])

    def testConversionFailureBeatsArity(self):
        data = Data()
        with self.assertRaises(ConversionError) as context:
            match(ListArg("L", type=int, minimum=3), ["1", "x"], data=data)
        self.assertEqual(str(context.exception), "invalid literal for int() with base 10: 'x'")
        self.assertNotIn("L", data)

    def testNotEnoughSingularMessage(self):
        data = Data()
        with self.assertRaises(NotEnoughArgsError) as context:
            match(Arg("S"), [], data=data)
        self.assertEqual(str(context.exception), 'Argument "S" requires at least 1 argument, got 0')
        self.assertNotIn("S", data)

    def testConversionFailure(self):
        with self.assertRaises(ConversionError) as context:
            match(Arg("I", type=int), ["x"])
        self.assertEqual(str(context.exception), "invalid literal for int() with base 10: 'x'")

    def testListConversion(self):
        data, _, _ = match(ListArg("FL", minimum=2, type=float), ["1.5", "2"])
        self.assertEqual(data["FL"], [1.5, 2.0])

    def testValidationFailure(self):
        with self.assertRaises(ValidationError) as context:
            match(Arg("S", validators=(MinLength(3),)), ["ab"])
        self.assertEqual(
            str(context.exception),
            'validation for "S" failed: [MinLength] value must be at least 3 characters'
        )

    def testTransformerApplied(self):
        data, _, _ = match(Arg("S", transformer=lambda value, data: value.upper()), ["abc"])
        self.assertEqual(data["S"], "ABC")

    def testElementwiseTransformer(self):
        argument = ListArg("L", minimum=2, transformer=Transformer.elementwise(lambda value, data: value * 2))
        data, _, _ = match(argument, ["a", "b"])
        self.assertEqual(data["L"], ["aa", "bb"])

    def testTransformerLengthMismatchIsFatal(self):
        argument = ListArg("L", minimum=2, transformer=lambda value, data: value[:1])
        with self.assertRaises(TransformLengthError) as context:
            match(argument, ["a", "b"])
        self.assertEqual(
            str(context.exception),
            "[L] Transformers must return a value that is the same length as the original arguments"
        )

    def testTransformerFailure(self):
        def explode(value, data):
            raise RuntimeError("boom")

        with self.assertRaises(TransformError) as context:
            match(Arg("S", transformer=explode), ["a"])
        self.assertEqual(str(context.exception), "Custom transformer failed: boom")

    def testOptionalDefault(self):
        data, _, _ = match(OptionalArg("O", default="fallback"), [])
        self.assertEqual(data["O"], "fallback")

    def testOptionalDefaultFactory(self):
        data = Data({"base": 2})
        match(OptionalArg("O", type=int, default_factory=lambda data: data["base"] * 21), [], data=data)
        self.assertEqual(data["O"], 42)

    def testDefaultFactoryFailure(self):
        def broken(data):
            raise LookupError("nope")

        with self.assertRaises(DefaultError) as context:
            match(OptionalArg("O", default_factory=broken), [])
        self.assertEqual(str(context.exception), "failed to get default: nope")

    def testRequiredArgumentIgnoresDefault(self):
        with self.assertRaises(NotEnoughArgsError):
            match(Arg("S", default="never"), [])

    def testOptionalWithoutDefaultStoresNothing(self):
        data, _, _ = match(OptionalArg("O"), [])
        self.assertNotIn("O", data)

    def testSetterReplacesStore(self):
        data, _, _ = match(Arg("S", setter=lambda value, data: data.set("other", value + "!")), ["a"])
        self.assertNotIn("S", data)
        self.assertEqual(data["other"], "a!")

    def testValueAccessors(self):
        argument = Arg("S")
        data, _, _ = match(argument, ["v"])
        self.assertTrue(argument.provided(data))
        self.assertEqual(argument.get(data), "v")
        self.assertEqual(Arg("T").get_or_default(data, "d"), "d")


class TestListBreakers(TestCase):
    """Behavioral tests for sentinel-terminated lists."""

    def testSentinelListLeavesRestForNextArgument(self):
        first = ListArg("FIRST", minimum=1, optional=UNBOUNDED, breakers=(list_until_symbol("ghi"),))
        second = ListArg("SECOND", minimum=1, optional=UNBOUNDED)
        data = Data()
        input = Input(["abc", "def", "ghi", "jkl"])
        first.match(input, data)
        self.assertEqual(input.remaining_values(), ["ghi", "jkl"])
        second.match(input, data)
        self.assertEqual(data["FIRST"], ["abc", "def"])
        self.assertEqual(data["SECOND"], ["ghi", "jkl"])

    def testSentinelBeforeMinimumFails(self):
        argument = ListArg("L", minimum=2, optional=UNBOUNDED, breakers=(list_until_symbol("|"),))
        with self.assertRaises(NotEnoughArgsError) as context:
            match(argument, ["a", "|", "b"])
        self.assertEqual(str(context.exception), 'Argument "L" requires at least 2 arguments, got 1')


class TestMapArg(TestCase):
    """Behavioral tests for MapArg."""

    def testMappedValueStored(self):
        data, _, _ = match(MapArg("M", "pick one", {"one": 1, "two": 2}), ["two"])
        self.assertEqual(data["M"], 2)

    def testUnknownKeyRejected(self):
        with self.assertRaises(ValidationError) as context:
            match(MapArg("M", "pick one", {"b": 2, "a": 1}), ["c"])
        self.assertEqual(
            str(context.exception),
            "validation for \"M\" failed: [MapArg] key (c) is not in map; expected one of ['a', 'b']"
        )

    def testAllowMissingStoresNone(self):
        data, _, _ = match(MapArg("M", "pick one", {"a": 1}, allow_missing=True), ["zzz"])
        self.assertIsNone(data["M"])

    def testKeysComplete(self):
        _, _, completion = match(MapArg("M", "pick one", {"beta": 2, "alpha": 1}), ["a"], Mode.COMPLETE)
        self.assertEqual(completion.process("a"), ["alpha"])


class TestArgumentComplete(TestCase):
    """Behavioral tests for the completion mode of match()."""

    def testLastTokenIsCompleted(self):
        argument = Arg("S", completer=SimpleCompleter("abc", "abd", "x"))
        data, _, completion = match(argument, ["ab"], Mode.COMPLETE)
        self.assertEqual(completion.process("ab"), ["abc", "abd"])
        self.assertEqual(data["S"], "ab")

    def testCompletedTokensPassThrough(self):
        argument = Arg("S", completer=SimpleCompleter("abc"))
        data, input, completion = match(argument, ["abc", "next"], Mode.COMPLETE)
        self.assertIsNone(completion)
        self.assertEqual(data["S"], "abc")
        self.assertEqual(input.remaining_values(), ["next"])

    def testNoCompleterGivesEmptyCompletion(self):
        _, _, completion = match(Arg("S"), ["a"], Mode.COMPLETE)
        self.assertEqual(completion, Completion())

    def testUnconvertibleLastTokenStillCompletes(self):
        argument = Arg("I", type=int, completer=SimpleCompleter("12", "13"))
        data, _, completion = match(argument, ["1"], Mode.COMPLETE)
        self.assertEqual(completion.process("1"), ["12", "13"])
        _, _, completion = match(argument, ["x"], Mode.COMPLETE)
        self.assertEqual(completion.process("x"), [])

    def testUnconvertibleEarlierTokenFails(self):
        with self.assertRaises(ConversionError):
            match(Arg("I", type=int), ["x", "y"], Mode.COMPLETE)

    def testShortListCompletesMissingValues(self):
        argument = ListArg("L", minimum=3, completer=SimpleDistinctCompleter("a", "b", "c"))
        data, _, completion = match(argument, ["a", ""], Mode.COMPLETE)
        self.assertEqual(completion.process(""), ["b", "c"])
        self.assertEqual(data["L"], ["a", ""])

    def testValidatorsSkippedWhileCompleting(self):
        argument = Arg("S", validators=(MinLength(10),), completer=SimpleCompleter("short"))
        data, _, _ = match(argument, ["sh", "more"], Mode.COMPLETE)
        self.assertEqual(data["S"], "sh")


class TestCompleteForExecute(TestCase):
    """Behavioral tests for complete-for-execute resolution."""

    candidates = SimpleCompleter("Hello", "Hello!", "HelloThere")

    def testUniquePrefixResolves(self):
        data, _, _ = match(Arg("S", completer=self.candidates, complete_for_execute=True), ["HelloT"])
        self.assertEqual(data["S"], "HelloThere")

    def testAmbiguousPrefixFails(self):
        with self.assertRaises(AmbiguousCompletionError) as context:
            match(Arg("S", completer=self.candidates, complete_for_execute=True), ["Hello"])
        self.assertEqual(
            str(context.exception),
            "requires exactly one suggestion to be returned for \"S\", got 3: ['Hello', 'Hello!', 'HelloThere']"
        )

    def testExactMatchResolvesToRawToken(self):
        argument = Arg("S", completer=self.candidates, complete_for_execute=CompleteForExecute(exact_match=True))
        data, _, _ = match(argument, ["Hello"])
        self.assertEqual(data["S"], "Hello")

    def testNoCandidateFails(self):
        with self.assertRaises(NilCompletionError) as context:
            match(Arg("S", completer=self.candidates, complete_for_execute=True), ["Bye"])
        self.assertEqual(str(context.exception), 'nil completion returned for "S"')

    def testMissingCompleterFails(self):
        with self.assertRaises(NilCompletionError):
            match(Arg("S", complete_for_execute=True), ["a"])

    def testCompleterFailure(self):
        def broken(value, data):
            raise OSError("disk on fire")

        with self.assertRaises(CompletionFetchError) as context:
            match(Arg("S", completer=broken, complete_for_execute=True), ["a"])
        self.assertEqual(str(context.exception), 'failed to fetch completion for "S": disk on fire')

    def testBestEffortKeepsRawToken(self):
        argument = Arg("S", completer=self.candidates, complete_for_execute=CompleteForExecute(best_effort=True))
        data, _, _ = match(argument, ["Hello"])
        self.assertEqual(data["S"], "Hello")
        data, _, _ = match(argument, ["HelloT"])
        self.assertEqual(data["S"], "HelloThere")

    def testCompleterSeesFlagDuringResolution(self):
        seen = []

        def spy(value, data):
            seen.append(data.complete_for_execute)
            return Completion(["value"])

        data, _, _ = match(Arg("S", completer=spy, complete_for_execute=True), ["v"])
        self.assertEqual(seen, [True])
        self.assertFalse(data.complete_for_execute)

    def testListSlotsResolveIndependently(self):
        argument = ListArg(
            "L",
            minimum=2,
            completer=SimpleDistinctCompleter("alpha", "beta", "bravo"),
            complete_for_execute=True
        )
        data, _, _ = match(argument, ["a", "br"])
        self.assertEqual(data["L"], ["alpha", "bravo"])

    def testResolvedValueReplacesToken(self):
        argument = ListArg(
            "L",
            minimum=2,
            completer=SimpleDistinctCompleter("alpha", "beta", "bravo"),
            complete_for_execute=True
        )
        _, input, _ = match(argument, ["a", "br", "rest"])
        self.assertEqual(input.used(), ["alpha", "bravo"])
        self.assertEqual(input.remaining_values(), ["rest"])

    def testResolutionRunsBeforeValidation(self):
        argument = Arg(
            "S",
            completer=self.candidates,
            validators=(MinLength(7),),
            complete_for_execute=True
        )
        data, _, _ = match(argument, ["HelloT"])
        self.assertEqual(data["S"], "HelloThere")


if __name__ == "__main__":
    unittest.main()
