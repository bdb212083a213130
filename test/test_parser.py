"""
Parser behavioral tests (dispatch, policies, positionals, conversions).

Scope
- Validate classification of exact, inline and positional tokens.
- Validate missing-parameter and unknown-token policies (abort/report/skip).
- Validate that conversion failures always propagate and stop the scan.
- Validate registry locking during a run and parser lifecycle.

Conventions
- Test method names follow CamelCase per project convention.
- Reported faults are captured by patching the module console.
"""

from __future__ import annotations

import decimal
import io
import itertools
import unittest
from unittest import TestCase, mock

from rich.console import Console

from argbind import (
    Parser,
    Outcome,
    Slot,
    Binder,
    WindowsConvention,
    MissingParameterPolicy,
    UnknownTokenPolicy,
    MissingParameterError,
    UnrecognizedTokenError,
    ConversionError,
    FaultCode,
    collect,
)
from argbind.utils import Unset


def captured():
    """Patch the faults console with an in-memory one; returns (patcher, stream)."""
    stream = io.StringIO()
    console = Console(file=stream, width=200, color_system=None)
    return mock.patch("argbind.faults.console", console), stream


class TestClassification(TestCase):
    def setUp(self) -> None:
        self.parser = Parser()
        self.verbose = Slot(False)
        self.debug = Slot(False)
        self.count = Slot(1)
        self.name = Slot("anonymous")
        self.parser.add_presence_flag("verbose", self.verbose)
        self.parser.add_presence_flag("d", self.debug)
        self.parser.add_valued_flag("count", self.count, int)
        self.parser.add_valued_flag("name", self.name)

    def testPresenceFlagsAnywhere(self):
        for argv in (
            ["prog", "--verbose", "-d"],
            ["prog", "-d", "--verbose"],
        ):
            verbose, debug = Slot(False), Slot(False)
            parser = Parser()
            parser.add_presence_flag("verbose", verbose)
            parser.add_presence_flag("d", debug)
            self.assertTrue(parser.run(argv).ok)
            self.assertIs(verbose.value, True)
            self.assertIs(debug.value, True)

    def testAbsentPresenceFlagKeepsDefault(self):
        self.parser.run(["prog", "-d"])
        self.assertIs(self.verbose.value, False)
        self.assertIs(self.debug.value, True)

    def testValuedFlagConsumesFollowingToken(self):
        outcome = self.parser.run(["prog", "--count", "5", "--name", "ada"])
        self.assertEqual(self.count.value, 5)
        self.assertEqual(self.name.value, "ada")
        self.assertEqual(outcome.index, 5)

    def testFollowingTokenIsNeverReclassified(self):
        self.parser.run(["prog", "--name", "--verbose"])
        self.assertEqual(self.name.value, "--verbose")
        self.assertIs(self.verbose.value, False)

    def testInlineFormEquivalence(self):
        spaced, inline = Slot(), Slot()
        first, second = Parser(), Parser()
        first.add_valued_flag("count", spaced, int)
        second.add_valued_flag("count", inline, int)
        first.run(["prog", "--count", "5"])
        second.run(["prog", "--count=5"])
        self.assertEqual(spaced, inline)
        self.assertEqual(inline.value, 5)

    def testInlineShortForm(self):
        slot = Slot()
        self.parser.add_valued_flag("n", slot, int)
        self.parser.run(["prog", "-n=3"])
        self.assertEqual(slot.value, 3)

    def testInlineEmptyValue(self):
        self.parser.run(["prog", "--name="])
        self.assertEqual(self.name.value, "")

    def testRepeatedValuedFlagKeepsLastValue(self):
        self.parser.run(["prog", "--count", "1", "--count=2", "--count", "3"])
        self.assertEqual(self.count.value, 3)

    def testRegistrationOrderDoesNotMatter(self):
        argv = ["prog", "-a", "--bee", "7", "-a"]
        results = []
        for order in itertools.permutations(("a", "bee")):
            a, bee = Slot(False), Slot(0)
            parser = Parser()
            for name in order:
                if name == "a":
                    parser.add_presence_flag("a", a)
                else:
                    parser.add_valued_flag("bee", bee, int)
            parser.run(argv)
            results.append((a.value, bee.value))
        self.assertEqual(results[0], results[1])
        self.assertEqual(results[0], (True, 7))

    def testStringArgvIsSplitShellStyle(self):
        self.parser.run("prog --name 'ada lovelace' --count=2")
        self.assertEqual(self.name.value, "ada lovelace")
        self.assertEqual(self.count.value, 2)

    def testArgcLimitsTheScan(self):
        self.parser.run(["prog", "--verbose", "-d"], 2)
        self.assertIs(self.verbose.value, True)
        self.assertIs(self.debug.value, False)

    def testInvalidArgcRejected(self):
        with self.assertRaises(ValueError):
            self.parser.run(["prog"], 3)
        with self.assertRaises(TypeError):
            self.parser.run(["prog"], "1")

    def testEmptyArgvRejected(self):
        with self.assertRaises(ValueError):
            self.parser.run([])

    def testNonStringTokenRejected(self):
        with self.assertRaises(TypeError):
            self.parser.run(["prog", 5])

    def testWindowsConvention(self):
        count, verbose = Slot(), Slot(False)
        parser = Parser(WindowsConvention())
        parser.add_valued_flag("count", count, int)
        parser.add_presence_flag("v", verbose)
        parser.run(["prog", "/count:5", "/v"])
        self.assertEqual(count.value, 5)
        self.assertIs(verbose.value, True)
        parser.run(["prog", "/count", "6"])
        self.assertEqual(count.value, 6)

    def testConventionKeyword(self):
        count = Slot()
        parser = Parser(convention=WindowsConvention())
        parser.add_valued_flag("count", count, int)
        self.assertIsInstance(parser.convention, WindowsConvention)
        parser.run(["prog", "/count:5"])
        self.assertEqual(count.value, 5)

    def testParsersWithDifferentConventionsCoexist(self):
        unix, windows = Slot(False), Slot(False)
        first, second = Parser(), Parser(WindowsConvention())
        first.add_presence_flag("x", unix)
        second.add_presence_flag("x", windows)
        first.run(["prog", "-x"])
        second.run(["prog", "/x"])
        self.assertTrue(unix.value and windows.value)


class TestPositionals(TestCase):
    def testPositionalCapture(self):
        verbose, into = Slot(False), []
        parser = Parser()
        parser.add_presence_flag("verbose", verbose)
        parser.collect_positionals(into)
        outcome = parser.run(["prog", "--verbose", "file1.txt", "file2.txt"])
        self.assertEqual(into, ["prog", "file1.txt", "file2.txt"])
        self.assertEqual(outcome.positionals, ("prog", "file1.txt", "file2.txt"))
        self.assertIs(verbose.value, True)

    def testPositionalListIsReplacedInPlace(self):
        into = ["stale"]
        parser = Parser()
        parser.collect_positionals(into)
        parser.run(["prog", "a"])
        self.assertEqual(into, ["prog", "a"])

    def testInvocationNameIsPreservedVerbatim(self):
        into = []
        parser = Parser()
        parser.collect_positionals(into)
        parser.run(["/usr/bin/prog"])
        self.assertEqual(into, ["/usr/bin/prog"])

    def testUndeclaredInlineIsNeverPositional(self):
        into = []
        parser = Parser()
        parser.collect_positionals(into)
        with self.assertRaises(UnrecognizedTokenError) as context:
            parser.run(["prog", "a.txt", "--color=red"])
        self.assertEqual(context.exception.token, "--color=red")
        self.assertEqual(context.exception.index, 2)
        self.assertEqual(into, [])

    def testPresenceFlagInInlineFormIsUnrecognized(self):
        parser = Parser()
        parser.add_presence_flag("verbose", Slot(False))
        with self.assertRaises(UnrecognizedTokenError):
            parser.run(["prog", "--verbose=yes"])

    def testPlainTokenWithoutCollectionIsUnrecognized(self):
        with self.assertRaises(UnrecognizedTokenError):
            Parser().run(["prog", "file.txt"])

    def testPlainKeyValueIsPositional(self):
        into = []
        parser = Parser()
        parser.add_valued_flag("key", Slot())
        parser.collect_positionals(into)
        outcome = parser.run(["prog", "key=value", "a=b=c"])
        self.assertTrue(outcome.ok)
        self.assertEqual(into, ["prog", "key=value", "a=b=c"])

    def testCollectionRequiresMutableSequence(self):
        with self.assertRaises(TypeError):
            Parser().collect_positionals(("prog",))


class TestMissingParameter(TestCase):
    def build(self, policy):
        parser = Parser(on_missing=policy)
        self.verbose, self.count, self.late = Slot(False), Slot(1), Slot(False)
        parser.add_presence_flag("verbose", self.verbose)
        parser.add_valued_flag("count", self.count, int)
        parser.add_presence_flag("late", self.late)
        return parser

    def testAbortRaises(self):
        parser = self.build(MissingParameterPolicy.ABORT)
        with self.assertRaises(MissingParameterError) as context:
            parser.run(["prog", "--verbose", "--count"])
        self.assertEqual(context.exception.code, FaultCode.MISSING_PARAMETER)
        self.assertEqual(context.exception.token, "--count")
        self.assertIs(self.verbose.value, True)
        self.assertEqual(self.count.value, 1)

    def testReportStopsAndKeepsEarlierBindings(self):
        parser = self.build(MissingParameterPolicy.REPORT)
        into = ["untouched"]
        parser.collect_positionals(into)
        patcher, stream = captured()
        with patcher:
            outcome = parser.run(["prog", "--verbose", "--count"])
        self.assertFalse(outcome.ok)
        self.assertFalse(outcome)
        self.assertIsInstance(outcome.fault, MissingParameterError)
        self.assertEqual(outcome.index, 2)
        self.assertIs(self.verbose.value, True)
        self.assertEqual(self.count.value, 1)
        self.assertIs(self.late.value, False)
        self.assertEqual(into, ["untouched"])
        self.assertIn("missing its parameter", stream.getvalue())
        self.assertIn("--count", stream.getvalue())


class TestUnknownTokens(TestCase):
    def testSkipPolicyContinues(self):
        verbose = Slot(False)
        parser = Parser(on_unknown=UnknownTokenPolicy.SKIP)
        parser.add_presence_flag("verbose", verbose)
        outcome = parser.run(["prog", "--bogus", "stray", "--verbose"])
        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.skipped, ("--bogus", "stray"))
        self.assertIs(verbose.value, True)

    def testAbortPolicyRaisesWithSuggestion(self):
        parser = Parser()
        parser.add_valued_flag("count", Slot(), int)
        with self.assertRaises(UnrecognizedTokenError) as context:
            parser.run(["prog", "--cont=3"])
        self.assertEqual(context.exception.code, FaultCode.UNRECOGNIZED_TOKEN)
        self.assertIn("--count", context.exception.options["suggestions"])

    def testReportPolicyStopsScan(self):
        late = Slot(False)
        parser = Parser(on_unknown=UnknownTokenPolicy.REPORT, colorful=False)
        parser.add_presence_flag("late", late)
        patcher, stream = captured()
        with patcher:
            outcome = parser.run(["prog", "--bogus", "--late"])
        self.assertIsInstance(outcome.fault, UnrecognizedTokenError)
        self.assertEqual(outcome.index, 1)
        self.assertIs(late.value, False)
        self.assertIn("unrecognized argument '--bogus' at first position", stream.getvalue())

    def testCustomHandlerSeesContext(self):
        seen = []

        def handler(positionals, token):
            seen.append((positionals, token))
            return UnknownTokenPolicy.SKIP

        parser = Parser(on_unknown=handler)
        parser.collect_positionals(into := [])
        parser.run(["prog", "a", "--x=1", "b"])
        self.assertEqual(seen, [(("prog", "a"), "--x=1")])
        self.assertEqual(into, ["prog", "a", "b"])

    def testCollectHandler(self):
        strays = []
        parser = Parser(on_unknown=collect(strays))
        parser.run(["prog", "one", "--two"])
        self.assertEqual(strays, ["one", "--two"])

    def testHandlerMustReturnPolicy(self):
        parser = Parser(on_unknown=lambda positionals, token: "skip")
        with self.assertRaises(TypeError):
            parser.run(["prog", "x"])

    def testHandlerCannotMutateRegistry(self):
        def handler(positionals, token):
            parser.add_presence_flag("sneaky", Slot(False))
            return UnknownTokenPolicy.SKIP

        parser = Parser(on_unknown=handler)
        with self.assertRaises(RuntimeError):
            parser.run(["prog", "x"])
        self.assertFalse(parser.registry.locked)

    def testInvalidPolicyRejected(self):
        with self.assertRaises(TypeError):
            Parser(on_unknown="skip")
        with self.assertRaises(TypeError):
            Parser(on_missing="abort")


class TestConversion(TestCase):
    def testConversionFailureAbortsImmediately(self):
        count, late = Slot(1), Slot(False)
        parser = Parser(on_missing=MissingParameterPolicy.REPORT, on_unknown=UnknownTokenPolicy.SKIP)
        parser.add_valued_flag("count", count, int)
        parser.add_presence_flag("late", late)
        with self.assertRaises(ConversionError) as context:
            parser.run(["prog", "--count", "five", "--late"])
        self.assertEqual(context.exception.code, FaultCode.CONVERSION_FAILURE)
        self.assertEqual(context.exception.options["value"], "five")
        self.assertIsInstance(context.exception.__cause__, ValueError)
        self.assertEqual(count.value, 1)
        self.assertIs(late.value, False)

    def testConversionErrorIsValueError(self):
        parser = Parser()
        parser.add_valued_flag("ratio", Slot(), float)
        with self.assertRaises(ValueError):
            parser.run(["prog", "--ratio=abc"])

    def testCustomConverter(self):
        tags = Slot(())
        parser = Parser()
        parser.add_custom_valued_flag("tags", tags, lambda text: tuple(text.split(",")))
        parser.run(["prog", "--tags", "a,b,c"])
        self.assertEqual(tags.value, ("a", "b", "c"))

    def testCustomBinderSubclass(self):
        class Appender(Binder):
            def __call__(self, raw, /):
                self.target.value.append(raw)

        into = Slot([])
        parser = Parser()
        parser.add_custom_valued_flag("include", into, Appender)
        parser.run(["prog", "--include", "a", "--include=b"])
        self.assertEqual(into.value, ["a", "b"])

    def testCustomBinderSubclassAlwaysTakesParameter(self):
        class Toggle(Binder):
            def __call__(self, raw=Unset, /):
                self.target.value = raw

        parser = Parser()
        parser.add_custom_valued_flag("toggle", Slot(), Toggle)
        self.assertFalse(hasattr(Binder, "takes_value"))
        self.assertTrue(parser.registry.requires_value("--toggle"))
        with self.assertRaises(MissingParameterError):
            parser.run(["prog", "--toggle"])

    def testCustomConverterFailureBecomesConversionError(self):
        def positive(text):
            if (number := int(text)) <= 0:
                raise ValueError("must be positive")
            return number

        parser = Parser()
        parser.add_custom_valued_flag("n", Slot(), positive)
        with self.assertRaises(ConversionError):
            parser.run(["prog", "-n", "-3"])

    def testLookupConverterFailureBecomesConversionError(self):
        level = Slot(1)
        parser = Parser()
        parser.add_custom_valued_flag("level", level, {"low": 1, "high": 2}.__getitem__)
        parser.run(["prog", "--level", "high"])
        self.assertEqual(level.value, 2)
        with self.assertRaises(ConversionError) as context:
            parser.run(["prog", "--level", "mid"])
        self.assertIsInstance(context.exception.__cause__, KeyError)
        self.assertEqual(context.exception.token, "--level")
        self.assertEqual(level.value, 2)

    def testArithmeticConverterFailureBecomesConversionError(self):
        parser = Parser()
        parser.add_custom_valued_flag("amount", Slot(), decimal.Decimal)
        with self.assertRaises(ConversionError) as context:
            parser.run(["prog", "--amount=lots"])
        self.assertIsInstance(context.exception.__cause__, ArithmeticError)


class TestLifecycle(TestCase):
    def testRegistrationDuringRunRejected(self):
        parser = Parser()

        def converter(text):
            parser.add_presence_flag("late", Slot(False))
            return text

        parser.add_custom_valued_flag("name", Slot(), converter)
        with self.assertRaises(RuntimeError):
            parser.run(["prog", "--name", "x"])
        self.assertFalse(parser.registry.locked)

    def testReleasedParserCannotRun(self):
        with Parser() as parser:
            parser.add_presence_flag("v", Slot(False))
        self.assertTrue(parser.registry.released)
        with self.assertRaises(RuntimeError):
            parser.run(["prog"])

    def testParserCanRunTwice(self):
        count = Slot(0)
        parser = Parser()
        parser.add_valued_flag("count", count, int)
        parser.run(["prog", "--count", "1"])
        parser.run(["prog", "--count", "2"])
        self.assertEqual(count.value, 2)

    def testOutcomeShape(self):
        outcome = Parser().run(["prog"])
        self.assertIsInstance(outcome, Outcome)
        self.assertEqual(outcome, Outcome(None, (), (), 1))

    def testRepr(self):
        parser = Parser()
        parser.add_presence_flag("v", Slot(False))
        self.assertIn("'-v'", repr(parser))


if __name__ == "__main__":
    unittest.main()
