# python
"""
Switch/option extraction behavioral tests.

Scope
- Validate every accepted form (--long, --no-long, -abc, --key=value, --key value,
  -k=value, key=value, key:value) and what is left over for positional arguments.
- Validate error reporting (switch given a value, option missing its value, bad
  values, missing required options) and multi-valued options.
- Validate that re-extracting the leftover extracts nothing more.
- Validate the correction hook for values that fail to parse.

Conventions
- Test method names follow CamelCase per project convention.
- Tokens are given already split, exactly as tokenize() would return them.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from quiver import Conversion, ErrorKind, Integer, Option, Switch, Text, completions, extract, unquote


SWITCHES = (
    Switch("verbose", "v", "verbose"),
    Switch("debug", "d"),
    Switch("force", "f", "force", negatable=False),
)
OPTIONS = (
    Option("key", Text()),
    Option("level", Integer(), minimum=1, maximum=10),
    Option("tags", Text(), multiple=True, distinct=True),
)


class TestExtract(TestCase):
    """Behavioral tests for extract()."""

    def testMixedLine(self):
        result = extract(["--verbose", "-df", "key=val", "hello world"], SWITCHES, OPTIONS)
        self.assertTrue(result.ok)
        self.assertEqual(dict(result.switches), {"verbose": True, "debug": True, "force": True})
        self.assertEqual(dict(result.options), {"key": "val"})
        self.assertEqual(result.leftover, ("hello world",))
        self.assertEqual(result.toggled, {"verbose", "debug", "force"})
        self.assertEqual(result.supplied, {"key"})

    def testSwitchDefaults(self):
        result = extract([], SWITCHES, OPTIONS)
        self.assertEqual(dict(result.switches), {"verbose": False, "debug": False, "force": False})
        self.assertEqual(dict(result.options), {})

    def testNegatedSwitch(self):
        result = extract(["--no-verbose"], (Switch("verbose", "v", "verbose", default=True),))
        self.assertIs(result.switches["verbose"], False)

    def testNonNegatableSwitchIsLeftOver(self):
        result = extract(["--no-force"], SWITCHES)
        self.assertEqual(result.leftover, ("--no-force",))
        self.assertEqual(result.unknown, ("--no-force",))

    def testLongFormsAreCaseInsensitive(self):
        self.assertTrue(extract(["--VERBOSE"], SWITCHES).switches["verbose"])

    def testCombinedShortsAreAllOrNothing(self):
        result = extract(["-vx"], SWITCHES)
        self.assertEqual(result.leftover, ("-vx",))
        self.assertFalse(result.switches["verbose"])

    def testNegativeNumbersAreLeftOver(self):
        result = extract(["-5", "-1.5"], SWITCHES, OPTIONS)
        self.assertEqual(result.leftover, ("-5", "-1.5"))
        self.assertEqual(result.unknown, ())

    def testOptionForms(self):
        for tokens in (["--level=3"], ["--level", "3"], ["-level=3"], ["level=3"], ["level:3"], ["LEVEL=3"]):
            with self.subTest(tokens=tokens):
                result = extract(tokens, SWITCHES, OPTIONS)
                self.assertEqual(result.options["level"], 3)
                self.assertEqual(result.leftover, ())

    def testEqualsWinsWhenFirst(self):
        result = extract(["key=a:b"], (), OPTIONS)
        self.assertEqual(result.options["key"], "a:b")

    def testColonWinsWhenFirst(self):
        result = extract(["key:a=b"], (), OPTIONS)
        self.assertEqual(result.options["key"], "a=b")

    def testLeadingSeparatorIsLeftOver(self):
        result = extract(["=x", ":a=b"], (), OPTIONS)
        self.assertEqual(result.leftover, ("=x", ":a=b"))

    def testUnknownKeysAreLeftOver(self):
        result = extract(["colour=red", "--colour=red"], SWITCHES, OPTIONS)
        self.assertEqual(result.leftover, ("colour=red", "--colour=red"))
        self.assertEqual(result.unknown, ("colour=red", "--colour=red"))

    def testQuotedValueIsUnquoted(self):
        self.assertEqual(extract(["key='quoted'"], (), OPTIONS).options["key"], "quoted")
        self.assertEqual(unquote('"a"'), "a")
        self.assertEqual(unquote('"a'), '"a')

    def testLastOccurrenceWins(self):
        self.assertEqual(extract(["level=2", "level=4"], (), OPTIONS).options["level"], 4)

    def testSwitchGivenAValue(self):
        result = extract(["--verbose=yes"], SWITCHES, OPTIONS)
        self.assertEqual(len(result.errors), 1)
        error = result.errors[0]
        self.assertIs(error.kind, ErrorKind.PARSING)
        self.assertEqual(error.message, "switch '--verbose' does not accept a value")
        self.assertEqual(error.argument, "verbose")

    def testOptionMissingItsValue(self):
        error, = extract(["--level"], (), OPTIONS).errors
        self.assertIs(error.kind, ErrorKind.USAGE)
        self.assertEqual(error.message, "option '--level' requires a value")

    def testInvalidOptionValue(self):
        error, = extract(["level=abc"], (), OPTIONS).errors
        self.assertIs(error.kind, ErrorKind.PARSING)
        self.assertEqual(error.message, "invalid value for option 'level': not an integer")
        self.assertEqual(error.input, "abc")

    def testRefusedOptionValue(self):
        error, = extract(["level=11"], (), OPTIONS).errors
        self.assertIs(error.kind, ErrorKind.VALIDATION)
        self.assertEqual(error.message, "must be at most 10 (got 11)")

    def testMultipleValues(self):
        result = extract(["tags=a, b,,c"], (), OPTIONS)
        self.assertEqual(result.options["tags"], ("a", "b", "c"))

    def testMultipleValuesDistinct(self):
        error, = extract(["tags=a,a"], (), OPTIONS).errors
        self.assertIs(error.kind, ErrorKind.VALIDATION)
        self.assertEqual(error.message, "invalid values for option 'tags': 'a' (duplicate value)")

    def testMultipleValuesCombineFailures(self):
        option = Option("levels", Integer(), multiple=True)
        error, = extract(["levels=1,x,y"], (), (option,)).errors
        self.assertEqual(error.message, "invalid values for option 'levels': 'x' (not an integer); 'y' (not an integer)")

    def testRequiredOptionMissing(self):
        error, = extract([], (), (Option("world", required=True),)).errors
        self.assertIs(error.kind, ErrorKind.USAGE)
        self.assertEqual(error.message, "required option 'world' is missing")
        self.assertEqual(error.argument, "world")

    def testOptionDefault(self):
        result = extract([], (), (Option("level", Integer(), default=5),))
        self.assertEqual(result.options["level"], 5)
        self.assertEqual(result.supplied, frozenset())

    def testRaisingTransformerIsInternalError(self):
        option = Option("key", transformers=[lambda value: 1 / 0])
        error, = extract(["key=x"], (), (option,)).errors
        self.assertIs(error.kind, ErrorKind.INTERNAL_ERROR)

    def testCorrectionReplacesFailedValue(self):
        def correct(option, raw):
            return Conversion.accept(len(raw)) if option.name == "level" else None
        result = extract(["level=abc"], (), OPTIONS, correct)
        self.assertTrue(result.ok)
        self.assertEqual(result.options["level"], 3)
        self.assertEqual(result.supplied, {"level"})

    def testDeclinedCorrectionKeepsTheError(self):
        error, = extract(["level=abc"], (), OPTIONS, lambda option, raw: None).errors
        self.assertIs(error.kind, ErrorKind.PARSING)
        self.assertEqual(error.input, "abc")

    def testCorrectedValueIsStillValidated(self):
        error, = extract(["level=abc"], (), OPTIONS, lambda option, raw: Conversion.accept(50)).errors
        self.assertIs(error.kind, ErrorKind.VALIDATION)

    def testReextractingLeftoverIsIdempotent(self):
        tokens = ["--verbose", "extra", "-q", "colour=red", "-5", "key=v", "--force", "last words"]
        first = extract(tokens, SWITCHES, OPTIONS)
        second = extract(first.leftover, SWITCHES, OPTIONS)
        self.assertEqual(second.leftover, first.leftover)
        self.assertEqual(second.toggled, frozenset())
        self.assertEqual(second.supplied, frozenset())

    def testRejectsBadArguments(self):
        with self.assertRaises(TypeError):
            extract("--verbose", SWITCHES)
        with self.assertRaises(TypeError):
            extract([], OPTIONS)
        with self.assertRaises(TypeError):
            extract([], SWITCHES, OPTIONS, "correct")


class TestCompletions(TestCase):
    """Behavioral tests for completions()."""

    def testLongForms(self):
        self.assertEqual(completions("--v", SWITCHES, OPTIONS), ("--verbose",))
        self.assertEqual(completions("--no", SWITCHES, OPTIONS), ("--no-verbose",))

    def testOptionForms(self):
        self.assertEqual(completions("le", SWITCHES, OPTIONS), ("level=",))
        self.assertIn("--level=", completions("--l", SWITCHES, OPTIONS))

    def testShortForms(self):
        self.assertEqual(completions("-d", SWITCHES), ("-d",))


if __name__ == "__main__":
    unittest.main()
