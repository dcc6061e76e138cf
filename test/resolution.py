# python
"""
Resolver behavioral tests (end to end, from a raw line to an outcome).

Scope
- Validate the positional state machine: required/optional arguments, defaults, greedy
  tails, conditions, aliases and capability gates.
- Validate the error policies (fail-fast and collect-all), suggestions and auto-correction.
- Validate access checks (command capability, interactive sessions, guards) and their order.
- Validate cross checks, internal errors from caller-supplied code, metrics, partial
  resolution, completion and signature validation.

Conventions
- Test method names follow CamelCase per project convention.
- Lines are written the way a user would type them; resolve() tokenizes them.
"""

from __future__ import annotations

import unittest
from unittest import TestCase, mock

from rich.console import Console

from quiver import (
    Argument,
    Choice,
    ErrorKind,
    Guard,
    Integer,
    Option,
    ParseMetrics,
    ParseOptions,
    PartialParseOptions,
    ResolutionExit,
    Resolver,
    Success,
    Switch,
    Text,
    Unrestricted,
    ValueParser,
    faults,
    ordered,
    resolve,
)


class Authority:
    """Capability/session collaborator granting a fixed set of tokens."""

    def __init__(self, *granted, interactive=True):
        self.granted = set(granted)
        self.interactive = interactive

    def has_capability(self, caller, token, /):
        return token in self.granted

    def is_interactive(self, caller, /):
        return self.interactive


class Exploding(ValueParser):
    """Parser that always raises."""

    def parse(self, token, /):
        raise RuntimeError("boom")


def give(**options):
    return Resolver(
        Argument("player", completions=["Steve", "Alex"], aliases=["target"]),
        Argument("item", Choice(["diamond", "emerald", "gold"], "item")),
        Argument("amount", Integer(), required=False, default=1, minimum=1, maximum=64),
        name="give",
        switches=[Switch("silent", "s", "silent")],
        options=[Option("world", Choice(["overworld", "nether"], "world"))],
        **options,
    )


class TestResolve(TestCase):
    """Behavioral tests for Resolver.resolve() on well-formed and malformed lines."""

    def testFullLine(self):
        outcome = give().resolve("Steve diamond 5 --silent world=nether")
        self.assertIsInstance(outcome, Success)
        context = outcome.context
        self.assertEqual(context["player"], "Steve")
        self.assertEqual(context["item"], "diamond")
        self.assertEqual(context["amount"], 5)
        self.assertIs(context["silent"], True)
        self.assertEqual(context["world"], "nether")
        self.assertEqual(context.toggled, {"silent"})
        self.assertEqual(context.tokens, ("Steve", "diamond", "5", "--silent", "world=nether"))

    def testDefaultsAndAliases(self):
        context = give().resolve("Steve diamond").context
        self.assertEqual(context["amount"], 1)
        self.assertIs(context["silent"], False)
        self.assertNotIn("world", context)
        self.assertEqual(context["target"], "Steve")

    def testPreSplitPieces(self):
        self.assertTrue(give().resolve(["Steve", "gold"]).ok)

    def testMissingRequiredArgument(self):
        outcome = give().resolve("Steve")
        self.assertFalse(outcome.ok)
        error, = outcome.errors
        self.assertIs(error.kind, ErrorKind.USAGE)
        self.assertEqual(error.message, "missing required argument 'item'")
        self.assertEqual(error.argument, "item")

    def testEmptyLine(self):
        self.assertEqual(give().resolve("").first.argument, "player")

    def testParsingErrorWithSuggestion(self):
        error = give().resolve("Steve diamnod").first
        self.assertIs(error.kind, ErrorKind.PARSING)
        self.assertEqual(error.message, "expected one of: diamond, emerald, gold")
        self.assertEqual(error.input, "diamnod")
        self.assertEqual(error.suggestions, ("diamond",))

    def testStrictOmitsSuggestions(self):
        self.assertEqual(give().resolve("Steve diamnod", options=ParseOptions.STRICT).first.suggestions, ())

    def testAutoCorrection(self):
        outcome = give().resolve("Steve diamnod", options=ParseOptions.LENIENT)
        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.context["item"], "diamond")

    def testAutoCorrectionIsBounded(self):
        options = ParseOptions(auto_correct=True, correction_threshold=0.7, max_corrections=0)
        self.assertFalse(give().resolve("Steve diamnod", options=options).ok)

    def testValidationError(self):
        error = give().resolve("Steve diamond 100").first
        self.assertIs(error.kind, ErrorKind.VALIDATION)
        self.assertEqual(error.message, "must be at most 64 (got 100)")
        self.assertEqual(error.input, "100")

    def testFailFastStopsAtFirstError(self):
        self.assertEqual(len(give().resolve("Steve diamnod abc").errors), 1)

    def testCollectAllReportsEveryError(self):
        outcome = give().resolve("Steve diamnod abc", options=ParseOptions(collect_all=True))
        self.assertEqual([error.argument for error in outcome.errors], ["item", "amount"])
        self.assertEqual(outcome.errors[1].message, "not an integer")

    def testTooManyArguments(self):
        error = give().resolve("Steve diamond 5 extra more").first
        self.assertIs(error.kind, ErrorKind.USAGE)
        self.assertEqual(error.message, "too many arguments (expected at most 3, got 5)")
        self.assertEqual(error.input, "extra more")

    def testUnknownSwitchIsSuggested(self):
        error = give().resolve("Steve diamond 5 --silnt").first
        self.assertIs(error.kind, ErrorKind.USAGE)
        self.assertEqual(error.suggestions, ("silent",))

    def testExtrasTolerated(self):
        self.assertTrue(give(extras=True).resolve("Steve diamond 5 extra").ok)

    def testUnclosedQuote(self):
        error = give().resolve('Steve "diamond').first
        self.assertIs(error.kind, ErrorKind.PARSING)
        self.assertEqual(error.message, "unclosed double quote")

    def testOptionOnlySignature(self):
        resolver = Resolver(options=[Option("level", Integer(), minimum=1, maximum=10)])
        self.assertEqual(resolver.resolve("level=5").context["level"], 5)
        error, = resolver.resolve("level=15").errors
        self.assertIs(error.kind, ErrorKind.VALIDATION)
        self.assertEqual(error.argument, "level")
        self.assertEqual(error.input, "15")

    def testDefaultAuthorityGrantsEverything(self):
        resolver = Resolver(Argument("target"), Argument("secret", required=False, capability="admin"))
        self.assertIsInstance(resolver.authority, Unrestricted)
        outcome = resolver.resolve("bob hidden")
        self.assertTrue(outcome.ok)
        self.assertEqual(dict(outcome.context), {"target": "bob", "secret": "hidden"})

    def testDefaultAuthorityAllowsInteractiveCommands(self):
        self.assertTrue(give(capability="give", interactive=True).resolve("Steve gold").ok)

    def testOptionValueSuggestion(self):
        error, = give().resolve("Steve diamond world=nethr").errors
        self.assertIs(error.kind, ErrorKind.PARSING)
        self.assertEqual(error.argument, "world")
        self.assertEqual(error.input, "nethr")
        self.assertEqual(error.suggestions, ("nether",))

    def testStrictOmitsOptionValueSuggestions(self):
        error = give().resolve("Steve diamond world=nethr", options=ParseOptions.STRICT).first
        self.assertEqual(error.suggestions, ())

    def testOptionValueAutoCorrection(self):
        outcome = give().resolve("Steve diamond world=nethr", options=ParseOptions.LENIENT)
        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.context["world"], "nether")

    def testCorrectionsAreSharedByOptionsAndArguments(self):
        options = ParseOptions(auto_correct=True, correction_threshold=0.7, max_corrections=1)
        outcome = give().resolve("Steve diamnod world=nethr", options=options)
        error, = outcome.errors
        self.assertEqual(error.argument, "item")

    def testExtractionErrorStopsResolution(self):
        outcome = give().resolve("Steve diamond world=mars", options=ParseOptions(collect_all=True))
        error, = outcome.errors
        self.assertEqual(error.message, "invalid value for option 'world': expected one of: nether, overworld")


class TestArguments(TestCase):
    """Behavioral tests for greedy, conditional and gated arguments."""

    def testGreedyTailRequotes(self):
        resolver = Resolver(Argument("player"), Argument("reason", greedy=True))
        self.assertEqual(resolver.resolve("Steve being very rude").context["reason"], "being very rude")
        self.assertEqual(resolver.resolve('Steve "a  b" c').context["reason"], '"a  b" c')

    def testConditionalArgument(self):
        resolver = Resolver(
            Argument("player"),
            Argument("amount", Integer(), required=False, condition=lambda context: context.has("bulk")),
            switches=[Switch("bulk", "b", "bulk")],
        )
        self.assertEqual(resolver.resolve("--bulk Steve 5").context["amount"], 5)
        self.assertNotIn("amount", resolver.resolve("Steve").context)
        self.assertIs(resolver.resolve("Steve 5").first.kind, ErrorKind.USAGE)

    def testRaisingConditionIsInternalError(self):
        resolver = Resolver(Argument("player", condition=lambda context: 1 / 0))
        with self.assertLogs("quiver.resolution", "WARNING"):
            error = resolver.resolve("Steve").first
        self.assertIs(error.kind, ErrorKind.INTERNAL_ERROR)
        self.assertEqual(error.argument, "player")

    def testGatedRequiredArgument(self):
        resolver = Resolver(Argument("target"), Argument("secret", capability="admin"), authority=Authority())
        error = resolver.resolve("a b").first
        self.assertIs(error.kind, ErrorKind.ARGUMENT_PERMISSION)
        self.assertEqual(error.argument, "secret")
        self.assertTrue(resolver.resolve("a b", options=ParseOptions(skip_permission_checks=True)).ok)

    def testGatedOptionalArgumentIsSkipped(self):
        resolver = Resolver(
            Argument("target"),
            Argument("secret", required=False, capability="admin"),
            authority=Authority(),
        )
        self.assertNotIn("secret", resolver.resolve("a").context)
        granted = Resolver(
            Argument("target"),
            Argument("secret", required=False, capability="admin"),
            authority=Authority("admin"),
        )
        self.assertEqual(granted.resolve("a b").context["secret"], "b")

    def testSkippedConditionalArgumentTakesItsDefault(self):
        resolver = Resolver(
            Argument("mode", Choice(["a", "b"])),
            Argument("count", Integer(), required=False, default=7, condition=lambda context: context["mode"] == "b"),
        )
        self.assertEqual(resolver.resolve("a").context["count"], 7)
        self.assertEqual(resolver.resolve("b 3").context["count"], 3)
        self.assertEqual(resolver.resolve("b").context["count"], 7)

    def testGatedOptionalArgumentTakesItsDefault(self):
        resolver = Resolver(
            Argument("target"),
            Argument("secret", required=False, default="none", capability="admin", aliases=["hidden"]),
            authority=Authority(),
        )
        context = resolver.resolve("a").context
        self.assertEqual(context["secret"], "none")
        self.assertEqual(context["hidden"], "none")

    def testGatedSwitch(self):
        resolver = Resolver(switches=[Switch("force", "f", capability="admin")], authority=Authority())
        self.assertTrue(resolver.resolve("").ok)
        error = resolver.resolve("-f").first
        self.assertIs(error.kind, ErrorKind.ARGUMENT_PERMISSION)
        self.assertEqual(error.argument, "force")

    def testRaisingParserIsInternalError(self):
        resolver = Resolver(Argument("value", Exploding()))
        with self.assertLogs("quiver.resolution", "WARNING"):
            error = resolver.resolve("x").first
        self.assertIs(error.kind, ErrorKind.INTERNAL_ERROR)
        self.assertEqual(error.argument, "value")
        self.assertEqual(error.input, "x")


class TestAccess(TestCase):
    """Behavioral tests for command capability, interactive sessions and guards."""

    def testCommandPermission(self):
        outcome = give(capability="give", authority=Authority()).resolve("Steve diamond")
        error, = outcome.errors
        self.assertIs(error.kind, ErrorKind.PERMISSION)
        self.assertTrue(error.is_access)
        self.assertTrue(give(capability="give", authority=Authority("give")).resolve("Steve diamond").ok)

    def testSkipPermissionChecks(self):
        resolver = give(capability="give", authority=Authority())
        self.assertTrue(resolver.resolve("Steve diamond", options=ParseOptions(skip_permission_checks=True)).ok)

    def testSessionOnly(self):
        resolver = give(interactive=True, authority=Authority(interactive=False))
        self.assertIs(resolver.resolve("Steve diamond").first.kind, ErrorKind.SESSION_ONLY)

    def testGuards(self):
        resolver = give(guards=[Guard(lambda caller: caller == "op", "only operators may give items")])
        error = resolver.resolve("Steve diamond", caller="bob").first
        self.assertIs(error.kind, ErrorKind.GUARD_FAILED)
        self.assertEqual(error.message, "only operators may give items")
        self.assertTrue(resolver.resolve("Steve diamond", caller="op").ok)
        self.assertTrue(resolver.resolve("Steve diamond", caller="bob", options=ParseOptions(skip_guards=True)).ok)

    def testGuardFactories(self):
        authority = Authority("give", interactive=False)
        self.assertTrue(Guard.capability("give", authority)("anyone"))
        self.assertFalse(Guard.interactive(authority)("anyone"))

    def testRaisingGuardIsInternalError(self):
        resolver = give(guards=[Guard(lambda caller: caller.missing, "never")])
        with self.assertLogs("quiver.resolution", "WARNING"):
            self.assertIs(resolver.resolve("Steve diamond").first.kind, ErrorKind.INTERNAL_ERROR)

    def testAccessIsCheckedBeforeInput(self):
        resolver = give(capability="give", authority=Authority(), guards=[Guard(lambda caller: False, "nope")])
        outcome = resolver.resolve("Steve", options=ParseOptions(collect_all=True))
        self.assertEqual([error.kind for error in outcome.errors], [ErrorKind.PERMISSION])


class TestCrossChecks(TestCase):
    """Behavioral tests for cross checks."""

    resolver = Resolver(
        Argument("low", Integer()),
        Argument("high", Integer()),
        checks=[ordered("low", "high")],
    )

    def testCheckRefusal(self):
        error = self.resolver.resolve("5 3").first
        self.assertIs(error.kind, ErrorKind.CROSS_VALIDATION)
        self.assertEqual(error.message, "'low' must be at most 'high'")

    def testCheckAccepts(self):
        self.assertTrue(self.resolver.resolve("3 5").ok)

    def testChecksSkippedAfterErrors(self):
        outcome = self.resolver.resolve("5 x", options=ParseOptions(collect_all=True))
        self.assertEqual([error.kind for error in outcome.errors], [ErrorKind.PARSING])

    def testBoundsResolveIndividuallyButFailTogether(self):
        resolver = Resolver(Argument("min", Integer()), Argument("max", Integer()), checks=[ordered("min", "max")])
        outcome = resolver.resolve("10 1", options=ParseOptions(collect_all=True))
        error, = outcome.errors
        self.assertIs(error.kind, ErrorKind.CROSS_VALIDATION)

    def testRaisingCheckIsInternalError(self):
        resolver = Resolver(Argument("value"), checks=[lambda context: context["nope"]])
        with self.assertLogs("quiver.resolution", "WARNING"):
            self.assertIs(resolver.resolve("x").first.kind, ErrorKind.INTERNAL_ERROR)


class TestMetrics(TestCase):
    """Behavioral tests for metrics collection."""

    def testMetricsOnRequest(self):
        received = []
        outcome = give(sink=received.append).resolve("Steve diamond 5", options=ParseOptions(metrics=True))
        self.assertIsInstance(outcome.metrics, ParseMetrics)
        self.assertEqual(outcome.metrics.arguments, 3)
        self.assertEqual(outcome.metrics.errors, 0)
        self.assertGreaterEqual(outcome.metrics.total, outcome.metrics.parsing)
        self.assertEqual(received, [outcome.metrics])

    def testNoMetricsByDefault(self):
        received = []
        outcome = give(sink=received.append).resolve("Steve diamond 5")
        self.assertIsNone(outcome.metrics)
        self.assertEqual(received, [])

    def testFailureCarriesMetrics(self):
        outcome = give().resolve("Steve", options=ParseOptions(metrics=True))
        self.assertEqual(outcome.metrics.errors, 1)


class TestPartial(TestCase):
    """Behavioral tests for Resolver.resolve_partial()."""

    def testLineBeingTyped(self):
        result = give().resolve_partial("Steve")
        self.assertTrue(result.ok)
        self.assertFalse(result.complete)
        self.assertEqual(result.parsed, 1)
        self.assertEqual(result.last_index, 0)
        self.assertEqual(result.values["player"], "Steve")

    def testErrorIsIndexed(self):
        result = give().resolve_partial("Steve dia")
        self.assertEqual(result.error_index, 1)
        self.assertEqual(result.values["player"], "Steve")
        self.assertIs(result.errors[0].kind, ErrorKind.PARSING)
        self.assertFalse(result.to_outcome().ok)

    def testUntilError(self):
        result = give().resolve_partial("Steve", partial=PartialParseOptions.UNTIL_ERROR)
        self.assertIs(result.errors[0].kind, ErrorKind.USAGE)
        self.assertEqual(result.error_index, 1)

    def testRangeSelection(self):
        self.assertTrue(give().resolve_partial("Steve", partial=PartialParseOptions.first(1)).complete)
        result = give().resolve_partial("emerald", partial=PartialParseOptions.only(1))
        self.assertTrue(result.complete)
        self.assertEqual(result.values, {"item": "emerald"})
        self.assertEqual(result.last_index, 1)

    def testDropPartialValues(self):
        result = give().resolve_partial("Steve dia", partial=PartialParseOptions(keep_partial=False))
        self.assertEqual(dict(result.values), {})
        self.assertEqual(len(result.errors), 1)

    def testAccessFailure(self):
        result = give(capability="give", authority=Authority()).resolve_partial("Steve")
        self.assertIs(result.errors[0].kind, ErrorKind.PERMISSION)
        self.assertEqual(result.error_index, -1)


class TestCompletion(TestCase):
    """Behavioral tests for Resolver.complete()."""

    def testFirstArgument(self):
        self.assertEqual(give().complete(""), ("Alex", "Steve", "world="))

    def testChoiceArgument(self):
        self.assertEqual(give().complete("Steve d"), ("diamond",))
        self.assertEqual(give().complete("Steve "), ("diamond", "emerald", "gold", "world="))

    def testSwitchForms(self):
        self.assertEqual(give().complete("Steve --s"), ("--silent",))

    def testGatedArgumentOffersNothing(self):
        resolver = Resolver(Argument("secret", completions=["x"], capability="admin"), authority=Authority())
        self.assertEqual(resolver.complete(""), ())


class TestSignature(TestCase):
    """Behavioral tests for Resolver construction."""

    def testRequiredAfterOptional(self):
        with self.assertRaises(ValueError):
            Resolver(Argument("a", required=False), Argument("b"))

    def testGreedyMustBeLast(self):
        with self.assertRaises(ValueError):
            Resolver(Argument("a", greedy=True), Argument("b"))

    def testDuplicateNames(self):
        with self.assertRaises(ValueError):
            Resolver(Argument("a"), switches=[Switch("a", "a")])
        with self.assertRaises(ValueError):
            Resolver(Argument("a", aliases=["b"]), Argument("b"))

    def testDuplicateForms(self):
        with self.assertRaises(ValueError):
            Resolver(switches=[Switch("x", "v"), Switch("y", "v")])
        with self.assertRaises(ValueError):
            Resolver(switches=[Switch("verbose", "v", "verbose")], options=[Option("level", Text(), "VERBOSE")])

    def testKinds(self):
        with self.assertRaises(TypeError):
            Resolver("player")
        with self.assertRaises(TypeError):
            Resolver(checks=[1])
        with self.assertRaises(TypeError):
            Resolver(authority=object())
        with self.assertRaises(TypeError):
            Resolver(sink=1)

    def testRepr(self):
        self.assertTrue(repr(give()).startswith("resolver(name='give'"))


class TestSurface(TestCase):
    """Behavioral tests for the module-level resolve()."""

    def testReturnsOutcome(self):
        self.assertTrue(resolve(give(), "Steve gold").ok)
        self.assertFalse(resolve(give(), "Steve").ok)

    def testRaisesWhenSurfaced(self):
        with self.assertRaises(ResolutionExit):
            resolve(give(), "Steve", prog="give")

    def testRendersInShellMode(self):
        recorder = Console(record=True, width=100, color_system=None)
        with mock.patch.object(faults, "console", recorder):
            outcome = resolve(give(), "Steve", shell=True, deferred=True, prog="give")
        self.assertFalse(outcome.ok)
        self.assertIn("missing required argument 'item'", recorder.export_text())

    def testRejectsNonResolvers(self):
        with self.assertRaises(TypeError):
            resolve("give", "Steve")


if __name__ == "__main__":
    unittest.main()
