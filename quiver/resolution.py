"""
Quiver resolution: from a raw command line to a Success or a Failure.

Scope
- Resolver: an immutable signature (positional arguments, switches, options, cross
  checks, guards and access requirements) able to resolve any number of lines,
  concurrently if need be.
- Guard: a precondition on the caller, evaluated before any input is looked at.
- Unrestricted: the default authority (every capability granted, every caller interactive).
- resolve(): resolve a line and, on request, surface the failure right away.

Pipeline (one call)
1. access: command capability, interactive-session requirement, guards.
   Access failures always stop the resolution.
2. tokenize: an unclosed quote stops the resolution.
3. extract switches and options: extraction errors stop the resolution.
4. capability gates of the switches and options given on the line.
5. positional arguments, one at a time, against the leftover tokens:
   - Pending: the condition (if any) is evaluated against the values resolved so far;
     a false condition skips the argument without consuming input.
   - a capability-gated argument the caller may not use fails (required) or is
     skipped (optional), without consuming input.
   - a skipped argument still takes its default, when it declares one.
   - Consuming: one token, or every remaining token for a greedy argument.
     No token left: a required argument fails, an optional one takes its default.
   - Resolved: the parser accepted the token, the transformers ran, and the built-in
     constraints then the custom validators all accepted the value.
   - Failed: parsing error (with suggestions) or validation error (first refusal).
6. leftover tokens nobody claimed: a usage error, unless extras are tolerated.
7. cross checks, only when no error was collected.

Error policy
- fail-fast (default): the first error of steps 4 to 7 ends the resolution.
- collect-all: keep going, treat failed arguments as absent, report every error.
- Caller-supplied code (parsers, validators, transformers, conditions, guards, checks,
  authority) that raises is reported as an internal error, never propagated.

Logging
- The module logger traces phases at debug level, auto-corrections at info level,
  and caller-supplied code raising at warning level (with the traceback).
"""
import contextlib
import logging
import time
from collections.abc import Iterable

from .extraction import extract, completions as _completions
from .faults import ErrorKind, ParseError
from .options import ParseOptions, PartialParseOptions
from .outcomes import Failure, ParseMetrics, PartialOutcome, ResolvedContext, Success
from .specs import Argument, Option, Switch
from .suggestions import suggest
from .tokens import join, tokenize
from .utils import IntrospectiveType, Unset, coalesce, ordinal

logger = logging.getLogger(__name__)


class Unrestricted:
    """
    Default authority: grants every capability and treats every caller as interactive.
    """

    def has_capability(self, caller, token, /):
        return True

    def is_interactive(self, caller, /):
        return True

    def __repr__(self):
        return "unrestricted()"


class Guard(metaclass=IntrospectiveType, sealed=True):
    """
    Precondition on the caller: test(caller) -> bool, with the message reported when it fails.
    """
    __introspectable__ = ("test", "message")

    def __init__(self, test, message, /):
        if not callable(test):
            raise TypeError("guard 'test' must be callable")
        if not isinstance(message, str):
            raise TypeError("guard 'message' must be a string")
        elif not (message := message.strip()):
            raise ValueError("guard 'message' cannot be empty")
        self._test = test
        self._message = message

    def __call__(self, caller, /):
        return bool(self._test(caller))

    @classmethod
    def capability(cls, token, authority, /, message="you do not have permission to do this"):
        """
        Guard passing when authority grants token to the caller.
        """
        return cls(lambda caller: authority.has_capability(caller, token), message)

    @classmethod
    def interactive(cls, authority, /, message="this can only be done from an interactive session"):
        """
        Guard passing when authority reports the caller as interactive.
        """
        return cls(authority.is_interactive, message)


def _sanitize_signature(cls, metadata, /):
    """
    Internal: validate the declared signature of a Resolver.

    Rules
    - arguments are Argument specs; every required argument precedes every optional one;
      only the last argument may be greedy.
    - switches are Switch specs with distinct short forms and long forms (case-insensitive).
    - options are Option specs with distinct keys (case-insensitive).
    - names and aliases are unique across arguments, switches and options, since they
      share one resolved context.
    - checks are callables; guards are Guard instances.
    - capability is None or a non-empty string; authority provides has_capability()
      and is_interactive(); sink is None or callable.

    The dict is mutated in place (iterables frozen into tuples).
    """
    for label, kind in (("arguments", Argument), ("switches", Switch), ("options", Option), ("guards", Guard)):
        if isinstance(items := metadata[label], kind) or not isinstance(items, Iterable):
            raise TypeError(f"{cls.__typename__} '{label}' must be an iterable of {kind.__typename__}s")
        items = tuple(items)
        if not all(isinstance(item, kind) for item in items):
            raise TypeError(f"{cls.__typename__} '{label}' must only contain {kind.__typename__}s")
        metadata[label] = items

    if not isinstance(checks := metadata["checks"], Iterable):
        raise TypeError(f"{cls.__typename__} 'checks' must be an iterable of callables")
    checks = tuple(checks)
    if not all(callable(check) for check in checks):
        raise TypeError(f"{cls.__typename__} 'checks' must only contain callables")
    metadata["checks"] = checks

    names = set()
    for name in (
            *(name for argument in metadata["arguments"] for name in (argument.name, *argument.aliases)),
            *(switch.name for switch in metadata["switches"]),
            *(option.name for option in metadata["options"]),
    ):
        if name in names:
            raise ValueError(f"{cls.__typename__} names cannot contain duplicates ({name!r})")
        names.add(name)

    optional = None
    for position, argument in enumerate(arguments := metadata["arguments"], 1):
        if argument.greedy and position != len(arguments):
            raise ValueError(f"greedy argument {argument.name!r} must be the last argument")
        if not argument.required:
            optional = argument if optional is None else optional
        elif optional is not None:
            raise ValueError(
                f"required argument {argument.name!r} ({ordinal(position)}) cannot follow "
                f"optional argument {optional.name!r}"
            )

    shorts, longs = set(), set()
    for switch in metadata["switches"]:
        if switch.short is not None:
            if switch.short in shorts:
                raise ValueError(f"{cls.__typename__} switches share the short form '-{switch.short}'")
            shorts.add(switch.short)
        if switch.long is not None:
            if switch.long.lower() in longs:
                raise ValueError(f"{cls.__typename__} switches share the long form '--{switch.long}'")
            longs.add(switch.long.lower())

    keys = set()
    for option in metadata["options"]:
        if option.key.lower() in keys or option.key.lower() in longs:
            raise ValueError(f"{cls.__typename__} option key {option.key!r} is already in use")
        keys.add(option.key.lower())

    if not isinstance(capability := metadata["capability"], str | None):
        raise TypeError(f"{cls.__typename__} 'capability' must be a string")
    elif isinstance(capability, str) and not (capability := capability.strip()):
        raise ValueError(f"{cls.__typename__} 'capability' cannot be empty")
    metadata["capability"] = capability

    if not isinstance(name := metadata["name"], str) or not name.strip():
        raise TypeError(f"{cls.__typename__} 'name' must be a non-empty string")
    metadata["name"] = name.strip()

    authority = metadata["authority"] = coalesce(metadata["authority"], Unrestricted())
    if not callable(getattr(authority, "has_capability", None)) or \
            not callable(getattr(authority, "is_interactive", None)):
        raise TypeError(f"{cls.__typename__} 'authority' must provide has_capability() and is_interactive()")

    if metadata["sink"] is not None and not callable(metadata["sink"]):
        raise TypeError(f"{cls.__typename__} 'sink' must be callable")


class _Run:
    """
    State of a single resolution (never shared between calls).
    """

    def __init__(self, resolver, caller, options, /):
        self.resolver = resolver
        self.caller = caller
        self.options = options
        self.timings = dict.fromkeys(("permission", "guards", "parsing", "validation"), 0)
        self.errors = []
        self.values = {}
        self.aliases = {}
        self.tokens = ()
        self.toggled = frozenset()
        self.supplied = frozenset()
        self.leftover = ()
        self.unknown = ()
        self.cursor = 0
        self.corrections = 0
        self.resolved = 0

    @contextlib.contextmanager
    def timed(self, phase, /):
        if not self.options.metrics:
            yield
            return
        start = time.perf_counter_ns()
        try:
            yield
        finally:
            self.timings[phase] += time.perf_counter_ns() - start

    def guarded(self, what, function, /, *args):
        """
        Call caller-supplied code; returns (result, None) or (Unset, internal error).
        """
        try:
            return function(*args), None
        except Exception as error:
            logger.warning("%s raised while resolving %r", what, self.resolver.name, exc_info=True)
            return Unset, ParseError(
                ErrorKind.INTERNAL_ERROR,
                "%s failed unexpectedly (%s: %s)" % (what, type(error).__name__, error),
            )

    def record(self, error, /):
        """
        Collect error; returns True when the resolution must stop.
        """
        self.errors.append(error)
        return not self.options.collect_all

    def allowed(self, capability, /, skip=False):
        """
        Whether the caller holds capability; (bool, internal error or None).
        """
        if capability is None or skip:
            return True, None
        granted, error = self.guarded("capability check", self.resolver.authority.has_capability,
                                      self.caller, capability)
        return bool(granted), error

    def context(self):
        return ResolvedContext(
            self.values,
            toggled=self.toggled,
            tokens=self.tokens,
            aliases=self.aliases,
            switches=(switch.name for switch in self.resolver.switches),
        )

    def access(self, skip_permission_checks, skip_guards, /):
        """
        Command-level checks; returns the first access error, or None.
        """
        resolver = self.resolver
        with self.timed("permission"):
            granted, error = self.allowed(resolver.capability, skip_permission_checks)
            if error is not None:
                return error
            if not granted:
                return ParseError(ErrorKind.PERMISSION, "you do not have permission to use %r" % resolver.name)

            if resolver.interactive:
                interactive, error = self.guarded("session check", resolver.authority.is_interactive, self.caller)
                if error is not None:
                    return error
                if not interactive:
                    return ParseError(
                        ErrorKind.SESSION_ONLY,
                        "%r can only be used from an interactive session" % resolver.name,
                    )

        if skip_guards:
            return None

        with self.timed("guards"):
            for guard in resolver.guards:
                passed, error = self.guarded("guard", guard, self.caller)
                if error is not None:
                    return error
                if not passed:
                    return ParseError(ErrorKind.GUARD_FAILED, guard.message)
        return None

    def prepare(self, line, /):
        """
        Tokenize and extract; returns the errors that stop the resolution (may be empty).
        """
        with self.timed("parsing"):
            tokenization = tokenize(line)
            self.tokens = tokenization.tokens
            if not tokenization.ok:
                return [ParseError(ErrorKind.PARSING, tokenization.error, input=join(self.tokens))]

            extraction = extract(self.tokens, self.resolver.switches, self.resolver.options, self.correction)
            self.values.update(extraction.switches)
            self.values.update(extraction.options)
            self.toggled = extraction.toggled
            self.supplied = extraction.supplied
            self.leftover = extraction.leftover
            self.unknown = extraction.unknown
            logger.debug("resolving %r with %d leftover token(s)", self.resolver.name, len(self.leftover))
            return [self.hinted(error) for error in extraction.errors]

    def hinted(self, error, /):
        """
        Attach corrections to an option value that failed to parse.
        """
        if not self.options.include_suggestions or error.kind is not ErrorKind.PARSING or error.suggestions:
            return error
        option = next((option for option in self.resolver.options if option.name == error.argument), None)
        if option is None or option.multiple or not option.candidates or error.input is None:
            return error
        return error.with_suggestions(suggest(error.input, option.candidates, cache=self.resolver.cache).matches)

    def gates(self, toggled, supplied, /):
        """
        Capability gates of the switches and options present on the line.
        """
        skip = self.options.skip_permission_checks
        for kind, specs, present in (("switch", self.resolver.switches, toggled),
                                     ("option", self.resolver.options, supplied)):
            for spec in specs:
                if spec.name not in present:
                    continue
                granted, error = self.allowed(spec.capability, skip)
                if error is None and not granted:
                    error = ParseError(
                        ErrorKind.ARGUMENT_PERMISSION,
                        "you do not have permission to use %s %r" % (kind, spec.name),
                        argument=spec.name,
                    )
                if error is not None and self.record(error):
                    return True
        return False

    def correction(self, spec, raw, /):
        """
        Retry a failed parse of raw with its closest candidate.

        Returns the accepted Conversion, or None when auto-correction is off, exhausted,
        or found nothing the parser accepts.
        """
        options = self.options
        if not options.auto_correct or self.corrections >= options.max_corrections or not spec.candidates:
            return None
        suggestion = suggest(raw, spec.candidates, 1, options.correction_threshold, cache=self.resolver.cache)
        if not suggestion.found:
            return None
        retry, error = self.guarded("parser of %r" % spec.name, spec.parser.parse, suggestion.best)
        if error is not None or not retry.ok:
            return None
        self.corrections += 1
        logger.info("auto-corrected %r to %r for %r", raw, suggestion.best, spec.name)
        return retry

    def convert(self, argument, raw, /):
        """
        Parse raw for argument, retrying with an auto-correction when allowed.

        Returns (conversion, error): error is an internal error or None.
        """
        conversion, error = self.guarded("parser of %r" % argument.name, argument.parser.parse, raw)
        if error is not None or conversion.ok:
            return conversion, error
        return self.correction(argument, raw) or conversion, None

    def default(self, argument, /):
        """
        Give an absent argument its default, when it declares one.
        """
        if argument.default is not Unset:
            self.values[argument.name] = argument.default
            self.aliases.update(dict.fromkeys(argument.aliases, argument.name))

    def argument(self, argument, /, report_missing=True):
        """
        Advance the state machine over one argument.

        Returns one of "skipped", "missing", "resolved", "failed", "stopped"
        ("stopped" meaning the error policy ends the resolution).
        """
        name = argument.name

        if argument.condition is not None:
            applies, error = self.guarded("condition of %r" % name, argument.condition, self.context())
            if error is not None:
                return "stopped" if self.record(error.with_argument(name)) else "failed"
            if not applies:
                logger.debug("argument %r skipped, condition not met", name)
                self.default(argument)
                return "skipped"

        granted, error = self.allowed(argument.capability, self.options.skip_permission_checks)
        if error is not None:
            return "stopped" if self.record(error.with_argument(name)) else "failed"
        if not granted:
            if not argument.required:
                logger.debug("argument %r skipped, capability %r not granted", name, argument.capability)
                self.default(argument)
                return "skipped"
            error = ParseError(
                ErrorKind.ARGUMENT_PERMISSION,
                "you do not have permission to use argument %r" % name,
                argument=name,
            )
            return "stopped" if self.record(error) else "failed"

        if self.cursor >= len(self.leftover):
            if argument.required:
                if not report_missing:
                    return "missing"
                error = ParseError(ErrorKind.USAGE, "missing required argument %r" % name, argument=name)
                return "stopped" if self.record(error) else "missing"
            self.default(argument)
            return "missing"

        if argument.greedy:
            raw = join(self.leftover[self.cursor:])
            self.cursor = len(self.leftover)
        else:
            raw = self.leftover[self.cursor]
            self.cursor += 1

        with self.timed("parsing"):
            conversion, error = self.convert(argument, raw)
        if error is not None:
            return "stopped" if self.record(error.with_argument(name).with_input(raw)) else "failed"
        if not conversion.ok:
            suggestions = ()
            if self.options.include_suggestions and argument.candidates:
                suggestions = suggest(raw, argument.candidates, cache=self.resolver.cache).matches
            error = ParseError(ErrorKind.PARSING, conversion.reason, argument=name, input=raw, suggestions=suggestions)
            return "stopped" if self.record(error) else "failed"

        with self.timed("validation"):
            value, error = self.guarded("transformers of %r" % name, argument.transform, conversion.value)
            if error is None:
                reason, error = self.guarded("validators of %r" % name, argument.validate, value)
        if error is not None:
            return "stopped" if self.record(error.with_argument(name).with_input(raw)) else "failed"
        if reason is not None:
            error = ParseError(ErrorKind.VALIDATION, reason, argument=name, input=raw)
            return "stopped" if self.record(error) else "failed"

        self.values[name] = value
        self.aliases.update(dict.fromkeys(argument.aliases, name))
        self.resolved += 1
        return "resolved"

    def extras(self):
        """
        Report leftover tokens no argument claimed; returns True when the resolution must stop.
        """
        if self.cursor >= len(self.leftover) or self.resolver.extras:
            return False
        excess = self.leftover[self.cursor:]
        suggestions = ()
        if self.options.include_suggestions and excess[0] in self.unknown:
            key = excess[0].lstrip("-").partition("=")[0].partition(":")[0]
            candidates = [switch.long for switch in self.resolver.switches if switch.long is not None]
            candidates += [option.key for option in self.resolver.options]
            suggestions = suggest(key, candidates, cache=self.resolver.cache).matches
        return self.record(ParseError(
            ErrorKind.USAGE,
            "too many arguments (expected at most %d, got %d)" % (
                len(self.resolver.arguments), len(self.leftover)
            ),
            input=join(excess),
            suggestions=suggestions,
        ))

    def checks(self):
        context = self.context()
        with self.timed("validation"):
            for check in self.resolver.checks:
                reason, error = self.guarded("cross check %s" % getattr(check, "__name__", "check"), check, context)
                if error is None and reason is not None:
                    error = ParseError(ErrorKind.CROSS_VALIDATION, reason)
                if error is not None and self.record(error):
                    break
        return context

    def metrics(self, started, /):
        if not self.options.metrics:
            return None
        metrics = ParseMetrics(
            total=time.perf_counter_ns() - started,
            permission=self.timings["permission"],
            guards=self.timings["guards"],
            parsing=self.timings["parsing"],
            validation=self.timings["validation"],
            arguments=self.resolved,
            errors=len(self.errors),
        )
        if self.resolver.sink is not None:
            # The sink is caller-supplied; a failing sink must not change the outcome.
            self.guarded("metrics sink", self.resolver.sink, metrics)
        return metrics

    def run(self, line, /):
        started = time.perf_counter_ns()
        context = self.resolve(line)
        metrics = self.metrics(started)
        if self.errors:
            return Failure(self.errors, metrics)
        return Success(context, metrics)

    def resolve(self, line, /):
        options = self.options
        if error := self.access(options.skip_permission_checks, options.skip_guards):
            self.errors.append(error)
            return None
        if errors := self.prepare(line):
            self.errors.extend(errors)
            return None

        if self.gates(self.toggled, self.supplied):
            return None

        for argument in self.resolver.arguments:
            if self.argument(argument) == "stopped":
                return None

        if self.extras() or self.errors:
            return None
        return self.checks()


class Resolver(metaclass=IntrospectiveType, sealed=True):
    """
    Immutable command signature and resolution entry point.

    Properties
    - The names listed in __introspectable__ are exposed as read-only attributes.
    """

    __introspectable__ = (
        "name",
        "arguments",
        "switches",
        "options",
        "checks",
        "guards",
        "capability",
        "interactive",
        "extras",
        "sink",
    )
    __displayable__ = ("name", "arguments", "switches", "options", "capability", "interactive", "extras")

    def __init__(
            self,
            *arguments,
            name="command",
            switches=(),
            options=(),
            checks=(),
            guards=(),
            capability=None,
            interactive=False,
            extras=False,
            authority=Unset,
            sink=None,
            cache=None,
    ):
        """
        Build and validate a signature.

        Parameters
        - *arguments: Argument specs, in positional order.
        - name: label used in messages and logs.
        - switches / options: Switch and Option specs.
        - checks: cross-argument checks, callables context -> str | None.
        - guards: Guard instances evaluated before any input is read.
        - capability: token required to use the command at all (None for everyone).
        - interactive: only interactive callers may use the command.
        - extras: tolerate leftover tokens instead of reporting "too many arguments".
        - authority: capability/session collaborator (Unrestricted() when omitted).
        - sink: callable receiving ParseMetrics when metrics are requested.
        - cache: optional mutable mapping memoizing suggestions across resolutions.

        Raises
        - TypeError / ValueError: on any violation of the signature rules.
        """
        metadata = {
            "name": name,
            "arguments": arguments,
            "switches": switches,
            "options": options,
            "checks": checks,
            "guards": guards,
            "capability": capability,
            "interactive": bool(interactive),
            "extras": bool(extras),
            "authority": authority,
            "sink": sink,
        }
        _sanitize_signature(type(self), metadata)
        if cache is not None and not (hasattr(cache, "__getitem__") and hasattr(cache, "__setitem__")):
            raise TypeError(f"{type(self).__typename__} 'cache' must be a mutable mapping")
        metadata["cache"] = cache

        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    @property
    def cache(self):
        return self._cache

    @property
    def authority(self):
        return self._authority

    def resolve(self, line, /, caller=None, options=Unset):
        """
        Resolve a command line.

        Parameters
        - line: str, or an iterable of pre-split pieces (re-joined and tokenized again).
        - caller: opaque caller identity handed to the authority and the guards.
        - options: ParseOptions (ParseOptions.DEFAULT when omitted).

        Returns
        - Success(context) or Failure(errors); never raises for user input.
        """
        options = coalesce(options, ParseOptions.DEFAULT)
        if not isinstance(options, ParseOptions):
            raise TypeError("resolve() 'options' must be parse-options")
        return _Run(self, caller, options).run(line)

    def resolve_partial(self, line, /, caller=None, partial=Unset):
        """
        Resolve only the arguments in the range described by partial.

        Positional tokens are matched to the arguments from partial.start onward.
        Running out of tokens ends the run quietly (the line is still being typed),
        unless stop_on_error is set and a required argument is missing. Leftover
        tokens and cross checks are not looked at.

        Returns
        - PartialOutcome
        """
        partial = coalesce(partial, PartialParseOptions.DEFAULT)
        if not isinstance(partial, PartialParseOptions):
            raise TypeError("resolve_partial() 'partial' must be partial-parse-options")

        run = _Run(self, caller, ParseOptions(
            collect_all=not partial.stop_on_error,
            skip_guards=partial.skip_guards,
            skip_permission_checks=partial.skip_permission_checks,
        ))
        if error := run.access(partial.skip_permission_checks, partial.skip_guards):
            return PartialOutcome(errors=(error,))
        if errors := run.prepare(line):
            return PartialOutcome(errors=tuple(errors), tokens=run.tokens)

        parsed, last_index, error_index, covered = 0, -1, -1, 0
        for index, argument in enumerate(self._arguments):
            if not partial.covers(index):
                continue
            covered += 1
            before = len(run.errors)
            status = run.argument(argument, report_missing=partial.stop_on_error)
            if len(run.errors) > before and error_index < 0:
                error_index = index
            if status == "resolved":
                parsed, last_index = parsed + 1, index
            elif status == "missing" or status == "stopped":
                break

        values = {
            argument.name: run.values[argument.name]
            for argument in self._arguments if argument.name in run.values
        }
        if run.errors and not partial.keep_partial:
            values = {}
        return PartialOutcome(
            values=values,
            errors=tuple(run.errors),
            parsed=parsed,
            last_index=last_index,
            error_index=error_index,
            complete=not run.errors and parsed == covered,
            tokens=run.tokens,
        )

    def complete(self, line, /, caller=None):
        """
        Completion hints for the last (partially typed) token of line.

        A token starting with '-' completes switches and options; otherwise the hints
        of the positional argument the token would land on are offered, together with
        matching key= forms. Arguments the caller may not use offer nothing.
        """
        tokenization = tokenize(line)
        tokens = list(tokenization.tokens)
        if isinstance(line, str) and (not line or line[-1].isspace()) and tokenization.ok:
            partial = ""
        else:
            partial = tokens.pop() if tokens else ""

        if partial.startswith("-"):
            return _completions(partial, self._switches, self._options)

        position = len(extract(tokens, self._switches, self._options).leftover)
        hints = {hint for hint in _completions(partial, (), self._options) if not hint.startswith("-")}
        if position < len(self._arguments):
            argument = self._arguments[position]
            if argument.capability is None or self._authority.has_capability(caller, argument.capability):
                hints.update(argument.complete(partial))
        elif self._arguments and self._arguments[-1].greedy:
            hints.update(self._arguments[-1].complete(partial))
        return tuple(sorted(hints))


def resolve(resolver, line, /, caller=None, options=Unset, **surface):
    """
    Resolve line with resolver; when surface options are given (shell, fancy, colorful,
    deferred, prog), a failure is surfaced right away through faults.trigger():
    rendered on stderr in shell mode, raised as a ResolutionExit otherwise.

    Returns
    - the outcome (a Failure is only returned when it was not surfaced, or when it was
      rendered with deferred=True).
    """
    if not isinstance(resolver, Resolver):
        raise TypeError("resolve() first argument must be a resolver")
    outcome = resolver.resolve(line, caller, options)
    if surface and not outcome.ok:
        outcome.trigger(**surface)
    return outcome


__all__ = (
    "Unrestricted",
    "Guard",
    "Resolver",
    "resolve",
)
