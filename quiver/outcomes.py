"""
Quiver outcomes: what a resolution hands back.

- ResolvedContext: read-only mapping of argument/switch/option names (aliases included)
  to their values, plus the switches toggled on the line and the raw tokens.
- Success / Failure: the two shapes of an outcome. A Failure always carries at least
  one ParseError; building one without errors is a programming error (ValueError).
- PartialOutcome: result of a progressive (partial) resolution.
- ParseMetrics: per-phase timings and counters, filled only when metrics are requested.
"""
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import NamedTuple

from .faults import ErrorCategory, ErrorKind, ParseError, ResolutionExit, trigger
from .utils import IntrospectiveType


class ResolvedContext(Mapping):
    """
    Resolved values by name.

    Lookups accept primary names and aliases; iteration yields primary names only.
    """

    def __init__(self, values=(), /, *, toggled=(), tokens=(), aliases=(), switches=()):
        self._values = MappingProxyType(dict(values))
        self._toggled = frozenset(toggled)
        self._tokens = tuple(tokens)
        self._aliases = MappingProxyType(dict(aliases))
        self._switches = frozenset(switches)

    @property
    def toggled(self):
        return self._toggled

    @property
    def tokens(self):
        return self._tokens

    @property
    def aliases(self):
        return self._aliases

    def __getitem__(self, name):
        return self._values[self._aliases.get(name, name)]

    def __iter__(self):
        return iter(self._values)

    def __len__(self):
        return len(self._values)

    def __contains__(self, name):
        return self._aliases.get(name, name) in self._values

    def has(self, name, /):
        """
        Whether name was given a meaningful value: present and not None,
        and for a switch, turned on.
        """
        name = self._aliases.get(name, name)
        if (value := self._values.get(name)) is None:
            return False
        return value is not False or name not in self._switches

    def __repr__(self):
        return "resolved-context(%s)" % ", ".join("%s=%r" % item for item in self._values.items())

    def __rich_repr__(self):
        yield from self._values.items()


class Outcome(metaclass=IntrospectiveType):
    """
    Shared surface of Success and Failure.
    """
    ok = False

    @property
    def metrics(self):
        return self._metrics

    @property
    def errors(self):
        return ()

    @property
    def first(self):
        return self.errors[0] if self.errors else None

    def errors_of(self, kind, /):
        if not isinstance(kind, ErrorKind):
            raise TypeError("errors_of() argument must be an error-kind")
        return tuple(error for error in self.errors if error.kind is kind)

    def errors_in(self, category, /):
        if not isinstance(category, ErrorCategory):
            raise TypeError("errors_in() argument must be an error-category")
        return tuple(error for error in self.errors if error.category is category)

    def errors_for(self, name, /):
        return tuple(error for error in self.errors if error.argument == name)

    def __bool__(self):
        return self.ok


class Success(Outcome, sealed=True):
    """
    Successful resolution, wrapping the ResolvedContext.
    """
    __displayable__ = ("context", "metrics")

    ok = True

    def __init__(self, context, /, metrics=None):
        if not isinstance(context, ResolvedContext):
            raise TypeError("success 'context' must be a resolved-context")
        self._context = context
        self._metrics = metrics

    @property
    def context(self):
        return self._context

    def map(self, function, /):
        """
        Apply function to the context and return its result.
        """
        return function(self._context)

    def raise_for_errors(self):
        return self._context


class Failure(Outcome, sealed=True):
    """
    Failed resolution: a non-empty, ordered tuple of ParseError.
    """
    __displayable__ = ("errors", "metrics")

    def __init__(self, errors, /, metrics=None):
        if not isinstance(errors, Iterable):
            raise TypeError("failure 'errors' must be an iterable of parse-errors")
        errors = tuple(errors)
        if not all(isinstance(error, ParseError) for error in errors):
            raise TypeError("failure 'errors' must only contain parse-errors")
        if not errors:
            raise ValueError("failure requires at least one error")
        self._errors = errors
        self._metrics = metrics

    @property
    def errors(self):
        return self._errors

    def map(self, function, /):
        return None

    def raise_for_errors(self):
        """
        Raise every error at once, as a ResolutionExit.
        """
        raise ResolutionExit(self._errors)

    def trigger(self, **options):
        """
        Surface the errors through faults.trigger() (rendered in shell mode, raised otherwise).
        """
        trigger(ResolutionExit(self._errors), **options)


class ParseMetrics(NamedTuple):
    """
    Elapsed nanoseconds per phase and counters of one resolution.
    """
    total: int = 0
    permission: int = 0
    guards: int = 0
    parsing: int = 0
    validation: int = 0
    arguments: int = 0
    errors: int = 0

    def summary(self):
        return "parse-metrics(total=%.2fms, permission=%.2fms, guards=%.2fms, parsing=%.2fms, " \
               "validation=%.2fms, arguments=%d, errors=%d)" % (
                   self.total / 1e6,
                   self.permission / 1e6,
                   self.guards / 1e6,
                   self.parsing / 1e6,
                   self.validation / 1e6,
                   self.arguments,
                   self.errors,
               )


class PartialOutcome(NamedTuple):
    """
    Result of a progressive resolution over a sub-range of the arguments.

    - values: resolved values by argument name (kept even when an error stopped the
      run, unless partial retention was disabled).
    - errors: tuple of ParseError.
    - parsed: number of arguments resolved.
    - last_index: index of the last argument resolved, or -1.
    - error_index: index of the argument of the first error, or -1.
    - complete: every argument in range resolved and no error occurred.
    """
    values: Mapping = MappingProxyType({})
    errors: tuple = ()
    parsed: int = 0
    last_index: int = -1
    error_index: int = -1
    complete: bool = False
    tokens: tuple = ()

    @property
    def ok(self):
        return not self.errors

    def to_outcome(self):
        """
        Convert into a Success (no errors) or a Failure.
        """
        if self.errors:
            return Failure(self.errors)
        return Success(ResolvedContext(self.values, tokens=self.tokens))


__all__ = (
    "ResolvedContext",
    "Outcome",
    "Success",
    "Failure",
    "ParseMetrics",
    "PartialOutcome",
)
