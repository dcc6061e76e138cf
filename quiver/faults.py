"""
Quiver faults: error kinds, parse errors and their rendering.

Scope
- ErrorKind: stable numeric identifiers for every resolution failure, grouped by category
  (ACCESS for who may run the line, INPUT for what the line says, INTERNAL for
  caller-supplied code that raised).
- ParseError: one immutable failure unit (kind, message, argument, input, suggestions).
  It derives from Exception so a host can raise it, but resolution only ever returns it.
- ResolutionExit: an ExceptionGroup bundling every error of a failed resolution.
- trigger(): surface a fault, either by raising it or by rendering it with rich.

Rendering
- Lowercase, one-sentence messages; a single hint line built from suggestions or the input.
- Styles can be overridden through a __styles__ mapping in __main__, the program label
  through __prog__, and code labels through __codes__ (see ErrorKind.normalize()).

Integration
- Resolution collects ParseError values into a Failure outcome.
- Hosts either inspect the outcome, call Failure.raise_for_errors(), or
  trigger(ResolutionExit(errors), shell=True) to print them on stderr.
"""
import copy
import sys
from collections import defaultdict
from enum import Enum, IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .suggestions import Suggestion
from .utils import Unset, coalesce, mirror

console = Console(stderr=True)


class ErrorCategory(Enum):
    """
    coarse grouping of error kinds.
    """
    ACCESS = "access"
    INPUT = "input"
    INTERNAL = "internal"


class ErrorKind(IntEnum):
    """
    canonical error kinds produced by resolution (stable identifiers).

    grouping (by numeric range)
    - access (211xx): PERMISSION, SESSION_ONLY, GUARD_FAILED
    - input (221xx): PARSING, VALIDATION, USAGE, ARGUMENT_PERMISSION, CROSS_VALIDATION
    - internal (231xx): INTERNAL_ERROR

    spacing leaves room for future kinds without reshuffling existing codes.
    """
    # --- access (21xxx) ---
    PERMISSION          = 21101
    SESSION_ONLY        = 21102
    GUARD_FAILED        = 21103

    # --- input (22xxx) ---
    PARSING             = 22101
    VALIDATION          = 22102
    USAGE               = 22103
    ARGUMENT_PERMISSION = 22104
    CROSS_VALIDATION    = 22105

    # --- internal (23xxx) ---
    INTERNAL_ERROR      = 23101

    @property
    def category(self):
        return {
            21: ErrorCategory.ACCESS,
            22: ErrorCategory.INPUT,
            23: ErrorCategory.INTERNAL,
        }[self.value // 1000]

    @property
    def title(self):
        return self.name.lower().replace("_", " ")

    def normalize(self):
        """
        return a host-normalized label for this kind.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


_FIELDS = ("kind", "message", "argument", "input", "suggestions")


def _styles(defaults, /):
    return defaultdict(str, defaults | getattr(__import__("__main__"), "__styles__", {}))


def _text(fragment, style, colorful, /):
    if not fragment:
        return Text("")
    if not colorful:
        return Text(str(fragment))
    if isinstance(fragment, Text):
        return fragment
    return Text(str(fragment), style)


class ParseError(Exception):
    """
    one immutable resolution failure.

    fields
    - kind: ErrorKind
    - message: lowercase, human-readable sentence
    - argument: name of the argument/switch/option concerned, or None
    - input: the raw offending text, or None
    - suggestions: ordered tuple of corrections ("did you mean")

    rendering options (shell, fancy, colorful, deferred, prog, ratio) travel separately
    in .options and never take part in equality.
    """

    kind = mirror("kind")
    message = mirror("message")
    argument = mirror("argument")
    input = mirror("input")
    suggestions = mirror("suggestions")

    def __init__(self, kind, message, /, argument=None, input=None, suggestions=(), **options):
        if not isinstance(kind, ErrorKind):
            raise TypeError("parse-error 'kind' must be an error-kind")
        if not isinstance(message, str):
            raise TypeError("parse-error 'message' must be a string")
        if not isinstance(argument, str | None):
            raise TypeError("parse-error 'argument' must be a string")
        if not isinstance(input, str | None):
            raise TypeError("parse-error 'input' must be a string")
        if isinstance(suggestions, Suggestion):
            suggestions = suggestions.matches
        if isinstance(suggestions, str) or not all(isinstance(item, str) for item in suggestions):
            raise TypeError("parse-error 'suggestions' must be an iterable of strings")
        super().__init__(message)
        self._kind = kind
        self._message = message
        self._argument = argument
        self._input = input
        self._suggestions = tuple(suggestions)
        self.options = MappingProxyType(options)

    @property
    def category(self):
        return self._kind.category

    @property
    def is_access(self):
        return self._kind.category is ErrorCategory.ACCESS

    @property
    def is_input(self):
        return self._kind.category is ErrorCategory.INPUT

    def with_argument(self, argument, /):
        return copy.replace(self, argument=argument)

    def with_input(self, input, /):
        return copy.replace(self, input=input)

    def with_message(self, message, /):
        return copy.replace(self, message=message)

    def with_suggestions(self, suggestions, /):
        return copy.replace(self, suggestions=suggestions)

    def formatted(self):
        """
        single-line rendering, e.g. "[PARSING] argument 'count': not an integer (input: 'x')".
        """
        parts = ["[%s]" % self._kind.name]
        if self._argument is not None:
            parts.append("argument %r:" % self._argument)
        parts.append(self._message)
        if self._input is not None:
            parts.append("(input: %r)" % self._input)
        if self._suggestions:
            parts.append("(%s)" % Suggestion("", self._suggestions).formatted())
        return " ".join(parts)

    def __str__(self):
        return self.formatted()

    def __repr__(self):
        return "%s(%s)" % (type(self).__name__, ", ".join(
            "%s=%r" % (name, getattr(self, name)) for name in _FIELDS
        ))

    def __eq__(self, other):
        if not isinstance(other, ParseError):
            return NotImplemented
        return all(getattr(self, name) == getattr(other, name) for name in _FIELDS)

    def __hash__(self):
        return hash(tuple(getattr(self, name) for name in _FIELDS))

    def __rich__(self):
        colorful = self.options.get("colorful", True)
        styles = _styles({
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan kind code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        })

        def text(fragment, style=""):
            return _text(fragment, styles[style] if colorful else "", colorful)

        prog = getattr(__import__("__main__"), "__prog__", self.options.get("prog", "quiver"))
        header = Text.assemble(
            "[ ",
            text(prog, "prog-name"),
            " - ",
            text(self._kind.normalize(), "code"),
            " | ",
            text(self._kind.title, "error-title"),
            " ]"
        )

        body = self._message if self._argument is None else "%s: %s" % (self._argument, self._message)
        message = text(body, "error-message")

        if self._suggestions:
            hint = Suggestion("", self._suggestions).formatted()
        elif self._input is not None:
            hint = "offending input: %r" % self._input
        else:
            hint = Unset

        renders = [message]
        if hint:
            renders.append(Text.assemble(text(" → ", "hint-arrow"), text(hint, "hint")))

        if self.options.get("fancy", False):
            width = console.width - 4
            try:
                width = int(width * self.options["ratio"])
            except KeyError:
                width = None
            return Panel(Group(*renders), title=header, title_align="left", width=width)

        return Group(header, *renders)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        if self.options.get("deferred", False):
            return
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        fields = {name: getattr(self, name) for name in _FIELDS}
        options = dict(self.options)
        for name, value in overrides.items():
            (fields if name in _FIELDS else options)[name] = value
        return type(self)(fields.pop("kind"), fields.pop("message"), **fields, **options)


class ResolutionExit(ExceptionGroup[ParseError]):
    """
    every error of a failed resolution, as one raisable group.
    """

    def __new__(cls, exceptions, /, **options):
        return super().__new__(cls, "resolution failed", tuple(exceptions))

    def __init__(self, exceptions, /, **options):
        super().__init__("resolution failed", tuple(exceptions))
        self.options = MappingProxyType(options)

    def derive(self, exceptions):
        return type(self)(exceptions, **self.options)

    def __rich__(self):
        colorful = self.options.get("colorful", True)
        styles = _styles({
            "prog-name": "bold #E6E6F0",  # near-white program name
            "title": "bold #FF4DA6",  # friendly pinky group title
        })

        def text(fragment, style=""):
            return _text(fragment, styles[style] if colorful else "", colorful)

        prog = getattr(__import__("__main__"), "__prog__", self.options.get("prog", "quiver"))
        header = Text.assemble("[ ", text(prog, "prog-name"), " - ", text(self.message, "title"), " ]")

        renders = [
            copy.replace(exception, colorful=colorful, fancy=self.options.get("fancy", False), ratio=2 / 3)
            for exception in self.exceptions
        ]

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        if self.options.get("deferred", False):
            return
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.exceptions, **{**self.options, **overrides})


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (ParseError, ResolutionExit).
    - options are merged into the fault through copy.replace() before triggering.
    - in shell mode the fault is rendered with rich on stderr (then the process exits
      with status 1 unless deferred=True); otherwise it is raised.

    typical options
    - shell, fancy, colorful, deferred, prog.
    """
    if (
        not callable(getattr(fault, "__trigger__", None)) or
        not callable(getattr(fault, "__replace__", None))
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def describe(kind, /):
    """
    optional documentation lookup for an error kind.

    the host application may expose a __docs__ mapping in __main__ keyed by ErrorKind;
    None is returned when no entry exists.
    """
    if not isinstance(kind, ErrorKind):
        raise TypeError("describe() argument must be an error-kind")
    return coalesce(getattr(__import__("__main__"), "__docs__", {}).get(kind, Unset))


__all__ = (
    "ErrorCategory",
    "ErrorKind",
    "ParseError",
    "ResolutionExit",
    "trigger",
    "describe",
)
