"""
Quiver switch/option extraction: the pass that runs before positional resolution.

Every token is checked against these forms, in order, and the first match wins:

    --key=value     option by key; a switch long form here is an error ("does not accept a value")
    --no-long       negatable switch turned off
    --long          switch turned on
    --key value     option by key, consuming the next token (an error when there is none)
    -k=value        option by key (tokens like -5 or -1.5 are left alone: negative numbers)
    -abc            every letter a switch short form, or nothing is applied
    key=value       option by key, also key:value ('=' wins when it comes first)

Anything else, including unknown keys in any of the forms above, is left over for the
positional arguments, in its original order. Unknown switch-like tokens are also listed
in Extraction.unknown so that the resolver can suggest the closest declared key.

Values
- A value wrapped in matching single or double quotes is unquoted first.
- Multi-valued options split the value on their separator; pieces are trimmed and empty
  pieces dropped. Failures of several pieces are combined into one error.
- Constraint and validator refusals are validation errors, parse failures are parsing errors.
- A value that fails to parse is offered to the optional correct hook, whose accepted
  Conversion replaces the failure.

Post-pass
- Every required option that was not supplied (and did not already fail) is reported as
  missing, by its key.

Re-running extract() on the leftover of a previous run, with the same specs, extracts
nothing more: whatever could be claimed was claimed the first time.
"""
import logging
from collections.abc import Iterable
from types import MappingProxyType
from typing import NamedTuple

from .faults import ErrorKind, ParseError
from .specs import Option, Switch
from .utils import Unset

logger = logging.getLogger(__name__)


class Extraction(NamedTuple):
    """
    Result of extract().

    - switches: switch name → bool, for every declared switch.
    - options: option name → value (tuple for multi-valued options), for options
      supplied on the line or carrying a default.
    - leftover: tokens left for positional resolution.
    - errors: tuple of ParseError.
    - toggled: names of the switches given explicitly on the line.
    - supplied: names of the options given explicitly on the line.
    - unknown: switch-like or key=value tokens whose key matched nothing.
    """
    switches: MappingProxyType
    options: MappingProxyType
    leftover: tuple[str, ...]
    errors: tuple[ParseError, ...]
    toggled: frozenset = frozenset()
    supplied: frozenset = frozenset()
    unknown: tuple[str, ...] = ()

    @property
    def ok(self):
        return not self.errors


def _sanitize(switches, options, /):
    if isinstance(switches, Switch) or not isinstance(switches, Iterable):
        raise TypeError("extract() switches must be an iterable of switches")
    if isinstance(options, Option) or not isinstance(options, Iterable):
        raise TypeError("extract() options must be an iterable of options")
    switches, options = tuple(switches), tuple(options)
    if not all(isinstance(switch, Switch) for switch in switches):
        raise TypeError("extract() switches must only contain switches")
    if not all(isinstance(option, Option) for option in options):
        raise TypeError("extract() options must only contain options")
    return switches, options


def unquote(value, /):
    """
    Strip one pair of matching surrounding quotes ('...' or "...").
    """
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def _separator(token, /):
    """
    Index of the key/value separator of a bare token, or -1.

    '=' is used when it sits at a positive offset and before any ':', otherwise ':'
    when it sits at a positive offset.
    """
    equals, colon = token.find("="), token.find(":")
    if equals > 0 and (colon < 0 or equals < colon):
        return equals
    if colon > 0:
        return colon
    return -1


class _Extractor:
    """
    One extraction run; holds the mutable state of the scan.
    """

    def __init__(self, tokens, switches, options, correct, /):
        self.tokens = tokens
        self.correct = correct
        self.switches = switches
        self.options = options
        self.switch_values = {switch.name: switch.default for switch in switches}
        self.option_values = {option.name: option.default for option in options if option.default is not Unset}
        self.toggled = set()
        self.supplied = set()
        self.failed = set()
        self.leftover = []
        self.errors = []
        self.unknown = []

    def option(self, key, /):
        return next((option for option in self.options if option.matches_key(key)), None)

    def long(self, text, /):
        return next((switch for switch in self.switches if switch.matches_long(text)), None)

    def short(self, char, /):
        return next((switch for switch in self.switches if switch.matches_short(char)), None)

    def toggle(self, switch, value, /):
        self.switch_values[switch.name] = value
        self.toggled.add(switch.name)

    def fail(self, kind, message, option, input, /):
        self.errors.append(ParseError(kind, message, argument=option.name, input=input))
        self.failed.add(option.name)

    def convert(self, option, raw, /):
        """
        Parse, transform and validate one value; returns (value, kind, reason).
        """
        conversion = option.parser.parse(raw)
        if not conversion.ok and self.correct is not None:
            conversion = self.correct(option, raw) or conversion
        if not conversion.ok:
            return Unset, ErrorKind.PARSING, conversion.reason
        value = option.transform(conversion.value)
        if (reason := option.validate(value)) is not None:
            return Unset, ErrorKind.VALIDATION, reason
        return value, None, None

    def assign(self, option, raw, /):
        value = unquote(raw)
        try:
            if option.multiple:
                self.assign_many(option, value)
            else:
                converted, kind, reason = self.convert(option, value)
                if kind is ErrorKind.PARSING:
                    self.fail(kind, "invalid value for option %r: %s" % (option.key, reason), option, value)
                elif kind is ErrorKind.VALIDATION:
                    self.fail(kind, reason, option, value)
                else:
                    self.option_values[option.name] = converted
                    self.supplied.add(option.name)
        except Exception as error:
            logger.warning("option %r raised while converting %r", option.name, value, exc_info=True)
            self.fail(
                ErrorKind.INTERNAL_ERROR,
                "option %r could not be processed (%s: %s)" % (option.key, type(error).__name__, error),
                option,
                value,
            )

    def assign_many(self, option, value, /):
        pieces = [piece for piece in map(str.strip, value.split(option.separator)) if piece]
        values, failures = [], {ErrorKind.PARSING: [], ErrorKind.VALIDATION: []}
        for piece in pieces:
            converted, kind, reason = self.convert(option, piece)
            if kind is not None:
                failures[kind].append("%r (%s)" % (piece, reason))
            elif option.distinct and converted in values:
                failures[ErrorKind.VALIDATION].append("%r (duplicate value)" % piece)
            else:
                values.append(converted)

        for kind in (ErrorKind.PARSING, ErrorKind.VALIDATION):
            if failures[kind]:
                return self.fail(kind, "invalid values for option %r: %s" % (
                    option.key, "; ".join(failures[kind])
                ), option, value)

        self.option_values[option.name] = tuple(values)
        self.supplied.add(option.name)

    def scan_long(self, index, /):
        token = self.tokens[index]
        body = token[2:]

        if (equals := body.find("=")) > 0:
            key, value = body[:equals], body[equals + 1:]
            if option := self.option(key):
                self.assign(option, value)
            elif switch := self.long(key):
                self.errors.append(ParseError(
                    ErrorKind.PARSING,
                    "switch '--%s' does not accept a value" % switch.long,
                    argument=switch.name,
                    input=token,
                ))
            else:
                self.leftover.append(token)
                self.unknown.append(token)
            return 1

        if body.lower().startswith("no-") and (switch := self.long(body[3:])) and switch.negatable:
            self.toggle(switch, False)
            return 1

        if switch := self.long(body):
            self.toggle(switch, True)
            return 1

        if option := self.option(body):
            if index + 1 >= len(self.tokens):
                self.fail(ErrorKind.USAGE, "option '--%s' requires a value" % option.key, option, token)
                return 1
            self.assign(option, self.tokens[index + 1])
            return 2

        self.leftover.append(token)
        self.unknown.append(token)
        return 1

    def scan_short(self, index, /):
        token = self.tokens[index]
        body = token[1:]

        if (equals := body.find("=")) > 0:
            if option := self.option(body[:equals]):
                self.assign(option, body[equals + 1:])
            else:
                self.leftover.append(token)
                self.unknown.append(token)
            return 1

        if all(matched := [self.short(char) for char in body]):
            for switch in matched:
                self.toggle(switch, True)
        else:
            self.leftover.append(token)
            if body.isalpha():
                self.unknown.append(token)
        return 1

    def scan_bare(self, index, /):
        token = self.tokens[index]
        if (separator := _separator(token)) > 0:
            if option := self.option(token[:separator]):
                self.assign(option, token[separator + 1:])
                return 1
            self.unknown.append(token)
        self.leftover.append(token)
        return 1

    def run(self):
        index = 0
        while index < len(self.tokens):
            token = self.tokens[index]
            if token.startswith("--") and len(token) > 2:
                index += self.scan_long(index)
            elif token.startswith("-") and len(token) > 1 and not token[1].isdigit() and token[1] != "-":
                index += self.scan_short(index)
            else:
                index += self.scan_bare(index)

        for option in self.options:
            if option.required and option.name not in self.supplied and option.name not in self.failed:
                self.errors.append(ParseError(
                    ErrorKind.USAGE,
                    "required option %r is missing" % option.key,
                    argument=option.name,
                ))

        logger.debug(
            "extracted %d switch(es), %d option(s), %d leftover token(s), %d error(s)",
            len(self.toggled), len(self.supplied), len(self.leftover), len(self.errors),
        )

        return Extraction(
            MappingProxyType(self.switch_values),
            MappingProxyType(self.option_values),
            tuple(self.leftover),
            tuple(self.errors),
            frozenset(self.toggled),
            frozenset(self.supplied),
            tuple(self.unknown),
        )


def extract(tokens, switches=(), options=(), /, correct=None):
    """
    Partition tokens into switches, options and leftover positional tokens.

    Parameters
    - tokens: iterable of already-tokenized strings.
    - switches: iterable of Switch.
    - options: iterable of Option.
    - correct: optional callable (option, raw) -> Conversion | None, asked for a
      replacement when a value fails to parse.

    Returns
    - Extraction

    Raises
    - TypeError: when the arguments are not of the expected kinds (never for user input).
    """
    if isinstance(tokens, str) or not isinstance(tokens, Iterable):
        raise TypeError("extract() tokens must be an iterable of strings")
    tokens = tuple(tokens)
    if not all(isinstance(token, str) for token in tokens):
        raise TypeError("extract() tokens must only contain strings")
    if correct is not None and not callable(correct):
        raise TypeError("extract() 'correct' must be callable")
    return _Extractor(tokens, *_sanitize(switches, options), correct).run()


def completions(partial, switches=(), options=(), /):
    """
    Completion candidates for a partially typed switch or option.

    Offers --long and --no-long (negatable switches), -s (short forms), --key= and key=
    (options), filtered by prefix without regard to case, sorted.
    """
    switches, options = _sanitize(switches, options)
    candidates = set()
    for switch in switches:
        if switch.long is not None:
            candidates.add("--" + switch.long)
            if switch.negatable:
                candidates.add("--no-" + switch.long)
        if switch.short is not None:
            candidates.add("-" + switch.short)
    for option in options:
        candidates.add("--%s=" % option.key)
        candidates.add("%s=" % option.key)
    prefix = partial.lower()
    return tuple(sorted(candidate for candidate in candidates if candidate.lower().startswith(prefix)))


__all__ = (
    "Extraction",
    "extract",
    "unquote",
    "completions",
)
