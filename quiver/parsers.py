"""
Quiver value parsers: turn a single token into a typed value or a reason.

Contract
- parse(token) -> Conversion: Conversion.accept(value) or Conversion.reject(reason).
  Parsers never raise for bad user input; a raise is treated by the resolver as an
  internal error of the parser.
- complete(partial) -> tuple[str, ...]: completion hints for a partially typed token,
  filtered case-insensitively by prefix and sorted. Never raises, may be empty.
- typename: short label used in messages ("integer", "list<text>", "integer|boolean").
- candidates: the closed set of accepted spellings, when there is one (choices, enum
  members, boolean words); the resolver feeds it to the suggestion engine.
- textual: whether the parser accepts free text, which is what makes greedy
  arguments legal.

Parsers are immutable once built and keep no state between calls, so a single
instance can be shared by any number of specs and threads.

Built-ins
- Integer (32-bit), Long (64-bit), Decimal (finite float): overflow detected.
- Boolean: true/yes/on/1 and false/no/off/0.
- Text: any token.
- Identifier: UUID-shaped string → uuid.UUID.
- Ranged: bounds check around another numeric parser.
- Choice: closed set of display keys mapped to arbitrary values.
- Enumerant: members of an enum.Enum, by name.
- Listing: several values of one parser, split on a delimiter or on whitespace.
- FirstOf: first parser that accepts wins.
- Duration: "1h30m", "2d", "500ms", plain seconds, or permanent.

Quick example
    >>> Integer().parse("42")
    Conversion(ok=True, value=42, reason=None)
    >>> Listing(Integer(), ",").parse("1,2,,3").value
    (1, 2, 3)
"""
import datetime
import enum
import math
import re
import uuid
from collections.abc import Iterable, Mapping
from typing import NamedTuple

from .tokens import tokenize
from .utils import IntrospectiveType


class Conversion(NamedTuple):
    """
    Outcome of a single parse: either an accepted value or a rejection reason.
    """
    ok: bool
    value: object = None
    reason: str | None = None

    @classmethod
    def accept(cls, value, /):
        return cls(True, value, None)

    @classmethod
    def reject(cls, reason, /):
        if not isinstance(reason, str) or not reason:
            raise TypeError("conversion reason must be a non-empty string")
        return cls(False, None, reason)


def _starting_with(partial, options, /):
    """
    Options starting with partial (case-insensitive), sorted and without duplicates.
    """
    prefix = partial.lower()
    return tuple(sorted({option for option in options if option.lower().startswith(prefix)}))


class ValueParser(metaclass=IntrospectiveType):
    """
    Base class of all value parsers.

    Subclasses implement parse() and may override complete(), candidates and textual.
    The default typename is the hyphenated class name ("value-parser" → override it).
    """
    __introspectable__ = ()

    textual = False

    @property
    def typename(self):
        return type(self).__typename__

    @property
    def candidates(self):
        return ()

    def parse(self, token, /):
        raise NotImplementedError("%s must implement parse()" % type(self).__name__)

    def complete(self, partial, /):
        return _starting_with(partial, self.candidates)


def _integral(pattern, lower, upper, label, typename, /):
    def parse(self, token, /):
        if not pattern.fullmatch(token := token.strip()):
            return Conversion.reject("not %s" % label)
        if not lower <= (value := int(token)) <= upper:
            return Conversion.reject("out of range for %s" % typename)
        return Conversion.accept(value)
    return parse


_INTEGRAL = re.compile(r"[+-]?[0-9]+")
_DECIMAL = re.compile(r"[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?")


class Integer(ValueParser, sealed=True):
    """
    Signed 32-bit integer.
    """
    parse = _integral(_INTEGRAL, -2 ** 31, 2 ** 31 - 1, "an integer", "int")


class Long(ValueParser, sealed=True):
    """
    Signed 64-bit integer.
    """
    parse = _integral(_INTEGRAL, -2 ** 63, 2 ** 63 - 1, "a long", "long")


class Decimal(ValueParser, sealed=True):
    """
    Finite floating point number; nan, inf and overflowing literals are rejected.
    """

    def parse(self, token, /):
        if not _DECIMAL.fullmatch(token := token.strip()):
            return Conversion.reject("not a valid number")
        if not math.isfinite(value := float(token)):
            return Conversion.reject("number out of range")
        return Conversion.accept(value)


class Boolean(ValueParser, sealed=True):
    """
    Loose boolean: true/yes/on/1 or false/no/off/0, in any case.
    """
    TRUTHY = ("true", "yes", "on", "1")
    FALSY = ("false", "no", "off", "0")

    @property
    def candidates(self):
        return self.TRUTHY[:3] + self.FALSY[:3]

    def parse(self, token, /):
        match token.strip().lower():
            case word if word in self.TRUTHY:
                return Conversion.accept(True)
            case word if word in self.FALSY:
                return Conversion.accept(False)
            case _:
                return Conversion.reject("expected true/false, yes/no, on/off, or 1/0")


class Text(ValueParser, sealed=True):
    """
    Any token, unchanged.
    """
    textual = True

    def parse(self, token, /):
        return Conversion.accept(token)


class Identifier(ValueParser, sealed=True):
    """
    UUID in its canonical 8-4-4-4-12 hexadecimal form.
    """
    PATTERN = re.compile(r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}")

    @property
    def typename(self):
        return "uuid"

    def parse(self, token, /):
        if not self.PATTERN.fullmatch(token := token.strip()):
            return Conversion.reject("invalid uuid")
        return Conversion.accept(uuid.UUID(token))


class Ranged(ValueParser, sealed=True):
    """
    Bounds check (inclusive) around another numeric parser.
    """
    __introspectable__ = ("inner", "lower", "upper")

    def __init__(self, inner, /, lower=None, upper=None):
        if not isinstance(inner, ValueParser):
            raise TypeError("ranged 'inner' must be a value-parser")
        for bound in (lower, upper):
            if not isinstance(bound, int | float | None) or isinstance(bound, bool):
                raise TypeError("ranged bounds must be numbers")
        if lower is None and upper is None:
            raise ValueError("ranged must specify at least one bound")
        if lower is not None and upper is not None and lower > upper:
            raise ValueError("ranged 'lower' cannot exceed 'upper'")
        self._inner = inner
        self._lower = lower
        self._upper = upper

    @property
    def typename(self):
        return self._inner.typename

    def parse(self, token, /):
        if not (conversion := self._inner.parse(token)).ok:
            return conversion
        value = conversion.value
        if self._lower is not None and self._upper is not None:
            if not self._lower <= value <= self._upper:
                return Conversion.reject("must be between %s and %s (got %s)" % (self._lower, self._upper, value))
        elif self._lower is not None and value < self._lower:
            return Conversion.reject("must be at least %s (got %s)" % (self._lower, value))
        elif self._upper is not None and value > self._upper:
            return Conversion.reject("must be at most %s (got %s)" % (self._upper, value))
        return conversion

    def complete(self, partial, /):
        return self._inner.complete(partial)


class Choice(ValueParser, sealed=True):
    """
    Closed set of display keys, each mapped to a value.

    choices is either a mapping (key → value) or an iterable of keys mapped to themselves.
    Matching is case-insensitive unless ignore_case=False, in which case keys that only
    differ by case are still rejected at build time to keep the set unambiguous.
    """
    __introspectable__ = ("choices", "ignore_case")
    __displayable__ = ("choices",)

    def __init__(self, choices, /, typename="choice", *, ignore_case=True):
        if not isinstance(choices, Mapping):
            if not isinstance(choices, Iterable) or isinstance(choices, str):
                raise TypeError("choice 'choices' must be a mapping or an iterable of strings")
            choices = {choice: choice for choice in choices}
        if not choices:
            raise ValueError("choice 'choices' cannot be empty")
        folded = {}
        for key in choices:
            if not isinstance(key, str):
                raise TypeError("choice keys must be strings")
            elif not key.strip():
                raise ValueError("choice keys cannot be empty-strings")
            elif key.lower() in folded:
                raise ValueError("choice keys cannot differ only by case (%r and %r)" % (folded[key.lower()], key))
            folded[key.lower()] = key
        if not isinstance(typename, str) or not typename.strip():
            raise TypeError("choice 'typename' must be a non-empty string")
        self._choices = dict(choices)
        self._folded = folded
        self._typename = typename.strip()
        self._ignore_case = bool(ignore_case)

    @property
    def typename(self):
        return self._typename

    @property
    def candidates(self):
        return tuple(self._choices)

    def parse(self, token, /):
        key = token.strip()
        if self._ignore_case:
            key = self._folded.get(key.lower(), key)
        try:
            return Conversion.accept(self._choices[key])
        except KeyError:
            return Conversion.reject("expected one of: %s" % ", ".join(sorted(self._choices)))


class Enumerant(ValueParser, sealed=True):
    """
    Members of an enum.Enum, matched by name without regard to case.
    """
    __introspectable__ = ("enumeration",)

    def __init__(self, enumeration, /):
        if not isinstance(enumeration, type) or not issubclass(enumeration, enum.Enum):
            raise TypeError("enumerant argument must be an enum type")
        members = {}
        for name, member in enumeration.__members__.items():
            if name.lower() in members:
                raise ValueError("enumerant members cannot differ only by case (%r)" % name)
            members[name.lower()] = member
        if not members:
            raise ValueError("enumerant type must have members")
        self._enumeration = enumeration
        self._members = members

    @property
    def typename(self):
        return re.sub(r"(?<!^)(?=[A-Z])", r"-", self._enumeration.__name__).lower()

    @property
    def candidates(self):
        return tuple(self._members)

    def parse(self, token, /):
        try:
            return Conversion.accept(self._members[token.strip().lower()])
        except KeyError:
            return Conversion.reject("unknown %s %r" % (self.typename, token))


class Listing(ValueParser, sealed=True):
    """
    Several values of one element parser, as a tuple.

    With a delimiter the token is split on it (pieces trimmed, empty pieces dropped).
    Without one the token is read like a command line (whitespace separated, quotes
    honoured), which makes the listing textual and usable as a greedy argument.
    """
    __introspectable__ = ("inner", "delimiter", "minimum", "maximum", "distinct")

    def __init__(self, inner, /, delimiter=None, *, minimum=0, maximum=None, distinct=False):
        if not isinstance(inner, ValueParser):
            raise TypeError("listing 'inner' must be a value-parser")
        if not isinstance(delimiter, str | None):
            raise TypeError("listing 'delimiter' must be a string")
        elif delimiter is not None and not delimiter:
            raise ValueError("listing 'delimiter' cannot be empty")
        if not isinstance(minimum, int) or not isinstance(maximum, int | None):
            raise TypeError("listing bounds must be integers")
        if minimum < 0 or (maximum is not None and maximum < max(minimum, 1)):
            raise ValueError("listing bounds must satisfy 0 <= minimum <= maximum (maximum >= 1)")
        self._inner = inner
        self._delimiter = delimiter
        self._minimum = minimum
        self._maximum = maximum
        self._distinct = bool(distinct)

    @property
    def textual(self):
        return self._delimiter is None

    @property
    def typename(self):
        return "list<%s>" % self._inner.typename

    def _split(self, token, /):
        if self._delimiter is None:
            return tokenize(token)
        return tuple(filter(None, map(str.strip, token.split(self._delimiter)))), None

    def parse(self, token, /):
        pieces, unclosed = self._split(token)
        if unclosed:
            return Conversion.reject("unclosed %s quote" % ("double" if unclosed == '"' else "single"))

        if len(pieces) < self._minimum:
            return Conversion.reject("at least %d %s required, got %d" % (
                self._minimum, "value" if self._minimum == 1 else "values", len(pieces)
            ))
        if self._maximum is not None and len(pieces) > self._maximum:
            return Conversion.reject("at most %d %s allowed, got %d" % (
                self._maximum, "value" if self._maximum == 1 else "values", len(pieces)
            ))

        values, reasons = [], []
        for piece in pieces:
            if not (conversion := self._inner.parse(piece)).ok:
                reasons.append("%r: %s" % (piece, conversion.reason))
            elif self._distinct and conversion.value in values:
                reasons.append("duplicate value: %s" % piece)
            else:
                values.append(conversion.value)

        if reasons:
            return Conversion.reject("; ".join(reasons))
        return Conversion.accept(tuple(values))

    def complete(self, partial, /):
        if self._delimiter is None:
            cut = max(partial.rfind(" "), partial.rfind("\t")) + 1
        else:
            cut = partial.rfind(self._delimiter) + len(self._delimiter) if self._delimiter in partial else 0
        head, last = partial[:cut], partial[cut:].lstrip()
        return tuple(head + completion for completion in self._inner.complete(last))


class FirstOf(ValueParser, sealed=True):
    """
    Ordered alternatives: the first parser accepting the token wins.
    """
    __introspectable__ = ("parsers",)

    def __init__(self, *parsers):
        if not parsers:
            raise TypeError("first-of requires at least one parser")
        if not all(isinstance(parser, ValueParser) for parser in parsers):
            raise TypeError("first-of arguments must be value-parsers")
        self._parsers = parsers

    @property
    def typename(self):
        return "|".join(parser.typename for parser in self._parsers)

    @property
    def textual(self):
        return all(parser.textual for parser in self._parsers)

    @property
    def candidates(self):
        return tuple(dict.fromkeys(candidate for parser in self._parsers for candidate in parser.candidates))

    def parse(self, token, /):
        for parser in self._parsers:
            if (conversion := parser.parse(token)).ok:
                return conversion
        return Conversion.reject("no matching parser for input")

    def complete(self, partial, /):
        return tuple(sorted({item for parser in self._parsers for item in parser.complete(partial)}))


PERMANENT = datetime.timedelta.max

_UNITS = {
    "y": datetime.timedelta(days=365),
    "mo": datetime.timedelta(days=30),
    "w": datetime.timedelta(weeks=1),
    "d": datetime.timedelta(days=1),
    "h": datetime.timedelta(hours=1),
    "m": datetime.timedelta(minutes=1),
    "s": datetime.timedelta(seconds=1),
    "ms": datetime.timedelta(milliseconds=1),
}
_SEGMENT = re.compile(r"([0-9]+(?:\.[0-9]+)?)(ms|mo|y|w|d|h|m|s)?")


class Duration(ValueParser, sealed=True):
    """
    Human duration → datetime.timedelta.

    Accepted forms
    - unit segments: "1h30m", "2d", "1.5h", "500ms" (units y, mo, w, d, h, m, s, ms;
      a trailing number without unit counts as seconds)
    - a plain number of seconds: "90"
    - "permanent", "forever" or "infinite" → PERMANENT (timedelta.max)
    """
    EXAMPLES = ("1m", "5m", "30m", "1h", "6h", "12h", "1d", "7d", "30d", "permanent")

    @property
    def candidates(self):
        return ("permanent", "forever", "infinite")

    def parse(self, token, /):
        if not (text := token.strip().lower()):
            return Conversion.reject("duration cannot be empty")
        if text in ("permanent", "forever", "infinite"):
            return Conversion.accept(PERMANENT)

        total, position = datetime.timedelta(), 0
        while position < len(text):
            if not (segment := _SEGMENT.match(text, position)):
                return Conversion.reject("invalid duration: expected a number at %r" % text[position:])
            amount, unit = segment.groups()
            if unit is None and segment.end() < len(text):
                return Conversion.reject("unknown time unit at %r (valid units: s, m, h, d, w, mo, y)" % text[segment.end():])
            try:
                total += float(amount) * _UNITS[unit or "s"]
            except OverflowError:
                return Conversion.reject("duration out of range")
            position = segment.end()
        return Conversion.accept(total)

    def complete(self, partial, /):
        completions = set(_starting_with(partial, self.EXAMPLES))
        if partial[-1:].isdigit():
            completions.update(partial + unit for unit in ("s", "m", "h", "d", "w"))
        return tuple(sorted(completions))


def format_duration(delta, /):
    """
    Render a timedelta as "1y 2mo 3w 4d 5h 6m 7s"; zero is "0s" and PERMANENT (or any
    negative duration) is "permanent". Milliseconds are dropped.
    """
    if not isinstance(delta, datetime.timedelta):
        raise TypeError("format_duration() argument must be a timedelta")
    if delta == PERMANENT or delta < datetime.timedelta():
        return "permanent"

    parts, remaining = [], delta
    for unit in ("y", "mo", "w", "d", "h", "m", "s"):
        count, remaining = divmod(remaining, _UNITS[unit])
        if count:
            parts.append("%d%s" % (count, unit))
    return " ".join(parts) or "0s"


__all__ = (
    "Conversion",
    "ValueParser",
    "Integer",
    "Long",
    "Decimal",
    "Boolean",
    "Text",
    "Identifier",
    "Ranged",
    "Choice",
    "Enumerant",
    "Listing",
    "FirstOf",
    "Duration",
    "PERMANENT",
    "format_duration",
)
