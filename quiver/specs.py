r"""
Quiver specifications: what a command line may contain.

Overview
- Argument: positional slot, identified by declaration order. Backed by a value parser,
  required or optional (with an optional default), constrained by ranges, lengths,
  a regex and custom validators, optionally greedy, gated, conditional and aliased.
- Switch: boolean toggle with a short form (-v), a long form (--verbose), or both,
  and, unless disabled, a negated long form (--no-verbose).
- Option: key=value entry (also --key=value, --key value, -k=value, key:value), backed
  by a value parser, optionally multi-valued (split on a separator).

Metadata (sanitized on construction)
- Shared
  • name: non-empty string without whitespace.
  • capability: None or a non-empty token checked against the caller before the argument is used.
  • descr: Unset | str (short help), non-empty when provided; becomes None when omitted.
- Argument/Option (value-bearing)
  • parser: a ValueParser (defaults to Text()).
  • required/default: mutually exclusive; a required spec cannot carry a default.
  • minimum/maximum, min_length/max_length, pattern: built-in constraints, checked
    in that order before the custom validators.
  • validators: callables value -> str | None, run in declared order.
  • transformers: callables value -> value, applied before validation.
- Argument only
  • greedy: consume the rest of the line; needs a textual parser.
  • aliases: alternate names resolving to the same value.
  • condition: callable context -> bool; a false result skips the argument entirely.
  • completions: predefined completion strings, also used for suggestions.
- Option only
  • key: input key (defaults to name), matched without regard to case.
  • multiple/separator/distinct: multi-valued options.
- Switch only
  • short: single letter; long: name without spaces (leading dashes are dropped).
  • default: bool; negatable: accept --no-<long>.

Violations raise TypeError (wrong kinds of values) or ValueError (bad values), at
construction time only. Specs are immutable afterwards and safe to share.

Quick example
    >>> from quiver import Argument, Option, Switch, Integer
    >>> count = Argument("count", Integer(), required=False, default=1, minimum=1)
    >>> verbose = Switch("verbose", "v", "verbose")
    >>> level = Option("level", Integer(), minimum=1, maximum=10)
"""
import re
from collections.abc import Iterable

from rich.text import Text as RichText

from .parsers import Text, ValueParser
from .utils import IntrospectiveType, Unset, coalesce
from . import validators as _validators


def _sanitize_name(cls, name, label, /):
    if not isinstance(name, str):
        raise TypeError(f"{cls.__typename__} '{label}' must be a string")
    elif not (name := name.strip()):
        raise ValueError(f"{cls.__typename__} '{label}' cannot be empty")
    elif re.search(r"\s", name):
        raise ValueError(f"{cls.__typename__} '{label}' cannot contain whitespace")
    return name


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize and validate metadata shared by every spec.

    - name: non-empty after trimming, no internal whitespace.
    - capability: None or a non-empty string (trimmed).
    - descr: Unset → None, otherwise a non-empty string (trimmed) or a rich Text.

    The dict is mutated in place.
    """
    metadata["name"] = _sanitize_name(cls, metadata["name"], "name")

    if not isinstance(capability := metadata["capability"], str | None):
        raise TypeError(f"{cls.__typename__} 'capability' must be a string")
    elif isinstance(capability, str) and not (capability := capability.strip()):
        raise ValueError(f"{cls.__typename__} 'capability' cannot be empty")
    metadata["capability"] = capability

    if not isinstance(descr := metadata["descr"], str | RichText | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)


def _sanitize_callables(cls, metadata, label, /):
    if not isinstance(items := metadata[label], Iterable):
        raise TypeError(f"{cls.__typename__} '{label}' must be an iterable of callables")
    items = tuple(items)
    if not all(callable(item) for item in items):
        raise TypeError(f"{cls.__typename__} '{label}' must only contain callables")
    metadata[label] = items


def _sanitize_parametric_metadata(cls, metadata, /):
    """
    Internal: normalize and validate metadata of value-bearing specs (Argument, Option).

    Responsibilities
    - parser: Unset → Text(); otherwise must be a ValueParser.
    - required/default: a required spec cannot carry a default (Unset means no default).
    - validators/transformers: iterables of callables, frozen into tuples.
    - minimum/maximum/min_length/max_length/pattern: turned into the leading
      constraint validators (stored in '_constraints', never exposed).
    """
    metadata["parser"] = coalesce(metadata["parser"], Text())
    if not isinstance(metadata["parser"], ValueParser):
        raise TypeError(f"{cls.__typename__} 'parser' must be a value-parser")

    if metadata["required"] and metadata["default"] is not Unset:
        raise ValueError(f"required {cls.__typename__} {metadata['name']!r} cannot have a default")

    _sanitize_callables(cls, metadata, "validators")
    _sanitize_callables(cls, metadata, "transformers")

    constraints = []
    for label, factory in (("minimum", _validators.minimum), ("maximum", _validators.maximum)):
        if (bound := metadata.pop(label)) is not None:
            if not isinstance(bound, int | float) or isinstance(bound, bool):
                raise TypeError(f"{cls.__typename__} '{label}' must be a number")
            constraints.append(factory(bound))

    shortest, longest = metadata.pop("min_length"), metadata.pop("max_length")
    if shortest is not None or longest is not None:
        if not isinstance(shortest, int | None) or not isinstance(longest, int | None):
            raise TypeError(f"{cls.__typename__} length bounds must be integers")
        constraints.append(_validators.length(shortest, longest))

    if (pattern := metadata.pop("pattern")) is not None:
        constraints.append(_validators.matches(pattern))

    metadata["_constraints"] = tuple(constraints)


class Parametric(metaclass=IntrospectiveType):
    """
    Shared behavior of value-bearing specs (Argument, Option).
    """

    def transform(self, value, /):
        """
        Apply the transformers in declared order.
        """
        for transformer in self._transformers:
            value = transformer(value)
        return value

    def validate(self, value, /):
        """
        Return the first refusal of the constraint chain, or None.

        Built-in constraints run first (range, length, pattern), then the custom
        validators in declared order; evaluation stops at the first refusal.
        """
        for validator in (*self._constraints, *self._validators):
            if (reason := validator(value)) is not None:
                return reason
        return None

    @property
    def candidates(self):
        """
        Spellings this spec knows about, used to suggest corrections.
        """
        return self._parser.candidates


class Argument(Parametric, sealed=True):
    """
    Positional, value-bearing argument specification.

    Properties
    - The names listed in __introspectable__ are exposed as read-only attributes
      mirroring the sanitized metadata.
    """

    __introspectable__ = (
        "name",
        "parser",
        "required",
        "default",
        "greedy",
        "aliases",
        "validators",
        "transformers",
        "capability",
        "condition",
        "completions",
        "descr",
    )
    __displayable__ = ("name", "parser", "required", "default", "greedy", "aliases", "capability")

    def __init__(
            self,
            name,
            parser=Unset,
            /,
            *,
            required=True,
            default=Unset,
            greedy=False,
            aliases=(),
            validators=(),
            transformers=(),
            minimum=None,
            maximum=None,
            min_length=None,
            max_length=None,
            pattern=None,
            capability=None,
            condition=None,
            completions=(),
            descr=Unset,
    ):
        """
        Construct an Argument spec.

        Parameters
        - name: str, unique within the signature.
        - parser: ValueParser (Text() when omitted).
        - required: bool; optional arguments may carry a default.
        - default: any value, Unset meaning "absent when not given".
        - greedy: bool; swallows the rest of the line (textual parsers only).
        - aliases: iterable of alternate names.
        - validators / transformers: iterables of callables.
        - minimum/maximum/min_length/max_length/pattern: built-in constraints.
        - capability: token the caller must hold; None for ungated arguments.
        - condition: callable(context) -> bool; None means always resolved.
        - completions: iterable of predefined completion strings.
        - descr: short description.
        """
        metadata = {
            "name": name,
            "parser": parser,
            "required": bool(required),
            "default": default,
            "greedy": bool(greedy),
            "aliases": aliases,
            "validators": validators,
            "transformers": transformers,
            "minimum": minimum,
            "maximum": maximum,
            "min_length": min_length,
            "max_length": max_length,
            "pattern": pattern,
            "capability": capability,
            "condition": condition,
            "completions": completions,
            "descr": descr,
        }
        cls = type(self)
        _sanitize_metadata(cls, metadata)
        _sanitize_parametric_metadata(cls, metadata)

        if metadata["greedy"] and not metadata["parser"].textual:
            raise TypeError(f"greedy {cls.__typename__} {metadata['name']!r} requires a textual parser")

        if isinstance(aliases := metadata["aliases"], str) or not isinstance(aliases, Iterable):
            raise TypeError(f"{cls.__typename__} 'aliases' must be an iterable of strings")
        sanitized = []
        for alias in aliases:
            if (alias := _sanitize_name(cls, alias, "aliases")) == metadata["name"] or alias in sanitized:
                raise ValueError(f"{cls.__typename__} 'aliases' cannot contain duplicates")
            sanitized.append(alias)
        metadata["aliases"] = tuple(sanitized)

        if metadata["condition"] is not None and not callable(metadata["condition"]):
            raise TypeError(f"{cls.__typename__} 'condition' must be callable")

        if isinstance(completions := metadata["completions"], str) or not isinstance(completions, Iterable):
            raise TypeError(f"{cls.__typename__} 'completions' must be an iterable of strings")
        completions = tuple(completions)
        if not all(isinstance(completion, str) for completion in completions):
            raise TypeError(f"{cls.__typename__} 'completions' must only contain strings")
        metadata["completions"] = completions

        for name, object in metadata.items():
            setattr(self, "_" + name.lstrip("_"), object)

    @property
    def candidates(self):
        return self._parser.candidates or self._completions

    def complete(self, partial, /):
        """
        Completion hints: the predefined completions when declared, else the parser's.
        """
        if self._completions:
            prefix = partial.lower()
            return tuple(sorted(item for item in self._completions if item.lower().startswith(prefix)))
        return self._parser.complete(partial)


class Switch(metaclass=IntrospectiveType, sealed=True):
    """
    Boolean toggle specification (-v, --verbose, --no-verbose).
    """

    __introspectable__ = (
        "name",
        "short",
        "long",
        "default",
        "negatable",
        "capability",
        "descr",
    )

    def __init__(self, name, short=None, long=None, /, *, default=False, negatable=True, capability=None,
                 descr=Unset):
        """
        Construct a Switch spec.

        Parameters
        - name: str, unique among switches.
        - short: None or a single letter (matched case-sensitively, without the dash).
        - long: None or a name without spaces (leading dashes are dropped, matched
          without regard to case). At least one of short/long is required.
        - default: bool value when the switch is not given.
        - negatable: whether --no-<long> turns the switch off.
        - capability / descr: see module documentation.
        """
        metadata = {
            "name": name,
            "capability": capability,
            "descr": descr,
        }
        cls = type(self)
        _sanitize_metadata(cls, metadata)

        if short is None and long is None:
            raise ValueError(f"{cls.__typename__} {metadata['name']!r} needs a short or a long form")

        if short is not None:
            if not isinstance(short, str):
                raise TypeError(f"{cls.__typename__} 'short' must be a string")
            short = short.removeprefix("-")
            if len(short) != 1 or not short.isalpha():
                raise ValueError(f"{cls.__typename__} 'short' must be a single letter")

        if long is not None:
            long = _sanitize_name(cls, long, "long").lstrip("-")
            if not long:
                raise ValueError(f"{cls.__typename__} 'long' cannot be only dashes")

        if not isinstance(default, bool):
            raise TypeError(f"{cls.__typename__} 'default' must be a boolean")

        self._name = metadata["name"]
        self._short = short
        self._long = long
        self._default = default
        self._negatable = bool(negatable) and long is not None
        self._capability = metadata["capability"]
        self._descr = metadata["descr"]

    def matches_long(self, text, /):
        return self._long is not None and self._long.lower() == text.lower()

    def matches_short(self, char, /):
        return self._short is not None and self._short == char


class Option(Parametric, sealed=True):
    """
    key=value entry specification.
    """

    __introspectable__ = (
        "name",
        "key",
        "parser",
        "required",
        "default",
        "multiple",
        "separator",
        "distinct",
        "validators",
        "transformers",
        "capability",
        "descr",
    )
    __displayable__ = ("name", "key", "parser", "required", "default", "multiple", "capability")

    def __init__(
            self,
            name,
            parser=Unset,
            /,
            key=Unset,
            *,
            required=False,
            default=Unset,
            multiple=False,
            separator=",",
            distinct=False,
            validators=(),
            transformers=(),
            minimum=None,
            maximum=None,
            min_length=None,
            max_length=None,
            pattern=None,
            capability=None,
            descr=Unset,
    ):
        """
        Construct an Option spec.

        Parameters
        - name: str, unique among options (and the value name in the resolved context).
        - parser: ValueParser applied to the value (or to every piece when multiple).
        - key: str used in input, defaults to name; no whitespace, '=' or ':'.
        - required / default: mutually exclusive; a multi-valued default becomes a tuple.
        - multiple / separator / distinct: split the value on separator (non-empty),
          optionally refusing duplicate values.
        - validators / transformers / constraints / capability / descr: see module
          documentation; constraints and validators apply to every value.
        """
        metadata = {
            "name": name,
            "parser": parser,
            "required": bool(required),
            "default": default,
            "validators": validators,
            "transformers": transformers,
            "minimum": minimum,
            "maximum": maximum,
            "min_length": min_length,
            "max_length": max_length,
            "pattern": pattern,
            "capability": capability,
            "descr": descr,
        }
        cls = type(self)
        _sanitize_metadata(cls, metadata)
        _sanitize_parametric_metadata(cls, metadata)

        key = _sanitize_name(cls, coalesce(key, metadata["name"]), "key").lstrip("-")
        if not key or "=" in key or ":" in key:
            raise ValueError(f"{cls.__typename__} 'key' must not be empty nor contain '=' or ':'")
        metadata["key"] = key

        if not isinstance(separator, str):
            raise TypeError(f"{cls.__typename__} 'separator' must be a string")
        elif not separator:
            raise ValueError(f"{cls.__typename__} 'separator' cannot be empty")
        metadata["separator"] = separator
        metadata["multiple"] = bool(multiple)
        metadata["distinct"] = bool(distinct)

        if metadata["multiple"] and metadata["default"] is not Unset:
            if isinstance(default, str) or not isinstance(default, Iterable):
                raise TypeError(f"multi-valued {cls.__typename__} 'default' must be an iterable")
            metadata["default"] = tuple(default)

        for name, object in metadata.items():
            setattr(self, "_" + name.lstrip("_"), object)

    def matches_key(self, text, /):
        return self._key.lower() == text.lower()


__all__ = (
    "Argument",
    "Switch",
    "Option",
)
