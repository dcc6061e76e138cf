"""
Quiver validators, transformers and cross-argument checks.

Validators
- Callables value -> str | None: None accepts the value, a string is the lowercase reason
  it was refused. They run after parsing (and after transformers), in declared order,
  and the first refusal wins.
- minimum(), maximum(), length(), matches(), predicate().

Transformers
- Callables value -> value applied to a parsed value before validation.
  String transformers leave non-string values untouched.
- trim, lowercase, uppercase, collapse (runs of whitespace → one space), clamp().

Cross-argument checks
- Callables ResolvedContext -> str | None, run once every argument, switch and option
  resolved without error. A refusal becomes a cross-validation error.
- ordered(), exclusive(), at_least_one(), all_or_none(), requires(), check().
- "Present" means what ResolvedContext.has() says: supplied (or defaulted) with a
  value other than None, and for switches, turned on.
"""
import re

from .utils import rename


def _quoted(names, /):
    return ", ".join(map(repr, names))


def _names(function, names, minimum, /):
    if len(names) < minimum:
        raise TypeError("%s() requires at least %d names" % (function, minimum))
    if not all(isinstance(name, str) and name.strip() for name in names):
        raise TypeError("%s() names must be non-empty strings" % function)
    if len(set(names)) != len(names):
        raise ValueError("%s() names cannot contain duplicates" % function)
    return tuple(names)


def minimum(bound, /):
    """
    Refuse values below bound (inclusive bound).
    """
    if not isinstance(bound, int | float) or isinstance(bound, bool):
        raise TypeError("minimum() bound must be a number")

    @rename("minimum")
    def validator(value):
        if value < bound:
            return "must be at least %s (got %s)" % (bound, value)
        return None
    return validator


def maximum(bound, /):
    """
    Refuse values above bound (inclusive bound).
    """
    if not isinstance(bound, int | float) or isinstance(bound, bool):
        raise TypeError("maximum() bound must be a number")

    @rename("maximum")
    def validator(value):
        if value > bound:
            return "must be at most %s (got %s)" % (bound, value)
        return None
    return validator


def length(minimum=None, maximum=None, /):
    """
    Refuse values whose len() falls outside [minimum, maximum].
    """
    if not isinstance(minimum, int | None) or not isinstance(maximum, int | None):
        raise TypeError("length() bounds must be integers")
    if minimum is None and maximum is None:
        raise TypeError("length() requires at least one bound")
    if (minimum or 0) < 0 or (maximum is not None and maximum < (minimum or 0)):
        raise ValueError("length() bounds must satisfy 0 <= minimum <= maximum")

    @rename("length")
    def validator(value):
        if minimum is not None and len(value) < minimum:
            return "length must be at least %d (got %d)" % (minimum, len(value))
        if maximum is not None and len(value) > maximum:
            return "length must be at most %d (got %d)" % (maximum, len(value))
        return None
    return validator


def matches(pattern, /):
    """
    Refuse strings that do not fully match pattern (a string or a compiled regex).
    """
    if isinstance(pattern, str):
        try:
            pattern = re.compile(pattern)
        except re.error as error:
            raise ValueError("matches() pattern is not a valid regex (%s)" % error) from None
    elif not isinstance(pattern, re.Pattern):
        raise TypeError("matches() pattern must be a string or a compiled regex")

    @rename("matches")
    def validator(value):
        if not pattern.fullmatch(str(value)):
            return "does not match required pattern: %s" % pattern.pattern
        return None
    return validator


def predicate(test, message, /):
    """
    Refuse values for which test(value) is false, with a fixed message.
    """
    if not callable(test):
        raise TypeError("predicate() test must be callable")
    if not isinstance(message, str) or not message.strip():
        raise TypeError("predicate() message must be a non-empty string")

    @rename(getattr(test, "__name__", "predicate"))
    def validator(value):
        return None if test(value) else message
    return validator


def trim(value, /):
    return value.strip() if isinstance(value, str) else value


def lowercase(value, /):
    return value.lower() if isinstance(value, str) else value


def uppercase(value, /):
    return value.upper() if isinstance(value, str) else value


def collapse(value, /):
    return " ".join(value.split()) if isinstance(value, str) else value


def clamp(lower, upper, /):
    """
    Transformer pinning numbers into [lower, upper].
    """
    if lower > upper:
        raise ValueError("clamp() lower bound cannot exceed upper bound")

    @rename("clamp")
    def transformer(value, /):
        return min(max(value, lower), upper)
    return transformer


def ordered(low, high, /, *, strict=False):
    """
    Check that low <= high (low < high when strict) whenever both are present.
    """
    low, high = _names("ordered", (low, high), 2)

    @rename("ordered")
    def checker(context):
        if not (context.has(low) and context.has(high)):
            return None
        if context[low] < context[high] or (not strict and context[low] == context[high]):
            return None
        return "%r must be %s %r" % (low, "less than" if strict else "at most", high)
    return checker


def exclusive(*names):
    """
    Check that at most one of names is present.
    """
    names = _names("exclusive", names, 2)

    @rename("exclusive")
    def checker(context):
        if len(given := [name for name in names if context.has(name)]) > 1:
            return "only one of %s may be given (got %s)" % (_quoted(names), _quoted(given))
        return None
    return checker


def at_least_one(*names):
    """
    Check that one or more of names is present.
    """
    names = _names("at_least_one", names, 1)

    @rename("at_least_one")
    def checker(context):
        if not any(context.has(name) for name in names):
            return "at least one of %s is required" % _quoted(names)
        return None
    return checker


def all_or_none(*names):
    """
    Check that names are either all present or all absent.
    """
    names = _names("all_or_none", names, 2)

    @rename("all_or_none")
    def checker(context):
        given = [name for name in names if context.has(name)]
        if given and len(given) != len(names):
            missing = [name for name in names if name not in given]
            return "%s must be given together (missing %s)" % (_quoted(names), _quoted(missing))
        return None
    return checker


def requires(name, /, *others):
    """
    Check that when name is present, every one of others is present too.
    """
    name, *others = _names("requires", (name, *others), 2)

    @rename("requires")
    def checker(context):
        if context.has(name) and (missing := [other for other in others if not context.has(other)]):
            return "%r requires %s" % (name, _quoted(missing))
        return None
    return checker


def check(test, message, /):
    """
    Generic check: refuse the context when test(context) is false.
    """
    if not callable(test):
        raise TypeError("check() test must be callable")
    if not isinstance(message, str) or not message.strip():
        raise TypeError("check() message must be a non-empty string")

    @rename(getattr(test, "__name__", "check"))
    def checker(context):
        return None if test(context) else message
    return checker


__all__ = (
    "minimum",
    "maximum",
    "length",
    "matches",
    "predicate",
    "trim",
    "lowercase",
    "uppercase",
    "collapse",
    "clamp",
    "ordered",
    "exclusive",
    "at_least_one",
    "all_or_none",
    "requires",
    "check",
)
