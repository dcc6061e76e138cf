"""
Quiver caller options: how one resolution should behave.

- ParseOptions: error policy (fail-fast or collect-all), suggestions, guard/permission
  skipping, auto-correction and metrics. Presets: DEFAULT, STRICT, LENIENT.
- PartialParseOptions: progressive resolution over a sub-range of the arguments.

Both are immutable; derive variants with copy.replace(options, field=value).
"""
from .utils import IntrospectiveType


def _flag(cls, metadata, name, /):
    if not isinstance(metadata[name], bool):
        raise TypeError(f"{cls.__typename__} {name!r} must be a boolean")


def _count(cls, metadata, name, /):
    if not isinstance(value := metadata[name], int) or isinstance(value, bool):
        raise TypeError(f"{cls.__typename__} {name!r} must be an integer")
    elif value < 0:
        raise ValueError(f"{cls.__typename__} {name!r} cannot be negative")


class ParseOptions(metaclass=IntrospectiveType, sealed=True):
    """
    Caller-supplied resolution policy.

    Fields
    - collect_all: keep going after an argument fails and report every error.
    - include_suggestions: attach "did you mean" corrections to parsing errors.
    - skip_guards / skip_permission_checks: bypass guards / capability gates.
    - auto_correct: retry a failed parse with the best suggestion when its similarity
      is at least correction_threshold, at most max_corrections times per resolution.
    - metrics: measure phases and report a ParseMetrics (outcome + sink).
    """
    __introspectable__ = (
        "collect_all",
        "include_suggestions",
        "skip_guards",
        "skip_permission_checks",
        "auto_correct",
        "correction_threshold",
        "max_corrections",
        "metrics",
    )

    DEFAULT: "ParseOptions"
    STRICT: "ParseOptions"
    LENIENT: "ParseOptions"

    def __init__(
            self,
            *,
            collect_all=False,
            include_suggestions=True,
            skip_guards=False,
            skip_permission_checks=False,
            auto_correct=False,
            correction_threshold=0.8,
            max_corrections=1,
            metrics=False,
    ):
        metadata = {
            "collect_all": collect_all,
            "include_suggestions": include_suggestions,
            "skip_guards": skip_guards,
            "skip_permission_checks": skip_permission_checks,
            "auto_correct": auto_correct,
            "correction_threshold": correction_threshold,
            "max_corrections": max_corrections,
            "metrics": metrics,
        }
        cls = type(self)
        for name in ("collect_all", "include_suggestions", "skip_guards", "skip_permission_checks",
                     "auto_correct", "metrics"):
            _flag(cls, metadata, name)
        _count(cls, metadata, "max_corrections")
        if not isinstance(threshold := correction_threshold, int | float) or isinstance(threshold, bool):
            raise TypeError(f"{cls.__typename__} 'correction_threshold' must be a number")
        elif not 0.0 <= threshold <= 1.0:
            raise ValueError(f"{cls.__typename__} 'correction_threshold' must be between 0.0 and 1.0")

        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(**{name: getattr(self, name) for name in type(self).__introspectable__} | overrides)

    def __eq__(self, other):
        if not isinstance(other, ParseOptions):
            return NotImplemented
        return all(getattr(self, name) == getattr(other, name) for name in type(self).__introspectable__)

    def __hash__(self):
        return hash(tuple(getattr(self, name) for name in type(self).__introspectable__))


ParseOptions.DEFAULT = ParseOptions()
ParseOptions.STRICT = ParseOptions(include_suggestions=False)
ParseOptions.LENIENT = ParseOptions(collect_all=True, auto_correct=True, correction_threshold=0.7, max_corrections=3)


class PartialParseOptions(metaclass=IntrospectiveType, sealed=True):
    """
    Progressive resolution of a sub-range of the declared arguments.

    Fields
    - start: index of the first argument resolved; positional tokens are matched
      to arguments from there on.
    - limit: maximum number of arguments resolved, None for no limit.
    - stop_on_error: stop at the first error.
    - keep_partial: retain the values resolved before an error (otherwise they are
      dropped from the outcome when an error occurred).
    - skip_guards / skip_permission_checks: as in ParseOptions.
    """
    __introspectable__ = (
        "start",
        "limit",
        "stop_on_error",
        "keep_partial",
        "skip_guards",
        "skip_permission_checks",
    )

    def __init__(
            self,
            *,
            start=0,
            limit=None,
            stop_on_error=False,
            keep_partial=True,
            skip_guards=False,
            skip_permission_checks=False,
    ):
        metadata = {
            "start": start,
            "limit": limit,
            "stop_on_error": stop_on_error,
            "keep_partial": keep_partial,
            "skip_guards": skip_guards,
            "skip_permission_checks": skip_permission_checks,
        }
        cls = type(self)
        _count(cls, metadata, "start")
        if limit is not None:
            _count(cls, metadata, "limit")
        for name in ("stop_on_error", "keep_partial", "skip_guards", "skip_permission_checks"):
            _flag(cls, metadata, name)

        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    def covers(self, index, /):
        """
        Whether the argument at index falls inside the requested range.
        """
        if index < self._start:
            return False
        return self._limit is None or index < self._start + self._limit

    @classmethod
    def first(cls, count, /):
        return cls(limit=count)

    @classmethod
    def only(cls, index, /):
        return cls(start=index, limit=1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(**{name: getattr(self, name) for name in type(self).__introspectable__} | overrides)


PartialParseOptions.DEFAULT = PartialParseOptions()
PartialParseOptions.UNTIL_ERROR = PartialParseOptions(stop_on_error=True)


__all__ = (
    "ParseOptions",
    "PartialParseOptions",
)
