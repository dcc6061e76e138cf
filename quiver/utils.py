"""
Quiver utilities shared by the tokenizer, the specs and the resolver.

Overview
- UnsetType / Unset
  • Singleton sentinel for "not provided", so that None stays a legitimate default value.
  • Falsey, printable as "Unset", and sealed against subclassing.

- coalesce(value, default=None)
  • Replace Unset with a concrete default while keeping None/0/""/() untouched.

- rename(callable, name) / @rename("name")
  • Give generated callables (validators, checks, transformers) a readable __name__/__qualname__.

- mirror("attr")
  • Read-only property over a private field (self._attr); containers come back frozen
    (tuple, frozenset, read-only mapping) so shared specs cannot be mutated through their API.

- ordinal(number)
  • Message helper: 3 → "third".

Quick examples
    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> coalesce(None, "fallback") is None
    True
    >>> ordinal(2), ordinal(12), ordinal(23)
    ('second', '12th', '23rd')
"""
import builtins
import functools
import re
from collections.abc import Mapping, Sequence, Set
from types import MappingProxyType
from typing import final


@final
class UnsetType:
    """
    Sentinel type of the Unset singleton.

    Characteristics
    - bool(Unset) is False, yet Unset is neither None nor 0.
    - repr(Unset) is "Unset".
    - UnsetType() always returns the same instance and cannot be subclassed.
    """

    def __or__(self, other, /):
        """
        Support PEP 604 unions in isinstance checks (e.g., str | Unset).
        """
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo, /):
        return self

    def __reduce__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


Unset = UnsetType()


def coalesce(object, default=None, /):
    """
    Return object unless it is Unset, in which case default is returned.

    Falsey values (None, 0, "", ()) are preserved, only the sentinel is replaced:
    - coalesce("name", "fallback") -> "name"
    - coalesce(Unset, "fallback")  -> "fallback"
    - coalesce(None, "fallback")   -> None
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set a stable __name__/__qualname__ on a callable, or return a decorator doing so.

    Forms
    - rename(callable, name) -> callable (renamed in place)
    - rename(name) -> decorator

    Raises
    - TypeError: when the target is not callable, the name is not a string,
      or the callable does not accept attribute updates (built-ins).
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def _freeze(object):
    """
    Recursively convert containers into their immutable counterparts.

    - Mapping → read-only mapping proxy over a fresh dict (values frozen, keys kept)
    - Set → frozenset
    - Sequence (non-string) → tuple
    - anything else is returned unchanged
    """
    if isinstance(object, Mapping):
        return MappingProxyType(dict(zip(object.keys(), map(_freeze, object.values()))))
    elif isinstance(object, Set):
        return frozenset(map(_freeze, object))
    elif isinstance(object, Sequence) and not isinstance(object, str | bytes):
        return tuple(map(_freeze, object))
    return object


def mirror(name, /):
    """
    Define a read-only property exposing the private field "_{name}".

    Container values are frozen on the way out (see _freeze), so the public API of
    an object never hands out something that could alter the object itself.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _freeze(getattr(self, "_" + name))

    return property(getter)


class IntrospectiveType(type):
    """
    Metaclass giving specs and parsers a uniform, read-only public face.

    Responsibilities
    - Derive __typename__ from the class name (camel-case split with hyphens, lowercase);
      it is used in construction errors and as the default parser type name.
    - Expose every name listed in __introspectable__ as a read-only property over
      the matching private field (see mirror()).
    - Provide stable __repr__/__rich_repr__ from __displayable__ (or __introspectable__)
      unless the class defines its own.
    - Seal the class against subclassing when declared with sealed=True.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, /, sealed=False, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                field: mirror(field) for field in namespace.get("__introspectable__", ())
            },
            **options
        )

        if "__rich_repr__" not in namespace:
            @rename("__rich_repr__")
            def __rich_repr__(self):
                for field in coalesce(type(self).__displayable__, type(self).__introspectable__):
                    yield field, getattr(self, field)
            self.__rich_repr__ = __rich_repr__

        if "__repr__" not in namespace:
            @rename("__repr__")
            def __repr__(self):
                return "%s(%s)" % (type(self).__typename__, ", ".join(
                    "%s=%r" % pair for pair in self.__rich_repr__()
                ))
            self.__repr__ = __repr__

        if sealed:
            @rename("__init_subclass__")
            def __init_subclass__(cls, **options):  # NOQA: F-841
                raise TypeError(f"type {self.__name__!r} is not an acceptable base type")
            self.__init_subclass__ = classmethod(__init_subclass__)

        return self


def ordinal(number, /):
    """
    Return a human-friendly ordinal for a 1-based position.

    1..10 are spelled out ("first"…"tenth"), other numbers use numeric suffixes
    (11th, 21st, 112th, ...).
    """
    words = ("first", "second", "third", "fourth", "fifth", "sixth", "seventh", "eighth", "ninth", "tenth")
    if 1 <= number <= len(words):
        return words[number - 1]
    if 10 < number % 100 < 20:
        return f"{number}th"
    return f"{number}%s" % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


__all__ = (
    "UnsetType",
    "Unset",
    "coalesce",
    "rename",
    "mirror",
    "IntrospectiveType",
    "ordinal",
)
