"""
Cordage utilities (internal helpers, carefully exposed)

Scope
- Small building blocks shared by the graph, argument and walker layers.
- Stable enough for consumers, but designed to support the higher-level modules.

Overview
- UnsetType / Unset
  • Singleton sentinel for "value not provided", distinct from None.
  • Falsey, printable as "Unset", and non-subclassable.

- coalesce(value, default=None)
  • Replace Unset with a concrete default while keeping None/0/""/[] as-is.

- rename(callable, name) / @rename("name")
  • Assign a stable __name__/__qualname__ to generated callables.

- mirror("attr")
  • Read-only property over a private backing field (self._attr); containers are
    handed out as fresh copies.

- UNBOUNDED
  • Arity marker for "any number of optional values".

- quote(value) / listing(values) / plural(count, word)
  • Message helpers used by the fault texts.

Quick examples
    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> quote("abc")
    '"abc"'
    >>> plural(2, "argument")
    'arguments'
"""
import builtins
import functools
from collections.abc import Sequence, Mapping, Set
from typing import final

UNBOUNDED = -1
"""
arity marker: an argument with optional=UNBOUNDED takes every remaining token.
"""


@final
class UnsetType:
    """
    Internal singleton sentinel representing an "unset" value.

    Behavior
    - truthiness: bool(Unset) is False.
    - identity: Unset is a process-wide singleton (see __new__).
    - display: repr(Unset) -> "Unset".
    - final: subclassing is forbidden.
    """

    def __or__(self, other, /):
        try:
            return type(self) | other
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

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


Unset = UnsetType()


def coalesce(object, default=None, /):
    """
    Resolve the Unset sentinel to a concrete default.

    Falsey values like None, 0, "" or [] are preserved; only Unset is replaced.

    Examples
    - coalesce("name", "fallback") -> "name"
    - coalesce(Unset, "fallback")  -> "fallback"
    - coalesce(None, "fallback")   -> None
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set a stable __name__/__qualname__ on a callable, or return a decorator
    that will do so later.

    Forms
    - rename(callable, name) -> callable
    - rename(name)           -> decorator
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


def _immortalize(object):
    """
    Recursively copy container values so callers cannot mutate backing state.

    Strings are atomic; tuples come back as lists, as every other sequence does.
    """
    if isinstance(object, Sequence) and not isinstance(object, str):
        return list(map(_immortalize, object))
    elif isinstance(object, Mapping):
        return dict(zip(object.keys(), map(_immortalize, object.values())))
    elif isinstance(object, Set):
        return set(map(_immortalize, object))
    else:
        return object


def mirror(name, /):
    """
    Define a read-only property that mirrors the private attribute "_{name}".

    Container values are returned as fresh copies (see _immortalize).
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _immortalize(getattr(self, "_" + name))

    return property(getter)


def quote(value, /):
    """
    double-quote a value for fault messages ("abc", not 'abc').
    """
    return '"%s"' % str(value).replace("\\", "\\\\").replace('"', '\\"')


def listing(values, /):
    """
    render a sequence the way fault messages show token lists: ['a', 'b'].
    """
    return repr(list(values))


def plural(count, word, /):
    """
    return word or word + "s" depending on count (only regular nouns are needed here).
    """
    return word if count == 1 else word + "s"


__all__ = (
    "UnsetType",
    "Unset",
    "UNBOUNDED",
    "coalesce",
    "rename",
    "mirror",
    "quote",
    "listing",
    "plural",
)
