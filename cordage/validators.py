"""
Argument validators.

A Validator pairs a check with a short name. The check receives the typed value
and the Data store and raises ValueError with a human message when the value
is rejected. The owning argument turns that into

    validation for "<argument>" failed: [<name>] <message>

Built-ins cover strings (Contains, MatchesRegex, IsRegex, InList, MinLength,
MaxLength), files (FileExists, IsDir, IsFile), ordering (EQ, NEQ, LT, LTE, GT,
GTE, Positive, NonNegative, Negative) and combinators (Not, Listify).
"""
import re

from .utils import listing, plural, quote


class Validator:
    """
    Named value check.

    Parameters
    - check: callable(value, data) raising ValueError(message) on rejection.
      A falsey return value is ignored; only the exception matters.
    - name: str, shown in brackets in the fault message.
    """

    def __init__(self, check, name, /):
        if not callable(check):
            raise TypeError("validator 'check' must be callable")
        if not isinstance(name, str) or not (name := name.strip()):
            raise ValueError("validator 'name' must be a non-empty string")
        self.check = check
        self.name = name

    def validate(self, value, data, /):
        self.check(value, data)

    def __repr__(self):
        return f"Validator({self.name!r})"


def _reject(message):
    raise ValueError(message)


def Contains(substring, /):
    def check(value, data):
        if substring not in value:
            _reject(f"value doesn't contain substring {quote(substring)}")
    return Validator(check, "Contains")


def MatchesRegex(*patterns):
    compiled = [re.compile(pattern) for pattern in patterns]

    def check(value, data):
        for pattern in compiled:
            if not pattern.search(value):
                _reject(f"value {quote(value)} doesn't match regex {quote(pattern.pattern)}")
    return Validator(check, "MatchesRegex")


def IsRegex():
    def check(value, data):
        try:
            re.compile(value)
        except re.error as error:
            _reject(f"value {quote(value)} isn't a valid regex: {error}")
    return Validator(check, "IsRegex")


def InList(*choices):
    def check(value, data):
        if value not in choices:
            _reject(f"argument must be one of {listing(choices)}")
    return Validator(check, "InList")


def MinLength(length, /):
    def check(value, data):
        if len(value) < length:
            _reject(f"value must be at least {length} {plural(length, 'character')}")
    return Validator(check, "MinLength")


def MaxLength(length, /):
    def check(value, data):
        if len(value) > length:
            _reject(f"value must be at most {length} {plural(length, 'character')}")
    return Validator(check, "MaxLength")


def FileExists():
    def check(value, data):
        if not data.os.exists(value):
            _reject(f"file {quote(value)} does not exist")
    return Validator(check, "FileExists")


def IsDir():
    def check(value, data):
        if not data.os.exists(value):
            _reject(f"file {quote(value)} does not exist")
        if not data.os.isdir(value):
            _reject(f"argument {quote(value)} is a file")
    return Validator(check, "IsDir")


def IsFile():
    def check(value, data):
        if not data.os.exists(value):
            _reject(f"file {quote(value)} does not exist")
        if data.os.isdir(value):
            _reject(f"argument {quote(value)} is a directory")
    return Validator(check, "IsFile")


def _comparison(name, accept, message):
    def factory(other, /):
        def check(value, data):
            if not accept(value, other):
                _reject(message % (other,))
        return Validator(check, name)
    factory.__name__ = factory.__qualname__ = name
    return factory


EQ = _comparison("EQ", lambda value, other: value == other, "value isn't equal to %s")
NEQ = _comparison("NEQ", lambda value, other: value != other, "value cannot equal %s")
LT = _comparison("LT", lambda value, other: value < other, "value isn't less than %s")
LTE = _comparison("LTE", lambda value, other: value <= other, "value isn't less than or equal to %s")
GT = _comparison("GT", lambda value, other: value > other, "value isn't greater than %s")
GTE = _comparison("GTE", lambda value, other: value >= other, "value isn't greater than or equal to %s")


def Positive():
    def check(value, data):
        if value <= 0:
            _reject("value isn't positive")
    return Validator(check, "Positive")


def NonNegative():
    def check(value, data):
        if value < 0:
            _reject("value isn't non-negative")
    return Validator(check, "NonNegative")


def Negative():
    def check(value, data):
        if value >= 0:
            _reject("value isn't negative")
    return Validator(check, "Negative")


def Not(validator, /):
    """
    invert a validator: it passes exactly when the inner one rejects.
    """
    def check(value, data):
        try:
            validator.validate(value, data)
        except ValueError:
            return
        _reject("failed")
    return Validator(check, f"Not({validator.name})")


def Listify(validator, /):
    """
    apply a single-value validator to every element of a list value.
    """
    def check(value, data):
        for item in value:
            validator.validate(item, data)
    return Validator(check, validator.name)


__all__ = (
    "Validator",
    "Contains",
    "MatchesRegex",
    "IsRegex",
    "InList",
    "MinLength",
    "MaxLength",
    "FileExists",
    "IsDir",
    "IsFile",
    "EQ",
    "NEQ",
    "LT",
    "LTE",
    "GT",
    "GTE",
    "Positive",
    "NonNegative",
    "Negative",
    "Not",
    "Listify",
)
