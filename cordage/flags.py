r"""
Cordage flags: named arguments found anywhere in the token stream.

Overview
- Kinds
  • Flag: one value (any Argument option applies: type, validators, default...).
  • ListFlag: minimum + optional values (optional may be UNBOUNDED).
  • BoolFlag / BoolValueFlag / BoolValuesFlag: presence-only; store a value
    when given (and optionally another one when absent). Combinable.
  • OptionalFlag: zero or one value; bare presence stores a configured value.
  • ItemizedListFlag: repeatable, each occurrence contributes one item.

- FlagProcessor(*flags)
  • Scans every remaining token: "--name" and "-c" select a flag whose values
    are read right after it (a breaker stops them at the next flag token).
  • "-qwer" sets the combinable flags q, w, e and r, left to right.
  • "--" stops the scan and is consumed.
  • After the scan, unseen flags apply their defaults in declaration order.

Combination rules for "-qwer"
- no letter is a known short name: the token is left alone (positional).
- some letter maps to a value-taking flag: the token is left alone too; the
  value flag's short code still works on its own.
- otherwise every letter must be known and combinable:
    unknown letter      → UnknownFlagError
    non-combinable flag → UncombinableFlagError
    repeated letter     → DuplicateFlagError (unless the flag allows multiple)

Quick example:
    >>> from cordage.flags import BoolFlag, Flag, FlagProcessor
    >>> processor = FlagProcessor(
    ...     Flag("name", "n", "who to greet"),
    ...     BoolFlag("loud", "l", "shout"),
    ... )
"""
import re

from .arguments import Argument, ArgumentType, Mode, OptionalArg, list_until, _sanitize_metadata
from .completion import Completion
from .faults import *
from .inputs import Input
from .utils import *
from .validators import Validator

FLAG_STOP = "--"
"""
token that ends flag processing; everything after it is positional.
"""

MULTI_FLAG = re.compile(r"^-[a-zA-Z]{2,}$")
SHORT_NAME = re.compile(r"^[a-zA-Z0-9]$")


class BaseFlag(metaclass=ArgumentType):
    """
    Shared naming, lookup and data access for every flag kind.

    Subclasses implement execute(input, output, data, edata) and
    complete(input, data); the FlagProcessor positions the input right after
    the flag token before calling them.

    Hooks
    - missing(data): the flag was not given (defaults).
    - finish(input, output, data, edata): the flag was given; runs after the
      whole scan (itemized lists convert their items here).
    """

    __introspectable__ = ("name", "short", "descr", "combinable", "allow_multiple", "hidden")
    __displayable__ = ("name", "short", "descr")

    takes_value = True

    def __init__(self, name, short=Unset, descr=Unset, /, *, combinable=False, allow_multiple=False, hidden=False):
        metadata = {"name": name, "descr": descr}
        _sanitize_metadata(type(self), metadata)

        if not isinstance(short, str | Unset):
            raise TypeError(f"{type(self).__typename__} 'short' must be a string")
        if isinstance(short, str) and not SHORT_NAME.fullmatch(short):
            raise ValueError(f"{type(self).__typename__} 'short' must match {SHORT_NAME.pattern}")

        self._name = metadata["name"]
        self._descr = metadata["descr"]
        self._short = coalesce(short)
        self._combinable = bool(combinable)
        self._allow_multiple = bool(allow_multiple)
        self._hidden = bool(hidden)

    @property
    def keys(self):
        """
        tokens selecting this flag: "--name" and, when set, "-c".
        """
        return ("--" + self._name,) + (("-" + self._short,) if self._short else ())

    def provided(self, data, /):
        return data.has(self._name)

    def get(self, data, /):
        return data[self._name]

    def get_or_default(self, data, default, /):
        return data[self._name] if data.has(self._name) else default

    def execute(self, input, output, data, edata, /):
        raise NotImplementedError

    def complete(self, input, data, /):
        raise NotImplementedError

    def missing(self, data, /):
        pass

    def finish(self, input, output, data, edata, /):
        pass

    def usage(self, usage, /):
        if not self._hidden:
            usage.add_flag(self)


class Flag(BaseFlag):
    """
    Flag carrying one value.

    Every keyword besides the naming ones is an Argument option (type,
    validators, transformer, default, default_factory, completer, ...).
    """

    __introspectable__ = BaseFlag.__introspectable__ + ("argument",)

    def __init__(self, name, short=Unset, descr=Unset, /, *, hidden=False, **options):
        super().__init__(name, short, descr, hidden=hidden)
        self._argument = Argument(self._name, descr, **options)

    def execute(self, input, output, data, edata, /):
        self._argument.match(input, data, Mode.EXECUTE)

    def complete(self, input, data, /):
        return self._argument.match(input, data, Mode.COMPLETE)

    def missing(self, data, /):
        self._argument.apply_default(data)


class ListFlag(Flag):
    """
    Flag carrying minimum + optional values.
    """

    def __init__(self, name, short=Unset, descr=Unset, /, minimum=1, optional=0, **options):
        super().__init__(name, short, descr, minimum=minimum, optional=optional, listed=True, **options)


class BoolFlag(BaseFlag):
    """
    Presence-only flag.

    Parameters
    - true_value: stored when the flag is given (default True).
    - false_value: stored when it is not; Unset leaves the name absent, which
      Data.boolean() reads as False.
    """

    __introspectable__ = BaseFlag.__introspectable__ + ("true_value", "false_value")

    takes_value = False

    def __init__(self, name, short=Unset, descr=Unset, /, *, true_value=True, false_value=Unset, combinable=True, hidden=False):
        super().__init__(name, short, descr, combinable=combinable, hidden=hidden)
        self._true_value = true_value
        self._false_value = false_value

    def execute(self, input, output, data, edata, /):
        data[self._name] = self._true_value

    def complete(self, input, data, /):
        data[self._name] = self._true_value
        return None

    def missing(self, data, /):
        if self._false_value is not Unset:
            data[self._name] = self._false_value


class BoolValueFlag(BoolFlag):
    """
    Presence-only flag storing true_value when given.
    """

    def __init__(self, name, short, descr, true_value, /, **options):
        super().__init__(name, short, descr, true_value=true_value, **options)


class BoolValuesFlag(BoolFlag):
    """
    Presence-only flag storing true_value when given and false_value otherwise.
    """

    def __init__(self, name, short, descr, true_value, false_value, /, **options):
        super().__init__(name, short, descr, true_value=true_value, false_value=false_value, **options)


class OptionalFlag(Flag):
    """
    Flag with zero or one value.

    Outcomes (with present="fallback")
    - "--opt value": value is stored.
    - "--opt":       "fallback" is stored.
    - absent:        the 'default' option applies, if any.
    """

    __introspectable__ = Flag.__introspectable__ + ("present",)

    def __init__(self, name, short, descr, present, /, *, default=Unset, default_factory=Unset, **options):
        super().__init__(name, short, descr, minimum=0, optional=1, **options)
        self._present = present
        self._fallback = OptionalArg(
            self._name,
            default=default,
            default_factory=default_factory,
            setter=options.get("setter", Unset)
        )

    def execute(self, input, output, data, edata, /):
        super().execute(input, output, data, edata)
        if not data.has(self._name):
            data[self._name] = self._present

    def complete(self, input, data, /):
        if input.num_remaining() <= 1 and (input.peek() or "").startswith("-"):
            return None
        if (completion := super().complete(input, data)) is not None:
            return completion
        if not data.has(self._name):
            data[self._name] = self._present
        return None

    def missing(self, data, /):
        self._fallback.apply_default(data)


class ItemizedListFlag(Flag):
    """
    Repeatable flag; "-i a -i b" gives ["a", "b"].

    Items are collected raw while scanning and converted (validated,
    transformed) together once the scan is over.
    """

    def __init__(self, name, short=Unset, descr=Unset, /, **options):
        super().__init__(name, short, descr, minimum=1, optional=UNBOUNDED, listed=True, **options)
        self._allow_multiple = True

    def _collect(self, input, data):
        tokens, enough = input.pop_n(1, 0, (), data)
        data[self._name] = [*data.get(self._name, ()), *tokens]
        return enough

    def execute(self, input, output, data, edata, /):
        if not self._collect(input, data):
            raise self._argument.not_enough(0)

    def complete(self, input, data, /):
        if not self._collect(input, data):
            return None
        if input.fully_processed():
            return self._argument.match(Input(data[self._name]), data, Mode.COMPLETE)
        return None

    def finish(self, input, output, data, edata, /):
        items = data.pop(self._name)
        self._argument.match(Input(items), data, Mode.EXECUTE)


class FlagProcessor:
    """
    Processor scanning the remaining tokens for flags.

    Flags are registered under "--name" and "-c"; a later flag with the same
    key overrides an earlier one.
    """

    def __init__(self, *flags):
        self._flags = {}
        self._order = list(flags)
        for flag in flags:
            if not isinstance(flag, BaseFlag):
                raise TypeError("FlagProcessor() arguments must be flags")
            for key in flag.keys:
                self._flags[key] = flag

    def __repr__(self):
        return f"FlagProcessor({', '.join(flag.name for flag in self._order)})"

    @property
    def flags(self):
        return list(self._order)

    def _is_flag_token(self, token):
        if token in self._flags:
            return True
        if not MULTI_FLAG.fullmatch(token):
            return False
        return all("-" + letter in self._flags for letter in token[1:])

    def list_breaker(self):
        """
        breaker stopping flag values (and positional lists) at any token this
        processor would treat as a flag.
        """
        @rename("check")
        def check(token, data):
            if self._is_flag_token(token):
                raise ValueError(f"value {quote(token)} is a flag")
        return list_until(Validator(check, "FlagProcessor"))

    def _combined(self, token):
        """
        flags set by a multi-flag token, or None when the token is not one.
        """
        flags = [self._flags.get("-" + letter) for letter in token[1:]]
        known = [flag for flag in flags if flag is not None]
        if not known or any(flag.takes_value for flag in known):
            return None

        for letter, flag in zip(token[1:], flags):
            if flag is None:
                raise UnknownFlagError(
                    f"Unknown flag code {quote('-' + letter)} in multi-flag argument {quote(token)}",
                    title="unknown flag",
                    code=FaultCode.UNKNOWN_FLAG,
                    hint="every letter of %s must be a short flag name" % quote(token),
                    token=token,
                    docs=getdoc(FaultCode.UNKNOWN_FLAG)
                )
            if not flag.combinable:
                raise UncombinableFlagError(
                    f"Flag {quote(flag.name)} is not combinable",
                    title="uncombinable flag",
                    code=FaultCode.UNCOMBINABLE_FLAG,
                    hint="pass -%s on its own" % letter,
                    flag=flag.name,
                    docs=getdoc(FaultCode.UNCOMBINABLE_FLAG)
                )
        return known

    @staticmethod
    def _mark(flag, seen):
        if flag.name in seen and not flag.allow_multiple:
            raise DuplicateFlagError(
                f"Flag {quote(flag.name)} has already been set",
                title="duplicate flag",
                code=FaultCode.DUPLICATE_FLAG,
                hint="give --%s only once" % flag.name,
                flag=flag.name,
                docs=getdoc(FaultCode.DUPLICATE_FLAG)
            )
        seen.add(flag.name)

    def execute(self, input, output, data, edata, /):
        seen = set()
        index = 0
        while index < input.num_remaining():
            token = input.peek_at(index)

            if token == FLAG_STOP:
                input.pop_at(index)
                break

            if MULTI_FLAG.fullmatch(token) and (flags := self._combined(token)) is not None:
                for flag in flags:
                    self._mark(flag, seen)
                    flag.execute(Input(), output, data, edata)
                input.pop_at(index)
                continue

            if (flag := self._flags.get(token)) is None:
                index += 1
                continue

            self._mark(flag, seen)
            input.pop_at(index)
            with input.at(index), input.breaking(self.list_breaker()):
                flag.execute(input, output, data, edata)

        for flag in self._order:
            if flag.name not in seen:
                flag.missing(data)
        for flag in self._order:
            if flag.name in seen:
                flag.finish(input, output, data, edata)

    def complete(self, input, data, /):
        """
        Best-effort scan: repeated flags are tolerated, and a last token that
        starts with "-" is answered with the flags not given yet.
        """
        seen = set()
        index = 0
        while index < input.num_remaining():
            token = input.peek_at(index)

            if index == input.num_remaining() - 1 and token.startswith("-"):
                return Completion(sorted(
                    "--" + flag.name for flag in self._order
                    if flag.name not in seen or flag.allow_multiple
                ))

            if token == FLAG_STOP:
                input.pop_at(index)
                return None

            if MULTI_FLAG.fullmatch(token):
                letters = [self._flags.get("-" + letter) for letter in token[1:]]
                if any(flag is not None for flag in letters) and not any(flag.takes_value for flag in letters if flag):
                    for flag in letters:
                        if flag is not None and flag.combinable:
                            seen.add(flag.name)
                            flag.complete(Input(), data)
                    input.pop_at(index)
                    continue

            if (flag := self._flags.get(token)) is None:
                index += 1
                continue

            seen.add(flag.name)
            input.pop_at(index)
            with input.at(index), input.breaking(self.list_breaker()):
                completion = flag.complete(input, data)
            if completion is not None:
                return completion

        for flag in self._order:
            if flag.name not in seen:
                flag.missing(data)
        return None

    def usage(self, usage, /):
        for flag in self._order:
            flag.usage(usage)


__all__ = (
    "FLAG_STOP",
    "BaseFlag",
    "Flag",
    "ListFlag",
    "BoolFlag",
    "BoolValueFlag",
    "BoolValuesFlag",
    "OptionalFlag",
    "ItemizedListFlag",
    "FlagProcessor",
)
