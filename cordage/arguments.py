r"""
Cordage arguments: positional value specifications and their matching routine.

Overview
- Specs
  • Argument: the general positional spec (minimum/optional arity, list or single).
  • Arg / OptionalArg / ListArg: the usual shapes (exactly one, zero or one,
    minimum + optional list).
  • MapArg: the token is a key; the mapped value is what gets stored.

- Matching
  • Argument.match(input, data, mode) is the one routine shared by the execute
    and the complete walkers. The mode only changes what happens on unmet
    arity and on conversion failures at the end of the line:
      execute  → raise the fault.
      complete → hand the partial value to the completer and stop the walk.
  • Pipeline: pop tokens (honouring breakers) → default or arity check →
    complete-for-execute → convert → validate → transform → store.

- Breakers
  • ListBreaker stops a list argument at the first token failing its validators.
  • list_until_symbol("--") / list_until(validator, ...) build the usual ones.

- Complete-for-execute
  • CompleteForExecute(exact_match=..., best_effort=...) resolves each popped
    token to the single completion it denotes before conversion.

- Introspection & representation
  • ArgumentType metaclass provides stable __repr__/__rich_repr__ and exposes the
    fields named in __introspectable__ as read-only properties.

Metadata (sanitized on construction)
- name: non-empty string, also the Data key (unless a setter stores elsewhere).
- descr: Unset | str, short help line.
- type: callable converting one token.
- minimum / optional: int >= 0; optional may be UNBOUNDED. A single-valued spec
  must have minimum + optional == 1.
- validators: Iterable[Validator]; transformer: Unset | Transformer | callable.
- default / default_factory: value used when zero tokens are available and
  minimum is 0 (mutually exclusive; the factory receives the Data store).
- completer: Unset | Completer | callable(value, data).
- breakers: Iterable of objects with breaks(token, data) and discard.
- complete_for_execute: Unset | bool | CompleteForExecute.
- setter: Unset | callable(value, data) replacing the plain data[name] store.
- hidden: bool (suppressed from usage).

Quick example:
    >>> from cordage.arguments import Arg, ListArg
    >>> from cordage.data import Data
    >>> from cordage.inputs import Input
    >>> data = Data()
    >>> ListArg("SL", minimum=1, optional=2).match(Input(["a", "b"]), data)
    >>> data["SL"]
    ['a', 'b']
"""
import builtins
import functools
import operator
import re
from collections.abc import Iterable
from enum import Enum

from .completion import Completer, CompleterFromFunc, Completion, SimpleCompleter, run_completer
from .faults import *
from .transformers import Transformer
from .utils import *
from .validators import NEQ, Validator
from .values import convert


class Mode(Enum):
    """
    walk mode handed to every processor.
    """
    EXECUTE = "execute"
    COMPLETE = "complete"


class ArgumentType(type):
    """
    Metaclass that makes specs introspectable.

    Responsibilities
    - Provide stable, readable __repr__/__rich_repr__ implementations for
      diagnostics and usage output.
    - Expose selected fields as read-only properties using mirror() for all
      names listed in __introspectable__.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens)
      and used in messages and usage output.
    - __displayable__ (if set) narrows which properties are shown by __rich_repr__;
      otherwise __introspectable__ is used.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation with key metadata.

            Example
            - list-arg(name='SL', minimum=1, optional=2, ...)
            """
            return f"{type(self).__typename__}({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            """
            Yield (name, object) pairs for pretty printers.
            """
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize and validate the naming metadata shared by arguments
    and flags.

    - name: required non-empty string (trimmed).
    - descr: Unset or a non-empty string (trimmed); Unset becomes None.

    Raises
    - TypeError: if 'name' or 'descr' has the wrong type.
    - ValueError: if either is empty after trimming.
    """
    if not isinstance(name := metadata["name"], str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    elif not (name := name.strip()):
        raise ValueError(f"{cls.__typename__} 'name' cannot be empty")
    metadata["name"] = name

    if not isinstance(descr := metadata["descr"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)


def _sanitize_valued_metadata(cls, metadata, /):
    """
    Internal: validate and normalize metadata for value-bearing specs.

    Responsibilities
    - type: must be callable.
    - minimum/optional: non-negative integers (optional may be UNBOUNDED); a
      single-valued spec must take exactly one token at most.
    - validators: Validator instances, normalized to a tuple.
    - transformer/completer: plain callables are wrapped (Transformer,
      CompleterFromFunc).
    - default/default_factory: mutually exclusive; the factory must be callable.
    - breakers: objects with a breaks() method, normalized to a tuple.
    - complete_for_execute: True becomes CompleteForExecute(); False becomes Unset.
    - setter: Unset or callable.

    Side effects
    - Mutates the provided metadata dict in place.
    """
    if not callable(metadata["type"]):
        raise TypeError(f"{cls.__typename__} 'type' must be callable")

    for field in ("minimum", "optional"):
        if not isinstance(count := metadata[field], int) or isinstance(count, bool):
            raise TypeError(f"{cls.__typename__} '{field}' must be an integer")
        if count < 0 and not (field == "optional" and count == UNBOUNDED):
            raise ValueError(f"{cls.__typename__} '{field}' must be non-negative")

    if not metadata["listed"] and metadata["minimum"] + metadata["optional"] != 1:
        raise ValueError(f"{cls.__typename__} single values must take exactly one token (minimum + optional == 1)")

    if not isinstance(validators := metadata["validators"], Iterable):
        raise TypeError(f"{cls.__typename__} 'validators' must be iterable")
    validators = tuple(validators)
    if not all(isinstance(validator, Validator) for validator in validators):
        raise TypeError(f"{cls.__typename__} 'validators' must only contain validators")
    metadata["validators"] = validators

    match metadata["transformer"]:
        case UnsetType() | Transformer():
            pass
        case transformer if callable(transformer):
            metadata["transformer"] = Transformer(transformer)
        case _:
            raise TypeError(f"{cls.__typename__} 'transformer' must be a transformer or a callable")

    match metadata["completer"]:
        case UnsetType() | Completer():
            pass
        case completer if callable(completer):
            metadata["completer"] = CompleterFromFunc(completer)
        case _:
            raise TypeError(f"{cls.__typename__} 'completer' must be a completer or a callable")

    if metadata["default"] is not Unset and metadata["default_factory"] is not Unset:
        raise TypeError(f"{cls.__typename__} cannot have both 'default' and 'default_factory'")
    if metadata["default_factory"] is not Unset and not callable(metadata["default_factory"]):
        raise TypeError(f"{cls.__typename__} 'default_factory' must be callable")

    breakers = tuple(metadata["breakers"])
    if not all(callable(getattr(breaker, "breaks", None)) for breaker in breakers):
        raise TypeError(f"{cls.__typename__} 'breakers' must provide a breaks() method")
    metadata["breakers"] = breakers

    match metadata["complete_for_execute"]:
        case True:
            metadata["complete_for_execute"] = CompleteForExecute()
        case False:
            metadata["complete_for_execute"] = Unset
        case UnsetType() | CompleteForExecute():
            pass
        case _:
            raise TypeError(f"{cls.__typename__} 'complete_for_execute' must be a bool or CompleteForExecute")

    if metadata["setter"] is not Unset and not callable(metadata["setter"]):
        raise TypeError(f"{cls.__typename__} 'setter' must be callable")


class ListBreaker:
    """
    Stop a list argument at the first token that fails the validators.

    Parameters
    - validators: Validator, checked against the token converted with 'type'.
      A token that does not convert never breaks.
    - type: converter applied before validating (default str).
    - discard: consume the breaking token instead of leaving it for the next
      processor.
    """

    def __init__(self, *validators, type=str, discard=False):
        self.validators = validators
        self.type = type
        self.discard = bool(discard)

    def breaks(self, token, data, /):
        try:
            value = self.type(token)
        except (TypeError, ValueError):
            return False
        for validator in self.validators:
            try:
                validator.validate(value, data)
            except ValueError:
                return True
        return False

    def __repr__(self):
        return f"ListBreaker({', '.join(validator.name for validator in self.validators)}, discard={self.discard!r})"


def list_until_symbol(symbol, /, *, discard=False):
    """
    breaker stopping a list at a literal sentinel token (e.g. "--").
    """
    return ListBreaker(NEQ(str(symbol)), discard=discard)


def list_until(*validators, type=str, discard=False):
    """
    breaker stopping a list at the first token failing any validator.
    """
    return ListBreaker(*validators, type=type, discard=discard)


class CompleteForExecute:
    """
    Resolve partial tokens to the completion they denote before conversion.

    Parameters
    - exact_match: accept a candidate equal to the raw token even when other
      candidates share its prefix.
    - best_effort: keep the raw token instead of failing when resolution is
      impossible.

    Faults (when not best-effort)
    - NilCompletionError: the completer returned nothing, or nothing survived
      prefix filtering.
    - AmbiguousCompletionError: more than one candidate survived.
    - CompletionFetchError: the completer raised.
    """

    def __init__(self, *, exact_match=False, best_effort=False):
        self.exact_match = bool(exact_match)
        self.best_effort = bool(best_effort)

    def __repr__(self):
        return f"CompleteForExecute(exact_match={self.exact_match!r}, best_effort={self.best_effort!r})"

    def _resolve_one(self, argument, value, prefix, data):
        data.complete_for_execute = True
        try:
            completion = run_completer(argument.completer, value, data)
        except Exception as error:
            raise CompletionFetchError(
                f"failed to fetch completion for {quote(argument.name)}: {error}",
                title="completion failure",
                code=FaultCode.COMPLETION_FETCH,
                hint="fix the completer or type the full value",
                argument=argument.name,
                docs=getdoc(FaultCode.COMPLETION_FETCH)
            ) from error
        finally:
            data.complete_for_execute = False

        suggestions = [] if completion is None else completion.process(prefix, skip_delimiter=True)
        if not suggestions:
            raise NilCompletionError(
                f"nil completion returned for {quote(argument.name)}",
                title="no completion",
                code=FaultCode.NIL_COMPLETION,
                hint="no value starts with %s" % quote(prefix),
                argument=argument.name,
                docs=getdoc(FaultCode.NIL_COMPLETION)
            )
        if len(suggestions) == 1:
            return suggestions[0]
        if self.exact_match and prefix in suggestions:
            return prefix
        raise AmbiguousCompletionError(
            f"requires exactly one suggestion to be returned for {quote(argument.name)}, "
            f"got {len(suggestions)}: {listing(sorted(suggestions))}",
            title="ambiguous value",
            code=FaultCode.AMBIGUOUS_COMPLETION,
            hint="type more characters to pick one value",
            argument=argument.name,
            suggestions=tuple(suggestions),
            docs=getdoc(FaultCode.AMBIGUOUS_COMPLETION)
        )

    def resolve(self, argument, tokens, data, /):
        """
        return the tokens with every slot replaced by its unique completion.

        each slot is completed independently, with the already-resolved slots
        before it visible to the completer (as the list value so far).
        """
        resolved = list(tokens)
        for index, prefix in enumerate(tokens):
            value = resolved[:index + 1] if argument.listed else prefix
            try:
                resolved[index] = self._resolve_one(argument, value, prefix, data)
            except CompleteForExecuteError:
                if not self.best_effort:
                    raise
        return resolved


class Argument(metaclass=ArgumentType):
    """
    Positional, value-bearing argument specification.

    An Argument is also a processor: execute() and complete() both delegate to
    match(), the shared matching routine.

    Properties
    - The names listed in __introspectable__ are exposed as read-only attributes
      on instances, mirroring the sanitized metadata values.
    """

    __introspectable__ = (
        "name",
        "descr",
        "type",
        "minimum",
        "optional",
        "listed",
        "validators",
        "transformer",
        "default",
        "default_factory",
        "completer",
        "breakers",
        "complete_for_execute",
        "setter",
        "hidden",
    )
    __displayable__ = ("name", "descr", "minimum", "optional", "listed")

    def __init__(
            self,
            name,
            descr=Unset,
            /,
            *,
            type=str,
            minimum=1,
            optional=0,
            listed=False,
            validators=(),
            transformer=Unset,
            default=Unset,
            default_factory=Unset,
            completer=Unset,
            breakers=(),
            complete_for_execute=Unset,
            setter=Unset,
            hidden=False
    ):
        metadata = {
            "name": name,
            "descr": descr,
            "type": type,
            "minimum": minimum,
            "optional": optional,
            "listed": bool(listed),
            "validators": validators,
            "transformer": transformer,
            "default": default,
            "default_factory": default_factory,
            "completer": completer,
            "breakers": breakers,
            "complete_for_execute": complete_for_execute,
            "setter": setter,
            "hidden": bool(hidden),
        }
        _sanitize_metadata(builtins.type(self), metadata)
        _sanitize_valued_metadata(builtins.type(self), metadata)

        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    # --- value access ---

    def provided(self, data, /):
        """
        true when the Data store holds a value under this argument's name.
        """
        return data.has(self._name)

    def get(self, data, /):
        return data[self._name]

    def get_or_default(self, data, default, /):
        return data[self._name] if data.has(self._name) else default

    def store(self, value, data, /):
        """
        store a value through the setter, or under the argument's name.
        """
        if self._setter is Unset:
            data[self._name] = value
        else:
            self._setter(value, data)

    # --- pipeline steps ---

    def _value(self, values):
        return list(values) if self._listed else values[0]

    def _loosely(self, tokens):
        """
        typed value when every token converts, raw tokens otherwise.
        """
        try:
            values = convert(self._type, tokens, name=self._name)
        except ConversionError:
            values = list(tokens)
        if self._listed:
            return values
        return values[0] if values else ""

    def apply_default(self, data, /):
        if self._default is not Unset:
            self.store(self._default, data)
        elif self._default_factory is not Unset:
            try:
                value = self._default_factory(data)
            except Exception as error:
                raise DefaultError(
                    f"failed to get default: {error}",
                    title="default failure",
                    code=FaultCode.DEFAULT,
                    hint="fix the default factory of %s" % quote(self._name),
                    argument=self._name,
                    docs=getdoc(FaultCode.DEFAULT)
                ) from error
            self.store(value, data)

    def not_enough(self, count, /):
        return NotEnoughArgsError(
            f"Argument {quote(self._name)} requires at least {self._minimum} {plural(self._minimum, 'argument')}, got {count}",
            title="not enough arguments",
            code=FaultCode.NOT_ENOUGH_ARGS,
            hint="provide %d more %s for %s" % (self._minimum - count, plural(self._minimum - count, "value"), quote(self._name)),
            argument=self._name,
            count=count,
            docs=getdoc(FaultCode.NOT_ENOUGH_ARGS)
        )

    def _validate(self, value, data):
        for validator in self._validators:
            try:
                validator.validate(value, data)
            except ValueError as error:
                raise ValidationError(
                    f"validation for {quote(self._name)} failed: [{validator.name}] {error}",
                    title="invalid value",
                    code=FaultCode.VALIDATION,
                    hint="%s rejected the value" % validator.name,
                    argument=self._name,
                    validator=validator.name,
                    docs=getdoc(FaultCode.VALIDATION)
                ) from error

    def _transform(self, value, data, *, strict=True):
        """
        run the transformer; with strict=False failures keep the original value.
        """
        if self._transformer is Unset:
            return value

        try:
            result = self._transformer.transform(value, data)
        except Exception as error:
            if not strict:
                return value
            raise TransformError(
                f"Custom transformer failed: {error}",
                title="transform failure",
                code=FaultCode.TRANSFORM,
                hint="fix the transformer of %s" % quote(self._name),
                argument=self._name,
                docs=getdoc(FaultCode.TRANSFORM)
            ) from error

        if self._listed and len(result) != len(value):
            if not strict:
                return value
            raise TransformLengthError(
                f"[{self._name}] Transformers must return a value that is the same length as the original arguments",
                title="transform length mismatch",
                code=FaultCode.TRANSFORM_LENGTH,
                hint="return exactly %d %s" % (len(value), plural(len(value), "value")),
                argument=self._name,
                docs=getdoc(FaultCode.TRANSFORM_LENGTH)
            )
        return result

    def _suggest(self, value, data):
        return run_completer(self._completer, value, data) or Completion()

    # --- matching ---

    def match(self, input, data, mode=Mode.EXECUTE, /):
        """
        Consume this argument's tokens and store its value.

        Execute mode
        - zero tokens with minimum 0: the default (if any) is stored.
        - fewer tokens than minimum: the partial values are converted (a
          conversion failure wins) and stored, then NotEnoughArgsError is raised.
        - otherwise: complete-for-execute, conversion, validators, transformer
          and store; the first failing step raises.

        Complete mode
        - returns a Completion when this argument is where the user is typing
          (unmet arity, or the popped tokens reach the end of the line);
          returns None when the walk should carry on with what follows.
        - validators are skipped; transformer failures keep the original value.
        """
        indices, enough = input.pop_n_indices(self._minimum, self._optional, self._breakers, data)
        tokens = input.values(indices)

        if mode is Mode.COMPLETE:
            return self._match_completion(tokens, enough, input, data)

        if not tokens and enough:
            self.apply_default(data)
            return None

        if not enough:
            if tokens:
                self.store(self._value(convert(self._type, tokens, name=self._name)), data)
            raise self.not_enough(len(tokens))

        if self._complete_for_execute is not Unset:
            tokens = self._complete_for_execute.resolve(self, tokens, data)
            for index, token in zip(indices, tokens):
                input.rewrite(index, token)

        value = self._value(convert(self._type, tokens, name=self._name))
        self._validate(value, data)
        self.store(self._transform(value, data), data)
        return None

    def _match_completion(self, tokens, enough, input, data):
        if not tokens and enough:
            return None

        if not enough:
            value = self._loosely(tokens)
            self.store(value, data)
            return self._suggest(value, data)

        try:
            value = self._value(convert(self._type, tokens, name=self._name))
        except ConversionError:
            if not input.fully_processed():
                raise
            value = self._loosely(tokens)
            self.store(value, data)
            return self._suggest(value, data)

        if not input.fully_processed():
            self.store(self._transform(value, data, strict=False), data)
            return None

        self.store(value, data)
        return self._suggest(value, data)

    # --- processor protocol ---

    def execute(self, input, output, data, edata, /):
        self.match(input, data, Mode.EXECUTE)

    def complete(self, input, data, /):
        return self.match(input, data, Mode.COMPLETE)

    def usage(self, usage, /):
        if not self._hidden:
            usage.add_argument(self)


class Arg(Argument):
    """
    Exactly one value.
    """

    def __init__(self, name, descr=Unset, /, **options):
        super().__init__(name, descr, minimum=1, optional=0, listed=False, **options)


class OptionalArg(Argument):
    """
    Zero or one value; 'default' applies when it is absent.
    """

    def __init__(self, name, descr=Unset, /, **options):
        super().__init__(name, descr, minimum=0, optional=1, listed=False, **options)


class ListArg(Argument):
    """
    minimum required values followed by up to optional more (UNBOUNDED for all).
    """

    def __init__(self, name, descr=Unset, /, minimum=1, optional=0, **options):
        super().__init__(name, descr, minimum=minimum, optional=optional, listed=True, **options)


def MapArg(name, descr, mapping, /, *, allow_missing=False, **options):
    """
    Single argument whose token is a key of mapping; the mapped value is stored.

    Keys complete from the mapping. Unknown keys are rejected unless
    allow_missing is set, in which case None is stored for them.
    """
    mapping = dict(mapping)
    keys = sorted(mapping)

    @rename("check")
    def check(key, data):
        if key not in mapping:
            raise ValueError(f"key ({key}) is not in map; expected one of {listing(keys)}")

    validators = list(options.pop("validators", ()))
    if not allow_missing:
        validators.append(Validator(check, "MapArg"))

    @rename("setter")
    def setter(key, data):
        data[name] = mapping.get(key)

    return Arg(
        name,
        descr,
        validators=validators,
        completer=options.pop("completer", SimpleCompleter(*keys)),
        setter=setter,
        **options
    )


__all__ = (
    "Mode",
    "ArgumentType",
    "Argument",
    "Arg",
    "OptionalArg",
    "ListArg",
    "MapArg",
    "ListBreaker",
    "list_until_symbol",
    "list_until",
    "CompleteForExecute",
)
