"""
Cordage faults and their rendering.

Scope
- FaultCode: stable numeric identifiers for every failure the walkers can report.
  Codes are grouped by domain (arity, conversion, flags, branching, completion,
  collaborators) so logs and searches stay predictable.
- CommandException: base type carrying message + options that
  know how to render themselves with rich.
- trigger(): central entry point to surface a fault (raise, or render and exit
  in shell mode).
- getdoc(): optional description lookup for a code from the host application.

Message contract
- str(fault) is the message, verbatim. The execute walker writes exactly that
  line to stderr, and tests compare against it, so message text is stable API.
- Context travels in options (argument, tokens, suggestions, ...), never in the
  message formatting itself.

Integration
- Engine code raises faults where the failure is detected; nothing retries.
- Hosts call trigger(fault, shell=True) to render the panel and exit.
"""
import copy
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the engine (stable identifiers).

    grouping (by high-level domain)
    - arity (2110x)
      • NOT_ENOUGH_ARGS, EXTRA_ARGS
    - values (2111x)
      • CONVERSION, VALIDATION, TRANSFORM, TRANSFORM_LENGTH, DEFAULT
    - flags (2112x)
      • UNKNOWN_FLAG, DUPLICATE_FLAG, UNCOMBINABLE_FLAG
    - routing (2113x)
      • BRANCHING
    - complete-for-execute (2114x)
      • NIL_COMPLETION, AMBIGUOUS_COMPLETION, COMPLETION_FETCH
    - completers (2115x)
      • COMPLETER
    - collaborators (2116x/2117x)
      • SHELL_COMMAND, ENVIRONMENT_VARIABLE, SHORTCUT

    rationale
    - codes are discoverable in logs and normalized to a string via normalize()
      so hosts can remap them to shorter labels.
    """
    # --- arity errors (2110x) ---
    NOT_ENOUGH_ARGS         = 21101
    EXTRA_ARGS              = 21102

    # --- value pipeline errors (2111x) ---
    CONVERSION              = 21111
    VALIDATION              = 21112
    TRANSFORM               = 21113
    TRANSFORM_LENGTH        = 21114
    DEFAULT                 = 21115

    # --- flag errors (2112x) ---
    UNKNOWN_FLAG            = 21121
    DUPLICATE_FLAG          = 21122
    UNCOMBINABLE_FLAG       = 21123

    # --- routing errors (2113x) ---
    BRANCHING               = 21131

    # --- complete-for-execute errors (2114x) ---
    NIL_COMPLETION          = 21141
    AMBIGUOUS_COMPLETION    = 21142
    COMPLETION_FETCH        = 21143

    # --- completer errors (2115x) ---
    COMPLETER               = 21151

    # --- collaborator errors (2116x/2117x) ---
    SHELL_COMMAND           = 21161
    ENVIRONMENT_VARIABLE    = 21162
    SHORTCUT                = 21171

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _styler(options, styles):
    def styler(style):
        return styles[style] if options.get("colorful", True) else ""
    return styler


def _text(options):
    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not options.get("colorful", True):
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), style)
    return text


class CommandException(Exception):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return self.message or ""

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",

            # body
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        } | getattr(main, "__styles__", {}))

        styler = _styler(self.options, styles)
        text = _text(self.options)

        prog = text(getattr(main, "__prog__", self.options.get("prog", "cordage")), styler("prog-name"))
        code = self.options.get("code")

        header = Text.assemble(
            "[ ",
            prog,
            " — ",
            text(code.normalize() if code else "", styler("code")),
            " | ",
            text(self.options.get("title", "error").title(), styler("error-title")),
            " ]"
        )
        message = text(self.message, styler("error-message"))
        parts = [message]
        if self.options.get("hint"):
            parts.append(Text.assemble(text(" → ", styler("hint-arrow")), text(self.options["hint"], styler("hint"))))

        if self.options.get("fancy", False):
            return Panel(Group(*parts), title=header, title_align="left")

        return Group(header, *parts)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        if self.options.get("deferred", False):
            return
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class NotEnoughArgsError(CommandException): ...
class ExtraArgsError(CommandException): ...
class ConversionError(CommandException): ...
class ValidationError(CommandException): ...
class TransformError(CommandException): ...
class TransformLengthError(TransformError): ...
class DefaultError(CommandException): ...
class UnknownFlagError(CommandException): ...
class DuplicateFlagError(CommandException): ...
class UncombinableFlagError(CommandException): ...
class BranchingError(CommandException): ...
class CompleteForExecuteError(CommandException): ...
class NilCompletionError(CompleteForExecuteError): ...
class AmbiguousCompletionError(CompleteForExecuteError): ...
class CompletionFetchError(CompleteForExecuteError): ...
class CompleterError(CommandException): ...
class ShellCommandError(CommandException): ...
class EnvironmentVariableError(CommandException): ...
class ShortcutError(CommandException): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via copy.replace before triggering.
    - in shell mode, rendering happens via the rich console; otherwise the
      fault is raised.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ keyed by
    FaultCode; when missing, None is returned.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "CommandException",
    "NotEnoughArgsError",
    "ExtraArgsError",
    "ConversionError",
    "ValidationError",
    "TransformError",
    "TransformLengthError",
    "DefaultError",
    "UnknownFlagError",
    "DuplicateFlagError",
    "UncombinableFlagError",
    "BranchingError",
    "CompleteForExecuteError",
    "NilCompletionError",
    "AmbiguousCompletionError",
    "CompletionFetchError",
    "CompleterError",
    "ShellCommandError",
    "EnvironmentVariableError",
    "ShortcutError",
    "FaultCode",
    "trigger",
    "getdoc",
)
