"""
Cordage collaborators: the pieces a graph talks to outside of Data.

Scope
- Output / BufferedOutput: line-oriented stdout/stderr sinks built on rich
  consoles (BufferedOutput keeps the lines for tests and nested walks).
- MemoryCache + CacheNode: replay the last invocation and print history.
- MemoryShortcuts + ShortcutNode: named token sequences expanded in place.
- ShellCommand / shell_command_completer: values and suggestions taken from a
  subprocess' stdout.

Protocols
- cache: cache() -> MutableMapping[str, list[list[str]]], mark_changed(),
  changed() -> bool.
- shortcuts: shortcut_map() -> MutableMapping[str, MutableMapping[str,
  list[str]]], mark_changed().
  Persisting either mapping is up to the host; the in-memory classes below
  only flag that something changed.

Integration
- The execute walker writes faults through Output.err(); processors write
  through Output.stdout()/stderr().
- Faults raised here are ShortcutError, ShellCommandError, CompleterError and
  ValidationError; the arity shortfall of a cached graph is re-raised as is.
"""
import copy
import re
import subprocess

from rich.console import Console
from rich.text import Text

from .arguments import Arg, ListArg
from .completion import CompleterFromFunc, CompleterList, Completion
from .data import ExecuteData
from .faults import *
from .flags import BoolFlag, Flag, FlagProcessor
from .nodes import (
    BranchNode,
    ExecutorProcessor,
    Node,
    Processor,
    SimpleProcessor,
    branch_synonyms,
    process_graph_completion,
    process_graph_execution,
    serial,
)
from .utils import *
from .validators import IsRegex, Listify, MinLength
from .values import convert


# --- output ---


class Output:
    """
    Shell-facing output.

    Parameters
    - fancy: render faults through their rich panel instead of the bare message.
    - stdout / stderr: Unset | rich.console.Console, mostly for tests.

    Text is printed verbatim: no markup, no highlighting, no wrapping.
    """

    def __init__(self, *, fancy=False, stdout=Unset, stderr=Unset):
        self.fancy = bool(fancy)
        self._stdout = Console(highlight=False) if stdout is Unset else stdout
        self._stderr = Console(stderr=True, highlight=False) if stderr is Unset else stderr

    def stdout(self, text, /):
        """
        print a line; rich renderables (usage tables, panels) are rendered as such.
        """
        self._stdout.print(Text(text) if isinstance(text, str) else text, soft_wrap=True)

    def stderr(self, text, /):
        self._stderr.print(Text(str(text)), soft_wrap=True)

    def err(self, fault, /):
        """
        write a fault to stderr: its message verbatim, or its panel when fancy.
        """
        if self.fancy and isinstance(fault, CommandException):
            self._stderr.print(copy.replace(fault, fancy=True))
        else:
            self.stderr(str(fault))


class BufferedOutput(Output):
    """
    Output keeping every line in memory.
    """

    def __init__(self):
        self.fancy = False
        self.stdout_lines = []
        self.stderr_lines = []

    def __repr__(self):
        return f"BufferedOutput(stdout={self.stdout_lines!r}, stderr={self.stderr_lines!r})"

    def stdout(self, text, /):
        self.stdout_lines.append(str(text))

    def stderr(self, text, /):
        self.stderr_lines.append(str(text))

    def err(self, fault, /):
        self.stderr(str(fault))


# --- cache ---

CACHE_HISTORY = 100
"""
default number of invocations a CacheNode keeps.
"""

CACHE_PREFIX_DATA = "CACHE_PREFIX_DATA"

CacheLength = Flag(
    "cache-len", "n", "Number of historical elements to display from the cache",
    type=int, default=1
)
CachePrefix = BoolFlag("cache-prefix", "p", "Include the command prefix in the history output")


class MemoryCache:
    """
    In-memory cache collaborator.
    """

    def __init__(self, entries=Unset):
        self._entries = dict(coalesce(entries, {}))
        self._changed = False

    def __repr__(self):
        return f"MemoryCache({self._entries!r})"

    def cache(self):
        return self._entries

    def mark_changed(self):
        self._changed = True

    def changed(self):
        return self._changed


class _CacheProcessor(Processor):
    """
    Run the cached graph; with no tokens replay the latest cached invocation,
    otherwise remember the tokens of the walk. Walks that fall short of an
    argument or leave tokens behind are not remembered, since replaying them
    can never succeed.
    """

    def __init__(self, name, cache, node, history):
        self.name = name
        self.cache = cache
        self.node = node
        self.history = history

    def __repr__(self):
        return f"CacheNode({self.name!r})"

    def execute(self, input, output, data, edata, /):
        entries = self.cache.cache().get(self.name) or []

        if input.fully_processed():
            if entries:
                input.push_front(*entries[-1])
            process_graph_execution(self.node, input, output, data, edata)
            return

        mark = input.snapshot()
        try:
            process_graph_execution(self.node, input, output, data, edata)
        except (NotEnoughArgsError, ExtraArgsError):
            raise
        except CommandException:
            self._remember(input.snapshot_values(mark))
            raise
        else:
            if input.fully_processed():
                self._remember(input.snapshot_values(mark))
        finally:
            input.release(mark)

    def _remember(self, values):
        entries = self.cache.cache().get(self.name) or []
        if entries and entries[-1] == values:
            return
        self.cache.cache()[self.name] = [*entries, values][-self.history:]
        self.cache.mark_changed()

    def complete(self, input, data, /):
        return process_graph_completion(self.node, input, data)

    def usage(self, usage, /):
        usage.add_symbol("^", "Start of new cachable section")


def CacheNode(name, cache, node, /, history=CACHE_HISTORY):
    """
    Wrap node so that its invocations are cached under name.

    - no tokens: the latest cached token list is replayed.
    - a walk that fails with an arity shortfall (or leaves tokens) is not stored;
      other failures are.
    - "history" (or "h") prints the cached invocations; --cache-len/-n picks
      how many, --cache-prefix/-p prepends the command prefix.
    """
    if not isinstance(history, int) or history < 1:
        raise ValueError("CacheNode 'history' must be a positive integer")

    processor = _CacheProcessor(name, cache, node, history)

    def prefix(input, output, data, edata):
        used = input.used()[:-1]
        data[CACHE_PREFIX_DATA] = " ".join(used) + " " if used else ""

    def show(input, output, data, edata):
        entries = cache.cache().get(name) or []
        head = data.string(CACHE_PREFIX_DATA) if data.boolean(CachePrefix.name) else ""
        count = data.integer(CacheLength.name)
        for entry in entries[max(0, len(entries) - count):]:
            output.stdout(head + " ".join(entry))

    return BranchNode(
        {
            "history": serial(
                SimpleProcessor(prefix),
                FlagProcessor(CacheLength, CachePrefix),
                SimpleProcessor(show),
            ),
        },
        default=_CacheNode(processor),
        synonyms=branch_synonyms({"history": ["h"]}),
        default_completion=True,
    )


class _CacheNode(Node):
    """
    Terminal node whose usage continues into the cached graph.
    """

    def __init__(self, processor):
        super().__init__(processor)

    def usage_next(self, input, data, /):
        return self._processor.node


# --- shortcuts ---

SHORTCUT = "SHORTCUT"

ShortcutName = Arg(SHORTCUT, "Name of the shortcut", validators=(MinLength(1),))


class MemoryShortcuts:
    """
    In-memory shortcut collaborator.
    """

    def __init__(self, shortcuts=Unset):
        self._shortcuts = {name: dict(values) for name, values in coalesce(shortcuts, {}).items()}
        self._changed = False

    def __repr__(self):
        return f"MemoryShortcuts({self._shortcuts!r})"

    def shortcut_map(self):
        return self._shortcuts

    def mark_changed(self):
        self._changed = True

    def changed(self):
        return self._changed


def _shortcut_fault(message, **options):
    return ShortcutError(
        message,
        title="shortcut",
        code=FaultCode.SHORTCUT,
        docs=getdoc(FaultCode.SHORTCUT),
        **options
    )


def _shortcut_line(shortcut, values):
    return f"{shortcut}: {' '.join(values)}"


class _ShortcutGroup:
    """
    Operations of one ShortcutNode on its group of the shortcut map.
    """

    def __init__(self, name, shortcuts, node):
        self.name = name
        self.shortcuts = shortcuts
        self.node = node
        self.branches = None

    def group(self):
        return self.shortcuts.shortcut_map().get(self.name)

    def lookup(self, shortcut):
        return (self.group() or {}).get(shortcut)

    def completer(self):
        def complete(value, data):
            return Completion(sorted(self.group() or ()), distinct=True)
        return CompleterList(CompleterFromFunc(rename(complete, "shortcuts")))

    def names(self):
        return ListArg(
            SHORTCUT,
            "Name of the shortcut",
            minimum=1,
            optional=UNBOUNDED,
            completer=self.completer()
        )

    # --- expansion ---

    def expand(self, input):
        if (token := input.peek()) is not None and (values := self.lookup(token)) is not None:
            input.pop()
            input.push_front(*values)

    def expand_execute(self, input, output, data, edata):
        self.expand(input)

    def expand_complete(self, input, data):
        if input.num_remaining() > 1:
            self.expand(input)
        return None

    # --- branches ---

    def add(self, input, output, data, edata):
        shortcut = data.string(SHORTCUT)
        if self.branches.is_branch(shortcut):
            raise _shortcut_fault(
                f"cannot create shortcut for reserved value ({shortcut})",
                hint="pick a name that is not a shortcuts sub-command",
                shortcut=shortcut
            )
        if self.lookup(shortcut) is not None:
            raise _shortcut_fault(
                f"Shortcut {quote(shortcut)} already exists",
                hint="delete it first to redefine it",
                shortcut=shortcut
            )

        mark = input.snapshot()
        try:
            try:
                process_graph_execution(self.node, input, BufferedOutput(), data, ExecuteData())
            except NotEnoughArgsError:
                pass
            if not input.fully_processed():
                return
            values = input.snapshot_values(mark)
        finally:
            input.release(mark)

        if not values:
            raise ShortcutName.not_enough(0)
        self.shortcuts.shortcut_map().setdefault(self.name, {})[shortcut] = values
        self.shortcuts.mark_changed()

    def complete_values(self, input, data):
        return process_graph_completion(self.node, input, data)

    def delete(self, output, data):
        if not (group := self.group()):
            raise _shortcut_fault("Shortcut group has no shortcuts yet.", group=self.name)
        for shortcut in data.strings(SHORTCUT):
            if shortcut not in group:
                output.err(_shortcut_fault(f"Shortcut {quote(shortcut)} does not exist", shortcut=shortcut))
                continue
            del group[shortcut]
            self.shortcuts.mark_changed()

    def get(self, output, data):
        if (group := self.group()) is None:
            raise _shortcut_fault(f"No shortcuts exist for shortcut type {quote(self.name)}", group=self.name)
        for shortcut in data.strings(SHORTCUT):
            if (values := group.get(shortcut)) is None:
                output.stderr(f"Shortcut {quote(shortcut)} does not exist")
            else:
                output.stdout(_shortcut_line(shortcut, values))

    def list(self, output, data):
        for line in sorted(_shortcut_line(shortcut, values) for shortcut, values in (self.group() or {}).items()):
            output.stdout(line)

    def search(self, output, data):
        patterns = [re.compile(pattern) for pattern in data.strings("REGEXP")]
        for line in sorted(_shortcut_line(shortcut, values) for shortcut, values in (self.group() or {}).items()):
            if all(pattern.search(line) for pattern in patterns):
                output.stdout(line)


class _ShortcutExpansion(SimpleProcessor):
    def usage(self, usage, /):
        usage.add_symbol("{ shortcuts }", "Start of new shortcut-able section (see the `shortcuts` branch)")


class _ShortcutValues(SimpleProcessor):
    def usage(self, usage, /):
        usage.add_argument(ListArg(
            "SHORTCUT_VALUE",
            "Values added to the shortcut; they follow the usage of the wrapped command",
            minimum=1,
            optional=UNBOUNDED
        ))


def ShortcutNode(name, shortcuts, node, /):
    """
    Wrap node so that a leading shortcut token expands into its stored tokens.

    Branches of "shortcuts"
    - add a SHORTCUT VALUES...: store VALUES (checked against node) as SHORTCUT.
    - delete d SHORTCUT...: remove shortcuts.
    - get g SHORTCUT...: print shortcuts.
    - list l: print every shortcut.
    - search s REGEXP...: print the shortcuts matching every regexp.
    """
    group = _ShortcutGroup(name, shortcuts, node)
    group.branches = BranchNode({
        "add a": serial(ShortcutName, _ShortcutValues(group.add, group.complete_values)),
        "delete d": serial(group.names(), ExecutorProcessor(group.delete)),
        "get g": serial(group.names(), ExecutorProcessor(group.get)),
        "list l": serial(ExecutorProcessor(group.list)),
        "search s": serial(
            ListArg(
                "REGEXP",
                "Regexp values with which shortcut names will be searched",
                minimum=1,
                optional=UNBOUNDED,
                validators=(Listify(IsRegex()),)
            ),
            ExecutorProcessor(group.search)
        ),
    })

    return BranchNode(
        {"shortcuts": group.branches},
        default=serial(_ShortcutExpansion(group.expand_execute, group.expand_complete), node),
        default_completion=True,
        hide_usage=True,
    )


# --- shell commands ---


class ShellCommand(Processor):
    """
    Processor running a command and storing its stdout as a value.

    Parameters
    - command, *args: argv of the subprocess (no shell involved).
    - name: Data key for the value; Unset runs the command for its effects only.
    - type: converter applied to every stdout line.
    - listed: store the list of lines; otherwise the whole stripped stdout is
      converted as one value.
    - validators: run on the converted value.
    - cwd / stdin: working directory and text fed to the command.
    - hide_stderr: drop the command's stderr instead of forwarding it.
    - forward_stdout: also print the command's stdout.
    - echo_command: print the command line before running it.
    - dont_run_on_complete: skip the command during completion.
    """

    def __init__(
            self,
            command,
            /,
            *args,
            name=Unset,
            descr=Unset,
            type=str,
            listed=False,
            validators=(),
            cwd=None,
            stdin=None,
            hide_stderr=False,
            forward_stdout=False,
            echo_command=False,
            dont_run_on_complete=False
    ):
        if not isinstance(command, str):
            raise TypeError("shell-command 'command' must be a string")
        if not callable(type):
            raise TypeError("shell-command 'type' must be callable")
        self.command = command
        self.args = tuple(map(str, args))
        self.name = name
        self.descr = coalesce(descr)
        self.type = type
        self.listed = bool(listed)
        self.validators = tuple(validators)
        self.cwd = cwd
        self.stdin = stdin
        self.hide_stderr = bool(hide_stderr)
        self.forward_stdout = bool(forward_stdout)
        self.echo_command = bool(echo_command)
        self.dont_run_on_complete = bool(dont_run_on_complete)

    def __repr__(self):
        return f"ShellCommand({' '.join((self.command, *self.args))!r})"

    def _label(self):
        return coalesce(self.name, self.command)

    def run(self, output, data, /):
        """
        Run the command and return its converted, validated stdout.

        output may be None (completion), in which case nothing is echoed or
        forwarded.
        """
        argv = [self.command, *self.args]
        if self.echo_command and output is not None:
            output.stdout(" ".join(argv))

        try:
            result = subprocess.run(argv, cwd=self.cwd, input=self.stdin, capture_output=True, text=True, check=True)
        except subprocess.CalledProcessError as error:
            self._forward_stderr(output, error.stderr)
            raise ShellCommandError(
                f"failed to execute shell command: {error}",
                title="shell command",
                code=FaultCode.SHELL_COMMAND,
                hint="run `%s` by hand to see what went wrong" % " ".join(argv),
                command=argv,
                docs=getdoc(FaultCode.SHELL_COMMAND)
            ) from error
        except OSError as error:
            raise ShellCommandError(
                f"failed to execute shell command: {error}",
                title="shell command",
                code=FaultCode.SHELL_COMMAND,
                hint="check that %s is installed and on PATH" % quote(self.command),
                command=argv,
                docs=getdoc(FaultCode.SHELL_COMMAND)
            ) from error

        self._forward_stderr(output, result.stderr)
        lines = [line.strip() for line in result.stdout.splitlines()]
        if self.forward_stdout and output is not None:
            for line in lines:
                output.stdout(line)

        if self.listed:
            value = convert(self.type, lines, name=self._label())
        else:
            value, = convert(self.type, [result.stdout.strip()], name=self._label())

        for validator in self.validators:
            try:
                validator.validate(value, data)
            except ValueError as error:
                raise ValidationError(
                    f"validation for {quote(self._label())} failed: [{validator.name}] {error}",
                    title="invalid value",
                    code=FaultCode.VALIDATION,
                    hint="the output of %s was rejected" % quote(self.command),
                    argument=self._label(),
                    validator=validator.name,
                    docs=getdoc(FaultCode.VALIDATION)
                ) from error
        return value

    def _forward_stderr(self, output, stderr):
        if self.hide_stderr or output is None or not stderr:
            return
        for line in stderr.splitlines():
            output.stderr(line)

    def _store(self, value, data):
        if self.name is not Unset:
            data[self.name] = value

    def execute(self, input, output, data, edata, /):
        self._store(self.run(output, data), data)

    def complete(self, input, data, /):
        if not self.dont_run_on_complete:
            self._store(self.run(None, data), data)
        return None

    def get(self, data, /):
        return data[self.name]


def shell_command_completer(command, /, *args, completion=Unset):
    """
    Completer suggesting the non-empty stdout lines of a command.

    completion, when given, supplies the policy bits (distinct, ...).
    """
    def complete(value, data):
        try:
            lines = ShellCommand(command, *args, listed=True).run(None, data)
        except CommandException as error:
            raise CompleterError(
                f"failed to fetch autocomplete suggestions with shell command: {error}",
                title="completion failure",
                code=FaultCode.COMPLETER,
                hint="run `%s` by hand to see what went wrong" % " ".join((command, *args)),
                docs=getdoc(FaultCode.COMPLETER)
            ) from error
        suggestions = [line for line in lines if line]
        if completion is Unset:
            return Completion(suggestions)
        return copy.replace(completion, suggestions=suggestions)

    return CompleterFromFunc(rename(complete, "shell_command_completer"))


__all__ = (
    "Output",
    "BufferedOutput",
    "CACHE_HISTORY",
    "CACHE_PREFIX_DATA",
    "CacheLength",
    "CachePrefix",
    "MemoryCache",
    "CacheNode",
    "SHORTCUT",
    "ShortcutName",
    "MemoryShortcuts",
    "ShortcutNode",
    "ShellCommand",
    "shell_command_completer",
)
