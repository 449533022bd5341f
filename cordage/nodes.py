r"""
Cordage node graph: nodes, edges, graph walking primitives and processors.

Overview
- Graph
  • Node(processor, edge): runs its processor, then asks its edge for the next
    node (no edge means the walk ends here). A processor may itself be a Node,
    in which case its whole graph runs in place.
  • SimpleEdge(node) / serial(*processors): plain chains.
  • BranchNode(branches, default=..., synonyms=...): picks the next node from
    the token under the cursor.
  • NodeRepeater(node, minimum, optional): runs a sub-graph repeatedly.
  • StringListListProcessor(...): list of lists separated by a symbol token.

- Walking primitives (used by the walkers and by nested graphs)
  • process_graph_execution(root, input, output, data, edata)
  • process_graph_completion(root, input, data) -> Completion | None
  • process_graph_usage(root, input, data, usage)

- Processors (execute(input, output, data, edata) / complete(input, data) /
  usage(usage))
  • SimpleProcessor, SuperSimpleProcessor, ExecutorProcessor,
    ExecutableProcessor, SimpleExecutableProcessor, FunctionWrap
  • IfElse, If, IfElseData, IfData
  • EchoExecuteData, PrintlnProcessor, DryRun
  • EnvArg, Getwd, SetEnvVarProcessor, UnsetEnvVarProcessor

Quick example:
    >>> from cordage.arguments import Arg
    >>> from cordage.nodes import BranchNode, serial
    >>> root = BranchNode({
    ...     "add a": serial(Arg("KEY"), Arg("VALUE")),
    ...     "remove r": serial(Arg("KEY")),
    ... })
"""
from collections.abc import Mapping

from .arguments import ListArg, list_until_symbol
from .completion import Completion
from .data import Data
from .faults import *
from .inputs import Input
from .utils import *

GETWD = "GETWD"
"""
Data key under which Getwd stores the working directory.
"""


# --- graph ---


class Node:
    """
    Graph vertex: an optional processor and an optional edge.

    Nodes are not modified by walks; whatever a walk produces lives in Data,
    ExecuteData and the Input cursor.
    """

    processor = mirror("processor")
    edge = mirror("edge")

    def __init__(self, processor=None, edge=None):
        self._processor = processor
        self._edge = edge

    def __repr__(self):
        return f"Node({self._processor!r})"

    def execute(self, input, output, data, edata, /):
        if self._processor is None:
            return
        if isinstance(self._processor, Node):
            process_graph_execution(self._processor, input, output, data, edata)
        else:
            self._processor.execute(input, output, data, edata)

    def complete(self, input, data, /):
        if self._processor is None:
            return None
        if isinstance(self._processor, Node):
            return process_graph_completion(self._processor, input, data)
        return self._processor.complete(input, data)

    def next(self, input, data, /):
        return None if self._edge is None else self._edge.next(input, data)

    def usage(self, input, data, usage, /):
        if self._processor is None:
            return
        if isinstance(self._processor, Node):
            process_graph_usage(self._processor, input, data, usage)
        elif hasattr(self._processor, "usage"):
            self._processor.usage(usage)

    def usage_next(self, input, data, /):
        return None if self._edge is None else self._edge.usage_next(input, data)


class SimpleEdge:
    """
    Edge that always leads to the same node.
    """

    def __init__(self, node, /):
        self.node = node

    def next(self, input, data, /):
        return self.node

    def usage_next(self, input, data, /):
        return self.node


def serial(*processors):
    """
    Chain processors into nodes linked by simple edges; returns the first node.
    """
    if not processors:
        return Node()

    root = node = Node(processors[0])
    for processor in processors[1:]:
        following = Node(processor)
        node._edge = SimpleEdge(following)
        node = following
    return root


def process_graph_execution(root, input, output, data, edata, /):
    """
    run every node from root on; the first fault propagates.
    """
    node = root
    while node is not None:
        node.execute(input, output, data, edata)
        node = node.next(input, data)


def process_graph_completion(root, input, data, /):
    """
    walk nodes from root until one of them answers with a Completion.
    """
    node = root
    while node is not None:
        if (completion := node.complete(input, data)) is not None:
            return completion
        node = node.next(input, data)
    return None


def process_graph_usage(root, input, data, usage, /):
    node = root
    while node is not None:
        node.usage(input, data, usage)
        node = node.usage_next(input, data)


def branch_synonyms(synonyms, /):
    """
    invert {"branch": ["syn", ...]} into {"syn": "branch"} for BranchNode.
    """
    return {synonym: branch for branch, values in synonyms.items() for synonym in values}


class BranchNode(Node):
    """
    Node choosing what follows from the token under the cursor.

    Parameters
    - branches: Mapping[str, Node]; a key may list synonyms after the branch
      name, separated by spaces ("add a").
    - default: Node | None, taken when the token matches no branch (the token
      is left in place) or when no token is left.
    - synonyms: Mapping[str, str] from synonym to branch name
      (see branch_synonyms()).
    - default_completion: complete the default graph instead of suggesting
      branch names.
    - hide_usage: leave the branch names out of the usage line.

    Behavior
    - a matching token is consumed and its branch is walked next.
    - no match and no default: BranchingError listing the sorted branch keys.
    - completion with at most one token left suggests the branch names
      (case-insensitive prefix match).
    """

    def __init__(self, branches, /, default=None, synonyms=None, *, default_completion=False, hide_usage=False):
        if not isinstance(branches, Mapping):
            raise TypeError("BranchNode 'branches' must be a mapping")

        super().__init__()
        self._branches = dict(branches)
        self._default = default
        self._default_completion = bool(default_completion)
        self._hide_usage = bool(hide_usage)
        self._names = {}
        self._lookup = {}

        for key, node in self._branches.items():
            name, *aliases = key.split()
            self._names[name] = aliases
            for alias in (name, *aliases):
                if alias in self._lookup:
                    raise ValueError(f"BranchNode has a duplicate branch name {quote(alias)}")
                self._lookup[alias] = node

        self._synonyms = dict(synonyms or {})
        for synonym, name in self._synonyms.items():
            if name not in self._names:
                raise ValueError(f"BranchNode synonym {quote(synonym)} points to unknown branch {quote(name)}")
            self._names[name].append(synonym)

    def __repr__(self):
        return f"BranchNode({sorted(self._names)!r})"

    def _fault(self):
        return BranchingError(
            f"Branching argument must be one of {listing(sorted(self._branches))}",
            title="unknown branch",
            code=FaultCode.BRANCHING,
            hint="start with one of: %s" % ", ".join(sorted(self._names)),
            branches=tuple(sorted(self._branches)),
            docs=getdoc(FaultCode.BRANCHING)
        )

    def is_branch(self, token, /):
        """
        true when token selects a branch (by name, alias or synonym).
        """
        return self._synonyms.get(token, token) in self._lookup

    def execute(self, input, output, data, edata, /):
        pass

    def complete(self, input, data, /):
        if input.num_remaining() > 1:
            return None
        if self._default_completion:
            return process_graph_completion(self._default, input, data) or Completion()
        return Completion(list(self._names), case_insensitive=True)

    def next(self, input, data, /):
        if (token := input.peek()) is None:
            if self._default is None:
                raise self._fault()
            return self._default

        if (node := self._lookup.get(self._synonyms.get(token, token))) is not None:
            input.pop()
            return node
        if self._default is not None:
            return self._default
        raise self._fault()

    def usage(self, input, data, usage, /):
        if input.peek() is None and not self._hide_usage:
            usage.add_branches({name: sorted(aliases) for name, aliases in self._names.items()})

    def usage_next(self, input, data, /):
        if input.peek() is None:
            return self._default
        return self.next(input, data)


class _HeldOutput:
    """
    Output stand-in keeping writes until they are replayed onto a real Output.
    """

    def __init__(self, output):
        self.fancy = getattr(output, "fancy", False)
        self._writes = []

    def stdout(self, text, /):
        self._writes.append(("stdout", text))

    def stderr(self, text, /):
        self._writes.append(("stderr", text))

    def err(self, fault, /):
        self._writes.append(("err", fault))

    def replay(self, output, /):
        for method, value in self._writes:
            getattr(output, method)(value)


class NodeRepeater:
    """
    Processor running a sub-graph repeatedly.

    The sub-graph runs while fewer than minimum iterations happened, or while
    tokens remain and (optional is UNBOUNDED or fewer than minimum + optional
    iterations happened). An iteration that runs short fails with its own
    argument's arity fault.

    Once the bound is reached with tokens left, one more iteration is tried:
    when it runs short (a dangling key with no value), its arity fault is
    raised; otherwise the input, Data and ExecuteData are rolled back, its
    output is dropped and the tokens stay for whatever follows.
    """

    def __init__(self, node, minimum, optional, /):
        if minimum < 0 or (optional < 0 and optional != UNBOUNDED):
            raise ValueError("NodeRepeater 'minimum' and 'optional' must be non-negative (or UNBOUNDED)")
        self.node = node
        self.minimum = minimum
        self.optional = optional

    def __repr__(self):
        return f"NodeRepeater({self.node!r}, minimum={self.minimum!r}, optional={self.optional!r})"

    def _proceed(self, count, input):
        return count < self.minimum or (
            not input.fully_processed() and (self.optional == UNBOUNDED or count < self.minimum + self.optional)
        )

    def execute(self, input, output, data, edata, /):
        count = 0
        while self._proceed(count, input):
            process_graph_execution(self.node, input, output, data, edata)
            count += 1
        if not input.fully_processed():
            self._overflow(input, output, data, edata)

    def _overflow(self, input, output, data, edata):
        mark = input.snapshot()
        values = data.snapshot()
        executable, executors, wrap = len(edata.executable), len(edata.executors), edata.function_wrap
        held = _HeldOutput(output)
        try:
            process_graph_execution(self.node, input, held, data, edata)
        except NotEnoughArgsError:
            input.release(mark)
            held.replay(output)
            raise
        except CommandException:
            # not an iteration; the tokens belong to what follows
            pass
        input.restore(mark)
        data.restore(values)
        del edata.executable[executable:]
        del edata.executors[executors:]
        edata.function_wrap = wrap

    def complete(self, input, data, /):
        count = 0
        while self._proceed(count, input):
            if (completion := process_graph_completion(self.node, input, data)) is not None:
                return completion
            count += 1
        return None

    def usage(self, usage, /):
        inner = type(usage)()
        process_graph_usage(self.node, Input(), Data(), inner)
        usage.add_repeat(inner, self.minimum, self.optional)


def StringListListProcessor(name, descr, symbol, minimum, optional, /, **options):
    """
    List of lists: "a b -- c -- d e" gives [["a", "b"], ["c"], ["d", "e"]].

    Each inner list ends at the symbol token, which is consumed. Empty inner
    lists are skipped.
    """
    @rename("setter")
    def setter(values, data):
        if values:
            data[name] = [*data.get(name, ()), values]

    return NodeRepeater(
        Node(ListArg(
            name,
            descr,
            minimum=0,
            optional=UNBOUNDED,
            breakers=(*options.pop("breakers", ()), list_until_symbol(symbol, discard=True)),
            setter=setter,
            **options
        )),
        minimum,
        optional
    )


# --- processors ---


class Processor:
    """
    No-op base; subclasses override the entry points they need.
    """

    def execute(self, input, output, data, edata, /):
        pass

    def complete(self, input, data, /):
        return None

    def usage(self, usage, /):
        pass

    def __repr__(self):
        return f"{type(self).__name__}()"


class SimpleProcessor(Processor):
    """
    Processor from plain functions.

    Parameters
    - execute: callable(input, output, data, edata) | None
    - complete: callable(input, data) -> Completion | None, or None
    """

    def __init__(self, execute=None, complete=None):
        self._execute = execute
        self._complete = complete

    def execute(self, input, output, data, edata, /):
        if self._execute is not None:
            self._execute(input, output, data, edata)

    def complete(self, input, data, /):
        if self._complete is None:
            return None
        return self._complete(input, data)


def SuperSimpleProcessor(function, /):
    """
    run function(input, data) in both walks; it may only raise.
    """
    def complete(input, data):
        function(input, data)

    return SimpleProcessor(lambda input, output, data, edata: function(input, data), complete)


class ExecutorProcessor(Processor):
    """
    Queue function(output, data) to run after a successful execute walk.
    """

    def __init__(self, function, /):
        self.function = function

    def execute(self, input, output, data, edata, /):
        edata.executors.append(self.function)


class ExecutableProcessor(Processor):
    """
    Append the shell lines returned by function(output, data).
    """

    def __init__(self, function, /):
        self.function = function

    def execute(self, input, output, data, edata, /):
        edata.executable.extend(self.function(output, data))


def SimpleExecutableProcessor(*lines):
    return ExecutableProcessor(lambda output, data: lines)


def FunctionWrap():
    """
    ask the host to wrap the executable lines in a shell function.
    """
    def execute(input, output, data, edata):
        edata.function_wrap = True
    return SimpleProcessor(execute)


class IfElse(Processor):
    """
    Run on_true when predicate(input, data) holds, on_false (if any) otherwise.
    """

    def __init__(self, on_true, on_false, predicate, /):
        self.on_true = on_true
        self.on_false = on_false
        self.predicate = predicate

    def _pick(self, input, data):
        return self.on_true if self.predicate(input, data) else self.on_false

    def execute(self, input, output, data, edata, /):
        if (processor := self._pick(input, data)) is None:
            return
        if isinstance(processor, Node):
            process_graph_execution(processor, input, output, data, edata)
        else:
            processor.execute(input, output, data, edata)

    def complete(self, input, data, /):
        if (processor := self._pick(input, data)) is None:
            return None
        if isinstance(processor, Node):
            return process_graph_completion(processor, input, data)
        return processor.complete(input, data)


def If(processor, predicate, /):
    return IfElse(processor, None, predicate)


def _data_predicate(name):
    @rename("present")
    def present(input, data):
        if not data.has(name):
            return False
        value = data[name]
        return value if isinstance(value, bool) else True
    return present


def IfElseData(name, on_true, on_false, /):
    """
    branch on data[name]: present and, when it is a bool, true.
    """
    return IfElse(on_true, on_false, _data_predicate(name))


def IfData(name, processor, /):
    return IfElse(processor, None, _data_predicate(name))


class EchoExecuteData(Processor):
    """
    Print the executable lines gathered so far (one per line, or all of them
    joined by newlines through a %-format).
    """

    def __init__(self, *, stderr=False, format=None):
        self.stderr = bool(stderr)
        self.format = format

    def execute(self, input, output, data, edata, /):
        write = output.stderr if self.stderr else output.stdout
        if self.format and edata.executable:
            write(self.format % "\n".join(edata.executable))
            return
        for line in edata.executable:
            write(line)


def PrintlnProcessor(text, /):
    def execute(input, output, data, edata):
        output.stdout(text)
    return SimpleProcessor(execute)


def DryRun():
    """
    Print a summary of what the walk would do, then drop the executable lines
    and executors so nothing runs.
    """
    def execute(input, output, data, edata):
        output.stdout("\n".join([
            "# Dry Run Summary",
            f"# Number of executor functions: {len(edata.executors)}",
            "# Shell executables:",
            *edata.executable,
        ]))
        edata.executable.clear()
        edata.executors.clear()
    return SimpleProcessor(execute)


class EnvArg(Processor):
    """
    Read an environment variable (through data.os) into Data.

    Parameters
    - name: variable name, also the Data key.
    - optional: a missing variable is not an error.
    - validators: run after the transformers.
    - transformers: applied in order to the raw string.
    - dont_run_on_complete: skip the lookup during completion.
    """

    def __init__(self, name, /, *, optional=False, validators=(), transformers=(), dont_run_on_complete=False):
        self.name = name
        self.optional = bool(optional)
        self.validators = tuple(validators)
        self.transformers = tuple(transformers)
        self.dont_run_on_complete = bool(dont_run_on_complete)

    def __repr__(self):
        return f"EnvArg({self.name!r})"

    def _fault(self, message):
        return EnvironmentVariableError(
            message,
            title="environment variable",
            code=FaultCode.ENVIRONMENT_VARIABLE,
            hint="export %s with a valid value" % self.name,
            variable=self.name,
            docs=getdoc(FaultCode.ENVIRONMENT_VARIABLE)
        )

    def _run(self, data):
        if (value := data.os.getenv(self.name)) is None:
            if self.optional:
                return
            raise self._fault(f"Environment variable {self.name} is not set")

        for transformer in self.transformers:
            try:
                value = transformer.transform(value, data)
            except Exception as error:
                raise self._fault(f"Environment variable transformation failed: {error}") from error

        for validator in self.validators:
            try:
                validator.validate(value, data)
            except ValueError as error:
                raise self._fault(f"Invalid value for environment variable {self.name}: {error}") from error

        data[self.name] = value

    def execute(self, input, output, data, edata, /):
        self._run(data)

    def complete(self, input, data, /):
        if not self.dont_run_on_complete:
            self._run(data)
        return None

    def provided(self, data, /):
        return data.has(self.name)

    def get(self, data, /):
        return data.string(self.name)


class Getwd(Processor):
    """
    Store the working directory under GETWD.
    """

    def _run(self, data):
        try:
            data[GETWD] = data.os.getcwd()
        except OSError as error:
            raise CommandException(
                f"failed to get current directory: {error}",
                title="working directory",
                hint="the current directory may have been removed"
            ) from error

    def execute(self, input, output, data, edata, /):
        self._run(data)

    def complete(self, input, data, /):
        self._run(data)
        return None

    def get(self, data, /):
        return data.string(GETWD)


def SetEnvVarProcessor(name, value, /):
    """
    emit the shell line exporting name=value.
    """
    def execute(input, output, data, edata):
        edata.executable.append(data.os.set_env_var(name, value))
    return SimpleProcessor(execute)


def UnsetEnvVarProcessor(name, /):
    def execute(input, output, data, edata):
        edata.executable.append(data.os.unset_env_var(name))
    return SimpleProcessor(execute)


__all__ = (
    "GETWD",
    "Node",
    "SimpleEdge",
    "serial",
    "process_graph_execution",
    "process_graph_completion",
    "process_graph_usage",
    "branch_synonyms",
    "BranchNode",
    "NodeRepeater",
    "StringListListProcessor",
    "Processor",
    "SimpleProcessor",
    "SuperSimpleProcessor",
    "ExecutorProcessor",
    "ExecutableProcessor",
    "SimpleExecutableProcessor",
    "FunctionWrap",
    "IfElse",
    "If",
    "IfElseData",
    "IfData",
    "EchoExecuteData",
    "PrintlnProcessor",
    "DryRun",
    "EnvArg",
    "Getwd",
    "SetEnvVarProcessor",
    "UnsetEnvVarProcessor",
)
