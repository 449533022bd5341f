"""
Invocation surface: one entry point, three verbs, one graph.

    run_nodes(root)                  # argv taken from sys.argv[1:]

- execute FILE ARGS...   run the graph on ARGS; the executable lines are
                         written to FILE for the calling shell to source.
- autocomplete COMP_LINE print the suggestions for COMP_LINE, one per line.
- usage ARGS...          print the usage of the path ARGS selects.
- anything else          run the graph directly (nothing is written).

The verbs are themselves a BranchNode in front of root, so the same walkers
(and the same fault reporting) drive the runner and the user's graph.
"""
import sys

from .arguments import Arg, ListArg
from .collaborators import Output
from .data import Data
from .faults import *
from .nodes import BranchNode, ExecutorProcessor, serial
from .transformers import FileTransformer
from .utils import *
from . import walkers

NODE_RUNNER_FILE = "NODE_RUNNER_FILE"
PASSTHROUGH_ARGS = "PASSTHROUGH_ARGS"
USAGE_ARGS = "USAGE_ARGS"

FUNCTION_WRAP = "_cordage_function_wrap"
"""
name of the shell function wrapping executable lines when FunctionWrap() ran.
"""


def _usage_fault(fault):
    return isinstance(fault, NotEnoughArgsError | ExtraArgsError | BranchingError)


def executable_text(edata, /):
    """
    The text written to the execute file.

    With function_wrap the lines become the body of a shell function that is
    called right away (so `local` and `return` work in them).
    """
    if not edata.function_wrap:
        return "\n".join(edata.executable)
    return "\n".join((
        f"function {FUNCTION_WRAP} {{",
        *("  " + line for line in edata.executable),
        "}",
        FUNCTION_WRAP,
    ))


def runner_node(root, /):
    """
    The verb dispatch placed in front of root.
    """
    def show_usage(output, data):
        collected = walkers.usage(root, data.strings(USAGE_ARGS))
        output.stdout(collected if output.fancy else str(collected))

    def complete(output, data):
        for suggestion in walkers.autocomplete(root, data.string(PASSTHROUGH_ARGS)):
            output.stdout(suggestion)

    return BranchNode(
        {
            "execute": serial(
                Arg(NODE_RUNNER_FILE, "Temporary file for execution", transformer=FileTransformer()),
                root,
            ),
            "usage": serial(
                ListArg(USAGE_ARGS, "Arguments selecting the usage path", minimum=0, optional=UNBOUNDED),
                ExecutorProcessor(show_usage),
            ),
            "autocomplete": serial(
                Arg(PASSTHROUGH_ARGS, "The COMP_LINE to complete"),
                ExecutorProcessor(complete),
            ),
        },
        default=root,
        default_completion=True,
    )


def run_nodes(root, argv=Unset, /, *, output=Unset, data=Unset):
    """
    Run the verb named by argv[0] over root and return the exit status.

    Faults are written through output (see walkers.execute); usage faults are
    followed by the usage of root.
    """
    argv = sys.argv[1:] if argv is Unset else list(argv)
    output = Output() if output is Unset else output
    data = Data() if data is Unset else data

    try:
        edata = walkers.execute(runner_node(root), argv, output, data)
    except CommandException as fault:
        if _usage_fault(fault):
            output.stderr("")
            output.stderr("======= Command Usage =======")
            output.stderr(str(walkers.usage(root)))
        return 1

    if data.has(NODE_RUNNER_FILE) and edata.executable:
        try:
            with open(data.string(NODE_RUNNER_FILE), "w", encoding="utf-8") as file:
                file.write(executable_text(edata))
        except OSError as error:
            output.err(CommandException(
                f"failed to write executable lines to file: {error}",
                title="execute file",
                hint="check that %s is writable" % quote(data.string(NODE_RUNNER_FILE))
            ))
            return 1
    return 0


__all__ = (
    "NODE_RUNNER_FILE",
    "PASSTHROUGH_ARGS",
    "USAGE_ARGS",
    "FUNCTION_WRAP",
    "executable_text",
    "runner_node",
    "run_nodes",
)
