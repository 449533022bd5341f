"""
Cordage walkers: the three ways of traversing a node graph.

Overview
- execute(root, tokens, output, data=Unset) -> ExecuteData
  • Runs every processor's execute(); the first fault aborts the walk, is
    written to output.err() and re-raised. Data committed before the fault
    stays in place.
  • Tokens never consumed fail with "Unprocessed extra args: [...]" (a real
    fault raised during the walk takes precedence).
  • On success the queued executors run in order.

- autocomplete(root, comp_line, passthrough=(), data=Unset) -> list[str]
  • Parses COMP_LINE, walks the complete() entry points and post-processes the
    first Completion produced (filter, sort, shell escaping).
  • No Completion and no tokens left means zero suggestions; no Completion
    with tokens left is an ExtraArgsError.

- usage(root, tokens=(), data=Unset) -> Usage
  • Follows the branches selected by tokens and collects what each processor
    declares. str(usage) is the plain text form, Usage.__rich__ the styled one.

Example:
    >>> from cordage import Arg, BufferedOutput, serial
    >>> from cordage.walkers import execute
    >>> edata = execute(serial(Arg("NAME")), ["world"], BufferedOutput())
"""
from collections import defaultdict

from rich.box import ROUNDED
from rich.console import Group
from rich.table import Table
from rich.text import Text

from .data import Data, ExecuteData
from .faults import *
from .inputs import Input, parse_comp_line
from .nodes import process_graph_completion, process_graph_execution, process_graph_usage
from .utils import *

ARGUMENTS = "Arguments"
FLAGS = "Flags"
SYMBOLS = "Symbols"


class Usage:
    """
    Usage collected along one path of a graph.

    Processors call the add_* methods from their usage(usage) entry point:
    - add_argument(argument): a positional argument (name repeated minimum
      times, then its optional slots).
    - add_flag(flag): a flag, listed after the positional part.
    - add_symbol(symbol, descr): a literal marker (cache "^", shortcuts, ...).
    - add_branches({name: [aliases]}): the choice offered by a BranchNode.
    - add_repeat(inner, minimum, optional): a repeated sub-usage.
    """

    def __init__(self):
        self._line = []
        self._flags = []
        self._sections = defaultdict(dict)

    def __repr__(self):
        return f"Usage({self.line()!r})"

    @staticmethod
    def _arity(word, minimum, optional):
        parts = [word] * minimum
        if optional == UNBOUNDED:
            parts += ["[", word, "...", "]"]
        elif optional > 0:
            parts += ["[", *[word] * optional, "]"]
        return parts

    def add_argument(self, argument, /):
        self._line += self._arity(argument.name, argument.minimum, argument.optional)
        if argument.descr:
            self._sections[ARGUMENTS][argument.name] = argument.descr

    def add_flag(self, flag, /):
        keys = "|".join(flag.keys)
        if flag.takes_value and (argument := getattr(flag, "argument", None)) is not None:
            self._flags.append(" ".join((keys, *self._arity(argument.name.upper(), argument.minimum, argument.optional))))
        else:
            self._flags.append(keys)

        if flag.descr:
            key = f"[{flag.short}] {flag.name}" if flag.short else f"    {flag.name}"
            self._sections[FLAGS][key] = flag.descr

    def add_symbol(self, symbol, descr, /):
        self._line.append(symbol)
        if descr:
            self._sections[SYMBOLS][symbol] = descr

    def add_branches(self, branches, /):
        self._line.append("{ %s }" % " | ".join(
            "|".join((name, *aliases)) for name, aliases in sorted(branches.items())
        ))

    def add_repeat(self, inner, minimum, optional, /):
        self._line += self._arity("{ %s }" % inner.line(), minimum, optional)
        for section, entries in inner._sections.items():
            self._sections[section].update(entries)

    def line(self):
        """
        the one-line synopsis: positional parts, then flags.
        """
        return " ".join(self._line + self._flags)

    def sections(self):
        """
        {section: [(key, description)]} sorted the way they are printed.
        """
        result = {}
        for section in sorted(self._sections):
            if section == FLAGS:
                result[section] = sorted(self._sections[section].items(), key=lambda item: item[0][4:])
            else:
                result[section] = sorted(self._sections[section].items())
        return result

    def __str__(self):
        lines = [self.line()]
        for section, entries in self.sections().items():
            lines += ["", f"{section}:"]
            lines += [f"  {key}: {descr}" for key, descr in entries]
        return "\n".join(lines)

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            "usage-label": "bold #00E6FF",
            "usage-line": "bold #36C5F0",
            "section-title": "bold #FFFFFF",
            "section-table": "#4B5563",
            "key": "bold #FFD600",
            "description": "#9CA3AF",
        } | getattr(main, "__styles__", {}))

        renders = [Text.assemble(("usage: ", styles["usage-label"]), (self.line(), styles["usage-line"]))]
        for section, entries in self.sections().items():
            table = Table(
                "name", "help",
                title=Text(section.lower(), styles["section-title"]),
                box=ROUNDED,
                style=styles["section-table"],
                header_style=styles["section-title"],
            )
            for key, descr in entries:
                table.add_row(Text(key.strip(), styles["key"]), Text(descr, styles["description"]))
            renders.append(table)
        return Group(*renders)


def _extra_args(input):
    remaining = input.remaining_values()
    return ExtraArgsError(
        f"Unprocessed extra args: {listing(remaining)}",
        title="extra arguments",
        code=FaultCode.EXTRA_ARGS,
        hint="remove %s or check the usage" % ", ".join(map(quote, remaining)),
        tokens=tuple(remaining),
        docs=getdoc(FaultCode.EXTRA_ARGS)
    )


def _data(data):
    return Data() if data is Unset else data


def execute(root, tokens, output, data=Unset, /):
    """
    Run the execute walk over tokens (an Input or an iterable of strings).

    Returns the ExecuteData of the walk. A fault is written to output.err()
    and re-raised.
    """
    input = tokens if isinstance(tokens, Input) else Input(tokens)
    data = _data(data)
    edata = ExecuteData()

    try:
        process_graph_execution(root, input, output, data, edata)
        if not input.fully_processed():
            raise _extra_args(input)
        for executor in edata.executors:
            executor(output, data)
    except CommandException as fault:
        output.err(fault)
        raise
    return edata


def autocomplete(root, comp_line, /, passthrough=(), data=Unset):
    """
    Suggestions for the last token of comp_line (the shell's COMP_LINE).

    passthrough: tokens inserted after the command name (aliases).
    """
    input = parse_comp_line(comp_line, passthrough)
    completion = process_graph_completion(root, input, _data(data))
    if completion is None:
        if not input.fully_processed():
            raise _extra_args(input)
        return []
    return completion.process_input(input)


def usage(root, tokens=(), /, data=Unset):
    """
    Usage of the path selected by tokens.
    """
    collected = Usage()
    process_graph_usage(root, Input(tokens), _data(data), collected)
    return collected


__all__ = (
    "Usage",
    "execute",
    "autocomplete",
    "usage",
)
