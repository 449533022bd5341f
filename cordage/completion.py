"""
Completion objects and completers.

Scope
- Completion: a suggestion set plus the policy bits that tell process() how to
  filter, sort and escape it for the shell.
- Completer: anything with complete(value, data) -> Completion | None. The
  value is the argument's typed value so far (the raw token(s) when they do
  not convert yet).
- run_completer(): runs an argument's completer and applies the "distinct"
  policy against the values already chosen in the same list.
- Built-in completers: SimpleCompleter, SimpleDistinctCompleter, AsCompleter,
  CompleterFromFunc, CompleterWithOpts, CompleterList, BoolCompleter,
  FileCompleter.

Escaping
- suggestions containing spaces are backslash-escaped ("a\\ b") unless the
  COMP_LINE left a quote open, in which case they are wrapped in that quote.
- dont_complete appends a lone " " suggestion so the shell shows the list
  without inserting their common prefix.
"""
import copy
import re

from .faults import CompleterError, FaultCode, getdoc
from .utils import Unset, coalesce, quote
from .values import BOOLEAN_STRINGS, to_tokens

SUFFIX = "_"
"""
second suggestion appended next to a lone directory or autofill prefix, so the
shell inserts the common part without a trailing space.
"""


class Completion:
    """
    Suggestion set plus policy.

    Parameters
    - suggestions: Iterable[str]
    - ignore_filter: skip prefix filtering against the token being completed.
    - dont_complete: append a " " suggestion (list, but don't insert a prefix).
    - case_insensitive_sort: sort ignoring case.
    - case_insensitive: prefix-filter ignoring case.
    - distinct: drop values already chosen earlier in the same list argument.
    """

    def __init__(
            self,
            suggestions=(),
            /,
            *,
            ignore_filter=False,
            dont_complete=False,
            case_insensitive_sort=False,
            case_insensitive=False,
            distinct=False
    ):
        self.suggestions = list(suggestions)
        self.ignore_filter = bool(ignore_filter)
        self.dont_complete = bool(dont_complete)
        self.case_insensitive_sort = bool(case_insensitive_sort)
        self.case_insensitive = bool(case_insensitive)
        self.distinct = bool(distinct)

    def __repr__(self):
        flags = [name for name in ("ignore_filter", "dont_complete", "case_insensitive_sort", "case_insensitive", "distinct") if getattr(self, name)]
        return f"Completion({self.suggestions!r}{''.join(', %s=True' % name for name in flags)})"

    def __eq__(self, other):
        if not isinstance(other, Completion):
            return NotImplemented
        return vars(self) == vars(other)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        options = {key: value for key, value in vars(self).items() if key != "suggestions"}
        return type(self)(overrides.pop("suggestions", self.suggestions), **(options | overrides))

    def process(self, last, /, delimiter=None, skip_delimiter=False):
        """
        Filter, sort and escape the suggestions against the token being completed.

        Parameters
        - last: str, the (partial) token being completed.
        - delimiter: str | None, quote left open on the command line.
        - skip_delimiter: bool, return the raw filtered suggestions (used by
          complete-for-execute, which compares against real values).
        """
        results = list(self.suggestions)

        if not self.ignore_filter:
            if self.case_insensitive:
                lower = last.lower()
                results = [result for result in results if result.lower().startswith(lower)]
            else:
                results = [result for result in results if result.startswith(last)]

        if self.case_insensitive_sort:
            results.sort(key=str.lower)
        else:
            results.sort()

        if not skip_delimiter:
            for index, result in enumerate(results):
                if " " in result:
                    if delimiter is None:
                        results[index] = result.replace(" ", "\\ ")
                    else:
                        results[index] = f"{delimiter}{result}{delimiter}"

        if self.dont_complete:
            results.append(" ")
        return results

    def process_input(self, input, /):
        """
        process() against the last token of the input, honouring its open quote.
        """
        return self.process(input.last(), input.delimiter)


class Completer:
    """
    Base class for completers; subclasses implement complete(value, data).
    """

    def complete(self, value, data, /):
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}()"


def run_completer(completer, value, data, /):
    """
    Run a completer and apply its distinct policy.

    Returns None when there is no completer or it produced nothing. Completer
    errors propagate unchanged. With distinct=True, suggestions equal to one of
    the values chosen before the last one are dropped (the last value is the
    one being completed, so it stays eligible).
    """
    if completer is None or completer is Unset:
        return None

    completion = completer.complete(value, data)
    if completion is None:
        return None

    if completion.distinct:
        chosen = set(to_tokens(value)[:-1]) if isinstance(value, list | tuple) else set()
        completion = copy.replace(completion, suggestions=[
            suggestion for suggestion in completion.suggestions if suggestion not in chosen
        ])
    return completion


class AsCompleter(Completer):
    """
    Always answer with (a copy of) the given Completion.
    """

    def __init__(self, completion, /):
        self.completion = completion

    def complete(self, value, data, /):
        return copy.replace(self.completion)

    def __repr__(self):
        return f"AsCompleter({self.completion!r})"


def SimpleCompleter(*suggestions):
    return AsCompleter(Completion(suggestions))


def SimpleDistinctCompleter(*suggestions):
    return AsCompleter(Completion(suggestions, distinct=True))


def BoolCompleter():
    return SimpleCompleter(*BOOLEAN_STRINGS)


class CompleterFromFunc(Completer):
    """
    Adapt a plain function f(value, data) -> Completion | None.
    """

    def __init__(self, function, /):
        if not callable(function):
            raise TypeError("CompleterFromFunc() argument must be callable")
        self.function = function

    def complete(self, value, data, /):
        return self.function(value, data)

    def __repr__(self):
        return f"CompleterFromFunc({getattr(self.function, '__name__', self.function)!r})"


class CompleterWithOpts(Completer):
    """
    Keep the suggestions of an inner completer but take the policy bits from
    the given Completion.
    """

    def __init__(self, completer, completion, /):
        self.completer = completer
        self.completion = completion

    def complete(self, value, data, /):
        if (completion := self.completer.complete(value, data)) is None:
            return None
        return copy.replace(self.completion, suggestions=completion.suggestions)


class CompleterList(Completer):
    """
    Turn a single-value completer into a list completer: the inner completer
    sees the last value of the list (the one being completed).
    """

    def __init__(self, completer, /):
        self.completer = completer

    def complete(self, value, data, /):
        if isinstance(value, list | tuple):
            value = value[-1] if value else ""
        return self.completer.complete(value, data)


def _autofill(prefix, suggestions):
    """
    longest case-insensitive common prefix of the suggestions beyond what was
    typed; None when it adds nothing.
    """
    position = len(prefix)
    while suggestions and all(len(suggestion) > position for suggestion in suggestions):
        letters = {suggestion[position].lower() for suggestion in suggestions}
        if len(letters) != 1:
            break
        position += 1
    if position <= len(prefix):
        return None
    return suggestions[0][:position]


class FileCompleter(Completer):
    """
    Complete file system paths relative to the OS collaborator's cwd.

    Parameters
    - directory: str, base directory for relative paths ("" = cwd).
    - regex: str | None, every suggested name must match it (re.search).
    - file_types: Iterable[str], allowed file suffixes (".py", ...); directories
      are always offered so the user can descend.
    - distinct: skip paths already given earlier in the same list (compared as
      typed and as absolute paths).
    - ignore_files / ignore_directories: only offer one kind of entry.
    - ignore: callable(full_path, basename, data) -> bool, drop custom entries.

    Behavior
    - a lone directory match is offered together with "<dir>/_" so the shell
      completes the directory without closing the word.
    - several matches sharing more letters than typed are collapsed to that
      shared prefix; otherwise they are listed without inserting anything.
    - during complete-for-execute, a path ending in "/" resolves to itself.
    """

    def __init__(
            self,
            directory="",
            regex=None,
            file_types=(),
            *,
            distinct=False,
            ignore_files=False,
            ignore_directories=False,
            ignore=None
    ):
        self.directory = directory
        self.regex = re.compile(regex) if isinstance(regex, str) else regex
        self.file_types = frozenset(file_types)
        self.distinct = bool(distinct)
        self.ignore_files = bool(ignore_files)
        self.ignore_directories = bool(ignore_directories)
        self.ignore = ignore

    def complete(self, value, data, /):
        tokens = to_tokens(value) if value not in (None, "", []) else []
        last = tokens[-1] if tokens else ""

        split = last.rfind("/") + 1
        folder, basename = last[:split], last[split:]

        os = data.os
        if os.isabs(folder):
            directory = folder
        else:
            directory = os.abspath("/".join(part for part in (self.directory, folder) if part) or ".")

        if data.complete_for_execute and not basename:
            return Completion([last])

        try:
            entries = sorted(os.listdir(directory))
        except OSError as error:
            raise CompleterError(
                f"failed to read dir: {error}",
                title="unreadable directory",
                code=FaultCode.COMPLETER,
                hint="check that %s exists and is readable" % quote(directory),
                directory=directory,
                docs=getdoc(FaultCode.COMPLETER)
            ) from error

        only_directories = True
        suggestions = []
        for name, is_directory in entries:
            if (is_directory and self.ignore_directories) or (not is_directory and self.ignore_files):
                continue
            if self.regex is not None and not self.regex.search(name):
                continue
            if not name.lower().startswith(basename.lower()):
                continue
            if is_directory:
                suggestions.append(name + "/")
            elif not self.file_types or any(name.endswith(suffix) for suffix in self.file_types):
                only_directories = False
                suggestions.append(name)

        chosen, absolute = set(), set()
        if self.distinct:
            for token in tokens[:-1]:
                chosen.add(token)
                absolute.add(os.abspath(token))

        relevant = []
        for suggestion in suggestions:
            path = folder + suggestion
            if path in chosen or os.abspath("/".join(part for part in (self.directory, path) if part)) in absolute:
                continue
            if self.ignore is not None and self.ignore(path, suggestion, data):
                continue
            relevant.append(suggestion)

        if not relevant:
            return None

        completion = Completion(relevant, ignore_filter=True, case_insensitive_sort=True)

        if len(relevant) == 1:
            completion.suggestions = [folder + relevant[0]]
            if only_directories and not data.complete_for_execute:
                completion.suggestions.append(completion.suggestions[0] + SUFFIX)
            return completion

        if (autofill := _autofill(basename, relevant)) is None:
            completion.dont_complete = True
            return completion

        completion.suggestions = [folder + autofill, folder + autofill + SUFFIX]
        return completion

    def __repr__(self):
        return f"FileCompleter(directory={self.directory!r})"


__all__ = (
    "SUFFIX",
    "Completion",
    "Completer",
    "run_completer",
    "AsCompleter",
    "SimpleCompleter",
    "SimpleDistinctCompleter",
    "BoolCompleter",
    "CompleterFromFunc",
    "CompleterWithOpts",
    "CompleterList",
    "FileCompleter",
)
