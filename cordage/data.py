"""
Data store and execute data.

Data is the typed named-value bag written by processors during a walk and read
by later processors, edges and executors. ExecuteData collects what the
execute walker hands back to the host: shell lines and executor callbacks.
"""
from collections.abc import MutableMapping

from .system import OS
from .utils import Unset, coalesce


class Data(MutableMapping):
    """
    Mapping from argument name to value.

    Besides the mapping protocol, Data carries:
    - os: the OS collaborator (working directory, paths, environment) used by
      file completers, file transformers and environment arguments.
    - complete_for_execute: True while a complete-for-execute completer runs,
      so completers can tell a forced resolution from a shell completion.
    """

    def __init__(self, values=(), /, *, os=Unset):
        self._values = dict(values)
        self.os = OS() if os is Unset else os
        self.complete_for_execute = False

    def __getitem__(self, name):
        return self._values[name]

    def __setitem__(self, name, value):
        self._values[name] = value

    def __delitem__(self, name):
        del self._values[name]

    def __iter__(self):
        return iter(self._values)

    def __len__(self):
        return len(self._values)

    def __repr__(self):
        return f"Data({self._values!r})"

    def has(self, name, /):
        return name in self._values

    def set(self, name, value, /):
        self._values[name] = value

    def string(self, name, /):
        return str(self._values[name])

    def integer(self, name, /):
        return int(self._values[name])

    def floating(self, name, /):
        return float(self._values[name])

    def boolean(self, name, /):
        """
        missing keys read as False, which is what boolean flags without a default expect.
        """
        return bool(self._values.get(name, False))

    def strings(self, name, /):
        return [str(value) for value in self._values.get(name, ())]

    def integers(self, name, /):
        return [int(value) for value in self._values.get(name, ())]

    def floats(self, name, /):
        return [float(value) for value in self._values.get(name, ())]

    def snapshot(self):
        """
        shallow copy of the current values (lists are copied one level deep).
        """
        return {name: list(value) if isinstance(value, list) else value for name, value in self._values.items()}

    def restore(self, values, /):
        self._values = dict(values)


class ExecuteData:
    """
    What an execute walk produces besides Data.

    Attributes
    - executable: list[str], shell lines in traversal order.
    - executors: list of callables f(output, data), run in order after a
      successful walk.
    - function_wrap: whether the host should wrap the executable lines in a
      shell function before sourcing them.
    """

    def __init__(self, executable=Unset, executors=Unset, function_wrap=False):
        self.executable = list(coalesce(executable, ()))
        self.executors = list(coalesce(executors, ()))
        self.function_wrap = function_wrap

    def __repr__(self):
        return f"ExecuteData(executable={self.executable!r}, executors={len(self.executors)}, function_wrap={self.function_wrap!r})"

    def __eq__(self, other):
        if not isinstance(other, ExecuteData):
            return NotImplemented
        return (
            self.executable == other.executable and
            self.executors == other.executors and
            self.function_wrap == other.function_wrap
        )


__all__ = (
    "Data",
    "ExecuteData",
)
