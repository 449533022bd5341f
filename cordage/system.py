"""
OS collaborator.

Everything the engine needs from the process environment (working directory,
absolute paths, directory listings, environment variables, shell syntax for
setting them) goes through an OS instance attached to Data. Tests build one
with a fixed cwd and environ instead of patching module globals.
"""
import os
import shlex

from .utils import Unset


class OS:
    """
    Process environment seen by completers, transformers and env arguments.

    Parameters
    - cwd: Unset | str
      working directory; Unset means os.getcwd() at call time.
    - environ: Unset | Mapping[str, str]
      environment variables; Unset means os.environ.
    """

    def __init__(self, cwd=Unset, environ=Unset):
        self._cwd = cwd
        self._environ = environ

    def getcwd(self):
        return os.getcwd() if self._cwd is Unset else self._cwd

    def abspath(self, path, /):
        return os.path.normpath(os.path.join(self.getcwd(), os.path.expanduser(path)))

    def isabs(self, path, /):
        return os.path.isabs(path)

    def exists(self, path, /):
        return os.path.exists(self.abspath(path))

    def isdir(self, path, /):
        return os.path.isdir(self.abspath(path))

    def isfile(self, path, /):
        return os.path.isfile(self.abspath(path))

    def listdir(self, path, /):
        """
        return [(name, is_dir)] for a directory; symlinks count as directories
        so completion keeps descending through them.
        """
        with os.scandir(self.abspath(path)) as entries:
            return [(entry.name, entry.is_dir() or entry.is_symlink()) for entry in entries]

    def getenv(self, name, /):
        environ = os.environ if self._environ is Unset else self._environ
        return environ.get(name)

    def set_env_var(self, name, value, /):
        """
        shell line that exports name=value in the sourcing shell.
        """
        return f"export {name}={shlex.quote(value)}"

    def unset_env_var(self, name, /):
        return f"unset {name}"


__all__ = (
    "OS",
)
