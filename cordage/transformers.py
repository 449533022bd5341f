"""
Value transformers.

A transformer rewrites an argument's typed value after validation and before
storage. For list arguments the result must keep the input length; the owning
argument enforces that.
"""
from .utils import rename


class Transformer:
    """
    Wrap f(value, data) -> new value.

    Parameters
    - function: the transformation; exceptions it raises become
      "Custom transformer failed: <err>".
    - each: apply function to every element of a list value instead of to the
      list as a whole.
    """

    def __init__(self, function, /, *, each=False):
        if not callable(function):
            raise TypeError("transformer 'function' must be callable")
        self.function = function
        self.each = bool(each)

    @classmethod
    def elementwise(cls, function, /):
        return cls(function, each=True)

    def transform(self, value, data, /):
        if self.each and isinstance(value, list | tuple):
            return [self.function(item, data) for item in value]
        return self.function(value, data)

    def __repr__(self):
        return f"Transformer({getattr(self.function, '__name__', self.function)!r}, each={self.each!r})"


def FileTransformer(*, each=False):
    """
    resolve paths to absolute ones through the OS collaborator.
    """
    @rename("abspath")
    def abspath(value, data):
        return data.os.abspath(value)
    return Transformer(abspath, each=each)


__all__ = (
    "Transformer",
    "FileTransformer",
)
