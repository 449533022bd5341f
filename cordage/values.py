"""
Value conversion between raw tokens and typed argument values.

An argument's 'type' is any callable taking one token and returning a value
(str, int, float, boolean below, or a user converter). Lists are handled by
the argument itself: it converts token by token.
"""
from .faults import ConversionError, FaultCode, getdoc
from .utils import quote

TRUE_STRINGS = ("1", "t", "T", "TRUE", "true", "True")
FALSE_STRINGS = ("0", "f", "F", "FALSE", "false", "False")
BOOLEAN_STRINGS = TRUE_STRINGS + FALSE_STRINGS


def boolean(token, /):
    """
    parse a boolean token ("true", "f", "1", ...); anything else is a ValueError.
    """
    if isinstance(token, bool):
        return token
    if token in TRUE_STRINGS:
        return True
    if token in FALSE_STRINGS:
        return False
    raise ValueError(f"invalid syntax for boolean: {quote(token)}")


def convert(type, tokens, /, *, name=None):
    """
    Convert raw tokens one by one with the given converter.

    The first failing token aborts the conversion; the converter's own error
    text becomes the fault message.

    Raises
    - ConversionError: with options argument=name, token=<raw token>.
    """
    values = []
    for token in tokens:
        try:
            values.append(type(token))
        except (TypeError, ValueError) as error:
            raise ConversionError(
                str(error),
                title="bad value",
                code=FaultCode.CONVERSION,
                hint="%s expects %s values" % (quote(name) if name else "the argument", typename(type)),
                argument=name,
                token=token,
                docs=getdoc(FaultCode.CONVERSION)
            ) from error
    return values


def to_token(value, /):
    """
    render one value back to its token form (booleans as "true"/"false").
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def to_tokens(value, /):
    """
    render a single value or a list of values back to tokens.
    """
    if isinstance(value, list | tuple):
        return [to_token(item) for item in value]
    return [to_token(value)]


def typename(type, /):
    return {str: "string", int: "integer", float: "float", boolean: "boolean"}.get(type, getattr(type, "__name__", "custom"))


__all__ = (
    "TRUE_STRINGS",
    "FALSE_STRINGS",
    "BOOLEAN_STRINGS",
    "boolean",
    "convert",
    "to_token",
    "to_tokens",
    "typename",
)
