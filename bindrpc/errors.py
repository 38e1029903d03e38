"""
Exception types raised by bindrpc.

There are two families and they never overlap:

- BindError: raised once, while a function is being bound. It means the
  function's signature can't be exposed (wrong return shape, unsupported
  annotation, ...). Nothing has been served yet, so no caller ever sees it.
- RequestError: raised while handling one request. Every RequestError ends
  that request with a 400 response whose body is the quoted message.
"""


class BindrpcError(Exception):
    """Base class for every error raised by bindrpc."""


class BindError(BindrpcError, TypeError):
    """The function can't be bound (raised at bind time only)."""


class RequestError(BindrpcError):
    """A single request can't be served. Always surfaced as a 400."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MethodNotAllowedError(RequestError):
    def __init__(self):
        super().__init__("only POST requests are permitted")


class MalformedArgumentsError(RequestError):
    def __init__(self):
        super().__init__("malformed arguments")


class ArgumentCountError(RequestError):
    def __init__(self, got: int, expected: int):
        super().__init__("number of arguments mismatch")
        self.got = got
        self.expected = expected


class ArgumentError(RequestError):
    """
    One argument couldn't be coerced to its parameter type.

    index is 1-based, matching what the caller sees in the message.
    path points below the argument when the failure happened inside a
    struct field, sequence element or map value (empty at the top level).
    """

    def __init__(self, message: str, index: int, path: str = ""):
        super().__init__(message)
        self.index = index
        self.path = path


class NullArgumentError(ArgumentError):
    def __init__(self, index: int):
        super().__init__(f"{index}. can't be null", index)


class ArgumentTypeError(ArgumentError):
    def __init__(self, index: int, got: str, expected: str, path: str = ""):
        where = f" at {path}" if path else ""
        super().__init__(
            f"mismatching argument type of {index}. argument{where}. got={got} expected={expected}",
            index,
            path,
        )
        self.got = got
        self.expected = expected


class ArgumentLengthError(ArgumentError):
    def __init__(self, index: int, got: int, expected: int, path: str = ""):
        where = f" at {path}" if path else ""
        super().__init__(
            f"mismatching argument length of {index}. argument{where}. got={got} expected={expected}",
            index,
            path,
        )
        self.got = got
        self.expected = expected
