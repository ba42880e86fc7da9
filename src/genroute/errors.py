"""Router-level errors.

Anything the routing plumbing fails on is a `RouterExecutionError`; errors
raised by handlers themselves reach `RequestEngine.format_output` untouched, so
an engine can tell the two apart with a single isinstance check.
"""

MIDDLEWARE_EXECUTION_ERROR = "Middleware execution error"
PATH_PARAMS_ERROR = "Error extracting path params"
PATH_NOT_FOUND = "Not found"


class RouterExecutionError(Exception):
    """Routing failed before or around the handler lifecycle."""

    def __init__(self, msg: str, details: str | None = None) -> None:
        super().__init__(msg)
        self.msg = msg
        self.details = details

    def __str__(self) -> str:
        return self.msg

    def __repr__(self) -> str:
        return f"{type(self).__name__}(msg={self.msg!r}, details={self.details!r})"


class NotFoundError(RouterExecutionError):
    """No handler for the path and verb."""

    def __init__(self, details: str | None = None) -> None:
        super().__init__(PATH_NOT_FOUND, details)


class PathParamsError(RouterExecutionError):
    """The path param pattern for the matched route could not be compiled."""

    def __init__(self, details: str | None = None) -> None:
        super().__init__(PATH_PARAMS_ERROR, details)


class MiddlewareExecutionError(RouterExecutionError):
    """A middleware raised while wrapping the handler."""

    def __init__(self, details: str | None = None) -> None:
        super().__init__(MIDDLEWARE_EXECUTION_ERROR, details)
