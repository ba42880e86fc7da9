"""Interfaces the routing core consumes but does not own.

Handlers and request engines are implemented by callers: the core only walks
the route tree, binds path params, wraps the handler in middleware, and drives
the handler lifecycle.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Protocol


class RequestEngine(Protocol):
    """Transport adapter: exposes the request and shapes the final response."""

    def get_path(self) -> str: ...

    def get_verb(self) -> str: ...

    def get_body(self) -> bytes: ...

    def get_headers(self) -> Mapping[str, str]: ...

    def get_query_params(self) -> Mapping[str, str]: ...

    def format_output(self, output: object, error: Exception | None) -> object:
        """Called exactly once per request with the handler output or the error.

        `error` is a `RouterExecutionError` when routing failed, otherwise
        whatever the handler raised.
        """
        ...


class Handler(Protocol):
    """Handler lifecycle: bind params, pre-execute, execute, post-execute."""

    def set_path_params(self, path_params: dict[str, str]) -> Handler: ...

    def pre_execution(self, engine: RequestEngine) -> Handler: ...

    def execution(self, engine: RequestEngine) -> object: ...

    def post_execution(self, engine: RequestEngine, output: object) -> object:
        """`output` is the return value of `execution`."""
        ...


type Middleware = Callable[[Handler], Handler]
