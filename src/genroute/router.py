"""Request execution pipeline.

Resolve -> bind path params -> middleware -> pre-execution -> execution ->
post-execution -> format output. Any failure skips straight to format output,
which is called exactly once per request.
"""

from __future__ import annotations

from collections.abc import Callable
from contextvars import ContextVar

from .errors import MiddlewareExecutionError, NotFoundError, PathParamsError
from .params import extract_path_params
from .tree import Route, Verb, find_route, format_routes, make_root, normalize_path
from .types import Handler, Middleware, RequestEngine

path_params: ContextVar[dict[str, str]] = ContextVar("path_params")
http_route: ContextVar[str] = ContextVar("http_route")


def execute_path(engine: RequestEngine, root: Route) -> object:
    """Routes the engine's request through root.

    Returns the value of `engine.format_output`. Routing failures are passed to
    it as `RouterExecutionError`s; handler errors are passed as raised.
    """
    path = engine.get_path()
    found = find_route(path, engine.get_verb(), root)
    if found is None:
        return engine.format_output(None, NotFoundError())
    handler, middleware, route = found

    try:
        params = extract_path_params(normalize_path(path), route)
    except PathParamsError as e:
        return engine.format_output(None, e)

    params_token = path_params.set(params)
    route_token = http_route.set(route)
    try:
        try:
            handler = _apply_middleware(handler.set_path_params(params), middleware)
        except Exception as e:  # noqa: BLE001  - every failure goes to format_output
            return engine.format_output(None, e)
        return execute_handler(engine, handler)
    finally:
        http_route.reset(route_token)
        path_params.reset(params_token)


def execute_handler(engine: RequestEngine, handler: Handler) -> object:
    """Runs the handler lifecycle and returns the value of `engine.format_output`."""
    try:
        handler = handler.pre_execution(engine)
        output = handler.execution(engine)
        output = handler.post_execution(engine, output)
    except Exception as e:  # noqa: BLE001  - handler errors pass through unmodified
        return engine.format_output(None, e)
    return engine.format_output(output, None)


def _apply_middleware(handler: Handler, middleware: tuple[Middleware, ...]) -> Handler:
    """Applies middleware in order, so each one wraps those before it."""
    for m in middleware:
        try:
            handler = m(handler)
        except Exception as e:
            raise MiddlewareExecutionError(str(e)) from e
    return handler


class Router:
    """Serves requests from a frozen route tree."""

    __slots__ = ("_root",)
    _root: Route

    def __init__(self, root: Route) -> None:
        self._root = root if root.frozen else root.freeze()

    @classmethod
    def build(cls, configure: Callable[[Route], None]) -> Router:
        """Builds the route tree with `make_root` and serves it."""
        return cls(make_root(configure))

    @property
    def root(self) -> Route:
        return self._root

    def __call__(self, engine: RequestEngine) -> object:
        return execute_path(engine, self._root)

    def find(
        self, path: str, verb: Verb | str
    ) -> tuple[Handler, tuple[Middleware, ...], str] | None:
        """Returns (handler, middleware, route) for path and verb, or None."""
        return find_route(path, verb, self._root)

    def routes(self, *, tree: bool = False) -> str:
        """Registered routes, see `format_routes`."""
        return format_routes(self._root, tree=tree)
