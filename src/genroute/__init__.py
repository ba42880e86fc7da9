from importlib.metadata import version

from .errors import (
    MiddlewareExecutionError,
    NotFoundError,
    PathParamsError,
    RouterExecutionError,
)
from .handler import BaseHandler
from .params import extract_path_params
from .router import Router, execute_handler, execute_path, http_route, path_params
from .tree import Route, Verb, find_route, format_routes, make_root
from .types import Handler, Middleware, RequestEngine

__all__ = [
    "BaseHandler",
    "Handler",
    "Middleware",
    "MiddlewareExecutionError",
    "NotFoundError",
    "PathParamsError",
    "RequestEngine",
    "Route",
    "Router",
    "RouterExecutionError",
    "Verb",
    "__version__",
    "execute_handler",
    "execute_path",
    "extract_path_params",
    "find_route",
    "format_routes",
    "http_route",
    "make_root",
    "path_params",
]

__version__ = version("genroute")
