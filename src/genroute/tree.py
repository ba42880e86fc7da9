"""Zero dependency routing tree with path param support.

The tree is built once with nested configuration callbacks, frozen, and then
only read: lookups walk it segment by segment, first match wins.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from fnmatch import fnmatchcase
from typing import Literal, Never, cast

from .params import PATH_PARAM
from .types import Handler, Middleware

logger = logging.getLogger(__name__)

type HTTPVerb = Literal["DELETE", "GET", "HEAD", "PATCH", "POST", "PUT"]
type _RouteMatch = tuple[Handler, tuple[Middleware, ...], str]


class Verb(Enum):
    """HTTP verbs a route can hold a handler for."""

    DELETE = "DELETE"
    GET = "GET"
    HEAD = "HEAD"
    PATCH = "PATCH"
    POST = "POST"
    PUT = "PUT"

    def __repr__(self) -> str:
        return str(self.value)


class FrozenDict[K, V](dict[K, V]):
    def _immutable(self, *args, **kwargs) -> Never:
        msg = "FrozenDict is immutable"
        raise TypeError(msg)

    __setitem__ = __delitem__ = __ior__ = _immutable
    clear = pop = popitem = setdefault = update = _immutable


@dataclass(slots=True)
class Route:
    """Route tree node.

    `path` is this node's own segment(s), e.g. "/user" or "/{id}"; it is empty
    only for the root. Children are tried in declaration order.
    """

    path: str = ""
    sub_routes: list[Route] | tuple[Route, ...] = field(default_factory=list)
    handlers: dict[Verb, Handler] = field(default_factory=dict)
    middleware: list[Middleware] | tuple[Middleware, ...] = field(default_factory=list)
    frozen: bool = field(default=False, repr=False, compare=False)

    def add_route(self, path: str, configure: Callable[[Route], None]) -> Route:
        """Adds a child route at path, populated by configure."""
        self._check_mutable()
        child = Route(path=path)
        configure(child)
        cast("list[Route]", self.sub_routes).append(child)
        return self

    def use(self, *middleware: Middleware) -> None:
        """Adds middleware to this node, applied in the order given."""
        self._check_mutable()
        cast("list[Middleware]", self.middleware).extend(middleware)

    def add_verb(self, verb: Verb | HTTPVerb, path: str, handler: Handler) -> None:
        """Registers handler for verb on the child at path ("/" is this node).

        An existing child with exactly the same path is reused, otherwise a new
        one is appended. A handler already set for the verb is replaced. An
        unsupported verb is logged and ignored, like it is on lookup.
        """
        self._check_mutable()
        method = _parse_verb(verb)
        if method is None:
            logger.warning("ignoring handler for unsupported verb %r at %r", verb, path)
            return
        verb = method
        if path == "/":
            self.set_verb(verb, handler)
            return
        index = self._child_index(path)
        if index is None:
            child = Route(path=path)
            child.set_verb(verb, handler)
            cast("list[Route]", self.sub_routes).append(child)
        else:
            self.sub_routes[index].set_verb(verb, handler)

    def add_delete(self, path: str, handler: Handler) -> None:
        """Registers handler at path for DELETE."""
        self.add_verb(Verb.DELETE, path, handler)

    def add_get(self, path: str, handler: Handler) -> None:
        """Registers handler at path for GET."""
        self.add_verb(Verb.GET, path, handler)

    def add_head(self, path: str, handler: Handler) -> None:
        """Registers handler at path for HEAD."""
        self.add_verb(Verb.HEAD, path, handler)

    def add_patch(self, path: str, handler: Handler) -> None:
        """Registers handler at path for PATCH."""
        self.add_verb(Verb.PATCH, path, handler)

    def add_post(self, path: str, handler: Handler) -> None:
        """Registers handler at path for POST."""
        self.add_verb(Verb.POST, path, handler)

    def add_put(self, path: str, handler: Handler) -> None:
        """Registers handler at path for PUT."""
        self.add_verb(Verb.PUT, path, handler)

    def set_verb(self, verb: Verb, handler: Handler) -> None:
        self._check_mutable()
        self.handlers[verb] = handler

    def get_verb(self, verb: Verb) -> Handler | None:
        return self.handlers.get(verb)

    def freeze(self) -> Route:
        """Returns an immutable copy of the tree rooted at this node."""
        return Route(
            path=self.path,
            sub_routes=tuple(child.freeze() for child in self.sub_routes),
            handlers=FrozenDict(self.handlers),
            middleware=tuple(self.middleware),
            frozen=True,
        )

    def _child_index(self, path: str) -> int | None:
        for i in range(len(self.sub_routes)):
            if self.sub_routes[i].path == path:
                return i
        return None

    def _check_mutable(self) -> None:
        if self.frozen:
            msg = f"route {self.path or '/'!r} is frozen"
            raise TypeError(msg)


def make_root(configure: Callable[[Route], None]) -> Route:
    """Builds a route tree: configure populates an empty root, which is then frozen."""
    root = Route()
    configure(root)
    return root.freeze()


def find_route(path: str, verb: Verb | str, root: Route) -> _RouteMatch | None:
    """Traverses the tree to find the first handler for path and verb.

    Returns (handler, middleware, route) or None. `middleware` is ordered from
    the matched node up to the root, and `route` is the matched path in its
    parameterised form, e.g. "/abc/123/def" could give "/abc/{myVar}/def".
    """
    method = _parse_verb(verb)
    if method is None:
        return None
    found = _find(root, _split(path), method)
    if found is None:
        return None
    handler, middleware, route_parts = found
    return handler, tuple(middleware), "/" + "/".join(route_parts)


def _find(
    node: Route, segments: list[str], verb: Verb
) -> tuple[Handler, list[Middleware], list[str]] | None:
    node_segments = _split(node.path)
    if not _match_segments(node_segments, segments):
        return None
    rest = segments[len(node_segments) :]

    if not rest:  # exact match
        handler = node.handlers.get(verb)
        if handler is not None:
            return handler, list(node.middleware), node_segments

    for child in node.sub_routes:
        found = _find(child, rest, verb)
        if found is not None:
            handler, middleware, route_parts = found
            middleware.extend(node.middleware)
            return handler, middleware, node_segments + route_parts
    return None


def normalize_path(path: str) -> str:
    """Drops empty segments, so "//abc//def/" gives "/abc/def"."""
    return "/" + "/".join(_split(path))


def _split(path: str) -> list[str]:
    return [seg for seg in path.split("/") if seg]


def _match_segments(node_segments: list[str], segments: list[str]) -> bool:
    if len(node_segments) > len(segments):
        return False
    return all(
        _match_segment(pattern, seg)
        for pattern, seg in zip(node_segments, segments, strict=False)
    )


def _match_segment(pattern: str, segment: str) -> bool:
    """Literal comparison, or single segment glob if pattern starts with {name}."""
    param = PATH_PARAM.match("/" + pattern)
    if param is None:
        return pattern == segment
    suffix = pattern[param.end() - 1 :]
    return fnmatchcase(segment, "*" + _glob_escape(suffix))


def _glob_escape(text: str) -> str:
    return "".join(f"[{c}]" if c in "*?[" else c for c in text)


def _parse_verb(verb: Verb | str) -> Verb | None:
    if isinstance(verb, Verb):
        return verb
    try:
        return Verb(verb.upper())
    except ValueError:
        return None


def format_routes(root: Route, *, tree: bool = False) -> str:
    """Format registered routes as a human-readable string.

    By default produces a column-aligned route list in match order, with
    middleware listed outermost first:

        GET    /                         home_handler
        GET    /admin                    admin_home_handler     [auth > admin_audit]
        POST   /admin/user/{id}/rename   user_rename_handler    [auth > admin_audit > user_lock]

    With `tree=True`, produces a visual tree instead:

        /
        ├── [GET] home_handler
        └── admin
            ├── [GET] admin_home_handler [auth > admin_audit]
            └── user
                └── {id}
                    └── rename
                        └── [POST] user_rename_handler [auth > admin_audit > user_lock]
    """
    if tree:
        return _format_tree(root)
    return _format_route_list(root)


type _RouteLine = tuple[str, str, str, list[str]]


def _format_route_list(root: Route) -> str:
    """Column-aligned flat route list."""
    routes = _collect_routes(root, [], [])
    if not routes:
        return ""

    verb_w = max(len(r[0]) for r in routes)
    path_w = max(len(r[1]) for r in routes)
    handler_w = max(len(r[2]) for r in routes)

    lines: list[str] = []
    for verb, path, handler, mw in routes:
        if mw:
            lines.append(
                f"{verb:<{verb_w}}   {path:<{path_w}}   "
                f"{handler:<{handler_w}}   [{' > '.join(mw)}]"
            )
        else:
            lines.append(f"{verb:<{verb_w}}   {path:<{path_w}}   {handler}")
    return "\n".join(lines)


def _collect_routes(
    node: Route, parts: list[str], outer: list[str]
) -> list[_RouteLine]:
    """Walk the tree, returning route entries in match order."""
    parts = parts + _split(node.path)
    outer = _outer_middleware(node, outer)
    routes: list[_RouteLine] = [
        (verb.value, "/" + "/".join(parts), _qualname(handler), outer)
        for verb, handler in _sorted_handlers(node)
    ]
    for child in node.sub_routes:
        routes.extend(_collect_routes(child, parts, outer))
    return routes


def _format_tree(root: Route) -> str:
    """Visual tree with box-drawing characters."""
    lines: list[str] = [root.path or "/"]
    _render_tree(root, "", outer=_outer_middleware(root, []), lines=lines)
    return "\n".join(lines)


def _render_tree(
    node: Route, prefix: str, *, outer: list[str], lines: list[str]
) -> None:
    """Recursively render a node's handlers and children with tree-drawing prefixes."""
    items: list[tuple[str, Route | None]] = [
        (_handler_label(verb, handler, outer), None)
        for verb, handler in _sorted_handlers(node)
    ]
    items.extend((child.path.strip("/") or "/", child) for child in node.sub_routes)

    for i, (label, child) in enumerate(items):
        is_last = i == len(items) - 1
        connector = "└── " if is_last else "├── "
        lines.append(f"{prefix}{connector}{label}")
        if child is not None:
            extension = "    " if is_last else "│   "
            _render_tree(
                child,
                prefix + extension,
                outer=_outer_middleware(child, outer),
                lines=lines,
            )


def _outer_middleware(node: Route, outer: list[str]) -> list[str]:
    # the last middleware applied wraps outermost
    return outer + [_qualname(m) for m in reversed(node.middleware)]


def _sorted_handlers(node: Route) -> list[tuple[Verb, Handler]]:
    return sorted(node.handlers.items(), key=lambda x: x[0].value)


def _handler_label(verb: Verb, handler: Handler, outer: list[str]) -> str:
    """Format a handler entry: [VERB] name [middleware]."""
    label = f"[{verb.value}] {_qualname(handler)}"
    if outer:
        label += f" [{' > '.join(outer)}]"
    return label


def _qualname(obj: object) -> str:
    """Extract __qualname__ from a callable, falling back to the type's."""
    if hasattr(obj, "__qualname__"):
        return str(obj.__qualname__)
    return type(obj).__qualname__
