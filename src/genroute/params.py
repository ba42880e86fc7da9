"""Path param extraction from a matched route pattern."""

import re

from .errors import PathParamsError

# a "/{name}" placeholder at the start of a path segment
PATH_PARAM = re.compile(r"/\{([^/]*?)\}")


def extract_path_params(path: str, route: str) -> dict[str, str]:
    """Extracts named path params from path using its parameterised route.

    For example path "/abc/123/def" with route "/abc/{myVar}/def" gives
    {"myVar": "123"}. The pattern must match the whole path; a path it does not
    match gives {}.

    Raises PathParamsError if the route's placeholders don't form a valid
    pattern, e.g. "{my-var}", "{}", or a name used twice.
    """
    if PATH_PARAM.search(route) is None:
        return {}
    match = _compile(route).fullmatch(path)
    if match is None:
        return {}
    return match.groupdict()


def _compile(route: str) -> re.Pattern[str]:
    parts: list[str] = []
    last = 0
    for param in PATH_PARAM.finditer(route):
        name = param.group(1)
        if not name.isidentifier():
            details = f"error building path params regex: bad param name {name!r}"
            raise PathParamsError(details)
        parts.append(re.escape(route[last : param.start()]))
        parts.append(f"/(?P<{name}>[^/]*?)")
        last = param.end()
    parts.append(re.escape(route[last:]))
    try:
        return re.compile("".join(parts))
    except re.error as e:
        details = f"error building path params regex: {e}"
        raise PathParamsError(details) from e
