"""Logging middleware.

Logs each handler lifecycle phase with its route and duration, and logs phase
failures with their traceback before re-raising them unchanged.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from genroute.router import http_route

if TYPE_CHECKING:
    from collections.abc import Callable

    from genroute.types import Handler, RequestEngine

logger = logging.getLogger(__name__)


class _LoggedHandler:
    """Wraps a Handler, logging around each lifecycle call."""

    __slots__ = ("_handler", "_level", "_logger")

    def __init__(self, handler: Handler, log: logging.Logger, level: int) -> None:
        self._handler = handler
        self._logger = log
        self._level = level

    def set_path_params(self, path_params: dict[str, str]) -> Handler:
        return _LoggedHandler(
            self._handler.set_path_params(path_params), self._logger, self._level
        )

    def pre_execution(self, engine: RequestEngine) -> Handler:
        handler = self._phase("pre_execution", engine, self._handler.pre_execution)
        return _LoggedHandler(handler, self._logger, self._level)

    def execution(self, engine: RequestEngine) -> object:
        return self._phase("execution", engine, self._handler.execution)

    def post_execution(self, engine: RequestEngine, output: object) -> object:
        return self._phase(
            "post_execution",
            engine,
            lambda e: self._handler.post_execution(e, output),
        )

    def _phase[R](
        self, phase: str, engine: RequestEngine, call: Callable[[RequestEngine], R]
    ) -> R:
        verb = engine.get_verb()
        route = http_route.get(engine.get_path())
        start = time.perf_counter()
        try:
            result = call(engine)
        except Exception:
            self._logger.exception(
                "%s %s: %s failed after %.1fms",
                verb,
                route,
                phase,
                (time.perf_counter() - start) * 1000,
            )
            raise
        self._logger.log(
            self._level,
            "%s %s: %s %.1fms",
            verb,
            route,
            phase,
            (time.perf_counter() - start) * 1000,
        )
        return result


def log_requests(
    *,
    log: logging.Logger | None = None,
    level: int = logging.INFO,
) -> Callable[[Handler], Handler]:
    """Create logging middleware.

    Args:
        log: Logger to write to. Defaults to this module's logger.
        level: Level for phase timings. Failures are always logged at ERROR.

    Returns:
        Middleware function that wraps handlers with phase logging.

    Example:
        root.use(log_requests())

        # Debug-level timings on a dedicated logger
        root.use(log_requests(log=logging.getLogger("api"), level=logging.DEBUG))
    """
    if isinstance(level, bool) or not isinstance(level, int):
        msg = f"level must be a logging level int, got {level!r}"
        raise ValueError(msg)

    log = log if log is not None else logger

    def middleware(handler: Handler) -> Handler:
        return _LoggedHandler(handler, log, level)

    return middleware
