from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Literal

from genroute.types import Handler, RequestEngine

type Phase = Literal["bind", "pre", "execution", "post"]


class HandlerFailedError(Exception):
    """Raised by RecordingHandler in the phase it is told to fail in."""


@dataclass
class MockEngine:
    """RequestEngine that records every format_output call."""

    path: str = "/"
    verb: str = "GET"
    body: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)
    query_params: Mapping[str, str] = field(default_factory=dict)
    calls: list[tuple[object, Exception | None]] = field(default_factory=list)

    def get_path(self) -> str:
        return self.path

    def get_verb(self) -> str:
        return self.verb

    def get_body(self) -> bytes:
        return self.body

    def get_headers(self) -> Mapping[str, str]:
        return self.headers

    def get_query_params(self) -> Mapping[str, str]:
        return self.query_params

    def format_output(self, output: object, error: Exception | None) -> object:
        self.calls.append((output, error))
        return {"output": output, "error": error}


def mock_engine(
    path: str = "/",
    verb: str = "GET",
    headers: dict[str, str] | None = None,
    query_params: dict[str, str] | None = None,
) -> MockEngine:
    return MockEngine(
        path=path,
        verb=verb,
        headers=headers or {},
        query_params=query_params or {},
    )


@dataclass
class RecordingHandler:
    """Handler that appends "<name>.<phase>" to events as each phase runs.

    `events` is shared between the registered instance and its bound copies.
    """

    name: str
    events: list[str] = field(default_factory=list)
    path_params: dict[str, str] = field(default_factory=dict)
    fail_in: Phase | None = None

    def set_path_params(self, path_params: dict[str, str]) -> Handler:
        self._run("bind")
        return replace(self, path_params=dict(path_params))

    def pre_execution(self, engine: RequestEngine) -> Handler:
        self._run("pre")
        return self

    def execution(self, engine: RequestEngine) -> object:
        self._run("execution")
        return {"handler": self.name, "params": self.path_params}

    def post_execution(self, engine: RequestEngine, output: object) -> object:
        self._run("post")
        return {"post": output}

    def _run(self, phase: Phase) -> None:
        self.events.append(f"{self.name}.{phase}")
        if self.fail_in == phase:
            msg = f"{self.name} failed in {phase}"
            raise HandlerFailedError(msg)


class WrappingHandler:
    """What recording_middleware wraps a handler in: records around execution."""

    def __init__(self, name: str, inner: Handler, events: list[str]) -> None:
        self.name = name
        self.inner = inner
        self.events = events

    def set_path_params(self, path_params: dict[str, str]) -> Handler:
        return WrappingHandler(
            self.name, self.inner.set_path_params(path_params), self.events
        )

    def pre_execution(self, engine: RequestEngine) -> Handler:
        return WrappingHandler(self.name, self.inner.pre_execution(engine), self.events)

    def execution(self, engine: RequestEngine) -> object:
        self.events.append(f"{self.name}.before")
        output = self.inner.execution(engine)
        self.events.append(f"{self.name}.after")
        return output

    def post_execution(self, engine: RequestEngine, output: object) -> object:
        return self.inner.post_execution(engine, output)


def recording_middleware(name: str, events: list[str]):
    def middleware(handler: Handler) -> Handler:
        events.append(f"{name}.wrap")
        return WrappingHandler(name, handler, events)

    middleware.__qualname__ = name
    return middleware
