# /// script
# requires-python = ">=3.12"
# dependencies = [
#     "genroute @ file:///${PROJECT_ROOT}/../genroute",
# ]
# ///
"""AWS Lambda demo.

Routes API Gateway (HTTP API, payload v2) events through a genroute Router.
Run locally to push a few sample events through it.
"""

import json
import logging
from collections.abc import Mapping
from typing import Any

from genroute import (
    BaseHandler,
    NotFoundError,
    RequestEngine,
    Route,
    Router,
    RouterExecutionError,
)
from genroute.middleware.log import log_requests

_users: dict[str, dict[str, str]] = {"1": {"id": "1", "name": "ada"}}


class BadRequestError(Exception):
    pass


class ApiGatewayEngine:
    """RequestEngine over an API Gateway v2 event."""

    def __init__(self, event: Mapping[str, Any]) -> None:
        self._event = event

    def get_path(self) -> str:
        return self._event.get("rawPath", "/")

    def get_verb(self) -> str:
        return self._event["requestContext"]["http"]["method"]

    def get_body(self) -> bytes:
        return (self._event.get("body") or "").encode()

    def get_headers(self) -> Mapping[str, str]:
        return self._event.get("headers") or {}

    def get_query_params(self) -> Mapping[str, str]:
        return self._event.get("queryStringParameters") or {}

    def format_output(self, output: object, error: Exception | None) -> object:
        if error is None:
            return _response(200, output)
        if isinstance(error, NotFoundError):
            return _response(404, {"error": str(error)})
        if isinstance(error, RouterExecutionError):
            return _response(500, {"error": str(error), "details": error.details})
        if isinstance(error, BadRequestError):
            return _response(400, {"error": str(error)})
        logging.getLogger(__name__).error("unhandled", exc_info=error)
        return _response(500, {"error": "internal error"})


def _response(status: int, body: object) -> dict[str, object]:
    return {
        "statusCode": status,
        "headers": {"content-type": "application/json"},
        "body": json.dumps(body),
    }


class ListUsers(BaseHandler):
    def execution(self, engine: RequestEngine) -> object:
        return list(_users.values())


class GetUser(BaseHandler):
    def execution(self, engine: RequestEngine) -> object:
        user = _users.get(self.path_params["id"])
        if user is None:
            msg = f"no user {self.path_params['id']}"
            raise BadRequestError(msg)
        return user


class CreateUser(BaseHandler):
    def pre_execution(self, engine: RequestEngine) -> BaseHandler:
        try:
            self.payload = json.loads(engine.get_body())
        except json.JSONDecodeError as e:
            raise BadRequestError(str(e)) from e
        return self

    def execution(self, engine: RequestEngine) -> object:
        user_id = str(len(_users) + 1)
        _users[user_id] = {"id": user_id, "name": self.payload["name"]}
        return _users[user_id]

    def post_execution(self, engine: RequestEngine, output: object) -> object:
        return {"created": output}


def configure(root: Route) -> None:
    root.use(log_requests())

    def users(r: Route) -> None:
        r.add_get("/", ListUsers())
        r.add_post("/", CreateUser())
        r.add_get("/{id}", GetUser())

    root.add_route("/users", users)


router = Router.build(configure)


def handler(event: Mapping[str, Any], context: object) -> object:
    return router(ApiGatewayEngine(event))


def _event(method: str, path: str, body: str | None = None) -> dict[str, Any]:
    return {
        "rawPath": path,
        "requestContext": {"http": {"method": method}},
        "body": body,
    }


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print(router.routes(tree=True))
    for event in (
        _event("GET", "/users"),
        _event("GET", "/users/1"),
        _event("POST", "/users", json.dumps({"name": "grace"})),
        _event("GET", "/users/2"),
        _event("GET", "/users/9"),
        _event("DELETE", "/users/1"),
    ):
        print(handler(event, None))
