import copy
from abc import ABC, abstractmethod
from collections.abc import Mapping
from types import MappingProxyType

from .types import RequestEngine


class BaseHandler(ABC):
    """Handler with no-op pre/post execution.

    Path params are bound onto a shallow copy, so the instance registered in
    the route tree never carries a request's params.
    """

    path_params: Mapping[str, str] = MappingProxyType({})

    def set_path_params(self, path_params: dict[str, str]) -> "BaseHandler":
        handler = copy.copy(self)
        handler.path_params = dict(path_params)
        return handler

    def pre_execution(self, engine: RequestEngine) -> "BaseHandler":
        return self

    @abstractmethod
    def execution(self, engine: RequestEngine) -> object: ...

    def post_execution(self, engine: RequestEngine, output: object) -> object:
        return output
