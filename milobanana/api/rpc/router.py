"""Static (namespace, method) -> handler table."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Iterator

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from milobanana.api.rpc.error_boundary import DETAIL_PLAIN
from milobanana.auth.principal import AuthRequirement
from milobanana.utils.exceptions import InvalidParamsError, MethodNotFoundError

Handler = Callable[[Any, Any], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class MethodSpec:
    """Handler descriptor.

    ``params_error`` is the INVALID_PARAMS message when params do not fit
    ``params_model``; ``params_missing_error`` (if set) replaces it when params
    are absent or not an object. ``failure_message`` is the INTERNAL_ERROR
    message for unexpected handler failures and ``failure_detail`` the shape of
    its ``data``.
    """

    handler: Handler
    requirement: AuthRequirement = AuthRequirement.NONE
    params_model: type[BaseModel] | None = None
    params_error: str = "Invalid params"
    params_error_data: Any = None
    params_missing_error: str | None = None
    failure_message: str = "Internal server error"
    failure_detail: str = DETAIL_PLAIN

    def parse_params(self, raw: Any) -> BaseModel | None:
        if self.params_model is None:
            return None
        if not isinstance(raw, dict):
            raise InvalidParamsError(self.params_missing_error or self.params_error, self.params_error_data)
        try:
            return self.params_model.model_validate(raw)
        except PydanticValidationError:
            raise InvalidParamsError(self.params_error, self.params_error_data) from None


class RouteNamespace:
    """One HTTP endpoint and the closed set of methods it accepts."""

    def __init__(
        self,
        name: str,
        path: str,
        methods: dict[str, MethodSpec],
        *,
        rate_limit_scope: str | None = None,
    ):
        self.name = name
        self.path = path
        self.methods = dict(methods)
        self.rate_limit_scope = rate_limit_scope

    def resolve(self, method: str) -> MethodSpec:
        spec = self.methods.get(method)
        if spec is None:
            raise MethodNotFoundError(method)
        return spec

    def __repr__(self) -> str:
        return f"RouteNamespace({self.name!r}, {self.path!r}, methods={sorted(self.methods)})"


class MethodRouter:
    def __init__(self, namespaces: Iterable[RouteNamespace]):
        self._namespaces: dict[str, RouteNamespace] = {}
        for ns in namespaces:
            if ns.name in self._namespaces:
                raise ValueError(f"duplicate route namespace: {ns.name}")
            self._namespaces[ns.name] = ns

    def namespace(self, name: str) -> RouteNamespace:
        return self._namespaces[name]

    def resolve(self, namespace: str, method: str) -> MethodSpec:
        return self.namespace(namespace).resolve(method)

    def __iter__(self) -> Iterator[RouteNamespace]:
        return iter(self._namespaces.values())
