# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""REST controller exposing a repository over Starlette routes.

Routes, relative to wherever the controller is mounted::

    GET    /           find all
    GET    /defaults   a new, unsaved model with a fresh key
    GET    /{id}       find one (404 when missing)
    POST   /           save
    PUT    /{id}       save, keyed by the path id
    DELETE /{id}       remove (404 when missing)

Usage::

    controller = RepositoryRestController(widgets, uuid.UUID)
    app = Starlette(routes=[controller.mount("/widgets")])
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

import structlog
from pydantic import TypeAdapter, ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount, Route

from kirei.data.ports.outbound import RepositoryPort

T = TypeVar("T")

logger = structlog.get_logger("kirei.web")


class RepositoryRestController(Generic[T]):
    """CRUD endpoints over one repository (any :class:`RepositoryPort`).

    Models are (de)serialized with a pydantic ``TypeAdapter``, so the model
    type must be a dataclass, a pydantic model, or another type pydantic
    can validate. Path ids are validated into *id_type*.
    """

    def __init__(self, repository: RepositoryPort[T, Any], id_type: type = str) -> None:
        self._repository = repository
        self._model_adapter: TypeAdapter[Any] = TypeAdapter(repository.model_type)
        self._list_adapter: TypeAdapter[Any] = TypeAdapter(list[repository.model_type])  # type: ignore[valid-type]
        self._id_adapter: TypeAdapter[Any] = TypeAdapter(id_type)

    def routes(self) -> list[Route]:
        return [
            Route("/", self.get_all, methods=["GET"]),
            Route("/defaults", self.defaults, methods=["GET"]),
            Route("/{id}", self.get, methods=["GET"]),
            Route("/", self.post, methods=["POST"]),
            Route("/{id}", self.put, methods=["PUT"]),
            Route("/{id}", self.delete, methods=["DELETE"]),
        ]

    def mount(self, path: str) -> Mount:
        return Mount(path, routes=self.routes())

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _json(self, model: T, status_code: int = 200) -> JSONResponse:
        return JSONResponse(self._model_adapter.dump_python(model, mode="json"), status_code=status_code)

    def _path_id(self, request: Request) -> Any:
        return self._id_adapter.validate_python(request.path_params["id"])

    async def _body(self, request: Request) -> T:
        return self._model_adapter.validate_json(await request.body())

    @staticmethod
    def _invalid(exc: ValidationError) -> JSONResponse:
        return JSONResponse({"errors": exc.errors(include_url=False, include_context=False)}, status_code=422)

    @staticmethod
    def _not_found(id: Any) -> JSONResponse:
        return JSONResponse({"detail": f"'{id}' not found"}, status_code=404)

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def get_all(self, request: Request) -> Response:
        models = await self._repository.find_all()
        return JSONResponse(self._list_adapter.dump_python(models, mode="json"))

    async def defaults(self, request: Request) -> Response:
        return self._json(await self._repository.create())

    async def get(self, request: Request) -> Response:
        try:
            id = self._path_id(request)
        except ValidationError as exc:
            return self._invalid(exc)
        model = await self._repository.find(id)
        if model is None:
            return self._not_found(id)
        return self._json(model)

    async def post(self, request: Request) -> Response:
        try:
            model = await self._body(request)
        except ValidationError as exc:
            return self._invalid(exc)
        await self._repository.save(model)
        return self._json(model, status_code=201)

    async def put(self, request: Request) -> Response:
        try:
            id = self._path_id(request)
            model = await self._body(request)
        except ValidationError as exc:
            return self._invalid(exc)
        setattr(model, self._repository.key_name, id)
        await self._repository.save(model)
        return self._json(model)

    async def delete(self, request: Request) -> Response:
        try:
            id = self._path_id(request)
        except ValidationError as exc:
            return self._invalid(exc)
        if not await self._repository.remove(id):
            return self._not_found(id)
        logger.info("repository_resource_deleted", model=self._repository.model_type.__name__, id=str(id))
        return Response(status_code=204)
