"""
CRUD data provider built on the simple app.

Maps list/get/create/update/delete operations with filtering, sorting and
pagination onto path, query and body handles:

| Operation            | Request                                   |
|----------------------|-------------------------------------------|
| `get_list`           | `GET {base}/{resource}?filter&sort&range` |
| `get_one`            | `GET {base}/{resource}/{id}`              |
| `get_many`           | `GET {base}/{resource}?ids=1,2`           |
| `get_many_reference` | `GET {base}/{resource}?{target}={id}&...` |
| `create`             | `POST {base}/{resource}`                  |
| `update`             | `PATCH {base}/{resource}/{id}`            |
| `update_many`        | `PATCH {base}/{resource}?ids=1,2`         |
| `delete`             | `DELETE {base}/{resource}/{id}`           |
| `delete_many`        | `DELETE {base}/{resource}?ids=1,2`        |

List operations read the total row count from the configured count header.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from .config import DEFAULT_BASE, DEFAULT_COUNT_HEADER
from .context import FetchContextHandle, Strategy
from .exceptions import MissingIdFieldError
from .handles import with_json_body, with_method, with_path, with_query
from .simple import SimpleApp, simple

logger = logging.getLogger(__name__)

Identifier = int | str


class _ParamsModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Pagination(_ParamsModel):
    page: int = Field(1, ge=1)
    per_page: int = Field(10, ge=1, alias="perPage")


class Sort(_ParamsModel):
    field: str
    order: Literal["ASC", "DESC"] = "ASC"


class GetListParams(_ParamsModel):
    pagination: Pagination | None = None
    sort: Sort | None = None
    filter: dict[str, Any] = Field(default_factory=dict)


class GetOneParams(_ParamsModel):
    id: Identifier


class GetManyParams(_ParamsModel):
    ids: list[Identifier]


class GetManyReferenceParams(GetListParams):
    target: str
    id: Identifier


class CreateParams(_ParamsModel):
    data: Any


class UpdateParams(_ParamsModel):
    id: Identifier
    data: Any
    previous_data: Any | None = Field(None, alias="previousData")


class UpdateManyParams(_ParamsModel):
    ids: list[Identifier]
    data: Any


class DeleteParams(_ParamsModel):
    id: Identifier
    previous_data: Any | None = Field(None, alias="previousData")


class DeleteManyParams(_ParamsModel):
    ids: list[Identifier]


class ListResult(BaseModel):
    data: Any
    total: int | None = None


P = TypeVar("P", bound=_ParamsModel)


def _coerce(model: type[P], params: P | Mapping[str, Any]) -> P:
    if isinstance(params, model):
        return params
    return model.model_validate(params)


def sort_params(sort: Sort | None) -> dict[str, Any]:
    if sort is None:
        return {}
    return {"sort-field": sort.field, "sort-order": sort.order}


def range_params(pagination: Pagination | None) -> dict[str, Any]:
    """Translate page/per_page into an inclusive zero-based row range."""
    if pagination is None:
        return {}
    start = (pagination.page - 1) * pagination.per_page
    end = pagination.page * pagination.per_page - 1
    return {"range-start": start, "range-end": end}


def ids_param(ids: Sequence[Identifier]) -> dict[str, str]:
    return {"ids": ",".join(str(i) for i in ids)}


def extract_id(record: Any) -> Any:
    """Return `record["id"]`, raising `MissingIdFieldError` when it is absent."""
    if not isinstance(record, Mapping) or "id" not in record:
        raise MissingIdFieldError(record)
    return record["id"]


def _resource_path(resource: str, id: Identifier | None = None) -> FetchContextHandle:
    path = resource if id is None else f"{resource}/{id}"
    return with_path(path, Strategy.MERGE)


def _extract_ids(rows: Any) -> list[Any]:
    if not isinstance(rows, list):
        raise MissingIdFieldError(rows)
    return [extract_id(row) for row in rows]


class SimpleDataProvider:
    """
    CRUD data provider for REST backends following the simple conventions.

    Example:
        ```python
        provider = SimpleDataProvider(
            "https://api.example.com",
            "X-Total-Count",
            with_transport(HTTPXTransport()),
        )
        result = await provider.get_list(
            "posts",
            {"pagination": {"page": 1, "perPage": 25}, "sort": {"field": "id", "order": "DESC"}},
        )
        ```
    """

    def __init__(
        self,
        base: str = DEFAULT_BASE,
        count_header: str = DEFAULT_COUNT_HEADER,
        *handles: FetchContextHandle,
        app: SimpleApp | None = None,
    ):
        self._app = app if app is not None else simple(base, count_header, *handles)

    @classmethod
    def from_app(cls, app: SimpleApp) -> SimpleDataProvider:
        """Build a provider on top of an existing simple app."""
        return cls(app=app)

    @property
    def app(self) -> SimpleApp:
        return self._app

    # =========================================================================
    # Read Operations
    # =========================================================================

    async def get_list(
        self, resource: str, params: GetListParams | Mapping[str, Any]
    ) -> ListResult:
        p = _coerce(GetListParams, params)
        query = {**p.filter, **sort_params(p.sort), **range_params(p.pagination)}
        logger.debug("get_list %s %s", resource, query)
        total, rows = await self._app.fetch_many(
            _resource_path(resource), with_query(query, Strategy.MERGE)
        )
        return ListResult(data=rows, total=total)

    async def get_one(self, resource: str, params: GetOneParams | Mapping[str, Any]) -> Any:
        p = _coerce(GetOneParams, params)
        logger.debug("get_one %s/%s", resource, p.id)
        return await self._app.fetch_one(_resource_path(resource, p.id))

    async def get_many(self, resource: str, params: GetManyParams | Mapping[str, Any]) -> Any:
        p = _coerce(GetManyParams, params)
        logger.debug("get_many %s ids=%s", resource, p.ids)
        return await self._app.fetch_one(
            _resource_path(resource), with_query(ids_param(p.ids), Strategy.MERGE)
        )

    async def get_many_reference(
        self, resource: str, params: GetManyReferenceParams | Mapping[str, Any]
    ) -> ListResult:
        p = _coerce(GetManyReferenceParams, params)
        query = {
            **p.filter,
            p.target: p.id,
            **sort_params(p.sort),
            **range_params(p.pagination),
        }
        logger.debug("get_many_reference %s %s", resource, query)
        total, rows = await self._app.fetch_many(
            _resource_path(resource), with_query(query, Strategy.MERGE)
        )
        return ListResult(data=rows, total=total)

    # =========================================================================
    # Write Operations
    # =========================================================================

    async def create(self, resource: str, params: CreateParams | Mapping[str, Any]) -> Any:
        p = _coerce(CreateParams, params)
        logger.debug("create %s", resource)
        return await self._app.fetch_one(
            _resource_path(resource), with_method("POST"), with_json_body(p.data)
        )

    async def update(self, resource: str, params: UpdateParams | Mapping[str, Any]) -> Any:
        p = _coerce(UpdateParams, params)
        logger.debug("update %s/%s", resource, p.id)
        return await self._app.fetch_one(
            _resource_path(resource, p.id), with_method("PATCH"), with_json_body(p.data)
        )

    async def update_many(
        self, resource: str, params: UpdateManyParams | Mapping[str, Any]
    ) -> list[Any]:
        p = _coerce(UpdateManyParams, params)
        logger.debug("update_many %s ids=%s", resource, p.ids)
        rows = await self._app.fetch_one(
            _resource_path(resource),
            with_query(ids_param(p.ids), Strategy.MERGE),
            with_method("PATCH"),
            with_json_body({"data": p.data}),
        )
        return _extract_ids(rows)

    async def delete(self, resource: str, params: DeleteParams | Mapping[str, Any]) -> Any:
        p = _coerce(DeleteParams, params)
        logger.debug("delete %s/%s", resource, p.id)
        return await self._app.fetch_one(_resource_path(resource, p.id), with_method("DELETE"))

    async def delete_many(
        self, resource: str, params: DeleteManyParams | Mapping[str, Any]
    ) -> list[Any]:
        p = _coerce(DeleteManyParams, params)
        logger.debug("delete_many %s ids=%s", resource, p.ids)
        rows = await self._app.fetch_one(
            _resource_path(resource),
            with_query(ids_param(p.ids), Strategy.MERGE),
            with_method("DELETE"),
        )
        return _extract_ids(rows)
