# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""HTTP routes for the resource API.

Each route runs its validation stages through ``run_route`` and hands the
validated values from the request context to the resource service. The
service is built per request for the authenticated owner.
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

from ..container import ServiceContainer
from ..errors import ResourceNotFoundError
from ..middleware.pipeline import RequestContext, run_route
from ..middleware.validation_middleware import ValidationSource, ValidationStage
from ..services.resource_service import ResourceService
from ..utils.input_validation import (
    SchemaValidator,
    validate_create_input,
    validate_list_query,
    validate_resource_path,
    validate_update_input,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["resources"])


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def _service(ctx: RequestContext) -> ResourceService:
    return get_container(ctx.request).resource_service_for(ctx.owner_id)


def _stage(request: Request, validator: SchemaValidator, source: ValidationSource) -> ValidationStage:
    return ValidationStage(validator, source, get_container(request).audit)


def _data(payload, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"data": payload})


async def _create(ctx: RequestContext) -> Response:
    record = await _service(ctx).create(ctx.validated_body)
    return _data(record.to_response(), status_code=201)


async def _list(ctx: RequestContext) -> Response:
    page = await _service(ctx).list_resources(ctx.validated_query)
    return JSONResponse(status_code=200, content=page.to_response())


async def _list_tags(ctx: RequestContext) -> Response:
    tags = await _service(ctx).list_tags()
    return _data(tags)


async def _get(ctx: RequestContext) -> Response:
    try:
        record = await _service(ctx).get(str(ctx.validated_path.id))
    except ResourceNotFoundError as e:
        return e.to_json_response()
    return _data(record.to_response())


async def _update(ctx: RequestContext) -> Response:
    try:
        record = await _service(ctx).update(str(ctx.validated_path.id), ctx.validated_body)
    except ResourceNotFoundError as e:
        return e.to_json_response()
    return _data(record.to_response())


async def _delete(ctx: RequestContext) -> Response:
    try:
        await _service(ctx).delete(str(ctx.validated_path.id))
    except ResourceNotFoundError as e:
        return e.to_json_response()
    return Response(status_code=204)


@router.post("/resources")
async def create_resource(request: Request) -> Response:
    """Create a resource owned by the caller."""
    stages = [_stage(request, validate_create_input, ValidationSource.BODY)]
    return await run_route(request, stages, _create)


@router.get("/resources")
async def list_resources(request: Request) -> Response:
    """List the caller's active resources, newest first, with cursor pagination."""
    stages = [_stage(request, validate_list_query, ValidationSource.QUERY)]
    return await run_route(request, stages, _list)


# Registered before /resources/{id} so "tags" is not taken for an id
@router.get("/resources/tags")
async def list_resource_tags(request: Request) -> Response:
    """List the distinct tags across the caller's active resources."""
    return await run_route(request, [], _list_tags)


@router.get("/resources/{id}")
async def get_resource(request: Request) -> Response:
    stages = [_stage(request, validate_resource_path, ValidationSource.PATH)]
    return await run_route(request, stages, _get)


@router.put("/resources/{id}")
async def update_resource(request: Request) -> Response:
    """Apply a partial update; only supplied fields change."""
    stages = [
        _stage(request, validate_resource_path, ValidationSource.PATH),
        _stage(request, validate_update_input, ValidationSource.BODY),
    ]
    return await run_route(request, stages, _update)


@router.delete("/resources/{id}")
async def delete_resource(request: Request) -> Response:
    stages = [_stage(request, validate_resource_path, ValidationSource.PATH)]
    return await run_route(request, stages, _delete)
