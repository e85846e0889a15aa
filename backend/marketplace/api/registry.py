# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Registry API Routes

Handles component registry requests:
- GET /r/{username}/{component_slug} - Packaging bundle for CLIs
- POST /api/registry/resolve - Dependency tree of arbitrary seeds
- GET /api/registry/demos/{demo_id}/dependencies - Demo preview dependencies
"""

from typing import Any, Dict, Optional

import pydantic
from fastapi import APIRouter, Body, Depends, Header
from fastapi.responses import JSONResponse

from marketplace.core.dependencies import get_registry_service
from marketplace.core.logging import get_api_logger
from marketplace.models.registry_models import (
    ErrorInfo,
    ResolutionRequest,
    ResolutionResult,
)
from marketplace.services.registry_service import RegistryService

router = APIRouter(tags=["registry"])
logger = get_api_logger()


def _result_response(result: ResolutionResult) -> JSONResponse:
    status_code = result.error.status_code if result.error else 200
    return JSONResponse(status_code=status_code, content=result.to_response())


@router.get("/r/{username}/{component_slug}")
async def get_component_bundle(
    username: str,
    component_slug: str,
    user_agent: Optional[str] = Header(default=None),
    service: RegistryService = Depends(get_registry_service)
) -> Dict[str, Any]:
    """Get the installable bundle of a component"""
    logger.info(f"Bundle requested: {username}/{component_slug}")
    return await service.get_component_bundle(username, component_slug, user_agent)


@router.post("/api/registry/resolve")
async def resolve_dependencies(
    payload: Dict[str, Any] = Body(...),
    service: RegistryService = Depends(get_registry_service)
) -> JSONResponse:
    """Resolve the dependency tree of one or more seed references"""
    try:
        request = ResolutionRequest.model_validate(payload)
    except pydantic.ValidationError as e:
        logger.warning(f"Invalid resolution request: {e.error_count()} errors")
        result = ResolutionResult(error=ErrorInfo(
            error="ValidationError",
            message="seedReferences must be a non-empty list of owner/slug references",
            status_code=400,
            details={"field": "seedReferences"},
        ))
        return _result_response(result)

    return _result_response(await service.resolve_dependency_tree(request))


@router.get("/api/registry/demos/{demo_id}/dependencies")
async def get_demo_dependencies(
    demo_id: int,
    service: RegistryService = Depends(get_registry_service)
) -> JSONResponse:
    """Resolve everything a demo preview needs"""
    return _result_response(await service.get_demo_dependencies(demo_id))
