# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Dependency injection for the marketplace backend.

Provides FastAPI dependencies for services and utilities.
"""

from fastapi import HTTPException, Request, status

from marketplace.core.logging import get_logger

# Logger
logger = get_logger(__name__)


def get_registry_service(request: Request):
    """Get RegistryService instance from app.state (initialized at startup)."""
    service = getattr(request.app.state, "registry_service", None)
    if service is None:
        logger.error("Registry service requested before startup completed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Registry service not initialized",
        )
    return service
