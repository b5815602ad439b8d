"""
TIPSTREAM - Admin API
Operator endpoints for the source URL registry.
"""

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from tipstream.api.dependencies import get_registry
from tipstream.services.matches.source_registry import SourceRegistry

router = APIRouter(tags=["admin"])


class SourceUrlsRequest(BaseModel):
    urls: List[str]


class SourceUrlsResponse(BaseModel):
    urls: List[str]


class SourceUrlsUpdateResponse(SourceUrlsResponse):
    success: bool = True


@router.get("/sources", response_model=SourceUrlsResponse)
async def get_sources(registry: SourceRegistry = Depends(get_registry)):
    return {"urls": await registry.get_urls()}


@router.put("/sources", response_model=SourceUrlsUpdateResponse)
async def set_sources(request: SourceUrlsRequest, registry: SourceRegistry = Depends(get_registry)):
    urls = await registry.set_urls(request.urls)
    return {"success": True, "urls": urls}
