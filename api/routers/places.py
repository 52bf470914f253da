"""
Place search API router.

Proxies free-text place search to the geocoding service so the access
token never reaches the browser.
"""

import asyncio
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from api.schemas import ErrorResponse, PlaceResultModel
from api.state import get_places_client

router = APIRouter(prefix="/api", tags=["Places"], responses={502: {"model": ErrorResponse}})


@router.get("/search", response_model=List[PlaceResultModel])
async def search_places(
    query: Optional[str] = Query(None, max_length=256, description="Free-text place name"),
    client=Depends(get_places_client),
):
    """Search places; an empty query returns an empty list."""
    results = await asyncio.to_thread(client.search, query)
    return [PlaceResultModel.model_validate(r) for r in results]
