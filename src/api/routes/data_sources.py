"""Data source types API - options for the connection form."""

from fastapi import APIRouter, Request

from src.api.dependencies import limiter
from src.domain.entities.generation import DEFAULT_DATA_SOURCE_TYPE, DataSourceType

router = APIRouter(prefix="/data-sources", tags=["data-sources"])


@router.get("")
@limiter.limit("60/minute")
async def list_data_source_types(request: Request) -> dict:
    """Closed list of data source types and the form default."""
    return {
        "types": [t.value for t in DataSourceType],
        "default": DEFAULT_DATA_SOURCE_TYPE.value,
    }
