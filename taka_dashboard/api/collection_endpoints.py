"""API endpoints for collector data entry."""
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel

from ..configurations.sites import SiteCatalog
from ..services.collection_form import CollectionForm
from .dependencies import get_catalog, get_record_store, verify_api_key

router = APIRouter(prefix="/api/collections", tags=["collections"])


class CollectionSubmission(BaseModel):
    site_name: str
    waste_type: str
    collection_date: str
    total_volume: Union[str, float]
    waste_separated: bool = False
    organic_volume: Union[str, float] = "0"
    inorganic_volume: Union[str, float] = "0"
    collection_count: Union[str, int] = "1"
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    comments: str = ""


@router.post("", status_code=201)
async def submit_collection(
    payload: CollectionSubmission,
    _: str = Depends(verify_api_key),
    catalog: SiteCatalog = Depends(get_catalog),
    store=Depends(get_record_store),
):
    """
    Submit a waste collection record.

    - **site_name**: one of the catalog sites; its coordinates are used
      unless latitude/longitude are given
    - **total_volume**: tons; organic/inorganic volumes apply when
      **waste_separated** is true and may not exceed the total
    """
    form = CollectionForm(catalog)
    if not form.select_site(payload.site_name):
        raise HTTPException(status_code=422, detail={"site_name": f"Unknown site: {payload.site_name}"})

    for name, value in payload.model_dump(exclude={"site_name"}, exclude_none=True).items():
        form.set_field(name, value)

    record = form.submit(store)
    if record is None:
        if form.field_errors:
            logger.warning(f"Rejected collection for {payload.site_name}: {form.error}")
            raise HTTPException(status_code=422, detail=form.field_errors)
        raise HTTPException(status_code=502, detail=form.error)

    return JSONResponse(content={"status": "success", "data": record.to_dict()}, status_code=201)
