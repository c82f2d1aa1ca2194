from fastapi import APIRouter, HTTPException, Response

from listing_scraper.dependencies import ScraperDep
from listing_scraper.schemas.history import HistoryEntry
from listing_scraper.schemas.property import PropertyRecord

router = APIRouter()


@router.get("/properties", response_model=list[PropertyRecord])
async def list_properties(service: ScraperDep) -> list[PropertyRecord]:
    return await service.list_properties()


@router.post("/properties", response_model=PropertyRecord)
async def save_property(record: PropertyRecord, service: ScraperDep) -> PropertyRecord:
    return await service.save(record)


@router.put("/properties/{property_id}", response_model=PropertyRecord)
async def update_property(
    property_id: str, record: PropertyRecord, service: ScraperDep
) -> PropertyRecord:
    if record.id != property_id:
        raise HTTPException(status_code=422, detail="Body id does not match path id")
    return await service.update(record)


@router.delete("/properties/{property_id}", status_code=204)
async def delete_property(property_id: str, service: ScraperDep) -> Response:
    await service.delete(property_id)
    return Response(status_code=204)


@router.delete("/properties", status_code=204)
async def clear_properties(service: ScraperDep) -> Response:
    await service.clear_properties()
    return Response(status_code=204)


@router.post("/properties/{property_id}/enhance", response_model=PropertyRecord)
async def re_enhance_property(property_id: str, service: ScraperDep) -> PropertyRecord:
    record = await service.get(property_id)
    return await service.re_enhance(record)


@router.get("/history", response_model=list[HistoryEntry])
async def list_history(service: ScraperDep) -> list[HistoryEntry]:
    return await service.list_history()


@router.delete("/history", status_code=204)
async def clear_history(service: ScraperDep) -> Response:
    await service.clear_history()
    return Response(status_code=204)
