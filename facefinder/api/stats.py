"""Service statistics endpoint."""
from fastapi import APIRouter, Depends

from facefinder.api.models.match import StatsResponse
from facefinder.infrastructure.database.unit_of_work import UnitOfWork
from facefinder.infrastructure.dependencies import get_uow

router = APIRouter()


@router.get("/stats", response_model=StatsResponse, summary="Service totals")
async def get_stats(uow: UnitOfWork = Depends(get_uow)) -> StatsResponse:
    """Totals of events, photos, faces and recorded matches."""
    return StatsResponse(
        events=await uow.events.count(),
        photos=await uow.photos.count(),
        faces=await uow.faces.count(),
        matches=await uow.matches.count(),
    )
