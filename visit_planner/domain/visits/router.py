"""Visit router - FastAPI endpoints for visit operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...services.cep_service import PostalCodeResolver, get_postal_code_resolver
from .schemas import MessageResponse, VisitCreate, VisitEnvelope, VisitListResponse, VisitResponse
from .service import VisitService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/visits", tags=["Visits"])


def get_visit_service(
    db: Session = Depends(get_db),
    resolver: PostalCodeResolver = Depends(get_postal_code_resolver),
) -> VisitService:
    """Dependency injection for VisitService"""
    return VisitService(db, resolver)


@router.get("", response_model=VisitListResponse)
async def list_visits(
    date: Optional[str] = Query(None, description="Day to list, YYYY-MM-DD"),
    service: VisitService = Depends(get_visit_service),
):
    """List the visits scheduled for one day, oldest first"""
    visits = service.list_visits(date)
    return VisitListResponse(
        data=[VisitResponse.model_validate(v) for v in visits],
        count=len(visits),
    )


@router.post("", response_model=VisitEnvelope, status_code=201)
async def create_visit(
    data: VisitCreate,
    service: VisitService = Depends(get_visit_service),
):
    """Create a visit, filling the address from its postal code"""
    visit = await service.create_visit(data)
    return VisitEnvelope(
        message="Visit created successfully",
        data=VisitResponse.model_validate(visit),
    )


@router.put("/{visit_id}", response_model=VisitEnvelope)
async def update_visit(
    visit_id: int,
    data: VisitCreate,
    service: VisitService = Depends(get_visit_service),
):
    """Update a visit and its address"""
    visit = await service.update_visit(visit_id, data)
    return VisitEnvelope(
        message="Visit updated successfully",
        data=VisitResponse.model_validate(visit),
    )


@router.post("/{visit_id}/complete", response_model=VisitEnvelope)
async def complete_visit(
    visit_id: int,
    service: VisitService = Depends(get_visit_service),
):
    """Mark a visit as completed"""
    visit = service.complete_visit(visit_id)
    return VisitEnvelope(
        message="Visit completed",
        data=VisitResponse.model_validate(visit),
    )


@router.delete("/{visit_id}", response_model=MessageResponse)
async def delete_visit(
    visit_id: int,
    service: VisitService = Depends(get_visit_service),
):
    """Delete a visit and its address"""
    service.delete_visit(visit_id)
    return MessageResponse(message="Visit deleted")
