"""Dashboard summary endpoints and public company info."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends

from backend.app.api.auth import get_current_user
from backend.app.config import Settings, get_settings
from backend.app.db.engine import get_storage
from backend.app.db.repositories import Storage
from backend.app.models.common import ApiModel

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"], dependencies=[Depends(get_current_user)])
company_router = APIRouter(prefix="/api", tags=["company"])

RECENT_ACTIVITY = 5


class DashboardStats(ApiModel):
    """Entity counts shown on the dashboard."""

    documents: int
    uploads: int
    templates: int
    style_profiles: int


class ActivityItem(ApiModel):
    """Recent activity entry."""

    title: str
    timestamp: datetime


class CompanyInfo(ApiModel):
    """Public company details for the footer and legal pages."""

    name: str
    legal_name: str
    address: str
    email: str
    phone: str
    vat_id: str
    registration_number: str
    website: str


@router.get("/stats", response_model=DashboardStats)
async def stats(storage: Annotated[Storage, Depends(get_storage)]) -> DashboardStats:
    """Counts of documents, uploads, templates and style profiles."""
    return DashboardStats(
        documents=len(storage.list_documents()),
        uploads=len(storage.list_uploaded_files()),
        templates=len(storage.list_templates()),
        style_profiles=len(storage.list_style_profiles()),
    )


@router.get("/activity", response_model=list[ActivityItem])
async def activity(storage: Annotated[Storage, Depends(get_storage)]) -> list[ActivityItem]:
    """The five most recently created documents."""
    return [
        ActivityItem(title=f'Document "{doc.title}" created', timestamp=doc.created_at)
        for doc in storage.list_documents()[:RECENT_ACTIVITY]
    ]


@company_router.get("/company", response_model=CompanyInfo)
async def company(settings: Annotated[Settings, Depends(get_settings)]) -> CompanyInfo:
    """Company details (no authentication required)."""
    return CompanyInfo(
        name=settings.company_name,
        legal_name=settings.company_legal_name or settings.company_name,
        address=settings.company_address,
        email=settings.company_email,
        phone=settings.company_phone,
        vat_id=settings.company_vat_id,
        registration_number=settings.company_registration_number,
        website=settings.company_website,
    )
