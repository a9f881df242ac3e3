"""Template endpoints - branding applied to exports and generation prompts."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import Field

from backend.app.api.auth import get_current_user
from backend.app.db.engine import get_storage
from backend.app.db.repositories import Storage
from backend.app.models.common import ApiModel
from backend.app.models.documents import BrandColors, Template

router = APIRouter(prefix="/api/templates", tags=["templates"], dependencies=[Depends(get_current_user)])


class TemplateRequest(ApiModel):
    """Request body for creating a template."""

    name: str = Field(..., min_length=1)
    header: str | None = None
    footer: str | None = None
    logo_url: str | None = None
    brand_colors: BrandColors | None = None
    font_family: str | None = None


class TemplateUpdateRequest(ApiModel):
    """Partial update for a template."""

    name: str | None = Field(None, min_length=1)
    header: str | None = None
    footer: str | None = None
    logo_url: str | None = None
    brand_colors: BrandColors | None = None
    font_family: str | None = None


@router.get("", response_model=list[Template])
async def list_templates(storage: Annotated[Storage, Depends(get_storage)]) -> list[Template]:
    """All templates, newest first."""
    return storage.list_templates()


@router.post("", response_model=Template)
async def create_template(
    request: TemplateRequest,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Template:
    """Create a template."""
    return storage.create_template(Template(**request.model_dump()))


@router.put("/{template_id}", response_model=Template)
async def update_template(
    template_id: str,
    request: TemplateUpdateRequest,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Template:
    """Update the given template fields."""
    changes = request.model_dump(exclude_unset=True)
    if changes.get("name", "") is None:
        changes.pop("name")
    template = storage.update_template(template_id, changes)
    if template is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
    return template


@router.delete("/{template_id}")
async def delete_template(
    template_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> dict[str, bool]:
    """Delete a template."""
    if not storage.delete_template(template_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
    return {"success": True}
