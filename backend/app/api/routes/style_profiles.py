"""Style profile endpoints, including an AI preview of a profile."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import Field

from backend.app.api.auth import get_current_user
from backend.app.db.engine import get_storage
from backend.app.db.repositories import Storage
from backend.app.llm.client import LLMClient, get_llm_client
from backend.app.llm.writer import preview_style
from backend.app.middleware.daily_limit import check_daily_limit
from backend.app.models.common import ApiModel, Language
from backend.app.models.documents import StyleProfile
from backend.app.models.users import User

router = APIRouter(
    prefix="/api/style-profiles", tags=["style-profiles"], dependencies=[Depends(get_current_user)]
)


class StyleProfileRequest(ApiModel):
    """Request body for creating a style profile."""

    name: str = Field(..., min_length=1)
    tone: str = Field(..., min_length=1)
    voice: str = Field(..., min_length=1)
    audience: str | None = None
    structure: str | None = None
    guidelines: str | None = None
    preferred_phrases: list[str] = Field(default_factory=list)
    avoid_phrases: list[str] = Field(default_factory=list)


class StyleProfileUpdateRequest(ApiModel):
    """Partial update for a style profile."""

    name: str | None = Field(None, min_length=1)
    tone: str | None = Field(None, min_length=1)
    voice: str | None = Field(None, min_length=1)
    audience: str | None = None
    structure: str | None = None
    guidelines: str | None = None
    preferred_phrases: list[str] | None = None
    avoid_phrases: list[str] | None = None


class PreviewRequest(ApiModel):
    """Request body for POST /api/style-profiles/{id}/preview."""

    language: Language = Language.en
    sample_text: str | None = None


class PreviewResponse(ApiModel):
    """Sample text written in the profile's style."""

    preview: str


# Required fields and lists may not be cleared to null
_NON_NULLABLE = ("name", "tone", "voice", "preferred_phrases", "avoid_phrases")


@router.get("", response_model=list[StyleProfile])
async def list_style_profiles(storage: Annotated[Storage, Depends(get_storage)]) -> list[StyleProfile]:
    """All style profiles, newest first."""
    return storage.list_style_profiles()


@router.post("", response_model=StyleProfile)
async def create_style_profile(
    request: StyleProfileRequest,
    storage: Annotated[Storage, Depends(get_storage)],
) -> StyleProfile:
    """Create a style profile."""
    return storage.create_style_profile(StyleProfile(**request.model_dump()))


@router.put("/{profile_id}", response_model=StyleProfile)
async def update_style_profile(
    profile_id: str,
    request: StyleProfileUpdateRequest,
    storage: Annotated[Storage, Depends(get_storage)],
) -> StyleProfile:
    """Update the given style profile fields."""
    changes = {
        key: value
        for key, value in request.model_dump(exclude_unset=True).items()
        if value is not None or key not in _NON_NULLABLE
    }
    profile = storage.update_style_profile(profile_id, changes)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Style profile not found")
    return profile


@router.delete("/{profile_id}")
async def delete_style_profile(
    profile_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> dict[str, bool]:
    """Delete a style profile."""
    if not storage.delete_style_profile(profile_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Style profile not found")
    return {"success": True}


def get_style_profile_or_404(
    profile_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> StyleProfile:
    """Load a style profile by path id.

    Raises:
        HTTPException: 404 if it does not exist
    """
    profile = storage.get_style_profile(profile_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Style profile not found")
    return profile


@router.post("/{profile_id}/preview", response_model=PreviewResponse)
async def preview(
    request: PreviewRequest,
    profile: Annotated[StyleProfile, Depends(get_style_profile_or_404)],
    _user: Annotated[User, Depends(check_daily_limit)],
    client: Annotated[LLMClient, Depends(get_llm_client)],
) -> PreviewResponse:
    """Write a short sample in the profile's style."""
    text = await preview_style(
        client,
        style_profile=profile,
        language=request.language.value,
        sample_text=request.sample_text,
    )
    return PreviewResponse(preview=text)
