"""Songwriter endpoint (paid plans only)."""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import Field

from backend.app.api.auth import require_paid_plan
from backend.app.db.engine import get_storage
from backend.app.db.repositories import Storage
from backend.app.llm.client import LLMClient, get_llm_client
from backend.app.llm.writer import generate_song
from backend.app.middleware.daily_limit import check_daily_limit
from backend.app.models.common import ApiModel, Language
from backend.app.models.users import User

router = APIRouter(prefix="/api/songwriter", tags=["songwriter"])


class SongRequest(ApiModel):
    """Request body for POST /api/songwriter/generate."""

    song_idea: str = Field(..., min_length=1)
    language: Language = Language.en
    dialect: str = "standard"
    song_type: str = "pop"
    structure: str = "verse-chorus-verse-chorus-bridge-chorus"
    rhyme_pattern: str = "AABB"
    style_profile_id: str | None = None
    reference_snippets: str | None = None


class SongResponse(ApiModel):
    """Lyrics split into labelled sections; missing sections are null."""

    intro: list[str] | None = None
    verse1: list[str] | None = None
    verse2: list[str] | None = None
    chorus: list[str] | None = None
    bridge: list[str] | None = None
    outro: list[str] | None = None


@router.post("/generate", response_model=SongResponse)
async def generate(
    request: SongRequest,
    _paid: Annotated[User, Depends(require_paid_plan)],
    _user: Annotated[User, Depends(check_daily_limit)],
    storage: Annotated[Storage, Depends(get_storage)],
    client: Annotated[LLMClient, Depends(get_llm_client)],
) -> SongResponse:
    """Write song lyrics from an idea."""
    style_profile = storage.get_style_profile(request.style_profile_id) if request.style_profile_id else None
    sections = await generate_song(
        client,
        song_idea=request.song_idea,
        language=request.language.value,
        dialect=request.dialect,
        song_type=request.song_type,
        structure=request.structure,
        rhyme_pattern=request.rhyme_pattern,
        style_profile=style_profile,
        reference_snippets=request.reference_snippets,
    )
    return SongResponse(**sections)
