"""Writer operations: generate, rewrite, translate, QA check, style preview, songs."""

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from backend.app.llm.client import LLMClient
from backend.app.llm.prompts import (
    build_generation_prompt,
    build_qa_prompt,
    build_rewrite_prompt,
    build_songwriter_prompt,
    build_songwriter_user_prompt,
    build_style_preview_prompt,
    build_translation_prompt,
)
from backend.app.llm.retry import call_ai
from backend.app.models.common import QACheckType, QAStatus
from backend.app.models.documents import QAIssue, StyleProfile, Template

logger = logging.getLogger(__name__)

SONG_SECTIONS = ("intro", "verse1", "verse2", "chorus", "bridge", "outro")


async def generate_document(
    client: LLMClient,
    *,
    document_type: str,
    language: str,
    prompt: str,
    template: Template | None = None,
    style_profile: StyleProfile | None = None,
    source_content: str | None = None,
) -> str:
    """Generate a new document. Rate-limit errors are retried with backoff."""
    system = build_generation_prompt(
        document_type=document_type,
        language=language,
        template=template,
        style_profile=style_profile,
        source_content=source_content,
    )
    return await call_ai(
        "generate",
        lambda: client.complete(system=system, user=prompt, max_tokens=8192),
        retry_rate_limits=True,
    )


async def rewrite_document(
    client: LLMClient,
    *,
    content: str,
    language: str,
    style_profile: StyleProfile | None = None,
    remove_duplication: bool = False,
) -> str:
    """Improve existing content, optionally removing duplicated passages."""
    system = build_rewrite_prompt(
        language=language,
        style_profile=style_profile,
        remove_duplication=remove_duplication,
    )
    return await call_ai(
        "rewrite",
        lambda: client.complete(system=system, user=content, max_tokens=8192),
    )


async def translate_document(
    client: LLMClient,
    *,
    content: str,
    source_language: str,
    target_language: str,
    style_profile: StyleProfile | None = None,
) -> str:
    """Translate content into another language."""
    system = build_translation_prompt(
        source_language=source_language,
        target_language=target_language,
        style_profile=style_profile,
    )
    return await call_ai(
        "translate",
        lambda: client.complete(system=system, user=content, max_tokens=8192),
    )


def parse_json_object(raw: str) -> dict[str, Any]:
    """Parse a model's JSON object reply, tolerating code fences. Invalid JSON yields {}."""
    text = raw.strip()
    fenced = re.match(r"^```(?:json)?\s*(.*?)\s*```$", text, re.DOTALL)
    if fenced:
        text = fenced.group(1)
    try:
        parsed = json.loads(text or "{}")
    except json.JSONDecodeError:
        logger.warning("AI returned invalid JSON, treating as empty object")
        return {}
    return parsed if isinstance(parsed, dict) else {}


def json_list(result: dict[str, Any], key: str) -> list[Any]:
    """The list stored under ``key`` in a parsed reply, or [] for a missing or non-list value."""
    value = result.get(key)
    return value if isinstance(value, list) else []


async def perform_qa_check(
    client: LLMClient,
    *,
    content: str,
    check_type: QACheckType,
) -> tuple[QAStatus, list[QAIssue]]:
    """Run a QA check and normalize the JSON reply.

    Returns:
        (status, issues); status defaults to passed when the reply omits it
    """
    system = build_qa_prompt(check_type)
    raw = await call_ai(
        "qa_check",
        lambda: client.complete(system=system, user=content, max_tokens=4096, json_mode=True),
    )
    result = parse_json_object(raw)

    try:
        status = QAStatus(result.get("status", QAStatus.passed.value))
    except ValueError:
        status = QAStatus.warning

    issues: list[QAIssue] = []
    for item in json_list(result, "issues"):
        if not isinstance(item, dict):
            continue
        try:
            issues.append(QAIssue.model_validate(item))
        except ValidationError:
            logger.warning("Dropping malformed QA issue")
    return status, issues


async def preview_style(
    client: LLMClient,
    *,
    style_profile: StyleProfile,
    language: str = "en",
    sample_text: str | None = None,
) -> str:
    """Short sample text demonstrating a style profile."""
    system = build_style_preview_prompt(style_profile, language)
    user = sample_text or f"Write a sample in the '{style_profile.name}' style."
    return await call_ai(
        "style_preview",
        lambda: client.complete(system=system, user=user, max_tokens=1024),
    )


def parse_song_sections(text: str) -> dict[str, list[str]]:
    """Split labelled lyrics into sections.

    ``[Verse 1]`` becomes ``verse1``; a bare ``[Verse]`` counts as ``verse1``.
    Unknown sections are dropped.
    """
    sections: dict[str, list[str]] = {}
    current: str | None = None
    for line in text.splitlines():
        stripped = line.strip()
        if re.fullmatch(r"\[.*\]", stripped):
            current = re.sub(r"[\[\]\s]", "", stripped.lower())
            sections[current] = []
        elif stripped and current is not None:
            sections[current].append(stripped)

    if "verse1" not in sections and "verse" in sections:
        sections["verse1"] = sections["verse"]

    return {name: sections[name] for name in SONG_SECTIONS if name in sections}


async def generate_song(
    client: LLMClient,
    *,
    song_idea: str,
    language: str,
    dialect: str,
    song_type: str,
    structure: str,
    rhyme_pattern: str,
    style_profile: StyleProfile | None = None,
    reference_snippets: str | None = None,
) -> dict[str, list[str]]:
    """Generate song lyrics and parse them into sections."""
    system = build_songwriter_prompt(
        language=language,
        dialect=dialect,
        song_type=song_type,
        structure=structure,
        rhyme_pattern=rhyme_pattern,
        style_profile=style_profile,
        reference_snippets=reference_snippets,
    )
    user = build_songwriter_user_prompt(song_idea)
    lyrics = await call_ai(
        "songwriter",
        lambda: client.complete(system=system, user=user, max_tokens=4096),
        retry_rate_limits=True,
    )
    return parse_song_sections(lyrics)
