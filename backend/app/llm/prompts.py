"""Prompt builders for writer operations."""

from backend.app.models.common import LANGUAGE_NAMES, QACheckType
from backend.app.models.documents import StyleProfile, Template

# Cap on reference material pasted into a generation prompt
MAX_SOURCE_CHARS = 100_000


def language_name(code: str) -> str:
    """Human-readable language name for a language code."""
    return LANGUAGE_NAMES.get(code, code)


def style_lines(profile: StyleProfile, *, guidelines_label: str = "Additional Guidelines") -> list[str]:
    """Bullet lines describing a style profile."""
    lines = [f"- Tone: {profile.tone}", f"- Voice: {profile.voice}"]
    if profile.audience:
        lines.append(f"- Audience: {profile.audience}")
    if profile.structure:
        lines.append(f"- Structure: {profile.structure}")
    if profile.guidelines:
        lines.append(f"- {guidelines_label}: {profile.guidelines}")
    if profile.preferred_phrases:
        lines.append(f"- Prefer phrases like: {', '.join(profile.preferred_phrases)}")
    if profile.avoid_phrases:
        lines.append(f"- Avoid phrases: {', '.join(profile.avoid_phrases)}")
    return lines


def build_generation_prompt(
    *,
    document_type: str,
    language: str,
    template: Template | None = None,
    style_profile: StyleProfile | None = None,
    source_content: str | None = None,
) -> str:
    """System prompt for generating a new document."""
    parts = [
        f"You are an expert professional writer creating {document_type} documents "
        f"in {language_name(language)}."
    ]

    if style_profile:
        parts.append("Style Guidelines:\n" + "\n".join(style_lines(style_profile)))

    if template and (template.header or template.footer):
        lines = ["The document should include:"]
        if template.header:
            lines.append(f"- Header: {template.header}")
        if template.footer:
            lines.append(f"- Footer: {template.footer}")
        parts.append("\n".join(lines))

    if source_content:
        parts.append(f"Reference Material:\n{source_content[:MAX_SOURCE_CHARS]}")

    parts.append(
        "Generate a complete, well-structured, professional document based on the user's "
        "request. Use proper formatting with headings, paragraphs, and structure appropriate "
        f"for a {document_type}."
    )
    return "\n\n".join(parts)


def build_rewrite_prompt(
    *,
    language: str,
    style_profile: StyleProfile | None = None,
    remove_duplication: bool = False,
) -> str:
    """System prompt for improving existing content."""
    parts = [f"You are an expert editor improving written content in {language_name(language)}."]

    if style_profile:
        parts.append("Style Guidelines:\n" + "\n".join(style_lines(style_profile)))

    tasks = [
        "Your task is to:",
        "1. Improve clarity and readability",
        "2. Fix grammar and style issues",
        "3. Enhance professional quality",
    ]
    if remove_duplication:
        tasks.append("4. Remove any duplicate or redundant content")
    parts.append("\n".join(tasks))

    parts.append("Preserve the original meaning and structure while making it better.")
    return "\n\n".join(parts)


def build_translation_prompt(
    *,
    source_language: str,
    target_language: str,
    style_profile: StyleProfile | None = None,
) -> str:
    """System prompt for translating content between languages."""
    parts = [
        f"You are an expert translator translating from {language_name(source_language)} "
        f"to {language_name(target_language)}."
    ]

    if style_profile:
        parts.append(
            "Maintain the following style in the translation:\n"
            + "\n".join(style_lines(style_profile, guidelines_label="Guidelines"))
        )

    parts.append(
        "Provide an accurate, natural-sounding translation that preserves the original "
        "meaning and intent."
    )
    return "\n\n".join(parts)


QA_CHECK_INSTRUCTIONS: dict[QACheckType, str] = {
    QACheckType.medical_claims: (
        "Analyze the following content for medical or health claims. Identify any statements "
        "that make medical assertions, health promises, or therapeutic claims. These should be "
        "flagged as they may require disclaimers or substantiation."
    ),
    QACheckType.disclaimer: (
        "Review the content and suggest appropriate disclaimers if needed (e.g., for medical, "
        "financial, or legal advice). Identify areas where disclaimers should be added."
    ),
    QACheckType.number_consistency: (
        "Check all numbers, statistics, and numerical data in the content for internal "
        "consistency. Flag any contradictions or inconsistencies in numerical information."
    ),
    QACheckType.product_code_cnpn: (
        "Identify product codes and verify they match with CNPN (custom product naming) "
        "conventions if referenced. Flag any mismatches or formatting issues."
    ),
}

QA_RESPONSE_FORMAT = """Return your analysis in JSON format with:
{
  "status": "passed" | "warning" | "failed",
  "issues": [
    {
      "description": "description of the issue",
      "severity": "low" | "medium" | "high",
      "suggestion": "how to fix it"
    }
  ]
}"""


def build_qa_prompt(check_type: QACheckType) -> str:
    """System prompt for a QA check returning JSON."""
    return f"{QA_CHECK_INSTRUCTIONS[check_type]}\n\n{QA_RESPONSE_FORMAT}"


def build_style_preview_prompt(profile: StyleProfile, language: str) -> str:
    """System prompt for a short sample written in a style profile."""
    return (
        f"You are an expert writer demonstrating a writing style in {language_name(language)}.\n\n"
        "Style Guidelines:\n"
        + "\n".join(style_lines(profile))
        + "\n\nWrite a single short sample of about 120 words that shows this style clearly. "
        "If the user provides text, rewrite it in this style instead. "
        "Return only the sample text."
    )


def build_songwriter_prompt(
    *,
    language: str,
    dialect: str,
    song_type: str,
    structure: str,
    rhyme_pattern: str,
    style_profile: StyleProfile | None = None,
    reference_snippets: str | None = None,
) -> str:
    """System prompt for the songwriter."""
    prompt = f"""You are the IWRITE Songwriter, a specialized AI lyricist.

Write high-quality, singable song lyrics based on the user's idea and emotions, the selected
language and dialect, the chosen song type and structure, the active style profile, and any
reference snippets provided.

LANGUAGE & DIALECT
- Always respect the requested language and dialect.
- For Arabic dialects (Khaliji, Egyptian, Levant, MSA), use natural, authentic wording but keep it clean and respectful.
- For German and English, use natural, modern lyrics suitable for commercial songs.
- Do NOT mix languages unless the user explicitly asks for that.

STRUCTURE
- Always follow the requested structure.
- Clearly label sections in the output with [Section Name].
- Use line breaks for each lyric line.

RHYME & RHYTHM
- Follow the requested rhyme pattern ({rhyme_pattern}).
- "Tight rhyme" means frequent, noticeable end-rhymes; "Loose rhyme" allows approximate rhymes.
- ABAB / AABB / AAAA: respect the pattern per group of lines.
- Keep line lengths relatively consistent within each section.

STYLE
- Use the active style profile as a strict guide.
- Never copy reference lyrics; learn their style and write new, original wording.

CONTENT & EMOTION
- Show, don't just tell. Use imagery and metaphors that stay understandable.
- Match the emotional level to the song type ({song_type}).

SAFETY
- Avoid explicit sexual content, hate speech, insults, or glorifying self-harm, drugs or violence.

OUTPUT FORMAT
- Return ONLY the song lyrics with section labels, one blank line between sections:
  [Section Name]
  line 1
  line 2

SPECIFIED PARAMETERS:
- Language: {language_name(language)}
- Dialect/Region: {dialect}
- Song Type: {song_type}
- Song Structure: {structure}
- Rhyme Pattern: {rhyme_pattern}"""

    if style_profile:
        prompt += "\n\nSTYLE PROFILE GUIDELINES:\n" + "\n".join(style_lines(style_profile))

    if reference_snippets:
        prompt += f"\n\nREFERENCE SNIPPETS (for style inspiration, NOT to copy):\n{reference_snippets}"

    return prompt


def build_songwriter_user_prompt(song_idea: str) -> str:
    """User message carrying the song idea."""
    return (
        f'Create song lyrics based on this idea:\n\n"{song_idea}"\n\n'
        "Follow all the rules, guidelines, and structure specified in the system prompt. "
        "Generate original, creative lyrics that match the emotional tone and style requirements."
    )
