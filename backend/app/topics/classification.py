"""Topic classification and entity extraction.

LLM-backed functions degrade to empty results on provider failure so that file
processing can continue with the keyword and regex fallbacks below.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from backend.app.errors import AIServiceError
from backend.app.llm.client import LLMClient
from backend.app.llm.retry import call_ai
from backend.app.llm.writer import json_list, parse_json_object
from backend.app.models.common import EntityType
from backend.app.models.topics import Topic

logger = logging.getLogger(__name__)

CLASSIFY_CHARS = 4000
MAX_ENTITIES = 100
MAX_PER_TYPE = 30
MAX_REGEX_CHARS = 50_000
CONTEXT_CHARS = 50

NUMBER_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(years?|months?|days?|°C|°F|%|kg|mg|ml)", re.IGNORECASE)
DATE_PATTERN = re.compile(r"\b(\d{4}[-/]\d{2}[-/]\d{2}|\d{1,2}[-/]\d{1,2}[-/]\d{4})\b")
REGULATION_PATTERN = re.compile(
    r"\b(ISO\s+\d+(?::\d+)?|Article\s+\d+(?:\.\d+)?|Section\s+\d+)\b", re.IGNORECASE
)

# LLM reply keys mapped to entity types
ENTITY_KEYS: dict[str, EntityType] = {
    "numbers": EntityType.number,
    "regulations": EntityType.regulation,
    "terms": EntityType.term,
    "dates": EntityType.date,
    "percentages": EntityType.percentage,
}


@dataclass(frozen=True)
class TopicClassification:
    """A topic suggested for a document."""

    name: str
    confidence: float  # 0-100 as returned by the model
    keywords: list[str] = field(default_factory=list)
    description: str = ""


@dataclass(frozen=True)
class ExtractedEntity:
    """An entity found in text, not yet attached to a chunk."""

    entity_type: EntityType
    value: str
    context: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)


CLASSIFY_PROMPT = """Analyze this document and classify it into relevant topics.

Existing Topics:
{topics}

Document Content:
{content}

Instructions:
1. Identify 1-3 main topics for this document
2. You can suggest new topics if the content doesn't fit existing ones
3. Provide confidence score (0-100) for each topic
4. Extract 5-10 relevant keywords per topic
5. Write a brief description for each topic

Common business topics include:
- Affiliate Programs & Commissions
- Contracts & Agreements
- Legal Policies & Compliance
- Marketing & Advertising
- Product Information
- Financial Terms & Pricing
- Technical Documentation
- HR & Employment
- Customer Service
- Data Privacy & Security

Respond ONLY with valid JSON in this format:
{{
  "topics": [
    {{
      "topicName": "Affiliate Programs",
      "confidence": 95,
      "keywords": ["affiliate", "commission", "referral", "partner", "revenue"],
      "description": "Content related to affiliate marketing and commission structures"
    }}
  ]
}}"""

ENTITIES_PROMPT = """Extract all important entities from this document:

{content}

Extract:
1. Numbers (amounts, quantities, percentages, etc.) with context
2. Regulations, laws, or compliance references with context
3. Important technical terms or jargon with context
4. Dates and deadlines with context
5. Percentages and ratios with context

Respond ONLY with valid JSON in this format:
{{
  "numbers": [{{"value": "5000", "context": "maximum payout amount", "unit": "USD"}}],
  "regulations": [{{"value": "GDPR Article 17", "context": "right to erasure"}}],
  "terms": [{{"value": "CPA", "context": "Cost Per Acquisition pricing model", "definition": "Cost Per Acquisition"}}],
  "dates": [{{"value": "2024-12-31", "context": "contract expiration date"}}],
  "percentages": [{{"value": "15%", "context": "commission rate for tier 1 affiliates"}}]
}}"""

PATTERNS_PROMPT = """Analyze these documents and identify recurring section headings or patterns:

{summaries}

Find:
1. Common section headings that appear across multiple documents
2. Typical document structures and patterns
3. Standard clauses or paragraphs

Respond ONLY with valid JSON in this format:
{{
  "patterns": [
    {{
      "heading": "Payment Terms",
      "frequency": 8,
      "exampleContent": "Payment shall be made within 30 days of invoice date..."
    }}
  ]
}}"""


async def _ask_json(client: LLMClient, operation: str, prompt: str, temperature: float) -> dict[str, Any]:
    try:
        raw = await call_ai(
            operation,
            lambda: client.complete(
                system=None, user=prompt, max_tokens=4096, json_mode=True, temperature=temperature
            ),
        )
    except AIServiceError as e:
        logger.warning(f"{operation} failed, continuing without AI result: {e}")
        return {}
    return parse_json_object(raw)


async def classify_topics(
    client: LLMClient,
    content: str,
    existing_topics: list[Topic],
) -> list[TopicClassification]:
    """Ask the model for 1-3 topics for the content.

    Args:
        client: LLM client
        content: Document text (only the first 4000 chars are sent)
        existing_topics: Topics the model should prefer

    Returns:
        Suggested topics; empty on provider failure or an unusable reply
    """
    topics_list = (
        "\n".join(f"- {t.name}: {t.description or ''}" for t in existing_topics)
        if existing_topics
        else "No existing topics defined yet."
    )
    prompt = CLASSIFY_PROMPT.format(topics=topics_list, content=content[:CLASSIFY_CHARS])
    result = await _ask_json(client, "classify_topics", prompt, temperature=0.3)

    classifications: list[TopicClassification] = []
    for item in json_list(result, "topics"):
        if not isinstance(item, dict):
            continue
        name = str(item.get("topicName") or item.get("name") or "").strip()
        if not name:
            continue
        try:
            confidence = float(item.get("confidence", 0))
        except (TypeError, ValueError):
            confidence = 0.0
        keywords = [str(k) for k in json_list(item, "keywords") if str(k).strip()]
        classifications.append(
            TopicClassification(
                name=name,
                confidence=min(max(confidence, 0.0), 100.0),
                keywords=keywords,
                description=str(item.get("description") or ""),
            )
        )
    return classifications


async def extract_entities(client: LLMClient, content: str) -> list[ExtractedEntity]:
    """Ask the model for numbers, regulations, terms, dates and percentages."""
    prompt = ENTITIES_PROMPT.format(content=content[:CLASSIFY_CHARS])
    result = await _ask_json(client, "extract_entities", prompt, temperature=0.2)

    entities: list[ExtractedEntity] = []
    for key, entity_type in ENTITY_KEYS.items():
        for item in json_list(result, key):
            if not isinstance(item, dict) or not str(item.get("value") or "").strip():
                continue
            metadata = {
                k: v for k, v in item.items() if k not in ("value", "context") and v is not None
            }
            entities.append(
                ExtractedEntity(
                    entity_type=entity_type,
                    value=str(item["value"]).strip(),
                    context=str(item.get("context") or ""),
                    metadata=metadata,
                )
            )
    return entities


async def extract_section_patterns(
    client: LLMClient,
    documents: list[tuple[str, str]],
) -> list[dict[str, Any]]:
    """Recurring section headings across up to 10 (title, content) documents."""
    summaries = "\n\n".join(
        f"Document {i + 1}: {title}\n{content[:500]}..."
        for i, (title, content) in enumerate(documents[:10])
    )
    result = await _ask_json(
        client, "section_patterns", PATTERNS_PROMPT.format(summaries=summaries), temperature=0.2
    )
    return [p for p in json_list(result, "patterns") if isinstance(p, dict)]


def classify_by_keywords(content: str, topics: list[Topic]) -> list[Topic]:
    """Topics with at least one keyword present in the content (case-insensitive)."""
    lowered = content.lower()
    return [
        topic
        for topic in topics
        if any(keyword and keyword.lower() in lowered for keyword in topic.keywords)
    ]


def _context(text: str, start: int, end: int) -> str:
    return text[max(0, start - CONTEXT_CHARS) : min(len(text), end + CONTEXT_CHARS)]


def extract_entities_regex(content: str) -> list[ExtractedEntity]:
    """Numbers with units, dates and regulation references found by pattern.

    Only the first 50 000 chars are scanned and each type is capped at 30 matches.
    """
    if len(content) > MAX_REGEX_CHARS:
        logger.warning(
            f"Content too large for regex ({len(content)} chars), processing first {MAX_REGEX_CHARS}"
        )
    text = content[:MAX_REGEX_CHARS]
    entities: list[ExtractedEntity] = []

    for count, match in enumerate(NUMBER_PATTERN.finditer(text)):
        if count >= MAX_PER_TYPE:
            break
        entities.append(
            ExtractedEntity(
                entity_type=EntityType.number,
                value=match.group(1),
                context=_context(text, match.start(), match.end()),
                metadata={"unit": match.group(2)},
            )
        )

    for pattern, entity_type in ((DATE_PATTERN, EntityType.date), (REGULATION_PATTERN, EntityType.regulation)):
        for count, match in enumerate(pattern.finditer(text)):
            if count >= MAX_PER_TYPE:
                break
            entities.append(
                ExtractedEntity(
                    entity_type=entity_type,
                    value=match.group(1),
                    context=_context(text, match.start(), match.end()),
                )
            )

    return entities
