"""Shared enums and base model for the API contract."""

import uuid
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(UTC)


def new_id() -> str:
    """Generate a new string UUID."""
    return str(uuid.uuid4())


class ApiModel(BaseModel):
    """Base model serialized with camelCase keys, accepting either casing on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Plan(str, Enum):
    """Subscription plan."""

    FREE = "FREE"
    PRO_MONTHLY = "PRO_MONTHLY"
    PRO_YEARLY = "PRO_YEARLY"


class Role(str, Enum):
    """User role."""

    user = "user"
    admin = "admin"


class DocumentType(str, Enum):
    """Kinds of documents the writer can produce."""

    blog = "blog"
    proposal = "proposal"
    contract = "contract"
    policy = "policy"
    presentation = "presentation"
    product_page = "product-page"
    social_media = "social-media"


class Language(str, Enum):
    """Supported document languages."""

    ar = "ar"
    en = "en"
    de = "de"


LANGUAGE_NAMES: dict[str, str] = {"ar": "Arabic", "en": "English", "de": "German"}


class QACheckType(str, Enum):
    """Available QA checks."""

    medical_claims = "medical-claims"
    disclaimer = "disclaimer"
    number_consistency = "number-consistency"
    product_code_cnpn = "product-code-cnpn"


class QAStatus(str, Enum):
    """Outcome of a QA check."""

    passed = "passed"
    warning = "warning"
    failed = "failed"


class EntityType(str, Enum):
    """Kinds of extracted entities."""

    number = "number"
    regulation = "regulation"
    term = "term"
    date = "date"
    percentage = "percentage"


class ExportFormat(str, Enum):
    """Export formats. "pdf" is delivered as printable HTML."""

    md = "md"
    docx = "docx"
    pdf = "pdf"
