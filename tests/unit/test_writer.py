"""Tests for writer operations, prompt builders and the LLM client.

All tests are deterministic and do not make real network calls.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from backend.app.config import Settings
from backend.app.errors import AIServiceError
from backend.app.llm.client import (
    STUB_EMBEDDING_DIM,
    DeterministicStubClient,
    OpenAIClient,
    build_llm_client,
)
from backend.app.llm.prompts import MAX_SOURCE_CHARS, build_generation_prompt, build_translation_prompt
from backend.app.llm.writer import (
    generate_document,
    parse_json_object,
    parse_song_sections,
    perform_qa_check,
    preview_style,
    translate_document,
)
from backend.app.models.common import QACheckType, QAStatus
from backend.app.models.documents import StyleProfile, Template


@pytest.fixture
def style_profile() -> StyleProfile:
    """Sample style profile."""
    return StyleProfile(
        name="Clinical",
        tone="formal",
        voice="third person",
        audience="pharmacists",
        preferred_phrases=["evidence shows"],
        avoid_phrases=["miracle"],
    )


def _client_returning(text: str) -> MagicMock:
    client = MagicMock()
    client.complete = AsyncMock(return_value=text)
    return client


class TestPrompts:
    """Test prompt assembly."""

    def test_generation_prompt_includes_style_template_and_source(self, style_profile: StyleProfile) -> None:
        """Style, template branding and reference material all reach the system prompt."""
        prompt = build_generation_prompt(
            document_type="blog",
            language="de",
            template=Template(name="Brand", header="ACME Header", footer="ACME Footer"),
            style_profile=style_profile,
            source_content="reference facts",
        )

        assert "blog documents in German" in prompt
        assert "- Tone: formal" in prompt
        assert "Avoid phrases: miracle" in prompt
        assert "- Header: ACME Header" in prompt
        assert "- Footer: ACME Footer" in prompt
        assert "reference facts" in prompt

    def test_generation_prompt_caps_source(self) -> None:
        """Reference material is cut at the prompt limit."""
        prompt = build_generation_prompt(
            document_type="policy", language="en", source_content="s" * (MAX_SOURCE_CHARS + 500)
        )

        assert "s" * MAX_SOURCE_CHARS in prompt
        assert "s" * (MAX_SOURCE_CHARS + 1) not in prompt

    def test_translation_prompt_names_languages(self) -> None:
        """Both language names appear."""
        prompt = build_translation_prompt(source_language="en", target_language="ar")

        assert "English" in prompt
        assert "Arabic" in prompt


class TestWriter:
    """Test writer operations against a mocked client."""

    @pytest.mark.asyncio
    async def test_generate_sends_system_and_user_prompt(self) -> None:
        """The user's prompt is the user message."""
        client = _client_returning("# Title\n\nBody")

        content = await generate_document(client, document_type="blog", language="en", prompt="Write about tea")

        assert content == "# Title\n\nBody"
        kwargs = client.complete.await_args.kwargs
        assert kwargs["user"] == "Write about tea"
        assert "blog" in kwargs["system"]

    @pytest.mark.asyncio
    @patch("backend.app.llm.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_generate_retries_rate_limits(self, mock_sleep: AsyncMock) -> None:
        """Generation retries rate-limit errors."""
        client = MagicMock()
        client.complete = AsyncMock(side_effect=[RuntimeError("429"), "text"])

        assert await generate_document(client, document_type="blog", language="en", prompt="p") == "text"
        mock_sleep.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_translate_failure_raises_service_error(self) -> None:
        """Provider failures surface as AIServiceError."""
        client = MagicMock()
        client.complete = AsyncMock(side_effect=RuntimeError("provider down"))

        with pytest.raises(AIServiceError):
            await translate_document(client, content="Hi", source_language="en", target_language="de")

    @pytest.mark.asyncio
    async def test_qa_check_parses_issues(self) -> None:
        """Status and well-formed issues are kept; malformed ones are dropped."""
        reply = json.dumps(
            {
                "status": "warning",
                "issues": [
                    {"description": "Unsupported claim", "severity": "high", "suggestion": "Cite a study"},
                    "not-an-object",
                ],
            }
        )
        client = _client_returning(reply)

        status, issues = await perform_qa_check(client, content="Cures all", check_type=QACheckType.medical_claims)

        assert status == QAStatus.warning
        assert len(issues) == 1
        assert issues[0].severity == "high"
        assert client.complete.await_args.kwargs["json_mode"] is True

    @pytest.mark.asyncio
    async def test_qa_check_invalid_json_passes(self) -> None:
        """An unparseable reply counts as passed with no issues."""
        status, issues = await perform_qa_check(
            _client_returning("not json"), content="x", check_type=QACheckType.disclaimer
        )

        assert status == QAStatus.passed
        assert issues == []

    @pytest.mark.asyncio
    async def test_qa_check_unknown_status_is_warning(self) -> None:
        """Unexpected status values are reported as warnings."""
        status, _ = await perform_qa_check(
            _client_returning('{"status": "maybe"}'), content="x", check_type=QACheckType.number_consistency
        )

        assert status == QAStatus.warning

    @pytest.mark.asyncio
    async def test_qa_check_non_list_issues_are_ignored(self) -> None:
        """A non-list issues field is treated as no issues."""
        status, issues = await perform_qa_check(
            _client_returning('{"status": "failed", "issues": 5}'), content="x", check_type=QACheckType.disclaimer
        )

        assert status == QAStatus.failed
        assert issues == []

    @pytest.mark.asyncio
    async def test_preview_uses_sample_text(self, style_profile: StyleProfile) -> None:
        """Sample text is sent as the user message when given."""
        client = _client_returning("Preview")

        assert await preview_style(client, style_profile=style_profile, sample_text="Rewrite me") == "Preview"
        assert client.complete.await_args.kwargs["user"] == "Rewrite me"


class TestParsing:
    """Test reply parsing helpers."""

    def test_parse_json_object_handles_fences(self) -> None:
        """Fenced JSON is unwrapped."""
        assert parse_json_object('```json\n{"a": 1}\n```') == {"a": 1}

    @pytest.mark.parametrize("raw", ["", "[1, 2]", "{broken"])
    def test_parse_json_object_non_objects(self, raw: str) -> None:
        """Empty, non-object or invalid replies give an empty dict."""
        assert parse_json_object(raw) == {}

    def test_parse_song_sections(self) -> None:
        """Labelled sections become lists of lines."""
        lyrics = "[Intro]\nla la\n\n[Verse 1]\nline one\nline two\n[Chorus]\nsing it\n[Solo]\nignored\n[Outro]\nbye"

        sections = parse_song_sections(lyrics)

        assert sections == {
            "intro": ["la la"],
            "verse1": ["line one", "line two"],
            "chorus": ["sing it"],
            "outro": ["bye"],
        }

    def test_bare_verse_counts_as_first_verse(self) -> None:
        """An unnumbered [Verse] maps to verse1."""
        assert parse_song_sections("[Verse]\nonly verse")["verse1"] == ["only verse"]


class TestClients:
    """Test client selection and the deterministic stub."""

    def test_build_without_key_uses_stub(self) -> None:
        """No API key selects the stub."""
        assert isinstance(build_llm_client(Settings(ai_integrations_openai_api_key=None)), DeterministicStubClient)

    def test_build_with_key_uses_openai(self) -> None:
        """An API key selects the OpenAI client."""
        client = build_llm_client(Settings(ai_integrations_openai_api_key="sk-test", openai_model="gpt-test"))

        assert isinstance(client, OpenAIClient)
        assert client.model == "gpt-test"

    @pytest.mark.asyncio
    async def test_stub_is_deterministic(self) -> None:
        """The stub returns the same output for the same input."""
        stub = DeterministicStubClient()

        first = await stub.complete(system=None, user="Write a policy")
        second = await stub.complete(system=None, user="Write a policy")

        assert first == second
        assert "Write a policy" in first
        assert json.loads(await stub.complete(system=None, user="x", json_mode=True))["status"] == "passed"

    @pytest.mark.asyncio
    async def test_stub_embeddings_are_normalized(self) -> None:
        """Stub vectors have the fixed dimension and unit length."""
        vectors = await DeterministicStubClient().embed(["storage temperature", ""])

        assert len(vectors[0]) == STUB_EMBEDDING_DIM
        assert sum(v * v for v in vectors[0]) == pytest.approx(1.0)
        assert vectors[1] == [0.0] * STUB_EMBEDDING_DIM

    @pytest.mark.asyncio
    async def test_openai_client_passes_json_mode(self) -> None:
        """JSON mode and temperature are forwarded to the provider."""
        client = OpenAIClient(api_key="sk-test")
        message = MagicMock(content='{"ok": true}')
        create = AsyncMock(return_value=MagicMock(choices=[MagicMock(message=message)]))

        with patch.object(client.client.chat.completions, "create", create):
            result = await client.complete(system="sys", user="hi", json_mode=True, temperature=0.2)

        assert result == '{"ok": true}'
        kwargs = create.await_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["temperature"] == 0.2
        assert kwargs["messages"][0] == {"role": "system", "content": "sys"}
