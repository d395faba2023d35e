"""Fact extraction from conversation turns using an LLM."""

import logging
from typing import Mapping, Protocol

from groq import AsyncGroq

from ..errors import MaintenanceFailure
from ..llm import DEFAULT_MODEL, complete, parse_json_object
from ..models import Turn

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = """Analyze this conversation message and extract stable facts worth remembering for the rest of the conversation.

Return ONLY valid JSON mapping keys to values:
{{"facts": {{"<key>": "<value>", ...}}}}

Rules:
- Only STABLE facts (names, projects, preferences, decisions), not passing states
- Keys are short snake_case identifiers: name, project, language, deadline, ...
- Reuse the same key when a fact changes so the new value replaces the old one
- If there are no facts, return {{"facts": {{}}}}
- Do not extract questions or hypotheses as facts

Message ({role}):
{content}
"""


class FactExtractor(Protocol):
    """Capability that pulls key/value facts out of a turn."""

    async def extract_facts(self, turn: Turn) -> Mapping[str, str]:
        """Extract facts from a turn. May return an empty mapping."""
        ...


class GroqFactExtractor:
    """Extracts facts from turns using a Groq model."""

    def __init__(
        self,
        llm_client: AsyncGroq,
        model: str = DEFAULT_MODEL,
    ) -> None:
        """Initialize the extractor.

        Args:
            llm_client: The Groq client for LLM calls.
            model: The model to use for extraction.
        """
        self.client = llm_client
        self.model = model

    async def extract_facts(self, turn: Turn) -> dict[str, str]:
        """Extract facts from a single turn.

        Args:
            turn: The turn to analyze.

        Returns:
            Mapping of fact keys to values, empty if none were found or the
            response could not be parsed.

        Raises:
            MaintenanceFailure: If the LLM call itself failed.
        """
        if not turn.content.strip():
            return {}

        prompt = EXTRACTION_PROMPT.format(role=turn.role, content=turn.content)
        try:
            content = await complete(
                self.client,
                self.model,
                prompt,
                temperature=0.1,  # Low temperature for consistent extraction
            )
        except Exception as e:
            raise MaintenanceFailure(f"Fact extraction failed: {e}") from e

        return self._parse_response(content)

    def _parse_response(self, content: str) -> dict[str, str]:
        """Parse the LLM response into a fact mapping, {} on malformed input."""
        data = parse_json_object(content)
        if data is None:
            logger.warning("Failed to parse extraction response: %r", content[:200])
            return {}

        facts = data.get("facts")
        if not isinstance(facts, dict):
            logger.warning("Invalid response structure: missing 'facts' mapping")
            return {}

        result = {}
        for key, value in facts.items():
            if not isinstance(key, str) or not key.strip() or value is None:
                logger.warning("Skipping invalid fact item: %r -> %r", key, value)
                continue
            result[key.strip()] = str(value)
        return result
