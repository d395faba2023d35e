"""Summarization of older conversation segments using an LLM."""

from typing import Protocol, Sequence

from groq import AsyncGroq

from ..errors import MaintenanceFailure
from ..llm import DEFAULT_MODEL, complete
from ..models import Turn

SUMMARY_SYSTEM_PROMPT = (
    "You compress conversation segments into durable notes. "
    "Keep names, decisions, open questions and anything the user asked to be "
    "remembered. Drop greetings and filler. Write plain prose, at most "
    "{max_words} words."
)


class Summarizer(Protocol):
    """Capability that compresses a range of turns into text."""

    async def summarize(self, turns: Sequence[Turn]) -> str:
        """Summarize turns. Raises MaintenanceFailure on failure."""
        ...


def format_transcript(turns: Sequence[Turn]) -> str:
    """Format turns into a readable transcript."""
    lines = []
    for turn in turns:
        speaker = "User" if turn.role == "user" else "Assistant"
        lines.append(f"[{turn.index}] {speaker}: {turn.content}")
    return "\n".join(lines)


class GroqSummarizer:
    """Summarizes turns using a Groq model."""

    def __init__(
        self,
        llm_client: AsyncGroq,
        model: str = DEFAULT_MODEL,
        max_words: int = 120,
    ) -> None:
        self.client = llm_client
        self.model = model
        self.max_words = max_words

    async def summarize(self, turns: Sequence[Turn]) -> str:
        """Summarize a contiguous range of turns.

        Raises:
            MaintenanceFailure: If the LLM call fails or returns nothing.
        """
        if not turns:
            raise MaintenanceFailure("Nothing to summarize")

        try:
            summary = await complete(
                self.client,
                self.model,
                format_transcript(turns),
                system=SUMMARY_SYSTEM_PROMPT.format(max_words=self.max_words),
                temperature=0.2,
            )
        except Exception as e:
            raise MaintenanceFailure(f"Summarization failed: {e}") from e

        summary = summary.strip()
        if not summary:
            raise MaintenanceFailure("Summarizer returned an empty summary")
        return summary
