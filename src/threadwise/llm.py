"""Shared helpers for Groq chat completions."""

import json
from typing import Any

from groq import AsyncGroq

DEFAULT_MODEL = "llama-3.1-70b-versatile"


async def complete(
    client: AsyncGroq,
    model: str,
    prompt: str,
    system: str | None = None,
    temperature: float | None = None,
) -> str:
    """Complete a prompt and return the text response.

    Args:
        client: The AsyncGroq client.
        model: The model to use.
        prompt: The user prompt.
        system: Optional system prompt.
        temperature: Optional sampling temperature.

    Returns:
        The response text, or an empty string if the model returned none.
    """
    messages: list[dict[str, Any]] = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})

    kwargs: dict[str, Any] = {"model": model, "messages": messages}
    if temperature is not None:
        kwargs["temperature"] = temperature

    response = await client.chat.completions.create(**kwargs)
    return response.choices[0].message.content or ""


def strip_code_fence(content: str) -> str:
    """Remove a surrounding markdown code block, if any."""
    text = content.strip()
    if not text.startswith("```"):
        return text
    lines = [line for line in text.split("\n") if not line.startswith("```")]
    return "\n".join(lines).strip()


def parse_json_object(content: str) -> dict[str, Any] | None:
    """Parse an LLM response as a JSON object, tolerating code fences.

    Returns:
        The parsed object, or None if the content is not a JSON object.
    """
    try:
        data = json.loads(strip_code_fence(content))
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None
