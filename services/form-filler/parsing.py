"""Parse the extraction service's answer into normalized field values.

Three steps: locate the answer text inside the response envelope, parse it as
a JSON object, then drop every value that must not reach the template.
"""

import json
import logging
import re
from typing import Any

from errors import EmptyOutput, InvalidJSON
from models import ExtractedValue

logger = logging.getLogger(__name__)

TEXT_CONTENT_TYPES = {"output_text", "text"}


def find_output_text(envelope: Any) -> str:
    """Return the first text-bearing content item of a known envelope shape.

    Recognized shapes, in order:
    1. Responses API convenience field ``output_text``
    2. Responses API ``output[].content[]`` items of type output_text/text
    3. Chat Completions ``choices[0].message.content``

    Raises EmptyOutput for unrecognized shapes or when no text is found.
    """
    if not isinstance(envelope, dict):
        raise EmptyOutput("Response is not a JSON object")

    output_text = envelope.get("output_text")
    if isinstance(output_text, str) and output_text.strip():
        return output_text

    if isinstance(envelope.get("output"), list):
        text = _text_from_output_items(envelope["output"])
        if text is not None:
            return text
        raise EmptyOutput("No text content in response output")

    if isinstance(envelope.get("choices"), list):
        text = _text_from_choices(envelope["choices"])
        if text is not None:
            return text
        raise EmptyOutput("No text content in response choices")

    raise EmptyOutput(f"Unrecognized response shape (keys: {sorted(envelope)[:10]})")


def _text_from_content_parts(parts: list) -> str | None:
    for part in parts:
        if not isinstance(part, dict):
            continue
        if part.get("type") in TEXT_CONTENT_TYPES:
            text = part.get("text")
            if isinstance(text, str) and text.strip():
                return text
    return None


def _text_from_output_items(items: list) -> str | None:
    for item in items:
        # reasoning and tool-call items carry no answer text
        if not isinstance(item, dict) or item.get("type", "message") != "message":
            continue
        content = item.get("content")
        if isinstance(content, list):
            text = _text_from_content_parts(content)
            if text is not None:
                return text
    return None


def _text_from_choices(choices: list) -> str | None:
    if not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if isinstance(content, str):
        return content if content.strip() else None
    if isinstance(content, list):
        return _text_from_content_parts(content)
    return None


def parse_answer(raw: str) -> dict[str, Any]:
    """Parse the answer text as a single JSON object.

    Tolerates surrounding whitespace, ``<think>`` blocks and one markdown code
    fence. Raises InvalidJSON for anything else.
    """
    cleaned = re.sub(r"<think>.*?</think>", "", raw, flags=re.DOTALL).strip()

    match = re.fullmatch(r"```(?:json)?\s*(.*?)\s*```", cleaned, re.DOTALL)
    if match:
        cleaned = match.group(1)

    try:
        result = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning("Answer is not valid JSON (%d chars): %s", len(cleaned), e)
        raise InvalidJSON(f"response is not valid JSON ({e.msg})") from e

    if not isinstance(result, dict):
        raise InvalidJSON(f"expected a JSON object, got {type(result).__name__}")

    return result


def normalize_values(answer: dict[str, Any]) -> dict[str, ExtractedValue]:
    """Keep only values the extraction step actually found.

    Drops None, empty or whitespace-only strings, and non-scalar values.
    """
    values: dict[str, ExtractedValue] = {}
    for key, value in answer.items():
        if value is None:
            continue
        if isinstance(value, str):
            if not value.strip():
                continue
            values[key] = value
        elif isinstance(value, (bool, int, float)):
            values[key] = value
        else:
            logger.warning("Dropping non-scalar value for key %s (%s)", key, type(value).__name__)

    logger.info("Normalized answer: %d of %d key(s) kept", len(values), len(answer))
    return values
