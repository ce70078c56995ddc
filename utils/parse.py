"""LLM response parser utility.

Turns raw model text into validated pydantic models. Handles the common
failure modes of a model that was asked for "only JSON":
- JSON wrapped in markdown code blocks (```json ... ```)
- Commentary before or after the JSON object
- Missing or blank required fields
"""

import json
import re

from pydantic import BaseModel, ValidationError

from schemas.analysis import ModelVerdict

# Greedy: first "{" to last "}" across newlines, so nested objects survive.
_JSON_SPAN = re.compile(r"\{.*\}", re.DOTALL)


class LLMParseError(Exception):
    """Raised when an LLM response cannot be parsed into the expected schema.

    Includes the raw response so callers can log it for debugging without
    having to catch and re-wrap the original exception themselves.
    """

    def __init__(self, message: str, raw: str):
        super().__init__(message)
        self.raw = raw


class MalformedJSONError(LLMParseError):
    """The response contains a {...} span, but it is not a valid JSON object."""


def extract_json_object(text: str) -> dict | None:
    """Pull the single JSON object out of free-form model output.

    Args:
        text: Raw model text. May contain prose, markdown fences, or both.

    Returns:
        The parsed object, or None when the text has no "{...}" span at all
        (the model answered in prose only).

    Raises:
        MalformedJSONError: If a span exists but does not parse as a JSON
            object. The .raw attribute holds the original text.
    """
    cleaned = _strip_code_fences(text)
    match = _JSON_SPAN.search(cleaned)
    if not match:
        return None

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise MalformedJSONError(f"Invalid JSON in model output: {exc}", raw=text) from exc
    if not isinstance(data, dict):
        raise MalformedJSONError("Model output JSON is not an object", raw=text)
    return data


def parse_verdict(text: str) -> ModelVerdict | None:
    """Extract and validate the agent's final verdict.

    Returns:
        A validated ModelVerdict, or None when the text contains no JSON.

    Raises:
        MalformedJSONError: If the JSON span is malformed.
        LLMParseError: If the object does not satisfy ModelVerdict.
    """
    data = extract_json_object(text)
    if data is None:
        return None
    try:
        return ModelVerdict.model_validate(data)
    except ValidationError as exc:
        raise LLMParseError(f"Model output does not match the verdict schema: {exc}", raw=text) from exc


def parse_llm_json(response: str, schema: type[BaseModel]) -> BaseModel:
    """Parse an LLM response string into a validated Pydantic model.

    Tries the whole (fence-stripped) response first, then the outermost
    {...} span.

    Args:
        response: Raw string returned by LLMClient.complete().
        schema:   Pydantic model class to validate against.

    Returns:
        A validated instance of schema.

    Raises:
        LLMParseError: If the response cannot be parsed or does not match
            the schema. The .raw attribute contains the original response.
    """
    cleaned = _strip_code_fences(response)

    data = _try_parse(cleaned)
    if data is None:
        try:
            data = extract_json_object(cleaned)
        except MalformedJSONError:
            data = None
    if data is None:
        raise LLMParseError(
            f"No valid JSON found in LLM response for schema {schema.__name__}",
            raw=response,
        )

    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise LLMParseError(
            f"LLM response does not match schema {schema.__name__}: {exc}",
            raw=response,
        ) from exc


# ── Private helpers ────────────────────────────────────────────────────────────

def _strip_code_fences(text: str) -> str:
    """Remove ```json ... ``` or ``` ... ``` wrappers."""
    text = re.sub(r"```(?:json)?\s*", "", text)
    text = re.sub(r"```", "", text)
    return text.strip()


def _try_parse(text: str) -> dict | None:
    """Attempt a direct json.loads(); return None on failure."""
    try:
        result = json.loads(text)
        return result if isinstance(result, dict) else None
    except json.JSONDecodeError:
        return None
