"""Output parser - extracts the JSON answer from an LLM reply."""

import json
import re
from typing import Any

from src.domain.errors import GatewayError
from src.domain.ports.gateway import GatewayResponse

EMPTY_OUTPUT_MESSAGE = "AI did not return any output."
MALFORMED_OUTPUT_MESSAGE = "AI returned malformed output."

_FENCE_PATTERN = r"```(?:json)?\s*([\s\S]*?)\s*```"


def _loads_object(raw: str) -> dict[str, Any] | None:
    try:
        data = json.loads(raw)
    except (ValueError, TypeError):
        return None
    return data if isinstance(data, dict) else None


def extract_json_object(content: str) -> dict[str, Any] | None:
    """Find the first JSON object in content.

    Tries, in order: the whole reply, fenced ```json blocks, and the span from
    the first '{' to the last '}'.
    """
    text = content.strip()
    if data := _loads_object(text):
        return data

    for match in re.finditer(_FENCE_PATTERN, text, re.IGNORECASE):
        if data := _loads_object(match.group(1)):
            return data

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return _loads_object(text[start : end + 1])
    return None


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        # Some models split operations into a list of strings
        return "\n\n".join(str(v) for v in value)
    return str(value)


def parse_gateway_output(content: str | None) -> GatewayResponse:
    """Parse an LLM reply into a GatewayResponse.

    Raises:
        GatewayError: reply is empty or carries no JSON object.
    """
    if content is None or not content.strip():
        raise GatewayError(EMPTY_OUTPUT_MESSAGE)
    data = extract_json_object(content)
    if data is None:
        raise GatewayError(MALFORMED_OUTPUT_MESSAGE)
    return GatewayResponse(
        graphqlSchema=_as_text(data.get("graphqlSchema")),
        exampleQueriesMutations=_as_text(data.get("exampleQueriesMutations")),
    )
