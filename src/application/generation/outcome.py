"""Gateway response normalization and outcome classification."""

from src.domain.entities.generation import GenerationResult, OutcomeKind
from src.domain.ports.gateway import GatewayResponse

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."

_OUTCOME_TEXT: dict[OutcomeKind, tuple[str, str]] = {
    OutcomeKind.SCHEMA_AND_EXAMPLES: (
        "Schema & Examples Generated!",
        "The GraphQL schema and example operations are ready.",
    ),
    OutcomeKind.SCHEMA_ONLY: (
        "Schema Generated",
        "The GraphQL schema is ready, but the AI did not provide example operations.",
    ),
    OutcomeKind.EXAMPLES_ONLY: (
        "Examples Generated, Schema Empty",
        "The AI returned example operations without a schema.",
    ),
    OutcomeKind.EMPTY: (
        "Nothing Generated",
        "The AI processed the request but returned neither a schema nor examples.",
    ),
}


def _non_blank(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value


def normalize_response(response: GatewayResponse, fallback_schema: str) -> GenerationResult:
    """Turn a raw gateway response into a result.

    A missing schema becomes ``fallback_schema`` (never None). Examples are kept
    verbatim when non-blank, otherwise dropped.
    """
    schema_text = response.graphql_schema
    if schema_text is None:
        schema_text = fallback_schema
    return GenerationResult(
        schema_text=schema_text,
        examples=_non_blank(response.example_queries_mutations),
    )


def classify_outcome(result: GenerationResult) -> OutcomeKind:
    has_schema = result.schema_text.strip() != ""
    has_examples = result.examples is not None
    if has_schema and has_examples:
        return OutcomeKind.SCHEMA_AND_EXAMPLES
    if has_schema:
        return OutcomeKind.SCHEMA_ONLY
    if has_examples:
        return OutcomeKind.EXAMPLES_ONLY
    return OutcomeKind.EMPTY


def describe_outcome(kind: OutcomeKind) -> tuple[str, str]:
    """Return (title, description) for a notification."""
    return _OUTCOME_TEXT[kind]


def describe_failure(exc: BaseException) -> str:
    """Human-readable message for a gateway failure."""
    message = str(exc).strip()
    return message or UNKNOWN_ERROR_MESSAGE
