"""LLM schema gateway - implements SchemaGatewayPort on top of an LLMPort."""

import logging

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.domain.entities.generation import GenerationRequest
from src.domain.errors import GatewayError
from src.domain.ports.config import GenerationConfig
from src.domain.ports.gateway import GatewayResponse
from src.domain.ports.llm import LLMMessage, LLMPort, LLMResponse
from src.infrastructure.gateway.output_parser import parse_gateway_output
from src.infrastructure.gateway.prompts import SYSTEM_PROMPT, build_user_prompt
from src.infrastructure.resilience import CircuitOpenError

logger = logging.getLogger(__name__)

# Request never reached the model; safe to resend.
TRANSPORT_ERRORS = (TimeoutError, ConnectionError, httpx.ConnectError, httpx.ConnectTimeout)


class LLMSchemaGateway:
    """Asks the configured LLM for a schema and example operations."""

    def __init__(self, llm: LLMPort, config: GenerationConfig) -> None:
        self._llm = llm
        self._config = config

    async def _generate_with_retry(self, messages: list[LLMMessage]) -> LLMResponse:
        """Generate, resending on transport errors only."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max(1, self._config.transport_attempts)),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(TRANSPORT_ERRORS),
            reraise=True,
        ):
            with attempt:
                return await self._llm.generate(
                    messages=messages,
                    model=self._config.model,
                    temperature=self._config.temperature,
                    json_mode=True,
                )
        raise GatewayError("AI did not return any output.")  # pragma: no cover

    async def generate(self, request: GenerationRequest) -> GatewayResponse:
        """Generate a schema and examples, or examples only for an edited schema.

        Raises:
            GatewayError: the model is unavailable or its reply is unusable.
            Exception: transport errors that survived the retries.
        """
        messages = [
            LLMMessage(role="system", content=SYSTEM_PROMPT),
            LLMMessage(role="user", content=build_user_prompt(request)),
        ]
        mode = "examples" if request.edited_schema is not None else "schema"
        logger.debug("Schema gateway request mode=%s model=%s", mode, self._config.model)
        try:
            response = await self._generate_with_retry(messages)
        except CircuitOpenError as e:
            raise GatewayError(f"AI service temporarily unavailable: {e}") from e

        parsed = parse_gateway_output(response.content)
        if request.edited_schema is not None:
            # The prompt asks for an echo; never trust the model to keep it verbatim.
            return GatewayResponse(
                graphqlSchema=request.edited_schema,
                exampleQueriesMutations=parsed.example_queries_mutations,
            )
        return GatewayResponse(
            graphqlSchema=parsed.graphql_schema or "",
            exampleQueriesMutations=parsed.example_queries_mutations,
        )
