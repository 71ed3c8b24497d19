"""Schema Gateway Port - interface for schema/example generators."""

from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field

from src.domain.entities.generation import GenerationRequest


class GatewayResponse(BaseModel):
    """Raw gateway output. Both fields may be missing; callers normalize."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    graphql_schema: str | None = Field(None, alias="graphqlSchema")
    example_queries_mutations: str | None = Field(None, alias="exampleQueriesMutations")


class SchemaGatewayPort(Protocol):
    """Interface for whatever produces a GraphQL schema for a data source."""

    async def generate(self, request: GenerationRequest) -> GatewayResponse:
        """Generate a schema and examples, or examples only for ``request.edited_schema``."""
        ...
