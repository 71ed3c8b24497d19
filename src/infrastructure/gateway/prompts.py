"""Prompt builders for schema and example generation."""

from src.domain.entities.generation import GenerationRequest

SYSTEM_PROMPT = (
    "You are an expert GraphQL API assistant. "
    "Answer with a single JSON object and nothing else."
)

_OUTPUT_EXAMPLE = """```graphql
# Query to get all items
query GetAllItems {
  # ...
}

# Mutation to create an item
mutation CreateItem($input: CreateItemInput!) {
  createItem(input: $input) {
    # ...
  }
}
```"""


def _identifier_line(request: GenerationRequest) -> str:
    if request.object_identifier:
        return f"Specific Table/Object/Collection Name: {request.object_identifier}"
    return (
        "No specific table/object/collection name provided. You may need to infer a primary "
        "entity or generate for multiple common entities based on the data source type."
    )


def build_schema_prompt(request: GenerationRequest) -> str:
    """User prompt asking for a schema and example operations."""
    ident = request.object_identifier or "<primary object>"
    return f"""Objective: Generate a GraphQL schema AND example operations based on the provided data source information.

Data Source Type: {request.data_source_type.value}
Connection String (for context, do not attempt to connect): {request.connection_string}
{_identifier_line(request)}

Instructions for Schema and Example Generation:
1. Analyze the data source type: '{request.data_source_type.value}'.
2. If a specific table/object/collection name is provided, make it the primary focus. Infer its likely fields and relationships.
3. Otherwise infer a primary entity (e.g. 'User' for a generic database, 'Product' for an e-commerce setup) or a few plausible entities for the data source type.
4. Infer common data types:
   * 'id', '_id' or 'uuid' fields are `ID!`.
   * 'email', 'name', 'description', 'title' are `String`.
   * 'age', 'quantity', 'count' are `Int`.
   * 'price', 'amount', 'rating' are `Float`.
   * 'isActive', 'isVerified', 'hasStock' are `Boolean`.
   * 'createdAt', 'updatedAt', 'publishedDate' are `String` (ISO 8601) or a custom `DateTime` scalar.
   * Relationship hints (e.g. 'userId' on 'Post') become linked types and list fields (`author: User`, `posts: [Post]`).
5. Generate the schema definition: types, fields, input types for mutations, basic relationships. Every referenced type must be defined.
6. Generate example operations for YOUR schema:
   * Queries: fetch a list of the primary objects (e.g. `all{ident}s`) and a single object by ID.
   * Mutations: create (with a Create...Input type), update by ID (with an Update...Input type), delete by ID.
   * Use placeholder values like `"<value>"`, `123`, or variables (e.g. `$name`) for arguments.

Output Format:
Return a JSON object with two keys:
- "graphqlSchema": a string containing ONLY the GraphQL schema definition language.
- "exampleQueriesMutations": a string containing ONLY the example queries and mutations, separated with GraphQL comments. For example:
{_OUTPUT_EXAMPLE}
Do not add any explanatory text outside of the requested fields.
"""


def build_examples_prompt(request: GenerationRequest) -> str:
    """User prompt asking for examples of the user's edited schema."""
    identifier = (
        f"Specific Table/Object/Collection Name: {request.object_identifier}\n"
        if request.object_identifier
        else ""
    )
    return f"""Objective: Generate example GraphQL queries and mutations based ON THE PROVIDED USER SCHEMA.

User-Provided Schema (the definitive schema for example generation):
```graphql
{request.edited_schema}
```

Data Source Context (for understanding origin, DO NOT use it to override the User-Provided Schema):
Data Source Type: {request.data_source_type.value}
Connection String: {request.connection_string}
{identifier}
Instructions:
1. Analyze the User-Provided Schema and identify its primary object types.
2. Queries: fetch a list of the primary objects and a single primary object by ID.
3. Mutations: create, update by ID and delete by ID, with input types exactly as the schema defines them.
4. If several primary types exist, pick the most prominent one or cover a couple of key types.
5. Examples must be syntactically correct GraphQL and strictly follow the User-Provided Schema.
6. Use placeholder values like `"<value>"`, `123`, or variables (e.g. `$name`) for arguments.

Output Format:
Return a JSON object with the following keys:
- "graphqlSchema": THIS MUST BE THE EXACT User-Provided Schema. Do not modify it.
- "exampleQueriesMutations": a string containing ONLY the example operations, separated with GraphQL comments. For example:
{_OUTPUT_EXAMPLE}
Do NOT generate a new schema definition.
"""


def build_user_prompt(request: GenerationRequest) -> str:
    """Pick the prompt by mode: examples-only when an edited schema is present."""
    if request.edited_schema is not None:
        return build_examples_prompt(request)
    return build_schema_prompt(request)
