"""Query execution with per-field cache policies and partial-response errors."""

from dataclasses import dataclass, field
from typing import Any

from ariadne import format_error as format_ariadne_error
from ariadne import graphql_sync, unwrap_graphql_error
from graphql import GraphQLError, GraphQLSchema

from walletgraph import log
from walletgraph.cache_control import UNCACHEABLE, CacheControlMiddleware, CachePolicy, cache_control_header
from walletgraph.identity import MissingKeyError
from walletgraph.pagination import InvalidCursorError, PaginationArgumentError, PaginationError
from walletgraph.sources import AuthenticationError, RequestContext

ERROR_CODES: dict[type[Exception], str] = {
    MissingKeyError: "MISSING_KEY",
    InvalidCursorError: "INVALID_CURSOR",
    PaginationArgumentError: "BAD_USER_INPUT",
    # inconsistent collaborator data, e.g. two items sharing a cursor
    PaginationError: "INTERNAL_SERVER_ERROR",
    AuthenticationError: "UNAUTHENTICATED",
}


def format_error(error: GraphQLError, debug: bool = False) -> dict[str, Any]:
    """Format a field error, tagging known failures with an ``extensions.code``."""
    formatted: dict[str, Any] = format_ariadne_error(error, debug)
    original = unwrap_graphql_error(error)
    for error_type, code in ERROR_CODES.items():
        if isinstance(original, error_type):
            formatted.setdefault("extensions", {})["code"] = code
            break
    return formatted


@dataclass
class ExecutionOutcome:
    data: dict[str, Any] | None
    errors: list[dict[str, Any]] = field(default_factory=list)
    cache_policy: CachePolicy = UNCACHEABLE

    @property
    def cache_control_header(self) -> str:
        return cache_control_header(self.cache_policy)

    def to_response(self) -> dict[str, Any]:
        response: dict[str, Any] = {"data": self.data}
        if self.errors:
            response["errors"] = self.errors
        return response


def execute_query(
    schema: GraphQLSchema,
    query: str,
    context: RequestContext,
    variables: dict[str, Any] | None = None,
    operation_name: str | None = None,
    debug: bool = False,
) -> ExecutionOutcome:
    """Execute ``query`` and compute the cache policy of the response.

    Field errors leave the failing field null and the rest of the response
    intact. A response carrying errors is never cacheable.
    """
    middleware = CacheControlMiddleware()
    payload: dict[str, Any] = {"query": query}
    if variables:
        payload["variables"] = variables
    if operation_name:
        payload["operationName"] = operation_name

    _, result = graphql_sync(
        schema,
        payload,
        context_value=context,
        middleware=[middleware],
        error_formatter=format_error,
        debug=debug,
    )

    errors = result.get("errors") or []
    cache_policy = middleware.policy
    if errors:
        cache_policy = CachePolicy(max_age=None, scope=cache_policy.scope)
    log.debug(f"Executed query with {len(errors)} error(s), cache policy {cache_policy}")

    return ExecutionOutcome(data=result.get("data"), errors=errors, cache_policy=cache_policy)
