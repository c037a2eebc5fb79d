import pytest
from graphql import GraphQLSchema, build_schema

from walletgraph.identity import NodeKeyRegistry, natural_key
from walletgraph.registry import NODE_KEYS, check_composition, load_type_defs
from walletgraph.tools.contract_checker import ContractChecker

BASE_SDL = """
enum CacheControlScope {
  PUBLIC
  PRIVATE
}

directive @cacheControl(maxAge: Int, scope: CacheControlScope, inheritMaxAge: Boolean) on FIELD_DEFINITION | OBJECT

interface Node {
  id: ID!
}

type PageInfo {
  hasNextPage: Boolean!
  hasPreviousPage: Boolean!
  startCursor: String
  endCursor: String
}
"""


def build(sdl: str) -> GraphQLSchema:
    return build_schema(BASE_SDL + sdl)


def node_keys(*type_names: str) -> NodeKeyRegistry:
    registry = NodeKeyRegistry()
    for type_name in type_names:
        registry.register(type_name, lambda record: natural_key(record.id))
    return registry


VALID_SDL = """
type Query {
  wallets(first: Int, after: String, last: Int, before: String): WalletConnection @cacheControl(maxAge: 60)
}

type Wallet implements Node @cacheControl(inheritMaxAge: true) {
  id: ID!
  address: String!
}

type WalletConnection {
  edges: [WalletEdge!]!
  pageInfo: PageInfo!
}

type WalletEdge {
  cursor: String!
  node: Wallet!
}
"""


def test_valid_schema_has_no_violations() -> None:
    assert ContractChecker(build(VALID_SDL), node_keys("Wallet")).run() == []


def test_composed_schema_has_no_violations() -> None:
    schema = build_schema(load_type_defs())
    assert check_composition(schema, NODE_KEYS) == []


@pytest.mark.parametrize(
    "sdl,expected_error",
    [
        (
            VALID_SDL.replace("  id: ID!\n  address", "  id: ID\n  address"),
            "[Node] Wallet.id must be of type ID!",
        ),
        (
            VALID_SDL.replace("edges: [WalletEdge!]!", "edges: [WalletEdge]"),
            "[Connection] WalletConnection.edges must be of type [WalletEdge!]!",
        ),
        (
            VALID_SDL.replace("pageInfo: PageInfo!", "pageInfo: PageInfo"),
            "[Connection] WalletConnection.pageInfo must be of type PageInfo!",
        ),
        (
            VALID_SDL.replace("cursor: String!", "cursor: String"),
            "[Edge] WalletEdge.cursor must be of type String!",
        ),
        (
            VALID_SDL.replace("node: Wallet!", "node: Wallet"),
            "[Edge] WalletEdge.node must be non-null",
        ),
        (
            VALID_SDL.replace(", before: String", ""),
            "[Connection] Query.wallets must accept 'before: String'",
        ),
        (
            VALID_SDL.replace("@cacheControl(maxAge: 60)", "@cacheControl(maxAge: -1)"),
            "[cacheControl] Query.wallets has a negative maxAge (-1)",
        ),
        (
            VALID_SDL.replace("@cacheControl(maxAge: 60)", "@cacheControl(maxAge: 60, inheritMaxAge: true)"),
            "[cacheControl] Query.wallets sets both maxAge and inheritMaxAge",
        ),
    ],
    ids=[
        "nullable_node_id",
        "nullable_edges",
        "nullable_page_info",
        "nullable_cursor",
        "nullable_edge_node",
        "missing_pagination_argument",
        "negative_max_age",
        "max_age_and_inherit",
    ],
)
def test_contract_violations(sdl: str, expected_error: str) -> None:
    errors = ContractChecker(build(sdl), node_keys("Wallet")).run()
    assert errors == [expected_error]


def test_node_without_natural_key_function() -> None:
    errors = ContractChecker(build(VALID_SDL), node_keys()).run()
    assert errors == ["[Node] Wallet implements Node but has no natural key function"]


def test_node_keys_are_optional() -> None:
    assert ContractChecker(build(VALID_SDL)).run() == []


def test_natural_key_for_unknown_type_is_reported() -> None:
    errors = check_composition(build(VALID_SDL), node_keys("Wallet", "Ghost"))
    assert errors == ["[Node] natural key function registered for unknown type Ghost"]


def test_object_types_skip_introspection() -> None:
    names = {obj.name for obj in ContractChecker(build(VALID_SDL)).object_types()}
    assert names == {"Query", "Wallet", "WalletConnection", "WalletEdge", "PageInfo"}
