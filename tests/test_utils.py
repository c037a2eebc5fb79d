import pytest
from graphql import GraphQLSchema, build_schema, print_schema

from walletgraph.utils import directive as directive_utils
from walletgraph.utils import graphql_type as graphql_type_utils

SAMPLE_SDL = """
enum CacheControlScope {
  PUBLIC
  PRIVATE
}

directive @cacheControl(maxAge: Int, scope: CacheControlScope, inheritMaxAge: Boolean) on FIELD_DEFINITION | OBJECT

directive @weight(value: Float) on FIELD_DEFINITION

interface Node {
  id: ID!
}

type Query {
  wallet(address: String!): Wallet @cacheControl(maxAge: 60, scope: PRIVATE)
  legacy: String @deprecated(reason: "Use wallet")
}

type Wallet implements Node @cacheControl(inheritMaxAge: true) {
  id: ID!
  label: String @weight(value: 0.5)
}
"""


@pytest.fixture(scope="module")
def sample_schema() -> GraphQLSchema:
    return build_schema(SAMPLE_SDL)


# #########################################################
# Directive utils
# #########################################################


def test_has_given_directive(sample_schema: GraphQLSchema) -> None:
    wallet_field = sample_schema.query_type.fields["wallet"]  # type: ignore[union-attr]

    assert directive_utils.has_given_directive(wallet_field, "cacheControl")
    assert not directive_utils.has_given_directive(wallet_field, "weight")
    assert not directive_utils.has_given_directive(sample_schema.query_type, "cacheControl")  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("type_name", "field_name", "directive_name", "expected"),
    [
        ("Query", "wallet", "cacheControl", {"maxAge": 60, "scope": "PRIVATE"}),
        ("Wallet", "label", "weight", {"value": 0.5}),
        ("Wallet", "id", "cacheControl", {}),
    ],
    ids=["int_and_enum", "float", "not_applied"],
)
def test_get_directive_arguments_of_fields(
    sample_schema: GraphQLSchema, type_name: str, field_name: str, directive_name: str, expected: dict
) -> None:
    field = sample_schema.get_type(type_name).fields[field_name]  # type: ignore[union-attr]
    assert directive_utils.get_directive_arguments(field, directive_name) == expected


def test_get_directive_arguments_of_types(sample_schema: GraphQLSchema) -> None:
    wallet_type = sample_schema.get_type("Wallet")
    arguments = directive_utils.get_directive_arguments(wallet_type, "cacheControl")  # type: ignore[arg-type]
    assert arguments == {"inheritMaxAge": True}


def test_build_directive_map_skips_builtin_directives(sample_schema: GraphQLSchema) -> None:
    directive_map = directive_utils.build_directive_map(sample_schema)

    assert directive_map == {
        ("Query", "wallet"): ["@cacheControl(maxAge: 60, scope: PRIVATE)"],
        "Wallet": ["@cacheControl(inheritMaxAge: true)"],
        ("Wallet", "label"): ["@weight(value: 0.5)"],
    }


def test_add_directives_to_schema_round_trips(sample_schema: GraphQLSchema) -> None:
    printed = directive_utils.add_directives_to_schema(
        print_schema(sample_schema), directive_utils.build_directive_map(sample_schema)
    )

    assert "type Wallet implements Node @cacheControl(inheritMaxAge: true) {" in printed
    assert "  wallet(address: String!): Wallet @cacheControl(maxAge: 60, scope: PRIVATE)" in printed
    assert '  legacy: String @deprecated(reason: "Use wallet")' in printed

    reparsed = build_schema(printed)
    assert directive_utils.build_directive_map(reparsed) == directive_utils.build_directive_map(sample_schema)


# #########################################################
# GraphQL type utils
# #########################################################


@pytest.mark.parametrize(
    ("type_name", "is_connection", "is_edge"),
    [
        ("WalletConnection", True, False),
        ("WalletEdge", False, True),
        ("Connection", False, False),
        ("Edge", False, False),
        ("Wallet", False, False),
    ],
)
def test_connection_and_edge_names(type_name: str, is_connection: bool, is_edge: bool) -> None:
    assert graphql_type_utils.is_connection_type_name(type_name) is is_connection
    assert graphql_type_utils.is_edge_type_name(type_name) is is_edge


def test_edge_type_name_for() -> None:
    assert graphql_type_utils.edge_type_name_for("TokenBalanceConnection") == "TokenBalanceEdge"


@pytest.mark.parametrize(
    ("type_name", "expected"),
    [("__Schema", True), ("__Type", True), ("Query", False), ("_Private", False)],
)
def test_is_introspection_type(type_name: str, expected: bool) -> None:
    assert graphql_type_utils.is_introspection_type(type_name) is expected


@pytest.mark.parametrize(
    ("type_name", "expected"),
    [("ID", True), ("Boolean", True), ("JSONObject", False), ("ChainID", False)],
)
def test_is_builtin_scalar_type(type_name: str, expected: bool) -> None:
    assert graphql_type_utils.is_builtin_scalar_type(type_name) is expected
