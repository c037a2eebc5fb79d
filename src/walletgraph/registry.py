"""Composition of the executable schema.

The SDL under ``sdl/`` declares the types. This module binds them to
resolvers, registers the natural key of every ``Node`` type and checks the
composition before anything is served.
"""

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from ariadne import (
    EnumType,
    InterfaceType,
    MutationType,
    ObjectType,
    QueryType,
    ScalarType,
    load_schema_from_path,
    make_executable_schema,
)
from graphql import GraphQLResolveInfo, GraphQLSchema

from walletgraph import log
from walletgraph.identity import NodeKeyRegistry, natural_key
from walletgraph.models import (
    ChainId,
    Friend,
    FriendRequest,
    FriendRequestType,
    Friendship,
    Nft,
    NftCollection,
    Notification,
    NotificationApplicationData,
    SortDirection,
    TokenBalance,
    TokenListEntry,
    Transaction,
    User,
    Wallet,
    WalletBalances,
)
from walletgraph.pagination import Connection, key_cursor, paginate
from walletgraph.sources import AuthenticationError, RequestContext
from walletgraph.tools.contract_checker import ContractChecker

SDL_DIR_PATH = Path(__file__).parent / "sdl"


class SchemaCompositionError(ValueError):
    """Raised when the SDL and the registered bindings do not fit together."""


# Natural keys
# ----------
NODE_KEYS = NodeKeyRegistry()
NODE_KEYS.register("User", lambda user: natural_key(user.user_id))
NODE_KEYS.register("Wallet", lambda wallet: natural_key(wallet.chain_id, wallet.address))
NODE_KEYS.register("Balances", lambda balances: natural_key(balances.chain_id, balances.owner))
NODE_KEYS.register("TokenBalance", lambda balance: natural_key(balance.chain_id, balance.owner, balance.token))
NODE_KEYS.register("TokenListEntry", lambda entry: natural_key(entry.chain_id, entry.address))
NODE_KEYS.register("Nft", lambda nft: natural_key(nft.chain_id, nft.owner, nft.token))
NODE_KEYS.register("Collection", lambda collection: natural_key(collection.chain_id, collection.address))
NODE_KEYS.register("Transaction", lambda transaction: natural_key(transaction.hash))
NODE_KEYS.register("Notification", lambda notification: natural_key(notification.notification_id))
NODE_KEYS.register("NotificationApplicationData", lambda app: natural_key(app.app_id))
NODE_KEYS.register("Friend", lambda friend: natural_key(friend.user_id))
NODE_KEYS.register("FriendRequest", lambda request: natural_key(request.from_user_id, request.to_user_id))
NODE_KEYS.register("Friendship", lambda friendship: natural_key(friendship.user_id, friendship.other_user_id))

NODE_TYPE_BY_RECORD: dict[type, str] = {
    User: "User",
    Wallet: "Wallet",
    WalletBalances: "Balances",
    TokenBalance: "TokenBalance",
    TokenListEntry: "TokenListEntry",
    Nft: "Nft",
    NftCollection: "Collection",
    Transaction: "Transaction",
    Notification: "Notification",
    NotificationApplicationData: "NotificationApplicationData",
    Friend: "Friend",
    FriendRequest: "FriendRequest",
    Friendship: "Friendship",
}


def _context(info: GraphQLResolveInfo) -> RequestContext:
    return info.context  # type: ignore[no-any-return]


def connection_resolver(
    type_name: str, fetch: Callable[[Any, GraphQLResolveInfo, dict[str, Any]], Sequence[Any]]
) -> Callable[..., Connection[Any]]:
    """Build the resolver of a connection field whose nodes are ``type_name`` records.

    ``fetch`` returns the whole collection in canonical order; the cursors are
    derived from the natural key of each record.
    """
    cursor_of = key_cursor(lambda record: NODE_KEYS.natural_key_of(type_name, record))

    def resolve_connection(
        parent: Any,
        info: GraphQLResolveInfo,
        first: int | None = None,
        after: str | None = None,
        last: int | None = None,
        before: str | None = None,
        **arguments: Any,
    ) -> Connection[Any]:
        items = fetch(parent, info, arguments)
        return paginate(
            items,
            cursor_of,
            after=after,
            before=before,
            first=first,
            last=last,
            max_page_size=_context(info).config.max_page_size,
        )

    return resolve_connection


# Scalars and enums
# ----------
json_object_scalar = ScalarType("JSONObject")


@json_object_scalar.serializer
def serialize_json_object(value: Any) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"JSONObject cannot represent a non-object value: {value!r}")
    return value


@json_object_scalar.value_parser
def parse_json_object_value(value: Any) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"JSONObject cannot represent a non-object value: {value!r}")
    return value


chain_id_enum = EnumType("ChainID", ChainId)
sort_direction_enum = EnumType("SortDirection", SortDirection)
friend_request_type_enum = EnumType("FriendRequestType", FriendRequestType)

node_interface = InterfaceType("Node")


@node_interface.type_resolver
def resolve_node_type(obj: Any, *_: Any) -> str | None:
    return NODE_TYPE_BY_RECORD.get(type(obj))


# Root types
# ----------
query = QueryType()
mutation = MutationType()


@query.field("tokenList")
def resolve_token_list(_: Any, info: GraphQLResolveInfo, chain_id: ChainId) -> list[TokenListEntry]:
    return _context(info).data_source.get_token_list(chain_id)


@query.field("user")
def resolve_user(_: Any, info: GraphQLResolveInfo) -> User | None:
    context = _context(info)
    if context.user_id is None:
        return None
    return context.data_source.get_user(context.user_id)


@query.field("wallet")
def resolve_wallet(_: Any, info: GraphQLResolveInfo, chain_id: ChainId, address: str) -> Wallet | None:
    return _context(info).data_source.get_wallet(chain_id, address)


@mutation.field("authenticate")
def resolve_authenticate(
    _: Any, info: GraphQLResolveInfo, chain_id: ChainId, public_key: str, signature: str, message: str
) -> str | None:
    auth = _context(info).auth
    if auth is None:
        raise AuthenticationError("Authentication is not available")
    return auth.authenticate(chain_id, public_key, signature, message)


@mutation.field("deauthenticate")
def resolve_deauthenticate(_: Any, info: GraphQLResolveInfo) -> str | None:
    context = _context(info)
    user_id = context.require_user_id()
    if context.auth is None:
        raise AuthenticationError("Authentication is not available")
    return context.auth.deauthenticate(user_id)


@mutation.field("importPublicKey")
def resolve_import_public_key(
    _: Any, info: GraphQLResolveInfo, chain_id: ChainId, address: str, signature: str
) -> bool:
    context = _context(info)
    return context.data_source.import_public_key(context.require_user_id(), chain_id, address, signature)


@mutation.field("sendFriendRequest")
def resolve_send_friend_request(_: Any, info: GraphQLResolveInfo, other_user_id: str, accept: bool) -> bool:
    context = _context(info)
    return context.data_source.send_friend_request(context.require_user_id(), other_user_id, accept)


# Object types
# ----------
user_type = ObjectType("User")
wallet_type = ObjectType("Wallet")
balances_type = ObjectType("Balances")

user_type.set_field(
    "wallets",
    connection_resolver("Wallet", lambda user, info, _: _context(info).data_source.get_wallets(user.user_id)),
)
user_type.set_field(
    "notifications",
    connection_resolver(
        "Notification",
        lambda user, info, arguments: _context(info).data_source.get_notifications(
            user.user_id,
            unread_only=bool((arguments.get("filters") or {}).get("unread_only")),
            sort_direction=(arguments.get("filters") or {}).get("sort_direction") or SortDirection.DESC,
        ),
    ),
)
user_type.set_field(
    "friends",
    connection_resolver("Friend", lambda user, info, _: _context(info).data_source.get_friends(user.user_id)),
)
user_type.set_field(
    "friendRequests",
    connection_resolver(
        "FriendRequest", lambda user, info, _: _context(info).data_source.get_friend_requests(user.user_id)
    ),
)


@user_type.field("friendship")
def resolve_friendship(user: User, info: GraphQLResolveInfo, other_user_id: str) -> Friendship:
    return _context(info).data_source.get_friendship(user.user_id, other_user_id)


@wallet_type.field("balances")
def resolve_balances(wallet: Wallet, info: GraphQLResolveInfo) -> WalletBalances | None:
    return _context(info).data_source.get_balances(wallet)


wallet_type.set_field(
    "nfts",
    connection_resolver("Nft", lambda wallet, info, _: _context(info).data_source.get_nfts(wallet)),
)
wallet_type.set_field(
    "transactions",
    connection_resolver(
        "Transaction",
        lambda wallet, info, arguments: _context(info).data_source.get_transactions(
            wallet, token=(arguments.get("filters") or {}).get("token")
        ),
    ),
)
balances_type.set_field(
    "tokens",
    connection_resolver("TokenBalance", lambda balances, info, _: balances.tokens),
)


def _node_object_types() -> dict[str, ObjectType]:
    """Object bindables for every registered ``Node`` type, resolving ``id`` from the natural key."""
    existing = {bindable.name: bindable for bindable in (user_type, wallet_type, balances_type)}
    object_types = {}
    for type_name in NODE_KEYS:
        object_type = existing.get(type_name) or ObjectType(type_name)
        object_type.set_field("id", _node_id_resolver(type_name))
        object_types[type_name] = object_type
    return object_types


def _node_id_resolver(type_name: str) -> Callable[[Any, GraphQLResolveInfo], str]:
    def resolve_id(record: Any, _: GraphQLResolveInfo) -> str:
        return NODE_KEYS.node_id(type_name, record)

    return resolve_id


def check_composition(schema: GraphQLSchema, node_keys: NodeKeyRegistry = NODE_KEYS) -> list[str]:
    """List the contract violations of ``schema`` combined with the registered natural keys."""
    errors = ContractChecker(schema, node_keys).run()
    errors += [
        f"[Node] natural key function registered for unknown type {type_name}"
        for type_name in node_keys
        if type_name not in schema.type_map
    ]
    return errors


def load_type_defs(sdl_path: Path = SDL_DIR_PATH) -> str:
    return load_schema_from_path(sdl_path)


def compose_schema(sdl_path: Path = SDL_DIR_PATH) -> GraphQLSchema:
    """Build the executable schema and verify its contracts.

    Raises:
        SchemaCompositionError: If a ``Node`` type cannot derive its id, or a connection
            or cache policy breaks its contract
    """
    type_defs = load_type_defs(sdl_path)
    schema = make_executable_schema(
        type_defs,
        query,
        mutation,
        node_interface,
        json_object_scalar,
        chain_id_enum,
        sort_direction_enum,
        friend_request_type_enum,
        *_node_object_types().values(),
        convert_names_case=True,
    )

    errors = check_composition(schema)
    if errors:
        for error in errors:
            log.error(error)
        raise SchemaCompositionError(f"Schema composition failed with {len(errors)} error(s): {errors[0]}")

    log.info(f"Composed schema with {len(schema.type_map)} types and {len(NODE_KEYS)} node types")
    return schema
