"""Records handed over by the data collaborators (indexers, stores, market data).

They are plain projections of upstream data. Field names follow the GraphQL
field names in snake_case, so ariadne's default resolvers serve them directly.
Global ids are not stored here; see :mod:`walletgraph.registry`.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChainId(str, Enum):
    ETHEREUM = "ETHEREUM"
    SOLANA = "SOLANA"


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class FriendRequestType(str, Enum):
    SENT = "SENT"
    RECEIVED = "RECEIVED"


class Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class User(Record):
    user_id: str
    username: str
    avatar: str | None = None


class Wallet(Record):
    user_id: str
    chain_id: ChainId
    address: str
    is_primary: bool = False
    created_at: str | None = None


class TokenListEntry(Record):
    chain_id: ChainId
    address: str
    name: str
    symbol: str
    logo: str | None = None
    coingecko_id: str | None = None


class MarketData(Record):
    price: float
    value: float
    percent_change: float
    value_change: float
    usd_change: float | None = None
    sparkline: list[float] = Field(default_factory=list)
    last_updated_at: str | None = None


class TokenBalance(Record):
    """Balance of one token account of a wallet."""

    chain_id: ChainId
    owner: str
    token: str
    address: str
    amount: str
    decimals: int
    display_amount: str
    market_data: MarketData | None = None
    token_list_entry: TokenListEntry | None = None


class BalanceAggregate(Record):
    value: float
    percent_change: float
    value_change: float


class WalletBalances(Record):
    chain_id: ChainId
    owner: str
    aggregate: BalanceAggregate
    tokens: list[TokenBalance] = Field(default_factory=list)


class NftAttribute(Record):
    trait: str
    value: str


class NftCollection(Record):
    chain_id: ChainId
    address: str
    name: str | None = None
    image: str | None = None
    verified: bool = False


class Nft(Record):
    chain_id: ChainId
    owner: str
    token: str
    address: str
    name: str | None = None
    description: str | None = None
    image: str | None = None
    attributes: list[NftAttribute] = Field(default_factory=list)
    collection: NftCollection | None = None
    compressed: bool = False


class TransactionTransfer(Record):
    from_address: str
    to_address: str
    amount: float
    token: str | None = None
    token_name: str | None = None


class Transaction(Record):
    chain_id: ChainId
    hash: str
    timestamp: str
    type: str | None = None
    block: int | None = None
    description: str | None = None
    error: str | None = None
    fee: float | None = None
    fee_payer: str | None = None
    source: str | None = None
    transfers: list[TransactionTransfer] = Field(default_factory=list)
    raw: dict[str, Any] | None = None


class NotificationApplicationData(Record):
    app_id: str
    name: str
    image: str | None = None


class Notification(Record):
    notification_id: int
    user_id: str
    title: str
    body: dict[str, Any]
    source: str
    timestamp: str
    viewed: bool = False
    app: NotificationApplicationData | None = None


class Friend(Record):
    user_id: str
    username: str
    avatar: str | None = None


class FriendRequest(Record):
    from_user_id: str
    to_user_id: str
    type: FriendRequestType
    user: Friend
    requested_at: str | None = None


class Friendship(Record):
    user_id: str
    other_user_id: str
    are_friends: bool = False
    request_sent: bool = False
    request_received: bool = False
