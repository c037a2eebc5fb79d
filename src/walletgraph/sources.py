"""Boundary to the collaborators populating the schema.

Indexers, market data providers, the notification store, the social graph
store and the auth service all live outside this package. Resolvers only talk
to them through :class:`DataSource` and :class:`AuthProvider`, which hand over
already ordered records. The in-memory implementations back the CLI and the
tests.
"""

import json
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field

from walletgraph import log
from walletgraph.config import WalletGraphConfig
from walletgraph.feature_gates import FeatureFlagSet, evaluate
from walletgraph.models import (
    ChainId,
    Friend,
    FriendRequest,
    FriendRequestType,
    Friendship,
    Nft,
    Notification,
    SortDirection,
    TokenListEntry,
    Transaction,
    User,
    Wallet,
    WalletBalances,
)


class AuthenticationError(ValueError):
    """Raised when an operation needs an authenticated user and there is none."""


class DataSource(ABC):
    """Read and write access to the upstream stores.

    Every list returned is in the canonical order of its collection and is
    never reordered by the API layer.
    """

    @abstractmethod
    def get_user(self, user_id: str) -> User | None: ...

    @abstractmethod
    def get_wallets(self, user_id: str) -> list[Wallet]:
        """Wallets of a user in registration order."""

    @abstractmethod
    def get_wallet(self, chain_id: ChainId, address: str) -> Wallet | None: ...

    @abstractmethod
    def get_balances(self, wallet: Wallet) -> WalletBalances | None: ...

    @abstractmethod
    def get_nfts(self, wallet: Wallet) -> list[Nft]: ...

    @abstractmethod
    def get_transactions(self, wallet: Wallet, token: str | None = None) -> list[Transaction]:
        """Transactions of a wallet, newest first, optionally only those moving ``token``."""

    @abstractmethod
    def get_notifications(
        self, user_id: str, unread_only: bool = False, sort_direction: SortDirection = SortDirection.DESC
    ) -> list[Notification]: ...

    @abstractmethod
    def get_friends(self, user_id: str) -> list[Friend]: ...

    @abstractmethod
    def get_friend_requests(self, user_id: str) -> list[FriendRequest]: ...

    @abstractmethod
    def get_friendship(self, user_id: str, other_user_id: str) -> Friendship: ...

    @abstractmethod
    def get_token_list(self, chain_id: ChainId) -> list[TokenListEntry]: ...

    @abstractmethod
    def import_public_key(self, user_id: str, chain_id: ChainId, address: str, signature: str) -> bool: ...

    @abstractmethod
    def send_friend_request(self, user_id: str, other_user_id: str, accept: bool) -> bool: ...


class AuthProvider(ABC):
    """Issues and revokes sessions. Signature and JWT checks happen behind it."""

    @abstractmethod
    def authenticate(self, chain_id: ChainId, public_key: str, signature: str, message: str) -> str:
        """Return a session token for the user owning ``public_key``."""

    @abstractmethod
    def deauthenticate(self, user_id: str) -> str: ...


@dataclass
class RequestContext:
    """Per-request context passed to every resolver as ``info.context``."""

    data_source: DataSource
    auth: AuthProvider | None = None
    user_id: str | None = None
    config: WalletGraphConfig = field(default_factory=WalletGraphConfig)
    features: FeatureFlagSet | None = None

    def __post_init__(self) -> None:
        if self.features is None:
            self.features = evaluate(self.user_id, self.config.dropzone_cohort)

    def require_user_id(self) -> str:
        if not self.user_id:
            raise AuthenticationError("Not authenticated")
        return self.user_id


class WalletGraphFixture(BaseModel):
    """Serialized content of an :class:`InMemoryDataSource`."""

    model_config = ConfigDict(extra="forbid")

    users: list[User] = Field(default_factory=list)
    wallets: list[Wallet] = Field(default_factory=list)
    balances: list[WalletBalances] = Field(default_factory=list)
    nfts: list[Nft] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    notifications: list[Notification] = Field(default_factory=list)
    friendships: list[tuple[str, str]] = Field(default_factory=list)
    friend_requests: list[tuple[str, str]] = Field(default_factory=list)
    token_list: list[TokenListEntry] = Field(default_factory=list)


class InMemoryDataSource(DataSource):
    """Data source over in-memory lists, kept in the order they were given."""

    def __init__(self, fixture: WalletGraphFixture | None = None) -> None:
        fixture = fixture or WalletGraphFixture()
        self.users = {user.user_id: user for user in fixture.users}
        self.wallets = list(fixture.wallets)
        self.balances = {(balances.chain_id, balances.owner): balances for balances in fixture.balances}
        self.nfts = list(fixture.nfts)
        self.transactions = list(fixture.transactions)
        self.notifications = list(fixture.notifications)
        self.friendships = {frozenset(pair) for pair in fixture.friendships}
        self.friend_requests = list(fixture.friend_requests)
        self.token_list = list(fixture.token_list)

    @classmethod
    def from_file(cls, path: Path) -> "InMemoryDataSource":
        """Load a fixture from a JSON or YAML file."""
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f) if path.suffix == ".json" else yaml.safe_load(f)
        log.debug(f"Loaded data source fixture from {path}")
        return cls(WalletGraphFixture.model_validate(raw or {}))

    def _friend(self, user_id: str) -> Friend:
        user = self.users.get(user_id)
        if user is None:
            return Friend(user_id=user_id, username=user_id)
        return Friend(user_id=user.user_id, username=user.username, avatar=user.avatar)

    def get_user(self, user_id: str) -> User | None:
        return self.users.get(user_id)

    def get_wallets(self, user_id: str) -> list[Wallet]:
        return [wallet for wallet in self.wallets if wallet.user_id == user_id]

    def get_wallet(self, chain_id: ChainId, address: str) -> Wallet | None:
        return next(
            (wallet for wallet in self.wallets if wallet.chain_id == chain_id and wallet.address == address),
            None,
        )

    def get_balances(self, wallet: Wallet) -> WalletBalances | None:
        return self.balances.get((wallet.chain_id, wallet.address))

    def get_nfts(self, wallet: Wallet) -> list[Nft]:
        return [nft for nft in self.nfts if nft.chain_id == wallet.chain_id and nft.owner == wallet.address]

    def get_transactions(self, wallet: Wallet, token: str | None = None) -> list[Transaction]:
        transactions = [
            transaction
            for transaction in self.transactions
            if transaction.chain_id == wallet.chain_id
            and any(wallet.address in (t.from_address, t.to_address) for t in transaction.transfers)
        ]
        if token is not None:
            transactions = [tx for tx in transactions if any(t.token == token for t in tx.transfers)]
        return sorted(transactions, key=lambda tx: tx.timestamp, reverse=True)

    def get_notifications(
        self, user_id: str, unread_only: bool = False, sort_direction: SortDirection = SortDirection.DESC
    ) -> list[Notification]:
        notifications = [n for n in self.notifications if n.user_id == user_id and not (unread_only and n.viewed)]
        return sorted(
            notifications,
            key=lambda n: (n.timestamp, n.notification_id),
            reverse=sort_direction == SortDirection.DESC,
        )

    def get_friends(self, user_id: str) -> list[Friend]:
        friend_ids = sorted(other for pair in self.friendships if user_id in pair for other in pair - {user_id})
        return [self._friend(friend_id) for friend_id in friend_ids]

    def get_friend_requests(self, user_id: str) -> list[FriendRequest]:
        requests = []
        for from_user_id, to_user_id in self.friend_requests:
            if user_id == from_user_id:
                request_type, other = FriendRequestType.SENT, to_user_id
            elif user_id == to_user_id:
                request_type, other = FriendRequestType.RECEIVED, from_user_id
            else:
                continue
            requests.append(
                FriendRequest(
                    from_user_id=from_user_id,
                    to_user_id=to_user_id,
                    type=request_type,
                    user=self._friend(other),
                )
            )
        return requests

    def get_friendship(self, user_id: str, other_user_id: str) -> Friendship:
        return Friendship(
            user_id=user_id,
            other_user_id=other_user_id,
            are_friends=frozenset((user_id, other_user_id)) in self.friendships,
            request_sent=(user_id, other_user_id) in self.friend_requests,
            request_received=(other_user_id, user_id) in self.friend_requests,
        )

    def get_token_list(self, chain_id: ChainId) -> list[TokenListEntry]:
        return [entry for entry in self.token_list if entry.chain_id == chain_id]

    def import_public_key(self, user_id: str, chain_id: ChainId, address: str, signature: str) -> bool:
        existing = self.get_wallet(chain_id, address)
        if existing is not None:
            return existing.user_id == user_id
        self.wallets.append(Wallet(user_id=user_id, chain_id=chain_id, address=address))
        log.info(f"Imported {chain_id.value} public key {address} for user {user_id}")
        return True

    def send_friend_request(self, user_id: str, other_user_id: str, accept: bool) -> bool:
        if user_id == other_user_id:
            return False

        pair = frozenset((user_id, other_user_id))
        if not accept:
            self.friend_requests = [
                request for request in self.friend_requests if frozenset(request) != pair
            ]
            return True

        if (other_user_id, user_id) in self.friend_requests:
            self.friend_requests.remove((other_user_id, user_id))
            self.friendships.add(pair)
        elif pair not in self.friendships and (user_id, other_user_id) not in self.friend_requests:
            self.friend_requests.append((user_id, other_user_id))
        return True


class InMemoryAuthProvider(AuthProvider):
    """Session store keyed by public key. Signatures are not verified here."""

    def __init__(self, public_keys: dict[str, str] | None = None) -> None:
        self.public_keys = dict(public_keys or {})
        self.sessions: dict[str, str] = {}

    def authenticate(self, chain_id: ChainId, public_key: str, signature: str, message: str) -> str:
        user_id = self.public_keys.get(public_key)
        if user_id is None:
            raise AuthenticationError(f"Unknown {chain_id.value} public key '{public_key}'")
        token = secrets.token_urlsafe(32)
        self.sessions[token] = user_id
        return token

    def deauthenticate(self, user_id: str) -> str:
        self.sessions = {token: owner for token, owner in self.sessions.items() if owner != user_id}
        return "ok"
