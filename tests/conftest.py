from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from faker import Faker
from graphql import GraphQLSchema
from hypothesis import strategies as st
from hypothesis.strategies import composite

from walletgraph.config import WalletGraphConfig
from walletgraph.models import (
    BalanceAggregate,
    ChainId,
    MarketData,
    Nft,
    NftAttribute,
    NftCollection,
    Notification,
    NotificationApplicationData,
    TokenBalance,
    TokenListEntry,
    Transaction,
    TransactionTransfer,
    User,
    Wallet,
    WalletBalances,
)
from walletgraph.registry import compose_schema
from walletgraph.sources import InMemoryAuthProvider, InMemoryDataSource, RequestContext, WalletGraphFixture


class TestData:
    TESTS_DATA_DIR: Path = Path(__file__).parent / "data"
    FIXTURE: Path = TESTS_DATA_DIR / "fixture.json"
    CONFIG: Path = TESTS_DATA_DIR / "config.yaml"
    USER_QUERY: Path = TESTS_DATA_DIR / "user_wallets.graphql"
    TOKEN_LIST_QUERY: Path = TESTS_DATA_DIR / "token_list.graphql"


ALICE = "5f0c6a2e-4a51-4f0d-9d1c-6b7c3f0e9a01"
BOB = "8b1d7e3f-2c44-4e2a-b8d5-0a9e6c1f2b02"
CAROL = "c2e8f4a9-7d36-4b1f-a6c3-3e5d9b8a7c03"

ALICE_ETH = "0x71C7656EC7ab88b098defB751B7401B5f6d8976F"
ALICE_SOL = "5FHwkrdxntdK24hgQU8qgBjn35Y1zwhz1GZwCkP2UJnM"
BOB_SOL = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"


@composite
def natural_keys(draw: Callable[[st.SearchStrategy[Any]], Any]) -> tuple[str, ...]:
    """Composite natural keys of one to three non-empty parts."""
    return tuple(draw(st.lists(st.text(min_size=1, max_size=20), min_size=1, max_size=3)))


@composite
def paginated_items(draw: Callable[[st.SearchStrategy[Any]], Any]) -> list[str]:
    """Item sequences with unique natural keys, in arbitrary canonical order."""
    return draw(st.lists(st.text(min_size=1, max_size=12), max_size=25, unique=True))


def make_transaction(faker: Faker, chain_id: ChainId, sender: str, receiver: str, timestamp: str) -> Transaction:
    return Transaction(
        chain_id=chain_id,
        hash=faker.unique.sha256(),
        timestamp=timestamp,
        type="TRANSFER",
        fee=0.000005,
        fee_payer=sender,
        source="SYSTEM_PROGRAM",
        transfers=[TransactionTransfer(from_address=sender, to_address=receiver, amount=1.5, token="SOL")],
        raw={"slot": faker.random_int(min=1, max=10_000_000)},
    )


@pytest.fixture
def wallet_fixture(faker: Faker) -> WalletGraphFixture:
    """Two users, three wallets and a bit of everything attached to Alice's Solana wallet."""
    sol_entry = TokenListEntry(
        chain_id=ChainId.SOLANA,
        address="So11111111111111111111111111111111111111112",
        name="Wrapped SOL",
        symbol="SOL",
        coingecko_id="solana",
    )
    usdc_entry = TokenListEntry(
        chain_id=ChainId.SOLANA,
        address="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
        name="USD Coin",
        symbol="USDC",
        coingecko_id="usd-coin",
    )
    weth_entry = TokenListEntry(
        chain_id=ChainId.ETHEREUM,
        address="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
        name="Wrapped Ether",
        symbol="WETH",
    )
    market_data = MarketData(price=142.5, value=285.0, percent_change=2.1, value_change=5.9, sparkline=[140.1, 142.5])

    collection = NftCollection(chain_id=ChainId.SOLANA, address=faker.unique.pystr(), name="Mad Lads", verified=True)
    nfts = [
        Nft(
            chain_id=ChainId.SOLANA,
            owner=ALICE_SOL,
            token=faker.unique.pystr(min_chars=32, max_chars=44),
            address=faker.unique.pystr(min_chars=32, max_chars=44),
            name=f"Mad Lad #{index}",
            attributes=[NftAttribute(trait="Background", value=faker.color_name())],
            collection=collection,
        )
        for index in range(3)
    ]

    timestamps = [f"2024-05-0{day}T12:00:00Z" for day in range(1, 6)]
    transactions = [make_transaction(faker, ChainId.SOLANA, ALICE_SOL, BOB_SOL, ts) for ts in timestamps]

    app = NotificationApplicationData(app_id="xnft-1", name="Backpack")
    notifications = [
        Notification(
            notification_id=index,
            user_id=ALICE,
            title=f"Notification {index}",
            body={"message": faker.sentence()},
            source="xnft",
            timestamp=f"2024-06-0{index}T08:00:00Z",
            viewed=index % 2 == 0,
            app=app,
        )
        for index in range(1, 5)
    ]

    return WalletGraphFixture(
        users=[
            User(user_id=ALICE, username="alice"),
            User(user_id=BOB, username="bob"),
            User(user_id=CAROL, username="carol"),
        ],
        wallets=[
            Wallet(user_id=ALICE, chain_id=ChainId.SOLANA, address=ALICE_SOL, is_primary=True),
            Wallet(user_id=ALICE, chain_id=ChainId.ETHEREUM, address=ALICE_ETH),
            Wallet(user_id=BOB, chain_id=ChainId.SOLANA, address=BOB_SOL, is_primary=True),
        ],
        balances=[
            WalletBalances(
                chain_id=ChainId.SOLANA,
                owner=ALICE_SOL,
                aggregate=BalanceAggregate(value=285.0, percent_change=2.1, value_change=5.9),
                tokens=[
                    TokenBalance(
                        chain_id=ChainId.SOLANA,
                        owner=ALICE_SOL,
                        token=faker.unique.pystr(),
                        address=sol_entry.address,
                        amount="2000000000",
                        decimals=9,
                        display_amount="2",
                        market_data=market_data,
                        token_list_entry=sol_entry,
                    ),
                    TokenBalance(
                        chain_id=ChainId.SOLANA,
                        owner=ALICE_SOL,
                        token=faker.unique.pystr(),
                        address=usdc_entry.address,
                        amount="0",
                        decimals=6,
                        display_amount="0",
                        token_list_entry=usdc_entry,
                    ),
                ],
            )
        ],
        nfts=nfts,
        transactions=transactions,
        notifications=notifications,
        friendships=[(ALICE, BOB)],
        friend_requests=[(CAROL, ALICE)],
        token_list=[sol_entry, usdc_entry, weth_entry],
    )


@pytest.fixture
def data_source(wallet_fixture: WalletGraphFixture) -> InMemoryDataSource:
    return InMemoryDataSource(wallet_fixture)


@pytest.fixture
def auth_provider() -> InMemoryAuthProvider:
    return InMemoryAuthProvider({ALICE_SOL: ALICE, BOB_SOL: BOB})


@pytest.fixture(scope="session")
def schema() -> GraphQLSchema:
    return compose_schema()


@pytest.fixture
def make_context(
    data_source: InMemoryDataSource, auth_provider: InMemoryAuthProvider
) -> Callable[..., RequestContext]:
    """Factory for request contexts sharing the same data source."""

    def _make(user_id: str | None = ALICE, **config: Any) -> RequestContext:
        return RequestContext(
            data_source=data_source,
            auth=auth_provider,
            user_id=user_id,
            config=WalletGraphConfig(**config),
        )

    return _make
