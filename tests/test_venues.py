import base64
from dataclasses import replace

import aiohttp
import pytest
from solders.hash import Hash
from solders.message import MessageV0
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction, VersionedTransaction

from launchpad_trader.core.config import SwapConfig, WSOL_MINT, ZEROSLOT_TIP_ACCOUNT
from launchpad_trader.errors import BuildError, QuoteError, RouteError, SubmitError
from launchpad_trader.execution import (
    FallbackVenueClient,
    JupiterClient,
    PrimaryVenueClient,
    ZeroSlotRelay,
)
from launchpad_trader.execution.base import BuiltSell, sell_amount

from .fakes import TOKEN_X, FakeResponse, FakeRpc, FakeSession


def unsigned_swap(wallet) -> VersionedTransaction:
    ix = transfer(TransferParams(from_pubkey=wallet.pubkey(), to_pubkey=wallet.pubkey(), lamports=1))
    message = MessageV0.try_compile(wallet.pubkey(), [ix], [], Hash.default())
    return VersionedTransaction(message, [wallet])


def relay_with(*responses):
    session = FakeSession(*responses)
    return ZeroSlotRelay("https://relay.test", ZEROSLOT_TIP_ACCOUNT, session=session), session


# ------------------------------------------------------------
# Relay
# ------------------------------------------------------------

@pytest.mark.asyncio
async def test_relay_sends_base64_and_returns_signatures(wallet):
    relay, session = relay_with(FakeResponse(payload={"jsonrpc": "2.0", "result": "sigA", "id": 1}))
    tx = unsigned_swap(wallet)

    assert await relay.send_transaction(tx) == ["sigA"]

    params = session.requests[0]["json"]["params"]
    assert session.requests[0]["json"]["method"] == "sendTransaction"
    assert base64.b64decode(params[0]) == bytes(tx)
    assert params[1]["encoding"] == "base64"


@pytest.mark.asyncio
async def test_relay_accepts_signature_list(wallet):
    relay, _ = relay_with(FakeResponse(payload={"result": ["sigA", "sigB"]}))
    assert await relay.send_transaction(unsigned_swap(wallet)) == ["sigA", "sigB"]


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    FakeResponse(payload={"error": {"code": -32002, "message": "Blockhash not found"}}),
    FakeResponse(payload={"result": []}),
    FakeResponse(payload=None),
    FakeResponse(payload=["sigA"]),
    FakeResponse(status=503, payload="unavailable"),
    FakeResponse(error=aiohttp.ClientConnectionError("reset")),
])
async def test_relay_failures_are_submit_errors(wallet, response):
    relay, _ = relay_with(response)
    with pytest.raises(SubmitError):
        await relay.send_transaction(unsigned_swap(wallet))


def test_relay_tip_instruction(wallet):
    relay, _ = relay_with()
    ix = relay.tip_instruction(wallet.pubkey(), 1_000_000)
    assert ix.accounts[1].pubkey == relay.tip_account


# ------------------------------------------------------------
# Primary venue
# ------------------------------------------------------------

@pytest.mark.asyncio
async def test_primary_build_sells_fraction_of_balance(wallet, position):
    rpc = FakeRpc(balance=2_000_000)
    relay, _ = relay_with()
    venue = PrimaryVenueClient(rpc, relay)

    built = await venue.build_sell(position, SwapConfig(in_amount_fraction=0.5), wallet)

    assert built.amount_in == 1_000_000
    assert built.min_amount_out > 0
    assert built.signer is wallet
    # compute limit, compute price, open wSOL, sell, close wSOL, relay tip
    assert len(built.instructions) == 6
    assert built.instructions[-1].accounts[1].pubkey == relay.tip_account


def test_sell_amount_is_exact_for_large_balances():
    balance = 2**60 + 1
    assert sell_amount(balance, 1.0) == balance
    assert sell_amount(balance, 0.5) == balance // 2
    assert sell_amount(balance, 0.1) <= balance
    assert sell_amount(3, 0.5) == 1


@pytest.mark.asyncio
async def test_primary_sells_whole_large_balance(wallet, position):
    rpc = FakeRpc(balance=2**60 + 1)
    relay, _ = relay_with()

    built = await PrimaryVenueClient(rpc, relay).build_sell(position, SwapConfig(), wallet)
    assert built.amount_in == 2**60 + 1


@pytest.mark.asyncio
async def test_primary_refuses_placeholder_reserves(wallet, position):
    venue = PrimaryVenueClient(FakeRpc(), relay_with()[0])
    with pytest.raises(BuildError):
        await venue.build_sell(replace(position, low_confidence=True), SwapConfig(), wallet)


@pytest.mark.asyncio
@pytest.mark.parametrize("changes", [
    {"mint": "not-a-mint"},
    {"pool_id": "bad pool"},
    {"virtual_token_reserves": 0},
])
async def test_primary_build_errors(wallet, position, changes):
    venue = PrimaryVenueClient(FakeRpc(), relay_with()[0])
    with pytest.raises(BuildError):
        await venue.build_sell(replace(position, **changes), SwapConfig(), wallet)


@pytest.mark.asyncio
async def test_primary_empty_or_missing_position(wallet, position):
    with pytest.raises(BuildError):
        await PrimaryVenueClient(FakeRpc(balance=0), relay_with()[0]).build_sell(
            position, SwapConfig(), wallet)

    rpc = FakeRpc(balance_error=RuntimeError("could not find account"))
    with pytest.raises(BuildError):
        await PrimaryVenueClient(rpc, relay_with()[0]).build_sell(position, SwapConfig(), wallet)


@pytest.mark.asyncio
async def test_primary_submit_signs_and_relays(wallet, position):
    relay, session = relay_with(FakeResponse(payload={"result": "relayed-sig"}))
    venue = PrimaryVenueClient(FakeRpc(), relay)
    built = await venue.build_sell(position, SwapConfig(), wallet)

    signature = await venue.submit(built, Hash.default())

    assert signature == "relayed-sig"
    sent = Transaction.from_bytes(base64.b64decode(session.requests[0]["json"]["params"][0]))
    assert sent.message.account_keys[0] == wallet.pubkey()


@pytest.mark.asyncio
async def test_primary_submit_without_instructions(wallet):
    venue = PrimaryVenueClient(FakeRpc(), relay_with()[0])
    with pytest.raises(SubmitError):
        await venue.submit(BuiltSell(signer=wallet), Hash.default())


# ------------------------------------------------------------
# Jupiter
# ------------------------------------------------------------

QUOTE = {"inputMint": TOKEN_X, "outputMint": WSOL_MINT, "outAmount": "41000", "otherAmountThreshold": "36900"}


@pytest.mark.asyncio
async def test_jupiter_quote_request():
    session = FakeSession(FakeResponse(payload=QUOTE))
    client = JupiterClient("https://jup.test/v6/", session=session)

    assert await client.get_quote(TOKEN_X, WSOL_MINT, 1_000_000, 1000) == QUOTE

    request = session.requests[0]
    assert request["method"] == "GET"
    assert request["url"] == "https://jup.test/v6/quote"
    assert request["params"]["amount"] == "1000000"
    assert request["params"]["slippageBps"] == "1000"


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    FakeResponse(status=400, payload={"error": "Could not find any route"}),
    FakeResponse(payload={"error": "TOKEN_NOT_TRADABLE"}),
    FakeResponse(payload={"inputMint": TOKEN_X}),
    FakeResponse(error=aiohttp.ClientConnectionError("down")),
])
async def test_jupiter_quote_errors(response):
    client = JupiterClient(session=FakeSession(response))
    with pytest.raises(QuoteError):
        await client.get_quote(TOKEN_X, WSOL_MINT, 1, 50)


@pytest.mark.asyncio
async def test_jupiter_swap_transaction(wallet):
    tx = unsigned_swap(wallet)
    session = FakeSession(
        FakeResponse(payload={"swapTransaction": base64.b64encode(bytes(tx)).decode()}),
        FakeResponse(payload={"swapTransaction": base64.b64encode(bytes(tx)).decode()}),
    )
    client = JupiterClient(session=session)

    result = await client.get_swap_transaction(QUOTE, str(wallet.pubkey()), "src")
    assert bytes(result) == bytes(tx)
    body = session.requests[0]["json"]
    assert body["wrapAndUnwrapSol"] is True
    assert "destinationTokenAccount" not in body

    await client.get_swap_transaction(QUOTE, str(wallet.pubkey()), "src", "dst")
    body = session.requests[1]["json"]
    assert body["wrapAndUnwrapSol"] is False
    assert body["destinationTokenAccount"] == "dst"


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    FakeResponse(status=500, payload={"error": "internal"}),
    FakeResponse(payload={}),
    FakeResponse(payload={"swapTransaction": "bm90IGEgdHJhbnNhY3Rpb24="}),
])
async def test_jupiter_swap_errors(wallet, response):
    client = JupiterClient(session=FakeSession(response))
    with pytest.raises(RouteError):
        await client.get_swap_transaction(QUOTE, str(wallet.pubkey()))


class FakeJupiter:
    def __init__(self, wallet, quote_error=None):
        self.wallet = wallet
        self.quote_error = quote_error
        self.quotes = []
        self.swaps = []

    async def get_quote(self, input_mint, output_mint, amount, slippage_bps):
        self.quotes.append((input_mint, output_mint, amount, slippage_bps))
        if self.quote_error is not None:
            raise self.quote_error
        return QUOTE

    async def get_swap_transaction(self, quote, payer, source_account=None, destination_account=None):
        self.swaps.append((payer, source_account, destination_account))
        return unsigned_swap(self.wallet)


@pytest.mark.asyncio
async def test_fallback_build_quotes_held_balance(wallet, position):
    rpc = FakeRpc(balance=5_000_000)
    jupiter = FakeJupiter(wallet)
    venue = FallbackVenueClient(rpc, jupiter)

    built = await venue.build_sell(position, SwapConfig(slippage_bps=300), wallet)

    assert jupiter.quotes == [(TOKEN_X, WSOL_MINT, 5_000_000, 300)]
    assert jupiter.swaps[0][0] == str(wallet.pubkey())
    assert built.transaction is not None
    assert built.min_amount_out == 36_900


@pytest.mark.asyncio
async def test_fallback_works_for_placeholder_records(wallet, position):
    venue = FallbackVenueClient(FakeRpc(), FakeJupiter(wallet))
    built = await venue.build_sell(replace(position, low_confidence=True), SwapConfig(), wallet)
    assert built.amount_in == 1_000_000_000


@pytest.mark.asyncio
async def test_fallback_propagates_quote_error(wallet, position):
    venue = FallbackVenueClient(FakeRpc(), FakeJupiter(wallet, quote_error=QuoteError("no route")))
    with pytest.raises(QuoteError):
        await venue.build_sell(position, SwapConfig(), wallet)


@pytest.mark.asyncio
async def test_fallback_submit_signs_and_confirms(wallet, position):
    rpc = FakeRpc()
    venue = FallbackVenueClient(rpc, FakeJupiter(wallet))
    built = await venue.build_sell(position, SwapConfig(), wallet)

    signature = await venue.submit(built, None)

    assert signature == str(rpc.sent[0].signatures[0])
    assert rpc.sent[0].signatures[0] != Signature.default()
    assert rpc.confirmed == [rpc.sent[0].signatures[0]]


@pytest.mark.asyncio
async def test_fallback_submit_failure(wallet, position):
    class BrokenRpc(FakeRpc):
        async def send_transaction(self, transaction, opts=None):
            raise ConnectionError("rpc down")

    venue = FallbackVenueClient(BrokenRpc(), FakeJupiter(wallet))
    built = await venue.build_sell(position, SwapConfig(), wallet)
    with pytest.raises(SubmitError):
        await venue.submit(built, None)
