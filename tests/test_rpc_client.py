import httpx
import pytest

from neo_mcp.error_normalizer import normalize_error
from neo_mcp.errors import ErrorKind
from neo_mcp.neo_api.client import NeoRpcClient, NeoRpcError, NodeUnreachableError

RPC_URL = "http://node.example:10332"


class FakeAsyncClient:
    """Records JSON-RPC payloads and replies with a canned body or raises."""

    def __init__(self, body=None, *, status_code=200, exc=None):
        self.body = body
        self.status_code = status_code
        self.exc = exc
        self.requests = []
        self.closed = False

    async def post(self, url, json=None):
        self.requests.append(json)
        if self.exc is not None:
            raise self.exc
        return httpx.Response(self.status_code, json=self.body, request=httpx.Request("POST", url))

    async def aclose(self):
        self.closed = True


def _client(fake):
    return NeoRpcClient(RPC_URL, async_client=fake)


@pytest.mark.asyncio
async def test_balance_maps_symbols_and_decimals():
    fake = FakeAsyncClient(
        {
            "jsonrpc": "2.0",
            "id": 1,
            "result": {
                "address": "NXV7ZhHiyM1aHXwvUNBLNAkCwZ6wgeKyMZ",
                "balance": [
                    {"assethash": "0xef4073a0f2b305a38ec4050e4d3d28bc40ea63f5", "amount": "10"},
                    {"assethash": "0xd2a4cff31913016155e38e474a2c06d08be276cf", "amount": "550000000"},
                    {"assethash": "0x" + "12" * 20, "amount": "7", "symbol": "FOO", "decimals": "2"},
                ],
            },
        }
    )
    balances = await _client(fake).get_balance("NXV7ZhHiyM1aHXwvUNBLNAkCwZ6wgeKyMZ")
    assert balances == {"NEO": "10", "GAS": "5.5", "FOO": "0.07"}
    assert fake.requests[0]["method"] == "getnep17balances"
    assert fake.requests[0]["params"] == ["NXV7ZhHiyM1aHXwvUNBLNAkCwZ6wgeKyMZ"]


@pytest.mark.asyncio
async def test_connection_refused_maps_to_network_error():
    fake = FakeAsyncClient(exc=httpx.ConnectError("[Errno 111] Connection refused"))
    with pytest.raises(NodeUnreachableError) as exc:
        await _client(fake).get_block_count()
    assert exc.value.code == "ECONNREFUSED"
    assert normalize_error(exc.value).kind is ErrorKind.NETWORK_ERROR


@pytest.mark.asyncio
async def test_timeout_and_dns_codes():
    fake = FakeAsyncClient(exc=httpx.ReadTimeout("read timed out"))
    with pytest.raises(NodeUnreachableError) as exc:
        await _client(fake).get_block_count()
    assert exc.value.code == "ETIMEDOUT"

    fake = FakeAsyncClient(exc=httpx.ConnectError("[Errno -2] Name or service not known"))
    with pytest.raises(NodeUnreachableError) as exc:
        await _client(fake).get_block_count()
    assert exc.value.code == "ENOTFOUND"


@pytest.mark.asyncio
async def test_unknown_transaction_returns_none():
    fake = FakeAsyncClient({"jsonrpc": "2.0", "id": 1, "error": {"code": -100, "message": "Unknown transaction"}})
    assert await _client(fake).get_raw_transaction_with_confirmations("ab" * 32) is None
    assert fake.requests[0]["params"] == ["ab" * 32, True]


@pytest.mark.asyncio
async def test_other_rpc_errors_propagate():
    fake = FakeAsyncClient(
        {"jsonrpc": "2.0", "id": 1, "error": {"code": -500, "message": "Insufficient funds", "data": "GAS"}}
    )
    with pytest.raises(NeoRpcError) as exc:
        await _client(fake).get_raw_transaction_with_confirmations("ab" * 32)
    assert exc.value.code == -500
    assert exc.value.message == "Insufficient funds: GAS"
    assert normalize_error(exc.value).kind is ErrorKind.TRANSACTION_ERROR


@pytest.mark.asyncio
async def test_non_json_response_raises():
    fake = FakeAsyncClient(None, status_code=502)
    with pytest.raises(NeoRpcError) as exc:
        await _client(fake).get_block_count()
    assert exc.value.code == 502


@pytest.mark.asyncio
async def test_wrappers_unpack_results():
    client = _client(FakeAsyncClient({"jsonrpc": "2.0", "id": 1, "result": {"hash": "0x" + "ab" * 32}}))
    assert await client.send_raw_transaction("AAEC") == "0x" + "ab" * 32

    client = _client(FakeAsyncClient({"jsonrpc": "2.0", "id": 1, "result": {"unclaimed": "150000000"}}))
    assert await client.get_unclaimed_gas("NXV7ZhHiyM1aHXwvUNBLNAkCwZ6wgeKyMZ") == "1.5"

    client = _client(FakeAsyncClient({"jsonrpc": "2.0", "id": 1, "result": {"networkfee": "1230000"}}))
    assert await client.calculate_network_fee("AAEC") == 1_230_000

    fake = FakeAsyncClient({"jsonrpc": "2.0", "id": 1, "result": {"state": "HALT"}})
    signers = [{"account": "0x" + "11" * 20, "scopes": "CalledByEntry"}]
    assert await _client(fake).invoke_script("wh8=", signers) == {"state": "HALT"}
    assert fake.requests[0]["method"] == "invokescript"
    assert fake.requests[0]["params"] == ["wh8=", signers]


@pytest.mark.asyncio
async def test_injected_client_is_not_closed():
    fake = FakeAsyncClient({"jsonrpc": "2.0", "id": 1, "result": 5})
    client = _client(fake)
    assert await client.get_block_count() == 5
    await client.aclose()
    assert fake.closed is False
