import httpx
import pytest

from ssr_harness.errors import NavigationError
from ssr_harness.preflight import check_reachable


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_check_reachable_returns_status():
    client = _client(lambda request: httpx.Response(200, text="<h1>Index</h1>"))

    assert check_reachable("http://app.test/", client=client) == 200


def test_check_reachable_rejects_server_errors():
    client = _client(lambda request: httpx.Response(503))

    with pytest.raises(NavigationError) as excinfo:
        check_reachable("http://app.test/", client=client)

    assert excinfo.value.status == 503


def test_check_reachable_wraps_transport_errors():
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    with pytest.raises(NavigationError) as excinfo:
        check_reachable("http://app.test/", client=_client(refuse))

    assert "ConnectError" in excinfo.value.reason
