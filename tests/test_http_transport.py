import pytest
import requests

from pushchannels.models import Operation
from pushchannels.transport import HttpTransport, get_transport
from pushchannels.transport.base import CancellationToken

from conftest import TOKEN


class FakeResponse:
    def __init__(self, status_code=200, content=b'[1, "Modified Channels"]'):
        self.status_code = status_code
        self.content = content
        self.text = content.decode("utf-8", "replace")
        self.headers = {"Content-Type": "application/json"}


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse()
        self.error = error
        self.headers = {}
        self.requests = []
        self.closed = False

    def get(self, url, timeout=None):
        self.requests.append((url, timeout))
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


def test_get_sent_to_origin_with_params(builder):
    session = FakeSession()
    transport = HttpTransport(origin="push.example.com", ssl=True, timeout=7, session=session)
    request = builder.build(Operation.ENABLE, TOKEN, ("a", "b"))
    raw = transport.execute(request, CancellationToken())

    url, timeout = session.requests[0]
    assert url == (
        "https://push.example.com/v1/push/sub-key/sub-c-test/devices/a1b2c3d4e5f60718"
        "?add=a,b&type=apns&uuid=tester"
    )
    assert timeout == 7
    assert raw.status_code == 200
    assert raw.body == b'[1, "Modified Channels"]'
    assert raw.failure is None
    assert session.headers["User-Agent"].startswith("pushchannels/")


def test_plain_http_origin(builder):
    session = FakeSession()
    transport = HttpTransport(origin="localhost:8080", ssl=False, session=session)
    transport.execute(builder.build(Operation.AUDIT, TOKEN), CancellationToken())
    assert session.requests[0][0].startswith("http://localhost:8080/")


def test_error_status_still_returned_as_response(builder):
    session = FakeSession(FakeResponse(403, b'{"status": 403, "error": true}'))
    raw = HttpTransport(session=session).execute(builder.build(Operation.AUDIT, TOKEN), CancellationToken())
    assert raw.status_code == 403
    assert raw.failure is None


@pytest.mark.parametrize(
    "error, kind",
    [
        (requests.Timeout("read timed out"), "timeout"),
        (requests.exceptions.ConnectTimeout("connect timed out"), "timeout"),
        (requests.exceptions.SSLError("bad cert"), "tls"),
        (requests.ConnectionError("refused"), "connection"),
        (requests.exceptions.InvalidURL("bad url"), "transport"),
    ],
)
def test_request_errors_mapped_to_failures(builder, error, kind):
    transport = HttpTransport(session=FakeSession(error=error))
    raw = transport.execute(builder.build(Operation.AUDIT, TOKEN), CancellationToken())
    assert raw.failure == kind
    assert raw.status_code is None


def test_cancelled_before_send(builder):
    session = FakeSession()
    token = CancellationToken()
    token.cancel()
    raw = HttpTransport(session=session).execute(builder.build(Operation.AUDIT, TOKEN), token)
    assert raw.cancelled
    assert session.requests == []


def test_close_closes_session():
    session = FakeSession()
    HttpTransport(session=session).close()
    assert session.closed


def test_registry():
    assert get_transport("http") is HttpTransport
    with pytest.raises(ValueError):
        get_transport("carrier-pigeon")


def test_encoded_channel_sent_once_encoded(builder):
    session = FakeSession()
    request = builder.build(Operation.ENABLE, TOKEN, ("a,b", "c"))
    HttpTransport(session=session).execute(request, CancellationToken())
    url = session.requests[0][0]
    assert "?add=a%2Cb,c&" in url
    assert "%25" not in url


def test_prepared_url_not_reencoded_by_requests(builder):
    request = builder.build(Operation.ENABLE, TOKEN, ("a,b", "café"))
    url = "https://ps.pndsn.com" + request.path + "?" + request.query_string()
    prepared = requests.Request("GET", url).prepare()
    assert prepared.url.endswith("?add=a%2Cb,caf%C3%A9&type=apns&uuid=tester")
