"""HTTP transport over requests."""
from __future__ import annotations

import logging

import requests

from pushchannels import __version__
from pushchannels.models import RequestDescriptor
from pushchannels.transport.base import CancellationToken, RawResult, Transport
from pushchannels.validation import mask_token

logger = logging.getLogger(__name__)

DEFAULT_ORIGIN = "ps.pndsn.com"
USER_AGENT = f"pushchannels/{__version__}"


class HttpTransport(Transport):
    """GET {scheme}://{origin}{path}?{params} through a shared requests.Session."""

    def __init__(
        self,
        origin: str = DEFAULT_ORIGIN,
        ssl: bool = True,
        timeout: float = 10,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = f"{'https' if ssl else 'http'}://{origin}"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)

    def execute(self, request: RequestDescriptor, cancel_token: CancellationToken) -> RawResult:
        if cancel_token.cancelled:
            return RawResult.cancellation()

        # query values are pre-encoded by the builder; do not pass them as params
        url = self.base_url + request.path
        logger.debug(
            "push %s request_id=%s token=%s",
            request.operation.value,
            request.request_id,
            mask_token(request.token),
        )
        try:
            resp = self.session.get(f"{url}?{request.query_string()}", timeout=self.timeout)
        except requests.Timeout as e:
            logger.warning("push %s timed out: %s", request.operation.value, e)
            return RawResult.transport_failure("timeout", str(e))
        except requests.exceptions.SSLError as e:
            logger.warning("push %s TLS failure: %s", request.operation.value, e)
            return RawResult.transport_failure("tls", str(e))
        except requests.ConnectionError as e:
            logger.warning("push %s connection failed: %s", request.operation.value, e)
            return RawResult.transport_failure("connection", str(e))
        except requests.RequestException as e:
            logger.exception("push %s request failed: %s", request.operation.value, e)
            return RawResult.transport_failure("transport", str(e))

        if resp.status_code != 200:
            logger.info(
                "push %s status=%s body=%s",
                request.operation.value,
                resp.status_code,
                resp.text[:500],
            )
        return RawResult.success(resp.status_code, resp.content, dict(resp.headers))

    def close(self) -> None:
        self.session.close()
