import gzip
import io
from urllib.request import getproxies

import certifi
import urllib3

try:
    from urllib3 import HTTPHeaderDict
except ImportError:
    # urllib3 < 2 only exposes it from its private module
    from urllib3._collections import HTTPHeaderDict

from sentry_core.consts import DEFAULT_TIMEOUT, EndpointType
from sentry_core.utils import Dsn, logger

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any
    from typing import Dict
    from typing import Mapping
    from typing import Optional
    from typing import Union

    from urllib3.poolmanager import PoolManager
    from urllib3.poolmanager import ProxyManager


class Response:
    """The outcome of an HTTP request. Header lookups are case-insensitive."""

    def __init__(
        self,
        status_code: int,
        headers: "Optional[Mapping[str, str]]" = None,
        error: str = "",
    ) -> None:
        self.status_code = status_code
        self.headers = HTTPHeaderDict(headers or {})
        self.error = error

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code <= 299

    def has_header(self, name: str) -> bool:
        return name in self.headers

    def get_header_line(self, name: str) -> str:
        return self.headers.get(name, "")

    def has_error(self) -> bool:
        return bool(self.error)

    def __repr__(self) -> str:
        return "<Response status_code=%s error=%r>" % (self.status_code, self.error)


class HttpClient:
    """Posts envelopes to the envelope endpoint of the configured DSN."""

    def __init__(
        self,
        options: "Dict[str, Any]",
        sdk_identifier: str,
        sdk_version: str,
    ) -> None:
        self.options = options
        self.parsed_dsn = Dsn(options["dsn"])
        self.user_agent = "%s/%s" % (sdk_identifier, sdk_version)
        self._auth = self.parsed_dsn.to_auth(self.user_agent)
        self._pool = self._make_pool(
            self.parsed_dsn,
            http_proxy=options.get("http_proxy"),
            https_proxy=options.get("https_proxy"),
            ca_certs=options.get("ca_certs"),
        )

    def _get_pool_options(self, ca_certs: "Optional[Any]") -> "Dict[str, Any]":
        return {
            "num_pools": 2,
            "cert_reqs": "CERT_REQUIRED",
            "ca_certs": ca_certs or certifi.where(),
            "timeout": urllib3.Timeout(
                total=self.options.get("timeout") or DEFAULT_TIMEOUT
            ),
            "retries": False,
        }

    def _in_no_proxy(self, parsed_dsn: "Dsn") -> bool:
        no_proxy = getproxies().get("no")
        if not no_proxy:
            return False
        for host in no_proxy.split(","):
            host = host.strip()
            if parsed_dsn.host.endswith(host) or parsed_dsn.netloc.endswith(host):
                return True
        return False

    def _make_pool(
        self,
        parsed_dsn: "Dsn",
        http_proxy: "Optional[str]",
        https_proxy: "Optional[str]",
        ca_certs: "Optional[Any]",
    ) -> "Union[PoolManager, ProxyManager]":
        proxy = None
        no_proxy = self._in_no_proxy(parsed_dsn)

        # try HTTPS first
        if parsed_dsn.scheme == "https" and (https_proxy != ""):
            proxy = https_proxy or (not no_proxy and getproxies().get("https"))

        # maybe fallback to HTTP proxy
        if not proxy and (http_proxy != ""):
            proxy = http_proxy or (not no_proxy and getproxies().get("http"))

        opts = self._get_pool_options(ca_certs)

        if proxy:
            return urllib3.ProxyManager(proxy, **opts)
        else:
            return urllib3.PoolManager(**opts)

    def _compress(self, body: bytes) -> bytes:
        out = io.BytesIO()
        with gzip.GzipFile(fileobj=out, mode="w") as f:
            f.write(body)
        return out.getvalue()

    def send_request(self, body: bytes) -> "Response":
        """Sends an envelope and returns the response. Network errors are
        raised to the caller."""
        headers = {
            "Content-Type": "application/x-sentry-envelope",
            "User-Agent": self.user_agent,
            "X-Sentry-Auth": self._auth.to_header(),
        }

        if self.options.get("http_compression"):
            body = self._compress(body)
            headers["Content-Encoding"] = "gzip"

        url = self._auth.get_api_url(EndpointType.ENVELOPE)
        logger.debug("Sending envelope of %s bytes to %s", len(body), url)

        response = self._pool.request(
            "POST",
            url,
            body=body,
            headers=headers,
        )

        try:
            error = ""
            if not 200 <= response.status <= 299:
                error = response.data.decode("utf-8", "replace")
            return Response(response.status, response.headers, error)
        finally:
            response.close()
