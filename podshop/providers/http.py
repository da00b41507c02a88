# podshop/providers/http.py
import requests
from requests import RequestException

from podshop.utils.errors import NotFoundError, ProviderUnavailable, ProviderError
from podshop.utils.logging import get_logger
from podshop.utils.retry import http_retry
from podshop.utils.settings import PROVIDER_HTTP_TIMEOUT

logger = get_logger(__name__)


class ProviderHttpClient:
    """
    Klient REST jednego providera. GET ma retry na bledach transportu,
    POST/DELETE nie (tworzenie zamowienia nie moze sie zdublowac).
    """

    def __init__(
        self,
        name: str,
        base_url: str,
        api_key: str,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or PROVIDER_HTTP_TIMEOUT
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )

    def get(self, path: str, params: dict | None = None):
        return self._call("GET", path, params=params)

    def post(self, path: str, json: dict | None = None):
        return self._call("POST", path, json=json)

    def delete(self, path: str):
        return self._call("DELETE", path)

    def _call(self, method: str, path: str, **kwargs):
        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.info(f"{self.name} {method} {url}")

        send = self._send_with_retry if method == "GET" else self._send
        try:
            resp = send(method, url, **kwargs)
        except RequestException as e:
            logger.error(f"{self.name} {method} {url} failed: {e}")
            raise ProviderUnavailable(f"{self.name} is unavailable") from e

        if resp.status_code == 404:
            raise NotFoundError(f"{self.name}: resource not found")
        if resp.status_code >= 400:
            logger.error(f"{self.name} {method} {url} returned {resp.status_code}: {resp.text[:200]}")
            if resp.status_code >= 500:
                raise ProviderUnavailable(f"{self.name} is unavailable")
            raise ProviderError(f"{self.name} rejected the request ({resp.status_code})")

        try:
            return resp.json()
        except ValueError as e:
            raise ProviderError(f"{self.name} returned a non-JSON response") from e

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        return self.session.request(method, url, timeout=self.timeout, **kwargs)

    @http_retry()
    def _send_with_retry(self, method: str, url: str, **kwargs) -> requests.Response:
        return self._send(method, url, **kwargs)
