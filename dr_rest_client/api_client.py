from typing import Any, Dict, Optional

import aiohttp
from loguru import logger

from dr_rest_client.exceptions import ApiError

SESSION_HEADER = "x-dr-session"


class DrApiClient:
    """Thin HTTP layer over the DR REST gateway.

    Holds one aiohttp session for its lifetime, the two basic-auth credential
    sets (local login and remote-site login) and the default headers attached
    to every call, such as the session id after login.
    """

    def __init__(self, base_path: str, verify_ssl: bool = False):
        self.base_path = base_path.rstrip("/")
        self.verify_ssl = verify_ssl
        self.basic_auth: Optional[aiohttp.BasicAuth] = None
        self.remote_login_basic_auth: Optional[aiohttp.BasicAuth] = None
        self.default_headers: Dict[str, str] = {}
        self.logger = logger
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "DrApiClient":
        self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    def set_basic_auth(self, username: str, password: str) -> None:
        self.basic_auth = aiohttp.BasicAuth(username, password)

    def set_remote_login_basic_auth(self, username: str, password: str) -> None:
        self.remote_login_basic_auth = aiohttp.BasicAuth(username, password)

    def add_default_header(self, name: str, value: str) -> None:
        self.default_headers[name] = value

    def remove_default_header(self, name: str) -> None:
        self.default_headers.pop(name, None)

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        auth: Optional[aiohttp.BasicAuth] = None,
    ) -> Any:
        """Sends a request and returns the decoded JSON body, or None if the body is empty"""
        if self._session is None:
            raise RuntimeError("DrApiClient must be used as an async context manager")

        url = f"{self.base_path}{path}"
        if params is not None:
            params = {k: _query_value(v) for k, v in params.items() if v is not None}

        try:
            async with self._session.request(
                method,
                url,
                params=params,
                json=json,
                auth=auth,
                headers=self.default_headers,
                ssl=self.verify_ssl,
            ) as response:
                body = await response.text()
                if response.status >= 400:
                    self.logger.error(
                        f"HTTP error {response.status} for {method} {url}: {body}"
                    )
                    raise ApiError(
                        f"{method} {url} returned {response.status}",
                        status=response.status,
                        body=body,
                    )
                if not body:
                    return None
                return await response.json(content_type=None)
        except aiohttp.ClientError as e:
            self.logger.error(f"Transport error for {method} {url}: {e}")
            raise ApiError(f"{method} {url} failed: {e}") from e


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
