"""
Shared HTTP Transport for Cross-Service Calls

Thin wrapper around ``httpx.AsyncClient`` that applies the platform timeout
and turns transport failures and unparseable bodies into
``UpstreamUnavailableError``. Status codes
are left to the caller: typed clients map them to domain errors, the user
gateway forwards them unchanged.
"""

import logging
from typing import Any, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel

from fooddelivery.core.errors import UpstreamUnavailableError

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class ServiceHttpClient:
    """
    HTTP access to one downstream service.

    Attributes:
        service: Name used in logs and errors (e.g. "agent-service")
        base_url: Root URL of the service
    """

    def __init__(
        self,
        service: str,
        base_url: str,
        timeout: float,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.service = service
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
        )

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """
        Send one request.

        Raises:
            UpstreamUnavailableError: Timeout, connection failure or any
                other httpx error (decoding, redirects)
        """
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"{self.service}: {method} {path} timed out")
            raise UpstreamUnavailableError(self.service, "timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"{self.service}: {method} {path} failed - {e}")
            raise UpstreamUnavailableError(self.service, str(e) or type(e).__name__) from e

    def parse(self, response: httpx.Response, schema: Type[SchemaT]) -> SchemaT:
        """
        Validate a success body against ``schema``.

        Raises:
            UpstreamUnavailableError: Body is not JSON or does not match
        """
        try:
            return schema.model_validate(response.json())
        except ValueError as e:
            # pydantic.ValidationError and JSONDecodeError are both ValueErrors
            logger.error(
                f"{self.service}: {response.request.method} {response.request.url.path} "
                f"returned an unreadable {response.status_code} body"
            )
            raise UpstreamUnavailableError(
                self.service,
                "malformed response body",
                upstream_status=response.status_code,
            ) from e

    def unexpected_status(self, response: httpx.Response) -> UpstreamUnavailableError:
        """Error for a status code the caller has no mapping for."""
        logger.error(
            f"{self.service}: {response.request.method} {response.request.url.path} "
            f"returned {response.status_code}"
        )
        return UpstreamUnavailableError(
            self.service,
            f"unexpected status {response.status_code}",
            upstream_status=response.status_code,
        )

    async def health_check(self) -> bool:
        try:
            response = await self.request("GET", "/health")
        except UpstreamUnavailableError:
            return False
        return response.status_code == 200

    async def aclose(self) -> None:
        await self._client.aclose()


def error_message(response: httpx.Response, default: str) -> str:
    """Pull ``error`` out of a ``{error: ...}`` body if there is one."""
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return default
