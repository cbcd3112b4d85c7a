"""
Client for the remote policy service's policy endpoints.

Every policy the client returns has been decoded through the codec, and
every policy it sends has been encoded by it. Transport failures are
retried; error statuses and malformed responses raise PolicyServiceError,
and codec errors in the policy text are raised unchanged.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional
from urllib.parse import quote

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import ServiceConfig
from .policy import PolicyDocument
from .records import decode_record, decode_records, encode_record, encode_records

logger = logging.getLogger(__name__)


class PolicyServiceError(Exception):
    """Raised when the policy service answers with an error status or a malformed body."""

    def __init__(self, message: str, status_code: int = 0, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


def _require_id(method: str, policy_id: str) -> str:
    if not policy_id or not isinstance(policy_id, str) or policy_id.strip() == "":
        raise ValueError(f"{method}(): policy id must be a non-empty string")
    return quote(policy_id, safe="")


class PolicyServiceClient:
    """Synchronous client for list/get/create/update/delete of policies.

    Args:
        config: Connection settings; the client never reads the environment.
        http: Optional pre-built httpx.Client (e.g. with a mock transport).
            When omitted the client creates and owns one.
    """

    def __init__(self, config: ServiceConfig, http: Optional[httpx.Client] = None) -> None:
        self._config = config
        self._owns_http = http is None
        self._http = http if http is not None else httpx.Client(timeout=config.timeout)
        self._retrying = Retrying(
            stop=stop_after_attempt(max(1, config.max_retries)),
            wait=wait_exponential(multiplier=config.retry_backoff, max=10),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )

    # -- Lifecycle --

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> PolicyServiceClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -- Transport --

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": self._config.api_key,
        }

    def _request(self, method: str, path: str, payload: Any = None) -> httpx.Response:
        url = f"{self._config.base_url.rstrip('/')}{path}"
        logger.info("%s %s", method, url)
        retrying = self._retrying.copy()
        return retrying(
            self._http.request, method, url, headers=self._headers(), json=payload
        )

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        logger.warning(
            "policy service failed to %s (status %d): %s",
            action,
            response.status_code,
            response.text,
        )
        raise PolicyServiceError(
            f"Failed to {action}: {response.status_code} {response.text}",
            status_code=response.status_code,
            body=response.text,
        )

    @staticmethod
    def _decode(response: httpx.Response, decoder: Callable[[Any], Any], action: str) -> Any:
        """Decode a success response; a malformed body becomes PolicyServiceError.

        PolicyCodecError raised for the policy text itself propagates unchanged.
        """
        try:
            return decoder(response.json())
        except ValueError as exc:
            logger.warning(
                "policy service sent a malformed response to %s: %s", action, exc
            )
            raise PolicyServiceError(
                f"Failed to {action}: malformed response ({exc})",
                status_code=response.status_code,
                body=response.text,
            ) from exc

    # -- Endpoints --

    def health(self) -> bool:
        """Return True when the service answers its root endpoint with 204."""
        try:
            response = self._request("GET", "/")
        except httpx.HTTPError as exc:
            logger.warning("health check failed: %s", exc)
            return False
        return response.status_code == 204

    def list_policies(self) -> list[PolicyDocument]:
        response = self._request("GET", "/policies")
        self._raise_for_status(response, "fetch policies")
        policies = self._decode(response, decode_records, "fetch policies")
        logger.info("fetched %d policies", len(policies))
        return policies

    def get_policy(self, policy_id: str) -> PolicyDocument:
        path = f"/policies/{_require_id('get_policy', policy_id)}"
        response = self._request("GET", path)
        self._raise_for_status(response, f"fetch policy {policy_id!r}")
        return self._decode(response, decode_record, f"fetch policy {policy_id!r}")

    def create_policy(self, doc: PolicyDocument) -> PolicyDocument:
        """Create a policy and return it as stored by the service."""
        _require_id("create_policy", doc.id)
        response = self._request("POST", "/policies", encode_record(doc))
        self._raise_for_status(response, f"create policy {doc.id!r}")
        return self._decode(response, decode_record, f"create policy {doc.id!r}")

    def update_policy(self, doc: PolicyDocument) -> PolicyDocument:
        """Replace the content of the policy with doc.id."""
        path = f"/policies/{_require_id('update_policy', doc.id)}"
        response = self._request("PUT", path, encode_record(doc))
        self._raise_for_status(response, f"update policy {doc.id!r}")
        return self._decode(response, decode_record, f"update policy {doc.id!r}")

    def update_policies(self, docs: Iterable[PolicyDocument]) -> list[PolicyDocument]:
        """Replace the whole policy set in one call."""
        docs = list(docs)
        for doc in docs:
            _require_id("update_policies", doc.id)
        response = self._request("PUT", "/policies", encode_records(docs))
        self._raise_for_status(response, "update policies")
        return self._decode(response, decode_records, "update policies")

    def delete_policy(self, policy_id: str) -> None:
        path = f"/policies/{_require_id('delete_policy', policy_id)}"
        response = self._request("DELETE", path)
        self._raise_for_status(response, f"delete policy {policy_id!r}")
