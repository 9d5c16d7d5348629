"""Flow store client (Node-RED Admin API over HTTP).

Thin synchronous client used to load the flows document and deploy a full
replacement. The optimistic concurrency token `rev` is passed through as an
opaque string.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import httpx

from ..core.config import MapperConfig
from ..logging import get_logger
from ..mapping.to_storage import to_storage
from ..records.models import Record
from ..validation import ensure_valid

logger = get_logger(__name__)

API_VERSION_HEADER = "Node-RED-API-Version"
DEPLOYMENT_TYPE_HEADER = "Node-RED-Deployment-Type"

ENV_STORE_URL = "FLOWMAPPER_STORE_URL"
ENV_STORE_TIMEOUT_S = "FLOWMAPPER_STORE_TIMEOUT_S"
DEFAULT_STORE_URL = "http://localhost:1880"


class FlowStoreError(RuntimeError):
    """Raised when the store cannot be read from or written to."""

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class FlowsSnapshot:
    rev: str
    flows: List[Record] = field(default_factory=list)


@dataclass(frozen=True)
class StoreConfig:
    base_url: str = DEFAULT_STORE_URL
    timeout_s: float = 30.0

    @classmethod
    def from_env(cls) -> "StoreConfig":
        base_url = str(os.getenv(ENV_STORE_URL) or "").strip() or DEFAULT_STORE_URL
        raw_timeout = str(os.getenv(ENV_STORE_TIMEOUT_S) or "").strip()
        timeout_s = 30.0
        if raw_timeout:
            try:
                timeout_s = float(raw_timeout)
            except ValueError as e:
                raise ValueError(f"{ENV_STORE_TIMEOUT_S} must be a number, got {raw_timeout!r}") from e
        return cls(base_url=base_url, timeout_s=timeout_s)


def _parse_flows_payload(payload: Any) -> FlowsSnapshot:
    # v1 answers with the bare array, v2 with {rev, flows}.
    if isinstance(payload, list):
        return FlowsSnapshot(rev="", flows=[r for r in payload if isinstance(r, dict)])
    if isinstance(payload, dict) and isinstance(payload.get("flows"), list):
        rev = payload.get("rev")
        return FlowsSnapshot(
            rev=rev if isinstance(rev, str) else "",
            flows=[r for r in payload["flows"] if isinstance(r, dict)],
        )
    raise FlowStoreError("Unexpected flows payload from store")


class FlowStoreClient:
    """Client for the store's `/flows` endpoint."""

    def __init__(
        self,
        base_url: str = DEFAULT_STORE_URL,
        *,
        timeout_s: float = 30.0,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._headers = {"Accept": "application/json", **dict(headers or {})}
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=timeout_s,
            headers=self._headers,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: StoreConfig, **kwargs: Any) -> "FlowStoreClient":
        return cls(config.base_url, timeout_s=config.timeout_s, **kwargs)

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "FlowStoreClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = self._client.request(method, path, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            detail = e.response.text[:200]
            raise FlowStoreError(f"{method} {path} failed with HTTP {status}: {detail}", status_code=status) from e
        except httpx.HTTPError as e:
            raise FlowStoreError(f"{method} {path} failed: {e}") from e
        try:
            return resp.json()
        except ValueError as e:
            raise FlowStoreError(f"{method} {path} returned a non-JSON response") from e

    def get_flows(self) -> FlowsSnapshot:
        payload = self._request("GET", "/flows", headers={API_VERSION_HEADER: "v2"})
        snapshot = _parse_flows_payload(payload)
        logger.info("Loaded flows from store: records=%s rev=%s", len(snapshot.flows), snapshot.rev or "-")
        return snapshot

    def _current_rev(self) -> str:
        try:
            return self.get_flows().rev
        except FlowStoreError as e:
            logger.warning("Could not fetch current rev, deploying without one: %s", e)
            return ""

    def save_flows(self, records: List[Record], rev: Optional[str] = None) -> str:
        """Validate and deploy `records` as the full document; returns the new rev."""
        ensure_valid(records)
        current_rev = rev if rev else self._current_rev()
        payload = self._request(
            "POST",
            "/flows",
            json={"rev": current_rev, "flows": records},
            headers={API_VERSION_HEADER: "v2", DEPLOYMENT_TYPE_HEADER: "full"},
        )
        new_rev = payload.get("rev") if isinstance(payload, dict) else None
        logger.info("Deployed flows to store: records=%s rev=%s", len(records), new_rev or "-")
        return new_rev if isinstance(new_rev, str) else ""

    def save_scope(
        self,
        nodes: Iterable[Any],
        edges: Iterable[Any],
        scope_id: str,
        rev: Optional[str] = None,
        *,
        config: Optional[MapperConfig] = None,
    ) -> str:
        """Fetch the document, merge the edited scope into it and deploy.

        `rev` is the token the graph was loaded under; a concurrent deploy then
        fails with a 409. Without it the freshly fetched rev is used.
        """
        snapshot = self.get_flows()
        records = to_storage(nodes, edges, scope_id, snapshot.flows, config=config)
        return self.save_flows(records, rev=rev or snapshot.rev or None)
