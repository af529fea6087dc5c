r"""HTTP client for the search engine's index and alias endpoints.

This module wraps the small part of the Elasticsearch/OpenSearch REST API the
reindex pipeline needs: creating and deleting indices, bulk indexing
documents, and reading and atomically updating an alias. Responses are
normalized into dataclasses and HTTP failures surface as
:class:`SearchStoreError`.

Example
-------
>>> from guide_index.store import SearchStore
>>> store = SearchStore("http://localhost:9200", timeout=5)  # doctest: +SKIP
>>> store.get_alias_target("docs")  # doctest: +SKIP
'docs_20250101120000000000'
"""

from __future__ import annotations

import dataclasses as dc
import json
import logging
import time
import typing as typ
from http import HTTPStatus

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ._constants import DEFAULT_HOST

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .documents import IndexDocument

logger = logging.getLogger(__name__)

_NDJSON = "application/x-ndjson"


class SearchStoreError(RuntimeError):
    """Raised when the search engine returns an unexpected error response."""


class SearchTimeoutError(SearchStoreError):
    """Raised when a request to the search engine times out."""


@dc.dataclass(slots=True, frozen=True)
class BulkItemError:
    """One document the engine refused to index.

    Attributes
    ----------
    id : str
        Identifier of the rejected document.
    status : int | None
        HTTP-style status reported for the item, ``None`` when the whole
        request failed.
    reason : str
        Engine-provided error description.
    """

    id: str
    status: int | None
    reason: str


@dc.dataclass(slots=True)
class BulkResult:
    """Outcome of one bulk request."""

    indexed: int = 0
    errors: list[BulkItemError] = dc.field(default_factory=list)


class SearchStore:
    """Thin wrapper around the engine's index, bulk, and alias endpoints.

    The session retries idempotent requests on transient gateway errors. Bulk
    requests that time out are retried here with exponential backoff, since a
    POST is not retried by the transport.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        *,
        session: requests.Session | None = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
        sleep: cabc.Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialise the client.

        Parameters
        ----------
        host : str, optional
            Base URL of the engine. Defaults to ``http://localhost:9200``.
        session : requests.Session, optional
            Preconfigured session; a retrying session is built when omitted.
        timeout : float, optional
            Per-request timeout in seconds. Defaults to ``30.0``.
        max_retries : int, optional
            Extra attempts for a timed-out bulk request. Defaults to ``3``.
        backoff_factor : float, optional
            Base delay in seconds, doubled after each failed attempt.
        sleep : Callable[[float], None], optional
            Delay function, replaceable in tests.
        """
        self._host = host.rstrip("/") or DEFAULT_HOST
        self._session = session or _build_session(max_retries, backoff_factor)
        self.timeout = timeout
        self.max_retries = max(0, max_retries)
        self.backoff_factor = backoff_factor
        self._sleep = sleep

    def create_index(
        self,
        name: str,
        settings: cabc.Mapping[str, typ.Any],
        mappings: cabc.Mapping[str, typ.Any],
    ) -> None:
        """Create ``name`` with the given settings and mappings."""
        body = {"settings": settings, "mappings": mappings}
        self._request("PUT", f"/{name}", json_body=body)
        logger.debug("Created index %s", name)

    def delete_index(self, name: str, *, ignore_missing: bool = False) -> bool:
        """Delete ``name``; return ``False`` when it did not exist."""
        response = self._request(
            "DELETE",
            f"/{name}",
            allowed=(HTTPStatus.NOT_FOUND,) if ignore_missing else (),
        )
        if response.status_code == HTTPStatus.NOT_FOUND:
            return False
        logger.debug("Deleted index %s", name)
        return True

    def list_indices(self, prefix: str) -> list[str]:
        """Return the names of all indices starting with ``prefix``."""
        response = self._request(
            "GET",
            f"/_cat/indices/{prefix}*",
            params={"format": "json", "h": "index"},
            allowed=(HTTPStatus.NOT_FOUND,),
        )
        if response.status_code == HTTPStatus.NOT_FOUND:
            return []
        rows = _decode(response, "index listing")
        return sorted(
            str(row["index"])
            for row in rows
            if isinstance(row, dict) and str(row.get("index", "")).startswith(prefix)
        )

    def bulk_upsert(
        self,
        index: str,
        doc_type: str | None,
        documents: cabc.Sequence[IndexDocument],
    ) -> BulkResult:
        """Index ``documents`` into ``index`` with a single bulk request.

        Parameters
        ----------
        index : str
            Target index name.
        doc_type : str | None
            Legacy mapping type; omitted from the actions when ``None``.
        documents : Sequence[IndexDocument]
            Documents to write; each replaces any document with the same id.

        Returns
        -------
        BulkResult
            Count of indexed documents and the per-item errors. When the
            request still times out after ``max_retries`` retries, every
            document of the batch is reported as an error.
        """
        if not documents:
            return BulkResult()

        payload = _bulk_payload(index, doc_type, documents)
        attempt = 0
        while True:
            try:
                response = self._request(
                    "POST",
                    "/_bulk",
                    data=payload,
                    headers={"Content-Type": _NDJSON},
                )
                break
            except SearchTimeoutError as exc:
                if attempt >= self.max_retries:
                    logger.debug("Bulk request to %s gave up: %s", index, exc)
                    reason = f"timed out after {attempt + 1} attempts"
                    return BulkResult(
                        errors=[
                            BulkItemError(id=doc.id, status=None, reason=reason)
                            for doc in documents
                        ]
                    )
                delay = self.backoff_factor * (2**attempt)
                attempt += 1
                logger.debug(
                    "Bulk request to %s timed out; retry %d in %.1fs",
                    index,
                    attempt,
                    delay,
                )
                self._sleep(delay)

        return _parse_bulk_response(_decode(response, "bulk response"), documents)

    def get_alias_target(self, alias: str, *, ignore_missing: bool = True) -> str | None:
        """Return the index ``alias`` points to, or ``None`` when unbound.

        Raises
        ------
        SearchStoreError
            If the alias is bound to more than one index, or is missing and
            ``ignore_missing`` is false.
        """
        response = self._request(
            "GET",
            f"/_alias/{alias}",
            allowed=(HTTPStatus.NOT_FOUND,) if ignore_missing else (),
        )
        if response.status_code == HTTPStatus.NOT_FOUND:
            return None
        payload = _decode(response, "alias lookup")
        targets = sorted(payload) if isinstance(payload, dict) else []
        if len(targets) > 1:
            msg = f"Alias '{alias}' is bound to several indices: {', '.join(targets)}"
            raise SearchStoreError(msg)
        return targets[0] if targets else None

    def update_aliases(self, actions: cabc.Sequence[cabc.Mapping[str, typ.Any]]) -> None:
        """Apply all alias ``actions`` in one atomic request."""
        self._request("POST", "/_aliases", json_body={"actions": list(actions)})

    def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: typ.Any = None,
        data: str | None = None,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
        allowed: tuple[HTTPStatus, ...] = (),
    ) -> requests.Response:
        url = f"{self._host}{path}"
        try:
            response = self._session.request(
                method,
                url,
                json=json_body,
                data=data.encode("utf-8") if data is not None else None,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            msg = f"{method} {path} timed out after {self.timeout}s"
            raise SearchTimeoutError(msg) from exc
        except requests.RequestException as exc:
            msg = f"Failed to reach search engine for {method} {path}: {exc}"
            raise SearchStoreError(msg) from exc

        if response.status_code in allowed:
            return response
        if response.status_code >= HTTPStatus.BAD_REQUEST:
            snippet = response.text[:200]
            msg = (
                f"{method} {path} failed with status {response.status_code}: {snippet}"
            )
            raise SearchStoreError(msg)
        return response


def _build_session(max_retries: int, backoff_factor: float) -> requests.Session:
    session = requests.Session()
    retry = Retry(
        total=max_retries,
        connect=max_retries,
        read=0,
        backoff_factor=backoff_factor,
        status_forcelist=(502, 503, 504),
        allowed_methods=("GET", "HEAD", "PUT", "DELETE"),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def _bulk_payload(
    index: str, doc_type: str | None, documents: cabc.Sequence[IndexDocument]
) -> str:
    lines: list[str] = []
    for doc in documents:
        action: dict[str, str] = {"_index": index, "_id": doc.id}
        if doc_type:
            action["_type"] = doc_type
        lines.append(json.dumps({"index": action}, ensure_ascii=False))
        lines.append(json.dumps(doc.source(), ensure_ascii=False))
    return "\n".join(lines) + "\n"


def _parse_bulk_response(
    payload: typ.Any, documents: cabc.Sequence[IndexDocument]
) -> BulkResult:
    """Collect item-level failures from a bulk response body.

    An item fails when it carries an ``error`` or a status of 400 or more.
    When the response flags errors that no item accounts for, every document
    of the request is reported as failed rather than assumed indexed.
    """
    if not isinstance(payload, dict):
        msg = "Bulk response was not a JSON object"
        raise SearchStoreError(msg)
    items = payload.get("items") or []

    errors: list[BulkItemError] = []
    for item in items:
        result = next(iter(item.values()), {}) if isinstance(item, dict) else {}
        if not isinstance(result, dict):
            result = {}
        error = result.get("error")
        status = result.get("status")
        failed_status = isinstance(status, int) and status >= HTTPStatus.BAD_REQUEST
        if not error and not failed_status:
            continue
        if isinstance(error, dict):
            reason = error.get("reason") or error.get("type") or str(error)
        else:
            reason = str(error) if error else f"status {status}"
        errors.append(
            BulkItemError(
                id=str(result.get("_id", "")),
                status=status if isinstance(status, int) else None,
                reason=str(reason),
            )
        )

    if payload.get("errors") and not errors:
        reason = "bulk response reported errors without item details"
        return BulkResult(
            errors=[BulkItemError(id=doc.id, status=None, reason=reason) for doc in documents]
        )
    if not errors:
        return BulkResult(indexed=len(items) or len(documents))
    return BulkResult(indexed=max(len(items) - len(errors), 0), errors=errors)


def _decode(response: requests.Response, what: str) -> typ.Any:
    try:
        return response.json()
    except json.JSONDecodeError as exc:
        msg = f"Search engine {what} was not valid JSON"
        raise SearchStoreError(msg) from exc


__all__ = [
    "BulkItemError",
    "BulkResult",
    "SearchStore",
    "SearchStoreError",
    "SearchTimeoutError",
]
