"""Record store backed by the ledger's REST API.

``GET/POST/PUT/DELETE {base}/{collection}[/{id}]`` with JSON bodies.
Reads are retried on transient failures; writes are sent once.
"""

import logging
from typing import Any, List, Optional, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from config.constants import (
    HTTP_CONNECT_TIMEOUT,
    HTTP_MAX_RETRY_ATTEMPTS,
    HTTP_POOL_CONNECTIONS,
    HTTP_POOL_MAXSIZE,
    HTTP_RETRY_BACKOFF_FACTOR,
    HTTP_RETRY_STATUS_CODES,
    STORE_READ_TIMEOUT,
)
from domain.exceptions import RecordNotFoundError, StoreRequestError
from infrastructure.persistence.record_store import Document, RecordStore, resolve_collection

logger = logging.getLogger(__name__)


class HTTPRecordStore(RecordStore):
    """REST record store client."""

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: Optional[tuple[float, float]] = None,
    ) -> None:
        """Initialize store.

        Args:
            base_url: API root, e.g. ``https://example.app/api``
            session: Pre-configured session (if None, one with retries is created)
            timeout: (connect, read) timeout tuple
        """
        if not base_url:
            raise ValueError("base_url cannot be empty")
        self._base_url = base_url.rstrip("/")
        self._session = session if session is not None else self._create_session()
        self._timeout = timeout or (HTTP_CONNECT_TIMEOUT, STORE_READ_TIMEOUT)

    def _create_session(self) -> requests.Session:
        """Create HTTP session with connection pooling and read retries."""
        session = requests.Session()

        retries = Retry(
            total=HTTP_MAX_RETRY_ATTEMPTS,
            connect=HTTP_MAX_RETRY_ATTEMPTS,
            read=HTTP_MAX_RETRY_ATTEMPTS,
            backoff_factor=HTTP_RETRY_BACKOFF_FACTOR,
            status_forcelist=HTTP_RETRY_STATUS_CODES,
            allowed_methods=("GET",),
            raise_on_status=False,
        )

        adapter = HTTPAdapter(
            max_retries=retries,
            pool_connections=HTTP_POOL_CONNECTIONS,
            pool_maxsize=HTTP_POOL_MAXSIZE,
        )

        session.mount("https://", adapter)
        session.mount("http://", adapter)

        return session

    def _url(self, collection: str, record_id: Optional[str] = None) -> str:
        url = f"{self._base_url}/{resolve_collection(collection)}"
        if record_id is not None:
            url = f"{url}/{record_id}"
        return url

    def _request(self, method: str, url: str, json_body: Optional[Any] = None) -> Any:
        logger.debug("%s %s", method, url)
        try:
            response = self._session.request(
                method=method,
                url=url,
                json=json_body,
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            if status == 404:
                raise RecordNotFoundError(f"Record not found: {url}") from exc
            raise StoreRequestError(f"HTTP error calling record store: {exc}", status_code=status) from exc
        except requests.RequestException as exc:
            raise StoreRequestError(f"Network error calling record store: {exc}") from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise StoreRequestError(f"Record store answered with invalid JSON: {url}") from exc

    def get(self, collection: str, record_id: Optional[str] = None) -> Union[Document, List[Document]]:
        data = self._request("GET", self._url(collection, record_id))
        if record_id is None:
            return [doc for doc in (data or []) if isinstance(doc, dict)]
        if not isinstance(data, dict):
            raise RecordNotFoundError(f"Record not found: {self._url(collection, record_id)}")
        return data

    def put(self, collection: str, document: Document) -> Document:
        record_id = document.get("id")
        if record_id is None or record_id == "":
            url = self._url(collection)
            data = self._request("POST", url, json_body=document)
            if not isinstance(data, dict) or data.get("id") in (None, ""):
                raise StoreRequestError(f"Record store did not return an id for the new record: {url}")
            return data
        data = self._request("PUT", self._url(collection, str(record_id)), json_body=document)
        return data if isinstance(data, dict) else dict(document)

    def delete(self, collection: str, record_id: str) -> None:
        self._request("DELETE", self._url(collection, record_id))
