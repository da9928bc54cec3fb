from typing import Any

import httpx

from fieldreport.documents.exceptions import DocumentFormatError
from fieldreport.documents.models import Customer
from fieldreport.documents.serialization import customer_from_dict
from fieldreport.remote.base import BaseRemoteStorage, RemoteAck
from fieldreport.remote.exceptions import RemoteStorageError, RemoteStorageNetworkError


class HttpRemoteStorage(BaseRemoteStorage):
    """Remote storage adapter for a JSON-over-HTTP object service.

    ``PUT objects/<path>`` stores raw bytes; ``POST sequences/<namespace>/next``
    returns ``{"id": "<value>"}``; ``GET customers`` returns a JSON array of
    customer objects with camelCase keys.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        timeout_seconds: int,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )

    def put_object(self, path: str, content: str | bytes) -> RemoteAck:
        data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        response = self._send("PUT", f"objects/{path.lstrip('/')}", content=data)
        body = _json_or_empty(response)
        return RemoteAck(path=path, size_bytes=len(data), etag=body.get("etag"))

    def next_sequence_id(self, namespace: str) -> str:
        response = self._send("POST", f"sequences/{namespace}/next")
        value = _json_or_empty(response).get("id")
        if not value:
            raise RemoteStorageError(
                f"Sequence service returned no id for namespace {namespace}"
            )
        return str(value)

    def fetch_customer_directory(self) -> list[Customer]:
        response = self._send("GET", "customers")
        try:
            body = response.json()
        except ValueError as exc:
            raise RemoteStorageError(f"Remote storage returned invalid JSON: {exc}") from exc
        if not isinstance(body, list):
            raise RemoteStorageError("Customer directory must be a JSON array")
        try:
            return [customer_from_dict(entry) for entry in body]
        except DocumentFormatError as exc:
            raise RemoteStorageError(f"Invalid customer directory: {exc}") from exc

    def close(self) -> None:
        self._client.close()

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            raise RemoteStorageNetworkError(f"Remote storage network error: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            raise RemoteStorageError(
                f"Remote storage returned {exc.response.status_code} for {method} {url}"
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteStorageNetworkError(f"Remote storage error: {exc}") from exc
        return response


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    if not response.content:
        return {}
    try:
        body = response.json()
    except ValueError as exc:
        raise RemoteStorageError(f"Remote storage returned invalid JSON: {exc}") from exc
    return body if isinstance(body, dict) else {}
