"""Example remote storage adapter.

No network calls. Objects live in a dict and sequence counters are kept per
namespace, starting at ``sequence_start``. ``failure_rate`` makes a fraction of
uploads fail so callers can exercise their failure paths. The customer
directory is the fixed list handed in at construction.
"""

import hashlib
import random
import threading
from collections.abc import Iterable

from fieldreport.documents.models import Customer
from fieldreport.logging.logger import Log
from fieldreport.remote.base import BaseRemoteStorage, RemoteAck
from fieldreport.remote.exceptions import RemoteStorageError, RemoteStorageNetworkError

EXAMPLE_CUSTOMERS: tuple[Customer, ...] = (
    Customer(
        customer_id="c1",
        company_name="Precision Metal Works Inc.",
        contact_person="John Smith",
        position="Maintenance Manager",
        address="123 Industrial Pkwy, Cleveland, OH",
        phone="555-0123",
    ),
    Customer(
        customer_id="c2",
        company_name="Global Aerospace",
        contact_person="Sarah Connor",
        position="Lead Engineer",
        address="456 Skyline Blvd, Los Angeles, CA",
        phone="555-0999",
    ),
    Customer(
        customer_id="c3",
        company_name="Midwest Machining",
        contact_person="Mike Rowe",
        position="Owner",
        address="789 County Road, Kansas City, MO",
        phone="555-4545",
    ),
)


class InMemoryRemoteStorage(BaseRemoteStorage):
    def __init__(
        self,
        sequence_start: int = 10001,
        failure_rate: float = 0.0,
        rng: random.Random | None = None,
        customers: Iterable[Customer] = (),
    ) -> None:
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError(f"failure_rate must be within [0, 1], got {failure_rate}")
        self._sequence_start = sequence_start
        self._failure_rate = failure_rate
        self._rng = rng or random.Random()
        self._objects: dict[str, bytes] = {}
        self._counters: dict[str, int] = {}
        self._lock = threading.Lock()
        self._reachable = True
        self._customers = list(customers)

    def set_reachable(self, reachable: bool) -> None:
        self._reachable = reachable

    def put_object(self, path: str, content: str | bytes) -> RemoteAck:
        self._require_reachable()
        if self._failure_rate and self._rng.random() < self._failure_rate:
            raise RemoteStorageNetworkError(f"Simulated upload failure for {path}")
        data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        with self._lock:
            self._objects[path] = data
        Log.debug(f"Stored remote object {path} ({len(data)} bytes)")
        return RemoteAck(path=path, size_bytes=len(data), etag=hashlib.md5(data).hexdigest())

    def next_sequence_id(self, namespace: str) -> str:
        self._require_reachable()
        with self._lock:
            current = self._counters.get(namespace)
            value = self._sequence_start if current is None else current + 1
            self._counters[namespace] = value
        return f"{namespace}-{value}"

    def fetch_customer_directory(self) -> list[Customer]:
        self._require_reachable()
        return list(self._customers)

    def get_object(self, path: str) -> bytes:
        with self._lock:
            if path not in self._objects:
                raise RemoteStorageError(f"No remote object at {path}")
            return self._objects[path]

    def list_paths(self, prefix: str = "") -> list[str]:
        with self._lock:
            return sorted(p for p in self._objects if p.startswith(prefix))

    def _require_reachable(self) -> None:
        if not self._reachable:
            raise RemoteStorageNetworkError("Remote storage is unreachable")
