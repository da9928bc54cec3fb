from fieldreport.config.settings import Settings
from fieldreport.remote.base import BaseRemoteStorage
from fieldreport.remote.http_adapter import HttpRemoteStorage
from fieldreport.remote.memory_adapter import EXAMPLE_CUSTOMERS, InMemoryRemoteStorage


class RemoteStorageFactory:
    """Creates the configured remote storage adapter."""

    PROVIDERS: tuple[str, ...] = ("example", "http")

    @classmethod
    def create(cls, settings: Settings) -> BaseRemoteStorage:
        provider = settings.remote_storage_provider.lower()
        if provider == "example":
            return InMemoryRemoteStorage(
                sequence_start=settings.remote_sequence_start,
                failure_rate=settings.remote_upload_failure_rate,
                customers=EXAMPLE_CUSTOMERS,
            )
        if provider == "http":
            base_url = settings.remote_storage_base_url.strip()
            if not base_url:
                raise ValueError(
                    "remote_storage_base_url is required for remote_storage_provider=http"
                )
            return HttpRemoteStorage(
                base_url=base_url,
                api_key=settings.remote_storage_api_key,
                timeout_seconds=settings.remote_storage_timeout_seconds,
            )
        raise ValueError(
            f"Unknown remote storage provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )
