from typing import Any

from resilient_data_access.observability import (
    MetricsCollectorProtocol,
    UnifiedMetricsCollector,
)
from resilient_data_access.protocols import IntegrityProtocol, RemoteServiceProtocol
from resilient_data_access.storage.integrity import DataIntegrityManager


class InMemoryService:
    """Minimal remote service backed by dicts."""

    def __init__(self) -> None:
        self.users: dict[str, dict[str, Any]] = {}
        self.files: dict[str, Any] = {}

    async def get_token(self) -> str | None:
        return "token"

    async def verify_connection(self) -> bool:
        return True

    async def load_user_data(self, email: str) -> dict[str, Any] | None:
        return self.users.get(email)

    async def load_user_evaluations(self, email: str) -> list[dict[str, Any]]:
        return []

    async def load_evaluation_index(self, email: str) -> list[dict[str, Any]]:
        return []

    async def get_evaluation_detail(
        self, email: str, evaluation_id: str
    ) -> dict[str, Any] | None:
        return None

    async def get_file_sha(self, path: str) -> str | None:
        return None

    async def get_file_content(self, path: str) -> Any:
        return self.files.get(path)

    async def list_directory(self, path: str) -> list[dict[str, Any]]:
        return [{"path": p} for p in self.files if p.startswith(path)]

    async def save_user_data(self, user_data: dict[str, Any]) -> Any:
        self.users[user_data["email"]] = user_data
        return True

    async def save_evaluation(self, evaluation: dict[str, Any], email: str) -> Any:
        return True

    async def save_evaluation_index(
        self, email: str, entries: list[dict[str, Any]]
    ) -> Any:
        return True

    async def create_or_update_file(
        self, path: str, content: Any, message: str, sha: str | None = None
    ) -> Any:
        self.files[path] = content
        return True

    async def delete_file(self, path: str, message: str) -> Any:
        self.files.pop(path, None)
        return True


class TestProtocols:
    def test_remote_service_protocol_runtime_checkable(self):
        assert isinstance(InMemoryService(), RemoteServiceProtocol)

    def test_incomplete_service_rejected(self):
        class ReadOnlyService:
            async def get_token(self) -> str | None:
                return None

        assert not isinstance(ReadOnlyService(), RemoteServiceProtocol)

    def test_integrity_manager_satisfies_protocol(self):
        assert isinstance(DataIntegrityManager(), IntegrityProtocol)

    def test_custom_integrity_implementation(self):
        class PassthroughIntegrity:
            def wrap(self, data, *, type="unknown", source="app", version=1):
                return {"data": data, "checksum": ""}

            def unwrap(self, wrapped, *, validator=None, max_version=None):
                return None

            def repair(self, data, *, remove_nulls=False, defaults=None):
                return None

        assert isinstance(PassthroughIntegrity(), IntegrityProtocol)

    def test_metrics_collector_satisfies_protocol(self):
        collector = UnifiedMetricsCollector(enable_prometheus=False)
        assert isinstance(collector, MetricsCollectorProtocol)
