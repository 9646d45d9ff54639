"""API Endpoint Wrappers"""

from typing import Any

from .base import APIClient
from ..utils.config_manager import config


class DBPowerClient:
    """High-level client with typed endpoint methods"""

    def __init__(
        self,
        base_url: str | None = None,
        service_role_key: str | None = None,
    ):
        api_config = config.load_config().get("api", {})
        final_base_url = base_url or api_config.get("base_url", "http://localhost:8000")
        key = service_role_key or api_config.get("service_role_key") or ""

        headers = {"Authorization": f"Bearer {key}"} if key else {}

        self.api = APIClient(
            base_url=final_base_url,
            timeout=int(api_config.get("timeout", 30)),
            headers=headers,
        )

    def __enter__(self):
        self.api.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.api.__exit__(exc_type, exc_val, exc_tb)

    # Health Check
    def health_check(self) -> dict[str, Any]:
        """Check API health status"""
        return self.api.get("/healthz")

    # Deletion Queue Endpoints
    def process_deletions(self) -> dict[str, Any]:
        """Run one pass over the deletion queue"""
        return self.api.post("/deletion-queue/process")

    def recover_stale_deletions(self, older_than_s: int | None = None) -> dict[str, Any]:
        """Fail jobs whose claim has expired"""
        params = {"older_than_s": older_than_s} if older_than_s else None
        return self.api.post("/deletion-queue/recover", params=params)

    def list_deletions(
        self,
        status: list[str] | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> dict[str, Any]:
        """List deletion jobs"""
        params: dict[str, Any] = {"limit": limit, "offset": offset}
        if status:
            params["status"] = status
        return self.api.get("/deletion-queue", params=params)

    def deletion_stats(self) -> dict[str, Any]:
        """Counts per status"""
        return self.api.get("/deletion-queue/stats")
