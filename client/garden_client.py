"""
Sidr Garden - Python Client SDK

Usage:
    from client.garden_client import GardenClient

    client = GardenClient()

    # Push the reducer's state after a reading session
    client.push_snapshot({"totalPages": 120, "totalMinutes": 340,
                          "dayStreak": 9, "khatms": 0, "memo": {}})

    # Developer tools
    client.set_growth_override(0.75)
    client.set_hour(21.5)

    status = client.get_status()
"""

import time
from typing import Any, Mapping, Optional

import httpx


class GardenClient:
    """
    Client SDK for the Sidr Garden REST API.
    """

    def __init__(self, host: str = "localhost", api_port: int = 8430,
                 timeout: float = 5.0, transport: Optional[httpx.BaseTransport] = None):
        self.base_url = f"http://{host}:{api_port}"
        self._http = httpx.Client(base_url=self.base_url, timeout=timeout,
                                  transport=transport)

    def _get(self, path: str) -> dict:
        resp = self._http.get(path)
        resp.raise_for_status()
        return resp.json()

    def _post(self, path: str, data: dict = None) -> dict:
        resp = self._http.post(path, json=data or {})
        resp.raise_for_status()
        return resp.json()

    def _delete(self, path: str) -> dict:
        resp = self._http.delete(path)
        resp.raise_for_status()
        return resp.json()

    # === Engagement ===

    def push_snapshot(self, snapshot: Mapping[str, Any]) -> dict:
        """
        Replace the engagement snapshot shown by the viewer.

        Args:
            snapshot: Reducer state with totalPages, totalMinutes, dayStreak,
                      khatms and memo (camelCase or snake_case keys)
        """
        return self._post("/snapshot", dict(snapshot))

    # === Developer overrides ===

    def set_growth_override(self, growth: float) -> dict:
        """Drive the tree from a single 0..1 growth slider."""
        return self._post("/override", {"growth": growth})

    def set_override(self, parameters: Mapping[str, Any]) -> dict:
        """Override every growth parameter explicitly."""
        return self._post("/override", dict(parameters))

    def clear_override(self) -> dict:
        return self._delete("/override")

    def set_hour(self, hour: Optional[float]) -> dict:
        """Fix the time of day (0..24), or None to follow the wall clock."""
        return self._post("/time", {"hour": hour})

    # === Status ===

    def get_status(self) -> dict:
        """Stage, progress and sky state as last applied by the viewer."""
        return self._get("/status")

    def get_stages(self) -> list:
        return self._get("/stages")["stages"]

    # === Utilities ===

    def wait_for_stage(self, stage_key: str, timeout: float = 5.0) -> bool:
        """Wait until the viewer reports the given stage key."""
        start = time.time()
        while time.time() - start < timeout:
            try:
                if self.get_status().get("stage") == stage_key:
                    return True
            except httpx.HTTPStatusError:
                pass  # viewer not ready yet
            time.sleep(0.1)
        return False

    def close(self):
        """Clean up."""
        self._http.close()
