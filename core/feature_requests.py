"""
Feature requests for store-data types the assistant cannot answer yet.
"""

import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional, Any

REQUEST_STATUSES = ("pending", "reviewed", "approved", "rejected", "completed")


class FeatureRequestStore:
    def __init__(self):
        self._requests: Dict[int, Dict[str, Any]] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def submit_request(self, entity_type: str, user_id: str = "", description: str = "") -> int:
        """
        Store a request and return its id.

        A repeat request by the same user for the same entity (not yet
        rejected) bumps vote_count and returns the existing id.
        """
        entity_type = entity_type.strip().lower()
        now = datetime.now(timezone.utc).isoformat()

        with self._lock:
            for request in self._requests.values():
                if (
                    request["entity_type"] == entity_type
                    and request["user_id"] == user_id
                    and request["status"] != "rejected"
                ):
                    request["vote_count"] += 1
                    request["updated_at"] = now
                    return request["id"]

            request_id = self._next_id
            self._next_id += 1
            self._requests[request_id] = {
                "id": request_id,
                "entity_type": entity_type,
                "description": description,
                "user_id": user_id,
                "status": "pending",
                "vote_count": 1,
                "created_at": now,
                "updated_at": now,
            }
            return request_id

    def get_request(self, request_id: int) -> Optional[Dict[str, Any]]:
        with self._lock:
            request = self._requests.get(request_id)
            return dict(request) if request else None

    def get_requests(self, status: str = "all", limit: int = 50) -> List[Dict[str, Any]]:
        with self._lock:
            requests = [dict(r) for r in self._requests.values()]
        if status != "all":
            requests = [r for r in requests if r["status"] == status]
        requests.sort(key=lambda r: (r["vote_count"], r["created_at"]), reverse=True)
        return requests[:limit]

    def update_status(self, request_id: int, status: str) -> bool:
        if status not in REQUEST_STATUSES:
            return False
        with self._lock:
            request = self._requests.get(request_id)
            if not request:
                return False
            request["status"] = status
            request["updated_at"] = datetime.now(timezone.utc).isoformat()
            return True
