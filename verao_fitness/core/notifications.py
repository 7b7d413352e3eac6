"""
Transient notifications ("toasts") and in-flight indicators per session.

Clients poll ``GET /notifications`` to render them. Success and error toasts
expire after NOTIFICATION_TTL_SECONDS; loading toasts live until dismissed.
"""

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List

from verao_fitness.core.config import settings


class Notifier:
    def __init__(self, redis_client: Any, owner: str):
        self.redis = redis_client
        self.owner = owner

    @property
    def _history_key(self) -> str:
        return f"notifications:{self.owner}"

    @property
    def _in_flight_key(self) -> str:
        return f"inflight:{self.owner}"

    def _toast_key(self, toast_id: str) -> str:
        return f"toast:{self.owner}:{toast_id}"

    def _push(self, kind: str, message: str) -> Dict[str, Any]:
        toast = {
            "id": str(uuid.uuid4()),
            "type": kind,
            "message": message,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        self.redis.lpush(self._history_key, json.dumps(toast))
        self.redis.ltrim(self._history_key, 0, settings.NOTIFICATION_HISTORY_LIMIT - 1)
        self.redis.expire(self._history_key, settings.NOTIFICATION_TTL_SECONDS)
        return toast

    def success(self, message: str) -> Dict[str, Any]:
        return self._push("success", message)

    def error(self, message: str) -> Dict[str, Any]:
        return self._push("error", message)

    def loading(self, message: str) -> str:
        """Show an indeterminate indicator; returns the id to dismiss it with."""
        toast_id = str(uuid.uuid4())
        self.redis.setex(
            self._toast_key(toast_id), settings.SESSION_TTL_SECONDS, message
        )
        self.redis.sadd(self._in_flight_key, toast_id)
        self.redis.expire(self._in_flight_key, settings.SESSION_TTL_SECONDS)
        return toast_id

    def dismiss(self, toast_id: str) -> None:
        self.redis.srem(self._in_flight_key, toast_id)
        self.redis.delete(self._toast_key(toast_id))

    def recent(self) -> List[Dict[str, Any]]:
        return [json.loads(raw) for raw in self.redis.lrange(self._history_key, 0, -1)]

    def in_flight(self) -> List[Dict[str, str]]:
        pending = []
        for raw_id in self.redis.smembers(self._in_flight_key):
            toast_id = raw_id.decode() if isinstance(raw_id, bytes) else raw_id
            message = self.redis.get(self._toast_key(toast_id))
            if message is None:
                continue
            if isinstance(message, bytes):
                message = message.decode()
            pending.append({"id": toast_id, "type": "loading", "message": message})
        return pending

    def clear(self) -> None:
        for item in self.in_flight():
            self.dismiss(item["id"])
        self.redis.delete(self._history_key, self._in_flight_key)
