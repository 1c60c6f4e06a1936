"""
Typed delivery task payload.

A DeliveryTask is one attempt for one (endpoint, event, payload) tuple.
It travels through the task queue as JSON and carries the workspace so the
worker can keep every lookup scoped.
"""

from dataclasses import dataclass, replace
from typing import Any
from uuid import UUID


@dataclass(frozen=True)
class DeliveryTask:
    """One queued delivery attempt."""

    endpoint_id: UUID
    workspace_id: UUID
    event: str
    payload: Any
    attempt: int = 1

    def next_attempt(self) -> "DeliveryTask":
        """The same delivery, one attempt later."""
        return replace(self, attempt=self.attempt + 1)

    def to_message(self) -> dict[str, Any]:
        """Serialize for the task queue."""
        return {
            "endpoint_id": str(self.endpoint_id),
            "workspace_id": str(self.workspace_id),
            "event": self.event,
            "payload": self.payload,
            "attempt": self.attempt,
        }

    @classmethod
    def from_message(cls, body: dict[str, Any]) -> "DeliveryTask":
        """
        Parse a queue message.

        Raises:
            ValueError: If required fields are missing or malformed
        """
        try:
            attempt = int(body.get("attempt", 1))
            task = cls(
                endpoint_id=UUID(str(body["endpoint_id"])),
                workspace_id=UUID(str(body["workspace_id"])),
                event=str(body["event"]),
                payload=body.get("payload"),
                attempt=attempt,
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid delivery task message: {e}") from e

        if task.attempt < 1:
            raise ValueError(f"Invalid delivery task attempt: {task.attempt}")
        return task
