"""Request/response correlator: request id -> one-shot callback."""

from __future__ import annotations

from typing import Any, Callable

Callback = Callable[[Any], None]


class Correlator:
    """Tracks pending requests and resolves each at most once.

    A registration is popped before its callback runs, so a duplicate or
    late delivery for the same id finds nothing and is a no-op.
    """

    def __init__(self):
        self._pending: dict[str, Callback] = {}

    def register(self, request_id: str, callback: Callback) -> None:
        if request_id in self._pending:
            raise ValueError(f"request id already pending: {request_id}")
        self._pending[request_id] = callback

    def resolve(self, request_id: str, payload: Any) -> bool:
        callback = self._pending.pop(request_id, None)
        if callback is None:
            return False
        callback(payload)
        return True

    def cancel(self, request_id: str) -> bool:
        return self._pending.pop(request_id, None) is not None

    def pending_ids(self) -> list[str]:
        return list(self._pending)

    def clear(self) -> None:
        self._pending.clear()

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._pending

    def __len__(self) -> int:
        return len(self._pending)
