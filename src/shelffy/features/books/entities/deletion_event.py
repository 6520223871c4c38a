"""Deletion event carried on the books stream."""

import json
from dataclasses import dataclass


@dataclass(frozen=True)
class DeletionEvent:
    """Request to reclaim one object from the store.
    
    Replay-safe: deleting an already removed path is a success, so the
    same event may be handled any number of times.
    """
    
    path: str
    
    def to_json(self) -> bytes:
        return json.dumps({"path": self.path}).encode("utf-8")
    
    @classmethod
    def from_json(cls, data: bytes) -> "DeletionEvent":
        """Decode an event payload.
        
        Raises:
            ValueError: If the payload isn't a JSON object with a non-empty
                string ``path``
        """
        try:
            payload = json.loads(data)
        except (TypeError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ValueError(f"Invalid deletion event payload: {e}") from e
        
        if not isinstance(payload, dict):
            raise ValueError("Deletion event payload must be a JSON object")
        path = payload.get("path")
        if not isinstance(path, str) or not path:
            raise ValueError("Deletion event payload has no path")
        return cls(path=path)
