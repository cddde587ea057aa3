"""In-memory calculation history used by the API host (newest first)."""

import json
import logging
import threading
from collections import deque
from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from models import CalculationResult

logger = logging.getLogger(__name__)

class CalculationHistory:
    """
    Stores results as JSON text, the same way an external key-value store
    would, so every read goes through CalculationResult.from_dict.
    """

    def __init__(self, limit: int = 100):
        self._entries = deque(maxlen=limit)
        self._lock = threading.Lock()

    def save(self, result: CalculationResult) -> CalculationResult:
        stamped = replace(result, timestamp=result.timestamp or datetime.now().isoformat())
        payload = json.dumps(stamped.to_dict())
        with self._lock:
            self._entries.appendleft(payload)
        logger.info(f"Saved calculation ({stamped.brand.value}, total={stamped.total_dose})")
        return stamped

    def entries(self) -> List[CalculationResult]:
        with self._lock:
            payloads = list(self._entries)
        return [CalculationResult.from_dict(json.loads(p)) for p in payloads]

    def recent(self) -> Optional[CalculationResult]:
        with self._lock:
            payload = self._entries[0] if self._entries else None
        return CalculationResult.from_dict(json.loads(payload)) if payload else None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self):
        return len(self._entries)
