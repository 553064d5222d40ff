"""TTL key-value storage for pending one-time passwords."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol


@dataclass(slots=True)
class OTPRecord:
    code: str
    expires_at: float
    attempts: int = 0

    def expired(self, now: float) -> bool:
        return now > self.expires_at


class OTPStore(Protocol):
    """Storage keyed by phone number. Implementations own their own lifetime."""

    def get(self, phone: str) -> Optional[OTPRecord]:
        ...

    def set(self, phone: str, record: OTPRecord) -> None:
        ...

    def delete(self, phone: str) -> None:
        ...

    def sweep_expired(self) -> int:
        ...

    def close(self) -> None:
        ...


class InMemoryOTPStore:
    """Process-local store. Entries do not survive a restart or cross instances."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._records: dict[str, OTPRecord] = {}
        self._lock = threading.Lock()

    def now(self) -> float:
        return self._clock()

    def get(self, phone: str) -> Optional[OTPRecord]:
        with self._lock:
            return self._records.get(phone)

    def set(self, phone: str, record: OTPRecord) -> None:
        with self._lock:
            self._records[phone] = record

    def delete(self, phone: str) -> None:
        with self._lock:
            self._records.pop(phone, None)

    def sweep_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [phone for phone, record in self._records.items() if record.expired(now)]
            for phone in expired:
                del self._records[phone]
        return len(expired)

    def close(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
