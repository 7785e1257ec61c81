"""
Счётчики использования сервиса
"""
import threading
from collections import Counter
from enum import Enum
from typing import Dict


class StatsUsageType(str, Enum):
    GEOCODING = "GEOCODING"


class StatsUsageService:
    """Счётчики вызовов в памяти процесса"""

    def __init__(self):
        self._counter: Counter = Counter()
        self._lock = threading.Lock()

    def increase_usage(self, usage_type: StatsUsageType) -> None:
        with self._lock:
            self._counter[usage_type.value] += 1

    def get_usage(self, usage_type: StatsUsageType) -> int:
        with self._lock:
            return self._counter[usage_type.value]

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return {usage_type.value: self._counter[usage_type.value] for usage_type in StatsUsageType}
