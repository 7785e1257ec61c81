"""
Интерфейсы внешних сервисов, которые получает геокодер
"""
from typing import List, Optional, Protocol, runtime_checkable

from .countries import CountryDetection
from .models import Address, FulltextQuery, FulltextResults
from .stats import StatsUsageType


@runtime_checkable
class FulltextSearchEngine(Protocol):
    """Полнотекстовый пространственный индекс мест"""

    def execute_query(self, query: FulltextQuery) -> FulltextResults:
        ...


@runtime_checkable
class AddressParser(Protocol):
    """Парсер адресов: текст -> список структурированных адресов.

    При сбое бросает AddressParserError.
    """

    def parse(self, text: str, country_code: Optional[str] = None) -> List[Address]:
        ...


class CountryDetectorProtocol(Protocol):
    def detect_and_remove_country(self, text: Optional[str]) -> CountryDetection:
        ...


class StreetDetectorProtocol(Protocol):
    def get_street_types(self, text: Optional[str]) -> List[str]:
        ...


class DecompounderProtocol(Protocol):
    def is_decompound_country_code(self, country_code: Optional[str]) -> bool:
        ...

    def is_decompound_name(self, text: Optional[str]) -> bool:
        ...

    def get_other_format_for_text(self, text: Optional[str]) -> Optional[str]:
        ...


class UsageCounter(Protocol):
    def increase_usage(self, usage_type: StatsUsageType) -> None:
        ...
