"""Общие фикстуры тестов геокодера."""

import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

# Корень проекта в sys.path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from geocoder.errors import AddressParserError  # noqa: E402
from geocoder.models import (  # noqa: E402
    Address,
    Candidate,
    FulltextQuery,
    FulltextResults,
    GeoPoint,
    HouseNumber,
    PlaceType,
)
from geocoder.service import GeocodingService  # noqa: E402


class FakeEngine:
    """Индекс-заглушка: записывает запросы и отвечает по правилам"""

    def __init__(self):
        self.queries: List[FulltextQuery] = []
        self.rules: List[Callable[[FulltextQuery], Optional[List[Candidate]]]] = []

    def on(self, placetype: PlaceType, candidates: List[Candidate], fuzzy: Optional[bool] = None, text: Optional[str] = None):
        """Ответ для запросов с данным типом места (и, если задано, режимом и текстом)"""
        def rule(query: FulltextQuery):
            if placetype not in query.placetypes:
                return None
            if fuzzy is not None and query.fuzzy != fuzzy:
                return None
            if text is not None and query.text != text:
                return None
            return candidates
        self.rules.append(rule)
        return self

    def execute_query(self, query: FulltextQuery) -> FulltextResults:
        self.queries.append(query)
        for rule in self.rules:
            found = rule(query)
            if found is not None:
                return FulltextResults(results=found, num_found=len(found))
        return FulltextResults()


class FakeParser:
    def __init__(self, addresses: Optional[List[Address]] = None, error: bool = False):
        self.addresses = addresses or []
        self.error = error
        self.calls: List[Dict] = []

    def parse(self, text, country_code=None):
        self.calls.append({"text": text, "country_code": country_code})
        if self.error:
            raise AddressParserError("парсер недоступен")
        return self.addresses


def make_street(name="Main St", is_in="Springfield", lat=39.78, lng=-89.65, **kwargs) -> Candidate:
    data = dict(
        placetype=PlaceType.STREET,
        name=name,
        is_in=is_in,
        lat=lat,
        lng=lng,
        score=10.0,
        country_code="US",
        feature_id=1,
    )
    data.update(kwargs)
    return Candidate(**data)


def make_place(placetype=PlaceType.CITY, name="Springfield", lat=39.8, lng=-89.64, **kwargs) -> Candidate:
    data = dict(
        placetype=placetype,
        name=name,
        lat=lat,
        lng=lng,
        score=10.0,
        country_code="US",
        feature_id=2,
    )
    data.update(kwargs)
    return Candidate(**data)


def house(number: str, lat: float, lon: float) -> HouseNumber:
    return HouseNumber(number=number, location=GeoPoint(lat=lat, lon=lon))


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def service(engine):
    return GeocodingService(engine)
