"""
Поиск в полнотекстовом индексе: адаптер Elasticsearch и выбор стратегии
(точное совпадение населённых пунктов, поиск улиц, альтернативная форма)
"""
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from elasticsearch import Elasticsearch
from pydantic import ValidationError

from .addresses import AddressBuilder
from .models import (
    EXACT_MATCH_PLACETYPE,
    STREET_PLACETYPE,
    AddressResults,
    Candidate,
    FulltextQuery,
    FulltextResults,
    GeoPoint,
    PlaceType,
)
from .normalizer import DEFAULT_EXACT_MATCH_OVERRIDES, is_same_name
from .protocols import FulltextSearchEngine

logger = logging.getLogger(__name__)

FUZZY_ACTIVE = "fuzzy:active"

# Поля документа индекса и их веса
SEARCH_FIELDS = ["name^3", "name_alternates^2", "fully_qualified_name", "is_in", "zipcodes"]


def _same_zip(expected: str, zipcode: Optional[str]) -> bool:
    if not zipcode:
        return False
    return expected.replace(" ", "").lower() == zipcode.replace(" ", "").lower()


class ElasticsearchFulltextEngine:
    """Полнотекстовый индекс мест в Elasticsearch.

    Документ индекса повторяет поля Candidate; координата лежит в lat/lng
    и дублируется в geo-поле `location` для гео-фильтров.
    """

    def __init__(self, es_client: Elasticsearch, index_name: str, request_timeout: Optional[int] = None):
        self.es = es_client
        self.index = index_name
        self.request_timeout = request_timeout

    def build_body(self, query: FulltextQuery) -> Dict[str, Any]:
        """Тело запроса к Elasticsearch"""
        match: Dict[str, Any] = {
            "query": query.text,
            "fields": SEARCH_FIELDS,
            "type": "best_fields",
            "operator": "and" if query.all_words_required else "or",
        }
        if query.fuzzy:
            match["fuzziness"] = "AUTO"

        filters: List[Dict[str, Any]] = []
        if query.placetypes:
            filters.append({"terms": {"placetype": [p.value for p in query.placetypes]}})
        if query.country_code:
            filters.append({"term": {"country_code": query.country_code.upper()}})

        should: List[Dict[str, Any]] = []
        if query.point is not None:
            origin = {"lat": query.point.lat, "lon": query.point.lon}
            if query.radius:
                filters.append({"geo_distance": {"distance": f"{query.radius}m", "location": origin}})
            else:
                # без радиуса только поднимаем ближние места
                should.append({"distance_feature": {"field": "location", "origin": origin, "pivot": "10km"}})

        bool_query: Dict[str, Any] = {"must": [{"multi_match": match}], "filter": filters}
        if should:
            bool_query["should"] = should
        return {
            "query": {"bool": bool_query},
            "size": query.size,
            "from": query.offset,
        }

    def execute_query(self, query: FulltextQuery) -> FulltextResults:
        start = time.time()
        body = self.build_body(query)
        try:
            response = self.es.search(index=self.index, body=body, request_timeout=self.request_timeout)
        except Exception as e:
            logger.error(f"Ошибка запроса к индексу '{query.text}': {e}")
            return FulltextResults()

        hits_block = response.get("hits", {})
        candidates: List[Candidate] = []
        for hit in hits_block.get("hits", []):
            candidate = self._hit_to_candidate(hit)
            if candidate is not None:
                candidates.append(candidate)

        total = hits_block.get("total", len(candidates))
        if isinstance(total, dict):
            total = total.get("value", len(candidates))
        return FulltextResults(
            results=candidates,
            num_found=total,
            qtime=int((time.time() - start) * 1000),
        )

    def _hit_to_candidate(self, hit: Dict[str, Any]) -> Optional[Candidate]:
        source = dict(hit.get("_source") or {})
        source["score"] = hit.get("_score") or 0.0
        if source.get("feature_id") is None and str(hit.get("_id", "")).isdigit():
            source["feature_id"] = int(hit["_id"])
        location = source.get("location")
        if isinstance(location, dict) and source.get("lat") is None:
            source["lat"] = location.get("lat")
            source["lng"] = location.get("lon")
        try:
            return Candidate.model_validate(source)
        except ValidationError as e:
            logger.warning(f"Пропущен документ {hit.get('_id')}: {e}")
            return None


class SearchStrategy:
    """Выбор фаз поиска и склейка их результатов"""

    def __init__(
        self,
        engine: FulltextSearchEngine,
        address_builder: Optional[AddressBuilder] = None,
        exact_match_overrides: Optional[List[Callable[[str], bool]]] = None,
        exact_page_size: int = 10,
        street_page_size: int = 20,
    ):
        self.engine = engine
        self.address_builder = address_builder or AddressBuilder()
        if exact_match_overrides is None:
            exact_match_overrides = list(DEFAULT_EXACT_MATCH_OVERRIDES)
        self.exact_match_overrides = exact_match_overrides
        self.exact_page_size = exact_page_size
        self.street_page_size = street_page_size

    def do_search(
        self,
        text: str,
        country_code: Optional[str],
        need_parsing: bool,
        house_number: Optional[str],
        fuzzy: bool,
        point: Optional[GeoPoint] = None,
        radius: Optional[float] = None,
        alternate_text: Optional[str] = None,
        smart_street_detected: bool = False,
        placetypes: Optional[List[PlaceType]] = None,
    ) -> AddressResults:
        if smart_street_detected:
            logger.debug(f"Тип улицы распознан, точный поиск пропущен: '{text}'")
            exact = []
        else:
            exact = self.do_search_exact(text, country_code, fuzzy, placetypes, point=point, radius=radius)

        if not need_parsing and exact:
            logger.debug(f"Одно слово, найдено {len(exact)} точных совпадений: '{text}'")
            results = self.address_builder.build(exact, house_number)
        else:
            streets = self.do_search_street(text, country_code, fuzzy, point, radius)
            if alternate_text:
                alternate = self.do_search_street(alternate_text, country_code, fuzzy, point, radius)
                if alternate and (not streets or alternate[0].score > streets[0].score):
                    logger.debug(f"Выбрана альтернативная форма '{alternate_text}' вместо '{text}'")
                    streets = alternate
            results = self.address_builder.build(exact + streets, house_number)

        if fuzzy:
            results.message = FUZZY_ACTIVE
        return results

    def do_search_exact(
        self,
        text: str,
        country_code: Optional[str],
        fuzzy: bool,
        placetypes: Optional[List[PlaceType]] = None,
        match_names: Optional[List[str]] = None,
        point: Optional[GeoPoint] = None,
        radius: Optional[float] = None,
    ) -> List[Candidate]:
        """Точный поиск населённых пунктов с фильтром по похожести названия.

        match_names: с чем сравнивать названия кандидатов (по умолчанию сам текст)
        """
        query = FulltextQuery(
            text=text,
            placetypes=placetypes or EXACT_MATCH_PLACETYPE,
            country_code=country_code,
            point=point,
            radius=radius,
            fuzzy=fuzzy,
            all_words_required=True,
            size=self.exact_page_size,
        )
        found = self.engine.execute_query(query).results
        return self.find_exact_matches(text, found, match_names)

    def find_exact_matches(
        self,
        text: str,
        candidates: List[Candidate],
        match_names: Optional[List[str]] = None,
    ) -> List[Candidate]:
        if any(predicate(text) for predicate in self.exact_match_overrides):
            return list(candidates)
        expected = [n for n in (match_names or [text]) if n]
        kept = []
        for candidate in candidates:
            names = [candidate.name] + list(candidate.name_alternates)
            if any(is_same_name(e, name, 1) for e in expected for name in names):
                kept.append(candidate)
            elif any(_same_zip(e, z) for e in expected for z in candidate.zipcodes):
                kept.append(candidate)
        if len(kept) != len(candidates):
            logger.debug(f"Точный поиск: оставлено {len(kept)} из {len(candidates)} для '{text}'")
        return kept

    def do_search_street(
        self,
        text: str,
        country_code: Optional[str],
        fuzzy: bool,
        point: Optional[GeoPoint] = None,
        radius: Optional[float] = None,
    ) -> List[Candidate]:
        query = FulltextQuery(
            text=text,
            placetypes=STREET_PLACETYPE,
            country_code=country_code,
            point=point,
            radius=radius,
            fuzzy=fuzzy,
            all_words_required=False,
            size=self.street_page_size,
        )
        return self.engine.execute_query(query).results

    def find_in_text(
        self,
        text: str,
        placetypes: List[PlaceType],
        country_code: Optional[str],
        fuzzy: bool,
        all_words_required: bool = True,
    ) -> List[Candidate]:
        """Поиск без фильтра по названию (страна, структурированный адрес)"""
        size = self.street_page_size if placetypes == STREET_PLACETYPE else self.exact_page_size
        query = FulltextQuery(
            text=text,
            placetypes=placetypes,
            country_code=country_code,
            fuzzy=fuzzy,
            all_words_required=all_words_required,
            size=size,
        )
        return self.engine.execute_query(query).results
