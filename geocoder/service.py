"""
Сервис геокодирования: разбор свободного текста и структурированных адресов
"""
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from .addresses import AddressBuilder
from .countries import CountryDetector
from .errors import (
    AddressParserError,
    InvalidInputError,
    NotGeocodableError,
    UnsupportedIntersectionError,
)
from .labels import LabelGenerator
from .models import (
    CITY_AND_CITYSUBDIVISION_PLACETYPE,
    CITY_CITYSUB_ADM_PLACETYPE,
    ONLY_ADM_PLACETYPE,
    ONLY_COUNTRY_PLACETYPE,
    Address,
    AddressQuery,
    AddressResults,
    PlaceType,
)
from .normalizer import (
    Decompounder,
    SmartStreetDetection,
    expand_street_type,
    find_house_number,
    need_parsing,
    prepare_query,
)
from .protocols import (
    AddressParser,
    CountryDetectorProtocol,
    DecompounderProtocol,
    FulltextSearchEngine,
    StreetDetectorProtocol,
    UsageCounter,
)
from .search import FUZZY_ACTIVE, SearchStrategy
from .stats import StatsUsageService, StatsUsageType

logger = logging.getLogger(__name__)

# Ниже этого score строгого поиска повторяем запрос в нечётком режиме
SCORE_THRESHOLD_FUZZY = 3.0
STRUCTURED_RESULTS_LIMIT = 10


def _elapsed_ms(start: float) -> int:
    return int((time.time() - start) * 1000)


class GeocodingService:
    """Геокодер: текст или структурированный адрес -> список адресов с координатами"""

    def __init__(
        self,
        engine: FulltextSearchEngine,
        parser: Optional[AddressParser] = None,
        stats: Optional[UsageCounter] = None,
        country_detector: Optional[CountryDetectorProtocol] = None,
        street_detector: Optional[StreetDetectorProtocol] = None,
        decompounder: Optional[DecompounderProtocol] = None,
        label_generator: Optional[LabelGenerator] = None,
        exact_match_overrides: Optional[List[Callable[[str], bool]]] = None,
        use_address_parser: bool = False,
        parsed_address_unlock_key: int = 0,
        exact_page_size: int = 10,
        street_page_size: int = 20,
    ):
        self.parser = parser
        self.stats = stats or StatsUsageService()
        self.country_detector = country_detector or CountryDetector()
        self.street_detector = street_detector or SmartStreetDetection()
        self.decompounder = decompounder or Decompounder()
        self.labels = label_generator or LabelGenerator()
        self.address_builder = AddressBuilder(self.labels)
        self.search = SearchStrategy(
            engine,
            address_builder=self.address_builder,
            exact_match_overrides=exact_match_overrides,
            exact_page_size=exact_page_size,
            street_page_size=street_page_size,
        )
        self.use_address_parser = use_address_parser
        self.parsed_address_unlock_key = parsed_address_unlock_key

    # --- свободный текст ---

    def geocode(self, query: Optional[AddressQuery]) -> AddressResults:
        """Геокодирование запроса (текст или структурированный адрес)"""
        if query is None:
            raise InvalidInputError("Пустой запрос")
        country_code = self._check_country_code(query.country)

        if query.is_structured:
            address = query.structured_address
            logger.debug(f"Структурированный адрес: {address} (страна {country_code})")
            results = self.geocode_address(address, country_code)
            if self.should_set_parsed_address(query):
                results.parsed_address = address
            return results.limit(query.limit_nb_result)

        raw_address = query.address
        if raw_address is None or not raw_address.strip():
            raise InvalidInputError("Пустой адрес")
        start = time.time()

        detection = self.country_detector.detect_and_remove_country(raw_address)
        if detection.country_code:
            if detection.address and detection.address.strip():
                raw_address = detection.address
                if country_code is None:
                    country_code = detection.country_code
            else:
                return self._geocode_country(raw_address, start).limit(query.limit_nb_result)
        country_code = self._check_country_code(country_code)

        needs_parsing = self.need_parsing(raw_address)
        if (self.use_address_parser or query.postal) and needs_parsing and self.parser is not None:
            parsed = self._parse(raw_address, country_code)
            if parsed and parsed[0].is_geocodable():
                address = parsed[0]
                logger.debug(f"Адрес '{raw_address}' разобран парсером: {address}")
                results = self.geocode_address(address, country_code)
                if self.should_set_parsed_address(query):
                    results.parsed_address = address
                return results.limit(query.limit_nb_result)
        else:
            logger.debug(f"Без парсера: '{raw_address}'")

        self.stats.increase_usage(StatsUsageType.GEOCODING)
        text = prepare_query(raw_address)
        house_number = None
        found = find_house_number(text, country_code)
        if found is not None and found.address_without_house_number:
            house_number = found.house_number
            text = found.address_without_house_number

        street_types = self.street_detector.get_street_types(text)
        for street_type in street_types:
            logger.debug(f"Найден тип улицы: {street_type}")
        smart_street_detected = len(street_types) == 1
        alternate_text = None
        if smart_street_detected and (
            self.decompounder.is_decompound_country_code(country_code)
            or self.decompounder.is_decompound_name(text)
        ):
            alternate_text = self.decompounder.get_other_format_for_text(text)
            text = expand_street_type(text)
            logger.debug(f"Составное название: '{text}', альтернатива '{alternate_text}'")

        results = self.search.do_search(
            text, country_code, needs_parsing, house_number, False,
            point=query.point, radius=query.radius,
            alternate_text=alternate_text, smart_street_detected=smart_street_detected,
        )
        if query.fuzzy and self._needs_fuzzy_retry(results):
            logger.debug(f"Повтор в нечётком режиме: '{text}'")
            results = self.search.do_search(
                text, country_code, needs_parsing, house_number, True,
                point=query.point, radius=query.radius,
                alternate_text=alternate_text, smart_street_detected=smart_street_detected,
            )

        results.qtime = _elapsed_ms(start)
        logger.info(
            f"Геокодирование '{query.address}' (страна {country_code}) заняло {results.qtime} мс, "
            f"найдено {results.num_found}"
        )
        return results.limit(query.limit_nb_result)

    def _geocode_country(self, text: str, start: float) -> AddressResults:
        logger.info(f"Запрос '{text}' распознан как страна")
        self.stats.increase_usage(StatsUsageType.GEOCODING)
        countries = self.search.find_in_text(text, ONLY_COUNTRY_PLACETYPE, None, False)
        results = self.address_builder.build_country(countries)
        results.qtime = _elapsed_ms(start)
        return results

    def _parse(self, text: str, country_code: Optional[str]) -> List[Address]:
        try:
            return self.parser.parse(text, country_code)
        except AddressParserError as e:
            logger.error(f"Ошибка парсинга адреса '{text}': {e}")
            return []

    def _needs_fuzzy_retry(self, results: AddressResults) -> bool:
        if results.num_found == 0:
            return True
        top_score = results.result[0].score
        return top_score is not None and top_score < SCORE_THRESHOLD_FUZZY

    # --- структурированный адрес ---

    def geocode_address(self, address: Optional[Address], country_code: Optional[str] = None) -> AddressResults:
        """Геокодирование структурированного адреса"""
        if address is None:
            raise InvalidInputError("Пустой адрес")
        country_code = self._check_country_code(country_code)
        if self.is_intersection(address):
            raise UnsupportedIntersectionError("Перекрёстки улиц не поддерживаются")
        if not self.is_geocodable(address):
            raise NotGeocodableError("Нет ни улицы, ни города, ни индекса, ни региона")
        if address.country_code is None and country_code is not None:
            address.country_code = country_code
        self.stats.increase_usage(StatsUsageType.GEOCODING)
        start = time.time()

        house_number = address.house_number
        search_address = address.model_copy(update={"house_number": None, "house_number_info": None})
        text = self.labels.get_envelope_address(search_address)
        search_country = country_code or address.country_code

        fuzzy = False
        candidates = []
        if text:
            if address.street_name:
                candidates = self.search.do_search_street(text, search_country, False)
                if not candidates:
                    fuzzy = True
                    candidates = self.search.do_search_street(text, search_country, True)
            else:
                placetypes = self.structured_placetypes(address)
                names = [
                    address.city, address.city_subdivision, address.post_town,
                    address.state, address.zip_code,
                ]
                match_names = [n for n in names if n]
                candidates = self.search.do_search_exact(text, search_country, False, placetypes, match_names)
                if not candidates:
                    fuzzy = True
                    candidates = self.search.do_search_exact(text, search_country, True, placetypes, match_names)

        results = self.address_builder.build(candidates, house_number).limit(STRUCTURED_RESULTS_LIMIT)
        if fuzzy:
            results.message = FUZZY_ACTIVE
        results.qtime = _elapsed_ms(start)
        logger.info(
            f"Геокодирование адреса '{text}' (страна {country_code}) заняло {results.qtime} мс, "
            f"найдено {results.num_found}"
        )
        return results

    def structured_placetypes(self, address: Address) -> List[PlaceType]:
        """Типы мест для поиска адреса без улицы"""
        has_locality = bool(address.city or address.zip_code or address.city_subdivision)
        if address.state and address.city and address.zip_code and address.city_subdivision:
            return ONLY_ADM_PLACETYPE
        if has_locality:
            return CITY_AND_CITYSUBDIVISION_PLACETYPE
        return CITY_CITYSUB_ADM_PLACETYPE

    # --- проверки ---

    def _check_country_code(self, country_code: Optional[str]) -> Optional[str]:
        if country_code is None:
            return None
        code = country_code.strip()
        if len(code) != 2 or not code.isalpha():
            raise InvalidInputError(f"Код страны должен состоять из двух букв: {country_code}")
        return code.upper()

    def need_parsing(self, text: Optional[str]) -> bool:
        return need_parsing(text)

    def is_geocodable(self, address: Address) -> bool:
        if not address.is_geocodable():
            logger.info(f"Адрес {address} не геокодируется")
            return False
        return True

    def is_intersection(self, address: Address) -> bool:
        return bool(address.street_name_intersection)

    def should_set_parsed_address(self, query: AddressQuery) -> bool:
        return (
            query.parsed_address_unlock_key != 0
            and self.parsed_address_unlock_key != 0
            and query.parsed_address_unlock_key == self.parsed_address_unlock_key
        )

    def analyze(self, text: str, country_code: Optional[str] = None) -> Dict[str, Any]:
        """Разбор текста без обращения к индексу (для отладки)"""
        country_code = self._check_country_code(country_code)
        detection = self.country_detector.detect_and_remove_country(text)
        remaining = detection.address if detection.address else text
        prepared = prepare_query(remaining)
        detected_code = country_code or detection.country_code
        found = find_house_number(prepared, detected_code)
        without_number = found.address_without_house_number if found else prepared
        street_types = self.street_detector.get_street_types(without_number)
        alternate = None
        if len(street_types) == 1:
            alternate = self.decompounder.get_other_format_for_text(without_number)
        return {
            "original": text,
            "country_code": detection.country_code,
            "remaining": remaining,
            "need_parsing": self.need_parsing(remaining),
            "prepared": prepared,
            "house_number": found.house_number if found else None,
            "street": without_number,
            "street_types": street_types,
            "alternate": alternate,
        }
