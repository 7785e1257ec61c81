"""
Построение адресов из кандидатов индекса: классификация по типу места,
склейка подряд идущих кусков одной улицы и привязка номера дома
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .geo import distance_m, is_interpolation_possible
from .housenumbers import search_house_number
from .labels import LabelGenerator
from .models import (
    Address,
    AddressResults,
    Candidate,
    GeocodingLevel,
    GeoPoint,
    HouseNumberInterpolation,
    PlaceType,
)

logger = logging.getLogger(__name__)

# Два куска улицы дальше этого расстояния (м) считаются разными улицами
SAME_STREET_MAX_DISTANCE = 12000


class SegmentState(str, Enum):
    NO_STREET = "NO_STREET"
    IN_STREET_SEGMENT = "IN_STREET_SEGMENT"


@dataclass
class _Accumulator:
    """Состояние прохода по кандидатам"""
    addresses: List[Address] = field(default_factory=list)
    state: SegmentState = SegmentState.NO_STREET
    last_name: Optional[str] = None
    last_is_in: Optional[str] = None
    last_location: Optional[GeoPoint] = None
    # адрес, который текущий сегмент улицы отдаст при закрытии
    pending: Optional[Address] = None
    resolved: bool = False


def street_is_in(candidate: Candidate) -> Optional[str]:
    """Населённый пункт улицы вместе с уточнением места"""
    parts = [p for p in (candidate.is_in, candidate.is_in_place) if p]
    return " ".join(parts) if parts else None


def resolve_state(candidate: Candidate) -> Optional[str]:
    """Регион для адреса.

    Для Adm берём собственное название. Во Франции берём adm2 (департамент),
    чтобы не показывать регион верхнего уровня. Для улиц приоритет у is_in_adm.
    """
    if candidate.placetype == PlaceType.ADM:
        return candidate.name
    if (candidate.country_code or "").upper() == "FR" and candidate.adm2_name:
        return candidate.adm2_name
    if candidate.placetype == PlaceType.STREET and candidate.is_in_adm:
        return candidate.is_in_adm
    return candidate.adm1_name or candidate.adm2_name


class AddressBuilder:
    """Превращает ранжированный список кандидатов в список адресов"""

    def __init__(self, label_generator: Optional[LabelGenerator] = None):
        self.labels = label_generator or LabelGenerator()

    def build(self, candidates: Optional[List[Candidate]], house_number_to_find: Optional[str] = None) -> AddressResults:
        acc = _Accumulator()
        if candidates:
            logger.debug(f"Найдено {len(candidates)} кандидатов")
            for candidate in candidates:
                if candidate is None:
                    continue
                self._reduce(acc, candidate, house_number_to_find)
        self._close_segment(acc)
        return AddressResults(result=acc.addresses)

    def build_country(self, candidates: Optional[List[Candidate]]) -> AddressResults:
        """Результат для запроса, который оказался названием страны"""
        if not candidates:
            return AddressResults()
        candidate = candidates[0]
        address = Address(
            country=candidate.name,
            name=candidate.name,
            country_code=candidate.country_code,
            lat=candidate.lat,
            lng=candidate.lng,
            id=candidate.feature_id,
            source_id=candidate.source_id,
            score=candidate.score,
            geocoding_level=GeocodingLevel.COUNTRY,
            formatted_full=candidate.fully_qualified_name or candidate.name,
        )
        return AddressResults(result=[address])

    # --- свёртка ---

    def _reduce(self, acc: _Accumulator, candidate: Candidate, house_number: Optional[str]) -> None:
        if candidate.placetype != PlaceType.STREET:
            self._close_segment(acc)
            acc.addresses.append(self._finish(self._populate(candidate), candidate))
            return

        name = candidate.name
        is_in = street_is_in(candidate)
        location = candidate.location

        if not name:
            # улица без названия: ищем номер дома, но в сегмент не склеиваем
            self._close_segment(acc)
            address, _ = self._street_address(candidate, house_number)
            acc.addresses.append(address)
        elif acc.state == SegmentState.IN_STREET_SEGMENT and self._is_same_street(acc, name, is_in, location):
            logger.debug(f"Та же улица: {name} ({is_in})")
            if not acc.resolved:
                address, resolution = self._street_address(candidate, house_number)
                if resolution is not None and resolution.is_exact:
                    # все предыдущие адреса сегмента были без точного номера
                    acc.pending = address
                    acc.resolved = True
                elif address.house_number and not acc.pending.house_number:
                    acc.pending = address
        else:
            self._close_segment(acc)
            address, resolution = self._street_address(candidate, house_number)
            acc.state = SegmentState.IN_STREET_SEGMENT
            acc.pending = address
            acc.resolved = resolution is not None and resolution.is_exact

        acc.last_name = name
        acc.last_is_in = is_in
        acc.last_location = location

    def _close_segment(self, acc: _Accumulator) -> None:
        if acc.state == SegmentState.IN_STREET_SEGMENT and acc.pending is not None:
            acc.addresses.append(acc.pending)
        acc.state = SegmentState.NO_STREET
        acc.pending = None
        acc.resolved = False
        acc.last_name = None
        acc.last_is_in = None
        acc.last_location = None

    def _is_same_street(
        self,
        acc: _Accumulator,
        name: str,
        is_in: Optional[str],
        location: Optional[GeoPoint],
    ) -> bool:
        if acc.last_name is None or name.lower() != acc.last_name.lower():
            return False
        if is_in is None or acc.last_is_in is None or is_in.lower() != acc.last_is_in.lower():
            return False
        if location is None or acc.last_location is None:
            return False
        return distance_m(acc.last_location, location) <= SAME_STREET_MAX_DISTANCE

    # --- заполнение адреса ---

    def _populate(self, candidate: Candidate) -> Address:
        address = Address(
            score=candidate.score,
            id=candidate.feature_id,
            source_id=candidate.source_id,
            country_code=candidate.country_code,
            state=resolve_state(candidate),
            adm1_name=candidate.adm1_name,
            adm2_name=candidate.adm2_name,
            adm3_name=candidate.adm3_name,
            adm4_name=candidate.adm4_name,
            adm5_name=candidate.adm5_name,
        )
        if candidate.placetype != PlaceType.STREET:
            address.name = candidate.name
        if candidate.lat_admin_centre is not None and candidate.lng_admin_centre is not None:
            address.lat = candidate.lat_admin_centre
            address.lng = candidate.lng_admin_centre
        else:
            address.lat = candidate.lat
            address.lng = candidate.lng
        if candidate.zipcodes:
            address.zip_code = self.labels.get_best_zip_string(candidate.zipcodes)
        elif candidate.is_in_zip:
            address.zip_code = self.labels.get_best_zip_string(candidate.is_in_zip)

        if candidate.placetype == PlaceType.CITY:
            address.city = candidate.name
        elif candidate.placetype == PlaceType.CITY_SUBDIVISION:
            address.quarter = candidate.name
        elif candidate.placetype == PlaceType.COUNTRY:
            address.country = candidate.name
        return address

    def _street_address(
        self,
        candidate: Candidate,
        house_number: Optional[str],
    ) -> Tuple[Address, Optional[HouseNumberInterpolation]]:
        address = self._populate(candidate)
        address.street_name = candidate.name
        address.street_ref = candidate.street_ref
        address.city = candidate.is_in
        address.dependent_locality = candidate.is_in_place
        if candidate.is_in_zip:
            address.zip_code = candidate.is_in_zip[0]

        resolution = None
        if house_number and candidate.house_numbers:
            do_interpolation = is_interpolation_possible(candidate.azimuth_start, candidate.azimuth_end)
            resolution = search_house_number(
                house_number, candidate.house_numbers, candidate.country_code, do_interpolation,
            )
            if resolution is not None and resolution.location is not None:
                if resolution.is_exact:
                    logger.debug(f"Точный номер дома {resolution.number_as_string} на {candidate.name}")
                else:
                    logger.debug(f"Интерполирован номер дома {resolution.number_as_string} на {candidate.name}")
                address.house_number = resolution.number_as_string
                address.lat = resolution.location.lat
                address.lng = resolution.location.lon
        return self._finish(address, candidate), resolution

    def _finish(self, address: Address, candidate: Candidate) -> Address:
        address.compute_geocoding_level()
        if (candidate.placetype == PlaceType.STREET and address.house_number) or not candidate.fully_qualified_name:
            address.formatted_full = self.labels.get_fully_qualified_name(address)
        else:
            address.formatted_full = candidate.fully_qualified_name
        address.formatted_postal = self.labels.get_envelope_address(address)
        # тип улицы из индекса (RESIDENTIAL и т.п.) не участвует в почтовом виде
        address.street_type = candidate.street_type
        return address


def build_addresses(candidates: Optional[List[Candidate]], house_number_to_find: Optional[str] = None) -> AddressResults:
    return AddressBuilder().build(candidates, house_number_to_find)
