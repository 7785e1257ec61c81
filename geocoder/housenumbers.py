"""
Поиск номера дома среди известных номеров улицы и интерполяция
"""
import logging
import re
from typing import List, Optional, Union

from .geo import interpolated_point
from .models import HouseNumber, HouseNumberInterpolation, InterpolationKind

logger = logging.getLogger(__name__)

# Страны, где номер вида "1234/5" означает описной/ориентационный номер
SK_CZ_COUNTRY_CODES = {"SK", "CZ"}

_FIRST_NUMBER = re.compile(r"\d+")
_SK_CZ_ORIENTATION_NUMBER = re.compile(r"/\s*(\d+)")


def normalize_number_to_int(number: Optional[str]) -> Optional[int]:
    """Первое число в строке: "10a" -> 10, "10-12" -> 10, "bis" -> None"""
    if number is None:
        return None
    match = _FIRST_NUMBER.search(str(number))
    if not match:
        return None
    return int(match.group())


def normalize_sk_cz_number_to_int(number: Optional[str]) -> Optional[int]:
    """Для Словакии и Чехии адресным считается ориентационный номер после "/"

    "1234/5" -> 5, "12" -> 12
    """
    if number is None:
        return None
    match = _SK_CZ_ORIENTATION_NUMBER.search(str(number))
    if match:
        return int(match.group(1))
    return normalize_number_to_int(number)


def normalize_number(number: Optional[Union[str, int]], country_code: Optional[str] = None) -> Optional[int]:
    """Нормализация номера дома с учётом правил страны"""
    if number is None:
        return None
    if isinstance(number, int):
        return number
    if country_code and country_code.upper() in SK_CZ_COUNTRY_CODES:
        return normalize_sk_cz_number_to_int(number)
    return normalize_number_to_int(number)


def search_house_number(
    house_number_to_find: Optional[Union[str, int]],
    house_numbers: Optional[List[HouseNumber]],
    country_code: Optional[str] = None,
    do_interpolation: bool = False,
) -> Optional[HouseNumberInterpolation]:
    """Ищет номер дома среди номеров улицы.

    Точное совпадение (первое по порядку) даёт EXACT с координатами кандидата.
    Иначе запоминаются ближайшие меньший и больший номера: APPROXIMATE с
    соседями, а при разрешённой интерполяции и обоих соседях ещё и с
    вычисленной точкой. Если соседей нет или точку построить нельзя, возвращает None.
    """
    target = normalize_number(house_number_to_find, country_code)
    if target is None or not house_numbers:
        logger.debug("Нет номера дома для поиска")
        return None

    logger.debug(f"Анализируем номера: {','.join(str(hn.number) for hn in house_numbers if hn)}")

    nearest_lower: Optional[int] = None
    nearest_upper: Optional[int] = None
    house_lower: Optional[HouseNumber] = None
    house_upper: Optional[HouseNumber] = None

    for candidate in house_numbers:
        if candidate is None or candidate.number is None:
            continue
        normalized = normalize_number(candidate.number, country_code)
        if normalized is None:
            continue
        if normalized == target:
            logger.info(f"Найден номер дома: {candidate.number}")
            return HouseNumberInterpolation(
                kind=InterpolationKind.EXACT,
                number=target,
                location=candidate.location,
            )
        if normalized < target:
            if nearest_lower is None or normalized > nearest_lower:
                nearest_lower = normalized
                house_lower = candidate
        elif nearest_upper is None or normalized < nearest_upper:
            nearest_upper = normalized
            house_upper = candidate

    if house_lower is None and house_upper is None:
        logger.debug(f"Для номера {target} нет ни меньшего, ни большего соседа")
        return None

    result = HouseNumberInterpolation(
        kind=InterpolationKind.APPROXIMATE,
        lower_number=nearest_lower,
        lower_location=house_lower.location if house_lower else None,
        higher_number=nearest_upper,
        higher_location=house_upper.location if house_upper else None,
    )
    logger.debug(f"Номер {target}: меньший {nearest_lower}, больший {nearest_upper}")

    # на изогнутой улице точка уйдёт с линии, поэтому только по прямой
    if do_interpolation and house_lower is not None and house_upper is not None:
        location = interpolated_point(
            house_lower.location, house_upper.location,
            nearest_lower, nearest_upper, target,
        )
        if location is None:
            return None
        return result.model_copy(update={"number": target, "location": location})
    return result
