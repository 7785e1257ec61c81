"""
Формирование подписей адреса: полная подпись и почтовый конверт
"""
from typing import Iterable, List, Optional

from .countries import country_name
from .models import Address

# Страны, где номер дома пишется после названия улицы: "Hauptstraße 10"
HOUSE_NUMBER_AFTER_STREET = {
    "DE", "AT", "CH", "LI", "NL", "BE", "LU", "IT", "ES", "PT", "PL", "CZ", "SK",
    "HU", "SI", "HR", "DK", "SE", "NO", "FI", "IS", "GR", "TR", "RU", "UA", "BR", "AR", "MX",
}

# Страны, где индекс пишется после города и региона: "Springfield, IL 62701"
ZIP_AFTER_CITY = {"US", "CA", "GB", "IE", "AU", "NZ", "IN", "JP", "CN", "ZA"}


def _join(parts: Iterable[Optional[str]], separator: str = ", ") -> str:
    seen: List[str] = []
    for part in parts:
        if part and part.strip() and part.strip().lower() not in (s.lower() for s in seen):
            seen.append(part.strip())
    return separator.join(seen)


class LabelGenerator:
    """Генератор подписей для адресов"""

    def get_best_zip_string(self, zipcodes: Optional[Iterable[str]]) -> Optional[str]:
        """Лучший индекс из списка: без CEDEX, затем самый короткий"""
        if not zipcodes:
            return None
        candidates = [z.strip() for z in zipcodes if z and z.strip()]
        if not candidates:
            return None
        plain = [z for z in candidates if "cedex" not in z.lower()]
        pool = plain or candidates
        return sorted(pool, key=lambda z: (len(z), z))[0]

    def street_line(self, address: Address) -> Optional[str]:
        if not address.street_name:
            return None
        if not address.house_number:
            return address.street_name
        if (address.country_code or "").upper() in HOUSE_NUMBER_AFTER_STREET:
            return f"{address.street_name} {address.house_number}"
        return f"{address.house_number} {address.street_name}"

    def get_fully_qualified_name(self, address: Address) -> str:
        """Полная подпись: улица, район, город, индекс, административные единицы, страна"""
        return _join([
            address.name if not address.street_name else None,
            self.street_line(address),
            address.quarter,
            address.dependent_locality,
            address.city,
            address.zip_code,
            address.adm5_name,
            address.adm4_name,
            address.adm3_name,
            address.adm2_name,
            address.adm1_name,
            address.state,
            address.country or country_name(address.country_code),
        ])

    def get_envelope_address(self, address: Address) -> str:
        """Почтовый вид адреса в одну строку через запятую"""
        country_code = (address.country_code or "").upper()
        country = address.country or country_name(country_code) or country_code or None
        locality = address.city or address.post_town
        if country_code in ZIP_AFTER_CITY:
            region_zip = _join([address.state, address.zip_code], " ")
            return _join([
                self.street_line(address),
                address.dependent_locality or address.city_subdivision,
                locality,
                region_zip,
                country,
            ])
        city_line = _join([address.zip_code, locality], " ")
        return _join([
            self.street_line(address),
            address.dependent_locality or address.city_subdivision,
            city_line,
            address.state,
            country,
        ])
