"""
Клиент внешнего парсера адресов
"""
import logging
from typing import List, Optional

import requests
from pydantic import ValidationError

from .errors import AddressParserError
from .models import Address

logger = logging.getLogger(__name__)


class RemoteAddressParser:
    """Парсер адресов, доступный по HTTP.

    Ожидает JSON вида {"result": [{"streetName": ..., "houseNumber": ..., ...}]}
    """

    def __init__(self, url: str, timeout: int = 10, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def parse(self, text: str, country_code: Optional[str] = None) -> List[Address]:
        params = {"address": text, "format": "json"}
        if country_code:
            params["country"] = country_code
        try:
            response = self.session.get(self.url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise AddressParserError(f"Парсер адресов недоступен: {e}") from e

        items = (data.get("result") or []) if isinstance(data, dict) else []
        try:
            addresses = [Address.model_validate(item) for item in items]
        except ValidationError as e:
            raise AddressParserError(f"Некорректный ответ парсера: {e}") from e
        logger.debug(f"Парсер вернул {len(addresses)} адресов для '{text}'")
        return addresses
