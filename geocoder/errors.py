"""
Исключения геокодера
"""


class GeocodingError(Exception):
    """Базовая ошибка геокодирования"""


class InvalidInputError(GeocodingError):
    """Пустой запрос, пустой адрес или код страны не из двух букв"""


class NotGeocodableError(GeocodingError):
    """В структурированном адресе нет ни одного поля для поиска"""


class UnsupportedIntersectionError(GeocodingError):
    """Перекрёстки улиц не поддерживаются"""


class AddressParserError(GeocodingError):
    """Сбой внешнего парсера адресов"""
