"""
Модели данных геокодера
"""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class GeoPoint(BaseModel):
    """Географические координаты"""
    lat: float
    lon: float


class PlaceType(str, Enum):
    """Типы мест в индексе"""
    STREET = "Street"
    CITY = "City"
    CITY_SUBDIVISION = "CitySubdivision"
    ADM = "Adm"
    COUNTRY = "Country"


# Наборы типов для фильтрации запросов к индексу
ONLY_COUNTRY_PLACETYPE = [PlaceType.COUNTRY]
STREET_PLACETYPE = [PlaceType.STREET]
ONLY_ADM_PLACETYPE = [PlaceType.ADM]
CITY_AND_CITYSUBDIVISION_PLACETYPE = [PlaceType.CITY, PlaceType.CITY_SUBDIVISION]
CITY_CITYSUB_ADM_PLACETYPE = [PlaceType.CITY, PlaceType.CITY_SUBDIVISION, PlaceType.ADM]
EXACT_MATCH_PLACETYPE = [PlaceType.CITY, PlaceType.CITY_SUBDIVISION, PlaceType.ADM, PlaceType.COUNTRY]


class HouseNumber(BaseModel):
    """Номер дома с координатами"""
    number: Optional[str] = None
    location: Optional[GeoPoint] = None


class Candidate(BaseModel):
    """Запись места, возвращённая полнотекстовым индексом"""
    model_config = ConfigDict(frozen=True)

    placetype: PlaceType
    name: Optional[str] = None
    name_alternates: List[str] = Field(default_factory=list)
    score: float = 0.0
    lat: Optional[float] = None
    lng: Optional[float] = None
    lat_admin_centre: Optional[float] = None
    lng_admin_centre: Optional[float] = None
    country_code: Optional[str] = None
    is_in: Optional[str] = None
    is_in_place: Optional[str] = None
    is_in_zip: List[str] = Field(default_factory=list)
    is_in_adm: Optional[str] = None
    adm1_name: Optional[str] = None
    adm2_name: Optional[str] = None
    adm3_name: Optional[str] = None
    adm4_name: Optional[str] = None
    adm5_name: Optional[str] = None
    zipcodes: List[str] = Field(default_factory=list)
    house_numbers: List[HouseNumber] = Field(default_factory=list)
    azimuth_start: Optional[int] = None
    azimuth_end: Optional[int] = None
    fully_qualified_name: Optional[str] = None
    street_ref: Optional[str] = None
    street_type: Optional[str] = None
    feature_id: Optional[int] = None
    openstreetmap_id: Optional[int] = None

    @property
    def source_id(self) -> Optional[int]:
        return self.openstreetmap_id if self.openstreetmap_id is not None else self.feature_id

    @property
    def location(self) -> Optional[GeoPoint]:
        if self.lat is None or self.lng is None:
            return None
        return GeoPoint(lat=self.lat, lon=self.lng)


class GeocodingLevel(str, Enum):
    """Уровень точности адреса, от самого точного к самому грубому"""
    HOUSE_NUMBER = "HOUSE_NUMBER"
    STREET = "STREET"
    CITY = "CITY"
    ADM = "ADM"
    COUNTRY = "COUNTRY"
    UNDEFINED = "UNDEFINED"


class Address(BaseModel):
    """Адрес: вход структурированного геокодирования и единица результата"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = None
    house_number: Optional[str] = None
    house_number_info: Optional[str] = None
    street_name: Optional[str] = None
    street_name_intersection: Optional[str] = None
    street_ref: Optional[str] = None
    street_type: Optional[str] = None
    quarter: Optional[str] = None
    city_subdivision: Optional[str] = None
    city: Optional[str] = None
    dependent_locality: Optional[str] = None
    post_town: Optional[str] = None
    zip_code: Optional[str] = None
    state: Optional[str] = None
    adm1_name: Optional[str] = None
    adm2_name: Optional[str] = None
    adm3_name: Optional[str] = None
    adm4_name: Optional[str] = None
    adm5_name: Optional[str] = None
    country_code: Optional[str] = None
    country: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    score: Optional[float] = None
    id: Optional[int] = None
    source_id: Optional[int] = None
    geocoding_level: GeocodingLevel = GeocodingLevel.UNDEFINED
    formatted_full: Optional[str] = None
    formatted_postal: Optional[str] = None

    def compute_geocoding_level(self) -> GeocodingLevel:
        """Вычисляет уровень по заполненным полям и запоминает его"""
        if self.house_number and self.street_name:
            level = GeocodingLevel.HOUSE_NUMBER
        elif self.street_name:
            level = GeocodingLevel.STREET
        elif self.city or self.quarter or self.city_subdivision or self.zip_code or self.dependent_locality:
            level = GeocodingLevel.CITY
        elif self.state or any((self.adm1_name, self.adm2_name, self.adm3_name, self.adm4_name, self.adm5_name)):
            level = GeocodingLevel.ADM
        elif self.country or self.country_code:
            level = GeocodingLevel.COUNTRY
        else:
            level = GeocodingLevel.UNDEFINED
        self.geocoding_level = level
        return level

    def is_geocodable(self) -> bool:
        """Есть ли хоть одно поле, по которому можно найти место"""
        return any((
            self.street_name, self.state, self.city,
            self.zip_code, self.post_town, self.city_subdivision,
        ))


class AddressQuery(BaseModel):
    """Запрос на геокодирование: свободный текст или структурированный адрес"""
    address: Optional[str] = None
    structured_address: Optional[Address] = None
    country: Optional[str] = None
    fuzzy: bool = True
    postal: bool = False
    point: Optional[GeoPoint] = None
    radius: Optional[float] = None
    limit_nb_result: Optional[int] = None
    parsed_address_unlock_key: int = 0

    @property
    def is_structured(self) -> bool:
        return self.structured_address is not None


class AddressResults(BaseModel):
    """Результат геокодирования"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    result: List[Address] = Field(default_factory=list)
    qtime: int = 0
    message: Optional[str] = None
    parsed_address: Optional[Address] = None

    @computed_field(alias="numFound")
    @property
    def num_found(self) -> int:
        return len(self.result)

    def limit(self, limit: Optional[int]) -> "AddressResults":
        """Обрезает список результатов до limit (None: без ограничения)"""
        if limit is None or limit < 0 or len(self.result) <= limit:
            return self
        return self.model_copy(update={"result": self.result[:limit]})


class FulltextQuery(BaseModel):
    """Запрос к полнотекстовому индексу"""
    text: str
    placetypes: List[PlaceType] = Field(default_factory=list)
    country_code: Optional[str] = None
    point: Optional[GeoPoint] = None
    radius: Optional[float] = None
    fuzzy: bool = False
    all_words_required: bool = True
    spellchecking: bool = False
    offset: int = 0
    size: int = 10


class FulltextResults(BaseModel):
    """Ответ полнотекстового индекса"""
    results: List[Candidate] = Field(default_factory=list)
    num_found: int = 0
    qtime: int = 0


class InterpolationKind(str, Enum):
    EXACT = "EXACT"
    APPROXIMATE = "APPROXIMATE"


class HouseNumberInterpolation(BaseModel):
    """Результат поиска номера дома: точное совпадение или приближение"""
    kind: InterpolationKind
    number: Optional[int] = None
    location: Optional[GeoPoint] = None
    lower_number: Optional[int] = None
    lower_location: Optional[GeoPoint] = None
    higher_number: Optional[int] = None
    higher_location: Optional[GeoPoint] = None

    @property
    def is_exact(self) -> bool:
        return self.kind == InterpolationKind.EXACT

    @property
    def number_as_string(self) -> Optional[str]:
        return str(self.number) if self.number is not None else None


class StructuredGeocodeRequest(BaseModel):
    """Тело запроса структурированного геокодирования"""
    address: Address
    country: Optional[str] = None
    limit: Optional[int] = None
    parsed_address_unlock_key: int = 0
