"""
Нормализатор текста адреса: подготовка запроса, номер дома, типы улиц,
составные (немецкие) названия, сравнение названий
"""
import re
import unicodedata
from typing import Callable, List, NamedTuple, Optional

from rapidfuzz.distance import Levenshtein
from unidecode import unidecode


# Типы улиц: каноническая форма -> варианты написания.
# Сокращения, совпадающие с обычными словами ("st" = saint, "dr" = doctor), не включены
STREET_TYPE_ALIASES = {
	# === АНГЛИЙСКИЕ ===
	"street": ["street"],
	"avenue": ["avenue", "ave", "av"],
	"road": ["road", "rd"],
	"boulevard": ["boulevard", "blvd", "bd", "boul"],
	"lane": ["lane", "ln"],
	"drive": ["drive"],
	"court": ["court"],
	"square": ["square", "sq"],
	"highway": ["highway", "hwy"],
	"parkway": ["parkway", "pkwy"],
	"terrace": ["terrace"],
	"crescent": ["crescent"],
	# === ФРАНЦУЗСКИЕ ===
	"rue": ["rue"],
	"allée": ["allée", "allee"],
	"impasse": ["impasse", "imp"],
	"chemin": ["chemin", "ch"],
	"quai": ["quai"],
	"place": ["place"],
	# === НЕМЕЦКИЕ ===
	"straße": ["straße", "strasse", "str"],
	"weg": ["weg"],
	"gasse": ["gasse"],
	"platz": ["platz"],
	"damm": ["damm"],
	"ufer": ["ufer"],
	"chaussee": ["chaussee"],
	# === ИТАЛЬЯНСКИЕ / ИСПАНСКИЕ / ПОРТУГАЛЬСКИЕ ===
	"via": ["via"],
	"viale": ["viale"],
	"piazza": ["piazza", "p.zza"],
	"corso": ["corso"],
	"calle": ["calle", "c/"],
	"avenida": ["avenida", "avda"],
	"plaza": ["plaza"],
	"paseo": ["paseo"],
	"rua": ["rua"],
	"travessa": ["travessa"],
	# === НИДЕРЛАНДСКИЕ ===
	"straat": ["straat"],
	"laan": ["laan"],
	"plein": ["plein"],
	"gracht": ["gracht"],
	# === СЛАВЯНСКИЕ ===
	"ulica": ["ulica", "ul"],
	"ulice": ["ulice"],
	"náměstí": ["náměstí", "nám"],
}

# Сокращение -> полная форма для раскрытия типа улицы
STREET_TYPE_ABBREVIATIONS = {
	"str": "straße",
	"ave": "avenue",
	"blvd": "boulevard",
	"rd": "road",
	"ln": "lane",
	"hwy": "highway",
	"pkwy": "parkway",
	"avda": "avenida",
}

# Окончания составных названий: "Goethestraße" <-> "Goethe Straße"
COMPOUND_SUFFIXES = ["straße", "strasse", "weg", "gasse", "platz", "allee", "damm", "ufer", "chaussee"]
COMPOUND_COUNTRY_CODES = {"DE", "AT", "CH", "LI"}
_MIN_COMPOUND_STEM = 3

_STREET_TYPE_LOOKUP = {}
for _canon, _variants in STREET_TYPE_ALIASES.items():
	for _variant in _variants:
		_STREET_TYPE_LOOKUP[_variant] = _canon

# Полный британский почтовый индекс: "SW1A 1AA", "M1 1AE", "EC1A1BB"
GB_POSTCODE_REGEX = re.compile(
	r"\b(?:GIR ?0AA|[A-PR-UWYZ][A-HK-Y]?\d[A-Z\d]? ?\d[ABD-HJLNP-UW-Z]{2})\b",
	re.IGNORECASE,
)


def fold(text: Optional[str]) -> str:
	"""Нижний регистр, транслитерация в ASCII, схлопывание пробелов"""
	text = unidecode(text or "").lower()
	text = re.sub(r"[^\w\s\-\.]", " ", text)
	return re.sub(r"\s+", " ", text).strip()


def prepare_query(text: Optional[str]) -> str:
	"""Очистка сырого адреса перед эвристическим поиском"""
	if not text:
		return ""
	text = unicodedata.normalize('NFC', text)
	# Разделители ; и | трактуем как запятую
	text = re.sub(r'\s*[;|]\s*', ', ', text)
	# Скобки, кавычки и прочий мусор
	text = re.sub(r'["“”«»()\[\]{}<>*+=_#~^]', ' ', text)
	text = re.sub(r'\s*,[\s,]*', ', ', text)
	text = re.sub(r'\s+', ' ', text)
	return text.strip(' ,')


def need_parsing(text: Optional[str]) -> bool:
	"""Запрос из нескольких слов или частей: нужен парсер"""
	if text is None:
		return False
	stripped = text.strip()
	return len(stripped) > 0 and any(sep in stripped for sep in (" ", ",", ";"))


class HouseNumberAddress(NamedTuple):
	house_number: str
	address_without_house_number: str


# "1234/5" (Словакия, Чехия, составные номера)
_SLASH_NUMBER = re.compile(r'(?<![\w/])(\d{1,5}/\d{1,4}[a-z]?)(?![\w/])', re.IGNORECASE)
# номер после названия улицы: "Hauptstraße 10, Berlin", "Main St 10"
_TRAILING_NUMBER = re.compile(r'(?<=[^\W\d_])\.?\s+(\d{1,4}[a-z]?)\s*(?=,|$)', re.IGNORECASE)
# номер перед названием улицы: "10 Main St", "10a, rue de la Paix"
_LEADING_NUMBER = re.compile(r'^\s*(\d{1,4}[a-z]?)(?:\s*,\s*|\s+)(?=[^\W\d_])', re.IGNORECASE)


def _cut(text: str, start: int, end: int) -> str:
	result = (text[:start] + ' ' + text[end:]).strip()
	result = re.sub(r'\s*,[\s,]*', ', ', result)
	return re.sub(r'\s+', ' ', result).strip(' ,')


def find_house_number(text: Optional[str], country_code: Optional[str] = None) -> Optional[HouseNumberAddress]:
	"""Извлечение номера дома из текста.

	Пятизначные числа не считаются номером дома (это почтовые индексы).
	"""
	if not text:
		return None

	# Составные номера со слэшем: для SK/CZ это основная форма
	slash = _SLASH_NUMBER.search(text)
	if slash and (country_code or "").upper() in {"SK", "CZ"}:
		return HouseNumberAddress(slash.group(1), _cut(text, slash.start(1), slash.end(1)))

	trailing = _TRAILING_NUMBER.search(text)
	if trailing:
		return HouseNumberAddress(trailing.group(1), _cut(text, trailing.start(1), trailing.end(1)))

	leading = _LEADING_NUMBER.search(text)
	if leading:
		return HouseNumberAddress(leading.group(1), _cut(text, leading.start(1), leading.end()))

	if slash:
		return HouseNumberAddress(slash.group(1), _cut(text, slash.start(1), slash.end(1)))
	return None


def is_same_name(expected: Optional[str], actual: Optional[str], max_distance: int = 1) -> bool:
	"""Названия совпадают с точностью до max_distance правок (без регистра, диакритики и дефисов)"""
	if expected is None or actual is None:
		return False
	left = re.sub(r'[\s\-\.,]+', ' ', fold(expected)).strip()
	right = re.sub(r'[\s\-\.,]+', ' ', fold(actual)).strip()
	if not left or not right:
		return False
	return Levenshtein.distance(left, right, score_cutoff=max_distance) <= max_distance


def contains_gb_postcode(text: Optional[str]) -> bool:
	"""Есть ли в тексте британский почтовый индекс"""
	if not text:
		return False
	return GB_POSTCODE_REGEX.search(text) is not None


# Предикаты, при которых кандидат точного поиска сохраняется без сравнения названий
DEFAULT_EXACT_MATCH_OVERRIDES: List[Callable[[str], bool]] = [contains_gb_postcode]


def _tokens(text: str) -> List[str]:
	return [t.strip('.,') for t in re.split(r'[\s,;]+', (text or '').lower()) if t.strip('.,')]


def _compound_suffix(token: str) -> Optional[str]:
	for suffix in COMPOUND_SUFFIXES:
		if token.endswith(suffix) and len(token) - len(suffix) >= _MIN_COMPOUND_STEM:
			return suffix
	return None


class SmartStreetDetection:
	"""Распознаёт в тексте токены типа улицы"""

	def get_street_types(self, text: Optional[str]) -> List[str]:
		found: List[str] = []
		for token in _tokens(text or ''):
			canon = _STREET_TYPE_LOOKUP.get(token)
			if canon is None:
				# "goethestraße", "hauptstr"
				suffix = _compound_suffix(token)
				if suffix is None and token.endswith("str") and len(token) - 3 >= _MIN_COMPOUND_STEM:
					suffix = "str"
				if suffix is not None:
					canon = _STREET_TYPE_LOOKUP.get(suffix, suffix)
			if canon is not None and canon not in found:
				found.append(canon)
		return found


def expand_street_type(text: Optional[str], country_code: Optional[str] = None) -> str:
	"""Раскрывает сокращения типа улицы: "Hauptstr." -> "Hauptstraße", "Main Ave" -> "Main avenue" """
	if not text:
		return ""
	# слитное немецкое сокращение
	result = re.sub(r'(?<=[^\W\d_]{%d})str\b\.?' % _MIN_COMPOUND_STEM, 'straße', text, flags=re.IGNORECASE)
	for abbreviation, full in STREET_TYPE_ABBREVIATIONS.items():
		result = re.sub(r'(?<![\w])' + re.escape(abbreviation) + r'\b\.?', full, result, flags=re.IGNORECASE)
	return re.sub(r'\s+', ' ', result).strip()


class Decompounder:
	"""Переключение между слитной и раздельной формой составных названий"""

	def is_decompound_country_code(self, country_code: Optional[str]) -> bool:
		return bool(country_code) and country_code.upper() in COMPOUND_COUNTRY_CODES

	def is_decompound_name(self, text: Optional[str]) -> bool:
		"""Похоже ли название на составное (слитное или раздельное)"""
		tokens = _tokens(expand_street_type(text))
		for i, token in enumerate(tokens):
			if _compound_suffix(token):
				return True
			if i > 0 and token in COMPOUND_SUFFIXES and len(tokens[i - 1]) >= _MIN_COMPOUND_STEM:
				return True
		return False

	def get_other_format_for_text(self, text: Optional[str]) -> Optional[str]:
		"""Goethestraße -> Goethe Straße, Goethe Straße -> Goethestraße"""
		if not text:
			return None
		expanded = expand_street_type(text)
		words = expanded.split(' ')
		for i, word in enumerate(words):
			bare = word.rstrip('.,')
			tail = word[len(bare):]
			lowered = bare.lower()
			suffix = _compound_suffix(lowered)
			if suffix:
				stem = bare[:len(bare) - len(suffix)].rstrip('-')
				words[i] = f"{stem} {bare[len(bare) - len(suffix):]}{tail}"
				return ' '.join(words)
			if i > 0 and lowered in COMPOUND_SUFFIXES and len(words[i - 1]) >= _MIN_COMPOUND_STEM:
				joined = f"{words[i - 1]}{lowered}{tail}"
				return ' '.join(words[:i - 1] + [joined] + words[i + 1:])
		return None
