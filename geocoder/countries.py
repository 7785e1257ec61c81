"""
Определение страны в тексте адреса
"""
import re
from typing import Dict, List, NamedTuple, Optional

from .normalizer import fold


# Код страны -> варианты написания (первый вариант используется для подписи)
COUNTRY_ALIASES: Dict[str, List[str]] = {
	"US": ["united states", "united states of america", "usa", "u.s.a.", "etats-unis", "estados unidos"],
	"CA": ["canada"],
	"MX": ["mexico", "méxico"],
	"BR": ["brazil", "brasil"],
	"AR": ["argentina"],
	"GB": ["united kingdom", "great britain", "uk", "england", "scotland", "wales"],
	"IE": ["ireland", "éire"],
	"FR": ["france"],
	"DE": ["germany", "deutschland", "allemagne"],
	"AT": ["austria", "österreich", "autriche"],
	"CH": ["switzerland", "schweiz", "suisse", "svizzera"],
	"IT": ["italy", "italia", "italie"],
	"ES": ["spain", "españa", "espagne"],
	"PT": ["portugal"],
	"NL": ["netherlands", "nederland", "holland", "pays-bas"],
	"BE": ["belgium", "belgique", "belgië", "belgien"],
	"LU": ["luxembourg", "luxemburg"],
	"DK": ["denmark", "danmark"],
	"SE": ["sweden", "sverige"],
	"NO": ["norway", "norge"],
	"FI": ["finland", "suomi"],
	"IS": ["iceland", "ísland"],
	"PL": ["poland", "polska"],
	"CZ": ["czech republic", "czechia", "česko", "česká republika"],
	"SK": ["slovakia", "slovensko"],
	"HU": ["hungary", "magyarország"],
	"SI": ["slovenia", "slovenija"],
	"HR": ["croatia", "hrvatska"],
	"RO": ["romania", "românia"],
	"BG": ["bulgaria", "българия"],
	"GR": ["greece", "ελλάδα"],
	"RU": ["russia", "russian federation", "россия"],
	"UA": ["ukraine", "україна"],
	"TR": ["turkey", "türkiye"],
	"IL": ["israel"],
	"MA": ["morocco", "maroc"],
	"ZA": ["south africa"],
	"IN": ["india"],
	"CN": ["china"],
	"JP": ["japan"],
	"AU": ["australia"],
	"NZ": ["new zealand"],
}

# Коды, совпадающие с сокращениями штатов США ("Springfield, IL")
US_STATE_CODES = {
	"AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA", "HI", "ID", "IL", "IN", "IA",
	"KS", "KY", "LA", "ME", "MD", "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
	"NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC", "SD", "TN", "TX", "UT", "VT",
	"VA", "WA", "WV", "WI", "WY",
}

_MAX_ALIAS_WORDS = 4
_SEPARATORS = re.compile(r"[\s,;]+")

# Слово перед названием страны, которое делает его частью другого названия:
# "New Mexico", "New South Wales", "Northern Ireland", "Avenue de France"
NOT_COUNTRY_PREFIXES = {
	"new", "northern", "southern", "south", "north", "west", "east", "nova",
	"de", "du", "des", "la", "le", "of", "von", "der",
}


_FOLDED_ALIASES: Dict[str, str] = {}
for _code, _variants in COUNTRY_ALIASES.items():
	for _variant in _variants:
		_FOLDED_ALIASES[fold(_variant)] = _code


def country_name(country_code: Optional[str]) -> Optional[str]:
	"""Название страны по коду для подписей"""
	if not country_code:
		return None
	variants = COUNTRY_ALIASES.get(country_code.upper())
	if not variants:
		return None
	return variants[0].title()


class CountryDetection(NamedTuple):
	country_code: Optional[str]
	address: str


class CountryDetector:
	"""Находит название или код страны в начале/конце адреса и убирает его"""

	def detect_and_remove_country(self, text: Optional[str]) -> CountryDetection:
		if not text or not text.strip():
			return CountryDetection(None, text or "")
		raw = text.strip()

		# Отдельный сегмент через запятую: "..., US" / "France, Paris ..."
		segments = [s.strip() for s in raw.split(",")]
		if len(segments) > 1 or raw.isupper():
			code = self._segment_country(segments[-1])
			if code:
				return CountryDetection(code, ", ".join(s for s in segments[:-1] if s))
			code = self._segment_country(segments[0])
			if code and len(segments) > 1:
				return CountryDetection(code, ", ".join(s for s in segments[1:] if s))
		if len(segments) > 1:
			# с запятыми страна только целым сегментом ("Santa Fe, New Mexico")
			return CountryDetection(None, raw)

		# Хвостовые слова: "paris france", "10 downing street united kingdom"
		words = [w for w in _SEPARATORS.split(raw) if w]
		for size in range(min(_MAX_ALIAS_WORDS, len(words)), 0, -1):
			code = _FOLDED_ALIASES.get(fold(" ".join(words[-size:])))
			if not code:
				continue
			if len(words) > size and fold(words[-size - 1]) in NOT_COUNTRY_PREFIXES:
				continue
			return CountryDetection(code, self._strip_tail(raw, size))
		return CountryDetection(None, raw)

	def _segment_country(self, segment: str) -> Optional[str]:
		if not segment:
			return None
		# ISO-код принимаем только заглавными, чтобы не спутать "St" с Сан-Томе
		if len(segment) == 2 and segment.isalpha() and segment.isupper():
			if segment in COUNTRY_ALIASES and segment not in US_STATE_CODES:
				return segment
			return None
		return _FOLDED_ALIASES.get(fold(segment))

	def _strip_tail(self, raw: str, size: int) -> str:
		parts = re.split(r"([\s,;]+)", raw)
		words_seen = 0
		cut = len(parts)
		for i in range(len(parts) - 1, -1, -1):
			if parts[i] and not _SEPARATORS.fullmatch(parts[i]):
				words_seen += 1
				if words_seen == size:
					cut = i
					break
		return "".join(parts[:cut]).strip(" ,;")
