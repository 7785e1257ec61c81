"""
Геометрические утилиты: расстояния, азимуты, интерполяция точки на отрезке
"""
import math
from typing import Optional

from shapely.geometry import LineString, Point

from .models import GeoPoint

EARTH_RADIUS_M = 6371000.0

# Максимальная разница азимутов начала и конца улицы, при которой
# улицу ещё можно считать прямой
INTERPOLATION_CURVE_TOLERANCE = 45


def distance_m(a: GeoPoint, b: GeoPoint) -> float:
    """Расстояние по большому кругу в метрах"""
    rlat1 = math.radians(a.lat)
    rlon1 = math.radians(a.lon)
    rlat2 = math.radians(b.lat)
    rlon2 = math.radians(b.lon)

    dlat = rlat2 - rlat1
    dlon = rlon2 - rlon1

    h = math.sin(dlat / 2) ** 2 + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_M * c


def is_interpolation_possible(azimuth_start: Optional[int], azimuth_end: Optional[int]) -> bool:
    """Улица достаточно прямая для линейной интерполяции"""
    if azimuth_start is None or azimuth_end is None:
        return False
    return abs(azimuth_start - azimuth_end) < INTERPOLATION_CURVE_TOLERANCE


def interpolated_point(
    lower: Optional[GeoPoint],
    upper: Optional[GeoPoint],
    lower_number: int,
    upper_number: int,
    target: int,
) -> Optional[GeoPoint]:
    """Точка на отрезке lower -> upper пропорционально номеру дома.

    Возвращает None, если отрезок построить нельзя или точка вышла за него.
    """
    if lower is None or upper is None or upper_number == lower_number:
        return None
    fraction = (target - lower_number) / (upper_number - lower_number)
    if fraction < 0 or fraction > 1:
        return None
    line = LineString([(lower.lon, lower.lat), (upper.lon, upper.lat)])
    if line.is_empty:
        return None
    if line.length == 0:
        return GeoPoint(lat=lower.lat, lon=lower.lon)
    point = line.interpolate(fraction, normalized=True)
    if point.is_empty or line.distance(Point(point.x, point.y)) > 1e-9:
        return None
    return GeoPoint(lat=point.y, lon=point.x)
