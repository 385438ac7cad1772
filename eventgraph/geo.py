"""Coordinate parsing, great-circle distance and locations."""
import logging
import math
import re
from typing import Tuple

from eventgraph.models import City, Location

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0

DIRECTIONS = ['N', 'NO', 'O', 'SO', 'S', 'SW', 'W', 'NW']

_NUMBER = r'(\d+(?:\.\d+)?)'
_DECIMAL_PAIR = re.compile(r'^\s*([-+]?\d+(?:\.\d+)?)\s*[,;\s]\s*([-+]?\d+(?:\.\d+)?)\s*$')
# N 47° 59.940 E 7° 50.526
_PREFIX_COMPONENT = (
    rf"([NSEWO])\s*{_NUMBER}\s*°\s*(?:{_NUMBER}\s*['′]?\s*)?(?:{_NUMBER}\s*[\"″]\s*)?"
)
# 47°59'56.4"N 7°50'31.6"E
_SUFFIX_COMPONENT = (
    rf"{_NUMBER}\s*°\s*(?:{_NUMBER}\s*['′]\s*)?(?:{_NUMBER}\s*[\"″]\s*)?([NSEWO])"
)
_PREFIX_PAIR = re.compile(rf'^\s*{_PREFIX_COMPONENT}\s*,?\s*{_PREFIX_COMPONENT}\s*$', re.IGNORECASE)
_SUFFIX_PAIR = re.compile(rf'^\s*{_SUFFIX_COMPONENT}\s*,?\s*{_SUFFIX_COMPONENT}\s*$', re.IGNORECASE)

_COUNTRY_MARKERS = [
    (re.compile(r'^\s*(.*?)\s*,\s*FR\s*(\U0001F1EB\U0001F1F7)?\s*$'), 'Frankreich'),
    (re.compile(r'^\s*(.*?)\s*,\s*CH\s*(\U0001F1E8\U0001F1ED)?\s*$'), 'Schweiz'),
]


def _to_degrees(deg: str, minutes: str, seconds: str, hemisphere: str) -> float:
    value = float(deg)
    if minutes:
        value += float(minutes) / 60.0
    if seconds:
        value += float(seconds) / 3600.0
    if hemisphere.upper() in ('S', 'W'):
        value = -value
    return value


def _check_range(lat: float, lon: float) -> Tuple[float, float]:
    if not -90.0 <= lat <= 90.0 or not -180.0 <= lon <= 180.0:
        raise ValueError(f"coordinates out of range: {lat}, {lon}")
    return lat, lon


def parse_coordinates(text: str) -> Tuple[float, float]:
    """
    Parse a coordinate cell into latitude and longitude.

    Accepts decimal pairs ("47.9990, 7.8421"), hemisphere-prefixed
    degree/minute notation ("N 47° 59.940 E 7° 50.526") and
    hemisphere-suffixed degree/minute/second notation
    ("47°59'56.4\\"N 7°50'31.6\\"E").

    Args:
        text: Coordinate text

    Returns:
        Tuple (lat, lon) in decimal degrees

    Raises:
        ValueError: If the text cannot be parsed
    """
    m = _DECIMAL_PAIR.match(text)
    if m:
        return _check_range(float(m.group(1)), float(m.group(2)))

    m = _PREFIX_PAIR.match(text)
    if m:
        hemi1, deg1, min1, sec1, hemi2, deg2, min2, sec2 = m.groups()
    else:
        m = _SUFFIX_PAIR.match(text)
        if not m:
            raise ValueError(f"cannot parse coordinates '{text}'")
        deg1, min1, sec1, hemi1, deg2, min2, sec2, hemi2 = m.groups()

    if hemi1.upper() in ('E', 'W', 'O') and hemi2.upper() in ('N', 'S'):
        hemi1, deg1, min1, sec1, hemi2, deg2, min2, sec2 = (
            hemi2, deg2, min2, sec2, hemi1, deg1, min1, sec1
        )
    if hemi1.upper() not in ('N', 'S') or hemi2.upper() not in ('E', 'W', 'O'):
        raise ValueError(f"bad hemispheres in coordinates '{text}'")

    lat = _to_degrees(deg1, min1, sec1, hemi1)
    lon = _to_degrees(deg2, min2, sec2, hemi2)
    return _check_range(lat, lon)


def distance_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> Tuple[float, float]:
    """
    Great-circle distance and initial bearing between two points.

    Args:
        lat1: Latitude of the origin
        lon1: Longitude of the origin
        lat2: Latitude of the target
        lon2: Longitude of the target

    Returns:
        Tuple (distance in km, bearing in degrees 0..360)
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    distance = 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))

    y = math.sin(dlambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dlambda)
    bearing = (math.degrees(math.atan2(y, x)) + 360.0) % 360.0

    return distance, bearing


def approx_direction(bearing: float) -> str:
    """Map a bearing to one of eight German compass directions."""
    index = int(((bearing % 360.0) + 22.5) // 45.0) % len(DIRECTIONS)
    return DIRECTIONS[index]


def split_country(location_text: str) -> Tuple[str, str]:
    """
    Strip a trailing country marker from a location cell.

    Args:
        location_text: Text like "Mulhouse, FR 🇫🇷"

    Returns:
        Tuple (city, country); country is empty for domestic locations
    """
    for pattern, country in _COUNTRY_MARKERS:
        m = pattern.match(location_text)
        if m:
            return m.group(1), country
    return location_text.strip(), ''


def create_location(city: City, location_text: str, coordinates_text: str) -> Location:
    """
    Build a Location, computing distance and direction from the reference city.

    Coordinates that cannot be parsed leave the location without geo
    information; the rest of the record is kept.
    """
    name, country = split_country(location_text)
    location = Location(city=name, country=country)

    if not coordinates_text.strip():
        return location

    try:
        lat, lon = parse_coordinates(coordinates_text)
    except ValueError as e:
        logger.warning(f"Location '{location_text}': {e}")
        return location

    distance, bearing = distance_bearing(city.lat, city.lon, lat, lon)
    location.geo = f"{lat:.6f},{lon:.6f}"
    location.lat = lat
    location.lon = lon
    location.distance = f"{distance:.1f}km"
    location.direction = approx_direction(bearing)
    location.dist_dir_fancy = f"{location.distance} {location.direction} von {city.name}"
    return location
