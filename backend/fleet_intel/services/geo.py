"""Geographic helpers for GPS track analysis."""
import math
from typing import List, Optional, Sequence

from fleet_intel.schemas.metrics import GeoLocation
from fleet_intel.schemas.track import TrackPoint
from fleet_intel.services.timeutils import parse_timestamp

# Mean radius of earth in km
EARTH_RADIUS_KM = 6371.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great circle distance between two points on earth in kilometres.
    Uses the Haversine formula.
    """
    # Convert decimal degrees to radians
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])

    # Haversine formula
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.asin(math.sqrt(min(1.0, a)))

    return c * EARTH_RADIUS_KM


def calculate_track_distance(points: Sequence[TrackPoint]) -> float:
    """Total point-to-point distance, ignoring ignition and speed."""
    total = 0.0
    for prev, point in zip(points, points[1:]):
        total += haversine_distance(prev.latitude, prev.longitude, point.latitude, point.longitude)
    return total


def calculate_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial bearing from the first point to the second, in degrees 0-360."""
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])
    dlon = lon2 - lon1

    y = math.sin(dlon) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(dlon)
    bearing = math.degrees(math.atan2(y, x))

    return (bearing + 360.0) % 360.0


def is_valid_coordinate(latitude: float, longitude: float) -> bool:
    if latitude is None or longitude is None:
        return False
    if math.isnan(latitude) or math.isnan(longitude):
        return False
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0


def filter_valid_points(points: Sequence[TrackPoint]) -> List[TrackPoint]:
    return [p for p in points if is_valid_coordinate(p.latitude, p.longitude)]


def calculate_speed_between_points(point1: TrackPoint, point2: TrackPoint) -> float:
    """Implied speed in km/h from position and time deltas; 0 for non-positive intervals."""
    time1 = parse_timestamp(point1.timestamp)
    time2 = parse_timestamp(point2.timestamp)
    if time1 is None or time2 is None:
        return 0.0

    hours = (time2 - time1).total_seconds() / 3600.0
    if hours <= 0:
        return 0.0

    distance = haversine_distance(point1.latitude, point1.longitude, point2.latitude, point2.longitude)
    return distance / hours


def calculate_centroid(points: Sequence[TrackPoint]) -> Optional[GeoLocation]:
    """
    Spherical mean of a set of points.

    Each point is projected onto the unit sphere, the vectors are averaged and the
    mean is projected back to lat/lng. Correct across the antimeridian, where a
    plain average of longitudes is not. Returns None for no points, or when the
    vectors cancel out (e.g. antipodal samples).
    """
    if not points:
        return None

    if len(points) == 1:
        return GeoLocation(lat=points[0].latitude, lng=points[0].longitude)

    x = y = z = 0.0
    for point in points:
        lat = math.radians(point.latitude)
        lon = math.radians(point.longitude)
        x += math.cos(lat) * math.cos(lon)
        y += math.cos(lat) * math.sin(lon)
        z += math.sin(lat)

    count = len(points)
    x /= count
    y /= count
    z /= count

    if math.sqrt(x * x + y * y + z * z) < 1e-12:
        return None

    central_lon = math.atan2(y, x)
    central_lat = math.atan2(z, math.sqrt(x * x + y * y))

    return GeoLocation(lat=math.degrees(central_lat), lng=math.degrees(central_lon))
