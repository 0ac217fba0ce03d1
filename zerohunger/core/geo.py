# zerohunger/core/geo.py
from math import radians, degrees, sin, cos, asin, sqrt, floor
from typing import Dict, Iterable, Set, Tuple

EARTH_RADIUS_KM = 6371.0
_EDGE_PAD = 1e-9

def haversine_km(lat1, lng1, lat2, lng2) -> float:
    """Great-circle distance in km between two (lat, lng) pairs given in degrees."""
    dlat = radians(lat2 - lat1)
    dlng = radians(lng2 - lng1)
    a = sin(dlat/2)**2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlng/2)**2
    c = 2 * asin(sqrt(min(1.0, a)))
    return EARTH_RADIUS_KM * c

def km_to_radians(km: float) -> float:
    return km / EARTH_RADIUS_KM

def valid_lat_lng(lat, lng) -> bool:
    try:
        lat = float(lat); lng = float(lng)
    except (TypeError, ValueError):
        return False
    # NaN fails both comparisons
    return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0

def bounding_box(lat: float, lng: float, radius_km: float) -> Tuple[float, float, float, float, bool]:
    """
    Returns (min_lat, max_lat, min_lng, max_lng, all_lngs) enclosing the spherical cap.
    all_lngs is True when the cap touches a pole and every longitude must be searched.
    min_lng may be < -180 or max_lng > 180 when the cap crosses the antimeridian.
    """
    ang = km_to_radians(radius_km)
    dlat = degrees(ang)
    min_lat = lat - dlat
    max_lat = lat + dlat
    if min_lat <= -90.0 or max_lat >= 90.0 or ang >= 3.14159:
        return max(min_lat, -90.0), min(max_lat, 90.0), -180.0, 180.0, True
    s = sin(ang) / cos(radians(lat))
    if s >= 1.0:
        return min_lat, max_lat, -180.0, 180.0, True
    dlng = degrees(asin(s))
    return min_lat, max_lat, lng - dlng, lng + dlng, False

class GridIndex:
    """
    Fixed-size lat/lng cell grid. Answers "which ids may lie within R km of P"
    by visiting only the cells overlapping the cap's bounding box; the caller
    does the exact distance test on the (small) candidate set.
    """

    def __init__(self, cell_deg: float = 0.25):
        self.cell_deg = cell_deg
        self._cols = int(round(360.0 / cell_deg))
        self._cells: Dict[Tuple[int, int], Set[str]] = {}
        self._where: Dict[str, Tuple[int, int]] = {}

    def _row(self, lat: float) -> int:
        return int(floor((lat + 90.0) / self.cell_deg))

    def _col(self, lng: float) -> int:
        return int(floor((lng + 180.0) / self.cell_deg)) % self._cols

    def insert(self, key: str, lat: float, lng: float) -> None:
        self.remove(key)
        cell = (self._row(lat), self._col(lng))
        self._cells.setdefault(cell, set()).add(key)
        self._where[key] = cell

    def remove(self, key: str) -> None:
        cell = self._where.pop(key, None)
        if cell is None:
            return
        bucket = self._cells.get(cell)
        if bucket is not None:
            bucket.discard(key)
            if not bucket:
                del self._cells[cell]

    def __len__(self) -> int:
        return len(self._where)

    def _columns(self, min_lng: float, max_lng: float, all_lngs: bool) -> Iterable[int]:
        if all_lngs:
            return range(self._cols)
        start = int(floor((min_lng + 180.0) / self.cell_deg))
        stop = int(floor((max_lng + 180.0) / self.cell_deg))
        if stop - start + 1 >= self._cols:
            return range(self._cols)
        return {c % self._cols for c in range(start, stop + 1)}

    def candidates(self, lat: float, lng: float, radius_km: float) -> Set[str]:
        min_lat, max_lat, min_lng, max_lng, all_lngs = bounding_box(lat, lng, radius_km)
        # pad so points sitting exactly on the cap edge never fall off a cell boundary
        min_lat -= _EDGE_PAD; max_lat += _EDGE_PAD
        min_lng -= _EDGE_PAD; max_lng += _EDGE_PAD
        out: Set[str] = set()
        cols = list(self._columns(min_lng, max_lng, all_lngs))
        for row in range(self._row(min_lat), self._row(max_lat) + 1):
            for col in cols:
                bucket = self._cells.get((row, col))
                if bucket:
                    out.update(bucket)
        return out
