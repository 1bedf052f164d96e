"""
지리 좌표 유틸리티
- 좌표 타입 및 검증
- Haversine 거리 (미터)
- 격자 이웃 생성 / 격자 정렬
"""

import math
from typing import List, NamedTuple, Optional, Tuple

import numpy as np

from .config import EARTH_RADIUS_M, GRID_STEP_DEG


class InvalidCoordinateError(ValueError):
    """NaN, 무한대, 범위를 벗어난 위도/경도"""


class Coordinate(NamedTuple):
    """(위도, 경도) 십진 도. 동일성은 두 값의 정확한 float 비교로 판단"""
    lat: float
    lon: float

    def __str__(self):
        return f"({self.lat:.6f}, {self.lon:.6f})"


def validate_coordinate(point, name: str = "coordinate") -> Coordinate:
    """좌표 검증 후 Coordinate로 변환"""
    try:
        lat, lon = float(point[0]), float(point[1])
    except (TypeError, ValueError, IndexError) as e:
        raise InvalidCoordinateError(f"{name}: (lat, lon) 쌍이 아닙니다: {point!r}") from e

    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise InvalidCoordinateError(f"{name}: 유효하지 않은 값 ({lat}, {lon})")
    if not -90.0 <= lat <= 90.0:
        raise InvalidCoordinateError(f"{name}: 위도 범위 초과 {lat}")
    if not -180.0 <= lon <= 180.0:
        raise InvalidCoordinateError(f"{name}: 경도 범위 초과 {lon}")

    return Coordinate(lat, lon)


def haversine_distance(lat1, lon1, lat2, lon2):
    """두 좌표 간 거리 계산 (미터). 배열 입력 가능"""
    R = EARTH_RADIUS_M

    lat1_rad = np.radians(lat1)
    lat2_rad = np.radians(lat2)
    delta_lat = np.radians(np.subtract(lat2, lat1))
    delta_lon = np.radians(np.subtract(lon2, lon1))

    a = np.sin(delta_lat/2)**2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(delta_lon/2)**2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1-a))

    return R * c


def distance(a: Coordinate, b: Coordinate) -> float:
    """Coordinate 간 거리 (미터)"""
    return float(haversine_distance(a[0], a[1], b[0], b[1]))


def grid_step_meters(step: float = GRID_STEP_DEG) -> float:
    """격자 한 칸의 위도 방향 길이 (미터)"""
    return math.radians(step) * EARTH_RADIUS_M


def get_neighbors(point: Coordinate, step: float = GRID_STEP_DEG) -> List[Coordinate]:
    """
    8방향 이웃 좌표

    순서는 항상 동일 (위도 오프셋 -δ, 0, +δ 순, 그 안에서 경도 오프셋 -δ, 0, +δ 순).
    경도 방향 실제 거리는 cos(위도)에 비례해 고위도에서 줄어든다.
    """
    neighbors = []
    for d_lat in (-step, 0.0, step):
        for d_lon in (-step, 0.0, step):
            if d_lat == 0 and d_lon == 0:
                continue
            neighbors.append(Coordinate(point.lat + d_lat, point.lon + d_lon))
    return neighbors


class GridLattice:
    """
    origin을 기준으로 정렬된 격자.

    모든 격자점은 origin + k * step (k 정수)으로 계산되므로 같은 칸은
    항상 비트 단위로 같은 Coordinate가 된다.
    """

    def __init__(self, origin: Coordinate, step: float = GRID_STEP_DEG,
                 bounds: Optional[Tuple[int, int, int, int]] = None):
        self.origin = origin
        self.step = step
        # (i_min, i_max, j_min, j_max) 칸 인덱스, None이면 무제한
        self.bounds = bounds

    @classmethod
    def around(cls, start: Coordinate, destination: Coordinate,
               step: float = GRID_STEP_DEG, margin: int = 0) -> "GridLattice":
        """start와 destination을 포함하고 margin 칸만큼 여유를 둔 격자"""
        di = (destination.lat - start.lat) / step
        dj = (destination.lon - start.lon) / step
        bounds = (
            min(0, math.floor(di)) - margin,
            max(0, math.ceil(di)) + margin,
            min(0, math.floor(dj)) - margin,
            max(0, math.ceil(dj)) + margin,
        )
        return cls(start, step, bounds)

    def cell_of(self, point: Coordinate) -> Tuple[int, int]:
        i = int(round((point.lat - self.origin.lat) / self.step))
        j = int(round((point.lon - self.origin.lon) / self.step))
        return i, j

    def coordinate_of(self, i: int, j: int) -> Coordinate:
        return Coordinate(self.origin.lat + i * self.step, self.origin.lon + j * self.step)

    def snap(self, point: Coordinate) -> Coordinate:
        """가장 가까운 격자점"""
        return self.coordinate_of(*self.cell_of(point))

    def contains(self, point: Coordinate) -> bool:
        if not (-90.0 <= point.lat <= 90.0 and -180.0 <= point.lon <= 180.0):
            return False
        if self.bounds is None:
            return True
        i, j = self.cell_of(point)
        i_min, i_max, j_min, j_max = self.bounds
        return i_min <= i <= i_max and j_min <= j <= j_max

    def neighbors(self, point: Coordinate) -> List[Coordinate]:
        """격자에 정렬된 이웃 (탐색 범위 밖은 제외)"""
        snapped = (self.snap(n) for n in get_neighbors(point, self.step))
        return [n for n in snapped if self.contains(n)]
