"""
위험 지점 모듈
- 신고된 위험 지점 CSV 로드
- 위험 반경 판정용 공간 인덱스 (cKDTree)
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

import numpy as np
import pandas as pd
from scipy.spatial import cKDTree

from .config import DANGER_RADIUS_M, EARTH_RADIUS_M
from .geo import Coordinate, InvalidCoordinateError, haversine_distance, validate_coordinate

logger = logging.getLogger(__name__)

LAT_COLUMNS = ['lat', 'latitude', 'y', '위도']
LON_COLUMNS = ['lon', 'lng', 'longitude', 'x', '경도']


def _to_unit_xyz(lats, lons) -> np.ndarray:
    """위경도 → 단위 구 위의 3차원 좌표"""
    lat = np.radians(np.atleast_1d(lats))
    lon = np.radians(np.atleast_1d(lons))
    return np.column_stack((np.cos(lat) * np.cos(lon), np.cos(lat) * np.sin(lon), np.sin(lat)))


class DangerIndex:
    """
    위험 지점 공간 인덱스.

    단위 구 위의 현(chord) 거리는 대원 거리에 대해 단조 증가하므로
    cKDTree 반경 검색으로 후보를 좁힌 뒤 Haversine 거리로 확정한다.
    """

    def __init__(self, dangers: Iterable[Coordinate] = (), radius: float = DANGER_RADIUS_M):
        self.dangers = [validate_coordinate(d, "danger") for d in dangers]
        self.radius = radius

        if self.dangers:
            self.lats = np.array([d.lat for d in self.dangers])
            self.lons = np.array([d.lon for d in self.dangers])
            self.tree = cKDTree(_to_unit_xyz(self.lats, self.lons))
        else:
            self.lats = self.lons = np.empty(0)
            self.tree = None

        # 현 거리로 환산한 반경 (경계 오차 대비 약간 크게)
        self._chord_radius = 2 * np.sin(radius / (2 * EARTH_RADIUS_M)) * (1 + 1e-9) + 1e-12

    def __len__(self):
        return len(self.dangers)

    def is_near_danger(self, point: Coordinate) -> bool:
        """어느 위험 지점이든 반경 미만이면 True"""
        if self.tree is None:
            return False

        idx = self.tree.query_ball_point(_to_unit_xyz(point[0], point[1])[0], self._chord_radius)
        if not idx:
            return False

        dists = haversine_distance(point[0], point[1], self.lats[idx], self.lons[idx])
        return bool(np.any(dists < self.radius))

    def nearest_distance(self, point: Coordinate) -> Optional[float]:
        """가장 가까운 위험 지점까지의 거리 (미터), 위험 지점이 없으면 None"""
        if self.tree is None:
            return None

        _, i = self.tree.query(_to_unit_xyz(point[0], point[1])[0])
        return float(haversine_distance(point[0], point[1], self.lats[i], self.lons[i]))


def load_danger_points(filepath: Union[str, Path]) -> List[Coordinate]:
    """신고 지점 CSV 로드 (위경도 컬럼명 자동 인식)"""
    filepath = Path(filepath)
    if not filepath.exists():
        logger.warning(f"Danger report file not found: {filepath}")
        return []

    df = pd.read_csv(filepath)

    cols = df.columns.tolist()
    lat_col = next((c for c in LAT_COLUMNS if c in cols), None)
    lon_col = next((c for c in LON_COLUMNS if c in cols), None)

    if not lat_col or not lon_col:
        logger.warning(f"{filepath.name}: lat/lon columns not found. Columns: {cols}")
        return []

    points = []
    for _, row in df.iterrows():
        lat, lon = row[lat_col], row[lon_col]
        if pd.isna(lat) or pd.isna(lon):
            continue
        try:
            points.append(validate_coordinate((lat, lon), "danger"))
        except InvalidCoordinateError as e:
            logger.warning(f"{filepath.name}: skipping row: {e}")

    logger.info(f"{filepath.name}: loaded {len(points)} danger points")
    return points
