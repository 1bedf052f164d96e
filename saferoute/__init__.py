"""
안심 귀가 경로 안내 서비스
"""

from .geo import Coordinate, InvalidCoordinateError, distance, get_neighbors, haversine_distance
from .danger import DangerIndex, load_danger_points
from .route_finder import RouteResult, SafeRouteFinder, find_safe_route, reconstruct_path

__all__ = [
    "Coordinate",
    "InvalidCoordinateError",
    "distance",
    "get_neighbors",
    "haversine_distance",
    "DangerIndex",
    "load_danger_points",
    "RouteResult",
    "SafeRouteFinder",
    "find_safe_route",
    "reconstruct_path"
]
