"""
안전 경로 탐색 모듈
- 격자 기반 A* 알고리즘 (위험 반경 회피)
- 경로를 찾지 못하면 출발지 → 목적지 직선 경로로 대체
- Folium 지도 시각화
"""

import heapq
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

import folium
import numpy as np

from .config import (
    DANGER_RADIUS_M, DEFAULT_DANGER_REPORTS, GRID_STEP_DEG, MAX_EXPANSIONS,
    MAP_DIR, PREDEFINED_LOCATIONS, SEARCH_MARGIN_CELLS,
)
from .danger import DangerIndex
from .geo import Coordinate, GridLattice, distance, grid_step_meters, validate_coordinate

logger = logging.getLogger(__name__)


@dataclass
class RouteResult:
    """경로 탐색 결과"""
    path: List[Coordinate] = field(default_factory=list)
    length: float = 0.0
    is_fallback: bool = False
    nodes_explored: int = 0
    computation_time: float = 0.0
    failure_reason: Optional[str] = None
    # 경유점 중 가장 가까운 위험 지점까지의 거리 (미터)
    min_clearance: Optional[float] = None

    @property
    def success(self) -> bool:
        return not self.is_fallback


def path_length(path: List[Coordinate]) -> float:
    """경로 총 거리 (미터)"""
    return sum(distance(a, b) for a, b in zip(path, path[1:]))


def reconstruct_path(came_from: Dict[Coordinate, Coordinate], current: Coordinate) -> List[Coordinate]:
    """도착 노드에서 이전 노드를 따라 출발지까지 역추적"""
    path = [current]
    for _ in range(len(came_from)):
        if current not in came_from:
            break
        current = came_from[current]
        path.append(current)
    else:
        if current in came_from:
            raise ValueError("predecessor map contains a cycle")

    path.reverse()
    return path


class SafeRouteFinder:
    """
    위험 지점을 피하는 격자 A* 경로 탐색기.

    - 이웃: 출발지 기준 격자 (8방향, grid_step 도 간격)
    - 비용/휴리스틱: Haversine 거리 (미터)
    - 위험 반경 안의 격자점은 통과 불가
    - 목적지와의 거리가 격자 한 칸(미터 환산) 미만이면 도착
    - 탐색 범위/확장 횟수/시간 한도를 넘거나 경로가 없으면 [start, destination]
    """

    def __init__(self,
                 grid_step: float = GRID_STEP_DEG,
                 danger_radius: float = DANGER_RADIUS_M,
                 max_expansions: int = MAX_EXPANSIONS,
                 search_margin: int = SEARCH_MARGIN_CELLS,
                 time_budget: Optional[float] = None):
        if grid_step <= 0:
            raise ValueError(f"grid_step must be positive: {grid_step}")
        if danger_radius < 0:
            raise ValueError(f"danger_radius must be non-negative: {danger_radius}")

        self.grid_step = grid_step
        self.danger_radius = danger_radius
        self.max_expansions = max_expansions
        self.search_margin = search_margin
        self.time_budget = time_budget
        self.goal_tolerance = grid_step_meters(grid_step)

    def heuristic(self, a: Coordinate, b: Coordinate) -> float:
        """직선(대원) 거리, 간선 비용과 같은 척도라 과대추정하지 않음"""
        return distance(a, b)

    def find_route(self,
                   start,
                   destination,
                   dangers: Union[DangerIndex, Iterable[Coordinate]] = ()) -> RouteResult:
        """A* 경로 탐색"""
        start_time = time.time()

        start = validate_coordinate(start, "start")
        destination = validate_coordinate(destination, "destination")
        if not isinstance(dangers, DangerIndex):
            dangers = DangerIndex(dangers, self.danger_radius)
        elif dangers.radius != self.danger_radius:
            raise ValueError(f"DangerIndex radius {dangers.radius}m does not match "
                             f"finder danger_radius {self.danger_radius}m")

        deadline = start_time + self.time_budget if self.time_budget is not None else None
        lattice = GridLattice.around(start, destination, self.grid_step, self.search_margin)

        logger.debug(f"A* search {start} -> {destination}, {len(dangers)} dangers")

        open_heap = []
        open_set = {start}
        closed_set = set()
        came_from: Dict[Coordinate, Coordinate] = {}
        g_score = {start: 0.0}
        f_score = {start: self.heuristic(start, destination)}
        blocked: Dict[Coordinate, bool] = {}

        # (f, 삽입 순서) 순으로 꺼냄 - 같은 f면 먼저 들어온 노드 우선
        counter = itertools.count()
        heapq.heappush(open_heap, (f_score[start], next(counter), start))

        nodes_explored = 0
        failure_reason = "No safe path found"

        while open_heap:
            f, _, current = heapq.heappop(open_heap)

            # 이미 확정됐거나 더 좋은 값으로 갱신된 항목
            if current not in open_set or f > f_score[current]:
                continue

            if distance(current, destination) < self.goal_tolerance:
                path = reconstruct_path(came_from, current)
                result = RouteResult(
                    path=path,
                    length=path_length(path),
                    nodes_explored=nodes_explored,
                    computation_time=time.time() - start_time,
                    min_clearance=min_clearance(path, dangers),
                )
                logger.info(f"Route found: {len(path)} waypoints, {result.length:.0f}m, "
                            f"{nodes_explored} nodes explored")
                return result

            if nodes_explored >= self.max_expansions:
                failure_reason = f"Expansion limit reached ({self.max_expansions})"
                break
            if deadline is not None and time.time() > deadline:
                failure_reason = f"Time budget exceeded ({self.time_budget}s)"
                break

            open_set.remove(current)
            closed_set.add(current)
            nodes_explored += 1

            for neighbor in lattice.neighbors(current):
                if neighbor in closed_set:
                    continue
                if neighbor not in blocked:
                    blocked[neighbor] = dangers.is_near_danger(neighbor)
                if blocked[neighbor]:
                    continue

                tentative_g_score = g_score[current] + distance(current, neighbor)

                if neighbor not in open_set:
                    open_set.add(neighbor)
                elif tentative_g_score >= g_score[neighbor]:
                    continue

                came_from[neighbor] = current
                g_score[neighbor] = tentative_g_score
                f_score[neighbor] = tentative_g_score + self.heuristic(neighbor, destination)
                heapq.heappush(open_heap, (f_score[neighbor], next(counter), neighbor))

        logger.warning(f"{failure_reason}: falling back to direct route {start} -> {destination} "
                       f"({nodes_explored} nodes explored)")

        path = [start, destination]
        return RouteResult(
            path=path,
            length=path_length(path),
            is_fallback=True,
            nodes_explored=nodes_explored,
            computation_time=time.time() - start_time,
            failure_reason=failure_reason,
        )


def min_clearance(path: List[Coordinate], dangers: DangerIndex) -> Optional[float]:
    """경로 경유점과 위험 지점 사이 최소 거리, 위험 지점이 없으면 None"""
    if not len(dangers) or not path:
        return None
    return min(dangers.nearest_distance(p) for p in path)


def find_safe_route(start, destination, dangers: Iterable[Coordinate] = (), **kwargs) -> List[Coordinate]:
    """(출발지, 목적지, 위험 지점) → 경로 좌표 리스트"""
    return SafeRouteFinder(**kwargs).find_route(start, destination, dangers).path


def visualize_route(result: RouteResult,
                    dangers: Iterable[Coordinate] = (),
                    filename: str = "route_map.html",
                    danger_radius: float = DANGER_RADIUS_M) -> str:
    """경로와 위험 반경을 지도에 시각화"""
    if not result.path:
        print("❌ 시각화할 경로가 없습니다.")
        return ""

    coords = [(c.lat, c.lon) for c in result.path]
    dangers = list(dangers)

    center_lat = np.mean([c[0] for c in coords])
    center_lon = np.mean([c[1] for c in coords])

    m = folium.Map(location=[center_lat, center_lon], zoom_start=16)

    # 대체 경로(직선)는 위험 구역을 지날 수 있으므로 점선으로 표시
    color = 'orange' if result.is_fallback else 'blue'
    folium.PolyLine(
        coords, weight=5, color=color, opacity=0.8,
        dash_array='10' if result.is_fallback else None,
        popup=f"{result.length:.0f}m, {len(coords)} waypoints"
    ).add_to(m)

    for lat, lon in dangers:
        folium.Circle(
            location=[lat, lon], radius=danger_radius,
            color='red', fill=True, fill_opacity=0.3, popup='위험 지점'
        ).add_to(m)

    folium.Marker(coords[0], popup='출발',
                  icon=folium.Icon(color='green', icon='play')).add_to(m)
    folium.Marker(coords[-1], popup='도착',
                  icon=folium.Icon(color='red', icon='stop')).add_to(m)

    output_path = MAP_DIR / filename
    output_path.parent.mkdir(parents=True, exist_ok=True)
    m.save(str(output_path))
    print(f"✅ 지도 저장: {output_path}")

    return str(output_path)


def search_route(start_lat: float, start_lon: float,
                 end_lat: float, end_lon: float,
                 dangers: Optional[List[Coordinate]] = None,
                 visualize: bool = True) -> RouteResult:
    """안전 경로 검색 메인 함수"""
    print("=" * 60)
    print("🧭 안전 경로 검색")
    print("=" * 60)

    if dangers is None:
        dangers = [Coordinate(*d) for d in DEFAULT_DANGER_REPORTS]

    start = Coordinate(start_lat, start_lon)
    destination = Coordinate(end_lat, end_lon)

    print(f"\n📍 출발: ({start_lat:.4f}, {start_lon:.4f})")
    print(f"📍 도착: ({end_lat:.4f}, {end_lon:.4f})")
    print(f"⚠️ 위험 지점: {len(dangers)}곳 (반경 {DANGER_RADIUS_M:.0f}m)")
    print(f"📏 직선 거리: {distance(start, destination):.0f}m")

    print("\n🔍 경로 탐색 중...")
    result = SafeRouteFinder().find_route(start, destination, dangers)

    print(f"\n{'='*40}")
    print(f"📊 결과")
    print(f"{'='*40}")
    if result.is_fallback:
        print(f"   ❌ 안전 경로 없음: {result.failure_reason}")
        print(f"   ➡️ 직선 경로로 대체 ({result.length:.0f}m)")
    else:
        print(f"   🟢 안전 경로: {result.length:.0f}m, 경유점 {len(result.path)}개")
        if result.min_clearance is not None:
            print(f"   🛡️ 최소 이격 거리: {result.min_clearance:.0f}m")
    print(f"   🔎 탐색 노드: {result.nodes_explored:,} ({result.computation_time*1000:.1f}ms)")

    if visualize:
        print("\n🗺️ 지도 생성...")
        visualize_route(result, dangers)

    print("\n" + "=" * 60)
    print("✅ 검색 완료!")
    print("=" * 60)

    return result


def main():
    """테스트 실행"""
    start_lat, start_lon = 18.457905, 73.850494
    for name, (end_lat, end_lon) in PREDEFINED_LOCATIONS.items():
        print(f"\n🏁 {name}")
        search_route(start_lat, start_lon, end_lat, end_lon,
                     visualize=(name == "Playfield"))


if __name__ == "__main__":
    main()
