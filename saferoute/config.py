"""
안전 경로 탐색 설정
- 격자 간격, 위험 반경, 탐색 한도
- 환경 변수로 덮어쓰기 가능 (SAFEROUTE_*)
"""

import os
from pathlib import Path

# 프로젝트 경로
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"
# 경로 지도(HTML) 저장 위치
MAP_DIR = Path(os.getenv("SAFEROUTE_MAP_DIR", str(PROJECT_ROOT / "maps")))

EARTH_RADIUS_M = 6371000.0

# 0.0005도 ≈ 위도 방향 55.6m (경도 방향은 cos(위도)만큼 짧아짐)
GRID_STEP_DEG = float(os.getenv("SAFEROUTE_GRID_STEP", "0.0005"))
DANGER_RADIUS_M = float(os.getenv("SAFEROUTE_DANGER_RADIUS", "50.0"))

# 탐색 한도 (초과 시 직선 경로로 대체)
MAX_EXPANSIONS = int(os.getenv("SAFEROUTE_MAX_EXPANSIONS", "20000"))
SEARCH_MARGIN_CELLS = int(os.getenv("SAFEROUTE_SEARCH_MARGIN", "40"))

LOG_LEVEL = os.getenv("SAFEROUTE_LOG_LEVEL", "INFO").upper()

DANGER_REPORTS_CSV = Path(os.getenv("SAFEROUTE_DANGER_CSV", str(DATA_DIR / "danger_reports.csv")))

# 도보 속도 ~5km/h
WALKING_SPEED_MS = 1.4

PREDEFINED_LOCATIONS = {
    "Home": (18.4586, 73.8332),
    "Playfield": (18.4552, 73.8412),
    "School": (18.4598, 73.8356),
}

# CSV가 없을 때 사용하는 기본 신고 지점
DEFAULT_DANGER_REPORTS = [
    (18.45568, 73.84165),
    (18.45586, 73.84382),
]
