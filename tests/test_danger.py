import pytest

from saferoute.danger import DangerIndex, load_danger_points
from saferoute.geo import Coordinate, InvalidCoordinateError

# 위도 1도 ≈ 111,195m
METERS_PER_DEG_LAT = 111194.93

DANGER = Coordinate(18.45568, 73.84165)


def _north_of(point, meters):
    return Coordinate(point.lat + meters / METERS_PER_DEG_LAT, point.lon)


def test_empty_index_never_blocks():
    index = DangerIndex([])
    assert len(index) == 0
    assert not index.is_near_danger(DANGER)
    assert index.nearest_distance(DANGER) is None


def test_center_is_blocked():
    assert DangerIndex([DANGER]).is_near_danger(DANGER)


def test_radius_boundary():
    index = DangerIndex([DANGER], radius=50.0)
    assert index.is_near_danger(_north_of(DANGER, 45))
    assert not index.is_near_danger(_north_of(DANGER, 55))


def test_any_danger_blocks():
    far = Coordinate(37.5665, 126.9780)
    index = DangerIndex([far, DANGER])
    assert index.is_near_danger(_north_of(DANGER, 10))
    assert index.is_near_danger(far)


def test_nearest_distance():
    index = DangerIndex([DANGER, Coordinate(37.5665, 126.9780)])
    assert index.nearest_distance(_north_of(DANGER, 100)) == pytest.approx(100, abs=0.5)


def test_invalid_danger_rejected():
    with pytest.raises(InvalidCoordinateError):
        DangerIndex([(120.0, 0.0)])


def test_load_danger_points(tmp_path):
    csv = tmp_path / "reports.csv"
    csv.write_text(
        "latitude,longitude,note\n"
        "18.45568,73.84165,a\n"
        ",73.8,missing\n"
        "95.0,73.8,out of range\n"
        "18.45586,73.84382,b\n",
        encoding="utf-8",
    )

    points = load_danger_points(csv)

    assert len(points) == 2
    assert points[0] == pytest.approx((18.45568, 73.84165))
    assert points[1] == pytest.approx((18.45586, 73.84382))


def test_load_korean_columns(tmp_path):
    csv = tmp_path / "reports.csv"
    csv.write_text("위도,경도\n37.5665,126.978\n", encoding="utf-8")
    points = load_danger_points(csv)
    assert len(points) == 1
    assert points[0] == pytest.approx((37.5665, 126.978))


def test_load_missing_file(tmp_path):
    assert load_danger_points(tmp_path / "nope.csv") == []


def test_load_without_coordinate_columns(tmp_path):
    csv = tmp_path / "reports.csv"
    csv.write_text("name,score\nfoo,1\n", encoding="utf-8")
    assert load_danger_points(csv) == []
