import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .config import (
    DANGER_RADIUS_M, DANGER_REPORTS_CSV, DEFAULT_DANGER_REPORTS,
    LOG_LEVEL, PREDEFINED_LOCATIONS, WALKING_SPEED_MS,
)
from .danger import load_danger_points
from .geo import Coordinate, InvalidCoordinateError
from .route_finder import SafeRouteFinder

# --- Logging Setup ---
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


# --- Pydantic Models ---
class LatLng(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class RouteRequest(BaseModel):
    start_lat: float
    start_lon: float
    end_lat: Optional[float] = None
    end_lon: Optional[float] = None
    destination_name: Optional[str] = None  # 'Home', 'Playfield', 'School'
    dangers: Optional[List[LatLng]] = None  # None이면 신고된 위험 지점 사용


class RouteResponse(BaseModel):
    path: List[LatLng]
    distance: float
    duration: float  # estimated
    waypoint_count: int
    is_fallback: bool
    nodes_explored: int
    failure_reason: Optional[str] = None
    min_clearance: Optional[float] = None  # meters, closest danger to any waypoint


class NamedLocation(BaseModel):
    name: str
    lat: float
    lng: float


# --- Global State ---
DANGERS: List[Coordinate] = []
finder = SafeRouteFinder()

# --- FastAPI App ---
app = FastAPI(title="Safe Route Navigation Service")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    logger.info(f"Loading danger reports from {DANGER_REPORTS_CSV}...")
    points = load_danger_points(DANGER_REPORTS_CSV)
    if not points:
        logger.warning("No danger reports loaded. Using default reported cases.")
        points = [Coordinate(*p) for p in DEFAULT_DANGER_REPORTS]

    DANGERS.clear()
    DANGERS.extend(points)
    logger.info(f"{len(DANGERS)} danger points active (radius {DANGER_RADIUS_M:.0f}m)")


@app.get("/")
def read_root():
    return {"message": "Welcome to Safe Route API"}


@app.get("/api/health")
def health_check():
    return {
        "status": "ok",
        "dangers": len(DANGERS),
        "grid_step": finder.grid_step,
        "danger_radius": finder.danger_radius,
    }


@app.get("/api/locations", response_model=List[NamedLocation])
def list_locations():
    return [NamedLocation(name=name, lat=lat, lng=lng)
            for name, (lat, lng) in PREDEFINED_LOCATIONS.items()]


@app.get("/api/dangers", response_model=List[LatLng])
def list_dangers():
    return [LatLng(lat=d.lat, lng=d.lon) for d in DANGERS]


@app.post("/api/dangers", status_code=status.HTTP_201_CREATED)
def report_danger(point: LatLng):
    DANGERS.append(Coordinate(point.lat, point.lng))
    logger.info(f"Danger reported at ({point.lat}, {point.lng}). Total: {len(DANGERS)}")
    return {"message": "신고 접수 완료", "count": len(DANGERS)}


# --- Route Endpoint ---
@app.post("/api/route", response_model=RouteResponse)
def get_route(req: RouteRequest):
    try:
        if req.destination_name:
            if req.destination_name not in PREDEFINED_LOCATIONS:
                raise HTTPException(status_code=404, detail=f"등록되지 않은 목적지입니다: {req.destination_name}")
            destination = PREDEFINED_LOCATIONS[req.destination_name]
        elif req.end_lat is not None and req.end_lon is not None:
            destination = (req.end_lat, req.end_lon)
        else:
            raise HTTPException(status_code=400, detail="목적지 좌표 또는 이름이 필요합니다.")

        origin = (req.start_lat, req.start_lon)
        if req.dangers is not None:
            dangers = [Coordinate(d.lat, d.lng) for d in req.dangers]
        else:
            dangers = list(DANGERS)

        logger.info(f"Route request: {origin} -> {destination}, {len(dangers)} dangers")

        result = finder.find_route(origin, destination, dangers)

        if result.is_fallback:
            logger.warning(f"Returning fallback route: {result.failure_reason}")

        return RouteResponse(
            path=[LatLng(lat=c.lat, lng=c.lon) for c in result.path],
            distance=result.length,
            duration=result.length / WALKING_SPEED_MS,
            waypoint_count=len(result.path),
            is_fallback=result.is_fallback,
            nodes_explored=result.nodes_explored,
            failure_reason=result.failure_reason,
            min_clearance=result.min_clearance,
        )

    except HTTPException:
        raise
    except InvalidCoordinateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Routing error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("saferoute.main:app", host="0.0.0.0", port=8000, reload=True)
