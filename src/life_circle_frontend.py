# life_circle_frontend.py
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse
import uvicorn

import life_circle_backend as backend
from life_circle.config import Settings, load_settings
from life_circle.context import Deadline
from life_circle.errors import EvaluationCancelled, EvaluationError, InvalidRequestError
from life_circle.geojson import isochrones_as_geojson
from map_apis.amap import AMap
from map_apis.map_api import MapAPI
from spatial_apis.spatial_engine import SpatialEngine


def _configure_console_logging(level: str = "INFO") -> None:
    """
    Console logging with clear INFO-level events:
    - System start, request in, returned summary.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.setLevel(numeric_level)

    ch = logging.StreamHandler()
    ch.setLevel(numeric_level)
    ch.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s - %(message)s"))
    root.addHandler(ch)

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("life_circle.frontend").setLevel(numeric_level)


logger = logging.getLogger("life_circle.frontend")


def _error(status_code: int, error: str, details: Any) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error": error, "details": str(details)})


async def _json_body(req: Request, route: str) -> Dict[str, Any]:
    try:
        body = await req.json()
    except Exception:
        logger.exception("POST %s -> invalid JSON body", route)
        raise _error(400, "invalid request", "body must be valid JSON")
    if not isinstance(body, dict):
        raise _error(400, "invalid request", "body must be a JSON object")
    return body


def _build_engine(settings: Settings) -> SpatialEngine:
    from spatial_apis.postgis import PostGISEngine

    return PostGISEngine.from_settings(settings.database)


def _build_map_api(settings: Settings) -> MapAPI:
    return AMap(
        settings.amap.key,
        enabled=settings.amap.flag,
        timeout=settings.amap.timeout,
        num_pages=settings.amap.num_pages,
    )


def create_app(
    engine: Optional[SpatialEngine] = None,
    map_api: Optional[MapAPI] = None,
    settings: Optional[Settings] = None,
    *,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Create the FastAPI app.

    Endpoints:
    - POST /api/v1/isochrone            -> isochrone FeatureCollection
    - POST /api/v1/analyze              -> full life circle evaluation
    - GET  /api/v1/poi/categories       -> POI category taxonomy
    - GET  /api/v1/poi/statistics       -> POI counts per threshold
    - GET  /api/v1/evaluation/standards -> evaluation standard table
    - GET  /healthz                     -> liveness
    """
    settings = settings or load_settings()
    if configure_logging:
        _configure_console_logging(settings.log_level)
    engine = engine or _build_engine(settings)
    map_api = map_api if map_api is not None else _build_map_api(settings)
    timeout = settings.evaluation_timeout if settings.evaluation_timeout > 0 else None

    app = FastAPI(title="15-Minute Life Circle", version="1.0.0")

    @app.exception_handler(HTTPException)
    async def _error_body(_: Request, exc: HTTPException) -> JSONResponse:
        # Structured errors are returned as the body itself, not wrapped in "detail".
        if isinstance(exc.detail, dict):
            return JSONResponse(exc.detail, status_code=exc.status_code)
        return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)

    @app.on_event("startup")
    async def _on_startup() -> None:
        logger.info(
            "System start: life circle server is up (external provider %s: %s).",
            map_api.provider,
            "enabled" if map_api.enabled else "disabled",
        )

    @app.post("/api/v1/isochrone", response_class=JSONResponse)
    async def api_isochrone(req: Request) -> JSONResponse:
        body = await _json_body(req, "/api/v1/isochrone")
        try:
            iso_req = backend.parse_isochrone_request(body)
        except InvalidRequestError as e:
            raise _error(400, "invalid request", e)

        logger.info(
            "POST /api/v1/isochrone -> request in: lng=%.6f, lat=%.6f, thresholds=%s, walk_speed=%.2f",
            iso_req.lng, iso_req.lat, list(iso_req.time_thresholds), iso_req.walk_speed,
        )
        try:
            result = await asyncio.to_thread(backend.calculate_isochrones, engine, iso_req, Deadline(timeout))
        except EvaluationCancelled as e:
            raise _error(504, "calculation timed out", e)
        except EvaluationError as e:
            logger.error("POST /api/v1/isochrone -> %s", e)
            raise _error(500, "calculation failed", e)
        return JSONResponse(isochrones_as_geojson(result))

    @app.post("/api/v1/analyze", response_class=JSONResponse)
    async def api_analyze(req: Request) -> JSONResponse:
        body = await _json_body(req, "/api/v1/analyze")
        try:
            eval_req = backend.parse_evaluation_request(body)
        except InvalidRequestError as e:
            raise _error(400, "invalid request", e)

        logger.info(
            "POST /api/v1/analyze -> request in: lng=%.6f, lat=%.6f, time_threshold=%d, walk_speed=%.2f",
            eval_req.lng, eval_req.lat, eval_req.time_threshold, eval_req.walk_speed,
        )
        t0 = time.time()
        try:
            result = await backend.evaluate_async(eval_req, engine=engine, map_api=map_api, timeout=timeout)
        except EvaluationCancelled as e:
            logger.warning("POST /api/v1/analyze -> %s", e)
            raise _error(504, "analysis timed out", e)
        except EvaluationError as e:
            logger.error("POST /api/v1/analyze -> %s", e)
            raise _error(500, "analysis failed", e)

        dt = (time.time() - t0) * 1000.0
        logger.info(
            "POST /api/v1/analyze -> returned: total_score=%.2f, grade=%s, pois=%d, elapsed=%.1f ms",
            result.total_score, result.grade, len(result.merged_pois), dt,
        )
        return JSONResponse(result.to_dict())

    @app.get("/api/v1/poi/categories", response_class=JSONResponse)
    async def api_categories() -> JSONResponse:
        try:
            categories = await asyncio.to_thread(backend.get_categories, engine, Deadline(timeout))
        except EvaluationCancelled as e:
            raise _error(504, "categories timed out", e)
        return JSONResponse({"categories": [c.to_dict() for c in categories]})

    @app.get("/api/v1/poi/statistics", response_class=JSONResponse)
    async def api_statistics(req: Request) -> JSONResponse:
        try:
            lng, lat, walk_speed = backend.parse_statistics_request(dict(req.query_params))
        except InvalidRequestError as e:
            raise _error(400, "invalid request", e)
        try:
            stats = await asyncio.to_thread(
                backend.count_pois, engine, lng, lat, None, walk_speed, Deadline(timeout)
            )
        except EvaluationCancelled as e:
            raise _error(504, "statistics timed out", e)
        except EvaluationError as e:
            logger.error("GET /api/v1/poi/statistics -> %s", e)
            raise _error(500, "failed to count pois", e)
        return JSONResponse({"statistics": [s.to_dict() for s in stats]})

    @app.get("/api/v1/evaluation/standards", response_class=JSONResponse)
    async def api_standards() -> JSONResponse:
        try:
            standards = await asyncio.to_thread(backend.get_standards, engine, Deadline(timeout))
        except EvaluationCancelled as e:
            raise _error(504, "standards timed out", e)
        return JSONResponse({"standards": [s.to_dict() for s in standards]})

    @app.get("/healthz", response_class=PlainTextResponse)
    async def healthz() -> PlainTextResponse:
        logger.info("GET /healthz")
        return PlainTextResponse("ok")

    return app


def main() -> None:
    """
    Start the server.
    Run: life-circle  (or python -m life_circle_frontend)
    """
    settings = load_settings()
    app = create_app(settings=settings)
    logger.info("Launching Uvicorn on %s:%d ...", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
