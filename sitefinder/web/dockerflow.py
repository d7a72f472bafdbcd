"""Dockerflow Endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import ORJSONResponse, RedirectResponse, Response

from sitefinder.exceptions import WordListError
from sitefinder.probe.service import ProbeService, get_probe_service
from sitefinder.utils.version import Version, fetch_app_version_from_file

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/")
async def redirect_home_to_docs() -> RedirectResponse:
    """Redirect the home page to the interactive API documentation."""
    return RedirectResponse(url="/docs")


@router.get("/__version__", tags=["__version__"], summary="Dockerflow: __version__")
async def version() -> Version:
    """Dockerflow: Query service version."""
    try:
        return fetch_app_version_from_file()
    except FileNotFoundError:
        raise HTTPException(status_code=500, detail="Version file does not exist")


@router.get("/__heartbeat__", tags=["__heartbeat__"], summary="Dockerflow: __heartbeat__")
async def heartbeat(service: ProbeService = Depends(get_probe_service)) -> ORJSONResponse:
    """Dockerflow: Check that the service can build work, i.e. the TLD list loads."""
    try:
        tld_count = len(service.tlds)
    except WordListError as e:
        logger.error(f"Heartbeat failed: {e}")
        return ORJSONResponse(status_code=503, content={"status": "error", "tlds": 0})
    return ORJSONResponse(
        content={"status": "ok", "tlds": tld_count, "active_runs": service.active_runs}
    )


@router.get("/__lbheartbeat__", tags=["__lbheartbeat__"], summary="Dockerflow: __lbheartbeat__")
async def lbheartbeat() -> Response:
    """Dockerflow: Liveness for the load balancer. Always an empty 200."""
    return Response(content="")


@router.get("/__error__", tags=["__error__"], summary="Dockerflow: __error__")
async def test_error() -> Response:
    """Dockerflow: Return an API error to test service error handling."""
    logger.error("The __error__ endpoint was called")
    raise HTTPException(status_code=500, detail="")
