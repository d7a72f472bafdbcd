"""Sitefinder V1 API"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from sitefinder.configs import settings
from sitefinder.exceptions import WordListError
from sitefinder.probe.models import SearchRequest
from sitefinder.probe.service import ProbeService, get_probe_service
from sitefinder.web.models_v1 import RandomWordResponse
from sitefinder.words import random_word

logger = logging.getLogger(__name__)
router = APIRouter()

NDJSON_MEDIA_TYPE = "application/x-ndjson"
KEYWORD_CHARACTER_MAX = settings.web.api.v1.keyword_character_max

# Keep proxies from buffering the stream.
STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


@router.post(
    "/search",
    tags=["search"],
    summary="Sitefinder search stream endpoint",
    response_class=StreamingResponse,
)
async def search(
    search_request: SearchRequest,
    service: ProbeService = Depends(get_probe_service),
) -> StreamingResponse:
    """Probe a keyword across every TLD, or a single domain, and stream the updates as
    newline-delimited JSON until all probes are done.

    The stream carries partial records keyed by domain. A record with `"kind":
    "screenshot"` carries only the screenshot of the preceding status record.
    """
    if len(search_request.keyword) > KEYWORD_CHARACTER_MAX:
        raise HTTPException(status_code=400, detail="Keyword is too long")

    run = service.create_run(search_request)
    return StreamingResponse(run.stream(), media_type=NDJSON_MEDIA_TYPE, headers=STREAM_HEADERS)


@router.get(
    "/random-word",
    tags=["search"],
    summary="Random keyword endpoint",
    response_model=RandomWordResponse,
)
async def get_random_word() -> RandomWordResponse:
    """Return a random keyword to prefill a search."""
    try:
        return RandomWordResponse(word=random_word())
    except WordListError as e:
        logger.error(f"Failed to get random word: {e}")
        raise HTTPException(status_code=500, detail="Failed to get random word")
