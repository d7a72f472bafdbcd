"""Response models for the v1 API"""

from pydantic import BaseModel


class RandomWordResponse(BaseModel):
    """Model for the `random-word` API response."""

    word: str
