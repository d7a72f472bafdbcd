"""A helper to create the asynchronous HTTP client (via `httpx.AsyncClient`) used to
talk to a sitefinder service.
"""

from httpx import AsyncClient, Limits, Timeout

USER_AGENT = "sitefinder-client"


def create_http_client(
    base_url: str = "",
    connect_timeout: float = 1.0,
    read_timeout: float = 5.0,
    write_timeout: float = 5.0,
    max_connections: int = 4,
    proxy: str | None = None,
) -> AsyncClient:
    """Create a new `httpx.AsyncClient` for the sitefinder API.

    Args:
      - `base_url` {str}: URL of the sitefinder service. An empty string sets no base URL.
      - `connect_timeout` {float}: The timeout for establishing a connection, also used
        for acquiring one from the pool.
      - `read_timeout` {float}: The longest silence tolerated between two chunks. A search
        stream is quiet while the slowest probe runs, so this has to cover a navigation.
      - `write_timeout` {float}: The timeout for sending a request body.
      - `max_connections` {int}: Max connections of the connection pool.
      - `proxy` {str | None}: A proxy URL for this client, or no proxy if not set.
    Returns:
      - {AsyncClient}: An async HTTP client identifying itself as `sitefinder-client`.
    """
    return AsyncClient(
        base_url=base_url,
        headers={"User-Agent": USER_AGENT},
        limits=Limits(max_connections=max_connections),
        timeout=Timeout(
            connect=connect_timeout,
            read=read_timeout,
            write=write_timeout,
            pool=connect_timeout,
        ),
        proxy=proxy,
    )
