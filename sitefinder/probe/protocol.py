"""Protocols for browser sessions and the factories that create them."""

from typing import Protocol


class Session(Protocol):
    """A protocol describing one reusable headless-browser session.

    A session is used by at most one probe at a time. The pool owns it between uses.
    """

    @property
    def usable(self) -> bool:  # pragma: no cover
        """Whether the session can be handed out again."""
        ...

    async def navigate(self, url: str) -> None:  # pragma: no cover
        """Navigate to the URL and wait for the page to settle.

        Raises:
            - Any engine error. Its message is used for classification.
        """
        ...

    async def title(self) -> str:  # pragma: no cover
        """Return the title of the current page."""
        ...

    async def favicon_url(self) -> str | None:  # pragma: no cover
        """Return the absolute URL of the current page's favicon, if one can be found."""
        ...

    async def screenshot(self) -> bytes:  # pragma: no cover
        """Capture the visible viewport as a JPEG image."""
        ...

    async def reset(self) -> None:  # pragma: no cover
        """Drop page state so the session can be reused for another domain."""
        ...

    async def close(self) -> None:  # pragma: no cover
        """Destroy the session and release its engine resources."""
        ...


class SessionFactory(Protocol):
    """A protocol describing a source of new sessions."""

    async def create(self) -> Session:  # pragma: no cover
        """Create a new session.

        Raises:
            - `SessionCreationError` if the engine cannot provide a session.
        """
        ...

    async def aclose(self) -> None:  # pragma: no cover
        """Shut down the engine behind the factory."""
        ...
