"""ASGI apps for middleware tests."""

from starlette.types import ASGIApp, Message, Receive, Scope, Send


def make_app(
    status: int, content_type: bytes = b"application/json", chunks: tuple[bytes, ...] = ()
) -> ASGIApp:
    """Return an ASGI app answering every request with `status`, sending `chunks` as
    the body.
    """

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        start: Message = {
            "type": "http.response.start",
            "status": status,
            "headers": [(b"content-type", content_type)],
        }
        await send(start)
        for chunk in chunks:
            await send({"type": "http.response.body", "body": chunk, "more_body": True})
        await send({"type": "http.response.body", "body": b"", "more_body": False})

    return app
