# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""Sitefinder specific exceptions."""


class SessionCreationError(Exception):
    """Raised when the browser engine cannot hand out a new session."""


class PoolClosedError(Exception):
    """Raised when a session is requested from a pool that has been torn down."""

    pass


class DeadlineExceededError(Exception):
    """Raised when a probe step does not finish before its hard deadline."""

    pass


class ProbeCancelledError(Exception):
    """Raised at a suspend point once the run's cancellation token has fired."""

    pass


class ScreenshotTooLargeError(Exception):
    """Raised when an encoded screenshot exceeds the configured size cap."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"Screenshot too large: {size} > {limit} bytes")
        self.size = size
        self.limit = limit


class StreamRequestError(Exception):
    """Raised when the search stream endpoint answers with an error."""

    pass


class WordListError(Exception):
    """Exception raised when a static word or TLD list can't be loaded."""

    pass
