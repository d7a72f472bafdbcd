"""Constants for the probing engine: progress log messages and page selectors."""

STARTING = "Starting domain check..."
CONNECTING = "Attempting to connect to domain..."
CONNECTED = "Successfully connected to domain"
TAKING_SCREENSHOT = "Taking screenshot..."
PROCESSING_SCREENSHOT = "Processing screenshot..."
SCREENSHOT_TOO_LARGE = "Failed to capture screenshot (size limit exceeded)"
SCREENSHOT_CAPTURE_FAILED = "Failed to capture screenshot"
COMPLETED = "Domain check completed successfully"
CLOSED_PAGE = "Closed browser page"
INTERNAL_ERROR_OCCURRED = "Internal processing error occurred"
RESTARTING = "Restarting domain check..."
RECHECK_FAILED = "Failed to recheck domain"


def retrieved_title(title: str) -> str:
    """Return the log message for a retrieved page title."""
    return f'Retrieved page title: "{title}"'


# Link elements that may point at a favicon, most specific first.
FAVICON_SELECTOR = (
    'link[rel="icon"], link[rel="shortcut icon"], link[rel="apple-touch-icon"],'
    ' link[rel="apple-touch-icon-precomposed"]'
)
FAVICON_FALLBACK_PATH = "/favicon.ico"

SCREENSHOT_DATA_URL_PREFIX = "data:image/jpeg;base64,"
