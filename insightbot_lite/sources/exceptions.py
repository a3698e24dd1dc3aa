"""Exception hierarchy for loading PostHog shared insights.

Route handlers catch :class:`InsightSourceError` and render the error layout;
the normalizer itself never raises, so these only describe upstream failures.
"""

from typing import Optional


class InsightSourceError(Exception):
    """Base exception for all shared-insight loading errors.

    The message is shown to the user on the device, so it should be short and
    actionable.
    """


class ShareUrlError(InsightSourceError):
    """The configured URL is not a usable PostHog share link.

    Raised when:
    - The URL has no ``/shared/<token>`` path segment
    - The URL cannot be parsed
    """


class InsightFetchError(InsightSourceError):
    """The shared page could not be retrieved.

    Raised when:
    - PostHog answers with a non-2xx status
    - The request times out or the network is unreachable
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ExportedDataMissingError(InsightSourceError):
    """The shared page has no embedded ``posthog-exported-data`` block.

    Usually means the insight is not shared publicly.
    """


class ExportedDataDecodeError(InsightSourceError):
    """The embedded data block was found but is not valid JSON."""
