"""
Error kinds raised by the Search Console fetch layer
"""
import json
from typing import Optional

from googleapiclient.errors import HttpError


class GSCError(Exception):
    """Base class for Search Console fetch failures"""

    user_message = "Search Console request failed."

    def __init__(self, message: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message or self.user_message)
        self.status = status


class ReauthenticationRequired(GSCError):
    """Access token expired or was revoked"""

    user_message = "Your Google session expired. Please sign in again."


class RateLimited(GSCError):
    """Search Console quota exhausted"""

    user_message = "Search Console rate limit reached. Wait a few minutes and retry."


class NoDataError(GSCError):
    """The property returned no rows for the requested period"""

    user_message = "No Search Console data found for this property and date range."


class GSCApiError(GSCError):
    """Any other API failure"""


def _error_message(error: HttpError) -> str:
    """Extract the message from a Google API JSON error body"""
    try:
        details = json.loads(error.content.decode())
        return details.get('error', {}).get('message', 'Unknown error')
    except (ValueError, AttributeError):
        return str(error)


def error_from_http(error: HttpError) -> GSCError:
    """Map an HttpError onto the matching fetch error kind"""
    status = getattr(error.resp, 'status', None)
    try:
        status = int(status)
    except (TypeError, ValueError):
        status = None

    message = _error_message(error)

    if status == 401:
        return ReauthenticationRequired(status=status)
    if status == 429 or (status == 403 and 'quota' in message.lower()):
        return RateLimited(status=status)
    return GSCApiError(f"GSC API Error: {message}", status=status)
