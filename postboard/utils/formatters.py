"""
Formatting utilities for templates.
"""
from datetime import datetime
from typing import Optional
from urllib.parse import unquote, urlparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def format_timestamp(timestamp: Optional[str], timezone: str = 'UTC') -> str:
    """
    Format ISO timestamp to human-readable string in specified timezone.

    Args:
        timestamp: ISO format timestamp string (UTC)
        timezone: Target timezone name

    Returns:
        Formatted timestamp string, 'N/A' when missing or unparseable
    """
    if not timestamp:
        return 'N/A'

    try:
        # Parse ISO format (assume UTC if no timezone specified)
        if isinstance(timestamp, str):
            dt = datetime.fromisoformat(timestamp.replace('Z', '+00:00'))
        else:
            dt = timestamp

        try:
            dt = dt.astimezone(ZoneInfo(timezone))
        except ZoneInfoNotFoundError:
            pass
        return dt.strftime('%Y-%m-%d %H:%M:%S')

    except (ValueError, AttributeError):
        return str(timestamp)


def attachment_name(download_url: Optional[str]) -> str:
    """
    Recover the original filename from a download URL.

    Object keys are '<millis>-<filename>'; the timestamp prefix is dropped.
    """
    if not download_url:
        return ''
    key = unquote(urlparse(download_url).path.rsplit('/', 1)[-1])
    prefix, sep, name = key.partition('-')
    if sep and prefix.isdigit():
        return name
    return key


def truncate_text(text: str, max_length: int = 100, suffix: str = '...') -> str:
    """
    Truncate text to maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated text
    """
    if not text or len(text) <= max_length:
        return text or ''
    return text[:max_length - len(suffix)] + suffix
