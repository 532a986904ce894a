from typing import Tuple
from urllib.parse import urlparse, urlunparse


def normalize_url(url: str) -> Tuple[str, bool]:
    """
    Add an https:// scheme to bare hosts and drop the fragment.

    Returns the normalized URL and whether it differs from the input.
    """
    url = url.strip()

    parsed = urlparse(url)
    if not parsed.scheme:
        parsed = urlparse(f"https://{url}")

    normalized = urlunparse(parsed._replace(fragment=""))
    return normalized, normalized != url


def validate_url(url: str) -> Tuple[bool, str, str]:
    """Returns (is_valid, normalized_url, error_message)."""
    if not url or not url.strip():
        return False, "", "URL cannot be empty"

    try:
        normalized_url, _ = normalize_url(url)
        parsed = urlparse(normalized_url)
    except ValueError as e:
        return False, url.strip(), f"URL parsing error: {str(e)}"

    if parsed.scheme not in ("http", "https"):
        return False, normalized_url, f"Invalid URL scheme: {parsed.scheme} (must be http or https)"

    if not parsed.netloc:
        return False, normalized_url, "Invalid URL format: missing domain"

    return True, normalized_url, ""
