# src/modsloader/utils.py
import hashlib
import importlib.metadata
import os
import threading
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry  # type: ignore

from modsloader.constants import (
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_CONNECT_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
    DISTRIBUTION_NAME,
    GITHUB_API_VERSION,
    RETRY_STATUS_FORCELIST,
)
from modsloader.exceptions import DownloadError, FetchError, RateLimitError
from modsloader.log_utils import logger

# Cache for the User-Agent string to avoid repeated metadata lookups
_USER_AGENT_CACHE = None

# Thread-safe token warning tracking
_token_warning_shown = False
_token_warning_lock = threading.Lock()


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `mods-loader/{version}`, where `{version}` is the installed package version or `unknown` if the version cannot be determined.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        try:
            app_version = importlib.metadata.version(DISTRIBUTION_NAME)
        except importlib.metadata.PackageNotFoundError:
            app_version = "unknown"

        _USER_AGENT_CACHE = f"{DISTRIBUTION_NAME}/{app_version}"

    return _USER_AGENT_CACHE


def get_effective_github_token(
    github_token: Optional[str], allow_env_token: bool = True
) -> Optional[str]:
    """
    Resolve the GitHub token to use for API requests.

    An explicit token wins; otherwise the GITHUB_TOKEN environment variable is
    used when `allow_env_token` is set. Whitespace-only tokens count as absent.
    """
    token = (github_token or "").strip()
    if token:
        return token
    if allow_env_token:
        env_token = os.environ.get("GITHUB_TOKEN", "").strip()
        if env_token:
            return env_token
    return None


def _show_token_warning_if_needed(effective_token: Optional[str]) -> None:
    """Log a one-time hint about unauthenticated GitHub rate limits."""
    global _token_warning_shown
    if effective_token:
        return
    with _token_warning_lock:
        if _token_warning_shown:
            return
        _token_warning_shown = True
    logger.debug(
        "No GitHub token configured - API requests are limited to 60 per hour. "
        "Set GITHUB_TOKEN for higher limits."
    )


def create_session() -> requests.Session:
    """
    Build a requests Session with retry-capable adapters.

    Connection, read and retryable-status failures (408, 429, 5xx) are retried
    with exponential backoff by urllib3 before the final response is surfaced.
    """
    retry_strategy: Retry = Retry(
        total=DEFAULT_CONNECT_RETRIES,
        connect=DEFAULT_CONNECT_RETRIES,
        read=DEFAULT_CONNECT_RETRIES,
        status=DEFAULT_CONNECT_RETRIES,
        backoff_factor=DEFAULT_BACKOFF_FACTOR,
        status_forcelist=list(RETRY_STATUS_FORCELIST),
        allowed_methods=frozenset({"GET", "HEAD"}),
        raise_on_status=False,
        respect_retry_after_header=True,
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session = requests.Session()
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers["User-Agent"] = get_user_agent()
    return session


def _response_headers(response: Any) -> Mapping[str, Any]:
    """Return the response headers when they are mapping-like, else an empty dict."""
    headers = getattr(response, "headers", None)
    return headers if isinstance(headers, Mapping) else {}


def make_api_request(
    session: requests.Session,
    url: str,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    timeout: Optional[float] = None,
) -> Any:
    """
    GET a JSON document from an upstream API.

    Parameters:
        session (requests.Session): Session used for the request.
        url (str): API URL to request.
        headers (Optional[Dict[str, str]]): Extra request headers.
        params (Optional[Dict[str, Any]]): Query parameters.
        timeout (Optional[float]): Seconds to wait; the module default when omitted.

    Returns:
        Any: The decoded JSON body.

    Raises:
        FetchError: On network failure, non-success status, or an undecodable body.
    """
    actual_timeout = timeout or DEFAULT_REQUEST_TIMEOUT
    logger.debug(f"Making API request: {url}")
    try:
        response = session.get(
            url, headers=headers, params=params, timeout=actual_timeout
        )
    except requests.RequestException as e:
        raise FetchError(
            "Failed to reach release feed", url=url, details=str(e)
        ) from e

    if not response.ok:
        raise FetchError(
            "Release feed returned a non-success status",
            url=url,
            status_code=response.status_code,
            details=f"HTTP {response.status_code}",
            headers=_response_headers(response),
        )

    try:
        return response.json()
    except ValueError as e:
        raise FetchError(
            "Release feed returned invalid JSON", url=url, details=str(e)
        ) from e


def make_github_api_request(
    session: requests.Session,
    url: str,
    github_token: Optional[str] = None,
    allow_env_token: bool = True,
    params: Optional[Dict[str, Any]] = None,
    timeout: Optional[float] = None,
    _is_retry: bool = False,
) -> Any:
    """
    Perform a GitHub API GET request with optional token authentication.

    Retries once without authentication if token-based auth returns 401 and
    reports an exhausted rate limit (403 with zero remaining quota) as a
    RateLimitError carrying the reset time.

    Returns:
        Any: The decoded JSON body.

    Raises:
        RateLimitError: When the GitHub rate limit is exhausted.
        FetchError: For any other network or HTTP failure.
    """
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
    }

    effective_token = get_effective_github_token(github_token, allow_env_token)
    if effective_token:
        headers["Authorization"] = f"token {effective_token}"
        logger.debug("Using GitHub token for API authentication")
    _show_token_warning_if_needed(effective_token)

    try:
        return make_api_request(
            session, url, headers=headers, params=params, timeout=timeout
        )
    except FetchError as e:
        if e.status_code == 401 and effective_token and not _is_retry:
            logger.warning(
                f"GitHub token authentication failed for {url}. Retrying without authentication."
            )
            return make_github_api_request(
                session,
                url,
                github_token=None,
                allow_env_token=False,
                params=params,
                timeout=timeout,
                _is_retry=True,
            )
        if e.status_code == 403:
            _raise_if_rate_limited(url, e)
        raise


def _raise_if_rate_limited(url: str, error: FetchError) -> None:
    """
    Convert a 403 into a RateLimitError when GitHub reports zero remaining quota.

    When the rate-limit headers are missing the original error is left to propagate.
    """
    headers = error.headers
    if str(headers.get("X-RateLimit-Remaining", "")).strip() != "0":
        return

    reset_header = headers.get("X-RateLimit-Reset")
    reset_time: Optional[int] = None
    reset_str = "unknown"
    try:
        reset_time = int(reset_header)
        reset_str = datetime.fromtimestamp(reset_time, timezone.utc).strftime(
            "%Y-%m-%d %H:%M:%S UTC"
        )
    except (TypeError, ValueError):
        pass

    message = (
        f"GitHub API rate limit exceeded. Resets at {reset_str}. "
        "Set GITHUB_TOKEN for higher rate limits."
    )
    logger.error(message)
    raise RateLimitError(message, reset_time=reset_time, url=url) from error


def fetch_bytes(
    session: requests.Session, url: str, timeout: Optional[float] = None
) -> bytes:
    """
    Download the body at `url` into memory.

    Raises:
        DownloadError: On network failure or non-success status.
    """
    actual_timeout = timeout or DEFAULT_REQUEST_TIMEOUT
    logger.debug(f"Downloading artifact from URL: {url}")
    try:
        response = session.get(url, timeout=actual_timeout)
    except requests.RequestException as e:
        raise DownloadError(
            "Failed to reach artifact URL", url=url, details=str(e)
        ) from e

    if not response.ok:
        raise DownloadError(
            "Artifact URL returned a non-success status",
            url=url,
            status_code=response.status_code,
            details=f"HTTP {response.status_code}",
        )
    return response.content


def calculate_sha256(data: bytes) -> str:
    """
    Compute the SHA-256 hex digest of raw bytes.

    Returns:
        str: The 64-character lowercase hexadecimal digest.
    """
    return hashlib.sha256(data).hexdigest()


def calculate_file_sha256(file_path: str) -> Optional[str]:
    """
    Compute the SHA-256 hex digest of a file.

    Streams the file without loading it fully into memory. Returns None if the
    file cannot be opened or read.
    """
    try:
        sha256_hash = hashlib.sha256()
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(4096), b""):
                sha256_hash.update(chunk)
        return sha256_hash.hexdigest()
    except OSError as e:
        logger.debug(f"Error calculating SHA-256 for {file_path}: {e}")
        return None
