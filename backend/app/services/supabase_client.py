"""
Supabase REST client used to read catalog, user, program and requirement documents.
Transient failures (connection errors, timeouts, 5xx) are retried with exponential backoff.
"""
import logging
import os
import time
from typing import Any, Dict, List, Optional, Sequence

import requests
from requests.exceptions import ConnectionError, RequestException, Timeout

logger = logging.getLogger(__name__)


class SupabaseError(Exception):
    """Base exception for Supabase-related errors."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.original_error = original_error


class SupabaseConnectionError(SupabaseError):
    """Raised when Supabase cannot be reached after all retries."""
    pass


class SupabaseTimeoutError(SupabaseError):
    """Raised when every attempt timed out."""
    pass


class SupabaseResponseError(SupabaseError):
    """Raised when Supabase answers with an error status."""

    def __init__(self, message: str, status_code: int, response_body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class SupabaseConfigError(SupabaseError):
    """Raised when Supabase configuration is missing."""
    pass


def _get_env(key: str, default: str = "") -> str:
    return (os.getenv(key) or default).strip()


def get_settings() -> Dict[str, Any]:
    """Read connection settings from the environment (loaded from .env by main)."""
    return {
        "url": _get_env("SUPABASE_URL").rstrip("/"),
        "anon_key": _get_env("SUPABASE_ANON_KEY"),
        "service_key": _get_env("SUPABASE_SERVICE_ROLE_KEY") or _get_env("SUPABASE_ACCESS_TOKEN"),
        "timeout": int(_get_env("SUPABASE_TIMEOUT", "60")),
        "max_retries": int(_get_env("SUPABASE_MAX_RETRIES", "3")),
        "initial_backoff": float(_get_env("SUPABASE_INITIAL_BACKOFF", "1.0")),
    }


def supabase_configured() -> bool:
    settings = get_settings()
    return bool(settings["url"] and settings["anon_key"] and settings["service_key"])


def _ensure_configured(settings: Dict[str, Any]) -> None:
    missing = []
    if not settings["url"]:
        missing.append("SUPABASE_URL")
    if not settings["anon_key"]:
        missing.append("SUPABASE_ANON_KEY")
    if not settings["service_key"]:
        missing.append("SUPABASE_SERVICE_ROLE_KEY or SUPABASE_ACCESS_TOKEN")
    if missing:
        raise SupabaseConfigError(f"Missing Supabase configuration: {', '.join(missing)}")


def _headers(settings: Dict[str, Any]) -> Dict[str, str]:
    return {
        "apikey": settings["anon_key"],
        "Authorization": f"Bearer {settings['service_key']}",
        "Content-Type": "application/json",
    }


def supabase_request(
    method: str,
    path: str,
    params: Optional[Dict[str, str]] = None,
    **kwargs: Any,
) -> requests.Response:
    """
    Make a request to Supabase, retrying transient failures.

    Args:
        method: HTTP method
        path: API path, e.g. /rest/v1/courses
        params: Query string parameters
        **kwargs: Passed through to requests.request()

    Returns:
        The successful (2xx) response

    Raises:
        SupabaseConfigError: Configuration missing
        SupabaseConnectionError / SupabaseTimeoutError: Still failing after retries
        SupabaseResponseError: 4xx response, or 5xx after retries
    """
    settings = get_settings()
    _ensure_configured(settings)

    url = f"{settings['url']}{path}"
    headers = {**_headers(settings), **kwargs.pop("headers", {})}
    attempts = settings["max_retries"] + 1

    for attempt in range(attempts):
        is_last = attempt == attempts - 1
        backoff = settings["initial_backoff"] * (2 ** attempt)
        try:
            logger.debug(f"Supabase request attempt {attempt + 1}/{attempts}: {method.upper()} {path}")
            response = requests.request(
                method=method.upper(),
                url=url,
                headers=headers,
                params=params,
                timeout=settings["timeout"],
                **kwargs,
            )
        except ConnectionError as e:
            if is_last:
                logger.error(f"Failed to connect to Supabase after {attempts} attempts: {e}")
                raise SupabaseConnectionError(
                    f"Failed to connect to Supabase after {attempts} attempts", original_error=e
                ) from e
            logger.warning(f"Connection error to Supabase, retrying in {backoff:.1f}s: {e}")
            time.sleep(backoff)
            continue
        except Timeout as e:
            if is_last:
                logger.error(f"Supabase request timed out after {attempts} attempts: {e}")
                raise SupabaseTimeoutError(
                    f"Supabase request timed out after {attempts} attempts", original_error=e
                ) from e
            logger.warning(f"Supabase request timed out, retrying in {backoff:.1f}s: {e}")
            time.sleep(backoff)
            continue
        except RequestException as e:
            logger.error(f"Unexpected request error to Supabase: {e}")
            raise SupabaseError(f"Unexpected error making request to Supabase: {e}", original_error=e) from e

        if 500 <= response.status_code < 600:
            if is_last:
                logger.error(
                    f"Supabase request failed after {attempts} attempts: "
                    f"{method.upper()} {path} returned {response.status_code}"
                )
                raise SupabaseResponseError(
                    f"Supabase server error: {response.status_code}",
                    status_code=response.status_code,
                    response_body=response.text,
                )
            logger.warning(f"Supabase returned {response.status_code}, retrying in {backoff:.1f}s")
            time.sleep(backoff)
            continue

        if 400 <= response.status_code < 500:
            raise SupabaseResponseError(
                f"Supabase client error: {response.status_code}",
                status_code=response.status_code,
                response_body=response.text,
            )

        return response

    raise SupabaseError("Supabase request failed unexpectedly")


def in_filter(values: Sequence[str]) -> str:
    """PostgREST `in` filter value, quoting each id."""
    quoted = ",".join('"' + str(v).replace('"', '\\"') + '"' for v in values)
    return f"in.({quoted})"


def select_rows(table: str, filters: Dict[str, str], columns: str = "*") -> List[Dict[str, Any]]:
    """GET rows from a PostgREST table."""
    params = {"select": columns, **filters}
    response = supabase_request("GET", f"/rest/v1/{table}", params=params)
    rows = response.json()
    if not isinstance(rows, list):
        raise SupabaseError(f"Unexpected response shape from table {table}")
    return rows
