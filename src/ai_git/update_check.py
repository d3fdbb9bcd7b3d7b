"""Best-effort check for a newer ai-git release on PyPI.

Never raises: network errors, timeouts and malformed responses all report
"no update". Results are cached for half an hour per installed version.
"""

from __future__ import annotations

import json
import logging
import os
import ssl
import time
from dataclasses import dataclass
from pathlib import Path

import httpx
import truststore
from packaging.version import InvalidVersion, Version
from platformdirs import user_cache_dir

logger = logging.getLogger(__name__)

PYPI_URL = "https://pypi.org/pypi/ai-git/json"
DISABLE_ENV = "AI_GIT_DISABLE_UPDATE_CHECK"
FETCH_TIMEOUT_SECONDS = 2.0
CACHE_TTL_SECONDS = 30 * 60


@dataclass(frozen=True)
class UpdateCheckResult:
    update_available: bool
    current_version: str
    latest_version: str | None = None


def is_newer_version(current: str, latest: str) -> bool:
    try:
        return Version(latest) > Version(current)
    except InvalidVersion:
        return False


def _cache_file() -> Path:
    return Path(user_cache_dir("ai-git")) / "update-check.json"


def _read_cache(current_version: str) -> str | None:
    path = _cache_file()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    if not isinstance(data, dict) or data.get("checked_version") != current_version:
        return None
    if time.time() - float(data.get("checked_at", 0)) >= CACHE_TTL_SECONDS:
        return None
    latest = data.get("latest_version")
    return latest if isinstance(latest, str) else None


def _write_cache(current_version: str, latest_version: str) -> None:
    path = _cache_file()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(
                {"checked_at": time.time(), "checked_version": current_version, "latest_version": latest_version}
            ),
            encoding="utf-8",
        )
    except OSError as exc:
        logger.debug("Could not write update cache: %s", exc)


async def fetch_latest_version(
    timeout: float = FETCH_TIMEOUT_SECONDS,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str | None:
    if transport is not None:
        client = httpx.AsyncClient(transport=transport, timeout=timeout)
    else:
        client = httpx.AsyncClient(verify=truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT), timeout=timeout)
    try:
        async with client:
            response = await client.get(PYPI_URL, headers={"Accept": "application/json"})
        if response.status_code != 200:
            return None
        version = response.json().get("info", {}).get("version")
        return version if isinstance(version, str) else None
    except (httpx.HTTPError, ValueError, AttributeError) as exc:
        logger.debug("Update check failed: %s", exc)
        return None


async def check_for_update(
    current_version: str,
    *,
    use_cache: bool = True,
    transport: httpx.AsyncBaseTransport | None = None,
) -> UpdateCheckResult:
    """Compare ``current_version`` against the latest published release."""
    if os.environ.get(DISABLE_ENV) == "1":
        return UpdateCheckResult(update_available=False, current_version=current_version)

    latest = _read_cache(current_version) if use_cache else None
    if latest is None:
        latest = await fetch_latest_version(transport=transport)
        if latest is None:
            return UpdateCheckResult(update_available=False, current_version=current_version)
        if use_cache:
            _write_cache(current_version, latest)

    return UpdateCheckResult(
        update_available=is_newer_version(current_version, latest),
        current_version=current_version,
        latest_version=latest,
    )


__all__ = [
    "UpdateCheckResult",
    "is_newer_version",
    "fetch_latest_version",
    "check_for_update",
]
