"""Update check against the package index."""

from __future__ import annotations

import httpx
import pytest

from ai_git import update_check
from ai_git.update_check import check_for_update, fetch_latest_version, is_newer_version


def pypi_transport(version: str | None = "1.2.0", status: int = 200) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url == httpx.URL(update_check.PYPI_URL)
        if version is None:
            return httpx.Response(status, text="not json")
        return httpx.Response(status, json={"info": {"version": version}})

    return httpx.MockTransport(handler)


@pytest.fixture(autouse=True)
def enable_check(monkeypatch, tmp_path):
    monkeypatch.delenv(update_check.DISABLE_ENV, raising=False)
    monkeypatch.setattr(update_check, "_cache_file", lambda: tmp_path / "cache" / "update-check.json")


@pytest.mark.parametrize(
    ("current", "latest", "expected"),
    [
        ("0.4.0", "0.4.1", True),
        ("0.4.0", "0.10.0", True),
        ("0.4.0", "0.4.0", False),
        ("1.0.0", "0.9.9", False),
        ("v1.0", "1.0.1", True),
        ("dev", "1.0.0", False),
    ],
)
def test_is_newer_version(current, latest, expected):
    assert is_newer_version(current, latest) is expected


@pytest.mark.asyncio
async def test_newer_release_is_reported():
    result = await check_for_update("0.4.0", use_cache=False, transport=pypi_transport("0.5.0"))

    assert result.update_available is True
    assert result.latest_version == "0.5.0"


@pytest.mark.asyncio
async def test_network_errors_mean_no_update():
    def boom(request):
        raise httpx.ConnectError("offline", request=request)

    result = await check_for_update("0.4.0", use_cache=False, transport=httpx.MockTransport(boom))

    assert result.update_available is False
    assert result.latest_version is None


@pytest.mark.asyncio
async def test_bad_status_and_bad_json_are_ignored():
    assert await fetch_latest_version(transport=pypi_transport(status=503)) is None
    assert await fetch_latest_version(transport=pypi_transport(version=None)) is None


@pytest.mark.asyncio
async def test_disabled_by_environment(monkeypatch):
    monkeypatch.setenv(update_check.DISABLE_ENV, "1")

    def fail(request):
        raise AssertionError("network must not be used")

    result = await check_for_update("0.4.0", transport=httpx.MockTransport(fail))

    assert result.update_available is False


@pytest.mark.asyncio
async def test_cached_result_skips_network():
    await check_for_update("0.4.0", transport=pypi_transport("0.6.0"))

    def fail(request):
        raise AssertionError("cache should have answered")

    result = await check_for_update("0.4.0", transport=httpx.MockTransport(fail))

    assert result.latest_version == "0.6.0"
    assert result.update_available is True
