# tests/test_middleware.py

"""
Tests for request-id tagging.
"""

import uuid

import pytest

from cmms.core.middleware import resolve_request_id


async def test_generates_request_id(client):
    response = await client.get("/api/health")

    assert uuid.UUID(response.headers["X-Request-Id"])
    assert "X-Response-Time-Ms" in response.headers


async def test_echoes_well_formed_request_id(client):
    response = await client.get("/api/health", headers={"X-Request-Id": "lb-7f3a.42_x"})

    assert response.headers["X-Request-Id"] == "lb-7f3a.42_x"


async def test_replaces_malformed_request_id(client):
    response = await client.get("/api/health", headers={"X-Request-Id": "<script>alert(1)</script>"})

    assert response.headers["X-Request-Id"] != "<script>alert(1)</script>"
    assert uuid.UUID(response.headers["X-Request-Id"])


@pytest.mark.parametrize("incoming", [None, "", "a" * 65, "id with spaces", "abc\n"])
def test_resolve_request_id_rejects(incoming):
    assert resolve_request_id(incoming) != incoming
