"""Tests for the read-only HTTP API."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from chatdigest.digest_db import DigestStore
from chatdigest.http_api import create_app

T0 = datetime(2024, 6, 1, 9, 0, 0)


@pytest.fixture
def client(store):
    return TestClient(create_app(store))


def test_summaries_empty(client):
    response = client.get("/summaries")
    assert response.status_code == 200
    assert response.json() == []


def test_summaries_lists_all(client, store):
    first = store.insert_summary("one", T0)
    store.insert_summary("two", T0 + timedelta(minutes=1))

    body = client.get("/summaries").json()
    assert [s["text"] for s in body] == ["one", "two"]
    assert body[0]["id"] == first
    assert body[0]["daily_digest_id"] is None
    assert body[0]["timestamp"].startswith("2024-06-01T09:00:00")


def test_summaries_pagination(client, store):
    for i in range(5):
        store.insert_summary(f"s{i}", T0 + timedelta(minutes=i))

    page1 = client.get("/summaries", params={"count": 2, "page": 1}).json()
    page3 = client.get("/summaries", params={"count": 2, "page": 3}).json()
    assert [s["text"] for s in page1] == ["s4", "s3"]
    assert [s["text"] for s in page3] == ["s0"]


def test_summaries_rejects_page_zero(client):
    response = client.get("/summaries", params={"count": 2, "page": 0})
    assert response.status_code == 422


def test_daily_digests_nest_summaries(client, store):
    a = store.insert_summary("a", T0)
    store.insert_summary("unlinked", T0 + timedelta(minutes=1))
    digest_id = store.insert_daily_digest("digest", [a], timestamp=T0 + timedelta(hours=1))

    body = client.get("/daily_digests").json()
    assert len(body) == 1
    assert body[0]["id"] == digest_id
    assert body[0]["text"] == "digest"
    assert [s["id"] for s in body[0]["summaries"]] == [a]
    assert body[0]["summaries"][0]["daily_digest_id"] == digest_id


def test_store_failure_returns_empty_list(temp_dir):
    client = TestClient(create_app(DigestStore(temp_dir / "missing-tables.db")))
    assert client.get("/summaries").json() == []
    assert client.get("/summaries", params={"count": 3, "page": 1}).json() == []
    assert client.get("/daily_digests").json() == []
