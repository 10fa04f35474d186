import json

import pytest
import requests

from data_client import SupabaseClient
from exceptions import DatabaseError


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body
        self.content = json.dumps(body).encode() if body is not None else b""
        self.text = self.content.decode()

    def json(self):
        return self._body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error", response=self)


class FakeSession:
    def __init__(self, responses=None):
        self.headers = {}
        self.requests = []
        self.responses = list(responses or [])

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        self.requests.append({"method": method, "url": url, "params": params, "json": json, "headers": headers})
        return self.responses.pop(0) if self.responses else FakeResponse(200, [])


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client(session):
    return SupabaseClient("https://demo.supabase.co/", "service-key", session=session)


def test_sets_auth_headers(client, session):
    assert session.headers["apikey"] == "service-key"
    assert session.headers["Authorization"] == "Bearer service-key"


def test_select_builds_postgrest_query(client, session):
    session.responses.append(FakeResponse(200, [{"id": "s1"}]))
    rows = client.select("scenes", {"project_id": "p1", "deleted_at": None}, order="scene_number", limit=5)
    assert rows == [{"id": "s1"}]
    sent = session.requests[0]
    assert sent["method"] == "GET"
    assert sent["url"] == "https://demo.supabase.co/rest/v1/scenes"
    assert sent["params"] == {"project_id": "eq.p1", "deleted_at": "is.null", "select": "*",
                              "order": "scene_number.asc", "limit": "5"}


def test_select_in_filter_and_empty_in_filter(client, session):
    client.select("storyboards", in_filters={"scene_id": ["a", "b"]})
    assert session.requests[0]["params"]["scene_id"] == 'in.("a","b")'
    assert client.select("storyboards", in_filters={"scene_id": []}) == []
    assert len(session.requests) == 1


def test_insert_asks_for_representation(client, session):
    session.responses.append(FakeResponse(201, [{"id": "x", "title": "A"}]))
    rows = client.insert("projects", {"title": "A"})
    assert rows[0]["id"] == "x"
    sent = session.requests[0]
    assert sent["json"] == [{"title": "A"}]
    assert sent["headers"]["Prefer"] == "return=representation"


def test_upsert_merges_duplicates(client, session):
    session.responses.append(FakeResponse(201, [{"id": "c1"}]))
    client.upsert("project_content", {"project_id": "p", "content_type": "premise"}, ("project_id", "content_type"))
    sent = session.requests[0]
    assert sent["params"] == {"on_conflict": "project_id,content_type"}
    assert "resolution=merge-duplicates" in sent["headers"]["Prefer"]


def test_update_stamps_updated_at(client, session):
    client.update("projects", {"title": "B"}, {"id": "p1"})
    sent = session.requests[0]
    assert sent["method"] == "PATCH"
    assert sent["params"] == {"id": "eq.p1"}
    assert "updated_at" in sent["json"]


def test_invoke_calls_edge_function(client, session):
    session.responses.append(FakeResponse(200, {"success": True}))
    assert client.invoke("generate-storyboard", {"projectId": "p1"}) == {"success": True}
    assert session.requests[0]["url"] == "https://demo.supabase.co/functions/v1/generate-storyboard"


def test_http_errors_become_database_errors(client, session):
    session.responses.append(FakeResponse(409, {"message": "duplicate key"}))
    with pytest.raises(DatabaseError) as excinfo:
        client.insert("projects", {"title": "A"})
    assert "duplicate key" in excinfo.value.message


def test_requires_url_and_key():
    with pytest.raises(ValueError):
        SupabaseClient("", "key")
