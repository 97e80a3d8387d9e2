"""Tests for the CMS client with requests mocked out."""

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from rehla_trees.api.client import AuthenticationError, CMSClient, CMSError, unwrap_response
from rehla_trees.auth.session import AuthSession
from rehla_trees.models import User


def make_response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def session():
    return AuthSession()


@pytest.fixture
def signed_in(session):
    session.store("token-123", User(id=1, username="volunteer"))
    return session


@pytest.fixture
def mock_request():
    with patch("rehla_trees.api.client.requests.request") as mocked:
        yield mocked


def test_login_stores_token_and_user(cms_config, session, mock_request):
    mock_request.return_value = make_response(200, {
        "jwt": "new-token",
        "user": {"id": 5, "username": "salem", "email": "s@example.org", "confirmed": True, "blocked": False},
    })
    client = CMSClient(cms_config, session)

    user = client.login("salem", "secret")

    assert user.username == "salem"
    assert session.token == "new-token"
    assert session.user.id == 5

    method, url = mock_request.call_args.args
    assert method == "POST"
    assert url == "https://cms.example.org/api/auth/local"
    assert json.loads(mock_request.call_args.kwargs["data"]) == {"identifier": "salem", "password": "secret"}
    assert "Authorization" not in mock_request.call_args.kwargs["headers"]


def test_login_failure_raises_server_message(cms_config, session, mock_request):
    mock_request.return_value = make_response(400, {
        "error": {"status": 400, "name": "ValidationError", "message": "Invalid identifier or password"}
    })
    client = CMSClient(cms_config, session)

    with pytest.raises(CMSError, match="Invalid identifier or password") as exc_info:
        client.login("salem", "wrong")

    assert exc_info.value.status_code == 400
    assert session.token is None


def test_authenticated_call_without_token_is_rejected_locally(cms_config, session, mock_request):
    client = CMSClient(cms_config, session)

    with pytest.raises(AuthenticationError):
        client.get_trees()

    mock_request.assert_not_called()


def test_expired_token_clears_session(cms_config, signed_in, mock_request):
    mock_request.return_value = make_response(401, {"error": {"message": "Unauthorized"}})
    client = CMSClient(cms_config, signed_in)

    with pytest.raises(AuthenticationError):
        client.get_trees()

    assert signed_in.token is None
    assert signed_in.user is None


def test_error_without_json_body_uses_status(cms_config, signed_in, mock_request):
    mock_request.return_value = make_response(502, ValueError("not json"))
    client = CMSClient(cms_config, signed_in)

    with pytest.raises(CMSError, match="HTTP 502"):
        client.get_tree(3)


def test_create_tree_uploads_photos_before_entry(cms_config, signed_in, mock_request, tmp_path):
    tree_photo = tmp_path / "tree.jpg"
    planter_photo = tmp_path / "planter.png"
    tree_photo.write_bytes(b"jpeg")
    planter_photo.write_bytes(b"png")

    mock_request.side_effect = [
        make_response(200, [{"id": 11, "name": "tree.jpg"}]),
        make_response(200, [{"id": 12, "name": "planter.png"}]),
        make_response(201, {"data": {"id": 99, "serial_number": "00001"}, "meta": {}}),
    ]
    client = CMSClient(cms_config, signed_in)

    result = client.create_tree({"serial_number": "00001"}, tree_photo=tree_photo, planter_photo=planter_photo)

    assert result == {"id": 99, "serial_number": "00001"}
    upload_call, planter_call, create_call = mock_request.call_args_list

    assert upload_call.args == ("POST", "https://cms.example.org/api/upload")
    name, _, mime = upload_call.kwargs["files"]["files"]
    assert (name, mime) == ("tree.jpg", "image/jpeg")
    assert "Content-Type" not in upload_call.kwargs["headers"]
    assert upload_call.kwargs["headers"]["Authorization"] == "Bearer token-123"

    assert planter_call.kwargs["files"]["files"][0] == "planter.png"

    assert create_call.args == ("POST", "https://cms.example.org/api/trees")
    assert json.loads(create_call.kwargs["data"]) == {
        "data": {"serial_number": "00001", "tree_photo": 11, "planter_photo": 12}
    }


def test_create_tree_without_photos_sends_entry_only(cms_config, signed_in, mock_request):
    mock_request.return_value = make_response(201, {"data": {"id": 1}})
    client = CMSClient(cms_config, signed_in)

    client.create_tree({"serial_number": "00002"})

    assert mock_request.call_count == 1
    assert json.loads(mock_request.call_args.kwargs["data"]) == {"data": {"serial_number": "00002"}}


def test_failed_upload_stops_entry_creation(cms_config, signed_in, mock_request, tmp_path):
    tree_photo = tmp_path / "tree.jpg"
    tree_photo.write_bytes(b"jpeg")
    mock_request.return_value = make_response(413, {"error": {"message": "File too large"}})
    client = CMSClient(cms_config, signed_in)

    with pytest.raises(CMSError, match="File too large"):
        client.create_tree({"serial_number": "00003"}, tree_photo=tree_photo)

    assert mock_request.call_count == 1


def test_find_tree_by_serial_is_public(cms_config, signed_in, mock_request):
    mock_request.return_value = make_response(200, {
        "data": [{
            "id": 4,
            "documentId": "abc",
            "serial_number": "00001",
            "planting_date": "2025-03-21",
            "tree_status": "good",
            "city": "Tripoli",
            "tree_type": "pine",
            "tree_photo": {"id": 11, "url": "/uploads/tree.jpg", "name": "tree.jpg", "width": 800},
            "planter_photo": None,
        }],
        "meta": {"pagination": {"total": 1}},
    })
    client = CMSClient(cms_config, signed_in)

    tree = client.find_tree_by_serial("00001")

    assert tree.serial_number == "00001"
    assert tree.document_id == "abc"
    assert tree.planting_date.isoformat() == "2025-03-21"
    assert client.media_url(tree.tree_photo.url) == "https://cms.example.org/uploads/tree.jpg"
    assert mock_request.call_args.kwargs["params"] == {
        "filters[serial_number][$eq]": "00001",
        "populate": "*",
    }
    assert "Authorization" not in mock_request.call_args.kwargs["headers"]


def test_find_tree_by_serial_returns_none_when_missing(cms_config, session, mock_request):
    mock_request.return_value = make_response(200, {"data": [], "meta": {}})
    client = CMSClient(cms_config, session)

    assert client.find_tree_by_serial("99999") is None


def test_timeout_is_reraised(cms_config, session, mock_request):
    mock_request.side_effect = requests.exceptions.Timeout()
    client = CMSClient(cms_config, session)

    with pytest.raises(requests.exceptions.Timeout):
        client.find_tree_by_serial("00001")


def test_media_url():
    client = CMSClient(MagicMock(api_url="http://localhost:1337", api_timeout=5))

    assert client.media_url("") == ""
    assert client.media_url("/uploads/a.jpg") == "http://localhost:1337/uploads/a.jpg"
    assert client.media_url("https://cdn.example.org/a.jpg") == "https://cdn.example.org/a.jpg"


def test_unwrap_response():
    assert unwrap_response({"data": {"id": 1}}) == {"id": 1}
    assert unwrap_response([{"id": 1}]) == [{"id": 1}]
    assert unwrap_response({"jwt": "x"}) == {"jwt": "x"}
    assert unwrap_response({"data": [], "meta": {}}) == []
    assert unwrap_response({"data": None}) is None


def test_missing_api_url_is_rejected():
    with pytest.raises(ValueError):
        CMSClient(MagicMock(api_url="", api_timeout=5))


def test_get_trees_without_trees_returns_empty_list(cms_config, signed_in, mock_request):
    mock_request.return_value = make_response(200, {"data": [], "meta": {"pagination": {"total": 0}}})
    client = CMSClient(cms_config, signed_in)

    assert client.get_trees() == []


def test_stale_token_is_not_sent_on_public_lookup(cms_config, mock_request):
    stale = AuthSession()
    stale.store("stale", User(id=2, username="old"))
    mock_request.return_value = make_response(200, {"data": [], "meta": {}})
    client = CMSClient(cms_config, stale)

    assert client.find_tree_by_serial("00001") is None

    headers = mock_request.call_args.kwargs["headers"]
    assert headers == {"Content-Type": "application/json"}
    assert stale.token == "stale"
