"""Pytest configuration and shared fixtures."""

import json
from typing import Dict
from unittest.mock import Mock

import pytest

from pocket_cli.api.models import Item, ItemState


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep tests independent of the developer's Pocket environment."""
    monkeypatch.delenv("POCKET_CONSUMER_KEY", raising=False)
    monkeypatch.delenv("POCKET_CONFIG_DIR", raising=False)
    monkeypatch.delenv("POCKET_API_URL", raising=False)


@pytest.fixture
def mock_consumer_key():
    """Mock Pocket consumer key."""
    return "12345-abcdef0123456789abcdef01"


@pytest.fixture
def mock_access_token():
    """Mock Pocket access token."""
    return "5678defg-5678-defg-5678-defg56"


@pytest.fixture
def config_dir(tmp_path):
    """Configuration directory for credential files."""
    path = tmp_path / "config" / "pocket"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def configured_dir(config_dir, mock_consumer_key, mock_access_token):
    """Configuration directory with a consumer key and a saved authorization."""
    (config_dir / "consumer_key").write_text(mock_consumer_key + "\n")
    (config_dir / "auth.json").write_text(
        json.dumps({"access_token": mock_access_token, "username": "pocketuser"})
    )
    return config_dir


@pytest.fixture
def mock_api_items():
    """Mock ``list`` mapping as returned by /v3/get, deliberately out of order."""
    return {
        "229279689": {
            "item_id": "229279689",
            "resolved_id": "229279689",
            "given_url": "http://www.grantland.com/blog/the-triangle/post/_/id/38347/ryder-cup-preview",
            "given_title": "The Massive Ryder Cup Preview",
            "resolved_title": "The Massive Ryder Cup Preview - The Triangle Blog - Grantland",
            "resolved_url": "http://www.grantland.com/blog/the-triangle/post/_/id/38347/ryder-cup-preview",
            "status": "0",
            "sort_id": 2,
            "tags": {"golf": {"item_id": "229279689", "tag": "golf"}},
        },
        "229279690": {
            "item_id": "229279690",
            "given_url": "https://example.com/python-tips",
            "given_title": "Python Tips & Tricks",
            "resolved_title": "",
            "resolved_url": "",
            "status": "1",
            "sort_id": 0,
            "domain_metadata": {"name": "Example Blog"},
        },
        "229279691": {
            "item_id": "229279691",
            "given_url": "https://news.example.org/story?id=1&ref=pocket",
            "given_title": "",
            "resolved_title": "Breaking: <Story> \"Quoted\"",
            "resolved_url": "https://news.example.org/story?id=1&ref=pocket",
            "status": "0",
            "sort_id": 1,
        },
    }


@pytest.fixture
def mock_items():
    """Parsed items in response order."""
    return [
        create_mock_item(2, "B", "http://b", sort_id=5),
        create_mock_item(1, "A", "http://a", sort_id=1),
    ]


@pytest.fixture
def mock_response():
    """Factory for mocked ``requests`` responses."""

    def _make(json_data=None, status_code=200, headers=None, reason="OK"):
        response = Mock()
        response.status_code = status_code
        response.ok = 200 <= status_code < 400
        response.reason = reason
        response.headers = headers or {}
        if isinstance(json_data, Exception):
            response.json.side_effect = json_data
        else:
            response.json.return_value = json_data
        return response

    return _make


# Test data helpers
def create_mock_item(
    item_id: int,
    title: str,
    url: str = "",
    sort_id: int = 0,
    state: ItemState = ItemState.UNREAD,
) -> Item:
    """Create an item for testing."""
    return Item(
        item_id=item_id,
        title=title,
        url=url or f"https://example.com/page{item_id}",
        sort_id=sort_id,
        state=state,
    )


def create_api_entry(item_id: int, title: str, url: str, sort_id: int) -> Dict:
    """Create one /v3/get ``list`` entry for testing."""
    return {
        "item_id": str(item_id),
        "given_url": url,
        "given_title": title,
        "status": "0",
        "sort_id": sort_id,
    }
