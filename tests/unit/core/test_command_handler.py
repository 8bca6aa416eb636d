import pytest
from pathlib import Path
from unittest.mock import MagicMock

from gamemeta.core.command_handler import CommandHandler
from gamemeta.domain.exceptions import DownloadError, RateLimitExhausted
from gamemeta.domain.interfaces.user_interface import UserInterface
from gamemeta.domain.models.common import Endpoint, ImageId, QueryFields, QueryFilter
from gamemeta.domain.models.images import ImageSize
from gamemeta.domain.models.metadata import MetadataSource
from gamemeta.infrastructure.cache.image_cache import ImageCacheResolver
from gamemeta.infrastructure.resilience.query_client import MetadataQueryClient


@pytest.fixture
def mock_query_client():
    client = MagicMock(spec=MetadataQueryClient)
    client.source = MetadataSource.IGDB
    return client

@pytest.fixture
def mock_image_resolver():
    return MagicMock(spec=ImageCacheResolver)

@pytest.fixture
def mock_ui():
    return MagicMock(spec=UserInterface)

@pytest.fixture
def command_handler(mock_query_client, mock_image_resolver, mock_ui, tmp_path):
    """Fixture to create CommandHandler with mocked services."""
    return CommandHandler(
        query_client=mock_query_client,
        image_resolver=mock_image_resolver,
        image_root=tmp_path,
        ui=mock_ui,
    )

def test_handle_query(command_handler: CommandHandler, mock_query_client: MagicMock, mock_ui: MagicMock):
    """Test that handle_query passes domain types through and displays the records."""
    records = [{"id": 1942, "name": "The Witcher 3"}]
    mock_query_client.query.return_value = records

    assert command_handler.handle_query("games", "fields name", "where id = 1942") is True

    mock_query_client.query.assert_called_once_with(
        Endpoint("games"), QueryFields("fields name"), QueryFilter("where id = 1942")
    )
    mock_ui.display_records.assert_called_once_with(records, title="games")
    mock_ui.display_warning.assert_not_called()

def test_handle_query_without_source_warns(command_handler: CommandHandler, mock_query_client: MagicMock, mock_ui: MagicMock):
    """Test that an unconfigured source is reported, not treated as an error."""
    mock_query_client.source = MetadataSource.NONE
    mock_query_client.query.return_value = []

    assert command_handler.handle_query("games", "fields *", "") is True

    mock_ui.display_warning.assert_called_once_with("No metadata source configured; nothing was queried.")
    mock_ui.display_error.assert_not_called()

def test_handle_query_error(command_handler: CommandHandler, mock_query_client: MagicMock, mock_ui: MagicMock):
    """Test that exhausted retries are displayed as an error."""
    error = RateLimitExhausted("games", 3)
    mock_query_client.query.side_effect = error

    assert command_handler.handle_query("games", "fields *", "") is False

    mock_ui.display_error.assert_called_once_with(str(error))
    mock_ui.display_records.assert_not_called()

def test_handle_image(command_handler: CommandHandler, mock_image_resolver: MagicMock, mock_ui: MagicMock, tmp_path: Path):
    """Test that handle_image resolves sizes from tags and prints the path."""
    cached = tmp_path / "original" / "co1wyy.jpg"
    cached.parent.mkdir()
    cached.write_bytes(b"jpeg")
    mock_image_resolver.resolve.return_value = str(cached)

    assert command_handler.handle_image("co1wyy", "cover_small", ["cover_big", "original"]) is True

    mock_image_resolver.resolve.assert_called_once_with(
        str(tmp_path), ImageId("co1wyy"), ImageSize.cover_small, [ImageSize.cover_big, ImageSize.original]
    )
    mock_ui.display_output.assert_called_once_with(str(cached))

def test_handle_image_custom_root(command_handler: CommandHandler, mock_image_resolver: MagicMock, tmp_path: Path):
    """Test that an explicit root overrides the configured cache directory."""
    other_root = tmp_path / "elsewhere"
    mock_image_resolver.resolve.return_value = str(other_root / "720p" / "abc.jpg")

    command_handler.handle_image("abc", "720p", None, other_root)

    assert mock_image_resolver.resolve.call_args.args[0] == str(other_root)
    assert mock_image_resolver.resolve.call_args.args[2] is ImageSize.r720p

def test_handle_image_unavailable(command_handler: CommandHandler, mock_image_resolver: MagicMock, mock_ui: MagicMock, tmp_path: Path):
    """Test that a path with no file behind it is reported but still printed."""
    missing = str(tmp_path / "cover_big" / "gone.jpg")
    mock_image_resolver.resolve.return_value = missing

    assert command_handler.handle_image("gone", "cover_big") is False

    mock_ui.display_warning.assert_called_once_with("Image gone is not available at any requested size.")
    mock_ui.display_output.assert_called_once_with(missing)

def test_handle_image_unknown_size(command_handler: CommandHandler, mock_image_resolver: MagicMock, mock_ui: MagicMock):
    """Test that an unknown size tag never reaches the resolver."""
    assert command_handler.handle_image("co1wyy", "poster") is False

    mock_image_resolver.resolve.assert_not_called()
    mock_ui.display_error.assert_called_once_with("Unknown image size: 'poster'. Run 'gamemeta sizes' for valid sizes.")

def test_handle_image_download_error(command_handler: CommandHandler, mock_image_resolver: MagicMock, mock_ui: MagicMock):
    """Test that download failures are displayed."""
    error = DownloadError("https://images.example/t_cover_big/x.jpg", "HTTP 500", 500)
    mock_image_resolver.resolve.side_effect = error

    assert command_handler.handle_image("x", "cover_big") is False

    mock_ui.display_error.assert_called_once_with(str(error))

def test_handle_sizes(command_handler: CommandHandler, mock_ui: MagicMock):
    """Test that every size tag is listed."""
    command_handler.handle_sizes()

    title, columns, rows = mock_ui.display_table.call_args.args
    assert title == "Image sizes"
    assert [row[0] for row in rows] == [size.tag for size in ImageSize]
    assert ("1080p", "1920x1080 Fit, Centre gravity") in rows

def test_handle_status(command_handler: CommandHandler, mock_query_client: MagicMock, mock_ui: MagicMock, igdb_governor):
    """Test that status reports the governor's tuning and window."""
    mock_query_client.governor = igdb_governor
    igdb_governor.record_call()
    igdb_governor.record_call()

    command_handler.handle_status()

    title, values = mock_ui.display_key_values.call_args.args
    assert values["source"] == "IGDB"
    assert values["avoidance threshold"] == "3 calls / 1s"
    assert values["calls in window"] == 2
    assert values["throttling"] is False
    assert values["recovery cooldown"] == "inactive"
