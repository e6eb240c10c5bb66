"""Tests for configuration loading and the lyric store."""

import pytest

from lyricsnap.errors import ConfigError
from lyricsnap.models import LyricDocument, TrackReference
from lyricsnap.settings import PipelineSettings, load_settings, settings_from_dict
from lyricsnap.storage import LyricStore
from lyricsnap.utils import get_api_key


class TestSettings:

    def test_repository_config_loads(self):
        settings = load_settings()
        assert settings.max_raw_chars == 4000
        assert settings.min_chunk_lines == 3
        assert settings.profanity_words_path.exists()

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_settings(tmp_path / "nope.yaml") == PipelineSettings()

    def test_top_k(self):
        settings = PipelineSettings()
        assert settings.top_k_for(1) == 5
        assert settings.top_k_for(2) == 6
        assert settings.top_k_for(3) == 9

    def test_unknown_key(self):
        with pytest.raises(ConfigError):
            settings_from_dict({"nonsense": 1})

    def test_bad_policy(self):
        with pytest.raises(ConfigError):
            settings_from_dict({"rate_limit": {"policy": "bursty"}})

    def test_api_key_placeholder(self, monkeypatch):
        monkeypatch.setenv("GENIUS_API_TOKEN", "your_token_here")
        with pytest.raises(ConfigError):
            get_api_key("GENIUS_API_TOKEN")
        monkeypatch.setenv("GENIUS_API_TOKEN", "real")
        assert get_api_key("GENIUS_API_TOKEN") == "real"


class TestTrackReference:

    def test_from_provider_item(self):
        item = {"id": "t1", "name": " Yellow ", "artists": [{"name": "Coldplay"}, {"name": "X"}]}
        assert TrackReference.from_provider_item(item) == TrackReference("Yellow", "Coldplay", "t1")

    @pytest.mark.parametrize("item", [
        None,
        {},
        {"id": "t1", "name": "Yellow"},
        {"id": "t1", "name": "", "artists": [{"name": "Coldplay"}]},
        {"id": "t1", "name": "Yellow", "artists": [{}]},
        {"id": 5, "name": "Yellow", "artists": [{"name": "Coldplay"}]},
    ])
    def test_malformed(self, item):
        assert TrackReference.from_provider_item(item) is None


class TestLyricStore:

    def test_save_and_load(self, store):
        track = TrackReference("Yellow", "Coldplay", "yellow1")
        store.save(LyricDocument("user-a", "yellow1", "Look at the stars"), track)
        assert store.exists("user-a", "yellow1")
        assert store.load("user-a", "yellow1").cleaned_text == "Look at the stars"
        assert store.load_track("user-a", "yellow1") == track
        assert store.list_track_ids("user-a") == ["yellow1"]

    def test_overwrite(self, store):
        track = TrackReference("Yellow", "Coldplay", "yellow1")
        store.save(LyricDocument("user-a", "yellow1", "old"), track)
        store.save(LyricDocument("user-a", "yellow1", "new"), track)
        assert store.load("user-a", "yellow1").cleaned_text == "new"

    def test_missing(self, store):
        assert store.load("user-a", "nope") is None
        assert store.list_track_ids("user-a") == []
        assert store.load_track("user-a", "nope").title == ""

    def test_rejects_path_traversal(self, tmp_path):
        with pytest.raises(ValueError):
            LyricStore(tmp_path).exists("../etc", "passwd")
