"""Tests for ouroboros/settings.py: snapshots, persistence and the live handle."""

import json

import pytest
from pydantic import ValidationError

from ouroboros.settings import (
    AppSettings, SettingsHandle, SettingsStore, mask_secret, seed_from_env,
)
from ouroboros.types import Language, Provider, Theme


class TestAppSettings:

    def test_defaults(self):
        settings = AppSettings()
        assert settings.provider == Provider.GOOGLE
        assert settings.language == Language.EN
        assert settings.theme == Theme.LIGHT
        assert settings.snap_to_grid is True
        assert settings.grid_visuals.style == "dots"
        assert settings.suggestions.mode == "generative"
        assert settings.shortcuts.agent_focus == "Mod+k"
        assert not settings.has_credential

    def test_immutable(self):
        with pytest.raises(ValidationError):
            AppSettings().language = Language.ES

    def test_merged_is_deep(self):
        settings = AppSettings().with_key(Provider.OPENAI, "sk-1").merged({"keys": {"anthropic": "ak"}})
        assert settings.keys.openai == "sk-1"
        assert settings.keys.anthropic == "ak"

    def test_merged_validates(self):
        with pytest.raises(ValidationError):
            AppSettings().merged({"provider": "mystery"})

    def test_ollama_needs_no_key(self):
        assert AppSettings().merged({"provider": "ollama"}).has_credential

    def test_credential_and_model_for_active_provider(self):
        settings = AppSettings().merged({"provider": "anthropic", "keys": {"anthropic": "ak-123"}})
        assert settings.credential() == "ak-123"
        assert settings.model_id() == settings.models.anthropic

    def test_masked_hides_keys(self):
        masked = AppSettings().with_key(Provider.GOOGLE, "AIzaSyExampleKey1234").masked()
        assert masked["keys"]["google"] == "AIza...1234"
        assert masked["keys"]["openai"] == ""
        assert masked["language"] == "en"


class TestMaskSecret:

    @pytest.mark.parametrize("value,expected", [
        ("", ""),
        ("short", "****"),
        ("abcdefghijkl", "abcd...ijkl"),
    ])
    def test_mask(self, value, expected):
        assert mask_secret(value) == expected


class TestSeedFromEnv:

    def test_fills_missing_keys(self):
        seeded = seed_from_env(AppSettings(), {"GEMINI_API_KEY": "g", "OPENAI_API_KEY": "o"})
        assert seeded.keys.google == "g"
        assert seeded.keys.openai == "o"
        assert seeded.keys.anthropic == ""

    def test_second_name_is_fallback(self):
        assert seed_from_env(AppSettings(), {"GOOGLE_API_KEY": "alt"}).keys.google == "alt"

    def test_stored_key_wins(self):
        settings = AppSettings().with_key(Provider.GOOGLE, "stored")
        assert seed_from_env(settings, {"GEMINI_API_KEY": "env"}).keys.google == "stored"


class TestSettingsStore:

    def test_missing_file_gives_defaults(self, tmp_path):
        assert SettingsStore(tmp_path / "none.json").load(seed_env=False) == AppSettings()

    def test_round_trip(self, tmp_path):
        store = SettingsStore(tmp_path / "nested" / "settings.json")
        saved = AppSettings().merged({"language": "es", "keys": {"openai": "sk"}})
        store.save(saved)
        assert store.load(seed_env=False) == saved

    def test_partial_record_merges_over_defaults(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"theme": "dark", "models": {"google": "gemini-x"}}))
        loaded = SettingsStore(path).load(seed_env=False)
        assert loaded.theme == Theme.DARK
        assert loaded.models.google == "gemini-x"
        assert loaded.models.openai == AppSettings().models.openai

    @pytest.mark.parametrize("content", ["{not json", "[1, 2]", json.dumps({"provider": "mystery"})])
    def test_corrupt_record_falls_back_to_defaults(self, tmp_path, caplog, content):
        path = tmp_path / "settings.json"
        path.write_text(content)
        with caplog.at_level("ERROR", logger="ouroboros.settings"):
            assert SettingsStore(path).load(seed_env=False) == AppSettings()
        assert any("Failed to load settings" in r.getMessage() for r in caplog.records)

    def test_load_seeds_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "from-env")
        assert SettingsStore(tmp_path / "s.json").load().keys.anthropic == "from-env"


class TestSettingsHandle:

    def test_update_swaps_snapshot(self):
        handle = SettingsHandle()
        before = handle.get()
        after = handle.update({"language": "es"})
        assert handle.get() is after
        assert before.language == Language.EN

    def test_update_persists_with_store(self, tmp_path):
        store = SettingsStore(tmp_path / "settings.json")
        handle = SettingsHandle(store=store)
        handle.update({"theme": "dark"})
        assert store.load(seed_env=False).theme == Theme.DARK

    def test_invalid_patch_leaves_snapshot(self):
        handle = SettingsHandle()
        with pytest.raises(ValidationError):
            handle.update({"language": "klingon"})
        assert handle.get().language == Language.EN

    def test_env_keys_stay_off_disk(self, tmp_path, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
        store = SettingsStore(tmp_path / "settings.json")
        handle = SettingsHandle.from_store(store)
        assert handle.get().keys.openai == "sk-from-env"

        handle.update({"language": "es"})
        on_disk = json.loads(store.path.read_text())
        assert on_disk["keys"]["openai"] == ""
        assert on_disk["language"] == "es"
        assert handle.get().keys.openai == "sk-from-env"

    def test_typed_key_replaces_env_key_on_disk(self, tmp_path, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
        store = SettingsStore(tmp_path / "settings.json")
        handle = SettingsHandle.from_store(store)
        handle.update({"keys": {"openai": "sk-typed"}})
        assert json.loads(store.path.read_text())["keys"]["openai"] == "sk-typed"

    def test_from_store(self, tmp_path):
        store = SettingsStore(tmp_path / "settings.json")
        store.save(AppSettings().merged({"language": "es"}))
        assert SettingsHandle.from_store(store).get().language == Language.ES
