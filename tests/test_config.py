"""Tests for configuration loading and mod entry parsing."""

import os
from pathlib import Path

import pytest
import yaml

from modsloader import config as config_module
from modsloader.config import (
    default_config,
    get_default_config_path,
    load_config,
    parse_mod_entries,
)
from modsloader.download.interfaces import ModEntry, ModSource
from modsloader.exceptions import ConfigFileError, ConfigValidationError

pytestmark = [pytest.mark.configuration, pytest.mark.unit]


def _write_config(path, data):
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return str(path)


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults_without_file(self):
        config = load_config()

        assert config["SYNC_HOURS"] == [8, 20]
        assert config["UPLOAD_TOKENS"] == {}
        assert config["PUBLIC_BASE_URL"] == ""
        assert config["STORE_DIR"].endswith("store")
        assert len(config["MODS"]) == 5

    def test_default_location_is_used(self):
        path = Path(get_default_config_path())
        path.parent.mkdir(parents=True, exist_ok=True)
        _write_config(path, {"PUBLIC_BASE_URL": "https://cdn.example"})

        assert load_config()["PUBLIC_BASE_URL"] == "https://cdn.example"

    def test_explicit_missing_path_raises(self, tmp_path):
        with pytest.raises(ConfigFileError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("MODS: [unclosed", encoding="utf-8")

        with pytest.raises(ConfigFileError, match="Invalid YAML"):
            load_config(str(path))

    def test_non_mapping_raises(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ConfigFileError, match="mapping"):
            load_config(str(path))

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        assert load_config(str(path))["SYNC_HOURS"] == [8, 20]

    def test_values_override_defaults(self, tmp_path):
        path = _write_config(
            tmp_path / "config.yaml",
            {
                "STORE_DIR": "~/mods-store",
                "SYNC_HOURS": [20, 8, 20, 3],
                "UPLOAD_TOKENS": {"wotstat.widgets": "secret"},
                "MODS": [{"tag": "wotstat.widgets"}],
            },
        )

        config = load_config(path)

        assert config["STORE_DIR"] == os.path.expanduser("~/mods-store")
        assert config["SYNC_HOURS"] == [3, 8, 20]
        assert config["UPLOAD_TOKENS"] == {"wotstat.widgets": "secret"}
        assert config["REQUEST_TIMEOUT"] == default_config()["REQUEST_TIMEOUT"]
        assert config["MODS"] == [{"tag": "wotstat.widgets"}]

    def test_single_sync_hour(self, tmp_path):
        path = _write_config(tmp_path / "config.yaml", {"SYNC_HOURS": 6})
        assert load_config(path)["SYNC_HOURS"] == [6]

    @pytest.mark.parametrize(
        "override",
        [
            {"SYNC_HOURS": []},
            {"SYNC_HOURS": [24]},
            {"SYNC_HOURS": ["8"]},
            {"REQUEST_TIMEOUT": 0},
            {"REQUEST_TIMEOUT": "fast"},
            {"UPLOAD_LOCK_TIMEOUT": -1},
            {"UPLOAD_TOKENS": ["secret"]},
            {"UPLOAD_TOKENS": {"wotstat.widgets": 42}},
            {"MODS": {"tag": "wotstat.widgets"}},
        ],
    )
    def test_invalid_values_raise(self, tmp_path, override):
        path = _write_config(tmp_path / "config.yaml", override)

        with pytest.raises(ConfigValidationError):
            load_config(path)


class TestParseModEntries:
    """Tests for parse_mod_entries."""

    def test_default_catalog(self):
        entries = parse_mod_entries(None)

        assert [e.tag for e in entries] == [
            "wotstat.analytics",
            "wotstat.positions",
            "wotstat.widgets",
            "me.poliroid.modslistapi-wotstat",
            "izeberg.modssettingsapi",
        ]
        assert entries[0].source == ModSource(
            type="github", owner="wotstat", repo="wotstat-analytics"
        )
        assert entries[1].source is None
        assert entries[3].source.type == "gitlab-description"
        assert entries[3].source.repo_id == 26509092

    def test_order_and_fields_are_preserved(self):
        entries = parse_mod_entries(
            [
                {"tag": "b.mod", "variant_restriction": "wot-only"},
                {
                    "tag": "a.mod",
                    "source": {"type": "gitlab-description", "repo_id": "123"},
                },
            ]
        )

        assert entries == [
            ModEntry(tag="b.mod", variant_restriction="wot-only"),
            ModEntry(
                tag="a.mod",
                source=ModSource(type="gitlab-description", repo_id=123),
            ),
        ]

    def test_unknown_source_type_is_accepted(self):
        entries = parse_mod_entries([{"tag": "x.mod", "source": {"type": "sourceforge"}}])
        assert entries[0].source.type == "sourceforge"

    @pytest.mark.parametrize(
        "raw",
        [
            [{"tag": "dup"}, {"tag": "dup"}],
            [{"tag": "../escape"}],
            [{"tag": "a/b"}],
            [{"tag": " padded "}],
            [{"tag": ""}],
            [{"name": "no-tag"}],
            ["wotstat.widgets"],
            [{"tag": "x", "variant_restriction": "both"}],
            [{"tag": "x", "source": "github"}],
            [{"tag": "x", "source": {"owner": "o"}}],
            [{"tag": "x", "source": {"type": "gitlab-description", "repo_id": "abc"}}],
            [{"tag": "x", "source": {"type": "gitlab-description", "repo_id": True}}],
        ],
    )
    def test_invalid_entries_raise(self, raw):
        with pytest.raises(ConfigValidationError):
            parse_mod_entries(raw)

    def test_get_mod_entries_reads_mods_key(self):
        entries = config_module.get_mod_entries({"MODS": [{"tag": "only.one"}]})
        assert [e.tag for e in entries] == ["only.one"]
