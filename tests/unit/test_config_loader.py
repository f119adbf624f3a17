import shutil
from pathlib import Path

import pytest

from fuel_ingest.common.config_loader import load_all_configs, merge_aliases
from fuel_ingest.common.errors import ConfigError


def _copy_config(repo_config_dir: Path, target: Path) -> Path:
    shutil.copytree(repo_config_dir, target)
    return target


def test_load_all_configs_from_repo_config_dir(repo_config_dir):
    bundle = load_all_configs(repo_config_dir)

    names = [source.name for source in bundle.retailers]
    assert len(names) == 15
    assert names[0] == "APPLEGREEN"
    assert names[-1] == "TESCO"
    assert bundle.field_aliases.grades["E5"] == ("E5", "UNLEADED", "unleaded")
    assert bundle.store["batch_size"] == 100
    assert bundle.retry.max_attempts == 1
    assert bundle.max_workers == 1


def test_overlay_values_are_deep_merged(repo_config_dir, tmp_path: Path):
    overlay = tmp_path / "overlay"
    overlay.mkdir()
    (overlay / "pipeline.yml").write_text("store:\n  batch_size: 25\nhttp:\n  max_workers: 4\n", encoding="utf-8")

    bundle = load_all_configs(repo_config_dir, overlay_config_dir=overlay)

    assert bundle.store["batch_size"] == 25
    assert bundle.store["stations_table"] == "stations"
    assert bundle.max_workers == 4


def test_empty_overlay_file_is_ignored(repo_config_dir, tmp_path: Path):
    overlay = tmp_path / "overlay"
    overlay.mkdir()
    (overlay / "pipeline.yml").write_text("", encoding="utf-8")

    assert load_all_configs(repo_config_dir, overlay_config_dir=overlay).store["batch_size"] == 100


def test_non_mapping_overlay_is_rejected(repo_config_dir, tmp_path: Path):
    overlay = tmp_path / "overlay"
    overlay.mkdir()
    (overlay / "pipeline.yml").write_text("- not\n- a\n- mapping\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_all_configs(repo_config_dir, overlay_config_dir=overlay)


def test_retailer_alias_overrides_are_tried_first(repo_config_dir, tmp_path: Path):
    config_dir = _copy_config(repo_config_dir, tmp_path / "config")
    (config_dir / "retailers.yml").write_text(
        """retailers:
  - name: NEWCO
    url: https://newco.example/fuel.json
    aliases:
      site_id: [station_code]
      grades:
        B7: [diesel_b7]
""",
        encoding="utf-8",
    )

    source = load_all_configs(config_dir).retailers[0]

    assert source.aliases.site_id == ("station_code", "site_id", "id")
    assert source.aliases.grades["B7"] == ("diesel_b7", "B7", "DIESEL", "diesel")
    assert source.aliases.grades["E5"] == ("E5", "UNLEADED", "unleaded")


def test_merge_aliases_without_overrides_returns_defaults(default_aliases):
    assert merge_aliases(default_aliases, None) is default_aliases


@pytest.mark.parametrize(
    "retailers_yaml",
    [
        "retailers: []\n",
        "retailers:\n  - name: A\n    url: not-a-url\n",
        "retailers:\n  - name: A\n    url: https://a.example/x.json\n  - name: A\n    url: https://b.example/x.json\n",
        "retailers:\n  - url: https://a.example/x.json\n",
        "retailers:\n  - name: A\n    url: https://a.example/x.json\n    colour: red\n",
        "retailers:\n  - name: A\n    url: https://a.example/x.json\n    aliases:\n      site_id: []\n",
    ],
)
def test_invalid_retailer_registry_is_rejected(repo_config_dir, tmp_path: Path, retailers_yaml):
    config_dir = _copy_config(repo_config_dir, tmp_path / "config")
    (config_dir / "retailers.yml").write_text(retailers_yaml, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_all_configs(config_dir)


def test_unknown_keys_allowed_when_requested(repo_config_dir, tmp_path: Path):
    config_dir = _copy_config(repo_config_dir, tmp_path / "config")
    (config_dir / "retailers.yml").write_text(
        "retailers:\n  - name: A\n    url: https://a.example/x.json\n    colour: red\n",
        encoding="utf-8",
    )

    assert load_all_configs(config_dir, allow_unknown=True).retailers[0].name == "A"


def test_invalid_batch_size_is_rejected(repo_config_dir, tmp_path: Path):
    overlay = tmp_path / "overlay"
    overlay.mkdir()
    (overlay / "pipeline.yml").write_text("store:\n  batch_size: 0\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_all_configs(repo_config_dir, overlay_config_dir=overlay)


def test_missing_config_file_is_a_config_error(tmp_path: Path):
    with pytest.raises(ConfigError):
        load_all_configs(tmp_path)
