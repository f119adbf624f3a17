from __future__ import annotations

from pathlib import Path

import pytest

from fuel_ingest.common.fs import read_yaml
from fuel_ingest.common.models import FieldAliases

REPO_CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


@pytest.fixture
def repo_config_dir() -> Path:
    return REPO_CONFIG_DIR


@pytest.fixture
def default_aliases() -> FieldAliases:
    return FieldAliases.from_dict(read_yaml(REPO_CONFIG_DIR / "field_aliases.yml"))
