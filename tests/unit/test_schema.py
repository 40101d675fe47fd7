import copy
from pathlib import Path

import pytest

from storemap.common.errors import ConfigError
from storemap.common.fs import read_yaml
from storemap.common.schema import validate_app_config


def _cfg():
    return copy.deepcopy(read_yaml(Path("config/storemap.yml")))


def test_repo_config_is_valid():
    assert validate_app_config(_cfg())["bitable"]["page_size"] == 500


def test_missing_section_raises():
    cfg = _cfg()
    del cfg["fields"]

    with pytest.raises(ConfigError, match="fields"):
        validate_app_config(cfg)


def test_unknown_keys_raise_unless_allowed():
    cfg = _cfg()
    cfg["map"]["tilt"] = 30

    with pytest.raises(ConfigError, match="tilt"):
        validate_app_config(cfg)
    assert validate_app_config(cfg, allow_unknown=True)["map"]["tilt"] == 30


def test_inverted_range_raises():
    cfg = _cfg()
    cfg["coordinates"]["lat_range"] = [54, 18]

    with pytest.raises(ConfigError, match="lat_range"):
        validate_app_config(cfg)


def test_center_must_be_numeric_pair():
    cfg = _cfg()
    cfg["map"]["center"] = ["113.65"]

    with pytest.raises(ConfigError, match="map.center"):
        validate_app_config(cfg)


def test_empty_name_candidates_raise():
    cfg = _cfg()
    cfg["fields"]["name_candidates"] = []

    with pytest.raises(ConfigError, match="name_candidates"):
        validate_app_config(cfg)


def test_non_positive_page_size_raises():
    cfg = _cfg()
    cfg["bitable"]["page_size"] = 0

    with pytest.raises(ConfigError):
        validate_app_config(cfg)
