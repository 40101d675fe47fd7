"""Configuration loading: YAML settings plus credentials from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from dotenv import load_dotenv

from storemap.common.errors import ConfigError
from storemap.common.fs import read_yaml
from storemap.common.schema import validate_app_config

CONFIG_FILENAME = "storemap.yml"
DOTENV_FILES = (".env.local", ".env")

BITABLE_ENV_VARS = (
    "FEISHU_APP_ID",
    "FEISHU_APP_SECRET",
    "FEISHU_APP_TOKEN",
    "FEISHU_TABLE_ID",
)
COMPLETION_ENV_VARS = (
    "DOUBAO_API_KEY",
    "DOUBAO_ENDPOINT",
)


@dataclass(frozen=True)
class Credentials:
    app_id: str = ""
    app_secret: str = ""
    app_token: str = ""
    table_id: str = ""
    completion_api_key: str = ""
    completion_endpoint: str = ""
    debug_transform: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Credentials":
        env = os.environ if environ is None else environ
        return cls(
            app_id=env.get("FEISHU_APP_ID", ""),
            app_secret=env.get("FEISHU_APP_SECRET", ""),
            app_token=env.get("FEISHU_APP_TOKEN", ""),
            table_id=env.get("FEISHU_TABLE_ID", ""),
            completion_api_key=env.get("DOUBAO_API_KEY", ""),
            # Older deployments export the mixed-case name.
            completion_endpoint=env.get("DOUBAO_ENDPOINT") or env.get("DOUBAO_Endpoint", ""),
            debug_transform=env.get("DEBUG_TRANSFORM", "") == "1",
        )

    def missing_bitable(self) -> list[str]:
        values = (self.app_id, self.app_secret, self.app_token, self.table_id)
        return [name for name, value in zip(BITABLE_ENV_VARS, values) if not value]

    def missing_completion(self) -> list[str]:
        values = (self.completion_api_key, self.completion_endpoint)
        return [name for name, value in zip(COMPLETION_ENV_VARS, values) if not value]


@dataclass(frozen=True)
class ConfigBundle:
    app: dict
    credentials: Credentials

    @property
    def fields(self) -> dict:
        return self.app["fields"]

    @property
    def unknown_label(self) -> str:
        return self.app["transform"]["unknown_label"]


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Missing config file: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    return _deep_merge(base, overlay)


def load_dotenv_files(search_dir: Path) -> None:
    """Populate os.environ from .env.local/.env without overriding real variables."""
    for name in DOTENV_FILES:
        path = search_dir / name
        if path.exists():
            load_dotenv(path, override=False)


def load_app_config(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> dict:
    overlay_path = overlay_config_dir / CONFIG_FILENAME if overlay_config_dir is not None else None
    cfg = _load_yaml_with_overlay(config_dir / CONFIG_FILENAME, overlay_path)
    return validate_app_config(cfg, allow_unknown=allow_unknown)


def load_all_configs(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> ConfigBundle:
    app = load_app_config(config_dir, allow_unknown=allow_unknown, overlay_config_dir=overlay_config_dir)
    return ConfigBundle(app=app, credentials=Credentials.from_env(environ))
