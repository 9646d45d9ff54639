"""
Operator settings for the dbpower CLI.

Values are layered: built-in defaults, then `~/.dbpower/config.yaml`
(or `$DBPOWER_CONFIG_DIR/config.yaml`), then environment variables.
Keys are addressed with dotted paths such as `api.base_url`.
"""

import copy
import os
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console

console = Console()

DEFAULTS: dict[str, Any] = {
    "api": {
        "base_url": "http://localhost:8000",
        "timeout": 30,
        "service_role_key": "",
    },
    "site": {
        "url": "https://www.dbpowerai.com",
        "routes": ["/", "/pricing", "/login", "/dashboard", "/analyze"],
        "output": "dist/sitemap.xml",
    },
}

# Environment variable -> dotted key it overrides
ENV_OVERRIDES = {
    "DBPOWER_API_URL": "api.base_url",
    "SUPABASE_SERVICE_ROLE_KEY": "api.service_role_key",
    "DBPOWER_SITE_URL": "site.url",
}


def _lookup(tree: dict[str, Any], path: list[str]) -> tuple[bool, Any]:
    node: Any = tree
    for part in path:
        if not isinstance(node, dict) or part not in node:
            return False, None
        node = node[part]
    return True, node


def _assign(tree: dict[str, Any], path: list[str], value: Any) -> None:
    *parents, leaf = path
    node = tree
    for part in parents:
        child = node.get(part)
        if not isinstance(child, dict):
            child = node[part] = {}
        node = child
    node[leaf] = value


def _merge(defaults: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively overlay user config onto defaults."""
    merged = dict(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def mask_secret(value: str) -> str:
    """Keep the last four characters of a secret."""
    if len(value) <= 4:
        return "****"
    return f"****{value[-4:]}"


class ConfigManager:
    """Reads and writes the CLI's YAML settings file."""

    def __init__(self, config_dir: Path | None = None):
        self.config_dir = config_dir or Path(
            os.getenv("DBPOWER_CONFIG_DIR", Path.home() / ".dbpower")
        )
        self.config_file = self.config_dir / "config.yaml"

    def _read_file(self) -> dict[str, Any]:
        if not self.config_file.is_file():
            return {}
        try:
            stored = yaml.safe_load(self.config_file.read_text())
        except (OSError, yaml.YAMLError) as e:
            console.print(f"[red]Ignoring unreadable {self.config_file}: {e}[/red]")
            return {}
        return stored if isinstance(stored, dict) else {}

    def _write_file(self, data: dict[str, Any]) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(yaml.safe_dump(data, default_flow_style=False))

    def load_config(self) -> dict[str, Any]:
        """Effective settings: defaults < file < environment."""
        effective = _merge(copy.deepcopy(DEFAULTS), self._read_file())
        for env_name, key in ENV_OVERRIDES.items():
            if os.getenv(env_name):
                _assign(effective, key.split("."), os.environ[env_name])
        return effective

    def get(self, key: str, default: Any = None) -> Any:
        found, value = _lookup(self.load_config(), key.split("."))
        return value if found else default

    def set(self, key: str, value: Any) -> None:
        """Persist one value; only the file layer is changed."""
        stored = self._read_file()
        _assign(stored, key.split("."), value)
        self._write_file(stored)

    def reset(self) -> None:
        self._write_file(copy.deepcopy(DEFAULTS))

    def show_all(self) -> None:
        effective = self.load_config()
        key = effective["api"].get("service_role_key")
        if key:
            effective["api"]["service_role_key"] = mask_secret(key)
        console.print(yaml.safe_dump(effective, default_flow_style=False))


config = ConfigManager()
