"""YAML settings: socket name, config path, picker order and topic templates.

Example (~/.config/ubertmux/settings.yaml):

  socket: ubertmux
  config_file: ~/.ubertmux.conf
  pickers: [fzf, sk]
  templates:
    dev:
      description: editor + shell
      workspace: ~/src
      windows:
        edit: ["nvim ."]
        shell: []
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from ubertmux.errors import SettingsError, TemplateNotFound
from ubertmux.tmuxconf import DEFAULT_TMUX_CONF


SETTINGS_ENV = "UBERTMUX_SETTINGS"
DEFAULT_SETTINGS = "~/.config/ubertmux/settings.yaml"
DEFAULT_SOCKET = "ubertmux"
DEFAULT_PICKERS = ["fzf", "sk"]


@dataclass
class TopicTemplate:
    name: str
    description: str = ""
    workspace: Optional[str] = None
    windows: Dict[str, List[str]] = field(default_factory=dict)

    @staticmethod
    def from_dict(name: str, data: Any) -> "TopicTemplate":
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise SettingsError(f"Template '{name}' must be a mapping, got {type(data).__name__}.")
        windows = data.get("windows") or {}
        if not isinstance(windows, dict):
            raise SettingsError(f"Template '{name}': 'windows' must be a mapping of name -> commands.")
        parsed: Dict[str, List[str]] = {}
        for window_name, items in windows.items():
            items = items or []
            if isinstance(items, str):
                items = [items]
            if not isinstance(items, list) or not all(isinstance(i, str) for i in items):
                raise SettingsError(
                    f"Template '{name}', window '{window_name}': commands must be strings."
                )
            parsed[str(window_name)] = items
        workspace = data.get("workspace")
        return TopicTemplate(
            name=name,
            description=str(data.get("description", "") or ""),
            workspace=str(workspace) if workspace else None,
            windows=parsed,
        )


@dataclass
class Settings:
    socket: str = DEFAULT_SOCKET
    config_file: str = DEFAULT_TMUX_CONF
    pickers: List[str] = field(default_factory=lambda: list(DEFAULT_PICKERS))
    templates: Dict[str, TopicTemplate] = field(default_factory=dict)

    @property
    def config_path(self) -> Path:
        return Path(os.path.expandvars(self.config_file)).expanduser()

    def template(self, name: str) -> TopicTemplate:
        try:
            return self.templates[name]
        except KeyError:
            known = ", ".join(sorted(self.templates)) or "none defined"
            raise TemplateNotFound(f"No template named '{name}' ({known}).") from None

    @staticmethod
    def from_yaml(path: Path) -> "Settings":
        """! @brief Load settings from a YAML file.

        @param path Settings file.
        @return Parsed Settings; defaults for absent keys.
        @throws SettingsError on unreadable YAML or wrong types.
        """
        try:
            data = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise SettingsError(f"Cannot parse {path}: {e}") from e
        except OSError as e:
            raise SettingsError(f"Cannot read {path}: {e}") from e
        if not isinstance(data, dict):
            raise SettingsError(f"{path}: top level must be a mapping.")

        pickers = data.get("pickers", DEFAULT_PICKERS)
        if isinstance(pickers, str):
            pickers = [pickers]
        if not isinstance(pickers, list):
            raise SettingsError(f"{path}: 'pickers' must be a list.")

        templates = data.get("templates") or {}
        if not isinstance(templates, dict):
            raise SettingsError(f"{path}: 'templates' must be a mapping.")

        return Settings(
            socket=str(data.get("socket", DEFAULT_SOCKET)),
            config_file=str(data.get("config_file", DEFAULT_TMUX_CONF)),
            pickers=[str(p) for p in pickers],
            templates={str(k): TopicTemplate.from_dict(str(k), v) for k, v in templates.items()},
        )


def settings_path(environ: Mapping[str, str]) -> Path:
    return Path(environ.get(SETTINGS_ENV) or DEFAULT_SETTINGS).expanduser()


def load_settings(environ: Mapping[str, str]) -> Settings:
    """Read settings from $UBERTMUX_SETTINGS or the default path; defaults if absent."""
    path = settings_path(environ)
    if not path.exists():
        if environ.get(SETTINGS_ENV):
            raise SettingsError(f"{SETTINGS_ENV} points to a missing file: {path}")
        return Settings()
    return Settings.from_yaml(path)
