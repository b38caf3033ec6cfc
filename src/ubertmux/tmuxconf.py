"""Generated tmux configuration for the ubertmux server."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional


DEFAULT_TMUX_CONF = "~/.ubertmux.conf"

# Prefix + W enters this key table; each workspace gets its own key in it.
WORKSPACE_TABLE = "ubertmux-workspace"
WORKSPACE_KEYS = "123456789abcdefghijklmnopqrstuvwxyz"

_CONFIG_PATH_MARK = "@CONFIG_PATH@"

TMUX_CONF_TEMPLATE = """\
# @CONFIG_PATH@
# Generated by ubertmux on first run. Edit freely; ubertmux only appends
# workspace bindings to this file.

# Prefix: Ctrl-a (Ctrl-b stays free for a nested default tmux)
unbind-key C-b
set-option -g prefix C-a
bind-key C-a send-prefix

set-option -g mouse on
set-option -g history-limit 100000
set-option -g base-index 1
set-window-option -g pane-base-index 1
set-option -g renumber-windows on
set-option -sg escape-time 10
set-option -g default-terminal "tmux-256color"

# Splits and new windows keep the current directory
bind-key | split-window -h -c "#{pane_current_path}"
bind-key - split-window -v -c "#{pane_current_path}"
bind-key c new-window -c "#{pane_current_path}"

# Topic switching
bind-key s choose-tree -s -f "#{m:ubertmux*,#{session_name}}"
bind-key r source-file "@CONFIG_PATH@" \\; display-message "ubertmux config reloaded"

set-option -g status-left "[#{s/^ubertmux-?//:session_name}] "
set-option -g status-left-length 30
set-option -g status-right "%H:%M %d-%b"

# Workspace bindings (appended by ubertmux): prefix W, then the key below
bind-key W switch-client -T ubertmux-workspace
"""


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def render_tmux_conf(path: Path) -> str:
    """Template text for a config file living at @p path."""
    return TMUX_CONF_TEMPLATE.replace(_CONFIG_PATH_MARK, _quote(str(path)))


def workspace_command(workspace: Path) -> str:
    return f'new-window -c "{_quote(str(workspace))}"'


def workspace_binding(workspace: Path, key: str) -> str:
    """! @brief tmux directive opening a new window in @p workspace.

    @param workspace Directory the window starts in.
    @param key Key inside the workspace table.
    @return One line of tmux configuration (no trailing newline).
    """
    return f"bind-key -T {WORKSPACE_TABLE} {key} {workspace_command(workspace)}"


def materialize_config(path: Path, workspace: Optional[Path] = None) -> Path:
    """! @brief Ensure the tmux config exists, appending a workspace binding once.

    A missing file is created from TMUX_CONF_TEMPLATE. An existing file is
    never rewritten; at most a binding for @p workspace is appended, on the
    next free key of the workspace table, and only if no existing binding
    already opens that directory.

    @param path Config file location.
    @param workspace Directory to bind, or None to skip the binding.
    @return @p path.
    """
    path = path.expanduser()
    if not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_tmux_conf(path))

    if workspace is None:
        return path

    content = path.read_text()
    prefix = f"bind-key -T {WORKSPACE_TABLE} "
    bound = [line for line in content.splitlines() if line.startswith(prefix)]
    command = workspace_command(workspace)
    if any(line.endswith(" " + command) for line in bound):
        return path

    if len(bound) >= len(WORKSPACE_KEYS):
        print(f"[warn] No free workspace key left in {path}; {workspace} not bound.", file=sys.stderr)
        return path

    with path.open("a") as f:
        if content and not content.endswith("\n"):
            f.write("\n")
        f.write(workspace_binding(workspace, WORKSPACE_KEYS[len(bound)]) + "\n")
    return path
