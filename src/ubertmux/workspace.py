"""Working-directory selection for new sessions.

Resolution order:
  1) UBERTMUX_WORKSPACE (must exist, otherwise fatal)
  2) UBERTMUX_WORKSPACE_<TOPIC> (used when it exists, otherwise ignored)
  3) the topic template's workspace, when creating from a template
  4) the current directory
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from ubertmux.errors import WorkspaceNotFound
from ubertmux.topics import WORKSPACE_ENV, topic_env_var


@dataclass(frozen=True)
class Workspace:
    path: Path
    source: str  # "global", "topic", "template" or "cwd"

    @property
    def is_override(self) -> bool:
        return self.source != "cwd"


def _expand(value: str) -> Path:
    return Path(os.path.expandvars(os.path.expanduser(value)))


def resolve_workspace(
    topic: Optional[str],
    environ: Mapping[str, str],
    cwd: Path,
    template_dir: Optional[str] = None,
) -> Workspace:
    """! @brief Decide which directory the session starts in.

    The global override is a hard requirement: a missing directory fails
    before any per-topic lookup happens. The per-topic override is advisory
    and falls through silently when its directory is missing.

    @param topic Topic name (None / "" for the default session).
    @param environ Variable lookup (os.environ in production).
    @param cwd Directory used when no override applies.
    @param template_dir Workspace declared by a topic template, if any.
    @return Resolved Workspace.
    @throws WorkspaceNotFound when UBERTMUX_WORKSPACE is not a directory.
    """
    global_value = environ.get(WORKSPACE_ENV)
    if global_value:
        path = _expand(global_value)
        if not path.is_dir():
            raise WorkspaceNotFound(
                f"{WORKSPACE_ENV} points to a missing directory: {global_value}"
            )
        return Workspace(path=path, source="global")

    if topic:
        topic_value = environ.get(topic_env_var(topic))
        if topic_value:
            path = _expand(topic_value)
            if path.is_dir():
                return Workspace(path=path, source="topic")

    if template_dir:
        path = _expand(template_dir)
        if path.is_dir():
            return Workspace(path=path, source="template")
        print(f"[warn] Template workspace does not exist: {template_dir}", file=sys.stderr)

    return Workspace(path=cwd, source="cwd")
