"""tmux wrappers: the isolated ubertmux server, topic listing, launching."""

from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

import libtmux

from ubertmux.errors import MissingDependency
from ubertmux.settings import TopicTemplate
from ubertmux.topics import DEFAULT_TOPIC_LABEL, topic_from_session_name


TMUX_BIN = "tmux"


# ---------------------------
# Multiplexer capability
# ---------------------------

@runtime_checkable
class Multiplexer(Protocol):
    """What the commands need from tmux; TmuxMultiplexer in production."""

    socket_name: str

    @property
    def server(self) -> libtmux.Server: ...

    def run(self, args: Sequence[str]) -> int: ...

    def capture(self, args: Sequence[str]) -> str: ...

    def exec(self, args: Sequence[str], env: Optional[Dict[str, str]] = None) -> None: ...


class TmuxMultiplexer:
    """! @brief Runs tmux commands against the ubertmux server.

    Every invocation carries `-f <config>` and `-L <socket>` so ubertmux
    sessions never mix with the user's default tmux server.

    Satisfies Multiplexer; tests substitute a fake.
    """

    def __init__(self, socket_name: str, config_path: Path) -> None:
        self.socket_name = socket_name
        self.config_path = config_path
        self._server: Optional[libtmux.Server] = None

    def argv(self, args: Sequence[str]) -> List[str]:
        return [TMUX_BIN, "-f", str(self.config_path), "-L", self.socket_name, *args]

    @property
    def server(self) -> libtmux.Server:
        if self._server is None:
            self._server = libtmux.Server(
                socket_name=self.socket_name,
                config_file=str(self.config_path),
            )
        return self._server

    def run(self, args: Sequence[str]) -> int:
        return subprocess.run(self.argv(args)).returncode

    def capture(self, args: Sequence[str]) -> str:
        """Run a tmux command and return stdout; stderr is discarded."""
        result = subprocess.run(self.argv(args), capture_output=True, text=True)
        return result.stdout

    def exec(self, args: Sequence[str], env: Optional[Dict[str, str]] = None) -> None:
        # Replace this process: tmux owns the terminal from here on.
        argv = self.argv(args)
        if env is None:
            os.execvp(argv[0], argv)
        os.execvpe(argv[0], argv, env)


def ensure_tmux_installed(which: Callable[[str], Optional[str]] = shutil.which) -> str:
    path = which(TMUX_BIN)
    if not path:
        raise MissingDependency("tmux is not installed (not found on PATH).")
    return path


# ---------------------------
# Listing
# ---------------------------

@dataclass(frozen=True)
class TopicEntry:
    topic: str      # "" for the default session
    session: str
    detail: str = ""

    @property
    def label(self) -> str:
        return self.topic or DEFAULT_TOPIC_LABEL


def parse_topic_listing(text: str) -> List[TopicEntry]:
    """! @brief Parse `tmux list-sessions` output into ubertmux topics.

    Lines look like `<name>: <rest>`. Only `ubertmux` and
    `ubertmux-<topic>` sessions are kept; everything else is ignored.

    @param text Raw stdout of list-sessions.
    @return Entries in listing order.
    """
    entries: List[TopicEntry] = []
    for line in text.splitlines():
        if ":" not in line:
            continue
        name, rest = line.split(":", 1)
        topic = topic_from_session_name(name)
        if topic is None:
            continue
        entries.append(TopicEntry(topic=topic, session=name, detail=rest.strip()))
    return entries


def list_topics(mux: Multiplexer) -> List[TopicEntry]:
    # No server running yet -> empty stdout -> no topics.
    return parse_topic_listing(mux.capture(["list-sessions"]))


def format_listing(entries: List[TopicEntry]) -> str:
    if not entries:
        return "(no topics)"
    width = max(len(e.label) for e in entries)
    return "\n".join(f"{e.label.ljust(width)}  {e.detail}".rstrip() for e in entries)


# ---------------------------
# Launching
# ---------------------------

def launch_args(session_name: str, passthrough: Sequence[str] = ()) -> List[str]:
    """tmux arguments that attach to @p session_name, creating it if missing."""
    return ["new-session", "-A", "-s", session_name, *passthrough]


def inside_own_server(environ: Mapping[str, str], socket_name: str) -> bool:
    """True when $TMUX refers to a client of the ubertmux socket."""
    value = environ.get("TMUX", "")
    if not value:
        return False
    socket_path = value.split(",", 1)[0]
    return Path(socket_path).name == socket_name


def launch(
    mux: Multiplexer,
    session_name: str,
    passthrough: Sequence[str],
    environ: Mapping[str, str],
) -> None:
    """! @brief Hand the terminal to tmux for @p session_name.

    Outside tmux: exec `new-session -A`. Inside an ubertmux client: create the
    session detached if needed and switch the client to it. Inside another
    tmux server: attach a nested client with $TMUX cleared.

    @param mux Multiplexer (TmuxMultiplexer in production).
    @param session_name Target session.
    @param passthrough Extra tmux arguments from after `--`.
    @param environ Process environment.
    """
    if inside_own_server(environ, mux.socket_name):
        if mux.run(["has-session", "-t", f"={session_name}"]) != 0:
            mux.run(["new-session", "-d", "-s", session_name, *passthrough])
        mux.exec(["switch-client", "-t", f"={session_name}"])
        return

    if environ.get("TMUX"):
        env = {k: v for k, v in environ.items() if k != "TMUX"}
        mux.exec(launch_args(session_name, passthrough), env=env)
        return

    mux.exec(launch_args(session_name, passthrough))


# ---------------------------
# Templates
# ---------------------------

def build_from_template(
    server: libtmux.Server,
    session_name: str,
    template: TopicTemplate,
    start_directory: Path,
) -> libtmux.Session:
    """! @brief Create a detached session laid out by @p template.

    The first window of the new session is renamed and reused; one more
    window is created per remaining template entry. Each command is typed
    into the window's first pane. An existing session is returned unchanged.

    @param server libtmux server bound to the ubertmux socket.
    @param session_name Session to create.
    @param template Windows and commands.
    @param start_directory Working directory of every window.
    @return The session.
    """
    existing = server.sessions.filter(session_name=session_name)
    if existing:
        return existing[0]

    session = server.new_session(
        session_name=session_name,
        attach=False,
        start_directory=str(start_directory),
    )

    first = True
    for window_name, commands in template.windows.items():
        if first:
            win = session.windows[0]
            win.rename_window(window_name)
            first = False
        else:
            win = session.new_window(
                window_name=window_name,
                attach=False,
                start_directory=str(start_directory),
            )
        pane = win.panes[0]
        for command in commands:
            pane.send_keys(command, enter=True)

    return session
