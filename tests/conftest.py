"""Shared fakes: a tmux multiplexer and libtmux-like server that never spawn tmux."""

from pathlib import Path

import pytest

from ubertmux.cli import Context
from ubertmux.settings import Settings


class FakePane:
    def __init__(self):
        self.keys = []

    def send_keys(self, cmd, enter=True):
        self.keys.append(cmd)


class FakeWindow:
    def __init__(self, name, start_directory=None):
        self.window_name = name
        self.start_directory = start_directory
        self.panes = [FakePane()]

    def rename_window(self, name):
        self.window_name = name


class FakeSession:
    def __init__(self, name, start_directory):
        self.session_name = name
        self.start_directory = start_directory
        self.windows = [FakeWindow("zsh", start_directory)]

    def new_window(self, window_name, attach=False, start_directory=None):
        win = FakeWindow(window_name, start_directory)
        self.windows.append(win)
        return win


class FakeQueryList(list):
    def filter(self, **kwargs):
        return FakeQueryList(
            s for s in self if all(getattr(s, k) == v for k, v in kwargs.items())
        )


class FakeServer:
    def __init__(self):
        self.sessions = FakeQueryList()

    def new_session(self, session_name, attach=False, start_directory=None):
        session = FakeSession(session_name, start_directory)
        self.sessions.append(session)
        return session


class FakeMux:
    """Records tmux invocations instead of running them."""

    def __init__(self, listing="", socket_name="ubertmux", existing=()):
        self.socket_name = socket_name
        self.listing = listing
        self.existing = set(existing)
        self.runs = []
        self.execs = []
        self.server = FakeServer()

    def run(self, args):
        self.runs.append(list(args))
        if args[0] == "has-session":
            return 0 if args[2].lstrip("=") in self.existing else 1
        return 0

    def capture(self, args):
        self.runs.append(list(args))
        return self.listing

    def exec(self, args, env=None):
        self.execs.append((list(args), env))


class FakePicker:
    name = "fake"

    def __init__(self, answers):
        self.answers = list(answers)
        self.seen = []

    def available(self):
        return True

    def pick(self, choices, prompt):
        self.seen.append(list(choices))
        answer = self.answers.pop(0)
        if callable(answer):
            return answer(choices)
        return answer


@pytest.fixture
def fake_mux():
    return FakeMux()


@pytest.fixture
def make_context(tmp_path):
    """Build a Context wired to fakes; tmux is reported as installed."""

    def factory(mux=None, environ=None, pickers=(), answers=(), settings=None):
        answers = list(answers)
        chdirs = []
        ctx = Context(
            settings=settings or Settings(config_file=str(tmp_path / "ubertmux.conf")),
            mux=mux or FakeMux(),
            environ=environ if environ is not None else {},
            cwd=tmp_path,
            pickers=list(pickers),
            input_fn=lambda prompt: answers.pop(0),
            chdir=chdirs.append,
            which=lambda name: f"/usr/bin/{name}",
        )
        ctx.chdirs = chdirs
        return ctx

    return factory


@pytest.fixture
def workdir(tmp_path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path
