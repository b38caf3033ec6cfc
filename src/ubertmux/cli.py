"""
ubertmux

Topic-based tmux sessions on an isolated server socket.

  ubertmux                      attach (or create) the default session
  ubertmux -t dev-work          attach (or create) topic "dev-work"
  ubertmux -l                   list topics
  ubertmux -s                   pick a topic interactively (fzf, sk or menu)
  ubertmux --new-topic api      create topic "api"
  ubertmux --new-topic --template
                                create a topic from a settings template
  ubertmux --new-topic api --template dev
                                create topic "api" from template "dev"
  ubertmux -t api -- htop       extra arguments after -- go to tmux new-session

Sessions run on `tmux -L ubertmux` with the generated ~/.ubertmux.conf.
"""

from __future__ import annotations

import argparse
import enum
import os
import shutil
import sys
import textwrap
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Sequence, Tuple

from ubertmux import __version__
from ubertmux.errors import UbertmuxError, UnknownFlag
from ubertmux.picker import (
    Picker,
    build_pickers,
    choose_picker,
    prompt_topic_name,
    select_template,
    select_topic,
)
from ubertmux.settings import Settings, TopicTemplate, load_settings
from ubertmux.tmux import (
    Multiplexer,
    TmuxMultiplexer,
    build_from_template,
    ensure_tmux_installed,
    format_listing,
    launch,
    list_topics,
)
from ubertmux.tmuxconf import materialize_config
from ubertmux.topics import WORKSPACE_ENV, resolve_session_name, validate_topic
from ubertmux.workspace import resolve_workspace


PROG = "ubertmux"

ENV_HELP = textwrap.dedent(
    f"""
    environment:
      {WORKSPACE_ENV}          start directory for every new session
                                    (must exist)
      {WORKSPACE_ENV}_<TOPIC>  start directory for one topic, e.g.
                                    {WORKSPACE_ENV}_DEV_WORK for "dev-work"
                                    (ignored when missing)
      UBERTMUX_SETTINGS            settings file
                                    (default ~/.config/ubertmux/settings.yaml)

    exit codes:
      0 success, 1 usage/dependency/workspace error,
      3 interactive prompt cancelled, 4 unparseable interactive answer
    """
).strip("\n")


# ---------------------------
# Invocation request
# ---------------------------

class Action(enum.Enum):
    DEFAULT = "default"
    TOPIC = "topic"
    LIST = "list"
    NEW_TOPIC = "new-topic"
    SELECT = "select"
    HELP = "help"


@dataclass(frozen=True)
class InvocationRequest:
    action: Action = Action.DEFAULT
    topic: Optional[str] = None
    passthrough: Tuple[str, ...] = ()
    interactive: bool = False
    template: bool = False
    template_name: Optional[str] = None


class _SetAction(argparse.Action):
    """Record a terminal action; a later action flag replaces an earlier one."""

    def __init__(self, option_strings, dest, action_value: Action, **kwargs):
        self.action_value = action_value
        super().__init__(option_strings, dest, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None):
        namespace.action = self.action_value
        namespace.topic = values if isinstance(values, str) else None


class _Parser(argparse.ArgumentParser):
    def error(self, message):
        raise UnknownFlag(f"{message}\n{self.format_usage().rstrip()}\nTry '{PROG} --help' for more information.")


def build_parser() -> argparse.ArgumentParser:
    p = _Parser(
        prog=PROG,
        add_help=False,
        allow_abbrev=False,
        formatter_class=argparse.RawTextHelpFormatter,
        description="Topic-based tmux sessions on an isolated server socket.",
        epilog=ENV_HELP,
        usage=f"{PROG} [-t NAME | -s | -l [-i] | --new-topic [NAME] [--template [TEMPLATE]] | -h] [-- TMUX_ARGS...]",
    )
    p.set_defaults(action=Action.DEFAULT, topic=None)
    p.add_argument("-t", "--topic", metavar="NAME", action=_SetAction, action_value=Action.TOPIC,
                   help="Switch to (or create) the session for topic NAME.")
    p.add_argument("-s", "--select", nargs=0, action=_SetAction, action_value=Action.SELECT,
                   help="Pick a topic interactively.")
    p.add_argument("-l", "--list-topics", nargs=0, action=_SetAction, action_value=Action.LIST,
                   help="List topic sessions.")
    p.add_argument("-i", "--interactive", action="store_true",
                   help="With --list-topics: browse and switch interactively.")
    p.add_argument("--new-topic", metavar="NAME", nargs="?", action=_SetAction, action_value=Action.NEW_TOPIC,
                   help="Create topic NAME (prompted when omitted).")
    p.add_argument("--template", metavar="TEMPLATE", nargs="?", const="", default=None,
                   help="With --new-topic: lay the topic out from settings template TEMPLATE\n"
                        "(chosen from a menu when omitted).")
    p.add_argument("-h", "--help", nargs=0, action=_SetAction, action_value=Action.HELP,
                   help="Show this help and exit.")
    p.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    return p


def split_passthrough(argv: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Split argv at the first `--`; everything after it is left for tmux."""
    argv = list(argv)
    if "--" in argv:
        idx = argv.index("--")
        return argv[:idx], argv[idx + 1:]
    return argv, []


def join_topic_values(argv: Sequence[str], parser: argparse.ArgumentParser) -> List[str]:
    """! @brief Rewrite `-t VALUE` as `--topic=VALUE` when VALUE starts with "-".

    argparse would read `-t -dev` as a missing value, although "-dev" is a
    valid topic. Values that are one of our own flags are left alone.

    @param argv Arguments before `--`.
    @param parser Parser whose option strings are reserved.
    @return Rewritten arguments.
    """
    own_flags = set(parser._option_string_actions)
    out: List[str] = []
    i = 0
    while i < len(argv):
        token = argv[i]
        if token in ("-t", "--topic") and i + 1 < len(argv):
            value = argv[i + 1]
            if value.startswith("-") and value not in own_flags:
                out.append(f"--topic={value}")
                i += 2
                continue
        out.append(token)
        i += 1
    return out


def parse_args(argv: Sequence[str]) -> InvocationRequest:
    """! @brief Turn command-line tokens into an InvocationRequest.

    @param argv Arguments without the program name.
    @return The request.
    @throws UnknownFlag for unrecognized or malformed flags before `--`.
    """
    parser = build_parser()
    own, passthrough = split_passthrough(argv)
    args = parser.parse_args(join_topic_values(own, parser))

    if args.interactive and args.action not in (Action.LIST, Action.SELECT):
        raise UnknownFlag(f"-i/--interactive only applies to --list-topics. Try '{PROG} --help'.")
    if args.template is not None and args.action is not Action.NEW_TOPIC:
        raise UnknownFlag(f"--template only applies to --new-topic. Try '{PROG} --help'.")

    action = args.action
    if action is Action.LIST and args.interactive:
        action = Action.SELECT

    return InvocationRequest(
        action=action,
        topic=args.topic,
        passthrough=tuple(passthrough),
        interactive=args.interactive,
        template=args.template is not None,
        template_name=args.template or None,
    )


# ---------------------------
# Command context
# ---------------------------

@dataclass
class Context:
    settings: Settings
    mux: Multiplexer
    environ: Mapping[str, str]
    cwd: Path
    pickers: List[Picker] = field(default_factory=list)
    input_fn: Callable[[str], str] = input
    chdir: Callable[[Path], None] = os.chdir
    which: Callable[[str], Optional[str]] = shutil.which

    @staticmethod
    def from_environment(settings: Settings) -> "Context":
        return Context(
            settings=settings,
            mux=TmuxMultiplexer(settings.socket, settings.config_path),
            environ=os.environ,
            cwd=Path.cwd(),
            pickers=build_pickers(settings.pickers),
        )

    def picker(self) -> Picker:
        return choose_picker(self.pickers)


# ---------------------------
# Commands
# ---------------------------

def open_topic(
    ctx: Context,
    topic: str,
    passthrough: Sequence[str],
    template: Optional[TopicTemplate] = None,
) -> int:
    """! @brief Resolve workspace, materialize config and hand over to tmux.

    @param ctx Command context.
    @param topic Validated topic ("" for the default session).
    @param passthrough Extra tmux arguments.
    @param template Lay out a new session from this template first.
    @return Process exit code (only reached when tmux does not replace us).
    """
    session_name = resolve_session_name(topic)
    workspace = resolve_workspace(
        topic,
        ctx.environ,
        ctx.cwd,
        template_dir=template.workspace if template else None,
    )
    materialize_config(
        ctx.settings.config_path,
        workspace.path if workspace.is_override else None,
    )
    ctx.chdir(workspace.path)

    if template is not None:
        build_from_template(ctx.mux.server, session_name, template, workspace.path)

    launch(ctx.mux, session_name, passthrough, ctx.environ)
    return 0


def cmd_default(request: InvocationRequest, ctx: Context) -> int:
    ensure_tmux_installed(ctx.which)
    return open_topic(ctx, "", request.passthrough)


def cmd_topic(request: InvocationRequest, ctx: Context) -> int:
    topic = validate_topic(request.topic or "")
    ensure_tmux_installed(ctx.which)
    return open_topic(ctx, topic, request.passthrough)


def cmd_list(request: InvocationRequest, ctx: Context) -> int:
    ensure_tmux_installed(ctx.which)
    print(format_listing(list_topics(ctx.mux)))
    return 0


def cmd_select(request: InvocationRequest, ctx: Context) -> int:
    ensure_tmux_installed(ctx.which)
    selection = select_topic(list_topics(ctx.mux), ctx.picker())
    if selection.create_new:
        return create_topic(ctx, None, request.passthrough, use_template=False)
    return open_topic(ctx, selection.topic, request.passthrough)


def create_topic(
    ctx: Context,
    name: Optional[str],
    passthrough: Sequence[str],
    use_template: bool,
    template_name: Optional[str] = None,
) -> int:
    template = None
    if template_name:
        template = ctx.settings.template(template_name)
    elif use_template:
        template = select_template(ctx.settings.templates, ctx.picker())

    if name:
        topic = validate_topic(name)
    else:
        topic = prompt_topic_name(ctx.input_fn, default=template.name if template else "")

    existing = {e.topic for e in list_topics(ctx.mux)}
    if topic in existing:
        print(f"[warn] Topic '{topic}' already exists; attaching to it.", file=sys.stderr)
        template = None

    return open_topic(ctx, topic, passthrough, template=template)


def cmd_new_topic(request: InvocationRequest, ctx: Context) -> int:
    if request.topic:
        validate_topic(request.topic)
    ensure_tmux_installed(ctx.which)
    return create_topic(
        ctx,
        request.topic,
        request.passthrough,
        use_template=request.template,
        template_name=request.template_name,
    )


def cmd_help(request: InvocationRequest, ctx: Optional[Context] = None) -> int:
    print(build_parser().format_help())
    return 0


COMMANDS = {
    Action.DEFAULT: cmd_default,
    Action.TOPIC: cmd_topic,
    Action.LIST: cmd_list,
    Action.SELECT: cmd_select,
    Action.NEW_TOPIC: cmd_new_topic,
}


def dispatch(request: InvocationRequest, ctx: Context) -> int:
    if request.action is Action.HELP:
        return cmd_help(request, ctx)
    return int(COMMANDS[request.action](request, ctx))


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    try:
        request = parse_args(argv)
        if request.action is Action.HELP:
            return cmd_help(request)
        settings = load_settings(os.environ)
        return dispatch(request, Context.from_environment(settings))
    except UbertmuxError as e:
        print(f"{PROG}: {e}", file=sys.stderr)
        return e.exit_code
    except KeyboardInterrupt:
        print(file=sys.stderr)
        return 3


if __name__ == "__main__":
    raise SystemExit(main())
