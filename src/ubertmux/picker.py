"""Interactive pickers: fzf, sk, and a numbered menu fallback.

The first available picker wins. fzf and sk need their binary on PATH and an
interactive stdin; the menu works everywhere.
"""

from __future__ import annotations

import shutil
import subprocess
import sys
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, TextIO

from ubertmux.errors import (
    InteractiveCancelled,
    InteractiveParseFailure,
    MissingDependency,
    UbertmuxError,
)
from ubertmux.settings import TopicTemplate
from ubertmux.tmux import TopicEntry
from ubertmux.topics import validate_topic


CREATE_NEW_LABEL = "[create new]"

# fzf/sk exit codes meaning "nothing selected"
_NO_SELECTION = {1, 130}


class Picker:
    name = "picker"

    def available(self) -> bool:
        raise NotImplementedError

    def pick(self, choices: Sequence[str], prompt: str) -> str:
        """Return the chosen line, or "" when the user selected nothing."""
        raise NotImplementedError


class FuzzyPicker(Picker):
    binary = ""

    def __init__(
        self,
        which: Callable[[str], Optional[str]] = shutil.which,
        isatty: Optional[Callable[[], bool]] = None,
    ) -> None:
        self.which = which
        self.isatty = isatty or sys.stdin.isatty

    @property
    def name(self) -> str:
        return self.binary

    def available(self) -> bool:
        return bool(self.which(self.binary)) and self.isatty()

    def command(self, prompt: str) -> List[str]:
        return [self.binary, "--prompt", f"{prompt} ", "--no-sort", "--reverse", "--height", "40%"]

    def pick(self, choices: Sequence[str], prompt: str) -> str:
        try:
            result = subprocess.run(
                self.command(prompt),
                input="\n".join(choices),
                text=True,
                stdout=subprocess.PIPE,
            )
        except FileNotFoundError:
            raise MissingDependency(f"{self.binary} is not installed (not found on PATH).") from None
        if result.returncode in _NO_SELECTION:
            return ""
        if result.returncode != 0:
            raise UbertmuxError(f"{self.binary} exited with status {result.returncode}.")
        return result.stdout.rstrip("\n")


class FzfPicker(FuzzyPicker):
    binary = "fzf"


class SkimPicker(FuzzyPicker):
    binary = "sk"


class MenuPicker(Picker):
    """! @brief Numbered prompt on the terminal; needs no external program.

    Accepts either the number of a choice or its exact text. Empty input
    (or EOF) means nothing was selected.
    """

    name = "menu"

    def __init__(self, input_fn: Callable[[str], str] = input, out: Optional[TextIO] = None) -> None:
        self.input_fn = input_fn
        self.out = out

    def available(self) -> bool:
        return True

    def pick(self, choices: Sequence[str], prompt: str) -> str:
        out = self.out or sys.stderr
        for i, choice in enumerate(choices, 1):
            print(f"  {i:>2}) {choice.replace(chr(9), '  ')}", file=out)
        try:
            answer = self.input_fn(f"{prompt} [1-{len(choices)}]: ").strip()
        except EOFError:
            return ""
        if not answer:
            return ""
        if answer in choices:
            return answer
        try:
            idx = int(answer)
        except ValueError:
            raise InteractiveParseFailure(f"Not a choice number: {answer!r}") from None
        if idx < 1 or idx > len(choices):
            raise InteractiveParseFailure(f"Choice out of range: {idx} (have {len(choices)})")
        return choices[idx - 1]


PICKERS: Dict[str, Callable[[], Picker]] = {
    "fzf": FzfPicker,
    "sk": SkimPicker,
}


def build_pickers(names: Sequence[str]) -> List[Picker]:
    """Instantiate pickers in the configured order, with the menu appended last."""
    pickers: List[Picker] = []
    for name in names:
        factory = PICKERS.get(name)
        if factory is None:
            print(f"[warn] Unknown picker '{name}' ignored (known: {', '.join(PICKERS)})", file=sys.stderr)
            continue
        pickers.append(factory())
    pickers.append(MenuPicker())
    return pickers


def choose_picker(candidates: Sequence[Picker]) -> Picker:
    for picker in candidates:
        if picker.available():
            return picker
    return MenuPicker()


# ---------------------------
# Selections
# ---------------------------

@dataclass(frozen=True)
class Selection:
    topic: str = ""           # "" selects the default session
    create_new: bool = False


def _entry_line(entry: TopicEntry) -> str:
    return f"{entry.label}\t{entry.detail}" if entry.detail else entry.label


def select_topic(entries: Sequence[TopicEntry], picker: Picker) -> Selection:
    """! @brief Let the user pick an existing topic or ask for a new one.

    "[create new]" is always offered, so an empty server still yields a
    usable choice that routes to topic creation.

    @param entries Topics from the listing.
    @param picker Picker to drive.
    @return Selection for an existing topic, or one with create_new set.
    @throws InteractiveCancelled on an empty selection.
    @throws InteractiveParseFailure when the answer matches no choice.
    """
    entries = list(entries)
    choices = [_entry_line(e) for e in entries] + [CREATE_NEW_LABEL]

    chosen = picker.pick(choices, "topic>")
    if not chosen:
        raise InteractiveCancelled("No topic selected.")
    try:
        idx = choices.index(chosen)
    except ValueError:
        raise InteractiveParseFailure(f"Unrecognized selection: {chosen!r}") from None
    if idx == len(entries):
        return Selection(create_new=True)
    return Selection(topic=entries[idx].topic)


def select_template(templates: Dict[str, TopicTemplate], picker: Picker) -> TopicTemplate:
    if not templates:
        raise UbertmuxError("No templates defined; add a 'templates:' section to the settings file.")
    lines = {
        (f"{t.name}\t{t.description}" if t.description else t.name): t
        for t in templates.values()
    }
    chosen = picker.pick(list(lines), "template>")
    if not chosen:
        raise InteractiveCancelled("No template selected.")
    template = lines.get(chosen)
    if template is None:
        raise InteractiveParseFailure(f"Unrecognized template: {chosen!r}")
    return template


def prompt_topic_name(
    input_fn: Callable[[str], str] = input,
    prompt: str = "New topic name: ",
    default: str = "",
) -> str:
    """Read a topic name from the terminal and validate it."""
    if default:
        prompt = f"{prompt.rstrip(': ')} [{default}]: "
    try:
        answer = input_fn(prompt).strip()
    except EOFError:
        answer = ""
    if not answer:
        answer = default
    if not answer:
        raise InteractiveCancelled("No topic name given.")
    return validate_topic(answer)
