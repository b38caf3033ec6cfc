"""Exception hierarchy for ubertmux.

Every error carries the process exit code the CLI returns for it.
"""


class UbertmuxError(Exception):
    """Base exception for all ubertmux errors."""

    exit_code = 1


class InvalidTopicName(UbertmuxError):
    """Topic contains characters outside [A-Za-z0-9_-]."""

    pass


class MissingDependency(UbertmuxError):
    """A required external binary (tmux, fzf, sk) is not installed."""

    pass


class WorkspaceNotFound(UbertmuxError):
    """UBERTMUX_WORKSPACE points at something that is not a directory."""

    pass


class UnknownFlag(UbertmuxError):
    """Unrecognized command-line flag before `--`."""

    pass


class SettingsError(UbertmuxError):
    """Settings file could not be read or has the wrong shape."""

    pass


class TemplateNotFound(SettingsError):
    """Requested topic template is not defined in the settings."""

    pass


class InteractiveCancelled(UbertmuxError):
    """User submitted an empty answer to an interactive prompt."""

    exit_code = 3


class InteractiveParseFailure(UbertmuxError):
    """Interactive answer could not be mapped to a choice."""

    exit_code = 4
