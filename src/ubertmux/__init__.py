"""Topic-based tmux sessions on an isolated server socket."""

__version__ = "0.3.0"
