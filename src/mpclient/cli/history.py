"""History file for the interactive shell.

Uses prompt_toolkit's FileHistory to keep shell input across sessions in
the mpclient config directory.
"""

from prompt_toolkit.history import FileHistory

from ..config import get_config_dir

HISTORY_FILE = "history"


def get_history() -> FileHistory:
    """Return the shell's FileHistory, creating its directory if needed."""
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)
    return FileHistory(str(config_dir / HISTORY_FILE))
