"""mpclient CLI - one-shot commands, command lists, watch mode and shell."""

from .main import cli

__all__ = ["cli"]
