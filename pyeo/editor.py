"""Resolving and launching the user's editor."""

import logging
import os
import shlex
import subprocess
from pathlib import Path
from typing import Mapping, Optional

from .config import config
from .exceptions import EoEditorError
from .utils import DEFAULT_EDITOR

logger = logging.getLogger(__name__)


def resolve_editor(environ: Optional[Mapping[str, str]] = None) -> str:
    """Determine the editor command.

    Looks at ``$VISUAL``, then ``$EDITOR``, then the ``editor`` key of the
    config file, and falls back to ``vim``.

    Args:
        environ: Environment to read (defaults to ``os.environ``)

    Returns:
        Editor command line (may contain arguments)
    """
    if environ is None:
        environ = os.environ
    for name in ("VISUAL", "EDITOR"):
        value = environ.get(name, "").strip()
        if value:
            return value
    return config.editor or DEFAULT_EDITOR


def launch_editor(command: str, path: Path) -> int:
    """Run the editor on a file and wait for it to exit.

    Args:
        command: Editor command line, e.g. ``"code --wait"``
        path: File to open

    Returns:
        Exit status of the editor

    Raises:
        EoEditorError: If the editor cannot be started
    """
    args = shlex.split(command)
    if not args:
        raise EoEditorError("No editor command configured")

    logger.debug("Launching editor: %s %s", command, path)
    try:
        completed = subprocess.run([*args, str(path)], check=False)
    except OSError as e:
        raise EoEditorError(f"Could not start editor '{args[0]}': {e}") from e

    logger.debug("Editor exited with status %d", completed.returncode)
    return completed.returncode
