"""
External editor round-trip for creating and editing string values.

A temp file is written, handed to ``$EDITOR``, read back and stored with SET.
The temp file is removed on every exit path.
"""

import logging
import os
import shlex
import subprocess
import tempfile
from typing import List, Optional

import redis

from config import EDITOR
from utils.redis.client import StoreTopology

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = '/\\:*?"<>|'
_MAX_FILENAME_KEY_LENGTH = 50


class EditorError(Exception):
    """Raised when the temp file or the editor process fails."""
    pass


def sanitize_filename(key: str) -> str:
    """Replace characters that are unsafe in file names and cap the length."""
    result = ''.join('_' if char in _UNSAFE_FILENAME_CHARS else char for char in key)
    return result[:_MAX_FILENAME_KEY_LENGTH]


def _create_temp_file(prefix: str, content: str = '') -> str:
    try:
        fd, path = tempfile.mkstemp(prefix=prefix, suffix='.txt')
    except OSError as e:
        raise EditorError(f"failed to create temp file: {e}") from e

    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as handle:
            handle.write(content)
    except OSError as e:
        remove_temp_file(path)
        raise EditorError(f"failed to write to temp file: {e}") from e
    return path


def prepare_edit_file(key: str, current_value: str) -> str:
    """Create a temp file holding the current value of ``key``."""
    return _create_temp_file(f"redis-viewer-{sanitize_filename(key)}-", current_value)


def prepare_create_file(key: str) -> str:
    """Create an empty temp file for a new key."""
    return _create_temp_file(f"redis-viewer-new-{sanitize_filename(key)}-")


def remove_temp_file(path: Optional[str]) -> None:
    if not path:
        return
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove temp file {path}: {e}")


def editor_command(path: str, editor: Optional[str] = None) -> List[str]:
    """Split the configured editor command and append the file to edit."""
    command = shlex.split(editor or os.getenv('EDITOR') or EDITOR)
    if not command:
        command = ['vi']
    return command + [path]


def run_editor(path: str, editor: Optional[str] = None) -> None:
    """
    Run the editor on ``path`` and wait for it to exit.

    Raises:
        EditorError: If the editor cannot be started or exits non-zero
    """
    command = editor_command(path, editor)
    logger.info(f"Launching editor: {command[0]}")
    try:
        subprocess.run(command, check=True)  # noqa: S603
    except FileNotFoundError as e:
        raise EditorError(f"editor not found: {command[0]}") from e
    except subprocess.CalledProcessError as e:
        raise EditorError(f"editor exited with status {e.returncode}") from e
    except OSError as e:
        raise EditorError(f"failed to start editor: {e}") from e


def save_edited_value(store: StoreTopology, key: str, path: str) -> None:
    """
    Read the edited file and store its content verbatim under ``key``.

    Raises:
        EditorError: If the file cannot be read or is not valid UTF-8
        redis.RedisError: If the write fails
    """
    try:
        try:
            with open(path, 'r', encoding='utf-8') as handle:
                content = handle.read()
        except OSError as e:
            raise EditorError(f"failed to read temp file: {e}") from e
        except UnicodeDecodeError as e:
            raise EditorError(f"edited value is not valid UTF-8: {e}") from e

        try:
            store.set(key, content)
        except redis.RedisError as e:
            logger.error(f"Failed to store edited value for {key!r}: {e}")
            raise
    finally:
        remove_temp_file(path)
