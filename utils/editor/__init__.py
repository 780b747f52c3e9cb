# Editor subpackage for the external-editor create/edit round-trip

from .round_trip import (
    EditorError,
    editor_command,
    prepare_create_file,
    prepare_edit_file,
    remove_temp_file,
    run_editor,
    sanitize_filename,
    save_edited_value,
)

__all__ = [
    'EditorError',
    'editor_command',
    'prepare_create_file',
    'prepare_edit_file',
    'remove_temp_file',
    'run_editor',
    'sanitize_filename',
    'save_edited_value',
]
