import os
import sys

import pytest

from utils.editor import (
    EditorError,
    editor_command,
    prepare_create_file,
    prepare_edit_file,
    remove_temp_file,
    run_editor,
    sanitize_filename,
    save_edited_value,
)


def test_sanitize_filename():
    assert sanitize_filename('a/b\\c:d*e?f"g<h>i|j') == 'a_b_c_d_e_f_g_h_i_j'
    assert sanitize_filename('k' * 80) == 'k' * 50


def test_prepare_edit_file_holds_current_value():
    path = prepare_edit_file('user:1', 'hello')
    try:
        assert os.path.basename(path).startswith('redis-viewer-user_1-')
        assert path.endswith('.txt')
        with open(path, encoding='utf-8') as f:
            assert f.read() == 'hello'
    finally:
        remove_temp_file(path)


def test_prepare_create_file_is_empty():
    path = prepare_create_file('new/key')
    try:
        assert os.path.basename(path).startswith('redis-viewer-new-new_key-')
        assert os.path.getsize(path) == 0
    finally:
        remove_temp_file(path)


def test_editor_command_splits_editor(monkeypatch):
    monkeypatch.setenv('EDITOR', 'code --wait')
    assert editor_command('/tmp/f.txt') == ['code', '--wait', '/tmp/f.txt']
    assert editor_command('/tmp/f.txt', editor='nano -w') == ['nano', '-w', '/tmp/f.txt']


def test_run_editor_success(tmp_path):
    path = tmp_path / 'value.txt'
    path.write_text('')
    script = f"open(r'{path}', 'w').write('edited')"
    run_editor(str(path), editor=f"{sys.executable} -c \"{script}\" ")
    assert path.read_text() == 'edited'


def test_run_editor_non_zero_exit(tmp_path):
    with pytest.raises(EditorError, match='status 3'):
        run_editor(str(tmp_path / 'f.txt'), editor=f"{sys.executable} -c 'import sys; sys.exit(3)'")


def test_run_editor_missing_binary(tmp_path):
    with pytest.raises(EditorError, match='editor not found'):
        run_editor(str(tmp_path / 'f.txt'), editor='definitely-not-an-editor-binary')


def test_save_edited_value_stores_verbatim_and_removes_file(store, kv):
    path = prepare_edit_file('k', 'line one\nline two\n')

    save_edited_value(store, 'k', path)

    assert kv.get('k') == 'line one\nline two\n'
    assert not os.path.exists(path)


def test_save_edited_value_missing_file(store, tmp_path):
    with pytest.raises(EditorError):
        save_edited_value(store, 'k', str(tmp_path / 'missing.txt'))


def test_remove_temp_file_tolerates_missing():
    remove_temp_file('/nonexistent/redis-viewer-test.txt')
    remove_temp_file('')


def test_save_edited_value_rejects_non_utf8(store, kv):
    kv.set('k', 'original')
    path = prepare_edit_file('k', 'original')
    with open(path, 'wb') as f:
        f.write(b'caf\xe9')

    with pytest.raises(EditorError, match='not valid UTF-8'):
        save_edited_value(store, 'k', path)

    assert kv.get('k') == 'original'
    assert not os.path.exists(path)
