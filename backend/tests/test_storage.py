import io
import re
from datetime import datetime, timezone
import pytest
from bookflow.exceptions import UploadFailure
from bookflow.storage.local_provider import LocalStorageProvider
from bookflow.storage.provider import destination_for, safe_basename


def test_destination_layout():
    now = datetime(2024, 6, 1, tzinfo=timezone.utc)
    ms = int(now.timestamp() * 1000)
    key = destination_for('ord-1', 'My Cover.PNG', now)
    assert re.fullmatch(rf'public/ord-1/{ms}-[0-9a-f]{{8}}-My_Cover\.PNG', key)
    assert re.fullmatch(rf'public/ord-1/{ms}-[0-9a-f]{{8}}-file', destination_for('ord-1', '../../', now))


def test_destination_is_unique_for_same_name_and_time():
    now = datetime(2024, 6, 1, tzinfo=timezone.utc)
    assert destination_for('o1', 'image.jpg', now) != destination_for('o1', 'image.jpg', now)
    assert destination_for('o1', 'غلاف', now) != destination_for('o1', 'الكتاب', now)


@pytest.mark.parametrize('name,expected', [
    ('الكتاب.pdf', 'file.pdf'),
    ('غلاف', 'file'),
    ('photo 1.JPG', 'photo_1.JPG'),
])
def test_safe_basename_keeps_extension(name, expected):
    assert safe_basename(name) == expected


def test_upload_exists_delete(tmp_path):
    storage = LocalStorageProvider(str(tmp_path), '/files/')
    stored = storage.upload(io.BytesIO(b'hello'), 'public/o1/1-a.txt', 'a.txt')
    assert stored.url == '/files/public/o1/1-a.txt'
    assert stored.path == 'public/o1/1-a.txt'
    assert storage.exists('public/o1/1-a.txt')
    assert (tmp_path / 'public' / 'o1' / '1-a.txt').read_bytes() == b'hello'
    storage.delete(['public/o1/1-a.txt', 'public/o1/never-existed.txt'])
    assert not storage.exists('public/o1/1-a.txt')


def test_keys_cannot_escape_base_dir(tmp_path):
    storage = LocalStorageProvider(str(tmp_path / 'root'))
    assert storage.resolve('../../etc/passwd') == tmp_path / 'root' / 'etc' / 'passwd'
    with pytest.raises(UploadFailure):
        storage.resolve('../..')


def test_unwritable_destination_is_upload_failure(tmp_path):
    blocker = tmp_path / 'public'
    blocker.write_text('not a directory')
    storage = LocalStorageProvider(str(tmp_path))
    with pytest.raises(UploadFailure) as exc:
        storage.upload(io.BytesIO(b'x'), 'public/o1/a.txt', 'a.txt')
    assert exc.value.details['path'] == 'public/o1/a.txt'
