import errno
import shutil
from unittest import mock

import pytest

from boshutils.mover import FileMover


@pytest.fixture
def paths(tmp_path):
    old = tmp_path / "old_file"
    new = tmp_path / "new_file"
    old.write_text("some content")
    return old, new


def test_renames_the_file(paths):
    old, new = paths
    assert old.exists() and not new.exists()

    FileMover().move(str(old), str(new))

    assert not old.exists()
    assert new.read_text() == "some content"


def _cross_device():
    return mock.patch("os.rename", side_effect=OSError(errno.EXDEV, "Invalid cross-device link"))


def test_copies_and_removes_when_rename_crosses_devices(paths):
    old, new = paths

    with _cross_device(), mock.patch("shutil.copyfile", wraps=shutil.copyfile) as copy:
        FileMover().move(str(old), str(new))

    assert not old.exists()
    assert new.read_text() == "some content"
    assert copy.call_count == 1


def test_copy_failure_is_raised(paths):
    old, new = paths

    with _cross_device(), mock.patch("shutil.copyfile", side_effect=OSError("copying error")):
        with pytest.raises(OSError, match="copying error"):
            FileMover().move(str(old), str(new))

    assert old.exists()


def test_removal_failure_is_raised(paths):
    old, new = paths

    with _cross_device(), mock.patch("os.remove", side_effect=OSError("error removing")):
        with pytest.raises(OSError, match="error removing"):
            FileMover().move(str(old), str(new))

    assert new.read_text() == "some content"


def test_other_rename_failures_are_raised(paths):
    old, new = paths

    with mock.patch("os.rename", side_effect=OSError(errno.EACCES, "what's my name again?")):
        with pytest.raises(OSError, match="what's my name again"):
            FileMover().move(str(old), str(new))

    assert old.exists()
    assert not new.exists()