import os
import tarfile
from pathlib import Path
from unittest import mock

import pytest

from boshutils.compressor import CompressorOptions, TarballCompressor
from boshutils.errors import BoshError


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


@pytest.fixture
def src_dir(tmp_path):
    root = tmp_path / "test_filtered_copy_to_temp"
    _write(root / "app.stdout.log", "this is app stdout")
    _write(root / "app.stderr.log", "this is app stderr")
    _write(root / "other_logs" / "other_app.stdout.log", "this is other app stdout")
    _write(root / "other_logs" / "other_app.stderr.log", "this is other app stderr")
    _write(root / "other_logs" / "more_logs" / "more.stdout.log", "this is more stdout")
    _write(
        root / "some_directory" / "sub_dir" / "other_sub_dir" / ".keep",
        "this is a .keep file",
    )
    return str(root)


@pytest.fixture
def compressor(tmp_path):
    base = tmp_path / "tmp"
    base.mkdir()
    return TarballCompressor(temp_dir=str(base))


@pytest.fixture
def dst_dir(tmp_path):
    path = tmp_path / "TestCompressor"
    path.mkdir()
    return str(path)


@pytest.fixture
def fixture_tgz(tmp_path):
    content = tmp_path / "archive-content"
    _write(content / "not-nested-file", "not-nested-file")
    _write(content / "dir" / "nested-file", "nested-file")
    _write(content / "dir" / "nested-dir" / "double-nested-file", "double-nested-file")
    (content / "dir" / "empty-nested-dir").mkdir()
    (content / "empty-dir").mkdir()
    path = tmp_path / "compressor-decompress-file-to-dir.tgz"
    with tarfile.open(path, "w:gz") as tar:
        for name in ("not-nested-file", "dir", "empty-dir"):
            tar.add(content / name, arcname=name)
    return str(path)


def test_compresses_all_files_in_dir(compressor, src_dir, dst_dir, tmp_path):
    target = tmp_path / "symlink_target"
    _write(target / "app.stdout.log", "linked")
    os.symlink(target, os.path.join(src_dir, "symlink_dir"))

    tgz = compressor.compress_files_in_dir(src_dir)

    with tarfile.open(tgz, "r:gz") as tar:
        names = tar.getnames()
        assert tar.getmember("./symlink_dir").issym()
    assert sorted(names) == sorted([
        ".",
        "./app.stderr.log",
        "./app.stdout.log",
        "./other_logs",
        "./some_directory",
        "./some_directory/sub_dir",
        "./some_directory/sub_dir/other_sub_dir",
        "./some_directory/sub_dir/other_sub_dir/.keep",
        "./symlink_dir",
        "./other_logs/more_logs",
        "./other_logs/other_app.stderr.log",
        "./other_logs/other_app.stdout.log",
        "./other_logs/more_logs/more.stdout.log",
    ])

    compressor.decompress_file_to_dir(tgz, dst_dir, CompressorOptions())
    assert "this is app stdout" in Path(dst_dir, "app.stdout.log").read_text()
    assert "this is app stderr" in Path(dst_dir, "app.stderr.log").read_text()
    assert "this is other app stdout" in Path(
        dst_dir, "other_logs", "other_app.stdout.log"
    ).read_text()


def test_compresses_specific_files_in_order(compressor, src_dir, dst_dir):
    tgz = compressor.compress_specific_files_in_dir(
        src_dir, ["app.stdout.log", "some_directory", "app.stderr.log"]
    )

    with tarfile.open(tgz, "r:gz") as tar:
        assert tar.getnames() == [
            "app.stdout.log",
            "some_directory",
            "some_directory/sub_dir",
            "some_directory/sub_dir/other_sub_dir",
            "some_directory/sub_dir/other_sub_dir/.keep",
            "app.stderr.log",
        ]

    compressor.decompress_file_to_dir(tgz, dst_dir, CompressorOptions())
    assert "this is app stdout" in Path(dst_dir, "app.stdout.log").read_text()
    assert "this is app stderr" in Path(dst_dir, "app.stderr.log").read_text()
    assert "this is a .keep file" in Path(
        dst_dir, "some_directory", "sub_dir", "other_sub_dir", ".keep"
    ).read_text()


def test_compressing_missing_file_fails(compressor, src_dir, tmp_path):
    with pytest.raises(BoshError, match="Creating tarball"):
        compressor.compress_specific_files_in_dir(src_dir, ["does-not-exist"])
    assert os.listdir(tmp_path / "tmp") == []


def test_decompresses_file_to_dir(compressor, fixture_tgz, dst_dir):
    compressor.decompress_file_to_dir(fixture_tgz, dst_dir, CompressorOptions())

    assert "not-nested-file" in Path(dst_dir, "not-nested-file").read_text()
    assert "nested-file" in Path(dst_dir, "dir", "nested-file").read_text()
    assert "double-nested-file" in Path(
        dst_dir, "dir", "nested-dir", "double-nested-file"
    ).read_text()
    assert os.path.isdir(os.path.join(dst_dir, "empty-dir"))
    assert os.path.isdir(os.path.join(dst_dir, "dir", "empty-nested-dir"))


def test_decompress_fails_when_destination_missing(compressor, fixture_tgz, tmp_path):
    missing = str(tmp_path / "missing-destination")

    with pytest.raises(BoshError) as info:
        compressor.decompress_file_to_dir(fixture_tgz, missing, CompressorOptions())
    assert missing in str(info.value)


def test_no_same_owner_does_not_change_ownership(compressor, fixture_tgz, dst_dir):
    with mock.patch("os.geteuid", return_value=0), mock.patch("os.chown") as chown:
        compressor.decompress_file_to_dir(fixture_tgz, dst_dir, CompressorOptions())
    assert chown.call_count == 0
    assert Path(dst_dir, "not-nested-file").exists()


def test_same_owner_restores_ownership(compressor, fixture_tgz, dst_dir):
    with mock.patch("os.geteuid", return_value=0), mock.patch("os.chown") as chown:
        compressor.decompress_file_to_dir(
            fixture_tgz, dst_dir, CompressorOptions(same_owner=True)
        )
    assert chown.call_count > 0
    chowned = {str(call.args[0]) for call in chown.call_args_list}
    assert os.path.join(dst_dir, "not-nested-file") in chowned
    assert Path(dst_dir, "not-nested-file").read_text() == "not-nested-file"


def test_path_in_archive_selects_files(compressor, fixture_tgz, dst_dir):
    compressor.decompress_file_to_dir(
        fixture_tgz, dst_dir, CompressorOptions(path_in_archive="dir")
    )

    assert Path(dst_dir, "dir", "nested-file").read_text() == "nested-file"
    assert not Path(dst_dir, "not-nested-file").exists()
    assert not Path(dst_dir, "empty-dir").exists()


def test_path_in_archive_not_found(compressor, fixture_tgz, dst_dir):
    with pytest.raises(BoshError, match="Not found in archive"):
        compressor.decompress_file_to_dir(
            fixture_tgz, dst_dir, CompressorOptions(path_in_archive="some/path/in/archive")
        )


def test_strip_components(compressor, fixture_tgz, dst_dir):
    compressor.decompress_file_to_dir(
        fixture_tgz, dst_dir, CompressorOptions(strip_components=1)
    )

    assert Path(dst_dir, "nested-file").read_text() == "nested-file"
    assert Path(dst_dir, "nested-dir", "double-nested-file").read_text() == "double-nested-file"
    assert os.path.isdir(os.path.join(dst_dir, "empty-nested-dir"))
    assert not Path(dst_dir, "not-nested-file").exists()


def test_clean_up_removes_tarball(compressor, tmp_path):
    tarball = tmp_path / "fake-tarball.tar"
    tarball.write_text("")

    compressor.clean_up(str(tarball))

    assert not tarball.exists()


def test_clean_up_raises_when_removal_fails(compressor, tmp_path):
    tarball = tmp_path / "fake-tarball.tar"
    tarball.write_text("")

    with mock.patch("os.remove", side_effect=OSError("fake-remove-all-err")):
        with pytest.raises(OSError, match="fake-remove-all-err"):
            compressor.clean_up(str(tarball))
    assert tarball.exists()