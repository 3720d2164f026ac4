from __future__ import annotations

import gzip
import io
import logging
import os
import stat

import pytest

from kafka_harness import unpacker as runtime_unpacker
from kafka_harness.errors import (
    EntryIOError,
    MaterializeError,
    PermissionApplyError,
    StreamOpenError,
    UnpackError,
    UnsafeEntryPathError,
)
from kafka_harness.posix_permissions import PosixPermission, to_permission_set
from kafka_harness.unpacker import TarUnpacker, unpack
from tar_helpers import directory, fifo, regular_file, symlink, tar_bytes

posix_only = pytest.mark.skipif(os.name != "posix", reason="requires POSIX permission bits")


def _mode(path):
    return stat.S_IMODE(path.stat().st_mode)


@posix_only
def test_end_to_end_compressed_distribution(make_archive, tmp_path):
    archive = make_archive(
        [
            directory("bin"),
            regular_file("bin/run.sh", "#!/bin/sh\necho hi\n", mode=0o755),
            regular_file("config/app.conf", "k=v\n", mode=0o644),
        ]
    )
    out = tmp_path / "out"

    assert TarUnpacker().unpack(archive, out, True) is True

    run_sh = out / "bin" / "run.sh"
    app_conf = out / "config" / "app.conf"
    assert run_sh.read_bytes() == b"#!/bin/sh\necho hi\n"
    assert app_conf.read_bytes() == b"k=v\n"
    assert _mode(run_sh) == 0o755
    assert _mode(app_conf) == 0o644
    assert to_permission_set(_mode(run_sh)) == {
        PosixPermission.OWNER_READ,
        PosixPermission.OWNER_WRITE,
        PosixPermission.OWNER_EXECUTE,
        PosixPermission.GROUP_READ,
        PosixPermission.GROUP_EXECUTE,
        PosixPermission.OTHERS_READ,
        PosixPermission.OTHERS_EXECUTE,
    }
    assert not to_permission_set(_mode(app_conf)) & {
        PosixPermission.OWNER_EXECUTE,
        PosixPermission.GROUP_EXECUTE,
        PosixPermission.OTHERS_EXECUTE,
    }


def test_uncompressed_archive(make_archive, tmp_path):
    archive = make_archive([regular_file("plain.txt", "plain")], compressed=False)

    assert unpack(archive, tmp_path / "out", False) is True
    assert (tmp_path / "out" / "plain.txt").read_text() == "plain"


def test_content_fidelity_for_entries_larger_than_buffer(make_archive, tmp_path):
    payload = bytes(range(256)) * 200 + b"tail"
    archive = make_archive([regular_file("data/blob.bin", payload)])

    TarUnpacker().unpack(archive, tmp_path / "out", True)

    written = tmp_path / "out" / "data" / "blob.bin"
    assert written.stat().st_size == len(payload)
    assert written.read_bytes() == payload


def test_empty_file_entry(make_archive, tmp_path):
    archive = make_archive([regular_file("empty", b"")])

    TarUnpacker().unpack(archive, tmp_path / "out", True)

    assert (tmp_path / "out" / "empty").read_bytes() == b""


def test_implicit_parent_creation(make_archive, tmp_path):
    archive = make_archive([regular_file("a/b/c.txt", "c")])

    TarUnpacker().unpack(archive, tmp_path / "out", True)

    assert (tmp_path / "out" / "a").is_dir()
    assert (tmp_path / "out" / "a" / "b").is_dir()
    assert (tmp_path / "out" / "a" / "b" / "c.txt").read_text() == "c"


def test_directory_entries_are_idempotent(make_archive, tmp_path):
    archive = make_archive([directory("data"), directory("data"), regular_file("data/x", "x")])
    out = tmp_path / "out"

    TarUnpacker().unpack(archive, out, True)
    TarUnpacker().unpack(archive, out, True)

    assert [p.name for p in out.iterdir()] == ["data"]
    assert (out / "data").is_dir()


def test_unsupported_kinds_are_skipped(make_archive, tmp_path):
    archive = make_archive(
        [
            regular_file("bin/run.sh", "run", mode=0o755),
            symlink("bin/latest", "run.sh"),
            fifo("bin/pipe"),
        ]
    )
    out = tmp_path / "out"

    assert TarUnpacker().unpack(archive, out, True) is True

    assert (out / "bin" / "run.sh").is_file()
    assert not os.path.lexists(out / "bin" / "latest")
    assert not os.path.lexists(out / "bin" / "pipe")


@posix_only
def test_reextracting_over_read_only_files(make_archive, tmp_path):
    out = tmp_path / "out"
    first = make_archive([regular_file("ro.txt", "first", mode=0o444)])
    second = make_archive([regular_file("ro.txt", "second", mode=0o444)])

    TarUnpacker().unpack(first, out, True)
    TarUnpacker().unpack(second, out, True)

    assert (out / "ro.txt").read_text() == "second"
    assert _mode(out / "ro.txt") == 0o444


@posix_only
def test_existing_symlink_is_replaced_not_followed(make_archive, tmp_path):
    out = tmp_path / "out"
    out.mkdir()
    victim = tmp_path / "victim.txt"
    victim.write_text("untouched")
    os.symlink(victim, out / "file.txt")
    archive = make_archive([regular_file("file.txt", "from archive")])

    TarUnpacker().unpack(archive, out, True)

    assert victim.read_text() == "untouched"
    assert not (out / "file.txt").is_symlink()
    assert (out / "file.txt").read_text() == "from archive"


@posix_only
def test_directory_mode_is_not_applied(make_archive, tmp_path, monkeypatch):
    chmod_calls = []
    monkeypatch.setattr(runtime_unpacker.os, "chmod", lambda path, mode: chmod_calls.append((path, mode)))
    archive = make_archive([directory("locked", mode=0o500), regular_file("locked/f", "f", mode=0o600)])

    TarUnpacker().unpack(archive, tmp_path / "out", True)

    assert [(os.path.basename(p), m) for p, m in chmod_calls] == [("f", 0o600)]


def test_permissions_skipped_without_posix(make_archive, tmp_path, monkeypatch):
    def fail_chmod(*_args, **_kwargs):
        raise AssertionError("chmod must not be called")

    monkeypatch.setattr(runtime_unpacker, "supports_posix_permissions", lambda: False)
    monkeypatch.setattr(runtime_unpacker.os, "chmod", fail_chmod)
    archive = make_archive([regular_file("run.sh", "x", mode=0o755)])

    assert TarUnpacker().unpack(archive, tmp_path / "out", True) is True
    assert (tmp_path / "out" / "run.sh").read_text() == "x"


def test_permission_failure_is_fatal(make_archive, tmp_path, monkeypatch):
    def deny(*_args, **_kwargs):
        raise PermissionError("operation not permitted")

    monkeypatch.setattr(runtime_unpacker, "supports_posix_permissions", lambda: True)
    monkeypatch.setattr(runtime_unpacker.os, "chmod", deny)
    archive = make_archive([regular_file("run.sh", "x", mode=0o755)])

    with pytest.raises(PermissionApplyError) as excinfo:
        TarUnpacker().unpack(archive, tmp_path / "out", True)

    assert excinfo.value.archive == str(archive)
    assert excinfo.value.destination.endswith("run.sh")
    assert isinstance(excinfo.value.__cause__, PermissionError)


@pytest.mark.parametrize("name", ["../evil.txt", "nested/../../evil.txt", "/tmp/evil.txt"])
def test_path_traversal_is_rejected(make_archive, tmp_path, name):
    archive = make_archive([regular_file(name, "evil")])
    out = tmp_path / "out"

    with pytest.raises(UnsafeEntryPathError):
        TarUnpacker().unpack(archive, out, True)

    assert not (tmp_path / "evil.txt").exists()


def test_missing_archive_raises_stream_open_error(tmp_path):
    missing = tmp_path / "missing.tar.gz"

    with pytest.raises(StreamOpenError) as excinfo:
        TarUnpacker().unpack(missing, tmp_path / "out", True)

    assert excinfo.value.archive == str(missing)
    assert not (tmp_path / "out").exists()


@pytest.mark.parametrize(
    "data, compressed",
    [(b"definitely not gzip", True), (b"", False)],
)
def test_invalid_stream_raises_stream_open_error(tmp_path, data, compressed):
    with pytest.raises(StreamOpenError):
        TarUnpacker().unpack_stream(io.BytesIO(data), tmp_path / "out", compressed)

    assert not (tmp_path / "out").exists()


def _gzip_prefix(raw, length):
    """Gzip ``raw[:length]`` with a sync flush and no end-of-stream trailer."""
    buffer = io.BytesIO()
    gz = gzip.GzipFile(fileobj=buffer, mode="wb")
    gz.write(raw[:length])
    gz.flush()
    cut = buffer.getvalue()
    gz.close()
    return cut


def test_gzip_cut_inside_header_raises_entry_io_error(tmp_path):
    raw = tar_bytes(
        [
            regular_file("lib/a.jar", b"j" * 4096),
            regular_file("bin/kafka-server-start.sh", "#!/bin/sh\n", mode=0o755),
        ]
    )
    # First member: one header block and 4096 bytes; cut 200 bytes into the second header.
    cut = _gzip_prefix(raw, 512 + 4096 + 200)
    out = tmp_path / "out"

    with pytest.raises(EntryIOError):
        TarUnpacker().unpack_stream(io.BytesIO(cut), out, True, archive_name="cut.tgz")

    assert not (out / "bin" / "kafka-server-start.sh").exists()


def test_truncated_entry_raises_and_removes_partial_file(tmp_path):
    data = tar_bytes([regular_file("ok.txt", "ok"), regular_file("big.bin", b"x" * 5000)])
    # Keep ok.txt (header + one block), big.bin's header and part of its content.
    truncated = data[: 512 * 3 + 1000]
    out = tmp_path / "out"

    with pytest.raises(EntryIOError) as excinfo:
        TarUnpacker().unpack_stream(io.BytesIO(truncated), out, False, archive_name="cut.tar")

    assert excinfo.value.archive == "cut.tar"
    assert (out / "ok.txt").read_text() == "ok"
    assert not (out / "big.bin").exists()


def test_directory_blocked_by_file_raises_materialize_error(make_archive, tmp_path):
    out = tmp_path / "out"
    out.mkdir()
    (out / "bin").write_text("not a directory")
    archive = make_archive([directory("bin")])

    with pytest.raises(MaterializeError) as excinfo:
        TarUnpacker().unpack(archive, out, True)

    assert excinfo.value.destination.endswith("bin")


def test_unpack_stream_leaves_source_open(tmp_path):
    source = io.BytesIO(tar_bytes([regular_file("f.txt", "f")], compressed=True))

    assert TarUnpacker().unpack_stream(source, tmp_path / "out", True) is True
    assert not source.closed


def test_errors_share_unpack_error_base(tmp_path):
    with pytest.raises(UnpackError, match="missing.tar"):
        TarUnpacker().unpack(tmp_path / "missing.tar", tmp_path / "out", False)


def test_entries_are_logged_at_debug(make_archive, tmp_path, caplog):
    archive = make_archive([regular_file("bin/run.sh", "x", mode=0o755), symlink("bin/l", "run.sh")])
    caplog.set_level(logging.DEBUG, logger="kafka_harness")

    TarUnpacker().unpack(archive, tmp_path / "out", True)

    assert "Extracted bin/run.sh (1 bytes, rwxr-xr-x)" in caplog.text
    assert "Skipping unsupported symlink entry bin/l" in caplog.text
