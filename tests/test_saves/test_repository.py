"""Tests for the filesystem save repository."""

import os

import pytest

from login_server.saves.repository import FilesystemSaveRepository, SaveStorageError


@pytest.mark.unit
def test_missing_save_reads_none(save_repo):
    assert save_repo.read("main", "alice") is None


@pytest.mark.unit
def test_write_creates_profile_directory(save_repo, saves_root):
    save_repo.write("main", "alice", b"\x20\x04payload")

    assert (saves_root / "main" / "alice.sav").read_bytes() == b"\x20\x04payload"
    assert save_repo.read("main", "alice") == b"\x20\x04payload"


@pytest.mark.unit
def test_write_replaces_previous_save_without_leftovers(save_repo, saves_root):
    save_repo.write("main", "alice", b"first")
    save_repo.write("main", "alice", b"second")

    assert save_repo.read("main", "alice") == b"second"
    assert os.listdir(saves_root / "main") == ["alice.sav"]


@pytest.mark.unit
@pytest.mark.parametrize(
    ("profile", "username"),
    [
        ("main", ""),
        ("", "alice"),
        ("..", "alice"),
        ("main", "../alice"),
        ("main/sub", "alice"),
        ("main", "a\\b"),
    ],
)
def test_unsafe_keys_are_rejected(save_repo, profile, username):
    with pytest.raises(SaveStorageError):
        save_repo.write(profile, username, b"data")
    with pytest.raises(SaveStorageError):
        save_repo.read(profile, username)


@pytest.mark.unit
def test_default_root_follows_config(saves_root):
    repo = FilesystemSaveRepository()

    assert repo.root == saves_root
    assert repo.path_for("main", "alice") == saves_root / "main" / "alice.sav"


@pytest.mark.unit
def test_write_failure_is_wrapped(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_bytes(b"")
    repo = FilesystemSaveRepository(blocker)

    with pytest.raises(SaveStorageError):
        repo.write("main", "alice", b"data")


@pytest.mark.unit
def test_valid_key_matches_path_rules(save_repo):
    assert save_repo.valid_key("main", "alice") is True
    assert save_repo.valid_key("main", "Alice_01") is True
    assert save_repo.valid_key("main", "a/b") is False
    assert save_repo.valid_key("..", "alice") is False
    assert save_repo.valid_key("main", "") is False
