"""Shared fixtures for the backup tests."""

import io
import tarfile

import pytest


@pytest.fixture
def source_tree(tmp_path):
    """Directory with ``a.txt`` = hello and ``sub/b.txt`` = world."""
    root = tmp_path / "source"
    (root / "sub").mkdir(parents=True)
    (root / "a.txt").write_text("hello")
    (root / "sub" / "b.txt").write_text("world")
    return root


def read_archive(data: bytes) -> dict:
    """Return ``{member name: content}`` for a .tar.gz byte string."""
    contents = {}
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
        for member in tar.getmembers():
            contents[member.name] = tar.extractfile(member).read().decode()
    return contents


def archive_names(data: bytes) -> list:
    """Member names of a .tar.gz byte string, in archive order."""
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
        return tar.getnames()
