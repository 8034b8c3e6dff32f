import hashlib
import os

import pytest

from atomic_actions import build_registry
from atomic_actions.actions import ChecksumFile
from atomic_actions.actions.fileops import UNKNOWN_ALGORITHM_CODE
from atomic_actions.core.Exceptions import ValidationError


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "source.txt"
    path.write_bytes(b"some file contents")
    return path


@pytest.mark.asyncio
async def test_checksum_defaults_to_sha256(session, source):
    action = build_registry().create_action("file.checksum", session)
    action.input("file").value = str(source)
    assert await action.execute() == hashlib.sha256(b"some file contents").hexdigest()


@pytest.mark.asyncio
async def test_checksum_with_other_algorithm(session, source):
    action = build_registry().create_action("file.checksum", session)
    action.input("file").value = str(source)
    action.input("algo").value = "MD5"
    assert await action.execute() == hashlib.md5(b"some file contents").hexdigest()


@pytest.mark.asyncio
async def test_checksum_is_served_from_the_session_cache(session, source):
    registry = build_registry()
    first = registry.create_action("file.checksum", session)
    first.input("file").value = str(source)
    expected = await first.execute()

    source.write_bytes(b"changed")
    second = registry.create_action("file.checksum", session)
    second.input("file").value = str(source)
    assert ChecksumFile.is_cacheable
    assert await second.execute() == expected
    assert await second.execute(use_cache=False) == hashlib.sha256(b"changed").hexdigest()


@pytest.mark.asyncio
async def test_checksum_rejects_unknown_algorithms(source):
    action = build_registry().create_action("file.checksum")
    action.input("file").value = str(source)
    action.input("algo").value = "nope256"
    with pytest.raises(ValidationError) as info:
        await action.execute()
    assert info.value.code == UNKNOWN_ALGORITHM_CODE
    assert info.value.input_name == "algo"


@pytest.mark.asyncio
async def test_copy_creates_target_directories(source, tmp_path):
    target = tmp_path / "nested" / "deeper" / "copy.txt"
    action = build_registry().create_action("file.copy")
    action.input("source_file").value = str(source)
    action.input("target_file").value = str(target)
    assert await action.execute() is True
    assert target.read_bytes() == b"some file contents"
    assert source.exists()


@pytest.mark.asyncio
async def test_copy_without_directory_creation_fails(source, tmp_path):
    action = build_registry().create_action("file.copy")
    action.input("source_file").value = str(source)
    action.input("target_file").value = str(tmp_path / "missing" / "copy.txt")
    action.input("create_target_directories").value = False
    with pytest.raises(FileNotFoundError):
        await action.execute()


@pytest.mark.asyncio
async def test_move_removes_the_source(source, tmp_path):
    target = tmp_path / "moved.txt"
    action = build_registry().create_action("file.move")
    action.input("source_file").value = str(source)
    action.input("target_file").value = str(target)
    assert await action.execute() is True
    assert not source.exists()
    assert target.read_bytes() == b"some file contents"


@pytest.mark.asyncio
async def test_move_requires_an_existing_source(tmp_path):
    action = build_registry().create_action("file.move")
    action.input("source_file").value = str(tmp_path / "absent.txt")
    action.input("target_file").value = str(tmp_path / "moved.txt")
    with pytest.raises(ValidationError) as info:
        await action.execute()
    assert info.value.input_name == "source_file"


@pytest.mark.asyncio
async def test_delete_removes_the_file(source):
    action = build_registry().create_action("file.delete")
    action.input("file").value = str(source)
    assert await action.execute() is True
    assert not os.path.exists(source)
