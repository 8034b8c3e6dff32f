from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import shutil
from typing import Any, Mapping, Optional

from ..core.Exceptions import ValidationError
from ..inputs.base import Input
from .base import Action

logger = logging.getLogger(__name__)

__all__ = ["ChecksumFile", "CopyFile", "DeleteFile", "MoveFile"]

# Bytes read per step while hashing
CHECKSUM_CHUNK_SIZE = 64 * 1024

UNKNOWN_ALGORITHM_CODE = "6a0e1e0c-5f4b-4a1f-9c3e-2c1b7d0f8e41"


def _check_algorithm(input_obj: Input, at: Optional[int]) -> None:
    if input_obj.value_at(at).lower() not in hashlib.algorithms_available:
        raise ValidationError(
            f"Unknown hash algorithm: {input_obj.value_at(at)!r}",
            UNKNOWN_ALGORITHM_CODE,
        )


def _hash_file(path: str, algo: str) -> str:
    digest = hashlib.new(algo)
    with open(path, "rb") as stream:
        for chunk in iter(lambda: stream.read(CHECKSUM_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _copy_file(source: str, target: str, create_directories: bool) -> None:
    directory = os.path.dirname(target)
    if create_directories and directory:
        os.makedirs(directory, exist_ok=True)
    shutil.copyfile(source, target)


class ChecksumFile(Action):
    """Hex digest of the contents of ``file`` using ``algo`` (sha256 by default).

    Cacheable: within the session cache lifespan the same path and algorithm
    return the stored digest without reading the file again.
    """

    is_cacheable = True

    def declare_inputs(self) -> None:
        self.create_input("file: filepath", {"exists": True})
        self.create_input("algo: text", {"default_value": "sha256"}, _check_algorithm)

    async def _perform(self, data: Mapping[str, Any]) -> str:
        path, algo = data["file"], data["algo"].lower()
        loop = asyncio.get_running_loop()
        checksum = await loop.run_in_executor(None, _hash_file, path, algo)
        logger.debug(f"ChecksumFile {algo} of {path!r}: {checksum}")
        return checksum


class CopyFile(Action):
    """Copy ``source_file`` to ``target_file``.

    Missing parent directories of the target are created unless
    ``create_target_directories`` is false.
    """

    def declare_inputs(self) -> None:
        self.create_input("source_file: filepath", {"exists": True})
        self.create_input("target_file: filepath")
        self.create_input("create_target_directories: bool", {"default_value": True})

    async def _perform(self, data: Mapping[str, Any]) -> bool:
        source, target = data["source_file"], data["target_file"]
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, _copy_file, source, target, data["create_target_directories"])
        logger.debug(f"CopyFile copied {source!r} to {target!r}")
        return True


class MoveFile(Action):
    """Move (rename) ``source_file`` to ``target_file``."""

    def declare_inputs(self) -> None:
        self.create_input("source_file: filepath", {"exists": True})
        self.create_input("target_file: filepath")

    async def _perform(self, data: Mapping[str, Any]) -> bool:
        source, target = data["source_file"], data["target_file"]
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, shutil.move, source, target)
        logger.debug(f"MoveFile moved {source!r} to {target!r}")
        return True


class DeleteFile(Action):
    """Delete the file given by the ``file`` input (which must exist).

    Usually queued on ``session.wrapup`` to remove temporary files once a request is
    over. Two queued deletions of the same path collapse into one, since they share
    the same signature.
    """

    def declare_inputs(self) -> None:
        self.create_input("file: filepath", {"exists": True})

    async def _perform(self, data: Mapping[str, Any]) -> bool:
        path = data["file"]
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, lambda: os.unlink(path))
        logger.debug(f"DeleteFile removed {path!r}")
        return True
