from .base import Action, ActionState
from .fileops import ChecksumFile, CopyFile, DeleteFile, MoveFile

__all__ = ["Action", "ActionState", "ChecksumFile", "CopyFile", "DeleteFile", "MoveFile"]
