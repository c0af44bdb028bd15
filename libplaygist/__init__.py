"""
Playgist核心库 - 基于Git对象存储的播放列表持久化
"""

from .events import EventEmitter
from .hash_utils import HashUtils
from .git import GitOperations, TreeEntry, CommitInfo, ZERO_OID
from .playlist import Playgist, PlaylistListener
from .container import PlaygistContainer
from .client import ClientPlaylistView, merge_playlists
from .progress import LoggingProgress, NoProgress
from .context import Context, create_context
from .exceptions import (
    PlaygistError,
    ParseError,
    CodecError,
    WriteError,
    GitError,
    CommitError,
    RefConflictError,
    IdentifierCollisionError,
    TransportError,
    ConfigurationError,
)
from .results import (
    Result,
    CommitResult,
    PushResult,
    PersistResult,
    RefUpdate,
)

__all__ = [
    "EventEmitter",
    "HashUtils",
    "GitOperations",
    "TreeEntry",
    "CommitInfo",
    "ZERO_OID",
    "Playgist",
    "PlaylistListener",
    "PlaygistContainer",
    "ClientPlaylistView",
    "merge_playlists",
    "LoggingProgress",
    "NoProgress",
    "Context",
    "create_context",
    "PlaygistError",
    "ParseError",
    "CodecError",
    "WriteError",
    "GitError",
    "CommitError",
    "RefConflictError",
    "IdentifierCollisionError",
    "TransportError",
    "ConfigurationError",
    "Result",
    "CommitResult",
    "PushResult",
    "PersistResult",
    "RefUpdate",
]
