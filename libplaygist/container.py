"""
播放列表容器 - 一个命名空间（所有者）下所有播放列表的索引与持久化

容器在打开时遍历头提交的树来发现已有记录，创建新记录，并作为所有记录的
监听器把每次修改写入文件、暂存、提交（以及可选地推送）。
"""

import os
import tempfile
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from . import codec
from .client import merge_playlists
from .events import EventEmitter
from .exceptions import (
    CodecError,
    GitError,
    IdentifierCollisionError,
    ParseError,
    WriteError,
)
from .git import CommitInfo, GitOperations
from .hash_utils import HashUtils
from .playlist import Playgist
from .progress import NoProgress
from .results import PersistResult


def atomic_write(content: bytes, target_path: Path):
    """原子性写入文件"""
    target_path.parent.mkdir(parents=True, exist_ok=True)
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=target_path.parent, prefix=".", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)
    try:
        with os.fdopen(temp_fd, "wb") as f:
            f.write(content)
        os.replace(temp_path, target_path)
    except BaseException:
        if temp_path.exists():
            temp_path.unlink()
        raise


class PlaygistContainer:
    """一个所有者的播放列表集合，负责发现、创建和写入"""

    def __init__(
        self,
        owner: str,
        git: GitOperations,
        remote: Optional[str] = None,
        refspec: Optional[str] = None,
        progress: Optional[NoProgress] = None,
    ):
        """
        Args:
            owner: 命名空间，对应仓库中的子目录
            git: 仓库适配器
            remote: 推送目标，None 表示只在本地提交
            refspec: 推送的引用规格，默认推送当前分支
            progress: 推送进度接收器
        """
        if not owner or "/" in owner:
            raise ValueError(f"Invalid owner: {owner!r}")
        self.owner = owner
        self.git = git
        self.remote = remote
        self.refspec = refspec
        self.progress = progress or NoProgress()
        self._playlists: Dict[str, Playgist] = {}

    @classmethod
    def open(cls, owner: str, git: GitOperations, **kwargs) -> "PlaygistContainer":
        """
        打开容器：遍历头提交中 <owner>/ 下的文件并解析为记录

        单个文件解析失败会被记录并跳过，不影响其余文件。
        """
        container = cls(owner, git, **kwargs)
        head = git.head()
        if head is None:
            EventEmitter.log("info", f"Repository has no commits, opening empty container for {owner}")
            return container

        entries = git.ls_files(head, prefix=f"{owner}/")
        EventEmitter.phase_start("open", total_items=len(entries))
        for entry in entries:
            # 只接受 <owner>/ 下的直接子文件
            playlist_id = entry.name[len(owner) + 1:]
            if entry.type != "blob" or not HashUtils.is_playlist_id(playlist_id):
                EventEmitter.log("debug", f"Skipping non-playlist entry {entry.name!r}")
                continue
            try:
                playlist = codec.load_record(
                    git.repo_root / entry.name, entry.name, git.read_blob(entry.oid)
                )
            except (ParseError, GitError) as e:
                EventEmitter.error(
                    f"Failed to open playlist {entry.name}: {e.message}",
                    {"path": entry.name, **e.details},
                )
                continue
            if playlist_id in container._playlists:
                EventEmitter.log("warn", f"Duplicate playlist id {playlist_id} at {entry.name}, skipped")
                continue
            container.add(playlist)
            EventEmitter.item_event(playlist_id, "opened", entry.name)

        EventEmitter.batch_progress("open", len(container), len(entries))
        EventEmitter.log("info", f"Opened {len(container)} playlists for {owner}")
        return container

    def __len__(self) -> int:
        return len(self._playlists)

    def __iter__(self) -> Iterator[Playgist]:
        return iter(list(self._playlists.values()))

    def __contains__(self, item) -> bool:
        if isinstance(item, Playgist):
            return item.id in self._playlists
        return item in self._playlists

    @property
    def owner_root(self) -> Path:
        return self.git.repo_root / self.owner

    @property
    def playlists(self) -> Tuple[Playgist, ...]:
        return tuple(self._playlists.values())

    def get_by_id(self, playlist_id: str) -> Optional[Playgist]:
        return self._playlists.get(playlist_id)

    def find_by_name(self, name: str) -> List[Playgist]:
        return [p for p in self._playlists.values() if p.name == name]

    def add(self, playlist: Playgist) -> "PlaygistContainer":
        """开始跟踪一个记录并成为它的监听器"""
        playlist.set_listener(self)
        self._playlists[playlist.id] = playlist
        return self

    def remove(self, playlist: Playgist) -> "PlaygistContainer":
        """停止跟踪一个记录，文件保留在仓库中"""
        if self._playlists.pop(playlist.id, None) is not None:
            playlist.set_listener(None)
            EventEmitter.item_event(playlist.id, "removed", "no longer tracked")
        return self

    def create(self, name: str) -> Playgist:
        """
        创建新的播放列表并立即提交

        Raises:
            IdentifierCollisionError: 生成的ID已被占用
            WriteError: 无法创建空文件或暂存
        """
        if not isinstance(name, str):
            raise ValueError("Playlist name must be a string")
        playlist_id = HashUtils.playlist_id(self.owner, len(self))
        path = self.owner_root / playlist_id
        rel_path = f"{self.owner}/{playlist_id}"

        if playlist_id in self._playlists or path.exists():
            raise IdentifierCollisionError(
                f"Playlist id {playlist_id} already exists",
                {"owner": self.owner, "id": playlist_id, "count": len(self)},
            )

        EventEmitter.log("info", f"Attempting to create {rel_path}")
        created = False
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "xb"):
                created = True
            self.git.stage(path)
            playlist = codec.load_record(path, rel_path, path.read_bytes())
        except (OSError, GitError) as e:
            if created:
                self._discard_new_file(path, rel_path)
            raise WriteError(f"Failed to create playlist file {rel_path}: {e}",
                             {"path": rel_path})

        playlist.set_name(name)
        self._persist(playlist, f"added playlist: {name}")
        self.add(playlist)
        EventEmitter.item_event(playlist_id, "created", name)
        return playlist

    def _discard_new_file(self, path: Path, rel_path: str) -> None:
        """撤销失败的创建：删除空文件及其暂存区条目，使同一ID可以再次使用"""
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            EventEmitter.log("warn", f"Failed to remove {rel_path}: {e}")
        try:
            self.git.unstage(path)
        except GitError as e:
            EventEmitter.log("warn", f"Failed to unstage {rel_path}: {e.message}")

    def playlist_changed(self, playlist: Playgist) -> None:
        """记录变化时的回调：执行一次写入流水线"""
        self._persist(playlist, f"updated playlist: {playlist.name or playlist.id}")

    def _persist(self, playlist: Playgist, message: str) -> PersistResult:
        """
        序列化 -> 写文件 -> 暂存 -> 提交 -> （推送）

        任一步失败都把记录标记为 dirty 并停止，内存状态不回滚；
        推送失败只记录日志。
        """
        context = {"id": playlist.id, "path": playlist.rel_path, "message": message}

        try:
            content = codec.dump_record(playlist)
        except CodecError as e:
            return self._fail(playlist, "serialize", e, context)

        try:
            EventEmitter.log("debug", f"Writing file {playlist.rel_path}")
            atomic_write(content, playlist.path)
        except OSError as e:
            return self._fail(playlist, "write", WriteError(str(e), context), context)

        try:
            self.git.stage(playlist.path)
            commit = self.git.commit(message, [playlist.path])
        except GitError as e:
            return self._fail(playlist, "commit", e, context)

        push = None
        if self.remote:
            push = self.git.push(self.remote, self.refspec, self.progress)
            if push.is_empty:
                EventEmitter.log("warn", f"Push to {self.remote} moved nothing: {push.message}")

        playlist.dirty = False
        return PersistResult(True, message, stage="success", commit=commit, push=push)

    @staticmethod
    def _fail(playlist: Playgist, stage: str, error, context) -> PersistResult:
        playlist.dirty = True
        EventEmitter.error(
            f"Failed to persist playlist {playlist.id} at {stage}: {error.message}",
            {**context, "stage": stage, **error.details},
        )
        return PersistResult(False, error.message, error=error, stage=stage)

    def history(self, playlist: Playgist) -> List[CommitInfo]:
        """涉及该记录文件的提交，按时间倒序"""
        return self.git.log(path=playlist.rel_path)

    def merge_into(self, external: Sequence) -> list:
        """把本容器的记录加在客户端播放列表之前"""
        return merge_playlists(self._playlists.values(), external)
