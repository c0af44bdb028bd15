"""
播放列表记录 - 一个播放列表文件在内存中的表示

记录本身不做任何 I/O：每个逻辑操作改变状态后通知唯一的监听器一次，
由监听器（容器）负责持久化。
"""

from pathlib import Path
from types import MappingProxyType
from typing import Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Protocol, Tuple

NAME_PROPERTY = "name"
COLLABORATIVE_PROPERTY = "collaborative"
AUTHOR_PROPERTY = "author"

URI_PREFIX = "playgist:playlist:"


class PlaylistListener(Protocol):
    """播放列表变化的监听器"""

    def playlist_changed(self, playlist: "Playgist") -> None:
        ...


class Playgist:
    """一个版本化的播放列表记录"""

    def __init__(
        self,
        playlist_id: str,
        path: Path,
        rel_path: str,
        tracks: Optional[Iterable[str]] = None,
        metadata: Optional[Dict[str, str]] = None,
    ):
        """
        Args:
            playlist_id: 记录ID（即文件名），创建后不可变
            path: 文件在工作目录中的绝对路径
            rel_path: 文件相对于仓库根目录的路径
            tracks: 初始曲目序列
            metadata: 初始元数据
        """
        self._id = playlist_id
        self._path = Path(path)
        self._rel_path = rel_path
        self._tracks: List[str] = list(tracks or [])
        self._metadata: Dict[str, str] = dict(metadata or {})
        self._listener: Optional[PlaylistListener] = None
        self.dirty = False

    def __repr__(self):
        return f"Playgist(id='{self._id}', name={self.name!r}, tracks={len(self._tracks)})"

    def __eq__(self, other):
        if not isinstance(other, Playgist):
            return NotImplemented
        return self._id == other._id

    def __hash__(self):
        return hash(self._id)

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._tracks))

    def __len__(self) -> int:
        return len(self._tracks)

    # 标识

    @property
    def id(self) -> str:
        return self._id

    @property
    def uri(self) -> str:
        return URI_PREFIX + self._id

    @property
    def path(self) -> Path:
        return self._path

    @property
    def rel_path(self) -> str:
        return self._rel_path

    # 监听器

    def set_listener(self, listener: Optional[PlaylistListener]) -> None:
        """注册唯一的变更监听器，传入None解除"""
        self._listener = listener

    @property
    def listener(self) -> Optional[PlaylistListener]:
        return self._listener

    def _notify(self) -> None:
        if self._listener is not None:
            self._listener.playlist_changed(self)

    # 元数据

    @property
    def name(self) -> Optional[str]:
        return self._metadata.get(NAME_PROPERTY)

    @property
    def author(self) -> Optional[str]:
        return self._metadata.get(AUTHOR_PROPERTY)

    @property
    def collaborative(self) -> bool:
        return self._metadata.get(COLLABORATIVE_PROPERTY, "").lower() == "true"

    @property
    def metadata(self) -> Mapping[str, str]:
        return MappingProxyType(self._metadata)

    def get_metadata(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._metadata.get(key, default)

    def set_name(self, name: str) -> "Playgist":
        if not isinstance(name, str):
            raise ValueError("New name must be a string")
        if self.name != name:
            self._metadata[NAME_PROPERTY] = name
            self._notify()
        return self

    def set_author(self, author: str) -> "Playgist":
        if not isinstance(author, str):
            raise ValueError("Author must be a string")
        if self.author != author:
            self._metadata[AUTHOR_PROPERTY] = author
            self._notify()
        return self

    def set_collaborative(self, collaborative: bool) -> "Playgist":
        collaborative = bool(collaborative)
        if self.collaborative != collaborative:
            self._metadata[COLLABORATIVE_PROPERTY] = "true" if collaborative else "false"
            self._notify()
        return self

    def set_metadata(self, key: str, value: str) -> "Playgist":
        """设置任意元数据；name 与 collaborative 走各自的设置方法"""
        if key == NAME_PROPERTY:
            return self.set_name(value)
        if key == COLLABORATIVE_PROPERTY:
            return self.set_collaborative(str(value).lower() == "true")
        if not key or not isinstance(key, str):
            raise ValueError("Metadata key must be a non-empty string")
        if not isinstance(value, str):
            raise ValueError("Metadata value must be a string")
        if self._metadata.get(key) != value:
            self._metadata[key] = value
            self._notify()
        return self

    # 曲目

    @property
    def tracks(self) -> Tuple[str, ...]:
        return tuple(self._tracks)

    def get_tracks(self) -> Tuple[str, ...]:
        """只读的曲目序列，修改必须通过变更方法"""
        return self.tracks

    def add_track(self, track: str, index: Optional[int] = None) -> "Playgist":
        """在末尾或 index 位置插入曲目"""
        if index is None:
            self._tracks.append(track)
        else:
            if not 0 <= index <= len(self._tracks):
                raise IndexError(f"Track index out of range: {index}")
            self._tracks.insert(index, track)
        self._notify()
        return self

    def add_tracks(self, tracks: Iterable[str]) -> "Playgist":
        """批量追加，无论数量多少都只通知一次"""
        self._tracks.extend(tracks)
        self._notify()
        return self

    def remove_track(self, track: str) -> "Playgist":
        """按值移除第一个匹配的曲目；不存在时什么都不做"""
        try:
            self._tracks.remove(track)
        except ValueError:
            return self
        self._notify()
        return self

    def remove_tracks(self, tracks: Iterable[str]) -> "Playgist":
        """对每个给定值移除第一个匹配的曲目，有变化时通知一次"""
        changed = False
        for track in tracks:
            try:
                self._tracks.remove(track)
                changed = True
            except ValueError:
                continue
        if changed:
            self._notify()
        return self

    def set_tracks(self, tracks: Iterable[str]) -> "Playgist":
        """替换全部曲目（清空后追加），与 add_tracks 一样总是通知一次"""
        tracks = list(tracks)
        self._tracks.clear()
        self._tracks.extend(tracks)
        self._notify()
        return self

    def sort_tracks(self, key: Optional[Callable[[str], object]] = None) -> "Playgist":
        """按曲目ID（或 key）稳定排序，顺序改变时通知一次"""
        ordered = sorted(self._tracks, key=key)
        if ordered != self._tracks:
            self._tracks[:] = ordered
            self._notify()
        return self
