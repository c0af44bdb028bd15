"""
流媒体客户端适配

客户端只认识自己的播放列表抽象（稳定ID、名称、作者、曲目、协作标记），
这里把 Playgist 包装成该形状，并提供与客户端远程播放列表合并的函数。
"""

from typing import Iterable, List, Sequence, Tuple
from . import base62
from .playlist import Playgist

UNKNOWN_AUTHOR = "<Unknown author>"


class ClientPlaylistView:
    """把 Playgist 暴露给流媒体客户端的包装，所有修改都委托给记录本身"""

    def __init__(self, playlist: Playgist):
        self.playlist = playlist

    def __repr__(self):
        return f"ClientPlaylistView({self.id!r})"

    def __eq__(self, other):
        other_id = getattr(other, "id", None)
        if isinstance(other, Playgist):
            other_id = other.uri
        if not isinstance(other_id, str):
            return NotImplemented
        return self.id.lower() == other_id.lower()

    def __hash__(self):
        return hash(self.id.lower())

    def __iter__(self):
        return iter(self.tracks)

    @property
    def id(self) -> str:
        return self.playlist.uri

    @id.setter
    def id(self, value):
        raise NotImplementedError("Playlist identifiers are assigned by the container")

    @property
    def name(self):
        return self.playlist.name

    @name.setter
    def name(self, value: str):
        self.playlist.set_name(value)

    @property
    def author(self) -> str:
        return self.playlist.author or UNKNOWN_AUTHOR

    @author.setter
    def author(self, value: str):
        self.playlist.set_author(value)

    @property
    def collaborative(self) -> bool:
        return self.playlist.collaborative

    @collaborative.setter
    def collaborative(self, value: bool):
        self.playlist.set_collaborative(value)

    @property
    def tracks(self) -> Tuple[str, ...]:
        return self.playlist.tracks

    @tracks.setter
    def tracks(self, value: Iterable[str]):
        self.playlist.set_tracks(value)

    @property
    def has_tracks(self) -> bool:
        return len(self.playlist) > 0

    # 客户端协议要求的字段，Playgist 没有对应概念
    revision = 0
    checksum = 0

    def track_uris(self) -> List[str]:
        """客户端形式的曲目URI，无法识别的ID原样返回以便客户端重新解析"""
        return [base62.track_uri(track) for track in self.playlist.tracks]


def merge_playlists(playlists: Iterable[Playgist], external: Sequence) -> list:
    """
    把本地记录加在客户端提供的播放列表前面

    Returns:
        新列表；external 及其元素不会被修改
    """
    return [ClientPlaylistView(p) for p in playlists] + list(external)
