"""
播放列表命令逻辑

每个函数返回 (结果, 错误信息)，错误信息为None表示成功；渲染由 CLI 负责。
"""

from typing import List, Optional, Tuple
from .. import base62
from ..client import ClientPlaylistView
from ..container import PlaygistContainer
from ..events import EventEmitter
from ..exceptions import PlaygistError
from ..playlist import Playgist

# 通过ID前缀查找时的最短长度
MIN_PREFIX = 4


def resolve_playlist(
    container: PlaygistContainer, ref: str
) -> Tuple[Optional[Playgist], Optional[str]]:
    """按完整ID、ID前缀或名称查找播放列表"""
    playlist = container.get_by_id(ref)
    if playlist is not None:
        return playlist, None

    if len(ref) >= MIN_PREFIX:
        matches = [p for p in container if p.id.startswith(ref)]
        if len(matches) == 1:
            return matches[0], None
        if len(matches) > 1:
            return None, f"ID前缀不唯一: {ref}"

    by_name = container.find_by_name(ref)
    if len(by_name) == 1:
        return by_name[0], None
    if len(by_name) > 1:
        return None, f"存在多个同名播放列表: {ref}"
    return None, f"找不到播放列表: {ref}"


def list_logic(container: PlaygistContainer) -> Tuple[List[dict], Optional[str]]:
    """列出所有播放列表的摘要"""
    rows = [
        {
            "id": p.id,
            "name": p.name,
            "tracks": len(p),
            "collaborative": p.collaborative,
            "dirty": p.dirty,
        }
        for p in sorted(container, key=lambda p: (p.name or "", p.id))
    ]
    if not rows:
        return [], "没有播放列表"
    return rows, None


def show_logic(container: PlaygistContainer, ref: str) -> Tuple[Optional[dict], Optional[str]]:
    playlist, error = resolve_playlist(container, ref)
    if error:
        return None, error
    view = ClientPlaylistView(playlist)
    return {
        "id": playlist.id,
        "uri": view.id,
        "name": playlist.name,
        "author": view.author,
        "collaborative": playlist.collaborative,
        "dirty": playlist.dirty,
        "metadata": dict(playlist.metadata),
        "tracks": list(playlist.tracks),
        "track_uris": view.track_uris(),
    }, None


def create_logic(container: PlaygistContainer, name: str) -> Tuple[Optional[Playgist], Optional[str]]:
    if not name.strip():
        return None, "播放列表名称不能为空"
    try:
        return container.create(name), None
    except PlaygistError as e:
        EventEmitter.error(f"创建播放列表失败: {e.message}", e.details)
        return None, e.message


def rename_logic(container: PlaygistContainer, ref: str, name: str):
    playlist, error = resolve_playlist(container, ref)
    if error:
        return None, error
    return playlist.set_name(name), None


def add_tracks_logic(
    container: PlaygistContainer, ref: str, tracks: List[str], index: Optional[int] = None
):
    """
    添加曲目，spotify:track:<base62> 形式的URI会规范化为十六进制ID

    一次调用只产生一次提交。
    """
    playlist, error = resolve_playlist(container, ref)
    if error:
        return None, error
    try:
        normalized = [base62.normalize_track(t) for t in tracks]
    except ValueError as e:
        return None, str(e)
    if not normalized:
        return None, "没有指定曲目"

    if index is None:
        playlist.add_tracks(normalized)
    elif len(normalized) == 1:
        try:
            playlist.add_track(normalized[0], index)
        except IndexError as e:
            return None, str(e)
    else:
        current = list(playlist.tracks)
        if not 0 <= index <= len(current):
            return None, f"Track index out of range: {index}"
        playlist.set_tracks(current[:index] + normalized + current[index:])
    return playlist, None


def remove_tracks_logic(container: PlaygistContainer, ref: str, tracks: List[str]):
    playlist, error = resolve_playlist(container, ref)
    if error:
        return None, error
    try:
        normalized = [base62.normalize_track(t) for t in tracks]
    except ValueError as e:
        return None, str(e)
    missing = [t for t in normalized if t not in playlist.tracks]
    playlist.remove_tracks(normalized)
    if missing:
        return playlist, f"以下曲目不在播放列表中: {', '.join(missing)}"
    return playlist, None


def collab_logic(container: PlaygistContainer, ref: str, collaborative: bool):
    playlist, error = resolve_playlist(container, ref)
    if error:
        return None, error
    return playlist.set_collaborative(collaborative), None


def sort_logic(container: PlaygistContainer, ref: str):
    playlist, error = resolve_playlist(container, ref)
    if error:
        return None, error
    return playlist.sort_tracks(), None


def history_logic(container: PlaygistContainer, ref: str):
    playlist, error = resolve_playlist(container, ref)
    if error:
        return [], error
    return container.history(playlist), None


def push_logic(container: PlaygistContainer):
    """手动推送当前分支"""
    if not container.remote:
        return None, "未配置远程仓库 (remote.name)"
    result = container.git.push(container.remote, container.refspec, container.progress)
    if not result.success:
        return result, result.message
    return result, None
