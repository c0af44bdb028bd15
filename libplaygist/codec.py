"""
播放列表文件编解码

文件为 UTF-8 行格式：以 "> " 开头的行是一条 `key = value` 属性（Java
properties 单行语法），其余非空行各是一个曲目ID，按文件顺序排列。
"""

from pathlib import Path
from typing import Dict, List, Optional, Tuple
from .exceptions import ParseError, CodecError
from .playlist import Playgist

METADATA_PREFIX = "> "

_WHITESPACE = " \t\f"
_SEPARATORS = "=:"
_SIMPLE_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
_ESCAPE_CHARS = {"\\": "\\\\", "\t": "\\t", "\n": "\\n", "\r": "\\r", "\f": "\\f"}


def _unescape_at(text: str, i: int, lineno: int) -> Tuple[str, int]:
    """解析 text[i] 处的反斜杠转义，返回 (字符, 下一个位置)"""
    if i + 1 >= len(text):
        # 行尾的续行符在单行中没有意义，丢弃
        return "", i + 1
    c = text[i + 1]
    if c == "u":
        digits = text[i + 2:i + 6]
        if len(digits) != 4 or any(d not in "0123456789abcdefABCDEF" for d in digits):
            raise ParseError(
                f"Malformed \\uXXXX escape on line {lineno}", {"line": lineno}
            )
        return chr(int(digits, 16)), i + 6
    return _SIMPLE_ESCAPES.get(c, c), i + 2


def parse_property(text: str, lineno: int = 0) -> Optional[Tuple[str, str]]:
    """
    解析一条属性

    Returns:
        (key, value)，空行或注释行返回None

    Raises:
        ParseError: 转义格式错误或键为空
    """
    text = text.lstrip(_WHITESPACE)
    if not text or text[0] in "#!":
        return None

    key = []
    i = 0
    while i < len(text):
        c = text[i]
        if c == "\\":
            char, i = _unescape_at(text, i, lineno)
            key.append(char)
            continue
        if c in _SEPARATORS or c in _WHITESPACE:
            break
        key.append(c)
        i += 1

    while i < len(text) and text[i] in _WHITESPACE:
        i += 1
    if i < len(text) and text[i] in _SEPARATORS:
        i += 1
    while i < len(text) and text[i] in _WHITESPACE:
        i += 1

    value = []
    while i < len(text):
        if text[i] == "\\":
            char, i = _unescape_at(text, i, lineno)
            value.append(char)
        else:
            value.append(text[i])
            i += 1

    if not key:
        raise ParseError(f"Empty metadata key on line {lineno}", {"line": lineno})
    return "".join(key), "".join(value)


def _escape(text: str, is_key: bool) -> str:
    out = []
    for i, c in enumerate(text):
        if c in _ESCAPE_CHARS:
            out.append(_ESCAPE_CHARS[c])
        elif c == " " and (is_key or i == 0):
            out.append("\\ ")
        elif is_key and c in "=:#!":
            out.append("\\" + c)
        else:
            out.append(c)
    return "".join(out)


def format_property(key: str, value: str) -> str:
    """格式化一条元数据行（不含换行符）"""
    if not key:
        raise CodecError("Metadata key must not be empty")
    return f"{METADATA_PREFIX}{_escape(key, True)} = {_escape(value, False)}"


def parse(data: bytes) -> Tuple[Dict[str, str], List[str]]:
    """
    解析播放列表文件内容

    Args:
        data: 文件字节内容

    Returns:
        (metadata, tracks)，重复的元数据键以最后一次为准

    Raises:
        ParseError: 不是合法的 UTF-8 或元数据行格式错误
    """
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(f"Playlist file is not valid UTF-8: {e.reason}",
                         {"position": e.start})

    metadata: Dict[str, str] = {}
    tracks: List[str] = []
    for lineno, line in enumerate(text.split("\n"), start=1):
        if line.endswith("\r"):
            line = line[:-1]
        if line.startswith(METADATA_PREFIX):
            prop = parse_property(line[len(METADATA_PREFIX):], lineno)
            if prop is not None:
                metadata[prop[0]] = prop[1]
        elif line.strip():
            tracks.append(line)
    return metadata, tracks


def _check_track(track: str) -> None:
    if not isinstance(track, str):
        raise CodecError(f"Track id must be a string: {track!r}")
    if not track.strip() or "\n" in track or "\r" in track:
        raise CodecError(f"Track id cannot be stored on one line: {track!r}")
    if track.startswith(METADATA_PREFIX):
        raise CodecError(f"Track id collides with metadata prefix: {track!r}")


def serialize(metadata: Dict[str, str], tracks: List[str]) -> bytes:
    """
    把元数据与曲目序列化为文件内容

    元数据行按键排序写在前面，随后每行一个曲目；所有行以换行结尾。

    Raises:
        CodecError: 曲目ID或元数据无法表示为单行
    """
    lines = []
    for key in sorted(metadata):
        value = metadata[key]
        if not isinstance(value, str):
            raise CodecError(f"Metadata value for {key!r} must be a string")
        lines.append(format_property(key, value))
    for track in tracks:
        _check_track(track)
        lines.append(track)
    return "".join(line + "\n" for line in lines).encode("utf-8")


def load_record(path: Path, rel_path: str, data: bytes) -> Playgist:
    """由文件内容构造记录，记录ID即文件名"""
    metadata, tracks = parse(data)
    return Playgist(Path(path).name, path, rel_path, tracks, metadata)


def dump_record(record: Playgist) -> bytes:
    """序列化一个播放列表记录"""
    return serialize(dict(record.metadata), list(record.tracks))
