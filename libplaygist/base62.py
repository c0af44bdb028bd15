"""
Base62 编解码

字母表为 0..9 a..z A..Z，即 '0' => 0, 'a' => 10, 'A' => 36, 'Z' => 61。
流媒体客户端的曲目 URI 使用 22 位 base62 编码的 128 位ID，播放列表文件中
保存的是等价的 32 位十六进制ID。
"""

import re

ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
BASE = len(ALPHABET)

TRACK_URI_PREFIX = "spotify:track:"
BASE62_ID_LENGTH = 22
HEX_ID_LENGTH = 32

_VALUES = {c: i for i, c in enumerate(ALPHABET)}
_HEX_ID = re.compile(r"^[0-9a-f]{32}$")


def encode(number: int) -> str:
    """把非负整数编码为 base62 字符串"""
    if number < 0:
        raise ValueError(f"Cannot encode negative number: {number}")
    if number == 0:
        return ALPHABET[0]

    digits = []
    while number:
        number, rem = divmod(number, BASE)
        digits.append(ALPHABET[rem])
    return "".join(reversed(digits))


def decode(text: str) -> int:
    """把 base62 字符串解码为整数"""
    if not text:
        raise ValueError("Cannot decode empty string")

    number = 0
    for char in text:
        try:
            number = number * BASE + _VALUES[char]
        except KeyError:
            raise ValueError(f"Invalid base62 character {char!r} in {text!r}")
    return number


def to_hex(base62_id: str) -> str:
    """22 位 base62 ID -> 32 位十六进制ID（左侧补零）"""
    return format(decode(base62_id), f"0{HEX_ID_LENGTH}x")


def from_hex(hex_id: str) -> str:
    """32 位十六进制ID -> 22 位 base62 ID（左侧补零）"""
    return encode(int(hex_id, 16)).rjust(BASE62_ID_LENGTH, ALPHABET[0])


def is_hex_id(track: str) -> bool:
    return bool(_HEX_ID.match(track))


def normalize_track(track: str) -> str:
    """把 spotify:track:<base62> 形式的URI规范化为十六进制ID，其他输入原样返回"""
    if track.startswith(TRACK_URI_PREFIX):
        return to_hex(track[len(TRACK_URI_PREFIX):])
    return track


def track_uri(track: str) -> str:
    """十六进制ID -> spotify:track:<base62>，无法识别的ID原样返回"""
    if is_hex_id(track):
        return TRACK_URI_PREFIX + from_hex(track)
    return track
