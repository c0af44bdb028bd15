import hashlib
import re
from .events import EventEmitter

# SHA-1 十六进制长度
ID_LENGTH = 40

_ID_PATTERN = re.compile(r"^[0-9a-f]{40}$")


class HashUtils:
    """哈希计算工具类，负责播放列表ID的生成与校验"""

    @classmethod
    def hash_text(cls, text: str, hash_type: str = "sha1") -> str:
        """
        计算字符串的UTF-8哈希

        Args:
            text: 输入字符串
            hash_type: 哈希类型 (sha1, sha256)

        Returns:
            小写十六进制摘要，按摘要宽度补零
        """
        if hash_type == "sha1":
            hasher = hashlib.sha1()
        elif hash_type == "sha256":
            hasher = hashlib.sha256()
        else:
            raise ValueError(f"Unsupported hash type: {hash_type}")

        hasher.update(text.encode("utf-8"))
        return hasher.hexdigest()

    @classmethod
    def playlist_id(cls, owner: str, count: int) -> str:
        """
        生成新播放列表的ID

        ID 由 "<owner>-<当前播放列表数>" 的 SHA-1 摘要得到。它不是内容哈希，
        删除播放列表后计数回退或并发创建时可能与已有ID冲突，由调用方检测。

        Args:
            owner: 命名空间（所有者）
            count: 容器当前的播放列表数量

        Returns:
            40位小写十六进制ID
        """
        if count < 0:
            raise ValueError(f"count must be non-negative: {count}")
        oid = cls.hash_text(f"{owner}-{count}")
        EventEmitter.log("debug", f"Generated playlist id {oid} for {owner}-{count}")
        return oid

    @classmethod
    def is_playlist_id(cls, name: str) -> bool:
        """文件名是否符合播放列表ID格式"""
        return bool(_ID_PATTERN.match(name))
