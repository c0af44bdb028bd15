"""
自定义异常类定义
定义了Playgist系统中使用的各类具体异常
"""


class PlaygistError(Exception):
    """Playgist系统基础异常类"""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ParseError(PlaygistError):
    """播放列表文件解析失败异常"""

    pass


class CodecError(ParseError):
    """播放列表无法序列化为磁盘格式"""

    pass


class WriteError(PlaygistError):
    """播放列表文件写入失败异常"""

    pass


class GitError(PlaygistError):
    """Git命令执行失败异常"""

    pass


class CommitError(GitError):
    """提交（树构建、commit对象、引用更新）失败异常"""

    pass


class RefConflictError(CommitError):
    """引用在读取后被移动，比较并交换失败"""

    pass


class IdentifierCollisionError(PlaygistError):
    """新生成的播放列表ID已被占用"""

    pass


class TransportError(PlaygistError):
    """推送到远程仓库失败异常"""

    pass


class ConfigurationError(PlaygistError):
    """配置错误异常"""

    pass
