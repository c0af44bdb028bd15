"""
结构化结果类定义
为提交、推送和持久化流程提供统一的结果对象
"""

from typing import Optional, Dict, List, NamedTuple
from .exceptions import PlaygistError


class Result:
    """基础结果类"""

    def __init__(self, success: bool, message: str, data: Optional[Dict] = None,
                 error: Optional[PlaygistError] = None):
        self.success = success
        self.message = message
        self.data = data or {}
        self.error = error

    def __repr__(self):
        return f"{type(self).__name__}(success={self.success}, message='{self.message}')"


class CommitResult(Result):
    """提交操作结果类"""

    def __init__(self, success: bool, message: str, data: Optional[Dict] = None,
                 error: Optional[PlaygistError] = None, oid: Optional[str] = None,
                 parent: Optional[str] = None, tree: Optional[str] = None,
                 ref: Optional[str] = None):
        super().__init__(success, message, data, error)
        self.oid = oid
        self.parent = parent
        self.tree = tree
        self.ref = ref


class RefUpdate(NamedTuple):
    """一次推送中单个引用的变化（对应 git push --porcelain 的一行）"""

    flag: str
    src: str
    dst: str
    summary: str

    @property
    def rejected(self) -> bool:
        return self.flag == "!"

    @property
    def up_to_date(self) -> bool:
        return self.flag == "="


class PushResult(Result):
    """推送操作结果类

    推送失败不会抛出异常，而是返回一个空结果（updates 为空），
    调用方需要检查 moved 而不是依赖异常。
    """

    def __init__(self, success: bool, message: str, data: Optional[Dict] = None,
                 error: Optional[PlaygistError] = None, remote: Optional[str] = None,
                 updates: Optional[List[RefUpdate]] = None):
        super().__init__(success, message, data, error)
        self.remote = remote
        self.updates = updates or []

    @classmethod
    def empty(cls, remote: Optional[str], message: str,
              error: Optional[PlaygistError] = None) -> "PushResult":
        """什么都没有发生的推送结果"""
        return cls(success=False, message=message, error=error, remote=remote)

    @property
    def moved(self) -> List[RefUpdate]:
        """实际移动了的远程引用"""
        return [u for u in self.updates if not u.rejected and not u.up_to_date]

    @property
    def is_empty(self) -> bool:
        return not self.moved


class PersistResult(Result):
    """写入流水线结果类，stage 表示流水线停止（或完成）的阶段"""

    def __init__(self, success: bool, message: str, data: Optional[Dict] = None,
                 error: Optional[PlaygistError] = None, stage: str = "success",
                 commit: Optional[CommitResult] = None,
                 push: Optional[PushResult] = None):
        super().__init__(success, message, data, error)
        self.stage = stage
        self.commit = commit
        self.push = push
