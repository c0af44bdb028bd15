"""
Git操作库 - 基于底层命令（plumbing）的最小对象存储适配器

只实现持久化播放列表文件所需的部分：写 blob、更新暂存区、构建树、
创建提交、带比较并交换的引用更新以及推送。
"""

import os
import re
import subprocess
from pathlib import Path
from typing import Optional, List, Dict, NamedTuple, Tuple, Union
from .events import EventEmitter
from .exceptions import CommitError, GitError, RefConflictError, TransportError
from .progress import NoProgress
from .results import CommitResult, PushResult, RefUpdate

ZERO_OID = "0" * 40

BLOB_MODE = "100644"
TREE_MODE = "040000"


def decode_path(raw: bytes) -> str:
    """git 路径字节 -> str，无法解码的字节以代理字符保留"""
    return raw.decode("utf-8", errors="surrogateescape")


def encode_path(name: str) -> bytes:
    return name.encode("utf-8", errors="surrogateescape")


class TreeEntry(NamedTuple):
    """ls-tree 输出中的一项"""

    mode: str
    type: str
    oid: str
    name: str


class CommitInfo(NamedTuple):
    oid: str
    subject: str


class GitOperations:
    """Git操作封装类，包装一个本地仓库"""

    def __init__(
        self,
        repo_root: Path,
        author_name: str = "playgist",
        author_email: str = "playgist@localhost",
        max_retries: int = 3,
    ):
        """
        初始化Git操作

        Args:
            repo_root: Git仓库工作目录
            author_name: 提交作者名称
            author_email: 提交作者邮箱
            max_retries: 引用比较并交换失败时重新构建提交的次数
        """
        self.repo_root = Path(repo_root).absolute()
        self.author_name = author_name
        self.author_email = author_email
        self.max_retries = max(0, int(max_retries))

    @classmethod
    def from_context(cls, context: "Context") -> "GitOperations":
        """根据上下文配置创建"""
        commit_config = context.commit_config
        return cls(
            context.repo_root,
            author_name=commit_config.get("author_name", "playgist"),
            author_email=commit_config.get("author_email", "playgist@localhost"),
            max_retries=int(commit_config.get("max_retries", 3)),
        )

    def _env(self) -> Dict[str, str]:
        env = os.environ.copy()
        env["GIT_AUTHOR_NAME"] = env["GIT_COMMITTER_NAME"] = self.author_name
        env["GIT_AUTHOR_EMAIL"] = env["GIT_COMMITTER_EMAIL"] = self.author_email
        env["GIT_TERMINAL_PROMPT"] = "0"
        return env

    def _run_git(
        self,
        args: List[str],
        check: bool = True,
        input: Union[str, bytes, None] = None,
        binary: bool = False,
    ) -> subprocess.CompletedProcess:
        """
        运行Git命令

        Args:
            args: Git命令参数列表
            check: 是否检查返回码
            input: 写入标准输入的内容
            binary: 是否以字节方式读写

        Returns:
            subprocess.CompletedProcess对象

        Raises:
            GitError: 命令失败（check=True时）或git不可用
        """
        text_args = {} if binary else {"text": True, "encoding": "utf-8"}
        try:
            return subprocess.run(
                ["git"] + args,
                cwd=self.repo_root,
                check=check,
                capture_output=True,
                input=input,
                env=self._env(),
                **text_args,
            )
        except subprocess.CalledProcessError as e:
            stderr = e.stderr
            if isinstance(stderr, bytes):
                stderr = stderr.decode("utf-8", errors="replace")
            EventEmitter.log("debug", f"Git命令失败: git {' '.join(args)}")
            raise GitError(
                f"Git命令失败: git {args[0]}",
                {"args": args, "returncode": e.returncode, "stderr": (stderr or "").strip()},
            )
        except FileNotFoundError as e:
            raise GitError(f"无法运行git: {e}", {"args": args})

    # 仓库

    def init(self, bare: bool = False) -> None:
        """在 repo_root 初始化仓库（已存在时无副作用）"""
        self.repo_root.mkdir(parents=True, exist_ok=True)
        args = ["init", "-q"]
        if bare:
            args.append("--bare")
        self._run_git(args)
        EventEmitter.log("info", f"Initialized repository at {self.repo_root}")

    def is_repository(self) -> bool:
        """repo_root 是否为一个工作目录的根"""
        if not self.repo_root.is_dir():
            return False
        try:
            result = self._run_git(["rev-parse", "--show-toplevel"], check=False)
        except GitError:
            return False
        if result.returncode != 0:
            return False
        return Path(result.stdout.strip()).resolve() == self.repo_root.resolve()

    def add_remote(self, name: str, url: str) -> None:
        self._run_git(["remote", "add", name, url])

    def remotes(self) -> List[str]:
        result = self._run_git(["remote"])
        return [line for line in result.stdout.splitlines() if line.strip()]

    def relative_path(self, path: Union[str, Path]) -> str:
        """
        计算文件相对于仓库根目录的路径

        Returns:
            posix 风格的相对路径

        Raises:
            ValueError: 路径不在仓库内
        """
        path = Path(path)
        if not path.is_absolute():
            path = self.repo_root / path
        try:
            rel = path.resolve().relative_to(self.repo_root.resolve())
        except ValueError:
            raise ValueError(f"'{path}' is outside repository {self.repo_root}")
        if not rel.parts or rel.parts[0] == ".git":
            raise ValueError(f"'{path}' is not a file path inside the working tree")
        return rel.as_posix()

    # 引用

    def head_ref(self) -> str:
        """HEAD 指向的引用名（分支尚未出生时同样有效），分离HEAD时返回 'HEAD'"""
        result = self._run_git(["symbolic-ref", "-q", "HEAD"], check=False)
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip()
        return "HEAD"

    def resolve(self, rev: str) -> Optional[str]:
        """解析修订号为对象ID，不存在返回None"""
        result = self._run_git(["rev-parse", "-q", "--verify", rev], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def head(self) -> Optional[str]:
        """当前头提交，空仓库返回None"""
        return self.resolve(self.head_ref())

    def update_ref(
        self, ref: str, new: str, expected_old: Optional[str], message: str = ""
    ) -> None:
        """
        原子地把引用从 expected_old 移动到 new

        Raises:
            RefConflictError: 引用已不是 expected_old
        """
        args = ["update-ref"]
        if message:
            args += ["-m", message]
        args += [ref, new, expected_old or ZERO_OID]
        try:
            self._run_git(args)
        except GitError as e:
            current = self.resolve(ref)
            raise RefConflictError(
                f"Reference {ref} moved: expected {expected_old}, found {current}",
                {"ref": ref, "expected": expected_old, "current": current,
                 "stderr": e.details.get("stderr", "")},
            )

    # 对象

    def hash_object(self, path: Union[str, Path, None] = None,
                    data: Optional[bytes] = None) -> str:
        """写入 blob 对象并返回其ID（path 与 data 二选一）"""
        if (path is None) == (data is None):
            raise ValueError("Exactly one of path or data is required")
        if data is not None:
            result = self._run_git(["hash-object", "-w", "--stdin"], input=data, binary=True)
            return result.stdout.decode("ascii").strip()
        rel = self.relative_path(path)
        result = self._run_git(["hash-object", "-w", "--", rel])
        return result.stdout.strip()

    def read_blob(self, oid: str) -> bytes:
        return self._run_git(["cat-file", "blob", oid], binary=True).stdout

    def ls_tree(self, tree: str) -> List[TreeEntry]:
        """列出树对象的直接子项"""
        result = self._run_git(["ls-tree", "-z", tree], binary=True)
        return self._parse_tree_entries(result.stdout)

    def ls_files(self, tree: str, prefix: Optional[str] = None) -> List[TreeEntry]:
        """递归列出树中的所有文件，name 为完整的相对路径"""
        args = ["ls-tree", "-r", "-z", tree]
        if prefix:
            args += ["--", prefix]
        result = self._run_git(args, binary=True)
        return self._parse_tree_entries(result.stdout)

    @staticmethod
    def _parse_tree_entries(output: bytes) -> List[TreeEntry]:
        """解析 ls-tree -z 输出，文件名逐项解码，非 UTF-8 字节保留为代理字符"""
        entries = []
        for record in output.split(b"\0"):
            if not record:
                continue
            meta, _, name = record.partition(b"\t")
            mode, obj_type, oid = meta.decode("ascii").split(" ")
            entries.append(TreeEntry(mode, obj_type, oid, decode_path(name)))
        return entries

    def mktree(self, entries: List[TreeEntry]) -> str:
        """根据子项写入树对象"""
        data = b"".join(
            f"{e.mode} {e.type} {e.oid}\t".encode("ascii") + encode_path(e.name) + b"\0"
            for e in entries
        )
        result = self._run_git(["mktree", "-z"], input=data, binary=True)
        return result.stdout.decode("ascii").strip()

    def build_tree(self, base_tree: Optional[str], changes: Dict[str, str]) -> str:
        """
        在 base_tree 上应用文件变更并返回新的根树ID

        先递归重写受影响的子树，再写入父树（后序遍历）；未受影响的子树保持原ID。

        Args:
            base_tree: 原根树ID，空仓库为None
            changes: 相对路径 -> blob ID

        Returns:
            新根树ID
        """
        keyed = {tuple(path.split("/")): oid for path, oid in changes.items()}
        return self._rewrite_tree(base_tree, keyed)

    def _rewrite_tree(self, tree: Optional[str],
                      changes: Dict[Tuple[str, ...], str]) -> str:
        entries = {e.name: e for e in self.ls_tree(tree)} if tree else {}
        subtrees: Dict[str, Dict[Tuple[str, ...], str]] = {}

        for segments, oid in changes.items():
            name, rest = segments[0], segments[1:]
            if rest:
                subtrees.setdefault(name, {})[rest] = oid
                continue
            existing = entries.get(name)
            mode = existing.mode if existing is not None and existing.type == "blob" else BLOB_MODE
            entries[name] = TreeEntry(mode, "blob", oid, name)

        for name, sub_changes in subtrees.items():
            existing = entries.get(name)
            base = existing.oid if existing is not None and existing.type == "tree" else None
            entries[name] = TreeEntry(TREE_MODE, "tree", self._rewrite_tree(base, sub_changes), name)

        return self.mktree(list(entries.values()))

    def commit_tree(self, tree: str, parent: Optional[str], message: str) -> str:
        args = ["commit-tree", tree]
        if parent:
            args += ["-p", parent]
        args += ["-m", message]
        return self._run_git(args).stdout.strip()

    # 暂存与提交

    def stage(self, *paths: Union[str, Path]) -> Dict[str, str]:
        """
        把文件当前内容写入暂存区

        Returns:
            相对路径 -> blob ID
        """
        staged = {}
        for path in paths:
            rel = self.relative_path(path)
            oid = self.hash_object(path=rel)
            self._run_git(["update-index", "--add", "--cacheinfo", f"{BLOB_MODE},{oid},{rel}"])
            staged[rel] = oid
            EventEmitter.log("debug", f"已添加 {rel} 到暂存区")
        return staged

    def unstage(self, *paths: Union[str, Path]) -> None:
        """从暂存区删除文件条目（工作目录中的文件不受影响）"""
        for path in paths:
            rel = self.relative_path(path)
            self._run_git(["update-index", "--force-remove", "--", rel])
            EventEmitter.log("debug", f"已从暂存区移除 {rel}")

    def commit(self, message: str, paths: List[Union[str, Path]]) -> CommitResult:
        """
        以当前头提交为父提交，提交给定文件的当前内容

        引用被并发移动时，以新的头提交重新构建树与提交，最多重试 max_retries 次。

        Raises:
            CommitError: 对象写入或提交对象创建失败
            RefConflictError: 重试耗尽后引用仍在移动
        """
        rels = [self.relative_path(p) for p in paths]
        ref = self.head_ref()

        for attempt in range(self.max_retries + 1):
            parent = self.resolve(ref)
            base_tree = self.resolve(f"{parent}^{{tree}}") if parent else None
            try:
                changes = {rel: self.hash_object(path=rel) for rel in rels}
                tree = self.build_tree(base_tree, changes)
                oid = self.commit_tree(tree, parent, message)
            except GitError as e:
                raise CommitError(f"提交失败: {e.message}", e.details)
            try:
                self.update_ref(ref, oid, parent, message=f"commit: {message}")
            except RefConflictError as e:
                if attempt < self.max_retries:
                    EventEmitter.log(
                        "warn",
                        f"Ref {ref} moved during commit (attempt {attempt + 1}/{self.max_retries + 1}), retrying",
                    )
                    continue
                EventEmitter.error(f"提交失败: {e.message}", {"ref": ref, "message": message})
                raise

            EventEmitter.log("info", f"已提交更改: {message}")
            EventEmitter.item_event(oid, "committed", ", ".join(rels))
            return CommitResult(
                success=True,
                message=message,
                oid=oid,
                parent=parent,
                tree=tree,
                ref=ref,
            )

    # 推送

    def push(self, remote: str, refspec: Optional[str] = None,
             progress: Optional[NoProgress] = None) -> PushResult:
        """
        推送到远程仓库

        任何失败都返回空的 PushResult 而不是抛出异常。

        Args:
            remote: 远程仓库名称或URL
            refspec: 引用规格，默认推送 HEAD 指向的分支到同名分支
            progress: 进度接收器
        """
        progress = progress or NoProgress()
        progress.begin_task(f"push {remote}")
        try:
            if refspec is None:
                ref = self.head_ref()
                refspec = f"{ref}:{ref}"
            result = self._run_git(
                ["push", "--porcelain", "--progress", remote, refspec], check=False
            )
        except GitError as e:
            progress.end_task()
            EventEmitter.error(f"推送失败: {e.message}", {"remote": remote})
            return PushResult.empty(remote, e.message, error=e)

        for line in re.split(r"[\r\n]+", result.stderr or ""):
            if line.strip():
                progress.update(line.strip())
        progress.end_task()

        updates = self._parse_porcelain(result.stdout or "")
        rejected = [u for u in updates if u.rejected]
        if result.returncode != 0 or rejected:
            message = f"Push to {remote} failed"
            EventEmitter.error(message, {
                "remote": remote,
                "refspec": refspec,
                "rejected": [f"{u.dst} {u.summary}" for u in rejected],
                "stderr": (result.stderr or "").strip()[-500:],
            })
            return PushResult.empty(remote, message, error=TransportError(message, {"remote": remote}))

        EventEmitter.log("info", f"已推送到 {remote} ({refspec})")
        return PushResult(True, f"Pushed to {remote}", remote=remote, updates=updates)

    @staticmethod
    def _parse_porcelain(output: str) -> List[RefUpdate]:
        updates = []
        for line in output.splitlines():
            parts = line.split("\t")
            if len(parts) < 3 or len(parts[0]) != 1:
                continue
            src, _, dst = parts[1].partition(":")
            updates.append(RefUpdate(parts[0], src, dst, parts[2]))
        return updates

    # 历史

    def log(self, path: Optional[str] = None, limit: Optional[int] = None) -> List[CommitInfo]:
        """按时间倒序列出提交，可限定路径"""
        if self.head() is None:
            return []
        args = ["log", "--format=%H%x09%s"]
        if limit:
            args.append(f"-n{limit}")
        if path:
            args += ["--", self.relative_path(path)]
        result = self._run_git(args)
        commits = []
        for line in result.stdout.splitlines():
            oid, _, subject = line.partition("\t")
            commits.append(CommitInfo(oid, subject))
        return commits

    def changed_paths(self, commit: str) -> List[str]:
        """提交相对其父提交修改的文件"""
        result = self._run_git(
            ["diff-tree", "--no-commit-id", "--name-only", "-r", "-z", "--root", commit],
            binary=True,
        )
        return [decode_path(p) for p in result.stdout.split(b"\0") if p]
