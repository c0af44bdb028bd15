"""
Context 类 - 统一路径管理和配置注入

单一入口解析配置，所有路径都是绝对路径，通过 Context 参数传递给库组件。
"""

import os
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field

from .exceptions import ConfigurationError


DEFAULT_CONFIG: Dict[str, Any] = {
    "repository": {
        "path": "playgists",
        "owner": "default",
    },
    "commit": {
        "author_name": "playgist",
        "author_email": "playgist@localhost",
        "max_retries": 3,
    },
    "remote": {
        "name": None,
        "refspec": None,
        "progress": False,
    },
    "logging": {
        "logs_dir": "logs",
        "level": "info",
    },
}


@dataclass
class Context:
    """Playgist 上下文，包含所有路径和配置"""

    project_root: Path  # 项目根目录（包含 config.yaml 的目录）
    config: Dict[str, Any]  # 完整的配置字典

    repo_root: Path  # 播放列表 Git 仓库的工作目录
    logs_dir: Path  # 日志目录，存储 JSONL 事件日志

    # 衍生配置（方便访问）
    owner: str = field(init=False)
    commit_config: Dict[str, Any] = field(init=False)
    remote_config: Dict[str, Any] = field(init=False)
    log_level: str = field(init=False)

    def __post_init__(self):
        """初始化后处理，解析路径并提取配置段"""
        self.project_root = Path(self.project_root).resolve()
        self.repo_root = Path(self.repo_root).resolve()
        self.logs_dir = Path(self.logs_dir).resolve()

        self.owner = str(self.config.get("repository", {}).get("owner") or "")
        if not self.owner or "/" in self.owner or self.owner.startswith("."):
            raise ConfigurationError(
                f"Invalid repository owner: {self.owner!r}",
                {"owner": self.owner},
            )

        self.commit_config = self.config.get("commit", {})
        self.remote_config = self.config.get("remote", {})
        self.log_level = self.config.get("logging", {}).get("level", "info")

        self._ensure_dirs()

    def _ensure_dirs(self) -> None:
        """确保所有必要的目录存在"""
        for dir_path in [self.repo_root, self.logs_dir]:
            dir_path.mkdir(parents=True, exist_ok=True)
            if not os.access(dir_path, os.W_OK):
                raise PermissionError(f"No write permission: {dir_path}")

    @property
    def remote(self) -> Optional[str]:
        """推送目标远程名称，未配置时返回None（不推送）"""
        return self.remote_config.get("name") or None

    @property
    def refspec(self) -> Optional[str]:
        return self.remote_config.get("refspec") or None


def deep_merge(target: Dict, source: Dict) -> Dict:
    """把 source 深度合并进 target"""
    for key, value in source.items():
        if key in target and isinstance(target[key], dict) and isinstance(value, dict):
            deep_merge(target[key], value)
        else:
            target[key] = value
    return target


def create_context(config_path: Optional[str] = None) -> Context:
    """从配置文件创建 Context 对象

    Args:
        config_path: 配置文件路径，如果为 None 则依次查找
            环境变量 PLAYGISTCONFIG 和当前目录下的 config.yaml

    Returns:
        初始化的 Context 对象
    """
    import copy
    import yaml

    if config_path:
        config_file = Path(config_path).resolve()
    elif os.environ.get("PLAYGISTCONFIG"):
        config_file = Path(os.environ["PLAYGISTCONFIG"]).resolve()
    else:
        config_file = Path.cwd() / "config.yaml"
    project_root = config_file.parent

    config = {}
    if config_file.exists():
        with open(config_file, "r", encoding="utf-8") as f:
            try:
                config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(
                    f"Invalid config file: {config_file}", {"error": str(e)}
                )
        if not isinstance(config, dict):
            raise ConfigurationError(f"Config root must be a mapping: {config_file}")

    config = deep_merge(copy.deepcopy(DEFAULT_CONFIG), config)

    # 相对路径以配置文件所在目录为基准
    repo_path = Path(config["repository"]["path"])
    if not repo_path.is_absolute():
        repo_path = project_root / repo_path
    logs_path = Path(config["logging"]["logs_dir"])
    if not logs_path.is_absolute():
        logs_path = project_root / logs_path

    return Context(
        project_root=project_root,
        config=config,
        repo_root=repo_path,
        logs_dir=logs_path,
    )


__all__ = ["Context", "create_context", "deep_merge", "DEFAULT_CONFIG"]
