import shlex
import sys
from typing import Callable, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from prompt_toolkit.lexers import PygmentsLexer
from pygments.lexers.shell import BashLexer

from .commands import playlists as playlist_cmd
from .container import PlaygistContainer
from .context import Context, create_context
from .events import EventEmitter
from .exceptions import PlaygistError
from .git import GitOperations
from .progress import LoggingProgress, NoProgress

console = Console()


class Command:
    """命令定义类"""

    def __init__(self, name: str, desc: str, handler: Callable[[List[str]], int],
                 usage: str = ""):
        self.name = name
        self.desc = desc
        self.handler = handler
        self.usage = usage


class PlaygistCLI:
    """Playgist CLI 主类"""

    def __init__(self, config_path: Optional[str] = None, log_only: bool = False,
                 context: Optional[Context] = None, out: Optional[Console] = None):
        self.console = out or console
        self.context = context or create_context(config_path)
        self.log_only = log_only

        # 日志配置
        EventEmitter.setup_logging(logs_dir=self.context.logs_dir, level=self.context.log_level)
        self.log_file = EventEmitter.start_log_file("playgist")
        if not self.log_only:
            EventEmitter.register_listener(self._handle_event)

        # 初始化核心组件（使用上下文）
        self.git = GitOperations.from_context(self.context)
        if not self.git.is_repository():
            self.git.init()
        remote_config = self.context.remote_config
        progress = LoggingProgress() if remote_config.get("progress") else NoProgress()
        self.container = PlaygistContainer.open(
            self.context.owner,
            self.git,
            remote=self.context.remote,
            refspec=self.context.refspec,
            progress=progress,
        )

        # REPL会话（延迟初始化）
        self.session = None

        self.commands: Dict[str, Command] = {}
        self._register_all_commands()

    def close(self):
        EventEmitter.unregister_listener(self._handle_event)
        EventEmitter.stop_logging()

    def _handle_event(self, event: dict):
        """把警告和错误事件渲染到终端"""
        etype = event.get("type")
        if etype == "error":
            self.console.print(f"[bold red]ERROR: {event.get('message')}[/bold red]")
        elif etype == "log":
            level = event.get("level")
            if level == "error":
                self.console.print(f"[red]ERROR: {event.get('message')}[/red]")
            elif level == "warn":
                self.console.print(f"[yellow]WARN: {event.get('message')}[/yellow]")

    def register_command(self, name: str, desc: str, handler: Callable[[List[str]], int],
                         usage: str = ""):
        """注册命令"""
        self.commands[name] = Command(name, desc, handler, usage)

    def _register_all_commands(self):
        """注册所有命令"""
        self.register_command("list", "列出所有播放列表", self._cmd_list)
        self.register_command("show", "显示播放列表详情", self._cmd_show, "show <播放列表>")
        self.register_command("create", "创建播放列表", self._cmd_create, "create <名称>")
        self.register_command("rename", "重命名播放列表", self._cmd_rename, "rename <播放列表> <名称>")
        self.register_command(
            "add", "添加曲目", self._cmd_add, "add <播放列表> <曲目>... [--at <位置>]"
        )
        self.register_command("remove", "移除曲目", self._cmd_remove, "remove <播放列表> <曲目>...")
        self.register_command("collab", "设置协作标记", self._cmd_collab, "collab <播放列表> on|off")
        self.register_command("sort", "按曲目ID排序", self._cmd_sort, "sort <播放列表>")
        self.register_command("history", "显示提交历史", self._cmd_history, "history <播放列表>")
        self.register_command("push", "推送到远程仓库", self._cmd_push)

    def _report(self, error: Optional[str]) -> int:
        if error:
            self.console.print(f"[red]{error}[/red]")
            return 1
        return 0

    def _report_playlist(self, playlist, action: str) -> int:
        if playlist.dirty:
            self.console.print(f"[yellow]{action}，但写入仓库失败（dirty）: {playlist.id}[/yellow]")
            return 1
        self.console.print(f"[green]{action}: {playlist.name or playlist.id}[/green]")
        return 0

    def _cmd_list(self, args: List[str]) -> int:
        rows, error = playlist_cmd.list_logic(self.container)
        if error:
            self.console.print(f"[dim]{error}[/dim]")
            return 0
        table = Table(title=f"{self.context.owner} 的播放列表")
        table.add_column("ID", style="cyan")
        table.add_column("名称", style="green")
        table.add_column("曲目", justify="right")
        table.add_column("协作")
        table.add_column("状态")
        for row in rows:
            table.add_row(
                row["id"][:10],
                row["name"] or "[dim]<未命名>[/dim]",
                str(row["tracks"]),
                "是" if row["collaborative"] else "",
                "[red]dirty[/red]" if row["dirty"] else "[green]ok[/green]",
            )
        self.console.print(table)
        return 0

    def _cmd_show(self, args: List[str]) -> int:
        if len(args) != 1:
            return self._usage("show")
        info, error = playlist_cmd.show_logic(self.container, args[0])
        if error:
            return self._report(error)
        self.console.print(Panel(Text(info["name"] or "<未命名>", style="bold cyan")))
        self.console.print(f"[bold]ID:[/bold] {info['id']}")
        self.console.print(f"[bold]作者:[/bold] {info['author']}")
        self.console.print(f"[bold]协作:[/bold] {'是' if info['collaborative'] else '否'}")
        table = Table(show_lines=False)
        table.add_column("#", justify="right")
        table.add_column("曲目", style="cyan")
        table.add_column("URI", style="dim")
        for i, (track, uri) in enumerate(zip(info["tracks"], info["track_uris"]), start=1):
            table.add_row(str(i), track, uri if uri != track else "")
        self.console.print(table)
        return 0

    def _cmd_create(self, args: List[str]) -> int:
        if not args:
            return self._usage("create")
        playlist, error = playlist_cmd.create_logic(self.container, " ".join(args))
        if error:
            return self._report(error)
        return self._report_playlist(playlist, "已创建")

    def _cmd_rename(self, args: List[str]) -> int:
        if len(args) < 2:
            return self._usage("rename")
        playlist, error = playlist_cmd.rename_logic(self.container, args[0], " ".join(args[1:]))
        if error:
            return self._report(error)
        return self._report_playlist(playlist, "已重命名")

    def _cmd_add(self, args: List[str]) -> int:
        index = None
        if "--at" in args:
            pos = args.index("--at")
            try:
                index = int(args[pos + 1])
            except (IndexError, ValueError):
                return self._usage("add")
            args = args[:pos] + args[pos + 2:]
        if len(args) < 2:
            return self._usage("add")
        playlist, error = playlist_cmd.add_tracks_logic(self.container, args[0], args[1:], index)
        if error:
            return self._report(error)
        return self._report_playlist(playlist, f"已添加 {len(args) - 1} 首曲目")

    def _cmd_remove(self, args: List[str]) -> int:
        if len(args) < 2:
            return self._usage("remove")
        playlist, error = playlist_cmd.remove_tracks_logic(self.container, args[0], args[1:])
        if playlist is None:
            return self._report(error)
        if error:
            self.console.print(f"[yellow]{error}[/yellow]")
        return self._report_playlist(playlist, "已移除曲目")

    def _cmd_collab(self, args: List[str]) -> int:
        if len(args) != 2 or args[1] not in ("on", "off"):
            return self._usage("collab")
        playlist, error = playlist_cmd.collab_logic(self.container, args[0], args[1] == "on")
        if error:
            return self._report(error)
        return self._report_playlist(playlist, "已更新协作标记")

    def _cmd_sort(self, args: List[str]) -> int:
        if len(args) != 1:
            return self._usage("sort")
        playlist, error = playlist_cmd.sort_logic(self.container, args[0])
        if error:
            return self._report(error)
        return self._report_playlist(playlist, "已排序")

    def _cmd_history(self, args: List[str]) -> int:
        if len(args) != 1:
            return self._usage("history")
        commits, error = playlist_cmd.history_logic(self.container, args[0])
        if error:
            return self._report(error)
        table = Table(title="提交历史")
        table.add_column("提交", style="cyan")
        table.add_column("说明", style="green")
        for commit in commits:
            table.add_row(commit.oid[:10], commit.subject)
        self.console.print(table)
        return 0

    def _cmd_push(self, args: List[str]) -> int:
        result, error = playlist_cmd.push_logic(self.container)
        if error:
            return self._report(error)
        for update in result.moved:
            self.console.print(f"[green]{update.dst}[/green] {update.summary}")
        if result.is_empty:
            self.console.print("[dim]远程仓库已是最新[/dim]")
        return 0

    def _usage(self, name: str) -> int:
        self.console.print(f"[red]用法: {self.commands[name].usage}[/red]")
        return 2

    def run_command(self, name: str, args: List[str]) -> int:
        """执行命令并返回退出码"""
        if name == "help":
            if args:
                self.show_command_help(args[0])
            else:
                self.show_help()
            return 0
        if name not in self.commands:
            self.console.print(f"[red]未知命令: {name}[/red]")
            return 2
        try:
            code = self.commands[name].handler(args)
        except PlaygistError as e:
            self.console.print(f"[red]命令执行错误: {e.message}[/red]")
            EventEmitter.result("error", e.message, {"command": name})
            return 1
        EventEmitter.result("ok" if code == 0 else "error", name, {"exit_code": code})
        return code

    def repl(self):
        """REPL交互模式"""
        if self.session is None:
            self.session = PromptSession(
                history=FileHistory(str(self.context.logs_dir / ".playgist_history"))
            )

        self.console.print(
            Panel(Text("Playgist CLI", style="bold magenta", justify="center"))
        )
        self.console.print("输入 'help' 查看命令列表, 'exit' 退出\n")

        while True:
            try:
                text = self.session.prompt(
                    f"{self.context.owner} > ", lexer=PygmentsLexer(BashLexer)
                ).strip()
            except KeyboardInterrupt:
                continue
            except EOFError:
                break

            if not text:
                continue
            if text.lower() in ["exit", "quit"]:
                break
            try:
                parts = shlex.split(text)
            except ValueError as e:
                self.console.print(f"[red]{e}[/red]")
                continue
            self.run_command(parts[0], parts[1:])

    def show_command_help(self, name: str):
        """显示命令详细帮助"""
        if name not in self.commands:
            self.console.print(f"[red]未知命令: {name}[/red]")
            return
        cmd = self.commands[name]
        self.console.print(Panel(Text(f"命令帮助: {name}", style="bold cyan")))
        self.console.print(f"[bold]描述:[/bold] {cmd.desc}")
        if cmd.usage:
            self.console.print(f"[bold]用法:[/bold] {cmd.usage}")

    def show_help(self):
        """显示所有命令帮助"""
        table = Table(title="可用命令")
        table.add_column("命令", style="cyan")
        table.add_column("描述", style="green")
        for cmd_name in sorted(self.commands.keys()):
            table.add_row(cmd_name, self.commands[cmd_name].desc)
        self.console.print(table)
        self.console.print("\n使用 'help <命令名>' 查看详细选项")


def main(argv: Optional[List[str]] = None) -> int:
    """主函数"""
    import argparse

    parser = argparse.ArgumentParser(description="Playgist CLI")
    parser.add_argument("--config", help="配置文件路径（默认 $PLAYGISTCONFIG 或 ./config.yaml）")
    parser.add_argument(
        "--log-only", action="store_true", help="仅输出JSONL日志，不渲染人类友好界面"
    )
    parser.add_argument("command", nargs="?", help="命令名称")
    parser.add_argument("args", nargs=argparse.REMAINDER, help="命令参数")
    args = parser.parse_args(argv)

    try:
        cli = PlaygistCLI(config_path=args.config, log_only=args.log_only)
    except PlaygistError as e:
        console.print(f"[red]初始化失败: {e.message}[/red]")
        return 1

    try:
        if args.command:
            return cli.run_command(args.command, args.args)
        cli.repl()
        return 0
    finally:
        cli.close()


if __name__ == "__main__":
    sys.exit(main())
