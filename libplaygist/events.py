from pathlib import Path
import json
import datetime
import sys

# 全局事件监听器列表
_event_listeners = []

# 日志级别顺序
LEVELS = {"debug": 10, "info": 20, "warn": 30, "error": 40}


class EventEmitter:
    """统一事件输出类，库中所有组件通过此类输出 JSONL 事件流"""

    _log_file = None
    _logs_dir = Path.cwd() / "logs"
    _level = "info"
    _stream = None

    @staticmethod
    def setup_logging(logs_dir=None, level=None, stream=None):
        """配置日志输出

        Args:
            logs_dir: 日志目录路径，None表示保持当前配置
            level: 最低输出级别 (debug/info/warn/error)
            stream: 无监听器时JSONL的输出流，None表示stdout
        """
        if logs_dir is not None:
            EventEmitter._logs_dir = Path(logs_dir)
            EventEmitter._logs_dir.mkdir(parents=True, exist_ok=True)
        if level is not None:
            EventEmitter.set_level(level)
        EventEmitter._stream = stream

    @staticmethod
    def set_level(level):
        if level not in LEVELS:
            raise ValueError(f"Unknown log level: {level}")
        EventEmitter._level = level

    @staticmethod
    def register_listener(listener):
        """注册事件监听器，listener(event_dict)"""
        _event_listeners.append(listener)

    @staticmethod
    def unregister_listener(listener):
        """注销事件监听器"""
        if listener in _event_listeners:
            _event_listeners.remove(listener)

    @staticmethod
    def start_log_file(command_name=None):
        """开始记录日志到文件

        Args:
            command_name: 命令名称，用于生成日志文件名。如果为None，使用当前脚本名。

        Returns:
            日志文件路径，打开失败返回None
        """
        if command_name is None:
            command_name = Path(sys.argv[0]).stem
        timestamp = datetime.datetime.now().strftime("%Y%m%d-%H%M%S")
        EventEmitter._logs_dir.mkdir(parents=True, exist_ok=True)
        log_filename = EventEmitter._logs_dir / f"{command_name}-{timestamp}.jsonl"
        try:
            EventEmitter._log_file = open(log_filename, "a", encoding="utf-8")
        except OSError as e:
            sys.stderr.write(f"无法打开日志文件 {log_filename}: {e}\n")
            EventEmitter._log_file = None
            return None
        return log_filename

    @staticmethod
    def stop_logging():
        """停止日志记录，关闭文件"""
        if EventEmitter._log_file is not None:
            EventEmitter._log_file.close()
            EventEmitter._log_file = None

    @staticmethod
    def _filter_sensitive_data(event_dict):
        """过滤敏感数据，如密码、密钥等"""
        sensitive_keys = ["password", "secret", "token", "credential"]
        filtered = event_dict.copy()
        for key in list(filtered.keys()):
            key_lower = key.lower()
            for sensitive in sensitive_keys:
                if sensitive in key_lower:
                    filtered[key] = "[FILTERED]"
                    break
        return filtered

    @staticmethod
    def emit(event_type, **kwargs):
        event = {
            "type": event_type,
            "ts": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "cmd": Path(sys.argv[0]).stem,
            **kwargs,
        }
        # 调用所有监听器，监听器异常不影响事件流
        for listener in list(_event_listeners):
            try:
                listener(event)
            except Exception as e:
                sys.stderr.write(f"事件监听器异常: {e}\n")

        # 写入日志文件（如果启用）
        if EventEmitter._log_file is not None:
            filtered_event = EventEmitter._filter_sensitive_data(event)
            EventEmitter._log_file.write(
                json.dumps(filtered_event, ensure_ascii=False) + "\n"
            )
            EventEmitter._log_file.flush()

        # 只有在没有监听器时才输出JSONL（例如库被直接调用）
        if not _event_listeners:
            stream = EventEmitter._stream or sys.stdout
            print(json.dumps(event, ensure_ascii=False), file=stream, flush=True)

    @staticmethod
    def log(level, message, **context):
        if LEVELS.get(level, 20) < LEVELS[EventEmitter._level]:
            return
        EventEmitter.emit("log", level=level, message=message, **context)

    @staticmethod
    def phase_start(phase, total_items=0):
        EventEmitter.emit("phase_start", phase=phase, total_items=total_items)

    @staticmethod
    def batch_progress(phase, processed, total_items, rate_per_sec=0):
        EventEmitter.emit(
            "batch_progress",
            phase=phase,
            processed=processed,
            total_items=total_items,
            rate_per_sec=rate_per_sec,
        )

    @staticmethod
    def item_event(item_id, status, message=""):
        EventEmitter.emit("item_event", id=item_id, status=status, message=message)

    @staticmethod
    def result(status, message="", artifacts=None):
        EventEmitter.emit(
            "result", status=status, message=message, artifacts=artifacts or {}
        )

    @staticmethod
    def error(message, context=None):
        EventEmitter.emit("error", message=message, context=context or {})
