"""Application settings loaded from a YAML file, with optional live reload."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

import yaml
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

_TRUE_WORDS = {"1", "t", "true", "yes", "y", "on"}
_FALSE_WORDS = {"0", "f", "false", "no", "n", "off", ""}
_RELOAD_EVENTS = {"modified", "created", "moved", "closed"}


@dataclass
class AppConfig:
    """Server settings; each field is read from the key of the same name."""

    mode: str = ""
    name: str = ""
    version: str = ""
    start_time: str = ""
    tcp_mode: bool = False
    ws_mode: bool = False
    quic_mode: bool = False
    kcp_mode: bool = False
    ip: str = ""
    port: int = 0
    ws_port: int = 0
    ip_version: str = ""
    max_conn: int = 0
    max_packet_size: int = 0
    worker_pool_size: int = 0
    max_worker_task_len: int = 0
    heartbeat_max_seconds: int = field(default=0, metadata={"key": "heartbeat_max_time"})
    heartbeat_interval_seconds: int = field(default=0, metadata={"key": "heartbeat_interval"})
    worker_id: int = 0
    datacenter_id: int = 0
    log_level: str = ""
    log_path: str = ""

    def update(self, data: Mapping[str, Any]) -> None:
        """Set the fields named in ``data``; unknown keys are ignored."""
        lowered = {str(key).lower(): value for key, value in data.items()}
        for item in fields(self):
            key = item.metadata.get("key", item.name)
            if key in lowered:
                kind = type(item.default)
                setattr(self, item.name, _coerce(lowered[key], kind, key))

    def heartbeat_interval(self) -> float:
        """Interval between heartbeat checks, in seconds."""
        return float(self.heartbeat_interval_seconds)

    def heartbeat_max_time(self) -> float:
        """Idle time after which a connection counts as dead, in seconds."""
        return float(self.heartbeat_max_seconds)


def _coerce(value: Any, kind: type, key: str) -> Any:
    if value is None:
        return kind()
    if kind is bool:
        if isinstance(value, str):
            word = value.strip().lower()
            if word in _TRUE_WORDS:
                return True
            if word in _FALSE_WORDS:
                return False
            raise ValueError(f"cannot read {key!r} as a boolean: {value!r}")
        return bool(value)
    if kind is int:
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"cannot read {key!r} as an integer: {value!r}") from exc
    return str(value)


def _read_mapping(path: str | os.PathLike[str]) -> dict[str, Any]:
    with open(path, encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"config file {os.fspath(path)!r} does not hold a mapping")
    return dict(data)


def load_config(path: str | os.PathLike[str]) -> AppConfig:
    """Read a YAML file into a fresh AppConfig."""
    config = AppConfig()
    config.update(_read_mapping(path))
    return config


conf = AppConfig()

_observer: Any = None
_observer_lock = threading.Lock()


class _ReloadHandler(FileSystemEventHandler):
    def __init__(self, path: Path) -> None:
        super().__init__()
        self._path = path.resolve()

    def _concerns_us(self, event: FileSystemEvent) -> bool:
        for raw in (event.src_path, getattr(event, "dest_path", "")):
            if raw and Path(os.fsdecode(raw)).resolve() == self._path:
                return True
        return False

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _RELOAD_EVENTS:
            return
        if not self._concerns_us(event):
            return
        print("config file changed")
        try:
            conf.update(_read_mapping(self._path))
        except (OSError, ValueError, yaml.YAMLError):
            return


def init_settings(path: str | os.PathLike[str], watch: bool = True) -> AppConfig:
    """Load ``path`` into the shared ``conf`` and, if asked, reload it on change."""
    global _observer
    target = Path(path)
    conf.update(_read_mapping(target))
    with _observer_lock:
        if _observer is not None:
            _observer.stop()
            _observer.join()
            _observer = None
        if watch:
            observer = Observer()
            observer.schedule(_ReloadHandler(target), str(target.resolve().parent))
            observer.daemon = True
            observer.start()
            _observer = observer
    return conf