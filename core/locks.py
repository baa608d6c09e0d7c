"""
並發控制工具

整個 engine 共用一個 WriteGate（可重入鎖），所有狀態修改都在同一把鎖之下
執行，等同於單一執行緒的 event loop：

- @single_writer：修改狀態的 method。最外層的修改成功結束後，執行 commit hook
  （持久化）；巢狀呼叫（例如 join 時隱含的 leave）不會重複 commit
- @consistent_read：唯讀 method。在同一把鎖之下取得結果並 deep copy，
  呼叫者不會看到修改到一半的 participants

使用方式：
    class RoomManager:
        def __init__(self, gate: WriteGate, ...):
            self._gate = gate

        @single_writer
        def join_room(self, room_id, actor, password=None):
            ...
"""
import copy
import threading
from contextlib import contextmanager
from functools import wraps
from typing import Callable, List


class WriteGate:
    """單一寫入者的閘門"""

    def __init__(self):
        self._lock = threading.RLock()
        self._depth = 0
        self._commit_hooks: List[Callable[[], None]] = []

    def add_commit_hook(self, hook: Callable[[], None]) -> None:
        self._commit_hooks.append(hook)

    @property
    def in_write(self) -> bool:
        return self._depth > 0

    @contextmanager
    def write(self):
        """
        取得寫入鎖

        只有最外層的 write 成功結束時才會執行 commit hook。
        發生異常時不 commit，異常往上拋（驗證都在修改之前，所以沒有部分修改）。
        """
        with self._lock:
            self._depth += 1
            try:
                yield
            except BaseException:
                self._depth -= 1
                raise
            self._depth -= 1
            if self._depth == 0:
                self._run_commit_hooks()

    @contextmanager
    def read(self):
        with self._lock:
            yield

    def _run_commit_hooks(self) -> None:
        for hook in self._commit_hooks:
            hook()


def single_writer(func):
    """修改狀態的 method decorator（self 必須有 _gate）"""
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        with self._gate.write():
            return func(self, *args, **kwargs)

    return wrapper


def consistent_read(func):
    """唯讀 method decorator：在鎖之下讀取並回傳 deep copy"""
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        with self._gate.read():
            return copy.deepcopy(func(self, *args, **kwargs))

    return wrapper
