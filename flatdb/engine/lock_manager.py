# lock_manager.py

import os
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, NamedTuple

from loguru import logger


class ResourceID(NamedTuple):
    db_dir: str
    table_name: str

    @staticmethod
    def for_table(db_dir: str, table_name: str) -> 'ResourceID':
        # 同一张表无论以相对路径还是绝对路径访问都映射到同一把锁
        return ResourceID(os.path.realpath(db_dir), table_name)


class TableLockManager:
    """
    进程内的表级互斥锁登记表。
    每张表一把可重入锁，读-改-写序列在整个持锁期间独占该表的 .meta/.data 文件。
    不提供跨进程协调。
    """
    def __init__(self):
        self._lock_table: Dict[ResourceID, threading.RLock] = {}
        self._global_lock = threading.Lock()

    def _get_lock(self, resource_id: ResourceID) -> threading.RLock:
        # 只在操作共享登记表时持有全局锁
        with self._global_lock:
            return self._lock_table.setdefault(resource_id, threading.RLock())

    @contextmanager
    def acquire(self, resource_id: ResourceID) -> Iterator[ResourceID]:
        lock = self._get_lock(resource_id)
        lock.acquire()
        logger.debug(f"获取表锁: {resource_id.table_name}")
        try:
            yield resource_id
        finally:
            lock.release()
            logger.debug(f"释放表锁: {resource_id.table_name}")


_default_lock_manager = TableLockManager()


def get_lock_manager() -> TableLockManager:
    """返回进程级共享的锁管理器。"""
    return _default_lock_manager
