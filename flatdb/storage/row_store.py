# -*- coding: utf-8 -*-
"""
行存储（RowStore）

职责：
- 读写 <table>.data，每行一条记录，字段以 ':' 分隔，与表结构按位置对齐
- 全表扫描、主键查找、追加
- 删除与更新统一表达为“重写”：逐行读取，保留/替换/丢弃，写入同目录临时文件后
  用 os.replace 原子替换原文件

说明：
- 未被改动的行按原始文本写回，保证字节级不变
- 追加不是原子的，并发保护由上层的 TableLockManager 负责
"""

import os
import shutil
import tempfile
from typing import Callable, Iterator, Optional, Tuple

from loguru import logger

from flatdb.engine.errors import IoFailureError
from flatdb.storage.row_serializer import Row, RowSerializer

RowTransform = Callable[[Row], Optional[Row]]


class RowStore:
    def __init__(self, data_path: str, serializer: Optional[RowSerializer] = None):
        self.data_path = data_path
        self.serializer = serializer

    def create(self) -> None:
        """创建空数据文件（已存在则保持原样）。"""
        try:
            with open(self.data_path, 'a', encoding='utf-8'):
                pass
        except OSError as e:
            raise IoFailureError(f"Could not create data file '{self.data_path}': {e}") from e

    def drop(self) -> None:
        try:
            os.remove(self.data_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise IoFailureError(f"Could not remove data file '{self.data_path}': {e}") from e

    def _scan_lines(self) -> Iterator[Tuple[str, Row]]:
        """按磁盘顺序产出 (原始行文本, 解析后的行)，跳过空行。"""
        if not os.path.exists(self.data_path):
            return
        try:
            with open(self.data_path, 'r', encoding='utf-8', newline='') as f:
                for lineno, raw in enumerate(f, 1):
                    line = raw.rstrip('\r\n')
                    if not line:
                        continue
                    yield raw, self.serializer.deserialize(line, lineno)
        except OSError as e:
            raise IoFailureError(f"Could not read data file '{self.data_path}': {e}") from e

    def scan(self) -> Iterator[Row]:
        for _, row in self._scan_lines():
            yield row

    def find_by_key(self, pk_value) -> Optional[Row]:
        for row in self.scan():
            if row[0] == pk_value:
                return row
        return None

    def is_empty(self) -> bool:
        for _ in self.scan():
            return False
        return True

    def count(self) -> int:
        return sum(1 for _ in self.scan())

    def append(self, row: Row) -> None:
        payload = (self.serializer.serialize(row) + '\n').encode('utf-8')
        try:
            with open(self.data_path, 'a+b') as f:
                # 文件末尾缺少换行时补上，避免新行粘到上一行
                size = f.seek(0, os.SEEK_END)
                if size > 0:
                    f.seek(size - 1)
                    if f.read(1) != b'\n':
                        payload = b'\n' + payload
                f.write(payload)
        except OSError as e:
            logger.error(f"追加记录到 '{self.data_path}' 失败: {e}")
            raise IoFailureError(f"Could not append to '{self.data_path}': {e}") from e

    def rewrite(self, transform: RowTransform) -> int:
        """
        重写整个数据文件。
        :param transform: 对每一行调用；原样返回表示保留，返回新行表示替换，返回 None 表示删除。
        :return: 被替换或删除的行数。
        """
        directory = os.path.dirname(os.path.abspath(self.data_path))
        changed = 0
        try:
            fd, tmp_path = tempfile.mkstemp(prefix='.', suffix='.tmp', dir=directory)
        except OSError as e:
            raise IoFailureError(f"Could not create temp file for '{self.data_path}': {e}") from e
        try:
            with os.fdopen(fd, 'w', encoding='utf-8', newline='') as out:
                if os.path.exists(self.data_path):
                    shutil.copymode(self.data_path, tmp_path)
                for raw, row in self._scan_lines():
                    new_row = transform(row)
                    if new_row is None:
                        changed += 1
                        continue
                    if new_row is row:
                        out.write(raw if raw.endswith('\n') else raw + '\n')
                    else:
                        out.write(self.serializer.serialize(new_row) + '\n')
                        changed += 1
                out.flush()
                os.fsync(out.fileno())
            os.replace(tmp_path, self.data_path)
        except OSError as e:
            self._discard(tmp_path)
            logger.error(f"重写 '{self.data_path}' 失败，原文件保持不变: {e}")
            raise IoFailureError(f"Could not rewrite '{self.data_path}': {e}") from e
        except BaseException:
            self._discard(tmp_path)
            raise
        logger.debug(f"'{self.data_path}' 重写完成，变更 {changed} 行")
        return changed

    @staticmethod
    def _discard(tmp_path: str) -> None:
        try:
            os.remove(tmp_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"清理临时文件 '{tmp_path}' 失败: {e}")
