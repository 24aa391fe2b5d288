# -*- coding: utf-8 -*-
"""
模式存储（SchemaStore）

职责：
- 读写表的列定义文件 <table>.meta，每列一行：name:type:pk_marker
- 维护列顺序（1 起编号）与主键列（恒为第一列）
- 枚举数据库目录下的全部表

说明：
- 表结构创建后不可修改，本模块不提供 ALTER 能力
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import List

from loguru import logger

from flatdb.engine.errors import (
    AlreadyExistsError,
    CorruptedTableError,
    InvalidColumnCountError,
    InvalidColumnIndexError,
    InvalidColumnTypeError,
    IoFailureError,
    NotFoundError,
)

META_SUFFIX = '.meta'
DATA_SUFFIX = '.data'
FIELD_SEPARATOR = ':'
PK_MARKER = 'pk'


class ColumnType(Enum):
    """列类型，value 即磁盘上的写法"""
    INT = 'int'
    STRING = 'string'

    @staticmethod
    def parse(text: str) -> 'ColumnType':
        """大小写不敏感地解析类型名。"""
        normalized = (text or '').strip().lower()
        for column_type in ColumnType:
            if column_type.value == normalized:
                return column_type
        raise InvalidColumnTypeError(
            f"Data type must be 'int' or 'string', got '{text}'.", {'type': text}
        )


@dataclass
class ColumnInfo:
    name: str
    column_type: ColumnType
    is_primary_key: bool = False

    def to_line(self) -> str:
        marker = PK_MARKER if self.is_primary_key else ''
        return FIELD_SEPARATOR.join([self.name, self.column_type.value, marker])

    @staticmethod
    def from_line(line: str) -> 'ColumnInfo':
        parts = line.split(FIELD_SEPARATOR)
        # 兼容缺少末尾 pk 字段的行，例如 "name:string"
        if len(parts) == 2:
            parts.append('')
        if len(parts) != 3 or not parts[0]:
            raise ValueError(f"malformed column definition '{line}'")
        return ColumnInfo(parts[0], ColumnType.parse(parts[1]), parts[2] == PK_MARKER)


@dataclass
class TableSchema:
    table_name: str
    columns: List[ColumnInfo] = field(default_factory=list)

    @property
    def arity(self) -> int:
        return len(self.columns)

    @property
    def column_names(self) -> List[str]:
        return [col.name for col in self.columns]

    def primary_key_column(self) -> ColumnInfo:
        for col in self.columns:
            if col.is_primary_key:
                return col
        raise CorruptedTableError(
            f"Table '{self.table_name}' has no primary key column.",
            {'table': self.table_name},
        )

    def column_at(self, index: int) -> ColumnInfo:
        """按 1 起编号取列，越界抛出 InvalidColumnIndexError。"""
        if not isinstance(index, int) or isinstance(index, bool) or index < 1 or index > self.arity:
            raise InvalidColumnIndexError(
                f"Invalid column number '{index}'. Choose between 1 and {self.arity}.",
                {'table': self.table_name, 'index': index},
            )
        return self.columns[index - 1]


class SchemaStore:
    """
    管理一个数据库目录下所有表的 .meta 文件。
    """
    def __init__(self, db_dir: str) -> None:
        self.db_dir = db_dir

    def meta_path(self, table_name: str) -> str:
        return os.path.join(self.db_dir, f"{table_name}{META_SUFFIX}")

    def data_path(self, table_name: str) -> str:
        return os.path.join(self.db_dir, f"{table_name}{DATA_SUFFIX}")

    def exists(self, table_name: str) -> bool:
        return os.path.isfile(self.meta_path(table_name))

    def create(self, table_name: str, columns: List[ColumnInfo]) -> TableSchema:
        """持久化表结构。第一列强制为主键，其余列的主键标记被清除。"""
        if self.exists(table_name):
            raise AlreadyExistsError(f"Table '{table_name}' already exists.", {'table': table_name})
        if not columns:
            raise InvalidColumnCountError(
                f"Table '{table_name}' needs at least one column.", {'table': table_name}
            )
        normalized = [
            ColumnInfo(col.name, col.column_type, is_primary_key=(i == 0))
            for i, col in enumerate(columns)
        ]
        content = ''.join(col.to_line() + '\n' for col in normalized)
        try:
            # 'x' 模式保证不会覆盖并发创建的同名表
            with open(self.meta_path(table_name), 'x', encoding='utf-8') as f:
                f.write(content)
        except FileExistsError:
            raise AlreadyExistsError(f"Table '{table_name}' already exists.", {'table': table_name})
        except OSError as e:
            logger.error(f"写入表结构 '{table_name}' 失败: {e}")
            raise IoFailureError(f"Could not write schema for '{table_name}': {e}") from e
        logger.debug(f"表结构 '{table_name}' 已写入: {[c.name for c in normalized]}")
        return TableSchema(table_name, normalized)

    def load(self, table_name: str) -> TableSchema:
        path = self.meta_path(table_name)
        if not os.path.isfile(path):
            raise NotFoundError(f"Table '{table_name}' does not exist.", {'table': table_name})
        try:
            with open(path, 'r', encoding='utf-8') as f:
                lines = [line.rstrip('\r\n') for line in f]
        except OSError as e:
            raise IoFailureError(f"Could not read schema for '{table_name}': {e}") from e

        columns = []
        for lineno, line in enumerate(lines, 1):
            if not line.strip():
                continue
            try:
                columns.append(ColumnInfo.from_line(line))
            except (ValueError, InvalidColumnTypeError) as e:
                raise CorruptedTableError(
                    f"Schema of '{table_name}' is corrupted at line {lineno}: {e}",
                    {'table': table_name, 'line': lineno},
                ) from e

        schema = TableSchema(table_name, columns)
        pk_count = sum(1 for col in columns if col.is_primary_key)
        if not columns or pk_count != 1 or not columns[0].is_primary_key:
            raise CorruptedTableError(
                f"Schema of '{table_name}' must mark exactly the first column as primary key.",
                {'table': table_name},
            )
        return schema

    def primary_key_column(self, schema: TableSchema) -> ColumnInfo:
        return schema.primary_key_column()

    def drop(self, table_name: str) -> None:
        try:
            os.remove(self.meta_path(table_name))
        except FileNotFoundError:
            pass
        except OSError as e:
            raise IoFailureError(f"Could not remove schema for '{table_name}': {e}") from e

    def list_tables(self) -> List[str]:
        """返回目录下所有 .meta 文件对应的表名（按名称排序）。"""
        try:
            entries = os.listdir(self.db_dir)
        except OSError as e:
            raise IoFailureError(f"Could not list tables in '{self.db_dir}': {e}") from e
        names = []
        for entry in entries:
            if entry.endswith(META_SUFFIX) and os.path.isfile(os.path.join(self.db_dir, entry)):
                names.append(entry[:-len(META_SUFFIX)])
        return sorted(names)
