# -*- coding: utf-8 -*-
"""
逐列构建表结构。

交互式建表时用户逐列输入名称与类型；某一列输入非法时只需重试当前这一列，
已确认的列保持不变。
"""
from typing import List, Optional, Tuple

from flatdb.engine.errors import AlreadyExistsError, InvalidColumnCountError, TableEngineError
from flatdb.engine.name_validator import validate_name
from flatdb.engine.value_validator import validate_column_type
from flatdb.storage.schema_store import ColumnInfo


class ColumnSpecBuilder:
    def __init__(self, num_cols: int):
        if isinstance(num_cols, bool) or not isinstance(num_cols, int) or num_cols < 1:
            raise InvalidColumnCountError(
                f"Number of columns must be a positive number, got '{num_cols}'.",
                {'num_cols': num_cols},
            )
        self.num_cols = num_cols
        self._columns: List[ColumnInfo] = []

    @staticmethod
    def parse_count(text: str) -> 'ColumnSpecBuilder':
        """从用户输入的列数文本构造构建器。"""
        text = (text or '').strip()
        if not (text.isascii() and text.isdigit()):
            raise InvalidColumnCountError(
                f"Please enter a valid positive number, got '{text}'.", {'num_cols': text}
            )
        return ColumnSpecBuilder(int(text))

    @property
    def current_slot(self) -> int:
        """当前待填写的列号（1 起）；全部完成后为 num_cols + 1。"""
        return len(self._columns) + 1

    @property
    def is_complete(self) -> bool:
        return len(self._columns) == self.num_cols

    @property
    def next_is_primary_key(self) -> bool:
        return not self._columns

    @property
    def columns(self) -> List[ColumnInfo]:
        return list(self._columns)

    def add(self, name: str, type_text: str) -> ColumnInfo:
        """
        校验并确认当前列。失败时抛出 TableEngineError，当前列保持待填写状态。
        """
        if self.is_complete:
            raise InvalidColumnCountError(
                f"All {self.num_cols} columns are already defined.", {'num_cols': self.num_cols}
            )
        validate_name(name, 'Column name')
        if name in (col.name for col in self._columns):
            raise AlreadyExistsError(f"Column '{name}' is already defined.", {'column': name})
        column_type = validate_column_type(type_text)
        column = ColumnInfo(name, column_type, is_primary_key=self.next_is_primary_key)
        self._columns.append(column)
        return column

    def try_add(self, name: str, type_text: str) -> Tuple[Optional[ColumnInfo], Optional[TableEngineError]]:
        """add 的非抛出版本，返回 (列, 错误)。"""
        try:
            return self.add(name, type_text), None
        except TableEngineError as e:
            return None, e

    def build(self) -> List[ColumnInfo]:
        if not self.is_complete:
            raise InvalidColumnCountError(
                f"Only {len(self._columns)} of {self.num_cols} columns are defined.",
                {'num_cols': self.num_cols, 'defined': len(self._columns)},
            )
        return self.columns
