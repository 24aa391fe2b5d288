# -*- coding: utf-8 -*-
"""
值校验器：检查候选值是否符合列类型与保留字符规则。

- 空值非法
- 不能包含字段分隔符 ':'，也不能包含换行（一行即一条记录，磁盘格式没有转义）
- INT 列只接受可选的单个负号加若干数字

旧版工具写入的 INT 值允许多个前导负号（如 "--5"）。这类值读取时按原文保留，
可以按原文查找、删除和更新其他列，但不再接受新的写入。
"""
import re
from typing import Union

from flatdb.engine.errors import EmptyValueError, ReservedCharacterError, TypeMismatchError
from flatdb.storage.schema_store import ColumnType, FIELD_SEPARATOR

INT_PATTERN = re.compile(r'-?[0-9]+')
LEGACY_INT_PATTERN = re.compile(r'-*[0-9]+')
RESERVED_CHARACTERS = (FIELD_SEPARATOR, "\n", "\r")

Value = Union[int, str]


def validate_value(value: str, column_type: ColumnType, column_name: str = '') -> None:
    label = f" for column '{column_name}'" if column_name else ''
    if value is None or value == '':
        raise EmptyValueError(f"Value{label} cannot be empty.", {'column': column_name})
    for ch in RESERVED_CHARACTERS:
        if ch in value:
            shown = repr(ch) if ch != FIELD_SEPARATOR else "':'"
            raise ReservedCharacterError(
                f"Value '{value}'{label} cannot contain {shown} character.",
                {'column': column_name, 'value': value},
            )
    if column_type is ColumnType.INT and not INT_PATTERN.fullmatch(value):
        raise TypeMismatchError(
            f"'{value}' is not a valid integer{label}.",
            {'column': column_name, 'value': value},
        )


def coerce_value(value: str, column_type: ColumnType, column_name: str = '') -> Value:
    """校验通过后返回带类型的值（INT -> int，STRING -> str）。"""
    validate_value(value, column_type, column_name)
    if column_type is ColumnType.INT:
        return int(value)
    return value


def is_legacy_int(text: str) -> bool:
    """旧版格式的整数文本（多个前导负号），严格语法不接受。"""
    return not INT_PATTERN.fullmatch(text) and LEGACY_INT_PATTERN.fullmatch(text) is not None


def coerce_lookup_value(value: str, column_type: ColumnType, column_name: str = '') -> Value:
    """
    查找用的主键转换：与 coerce_value 相同，
    但 INT 列额外接受旧版整数文本并原样返回，以便定位磁盘上的旧行。
    """
    try:
        return coerce_value(value, column_type, column_name)
    except TypeMismatchError:
        if column_type is ColumnType.INT and is_legacy_int(value):
            return value
        raise


def validate_column_type(text: str) -> ColumnType:
    return ColumnType.parse(text)
