# -*- coding: utf-8 -*-
"""
表引擎异常体系

所有校验失败与文件系统失败都以 TableEngineError 的子类抛出，
调用方（CLI）捕获后直接展示 message。
"""
from enum import Enum
from typing import Dict, Optional


class TableErrorType(Enum):
    """错误类别"""
    INVALID_NAME = "INVALID_NAME"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    NOT_FOUND = "NOT_FOUND"
    INVALID_COLUMN_COUNT = "INVALID_COLUMN_COUNT"
    INVALID_COLUMN_TYPE = "INVALID_COLUMN_TYPE"
    EMPTY_VALUE = "EMPTY_VALUE"
    RESERVED_CHARACTER = "RESERVED_CHARACTER"
    TYPE_MISMATCH = "TYPE_MISMATCH"
    DUPLICATE_KEY = "DUPLICATE_KEY"
    INVALID_COLUMN_INDEX = "INVALID_COLUMN_INDEX"
    CORRUPTED_TABLE = "CORRUPTED_TABLE"
    IO_FAILURE = "IO_FAILURE"


class TableEngineError(Exception):
    """表引擎异常基类"""

    error_type = TableErrorType.IO_FAILURE

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        return self.message


class InvalidNameError(TableEngineError):
    """名称不符合命名规则"""
    error_type = TableErrorType.INVALID_NAME


class AlreadyExistsError(TableEngineError):
    """表、数据库或列已存在"""
    error_type = TableErrorType.ALREADY_EXISTS


class NotFoundError(TableEngineError):
    """表、数据库或行不存在"""
    error_type = TableErrorType.NOT_FOUND


class InvalidColumnCountError(TableEngineError):
    error_type = TableErrorType.INVALID_COLUMN_COUNT


class InvalidColumnTypeError(TableEngineError):
    error_type = TableErrorType.INVALID_COLUMN_TYPE


class EmptyValueError(TableEngineError):
    error_type = TableErrorType.EMPTY_VALUE


class ReservedCharacterError(TableEngineError):
    error_type = TableErrorType.RESERVED_CHARACTER


class TypeMismatchError(TableEngineError):
    error_type = TableErrorType.TYPE_MISMATCH


class DuplicateKeyError(TableEngineError):
    error_type = TableErrorType.DUPLICATE_KEY


class InvalidColumnIndexError(TableEngineError):
    error_type = TableErrorType.INVALID_COLUMN_INDEX


class CorruptedTableError(TableEngineError):
    """磁盘上的 .meta/.data 文件违反格式约定（不变量被破坏，非用户输入错误）"""
    error_type = TableErrorType.CORRUPTED_TABLE


class IoFailureError(TableEngineError):
    """底层文件系统错误（权限、磁盘空间等）"""
    error_type = TableErrorType.IO_FAILURE
