# In engine/table_engine.py
"""
表引擎（TableEngine）

组合 SchemaStore、值校验器与 RowStore，对一个数据库目录提供表级操作：
建表、列表、删表、插入、查询（可选列投影）、删除行、更新单元格。

说明：
- 所有校验在写入之前完成，任何一步失败都不会留下部分写入
- 每个操作在对应表的互斥锁内执行
- 引擎本身不做任何终端交互，结果以 results 中的数据类返回，失败以 TableEngineError 抛出
"""

import re
from typing import Callable, List, Optional, Sequence, Tuple, Union

from loguru import logger

from flatdb.engine.column_builder import ColumnSpecBuilder
from flatdb.engine.errors import (
    AlreadyExistsError,
    DuplicateKeyError,
    InvalidColumnCountError,
    InvalidColumnIndexError,
    NotFoundError,
    TableEngineError,
)
from flatdb.engine.lock_manager import ResourceID, TableLockManager, get_lock_manager
from flatdb.engine.name_validator import validate_name
from flatdb.engine.results import CellUpdate, DeletedRow, SelectResult
from flatdb.engine.value_validator import coerce_lookup_value, coerce_value
from flatdb.storage.row_serializer import Row, RowSerializer, Value
from flatdb.storage.row_store import RowStore, RowTransform
from flatdb.storage.schema_store import SchemaStore, TableSchema

ColumnSpecs = Union[ColumnSpecBuilder, Sequence[Tuple[str, str]]]


def _as_text(value) -> str:
    return '' if value is None else str(value)


def _first_match(key: Value, change: Callable[[Row], Optional[Row]]) -> RowTransform:
    """
    只对第一条主键等于 key 的行应用 change，其余行原样保留。
    旧文件中可能存在文本不同但数值相同的键（如 "01" 与 "1"），这里与 find_by_key 命中同一行。
    """
    done = False

    def transform(row: Row) -> Optional[Row]:
        nonlocal done
        if done or row[0] != key:
            return row
        done = True
        return change(row)

    return transform


def parse_projection(text: str) -> List[int]:
    """
    解析列选择输入，如 "1,3" / "3 1 1"。
    只校验格式，范围检查由 select 根据表结构完成。
    """
    tokens = [tok for tok in re.split(r'[\s,]+', (text or '').strip()) if tok]
    if not tokens:
        raise InvalidColumnIndexError("Please enter at least one column number.", {'input': text})
    indices = []
    for tok in tokens:
        if not (tok.isascii() and tok.isdigit()):
            raise InvalidColumnIndexError(f"Invalid column number '{tok}'.", {'input': text})
        indices.append(int(tok))
    return indices


class TableEngine:
    """
    单个数据库目录上的表引擎。
    """
    def __init__(self, db_dir: str, lock_manager: Optional[TableLockManager] = None):
        """
        :param db_dir: 数据库目录（由数据库管理层创建并校验）。
        :param lock_manager: 表级锁管理器，缺省使用进程级共享实例。
        """
        self.db_dir = db_dir
        self.schema_store = SchemaStore(db_dir)
        self.lock_manager = lock_manager or get_lock_manager()

    def _lock(self, table_name: str):
        return self.lock_manager.acquire(ResourceID.for_table(self.db_dir, table_name))

    def _row_store(self, schema: TableSchema) -> RowStore:
        return RowStore(self.schema_store.data_path(schema.table_name), RowSerializer(schema))

    def _open(self, table_name: str) -> Tuple[TableSchema, RowStore]:
        validate_name(table_name, 'Table name')
        schema = self.schema_store.load(table_name)
        return schema, self._row_store(schema)

    def _coerce_key(self, schema: TableSchema, pk_value) -> Value:
        pk_col = schema.primary_key_column()
        return coerce_lookup_value(_as_text(pk_value), pk_col.column_type, pk_col.name)

    # --- 表结构管理 ---

    def create_table(self, table_name: str, columns: ColumnSpecs) -> TableSchema:
        """
        创建新表：写入 .meta 并创建空的 .data。
        :param columns: 已完成的 ColumnSpecBuilder，或 (列名, 类型) 序列。
        """
        validate_name(table_name, 'Table name')
        if self.schema_store.exists(table_name):
            raise AlreadyExistsError(f"Table '{table_name}' already exists.", {'table': table_name})
        if isinstance(columns, ColumnSpecBuilder):
            column_infos = columns.build()
        else:
            if not columns:
                raise InvalidColumnCountError(
                    f"Table '{table_name}' needs at least one column.", {'table': table_name}
                )
            builder = ColumnSpecBuilder(len(columns))
            for name, type_text in columns:
                builder.add(name, type_text)
            column_infos = builder.build()

        with self._lock(table_name):
            schema = self.schema_store.create(table_name, column_infos)
            try:
                self._row_store(schema).create()
            except TableEngineError:
                self.schema_store.drop(table_name)
                raise
        logger.info(f"表 '{table_name}' 创建成功，列: {schema.column_names}")
        return schema

    def list_tables(self) -> List[str]:
        return self.schema_store.list_tables()

    def table_exists(self, table_name: str) -> bool:
        return self.schema_store.exists(table_name)

    def describe_table(self, table_name: str) -> TableSchema:
        validate_name(table_name, 'Table name')
        return self.schema_store.load(table_name)

    def drop_table(self, table_name: str) -> None:
        validate_name(table_name, 'Table name')
        with self._lock(table_name):
            if not self.schema_store.exists(table_name):
                raise NotFoundError(f"Table '{table_name}' does not exist.", {'table': table_name})
            self.schema_store.drop(table_name)
            RowStore(self.schema_store.data_path(table_name)).drop()
        logger.info(f"表 '{table_name}' 已删除")

    # --- 数据操作 ---

    def insert_row(self, table_name: str, values: Sequence[str]) -> Row:
        """
        按列顺序校验每个值；主键列额外检查唯一性。
        第一个失败即中止，不写入任何内容。
        """
        with self._lock(table_name):
            schema, store = self._open(table_name)
            if len(values) != schema.arity:
                raise InvalidColumnCountError(
                    f"Table '{table_name}' expects {schema.arity} values, got {len(values)}.",
                    {'table': table_name, 'expected': schema.arity, 'got': len(values)},
                )
            row = []
            for col, raw in zip(schema.columns, values):
                value = coerce_value(_as_text(raw), col.column_type, col.name)
                if col.is_primary_key and store.find_by_key(value) is not None:
                    logger.warning(f"插入 '{table_name}' 被拒绝：主键 {value!r} 已存在")
                    raise DuplicateKeyError(
                        f"Primary Key '{value}' already exists.",
                        {'table': table_name, 'column': col.name, 'value': value},
                    )
                row.append(value)
            row = tuple(row)
            store.append(row)
        logger.info(f"表 '{table_name}' 插入一行: {row}")
        return row

    def select(self, table_name: str, projection: Optional[Sequence[int]] = None) -> SelectResult:
        """
        读取全部行。projection 为 None 时返回所有列；否则为 1 起编号的列号列表，
        允许重复与重排，结果按给定顺序排列。
        """
        with self._lock(table_name):
            schema, store = self._open(table_name)
            if projection is None:
                positions = list(range(schema.arity))
            else:
                if not projection:
                    raise InvalidColumnIndexError(
                        "Please select at least one column.", {'table': table_name}
                    )
                for index in projection:
                    schema.column_at(index)
                positions = [index - 1 for index in projection]
            headers = [schema.columns[p].name for p in positions]
            rows = [tuple(row[p] for p in positions) for row in store.scan()]
        logger.debug(f"查询表 '{table_name}'，列 {headers}，共 {len(rows)} 行")
        return SelectResult(table_name, headers, rows)

    def row_count(self, table_name: str) -> int:
        with self._lock(table_name):
            _, store = self._open(table_name)
            return store.count()

    def is_empty(self, table_name: str) -> bool:
        with self._lock(table_name):
            _, store = self._open(table_name)
            return store.is_empty()

    def find_row(self, table_name: str, pk_value) -> Optional[Row]:
        with self._lock(table_name):
            schema, store = self._open(table_name)
            return store.find_by_key(self._coerce_key(schema, pk_value))

    def update_cell(self, table_name: str, pk_value, column_index: int, new_value: str) -> CellUpdate:
        """
        更新主键为 pk_value 的行中第 column_index 列（1 起）的值。
        更新主键列时检查与其他行的冲突（与自身相同不算冲突）。
        """
        with self._lock(table_name):
            schema, store = self._open(table_name)
            key = self._coerce_key(schema, pk_value)
            target = store.find_by_key(key)
            if target is None:
                raise NotFoundError(
                    f"No row found with {schema.primary_key_column().name} = '{pk_value}'.",
                    {'table': table_name, 'pk': pk_value},
                )
            column = schema.column_at(column_index)
            value = coerce_value(_as_text(new_value), column.column_type, column.name)
            if column.is_primary_key and value != key and store.find_by_key(value) is not None:
                logger.warning(f"更新 '{table_name}' 被拒绝：主键 {value!r} 已存在")
                raise DuplicateKeyError(
                    f"Primary Key '{value}' already exists.",
                    {'table': table_name, 'column': column.name, 'value': value},
                )
            position = column_index - 1
            old_value = target[position]

            def replace_cell(row: Row) -> Row:
                updated = list(row)
                updated[position] = value
                return tuple(updated)

            store.rewrite(_first_match(key, replace_cell))
        logger.info(f"表 '{table_name}' 主键 {key!r} 的列 '{column.name}': {old_value!r} -> {value!r}")
        return CellUpdate(table_name, key, column_index, column.name, old_value, value)

    def delete_row(self, table_name: str, pk_value) -> DeletedRow:
        """删除主键为 pk_value 的行，返回被删除行的完整内容。"""
        with self._lock(table_name):
            schema, store = self._open(table_name)
            key = self._coerce_key(schema, pk_value)
            target = store.find_by_key(key)
            if target is None:
                raise NotFoundError(
                    f"No row found with {schema.primary_key_column().name} = '{pk_value}'.",
                    {'table': table_name, 'pk': pk_value},
                )
            store.rewrite(_first_match(key, lambda row: None))
        logger.info(f"表 '{table_name}' 删除一行: {target}")
        return DeletedRow(table_name, schema.column_names, target)
