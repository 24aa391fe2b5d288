from typing import Tuple

from flatdb.engine.errors import CorruptedTableError, ReservedCharacterError
from flatdb.engine.value_validator import INT_PATTERN, Value, is_legacy_int
from flatdb.storage.schema_store import ColumnType, FIELD_SEPARATOR, TableSchema

Row = Tuple[Value, ...]


class RowSerializer:
    """带类型的行 <-> 冒号分隔文本行"""

    def __init__(self, schema: TableSchema):
        self.schema = schema
        self.column_types = [col.column_type for col in schema.columns]

    def serialize(self, row: Row) -> str:
        if len(row) != self.schema.arity:
            raise ValueError(
                f"Row has {len(row)} values but table '{self.schema.table_name}' has {self.schema.arity} columns"
            )
        fields = []
        for val in row:
            text = str(val)
            if FIELD_SEPARATOR in text or '\n' in text or '\r' in text:
                raise ReservedCharacterError(f"Value '{text}' cannot contain ':' character.")
            fields.append(text)
        return FIELD_SEPARATOR.join(fields)

    def _decode_int(self, text: str, lineno: int) -> Value:
        # 与输入校验共用同一语法；旧版的 "--5" 按原文保留
        if INT_PATTERN.fullmatch(text):
            return int(text)
        if is_legacy_int(text):
            return text
        raise CorruptedTableError(
            f"Data of '{self.schema.table_name}' is corrupted at line {lineno}: "
            f"'{text}' is not an integer.",
            {'table': self.schema.table_name, 'line': lineno},
        )

    def deserialize(self, line: str, lineno: int = 0) -> Row:
        fields = line.split(FIELD_SEPARATOR)
        if len(fields) != self.schema.arity:
            raise CorruptedTableError(
                f"Data of '{self.schema.table_name}' is corrupted at line {lineno}: "
                f"expected {self.schema.arity} fields, found {len(fields)}.",
                {'table': self.schema.table_name, 'line': lineno},
            )
        values = []
        for col_type, text in zip(self.column_types, fields):
            if col_type is ColumnType.INT:
                values.append(self._decode_int(text, lineno))
            else:
                values.append(text)
        return tuple(values)
