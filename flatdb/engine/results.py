"""表引擎各操作的返回结果"""

from dataclasses import dataclass, field
from typing import List

from flatdb.storage.row_serializer import Row, Value


@dataclass
class SelectResult:
    table_name: str
    headers: List[str] = field(default_factory=list)
    rows: List[Row] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)


@dataclass
class CellUpdate:
    table_name: str
    pk_value: Value
    column_index: int
    column_name: str
    old_value: Value
    new_value: Value


@dataclass
class DeletedRow:
    table_name: str
    headers: List[str]
    row: Row
