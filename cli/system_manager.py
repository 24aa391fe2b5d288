# system_manager.py

import os
import shutil
from typing import List, Optional

from loguru import logger

from flatdb.engine.errors import AlreadyExistsError, IoFailureError, NotFoundError
from flatdb.engine.lock_manager import TableLockManager
from flatdb.engine.name_validator import is_valid_name, validate_name
from flatdb.engine.table_engine import TableEngine

DEFAULT_DATA_DIR = 'databases'


class SystemManager:
    """系统管理类，负责数据库目录的生命周期以及当前连接的表引擎"""

    def __init__(self, base_data_dir: str = DEFAULT_DATA_DIR, lock_manager: Optional[TableLockManager] = None):
        self.base_data_dir = base_data_dir
        self.lock_manager = lock_manager
        self.current_db_name: Optional[str] = None
        self._engine: Optional[TableEngine] = None

        try:
            os.makedirs(self.base_data_dir, exist_ok=True)
        except OSError as e:
            raise IoFailureError(f"Could not create data directory '{base_data_dir}': {e}") from e

    def database_path(self, db_name: str) -> str:
        return os.path.join(self.base_data_dir, db_name)

    def database_exists(self, db_name: str) -> bool:
        return os.path.isdir(self.database_path(db_name))

    def create_database(self, db_name: str) -> str:
        """创建一个新的数据库目录"""
        validate_name(db_name, 'Database name')
        db_path = self.database_path(db_name)
        if os.path.exists(db_path):
            raise AlreadyExistsError(f"Database '{db_name}' already exists.", {'database': db_name})
        try:
            os.makedirs(db_path)
        except OSError as e:
            raise IoFailureError(f"Could not create database '{db_name}': {e}") from e
        logger.info(f"数据库 '{db_name}' 创建成功")
        return db_path

    def list_databases(self) -> List[str]:
        try:
            entries = os.listdir(self.base_data_dir)
        except OSError as e:
            raise IoFailureError(f"Could not list databases: {e}") from e
        # 名称不合法的目录（如 .git、临时目录）不视为数据库
        return sorted(
            name for name in entries
            if is_valid_name(name) and os.path.isdir(self.database_path(name))
        )

    def use_database(self, db_name: str) -> TableEngine:
        """切换到指定的数据库上下文"""
        validate_name(db_name, 'Database name')
        if not self.database_exists(db_name):
            raise NotFoundError(f"Database '{db_name}' does not exist.", {'database': db_name})
        self.current_db_name = db_name
        self._engine = TableEngine(self.database_path(db_name), lock_manager=self.lock_manager)
        logger.debug(f"已连接数据库 '{db_name}'")
        return self._engine

    def disconnect(self) -> None:
        self.current_db_name = None
        self._engine = None

    def get_engine(self) -> TableEngine:
        """获取当前数据库的表引擎"""
        if self._engine is None:
            raise NotFoundError("No database selected. Connect to a database first.")
        return self._engine

    def drop_database(self, db_name: str) -> None:
        """删除一个数据库及其所有文件"""
        validate_name(db_name, 'Database name')
        if not self.database_exists(db_name):
            raise NotFoundError(f"Database '{db_name}' does not exist.", {'database': db_name})
        if self.current_db_name == db_name:
            self.disconnect()
        try:
            shutil.rmtree(self.database_path(db_name))
        except OSError as e:
            raise IoFailureError(f"Could not delete database '{db_name}': {e}") from e
        logger.info(f"数据库 '{db_name}' 已删除")
