# -*- coding: utf-8 -*-
"""
CLI接口模块
封装菜单式的命令行交互：数据库管理主菜单与表管理子菜单
"""

from typing import Callable, List, Optional, Sequence, Tuple

from loguru import logger
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cli.system_manager import SystemManager
from flatdb.engine.column_builder import ColumnSpecBuilder
from flatdb.engine.errors import DuplicateKeyError, TableEngineError
from flatdb.engine.name_validator import validate_name
from flatdb.engine.table_engine import TableEngine, parse_projection
from flatdb.engine.value_validator import coerce_value
from flatdb.storage.schema_store import TableSchema

CONFIRM_ANSWERS = ('y', 'yes')


class CLIInterface:
    """命令行接口类"""

    def __init__(self, system_manager: SystemManager, console: Optional[Console] = None):
        self.system_manager = system_manager
        self.console = console or Console()
        self.main_actions: List[Tuple[str, Callable[[], None]]] = [
            ("Create Database", self.create_database),
            ("List Databases", self.list_databases),
            ("Connect to Database", self.connect_database),
            ("Delete Database", self.delete_database),
        ]
        self.table_actions: List[Tuple[str, Callable[[TableEngine], None]]] = [
            ("Create Table", self.create_table),
            ("List Tables", self.list_tables),
            ("Drop Table", self.drop_table),
            ("Insert Row", self.insert_row),
            ("Show Data", self.show_data),
            ("Delete Row", self.delete_row),
            ("Update Cell", self.update_cell),
        ]

    # --- 输入输出辅助 ---

    def ask(self, prompt: str) -> str:
        """读取一行输入；EOF 视为退出"""
        return self.console.input(f"[bold]{escape(prompt)}[/bold] ").strip()

    def confirm(self, prompt: str) -> bool:
        return self.ask(f"{prompt} (y/n):").lower() in CONFIRM_ANSWERS

    def error(self, message: str):
        self.console.print(f"[bold red]Error:[/bold red] {escape(message)}", highlight=False)

    def success(self, message: str):
        self.console.print(f"[bold green]{escape(message)}[/bold green]", highlight=False)

    def info(self, message: str):
        self.console.print(escape(message), highlight=False)

    def print_menu(self, title: str, subtitle: str, labels: Sequence[str]):
        table = Table(title=title, caption=subtitle or None, box=box.ROUNDED, show_header=False)
        table.add_column("No.", style="cyan", justify="right")
        table.add_column("Action")
        for i, label in enumerate(labels, 1):
            table.add_row(str(i), label)
        self.console.print(table)

    def print_rows(self, headers: Sequence[str], rows: Sequence[Sequence], title: str = None):
        if not rows:
            self.console.print("[bold yellow](No data in table)[/bold yellow]")
            return
        table = Table(title=title, show_header=True, header_style="bold cyan", box=box.SIMPLE_HEAVY)
        for name in headers:
            table.add_column(name)
        for row in rows:
            table.add_row(*(escape(str(v)) for v in row))
        self.console.print(table)
        self.console.print(f"[bold green]({len(rows)} rows)[/bold green]")

    def print_schema(self, schema: TableSchema):
        table = Table(title="TABLE STRUCTURE", show_header=True, header_style="bold cyan", box=box.SIMPLE_HEAVY)
        table.add_column("#", justify="right")
        table.add_column("Column Name")
        table.add_column("Type")
        table.add_column("Key")
        for i, col in enumerate(schema.columns, 1):
            table.add_row(str(i), col.name, col.column_type.value, "PRIMARY" if col.is_primary_key else "")
        self.console.print(table)

    def print_names(self, title: str, names: Sequence[str], empty_message: str):
        if not names:
            self.console.print(f"[bold yellow]{empty_message}[/bold yellow]")
            return
        table = Table(title=title, show_header=False, box=box.SIMPLE)
        table.add_column("No.", style="cyan", justify="right")
        table.add_column("Name", style="green")
        for i, name in enumerate(names, 1):
            table.add_row(str(i), escape(name))
        self.console.print(table)
        self.info(f"Total: {len(names)}")

    # --- 主循环 ---

    def run(self):
        """运行主菜单循环"""
        self.console.rule("[bold]DATABASE MANAGEMENT SYSTEM[/bold]")
        try:
            while True:
                labels = [label for label, _ in self.main_actions] + ["Exit"]
                self.print_menu("DATABASE MANAGEMENT SYSTEM", "", labels)
                choice = self.ask(f"Enter your choice [1-{len(labels)}]:")
                if choice == str(len(labels)) or choice.lower() in ('q', 'quit', 'exit'):
                    break
                action = self._pick(self.main_actions, choice)
                if action is None:
                    self.error(f"Invalid choice. Please enter 1-{len(labels)}.")
                    continue
                self._guarded(action)
        except (KeyboardInterrupt, EOFError):
            self.info("")
        self.info("Goodbye!")

    def table_menu(self, engine: TableEngine):
        """已连接数据库后的表管理子菜单"""
        db_name = self.system_manager.current_db_name
        while True:
            labels = [label for label, _ in self.table_actions] + ["Back to Main Menu"]
            self.print_menu("TABLE MANAGEMENT", f"Database: {db_name}", labels)
            choice = self.ask(f"Enter your choice [1-{len(labels)}]:")
            if choice == str(len(labels)):
                self.system_manager.disconnect()
                return
            action = self._pick(self.table_actions, choice)
            if action is None:
                self.error(f"Invalid choice. Please enter 1-{len(labels)}.")
                continue
            self._guarded(action, engine)

    @staticmethod
    def _pick(actions, choice: str):
        if choice.isascii() and choice.isdigit() and 1 <= int(choice) <= len(actions):
            return actions[int(choice) - 1][1]
        return None

    def _guarded(self, action, *args):
        try:
            action(*args)
        except TableEngineError as e:
            logger.warning(f"操作失败 [{e.error_type.value}]: {e.message}")
            self.error(e.message)

    # --- 数据库操作 ---

    def create_database(self):
        db_name = self.ask("Enter database name:")
        self.system_manager.create_database(db_name)
        self.success(f"Database '{db_name}' created successfully!")

    def list_databases(self):
        self.print_names("Available databases", self.system_manager.list_databases(), "No databases found.")

    def connect_database(self):
        names = self.system_manager.list_databases()
        if not names:
            self.info("No databases available. Create one first.")
            return
        self.print_names("Available databases", names, "")
        db_name = self.ask("Enter database name to connect:")
        engine = self.system_manager.use_database(db_name)
        self.success(f"Connected to '{db_name}'")
        self.table_menu(engine)

    def delete_database(self):
        names = self.system_manager.list_databases()
        if not names:
            self.info("No databases available to delete.")
            return
        self.print_names("Available databases", names, "")
        db_name = self.ask("Enter database name to delete:")
        validate_name(db_name, 'Database name')
        if not self.system_manager.database_exists(db_name):
            self.error(f"Database '{db_name}' does not exist.")
            return
        if not self.confirm(f"Are you sure you want to delete '{db_name}'?"):
            self.info("Deletion cancelled.")
            return
        self.system_manager.drop_database(db_name)
        self.success(f"Database '{db_name}' deleted successfully!")

    # --- 表操作 ---

    def _ask_existing_table(self, engine: TableEngine, prompt: str = "Enter table name:") -> TableSchema:
        self.print_names("Tables", engine.list_tables(), "No tables found.")
        table_name = self.ask(prompt)
        validate_name(table_name, 'Table name')
        return engine.describe_table(table_name)

    def create_table(self, engine: TableEngine):
        table_name = self.ask("Enter table name:")
        validate_name(table_name, 'Table name')
        if engine.table_exists(table_name):
            self.error(f"Table '{table_name}' already exists.")
            return
        builder = ColumnSpecBuilder.parse_count(self.ask("Enter number of columns:"))
        self.info("Define your columns (data types: int, string). The first column is the Primary Key.")
        while not builder.is_complete:
            self.console.print(f"[cyan]--- Column {builder.current_slot} ---[/cyan]")
            col_name = self.ask("Column name:")
            col_type = self.ask("Data type (int/string):")
            column, err = builder.try_add(col_name, col_type)
            if err is not None:
                # 只重试当前列，已确认的列保留
                self.error(err.message)
                self.info("Try again.")
                continue
            if column.is_primary_key:
                self.info("(This column is the Primary Key)")
        engine.create_table(table_name, builder)
        self.success(f"Table '{table_name}' created successfully!")

    def list_tables(self, engine: TableEngine):
        db_name = self.system_manager.current_db_name
        self.print_names(f"Tables in {db_name}", engine.list_tables(), "No tables found.")

    def drop_table(self, engine: TableEngine):
        schema = self._ask_existing_table(engine, "Enter table name to drop:")
        if not self.confirm(f"Are you sure you want to drop '{schema.table_name}'?"):
            self.info("Operation cancelled.")
            return
        engine.drop_table(schema.table_name)
        self.success(f"Table '{schema.table_name}' dropped successfully!")

    def insert_row(self, engine: TableEngine):
        schema = self._ask_existing_table(engine)
        self.info("Enter values for each column:")
        values = []
        for col in schema.columns:
            suffix = " [PRIMARY KEY]" if col.is_primary_key else ""
            raw = self.ask(f"{col.name} ({col.column_type.value}){suffix}:")
            # 逐列即时校验，首个错误即中止本次插入
            value = coerce_value(raw, col.column_type, col.name)
            if col.is_primary_key and engine.find_row(schema.table_name, raw) is not None:
                raise DuplicateKeyError(f"Primary Key '{value}' already exists.")
            values.append(raw)
        engine.insert_row(schema.table_name, values)
        self.success("Row inserted successfully!")

    def show_data(self, engine: TableEngine):
        schema = self._ask_existing_table(engine)
        self.print_schema(schema)
        self.info("Display options:\n  1. Show all columns\n  2. Select specific columns")
        choice = self.ask("Enter choice (1 or 2):")
        projection = None
        if choice == '2':
            for i, name in enumerate(schema.column_names, 1):
                self.info(f"  {i}. {name}")
            projection = parse_projection(self.ask("Enter column numbers separated by comma (e.g., 1,3):"))
        result = engine.select(schema.table_name, projection)
        self.print_rows(result.headers, result.rows, title="TABLE DATA")

    def delete_row(self, engine: TableEngine):
        schema = self._ask_existing_table(engine)
        if engine.is_empty(schema.table_name):
            self.info("Table is empty.")
            return
        pk_name = schema.primary_key_column().name
        pk_value = self.ask(f"Enter Primary Key ({pk_name}) value to delete:")
        row = engine.find_row(schema.table_name, pk_value)
        if row is None:
            self.error(f"No row found with {pk_name} = '{pk_value}'")
            return
        self.print_rows(schema.column_names, [row], title="Row to delete")
        if not self.confirm("Are you sure?"):
            self.info("Operation cancelled.")
            return
        engine.delete_row(schema.table_name, pk_value)
        self.success("Row deleted successfully!")

    def update_cell(self, engine: TableEngine):
        schema = self._ask_existing_table(engine)
        current = engine.select(schema.table_name)
        if not current.rows:
            self.info("Table is empty.")
            return
        self.print_rows(current.headers, current.rows, title="Current data")
        pk_name = schema.primary_key_column().name
        pk_value = self.ask(f"Enter Primary Key ({pk_name}) value:")
        row = engine.find_row(schema.table_name, pk_value)
        if row is None:
            self.error(f"No row found with {pk_name} = '{pk_value}'")
            return
        for i, col in enumerate(schema.columns, 1):
            self.info(f"  {i}. {col.name} ({col.column_type.value})")
        index_text = self.ask(f"Enter column number to update (1-{schema.arity}):")
        column_index = parse_projection(index_text)
        if len(column_index) != 1:
            self.error("Please enter a single column number.")
            return
        column = schema.column_at(column_index[0])
        self.info(f"Current value of '{column.name}': {row[column_index[0] - 1]}")
        new_value = self.ask("Enter new value:")
        update = engine.update_cell(schema.table_name, pk_value, column_index[0], new_value)
        self.success("Cell updated successfully!")
        self.info(f"Changed '{update.column_name}' from '{update.old_value}' to '{update.new_value}'")
