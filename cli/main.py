# main.py

import argparse
import os
import sys

from loguru import logger

from cli.cli_interface import CLIInterface
from cli.system_manager import DEFAULT_DATA_DIR, SystemManager
from flatdb.engine.errors import TableEngineError


def configure_logging(level: str = "WARNING"):
    """移除 loguru 默认输出，只保留指定级别以上的日志到 stderr"""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format="{time:HH:mm:ss} | {level: <8} | {message}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="flatdb", description="基于平面文件的表格数据库（菜单式命令行）")
    parser.add_argument(
        "--data-dir",
        default=os.environ.get("FLATDB_DATA_DIR", DEFAULT_DATA_DIR),
        help="存放所有数据库目录的根目录 (默认: ./databases，可用环境变量 FLATDB_DATA_DIR 覆盖)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="日志级别 (默认: WARNING)",
    )
    return parser


def main(argv=None) -> int:
    """主函数，启动菜单式命令行。"""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    try:
        system_manager = SystemManager(base_data_dir=args.data_dir)
    except TableEngineError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    CLIInterface(system_manager=system_manager).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
