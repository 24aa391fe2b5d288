"""
命令行前端：数据库目录管理（system_manager）与菜单交互（cli_interface）。
"""
