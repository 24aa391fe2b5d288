"""
Engine 子系统：校验、表级锁与表引擎。

模块清单：
- errors: 异常体系
- name_validator / value_validator: 名称与值校验
- lock_manager: 进程内表级互斥锁
- column_builder: 逐列构建表结构
- table_engine: 对外的表操作入口
"""
