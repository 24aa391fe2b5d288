"""
Storage 子系统：平面文件上的表结构与行数据。

模块清单：
- schema_store: 列定义文件 <table>.meta 的读写与表枚举
- row_serializer: 带类型的行与冒号分隔文本之间的转换
- row_store: 行数据文件 <table>.data 的扫描、追加与原子重写
"""
