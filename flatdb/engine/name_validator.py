# -*- coding: utf-8 -*-
"""
名称校验：数据库名、表名、列名共用同一规则。
- 不能为空
- 必须以字母开头
- 其余字符只能是字母、数字或下划线
"""
import re

from flatdb.engine.errors import InvalidNameError

NAME_PATTERN = re.compile(r'^[a-zA-Z][a-zA-Z0-9_]*$')


def validate_name(name: str, kind: str = 'Name') -> str:
    """校验名称，合法时原样返回，否则抛出 InvalidNameError。"""
    if not name:
        raise InvalidNameError(f"{kind} cannot be empty.", {'name': name})
    if not name[0].isascii() or not name[0].isalpha():
        raise InvalidNameError(f"{kind} '{name}' must start with a letter.", {'name': name})
    if not NAME_PATTERN.fullmatch(name):
        raise InvalidNameError(
            f"{kind} '{name}' can only contain letters, numbers, and underscore.",
            {'name': name},
        )
    return name


def is_valid_name(name: str) -> bool:
    return bool(name) and NAME_PATTERN.fullmatch(name) is not None
