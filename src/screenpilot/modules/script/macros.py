"""
宏展开

宏文件格式：
    macro login
    tap the login button
    ...
    endMacro

脚本中以单独一行 `m login` 调用，展开为宏内容（不递归展开）。
"""
from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ...core.errors import CompileError
from ...core.logger import logger

MacroTable = Mapping[str, Tuple[str, ...]]

_MACRO_OPEN = "macro "
_MACRO_CLOSE = "endMacro"
_MACRO_CALL = "m "

EMPTY_MACROS: MacroTable = MappingProxyType({})


def parse_macros(lines: Iterable[str]) -> MacroTable:
    """解析宏定义，返回只读的 名称 -> 行 映射"""
    macros: Dict[str, Tuple[str, ...]] = {}
    current_name: Optional[str] = None
    current_body: List[str] = []

    for line in lines:
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue
        if trimmed.startswith(_MACRO_OPEN):
            if current_name is not None:
                raise CompileError(f"Nested or unclosed macro detected: {current_name}", line)
            current_name = trimmed[len(_MACRO_OPEN):].strip()
        elif trimmed == _MACRO_CLOSE:
            if current_name is None:
                raise CompileError("'endMacro' found without matching 'macro'", line)
            macros[current_name] = tuple(current_body)
            current_name = None
            current_body = []
        elif current_name is not None:
            current_body.append(trimmed)
        # 宏块外的行忽略

    if current_name is not None:
        raise CompileError(f"Unclosed macro detected: {current_name}")

    return MappingProxyType(macros)


def load_macros(path) -> MacroTable:
    """从文件加载宏；文件不存在时返回空表"""
    path = Path(path)
    if not path.exists():
        logger.debug(f"宏文件不存在，跳过: {path}")
        return EMPTY_MACROS
    macros = parse_macros(path.read_text(encoding="utf-8").splitlines())
    logger.debug(f"已加载 {len(macros)} 个宏: {path}")
    return macros


def expand_macros(lines: Iterable[str], macros: MacroTable) -> List[str]:
    """将 `m <name>` 行替换为宏内容，其余行保持原顺序"""
    result: List[str] = []
    for line in lines:
        trimmed = line.strip()
        if trimmed.startswith(_MACRO_CALL):
            name = trimmed[len(_MACRO_CALL):].strip()
            body = macros.get(name)
            if body is None:
                raise CompileError(f"Undefined macro: {name}", line)
            result.extend(body)
        else:
            result.append(line)
    return result
