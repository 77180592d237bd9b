"""
通用异常定义
"""


class CompileError(ValueError):
    """脚本或宏结构错误，整份脚本编译失败"""

    def __init__(self, message: str, line: str = ""):
        super().__init__(message)
        self.line = line


class SoftActionError(RuntimeError):
    """动作执行中的可恢复错误：记录后继续执行后续动作"""

    def __init__(self, action: str, message: str):
        super().__init__(message)
        self.action = action
