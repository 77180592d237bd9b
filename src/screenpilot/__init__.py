"""
screenpilot - 脚本驱动、视觉校验的移动端 UI 自动化测试
"""
__version__ = "1.0.0"
