"""talksense：录音转写 + 实体情感分析服务。"""

__version__ = "0.1.0"
