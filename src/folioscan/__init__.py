"""folioscan：把翻书视频转换为去重后的页面图像与可检索 PDF。"""

__version__ = "0.1.0"
