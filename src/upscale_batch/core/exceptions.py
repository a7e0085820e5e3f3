"""项目内使用的自定义异常定义。"""


class UpscaleBatchError(Exception):
    """基础异常类型。"""


class InvalidConfigurationError(UpscaleBatchError):
    """配置不合法时抛出。"""


class BatchIOError(UpscaleBatchError, OSError):
    """目录读取或创建失败。"""


class DirectoryScanError(BatchIOError):
    """输入根目录不存在或不可读，整个批次在启动任何任务前中止。"""


class OutputDirectoryError(BatchIOError):
    """单个任务的输出目录创建失败。"""


class LaunchError(UpscaleBatchError):
    """外部程序无法启动。"""


class ProcessError(UpscaleBatchError):
    """外部程序输出中出现致命错误标记。"""


class MetadataError(UpscaleBatchError):
    """单个文件的元数据复制失败，不影响任务结果。"""
