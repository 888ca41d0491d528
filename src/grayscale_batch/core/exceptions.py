"""项目内使用的自定义异常定义。"""


class GrayscaleBatchError(Exception):
    """基础异常类型。"""


class InvalidConfigurationError(GrayscaleBatchError):
    """配置不合法时抛出。"""


class InputDirectoryNotFoundError(GrayscaleBatchError):
    """输入目录不存在或不是目录。"""


class NoSourceImagesError(GrayscaleBatchError):
    """输入目录中没有可处理的图片。"""


class OutputDirectoryError(GrayscaleBatchError):
    """无法创建输出目录。"""


class BatchInterrupted(GrayscaleBatchError):
    """等待全部任务完成时被中断，整批结果作废。"""
