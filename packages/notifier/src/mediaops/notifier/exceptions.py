"""Notifier 异常体系

投递失败只在通知器内部传播，由 EventDispatcher 记录日志后吞掉，
不会让任何任务命令失败。
"""


class NotifierError(Exception):
    """Notifier 包基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试或降级恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class SinkUnreachableError(NotifierError):
    """投递端不可达（连接失败、超时、DNS 解析失败等）

    此异常触发 FallbackSink 的降级逻辑。
    """

    def __init__(self, url: str, original_error: Exception) -> None:
        """
        Args:
            url: 尝试连接的地址
            original_error: 原始异常
        """
        super().__init__(
            f"通知投递端不可达: {url} -- {original_error}",
            recoverable=True,
        )
        self.url = url
        self.original_error = original_error
