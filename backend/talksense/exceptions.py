"""语音处理流水线的异常类型。"""

from pathlib import Path


class ConfigurationError(RuntimeError):
    """启动时配置不可用（如找不到 ffmpeg）。"""


class PipelineError(Exception):
    """单次请求内的致命错误，只影响当前请求。"""

    stage: str = "pipeline"


class UploadMissing(PipelineError):
    """请求中没有 audio 文件，或上传文件不在磁盘上。"""

    stage = "received"

    def __init__(self, path: Path | None = None):
        self.path = path
        detail = f"uploaded file not found: {path}" if path else "no audio file in request"
        super().__init__(detail)


class ConversionError(PipelineError):
    """ffmpeg 退出码非零、无法解码输入或找不到可执行文件。"""

    stage = "converting"

    def __init__(self, input_path: Path, returncode: int | None, stderr: str = ""):
        self.input_path = input_path
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"ffmpeg failed for '{input_path}' (returncode={returncode}): {stderr.strip()}"
        )


class TranscriptionServiceError(PipelineError):
    """Speech-to-Text 调用失败：鉴权、配额、网络或响应异常。"""

    stage = "transcribing"


class AnalysisServiceError(PipelineError):
    """Natural Language 实体情感分析调用失败。"""

    stage = "analyzing"


class InvalidTransition(PipelineError):
    """阶段方法调用顺序错误。"""

    def __init__(self, current: str, expected: str):
        self.current = current
        self.expected = expected
        super().__init__(f"cannot run stage from {current!r}, expected {expected!r}")


class CleanupWarning(UserWarning):
    """临时文件删除失败，仅记录日志，不影响响应。"""

    def __init__(self, path: Path, cause: OSError):
        self.path = path
        self.cause = cause
        super().__init__(f"failed to remove temp file '{path}': {cause}")
