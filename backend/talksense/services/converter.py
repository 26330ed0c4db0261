"""ffmpeg 转码：任意容器的上传音频 -> FLAC（无视频流，固定采样率）。"""

import asyncio
import shutil
from pathlib import Path

from loguru import logger

from talksense.config import get_settings
from talksense.exceptions import ConfigurationError, ConversionError

OUTPUT_SUFFIX = ".flac"


def resolve_ffmpeg(path: str) -> str:
    """启动时解析 ffmpeg 可执行文件，找不到则直接失败。"""
    resolved = shutil.which(path)
    if resolved is None:
        raise ConfigurationError(f"ffmpeg 不可用: {path!r}，请安装或设置 FFMPEG_PATH")
    return resolved


def output_path_for(input_path: str | Path) -> Path:
    """输出路径 = 输入路径 + .flac。"""
    return Path(f"{input_path}{OUTPUT_SUFFIX}")


def build_command(ffmpeg: str, input_path: Path, output_path: Path, sample_rate: int) -> list[str]:
    return [
        ffmpeg,
        "-hide_banner",
        "-loglevel",
        "error",
        "-y",
        "-i",
        str(input_path),
        "-vn",
        "-acodec",
        "flac",
        "-ac",
        "1",
        "-ar",
        str(sample_rate),
        str(output_path),
    ]


async def convert(
    input_path: str | Path,
    *,
    ffmpeg: str | None = None,
    sample_rate: int | None = None,
) -> Path:
    """
    转码为 FLAC。成功时删除输入文件并返回输出路径。

    失败时抛出 ConversionError（带 ffmpeg stderr），输入文件保留，由调用方决定是否删除。
    """
    settings = get_settings()
    ffmpeg = ffmpeg or settings.ffmpeg_path
    sample_rate = sample_rate or settings.recognition.sample_rate_hertz
    input_path = Path(input_path)
    output_path = output_path_for(input_path)

    if not input_path.is_file():
        raise ConversionError(input_path, None, "input file not found")

    cmd = build_command(ffmpeg, input_path, output_path, sample_rate)
    logger.debug(f"{cmd=}")
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        # ffmpeg 不存在或无执行权限
        raise ConversionError(input_path, None, str(e)) from e

    _, stderr_bytes = await proc.communicate()
    stderr = stderr_bytes.decode("utf-8", errors="replace") if stderr_bytes else ""

    if proc.returncode != 0:
        output_path.unlink(missing_ok=True)
        raise ConversionError(input_path, proc.returncode, stderr)
    if not output_path.is_file():
        raise ConversionError(input_path, proc.returncode, stderr or "no output produced")

    try:
        input_path.unlink()
    except OSError as e:
        output_path.unlink(missing_ok=True)
        raise ConversionError(input_path, proc.returncode, f"failed to remove input: {e}") from e
    logger.info(f"converted {input_path.name=} {output_path.stat().st_size=}")
    return output_path
