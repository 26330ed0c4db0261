"""上传文件落盘与临时文件清理。"""

import re
import time
import uuid
from collections.abc import Iterable
from pathlib import Path

from fastapi import UploadFile
from loguru import logger

from talksense.exceptions import CleanupWarning
from talksense.schemas.speech import UploadedClip

CHUNK_SIZE = 64 * 1024
ORPHAN_MIN_AGE_SEC = 600
_SAFE_SUFFIX = re.compile(r"^\.[A-Za-z0-9]{1,8}$")
# save_upload 与 converter.output_path_for 产生的文件名
_TEMP_NAME = re.compile(r"^[0-9a-f]{32}(\.[a-z0-9]{1,8})?(\.flac)?$")


def _suffix_for(filename: str | None) -> str:
    suffix = Path(filename).suffix if filename else ""
    return suffix.lower() if _SAFE_SUFFIX.match(suffix) else ""


async def save_upload(audio: UploadFile, upload_dir: Path) -> UploadedClip:
    """把上传内容写入 upload_dir 下唯一文件名（uuid4），并发请求互不冲突。"""
    upload_dir.mkdir(parents=True, exist_ok=True)
    path = upload_dir / f"{uuid.uuid4().hex}{_suffix_for(audio.filename)}"
    size = 0
    try:
        with path.open("wb") as f:
            while chunk := await audio.read(CHUNK_SIZE):
                f.write(chunk)
                size += len(chunk)
    except BaseException:
        path.unlink(missing_ok=True)
        raise
    logger.debug(f"{path.name=} {size=} {audio.content_type=}")
    return UploadedClip(
        path=path,
        filename=audio.filename,
        content_type=audio.content_type,
        size=size,
    )


def remove_files(paths: Iterable[Path | None]) -> list[CleanupWarning]:
    """尽力删除；失败的文件以 CleanupWarning 返回，不抛异常。"""
    warnings = []
    for path in paths:
        if path is None:
            continue
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            warnings.append(CleanupWarning(path, e))
    return warnings


def cleanup_orphans(directory: Path, min_age_sec: float = ORPHAN_MIN_AGE_SEC) -> int:
    """启动时清理上次进程遗留的临时文件；只匹配本服务生成的文件名，且只删除足够旧的文件。"""
    if not directory.is_dir():
        return 0
    cutoff = time.time() - min_age_sec
    removed = 0
    for path in directory.iterdir():
        try:
            if not _TEMP_NAME.match(path.name):
                continue
            if path.is_file() and path.stat().st_mtime < cutoff:
                path.unlink()
                removed += 1
        except OSError as e:
            logger.warning(f"{CleanupWarning(path, e)}")
    return removed
