"""测试共享 fixture：临时上传目录、假 ffmpeg、loguru 日志捕获、TestClient。"""

import stat
import wave
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from loguru import logger

from talksense.config import get_settings

# 假 ffmpeg：把 -i 的输入原样复制到最后一个参数；输入含 CORRUPT 时模拟解码失败
FAKE_FFMPEG = """#!/bin/sh
in=""
prev=""
for a in "$@"; do
  if [ "$prev" = "-i" ]; then in="$a"; fi
  prev="$a"
  out="$a"
done
if grep -q CORRUPT "$in" 2>/dev/null; then
  echo "$in: Invalid data found when processing input" >&2
  exit 1
fi
cp "$in" "$out"
"""


@pytest.fixture
def fake_ffmpeg(tmp_path: Path) -> Path:
    path = tmp_path / "bin" / "ffmpeg"
    path.parent.mkdir()
    path.write_text(FAKE_FFMPEG)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def settings_env(monkeypatch, fake_ffmpeg: Path, upload_dir: Path):
    """通过环境变量把配置指向临时目录与假 ffmpeg，结束后清空缓存。"""
    monkeypatch.setenv("FFMPEG_PATH", str(fake_ffmpeg))
    monkeypatch.setenv("UPLOAD_DIR", str(upload_dir))
    monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)
    monkeypatch.delenv("KEEP_FAILED_UPLOADS", raising=False)
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def client(settings_env):
    from talksense.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def log_messages():
    """捕获 WARNING 及以上的 loguru 消息。"""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="WARNING")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def silent_wav(tmp_path: Path) -> Path:
    """3 秒静音，mono，48kHz。"""
    path = tmp_path / "silence.wav"
    with wave.open(str(path), "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(48000)
        wf.writeframes(b"\x00\x00" * 48000 * 3)
    return path
