"""
单次请求的处理流水线：上传 -> 转码 -> 转写 -> 实体情感分析 -> 响应。

状态机：RECEIVED -> CONVERTING -> TRANSCRIBING -> ANALYZING -> RESPONDED | FAILED。
每个阶段方法可单独调用和测试；run() 负责串联，并保证任何退出路径都会清理临时文件。
"""

import asyncio
import uuid
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from enum import StrEnum
from pathlib import Path

from loguru import logger

from talksense.exceptions import ConversionError, InvalidTransition, UploadMissing
from talksense.schemas.speech import EntitySentiment, SpeechResponse, UploadedClip
from talksense.services import converter, language, speech, uploads

ConvertFn = Callable[[Path], Awaitable[Path]]
TranscribeFn = Callable[[bytes], Awaitable[str]]
AnalyzeFn = Callable[[str], Awaitable[list[EntitySentiment]]]


class Stage(StrEnum):
    RECEIVED = "received"
    CONVERTING = "converting"
    TRANSCRIBING = "transcribing"
    ANALYZING = "analyzing"
    RESPONDED = "responded"
    FAILED = "failed"


class IngestionPipeline:
    """
    一个请求一个实例，不跨请求共享状态。
    转码/转写/分析函数可注入，默认使用 services 下的实现。
    """

    def __init__(
        self,
        clip: UploadedClip | None,
        *,
        convert: ConvertFn | None = None,
        transcribe: TranscribeFn | None = None,
        analyze: AnalyzeFn | None = None,
        keep_failed_uploads: bool = False,
    ) -> None:
        self.clip = clip
        self.request_id = uuid.uuid4().hex[:8]
        self.stage = Stage.RECEIVED
        self.failed_at: Stage | None = None
        self.error: Exception | None = None

        self.converted_path: Path | None = None
        self.transcript: str | None = None
        self.entities: list[EntitySentiment] | None = None
        self.response: SpeechResponse | None = None

        self._convert = convert or converter.convert
        self._transcribe = transcribe or speech.transcribe
        self._analyze = analyze or language.analyze_entities
        self._keep_failed_uploads = keep_failed_uploads
        self._keep_upload = False

    @contextmanager
    def _stage(self, expected: Stage) -> Iterator[None]:
        if self.stage is not expected:
            raise InvalidTransition(str(self.stage), str(expected))
        try:
            yield
        except Exception as e:
            self.failed_at = self.stage
            self.stage = Stage.FAILED
            self.error = e
            raise

    def _advance(self, stage: Stage) -> None:
        logger.debug(f"{self.request_id=} {self.stage} -> {stage}")
        self.stage = stage

    async def convert(self) -> bytes:
        """转码并把 FLAC 读入内存；FLAC 文件无论后续结果如何都立即删除。"""
        with self._stage(Stage.RECEIVED):
            if self.clip is None or not self.clip.path.is_file():
                raise UploadMissing(self.clip.path if self.clip else None)
            self._advance(Stage.CONVERTING)
            try:
                self.converted_path = await self._convert(self.clip.path)
            except ConversionError:
                self._keep_upload = self._keep_failed_uploads
                raise
            try:
                audio_bytes = await asyncio.to_thread(self.converted_path.read_bytes)
            finally:
                self._log_warnings(uploads.remove_files([self.converted_path]))
            self._advance(Stage.TRANSCRIBING)
            return audio_bytes

    async def transcribe(self, audio_bytes: bytes) -> str:
        with self._stage(Stage.TRANSCRIBING):
            self.transcript = await self._transcribe(audio_bytes)
            self._advance(Stage.ANALYZING)
            return self.transcript

    async def analyze(self, transcript: str) -> SpeechResponse:
        with self._stage(Stage.ANALYZING):
            self.entities = await self._analyze(transcript)
            self.response = SpeechResponse(transcription=transcript, entities=self.entities)
            self._advance(Stage.RESPONDED)
            return self.response

    async def run(self) -> SpeechResponse:
        """依次执行各阶段；失败时记录完整错误并向上抛出，临时文件总会被清理。"""
        loop = asyncio.get_running_loop()
        start = loop.time()
        try:
            audio_bytes = await self.convert()
            transcript = await self.transcribe(audio_bytes)
            response = await self.analyze(transcript)
        except Exception as e:
            if self.stage is not Stage.FAILED:
                self.failed_at = self.stage
                self.stage = Stage.FAILED
                self.error = e
            logger.exception(f"speech pipeline failed {self.request_id=} {self.failed_at=}")
            raise
        finally:
            self.cleanup()

        elapsed = loop.time() - start
        logger.info(
            f"{self.request_id=} {elapsed=:.2f}s {len(response.transcription)=} {len(response.entities)=}"
        )
        return response

    def cleanup(self) -> None:
        """删除本请求仍持有的临时文件；转码失败且开启 keep_failed_uploads 时保留上传文件。"""
        paths = [self.converted_path]
        if self.clip is not None:
            # 输出路径是确定的，转码中途失败时也可能已落盘
            paths.append(converter.output_path_for(self.clip.path))
            if self._keep_upload and self.clip.path.exists():
                logger.warning(f"keeping failed upload for debugging {self.clip.path=}")
            else:
                paths.append(self.clip.path)
        self._log_warnings(uploads.remove_files(paths))

    @staticmethod
    def _log_warnings(warnings: list) -> None:
        for w in warnings:
            logger.warning(f"{w}")
