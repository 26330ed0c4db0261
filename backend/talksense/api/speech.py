"""语音分析 API：POST /api/speech。"""

from functools import partial

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from loguru import logger

from talksense.config import Settings, get_settings
from talksense.pipeline import IngestionPipeline
from talksense.schemas.speech import SpeechResponse
from talksense.services import converter, uploads

router = APIRouter()

GENERIC_ERROR = "Internal Server Error"


@router.post("/speech", response_model=SpeechResponse)
async def analyze_speech(
    request: Request,
    audio: UploadFile | None = File(None),
    settings: Settings = Depends(get_settings),
) -> SpeechResponse:
    """
    上传一段录音（任意容器格式），返回转写文本与实体情感。
    任何阶段失败都只返回 500，详细错误仅写入服务端日志。
    """
    clip = None
    if audio is not None:
        try:
            clip = await uploads.save_upload(audio, settings.upload_dir)
        except OSError as e:
            logger.exception(f"failed to persist upload {audio.filename=}")
            raise HTTPException(status_code=500, detail=GENERIC_ERROR) from e

    # 启动时解析出的 ffmpeg 绝对路径；未经 lifespan 启动时回退到配置值
    ffmpeg = getattr(request.app.state, "ffmpeg_path", None) or settings.ffmpeg_path
    pipeline = IngestionPipeline(
        clip,
        convert=partial(converter.convert, ffmpeg=ffmpeg),
        keep_failed_uploads=settings.keep_failed_uploads,
    )
    try:
        return await pipeline.run()
    except Exception as e:
        raise HTTPException(status_code=500, detail=GENERIC_ERROR) from e
