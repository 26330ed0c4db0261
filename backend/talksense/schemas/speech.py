"""语音分析 API 与服务层 Pydantic schema。"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class UploadedClip(BaseModel):
    """已落盘的上传音频，归单个请求所有。"""

    path: Path = Field(..., description="临时文件路径")
    filename: str | None = Field(None, description="客户端文件名")
    content_type: str | None = Field(None, description="客户端声明的 MIME 类型")
    size: int = Field(0, ge=0, description="字节数")


class Sentiment(BaseModel):
    """实体的聚合情感。"""

    model_config = ConfigDict(frozen=True)

    score: float = Field(..., ge=-1.0, le=1.0, description="情感倾向，负面到正面")
    magnitude: float = Field(..., ge=0.0, description="情感强度，与倾向无关")


class EntitySentiment(BaseModel):
    """Natural Language 返回的单个实体。"""

    model_config = ConfigDict(frozen=True)

    name: str
    type: str
    salience: float = Field(..., ge=0.0, le=1.0, description="实体在全文中的重要程度")
    sentiment: Sentiment


class SpeechResponse(BaseModel):
    """POST /api/speech 响应。"""

    transcription: str = Field(..., description="转写文本，分段以换行连接")
    entities: list[EntitySentiment] = Field(default_factory=list)
