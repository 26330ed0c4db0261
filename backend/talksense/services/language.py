"""Google Cloud Natural Language 实体情感分析。"""

import asyncio
from functools import lru_cache

from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import language_v1
from loguru import logger

from talksense.config import get_settings
from talksense.exceptions import AnalysisServiceError
from talksense.schemas.speech import EntitySentiment, Sentiment


@lru_cache
def get_language_client(credentials_path: str | None = None) -> language_v1.LanguageServiceClient:
    if credentials_path:
        return language_v1.LanguageServiceClient.from_service_account_file(credentials_path)
    return language_v1.LanguageServiceClient()


def _to_entity(entity: language_v1.Entity) -> EntitySentiment:
    return EntitySentiment(
        name=entity.name,
        type=language_v1.Entity.Type(entity.type_).name,
        salience=entity.salience,
        sentiment=Sentiment(
            score=entity.sentiment.score,
            magnitude=entity.sentiment.magnitude,
        ),
    )


def _analyze_sync(text: str) -> list[EntitySentiment]:
    client = get_language_client(get_settings().google_credentials)
    document = language_v1.Document(
        content=text,
        type_=language_v1.Document.Type.PLAIN_TEXT,
    )
    response = client.analyze_entity_sentiment(
        request={"document": document, "encoding_type": language_v1.EncodingType.UTF8}
    )
    return [_to_entity(e) for e in response.entities]


async def analyze_entities(text: str) -> list[EntitySentiment]:
    """
    分析文本中的实体及其情感，保持服务返回顺序。

    空串（或纯空白）直接返回空列表，不调用服务。
    """
    if text is None:
        raise TypeError("text must not be None")
    if not text.strip():
        return []

    try:
        entities = await asyncio.to_thread(_analyze_sync, text)
    except (
        api_exceptions.GoogleAPIError,
        auth_exceptions.GoogleAuthError,
        FileNotFoundError,
        ValueError,
    ) as e:
        raise AnalysisServiceError(f"entity sentiment analysis failed: {e}") from e
    logger.debug(f"{len(text)=} {len(entities)=}")
    return entities
