from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from article_ingest.config.settings import settings


class ImportArticleJob(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None
    url: str
    make_readable: bool = Field(default=True, alias="makeReadable")


class FeedRef(BaseModel):
    id: str
    name: str
    link: str


class SyncFeedArticlesInput(BaseModel):
    feed: FeedRef


class JobConfig(BaseModel):
    chunk_size: int = Field(default=settings.sync_chunk_size, ge=1)
    parallel_delay: float = Field(default=settings.sync_parallel_delay, ge=0)


class JobName(str, Enum):
    IMPORT = "import"
    SYNC = "sync"


class JobStatus(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class JobRecord(BaseModel):
    """Tracked state of one queued job."""

    id: str
    name: JobName
    status: JobStatus = JobStatus.WAITING
    data: dict[str, Any]
    result: Any = None
    error: str | None = None
    created_at: datetime
    finished_at: datetime | None = None
