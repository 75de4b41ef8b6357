"""Redis store for saved tables."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

import redis.asyncio as redis
from redis.backoff import ExponentialBackoff
from redis.retry import Retry

from src.api.schemas import SavedTable, SavedTableSummary, Table

logger = logging.getLogger(__name__)

TABLE_PREFIX = "table:"
USER_INDEX_PREFIX = "user_tables:"


class StoreUnavailableError(Exception):
    """Redis could not be reached or rejected the command."""


class TableStore:
    """Persists tables verbatim as user-owned records.

    Each table is a JSON string under ``table:<id>``; a sorted set per user,
    scored by creation time, gives newest-first listing.
    """

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    async def save(self, user_id: str, table: Table) -> SavedTable:
        """Store *table* for *user_id* and return the saved record."""
        created_at = datetime.now(timezone.utc)
        saved = SavedTable(
            id=uuid.uuid4().hex,
            user_id=user_id,
            created_at=created_at,
            title=table.title,
            description=table.description,
            columns=table.columns,
            rows=table.rows,
            source_urls=table.source_urls,
        )
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.set(f"{TABLE_PREFIX}{saved.id}", saved.model_dump_json(by_alias=True))
                pipe.zadd(f"{USER_INDEX_PREFIX}{user_id}", {saved.id: created_at.timestamp()})
                await pipe.execute()
        except redis.RedisError as exc:
            logger.warning("table save failed", extra={"user_id": user_id}, exc_info=True)
            raise StoreUnavailableError("Could not save table") from exc
        logger.info(
            "table saved",
            extra={"table_id": saved.id, "user_id": user_id, "rows": len(saved.rows)},
        )
        return saved

    async def get(self, table_id: str) -> SavedTable | None:
        """Return the saved table, or ``None`` when it does not exist."""
        try:
            raw = await self._client.get(f"{TABLE_PREFIX}{table_id}")
        except redis.RedisError as exc:
            logger.warning("table get failed", extra={"table_id": table_id}, exc_info=True)
            raise StoreUnavailableError("Could not load table") from exc
        if raw is None:
            logger.debug("table not found", extra={"table_id": table_id})
            return None
        return SavedTable.model_validate_json(raw)

    async def list_for_user(self, user_id: str) -> list[SavedTableSummary]:
        """Summaries of the user's tables, newest first."""
        index_key = f"{USER_INDEX_PREFIX}{user_id}"
        try:
            table_ids = await self._client.zrevrange(index_key, 0, -1)
            if not table_ids:
                return []
            payloads = await self._client.mget([f"{TABLE_PREFIX}{tid}" for tid in table_ids])
        except redis.RedisError as exc:
            logger.warning("table list failed", extra={"user_id": user_id}, exc_info=True)
            raise StoreUnavailableError("Could not list tables") from exc

        summaries: list[SavedTableSummary] = []
        for raw in payloads:
            # Index entries can outlive their table if a delete was interrupted
            if raw is None:
                continue
            table = SavedTable.model_validate_json(raw)
            summaries.append(
                SavedTableSummary(
                    id=table.id,
                    title=table.title,
                    description=table.description,
                    row_count=len(table.rows),
                    created_at=table.created_at,
                )
            )
        return summaries

    async def delete(self, table: SavedTable) -> None:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.delete(f"{TABLE_PREFIX}{table.id}")
                pipe.zrem(f"{USER_INDEX_PREFIX}{table.user_id}", table.id)
                await pipe.execute()
        except redis.RedisError as exc:
            logger.warning("table delete failed", extra={"table_id": table.id}, exc_info=True)
            raise StoreUnavailableError("Could not delete table") from exc
        logger.info("table deleted", extra={"table_id": table.id, "user_id": table.user_id})


async def create_redis_client(redis_url: str) -> redis.Redis:
    # Strip credentials for logging (everything before @ if present)
    safe_url = redis_url.split("@")[-1] if "@" in redis_url else redis_url
    logger.info("connecting to redis", extra={"redis_url": safe_url})
    retry = Retry(ExponentialBackoff(), retries=3)
    return redis.from_url(
        redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        health_check_interval=30,
        retry=retry,
        retry_on_error=[redis.ConnectionError, redis.TimeoutError],
    )
