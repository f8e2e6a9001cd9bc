import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from roster.config import settings
from roster.core.exceptions import StoreError

logger = logging.getLogger(__name__)

# Postgres error codes surfaced by PostgREST
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
# Malformed literal, e.g. a path id that is not a uuid
INVALID_TEXT_REPRESENTATION = "22P02"
# PostgREST answers 416 with this code when the offset is past the last row
RANGE_NOT_SATISFIABLE = "PGRST103"


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, StoreError) and exc.retryable


class Store:
    """Single handle on the Supabase project, shared by every service.

    Wraps each query execution with a timeout and translates PostgREST and
    transport failures into StoreError. Idempotent calls (reads, counts,
    deletes) are retried on transient failures; inserts and updates never are.
    """

    def __init__(
        self,
        client: AsyncClient,
        timeout: float = 10.0,
        read_retries: int = 3,
        groups_table: str = "groups",
        memberships_table: str = "group_memberships",
        page_size: int = 1000,
    ):
        self.client = client
        self.timeout = timeout
        self.read_retries = max(1, read_retries)
        self.groups_table = groups_table
        self.memberships_table = memberships_table
        # Rows requested per page by fetch_all; the server's max-rows may return fewer
        self.page_size = max(1, page_size)

    def table(self, name: str):
        return self.client.table(name)

    def groups(self):
        return self.table(self.groups_table)

    def memberships(self):
        return self.table(self.memberships_table)

    async def execute(self, query: Any, operation: str, idempotent: bool = False) -> Any:
        """Run a built query and return the PostgREST response."""
        if not idempotent:
            return await self._execute_once(query, operation)

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.read_retries),
            wait=wait_exponential(multiplier=0.2, max=2),
            retry=retry_if_exception(_is_retryable),
            before_sleep=lambda state: logger.warning(
                f"Retrying {operation} (attempt {state.attempt_number}): {state.outcome.exception()}"
            ),
            reraise=True,
        ):
            with attempt:
                return await self._execute_once(query, operation)

    async def fetch_all(self, build: Callable[[], Any], operation: str) -> List[Dict[str, Any]]:
        """Read every row of an ordered select, one range at a time.

        ``build`` returns a fresh query for each page; it must order by a unique
        key so pages neither overlap nor skip rows. A page shorter than asked for
        only means the server capped it, so reading stops on an empty page.
        """
        rows: List[Dict[str, Any]] = []
        while True:
            offset = len(rows)
            try:
                result = await self.execute(
                    build().range(offset, offset + self.page_size - 1),
                    operation,
                    idempotent=True,
                )
            except StoreError as e:
                if e.code == RANGE_NOT_SATISFIABLE:
                    return rows
                raise
            if not result.data:
                return rows
            rows.extend(result.data)

    async def _execute_once(self, query: Any, operation: str) -> Any:
        try:
            return await asyncio.wait_for(query.execute(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"{operation} timed out after {self.timeout}s")
            raise StoreError(
                f"{operation} timed out after {self.timeout}s",
                operation=operation,
                retryable=True,
            ) from e
        except APIError as e:
            logger.error(f"{operation} failed: [{e.code}] {e.message}")
            raise StoreError(
                e.message or str(e),
                code=e.code,
                operation=operation,
                details=e.details,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"{operation} transport error: {e}")
            raise StoreError(str(e), operation=operation, retryable=True) from e


class SupabaseClient:
    _store: Optional[Store] = None

    @classmethod
    async def get_store(cls) -> Store:
        if cls._store is None:
            client = await acreate_client(
                settings.supabase_url,
                settings.supabase_key,
                options=AsyncClientOptions(schema=settings.supabase_schema),
            )
            cls._store = Store(
                client,
                timeout=settings.store_timeout_seconds,
                read_retries=settings.store_read_retries,
                groups_table=settings.groups_table,
                memberships_table=settings.memberships_table,
                page_size=settings.store_page_size,
            )
        return cls._store

    @classmethod
    def reset_client(cls):
        cls._store = None


async def get_store() -> Store:
    return await SupabaseClient.get_store()
