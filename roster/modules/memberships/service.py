import asyncio
import logging
from typing import Dict, Iterable, List

from roster.core.exceptions import ConflictError, NotFoundError, StoreError
from roster.database.rows import parse_row, parse_rows
from roster.database.supabase_client import (
    FOREIGN_KEY_VIOLATION, INVALID_TEXT_REPRESENTATION, UNIQUE_VIOLATION, Store
)
from roster.modules.memberships.schemas import GroupMembershipResponse

logger = logging.getLogger(__name__)


def _missing_reference(error: StoreError, group_id: str, user_id: str) -> NotFoundError:
    # Postgres names the offending column in the detail ("Key (user_id)=(...) is not present")
    # and in the constraint name ("group_memberships_user_id_fkey")
    text = f"{error.details or ''} {error.message}"
    if "user_id" in text:
        return NotFoundError(f"User {user_id} not found")
    return NotFoundError(f"Group {group_id} not found")


class MembershipService:
    """Reads and writes group_memberships rows keyed by (group_id, user_id).

    Listing order is part of the contract: by group is oldest member first,
    by user is most recently joined first. Listings read every page, so they
    agree with the exact counts however the server caps a response.
    """

    def __init__(self, store: Store):
        self.store = store

    async def create_membership(self, group_id: str, user_id: str) -> GroupMembershipResponse:
        """Insert a membership; a duplicate pair raises ConflictError and is never retried"""
        try:
            result = await self.store.execute(
                self.store.memberships().insert({
                    "group_id": group_id,
                    "user_id": user_id,
                }),
                "create_membership",
            )
        except StoreError as e:
            if e.code == UNIQUE_VIOLATION:
                raise ConflictError(f"User {user_id} is already a member of group {group_id}") from e
            if e.code == FOREIGN_KEY_VIOLATION:
                raise _missing_reference(e, group_id, user_id) from e
            if e.code == INVALID_TEXT_REPRESENTATION:
                raise NotFoundError(f"Group {group_id} or user {user_id} not found") from e
            raise

        if not result.data:
            raise StoreError("Failed to create membership", operation="create_membership")

        logger.info(f"User {user_id} joined group {group_id}")
        return parse_row(GroupMembershipResponse, result.data[0], "create_membership")

    async def delete_membership(self, group_id: str, user_id: str) -> None:
        """Delete a membership; deleting an absent one is not an error"""
        try:
            result = await self.store.execute(
                self.store.memberships()
                    .delete()
                    .eq("group_id", group_id)
                    .eq("user_id", user_id),
                "delete_membership",
                idempotent=True,
            )
        except StoreError as e:
            if e.code == INVALID_TEXT_REPRESENTATION:
                return
            raise
        if result.data:
            logger.info(f"User {user_id} left group {group_id}")

    async def list_memberships_by_group(self, group_id: str) -> List[GroupMembershipResponse]:
        def build():
            return (
                self.store.memberships()
                    .select("*")
                    .eq("group_id", group_id)
                    .order("created_at")
                    .order("user_id")
            )

        return await self._list(build, "list_memberships_by_group")

    async def list_memberships_by_user(self, user_id: str) -> List[GroupMembershipResponse]:
        def build():
            return (
                self.store.memberships()
                    .select("*")
                    .eq("user_id", user_id)
                    .order("created_at", desc=True)
                    .order("group_id", desc=True)
            )

        return await self._list(build, "list_memberships_by_user")

    async def _list(self, build, operation: str) -> List[GroupMembershipResponse]:
        try:
            rows = await self.store.fetch_all(build, operation)
        except StoreError as e:
            if e.code == INVALID_TEXT_REPRESENTATION:
                return []
            raise
        return parse_rows(GroupMembershipResponse, rows, operation)

    async def is_member(self, user_id: str, group_id: str) -> bool:
        try:
            result = await self.store.execute(
                self.store.memberships()
                    .select("user_id")
                    .eq("user_id", user_id)
                    .eq("group_id", group_id)
                    .limit(1),
                "is_member",
                idempotent=True,
            )
        except StoreError as e:
            if e.code == INVALID_TEXT_REPRESENTATION:
                return False
            raise
        return bool(result.data)

    async def count_by_group(self, group_id: str) -> int:
        try:
            result = await self.store.execute(
                self.store.memberships()
                    .select("user_id", count="exact", head=True)
                    .eq("group_id", group_id),
                "count_by_group",
                idempotent=True,
            )
        except StoreError as e:
            if e.code == INVALID_TEXT_REPRESENTATION:
                return 0
            raise
        return result.count or 0

    async def count_by_groups(self, group_ids: Iterable[str]) -> Dict[str, int]:
        """Member count per group id; ids without memberships map to 0"""
        counts = {group_id: 0 for group_id in group_ids}
        if not counts:
            return counts

        def build():
            return (
                self.store.memberships()
                    .select("group_id")
                    .in_("group_id", list(counts))
                    .order("group_id")
                    .order("user_id")
            )

        try:
            rows = await self.store.fetch_all(build, "count_by_groups")
        except StoreError as e:
            if e.code != INVALID_TEXT_REPRESENTATION:
                raise
            # One malformed id fails the whole in() filter; count each id on its own instead
            ids = list(counts)
            totals = await asyncio.gather(*(self.count_by_group(group_id) for group_id in ids))
            return dict(zip(ids, totals))

        for row in rows:
            group_id = row.get("group_id")
            if group_id in counts:
                counts[group_id] += 1
        return counts
