import logging
from typing import List, Optional

from roster.config import settings
from roster.core.exceptions import NotFoundError, StoreError, ValidationError
from roster.database.rows import parse_row, parse_rows
from roster.database.supabase_client import INVALID_TEXT_REPRESENTATION, RANGE_NOT_SATISFIABLE, Store
from roster.modules.groups.schemas import GroupCreate, GroupPage, GroupResponse, GroupUpdate

logger = logging.getLogger(__name__)


def _clean_name(name: Optional[str]) -> str:
    if name is None or not name.strip():
        raise ValidationError("Group name must not be empty", field="name")
    return name.strip()


def ilike_pattern(query: str) -> str:
    """Quoted PostgREST ilike operand matching ``query`` as a literal substring.

    LIKE metacharacters are escaped first, then the value is quoted so commas
    and parentheses survive inside an ``or=(...)`` filter.
    """
    like = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    quoted = like.replace("\\", "\\\\").replace('"', '\\"')
    return f'"%{quoted}%"'


class GroupService:
    def __init__(self, store: Store, max_page_size: Optional[int] = None):
        self.store = store
        self.max_page_size = max_page_size or settings.max_page_size

    def _ordered(self, query):
        # Newest first; id breaks ties between rows created in the same instant
        return query.order("created_at", desc=True).order("id", desc=True)

    async def create_group(self, group_data: GroupCreate) -> GroupResponse:
        """Create a new group"""
        name = _clean_name(group_data.name)
        result = await self.store.execute(
            self.store.groups().insert({
                "name": name,
                "description": group_data.description,
            }),
            "create_group",
        )

        if not result.data:
            raise StoreError("Failed to create group", operation="create_group")

        group = parse_row(GroupResponse, result.data[0], "create_group")
        logger.info(f"Created group {group.id}")
        return group

    async def read_group(self, group_id: str) -> Optional[GroupResponse]:
        """Get group by ID; None when no row matches"""
        try:
            result = await self.store.execute(
                self.store.groups()
                    .select("*")
                    .eq("id", group_id)
                    .limit(1),
                "read_group",
                idempotent=True,
            )
        except StoreError as e:
            # An id that is not a uuid cannot name any group
            if e.code == INVALID_TEXT_REPRESENTATION:
                return None
            raise

        if not result.data:
            return None

        return parse_row(GroupResponse, result.data[0], "read_group")

    async def list_groups(self, page: int = 1, page_size: int = 10) -> GroupPage:
        """One page of groups, newest first, with the exact total row count"""
        if page < 1:
            raise ValidationError("page must be >= 1", field="page")
        if page_size < 1:
            raise ValidationError("page_size must be >= 1", field="page_size")
        if page_size > self.max_page_size:
            raise ValidationError(f"page_size must be <= {self.max_page_size}", field="page_size")

        offset = (page - 1) * page_size
        try:
            result = await self.store.execute(
                self._ordered(self.store.groups().select("*", count="exact"))
                    .range(offset, offset + page_size - 1),
                "list_groups",
                idempotent=True,
            )
        except StoreError as e:
            if e.code != RANGE_NOT_SATISFIABLE:
                raise
            return GroupPage(groups=[], page=page, page_size=page_size, total=await self.count_groups())

        total = result.count if result.count is not None else await self.count_groups()
        return GroupPage(
            groups=parse_rows(GroupResponse, result.data, "list_groups"),
            page=page,
            page_size=page_size,
            total=total,
        )

    async def count_groups(self) -> int:
        result = await self.store.execute(
            self.store.groups().select("id", count="exact", head=True),
            "count_groups",
            idempotent=True,
        )
        return result.count or 0

    async def search_groups(self, query: Optional[str]) -> List[GroupResponse]:
        """Case-insensitive substring search over name or description"""
        term = (query or "").strip()
        pattern = ilike_pattern(term) if term else None

        def build():
            builder = self.store.groups().select("*")
            if pattern:
                builder = builder.or_(f"name.ilike.{pattern},description.ilike.{pattern}")
            return self._ordered(builder)

        rows = await self.store.fetch_all(build, "search_groups")
        return parse_rows(GroupResponse, rows, "search_groups")

    async def update_group(self, group_id: str, group_data: GroupUpdate) -> GroupResponse:
        """Partial update; fields not set in group_data keep their values"""
        update_data = group_data.model_dump(exclude_unset=True)
        if "name" in update_data:
            update_data["name"] = _clean_name(update_data["name"])

        if not update_data:
            group = await self.read_group(group_id)
            if group is None:
                raise NotFoundError(f"Group {group_id} not found")
            return group

        try:
            result = await self.store.execute(
                self.store.groups()
                    .update(update_data)
                    .eq("id", group_id),
                "update_group",
            )
        except StoreError as e:
            if e.code == INVALID_TEXT_REPRESENTATION:
                raise NotFoundError(f"Group {group_id} not found") from e
            raise

        if not result.data:
            raise NotFoundError(f"Group {group_id} not found")

        logger.info(f"Updated group {group_id}: {sorted(update_data)}")
        return parse_row(GroupResponse, result.data[0], "update_group")

    async def delete_group(self, group_id: str) -> None:
        """Delete group and its memberships; deleting a missing group is not an error"""
        try:
            # Memberships first so no orphans remain even without ON DELETE CASCADE
            await self.store.execute(
                self.store.memberships()
                    .delete()
                    .eq("group_id", group_id),
                "delete_group_memberships",
                idempotent=True,
            )

            result = await self.store.execute(
                self.store.groups()
                    .delete()
                    .eq("id", group_id),
                "delete_group",
                idempotent=True,
            )
        except StoreError as e:
            if e.code != INVALID_TEXT_REPRESENTATION:
                raise
            logger.debug(f"Delete of malformed group id {group_id} ignored")
            return

        if result.data:
            logger.info(f"Deleted group {group_id}")
        else:
            logger.debug(f"Delete of absent group {group_id} ignored")
