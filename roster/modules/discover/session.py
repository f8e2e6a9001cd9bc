"""Per-user roster view: directory page, member counts and the user's own memberships.

The session holds a projection of store state. It is rebuilt wholesale by
``refresh`` and patched locally by ``join``/``leave`` only after the store
confirms the write, so a failed call never leaves a ghost membership or count
behind. Between refreshes the counts may lag writes made by other users.
"""

import asyncio
import logging
import time
from typing import Callable, Dict, Iterable, List, Optional, Set, Union

from roster.core.exceptions import ConflictError, ValidationError
from roster.modules.discover.schemas import RosterMutationResponse, RosterView, SortKey
from roster.modules.groups.schemas import GroupResponse
from roster.modules.groups.service import GroupService
from roster.modules.memberships.service import MembershipService

logger = logging.getLogger(__name__)


def _parse_sort(sort: Union[SortKey, str, None]) -> SortKey:
    if sort is None:
        return SortKey.popular
    try:
        return SortKey(sort)
    except ValueError:
        raise ValidationError(
            f"Unknown sort '{sort}'; expected one of {[k.value for k in SortKey]}",
            field="sort",
        ) from None


def matches(group: GroupResponse, query: str) -> bool:
    needle = query.casefold()
    if needle in group.name.casefold():
        return True
    return bool(group.description) and needle in group.description.casefold()


def filter_and_sort(
    groups: Iterable[GroupResponse],
    member_counts: Dict[str, int],
    query: Optional[str] = None,
    sort: Union[SortKey, str, None] = SortKey.popular,
) -> List[GroupResponse]:
    """Filter by substring and order by the sort key; ties keep their input order."""
    sort_key = _parse_sort(sort)
    term = (query or "").strip()
    selected = [g for g in groups if not term or matches(g, term)]

    if sort_key is SortKey.popular:
        return sorted(selected, key=lambda g: member_counts.get(g.id, 0), reverse=True)
    if sort_key is SortKey.newest:
        return sorted(selected, key=lambda g: g.created_at, reverse=True)
    return sorted(selected, key=lambda g: g.name.casefold())


class RosterSession:
    def __init__(
        self,
        user_id: str,
        group_service: GroupService,
        membership_service: MembershipService,
        page_size: int = 50,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.user_id = user_id
        self.group_service = group_service
        self.membership_service = membership_service
        self.page_size = page_size
        self._clock = clock
        self.groups: List[GroupResponse] = []
        self.member_counts: Dict[str, int] = {}
        self.my_memberships: Set[str] = set()
        self.refreshed_at: Optional[float] = None
        # Serialises refresh and mutations so a reload never interleaves with a confirmed patch
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self.refreshed_at is not None

    async def refresh(self, page: int = 1) -> None:
        """Rebuild the whole view from the store."""
        async with self._lock:
            group_page, memberships = await asyncio.gather(
                self.group_service.list_groups(page, self.page_size),
                self.membership_service.list_memberships_by_user(self.user_id),
            )
            counts = await self.membership_service.count_by_groups(g.id for g in group_page.groups)

            self.groups = group_page.groups
            self.my_memberships = {m.group_id for m in memberships}
            self.member_counts = counts
            self.refreshed_at = self._clock()
            logger.debug(
                f"Roster for {self.user_id} refreshed: {len(self.groups)} groups, "
                f"{len(self.my_memberships)} memberships"
            )

    async def join(self, group_id: str) -> RosterMutationResponse:
        async with self._lock:
            if group_id in self.my_memberships:
                raise ConflictError(f"Already a member of group {group_id}")

            await self.membership_service.create_membership(group_id, self.user_id)

            self.my_memberships.add(group_id)
            self.member_counts[group_id] = self.member_counts.get(group_id, 0) + 1
            return self._mutation_result(group_id)

    async def leave(self, group_id: str) -> RosterMutationResponse:
        async with self._lock:
            await self.membership_service.delete_membership(group_id, self.user_id)

            if group_id in self.my_memberships:
                self.my_memberships.discard(group_id)
                self.member_counts[group_id] = max(0, self.member_counts.get(group_id, 0) - 1)
            return self._mutation_result(group_id)

    def view(self, query: Optional[str] = None, sort: Union[SortKey, str, None] = SortKey.popular) -> RosterView:
        """Filtered, sorted view of the current state; never touches the store."""
        sort_key = _parse_sort(sort)
        groups = filter_and_sort(self.groups, self.member_counts, query, sort_key)
        return RosterView(
            groups=groups,
            member_counts={g.id: self.member_counts.get(g.id, 0) for g in groups},
            my_memberships=sorted(self.my_memberships),
            query=query,
            sort=sort_key,
        )

    def _mutation_result(self, group_id: str) -> RosterMutationResponse:
        return RosterMutationResponse(
            group_id=group_id,
            is_member=group_id in self.my_memberships,
            member_count=self.member_counts.get(group_id, 0),
        )


class RosterSessionRegistry:
    """In-process sessions keyed by user id; a session older than the TTL is refreshed on access."""

    def __init__(
        self,
        ttl_seconds: float = 300,
        max_sessions: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_sessions = max_sessions
        self._clock = clock
        self._sessions: Dict[str, RosterSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def _is_stale(self, session: RosterSession) -> bool:
        return not session.loaded or self._clock() - session.refreshed_at >= self.ttl_seconds

    def _evict(self) -> None:
        while self._sessions and len(self._sessions) >= self.max_sessions:
            oldest = next(iter(self._sessions))
            del self._sessions[oldest]
            logger.debug(f"Evicted roster session for {oldest}")

    async def get_session(
        self,
        user_id: str,
        group_service: GroupService,
        membership_service: MembershipService,
        page_size: int = 50,
        refresh: bool = False,
    ) -> RosterSession:
        session = self._sessions.get(user_id)
        if session is None:
            self._evict()
            session = RosterSession(user_id, group_service, membership_service, page_size, clock=self._clock)
            self._sessions[user_id] = session
        else:
            # Keep most recently used last so eviction drops the least recent
            self._sessions[user_id] = self._sessions.pop(user_id)

        if refresh or self._is_stale(session):
            await session.refresh()
        return session

    def clear(self) -> None:
        self._sessions.clear()
