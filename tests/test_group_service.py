"""Tests for the group directory service."""

from datetime import datetime, timezone

import pytest

from roster.core.exceptions import NotFoundError, ValidationError
from roster.modules.groups.schemas import GroupCreate, GroupUpdate
from roster.modules.groups.service import GroupService, ilike_pattern
from tests.fakes import GROUPS, MEMBERSHIPS, api_error

MALFORMED_ID = api_error("22P02", 'invalid input syntax for type uuid: "nope"')


@pytest.mark.asyncio
async def test_create_group_returns_store_assigned_fields(group_service, fake_db):
    group = await group_service.create_group(GroupCreate(name="  Book Club ", description="Monthly reads"))

    assert group.id
    assert group.name == "Book Club"
    assert group.description == "Monthly reads"
    assert group.created_at is not None
    assert len(fake_db.tables[GROUPS]) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["", "   "])
async def test_create_group_rejects_blank_name_without_calling_store(group_service, fake_db, name):
    with pytest.raises(ValidationError) as exc_info:
        await group_service.create_group(GroupCreate(name=name))

    assert exc_info.value.field == "name"
    assert fake_db.calls == []


@pytest.mark.asyncio
async def test_read_group_returns_none_when_absent(group_service, fake_db):
    created = fake_db.seed_group("Hiking & Nature")

    assert (await group_service.read_group(created["id"])).name == "Hiking & Nature"
    assert await group_service.read_group("missing") is None


@pytest.mark.asyncio
async def test_list_groups_first_page_has_newest_two_and_true_total(group_service, fake_db):
    for i in range(5):
        fake_db.seed_group(f"Group {i}")

    page = await group_service.list_groups(page=1, page_size=2)

    assert [g.name for g in page.groups] == ["Group 4", "Group 3"]
    assert page.total == 5
    assert page.page == 1
    assert page.page_size == 2


@pytest.mark.asyncio
async def test_list_groups_last_partial_page(group_service, fake_db):
    for i in range(5):
        fake_db.seed_group(f"Group {i}")

    page = await group_service.list_groups(page=3, page_size=2)

    assert [g.name for g in page.groups] == ["Group 0"]
    assert page.total == 5


@pytest.mark.asyncio
async def test_list_groups_past_the_end_is_empty_with_total(group_service, fake_db):
    for i in range(3):
        fake_db.seed_group(f"Group {i}")

    page = await group_service.list_groups(page=10, page_size=2)

    assert page.groups == []
    assert page.total == 3


@pytest.mark.asyncio
async def test_list_groups_breaks_created_at_ties_by_id(group_service, fake_db):
    same_instant = datetime(2024, 6, 1, tzinfo=timezone.utc)
    for group_id in ["b", "c", "a"]:
        fake_db.seed_group(f"Group {group_id}", id=group_id, created_at=same_instant)

    page = await group_service.list_groups(page=1, page_size=10)

    assert [g.id for g in page.groups] == ["c", "b", "a"]


@pytest.mark.asyncio
@pytest.mark.parametrize("page,page_size", [(0, 10), (1, 0), (-1, 5)])
async def test_list_groups_rejects_bad_paging(group_service, page, page_size):
    with pytest.raises(ValidationError):
        await group_service.list_groups(page=page, page_size=page_size)


@pytest.mark.asyncio
async def test_list_groups_rejects_page_size_over_the_cap(store, fake_db):
    service = GroupService(store, max_page_size=5)

    with pytest.raises(ValidationError) as exc_info:
        await service.list_groups(page=1, page_size=6)

    assert exc_info.value.field == "page_size"
    assert fake_db.calls == []


@pytest.mark.asyncio
async def test_search_matches_name_or_description_case_insensitively(group_service, fake_db):
    fake_db.seed_group("SF Running Club", "Weekly runs around the city")
    fake_db.seed_group("Book Club", "Contemporary fiction")
    fake_db.seed_group("Photography", "Photo walks and RUNNING commentary")

    results = await group_service.search_groups("running")

    assert [g.name for g in results] == ["Photography", "SF Running Club"]


@pytest.mark.asyncio
async def test_search_with_blank_query_returns_everything_newest_first(group_service, fake_db):
    for i in range(3):
        fake_db.seed_group(f"Group {i}")

    assert [g.name for g in await group_service.search_groups("  ")] == ["Group 2", "Group 1", "Group 0"]
    assert len(await group_service.search_groups(None)) == 3


@pytest.mark.asyncio
async def test_search_treats_like_wildcards_and_commas_literally(group_service, fake_db):
    fake_db.seed_group("50% off club")
    fake_db.seed_group("500 members")
    fake_db.seed_group("Food, drink and fun")

    assert [g.name for g in await group_service.search_groups("50%")] == ["50% off club"]
    assert [g.name for g in await group_service.search_groups("food, drink")] == ["Food, drink and fun"]
    assert await group_service.search_groups("5_0") == []


def test_ilike_pattern_escapes_quotes_and_backslashes():
    assert ilike_pattern("abc") == '"%abc%"'
    assert ilike_pattern('say "hi"') == '"%say \\"hi\\"%"'
    assert ilike_pattern("100%") == '"%100\\\\%%"'


@pytest.mark.asyncio
async def test_update_group_is_partial(group_service, fake_db):
    created = fake_db.seed_group("Book Club", "Fiction")

    updated = await group_service.update_group(created["id"], GroupUpdate(description="Non-fiction"))

    assert updated.name == "Book Club"
    assert updated.description == "Non-fiction"


@pytest.mark.asyncio
async def test_update_group_can_clear_description(group_service, fake_db):
    created = fake_db.seed_group("Book Club", "Fiction")

    updated = await group_service.update_group(created["id"], GroupUpdate(description=None))

    assert updated.description is None


@pytest.mark.asyncio
async def test_update_missing_group_raises_not_found(group_service):
    with pytest.raises(NotFoundError):
        await group_service.update_group("missing", GroupUpdate(name="New name"))

    with pytest.raises(NotFoundError):
        await group_service.update_group("missing", GroupUpdate())


@pytest.mark.asyncio
async def test_update_group_rejects_blank_name(group_service, fake_db):
    created = fake_db.seed_group("Book Club")

    with pytest.raises(ValidationError):
        await group_service.update_group(created["id"], GroupUpdate(name=" "))

    assert fake_db.calls_to(GROUPS, "update") == 0


@pytest.mark.asyncio
async def test_delete_group_cascades_memberships_and_is_idempotent(group_service, fake_db):
    doomed = fake_db.seed_group("Doomed")
    kept = fake_db.seed_group("Kept")
    fake_db.seed_membership(doomed["id"], "u1")
    fake_db.seed_membership(doomed["id"], "u2")
    fake_db.seed_membership(kept["id"], "u1")

    await group_service.delete_group(doomed["id"])
    await group_service.delete_group(doomed["id"])

    assert [g["id"] for g in fake_db.tables[GROUPS]] == [kept["id"]]
    assert [m["group_id"] for m in fake_db.tables[MEMBERSHIPS]] == [kept["id"]]


@pytest.mark.asyncio
async def test_search_returns_every_match_when_the_server_caps_rows(group_service, fake_db):
    fake_db.max_rows = 2
    for i in range(5):
        fake_db.seed_group(f"Chess {i}")

    results = await group_service.search_groups("chess")

    assert [g.name for g in results] == [f"Chess {i}" for i in range(4, -1, -1)]


@pytest.mark.asyncio
async def test_malformed_id_reads_as_missing_group(group_service, fake_db):
    fake_db.fail_next(GROUPS, "select", MALFORMED_ID)
    fake_db.fail_next(GROUPS, "update", MALFORMED_ID)
    fake_db.fail_next(MEMBERSHIPS, "delete", MALFORMED_ID)

    assert await group_service.read_group("nope") is None
    with pytest.raises(NotFoundError):
        await group_service.update_group("nope", GroupUpdate(name="Renamed"))
    await group_service.delete_group("nope")
