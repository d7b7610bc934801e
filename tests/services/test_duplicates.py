"""Tests for duplicate detection and squashing."""
import pytest
from datetime import timedelta

from calagator.crud.event import save_event
from calagator.exceptions import LockedRecordError, ValidationError
from calagator.models import Event
from calagator.services.duplicates import (
    duplicate_fields,
    find_duplicates_by_type,
    group_duplicates,
    is_master,
    is_slave,
    marked_duplicates,
    non_duplicates,
    progenitor,
    squash,
    squash_many,
)
from calagator.time_utils import now, today


class TestDuplicateFields:

    def test_na_has_no_fields(self):
        assert duplicate_fields("na") is None

    def test_field_list(self):
        assert duplicate_fields("title, start_time") == ["title", "start_time"]

    def test_all_skips_bookkeeping_columns(self):
        fields = duplicate_fields("all")
        assert "title" in fields
        assert "start_time" in fields
        for excluded in ("id", "created_at", "updated_at", "sequence", "tags"):
            assert excluded not in fields

    def test_unknown_field(self):
        with pytest.raises(ValueError, match="popularity"):
            duplicate_fields("title,popularity")


def test_group_duplicates_drops_singletons():
    """Grouping by title keeps only shared titles."""
    a = Event(id=1, title="x", start_time=now())
    b = Event(id=2, title="x", start_time=now())
    c = Event(id=3, title="y", start_time=now())

    assert group_duplicates([a, b, c], "title") == {("x",): [a, b]}


class TestMarkedDuplicates:

    @pytest.mark.asyncio
    async def test_non_duplicates_and_marked_duplicates(self, db, create_test_event):
        original = await create_test_event()
        duplicate = await create_test_event(duplicate_of_id=original.id)

        assert original in await non_duplicates(db)
        assert duplicate not in await non_duplicates(db)
        assert duplicate in await marked_duplicates(db)
        assert original not in await marked_duplicates(db)


class TestFindDuplicatesByType:

    @pytest.fixture
    async def subject(self, create_test_event):
        # Past events never show up in the results
        await create_test_event(start_time=now() - timedelta(weeks=1))
        return await create_test_event()

    @pytest.mark.asyncio
    async def test_na_groups_all_future_events(self, db, subject, create_test_event):
        future = await create_test_event(title=subject.title, start_time=now() + timedelta(days=1))
        assert await find_duplicates_by_type(db, "na") == {(None,): [subject, future]}

    @pytest.mark.asyncio
    async def test_by_title(self, db, subject, create_test_event):
        clone = await create_test_event(title=subject.title, start_time=subject.start_time)
        assert await find_duplicates_by_type(db, "title") == {(subject.title,): [subject, clone]}

    @pytest.mark.asyncio
    async def test_by_title_with_different_start(self, db, subject, create_test_event):
        clone = await create_test_event(title=subject.title, start_time=subject.start_time + timedelta(minutes=1))
        assert await find_duplicates_by_type(db, "title") == {(subject.title,): [subject, clone]}

    @pytest.mark.asyncio
    async def test_not_by_url(self, db, subject, create_test_event):
        await create_test_event(title=subject.title, start_time=subject.start_time, url="other.example.com")
        assert await find_duplicates_by_type(db, "url") == {}

    @pytest.mark.asyncio
    async def test_complete_duplicates_by_all(self, db, subject):
        clone = await save_event(db, Event(**subject.attributes()))
        groups = await find_duplicates_by_type(db, "all")
        assert list(groups.values()) == [[subject, clone]]

    @pytest.mark.asyncio
    async def test_incomplete_duplicates_by_all(self, db, subject):
        attributes = subject.attributes()
        attributes["title"] = "SpaceCube"
        await save_event(db, Event(**attributes))
        assert await find_duplicates_by_type(db, "all") == {}

    @pytest.mark.asyncio
    async def test_by_multiple_fields(self, db, subject, create_test_event):
        clone = await create_test_event(title=subject.title, start_time=subject.start_time)
        groups = await find_duplicates_by_type(db, "title,start_time")
        assert groups == {(subject.title, subject.start_time): [subject, clone]}

    @pytest.mark.asyncio
    async def test_mismatching_multiple_fields(self, db, subject, create_test_event):
        await create_test_event(title="SpaceCube", start_time=subject.start_time)
        assert await find_duplicates_by_type(db, "title,start_time") == {}

    @pytest.mark.asyncio
    async def test_by_tags(self, db, subject, create_test_event):
        first = await create_test_event(tag_list=["a", "b"])
        second = await create_test_event(tag_list=["a", "b"])
        await create_test_event(tag_list=["b", "a"])

        assert await find_duplicates_by_type(db, "tags") == {(("a", "b"),): [first, second]}

    @pytest.mark.asyncio
    async def test_marked_duplicates_are_ignored(self, db, subject, create_test_event):
        await create_test_event(title=subject.title, duplicate_of_id=subject.id)
        assert await find_duplicates_by_type(db, "title") == {}


class TestSquashing:

    @pytest.fixture
    async def venue(self, create_test_venue):
        return await create_test_venue(title="Squash venue")

    @pytest.mark.asyncio
    async def test_merges_tags_marks_slave_and_recounts_venue(self, db, venue, create_test_event):
        master = await create_test_event(venue_id=venue.id)
        master.tag_list = ["first", "second"]

        clone = await create_test_event(**{**master.attributes(), "tags": ["second", "third"]})
        assert not clone.is_duplicate
        assert venue.events_count == 2

        await squash(db, master, clone)

        assert master.tag_list == ["first", "second", "third"]
        assert clone.duplicate_of_id == master.id
        assert venue.events_count == 1

    @pytest.mark.asyncio
    async def test_squash_bumps_versions(self, db, create_test_event):
        master = await create_test_event(tag_list=["first"])
        slave = await create_test_event(tag_list=["second"])

        await squash(db, master, slave)

        assert master.sequence == 2
        assert slave.sequence == 2

    @pytest.mark.asyncio
    async def test_repoints_duplicates_of_slave(self, db, create_test_event):
        master = await create_test_event(title="Master")
        slave = await create_test_event(title="Slave")
        grandchild = await create_test_event(title="Grandchild", duplicate_of_id=slave.id)

        await squash(db, master, slave)

        assert grandchild.duplicate_of_id == master.id

    @pytest.mark.asyncio
    async def test_locked_slave_is_rejected(self, db, venue, create_test_event):
        master = await create_test_event(venue_id=venue.id)
        slave = await create_test_event(venue_id=venue.id, locked=True, tag_list=["extra"])

        with pytest.raises(LockedRecordError):
            await squash(db, master, slave)

        assert not db.in_transaction()
        for record in (master, slave, venue):
            await db.refresh(record)
        assert slave.duplicate_of_id is None
        assert master.tag_list == []
        assert venue.events_count == 2

    @pytest.mark.asyncio
    async def test_self_squash_is_rejected(self, db, create_test_event):
        event = await create_test_event()
        with pytest.raises(ValidationError):
            await squash(db, event, event)
        assert event.duplicate_of_id is None

    @pytest.mark.asyncio
    async def test_second_squash_into_same_master_is_idempotent(self, db, venue, create_test_event):
        master = await create_test_event(venue_id=venue.id)
        slave = await create_test_event(venue_id=venue.id)

        await squash(db, master, slave)
        await squash(db, master, slave)

        assert not db.in_transaction()

        assert slave.sequence == 2
        assert venue.events_count == 1

    @pytest.mark.asyncio
    async def test_squash_into_another_master_is_rejected(self, db, create_test_event):
        first = await create_test_event()
        second = await create_test_event()
        slave = await create_test_event()

        await squash(db, first, slave)
        with pytest.raises(ValidationError):
            await squash(db, second, slave)

        assert not db.in_transaction()
        await db.refresh(slave)
        assert slave.duplicate_of_id == first.id

    @pytest.mark.asyncio
    async def test_squash_many(self, db, create_test_event):
        master = await create_test_event()
        slaves = [await create_test_event(), await create_test_event()]

        squashed = await squash_many(db, master, slaves)

        assert squashed == slaves
        assert all(slave.duplicate_of_id == master.id for slave in slaves)


class TestMasterSlaveRelationships:

    @pytest.fixture
    async def family(self, create_test_event):
        start = today()
        master = await create_test_event(title="Master", start_time=start)
        slave1 = await create_test_event(title="1st slave", start_time=start, duplicate_of_id=master.id)
        slave2 = await create_test_event(title="2nd slave", start_time=start, duplicate_of_id=slave1.id)
        orphan = await create_test_event(title="orphan", start_time=start, duplicate_of_id=999_999)
        return master, slave1, slave2, orphan

    @pytest.mark.asyncio
    async def test_recognizes_master(self, db, family):
        master, slave1, slave2, orphan = family
        assert await is_master(db, master)
        assert not await is_master(db, slave2)

    @pytest.mark.asyncio
    async def test_recognizes_slave(self, family):
        master, slave1, slave2, orphan = family
        assert is_slave(slave1)
        assert not is_slave(master)

    @pytest.mark.asyncio
    async def test_progenitor_of_child_and_grandchild(self, db, family):
        master, slave1, slave2, orphan = family
        assert await progenitor(db, slave1) is master
        assert await progenitor(db, slave2) is master

    @pytest.mark.asyncio
    async def test_master_is_its_own_progenitor(self, db, family):
        master = family[0]
        assert await progenitor(db, master) is master

    @pytest.mark.asyncio
    async def test_orphan_is_its_own_progenitor(self, db, family):
        orphan = family[3]
        assert await progenitor(db, orphan) is orphan

    @pytest.mark.asyncio
    async def test_cycle_makes_event_its_own_progenitor(self, db, create_test_event):
        first = await create_test_event(title="First")
        second = await create_test_event(title="Second", duplicate_of_id=first.id)
        first.duplicate_of_id = second.id
        await save_event(db, first)

        assert await progenitor(db, second) is second
