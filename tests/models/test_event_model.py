"""Tests for Event model validation and attribute handling."""
import re
import pytest
from datetime import date, datetime, timedelta
from unittest.mock import patch

from calagator.models import Event
from calagator.time_utils import now
from calagator.validators import BlacklistValidator


def test_valid_event():
    """An event with a title and start time is valid."""
    event = Event(title="Event title", start_time=datetime(2008, 4, 12))
    assert event.is_valid


def test_url_gets_http_prefix():
    event = Event(title="Event title", start_time=datetime(2008, 4, 12), url="google.com")
    assert event.url == "http://google.com"
    assert event.is_valid


def test_blacklisted_title_is_invalid():
    """Test validation against blacklisted words."""
    with patch.object(BlacklistValidator, "patterns", [re.compile(r"\bcialis\b")]):
        event = Event(title="Foo bar cialis", start_time=datetime(2008, 4, 12), url="google.com")
        errors = event.validation_errors()
    assert "title" in errors


def test_blank_title_is_invalid():
    event = Event(title="   ", start_time=datetime(2008, 4, 12))
    assert event.validation_errors()["title"] == ["can't be blank"]


@pytest.mark.parametrize("value", [None, ""])
def test_missing_start_time_is_invalid(value):
    event = Event(title="MyEvent", start_time=value)
    errors = event.validation_errors()
    assert len(errors["start_time"]) == 1


def test_end_time_before_start_time_is_invalid():
    """Exactly one error is reported on end_time."""
    start = now()
    event = Event(title="MyEvent", start_time=start, end_time=start - timedelta(hours=2))
    errors = event.validation_errors()
    assert list(errors) == ["end_time"]
    assert len(errors["end_time"]) == 1


def test_end_time_equal_to_start_time_is_valid():
    start = now()
    assert Event(title="MyEvent", start_time=start, end_time=start).is_valid


@pytest.mark.parametrize("url", [
    "hackoregon.org",
    "http://www.meetup.com/Hack_Oregon-Data/events/",
    "example.com",
    "sub.example.com/",
    "sub.domain.my-example.com",
    "example.com/?stuff=true",
    "example.com:5000/?stuff=true",
    "sub.domain.my-example.com/path/to/file/hello.html",
    "hello.museum",
    "http://example.com",
])
def test_valid_urls(url):
    event = Event(title="MyEvent", start_time=now(), url=url)
    assert event.is_valid


@pytest.mark.parametrize("url", [
    "hackoregon.org, http://www.meetup.com/Hack_Oregon-Data/events/",
    "hackoregon.org\nhttp://www.meetup.com/",
    "htttp://www.example.com",
])
def test_invalid_urls(url):
    event = Event(title="MyEvent", start_time=now(), url=url)
    assert "url" in event.validation_errors()


class TestTimeAssignment:
    """Start and end times accept several input forms."""

    @pytest.mark.parametrize("field", ["start_time", "end_time"])
    def test_clear_with_none(self, field):
        assert getattr(Event(**{field: None}), field) is None

    @pytest.mark.parametrize("field", ["start_time", "end_time"])
    def test_set_from_date_string(self, field):
        assert getattr(Event(**{field: "2009-01-02"}), field) == datetime(2009, 1, 2)

    @pytest.mark.parametrize("field", ["start_time", "end_time"])
    def test_set_from_datetime_string(self, field):
        assert getattr(Event(**{field: "2009-01-02 03:45"}), field) == datetime(2009, 1, 2, 3, 45)

    @pytest.mark.parametrize("field", ["start_time", "end_time"])
    def test_set_from_date(self, field):
        assert getattr(Event(**{field: date(2009, 2, 1)}), field) == datetime(2009, 2, 1)

    @pytest.mark.parametrize("field", ["start_time", "end_time"])
    def test_set_from_datetime(self, field):
        value = datetime(2009, 1, 1, 5, 30)
        assert getattr(Event(**{field: value}), field) == value

    def test_invalid_start_time_is_flagged_and_reset(self):
        event = Event(title="MyEvent", start_time="2010/1/1")
        assert event.start_time == datetime(2010, 1, 1)
        event.start_time = "1/0"
        assert event.start_time is None
        assert event.validation_errors()["start_time"] == ["is invalid"]

    def test_invalid_end_time_is_flagged(self):
        event = Event(title="MyEvent", start_time=now(), end_time="1/0")
        assert event.end_time is None
        assert event.validation_errors()["end_time"] == ["is invalid"]

    def test_error_clears_after_valid_assignment(self):
        event = Event(title="MyEvent", start_time="1/0")
        event.start_time = "2010-01-01"
        assert event.is_valid


def test_duration_in_seconds():
    event = Event(start_time="2010-01-01", end_time="2010-01-03")
    assert event.duration == 172_800


def test_duration_without_times_is_zero():
    assert Event().duration == 0


class TestTimeStatus:

    def test_old_if_ended_before_today(self):
        event = Event(start_time=now() - timedelta(days=2), end_time=now() - timedelta(days=1))
        assert event.is_old()

    def test_current_if_happening_today(self):
        event = Event(start_time=now() + timedelta(hours=1))
        assert event.is_current()

    def test_ongoing_if_began_before_today_and_ends_later(self):
        event = Event(start_time=now() - timedelta(days=1), end_time=now() + timedelta(days=1))
        assert event.is_ongoing()


class TestTags:

    def test_new_event_has_no_tags(self):
        assert Event(title="Tagging Day", start_time=now()).tag_list == []

    def test_tags_from_comma_separated_string(self):
        event = Event(title="Tagging Day", start_time=now())
        event.tag_list = "some, tags"
        assert event.tag_list == ["some", "tags"]
        assert event.tag_list_str == "some, tags"

    def test_tags_keep_punctuation_and_case(self):
        event = Event(title="Tagging Day", start_time=now())
        event.tag_list = [".net", "foo-bar", "Foo-bar", ".net"]
        assert event.tag_list == [".net", "foo-bar", "Foo-bar"]

    def test_numeric_tags_stay_text(self):
        event = Event(title="Tagging Day", start_time=now(), tag_list="123")
        assert event.tag_list == ["123"]

    def test_add_tags_appends_only_new_ones(self):
        event = Event(tag_list=["first", "second"])
        event.add_tags(["second", "third"])
        assert event.tag_list == ["first", "second", "third"]


def test_multiday_detection():
    start = datetime(2024, 3, 1, 10)
    assert Event(start_time=start, end_time=start + timedelta(days=4)).is_multiday
    assert not Event(start_time=start, end_time=start + timedelta(hours=20)).is_multiday
    assert not Event(start_time=start).is_multiday
