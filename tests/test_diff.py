"""Tests for tracked-field change detection and removed-field detection."""

from search_sync.sync.diff import fields_updated, lookup, removed_fields


class TestLookup:
    def test_top_level(self) -> None:
        assert lookup({"a": 1}, "a") == 1

    def test_dotted_path(self) -> None:
        assert lookup({"a": {"b": {"c": 3}}}, "a.b.c") == 3

    def test_literal_dotted_key_wins(self) -> None:
        assert lookup({"a.b": 1, "a": {"b": 2}}, "a.b") == 1

    def test_missing(self) -> None:
        assert lookup({"a": {"b": 1}}, "a.x") is None
        assert lookup({"a": 1}, "a.b") is None
        assert lookup(None, "a") is None


class TestFieldsUpdated:
    """Tests for fields_updated."""

    def test_no_tracked_fields_compares_everything(self) -> None:
        assert fields_updated([], {"a": 1, "b": 2}, {"a": 1, "b": 3}) is True

    def test_no_tracked_fields_identical_documents(self) -> None:
        assert fields_updated(None, {"a": 1}, {"a": 1}) is False

    def test_untracked_change_is_ignored(self) -> None:
        before = {"title": "x", "views": 1}
        after = {"title": "x", "views": 2}
        assert fields_updated(["title"], before, after) is False

    def test_tracked_change_detected(self) -> None:
        assert fields_updated(["title"], {"title": "x"}, {"title": "y"}) is True

    def test_nested_value_equality(self) -> None:
        """Nested structures are compared by value, not identity."""
        before = {"meta": {"tags": ["a", "b"], "size": {"w": 1}}}
        after = {"meta": {"tags": ["a", "b"], "size": {"w": 1}}}
        assert fields_updated(["meta"], before, after) is False
        assert fields_updated([], before, after) is False

    def test_nested_difference(self) -> None:
        before = {"meta": {"tags": ["a", "b"]}}
        after = {"meta": {"tags": ["a", "c"]}}
        assert fields_updated(["meta"], before, after) is True

    def test_dotted_tracked_field(self) -> None:
        before = {"meta": {"color": "red", "size": 1}}
        after = {"meta": {"color": "red", "size": 2}}
        assert fields_updated(["meta.color"], before, after) is False
        assert fields_updated(["meta.size"], before, after) is True

    def test_tracked_field_added(self) -> None:
        assert fields_updated(["title"], {}, {"title": "new"}) is True

    def test_blank_tracked_field_names_ignored(self) -> None:
        assert fields_updated(["", "title"], {"title": "x"}, {"title": "x", "other": 1}) is False


class TestRemovedFields:
    """Tests for removed_fields."""

    def test_no_removals(self) -> None:
        assert removed_fields({"a": 1, "b": 2}, {"a": 1, "b": 3, "c": 4}) == set()

    def test_missing_key_is_removed(self) -> None:
        assert removed_fields({"a": 1, "b": 2}, {"a": 1}) == {"b"}

    def test_null_value_is_removed(self) -> None:
        assert removed_fields({"a": 1, "b": 2}, {"a": 1, "b": None}) == {"b"}

    def test_falsy_values_are_not_removed(self) -> None:
        """Empty strings, zero and False are values, not removals."""
        before = {"a": "x", "b": 1, "c": True}
        after = {"a": "", "b": 0, "c": False}
        assert removed_fields(before, after) == set()

    def test_empty_before(self) -> None:
        assert removed_fields({}, {"a": 1}) == set()
        assert removed_fields(None, {"a": 1}) == set()
