"""
Unit tests for fsbridge.metadata module.

Tests cover:
- Metadata invariants (type, no size/mimetype on directories)
- Derived properties and dict conversion
- Coercion of adapter mappings
- Metadata key validation
- Listing uniqueness
- format_listing scope filtering, directory emulation, dedupe and ordering
"""

import pytest

from fsbridge.errors import InvalidArgument, InvalidPath
from fsbridge.metadata import (
    Listing,
    Metadata,
    coerce_metadata,
    format_listing,
    validate_keys,
)


class TestMetadata:
    """Tests for the Metadata record."""

    def test_invalid_type_rejected(self):
        with pytest.raises(ValueError, match="Invalid entry type"):
            Metadata(path="a", type="symlink")

    def test_directory_cannot_have_size_or_mimetype(self):
        with pytest.raises(ValueError):
            Metadata(path="a", type="dir", size=0)
        with pytest.raises(ValueError):
            Metadata(path="a", type="dir", mimetype="inode/directory")

    def test_derived_properties(self):
        meta = Metadata(path="docs/2024/report.final.pdf", type="file", size=10)
        assert meta.is_file and not meta.is_dir
        assert meta.dirname == "docs/2024"
        assert meta.basename == "report.final.pdf"
        assert meta.filename == "report.final"
        assert meta.extension == "pdf"

    def test_dotfile_has_no_extension(self):
        meta = Metadata(path=".bashrc", type="file")
        assert meta.extension == ""
        assert meta.filename == ".bashrc"

    def test_has(self):
        meta = Metadata(path="a", type="file", size=0)
        assert meta.has("size")
        assert not meta.has("mimetype")
        assert not meta.has("not_an_attribute")

    def test_merged_ignores_none(self):
        meta = Metadata(path="a", type="file", size=1, visibility="public")
        merged = meta.merged(size=None, visibility="private")
        assert merged.size == 1
        assert merged.visibility == "private"
        assert meta.visibility == "public"

    def test_merged_without_changes_returns_same_object(self):
        meta = Metadata(path="a", type="file")
        assert meta.merged(size=None) is meta

    def test_to_dict_with_keys_is_exact(self):
        meta = Metadata(path="a.txt", type="file", size=3, timestamp=5)
        assert meta.to_dict(["size", "mimetype"]) == {"size": 3, "mimetype": None}

    def test_to_dict_full_includes_extra(self):
        meta = Metadata(path="d", type="dir", timestamp=5, extra={"owner": "ops"})
        assert meta.to_dict() == {"path": "d", "type": "dir", "timestamp": 5, "owner": "ops"}

    def test_extra_not_part_of_equality(self):
        assert Metadata(path="a", type="file", extra={"x": 1}) == Metadata(path="a", type="file")


class TestCoerceMetadata:
    """Tests for coerce_metadata and Metadata.from_mapping."""

    def test_mapping_is_converted(self):
        meta = coerce_metadata({"path": "/a//b.txt", "type": "file", "size": 4, "etag": "x"})
        assert meta == Metadata(path="a/b.txt", type="file", size=4)
        assert meta.extra == {"etag": "x"}

    def test_missing_path_uses_fallback(self):
        assert coerce_metadata({"type": "dir"}, path="docs").path == "docs"

    def test_missing_type_defaults_to_file(self):
        assert coerce_metadata({"path": "a"}).type == "file"

    def test_directory_mapping_drops_file_only_attributes(self):
        meta = coerce_metadata({"path": "d", "type": "dir", "size": 4096})
        assert meta.size is None

    def test_metadata_path_is_normalized(self):
        assert coerce_metadata(Metadata(path="/a/b/", type="dir")).path == "a/b"

    def test_unsupported_type_rejected(self):
        with pytest.raises(ValueError):
            coerce_metadata(["a", "file"])

    def test_mapping_without_any_path_rejected(self):
        with pytest.raises(ValueError, match="no path"):
            coerce_metadata({"type": "file"})


class TestValidateKeys:
    """Tests for validate_keys."""

    def test_valid_keys_returned_in_order(self):
        assert validate_keys(("size", "mimetype")) == ["size", "mimetype"]

    def test_single_string_key(self):
        assert validate_keys("timestamp") == ["timestamp"]

    def test_unknown_key_rejected(self):
        with pytest.raises(InvalidArgument, match="colour"):
            validate_keys(["size", "colour"])


class TestListing:
    """Tests for the Listing sequence."""

    def test_duplicate_paths_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            Listing("", False, (Metadata(path="a", type="file"), Metadata(path="a", type="file")))

    def test_sequence_behaviour(self):
        entries = (Metadata(path="a", type="file"), Metadata(path="b", type="dir"))
        listing = Listing("", False, entries)
        assert len(listing) == 2
        assert listing[1].path == "b"
        assert list(listing) == list(entries)
        assert listing.paths() == ["a", "b"]
        assert [e.path for e in listing.files()] == ["a"]


class TestFormatListing:
    """Tests for format_listing."""

    def test_non_recursive_keeps_direct_children(self):
        records = [
            {"path": "a.txt", "type": "file"},
            {"path": "sub", "type": "dir"},
            {"path": "sub/b.txt", "type": "file"},
        ]
        listing = format_listing("", False, records)
        assert listing.paths() == ["a.txt", "sub"]

    def test_recursive_keeps_everything_below(self):
        records = [{"path": "sub/b.txt", "type": "file"}, {"path": "sub", "type": "dir"}]
        listing = format_listing("", True, records)
        assert listing.paths() == ["sub", "sub/b.txt"]

    def test_implied_directories_are_emulated(self):
        listing = format_listing("", True, [{"path": "a/b/c.txt", "type": "file"}])
        assert listing.paths() == ["a", "a/b", "a/b/c.txt"]
        assert listing[0].is_dir and listing[1].is_dir

    def test_emulated_directory_visible_in_shallow_listing(self):
        listing = format_listing("", False, [{"path": "a/b/c.txt", "type": "file"}])
        assert listing.paths() == ["a"]

    def test_real_record_wins_over_emulated(self):
        records = [
            {"path": "a/x.txt", "type": "file"},
            {"path": "a", "type": "dir", "timestamp": 5},
        ]
        listing = format_listing("", True, records)
        assert listing[0] == Metadata(path="a", type="dir", timestamp=5)

    def test_duplicates_first_wins(self):
        records = [
            {"path": "a.txt", "type": "file", "size": 1},
            {"path": "/a.txt", "type": "file", "size": 2},
        ]
        listing = format_listing("", False, records)
        assert len(listing) == 1
        assert listing[0].size == 1

    def test_records_outside_scope_dropped(self):
        records = [
            {"path": "docs/a.txt", "type": "file"},
            {"path": "other/b.txt", "type": "file"},
            {"path": "docs", "type": "dir"},
        ]
        listing = format_listing("docs", True, records)
        assert listing.paths() == ["docs/a.txt"]
        assert listing.directory == "docs"
        assert listing.recursive is True

    def test_sorted_by_path(self):
        records = [{"path": name, "type": "file"} for name in ("c", "a", "b")]
        assert format_listing("", False, records).paths() == ["a", "b", "c"]

    def test_invalid_record_path_raises(self):
        with pytest.raises(InvalidPath):
            format_listing("", False, [{"path": "../escape", "type": "file"}])
