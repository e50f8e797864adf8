"""Tests for glob compilation and matching."""

from pathlib import Path

import pytest

from ripgrave.core.globbing import GlobSet, compile_pattern, expand_braces, is_glob

BASE = Path("/home/u/proj")


def matches(patterns: str | list[str], relative: str, max_depth: int = 10) -> bool:
    if isinstance(patterns, str):
        patterns = [patterns]
    return GlobSet(patterns, max_depth).matches(BASE / relative, BASE)


class TestExpandBraces:
    """Test brace expansion."""

    def test_simple_group(self) -> None:
        """Test a comma separated group."""
        assert expand_braces("*.{png,jpg,gif}") == ["*.png", "*.jpg", "*.gif"]

    def test_whitespace_is_ignored(self) -> None:
        """Test options written with spaces after commas."""
        assert expand_braces("*.{png, jpg}") == ["*.png", "*.jpg"]

    def test_nested_groups(self) -> None:
        """Test groups inside groups."""
        assert expand_braces("a{b,c{d,e}}") == ["ab", "acd", "ace"]

    def test_multiple_groups(self) -> None:
        """Test the cartesian product of two groups."""
        assert expand_braces("{a,b}/{c,d}") == ["a/c", "a/d", "b/c", "b/d"]

    def test_literal_braces(self) -> None:
        """Test groups without alternatives and unbalanced braces."""
        assert expand_braces("{a}") == ["{a}"]
        assert expand_braces("x{a,b") == ["x{a,b"]


class TestSegmentMatching:
    """Test single pattern semantics."""

    def test_basename_pattern_matches_any_depth(self) -> None:
        """Test that a pattern without '/' matches the last segment."""
        assert matches("*.txt", "a.txt")
        assert matches("*.txt", "deep/er/a.txt")
        assert not matches("*.txt", "a.txt/inner")

    def test_anchored_pattern(self) -> None:
        """Test that a pattern with '/' is anchored at the base."""
        assert matches("src/*.py", "src/main.py")
        assert not matches("src/*.py", "lib/src/main.py")
        assert not matches("src/*.py", "src/pkg/main.py")

    def test_recursive_wildcard(self) -> None:
        """Test that '**' spans zero or more segments."""
        assert matches("src/**/*.py", "src/main.py")
        assert matches("src/**/*.py", "src/a/b/c/main.py")
        assert not matches("src/**/*.py", "test/main.py")

    def test_single_segment_wildcards(self) -> None:
        """Test that '*' and '?' never cross a separator."""
        assert matches("a/*/c", "a/b/c")
        assert not matches("a/*/c", "a/b/x/c")
        assert matches("file?.log", "file1.log")
        assert not matches("file?.log", "file10.log")

    def test_character_class(self) -> None:
        """Test bracket expressions."""
        assert matches("img[0-9].png", "img7.png")
        assert not matches("img[0-9].png", "imgx.png")
        assert matches("img[!0-9].png", "imgx.png")

    def test_absolute_pattern(self) -> None:
        """Test that an absolute pattern matches the whole path."""
        assert matches("/home/u/proj/*.md", "README.md")
        assert not matches("/home/other/*.md", "README.md")

    def test_braces_in_pattern(self) -> None:
        """Test brace alternatives inside a pattern."""
        assert matches("*.{png, jpg}", "photos/cat.jpg")
        assert not matches("*.{png, jpg}", "photos/cat.gif")

    def test_negation_flag(self) -> None:
        """Test that a leading '!' is parsed as negation."""
        compiled = compile_pattern("!*.log")

        assert compiled.negated
        assert compiled.pattern == "!*.log"


class TestGlobSet:
    """Test pattern groups."""

    def test_positives_are_ored(self) -> None:
        """Test that any positive pattern selects a path."""
        assert matches(["*.png", "*.jpg"], "a.jpg")
        assert not matches(["*.png", "*.jpg"], "a.gif")

    def test_negation_excludes(self) -> None:
        """Test that negated patterns remove paths from the positives."""
        patterns = ["*.txt", "!keep.txt"]

        assert matches(patterns, "notes.txt")
        assert not matches(patterns, "keep.txt")
        assert not matches(patterns, "sub/keep.txt")

    def test_only_negations_select_everything_else(self) -> None:
        """Test a group made only of negated patterns."""
        assert matches(["!*.log"], "a.txt")
        assert not matches(["!*.log"], "a.log")

    def test_depth_bound(self) -> None:
        """Test that deeper candidates never match."""
        assert matches("*.txt", "a/b/c.txt", max_depth=3)
        assert not matches("*.txt", "a/b/c/d.txt", max_depth=3)

    def test_outside_base(self) -> None:
        """Test that paths outside the base never match."""
        globset = GlobSet(["*"])

        assert not globset.matches(Path("/elsewhere/f"), BASE)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("plain.txt", False),
        ("dir/file", False),
        ("*.txt", True),
        ("file?", True),
        ("[ab]", True),
        ("{a,b}", True),
        ("!keep", True),
    ],
)
def test_is_glob(text: str, expected: bool) -> None:
    """Test detection of glob syntax in unbury targets."""
    assert is_glob(text) is expected
