"""Tests for schedule parsing, the radix tree and the rule parser.

These run without mitmproxy or any network access.
"""

import logging
from datetime import datetime

import pytest

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dnsfilter.blockname import (
    BlockType,
    RuleSyntaxError,
    TimeFormatError,
    TimeRange,
    Tree,
    WeeklyRanges,
    compile_rules,
    is_glob_candidate,
    load_rules,
    parse_clock,
    parse_rule_line,
    parse_time_ranges,
    parse_weekly_ranges,
    validate_rules,
)


# =============================================================================
# Schedule Tests
# =============================================================================


class TestParseClock:
    """Tests for HH:MM parsing."""

    def test_midnight(self):
        """00:00 is the start of the day."""
        assert parse_clock("00:00") == 0

    def test_last_minute(self):
        """23:59 is the last valid clock value."""
        assert parse_clock("23:59") == 86340

    def test_every_valid_value(self):
        """All valid hours and minutes convert to seconds."""
        for hour in range(24):
            for minute in range(60):
                value = f"{hour:02d}:{minute:02d}"
                assert parse_clock(value) == (hour * 60 + minute) * 60

    @pytest.mark.parametrize(
        "value",
        ["24:00", "12:60", "-1:00", "12", "1:2:3", "ab:cd", "", "12:", ":30"],
    )
    def test_invalid(self, value):
        """Malformed or out-of-range values are rejected."""
        with pytest.raises(TimeFormatError) as exc:
            parse_clock(value)
        assert value in str(exc.value)


class TestTimeRanges:
    """Tests for time range lists and weekly schedules."""

    def test_ranges_are_collected(self):
        """Every pair produces a range."""
        ranges = parse_time_ranges([("09:00", "12:00"), ("13:00", "18:00")])

        assert ranges == [TimeRange(32400, 43200), TimeRange(46800, 64800)]

    def test_equal_ends_mean_full_day(self):
        """after == before covers the whole day."""
        ranges = parse_time_ranges([("08:00", "08:00")])

        assert ranges == [TimeRange(-1, 86402)]
        assert ranges[0].full_day
        assert ranges[0].contains(0)
        assert ranges[0].contains(86399)

    def test_mapping_pairs(self):
        """Pairs may be given as mappings."""
        ranges = parse_time_ranges([{"after": "21:00", "before": "07:00"}])

        assert ranges == [TimeRange(75600, 25200)]

    def test_first_error_propagates(self):
        """A bad pair fails the whole list."""
        with pytest.raises(TimeFormatError):
            parse_time_ranges([("09:00", "12:00"), ("13:00", "25:00")])

    def test_wrapping_range(self):
        """A range ending before it starts wraps past midnight."""
        night = TimeRange(parse_clock("21:00"), parse_clock("07:00"))

        assert night.contains(parse_clock("22:30"))
        assert night.contains(parse_clock("03:00"))
        assert not night.contains(parse_clock("12:00"))

    def test_weekly_slots(self):
        """Each weekday lands in its own slot; missing days are empty."""
        weekly = parse_weekly_ranges(
            {
                "mon": [("09:00", "17:00")],
                "sat": [("00:00", "00:00")],
            }
        )

        assert weekly.for_day("mon") == (TimeRange(32400, 61200),)
        assert weekly.for_day("sat") == (TimeRange(-1, 86402),)
        assert weekly.for_day("sun") == ()
        assert len(weekly.ranges) == 7

    def test_weekly_error_propagates(self):
        """A bad day fails the whole schedule."""
        with pytest.raises(TimeFormatError):
            parse_weekly_ranges({"mon": [("09:00", "17:00")], "tue": [("9", "10")]})

    def test_weekly_match(self):
        """Schedules match on weekday and time of day."""
        weekly = parse_weekly_ranges({"mon": [("21:00", "07:00")]})

        # 2024-05-06 is a Monday, 2024-05-05 a Sunday
        assert weekly.match(datetime(2024, 5, 6, 22, 0))
        assert weekly.match(datetime(2024, 5, 6, 3, 0))
        assert not weekly.match(datetime(2024, 5, 6, 12, 0))
        assert not weekly.match(datetime(2024, 5, 5, 22, 0))

    def test_empty_schedule_never_matches(self):
        """A schedule without ranges is never active."""
        assert not WeeklyRanges().match(datetime(2024, 5, 6, 12, 0))


# =============================================================================
# Radix Tree Tests
# =============================================================================


class TestTree:
    """Tests for the persistent radix tree."""

    def test_insert_returns_new_tree(self):
        """Insert leaves the original tree untouched."""
        empty = Tree()
        tree, old, updated = empty.insert("moc.elpmaxe", "v1")

        assert len(empty) == 0
        assert "moc.elpmaxe" not in empty
        assert len(tree) == 1
        assert tree.get("moc.elpmaxe") == "v1"
        assert old is None
        assert not updated

    def test_older_versions_survive_splits(self):
        """Edge splits in a new version do not leak into older ones."""
        v1, _, _ = Tree().insert("test", 1)
        v2, _, _ = v1.insert("team", 2)
        v3, _, _ = v2.insert("toast", 3)

        assert v1.keys() == ["test"]
        assert v2.keys() == ["team", "test"]
        assert v3.keys() == ["team", "test", "toast"]
        assert v3.get("te") is None
        assert "te" not in v3

    def test_overwrite(self):
        """Inserting an existing key replaces its value."""
        tree, _, _ = Tree().insert("abc", 1)
        tree, old, updated = tree.insert("abc", 2)

        assert updated
        assert old == 1
        assert tree.get("abc") == 2
        assert len(tree) == 1

    def test_longest_prefix(self):
        """The longest stored key that prefixes the search wins."""
        tree = Tree()
        for key in ["moc", "moc.elpmaxe", "moc.elpmaxe.sda"]:
            tree, _, _ = tree.insert(key, key.upper())

        assert tree.longest_prefix("moc.elpmaxe.sda.x") == (
            "moc.elpmaxe.sda",
            "MOC.ELPMAXE.SDA",
            True,
        )
        assert tree.longest_prefix("moc.elpmaxe.www")[0] == "moc.elpmaxe"
        assert tree.longest_prefix("moc.other")[0] == "moc"
        assert tree.longest_prefix("mo") == ("", None, False)
        assert tree.longest_prefix("ten.elpmaxe") == ("", None, False)

    def test_longest_prefix_partial_edge(self):
        """A key that stops inside an edge label is not a match."""
        tree, _, _ = Tree().insert("moc.elpmaxe", None)

        assert tree.longest_prefix("moc")[2] is False
        assert tree.longest_prefix("moc.elpmaxe")[2] is True

    def test_many_keys(self):
        """All inserted keys are retrievable and iterate in order."""
        keys = ["b", "a", "abc", "ab", "abd", "b.c", "ba", "z", "zz", "abcd"]
        tree = Tree()
        for i, key in enumerate(keys):
            tree, _, _ = tree.insert(key, i)

        assert len(tree) == len(keys)
        assert list(tree) == sorted(keys)
        for i, key in enumerate(keys):
            assert tree.get(key) == i


# =============================================================================
# Rule Parser Tests
# =============================================================================


class TestParseRuleLine:
    """Tests for classifying single rule lines."""

    @pytest.mark.parametrize(
        "line,kind,text",
        [
            ("ads.example.com", BlockType.SUFFIX, "ads.example.com"),
            ("*.example.com", BlockType.SUFFIX, "example.com"),
            (".example.com", BlockType.SUFFIX, "example.com"),
            ("*example.com", BlockType.SUFFIX, "example.com"),
            ("  ADS.Example.COM  ", BlockType.SUFFIX, "ads.example.com"),
            ("example.*", BlockType.PREFIX, "example."),
            ("*bad*", BlockType.SUBSTRING, "bad"),
            ("a?c.com", BlockType.PATTERN, "a?c.com"),
            ("ads.*.com", BlockType.PATTERN, "ads.*.com"),
            ("[ab]x.com", BlockType.PATTERN, "[ab]x.com"),
            ("*ad[0-9]*", BlockType.PATTERN, "*ad[0-9]*"),
            ("ad[^0-9].com", BlockType.PATTERN, "ad[^0-9].com"),
            ("a\\?.com", BlockType.PATTERN, "a\\?.com"),
        ],
    )
    def test_classification(self, line, kind, text):
        """Each syntax maps to its rule kind and normalized text."""
        rule = parse_rule_line(line, 1)

        assert rule.kind == kind
        assert rule.text == text

    @pytest.mark.parametrize("line", ["", "   ", "# comment", "  # indented"])
    def test_comments_and_blanks(self, line):
        """Comments and blank lines produce no rule."""
        assert parse_rule_line(line, 1) is None

    @pytest.mark.parametrize(
        "line",
        [
            "*", "**", "*.", ".", "?", "[abc", "ad[.com",
            "a[]b.com", "a[-z]b.com", "a[^]b.com", "a[z-]b.com", "a?b\\",
        ],
    )
    def test_syntax_errors(self, line):
        """Rules that are empty after stripping or bad globs are rejected."""
        with pytest.raises(RuleSyntaxError) as exc:
            parse_rule_line(line, 7)
        assert exc.value.line_no == 7

    def test_too_many_at_signs(self):
        """More than one @ is a syntax error."""
        with pytest.raises(RuleSyntaxError) as exc:
            parse_rule_line("ads.com @a @b", 3)
        assert "Unexpected @" in str(exc.value)

    def test_glob_candidates(self):
        """Only inner stars, ? and [ make a glob."""
        assert is_glob_candidate("a*b")
        assert is_glob_candidate("a?b")
        assert is_glob_candidate("[a]")
        assert not is_glob_candidate("*ab")
        assert not is_glob_candidate("ab*")
        assert not is_glob_candidate("*ab*")

    def test_schedule_resolved(self):
        """A known schedule name is attached to the rule."""
        night = parse_weekly_ranges({"mon": [("21:00", "07:00")]})
        rule = parse_rule_line("games.* @night", 1, {"night": night})

        assert rule.kind == BlockType.PREFIX
        assert rule.text == "games."
        assert rule.schedule_name == "night"
        assert rule.schedule is night

    def test_unknown_schedule_logged(self, caplog):
        """An unknown schedule is logged and the rule kept without one."""
        with caplog.at_level(logging.ERROR):
            rule = parse_rule_line("games.* @nope", 4, {})

        assert rule.text == "games."
        assert rule.schedule is None
        assert "Time range [nope] not found at line 4" in caplog.text


class TestCompileRules:
    """Tests for compiling whole rule files."""

    RULES = """
    # ads
    ads.example.com
    *.tracker.net
    example.*
    *bad*
    *bad*
    a?c.com
    ***
    x@y@z
    *
    *evil*
    """

    def test_structures(self):
        """Rules land in the structure for their kind."""
        rules = compile_rules(self.RULES)

        assert "moc.elpmaxe.sda" in rules.suffixes
        assert "ten.rekcart" in rules.suffixes
        assert "example." in rules.prefixes
        assert [r.text for r in rules.substrings] == ["bad", "bad", "evil"]
        assert [r.text for r in rules.patterns] == ["a?c.com", "***"]
        assert rules.rule_count == 8

    def test_errors_skip_lines(self, caplog):
        """Bad lines are logged and skipped; later lines still load."""
        with caplog.at_level(logging.ERROR):
            rules = compile_rules(self.RULES)

        assert [e.line_no for e in rules.errors] == [10, 11]
        assert "line 10" in caplog.text
        assert [r.text for r in rules.substrings][-1] == "evil"

    def test_compiling_twice_is_stable(self):
        """The same input always yields the same structures."""
        a = compile_rules(self.RULES)
        b = compile_rules(self.RULES)

        assert list(a.suffixes.items()) == list(b.suffixes.items())
        assert list(a.prefixes.items()) == list(b.prefixes.items())
        assert a.substrings == b.substrings
        assert a.patterns == b.patterns

    def test_schedule_is_index_value(self):
        """Prefix and suffix entries carry their schedule."""
        work = parse_weekly_ranges({"mon": [("09:00", "17:00")]})
        rules = compile_rules("social.com @work\nvideo.* @work\n", {"work": work})

        assert rules.suffixes.get("moc.laicos") is work
        assert rules.prefixes.get("video.") is work

    def test_load_rules(self, tmp_path):
        """Rules are read from a UTF-8 file."""
        path = tmp_path / "blocked-names.txt"
        path.write_text("ads.example.com\nexample.*\n", encoding="utf-8")

        rules = load_rules(path)

        assert rules.rule_count == 2

    def test_load_missing_file(self, tmp_path):
        """An unreadable rule file is fatal."""
        with pytest.raises(OSError):
            load_rules(tmp_path / "missing.txt")

    def test_validate_rules(self):
        """validate_rules lists every problem with its line."""
        problems = validate_rules("ok.com\n*\nads.* @nope\na@b@c\n")

        assert len(problems) == 3
        assert "line 2" in problems[0]
        assert "Time range [nope] not found at line 3" == problems[1]
        assert "line 4" in problems[2]

    def test_validate_clean(self):
        """A clean file has no problems."""
        assert validate_rules("# fine\nads.example.com\n*bad*\n") == []
