"""Tests for prpkit.lib.tap."""

from prpkit.lib.tap import parse_tap, parse_tap_file

SAMPLE = """\
1..4
ok 1 setup works
not ok 2 - parses config
# (in test file tests/unit/config.bats, line 12)
#   `[ "$status" -eq 0 ]' failed
ok 3 skipped thing # SKIP no docker
ok 4 todo thing # TODO later
"""


class TestParseTap:
    """TAP stream parsing."""

    def test_counts(self):
        report = parse_tap(SAMPLE)
        assert report.total == 4
        assert report.passed == 3
        assert report.failed == 1
        assert report.skipped == 1
        assert report.plans == [(1, 4)]

    def test_result_fields(self):
        report = parse_tap(SAMPLE)
        first, second = report.results[0], report.results[1]
        assert first.number == 1
        assert first.description == "setup works"
        assert first.ok
        assert second.description == "parses config"
        assert not second.ok
        assert second.raw == "not ok 2 - parses config"

    def test_comments_attach_to_previous_result(self):
        report = parse_tap(SAMPLE)
        assert report.results[1].diagnostics == [
            "(in test file tests/unit/config.bats, line 12)",
            "`[ \"$status\" -eq 0 ]' failed",
        ]
        assert report.results[0].diagnostics == []

    def test_directives(self):
        report = parse_tap(SAMPLE)
        skip, todo = report.results[2], report.results[3]
        assert skip.directive == "SKIP"
        assert skip.directive_reason == "no docker"
        assert skip.description == "skipped thing"
        assert todo.directive == "TODO"
        assert not todo.skipped

    def test_leading_comments(self):
        report = parse_tap("# header\nok 1 a\n")
        assert report.comments == ["header"]

    def test_success_rate(self):
        assert parse_tap(SAMPLE).success_rate == 75.0

    def test_empty_stream(self):
        report = parse_tap("")
        assert report.is_empty()
        assert report.success_rate == 0.0

    def test_concatenated_streams(self):
        report = parse_tap("1..1\nok 1 a\n1..2\nok 1 b\nnot ok 2 c\n")
        assert report.plans == [(1, 1), (1, 2)]
        assert report.total == 3
        assert [r.description for r in report.failures] == ["c"]

    def test_missing_number(self):
        report = parse_tap("ok works without number\n")
        assert report.results[0].number is None
        assert report.results[0].description == "works without number"

    def test_ignores_other_lines(self):
        report = parse_tap("Bail out! nope\nrandom text\nok 1 a\n")
        assert report.total == 1

    def test_parse_file(self, tmp_path):
        path = tmp_path / "r.tap"
        path.write_text(SAMPLE)
        assert parse_tap_file(path).total == 4
