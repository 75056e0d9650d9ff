"""Tests for ReportGenerator and Profiler.report()."""

import pytest

from crude_profiler.profiler import (
    Aggregation,
    AccumulatorEntry,
    ProfilerConfig,
    ReportGenerator,
    SortOrder,
    build_tree,
    label_totals,
    percent,
)


def entries(**kwargs):
    """entries(a=1.0, a__b=2.0) -> {("a",): ..., ("a", "b"): ...}"""
    return {
        tuple(key.split("__")): AccumulatorEntry(total=value, count=1)
        for key, value in kwargs.items()
    }


def generator(**config):
    return ReportGenerator(ProfilerConfig(**config))


class TestPercent:
    def test_zero_whole(self):
        assert percent(5.0, 0.0) == 0.0

    def test_share(self):
        assert percent(1.0, 4.0) == pytest.approx(25.0)


class TestScenario:
    """init for 10% of the time, then compute for 90%."""

    def test_init_compute_breakdown(self, profiler, clock):
        with profiler.push("init") as g:
            clock.advance(1.0)
            g.replace("compute")
            clock.advance(9.0)

        report = profiler.build_report()
        assert [line.label for line in report.lines] == ["compute", "init"]
        by_label = {line.label: line.percent for line in report.lines}
        assert by_label["init"] == pytest.approx(10.0)
        assert by_label["compute"] == pytest.approx(90.0)
        assert sum(by_label.values()) == pytest.approx(100.0)
        assert report.total == pytest.approx(10.0)

        text = profiler.report()
        assert " 90.0% compute: 9000.0ms" in text
        assert " 10.0% init: 1000.0ms" in text
        assert "Total: 10000.0ms" in text

    @pytest.mark.slow
    def test_init_compute_with_real_sleeps(self):
        import time

        from crude_profiler.profiler import Profiler

        profiler = Profiler()
        with profiler.push("init") as g:
            time.sleep(0.01)
            g.replace("compute")
            time.sleep(0.09)

        by_label = {line.label: line.percent for line in profiler.build_report().lines}
        assert set(by_label) == {"init", "compute"}
        assert by_label["init"] == pytest.approx(10.0, abs=8.0)
        assert by_label["compute"] == pytest.approx(90.0, abs=8.0)
        assert sum(by_label.values()) == pytest.approx(100.0)


class TestEmpty:
    def test_empty_report(self, profiler):
        report = profiler.build_report()
        assert report.is_empty
        assert report.total == 0.0

        text = profiler.report()
        assert "No timing data." in text
        assert "Total: 0.0ms" in text

    def test_empty_hierarchical(self, make_profiler):
        text = make_profiler(aggregation="hierarchical").report()
        assert "No timing data." in text

    def test_zero_duration_sections(self, profiler):
        with profiler.push("instant"):
            pass
        report = profiler.build_report()
        assert report.lines[0].percent == 0.0
        assert report.total == 0.0


class TestFlat:
    def test_label_totals_skip_recursion(self):
        grouped = label_totals(entries(a=4.0, a__a=3.0, a__a__a=1.0))
        assert list(grouped) == ["a"]
        assert list(grouped["a"]) == [("a",)]

    def test_same_label_at_different_depths_merges(self):
        report = generator().build(entries(main=7.0, main__parse=1.0, parse=3.0))
        parse = [line for line in report.lines if line.label == "parse"][0]
        assert parse.seconds == pytest.approx(4.0)
        assert parse.percent == pytest.approx(40.0)
        assert report.total == pytest.approx(10.0)

    def test_root_only_labels_sum_to_100(self):
        report = generator().build(entries(a=2.0, b=3.0, c=5.0))
        assert sum(line.percent for line in report.top_level()) == pytest.approx(100.0)

    def test_paths_listed_when_label_is_ambiguous(self):
        report = generator().build(entries(main=7.0, main__parse=1.0, parse=3.0))
        path_lines = [line for line in report.lines if line.is_path]
        assert [line.label for line in path_lines] == ["parse", "main:parse"]
        assert all(line.depth == 1 for line in path_lines)
        assert path_lines[0].percent == pytest.approx(30.0)

        text = generator().render(report)
        assert "    10.0% main:parse: 1000.0ms" in text

    def test_paths_hidden_by_config(self):
        report = generator(show_paths=False).build(
            entries(main=7.0, main__parse=1.0, parse=3.0)
        )
        assert not any(line.is_path for line in report.lines)

    def test_unambiguous_label_has_no_path_lines(self):
        report = generator().build(entries(main=2.0, main__load=1.0))
        assert not any(line.is_path for line in report.lines)


class TestHierarchical:
    def test_child_percent_relative_to_parent(self):
        report = generator(aggregation="hierarchical").build(
            entries(main=8.0, main__load=6.0, main__parse=2.0, other=2.0)
        )
        lines = {line.path: line for line in report.lines}
        assert lines[("main",)].percent == pytest.approx(80.0)
        assert lines[("other",)].percent == pytest.approx(20.0)
        assert lines[("main", "load")].percent == pytest.approx(75.0)
        assert lines[("main", "parse")].percent == pytest.approx(25.0)
        assert lines[("main", "load")].depth == 1

    def test_roots_sum_to_100(self):
        report = generator(aggregation="hierarchical").build(
            entries(a=1.0, a__x=0.5, b=2.0, c=7.0)
        )
        roots = report.top_level()
        assert len(roots) == 3
        assert sum(line.percent for line in roots) == pytest.approx(100.0)

    def test_children_follow_their_parent(self):
        report = generator(aggregation="hierarchical").build(
            entries(a=1.0, b=5.0, a__x=0.5)
        )
        assert [line.path for line in report.lines] == [("b",), ("a",), ("a", "x")]

    def test_missing_parent_synthesized_from_children(self):
        tree = build_tree(entries(outer__a=1.0, outer__b=2.0))
        assert len(tree) == 1
        assert tree[0].total == pytest.approx(3.0)
        assert not tree[0].recorded

    def test_parent_never_smaller_than_children(self):
        # "a" has 1s recorded; its current span (holding 5s of "b") is still open
        data = entries(a=1.0, a__b=5.0)
        tree = build_tree(data)
        assert tree[0].total == pytest.approx(5.0)
        assert tree[0].count == 1

        report = generator(aggregation="hierarchical").build(data)
        lines = {line.path: line for line in report.lines}
        assert lines[("a", "b")].percent == pytest.approx(100.0)
        assert report.total == pytest.approx(5.0)

        flat = generator().build(data)
        assert flat.total == pytest.approx(5.0)
        assert all(line.percent <= 100.0 for line in flat.lines)

    def test_parent_open_in_another_thread(self, make_profiler, clock):
        import threading

        profiler = make_profiler(aggregation="hierarchical")
        with profiler.push("a"):
            clock.advance(1.0)

        inside = threading.Event()
        release = threading.Event()

        def worker():
            with profiler.push("a"):
                with profiler.push("b"):
                    clock.advance(5.0)
                inside.set()
                release.wait(timeout=5)

        t = threading.Thread(target=worker)
        t.start()
        try:
            assert inside.wait(timeout=5)
            report = profiler.build_report()
        finally:
            release.set()
            t.join()

        assert all(line.percent <= 100.0 for line in report.lines)
        lines = {line.path: line for line in report.lines}
        assert lines[("a",)].seconds == pytest.approx(5.0)
        assert lines[("a", "b")].percent == pytest.approx(100.0)
        assert report.total == pytest.approx(5.0)

    def test_indentation(self):
        gen = generator(aggregation="hierarchical")
        text = gen.render(gen.build(entries(main=2.0, main__load=1.0)))
        assert "100.0% main: 2000.0ms" in text
        assert "     50.0% load: 1000.0ms" in text

    def test_aggregation_override_per_call(self, profiler, clock):
        with profiler.push("main"):
            with profiler.push("load"):
                clock.advance(1.0)
            clock.advance(1.0)
        report = profiler.build_report(aggregation=Aggregation.HIERARCHICAL)
        assert report.aggregation is Aggregation.HIERARCHICAL
        assert [line.depth for line in report.lines] == [0, 1]
        # The profiler's own configuration is unchanged
        assert profiler.build_report().aggregation is Aggregation.FLAT


class TestOrdering:
    def test_duration_descending_then_name(self):
        report = generator().build(entries(b=1.0, a=1.0, c=3.0))
        assert [line.label for line in report.lines] == ["c", "a", "b"]

    def test_name(self):
        report = generator(sort=SortOrder.NAME).build(entries(b=1.0, a=1.0, c=3.0))
        assert [line.label for line in report.lines] == ["a", "b", "c"]

    def test_insertion(self):
        report = generator(sort="insertion").build(entries(b=1.0, a=1.0, c=3.0))
        assert [line.label for line in report.lines] == ["b", "a", "c"]

    def test_deterministic(self):
        data = entries(x=1.0, y=2.0, x__y=0.5, z=2.0)
        gen = generator()
        assert gen.render(gen.build(data)) == gen.render(gen.build(data))


class TestFormatting:
    def test_seconds_unit(self):
        gen = generator(unit="s")
        text = gen.render(gen.build(entries(a=1.5)))
        assert "100.0% a: 1.500s" in text
        assert "Total: 1.500s" in text

    def test_counts(self):
        gen = generator()
        data = {("a",): AccumulatorEntry(total=3.0, count=3)}
        assert "(3x, avg 1000.0ms)" in gen.render(gen.build(data))
        gen = generator(show_counts=False)
        assert "3x" not in gen.render(gen.build(data))

    def test_min_ms_hides_short_sections(self):
        report = generator(min_ms=100.0).build(entries(long=1.0, short=0.01))
        assert [line.label for line in report.lines] == ["long"]
        # Hidden lines still count towards the total
        assert report.total == pytest.approx(1.01)

    def test_wall_footer(self, make_profiler, clock):
        profiler = make_profiler(show_wall=True)
        with profiler.push("a"):
            clock.advance(1.0)
        clock.advance(3.0)
        assert "Wall: 4000.0ms (25.0% in sections)" in profiler.report()

    def test_wall_footer_off_by_default(self, profiler):
        assert "Wall:" not in profiler.report()

    def test_report_to_dict(self, profiler, clock):
        with profiler.push("a"):
            clock.advance(1.0)
        data = profiler.build_report().to_dict()
        assert data["aggregation"] == "flat"
        assert data["lines"][0]["label"] == "a"
        assert data["lines"][0]["path"] == ["a"]
        assert data["total"] == pytest.approx(1.0)


class TestOpenSections:
    def test_open_section_included(self, profiler, clock):
        profiler.push("hello world")
        clock.advance(1.0)
        assert "hello world" in profiler.report()

    def test_open_nested_path(self, make_profiler, clock):
        profiler = make_profiler(aggregation="hierarchical")
        profiler.push("hello")
        profiler.push("world")
        clock.advance(1.0)
        paths = [line.path for line in profiler.build_report().lines]
        assert ("hello", "world") in paths

    def test_report_does_not_mutate(self, profiler, clock):
        g = profiler.push("running")
        clock.advance(1.0)
        profiler.report()
        profiler.report()
        clock.advance(1.0)
        g.close()
        entry = profiler.snapshot()[("running",)]
        assert entry.total == pytest.approx(2.0)
        assert entry.count == 1

    def test_open_sections_excluded(self, make_profiler, clock):
        profiler = make_profiler(include_open=False)
        profiler.push("running")
        clock.advance(1.0)
        assert profiler.build_report().is_empty
        assert not profiler.build_report(include_open=True).is_empty

    def test_replace_breakdown_without_nesting(self, profiler, clock):
        g = profiler.push("hello")
        clock.advance(1.0)
        g.replace("world")
        clock.advance(1.0)
        text = profiler.report()
        assert "hello:world" not in text
        assert "hello" in text
        assert "world" in text


class TestSummary:
    def test_summary_and_get(self, profiler, clock):
        with profiler.push("outer"):
            clock.advance(1.0)
            with profiler.push("inner"):
                clock.advance(0.5)
        assert profiler.summary() == {
            "outer": pytest.approx(1500.0),
            "inner": pytest.approx(500.0),
        }
        assert profiler.get("inner") == pytest.approx(500.0)
        assert profiler.get("unknown") == 0.0

    def test_print_report(self, profiler, clock, capsys):
        with profiler.push("printed"):
            clock.advance(1.0)
        profiler.print_report()
        assert "PROFILER REPORT" in capsys.readouterr().out
