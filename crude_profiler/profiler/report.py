"""Turn accumulated section times into a percentage breakdown.

Two views of the same per-path data:

    flat (default)                      hierarchical
    ------------------------------      ------------------------------
     70.0% main: 70.0ms                  70.0% main: 70.0ms
     60.0% load: 60.0ms                      85.7% load: 60.0ms
     40.0% parse: 40.0ms                     14.3% parse: 10.0ms
         30.0% parse: 30.0ms             30.0% parse: 30.0ms
         10.0% main:parse: 10.0ms

Flat percentages are shares of the grand total (sum of root sections), so
only labels that never nest add up to 100. Hierarchical children are shares
of their parent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..common.base_schema import BaseSchema
from .accumulator import AccumulatorEntry, SectionPath
from .config import Aggregation, ProfilerConfig, SortOrder, TimeUnit

WIDTH = 50


def percent(part: float, whole: float) -> float:
    """100 * part / whole, defined as 0.0 when whole is zero."""
    return 100.0 * part / whole if whole > 0 else 0.0


@dataclass
class ReportLine(BaseSchema):
    """One rendered row of a report."""

    label: str
    seconds: float
    percent: float
    count: int = 0
    depth: int = 0
    path: tuple[str, ...] = ()
    is_path: bool = False  # flat view: one of the paths leading to the label above

    @property
    def avg(self) -> float:
        return self.seconds / self.count if self.count else 0.0


@dataclass
class Report(BaseSchema):
    aggregation: Aggregation
    lines: list[ReportLine] = field(default_factory=list)
    total: float = 0.0
    wall: Optional[float] = None
    issues: dict[str, int] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def top_level(self) -> list[ReportLine]:
        return [line for line in self.lines if line.depth == 0]


@dataclass
class _Node:
    path: SectionPath
    total: float = 0.0
    count: int = 0
    order: int = 0
    recorded: bool = False
    children: list["_Node"] = field(default_factory=list)


def build_tree(entries: dict[SectionPath, AccumulatorEntry]) -> list[_Node]:
    """Nest entries by path. Returns the root nodes.

    A node is never smaller than the sum of its children. An ancestor with no
    entry of its own (still open when the snapshot was taken) gets exactly that
    sum; one whose recorded spans are shorter than its children (its current
    span is still open elsewhere) is raised to it.
    """
    nodes: dict[SectionPath, _Node] = {}
    roots: list[_Node] = []

    def get_node(path: SectionPath) -> _Node:
        node = nodes.get(path)
        if node is None:
            node = nodes[path] = _Node(path=path, order=len(nodes))
            if len(path) == 1:
                roots.append(node)
            else:
                get_node(path[:-1]).children.append(node)
        return node

    for path, entry in entries.items():
        if not path:
            continue
        node = get_node(path)
        node.total = entry.total
        node.count = entry.count
        node.recorded = True

    def fill(node: _Node) -> float:
        child_sum = sum(fill(child) for child in node.children)
        node.total = max(node.total, child_sum)
        return node.total

    for root in roots:
        fill(root)
    return roots


def _with_tree_totals(
    entries: dict[SectionPath, AccumulatorEntry], roots: list[_Node]
) -> dict[SectionPath, AccumulatorEntry]:
    """Entries with totals taken from the filled tree, same order."""
    totals: dict[SectionPath, float] = {}
    pending = list(roots)
    while pending:
        node = pending.pop()
        totals[node.path] = node.total
        pending.extend(node.children)
    return {
        path: AccumulatorEntry(total=totals[path], count=entry.count)
        for path, entry in entries.items()
        if path
    }


def label_totals(
    entries: dict[SectionPath, AccumulatorEntry],
) -> dict[str, dict[SectionPath, AccumulatorEntry]]:
    """Group paths by their last label, outermost occurrence only.

    A path whose label already appears among its ancestors is skipped: its
    time is inside the outer occurrence's total.
    """
    grouped: dict[str, dict[SectionPath, AccumulatorEntry]] = {}
    for path, entry in entries.items():
        if not path or path[-1] in path[:-1]:
            continue
        grouped.setdefault(path[-1], {})[path] = entry
    return grouped


class ReportGenerator:
    """Builds Report objects from accumulator snapshots and renders them."""

    def __init__(self, config: Optional[ProfilerConfig] = None):
        self.config = config or ProfilerConfig()

    # -------------------------------------------------------------------------
    # Building
    # -------------------------------------------------------------------------

    def build(
        self,
        entries: dict[SectionPath, AccumulatorEntry],
        wall: Optional[float] = None,
        issues: Optional[dict[str, int]] = None,
    ) -> Report:
        roots = build_tree(entries)
        total = sum(root.total for root in roots)

        if self.config.aggregation is Aggregation.HIERARCHICAL:
            lines = list(self._tree_lines(roots, total, depth=0))
        else:
            lines = list(self._flat_lines(_with_tree_totals(entries, roots), total))

        return Report(
            aggregation=self.config.aggregation,
            lines=lines,
            total=total,
            wall=wall,
            issues=dict(issues or {}),
        )

    def _visible(self, seconds: float) -> bool:
        return seconds * 1000.0 >= self.config.min_ms

    def _sorted(self, items: list, name, seconds, order) -> list:
        sort = self.config.sort
        if sort is SortOrder.NAME:
            return sorted(items, key=name)
        if sort is SortOrder.INSERTION:
            return sorted(items, key=order)
        return sorted(items, key=lambda item: (-seconds(item), name(item)))

    def _tree_lines(
        self, nodes: list[_Node], parent_total: float, depth: int
    ) -> Iterable[ReportLine]:
        ordered = self._sorted(
            nodes,
            name=lambda n: n.path[-1],
            seconds=lambda n: n.total,
            order=lambda n: n.order,
        )
        for node in ordered:
            if not self._visible(node.total):
                continue
            yield ReportLine(
                label=node.path[-1],
                seconds=node.total,
                percent=percent(node.total, parent_total),
                count=node.count,
                depth=depth,
                path=node.path,
            )
            yield from self._tree_lines(node.children, node.total, depth + 1)

    def _flat_lines(
        self, entries: dict[SectionPath, AccumulatorEntry], total: float
    ) -> Iterable[ReportLine]:
        first_seen = {path: i for i, path in enumerate(entries)}
        sections = [
            (
                label,
                sum(e.total for e in paths.values()),
                sum(e.count for e in paths.values()),
                paths,
            )
            for label, paths in label_totals(entries).items()
        ]
        ordered = self._sorted(
            sections,
            name=lambda s: s[0],
            seconds=lambda s: s[1],
            order=lambda s: min(first_seen[p] for p in s[3]),
        )
        for label, seconds, hits, paths in ordered:
            if not self._visible(seconds):
                continue
            yield ReportLine(
                label=label,
                seconds=seconds,
                percent=percent(seconds, total),
                count=hits,
                depth=0,
                path=(label,),
            )
            if not self.config.show_paths or len(paths) < 2:
                continue
            for path in self._sorted(
                list(paths),
                name=lambda p: p,
                seconds=lambda p: paths[p].total,
                order=lambda p: first_seen[p],
            ):
                entry = paths[path]
                if not self._visible(entry.total):
                    continue
                yield ReportLine(
                    label=":".join(path),
                    seconds=entry.total,
                    percent=percent(entry.total, total),
                    count=entry.count,
                    depth=1,
                    path=path,
                    is_path=True,
                )

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    def format_duration(self, seconds: float) -> str:
        unit = self.config.unit
        if unit is TimeUnit.S:
            return f"{seconds:.3f}s"
        return f"{seconds * unit.scale:.1f}ms"

    def format_line(self, line: ReportLine) -> str:
        prefix = "    " * line.depth
        text = f"{prefix}{line.percent:5.1f}% {line.label}: {self.format_duration(line.seconds)}"
        if self.config.show_counts and line.count > 1:
            text += f" ({line.count}x, avg {self.format_duration(line.avg)})"
        return text

    def render(self, report: Report) -> str:
        out = ["=" * WIDTH, "PROFILER REPORT", "=" * WIDTH]
        if report.is_empty:
            out.append("No timing data.")
        out.extend(self.format_line(line) for line in report.lines)
        out.append("-" * WIDTH)
        out.append(f"Total: {self.format_duration(report.total)}")
        if self.config.show_wall and report.wall is not None:
            covered = percent(report.total, report.wall)
            out.append(
                f"Wall: {self.format_duration(report.wall)} ({covered:.1f}% in sections)"
            )
        if report.issues:
            kinds = ", ".join(f"{n} {kind}" for kind, n in sorted(report.issues.items()))
            out.append(f"Issues: {kinds} (guards closed out of order or from another context)")
        out.append("=" * WIDTH)
        return "\n".join(out) + "\n"
