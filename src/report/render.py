"""Report rendering: structured JSON and human-readable text."""

from __future__ import annotations

from typing import TYPE_CHECKING

import orjson

from models.violations import Summary, ViolationKind, severity_at_least

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from models.source import SourceFile
    from models.violations import Violation
    from pipeline import AnalysisResult

# Schema version of the JSON report.
REPORT_SCHEMA_VERSION = 1

_SNIPPET_INDENT = "    "


def summarize(
    violations: Iterable[Violation],
    *,
    fail_on: str = "error",
    files_scanned: int = 0,
    modules: int = 0,
    parse_warnings: int = 0,
) -> Summary:
    """Count violations per kind and decide pass/fail.

    The run fails when any violation's severity is at or above ``fail_on``.
    """
    counts = {kind.value: 0 for kind in ViolationKind}
    errors = 0
    warnings = 0
    failing = 0
    for violation in violations:
        counts[violation.kind.value] += 1
        if violation.severity == "error":
            errors += 1
        else:
            warnings += 1
        if severity_at_least(violation.severity, fail_on):
            failing += 1
    return Summary(
        counts=counts,
        errors=errors,
        warnings=warnings,
        files_scanned=files_scanned,
        modules=modules,
        parse_warnings=parse_warnings,
        passed=failing == 0,
    )


def ordered_violations(violations: Iterable[Violation]) -> list[Violation]:
    """Stable report order: file path, then line, column and kind."""
    return sorted(violations, key=lambda v: v.sort_key())


def _warning_records(result: AnalysisResult) -> list[dict[str, object]]:
    records: list[dict[str, object]] = []
    for warning in result.scan.warnings:
        records.append({"kind": "parse", **warning.to_dict()})
    for item in result.module_map.unassigned:
        records.append({"kind": "unassigned", **item.to_dict()})
    records.sort(key=lambda r: (str(r["path"]), str(r["kind"])))
    return records


def report_payload(result: AnalysisResult) -> dict[str, object]:
    return {
        "schemaVersion": REPORT_SCHEMA_VERSION,
        "violations": [v.to_dict() for v in ordered_violations(result.violations)],
        "warnings": _warning_records(result),
        "summary": result.summary.to_dict(),
    }


def render_json(result: AnalysisResult) -> str:
    """Render the machine-readable report.

    Keys are sorted and paths are root-relative, so an unchanged tree
    always renders to the same bytes.
    """
    opts = orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2
    return orjson.dumps(report_payload(result), option=opts).decode("utf-8") + "\n"


def _snippet(sources: dict[str, SourceFile], file: str, line: int) -> str | None:
    source = sources.get(file)
    if source is None:
        return None
    text = source.line_text(line)
    if text is None:
        return None
    return f"{_SNIPPET_INDENT}{line:>4} | {text.rstrip()}"


def _violation_lines(
    violation: Violation,
    sources: dict[str, SourceFile],
    *,
    context: bool,
) -> list[str]:
    lines = [
        f"{violation.location()}: {violation.severity} "
        f"[{violation.kind.value}] {violation.message}"
    ]
    if not context:
        return lines
    snippet = _snippet(sources, violation.file, violation.line)
    if snippet is not None:
        lines.append(snippet)
    if violation.kind is ViolationKind.CYCLE:
        for edge in violation.edges:
            lines.append(
                f"{_SNIPPET_INDENT}via {edge.file}:{edge.line} "
                f"({edge.from_module} -> {edge.to_module})"
            )
    return lines


def _summary_line(summary: Summary) -> str:
    counts = ", ".join(f"{kind}: {count}" for kind, count in summary.counts.items())
    verdict = "passed" if summary.passed else "FAILED"
    return (
        f"{summary.errors} error(s), {summary.warnings} warning(s) "
        f"[{counts}] in {summary.files_scanned} files / {summary.modules} modules: "
        f"{verdict}"
    )


def render_text(
    result: AnalysisResult,
    *,
    quiet: bool = False,
    context: bool = True,
) -> str:
    """Render the human-readable report.

    One line per violation, optionally followed by the offending source
    line. ``quiet`` drops snippets and warnings but never violations or
    the summary line.
    """
    sources = result.module_map.sources
    show_context = context and not quiet
    lines: list[str] = []
    for violation in ordered_violations(result.violations):
        lines.extend(_violation_lines(violation, sources, context=show_context))

    if not quiet:
        for record in _warning_records(result):
            location = record["path"]
            if record["line"] is not None:
                location = f"{location}:{record['line']}"
            lines.append(f"{location}: warning [{record['kind']}] {record['message']}")

    lines.append(_summary_line(result.summary))
    return "\n".join(lines) + "\n"


def render_edgelist(result: AnalysisResult, *, externals: bool = False) -> str:
    """Module graph as 'from -> to' lines, optionally with external imports."""
    lines = [f"{edge.from_module} -> {edge.to_module}" for edge in result.graph.edges]
    if externals:
        seen: set[tuple[str, str, str]] = set()
        for ext in result.graph.external:
            key = (ext.from_module, ext.specifier, ext.reason)
            if key in seen:
                continue
            seen.add(key)
            lines.append(f"{ext.from_module} -> {ext.specifier} [{ext.reason}]")
    return "".join(f"{line}\n" for line in lines)


def render_graph_json(result: AnalysisResult, *, externals: bool = False) -> str:
    modules: Sequence[dict[str, object]] = [
        {
            "id": module.id,
            "name": module.name,
            "layer": module.layer_name,
            "kind": module.layer.value,
            "barrel": module.barrel,
            "files": len(module.files),
            "publicSurface": list(module.public_surface),
        }
        for module in result.graph.modules
    ]
    payload: dict[str, object] = {
        "schemaVersion": REPORT_SCHEMA_VERSION,
        "modules": modules,
        "edges": [
            {
                "fromModule": edge.from_module,
                "toModule": edge.to_module,
                "imports": [imp.to_dict() for imp in edge.imports],
            }
            for edge in result.graph.edges
        ],
    }
    if externals:
        payload["external"] = [ext.to_dict() for ext in result.graph.external]
    opts = orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2
    return orjson.dumps(payload, option=opts).decode("utf-8") + "\n"


__all__ = [
    "REPORT_SCHEMA_VERSION",
    "ordered_violations",
    "render_edgelist",
    "render_graph_json",
    "render_json",
    "render_text",
    "report_payload",
    "summarize",
]
