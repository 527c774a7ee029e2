#!/usr/bin/env python3
"""Type diagnostics for a single file (read-only)."""

SEVERITIES = ("error", "warning")

SUCCESS_REPORT = "SUCCESS: No type errors found."


def _format_diagnostic(diag: dict, rel_path: str, lines: list[str]) -> str:
    start = diag.get("range", {}).get("start", {})
    line = start.get("line", 0) + 1
    column = start.get("character", 0) + 1
    text = f"{rel_path}:{line}:{column} - {diag['severity']}: {diag.get('message', '')}"
    if diag.get("rule"):
        text += f" ({diag['rule']})"
    if 0 < line <= len(lines):
        source_line = lines[line - 1].rstrip("\r\n")
        text += f"\n    {source_line}\n    {' ' * (column - 1)}^"
    return text


async def check_types(model, file_path: str) -> dict:
    """Load/refresh `file_path` and report pyright's errors and warnings for it."""
    resource = model.load(file_path)
    source = model.read(resource)
    path = model.resolve_path(resource.path)

    raw = await model.pre_emit_diagnostics(path)
    diagnostics = []
    rendered = []
    lines = source.splitlines()
    for diag in raw:
        severity = diag.get("severity", "error")
        if severity not in SEVERITIES:
            continue
        diag = {**diag, "severity": severity}
        start = diag.get("range", {}).get("start", {})
        diagnostics.append({
            "line": start.get("line", 0) + 1,
            "column": start.get("character", 0) + 1,
            "severity": severity,
            "message": diag.get("message", ""),
            "rule": diag.get("rule", ""),
        })
        rendered.append(_format_diagnostic(diag, resource.path, lines))

    error_count = len([d for d in diagnostics if d["severity"] == "error"])
    warning_count = len(diagnostics) - error_count
    if diagnostics:
        report = "ERROR: Type errors found.\n" + "\n".join(rendered)
    else:
        report = SUCCESS_REPORT

    return {
        "file": resource.path,
        "success": not diagnostics,
        "errorCount": error_count,
        "warningCount": warning_count,
        "diagnostics": diagnostics,
        "report": report,
    }
