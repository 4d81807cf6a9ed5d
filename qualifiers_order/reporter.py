"""
qualifiers_order/reporter.py
════════════════════════════

Rust-style colourful diagnostic reporter for qualifiers-order findings.

Output formats
──────────────
  • text     : colourful rendering on a terminal, cppcheck one-liners otherwise
  • gcc      : ``file:line:col: style: message [qualifiers-order]``
  • json     : one JSON object per finding (JSON lines)
  • SARIF    : if $REPORT_GENERATE_SARIF is set to a file path
  • HTML     : if $REPORT_GENERATE_HTML is set to a file path

SARIF results carry the edit plan as a ``fixes`` entry, so SARIF viewers
can offer the rewrite.

Usage
─────
    from qualifiers_order.reporter import Reporter, Severity

    with Reporter() as rep:
        rep.register_source(buffer)
        for finding in findings:
            rep.report_finding(finding)
"""

from __future__ import annotations

import enum
import json
import os
import sys
import textwrap
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, TextIO

import jinja2
from termcolor import colored, cprint

from qualifiers_order import __version__
from qualifiers_order.planner import EditPlan, InsertText, RemoveRange
from qualifiers_order.source import SourceBuffer, SourceLocation


# ═════════════════════════════════════════════════════════════════════════
#  SEVERITY ENUM
# ═════════════════════════════════════════════════════════════════════════

class Severity(enum.Enum):
    """
    Diagnostic severity levels.

    Each carries:
      • cppcheck_name — the string cppcheck uses in its output
      • color         — termcolor colour name
      • sarif_level   — SARIF 2.1.0 ``level`` string
    """

    ERROR = ("error", "red", "error")
    WARNING = ("warning", "yellow", "warning")
    STYLE = ("style", "cyan", "note")
    INFORMATION = ("information", "white", "note")

    def __init__(self, cppcheck_name: str, color: str, sarif_level: str) -> None:
        self.cppcheck_name = cppcheck_name
        self.color = color
        self.sarif_level = sarif_level

    @classmethod
    def from_string(cls, s: str) -> Severity:
        """Parse a severity from its cppcheck name (case-insensitive)."""
        s_low = s.strip().lower()
        for member in cls:
            if member.cppcheck_name == s_low:
                return member
        return cls.STYLE


class OutputFormat(enum.Enum):
    TEXT = "text"
    GCC = "gcc"
    JSON = "json"


# ═════════════════════════════════════════════════════════════════════════
#  DATA STRUCTURES
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SpanAnnotation:
    """
    An underlined span on one source line.

    Coordinates are 1-based.  ``end_col`` is exclusive.
    """
    line: int
    start_col: int
    end_col: int
    label: str = ""
    style: str = "^"


@dataclass
class DiagnosticPart:
    kind: str  # "primary", "note", "help"
    message: str = ""
    location: Optional[SourceLocation] = None
    spans: List[SpanAnnotation] = field(default_factory=list)


@dataclass
class ReporterStats:
    """Aggregate counts per severity."""
    error: int = 0
    warning: int = 0
    style: int = 0
    information: int = 0
    fixed: int = 0

    def record(self, severity: Severity) -> None:
        attr = severity.cppcheck_name
        setattr(self, attr, getattr(self, attr) + 1)

    @property
    def total(self) -> int:
        return self.error + self.warning + self.style + self.information

    def summary_line(self) -> str:
        parts: List[str] = []
        if self.error:
            parts.append(f"{self.error} error{'s' if self.error != 1 else ''}")
        if self.warning:
            parts.append(f"{self.warning} warning{'s' if self.warning != 1 else ''}")
        if self.style:
            parts.append(f"{self.style} style")
        if self.information:
            parts.append(f"{self.information} info")
        if not parts:
            return "no diagnostics emitted"
        line = "; ".join(parts) + f" ({self.total} total)"
        if self.fixed:
            line += f", {self.fixed} fixed"
        return line


# ═════════════════════════════════════════════════════════════════════════
#  DIAGNOSTIC (builder pattern)
# ═════════════════════════════════════════════════════════════════════════

class Diagnostic:
    """
    Incrementally constructed diagnostic.

    Usage::

        (reporter.diagnostic(Severity.STYLE, "qualifiers-order", "…")
            .at("file.c", 10, 5)
            .span(10, 5, 10, label="move this")
            .note("declared type: const int")
            .fix(plan)
            .emit())
    """

    def __init__(
        self,
        reporter: Reporter,
        severity: Severity,
        error_id: str,
        message: str,
    ) -> None:
        self._reporter = reporter
        self.severity = severity
        self.error_id = error_id
        self.message = message
        self.primary = DiagnosticPart(kind="primary", message=message)
        self.notes: List[DiagnosticPart] = []
        self.helps: List[DiagnosticPart] = []
        self.plan: Optional[EditPlan] = None
        self.extra: Dict[str, Any] = {}

    # ── builder methods (all return self for chaining) ───────────────

    def at(self, file: str, line: int, column: int = 0) -> Diagnostic:
        self.primary.location = SourceLocation(file, line, column)
        return self

    def span(
        self,
        line: int,
        start_col: int,
        end_col: int,
        label: str = "",
        style: str = "^",
    ) -> Diagnostic:
        self.primary.spans.append(SpanAnnotation(line, start_col, end_col, label, style))
        return self

    def note(self, message: str, location: Optional[SourceLocation] = None) -> Diagnostic:
        self.notes.append(DiagnosticPart(kind="note", message=message, location=location))
        return self

    def help(self, message: str) -> Diagnostic:
        self.helps.append(DiagnosticPart(kind="help", message=message))
        return self

    def fix(self, plan: EditPlan) -> Diagnostic:
        """Attach the edit plan that resolves this diagnostic."""
        self.plan = plan
        return self

    def with_extra(self, **extra: Any) -> Diagnostic:
        self.extra.update(extra)
        return self

    def emit(self) -> None:
        """Finalise and send the diagnostic to the reporter."""
        self._reporter._accept(self)  # noqa: SLF001

    # ── convenience ──────────────────────────────────────────────────

    @property
    def location(self) -> Optional[SourceLocation]:
        return self.primary.location

    def cppcheck_line(self) -> str:
        """Classic one-liner: ``[file:line]: (severity) message [id]``."""
        loc = self.primary.location
        fname = loc.file if loc else ""
        lineno = loc.line if loc else 0
        sev = self.severity.cppcheck_name
        return f"[{fname}:{lineno}]: ({sev}) {self.message} [{self.error_id}]"

    def gcc_line(self) -> str:
        loc = self.primary.location or SourceLocation()
        return f"{loc}: {self.severity.cppcheck_name}: {self.message} [{self.error_id}]"

    def to_json(self) -> Dict[str, Any]:
        loc = self.primary.location or SourceLocation()
        result: Dict[str, Any] = {
            "file": loc.file,
            "linenr": loc.line,
            "column": loc.column,
            "severity": self.severity.cppcheck_name,
            "message": self.message,
            "errorId": self.error_id,
            "extra": self.extra,
        }
        if self.plan is not None:
            result["fix"] = self.plan.to_dict()
        return result


# ═════════════════════════════════════════════════════════════════════════
#  RENDERERS
# ═════════════════════════════════════════════════════════════════════════

class _TerminalRenderer:
    """Render diagnostics to a terminal with colours."""

    def __init__(self, stream: TextIO, sources: Dict[str, SourceBuffer]) -> None:
        self._stream = stream
        self._sources = sources

    def render(self, diag: Diagnostic) -> None:
        lines: List[str] = []

        sev_str = colored(
            f"{diag.severity.cppcheck_name}[{diag.error_id}]",
            diag.severity.color,
            attrs=["bold"],
        )
        lines.append(f"{sev_str}: {colored(diag.message, 'white', attrs=['bold'])}")

        loc = diag.primary.location
        if loc:
            arrow = colored("-->", "blue", attrs=["bold"])
            lines.append(f"  {arrow} {loc}")

        if loc and diag.primary.spans:
            lines.extend(self._render_spans(loc, diag.primary.spans, diag.severity))

        for note in diag.notes:
            prefix = colored("note", "cyan", attrs=["bold"])
            lines.append(f"  = {prefix}: {note.message}")
            if note.location:
                arrow = colored("-->", "blue", attrs=["bold"])
                lines.append(f"    {arrow} {note.location}")

        for hlp in diag.helps:
            prefix = colored("help", "green", attrs=["bold"])
            lines.append(f"  = {prefix}: {hlp.message}")

        lines.append(colored(diag.cppcheck_line(), attrs=["dark"]))
        lines.append("")
        self._stream.write("\n".join(lines) + "\n")
        self._stream.flush()

    def _render_spans(
        self,
        loc: SourceLocation,
        spans: List[SpanAnnotation],
        severity: Severity,
    ) -> List[str]:
        result: List[str] = []
        gutter_w = max(len(str(s.line)) for s in spans) + 1
        pipe = colored("|", "blue", attrs=["bold"])
        source_lines = self._source_lines(loc.file, spans)

        for sp in spans:
            line_num = str(sp.line).rjust(gutter_w)
            line_prefix = colored(line_num, "blue", attrs=["bold"])
            result.append(f" {line_prefix} {pipe} {source_lines.get(sp.line, '')}")

            pad = " " * (sp.start_col - 1) if sp.start_col > 0 else ""
            marker = (sp.style or "^") * max(sp.end_col - sp.start_col, 1)
            label_str = f" {sp.label}" if sp.label else ""
            marker_colored = colored(marker + label_str, severity.color, attrs=["bold"])
            blank_gutter = " " * (gutter_w + 1)
            result.append(f" {blank_gutter} {pipe} {pad}{marker_colored}")
        return result

    def _source_lines(self, filepath: str, spans: Sequence[SpanAnnotation]) -> Dict[int, str]:
        needed = {s.line for s in spans}
        buffer = self._sources.get(filepath)
        if buffer is not None:
            return {n: buffer.line_text(n) for n in needed}
        if not filepath:
            return {}
        try:
            result: Dict[int, str] = {}
            with open(filepath, "r", errors="replace") as fh:
                for idx, line in enumerate(fh, 1):
                    if idx in needed:
                        result[idx] = line.rstrip("\n\r")
                    if idx > max(needed):
                        break
            return result
        except OSError:
            return {}


class _PlainRenderer:
    """Non-coloured renderer: one cppcheck-compatible line per diagnostic."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def render(self, diag: Diagnostic) -> None:
        self._stream.write(diag.cppcheck_line() + "\n")
        for note in diag.notes:
            loc_str = f" [{note.location}]" if note.location else ""
            self._stream.write(f"  note{loc_str}: {note.message}\n")
        self._stream.flush()


class _GccRenderer:
    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def render(self, diag: Diagnostic) -> None:
        self._stream.write(diag.gcc_line() + "\n")
        for note in diag.notes:
            where = note.location or diag.location or SourceLocation()
            self._stream.write(f"{where}: note: {note.message}\n")
        self._stream.flush()


class _JsonRenderer:
    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def render(self, diag: Diagnostic) -> None:
        self._stream.write(json.dumps(diag.to_json()) + "\n")
        self._stream.flush()


# ═════════════════════════════════════════════════════════════════════════
#  SARIF 2.1.0 BUILDER
# ═════════════════════════════════════════════════════════════════════════

class _SarifBuilder:
    """Accumulates diagnostics and writes a SARIF 2.1.0 JSON file."""

    SARIF_VERSION = "2.1.0"
    SARIF_SCHEMA = (
        "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/"
        "Schemata/sarif-schema-2.1.0.json"
    )

    def __init__(self) -> None:
        self._results: List[Dict[str, Any]] = []
        self._rules: Dict[str, Dict[str, Any]] = {}

    def add(self, diag: Diagnostic) -> None:
        if diag.error_id not in self._rules:
            self._rules[diag.error_id] = {
                "id": diag.error_id,
                "shortDescription": {"text": diag.message},
            }

        loc = diag.primary.location
        result: Dict[str, Any] = {
            "ruleId": diag.error_id,
            "level": diag.severity.sarif_level,
            "message": {"text": diag.message},
        }
        if loc:
            phys: Dict[str, Any] = {
                "artifactLocation": {"uri": loc.file},
                "region": {"startLine": loc.line},
            }
            if loc.column:
                phys["region"]["startColumn"] = loc.column
            result["locations"] = [{"physicalLocation": phys}]

        related: List[Dict[str, Any]] = []
        for idx, note in enumerate(diag.notes):
            entry: Dict[str, Any] = {"id": idx, "message": {"text": note.message}}
            if note.location:
                entry["physicalLocation"] = {
                    "artifactLocation": {"uri": note.location.file},
                    "region": {"startLine": note.location.line},
                }
            related.append(entry)
        if related:
            result["relatedLocations"] = related

        if diag.plan and loc:
            result["fixes"] = [self._fix(diag.plan, loc.file)]

        self._results.append(result)

    @staticmethod
    def _fix(plan: EditPlan, uri: str) -> Dict[str, Any]:
        replacements: List[Dict[str, Any]] = []
        for edit in plan.edits:
            if isinstance(edit, InsertText):
                replacements.append({
                    "deletedRegion": {"charOffset": edit.location, "charLength": 0},
                    "insertedContent": {"text": edit.text},
                })
            elif isinstance(edit, RemoveRange):
                replacements.append({
                    "deletedRegion": {
                        "charOffset": edit.span.start,
                        "charLength": len(edit.span),
                    },
                })
        return {
            "description": {"text": plan.message},
            "artifactChanges": [
                {"artifactLocation": {"uri": uri}, "replacements": replacements}
            ],
        }

    def to_json(self, tool_name: str, version: str) -> str:
        sarif: Dict[str, Any] = {
            "$schema": self.SARIF_SCHEMA,
            "version": self.SARIF_VERSION,
            "runs": [
                {
                    "tool": {
                        "driver": {
                            "name": tool_name,
                            "version": version,
                            "rules": list(self._rules.values()),
                        }
                    },
                    "results": self._results,
                }
            ],
        }
        return json.dumps(sarif, indent=2)

    def write(self, path: str, tool_name: str, version: str) -> None:
        Path(path).write_text(self.to_json(tool_name, version), encoding="utf-8")


# ═════════════════════════════════════════════════════════════════════════
#  HTML BUILDER
# ═════════════════════════════════════════════════════════════════════════

class _HtmlBuilder:
    """Accumulates diagnostics and renders to an HTML file via Jinja2."""

    def __init__(self) -> None:
        self._diagnostics: List[Dict[str, Any]] = []

    def add(self, diag: Diagnostic) -> None:
        loc = diag.primary.location
        self._diagnostics.append({
            "severity": diag.severity.cppcheck_name,
            "error_id": diag.error_id,
            "message": diag.message,
            "file": loc.file if loc else "",
            "line": loc.line if loc else 0,
            "column": loc.column if loc else 0,
            "notes": [n.message for n in diag.notes],
            "helps": [h.message for h in diag.helps],
        })

    def render(self, template_path: Optional[str] = None) -> str:
        env = jinja2.Environment(autoescape=True)
        tmpl = env.from_string(self._load_template(template_path))
        return tmpl.render(diagnostics=self._diagnostics, total=len(self._diagnostics))

    def write(self, path: str, template_path: Optional[str] = None) -> None:
        Path(path).write_text(self.render(template_path), encoding="utf-8")

    @staticmethod
    def _load_template(template_path: Optional[str]) -> str:
        if template_path:
            return Path(template_path).read_text(encoding="utf-8")
        env_tmpl = os.environ.get("REPORT_HTML_TEMPLATE", "")
        if env_tmpl and Path(env_tmpl).is_file():
            return Path(env_tmpl).read_text(encoding="utf-8")
        return _DEFAULT_HTML_TEMPLATE


# ═════════════════════════════════════════════════════════════════════════
#  REPORTER  (main entry point)
# ═════════════════════════════════════════════════════════════════════════

class Reporter:
    """
    Central diagnostic dispatcher.

    Use as a context manager::

        with Reporter(output_format=OutputFormat.GCC) as rep:
            rep.report_finding(finding)
        # finish() is called automatically
    """

    def __init__(
        self,
        stream: TextIO = sys.stdout,
        colour: Optional[bool] = None,
        output_format: OutputFormat = OutputFormat.TEXT,
        tool_name: str = "qualifiers-order",
        tool_version: str = __version__,
        summary_stream: Optional[TextIO] = None,
    ) -> None:
        self.tool_name = tool_name
        self.tool_version = tool_version
        self.stats = ReporterStats()
        self.diagnostics: List[Diagnostic] = []
        self._sources: Dict[str, SourceBuffer] = {}
        self._summary_stream = summary_stream if summary_stream is not None else sys.stderr

        use_colour = colour if colour is not None else hasattr(stream, "isatty") and stream.isatty()
        self._coloured = False
        if output_format is OutputFormat.JSON:
            self._renderer: Any = _JsonRenderer(stream)
        elif output_format is OutputFormat.GCC:
            self._renderer = _GccRenderer(stream)
        elif use_colour:
            self._renderer = _TerminalRenderer(stream, self._sources)
            self._coloured = True
        else:
            self._renderer = _PlainRenderer(stream)

        self._sarif: Optional[_SarifBuilder] = None
        sarif_path = os.environ.get("REPORT_GENERATE_SARIF", "")
        if sarif_path:
            self._sarif = _SarifBuilder()
            self._sarif_path = sarif_path

        self._html: Optional[_HtmlBuilder] = None
        html_path = os.environ.get("REPORT_GENERATE_HTML", "")
        if html_path:
            self._html = _HtmlBuilder()
            self._html_path = html_path

    def __enter__(self) -> Reporter:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.finish()

    def register_source(self, buffer: SourceBuffer) -> None:
        """Make *buffer* available to the terminal renderer's source view."""
        self._sources[buffer.name] = buffer

    def diagnostic(self, severity: Severity, error_id: str, message: str) -> Diagnostic:
        return Diagnostic(self, severity, error_id, message)

    def report_finding(self, finding: Any, check_name: str = "qualifiers-order") -> None:
        """Emit one :class:`~qualifiers_order.check.Finding` as a STYLE diagnostic."""
        loc = finding.location
        diag = (self.diagnostic(Severity.STYLE, check_name, finding.message)
                .at(loc.file, loc.line, loc.column)
                .fix(finding.plan)
                .with_extra(declaration=finding.context.label,
                            kind=finding.context.kind.value))
        removal = finding.plan.removal
        buffer = self._sources.get(loc.file)
        if removal is not None and buffer is not None:
            start = buffer.location(removal.start)
            text = buffer.slice(removal).rstrip()
            diag.span(start.line, start.column, start.column + max(len(text), 1),
                      label="qualifier written here")
        diag.emit()

    def _accept(self, diag: Diagnostic) -> None:
        self.stats.record(diag.severity)
        self.diagnostics.append(diag)
        self._renderer.render(diag)
        if self._sarif is not None:
            self._sarif.add(diag)
        if self._html is not None:
            self._html.add(diag)

    def finish(self) -> ReporterStats:
        """Print the summary line and write SARIF / HTML if configured."""
        summary = self.stats.summary_line()
        if self._coloured:
            colour = "red" if self.stats.error else "yellow" if self.stats.total else "green"
            cprint(f"  ╰─ {summary}", colour, attrs=["bold"], file=self._summary_stream)
        else:
            print(f"  {summary}", file=self._summary_stream)

        if self._sarif is not None:
            try:
                self._sarif.write(self._sarif_path, self.tool_name, self.tool_version)
            except OSError as exc:
                print(f"qualifiers-order: failed to write SARIF: {exc}", file=sys.stderr)

        if self._html is not None:
            try:
                self._html.write(self._html_path)
            except OSError as exc:
                print(f"qualifiers-order: failed to write HTML: {exc}", file=sys.stderr)

        return self.stats


# ═════════════════════════════════════════════════════════════════════════
#  DEFAULT HTML TEMPLATE
# ═════════════════════════════════════════════════════════════════════════

_DEFAULT_HTML_TEMPLATE = textwrap.dedent("""\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>qualifiers-order report</title>
  <style>
    :root { --bg: #1e1e2e; --fg: #cdd6f4; --surface: #313244;
            --cyan: #89dceb; --green: #a6e3a1; --blue: #89b4fa;
            --border: #45475a; }
    body { font-family: 'Fira Code', monospace; background: var(--bg);
           color: var(--fg); padding: 2rem; }
    .card { background: var(--surface); border: 1px solid var(--border);
            border-left: 4px solid var(--cyan); border-radius: 8px;
            padding: 1rem; margin-bottom: 1rem; }
    .loc { color: var(--blue); font-size: 0.9em; }
    .note { color: var(--cyan); font-size: 0.9em; }
    .help { color: var(--green); font-size: 0.9em; }
  </style>
</head>
<body>
  <h1>qualifiers-order report</h1>
  {% for d in diagnostics %}
  <div class="card">
    <code>[{{ d.error_id }}]</code>
    <span class="loc">{{ d.file }}:{{ d.line }}{% if d.column %}:{{ d.column }}{% endif %}</span>
    <div>{{ d.message }}</div>
    {% for n in d.notes %}<div class="note">note: {{ n }}</div>{% endfor %}
    {% for h in d.helps %}<div class="help">help: {{ h }}</div>{% endfor %}
  </div>
  {% endfor %}
  <p>{{ total }} diagnostic{{ 's' if total != 1 else '' }} emitted.</p>
</body>
</html>
""")


__all__ = [
    "Severity",
    "OutputFormat",
    "SpanAnnotation",
    "DiagnosticPart",
    "Diagnostic",
    "Reporter",
    "ReporterStats",
]
