"""Batch report writer - JSON report and Markdown summary of a batch run."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Tuple

from structparity.utils.logger import get_logger

if TYPE_CHECKING:
    from structparity.orchestration.batch import BatchReport

logger = get_logger(__name__)


class BatchReportWriter:
    """Generate structured batch artifacts (JSON + Markdown)."""

    def __init__(self, output_dir: Path | str) -> None:
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def generate_json_report(
        self,
        run_mode: str,
        report: "BatchReport",
        settings: Dict[str, Any] | None = None,
    ) -> str:
        payload: Dict[str, Any] = {
            "metadata": {
                "run_mode": run_mode,
                "generated_at": datetime.now().isoformat(),
            },
            "statistics": report.to_dict(),
        }
        if settings is not None:
            payload["settings"] = settings

        return json.dumps(payload, indent=2, default=str)

    def generate_markdown_summary(self, run_mode: str, report: "BatchReport") -> str:
        status = "PASS" if report.all_passed else ("ABORTED" if report.aborted else "FAIL")
        md_lines = [
            f"# PDB vs mmCIF Parity Report: {run_mode}",
            f"**Generated:** {datetime.now().isoformat()}",
            "",
            "## Summary",
            f"- **Entries in corpus:** {report.total}",
            f"- **Tested:** {report.tested}",
            f"- **Passed:** {report.passed}",
            f"- **Failed:** {len(report.failures)}",
            f"- **Pass Rate:** {report.pass_percentage:.1f}%",
            f"- **Elapsed:** {report.elapsed_minutes:.1f} minutes",
            f"- **Last attempted:** {report.last_attempted or '-'}",
            f"- **Status:** {status}",
            "",
        ]

        if report.failures:
            md_lines.append("## Mismatches")
            md_lines.append("")
            md_lines.append("| PDB id | Field | Chain | Representation A (PDB) | Representation B (mmCIF) |")
            md_lines.append("|---|---|---|---|---|")
            for failure in report.failures:
                outcome = failure.outcome
                md_lines.append(
                    f"| {failure.identifier} | {outcome.field} | {outcome.chain_id or ''} "
                    f"| {_cell(outcome.value_a)} | {_cell(outcome.value_b)} |"
                )
        elif report.all_passed:
            md_lines.append("All entries parsed identically in both formats.")

        if report.waived:
            md_lines.extend(["", "## Waived rules", ""])
            for rule in report.waived:
                chain = f" (chain {rule['chain_id']})" if rule.get("chain_id") else ""
                md_lines.append(f"- **{rule['identifier']}** {rule['field']}{chain}: {rule['reason']}")

        return "\n".join(md_lines) + "\n"

    def write_reports(
        self,
        run_mode: str,
        report: "BatchReport",
        settings: Dict[str, Any] | None = None,
    ) -> Tuple[Path, Path]:
        stamp = (report.started_at or datetime.now()).strftime("%Y%m%dT%H%M%S")
        base_name = f"{run_mode}-{stamp}"
        json_path = self.output_dir / f"{base_name}.json"
        md_path = self.output_dir / f"{base_name}.md"

        json_path.write_text(self.generate_json_report(run_mode, report, settings), encoding="utf-8")
        md_path.write_text(self.generate_markdown_summary(run_mode, report), encoding="utf-8")

        logger.info(
            "Wrote batch reports",
            operation="write_reports",
            context={"json": str(json_path), "markdown": str(md_path)},
        )
        return json_path, md_path


def _cell(value: Any) -> str:
    """Render a value for a Markdown table cell."""
    return repr(value).replace("|", "\\|")
