"""Export functions for generated matches in multiple formats."""

import csv
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from alignmatch.storage.repository import MatchRecord, RunRecord

DIMENSION_ORDER = [
    "psychological",
    "behavioral",
    "values_vision",
    "interests",
    "lifestyle",
    "dealbreakers",
    "astrological",
]


def _ranked(matches: List[MatchRecord]) -> List[MatchRecord]:
    return sorted(matches, key=lambda m: (-m.overall_score, m.user_a_id, m.user_b_id))


def _run_header(run: Optional[RunRecord]) -> Dict[str, Any]:
    if run is None:
        return {}
    return {
        "run_id": run.id,
        "status": run.status.value,
        "users_evaluated": run.users_evaluated,
        "matches_generated": run.matches_generated,
        "errors": [list(e) for e in run.errors],
        "started_at": run.started_at.isoformat(),
        "completed_at": run.completed_at.isoformat() if run.completed_at else None,
    }


def export_json(
    matches: List[MatchRecord],
    filepath: str,
    run: Optional[RunRecord] = None,
) -> None:
    """Export matches to JSON format.

    Args:
        matches: Match records to export
        filepath: Path to write JSON file
        run: Run the matches came from, included as a header if given

    Raises:
        IOError: If file cannot be written
    """
    export_data = {
        "exported_at": datetime.now().isoformat(),
        "run": _run_header(run),
        "total_matches": len(matches),
        "matches": [
            {"rank": i + 1, **match.to_dict()}
            for i, match in enumerate(_ranked(matches))
        ],
    }

    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(export_data, f, indent=2, ensure_ascii=False)


def export_csv(
    matches: List[MatchRecord],
    filepath: str,
    run: Optional[RunRecord] = None,
) -> None:
    """Export matches to CSV format, one row per pair.

    Args:
        matches: Match records to export
        filepath: Path to write CSV file
        run: Unused; accepted so every exporter has the same signature

    Raises:
        IOError: If file cannot be written
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    fieldnames = [
        "rank",
        "user_a_id",
        "user_b_id",
        "overall_score",
        *DIMENSION_ORDER,
        "confidence",
        "status",
        "summary",
        "created_at",
    ]

    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()

        for i, match in enumerate(_ranked(matches), 1):
            row = {
                "rank": i,
                "user_a_id": match.user_a_id,
                "user_b_id": match.user_b_id,
                "overall_score": match.overall_score,
                "confidence": f"{match.confidence:.2f}",
                "status": match.status.value,
                "summary": match.breakdown.get("details", {}).get("summary", ""),
                "created_at": match.created_at.isoformat(),
            }
            for name in DIMENSION_ORDER:
                row[name] = match.dimension_scores.get(name, "")
            writer.writerow(row)


def export_markdown(
    matches: List[MatchRecord],
    filepath: str,
    run: Optional[RunRecord] = None,
) -> None:
    """Export matches to Markdown format.

    Args:
        matches: Match records to export
        filepath: Path to write Markdown file
        run: Run the matches came from, summarized at the top if given

    Raises:
        IOError: If file cannot be written
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    lines = []

    # Header
    lines.append("# Generated Matches")
    lines.append("")
    lines.append(f"**Exported:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    if run is not None:
        lines.append(f"**Run:** {run.id} ({run.status.value})")
        lines.append(f"**Users Evaluated:** {run.users_evaluated}")
    lines.append(f"**Total Matches:** {len(matches)}")
    lines.append("")
    lines.append("---")
    lines.append("")

    for i, match in enumerate(_ranked(matches), 1):
        details = match.breakdown.get("details", {})

        lines.append(f"## {i}. {match.user_a_id} & {match.user_b_id}")
        lines.append("")
        lines.append(f"**Overall:** {match.overall_score}")
        lines.append(f"**Confidence:** {match.confidence:.0%}")
        if details.get("summary"):
            lines.append(f"**Summary:** {details['summary']}")
        lines.append("")

        lines.append("| Dimension | Score |")
        lines.append("|---|---|")
        for name in DIMENSION_ORDER:
            if name in match.dimension_scores:
                lines.append(f"| {name.replace('_', ' ').title()} | {match.dimension_scores[name]} |")
        lines.append("")

        for heading, key in (("Strengths", "strengths"), ("Considerations", "considerations")):
            notes = details.get(key) or []
            if notes:
                lines.append(f"### {heading}")
                lines.append("")
                for note in notes:
                    lines.append(f"- {note}")
                lines.append("")

        shared = details.get("shared_interests") or []
        if shared:
            lines.append(f"**Shared interests:** {', '.join(shared)}")
            lines.append("")

        lines.append("---")
        lines.append("")

    with open(path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines))


def export_matches(
    matches: List[MatchRecord],
    filepath: str,
    run: Optional[RunRecord] = None,
) -> None:
    """Export matches with format auto-detection from file extension.

    Args:
        matches: Match records to export
        filepath: Path to write file (extension determines format)
        run: Run the matches came from

    Raises:
        ValueError: If file extension is not recognized
        IOError: If file cannot be written
    """
    path = Path(filepath)
    extension = path.suffix.lower()

    if extension == ".json":
        export_json(matches, filepath, run)
    elif extension == ".csv":
        export_csv(matches, filepath, run)
    elif extension in (".md", ".markdown"):
        export_markdown(matches, filepath, run)
    else:
        raise ValueError(
            f"Unsupported file format: {extension}. "
            "Supported formats: .json, .csv, .md, .markdown"
        )
