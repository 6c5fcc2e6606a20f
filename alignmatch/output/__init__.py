"""Output module for exporting generated matches."""

from alignmatch.output.export import (
    export_json,
    export_csv,
    export_markdown,
    export_matches,
)

__all__ = [
    "export_json",
    "export_csv",
    "export_markdown",
    "export_matches",
]
