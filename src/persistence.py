"""
Persistence: export and import of project summaries.

The exported file is a UTF-8 JSON document with the ProjectSummary shape.
It is the only thing needed to restore a session later.

Usage:
    path = export_summary(summary, "projects/")
    summary = import_summary(path)
"""

import json
import os
import re
from datetime import datetime, timezone

from pydantic import ValidationError

from errors import ImportParseError
from logging_utils import get_logger
from models import ProjectSummary
from prompts import RESTORATION_CONTEXT_TEMPLATE

logger = get_logger(__name__)


def summary_filename(summary: ProjectSummary) -> str:
    """File name for an export, e.g. arch-sleep-and-cognition.json."""
    slug = re.sub(r"[^a-z0-9]", "-", summary.project_title.lower())
    return f"arch-{slug}.json"


def export_summary(summary: ProjectSummary, target: str) -> str:
    """
    Write a summary to disk with a fresh timestamp.

    Args:
        summary: The summary to export.
        target: A directory (file name derived from the title) or a file path.

    Returns:
        The path written.
    """
    stamped = summary.model_copy(update={"timestamp": datetime.now(timezone.utc).isoformat()})

    if os.path.isdir(target) or target.endswith(os.sep):
        path = os.path.join(target, summary_filename(stamped))
    else:
        path = target

    # Ensure directory exists
    os.makedirs(os.path.dirname(path) if os.path.dirname(path) else ".", exist_ok=True)

    with open(path, 'w', encoding='utf-8') as f:
        json.dump(stamped.to_json_dict(), f, indent=2, ensure_ascii=False)

    logger.info(f"Project exported: {path}")
    return path


def parse_summary(raw: str) -> ProjectSummary:
    """
    Parse the text of an exported file.

    Raises:
        ImportParseError: on invalid JSON, a non-object document, or a
            missing projectTitle / lastActivePhase.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ImportParseError(f"Not a JSON document: {e}") from e

    if not isinstance(data, dict):
        raise ImportParseError("Project file must contain a JSON object")

    try:
        return ProjectSummary.model_validate(data)
    except ValidationError as e:
        missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise ImportParseError(f"Invalid project file (fields: {', '.join(missing)})") from e


def import_summary(path: str) -> ProjectSummary:
    """Read and validate an exported project file."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            raw = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ImportParseError(f"Cannot read project file {path}: {e}") from e

    summary = parse_summary(raw)
    logger.info(f"Project imported: {summary.project_title}")
    return summary


def restoration_context(summary: ProjectSummary, title_heading: str) -> str:
    """
    Context turn for a restored conversation.

    Only phases with content are included, each verbatim.
    """
    phases = "\n".join(f"{heading}: {text}" for heading, text in summary.phases())
    return RESTORATION_CONTEXT_TEMPLATE.format(
        title_heading=title_heading,
        project_title=summary.project_title,
        last_active_phase=summary.last_active_phase,
        phases=phases,
    )
