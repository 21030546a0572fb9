"""Hiring Notifier — Telegram Message Formatters.

Builds the HTML text for a location batch. Telegram's HTML parse mode
only needs &, < and > escaped.
"""

from __future__ import annotations

from hiring_notifier.models import NotificationBatch

# ── Separator line between jobs ──────────────────────────
_SEP = "═══════════════════"

# Known job-type codes and their short labels
_JOB_TYPE_LABELS = {
    "FLEX_TIME": "Flex",
    "FULL_TIME": "Full",
    "PART_TIME": "Part",
    "SEASONAL": "Seasonal",
    "REDUCED_TIME": "Reduced",
}


def escape_html(text: str) -> str:
    """Escape HTML special characters.

    Args:
        text: Raw text to escape.

    Returns:
        HTML-safe text.
    """
    if not text:
        return ""
    return str(text).replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def humanize_job_type(raw: str) -> str:
    """Turn ';'-separated job-type codes into a readable label.

    Known codes map to short labels, anything else is title-cased word
    by word: "FULL_TIME;NIGHT_SHIFT" -> "Full/ Night Shift time".

    Args:
        raw: Job type string from the API.

    Returns:
        Human-readable label, or "Unknown" if there are no codes.
    """
    parts = []
    for part in (raw or "").split(";"):
        code = part.strip().upper()
        if not code:
            continue
        label = _JOB_TYPE_LABELS.get(code)
        if label is None:
            label = " ".join(word.capitalize() for word in code.split("_") if word)
        parts.append(label)

    if not parts:
        return "Unknown"
    return f"{'/ '.join(parts)} time"


def format_batch(batch: NotificationBatch) -> str:
    """Format all jobs of one location as a single HTML message.

    Args:
        batch: The batch to render.

    Returns:
        HTML formatted message string.
    """
    lines = [f"<b>New Jobs in {escape_html(batch.location)}</b>", _SEP]

    for job in batch.jobs:
        lines.extend([
            f"<b>{escape_html(job.title)}</b>",
            f"- Type: {escape_html(humanize_job_type(job.job_type))}",
            f"- Shifts: {job.shift_count}",
            f"- Pay: ${job.pay_min:.2f}-${job.pay_max:.2f}/hr",
            _SEP,
        ])

    return "\n".join(lines) + "\n"
