"""Channel utility helpers."""

from __future__ import annotations


def tail_lines(value: str | None, limit: int = 14) -> str:
    lines = [line.strip() for line in (value or "").splitlines() if line.strip()]
    return "\n".join(lines[-limit:])


def chunk_text(text: str, *, limit: int) -> list[str]:
    if len(text) <= limit:
        return [text]
    chunks: list[str] = []
    remaining = text
    while remaining:
        if len(remaining) <= limit:
            chunks.append(remaining)
            break
        split_at = remaining.rfind("\n", 0, limit)
        if split_at <= 0:
            split_at = limit
        chunks.append(remaining[:split_at].rstrip())
        remaining = remaining[split_at:].lstrip("\n")
    return [chunk for chunk in chunks if chunk]
