"""Parsers for the text output of the wanda and vox command-line tools."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

ANSWER_MARKER = "Antwort:"
SPEAKER_TAG = "USER >"

TOKEN_LINE_RE = re.compile(r"^\[(OK|EXP)\]\s+(.+?)\s+--\s+bis\s+(.+)$", re.IGNORECASE)
KEY_LINE_RE = re.compile(r"^\[KEY\]\s+(.+)$", re.IGNORECASE)
ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


@dataclass(frozen=True)
class AuthToken:
    status: str
    label: str
    expires_at_text: str


@dataclass(frozen=True)
class AuthStatus:
    tokens: list[AuthToken] = field(default_factory=list)
    keys: list[str] = field(default_factory=list)
    raw: str = ""


def _non_empty_lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def parse_auth_status(output: str | None) -> AuthStatus:
    """Parse `auth status` output.

    Recognized lines, everything else is ignored::

        [OK] <label> -- bis <expiry>
        [EXP] <label> -- bis <expiry>
        [KEY] <name>
    """
    text = output or ""
    tokens: list[AuthToken] = []
    keys: list[str] = []
    for line in _non_empty_lines(text):
        token_match = TOKEN_LINE_RE.match(line)
        if token_match:
            tokens.append(
                AuthToken(
                    status=token_match.group(1).upper(),
                    label=token_match.group(2).strip(),
                    expires_at_text=token_match.group(3).strip(),
                )
            )
            continue
        key_match = KEY_LINE_RE.match(line)
        if key_match:
            keys.append(key_match.group(1).strip())
    return AuthStatus(tokens=tokens, keys=keys, raw=text.strip())


def extract_answer(output: str | None, *, marker: str = ANSWER_MARKER) -> str:
    """Extract the answer block that follows ``marker`` in `test model` output.

    The block ends at the first blank line after some text was collected.
    Without a marker, or with an empty block, the last non-empty line wins.
    Returns an empty string when the output holds no text at all.
    """
    lines = (output or "").splitlines()
    start = next((index for index, line in enumerate(lines) if marker in line), None)
    if start is not None:
        collected: list[str] = []
        for line in lines[start + 1 :]:
            if not line.strip():
                if collected:
                    break
                continue
            collected.append(line.lstrip())
        answer = "\n".join(collected).strip()
        if answer:
            return answer

    remaining = _non_empty_lines(output or "")
    return remaining[-1] if remaining else ""


def strip_ansi(text: str | None) -> str:
    return ANSI_RE.sub("", text or "")


def parse_transcript(output: str | None, *, speaker_tag: str = SPEAKER_TAG) -> str:
    """Return the text of the first line spoken by ``speaker_tag``, or ``""``."""
    prefix_re = re.compile(r"^" + r"\s*".join(re.escape(part) for part in speaker_tag.split()) + r"\s*")
    for line in strip_ansi(output).splitlines():
        stripped = line.strip()
        if stripped.startswith(speaker_tag):
            return prefix_re.sub("", stripped, count=1).strip()
    return ""
