"""Best-effort extraction of the public/private split from free-form model text.

Models are asked to answer with two labelled sections:

    PUBLIC RESPONSE:
    ...shared with every participant...

    PRIVATE THOUGHTS:
    ...only visible to the author...

Headers are matched case-insensitively. Output without a public header is
never dropped: the whole text becomes the public response and the private
text is left empty.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from .states import AgentResponse


_PUBLIC_RE = re.compile(r"PUBLIC RESPONSE:\s*(.*?)(?=PRIVATE THOUGHTS:|$)", re.IGNORECASE | re.DOTALL)
_PRIVATE_RE = re.compile(r"PRIVATE THOUGHTS:\s*(.*)$", re.IGNORECASE | re.DOTALL)

# Name family used when the caller does not know the participants' names.
# Only the word "User" is case-insensitive; the label letters stay uppercase.
DEFAULT_NAME_PATTERN = r"(?i:user) [A-Z]+"


def _names_alternation(names: Optional[Iterable[str]]) -> str:
    known = sorted({n.strip() for n in (names or []) if n and n.strip()}, key=len, reverse=True)
    if not known:
        return DEFAULT_NAME_PATTERN
    return "|".join(f"(?i:{re.escape(n)})" for n in known)


def strip_name_prefixes(text: str, names: Optional[Iterable[str]] = None) -> str:
    """Remove echoed "<name>: " prefixes.

    A leading run of one or more prefixes is dropped, as is any run of two
    or more consecutive prefixes later in the text.
    """
    alt = _names_alternation(names)
    leading = re.compile(rf"^(?:(?:{alt}):\s*)+")
    repeated = re.compile(rf"(?<!\w)(?:(?:{alt}):\s*){{2,}}")
    text = leading.sub("", text)
    text = repeated.sub("", text)
    return text.strip()


def parse_agent_response(raw_text: str, names: Optional[Iterable[str]] = None) -> AgentResponse:
    raw = raw_text or ""
    private_match = _PRIVATE_RE.search(raw)
    private = private_match.group(1).strip() if private_match else ""

    public_match = _PUBLIC_RE.search(raw)
    if public_match:
        public = strip_name_prefixes(public_match.group(1).strip(), names)
    else:
        # No public header: keep the whole text public rather than guess a split.
        public, private = raw.strip(), ""
    return AgentResponse(public_response=public, private_thoughts=private)
