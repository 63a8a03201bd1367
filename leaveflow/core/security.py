import re
import html
from typing import Optional

_SCRIPT_RE = re.compile(r"<script.*?>.*?</script>", re.IGNORECASE | re.DOTALL)


def sanitize_input(text: Optional[str]) -> Optional[str]:
    """Basic input sanitization for free-text fields stored in approval history."""
    if not isinstance(text, str):
        return text
    stripped = _SCRIPT_RE.sub("", text).strip()
    return html.escape(stripped) if stripped else None
