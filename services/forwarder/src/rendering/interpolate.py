import re
from typing import Mapping

PLACEHOLDER_RE = re.compile(r"\{\{\s*([^{}\s]+)\s*\}\}")


def interpolate(pattern: str, lookup: Mapping[str, str]) -> str:
    """Replace ``{{name}}`` placeholders; unknown names become ``""``."""
    if "{{" not in pattern:
        return pattern
    return PLACEHOLDER_RE.sub(lambda m: lookup.get(m.group(1), ""), pattern)


def placeholders(pattern: str) -> list[str]:
    return PLACEHOLDER_RE.findall(pattern)
