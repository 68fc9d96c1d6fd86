"""Placeholder conversion for the aiomysql driver.

Builders emit ``?`` placeholders for MySQL. aiomysql formats queries with
Python's ``%`` operator and expects ``%s``, so bound statements are rewritten
before they reach the driver.

Quoted literals and quoted identifiers are never rewritten. Every literal
``%`` is doubled so the driver's ``query % args`` step leaves it intact.
"""

from __future__ import annotations

import re

# Quoted segments first so placeholders inside them are skipped.
# MySQL string literals honour backslash escapes.
_QUOTED = r"'(?:[^'\\]|\\.|'')*'" r'|"(?:[^"\\]|\\.|"")*"' r"|`(?:[^`]|``)*`"

TOKEN_PATTERN = re.compile(rf"(?P<quoted>{_QUOTED})|(?P<qmark>\?)|(?P<percent>%)", re.DOTALL)


def to_format_placeholders(sql: str) -> str:
    """Convert ``?`` placeholders to aiomysql ``%s``, doubling literal percents.

    Example:
        >>> to_format_placeholders("SELECT * FROM t WHERE a LIKE 'x%' AND id = ?")
        "SELECT * FROM t WHERE a LIKE 'x%%' AND id = %s"
    """

    def replace(match: re.Match[str]) -> str:
        if match.group("quoted") is not None:
            return match.group("quoted").replace("%", "%%")
        if match.group("percent") is not None:
            return "%%"
        return "%s"

    return TOKEN_PATTERN.sub(replace, sql)
