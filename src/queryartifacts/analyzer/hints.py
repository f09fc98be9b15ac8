"""Oracle optimizer hint text for the recommended access order."""

from __future__ import annotations

from collections.abc import Sequence

from queryartifacts.parser.models import ParsedSQL

JOIN_METHODS = frozenset({"USE_NL", "USE_HASH", "USE_MERGE"})


def generate_hints(access_order: Sequence[str], parsed: ParsedSQL, join_method: str = "USE_NL") -> str:
    """
    ``/*+ LEADING(a b c) USE_NL(b c) */`` for the given access order.

    Tables are referenced by alias (the table name when no alias was
    written). Empty string for fewer than two tables.
    """
    if join_method not in JOIN_METHODS:
        raise ValueError(f"Unknown join method {join_method!r}")
    if len(access_order) < 2:
        return ""
    aliases = [parsed.table(table_id).alias for table_id in access_order]
    return f"/*+ LEADING({' '.join(aliases)}) {join_method}({' '.join(aliases[1:])}) */"
