from __future__ import annotations
from typing import Iterable, List, Optional, Sequence, Tuple, Union
from .ingest import TokenizedText
from .utils import fold_upper, load_json, rules_path

RULES = load_json(rules_path(), {})

DEFAULT_SCAN_LIMIT = 1000


# a keyword is one spelling or a tuple of accepted spellings ("QUESTÃO", "QUESTAO")
Keyword = Union[str, Tuple[str, ...]]


def row_has_keywords(row: Sequence[str], keywords: Iterable[Keyword]) -> bool:
    """
    Every keyword must be inside at least one field (not necessarily the same
    one). Fields are upper-cased but keep their accents: "NÍVEL" does not
    satisfy "NIVEL". Column lookups below are the accent-insensitive part.
    """
    cells = [str(c).upper() for c in row]
    for kw in keywords:
        spellings = (kw,) if isinstance(kw, str) else kw
        if not any(s.upper() in c for s in spellings for c in cells):
            return False
    return True


def find_header_line(
    tokens: TokenizedText,
    keywords: Sequence[Keyword],
    max_scan_lines: Optional[int] = None,
) -> Optional[int]:
    """
    Index of the first line whose fields contain every keyword, or None.

    Only the first `max_scan_lines` lines are scanned (1000 by default); headers
    further down the file are not found and the file degrades to UNKNOWN.
    """
    if max_scan_lines is None:
        max_scan_lines = int(RULES.get("header_scan_limit", DEFAULT_SCAN_LIMIT))

    n = min(max_scan_lines, len(tokens))
    for i in range(n):
        if row_has_keywords(tokens.row(i), keywords):
            return i
    return None
# =========================

# Column lookup
# =========================
def find_column(headers: Sequence[str], *needles: str, exact: bool = False) -> int:
    """
    First header containing (or, with exact=True, equal to) any needle; -1 if none.
    Headers and needles are compared upper-cased without accents.
    """
    folded = [fold_upper(h) for h in headers]
    targets = [fold_upper(n) for n in needles]
    for i, h in enumerate(folded):
        if exact:
            if h in targets:
                return i
        elif any(t in h for t in targets):
            return i
    return -1


def find_column_exact_then_prefix(headers: Sequence[str], exact: Sequence[str], prefix: Sequence[str]) -> int:
    idx = find_column(headers, *exact, exact=True)
    if idx != -1:
        return idx
    targets = [fold_upper(p) for p in prefix]
    for i, h in enumerate(headers):
        if any(fold_upper(h).startswith(t) for t in targets):
            return i
    return -1


def find_column_exact_then_contains(headers: Sequence[str], needle: str) -> int:
    idx = find_column(headers, needle, exact=True)
    return idx if idx != -1 else find_column(headers, needle)


def cell(row: List[str], idx: int) -> str:
    # missing column (-1) or short row -> ""
    if idx < 0 or idx >= len(row):
        return ""
    return row[idx]
