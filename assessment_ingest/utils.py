from __future__ import annotations
import os
import re
import json
import unicodedata
from pathlib import Path
from typing import Any, Optional

PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULT_DATA_DIR = PACKAGE_DIR / "data"

RULES_ENV = "ASSESSMENT_INGEST_RULES"

def load_json(path: Path, default: Any):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError):
        return default

def rules_path() -> Path:
    override = os.environ.get(RULES_ENV)
    if override:
        return Path(override)
    return DEFAULT_DATA_DIR / "rules.json"

_NBSP_RE = re.compile(r"[\u00A0\u2007\u202F]")  # NBSP variants
_LEADING_INT_RE = re.compile(r"^\s*([-+]?\d+)")
_FLOAT_RE = re.compile(r"^[-+]?(\d+(\.\d*)?|\.\d+)")


def clean_field(s: Any) -> str:
    # enclosing quotes + outer whitespace, as exported by the platform
    if s is None:
        return ""
    s = _NBSP_RE.sub(" ", str(s)).strip()
    if s.startswith('"'):
        s = s[1:]
    if s.endswith('"'):
        s = s[:-1]
    return s.strip()

def strip_accents(s: str) -> str:
    decomposed = unicodedata.normalize("NFKD", s)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))

def fold_upper(s: Any) -> str:
    """Upper-case and accent-free form used for header keyword matching."""
    if s is None:
        return ""
    return strip_accents(str(s)).upper().strip()

def norm_level(s: Any) -> str:
    """
    Normalisation of categorical level labels:
    - lower
    - accents stripped (ê -> e, í -> i, ã -> a, ...)
    - '_' -> ' '
    - outer whitespace trimmed
    """
    if s is None:
        return ""
    return strip_accents(str(s)).lower().replace("_", " ").strip()

def parse_number(s: Any) -> float:
    """
    "94%" -> 94, "7,5" -> 7.5, '"12"' -> 12.
    Anything unparsable (including None) -> 0, never NaN.
    """
    if s is None:
        return 0.0
    txt = clean_field(s).replace("%", "").replace(",", ".", 1).strip()
    m = _FLOAT_RE.match(txt)
    if not m:
        return 0.0
    return float(m.group(0))

def leading_int(s: Any) -> Optional[int]:
    # "0A" -> 0, "12" -> 12, "abc" -> None
    if s is None:
        return None
    m = _LEADING_INT_RE.match(str(s))
    if not m:
        return None
    return int(m.group(1))

def round_half_up(x: float) -> int:
    return int(x + 0.5) if x >= 0 else -int(-x + 0.5)
