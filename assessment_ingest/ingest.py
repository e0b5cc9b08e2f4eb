from __future__ import annotations
import csv
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Dict, Any, Tuple, Union
from .utils import clean_field, load_json, rules_path

logger = logging.getLogger(__name__)

RULES = load_json(rules_path(), {})

BOM = "\ufeff"
_LINE_SPLIT_RE = re.compile(r"\r?\n")
# =========================

# Decoding: bytes -> text (upstream I/O collaborator)
# =========================
def decode_bytes(data: bytes) -> str:
    # platform exports are UTF-8 (sometimes with BOM) or Windows-1252 when re-saved in Excel
    encodings = RULES.get("decode_encodings", ["utf-8-sig", "utf-8", "cp1252"])
    for enc in encodings:
        try:
            return data.decode(enc)
        except (UnicodeDecodeError, LookupError):
            continue

    logger.debug("no strict encoding matched, decoding utf-8 with replacement")
    return data.decode("utf-8", errors="replace")


def read_text_file(path: Union[str, Path]) -> str:
    # OSError propagates: this is the only failure the caller has to handle
    with open(path, "rb") as f:
        return decode_bytes(f.read())
# =========================

# Tokenizer
# =========================
def _guess_separator(lines: List[str]) -> str:
    # ';' for pt-BR spreadsheet exports, ',' otherwise; decided once per file
    n = int(RULES.get("separator_sample_lines", 5))
    sample = "\n".join(lines[:n])
    return ";" if sample.count(";") > sample.count(",") else ","


def _split_comma(line: str) -> List[str]:
    # a quoted span is one field, commas inside it do not split
    try:
        row = next(csv.reader([line], skipinitialspace=True), None)
    except csv.Error:
        row = None
    if not row:
        return [clean_field(x) for x in line.split(",")]
    return [clean_field(x) for x in row]


@dataclass(frozen=True)
class TokenizedText:
    lines: Tuple[str, ...]
    separator: str

    def split(self, line: str) -> List[str]:
        if self.separator == ";":
            return [clean_field(x) for x in line.split(";")]
        return _split_comma(line)

    def row(self, i: int) -> List[str]:
        return self.split(self.lines[i])

    def __len__(self) -> int:
        return len(self.lines)


def tokenize_text(text: str) -> TokenizedText:
    """
    Raw file text -> non-blank lines + a field splitter bound to the file.

    A leading BOM breaks header detection on line 0, so it is removed first.
    """
    if text.startswith(BOM):
        text = text[len(BOM):]
    lines = [ln for ln in _LINE_SPLIT_RE.split(text) if ln.strip()]
    sep = _guess_separator(lines)
    return TokenizedText(lines=tuple(lines), separator=sep)
# =========================

# Main: uploads -> texts
# =========================
def load_texts_from_uploads(uploads) -> List[Dict[str, Any]]:
    """
    Returns a list of:
      {
        "source_name": <file name>,
        "text": <decoded text>,
      }

    `uploads` are objects with `.name` and `.getvalue()` (Streamlit UploadedFile).
    """
    texts: List[Dict[str, Any]] = []

    for up in uploads:
        name = up.name
        data = up.getvalue()
        texts.append({"source_name": name, "text": decode_bytes(data)})

    return texts
