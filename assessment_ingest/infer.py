from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple
from .extract import (extract_evolution, extract_fluency_detail, extract_history, extract_levels_summary, extract_matrix, looks_like_history_header)
from .header_detect import Keyword, find_header_line
from .ingest import TokenizedText, tokenize_text
from .models import ParsedReport, SchemaType

logger = logging.getLogger(__name__)

Detector = Callable[[TokenizedText, str], Optional[int]]
Extractor = Callable[[TokenizedText, int], Tuple[List[str], list]]

# Most specific signatures first: {"ALUNOS"} alone matches almost anything.
# Matching keeps accents, so FLUENCY keys on the unaccented NIVEL the fluency
# export writes and a matrix export with a NÍVEL column falls through to MATRIX.
FLUENCY_KWS: List[Keyword] = ["NOME", "NIVEL"]
MATRIX_KWS: List[Keyword] = ["NOME", ("QUESTÃO", "QUESTAO"), "ACERTO"]
LEVELS_KWS: List[Keyword] = ["FLUENTE", "FRASES", ("SILABAS", "SÍLABAS")]
EVOLUTION_KWS: List[Keyword] = [("PARTICIPAÇÃO", "PARTICIPACAO"), "ACERTOS", "TOTAL_ALUNOS"]
HISTORY_KWS: List[Keyword] = ["ALUNOS"]
# =========================

# Detectors
# =========================
def _keyword_detector(keywords: Sequence[Keyword]) -> Detector:
    def detect(tokens: TokenizedText, filename: str) -> Optional[int]:
        return find_header_line(tokens, keywords)
    return detect


def _detect_history(tokens: TokenizedText, filename: str) -> Optional[int]:
    idx = find_header_line(tokens, HISTORY_KWS)
    if idx is None:
        return None
    if not looks_like_history_header(tokens.row(idx), filename):
        logger.debug("%s: ALUNOS header at line %d rejected as history", filename, idx)
        return None
    return idx


SCHEMA_RULES: List[Tuple[SchemaType, Detector, Extractor]] = [
    (SchemaType.FLUENCY_DETAIL, _keyword_detector(FLUENCY_KWS), extract_fluency_detail),
    (SchemaType.MATRIX, _keyword_detector(MATRIX_KWS), extract_matrix),
    (SchemaType.LEVELS_SUMMARY, _keyword_detector(LEVELS_KWS), extract_levels_summary),
    (SchemaType.EVOLUTION, _keyword_detector(EVOLUTION_KWS), extract_evolution),
    (SchemaType.HISTORY, _detect_history, extract_history),
]
# =========================

# Classification
# =========================
def classify(tokens: TokenizedText, filename: str = "") -> Tuple[SchemaType, Optional[int]]:
    """
    Tries the schema rules in priority order; the first detector that finds
    its header wins. Returns (schema, header line index) or (UNKNOWN, None).
    """
    for schema, detect, _ in SCHEMA_RULES:
        idx = detect(tokens, filename)
        if idx is not None:
            return schema, idx
    return SchemaType.UNKNOWN, None


def _extractor_for(schema: SchemaType) -> Extractor:
    for s, _, extract in SCHEMA_RULES:
        if s is schema:
            return extract
    raise KeyError(schema)


def parse_report(text: str, filename: str = "") -> ParsedReport:
    """
    One file -> one ParsedReport.

    Never raises for malformed content: rows that fail structural checks are
    skipped and a file matching no schema comes back as UNKNOWN.
    """
    tokens = tokenize_text(text)
    schema, header_idx = classify(tokens, filename)

    if schema is SchemaType.UNKNOWN:
        logger.info("%s: no known schema (%d lines)", filename, len(tokens))
        return ParsedReport(filename=filename, schema_type=schema)

    headers, records = _extractor_for(schema)(tokens, header_idx)
    logger.info("%s: %s, header at line %d, %d records", filename, schema.value, header_idx, len(records))
    return ParsedReport(
        filename=filename,
        schema_type=schema,
        headers=tuple(headers),
        records=tuple(records),
    )


def parse_reports(sources: Iterable[Tuple[str, str]], max_workers: Optional[int] = None) -> List[ParsedReport]:
    # (filename, text) pairs; files share nothing, so they are parsed side by side
    items = list(sources)
    if not items:
        return []
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(lambda it: parse_report(it[1], it[0]), items))


def describe_report(report: ParsedReport) -> Dict[str, Any]:
    # summary row for the upload preview
    return {
        "id": report.id,
        "filename": report.filename,
        "schema": report.schema_type.value,
        "headers": len(report.headers),
        "records": len(report.records),
    }
