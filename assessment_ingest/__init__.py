"""
This package contains:
- decoding and tokenizing of assessment-platform CSV exports
- header detection and schema classification (five known layouts)
- per-schema record extraction
- derived metrics for fluency files (average %, 1-4 tier, propagation)
- tabular / Excel export of parsed reports
"""
from .ingest import decode_bytes, load_texts_from_uploads, read_text_file, tokenize_text
from .header_detect import find_header_line
from .infer import classify, describe_report, parse_report, parse_reports
from .models import (
    EvolutionRecord,
    FluencyDetailRecord,
    HistoryRecord,
    LevelsSummaryRecord,
    MatrixAnswer,
    MatrixRecord,
    ParsedReport,
    QuestionAnswer,
    SchemaType,
)
from .export import export_to_excel_bytes, report_to_dataframe

__all__ = [
    "decode_bytes",
    "load_texts_from_uploads",
    "read_text_file",
    "tokenize_text",
    "find_header_line",
    "classify",
    "describe_report",
    "parse_report",
    "parse_reports",
    "EvolutionRecord",
    "FluencyDetailRecord",
    "HistoryRecord",
    "LevelsSummaryRecord",
    "MatrixAnswer",
    "MatrixRecord",
    "ParsedReport",
    "QuestionAnswer",
    "SchemaType",
    "export_to_excel_bytes",
    "report_to_dataframe",
]
