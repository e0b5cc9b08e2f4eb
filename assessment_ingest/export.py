from __future__ import annotations
import re
from dataclasses import asdict
from io import BytesIO
from typing import Any, Dict, List, Sequence
import pandas as pd
from .models import ParsedReport, SchemaType

_SHEET_BAD_CHARS_RE = re.compile(r"[\[\]\:\*\?\/\\]")


def _fluency_row(rec) -> Dict[str, Any]:
    row = {
        "Nome": rec.name,
        "Matéria": rec.subject,
        "Nível": rec.level,
        "Média (%)": rec.average if rec.average is not None else "",
        "Nível (1-4)": rec.tier if rec.tier is not None else "",
    }
    for q in sorted(rec.questions):
        qa = rec.questions[q]
        row[f"Q{q}"] = qa.answer
        row[f"Q{q} acerto"] = "certo" if qa.correct else "errado"
    return row


def _matrix_row(rec) -> Dict[str, Any]:
    row = {"Nome": rec.name, "Matéria": rec.subject, "Média": rec.average, "Nível": rec.level}
    for q, ans in rec.answers.items():
        row[f"Q{q}"] = ans.value
        row[f"Q{q} acerto"] = ans.status
    return row


def _history_row(rec) -> Dict[str, Any]:
    row = {"Alunos": rec.name}
    row.update(rec.results)
    return row


def report_to_dataframe(report: ParsedReport) -> pd.DataFrame:
    """
    One row per record. Question maps (FLUENCY_DETAIL/MATRIX) are spread into
    Q<n> / Q<n> acerto columns; HISTORY keeps its edition columns as labelled.
    """
    if not report.records:
        return pd.DataFrame()

    st = report.schema_type
    if st is SchemaType.FLUENCY_DETAIL:
        rows = [_fluency_row(r) for r in report.records]
    elif st is SchemaType.MATRIX:
        rows = [_matrix_row(r) for r in report.records]
    elif st is SchemaType.HISTORY:
        rows = [_history_row(r) for r in report.records]
    else:
        rows = [asdict(r) for r in report.records]

    return pd.DataFrame(rows)


def _sheet_name(filename: str, used: set) -> str:
    # Excel: max 31 chars, no []:*?/\ and unique per workbook
    base = _SHEET_BAD_CHARS_RE.sub("_", filename or "dados").strip() or "dados"
    base = re.sub(r"\.(csv|txt)$", "", base, flags=re.I)[:31]
    name = base
    n = 1
    while name.lower() in used:
        n += 1
        suffix = f" ({n})"
        name = base[: 31 - len(suffix)] + suffix
    used.add(name.lower())
    return name


def export_to_excel_bytes(reports: Sequence[ParsedReport]) -> bytes:
    bio = BytesIO()
    used: set = set()

    summary = pd.DataFrame([
        {
            "Arquivo": r.filename,
            "Tipo": r.schema_type.value,
            "Colunas": len(r.headers),
            "Registros": len(r.records),
        }
        for r in reports
    ], columns=["Arquivo", "Tipo", "Colunas", "Registros"])

    with pd.ExcelWriter(bio, engine="xlsxwriter") as writer:
        summary.to_excel(writer, index=False, sheet_name="Resumo")
        used.add("resumo")

        sheets: List[tuple] = [("Resumo", summary)]
        for r in reports:
            df = report_to_dataframe(r)
            if df.empty:
                continue
            name = _sheet_name(r.filename, used)
            df.to_excel(writer, index=False, sheet_name=name)
            sheets.append((name, df))

        wb = writer.book
        fmt_header = wb.add_format({"bold": True, "bg_color": "#F2F2F2", "border": 1, "valign": "vcenter"})

        def format_df_sheet(sheet_name: str, df: pd.DataFrame, default_width: int = 14, max_width: int = 40):
            ws = writer.sheets.get(sheet_name)
            if ws is None:
                return
            ws.freeze_panes(1, 0)
            ws.autofilter(0, 0, max(1, len(df)), max(0, len(df.columns) - 1))
            for col, name in enumerate(df.columns):
                ws.write(0, col, name, fmt_header)
                w = max(10, min(max_width, int(len(str(name)) * 1.2) + 4))
                ws.set_column(col, col, max(default_width, w))

        for name, df in sheets:
            format_df_sheet(name, df)

    return bio.getvalue()
