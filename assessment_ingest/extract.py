from __future__ import annotations
import logging
import re
from typing import Any, Dict, List, Optional, Tuple
from .header_detect import (cell, find_column, find_column_exact_then_contains, find_column_exact_then_prefix, row_has_keywords)
from .ingest import TokenizedText
from .models import (EvolutionRecord, FluencyDetailRecord, HistoryRecord, LevelsSummaryRecord, MatrixAnswer, MatrixRecord, QuestionAnswer, frozen_map)
from .scoring import compute_derived_metrics
from .utils import fold_upper, leading_int, load_json, norm_level, parse_number, round_half_up, rules_path

logger = logging.getLogger(__name__)

RULES = load_json(rules_path(), {})

QUESTION_SECTION_KWS = ["NOME", ("QUESTÃO", "QUESTAO"), "ACERTO"]
NO_LEVEL = "-"

Extracted = Tuple[List[str], list]
# =========================

# Shared helpers
# =========================
def _canonical_subject(raw: str) -> str:
    # absent subject -> Language; "Leitura" is the same subject under another name
    default = RULES.get("default_subject", "Língua Portuguesa")
    s = (raw or "").strip()
    if not s:
        return default
    aliases = {a.lower() for a in RULES.get("reading_subject_aliases", ["leitura"])}
    if s.lower() in aliases:
        return default
    return s


def _is_header_echo(name: str) -> bool:
    # section headers repeated mid-file show up as data rows
    u = fold_upper(name)
    return "NOME" in u or "MATERIA" in u


def _name_column(headers: List[str]) -> int:
    return find_column(headers, "NOME", "NOME_ALUNO", exact=True)
# =========================

# 1) FLUENCY_DETAIL: level section + per-subject question sections
# =========================
# Records are assembled in plain dicts keyed by (name, subject) and frozen once
# every section has been read.
Draft = Dict[str, Any]


def _new_draft(name: str, subject: str, level: str, average: Optional[int] = None) -> Draft:
    return {"name": name, "subject": subject, "level": level, "questions": {}, "average": average}


def _freeze_fluency(draft: Draft) -> FluencyDetailRecord:
    return FluencyDetailRecord(
        name=draft["name"],
        subject=draft["subject"],
        level=draft["level"],
        questions=frozen_map(draft["questions"]),
        average=draft["average"],
    )


def _read_level_section(
    tokens: TokenizedText,
    header_idx: int,
    students: Dict[Tuple[str, str], Draft],
    levels_by_name: Dict[str, str],
) -> None:
    headers = tokens.row(header_idx)
    idx_name = _name_column(headers)
    idx_subject = find_column(headers, "MATERIA")
    idx_level = find_column(headers, "NIVEL")
    idx_avg = find_column(headers, "MEDIA")
    if idx_name == -1 or idx_level == -1:
        return

    for i in range(header_idx + 1, len(tokens)):
        row = tokens.row(i)
        if len(row) < 2:
            continue
        # a QUESTÃO column means the question sections have started
        if any("QUESTAO" in fold_upper(c) for c in row):
            break

        name = cell(row, idx_name).strip()
        level_raw = cell(row, idx_level).strip()
        if name and _is_header_echo(name):
            continue
        if not name or not level_raw:
            continue

        subject = _canonical_subject(cell(row, idx_subject))
        level = norm_level(level_raw)
        # exported average, used only when the file carries no answers for the pair
        avg_raw = cell(row, idx_avg).strip()
        average = round_half_up(parse_number(avg_raw)) if avg_raw else None

        levels_by_name[name.upper()] = level
        students[(name, subject)] = _new_draft(name, subject, level, average)


def _question_sections(tokens: TokenizedText) -> List[int]:
    # whole file, not capped like header detection
    return [i for i in range(len(tokens)) if row_has_keywords(tokens.row(i), QUESTION_SECTION_KWS)]


def _read_question_section(
    tokens: TokenizedText,
    start: int,
    end: int,
    students: Dict[Tuple[str, str], Draft],
    levels_by_name: Dict[str, str],
) -> None:
    headers = tokens.row(start)
    idx_name = _name_column(headers)
    idx_subject = find_column(headers, "MATERIA")
    idx_question = find_column(headers, "QUESTAO")
    idx_answer = find_column(headers, "RESPOSTA")
    idx_correct = find_column(headers, "ACERTO")
    affirmative = {t.lower() for t in RULES.get("affirmative_tokens", ["certo", "sim", "1"])}

    for i in range(start + 1, end):
        row = tokens.row(i)
        if len(row) < 3:
            continue

        name = cell(row, idx_name).strip()
        if not name or _is_header_echo(name):
            continue

        subject = _canonical_subject(cell(row, idx_subject))
        key = (name, subject)
        student = students.get(key)
        if student is None:
            # e.g. Matemática has no level section; borrow the reading level
            student = _new_draft(name, subject, levels_by_name.get(name.upper(), NO_LEVEL))
            students[key] = student

        if idx_question == -1 or idx_correct == -1:
            continue

        # "0A" -> 0 -> question 1: the export numbers questions from zero
        raw_q = cell(row, idx_question).strip() or "0"
        q = leading_int(raw_q)
        if q is None:
            logger.debug("line %d: unparsable question number %r", i, raw_q)
            continue
        q += 1
        if q <= 0:
            continue

        answer = cell(row, idx_answer).strip()
        correct = cell(row, idx_correct).strip().lower() in affirmative
        student["questions"][q] = QuestionAnswer(answer=answer, correct=correct)


def extract_fluency_detail(tokens: TokenizedText, header_idx: int) -> Extracted:
    """
    Files with a reading-level section (NOME, MATÉRIA, NÍVEL, optional MÉDIA)
    optionally followed by per-subject question sections (NOME, MATÉRIA,
    QUESTÃO, RESPOSTA, ACERTO).

    Pass 1 reads levels, pass 2 reads every question section in the file,
    then averages and tiers are derived (see scoring.compute_derived_metrics).
    """
    students: Dict[Tuple[str, str], Draft] = {}
    levels_by_name: Dict[str, str] = {}

    headers = [h.upper().strip() for h in tokens.row(header_idx)]
    _read_level_section(tokens, header_idx, students, levels_by_name)

    sections = _question_sections(tokens)
    for n, start in enumerate(sections):
        end = sections[n + 1] if n + 1 < len(sections) else len(tokens)
        _read_question_section(tokens, start, end, students, levels_by_name)

    records = compute_derived_metrics([_freeze_fluency(d) for d in students.values()])
    return headers, records
# =========================

# 2) MATRIX: student x question, exam-style
# =========================
def _answer_status(raw: str) -> str:
    s = (raw or "").strip().lower()
    return s if s in ("certo", "errado") else "unknown"


def extract_matrix(tokens: TokenizedText, header_idx: int) -> Extracted:
    headers = tokens.row(header_idx)
    idx_name = find_column(headers, "NOME")
    idx_subject = find_column(headers, "MATERIA")
    idx_avg = find_column(headers, "MEDIA")
    idx_level = find_column(headers, "NIVEL")
    idx_q = find_column(headers, "QUESTAO")
    idx_status = find_column(headers, "ACERTO", exact=True)
    idx_value = find_column(headers, "RESPOSTA", exact=True)

    students: Dict[Tuple[str, str], Draft] = {}

    for i in range(header_idx + 1, len(tokens)):
        row = tokens.row(i)
        if len(row) < len(headers):
            continue

        name = cell(row, idx_name)
        subject = cell(row, idx_subject)
        q_raw = cell(row, idx_q)
        if not name or leading_int(q_raw) is None:
            continue

        # same student may appear under two subjects
        key = (name, subject)
        student = students.get(key)
        if student is None:
            student = {
                "name": name,
                "subject": subject,
                "average": parse_number(cell(row, idx_avg)),
                "level": norm_level(cell(row, idx_level)),
                "answers": {},
            }
            students[key] = student

        student["answers"][q_raw] = MatrixAnswer(
            status=_answer_status(cell(row, idx_status)),
            value=cell(row, idx_value),
        )

    records = [
        MatrixRecord(
            name=s["name"],
            subject=s["subject"],
            average=s["average"],
            level=s["level"],
            answers=frozen_map(s["answers"]),
        )
        for s in students.values()
    ]
    return headers, records
# =========================

# 3) LEVELS_SUMMARY: one row per assessment edition
# =========================
LEVEL_BUCKETS = [
    ("fluent", "FLUENTE"),
    ("non_fluent", "NAO_FLUENTE"),
    ("phrases", "FRASES"),
    ("words", "PALAVRAS"),
    ("syllables", "SILABAS"),
    ("non_reader", "NAO_LEITOR"),
    ("not_evaluated", "NAO_AVALIADO"),
    ("not_informed", "NAO_INFORMADO"),
    ("total_students", "TOTAL"),
]


def extract_levels_summary(tokens: TokenizedText, header_idx: int) -> Extracted:
    headers = tokens.row(header_idx)
    idx_edition = find_column(headers, "EDICAO")
    # exact label first so FLUENTE does not land on NAO_FLUENTE
    bucket_idx = {attr: find_column_exact_then_contains(headers, kw) for attr, kw in LEVEL_BUCKETS}

    records: List[LevelsSummaryRecord] = []
    for i in range(header_idx + 1, len(tokens)):
        row = tokens.row(i)
        if len(row) < 5:
            continue

        edition = cell(row, idx_edition) if idx_edition != -1 else f"Edição {i}"
        values = {attr: parse_number(cell(row, idx)) for attr, idx in bucket_idx.items()}
        records.append(LevelsSummaryRecord(edition=edition, **values))

    return headers, records
# =========================

# 4) EVOLUTION: participation / correctness per edition and subject
# =========================
def extract_evolution(tokens: TokenizedText, header_idx: int) -> Extracted:
    headers = [h.strip() for h in tokens.row(header_idx)]
    idx_edition = find_column(headers, "EDICAO")
    idx_subject = find_column(headers, "MATERIA")
    idx_part = find_column_exact_then_prefix(headers, ["PARTICIPACAO"], ["PARTICIPACAO"])
    idx_correct = find_column_exact_then_prefix(headers, ["ACERTOS"], ["ACERTO"])

    # heuristic: EDIÇÃO;MATÉRIA;<participation>;<correct> layout
    if idx_part == -1 and idx_correct == -1 and len(headers) >= 4:
        logger.debug("evolution: participation/correct columns not labelled, using positions 2 and 3")
        idx_part, idx_correct = 2, 3

    logger.debug("evolution columns: edition=%d subject=%d participation=%d correct=%d",
                 idx_edition, idx_subject, idx_part, idx_correct)

    records: List[EvolutionRecord] = []
    for i in range(header_idx + 1, len(tokens)):
        row = tokens.row(i)
        if len(row) < 3:
            continue

        edition = cell(row, idx_edition).strip()
        subject = cell(row, idx_subject).strip()
        if not edition or not subject:
            continue

        records.append(EvolutionRecord(
            edition=edition,
            subject=subject,
            participation=parse_number(cell(row, idx_part)),
            correct=parse_number(cell(row, idx_correct)),
        ))

    return headers, records
# =========================

# 5) HISTORY: student x edition pivot
# =========================
_SUFFIX_RE = re.compile(r"_\d+$")
_DIGITS_RE = re.compile(r"^\d+$")


def looks_like_history_header(row: List[str], filename: str = "") -> bool:
    # "ALUNOS" alone is too generic; require an edition-ish column or a filename hint
    for h in row:
        u = fold_upper(h)
        if "[" in h or "202" in h or "ANO" in u or "EDICAO" in u:
            return True
    hint = RULES.get("history_filename_hint", "historico")
    return hint in (filename or "").lower()


def dedupe_headers(row: List[str]) -> List[str]:
    # "2024", "2024" -> "2024", "2024_1": every column stays addressable
    seen: Dict[str, int] = {}
    out = []
    for h in row:
        n = seen.get(h, 0)
        seen[h] = n + 1
        out.append(h if n == 0 else f"{h}_{n}")
    return out


def _is_edition_column(label: str) -> bool:
    base = _SUFFIX_RE.sub("", label)
    u = fold_upper(base)
    return ("202" in base or "[" in base or "ANO" in u or "ED" in u or "DIAG" in u
            or bool(_DIGITS_RE.match(base)))


def extract_history(tokens: TokenizedText, header_idx: int) -> Extracted:
    headers = dedupe_headers(tokens.row(header_idx))
    idx_name = find_column(headers, "ALUNOS", "NOME")

    edition_idx = [i for i, h in enumerate(headers) if i != idx_name and _is_edition_column(h)]
    # nothing edition-like: every other column is a result column
    if not edition_idx and idx_name != -1:
        edition_idx = [i for i in range(len(headers)) if i != idx_name]

    records: List[HistoryRecord] = []
    for i in range(header_idx + 1, len(tokens)):
        row = tokens.row(i)
        if len(row) < 2:
            continue
        records.append(HistoryRecord(
            name=cell(row, idx_name),
            school="",
            results=frozen_map({headers[j]: cell(row, j) for j in edition_idx}),
        ))

    return headers, records
