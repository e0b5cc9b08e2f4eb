import dataclasses
import logging

import pytest

from assessment_ingest.infer import classify, describe_report, parse_report, parse_reports
from assessment_ingest.ingest import tokenize_text
from assessment_ingest.models import FluencyDetailRecord, MatrixRecord, SchemaType


class TestClassification:
    def test_each_fixture(self, fluency_text, matrix_text, levels_text, evolution_text, history_text):
        assert parse_report(fluency_text, "sintese.csv").schema_type is SchemaType.FLUENCY_DETAIL
        assert parse_report(matrix_text, "prova.csv").schema_type is SchemaType.MATRIX
        assert parse_report(levels_text, "niveis.csv").schema_type is SchemaType.LEVELS_SUMMARY
        assert parse_report(evolution_text, "evolucao.csv").schema_type is SchemaType.EVOLUTION
        assert parse_report(history_text, "alunos.csv").schema_type is SchemaType.HISTORY

    def test_fluency_checked_before_matrix(self, csv_text):
        text = csv_text("NOME;NIVEL;QUESTÃO;RESPOSTA;ACERTO", "Ana;fluente;0;A;certo")
        schema, idx = classify(tokenize_text(text))
        assert (schema, idx) == (SchemaType.FLUENCY_DETAIL, 0)

    def test_matrix_with_accented_level_column(self, csv_text):
        text = csv_text(
            "NOME;MATÉRIA;MÉDIA;NÍVEL;QUESTÃO;RESPOSTA;ACERTO",
            "Ana;Matemática;7,5;Fluente;1;A;certo",
            "Ana;Matemática;7,5;Fluente;2;B;errado",
        )
        report = parse_report(text, "prova.csv")
        assert report.schema_type is SchemaType.MATRIX
        (ana,) = report.records
        assert isinstance(ana, MatrixRecord)
        assert list(ana.answers) == ["1", "2"]
        assert ana.answers["2"].status == "errado"
        assert ana.average == 7.5
        assert ana.level == "fluente"

    def test_matrix_fixture_header_line(self, matrix_text):
        schema, idx = classify(tokenize_text(matrix_text), "prova.csv")
        assert (schema, idx) == (SchemaType.MATRIX, 0)

    def test_history_false_positive_rejected(self, csv_text):
        text = csv_text("ALUNOS;TURMA;ESCOLA", "Ana;5A;EM Central")
        report = parse_report(text, "turma_5a.csv")
        assert report.schema_type is SchemaType.UNKNOWN
        assert report.records == ()
        assert report.headers == ()

    def test_history_filename_hint(self, csv_text):
        text = csv_text("ALUNOS;TURMA;ESCOLA", "Ana;5A;EM Central")
        report = parse_report(text, "historico_5a.csv")
        assert report.schema_type is SchemaType.HISTORY
        assert len(report.records) == 1

    def test_empty_file_is_unknown(self):
        report = parse_report("", "vazio.csv")
        assert report.schema_type is SchemaType.UNKNOWN
        assert not report.is_recognized
        assert report.records == ()

    def test_header_past_scan_window_is_unknown(self):
        text = "\n".join(["x;y"] * 1000 + ["NOME;NIVEL", "Ana;fluente"])
        assert parse_report(text, "grande.csv").schema_type is SchemaType.UNKNOWN

    def test_classification_logged(self, fluency_text, caplog):
        with caplog.at_level(logging.INFO, logger="assessment_ingest.infer"):
            parse_report(fluency_text, "sintese.csv")
        assert "FLUENCY_DETAIL" in caplog.text


class TestParseReport:
    def test_minimal_fluency_file(self, csv_text):
        report = parse_report(csv_text("NOME;NIVEL", "Ana;fluente", "Bruno;nao_fluente"), "turma.csv")
        assert report.schema_type is SchemaType.FLUENCY_DETAIL
        assert report.filename == "turma.csv"
        assert report.headers == ("NOME", "NIVEL")
        assert [(r.name, r.level) for r in report.records] == [("Ana", "fluente"), ("Bruno", "nao fluente")]
        for r in report.records:
            assert isinstance(r, FluencyDetailRecord)
            assert r.questions == {}
            assert r.average is None

    def test_comma_separated_with_bom(self):
        text = '\ufeffNOME,NIVEL\n"Souza, Ana",Fluente\n'
        report = parse_report(text, "a.csv")
        assert report.schema_type is SchemaType.FLUENCY_DETAIL
        assert report.records[0].name == "Souza, Ana"

    def test_idempotent(self, fluency_text):
        a = parse_report(fluency_text, "sintese.csv")
        b = parse_report(fluency_text, "sintese.csv")
        assert a.id != b.id
        assert (a.schema_type, a.headers, a.records) == (b.schema_type, b.headers, b.records)

    def test_report_is_frozen(self, fluency_text):
        report = parse_report(fluency_text, "sintese.csv")
        with pytest.raises(dataclasses.FrozenInstanceError):
            report.filename = "x"

    def test_records_are_frozen(self, fluency_text, matrix_text):
        fluency = parse_report(fluency_text, "sintese.csv").records[0]
        with pytest.raises(dataclasses.FrozenInstanceError):
            fluency.tier = 1
        with pytest.raises(TypeError):
            fluency.questions[99] = fluency.questions[1]

        matrix = parse_report(matrix_text, "prova.csv").records[0]
        with pytest.raises(dataclasses.FrozenInstanceError):
            matrix.average = 0.0
        with pytest.raises(TypeError):
            matrix.answers["9"] = matrix.answers["1"]

    def test_tier_propagates_to_math(self, csv_text):
        rows = [f"Ana;Língua Portuguesa;{q};A;{'certo' if q < 41 else 'errado'}" for q in range(50)]
        text = csv_text(
            "NOME;MATÉRIA;NIVEL",
            "Ana;Leitura;fluente",
            "NOME;MATÉRIA;QUESTÃO;RESPOSTA;ACERTO",
            *rows,
            "NOME;MATÉRIA;QUESTÃO;RESPOSTA;ACERTO",
            "ANA;Matemática;0;B;errado",
        )
        records = parse_report(text, "sintese.csv").records
        lp, math = records
        assert lp.average == 82
        assert lp.tier == 4
        assert math.tier == 4


class TestBatch:
    def test_order_preserved(self, fluency_text, matrix_text, evolution_text):
        reports = parse_reports([
            ("a.csv", fluency_text),
            ("b.csv", matrix_text),
            ("c.csv", ""),
            ("d.csv", evolution_text),
        ], max_workers=4)
        assert [r.filename for r in reports] == ["a.csv", "b.csv", "c.csv", "d.csv"]
        assert [r.schema_type for r in reports] == [
            SchemaType.FLUENCY_DETAIL, SchemaType.MATRIX, SchemaType.UNKNOWN, SchemaType.EVOLUTION,
        ]
        assert len({r.id for r in reports}) == 4

    def test_empty_batch(self):
        assert parse_reports([]) == []

    def test_describe_report(self, evolution_text):
        report = parse_report(evolution_text, "evolucao.csv")
        d = describe_report(report)
        assert d["schema"] == "EVOLUTION"
        assert d["headers"] == 5
        assert d["records"] == 2
