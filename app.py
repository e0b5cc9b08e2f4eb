from __future__ import annotations
import hashlib
import logging
import streamlit as st
import pandas as pd
from assessment_ingest.ingest import decode_bytes
from assessment_ingest.infer import describe_report, parse_report
from assessment_ingest.export import export_to_excel_bytes, report_to_dataframe
from assessment_ingest.models import SchemaType

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

st.set_page_config(page_title="Importação de avaliações", layout="wide")
st.title("Importação de planilhas da plataforma de avaliação")
# =========================

# Helpers
# =========================
TYPE_LABELS = {
    SchemaType.FLUENCY_DETAIL: "Fluência (síntese geral)",
    SchemaType.MATRIX: "Matriz aluno x questão",
    SchemaType.LEVELS_SUMMARY: "Resumo de níveis",
    SchemaType.EVOLUTION: "Evolução por edição",
    SchemaType.HISTORY: "Histórico do aluno",
    SchemaType.UNKNOWN: "Não reconhecido",
}

def _safe_key_prefix(src_key: str) -> str:
    # MD5 keeps widget keys stable for file names with accents/spaces
    return hashlib.md5(src_key.encode("utf-8")).hexdigest()


uploads = st.file_uploader(
    "Arquivos CSV exportados da plataforma",
    type=["csv", "txt"],
    accept_multiple_files=True,
)

if not uploads:
    st.warning("Carregue os arquivos.")
    st.stop()

reports = []
bad_files = []

for up in uploads:
    try:
        text = decode_bytes(up.getvalue())
    except Exception as e:
        bad_files.append({"Arquivo": up.name, "Erro": f"{type(e).__name__}: {e}"})
        continue
    reports.append(parse_report(text, up.name))

if bad_files:
    st.error("Alguns arquivos não puderam ser lidos, verifique seus arquivos (os demais foram processados):")
    st.dataframe(pd.DataFrame(bad_files), width="stretch")

st.subheader("Arquivos reconhecidos")
summary = pd.DataFrame([describe_report(r) for r in reports])
if not summary.empty:
    summary["schema"] = [TYPE_LABELS[r.schema_type] for r in reports]
    st.dataframe(summary.drop(columns=["id"]), width="stretch")

for idx, report in enumerate(reports):
    kp = _safe_key_prefix(f"{idx}::{report.filename}")
    with st.expander(f"#{idx+1} {report.filename} — tipo: {TYPE_LABELS[report.schema_type]}", expanded=False):
        if report.headers:
            st.write("Cabeçalho: " + " | ".join(report.headers))
        st.write(f"Registros: {len(report.records)}")

        df = report_to_dataframe(report)
        if df.empty:
            st.info("Nenhum registro extraído.")
        else:
            n = st.number_input("Linhas a mostrar", min_value=1, max_value=len(df), value=min(50, len(df)), key=f"{kp}__n")
            st.dataframe(df.head(int(n)), width="stretch")

if any(r.records for r in reports):
    xbytes = export_to_excel_bytes(reports)
    st.download_button(
        "Baixar Excel",
        data=xbytes,
        file_name="avaliacoes.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
