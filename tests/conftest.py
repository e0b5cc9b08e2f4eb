import pytest


def _join(*lines: str) -> str:
    return "\n".join(lines) + "\n"


@pytest.fixture
def csv_text():
    return _join


@pytest.fixture
def fluency_text():
    return _join(
        "NOME;MATÉRIA;NIVEL",
        "Ana Souza;Leitura;Fluente",
        "Bruno Lima;Leitura;nao_fluente",
        "NOME;MATÉRIA;QUESTÃO;RESPOSTA;ACERTO",
        "Ana Souza;Língua Portuguesa;0A;A;certo",
        "Ana Souza;Língua Portuguesa;1C;C;certo",
        "Ana Souza;Língua Portuguesa;2B;D;errado",
        "Ana Souza;Língua Portuguesa;3D;D;sim",
        "Ana Souza;Língua Portuguesa;4A;A;1",
        "Bruno Lima;Língua Portuguesa;0A;B;errado",
        "Bruno Lima;Língua Portuguesa;1C;C;certo",
        "NOME;MATÉRIA;QUESTÃO;RESPOSTA;ACERTO",
        "ana souza;Matemática;0A;A;certo",
        "Bruno Lima;Matemática;0A;A;errado",
        "Carla Dias;Matemática;0B;B;certo",
    )


@pytest.fixture
def matrix_text():
    return _join(
        "NOME_ALUNO,MATÉRIA,MÉDIA,NÍVEL,QUESTÃO,RESPOSTA,ACERTO",
        'Ana,Matemática,"7,5",Fluente,1,A,certo',
        'Ana,Matemática,"7,5",Fluente,2,B,ERRADO',
        'Ana,Português,"8,0",Fluente,1,C,branco',
        "Bruno,Matemática,50%,Não_Leitor,1,D,certo",
        "Bruno,Matemática,50%,Não_Leitor,x,D,certo",
        "Carla,Matemática",
    )


@pytest.fixture
def levels_text():
    return _join(
        "EDIÇÃO;NAO_FLUENTE;FLUENTE;FRASES;PALAVRAS;SILABAS;NAO_LEITOR;NAO_AVALIADO;TOTAL_ALUNOS",
        "2024 - 1ª Edição;5;10;3;2;1;1;0;22",
        "2025 - Diagnóstica;4;12,5%;2;1;0;0;1;20",
        "curta;1;2",
    )


@pytest.fixture
def evolution_text():
    return _join(
        "EDIÇÃO;MATÉRIA;PARTICIPAÇÃO;ACERTOS;TOTAL_ALUNOS",
        "2024;Língua Portuguesa;94%;61,5%;30",
        "2024;Matemática;90%;55%;30",
        ";Matemática;1;2;3",
    )


@pytest.fixture
def history_text():
    return _join(
        "ALUNOS;2024 - Diagnóstica;2024 - Diagnóstica;2025 [Matemática]",
        "Ana;Fluente;80%;Frases",
        "Bruno;Silabas",
    )
