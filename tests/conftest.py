import pytest

from scges.usecases.servicos import abrir_servicos, servicos_em_memoria


@pytest.fixture
def srv():
    """Serviços sobre repositórios em memória."""
    return servicos_em_memoria()


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "scges_test.sqlite")


@pytest.fixture
def sqlite_srv(db_path):
    """Serviços sobre um SQLite temporário (já migrado)."""
    return abrir_servicos(db_path)
