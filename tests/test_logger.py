import pytest

from scges.domain.errors import InsufficientStockError
from scges.infra import logger


@pytest.fixture
def logs_dir(tmp_path):
    path = logger.enable_logging(str(tmp_path / "logs"))
    yield path
    logger.disable_logging()


def test_logging_desligado_nao_cria_arquivos(tmp_path, srv):
    assert logger.ENABLE_LOGGING is False
    srv.livro.registrar_entrada("Caneta", 1, servidor_almoxarifado="Ana")
    assert not (tmp_path / "logs").exists()


def test_operacoes_geram_logs(logs_dir, srv):
    mov = srv.livro.registrar_entrada("Caneta", 5, servidor_almoxarifado="Ana")
    with pytest.raises(InsufficientStockError):
        srv.livro.registrar_saida(mov.produto_id, 9, servidor_almoxarifado="Ana")

    assert "ENTRADA_INSERT" in logger.get_log_summary("entradas")
    transacoes = logger.get_log_summary("transactions")
    assert "TRANSACTION_SUCCESS: entrada" in transacoes
    assert "TRANSACTION_FAILED: saida" in transacoes
    assert "DB_INSERT" in logger.get_log_summary("database")
    assert "produto_criado_por_entrada" in logger.get_log_summary("system")


def test_get_log_summary_limita_linhas(logs_dir):
    for i in range(5):
        logger.log_system_event(f"evento_{i}")
    resumo = logger.get_log_summary("system", lines=2)
    assert resumo.count("SYSTEM_EVENT") == 2
    assert "evento_4" in resumo
    assert "não encontrado" in logger.get_log_summary("inexistente")
