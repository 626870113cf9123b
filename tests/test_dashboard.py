import pytest

from scges.domain.errors import ValidationError
from scges.usecases.dashboard import estatisticas_painel, movimentacoes_recentes, produtos_estoque_baixo


def _popula(srv):
    for i, desc in enumerate(["Caneta", "Papel", "Grampo", "Clipe", "Toner", "Cola"], start=1):
        srv.livro.registrar_entrada(desc, 10, servidor_almoxarifado="Ana", data=f"2024-03-{i:02d}")
    caneta = srv.catalogo.buscar_por_descricao("Caneta")
    srv.livro.registrar_saida(caneta.id, 9, servidor_almoxarifado="Ana", data="2024-03-20")
    papel = srv.catalogo.buscar_por_descricao("Papel")
    srv.livro.registrar_saida(papel.id, 7, servidor_almoxarifado="Ana", data="2024-03-21")


def test_estatisticas_painel(srv):
    _popula(srv)
    assert estatisticas_painel(srv) == {
        "totalProducts": 6,
        "totalEntries": 60,
        "totalExits": 16,
        "lowStockProducts": 2,
        "totalMovements": 8,
        "totalStock": 44,
    }


def test_painel_vazio(srv):
    assert estatisticas_painel(srv) == {
        "totalProducts": 0,
        "totalEntries": 0,
        "totalExits": 0,
        "lowStockProducts": 0,
        "totalMovements": 0,
        "totalStock": 0,
    }
    assert movimentacoes_recentes(srv) == []
    assert produtos_estoque_baixo(srv) == []


def test_recentes_e_estoque_baixo(srv):
    _popula(srv)
    recentes = movimentacoes_recentes(srv)
    assert len(recentes) == 5
    assert recentes[0].data.day == 21
    assert [m.data.day for m in movimentacoes_recentes(srv, limit=2)] == [21, 20]

    baixos = produtos_estoque_baixo(srv)
    assert [(p.descricao, p.quantidade) for p in baixos] == [("Caneta", 1), ("Papel", 3)]


def test_limite_zero_e_none(srv):
    _popula(srv)
    assert movimentacoes_recentes(srv, limit=0) == []
    assert produtos_estoque_baixo(srv, limit=0) == []
    assert len(movimentacoes_recentes(srv, limit=None)) == 5
    with pytest.raises(ValidationError):
        movimentacoes_recentes(srv, limit=-1)
