import threading
from datetime import datetime

import pytest

from scges.domain.errors import InsufficientStockError, NotFoundError, ValidationError
from scges.domain.models import MovimentacaoFiltro, NotaFiscalRef, TipoMovimentacao
from scges.usecases.servicos import servicos_em_memoria


def test_caneta_azul_entrada_saida_e_estoque_insuficiente(srv):
    m1 = srv.livro.registrar_entrada("Caneta Azul", 10, servidor_almoxarifado="Ana")
    produto = srv.catalogo.obter(m1.produto_id)
    assert produto.codigo == "001"
    assert produto.quantidade == 10

    # mesma descrição, outra caixa: incrementa o mesmo produto
    m2 = srv.livro.registrar_entrada("caneta azul", 5, servidor_almoxarifado="Ana")
    assert m2.produto_id == m1.produto_id
    assert len(srv.catalogo.listar()) == 1
    assert srv.catalogo.obter(m1.produto_id).quantidade == 15

    srv.livro.registrar_saida(m1.produto_id, 12, servidor_almoxarifado="Ana", setor_responsavel="TI")
    produto = srv.catalogo.obter(m1.produto_id)
    assert (produto.quantidade, produto.total_entradas) == (3, 15)
    assert [p.id for p in srv.catalogo.estoque_baixo()] == [produto.id]

    with pytest.raises(InsufficientStockError) as exc:
        srv.livro.registrar_saida(m1.produto_id, 4, servidor_almoxarifado="Ana")
    assert (exc.value.disponivel, exc.value.solicitado) == (3, 4)
    assert srv.catalogo.obter(m1.produto_id).quantidade == 3
    assert len(srv.livro.consultar()) == 3


def test_entrada_retorna_resumo_do_produto(srv):
    mov = srv.livro.registrar_entrada("Papel A4", "12 UN - Unidades", servidor_almoxarifado="Ana")
    assert mov.id is not None
    assert mov.tipo is TipoMovimentacao.ENTRADA
    assert mov.quantidade == 12
    assert (mov.produto.codigo, mov.produto.descricao) == ("001", "Papel A4")


def test_entrada_invalida_nao_cria_produto(srv):
    with pytest.raises(ValidationError):
        srv.livro.registrar_entrada("Produto Novo", 0, servidor_almoxarifado="Ana")
    with pytest.raises(ValidationError):
        srv.livro.registrar_entrada("Produto Novo", 5)
    with pytest.raises(ValidationError):
        srv.livro.registrar_entrada("", 5, servidor_almoxarifado="Ana")
    with pytest.raises(ValidationError):
        srv.livro.registrar_entrada("Produto Novo", 5, servidor_almoxarifado="Ana", data="32/01/2024")
    assert srv.catalogo.listar() == []
    assert srv.livro.consultar() == []


def test_saida_validacoes(srv):
    mov = srv.livro.registrar_entrada("Caneta", 10, servidor_almoxarifado="Ana")
    with pytest.raises(NotFoundError):
        srv.livro.registrar_saida("nao-existe", 1, servidor_almoxarifado="Ana")
    with pytest.raises(ValidationError):
        srv.livro.registrar_saida(mov.produto_id, -1, servidor_almoxarifado="Ana")
    with pytest.raises(ValidationError):
        srv.livro.registrar_saida(mov.produto_id, 1)
    assert srv.catalogo.obter(mov.produto_id).quantidade == 10


def test_saida_de_todo_o_saldo(srv):
    mov = srv.livro.registrar_entrada("Caneta", 10, servidor_almoxarifado="Ana")
    srv.livro.registrar_saida(mov.produto_id, 10, servidor_almoxarifado="Ana")
    assert srv.catalogo.obter(mov.produto_id).quantidade == 0


def test_data_sem_hora_fica_ao_meio_dia(srv):
    mov = srv.livro.registrar_entrada("Caneta", 1, servidor_almoxarifado="Ana", data="2024-03-10")
    assert mov.data == datetime(2024, 3, 10, 12, 0)
    mov = srv.livro.registrar_entrada("Caneta", 1, servidor_almoxarifado="Ana", data="10/03/2024")
    assert mov.data == datetime(2024, 3, 10, 12, 0)
    mov = srv.livro.registrar_entrada("Caneta", 1, servidor_almoxarifado="Ana", data="2024-03-10T08:15:00")
    assert mov.data == datetime(2024, 3, 10, 8, 15)


def test_entrada_com_nota_fiscal_anexa_ao_produto(srv):
    ref = NotaFiscalRef("arq1", "1700000000000-nf.pdf")
    mov = srv.livro.registrar_entrada("Toner", 2, servidor_almoxarifado="Ana", nota_fiscal=ref)
    assert (mov.nota_fiscal_id, mov.nota_fiscal_filename) == ("arq1", "1700000000000-nf.pdf")
    assert srv.catalogo.obter(mov.produto_id).nota_fiscal == ref


def _popula(srv):
    caneta = srv.livro.registrar_entrada("Caneta Azul", 10, servidor_almoxarifado="Ana", data="2024-03-01")
    papel = srv.livro.registrar_entrada("Papel A4", 20, servidor_almoxarifado="Ana", data="2024-03-31")
    srv.livro.registrar_saida(caneta.produto_id, 2, servidor_almoxarifado="Ana",
                              setor_responsavel="TI", data="2024-03-15")
    srv.livro.registrar_saida(papel.produto_id, 5, servidor_almoxarifado="Ana",
                              setor_responsavel="Compras", data="2024-04-01")
    return caneta.produto_id, papel.produto_id


def test_consultar_ordena_mais_recente_primeiro(srv):
    _popula(srv)
    datas = [m.data.date().isoformat() for m in srv.livro.consultar()]
    assert datas == ["2024-04-01", "2024-03-31", "2024-03-15", "2024-03-01"]


def test_consultar_filtros(srv):
    caneta_id, papel_id = _popula(srv)

    assert [m.quantidade for m in srv.livro.consultar(tipo="saida")] == [5, 2]
    assert [m.quantidade for m in srv.livro.consultar(tipo="all")] == [5, 20, 2, 10]
    # fim inclusivo: a entrada de 31/03 ao meio-dia entra
    periodo = srv.livro.consultar(data_inicio="2024-03-15", data_fim="2024-03-31")
    assert [m.quantidade for m in periodo] == [20, 2]
    assert {m.produto_id for m in srv.livro.consultar(busca="caneta")} == {caneta_id}
    assert [m.quantidade for m in srv.livro.consultar(setor="compras")] == [5]
    assert {m.produto_id for m in srv.livro.consultar(produto_id=papel_id)} == {papel_id}
    assert len(srv.livro.consultar(limite=2)) == 2
    assert srv.livro.consultar(limite=0) == []

    filtro = MovimentacaoFiltro(tipo="entrada")
    assert [m.quantidade for m in srv.livro.consultar(filtro, busca="papel")] == [20]


def test_consultar_parametros_invalidos(srv):
    with pytest.raises(ValidationError):
        srv.livro.consultar(limite=-1)
    with pytest.raises(ValidationError):
        srv.livro.consultar(tipo="transferencia")


def test_consultar_anexa_produto(srv):
    _popula(srv)
    for mov in srv.livro.consultar():
        assert mov.produto is not None
        assert mov.produto.codigo in {"001", "002"}


def test_quantidade_e_sempre_a_soma_do_livro(srv):
    caneta_id, papel_id = _popula(srv)
    for pid in (caneta_id, papel_id):
        movs = srv.livro.consultar(produto_id=pid)
        esperado = sum(m.quantidade if m.tipo is TipoMovimentacao.ENTRADA else -m.quantidade for m in movs)
        assert srv.catalogo.obter(pid).quantidade == esperado


def test_resumo(srv):
    _popula(srv)
    assert srv.livro.resumo() == {"totalEntries": 30, "totalExits": 7, "totalMovements": 4}


def test_remover_por_produto(srv):
    caneta_id, papel_id = _popula(srv)
    assert srv.livro.remover_por_produto(caneta_id) == 2
    assert {m.produto_id for m in srv.livro.consultar()} == {papel_id}


def test_modo_estrito_serializa_saidas_concorrentes():
    srv = servicos_em_memoria(estrito=True)
    pid = srv.livro.registrar_entrada("Caneta", 10, servidor_almoxarifado="Ana").produto_id

    erros = []
    barreira = threading.Barrier(4)

    def saida():
        barreira.wait()
        try:
            srv.livro.registrar_saida(pid, 6, servidor_almoxarifado="Ana")
        except InsufficientStockError as e:
            erros.append(e)

    threads = [threading.Thread(target=saida) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(erros) == 3
    assert srv.catalogo.obter(pid).quantidade == 4
