import pytest

from scges.domain.errors import ConflictError, ValidationError
from scges.domain.models import NotaFiscalRef, Produto


def _entrada(srv, produto, qtd, **kw):
    kw.setdefault("servidor_almoxarifado", "Ana")
    return srv.livro.registrar_entrada(produto, qtd, **kw)


def test_criar_gera_codigos_sequenciais(srv):
    assert srv.catalogo.proximo_codigo() == "001"
    a = srv.catalogo.criar({"descricao": "Caneta Azul", "unidade": "UN"})
    b = srv.catalogo.criar({"descricao": "Papel A4"})
    assert (a.codigo, b.codigo) == ("001", "002")
    assert a.quantidade == 0 and a.total_entradas == 0
    assert a.id != b.id
    assert srv.catalogo.proximo_codigo() == "003"


def test_criar_exige_descricao(srv):
    with pytest.raises(ValidationError) as exc:
        srv.catalogo.criar({"descricao": "   ", "unidade": "UN"})
    assert exc.value.field == "descricao"
    assert srv.catalogo.listar() == []


def test_criar_ignora_quantidade_informada(srv):
    p = srv.catalogo.criar({"descricao": "Grampo", "quantidade": 50})
    assert srv.catalogo.obter(p.id).quantidade == 0


def test_campo_desconhecido_e_recusado(srv):
    with pytest.raises(ValidationError):
        srv.catalogo.criar({"descricao": "Grampo", "cor": "azul"})


def test_atualizar_ignora_campos_protegidos(srv):
    p = srv.catalogo.criar({"descricao": "Caneta Azul"})
    _entrada(srv, "Caneta Azul", 10)
    atualizado = srv.catalogo.atualizar(p.id, {
        "codigo": "999", "quantidade": 500, "total_entradas": 1, "unidade": "CX",
    })
    assert atualizado.codigo == "001"
    assert atualizado.unidade == "CX"
    assert atualizado.quantidade == 10
    assert atualizado.total_entradas == 10
    assert atualizado.created_at == p.created_at


def test_atualizar_e_remover_inexistente_retornam_none(srv):
    assert srv.catalogo.atualizar("nao-existe", {"unidade": "CX"}) is None
    assert srv.catalogo.remover("nao-existe") is None
    assert srv.catalogo.obter("nao-existe") is None


def test_atualizar_nao_aceita_descricao_vazia(srv):
    p = srv.catalogo.criar({"descricao": "Caneta"})
    with pytest.raises(ValidationError):
        srv.catalogo.atualizar(p.id, {"descricao": ""})


def test_remover_exclui_movimentacoes_em_cascata(srv):
    _entrada(srv, "Caneta Azul", 10)
    outro = _entrada(srv, "Papel A4", 3)
    p = srv.catalogo.buscar_por_descricao("caneta azul")
    srv.livro.registrar_saida(p.id, 4, servidor_almoxarifado="Ana")

    removido = srv.catalogo.remover(p.id)

    assert removido.id == p.id
    assert srv.catalogo.obter(p.id) is None
    assert srv.livro.consultar(produto_id=p.id) == []
    # movimentações de outros produtos ficam
    assert [m.id for m in srv.livro.consultar()] == [outro.id]


def test_listar_ordena_por_descricao_sem_acento_e_caixa(srv):
    for d in ("caneta", "Álcool Gel", "borracha"):
        srv.catalogo.criar({"descricao": d})
    assert [p.descricao for p in srv.catalogo.listar()] == ["Álcool Gel", "borracha", "caneta"]


def test_listar_com_busca_e_quantidade_derivada(srv):
    _entrada(srv, "Caneta Azul", 10)
    _entrada(srv, "Caneta Preta", 2)
    srv.catalogo.criar({"descricao": "Papel A4", "fornecedor": "Canetas & Cia"})

    res = srv.catalogo.listar("CANETA AZ")
    assert [(p.descricao, p.quantidade) for p in res] == [("Caneta Azul", 10)]
    # fornecedor também é pesquisado
    assert {p.descricao for p in srv.catalogo.listar("canetas &")} == {"Papel A4"}


def test_obter_por_codigo_aceita_sem_zeros(srv):
    p = srv.catalogo.criar({"descricao": "Caneta"})
    assert srv.catalogo.obter_por_codigo("001").id == p.id
    assert srv.catalogo.obter_por_codigo("1").id == p.id
    assert srv.catalogo.obter_por_codigo("2") is None


def test_estoque_baixo_e_estatisticas(srv):
    caneta = _entrada(srv, "Caneta", 10).produto
    papel = _entrada(srv, "Papel", 10).produto
    srv.catalogo.criar({"descricao": "Nunca recebido"})
    srv.livro.registrar_saida(caneta.id, 8, servidor_almoxarifado="Ana")   # 2 <= 3
    srv.livro.registrar_saida(papel.id, 7, servidor_almoxarifado="Ana")    # 3 <= 3

    baixos = srv.catalogo.estoque_baixo()
    assert [p.descricao for p in baixos] == ["Caneta", "Papel"]
    assert len(srv.catalogo.estoque_baixo(limite=1)) == 1

    assert srv.catalogo.estatisticas() == {
        "totalProducts": 3,
        "lowStockProducts": 2,
        "totalStock": 5,
    }


def test_definir_nota_fiscal(srv):
    p = srv.catalogo.criar({"descricao": "Toner"})
    ref = NotaFiscalRef("abc", "123-nf.pdf")
    assert srv.catalogo.definir_nota_fiscal(p.id, ref).nota_fiscal == ref
    assert srv.catalogo.definir_nota_fiscal(p.id, None).nota_fiscal is None


def test_codigo_duplicado_gera_conflito(srv):
    srv.catalogo.criar({"descricao": "Caneta"})
    with pytest.raises(ConflictError):
        srv.catalogo.produtos.insert(Produto(id="outro", codigo="001", descricao="Outra"))
