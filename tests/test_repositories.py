import sqlite3
from datetime import datetime

import pytest

from scges.domain.errors import ConflictError, NotFoundError
from scges.domain.models import Movimentacao, Produto, TipoMovimentacao
from scges.infra.blobstore import SqliteBlobStore
from scges.infra.db import connect
from scges.infra.migrations import apply_migrations, schema_version
from scges.infra.repositories import MovimentacaoRepo, ProdutoRepo


def test_migracoes_idempotentes(db_path):
    apply_migrations(db_path)
    apply_migrations(db_path)
    assert schema_version(db_path) == 2
    with connect(db_path) as c:
        tabelas = {r[0] for r in c.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
        cols = {r[1] for r in c.execute("PRAGMA table_info(movimentacao)")}
        prod_cols = {r[1] for r in c.execute("PRAGMA table_info(produto)")}
    assert {"produto", "movimentacao", "arquivo"} <= tabelas
    assert {"nota_fiscal_id", "nota_fiscal_filename", "setor"} <= cols
    # a quantidade não é uma coluna do produto
    assert "quantidade" not in prod_cols


def test_produto_ida_e_volta(sqlite_srv, db_path):
    agora = datetime(2024, 3, 10, 9, 30)
    repo = ProdutoRepo(db_path)
    repo.insert(Produto(
        id="p1", codigo="001", descricao="Álcool Gel", unidade="FR", fornecedor="ACME",
        created_at=agora, updated_at=agora,
    ))
    p = repo.get("p1")
    assert (p.codigo, p.descricao, p.unidade, p.fornecedor) == ("001", "Álcool Gel", "FR", "ACME")
    assert p.created_at == agora
    assert p.nota_fiscal is None
    assert repo.get_by_codigo("001").id == "p1"
    # casefold() no SQLite compara acentuadas sem caixa
    assert repo.find_by_descricao("ÁLCOOL GEL").id == "p1"
    assert [x.id for x in repo.search("álcool")] == ["p1"]


def test_codigo_unico(sqlite_srv, db_path):
    repo = ProdutoRepo(db_path)
    repo.insert(Produto(id="p1", codigo="001", descricao="A"))
    with pytest.raises(ConflictError):
        repo.insert(Produto(id="p2", codigo="001", descricao="B"))


def test_catalogo_sqlite_fluxo_completo(sqlite_srv):
    mov = sqlite_srv.livro.registrar_entrada("Caneta Azul", 10, servidor_almoxarifado="Ana", data="2024-03-10")
    assert isinstance(mov.id, int)
    assert mov.data == datetime(2024, 3, 10, 12, 0)
    assert mov.produto.codigo == "001"

    sqlite_srv.livro.registrar_entrada("CANETA AZUL", 5, servidor_almoxarifado="Ana")
    saida = sqlite_srv.livro.registrar_saida(mov.produto_id, 12, servidor_almoxarifado="Ana",
                                             setor_responsavel="TI", servidor_retirada="Bruno")
    assert saida.tipo is TipoMovimentacao.SAIDA
    assert (saida.setor_responsavel, saida.servidor_retirada) == ("TI", "Bruno")

    produto = sqlite_srv.catalogo.obter(mov.produto_id)
    assert (produto.quantidade, produto.total_entradas) == (3, 15)
    assert sqlite_srv.catalogo.proximo_codigo() == "002"


def test_view_de_saldo_confere_com_o_livro(sqlite_srv, db_path):
    a = sqlite_srv.livro.registrar_entrada("Caneta", 10, servidor_almoxarifado="Ana").produto_id
    b = sqlite_srv.livro.registrar_entrada("Papel", 4, servidor_almoxarifado="Ana").produto_id
    sqlite_srv.catalogo.criar({"descricao": "Sem movimento"})
    sqlite_srv.livro.registrar_saida(a, 7, servidor_almoxarifado="Ana")
    sqlite_srv.livro.registrar_saida(b, 4, servidor_almoxarifado="Ana")

    with connect(db_path) as c:
        view = {r["produto_id"]: (r["quantidade"], r["total_entradas"])
                for r in c.execute("SELECT * FROM vw_saldo_produto")}
    for p in sqlite_srv.catalogo.listar():
        assert view[p.id] == (p.quantidade, p.total_entradas)


def test_fk_cascade_no_banco(sqlite_srv, db_path):
    pid = sqlite_srv.livro.registrar_entrada("Caneta", 10, servidor_almoxarifado="Ana").produto_id
    assert ProdutoRepo(db_path).delete(pid) is True
    assert MovimentacaoRepo(db_path).list_all() == []


def test_movimentacao_exige_produto_existente(sqlite_srv, db_path):
    with pytest.raises(sqlite3.IntegrityError):
        MovimentacaoRepo(db_path).insert(Movimentacao(
            tipo=TipoMovimentacao.ENTRADA, produto_id="fantasma", quantidade=1, data=datetime.now(),
        ))


def test_remover_produto_sqlite(sqlite_srv):
    pid = sqlite_srv.livro.registrar_entrada("Caneta", 10, servidor_almoxarifado="Ana").produto_id
    sqlite_srv.livro.registrar_saida(pid, 1, servidor_almoxarifado="Ana")
    assert sqlite_srv.catalogo.remover(pid).id == pid
    assert sqlite_srv.livro.consultar() == []
    assert sqlite_srv.catalogo.listar() == []


def test_blobstore_sqlite(sqlite_srv, db_path):
    store = SqliteBlobStore(db_path)
    fid = store.save(b"%PDF-1.4 conteudo", "nf.pdf", {"produto_id": "p1", "tipo": "nota_fiscal"})
    arq = store.get(fid)
    assert arq.filename == "nf.pdf"
    assert arq.conteudo == b"%PDF-1.4 conteudo"
    assert arq.tamanho == len(b"%PDF-1.4 conteudo")
    assert arq.metadata == {"produto_id": "p1", "tipo": "nota_fiscal"}
    assert arq.upload_date is not None

    store.delete(fid)
    with pytest.raises(NotFoundError):
        store.get(fid)
    with pytest.raises(NotFoundError):
        store.delete(fid)


def test_setor_legado_gravado_direto_no_banco(sqlite_srv, db_path):
    # registros anteriores à migração só têm a coluna plana `setor`
    p = sqlite_srv.livro.registrar_entrada("Caneta", 10, servidor_almoxarifado="Ana", data="2024-03-01")
    with connect(db_path) as c:
        c.execute(
            "INSERT INTO movimentacao (tipo, produto_id, quantidade, data, servidor_almoxarifado, setor, created_at) "
            "VALUES ('saida', ?, 3, '2024-03-05T12:00:00', 'Ana', 'Almoxarifado Central', '2024-03-05T12:00:00')",
            (p.produto_id,),
        )
    (legado,) = sqlite_srv.livro.consultar(setor="almoxarifado central")
    assert (legado.setor, legado.setor_responsavel, legado.quantidade) == ("Almoxarifado Central", None, 3)
    assert sqlite_srv.catalogo.obter(p.produto_id).quantidade == 7


@pytest.mark.parametrize("tipo", [None, "formulario"])
def test_blobstore_list(db_path, tipo):
    apply_migrations(db_path)
    store = SqliteBlobStore(db_path)
    nf = store.save(b"%PDF nf", "nf.pdf", {"tipo": "nota_fiscal"})
    form = store.save(b"%PDF form", "form.pdf", {"tipo": "formulario", "data_inicial": "2024-01-01"})
    ids = [a.id for a in store.list(tipo=tipo)]
    if tipo is None:
        assert ids == [form, nf]
    else:
        assert ids == [form]
        assert store.list(tipo=tipo)[0].metadata["data_inicial"] == "2024-01-01"
