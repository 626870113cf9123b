import pandas as pd
import pytest

from scges.adapters.xlsx_loader import _slug, load_entradas_from_xlsx, load_saidas_from_xlsx
from scges.usecases.registrar_entrada import run_entrada_lote
from scges.usecases.registrar_saida import run_saida_lote


@pytest.mark.parametrize(
    "cabecalho,esperado",
    [
        ("Descrição do Produto", "descricao do produto"),
        ("  QTDE. ", "qtde"),
        ("Servidor (Almoxarifado)", "servidor almoxarifado"),
        (None, ""),
    ],
)
def test_slug(cabecalho, esperado):
    assert _slug(cabecalho) == esperado


def _xlsx(tmp_path, nome, linhas):
    path = tmp_path / nome
    pd.DataFrame(linhas).to_excel(path, index=False)
    return str(path)


def test_load_entradas_com_sinonimos(tmp_path):
    path = _xlsx(tmp_path, "entradas.xlsx", [
        {"Descrição": "Caneta Azul", "Qtde": "10", "Data de Entrada": "10/03/2024", "Servidor": "Ana", "Obs": "NF 12"},
        {"Descrição": "Papel A4", "Qtde": "5 CX - caixas", "Data de Entrada": None, "Servidor": "Ana", "Obs": None},
    ])
    rows = load_entradas_from_xlsx(path)
    assert rows[0] == {
        "linha": 2,
        "produto": "Caneta Azul",
        "quantidade": "10",
        "data": "2024-03-10",
        "servidor_almoxarifado": "Ana",
        "observacoes": "NF 12",
    }
    assert rows[1]["linha"] == 3
    assert rows[1]["quantidade"] == "5 CX - caixas"
    assert rows[1]["data"] is None
    assert rows[1]["observacoes"] is None


def test_load_saidas(tmp_path):
    path = _xlsx(tmp_path, "saidas.xlsx", [
        {"Código": "001", "Quantidade": "3", "Data": "2024-03-12", "Servidor": "Ana",
         "Setor": "TI", "Retirado por": "Bruno"},
    ])
    (row,) = load_saidas_from_xlsx(path)
    assert row["codigo"] == "001"
    assert row["quantidade"] == "3"
    assert row["data"] == "2024-03-12"
    assert (row["setor_responsavel"], row["servidor_retirada"]) == ("TI", "Bruno")
    assert row["produto_id"] is None


def test_entrada_lote_registra_e_coleta_erros(tmp_path, srv):
    path = _xlsx(tmp_path, "entradas.xlsx", [
        {"Produto": "Caneta Azul", "Quantidade": "10", "Data": "2024-03-10", "Servidor": "Ana"},
        {"Produto": "caneta azul", "Quantidade": "5", "Data": "2024-03-11", "Servidor": "Ana"},
        {"Produto": "Papel A4", "Quantidade": "0", "Data": "2024-03-11", "Servidor": "Ana"},
        {"Produto": "Grampo", "Quantidade": "2", "Data": "2024-03-11", "Servidor": None},
        {"Produto": "Clipe", "Quantidade": "3", "Data": "data ruim", "Servidor": "Ana"},
    ])
    res = run_entrada_lote(path, servicos=srv)

    assert res["tipo"] == "Entradas"
    assert (res["total"], res["sucessos"]) == (5, 2)
    assert [e["linha"] for e in res["erros"]] == [4, 5, 6]
    assert len(res["registros"]) == 2
    # linhas com erro não cadastram produto
    assert [p.descricao for p in srv.catalogo.listar()] == ["Caneta Azul"]
    assert srv.catalogo.listar()[0].quantidade == 15


def test_saida_lote_usa_saldo_atualizado(tmp_path, srv):
    srv.livro.registrar_entrada("Caneta Azul", 10, servidor_almoxarifado="Ana")
    path = _xlsx(tmp_path, "saidas.xlsx", [
        {"Código": "001", "Quantidade": "6", "Servidor": "Ana", "Setor": "TI"},
        {"Código": "1", "Quantidade": "6", "Servidor": "Ana", "Setor": "TI"},
        {"Código": "999", "Quantidade": "1", "Servidor": "Ana", "Setor": "TI"},
        {"Código": None, "Quantidade": "1", "Servidor": "Ana", "Setor": "TI"},
        {"Código": "001", "Quantidade": "4", "Servidor": "Ana", "Setor": "RH"},
    ])
    res = run_saida_lote(path, servicos=srv)

    assert (res["total"], res["sucessos"]) == (5, 2)
    assert [e["linha"] for e in res["erros"]] == [3, 4, 5]
    assert "Estoque insuficiente" in res["erros"][0]["mensagem"]
    assert srv.catalogo.obter_por_codigo("001").quantidade == 0


def test_lote_sqlite(tmp_path, db_path):
    entradas = _xlsx(tmp_path, "entradas.xlsx", [
        {"Produto": "Caneta Azul", "Quantidade": "10", "Servidor": "Ana"},
    ])
    saidas = _xlsx(tmp_path, "saidas.xlsx", [
        {"Código": "001", "Quantidade": "4", "Servidor": "Ana"},
    ])
    assert run_entrada_lote(entradas, db_path=db_path)["sucessos"] == 1
    res = run_saida_lote(saidas, db_path=db_path)
    assert res["sucessos"] == 1
    assert res["registros"][0]["codigo"] == "001"
