# scges/usecases/relatorios.py
"""
Relatórios:
- estoque (produtos por código, quantidade derivada e alerta de estoque baixo)
- histórico de movimentações (filtros do livro, resumo de unidades e saldo)
- exportação para Excel (abas "Produtos" e "Movimentações")
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

import pandas as pd

from scges.domain.models import MovimentacaoFiltro, Produto, TipoMovimentacao
from scges.domain.policies import estoque_baixo, numero_do_codigo, ordena_movimentacoes
from scges.infra.logger import log_file_operation, log_system_event, log_transaction
from scges.usecases.movimentacoes import movimentacao_para_dict
from scges.usecases.servicos import Servicos


# ----------------------
# util
# ----------------------

def _produto_para_dict(p: Produto, baixo: bool) -> Dict[str, Any]:
    return {
        "codigo": p.codigo,
        "descricao": p.descricao,
        "unidade": p.unidade,
        "quantidade": p.quantidade,
        "total_entradas": p.total_entradas,
        "fornecedor": p.fornecedor,
        "validade": p.validade,
        "estoque_baixo": baixo,
    }


def _por_codigo(produtos: List[Produto]) -> List[Produto]:
    return sorted(produtos, key=lambda p: (numero_do_codigo(p.codigo), p.codigo))


# ----------------------
# 1) Estoque
# ----------------------

def relatorio_estoque(srv: Servicos) -> Dict[str, Any]:
    """Produtos ordenados pelo código, com resumo do catálogo."""
    log_system_event("relatorio_estoque_start")
    limiar = srv.catalogo.limiar
    linhas = [
        _produto_para_dict(p, estoque_baixo(p.quantidade, p.total_entradas, limiar))
        for p in _por_codigo(srv.catalogo.listar())
    ]
    resumo = {
        "totalProducts": len(linhas),
        "lowStockProducts": sum(1 for r in linhas if r["estoque_baixo"]),
        "totalStock": sum(r["quantidade"] for r in linhas),
    }
    log_system_event("relatorio_estoque_done", resumo)
    return {"produtos": linhas, "resumo": resumo, "gerado_em": date.today().isoformat()}


# ----------------------
# 2) Histórico
# ----------------------

def relatorio_historico(srv: Servicos, filtro: Optional[MovimentacaoFiltro] = None, **criterios: Any) -> Dict[str, Any]:
    """Movimentações filtradas, mais recentes primeiro (mesmo dia: ordem de criação).

    O resumo traz quantidade de registros e de unidades de entradas e saídas
    e o saldo (unidades de entrada menos unidades de saída) do período.
    """
    log_system_event("relatorio_historico_start", {"criterios": {k: str(v) for k, v in criterios.items()}})
    movs = ordena_movimentacoes(srv.livro.consultar(filtro, **criterios), truncar_dia=True)

    entradas = [m for m in movs if m.tipo is TipoMovimentacao.ENTRADA]
    saidas = [m for m in movs if m.tipo is TipoMovimentacao.SAIDA]
    qtd_entradas = sum(m.quantidade for m in entradas)
    qtd_saidas = sum(m.quantidade for m in saidas)
    resumo = {
        "totalMovements": len(movs),
        "entradas": len(entradas),
        "saidas": len(saidas),
        "unidades_entrada": qtd_entradas,
        "unidades_saida": qtd_saidas,
        "saldo": qtd_entradas - qtd_saidas,
    }
    log_system_event("relatorio_historico_done", resumo)
    return {
        "movimentacoes": [movimentacao_para_dict(m) for m in movs],
        "resumo": resumo,
        "gerado_em": date.today().isoformat(),
    }


# ----------------------
# 3) Excel
# ----------------------

def exportar_excel(srv: Servicos, path: str) -> Dict[str, Any]:
    """Grava um XLSX com as abas "Produtos" e "Movimentações"."""
    log_system_event("exportar_excel_start", {"file_path": path})
    try:
        estoque = relatorio_estoque(srv)
        historico = relatorio_historico(srv)

        df_prod = pd.DataFrame(
            estoque["produtos"],
            columns=["codigo", "descricao", "unidade", "quantidade", "total_entradas",
                     "fornecedor", "validade", "estoque_baixo"],
        )
        df_mov = pd.DataFrame(
            historico["movimentacoes"],
            columns=["id", "tipo", "data", "codigo", "produto", "quantidade",
                     "servidor_almoxarifado", "setor_responsavel", "servidor_retirada", "observacoes"],
        )
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            df_prod.to_excel(writer, sheet_name="Produtos", index=False)
            df_mov.to_excel(writer, sheet_name="Movimentações", index=False)
    except Exception as e:
        log_transaction("exportar_excel", {"file": path}, error=str(e))
        raise

    result = {"arquivo": path, "produtos": len(df_prod), "movimentacoes": len(df_mov)}
    log_file_operation("export", path, rows_processed=len(df_prod) + len(df_mov))
    log_transaction("exportar_excel", {"file": path}, result=result)
    return result
