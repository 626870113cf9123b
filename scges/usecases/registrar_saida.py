# scges/usecases/registrar_saida.py
"""
UC: Registrar SAÍDAS (única e em lote).
- run_saida_unica(): modo interativo via stdin (input), registra 1 saída.
- run_saida_lote(path): lê XLSX com o adapter e registra linha a linha.

Obs.:
- O produto é identificado pelo código ("001"); em planilhas também pelo
  id interno, quando a coluna existir.
- Saídas maiores que a quantidade atual são recusadas. Em lote, cada linha
  vê o saldo já reduzido pelas linhas anteriores.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from scges.config import DB_PATH
from scges.domain.errors import NotFoundError, ScgesError, ValidationError
from scges.adapters.parsers import normaliza_texto
from scges.adapters.xlsx_loader import load_saidas_from_xlsx
from scges.infra.logger import (
    log_transaction, log_saida, log_system_event, log_file_operation, print_system
)
from scges.usecases.movimentacoes import movimentacao_para_dict
from scges.usecases.servicos import Servicos, abrir_servicos


def _resolve_produto_id(srv: Servicos, codigo: Optional[str], produto_id: Optional[str] = None) -> str:
    if produto_id:
        return produto_id
    if not codigo:
        raise ValidationError("Código do produto é obrigatório", field="codigo")
    produto = srv.catalogo.obter_por_codigo(codigo)
    if produto is None:
        raise NotFoundError("Produto", codigo)
    return produto.id


def run_saida_unica(db_path: str = DB_PATH, servicos: Optional[Servicos] = None) -> Dict[str, Any]:
    """Coleta dados via stdin e registra uma única SAÍDA."""
    log_system_event("saida_unica_start")
    srv = servicos or abrir_servicos(db_path)

    try:
        print_system("=== Registrar SAÍDA ===")
        codigo      = input("Código do produto: ").strip()
        quantidade  = input("Quantidade: ").strip()
        data        = input("Data (YYYY-MM-DD ou DD/MM/AAAA) [hoje]: ").strip()
        servidor    = input("Servidor do almoxarifado: ").strip()
        setor       = input("Setor responsável (opcional): ").strip()
        retirada    = input("Servidor que retirou (opcional): ").strip()
        observacoes = input("Observações (opcional): ").strip()

        log_saida("manual_input", codigo, quantidade, data=data)

        mov = srv.livro.registrar_saida(
            produto_id=_resolve_produto_id(srv, codigo),
            quantidade=quantidade,
            data=normaliza_texto(data),
            servidor_almoxarifado=servidor,
            setor_responsavel=setor,
            servidor_retirada=retirada,
            observacoes=observacoes,
        )
        print_system(">> Saída registrada com sucesso.")
        log_system_event("saida_unica_success", {"id": mov.id, "produto_id": mov.produto_id})
        return movimentacao_para_dict(mov)
    except Exception as e:
        log_system_event("saida_unica_error", {"error": str(e)}, level="error")
        raise


def run_saida_lote(path: str, db_path: str = DB_PATH, servicos: Optional[Servicos] = None) -> Dict[str, Any]:
    """Lê um XLSX de SAÍDAS e registra cada linha no livro."""
    log_system_event("saida_lote_start", {"file_path": path})
    log_file_operation("import", path)
    srv = servicos or abrir_servicos(db_path)

    try:
        rows: List[Dict[str, Any]] = load_saidas_from_xlsx(path)
        log_file_operation("import", path, rows_processed=len(rows))

        registros: List[Dict[str, Any]] = []
        erros: List[Dict[str, Any]] = []
        for row in rows:
            try:
                mov = srv.livro.registrar_saida(
                    produto_id=_resolve_produto_id(srv, row.get("codigo"), row.get("produto_id")),
                    quantidade=row.get("quantidade"),
                    data=row.get("data"),
                    servidor_almoxarifado=row.get("servidor_almoxarifado"),
                    setor_responsavel=row.get("setor_responsavel"),
                    servidor_retirada=row.get("servidor_retirada"),
                    observacoes=row.get("observacoes"),
                )
            except ScgesError as e:
                log_saida("batch_row_error", row.get("codigo") or "", row.get("quantidade"),
                          linha=row["linha"], error=str(e))
                erros.append({"linha": row["linha"], "mensagem": str(e)})
                continue
            registros.append(movimentacao_para_dict(mov))

        result = {
            "tipo": "Saídas",
            "arquivo": path,
            "total": len(rows),
            "sucessos": len(registros),
            "registros": registros,
            "erros": erros,
        }
        log_transaction("saida_lote", {"file": path, "rows_count": len(rows)},
                        result={"sucessos": len(registros), "erros": len(erros)})
        log_system_event("saida_lote_success", {"file_path": path, "rows_inserted": len(registros)})
        return result

    except Exception as e:
        error_msg = str(e)
        log_transaction("saida_lote", {"file": path}, error=error_msg)
        log_system_event("saida_lote_error", {"file_path": path, "error": error_msg}, level="error")
        raise
