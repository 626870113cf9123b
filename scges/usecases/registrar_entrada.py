# scges/usecases/registrar_entrada.py
"""
UC: Registrar ENTRADAS (única e em lote).
- run_entrada_unica(): modo interativo via stdin (input), registra 1 entrada.
- run_entrada_lote(path): lê XLSX com o adapter e registra linha a linha.

Obs.:
- O produto é identificado pela descrição; se não existir, é cadastrado.
- Em lote, uma linha inválida não interrompe as demais: o erro vai para
  `erros` com o número da linha.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from scges.config import DB_PATH
from scges.domain.errors import ScgesError
from scges.adapters.parsers import normaliza_texto
from scges.adapters.xlsx_loader import load_entradas_from_xlsx
from scges.infra.logger import (
    log_transaction, log_entrada, log_system_event, log_file_operation, print_system
)
from scges.usecases.movimentacoes import movimentacao_para_dict
from scges.usecases.servicos import Servicos, abrir_servicos


def run_entrada_unica(db_path: str = DB_PATH, servicos: Optional[Servicos] = None) -> Dict[str, Any]:
    """Coleta dados via stdin e registra uma única ENTRADA."""
    log_system_event("entrada_unica_start")
    srv = servicos or abrir_servicos(db_path)

    try:
        print_system("=== Registrar ENTRADA ===")
        produto     = input("Descrição do produto: ").strip()
        quantidade  = input("Quantidade: ").strip()
        data        = input("Data (YYYY-MM-DD ou DD/MM/AAAA) [hoje]: ").strip()
        servidor    = input("Servidor do almoxarifado: ").strip()
        observacoes = input("Observações (opcional): ").strip()

        log_entrada("manual_input", produto, quantidade, data=data)

        mov = srv.livro.registrar_entrada(
            produto=produto,
            quantidade=quantidade,
            data=normaliza_texto(data),
            servidor_almoxarifado=servidor,
            observacoes=observacoes,
        )
        print_system(">> Entrada registrada com sucesso.")
        log_system_event("entrada_unica_success", {"id": mov.id, "produto_id": mov.produto_id})
        return movimentacao_para_dict(mov)
    except Exception as e:
        log_system_event("entrada_unica_error", {"error": str(e)}, level="error")
        raise


def run_entrada_lote(path: str, db_path: str = DB_PATH, servicos: Optional[Servicos] = None) -> Dict[str, Any]:
    """Lê um XLSX de ENTRADAS e registra cada linha no livro."""
    log_system_event("entrada_lote_start", {"file_path": path})
    log_file_operation("import", path)
    srv = servicos or abrir_servicos(db_path)

    try:
        rows: List[Dict[str, Any]] = load_entradas_from_xlsx(path)
        log_file_operation("import", path, rows_processed=len(rows))

        registros: List[Dict[str, Any]] = []
        erros: List[Dict[str, Any]] = []
        for row in rows:
            try:
                mov = srv.livro.registrar_entrada(
                    produto=row.get("produto"),
                    quantidade=row.get("quantidade"),
                    data=row.get("data"),
                    servidor_almoxarifado=row.get("servidor_almoxarifado"),
                    observacoes=row.get("observacoes"),
                )
            except ScgesError as e:
                log_entrada("batch_row_error", row.get("produto") or "", row.get("quantidade"),
                            linha=row["linha"], error=str(e))
                erros.append({"linha": row["linha"], "mensagem": str(e)})
                continue
            registros.append(movimentacao_para_dict(mov))

        result = {
            "tipo": "Entradas",
            "arquivo": path,
            "total": len(rows),
            "sucessos": len(registros),
            "registros": registros,
            "erros": erros,
        }
        log_transaction("entrada_lote", {"file": path, "rows_count": len(rows)},
                        result={"sucessos": len(registros), "erros": len(erros)})
        log_system_event("entrada_lote_success", {"file_path": path, "rows_inserted": len(registros)})
        return result

    except Exception as e:
        error_msg = str(e)
        log_transaction("entrada_lote", {"file": path}, error=error_msg)
        log_system_event("entrada_lote_error", {"file_path": path, "error": error_msg}, level="error")
        raise
