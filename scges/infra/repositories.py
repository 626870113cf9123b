# scges/infra/repositories.py
"""
Repositórios (DAO) para acesso e manipulação de dados no SQLite.

Classes:
- ProdutoRepo
- MovimentacaoRepo

Os repositórios só persistem e leem registros. Nenhum deles grava
quantidade no produto; a derivação fica nos serviços (`scges.usecases`).
"""

from __future__ import annotations

import sqlite3
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from scges.domain.errors import ConflictError
from scges.domain.models import Movimentacao, Produto, ProdutoResumo, TipoMovimentacao
from .db import connect, from_iso, to_iso


# -------------------------
# Helpers
# -------------------------

PRODUTO_COLS = (
    "id", "codigo", "descricao", "unidade", "descricao_complementar", "validade",
    "fornecedor", "numero_processo", "observacoes", "setor",
    "nota_fiscal_id", "nota_fiscal_filename", "created_at", "updated_at",
)

MOV_COLS = (
    "id", "tipo", "produto_id", "quantidade", "data",
    "servidor_almoxarifado", "setor_responsavel", "servidor_retirada", "setor",
    "observacoes", "nota_fiscal_id", "nota_fiscal_filename", "created_at",
)


def _row_to_produto(row: sqlite3.Row) -> Produto:
    d = {k: row[k] for k in PRODUTO_COLS}
    d["created_at"] = from_iso(d["created_at"])
    d["updated_at"] = from_iso(d["updated_at"])
    for k in ("unidade", "descricao_complementar", "validade", "fornecedor",
              "numero_processo", "observacoes", "setor"):
        d[k] = d[k] or ""
    return Produto(**d)


def _row_to_movimentacao(row: sqlite3.Row) -> Movimentacao:
    d = {k: row[k] for k in MOV_COLS}
    d["tipo"] = TipoMovimentacao(d["tipo"])
    d["data"] = from_iso(d["data"])
    d["created_at"] = from_iso(d["created_at"])
    d["observacoes"] = d["observacoes"] or ""
    keys = row.keys()
    if "p_codigo" in keys and row["p_codigo"] is not None:
        d["produto"] = ProdutoResumo(row["produto_id"], row["p_codigo"], row["p_descricao"])
    return Movimentacao(**d)


# -------------------------
# Produto
# -------------------------

class ProdutoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, produto: Produto) -> None:
        row = {k: v for k, v in asdict(produto).items() if k in PRODUTO_COLS}
        row["created_at"] = to_iso(produto.created_at)
        row["updated_at"] = to_iso(produto.updated_at)
        cols = ",".join(PRODUTO_COLS)
        vals = ",".join(f":{k}" for k in PRODUTO_COLS)
        try:
            with connect(self.db_path) as c:
                c.execute(f"INSERT INTO produto ({cols}) VALUES ({vals})", row)
        except sqlite3.IntegrityError as e:
            raise ConflictError(f"Código de produto já utilizado: {produto.codigo}", produto.codigo) from e

    def get(self, produto_id: str) -> Optional[Produto]:
        with connect(self.db_path) as c:
            row = c.execute("SELECT * FROM produto WHERE id = ?", (produto_id,)).fetchone()
            return _row_to_produto(row) if row else None

    def get_by_codigo(self, codigo: str) -> Optional[Produto]:
        with connect(self.db_path) as c:
            row = c.execute("SELECT * FROM produto WHERE codigo = ?", (codigo,)).fetchone()
            return _row_to_produto(row) if row else None

    def get_all(self) -> List[Produto]:
        with connect(self.db_path) as c:
            cur = c.execute("SELECT * FROM produto")
            return [_row_to_produto(r) for r in cur.fetchall()]

    def search(self, termo: str) -> List[Produto]:
        """Busca sem caixa por trecho da descrição, do código ou do fornecedor."""
        with connect(self.db_path) as c:
            cur = c.execute(
                """
                SELECT * FROM produto
                WHERE instr(casefold(descricao), casefold(:t)) > 0
                   OR instr(casefold(codigo), casefold(:t)) > 0
                   OR instr(casefold(COALESCE(fornecedor, '')), casefold(:t)) > 0
                """,
                {"t": termo},
            )
            return [_row_to_produto(r) for r in cur.fetchall()]

    def find_by_descricao(self, descricao: str) -> Optional[Produto]:
        """Produto cuja descrição é igual à informada, ignorando caixa."""
        with connect(self.db_path) as c:
            row = c.execute(
                "SELECT * FROM produto WHERE casefold(descricao) = casefold(?) ORDER BY created_at LIMIT 1",
                (descricao,),
            ).fetchone()
            return _row_to_produto(row) if row else None

    def list_codigos(self) -> List[str]:
        with connect(self.db_path) as c:
            return [r[0] for r in c.execute("SELECT codigo FROM produto").fetchall()]

    def update(self, produto_id: str, campos: Dict[str, Any]) -> Optional[Produto]:
        campos = dict(campos)
        if "updated_at" in campos:
            campos["updated_at"] = to_iso(campos["updated_at"])
        sets = ", ".join(f"{k} = :{k}" for k in campos)
        with connect(self.db_path) as c:
            if sets:
                c.execute(f"UPDATE produto SET {sets} WHERE id = :_id", {**campos, "_id": produto_id})
            row = c.execute("SELECT * FROM produto WHERE id = ?", (produto_id,)).fetchone()
            return _row_to_produto(row) if row else None

    def delete(self, produto_id: str) -> bool:
        with connect(self.db_path) as c:
            cur = c.execute("DELETE FROM produto WHERE id = ?", (produto_id,))
            return cur.rowcount > 0


# -------------------------
# Movimentações
# -------------------------

_SELECT_MOV = """
    SELECT m.*, p.codigo AS p_codigo, p.descricao AS p_descricao
    FROM movimentacao m
    LEFT JOIN produto p ON p.id = m.produto_id
"""


class MovimentacaoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, mov: Movimentacao) -> Movimentacao:
        row = {k: getattr(mov, k) for k in MOV_COLS if k != "id"}
        row["tipo"] = mov.tipo.value
        row["data"] = to_iso(mov.data)
        row["created_at"] = to_iso(mov.created_at)
        cols = [k for k in MOV_COLS if k != "id"]
        with connect(self.db_path) as c:
            cur = c.execute(
                f"INSERT INTO movimentacao ({','.join(cols)}) VALUES ({','.join(':' + k for k in cols)})",
                row,
            )
            new_id = cur.lastrowid
            saved = c.execute(_SELECT_MOV + " WHERE m.id = ?", (new_id,)).fetchone()
            return _row_to_movimentacao(saved)

    def list_all(self) -> List[Movimentacao]:
        with connect(self.db_path) as c:
            cur = c.execute(_SELECT_MOV + " ORDER BY m.id")
            return [_row_to_movimentacao(r) for r in cur.fetchall()]

    def list_by_produto(self, produto_id: str) -> List[Movimentacao]:
        with connect(self.db_path) as c:
            cur = c.execute(_SELECT_MOV + " WHERE m.produto_id = ? ORDER BY m.id", (produto_id,))
            return [_row_to_movimentacao(r) for r in cur.fetchall()]

    def delete_by_produto(self, produto_id: str) -> int:
        with connect(self.db_path) as c:
            cur = c.execute("DELETE FROM movimentacao WHERE produto_id = ?", (produto_id,))
            return cur.rowcount
