# scges/infra/views.py
"""
Criação de views auxiliares e índices.

Views criadas:
- vw_saldo_produto: totais de entradas/saídas e quantidade derivada por
  produto, para inspeção direta do banco (sqlite3 CLI, planilhas). Os
  serviços não leem esta view; a quantidade exibida pela aplicação é
  sempre recalculada a partir das movimentações.

Obs.:
- As views assumem que as migrações V1→V2 já foram aplicadas.
"""

from __future__ import annotations

from .db import connect


def create_views(db_path: str) -> None:
    with connect(db_path) as c:
        c.executescript(
            """
            DROP VIEW IF EXISTS vw_saldo_produto;
            CREATE VIEW vw_saldo_produto AS
            SELECT
                p.id        AS produto_id,
                p.codigo    AS codigo,
                p.descricao AS descricao,
                COALESCE(SUM(CASE WHEN m.tipo = 'entrada' THEN m.quantidade END), 0) AS total_entradas,
                COALESCE(SUM(CASE WHEN m.tipo = 'saida'   THEN m.quantidade END), 0) AS total_saidas,
                COALESCE(SUM(CASE WHEN m.tipo = 'entrada' THEN m.quantidade
                                  WHEN m.tipo = 'saida'   THEN -m.quantidade END), 0) AS quantidade
            FROM produto p
            LEFT JOIN movimentacao m ON m.produto_id = p.id
            GROUP BY p.id, p.codigo, p.descricao;
            """
        )

        c.executescript(
            """
            CREATE INDEX IF NOT EXISTS idx_produto_descricao ON produto(descricao);
            CREATE INDEX IF NOT EXISTS idx_mov_produto       ON movimentacao(produto_id);
            CREATE INDEX IF NOT EXISTS idx_mov_tipo          ON movimentacao(tipo);
            CREATE INDEX IF NOT EXISTS idx_mov_data          ON movimentacao(data);
            """
        )
