# scges/infra/migrations.py
"""
Migrações de schema usando PRAGMA user_version.

V1: produto e movimentacao
V2: tabela de arquivos (notas fiscais/formulários) e referência de nota
    fiscal nas movimentações
"""

from __future__ import annotations

from typing import List
from .db import connect


SCHEMA_V1: List[str] = [
    # Catálogo de produtos (sem quantidade: ela é derivada das movimentações)
    """
    CREATE TABLE IF NOT EXISTS produto (
        id TEXT PRIMARY KEY,
        codigo TEXT NOT NULL UNIQUE,
        descricao TEXT NOT NULL,
        unidade TEXT DEFAULT '',
        descricao_complementar TEXT DEFAULT '',
        validade TEXT DEFAULT '',
        fornecedor TEXT DEFAULT '',
        numero_processo TEXT DEFAULT '',
        observacoes TEXT DEFAULT '',
        setor TEXT DEFAULT '',
        nota_fiscal_id TEXT,
        nota_fiscal_filename TEXT,
        created_at TEXT,
        updated_at TEXT
    );
    """,
    # Livro de movimentações (somente inserção)
    """
    CREATE TABLE IF NOT EXISTS movimentacao (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        tipo TEXT NOT NULL CHECK (tipo IN ('entrada', 'saida')),
        produto_id TEXT NOT NULL,
        quantidade INTEGER NOT NULL CHECK (quantidade > 0),
        data TEXT NOT NULL,
        servidor_almoxarifado TEXT,
        setor_responsavel TEXT,
        servidor_retirada TEXT,
        setor TEXT, -- campo plano legado (registros pré-migração)
        observacoes TEXT DEFAULT '',
        created_at TEXT,
        FOREIGN KEY (produto_id) REFERENCES produto(id) ON DELETE CASCADE
    );
    """,
]

# V2: arquivos anexos (o equivalente ao bucket GridFS) e nota fiscal da entrada
SCHEMA_V2: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS arquivo (
        id TEXT PRIMARY KEY,
        filename TEXT NOT NULL,
        metadata TEXT,
        conteudo BLOB NOT NULL,
        tamanho INTEGER,
        upload_date TEXT
    );
    """,
]


def _ensure_column(conn, table: str, column: str, ddl: str) -> None:
    """Adiciona coluna se não existir."""
    cur = conn.execute(f"PRAGMA table_info({table});")
    cols = [r[1] for r in cur.fetchall()]  # r[1] é o nome da coluna
    if column not in cols:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {ddl};")


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.executescript(sql)


def _apply_v2(conn) -> None:
    for sql in SCHEMA_V2:
        conn.executescript(sql)
    _ensure_column(conn, "movimentacao", "nota_fiscal_id", "nota_fiscal_id TEXT")
    _ensure_column(conn, "movimentacao", "nota_fiscal_filename", "nota_fiscal_filename TEXT")


def apply_migrations(db_path: str) -> None:
    """Aplica migrações incrementais de acordo com PRAGMA user_version."""
    with connect(db_path) as conn:
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

        if ver < 1:
            _apply_v1(conn)
            conn.execute("PRAGMA user_version = 1;")
            ver = 1

        if ver < 2:
            _apply_v2(conn)
            conn.execute("PRAGMA user_version = 2;")
            ver = 2


def schema_version(db_path: str) -> int:
    with connect(db_path) as conn:
        return conn.execute("PRAGMA user_version;").fetchone()[0] or 0
