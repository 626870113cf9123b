# scges/infra/db.py
"""
Utilidades de conexão SQLite.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional


def _casefold(valor: Optional[str]) -> Optional[str]:
    return None if valor is None else str(valor).casefold()


@contextmanager
def connect(db_path: str) -> Iterator[sqlite3.Connection]:
    """
    Context manager para abrir conexão SQLite com:
    - foreign_keys ON (movimentações são removidas em cascata com o produto)
    - row_factory = sqlite3.Row
    - função SQL casefold(), para comparações sem caixa que o lower() do
      SQLite não cobre (acentos)
    - commit ao sair (rollback em caso de exceção)
    """
    conn = sqlite3.connect(db_path)
    try:
        conn.row_factory = sqlite3.Row
        conn.create_function("casefold", 1, _casefold, deterministic=True)
        conn.execute("PRAGMA foreign_keys = ON;")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def to_iso(valor: Optional[datetime]) -> Optional[str]:
    return valor.isoformat() if valor is not None else None


def from_iso(valor: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(valor) if valor else None
