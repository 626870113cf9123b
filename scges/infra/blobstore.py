# scges/infra/blobstore.py
"""
Armazenamento de arquivos (notas fiscais em PDF, formulários) no SQLite.

Cumpre o papel do bucket GridFS: guarda bytes + nome + metadados e
devolve um id opaco. O conteúdo nunca é inspecionado aqui.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from scges.domain.errors import NotFoundError, StorageError
from scges.domain.models import Arquivo
from .db import connect, from_iso, to_iso


class SqliteBlobStore:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def save(self, conteudo: bytes, filename: str, metadata: Optional[Dict[str, Any]] = None) -> str:
        file_id = uuid.uuid4().hex
        meta = dict(metadata or {})
        try:
            with connect(self.db_path) as c:
                c.execute(
                    """
                    INSERT INTO arquivo (id, filename, metadata, conteudo, tamanho, upload_date)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        file_id,
                        filename,
                        json.dumps(meta, ensure_ascii=False, default=str),
                        sqlite3.Binary(bytes(conteudo)),
                        len(conteudo),
                        to_iso(datetime.now()),
                    ),
                )
        except sqlite3.Error as e:
            raise StorageError(f"Erro ao salvar arquivo {filename}: {e}") from e
        return file_id

    def get(self, file_id: str) -> Arquivo:
        try:
            with connect(self.db_path) as c:
                row = c.execute(
                    "SELECT id, filename, metadata, conteudo, upload_date FROM arquivo WHERE id = ?",
                    (file_id,),
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Erro ao ler arquivo {file_id}: {e}") from e
        if row is None:
            raise NotFoundError("Arquivo", file_id)
        return Arquivo(
            id=row["id"],
            filename=row["filename"],
            conteudo=bytes(row["conteudo"]),
            metadata=json.loads(row["metadata"] or "{}"),
            upload_date=from_iso(row["upload_date"]),
        )

    def delete(self, file_id: str) -> None:
        try:
            with connect(self.db_path) as c:
                cur = c.execute("DELETE FROM arquivo WHERE id = ?", (file_id,))
                removidos = cur.rowcount
        except sqlite3.Error as e:
            raise StorageError(f"Erro ao remover arquivo {file_id}: {e}") from e
        if removidos == 0:
            raise NotFoundError("Arquivo", file_id)

    def list(self, tipo: Optional[str] = None) -> List[Arquivo]:
        """Arquivos guardados, mais recentes primeiro; `tipo` filtra por metadata["tipo"]."""
        try:
            with connect(self.db_path) as c:
                rows = c.execute(
                    "SELECT id, filename, metadata, conteudo, upload_date FROM arquivo "
                    "ORDER BY upload_date DESC, rowid DESC"
                ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Erro ao listar arquivos: {e}") from e
        out = []
        for row in rows:
            meta = json.loads(row["metadata"] or "{}")
            if tipo is not None and meta.get("tipo") != tipo:
                continue
            out.append(Arquivo(
                id=row["id"],
                filename=row["filename"],
                conteudo=bytes(row["conteudo"]),
                metadata=meta,
                upload_date=from_iso(row["upload_date"]),
            ))
        return out
