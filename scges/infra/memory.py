# scges/infra/memory.py
"""
Repositórios e blob store em memória.

Mesma interface e mesma semântica dos repositórios SQLite, sem tocar em
disco. Úteis para testes dos serviços e para embutir o núcleo em outro
processo sem banco.
"""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from scges.domain.errors import ConflictError, NotFoundError
from scges.domain.models import Arquivo, Movimentacao, Produto


class MemoryProdutoRepo:
    def __init__(self):
        self._rows: Dict[str, Produto] = {}

    def insert(self, produto: Produto) -> None:
        if any(p.codigo == produto.codigo for p in self._rows.values()):
            raise ConflictError(f"Código de produto já utilizado: {produto.codigo}", produto.codigo)
        self._rows[produto.id] = replace(produto, quantidade=0, total_entradas=0)

    def get(self, produto_id: str) -> Optional[Produto]:
        p = self._rows.get(produto_id)
        return replace(p) if p else None

    def get_by_codigo(self, codigo: str) -> Optional[Produto]:
        for p in self._rows.values():
            if p.codigo == codigo:
                return replace(p)
        return None

    def get_all(self) -> List[Produto]:
        return [replace(p) for p in self._rows.values()]

    def search(self, termo: str) -> List[Produto]:
        t = termo.casefold()
        return [
            replace(p) for p in self._rows.values()
            if t in p.descricao.casefold()
            or t in p.codigo.casefold()
            or t in (p.fornecedor or "").casefold()
        ]

    def find_by_descricao(self, descricao: str) -> Optional[Produto]:
        alvo = descricao.casefold()
        for p in self._rows.values():
            if p.descricao.casefold() == alvo:
                return replace(p)
        return None

    def list_codigos(self) -> List[str]:
        return [p.codigo for p in self._rows.values()]

    def update(self, produto_id: str, campos: Dict[str, Any]) -> Optional[Produto]:
        p = self._rows.get(produto_id)
        if p is None:
            return None
        self._rows[produto_id] = replace(p, **campos)
        return replace(self._rows[produto_id])

    def delete(self, produto_id: str) -> bool:
        return self._rows.pop(produto_id, None) is not None


class MemoryMovimentacaoRepo:
    def __init__(self, produtos: Optional[MemoryProdutoRepo] = None):
        # `produtos` permite anexar o resumo do produto, como o JOIN do SQLite
        self._produtos = produtos
        self._rows: List[Movimentacao] = []
        self._seq = 0

    def _decorate(self, mov: Movimentacao) -> Movimentacao:
        if self._produtos is None:
            return replace(mov)
        p = self._produtos.get(mov.produto_id)
        return replace(mov, produto=p.resumo() if p else None)

    def insert(self, mov: Movimentacao) -> Movimentacao:
        self._seq += 1
        saved = replace(mov, id=self._seq, produto=None)
        self._rows.append(saved)
        return self._decorate(saved)

    def list_all(self) -> List[Movimentacao]:
        return [self._decorate(m) for m in self._rows]

    def list_by_produto(self, produto_id: str) -> List[Movimentacao]:
        return [self._decorate(m) for m in self._rows if m.produto_id == produto_id]

    def delete_by_produto(self, produto_id: str) -> int:
        antes = len(self._rows)
        self._rows = [m for m in self._rows if m.produto_id != produto_id]
        return antes - len(self._rows)


class MemoryBlobStore:
    def __init__(self):
        self._files: Dict[str, Arquivo] = {}

    def save(self, conteudo: bytes, filename: str, metadata: Optional[Dict[str, Any]] = None) -> str:
        file_id = uuid.uuid4().hex
        self._files[file_id] = Arquivo(
            id=file_id,
            filename=filename,
            conteudo=bytes(conteudo),
            metadata=dict(metadata or {}),
            upload_date=datetime.now(),
        )
        return file_id

    def get(self, file_id: str) -> Arquivo:
        arq = self._files.get(file_id)
        if arq is None:
            raise NotFoundError("Arquivo", file_id)
        return replace(arq, metadata=dict(arq.metadata))

    def delete(self, file_id: str) -> None:
        if self._files.pop(file_id, None) is None:
            raise NotFoundError("Arquivo", file_id)

    def list(self, tipo: Optional[str] = None) -> List[Arquivo]:
        arquivos = [
            replace(a, metadata=dict(a.metadata)) for a in reversed(list(self._files.values()))
            if tipo is None or a.metadata.get("tipo") == tipo
        ]
        arquivos.sort(key=lambda a: a.upload_date, reverse=True)
        return arquivos
