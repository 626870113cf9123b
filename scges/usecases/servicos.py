# scges/usecases/servicos.py
"""
Montagem dos serviços (catálogo, livro e arquivos) sobre um armazenamento.

`abrir_servicos(db_path)` aplica as migrações, cria as views e liga os
repositórios SQLite. `servicos_em_memoria()` faz o mesmo com os fakes em
memória.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from scges.config import DB_PATH, DEFAULTS
from scges.infra.blobstore import SqliteBlobStore
from scges.infra.memory import MemoryBlobStore, MemoryMovimentacaoRepo, MemoryProdutoRepo
from scges.infra.migrations import apply_migrations
from scges.infra.repositories import MovimentacaoRepo, ProdutoRepo
from scges.infra.views import create_views
from scges.usecases.catalogo import Catalogo
from scges.usecases.movimentacoes import LivroMovimentacoes


@dataclass
class Servicos:
    catalogo: Catalogo
    livro: LivroMovimentacoes
    arquivos: Any  # blob store: save/get/delete


def _montar(produtos, movimentacoes, arquivos, estrito: bool) -> Servicos:
    catalogo = Catalogo(produtos, movimentacoes)
    livro = LivroMovimentacoes(movimentacoes, catalogo, estrito=estrito)
    return Servicos(catalogo=catalogo, livro=livro, arquivos=arquivos)


def abrir_servicos(db_path: str = DB_PATH, estrito: bool = DEFAULTS.modo_estrito) -> Servicos:
    apply_migrations(db_path)
    create_views(db_path)
    return _montar(ProdutoRepo(db_path), MovimentacaoRepo(db_path), SqliteBlobStore(db_path), estrito)


def servicos_em_memoria(estrito: bool = DEFAULTS.modo_estrito) -> Servicos:
    produtos = MemoryProdutoRepo()
    return _montar(produtos, MemoryMovimentacaoRepo(produtos), MemoryBlobStore(), estrito)
