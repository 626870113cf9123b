# scges/usecases/dashboard.py
"""
Painel: estatísticas consolidadas, movimentações recentes e produtos com
estoque baixo.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from scges.config import DEFAULTS
from scges.domain.errors import ValidationError
from scges.domain.models import Movimentacao, Produto
from scges.usecases.servicos import Servicos


def estatisticas_painel(srv: Servicos) -> Dict[str, int]:
    """Une as estatísticas do catálogo e do livro de movimentações."""
    catalogo = srv.catalogo.estatisticas()
    livro = srv.livro.resumo()
    return {
        "totalProducts": catalogo["totalProducts"],
        "totalEntries": livro["totalEntries"],
        "totalExits": livro["totalExits"],
        "lowStockProducts": catalogo["lowStockProducts"],
        "totalMovements": livro["totalMovements"],
        "totalStock": catalogo["totalStock"],
    }


def _limite(limit: Optional[int], padrao: int) -> int:
    # None usa o padrão; 0 é um limite válido (lista vazia)
    if limit is None:
        return padrao
    if int(limit) < 0:
        raise ValidationError("Limite não pode ser negativo", field="limit")
    return int(limit)


def movimentacoes_recentes(srv: Servicos, limit: Optional[int] = DEFAULTS.limite_recentes) -> List[Movimentacao]:
    return srv.livro.consultar(limite=_limite(limit, DEFAULTS.limite_recentes))


def produtos_estoque_baixo(srv: Servicos, limit: Optional[int] = DEFAULTS.limite_estoque_baixo) -> List[Produto]:
    return srv.catalogo.estoque_baixo(limite=_limite(limit, DEFAULTS.limite_estoque_baixo))
