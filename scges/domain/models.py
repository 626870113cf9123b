# scges/domain/models.py
"""
Modelos (dataclasses) do domínio.

Observações importantes:
- `Produto.quantidade` e `Produto.total_entradas` são projeções calculadas
  a partir das movimentações no momento da leitura. Nenhum repositório
  grava esses campos.
- `Movimentacao` é imutável depois de gravada; só é removida em cascata
  com o produto.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union


class TipoMovimentacao(str, Enum):
    """Discriminante fechado das movimentações."""
    ENTRADA = "entrada"
    SAIDA = "saida"

    @classmethod
    def parse(cls, valor: Union[str, "TipoMovimentacao"]) -> "TipoMovimentacao":
        if isinstance(valor, cls):
            return valor
        return cls(str(valor).strip().lower())


@dataclass(frozen=True)
class NotaFiscalRef:
    """Referência a um documento guardado no blob store."""
    id: str
    filename: str


@dataclass(frozen=True)
class ProdutoResumo:
    """Resumo do produto anexado às movimentações retornadas."""
    id: str
    codigo: str
    descricao: str


@dataclass
class Produto:
    """Cadastro de produto (catálogo)."""
    id: str
    codigo: str
    descricao: str
    unidade: str = ""
    descricao_complementar: str = ""
    validade: str = ""
    fornecedor: str = ""
    numero_processo: str = ""
    observacoes: str = ""
    setor: str = ""
    nota_fiscal_id: Optional[str] = None
    nota_fiscal_filename: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # projeções derivadas do livro de movimentações
    quantidade: int = 0
    total_entradas: int = 0

    @property
    def nota_fiscal(self) -> Optional[NotaFiscalRef]:
        if not self.nota_fiscal_id:
            return None
        return NotaFiscalRef(self.nota_fiscal_id, self.nota_fiscal_filename or "")

    def resumo(self) -> ProdutoResumo:
        return ProdutoResumo(id=self.id, codigo=self.codigo, descricao=self.descricao)


@dataclass
class Movimentacao:
    """Registro do livro de movimentações (entrada ou saída)."""
    tipo: TipoMovimentacao
    produto_id: str
    quantidade: int
    data: datetime
    servidor_almoxarifado: Optional[str] = None
    setor_responsavel: Optional[str] = None
    servidor_retirada: Optional[str] = None
    setor: Optional[str] = None  # campo plano legado (registros pré-migração)
    observacoes: str = ""
    nota_fiscal_id: Optional[str] = None
    nota_fiscal_filename: Optional[str] = None
    id: Optional[int] = None     # também define a ordem de criação
    created_at: Optional[datetime] = None
    produto: Optional[ProdutoResumo] = None


@dataclass
class MovimentacaoFiltro:
    """Filtros aceitos por `LivroMovimentacoes.consultar`."""
    busca: Optional[str] = None
    tipo: Optional[Union[str, TipoMovimentacao]] = None  # None/'all'/'both' = ambos
    data_inicio: Optional[Union[str, date, datetime]] = None
    data_fim: Optional[Union[str, date, datetime]] = None
    produto_id: Optional[str] = None
    setor: Optional[str] = None
    limite: Optional[int] = None


@dataclass
class Arquivo:
    """Conteúdo e metadados devolvidos pelo blob store."""
    id: str
    filename: str
    conteudo: bytes
    metadata: dict = field(default_factory=dict)
    upload_date: Optional[datetime] = None

    @property
    def tamanho(self) -> int:
        return len(self.conteudo)
