"""
UC: Catálogo de produtos.

- geração do código sequencial ("001", "002", ...);
- cadastro, consulta, atualização e exclusão (com exclusão em cascata das
  movimentações do produto);
- quantidade e total de entradas calculados a partir do livro de
  movimentações a cada leitura;
- estoque baixo e estatísticas do catálogo.

Obs.:
- `proximo_codigo` não é atômico. Dois cadastros simultâneos podem calcular
  o mesmo código; o índice único do banco recusa o segundo com
  ConflictError e cabe a quem chamou tentar de novo.
"""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from scges.config import DEFAULTS
from scges.domain.errors import ValidationError
from scges.domain.models import NotaFiscalRef, Produto
from scges.domain.policies import (
    Saldo,
    chave_texto,
    estoque_baixo,
    proximo_codigo,
    saldo,
    saldos_por_produto,
)
from scges.adapters.parsers import normaliza_texto
from scges.infra.logger import log_database_operation, log_system_event, log_transaction


# Campos descritivos que o chamador pode definir
CAMPOS_EDITAVEIS = (
    "descricao",
    "unidade",
    "descricao_complementar",
    "validade",
    "fornecedor",
    "numero_processo",
    "observacoes",
    "setor",
    "nota_fiscal_id",
    "nota_fiscal_filename",
)

# Campos controlados pelo sistema; ignorados quando enviados
CAMPOS_PROTEGIDOS = ("id", "codigo", "quantidade", "total_entradas", "created_at", "updated_at")


def _limpa_atributos(atributos: Dict[str, Any]) -> Dict[str, Any]:
    """Filtra e normaliza atributos de cadastro/atualização."""
    desconhecidos = sorted(set(atributos) - set(CAMPOS_EDITAVEIS) - set(CAMPOS_PROTEGIDOS))
    if desconhecidos:
        raise ValidationError(f"Campos desconhecidos: {', '.join(desconhecidos)}", field=desconhecidos[0])

    ignorados = sorted(k for k in atributos if k in CAMPOS_PROTEGIDOS)
    if ignorados:
        log_system_event("produto_campos_ignorados", {"campos": ignorados}, level="warning")

    out: Dict[str, Any] = {}
    for k in CAMPOS_EDITAVEIS:
        if k not in atributos:
            continue
        v = normaliza_texto(atributos[k])
        if k.startswith("nota_fiscal_"):
            out[k] = v
        else:
            out[k] = v or ""
    return out


class Catalogo:
    """Gerencia o cadastro de produtos."""

    def __init__(self, produtos, movimentacoes, limiar: float = DEFAULTS.limiar_estoque_baixo,
                 largura_codigo: int = DEFAULTS.largura_codigo):
        self.produtos = produtos
        self.movimentacoes = movimentacoes
        self.limiar = limiar
        self.largura_codigo = largura_codigo
        # exclusão em cascata das movimentações; o livro substitui pela sua
        self.cascata = movimentacoes.delete_by_produto

    # --------- projeção derivada ---------

    def _decorar(self, produto: Produto, s: Saldo) -> Produto:
        if s.quantidade < 0:
            # saídas concorrentes podem ter passado pela mesma verificação
            log_system_event("saldo_negativo", {
                "produto_id": produto.id, "codigo": produto.codigo, "quantidade": s.quantidade,
            }, level="warning")
        return replace(produto, quantidade=s.quantidade, total_entradas=s.entradas)

    def _decorar_todos(self, produtos: List[Produto]) -> List[Produto]:
        saldos = saldos_por_produto(self.movimentacoes.list_all())
        return [self._decorar(p, saldos.get(p.id, Saldo())) for p in produtos]

    def saldo(self, produto_id: str) -> Saldo:
        """Totais de entradas/saídas do produto, recalculados do livro."""
        return saldo(self.movimentacoes.list_by_produto(produto_id))

    # --------- operações ---------

    def proximo_codigo(self) -> str:
        return proximo_codigo(self.produtos.list_codigos(), self.largura_codigo)

    def criar(self, atributos: Dict[str, Any]) -> Produto:
        """Cadastra um produto novo com o próximo código (quantidade 0)."""
        campos = _limpa_atributos(atributos)
        if not campos.get("descricao"):
            raise ValidationError("Descrição é obrigatória", field="descricao")

        agora = datetime.now()
        produto = Produto(
            id=uuid.uuid4().hex,
            codigo=self.proximo_codigo(),
            created_at=agora,
            updated_at=agora,
            **campos,
        )
        try:
            self.produtos.insert(produto)
        except Exception as e:
            log_transaction("produto_criar", {"descricao": produto.descricao, "codigo": produto.codigo}, error=str(e))
            raise
        log_database_operation("produto", "INSERT", 1, id=produto.id, codigo=produto.codigo)
        log_transaction("produto_criar", {"descricao": produto.descricao}, result=produto.codigo)
        return produto

    def listar(self, busca: Optional[str] = None) -> List[Produto]:
        """Todos os produtos (ou os que casam com `busca`), por descrição."""
        termo = (busca or "").strip()
        produtos = self.produtos.search(termo) if termo else self.produtos.get_all()
        produtos.sort(key=lambda p: (chave_texto(p.descricao), p.descricao, p.codigo))
        return self._decorar_todos(produtos)

    def obter(self, produto_id: str) -> Optional[Produto]:
        produto = self.produtos.get(produto_id)
        if produto is None:
            return None
        return self._decorar(produto, self.saldo(produto_id))

    def obter_por_codigo(self, codigo: str) -> Optional[Produto]:
        """Produto pelo código; "1" também encontra "001"."""
        codigo = str(codigo).strip()
        produto = self.produtos.get_by_codigo(codigo)
        if produto is None and codigo.isdigit():
            produto = self.produtos.get_by_codigo(codigo.zfill(self.largura_codigo))
        if produto is None:
            return None
        return self._decorar(produto, self.saldo(produto.id))

    def buscar_por_descricao(self, descricao: str) -> Optional[Produto]:
        """Produto com a mesma descrição, sem diferenciar maiúsculas."""
        produto = self.produtos.find_by_descricao(descricao.strip())
        if produto is None:
            return None
        return self._decorar(produto, self.saldo(produto.id))

    def atualizar(self, produto_id: str, atributos: Dict[str, Any]) -> Optional[Produto]:
        """Altera apenas os campos descritivos enviados."""
        campos = _limpa_atributos(atributos)
        if "descricao" in campos and not campos["descricao"]:
            raise ValidationError("Descrição é obrigatória", field="descricao")
        if self.produtos.get(produto_id) is None:
            return None
        campos["updated_at"] = datetime.now()
        produto = self.produtos.update(produto_id, campos)
        if produto is None:
            return None
        log_database_operation("produto", "UPDATE", 1, id=produto_id, campos=sorted(campos))
        return self._decorar(produto, self.saldo(produto_id))

    def definir_nota_fiscal(self, produto_id: str, ref: Optional[NotaFiscalRef]) -> Optional[Produto]:
        """Anexa (ou substitui/remove, com None) a nota fiscal do produto."""
        return self.atualizar(produto_id, {
            "nota_fiscal_id": ref.id if ref else None,
            "nota_fiscal_filename": ref.filename if ref else None,
        })

    def remover(self, produto_id: str) -> Optional[Produto]:
        """Exclui o produto e, antes dele, todas as suas movimentações."""
        produto = self.obter(produto_id)
        if produto is None:
            return None
        removidas = self.cascata(produto_id)
        self.produtos.delete(produto_id)
        log_database_operation("produto", "DELETE", 1, id=produto_id)
        log_transaction("produto_remover", {"id": produto_id, "codigo": produto.codigo},
                        result={"movimentacoes_removidas": removidas})
        return produto

    def estoque_baixo(self, limite: Optional[int] = 10) -> List[Produto]:
        """Produtos com quantidade <= limiar x total de entradas, menor quantidade primeiro."""
        baixos = [
            p for p in self._decorar_todos(self.produtos.get_all())
            if estoque_baixo(p.quantidade, p.total_entradas, self.limiar)
        ]
        baixos.sort(key=lambda p: (p.quantidade, chave_texto(p.descricao)))
        return baixos[:limite] if limite is not None else baixos

    def estatisticas(self) -> Dict[str, int]:
        produtos = self._decorar_todos(self.produtos.get_all())
        return {
            "totalProducts": len(produtos),
            "lowStockProducts": sum(
                1 for p in produtos if estoque_baixo(p.quantidade, p.total_entradas, self.limiar)
            ),
            "totalStock": sum(p.quantidade for p in produtos),
        }
