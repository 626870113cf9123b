"""
UC: Livro de movimentações (entradas e saídas).

Fluxo de uma entrada:
1) Valida descrição, quantidade (inteiro > 0) e servidor do almoxarifado.
2) Procura o produto pela descrição exata, sem diferenciar maiúsculas;
   se não existir, cadastra-o pelo catálogo.
3) Se veio nota fiscal, anexa (ou substitui) a nota no produto. O livro
   só grava referências; guardar o PDF e apagar a nota substituída fica
   com `arquivos.registrar_entrada_com_nota`.
4) Fixa o horário ao meio-dia quando a data não tem hora.
5) Grava a movimentação.

Fluxo de uma saída:
1) Valida quantidade e servidor do almoxarifado.
2) Localiza o produto pelo id (NotFoundError se não existir).
3) Recalcula a quantidade atual a partir do livro e recusa saídas maiores
   (InsufficientStockError).
4) Fixa o horário ao meio-dia quando a data não tem hora.
5) Grava a movimentação.

Obs.:
- A verificação de saldo e a gravação não são atômicas: duas saídas
  concorrentes podem passar pela mesma verificação e deixar o saldo
  negativo. Com `estrito=True` as saídas deste processo são serializadas
  por um lock e revalidadas imediatamente antes da gravação; processos
  distintos continuam sujeitos à mesma condição.
- Movimentações não são editadas; só saem do livro junto com o produto.
"""

from __future__ import annotations

import threading
from contextlib import nullcontext
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from scges.config import DEFAULTS
from scges.domain.errors import InsufficientStockError, NotFoundError, ValidationError
from scges.domain.models import Movimentacao, MovimentacaoFiltro, NotaFiscalRef, TipoMovimentacao
from scges.domain.policies import filtra_movimentacoes, fixa_meio_dia, ordena_movimentacoes, saldo
from scges.adapters.parsers import normaliza_texto, parse_data, parse_quantidade
from scges.infra.logger import (
    log_database_operation, log_entrada, log_saida, log_system_event, log_transaction,
)
from scges.usecases.catalogo import Catalogo


def _obrigatorio(valor: Any, campo: str, rotulo: str) -> str:
    s = normaliza_texto(valor)
    if not s:
        raise ValidationError(f"{rotulo} é obrigatório", field=campo)
    return s


class LivroMovimentacoes:
    """Registra movimentações e deriva quantidades a partir delas."""

    def __init__(self, movimentacoes, catalogo: Catalogo, estrito: bool = DEFAULTS.modo_estrito):
        self.movimentacoes = movimentacoes
        self.catalogo = catalogo
        self.estrito = estrito
        self._lock = threading.Lock()
        catalogo.cascata = self.remover_por_produto

    # --------- entradas ---------

    def registrar_entrada(
        self,
        produto: str,
        quantidade: Any,
        data: Any = None,
        servidor_almoxarifado: Optional[str] = None,
        observacoes: Optional[str] = None,
        nota_fiscal: Optional[NotaFiscalRef] = None,
    ) -> Movimentacao:
        """Registra uma entrada identificando o produto pela descrição."""
        dados = {"produto": produto, "quantidade": quantidade, "data": str(data) if data else None}
        try:
            descricao = _obrigatorio(produto, "produto", "Produto")
            qtd = parse_quantidade(quantidade)
            servidor = _obrigatorio(servidor_almoxarifado, "servidor_almoxarifado", "Servidor do almoxarifado")
            data_efetiva = fixa_meio_dia(parse_data(data))

            existente = self.catalogo.buscar_por_descricao(descricao)
            if existente is None:
                # a quantidade informada não é gravada no produto; quem a
                # estabelece é a movimentação gravada abaixo
                existente = self.catalogo.criar({"descricao": descricao})
                log_system_event("produto_criado_por_entrada", {"id": existente.id, "codigo": existente.codigo})
            if nota_fiscal is not None:
                self.catalogo.definir_nota_fiscal(existente.id, nota_fiscal)

            mov = self.movimentacoes.insert(Movimentacao(
                tipo=TipoMovimentacao.ENTRADA,
                produto_id=existente.id,
                quantidade=qtd,
                data=data_efetiva,
                servidor_almoxarifado=servidor,
                observacoes=normaliza_texto(observacoes) or "",
                nota_fiscal_id=nota_fiscal.id if nota_fiscal else None,
                nota_fiscal_filename=nota_fiscal.filename if nota_fiscal else None,
                created_at=datetime.now(),
            ))
        except Exception as e:
            log_transaction("entrada", dados, error=str(e))
            raise

        log_database_operation("movimentacao", "INSERT", 1, id=mov.id, tipo="entrada")
        log_entrada("insert", existente.codigo, qtd, produto_id=existente.id, data=mov.data.isoformat())
        log_transaction("entrada", dados, result=mov.id)
        return replace(mov, produto=mov.produto or existente.resumo())

    # --------- saídas ---------

    def quantidade_atual(self, produto_id: str) -> int:
        return saldo(self.movimentacoes.list_by_produto(produto_id)).quantidade

    def registrar_saida(
        self,
        produto_id: str,
        quantidade: Any,
        data: Any = None,
        servidor_almoxarifado: Optional[str] = None,
        setor_responsavel: Optional[str] = None,
        servidor_retirada: Optional[str] = None,
        observacoes: Optional[str] = None,
    ) -> Movimentacao:
        """Registra uma saída do produto `produto_id` se houver saldo."""
        dados = {"produto_id": produto_id, "quantidade": quantidade, "data": str(data) if data else None}
        try:
            qtd = parse_quantidade(quantidade)
            servidor = _obrigatorio(servidor_almoxarifado, "servidor_almoxarifado", "Servidor do almoxarifado")
            produto = self.catalogo.produtos.get(produto_id) if produto_id else None
            if produto is None:
                raise NotFoundError("Produto", produto_id)

            with self._lock if self.estrito else nullcontext():
                disponivel = self.quantidade_atual(produto_id)
                if qtd > disponivel:
                    raise InsufficientStockError(produto_id, disponivel, qtd)

                mov = self.movimentacoes.insert(Movimentacao(
                    tipo=TipoMovimentacao.SAIDA,
                    produto_id=produto_id,
                    quantidade=qtd,
                    data=fixa_meio_dia(parse_data(data)),
                    servidor_almoxarifado=servidor,
                    setor_responsavel=normaliza_texto(setor_responsavel),
                    servidor_retirada=normaliza_texto(servidor_retirada),
                    observacoes=normaliza_texto(observacoes) or "",
                    created_at=datetime.now(),
                ))
        except Exception as e:
            log_transaction("saida", dados, error=str(e))
            raise

        log_database_operation("movimentacao", "INSERT", 1, id=mov.id, tipo="saida")
        log_saida("insert", produto.codigo, qtd, produto_id=produto_id, saldo_anterior=disponivel)
        log_transaction("saida", dados, result=mov.id)
        return replace(mov, produto=mov.produto or produto.resumo())

    # --------- consultas ---------

    def consultar(self, filtro: Optional[MovimentacaoFiltro] = None, **criterios: Any) -> List[Movimentacao]:
        """Histórico filtrado, da data mais recente para a mais antiga.

        Aceita um `MovimentacaoFiltro` ou os mesmos campos como argumentos
        nomeados (busca, tipo, data_inicio, data_fim, produto_id, setor, limite).
        """
        if filtro is None:
            filtro = MovimentacaoFiltro(**criterios)
        elif criterios:
            filtro = replace(filtro, **criterios)
        if filtro.limite is not None and int(filtro.limite) < 0:
            raise ValidationError("Limite não pode ser negativo", field="limite")

        if filtro.produto_id:
            candidatas = self.movimentacoes.list_by_produto(filtro.produto_id)
        else:
            candidatas = self.movimentacoes.list_all()
        descricoes = {m.produto_id: m.produto.descricao for m in candidatas if m.produto}
        out = ordena_movimentacoes(filtra_movimentacoes(candidatas, filtro, descricoes))
        if filtro.limite is not None:
            out = out[: int(filtro.limite)]
        return out

    def remover_por_produto(self, produto_id: str) -> int:
        removidas = self.movimentacoes.delete_by_produto(produto_id)
        log_database_operation("movimentacao", "DELETE", removidas, produto_id=produto_id)
        return removidas

    def resumo(self) -> Dict[str, int]:
        """Totais do livro inteiro, usados no painel."""
        movs = self.movimentacoes.list_all()
        s = saldo(movs)
        return {
            "totalEntries": s.entradas,
            "totalExits": s.saidas,
            "totalMovements": len(movs),
        }


def movimentacao_para_dict(mov: Movimentacao) -> Dict[str, Any]:
    """Representação plana para tabelas, JSON e planilhas."""
    return {
        "id": mov.id,
        "tipo": mov.tipo.value,
        "data": mov.data.strftime("%d/%m/%Y %H:%M") if mov.data else "",
        "codigo": mov.produto.codigo if mov.produto else "",
        "produto": mov.produto.descricao if mov.produto else "",
        "quantidade": mov.quantidade,
        "servidor_almoxarifado": mov.servidor_almoxarifado or "",
        "setor_responsavel": mov.setor_responsavel or mov.setor or "",
        "servidor_retirada": mov.servidor_retirada or "",
        "observacoes": mov.observacoes or "",
    }
