"""
Políticas de cálculo do livro de movimentações.

Este módulo reúne as regras de negócio puras do SCGES:

- geração do próximo código sequencial de produto;
- derivação da quantidade em estoque a partir das movimentações
  (a quantidade nunca é armazenada no produto);
- regra de estoque baixo (fração do total histórico de entradas);
- fixação do horário ao meio-dia para datas sem hora;
- filtros e ordenação usados nas consultas de histórico e relatórios.

As funções não acessam banco nem estado global e podem ser testadas
isoladamente.
"""

from __future__ import annotations

import re
import unicodedata
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple, Union

from scges.domain.errors import ValidationError
from scges.domain.models import Movimentacao, MovimentacaoFiltro, TipoMovimentacao

_PREFIXO_NUM_RE = re.compile(r"^\s*(\d+)")

MEIO_DIA = time(12, 0, 0)


# -------------------------
# Código sequencial
# -------------------------

def numero_do_codigo(codigo: Any) -> int:
    """Prefixo numérico de um código; códigos não numéricos valem 0."""
    if codigo is None:
        return 0
    m = _PREFIXO_NUM_RE.match(str(codigo))
    return int(m.group(1)) if m else 0


def proximo_codigo(codigos: Iterable[Any], largura: int = 3) -> str:
    """Calcula o próximo código de produto.

    Varre todos os códigos existentes, toma o maior prefixo numérico e
    devolve ``max + 1`` preenchido com zeros à esquerda até ``largura``
    dígitos. O preenchimento não trunca: após "999" vem "1000".

    Args:
        codigos: Códigos já atribuídos.
        largura: Quantidade mínima de dígitos.

    Returns:
        O próximo código, por exemplo ``"001"`` para um catálogo vazio.
    """
    maior = max((numero_do_codigo(c) for c in codigos), default=0)
    return str(maior + 1).zfill(largura)


# -------------------------
# Quantidade derivada
# -------------------------

class Saldo(NamedTuple):
    """Totais de um produto obtidos pela dobra das movimentações."""
    entradas: int = 0
    saidas: int = 0

    @property
    def quantidade(self) -> int:
        return self.entradas - self.saidas

    def aplica(self, mov: Movimentacao) -> "Saldo":
        if mov.tipo is TipoMovimentacao.ENTRADA:
            return Saldo(self.entradas + mov.quantidade, self.saidas)
        return Saldo(self.entradas, self.saidas + mov.quantidade)


def saldo(movimentacoes: Iterable[Movimentacao]) -> Saldo:
    """Dobra as movimentações de um produto em (entradas, saídas)."""
    acc = Saldo()
    for mov in movimentacoes:
        acc = acc.aplica(mov)
    return acc


def saldos_por_produto(movimentacoes: Iterable[Movimentacao]) -> Dict[str, Saldo]:
    """Dobra todas as movimentações agrupando por `produto_id`."""
    out: Dict[str, Saldo] = {}
    for mov in movimentacoes:
        out[mov.produto_id] = out.get(mov.produto_id, Saldo()).aplica(mov)
    return out


def estoque_baixo(quantidade: int, total_entradas: int, limiar: float = 0.3) -> bool:
    """Indica se um produto está com estoque baixo.

    Regra: ``quantidade <= total_entradas * limiar``. Um produto que nunca
    recebeu entradas não é sinalizado, exceto se a quantidade derivada
    estiver negativa (sinal de dado inconsistente).

    Args:
        quantidade: Quantidade derivada atual.
        total_entradas: Soma histórica das entradas do produto.
        limiar: Fração do total de entradas (padrão 30%).
    """
    if total_entradas <= 0:
        return quantidade < 0
    return Decimal(quantidade) <= Decimal(total_entradas) * Decimal(str(limiar))


# -------------------------
# Datas
# -------------------------

def fixa_meio_dia(valor: Optional[Union[date, datetime]], agora: Optional[datetime] = None) -> datetime:
    """Normaliza a data efetiva de uma movimentação.

    Datas sem horário recebem 12:00 local, evitando que conversões de fuso
    horário ou horário de verão exibam o dia anterior ou seguinte.
    Datas com horário são mantidas (convertidas para hora local, sem tzinfo).
    Sem valor, usa o momento atual.
    """
    if valor is None:
        return agora or datetime.now()
    if isinstance(valor, datetime):
        if valor.tzinfo is not None:
            return valor.astimezone().replace(tzinfo=None)
        return valor
    return datetime.combine(valor, MEIO_DIA)


def _como_dia(valor: Union[str, date, datetime]) -> date:
    if isinstance(valor, datetime):
        return valor.date()
    if isinstance(valor, date):
        return valor
    s = str(valor).strip()
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        raise ValidationError(f"Data de filtro inválida: {s!r}", field="data") from None


def intervalo_datas(
    inicio: Optional[Union[str, date, datetime]],
    fim: Optional[Union[str, date, datetime]],
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Converte o período do filtro em limites inclusivos.

    O início vale a partir de 00:00 do dia; o fim vai até 23:59:59.999999
    do dia informado, qualquer que seja o horário gravado.
    """
    ini = datetime.combine(_como_dia(inicio), time.min) if inicio else None
    end = datetime.combine(_como_dia(fim), time.max) if fim else None
    return ini, end


# -------------------------
# Filtros e ordenação
# -------------------------

def chave_texto(texto: Optional[str]) -> str:
    """Chave de comparação sem acentos e sem caixa."""
    if not texto:
        return ""
    decomposto = unicodedata.normalize("NFKD", str(texto))
    sem_acento = "".join(ch for ch in decomposto if not unicodedata.combining(ch))
    return sem_acento.casefold()


def tipo_do_filtro(tipo: Any) -> Optional[TipoMovimentacao]:
    """None, 'all', 'both' e 'todos' significam ambos os tipos."""
    if tipo is None:
        return None
    if isinstance(tipo, TipoMovimentacao):
        return tipo
    s = str(tipo).strip().lower()
    if s in {"", "all", "both", "todos", "ambos"}:
        return None
    try:
        return TipoMovimentacao(s)
    except ValueError:
        raise ValidationError(f"Tipo de movimentação inválido: {tipo!r}", field="tipo") from None


def filtra_movimentacoes(
    movimentacoes: Iterable[Movimentacao],
    filtro: MovimentacaoFiltro,
    descricoes: Mapping[str, str],
) -> List[Movimentacao]:
    """Aplica os filtros de histórico (sem ordenar nem limitar).

    Args:
        movimentacoes: Movimentações candidatas.
        filtro: Critérios de busca.
        descricoes: Descrição de cada produto, por `produto_id`; a busca
            textual compara contra a descrição do produto, não contra a
            movimentação.
    """
    tipo = tipo_do_filtro(filtro.tipo)
    ini, fim = intervalo_datas(filtro.data_inicio, filtro.data_fim)
    busca = (filtro.busca or "").strip().casefold()
    setor = (filtro.setor or "").strip().casefold()

    out: List[Movimentacao] = []
    for mov in movimentacoes:
        if tipo is not None and mov.tipo is not tipo:
            continue
        if filtro.produto_id and mov.produto_id != filtro.produto_id:
            continue
        if ini is not None and mov.data < ini:
            continue
        if fim is not None and mov.data > fim:
            continue
        if busca and busca not in (descricoes.get(mov.produto_id) or "").casefold():
            continue
        if setor:
            setores = {
                (mov.setor_responsavel or "").strip().casefold(),
                (mov.setor or "").strip().casefold(),
            }
            if setor not in setores:
                continue
        out.append(mov)
    return out


def ordena_movimentacoes(movimentacoes: Iterable[Movimentacao], truncar_dia: bool = False) -> List[Movimentacao]:
    """Ordena por data efetiva decrescente e, no empate, pela mais recente criada.

    Com ``truncar_dia=True`` (relatórios) a data é comparada só pelo dia,
    de modo que movimentações do mesmo dia seguem a ordem de criação.
    """
    def chave(mov: Movimentacao):
        d: Union[date, datetime] = mov.data.date() if truncar_dia else mov.data
        return d, mov.id or 0

    return sorted(movimentacoes, key=chave, reverse=True)
