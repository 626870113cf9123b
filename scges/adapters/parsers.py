"""
Utilidades de parsing para quantidades, datas e textos.

Este módulo interpreta os valores que chegam da CLI, dos prompts e das
planilhas de movimentação. Quantidades podem vir como inteiros, como
texto simples ("10") ou no formato de planilha "<valor> <unidade> - <descrição>"
(por exemplo, "12 UN - Unidades"). Datas podem vir como ISO ("2024-03-10"),
no formato brasileiro ("10/03/2024") ou com horário ("2024-03-10T08:30:00").
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Optional, Tuple, Union

from scges.domain.errors import ValidationError

_NUM_RE = re.compile(r"[-+]?\d+(?:[.,]\d+)?")
_DATA_ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DATA_BR_RE = re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$")


def parse_quantidade_raw(txt: Any) -> Tuple[Optional[float], Optional[str], Optional[str]]:
    """Interpreta uma string de quantidade com unidade.

    A string de entrada geralmente segue o padrão "<valor> <unidade> - <descrição>".
    O valor pode usar vírgula ou ponto como separador decimal. A unidade
    é a segunda palavra antes do hífen (se houver), em maiúsculas. A
    descrição é o texto após o primeiro hífen.

    Exemplos:
        "12 UN - Unidades"  → (12.0, "UN", "Unidades")
        "3 cx - caixa"      → (3.0, "CX", "caixa")
        "40"                → (40.0, None, None)

    Returns:
        Uma tupla (numero, unidade, descricao). Qualquer valor que não
        possa ser determinado será retornado como None.
    """
    if txt is None:
        return None, None, None
    s = str(txt).strip()
    if not s:
        return None, None, None
    # sinal negativo no início não é separador de descrição
    sinal = ""
    if s[0] in "+-":
        sinal, s = s[0], s[1:].lstrip()
    head, desc = (s.split("-", 1) + [""])[:2]
    head = head.strip()
    desc = desc.strip() or None
    parts = head.split()
    num = None
    unidade = None
    if parts:
        m = _NUM_RE.fullmatch(parts[0])
        if m:
            num = float(sinal + m.group(0).replace(",", "."))
    if len(parts) >= 2:
        unidade = parts[1].strip().upper() or None
    return num, unidade, desc


def parse_quantidade(valor: Any) -> int:
    """Converte `valor` em quantidade inteira positiva.

    Raises:
        ValidationError: valor ausente, não numérico, fracionário ou <= 0.
    """
    if valor is None or isinstance(valor, bool):
        raise ValidationError("Quantidade é obrigatória", field="quantidade")
    if isinstance(valor, int):
        num: Optional[float] = float(valor)
    elif isinstance(valor, float):
        num = valor
    else:
        num, _, _ = parse_quantidade_raw(valor)
    if num is None or num != num:  # NaN
        raise ValidationError(f"Quantidade inválida: {valor!r}", field="quantidade")
    if not float(num).is_integer():
        raise ValidationError(f"Quantidade deve ser inteira: {valor!r}", field="quantidade")
    qtd = int(num)
    if qtd <= 0:
        raise ValidationError("Quantidade deve ser maior que zero", field="quantidade")
    return qtd


def parse_data(valor: Any) -> Optional[Union[date, datetime]]:
    """Interpreta datas de movimentação.

    Retorna `date` quando o valor é uma data "pura" (sem horário) e
    `datetime` quando há componente de hora. Valores vazios viram None.

    Raises:
        ValidationError: texto não reconhecido como data.
    """
    if valor is None:
        return None
    if isinstance(valor, (datetime, date)):
        return valor
    s = str(valor).strip()
    if not s:
        return None
    try:
        if _DATA_ISO_RE.match(s):
            return date.fromisoformat(s)
        if _DATA_BR_RE.match(s):
            return datetime.strptime(s, "%d/%m/%Y").date()
        return datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"Data inválida: {s!r}", field="data") from None


def normaliza_texto(x: Any) -> Optional[str]:
    if x is None:
        return None
    s = str(x).strip()
    return s or None
