# scges/adapters/xlsx_loader.py
"""
Loaders para planilhas (XLSX) de ENTRADAS e SAÍDAS.

Essas funções:
- leem planilhas XLSX usando pandas;
- normalizam cabeçalhos (acentos, variações, sinônimos);
- retornam listas de dicionários com os argumentos esperados pelo livro
  de movimentações, mais a chave `linha` (número da linha na planilha).

Observações:
- Não realizam parsing de quantidade; o texto segue para `parse_quantidade`,
  que também aceita o formato "<valor> <unidade> - <descrição>".
- Datas são normalizadas para ISO (YYYY-MM-DD) quando possível. Texto não
  reconhecido é devolvido como veio, para que a linha falhe na validação.
"""

from __future__ import annotations

import zipfile
from typing import Any, Dict, List, Optional
import pandas as pd
import re

from scges.domain.errors import ValidationError


# Linha 1 da planilha é o cabeçalho
PRIMEIRA_LINHA = 2


# ---------------------------
# utilitários de normalização
# ---------------------------

def _slug(s: str) -> str:
    """Normaliza cabeçalhos: minúsculas, sem acentos, sem não-alfanumérico."""
    if s is None:
        return ""
    s = str(s).strip().lower()
    acentos = dict(zip("áàâãäéèêëíìîïóòôõöúùûüç", "aaaaaeeeeiiiiooooouuuuc"))
    s = "".join(acentos.get(ch, ch) for ch in s)
    s = re.sub(r"[^a-z0-9]+", " ", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s


def _safe_get(row, key):
    """Lê um valor da linha do pandas tratando NA como None."""
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    s = str(val).strip()
    return s or None


def _to_date_iso(val: Optional[str]) -> Optional[str]:
    """Converte valor para data ISO (YYYY-MM-DD) se possível."""
    if val is None:
        return None
    s = str(val).strip()
    if not s:
        return None
    # células de data chegam como "2024-03-10 00:00:00"
    if re.match(r"^\d{4}-\d{2}-\d{2}(?:[ T]00:00:00)?$", s):
        return s[:10]
    if re.match(r"^\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}", s):
        return s.replace(" ", "T", 1)
    d = pd.to_datetime(s, dayfirst=True, errors="coerce")
    if pd.isna(d):
        return s
    return d.date().isoformat()


ALIASES = {
    "produto": "produto",
    "descricao": "produto",
    "descricao do produto": "produto",
    "item": "produto",
    "material": "produto",

    "codigo": "codigo",
    "cod": "codigo",
    "codigo do produto": "codigo",

    "id produto": "produto_id",
    "produto id": "produto_id",

    "quantidade": "quantidade",
    "qtde": "quantidade",
    "qtd": "quantidade",
    "quant": "quantidade",

    "data": "data",
    "data entrada": "data",
    "data de entrada": "data",
    "data saida": "data",
    "data de saida": "data",

    "servidor": "servidor_almoxarifado",
    "servidor almoxarifado": "servidor_almoxarifado",
    "servidor do almoxarifado": "servidor_almoxarifado",
    "responsavel": "servidor_almoxarifado",

    "setor": "setor_responsavel",
    "setor responsavel": "setor_responsavel",
    "setor solicitante": "setor_responsavel",

    "servidor retirada": "servidor_retirada",
    "servidor que retirou": "servidor_retirada",
    "retirado por": "servidor_retirada",

    "observacao": "observacoes",
    "observacoes": "observacoes",
    "obs": "observacoes",
}


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Renomeia colunas com base em sinônimos/variações."""
    new_cols = {}
    for col in df.columns:
        key = _slug(col)
        new_cols[col] = ALIASES.get(key, key.replace(" ", "_"))
    return df.rename(columns=new_cols)


def _read(path: str) -> pd.DataFrame:
    try:
        df = pd.read_excel(path, dtype="string")
    except (ValueError, zipfile.BadZipFile) as e:
        raise ValidationError(f"Planilha inválida: {path} ({e})", field="arquivo") from e
    df = _normalize_columns(df)
    # duas colunas com o mesmo alias: fica a primeira
    return df.loc[:, ~df.columns.duplicated()]


# ---------------------------
# loaders públicos (XLSX)
# ---------------------------

def load_entradas_from_xlsx(path: str) -> List[Dict[str, Any]]:
    """Lê XLSX de ENTRADAS.

    Campos de saída (chaves do dict por linha):
      - linha: int (número da linha na planilha)
      - produto: descrição do produto | None
      - quantidade: str | None
      - data: ISO date | None
      - servidor_almoxarifado: str | None
      - observacoes: str | None
    """
    df = _read(path)
    out: List[Dict[str, Any]] = []
    for i, (_, row) in enumerate(df.iterrows()):
        out.append({
            "linha": i + PRIMEIRA_LINHA,
            "produto": _safe_get(row, "produto"),
            "quantidade": _safe_get(row, "quantidade"),
            "data": _to_date_iso(_safe_get(row, "data")),
            "servidor_almoxarifado": _safe_get(row, "servidor_almoxarifado"),
            "observacoes": _safe_get(row, "observacoes"),
        })
    return out


def load_saidas_from_xlsx(path: str) -> List[Dict[str, Any]]:
    """Lê XLSX de SAÍDAS.

    O produto é identificado pelo `codigo` (ou, se presente, `produto_id`).

    Campos de saída (chaves do dict por linha):
      - linha: int
      - codigo: str | None
      - produto_id: str | None
      - quantidade: str | None
      - data: ISO date | None
      - servidor_almoxarifado: str | None
      - setor_responsavel: str | None
      - servidor_retirada: str | None
      - observacoes: str | None
    """
    df = _read(path)
    out: List[Dict[str, Any]] = []
    for i, (_, row) in enumerate(df.iterrows()):
        out.append({
            "linha": i + PRIMEIRA_LINHA,
            "codigo": _safe_get(row, "codigo"),
            "produto_id": _safe_get(row, "produto_id"),
            "quantidade": _safe_get(row, "quantidade"),
            "data": _to_date_iso(_safe_get(row, "data")),
            "servidor_almoxarifado": _safe_get(row, "servidor_almoxarifado"),
            "setor_responsavel": _safe_get(row, "setor_responsavel"),
            "servidor_retirada": _safe_get(row, "servidor_retirada"),
            "observacoes": _safe_get(row, "observacoes"),
        })
    return out
