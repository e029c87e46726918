# armazem/adapters/planilhas.py
"""
Loader de planilhas (XLSX/CSV) para o cadastro de itens.

Esta função:
- lê a planilha usando pandas;
- normaliza cabeçalhos (acentos, variações, sinônimos);
- retorna listas de dicionários com as chaves esperadas por
  ``adicionar_item`` (incluindo ``location`` e o saldo inicial, se houver).

Observações:
- Valores numéricos aceitam vírgula decimal ("12,50").
- Linhas sem nome de produto são ignoradas.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd


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
    """Lê um valor da linha tratando NA do pandas como None."""
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    s = str(val).strip()
    return s or None


def _to_float(val: Any) -> Optional[float]:
    if val is None:
        return None
    s = str(val).strip().replace("R$", "").strip()
    if not s:
        return None
    # "1.234,56" -> "1234.56"; "12,5" -> "12.5"
    if "," in s:
        s = s.replace(".", "").replace(",", ".")
    try:
        return float(s)
    except ValueError:
        return None


ALIASES = {
    "nome": "name",
    "produto": "name",
    "descricao": "name",
    "name": "name",

    "ean": "ean",
    "codigo de barras": "ean",
    "gtin": "ean",

    "categoria": "category",
    "category": "category",

    "corredor": "corridor",
    "prateleira": "shelf",
    "andar": "floor",
    "nivel": "floor",

    "custo": "unit_price",
    "preco de custo": "unit_price",
    "valor unitario": "unit_price",
    "unit price": "unit_price",

    "preco": "sale_price",
    "preco de venda": "sale_price",
    "venda": "sale_price",
    "sale price": "sale_price",

    "minimo": "min_quantity",
    "estoque minimo": "min_quantity",
    "quantidade minima": "min_quantity",
    "min quantity": "min_quantity",

    "quantidade": "quantidade_inicial",
    "qtd": "quantidade_inicial",
    "estoque": "quantidade_inicial",
    "saldo": "quantidade_inicial",
    "estoque inicial": "quantidade_inicial",
}


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Renomeia colunas com base em sinônimos/variações."""
    new_cols = {}
    for col in df.columns:
        key = _slug(col)
        new_cols[col] = ALIASES.get(key, key)
    return df.rename(columns=new_cols)


def _read(path: str) -> pd.DataFrame:
    if Path(path).suffix.lower() == ".csv":
        return pd.read_csv(path, dtype="string", sep=None, engine="python")
    return pd.read_excel(path, dtype="string")


# ---------------------------
# loader público
# ---------------------------

def load_itens_from_planilha(path: str) -> List[Dict[str, Any]]:
    """Lê XLSX/CSV de ITENS e retorna registros prontos para o cadastro.

    Campos de saída (chaves do dict por linha):
      - name, ean, category: str
      - location: {corridor, shelf, floor}
      - unit_price, sale_price, min_quantity: float (0.0 quando ausente)
      - quantidade_inicial: float | None
    """
    df = _normalize_columns(_read(path))
    out: List[Dict[str, Any]] = []
    for _, row in df.iterrows():
        nome = _safe_get(row, "name")
        if not nome:
            continue
        out.append({
            "name": nome,
            "ean": _safe_get(row, "ean") or "",
            "category": (_safe_get(row, "category") or "").upper(),
            "location": {
                "corridor": _safe_get(row, "corridor") or "",
                "shelf": _safe_get(row, "shelf") or "",
                "floor": _safe_get(row, "floor") or "",
            },
            "unit_price": _to_float(_safe_get(row, "unit_price")) or 0.0,
            "sale_price": _to_float(_safe_get(row, "sale_price")) or 0.0,
            "min_quantity": _to_float(_safe_get(row, "min_quantity")) or 0.0,
            "quantidade_inicial": _to_float(_safe_get(row, "quantidade_inicial")),
        })
    return out
