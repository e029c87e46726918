"""
Política de preços do PDV.

Estas funções calculam subtotal, margem, desconto, juros e total final
de uma venda a partir dos itens já precificados. São puras: dependem
apenas das entradas, o que permite testá-las isoladamente e trocar a
regra de juros sem mexer no fluxo de confirmação da venda.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from armazem.domain.errors import NotFound, ValidationError
from armazem.domain.models import CREDITO, PAYMENT_METHODS, InventoryItem, SaleItem


@dataclass(frozen=True)
class ResumoVenda:
    subtotal: float
    total_margin: float
    discount: float
    interest_value: float
    final_total: float
    installments: int


def calcular_subtotal(itens: Iterable[SaleItem]) -> float:
    return sum(i.quantity * i.sale_price for i in itens)


def calcular_margem(itens: Iterable[SaleItem]) -> float:
    """Margem total (teto do desconto): Σ qtd × (preço de venda − custo)."""
    return sum(i.quantity * (i.sale_price - i.unit_price) for i in itens)


def calcular_desconto(
    desconto_solicitado: Optional[float],
    forma_pagamento: str,
    subtotal: float,
    margem: float,
    taxa_desconto_max: float,
) -> float:
    """Desconto efetivo.

    - Zero no crédito.
    - Caso contrário, o menor entre o solicitado, a margem total e
      ``subtotal × taxa_desconto_max / 100``; nunca negativo.
    """
    if forma_pagamento == CREDITO:
        return 0.0
    solicitado = float(desconto_solicitado or 0.0)
    teto = subtotal * taxa_desconto_max / 100.0
    return max(0.0, min(solicitado, margem, teto))


def calcular_juros(base: float, taxa_juros: float, parcelas: int, forma_pagamento: str) -> float:
    """Juros simples por parcela: ``base × taxa/100 × parcelas``.

    Só incide no crédito parcelado (mais de uma parcela). Não é uma
    tabela de amortização; é a regra comercial vigente.
    """
    if forma_pagamento != CREDITO or parcelas <= 1:
        return 0.0
    return base * (taxa_juros / 100.0) * parcelas


def calcular_resumo(
    itens: Sequence[SaleItem],
    forma_pagamento: str,
    desconto_solicitado: Optional[float],
    parcelas: int,
    taxa_juros: float,
    taxa_desconto_max: float,
) -> ResumoVenda:
    if forma_pagamento not in PAYMENT_METHODS:
        raise ValidationError(f"Forma de pagamento inválida: {forma_pagamento!r}")
    parcelas = int(parcelas or 1)
    if parcelas < 1:
        raise ValidationError("Número de parcelas deve ser ao menos 1")
    if forma_pagamento != CREDITO:
        parcelas = 1

    subtotal = calcular_subtotal(itens)
    margem = calcular_margem(itens)
    desconto = calcular_desconto(desconto_solicitado, forma_pagamento, subtotal, margem, taxa_desconto_max)
    juros = calcular_juros(subtotal - desconto, taxa_juros, parcelas, forma_pagamento)
    return ResumoVenda(
        subtotal=subtotal,
        total_margin=margem,
        discount=desconto,
        interest_value=juros,
        final_total=subtotal - desconto + juros,
        installments=parcelas,
    )


def montar_itens_venda(
    catalogo: Iterable[InventoryItem],
    linhas: Iterable[Tuple[Optional[str], float]],
) -> List[SaleItem]:
    """Transforma linhas de rascunho ``(item_id, quantidade)`` em itens precificados.

    Linhas sem ``item_id`` são descartadas, como no formulário do PDV.
    """
    por_id = {i.id: i for i in catalogo}
    out: List[SaleItem] = []
    for item_id, quantidade in linhas:
        if not item_id:
            continue
        item = por_id.get(item_id)
        if item is None:
            raise NotFound(f"Produto não localizado: {item_id}")
        try:
            qtd = float(quantidade)
        except (TypeError, ValueError):
            raise ValidationError(f"Quantidade inválida para '{item.name}': {quantidade!r}") from None
        if not math.isfinite(qtd):
            raise ValidationError(f"Quantidade inválida para '{item.name}': {quantidade!r}")
        if qtd <= 0:
            raise ValidationError(f"Quantidade deve ser positiva para '{item.name}'")
        out.append(
            SaleItem(
                item_id=item.id,
                item_name=item.name,
                ean=item.ean,
                quantity=qtd,
                unit_price=item.unit_price,
                sale_price=item.sale_price,
                total_price=item.sale_price * qtd,
            )
        )
    return out
