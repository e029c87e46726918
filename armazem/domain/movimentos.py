# armazem/domain/movimentos.py
"""
Tipos de movimentação de estoque como união etiquetada.

ENTRADA e SAÍDA carregam uma magnitude (delta); AJUSTE carrega o saldo
alvo absoluto. Cada variante sabe aplicar-se a um saldo, de modo que o
motor de estoque e a reconstrução de saldos compartilham a mesma regra.

As funções são puras: não acessam armazenamento.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Union

from armazem.domain.errors import InsufficientStock, ValidationError
from armazem.domain.models import AJUSTE, ENTRADA, SAIDA


@dataclass(frozen=True)
class Entrada:
    quantidade: float
    tipo = ENTRADA

    def aplicar(self, saldo: float, item_name: str = "") -> float:
        return saldo + self.quantidade


@dataclass(frozen=True)
class Saida:
    quantidade: float
    tipo = SAIDA

    def aplicar(self, saldo: float, item_name: str = "") -> float:
        if saldo < self.quantidade:
            raise InsufficientStock(item_name, saldo, self.quantidade)
        return saldo - self.quantidade


@dataclass(frozen=True)
class AjusteAbsoluto:
    alvo: float
    tipo = AJUSTE

    @property
    def quantidade(self) -> float:
        return self.alvo

    def aplicar(self, saldo: float, item_name: str = "") -> float:
        return self.alvo


TipoMovimento = Union[Entrada, Saida, AjusteAbsoluto]


def movimento_de(tipo: str, quantidade) -> TipoMovimento:
    """Constrói a variante a partir do par persistido ``(type, quantity)``.

    Raises:
        ValidationError: tipo desconhecido, quantidade não numérica ou não finita,
            magnitude não positiva (ENTRADA/SAÍDA) ou alvo negativo (AJUSTE).
    """
    try:
        qtd = float(quantidade)
    except (TypeError, ValueError):
        raise ValidationError(f"Quantidade inválida: {quantidade!r}") from None
    if not math.isfinite(qtd):
        raise ValidationError(f"Quantidade inválida: {quantidade!r}")

    tipo = (tipo or "").strip().upper()
    if tipo == ENTRADA:
        if qtd <= 0:
            raise ValidationError("Quantidade de entrada deve ser positiva")
        return Entrada(qtd)
    if tipo == SAIDA:
        if qtd <= 0:
            raise ValidationError("Quantidade de saída deve ser positiva")
        return Saida(qtd)
    if tipo == AJUSTE:
        if qtd < 0:
            raise ValidationError("Saldo alvo do ajuste não pode ser negativo")
        return AjusteAbsoluto(qtd)
    raise ValidationError(f"Tipo de movimentação inválido: {tipo!r}")


def aplicar_sem_validar(tipo: str, quantidade: float, saldo: float) -> float:
    """Aplica um movimento já registrado ao saldo, sem checar saldo negativo.

    Usada na reconstrução histórica, onde o livro é a fonte da verdade.
    """
    if tipo == ENTRADA:
        return saldo + quantidade
    if tipo == SAIDA:
        return saldo - quantidade
    if tipo == AJUSTE:
        return quantidade
    return saldo
