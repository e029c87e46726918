# armazem/domain/errors.py
"""
Exceções de domínio.

Todas derivam de ``EstoqueError`` para que a camada de apresentação
possa tratá-las de forma uniforme.
"""

from __future__ import annotations


class EstoqueError(Exception):
    pass


class NotFound(EstoqueError):
    """Item, ajuste, cliente ou usuário não localizado."""


class InsufficientStock(EstoqueError):
    """Saída maior que o saldo atual do item."""

    def __init__(self, item_name: str, disponivel: float, solicitado: float):
        self.item_name = item_name
        self.disponivel = disponivel
        self.solicitado = solicitado
        super().__init__(
            f"Saldo insuficiente em estoque para '{item_name}': "
            f"disponível {disponivel:g}, solicitado {solicitado:g}"
        )


class ValidationError(EstoqueError, ValueError):
    pass


class InvalidState(EstoqueError):
    """Transição de estado não permitida (ex.: ajuste já revisado)."""


class PermissionDenied(EstoqueError):
    pass


def ensure(cond: bool, msg: str, exc: type = ValidationError) -> None:
    if not cond:
        raise exc(msg)
