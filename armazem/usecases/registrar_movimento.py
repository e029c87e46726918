# armazem/usecases/registrar_movimento.py
"""
UC: Registrar MOVIMENTAÇÃO de estoque (motor de estoque).

- registrar_movimento(): aplica ENTRADA, SAÍDA ou AJUSTE a um item e
  acrescenta o registro ao livro, na mesma transação.

Regras:
- ENTRADA soma a quantidade ao saldo.
- SAÍDA exige saldo suficiente; caso contrário levanta InsufficientStock
  e nada é gravado.
- AJUSTE define o saldo absoluto (a quantidade é o alvo, não um delta).
- Não é idempotente: cada chamada representa um evento físico distinto.
"""

from __future__ import annotations

import sqlite3
import uuid
from dataclasses import replace
from typing import Optional

from armazem.config import DB_PATH
from armazem.domain.errors import EstoqueError, NotFound
from armazem.domain.models import Movement, now_ms
from armazem.domain.movimentos import movimento_de
from armazem.infra.repositories import StockLedger
from armazem.infra.logger import log_movimento, log_transaction


def registrar_movimento(
    operador_id: str,
    operador_nome: str,
    item_id: str,
    tipo: str,
    quantidade: float,
    notas: Optional[str] = None,
    db_path: str = DB_PATH,
    conn: Optional[sqlite3.Connection] = None,
) -> Movement:
    """Aplica um movimento ao item e ao livro de forma atômica.

    Args:
        operador_id: Id do usuário responsável.
        operador_nome: Nome do usuário (gravado no movimento).
        item_id: Id do item do catálogo.
        tipo: ``ENTRADA``, ``SAIDA`` ou ``AJUSTE``.
        quantidade: Magnitude (ENTRADA/SAÍDA) ou saldo alvo (AJUSTE).
        notas: Observação livre.
        db_path: Caminho do SQLite.
        conn: Transação já aberta; quando informada, o commit fica a
            cargo de quem a abriu.

    Returns:
        O ``Movement`` registrado.

    Raises:
        ValidationError: tipo desconhecido ou quantidade inválida.
        NotFound: item inexistente.
        InsufficientStock: SAÍDA maior que o saldo.
    """
    dados = {"item_id": item_id, "tipo": tipo, "quantidade": quantidade, "operador": operador_nome}
    try:
        mov = movimento_de(tipo, quantidade)
        ledger = StockLedger(db_path)
        with ledger.transaction(conn) as c:
            item = ledger.items.get_by_id(item_id, conn=c)
            if item is None:
                raise NotFound(f"Produto não localizado: {item_id}")

            novo_saldo = mov.aplicar(item.current_quantity, item.name)
            agora = now_ms()
            atualizado = replace(item, current_quantity=novo_saldo, updated_at=agora)
            movimento = Movement(
                id=str(uuid.uuid4()),
                item_id=item.id,
                sku=item.sku,
                item_name=item.name,
                type=mov.tipo,
                quantity=mov.quantidade,
                user_id=operador_id,
                username=operador_nome,
                timestamp=agora,
                notes=notas or None,
            )
            ledger.commit_movement(atualizado, movimento, conn=c)
    except EstoqueError as e:
        log_transaction("registrar_movimento", dados, error=str(e))
        raise

    log_movimento("registrar", item_id, mov.tipo, mov.quantidade,
                  saldo_anterior=item.current_quantity, saldo_novo=novo_saldo, notas=notas)
    log_transaction("registrar_movimento", dados, result=movimento.id)
    return movimento
