from pathlib import Path

import pytest

from armazem.config import MASTER_USER
from armazem.domain.models import ENTRADA
from armazem.infra.migrations import apply_migrations
from armazem.usecases.cadastros import adicionar_item
from armazem.usecases.registrar_movimento import registrar_movimento


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    path = str(tmp_path / "armazem_test.sqlite")
    apply_migrations(path)
    return path


@pytest.fixture
def novo_item(db_path):
    """Fábrica: cadastra um item e, se pedido, dá entrada no saldo inicial."""

    def _make(nome="Parafuso 6mm", saldo=0.0, minimo=0.0, custo=10.0, preco=20.0, **extra):
        dados = {"name": nome, "unit_price": custo, "sale_price": preco, "min_quantity": minimo}
        dados.update(extra)
        item = adicionar_item(dados, db_path=db_path)
        if saldo:
            registrar_movimento(MASTER_USER.id, MASTER_USER.username, item.id, ENTRADA, saldo,
                                "saldo inicial", db_path=db_path)
        return item

    return _make
