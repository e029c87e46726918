import pytest

from armazem.config import MASTER_USER
from armazem.domain.errors import (
    InsufficientStock,
    InvalidState,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from armazem.domain.models import APROVADO, ENTRADA, PENDENTE, REJEITADO, SAIDA
from armazem.infra.repositories import AdjustmentRepo, ItemRepo, MovimentoRepo
from armazem.usecases.ajustes import listar_ajustes, processar_ajuste, solicitar_ajuste
from armazem.usecases.cadastros import adicionar_usuario


def _saldo(db_path, item_id):
    return ItemRepo(db_path).get_by_id(item_id).current_quantity


def _movs(db_path, item_id):
    return MovimentoRepo(db_path).by_item(item_id)


def test_aprovacao_registra_uma_movimentacao(db_path, novo_item):
    item = novo_item(saldo=10)
    aj = solicitar_ajuste(item.id, "operador1", ENTRADA, 5, "Sobra na contagem", db_path=db_path)
    assert aj.status == PENDENTE
    assert (aj.old_quantity, aj.new_quantity) == (10, 15)
    assert _saldo(db_path, item.id) == 10

    aprovado = processar_ajuste(aj.id, APROVADO, MASTER_USER.id, db_path=db_path)
    assert aprovado.status == APROVADO
    assert aprovado.reviewed_by == MASTER_USER.id
    assert aprovado.reviewed_at is not None
    assert _saldo(db_path, item.id) == 15

    ultimo = _movs(db_path, item.id)[-1]
    assert (ultimo.type, ultimo.quantity) == (ENTRADA, 5)
    assert ultimo.notes == "AJUSTE APROVADO: Sobra na contagem"

    with pytest.raises(InvalidState):
        processar_ajuste(aj.id, APROVADO, MASTER_USER.id, db_path=db_path)
    assert _saldo(db_path, item.id) == 15
    assert len(_movs(db_path, item.id)) == 2


def test_rejeicao_nao_mexe_no_saldo(db_path, novo_item):
    item = novo_item(saldo=10)
    aj = solicitar_ajuste(item.id, "operador1", SAIDA, 4, "Quebra", db_path=db_path)

    rej = processar_ajuste(aj.id, REJEITADO, MASTER_USER.id, db_path=db_path)
    assert rej.status == REJEITADO
    assert _saldo(db_path, item.id) == 10
    assert len(_movs(db_path, item.id)) == 1

    with pytest.raises(InvalidState):
        processar_ajuste(aj.id, APROVADO, MASTER_USER.id, db_path=db_path)


def test_saida_sem_saldo_mantem_pendente(db_path, novo_item):
    item = novo_item(saldo=10)
    aj = solicitar_ajuste(item.id, "operador1", SAIDA, 8, "Avaria", db_path=db_path)
    # o saldo cai antes da aprovação
    processar_ajuste(
        solicitar_ajuste(item.id, "operador1", SAIDA, 5, "Perda", db_path=db_path).id,
        APROVADO, MASTER_USER.id, db_path=db_path,
    )
    assert _saldo(db_path, item.id) == 5

    with pytest.raises(InsufficientStock):
        processar_ajuste(aj.id, APROVADO, MASTER_USER.id, db_path=db_path)

    assert AdjustmentRepo(db_path).get_by_id(aj.id).status == PENDENTE
    assert _saldo(db_path, item.id) == 5


def test_snapshot_de_saida_nao_fica_negativo(db_path, novo_item):
    item = novo_item(saldo=2)
    aj = solicitar_ajuste(item.id, "op", SAIDA, 5, "x", db_path=db_path)
    assert aj.new_quantity == 0


def test_somente_gerencia_revisa(db_path, novo_item):
    item = novo_item(saldo=10)
    op = adicionar_usuario("carlos", "senha123", role="OPERADOR", db_path=db_path)
    aj = solicitar_ajuste(item.id, "carlos", ENTRADA, 1, "x", db_path=db_path)

    with pytest.raises(PermissionDenied):
        processar_ajuste(aj.id, APROVADO, op.id, db_path=db_path)
    with pytest.raises(NotFound):
        processar_ajuste(aj.id, APROVADO, "usuario-fantasma", db_path=db_path)

    assert AdjustmentRepo(db_path).get_by_id(aj.id).status == PENDENTE
    assert _saldo(db_path, item.id) == 10


def test_validacoes_da_solicitacao(db_path, novo_item):
    item = novo_item(saldo=1)
    with pytest.raises(ValidationError):
        solicitar_ajuste(item.id, "op", "AJUSTE", 1, "x", db_path=db_path)
    with pytest.raises(ValidationError):
        solicitar_ajuste(item.id, "op", ENTRADA, 0, "x", db_path=db_path)
    with pytest.raises(ValidationError):
        solicitar_ajuste(item.id, "op", SAIDA, float("nan"), "x", db_path=db_path)
    with pytest.raises(ValidationError):
        solicitar_ajuste(item.id, "op", ENTRADA, float("inf"), "x", db_path=db_path)
    with pytest.raises(NotFound):
        solicitar_ajuste("nao-existe", "op", ENTRADA, 1, "x", db_path=db_path)
    with pytest.raises(NotFound):
        processar_ajuste("nao-existe", APROVADO, MASTER_USER.id, db_path=db_path)
    with pytest.raises(ValidationError):
        processar_ajuste("qualquer", "TALVEZ", MASTER_USER.id, db_path=db_path)


def test_listar_por_status(db_path, novo_item):
    item = novo_item(saldo=10)
    a = solicitar_ajuste(item.id, "op", ENTRADA, 1, "a", db_path=db_path)
    solicitar_ajuste(item.id, "op", ENTRADA, 2, "b", db_path=db_path)
    processar_ajuste(a.id, REJEITADO, MASTER_USER.id, db_path=db_path)

    assert len(listar_ajustes(db_path=db_path)) == 2
    assert [x.reason for x in listar_ajustes("pendente", db_path=db_path)] == ["b"]
    assert [x.id for x in listar_ajustes(REJEITADO, db_path=db_path)] == [a.id]
