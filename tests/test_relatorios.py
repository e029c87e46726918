from datetime import date, datetime, timedelta

import pytest

from armazem.config import MASTER_USER
from armazem.domain.models import AJUSTE, ENTRADA, SAIDA, InventoryItem, KanbanTask, Location, Movement
from armazem.domain.saldos import historico_movimentos, reconstruir_saldos, saldos_finais
from armazem.infra.repositories import ItemRepo, MovimentoRepo, TaskRepo
from armazem.usecases.registrar_movimento import registrar_movimento
from armazem.usecases.relatorios import (
    buscar_enderecos,
    conferir_saldos,
    fluxo_diario,
    gestao_do_dia,
    relatorio_estoque_baixo,
    run_gestao_dia,
    run_historico,
)


def _m(item_id, tipo, qtd, ts, **kw):
    base = dict(id=f"{item_id}-{ts}-{tipo}", item_id=item_id, sku=f"SKU-{item_id}", item_name=f"Item {item_id}",
                type=tipo, quantity=qtd, user_id="u", username="ana", timestamp=ts)
    base.update(kw)
    return Movement(**base)


def test_reconstrucao_ordena_por_timestamp_e_separa_itens():
    livro = [
        _m("a", SAIDA, 3, 30),
        _m("a", ENTRADA, 10, 10),
        _m("b", ENTRADA, 4, 20),
        _m("a", AJUSTE, 2, 40),
        _m("a", ENTRADA, 1, 50),
    ]
    r = reconstruir_saldos(livro)
    assert [(x.movement.item_id, x.balance_after) for x in r] == [
        ("a", 10), ("b", 4), ("a", 7), ("a", 2), ("a", 3),
    ]
    assert saldos_finais(livro) == {"a": 3, "b": 4}


def test_reconstrucao_estavel_para_mesmo_timestamp():
    livro = [_m("a", ENTRADA, 5, 1, id="x1"), _m("a", SAIDA, 5, 1, id="x2")]
    assert [x.balance_after for x in reconstruir_saldos(livro)] == [5, 0]


def test_historico_filtra_sem_perder_a_trajetoria():
    livro = [
        _m("a", ENTRADA, 10, 10),
        _m("a", SAIDA, 4, 20, notes="Venda PDV para: Maria"),
        _m("b", ENTRADA, 1, 30),
    ]
    saidas = historico_movimentos(livro, tipo="saida")
    assert len(saidas) == 1
    assert saidas[0].balance_after == 6

    todos = historico_movimentos(livro)
    assert [x.movement.timestamp for x in todos] == [30, 20, 10]
    assert [x.movement.id for x in historico_movimentos(livro, busca="maria")] == [livro[1].id]
    assert len(historico_movimentos(livro, busca="sku-b")) == 1


def test_saldo_reconstruido_bate_com_o_catalogo(db_path, novo_item):
    a = novo_item(nome="A", saldo=10)
    b = novo_item(nome="B", saldo=3)
    op = (MASTER_USER.id, MASTER_USER.username)
    registrar_movimento(*op, a.id, SAIDA, 4, db_path=db_path)
    registrar_movimento(*op, b.id, AJUSTE, 7, db_path=db_path)
    registrar_movimento(*op, a.id, ENTRADA, 2.5, db_path=db_path)

    itens = ItemRepo(db_path).get_all()
    movs = MovimentoRepo(db_path).get_all()
    finais = saldos_finais(movs)
    for item in itens:
        assert finais[item.id] == pytest.approx(item.current_quantity)
    assert conferir_saldos(itens, movs) == []

    hist = run_historico(db_path=db_path)
    assert hist[0].movement.item_id == a.id
    assert hist[0].balance_after == pytest.approx(8.5)


def test_conferencia_aponta_divergencia():
    item = InventoryItem(id="a", sku="S", name="A", current_quantity=9)
    divs = conferir_saldos([item], [_m("a", ENTRADA, 10, 1)])
    assert [(d.item_id, d.saldo_catalogo, d.saldo_livro) for d in divs] == [("a", 9, 10)]


def test_relatorio_estoque_baixo():
    itens = [
        InventoryItem(id="1", sku="S1", name="Baixo", unit_price=2, min_quantity=10, current_quantity=4),
        InventoryItem(id="2", sku="S2", name="Ok", unit_price=5, min_quantity=1, current_quantity=3),
        InventoryItem(id="3", sku="S3", name="No limite", unit_price=1, min_quantity=2, current_quantity=2),
    ]
    rel = relatorio_estoque_baixo(itens)
    assert [i.name for i in rel.itens] == ["Baixo"]
    assert rel.valor_total == pytest.approx(4 * 2 + 3 * 5 + 2 * 1)
    assert rel.valor_critico == pytest.approx((10 - 4) * 2)


def _ts(d: date, hora=12) -> int:
    return int(datetime(d.year, d.month, d.day, hora).timestamp() * 1000)


def test_fluxo_diario_preenche_dias_sem_movimento():
    hoje = date(2025, 3, 10)
    ontem = hoje - timedelta(days=1)
    livro = [
        _m("a", ENTRADA, 5, _ts(hoje)),
        _m("a", SAIDA, 2, _ts(hoje, 15)),
        _m("a", ENTRADA, 3, _ts(ontem)),
        _m("a", AJUSTE, 100, _ts(hoje, 16)),
        _m("a", ENTRADA, 50, _ts(hoje - timedelta(days=30))),
    ]
    df = fluxo_diario(livro, dias=3, hoje=hoje)
    assert list(df.columns) == ["data", "entradas", "saidas"]
    assert list(df["data"]) == [hoje - timedelta(days=2), ontem, hoje]
    assert list(df["entradas"]) == [0, 3, 5]
    assert list(df["saidas"]) == [0, 0, 2]


def test_fluxo_diario_sem_movimentos():
    df = fluxo_diario([], dias=7, hoje=date(2025, 1, 7))
    assert len(df) == 7
    assert df["entradas"].sum() == 0


def test_gestao_do_dia():
    agora = datetime(2025, 3, 10, 18, 0)
    hoje_ms = _ts(agora.date(), 9)
    ontem_ms = _ts(agora.date() - timedelta(days=1), 9)
    itens = [InventoryItem(id="1", sku="S", name="X", unit_price=3, min_quantity=5, current_quantity=1)]
    livro = [_m("1", ENTRADA, 4, ontem_ms), _m("1", SAIDA, 3, hoje_ms), _m("1", ENTRADA, 2, hoje_ms + 1)]
    tarefas = [
        KanbanTask(id="t1", title="Repor", priority="ALTA"),
        KanbanTask(id="t2", title="Feito", priority="ALTA", status="RESOLVIDA"),
        KanbanTask(id="t3", title="Depois", priority="BAIXA"),
    ]
    g = gestao_do_dia(itens, livro, tarefas, [], agora=agora)
    assert g.faturamento == 0 and g.vendas == 0
    assert (g.total_entradas, g.total_saidas) == (2, 3)
    assert [i.id for i in g.itens_criticos] == ["1"]
    assert g.valor_ruptura == pytest.approx(12)
    assert [t.id for t in g.tarefas_urgentes] == ["t1"]
    assert g.ultimos_movimentos[0].quantity == 2


def test_run_gestao_dia_le_do_banco(db_path, novo_item):
    novo_item(saldo=1, minimo=5)
    TaskRepo(db_path).append(KanbanTask(id="t1", title="Repor", priority="ALTA"))
    g = run_gestao_dia(db_path)
    assert g.total_entradas == 1
    assert len(g.itens_criticos) == 1
    assert len(g.tarefas_urgentes) == 1


def test_busca_de_enderecos():
    itens = [
        InventoryItem(id="1", sku="LGS-2025-0001-ABC", name="Fita Isolante", ean="7891234567895",
                      location=Location("A", "3", "1")),
        InventoryItem(id="2", sku="LGS-2025-0002-XYZ", name="Cola", ean=""),
    ]
    assert buscar_enderecos(itens, "fita") == [
        {"sku": "LGS-2025-0001-ABC", "nome": "Fita Isolante", "endereco": "C:A P:3 A:1"}
    ]
    assert [r["nome"] for r in buscar_enderecos(itens, "7895")] == ["Fita Isolante"]
    assert len(buscar_enderecos(itens, "lgs-2025")) == 2
    assert buscar_enderecos(itens, "  ") == []
