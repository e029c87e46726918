from datetime import date, timedelta

import pytest

from armazem.config import MASTER_USER
from armazem.domain.errors import InsufficientStock, NotFound, ValidationError
from armazem.domain.models import ENTRADA, SAIDA
from armazem.infra.repositories import ItemRepo, MovimentoRepo, SaleRepo
from armazem.usecases.cadastros import adicionar_cliente, definir_taxa_juros
from armazem.usecases.vendas import historico_vendas, processar_venda, simular_venda


def _vender(db_path, cliente, linhas, pagamento="PIX", desconto=0.0, parcelas=1):
    return processar_venda(MASTER_USER.id, MASTER_USER.username, cliente, linhas, pagamento,
                           desconto, parcelas, db_path=db_path)


@pytest.fixture
def cliente(db_path):
    return adicionar_cliente("Maria Souza", doc="123.456.789-00", db_path=db_path)


def test_venda_com_desconto_baixa_estoque(db_path, novo_item, cliente):
    item = novo_item(custo=10, preco=20, saldo=10)

    venda = _vender(db_path, cliente.uuid, [(item.id, 2)], desconto=50)

    assert venda.subtotal == 40
    assert venda.discount == 4
    assert venda.total_price == 36
    assert venda.installments == 1
    assert venda.customer_name == "Maria Souza"
    assert ItemRepo(db_path).get_by_id(item.id).current_quantity == 8

    saidas = [m for m in MovimentoRepo(db_path).by_item(item.id) if m.type == SAIDA]
    assert len(saidas) == 1
    assert saidas[0].quantity == 2
    assert saidas[0].notes == "Venda PDV para: Maria Souza"
    assert SaleRepo(db_path).get_all() == [venda]


def test_venda_credito_usa_taxa_configurada(db_path, novo_item, cliente):
    item = novo_item(custo=50, preco=100, saldo=5)
    venda = _vender(db_path, cliente.uuid, [(item.id, 1)], pagamento="CREDITO", desconto=10, parcelas=3)
    assert venda.discount == 0
    assert venda.interest_value == pytest.approx(7.5)
    assert venda.total_price == pytest.approx(107.5)
    assert venda.installments == 3

    definir_taxa_juros(1.0, db_path=db_path)
    resumo = simular_venda([(item.id, 1)], "CREDITO", 0, 2, db_path=db_path)
    assert resumo.interest_value == pytest.approx(2.0)


def test_falta_em_uma_linha_cancela_a_venda_inteira(db_path, novo_item, cliente):
    a = novo_item(nome="A", saldo=10)
    b = novo_item(nome="B", saldo=1)
    movs_antes = len(MovimentoRepo(db_path).get_all())

    with pytest.raises(InsufficientStock):
        _vender(db_path, cliente.uuid, [(a.id, 3), (b.id, 2)])

    itens = ItemRepo(db_path)
    assert itens.get_by_id(a.id).current_quantity == 10
    assert itens.get_by_id(b.id).current_quantity == 1
    assert len(MovimentoRepo(db_path).get_all()) == movs_antes
    assert SaleRepo(db_path).get_all() == []


def test_quantidade_nao_finita_recusa_a_venda(db_path, novo_item, cliente):
    item = novo_item(saldo=5)
    with pytest.raises(ValidationError):
        _vender(db_path, cliente.uuid, [(item.id, float("nan"))])
    with pytest.raises(ValidationError):
        _vender(db_path, cliente.uuid, [(item.id, 1), (item.id, float("inf"))])

    assert ItemRepo(db_path).get_by_id(item.id).current_quantity == 5
    assert [m.type for m in MovimentoRepo(db_path).by_item(item.id)] == [ENTRADA]
    assert SaleRepo(db_path).get_all() == []


def test_parcelas_so_valem_no_credito(db_path, novo_item, cliente):
    item = novo_item(saldo=5)
    venda = _vender(db_path, cliente.uuid, [(item.id, 1)], pagamento="PIX", parcelas=4)
    assert venda.installments == 1
    assert venda.interest_value == 0


def test_linhas_repetidas_somam_no_saldo(db_path, novo_item, cliente):
    item = novo_item(saldo=3)
    with pytest.raises(InsufficientStock):
        _vender(db_path, cliente.uuid, [(item.id, 2), (item.id, 2)])
    assert ItemRepo(db_path).get_by_id(item.id).current_quantity == 3


def test_venda_exige_cliente_e_itens(db_path, novo_item, cliente):
    item = novo_item(saldo=3)
    with pytest.raises(ValidationError):
        _vender(db_path, None, [(item.id, 1)])
    with pytest.raises(NotFound):
        _vender(db_path, "cliente-fantasma", [(item.id, 1)])
    with pytest.raises(ValidationError):
        _vender(db_path, cliente.uuid, [(None, 1)])
    assert SaleRepo(db_path).get_all() == []


def test_simulacao_nao_grava_nada(db_path, novo_item):
    item = novo_item(custo=10, preco=20, saldo=10)
    r = simular_venda([(item.id, 2)], "PIX", 50, db_path=db_path)
    assert r.final_total == 36
    assert ItemRepo(db_path).get_by_id(item.id).current_quantity == 10
    assert SaleRepo(db_path).get_all() == []


def test_historico_de_vendas(db_path, novo_item, cliente):
    outro = adicionar_cliente("João Lima", db_path=db_path)
    item = novo_item(custo=10, preco=20, saldo=10)
    _vender(db_path, cliente.uuid, [(item.id, 1)])
    _vender(db_path, outro.uuid, [(item.id, 2)])
    vendas = SaleRepo(db_path).get_all()

    h = historico_vendas(vendas)
    assert h.count == 2
    assert h.total == 60
    assert h.average_ticket == 30

    assert historico_vendas(vendas, busca="joão").count == 1
    assert historico_vendas(vendas, busca="123.456").vendas[0].customer_name == "Maria Souza"

    amanha = date.today() + timedelta(days=1)
    assert historico_vendas(vendas, inicio=amanha).count == 0
    assert historico_vendas(vendas, inicio=date.today(), fim=date.today()).count == 2


def test_historico_busca_por_id_e_documento_do_cliente(db_path, novo_item, cliente):
    empresa = adicionar_cliente("Ferragens Lima", doc="AB-12.345/0001", db_path=db_path)
    item = novo_item(saldo=10)
    _vender(db_path, cliente.uuid, [(item.id, 1)])
    venda = _vender(db_path, empresa.uuid, [(item.id, 1)])
    vendas = SaleRepo(db_path).get_all()

    por_id = historico_vendas(vendas, busca=empresa.uuid.upper())
    assert [v.id for v in por_id.vendas] == [venda.id]
    assert historico_vendas(vendas, busca="ab-12").count == 1
    # o id da venda não é critério de busca
    assert historico_vendas(vendas, busca=venda.id).count == 0
