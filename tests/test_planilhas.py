"""
Testes do loader de planilhas de itens e da importação para o catálogo.
"""

import pandas as pd
import pytest

from armazem.adapters.planilhas import _normalize_columns, _to_float, load_itens_from_planilha
from armazem.domain.models import ENTRADA
from armazem.infra.repositories import ItemRepo, MovimentoRepo
from armazem.usecases.importar_itens import run_importar_itens


@pytest.fixture
def planilha_itens(tmp_path):
    df = pd.DataFrame({
        "Produto": ["Fita Isolante", "Cola Branca", None],
        "Código de Barras": ["7891234567895", "", ""],
        "Categoria": ["eletrica", "papelaria", "x"],
        "Corredor": ["A", "B", ""],
        "Prateleira": ["3", "1", ""],
        "Andar": ["1", "2", ""],
        "Preço de Custo": ["2,50", "1.234,00", ""],
        "Preço de Venda": ["5", "", ""],
        "Estoque Mínimo": ["10", "", ""],
        "Estoque Inicial": ["12", "", ""],
    })
    path = tmp_path / "itens.xlsx"
    df.to_excel(path, index=False)
    return str(path)


def test_normaliza_cabecalhos():
    df = pd.DataFrame(columns=["Produto", "Preço de Venda", "Estoque Mínimo", "Coluna Extra"])
    assert list(_normalize_columns(df).columns) == ["name", "sale_price", "min_quantity", "coluna extra"]


@pytest.mark.parametrize("raw,esperado", [
    ("2,50", 2.5),
    ("1.234,56", 1234.56),
    ("R$ 10", 10.0),
    ("7", 7.0),
    ("", None),
    ("abc", None),
    (None, None),
])
def test_numeros_com_virgula(raw, esperado):
    assert _to_float(raw) == esperado


def test_carrega_linhas_com_nome(planilha_itens):
    rows = load_itens_from_planilha(planilha_itens)
    assert [r["name"] for r in rows] == ["Fita Isolante", "Cola Branca"]

    fita = rows[0]
    assert fita["ean"] == "7891234567895"
    assert fita["category"] == "ELETRICA"
    assert fita["location"] == {"corridor": "A", "shelf": "3", "floor": "1"}
    assert fita["unit_price"] == 2.5
    assert fita["sale_price"] == 5.0
    assert fita["min_quantity"] == 10.0
    assert fita["quantidade_inicial"] == 12.0

    cola = rows[1]
    assert cola["unit_price"] == 1234.0
    assert cola["sale_price"] == 0.0
    assert cola["quantidade_inicial"] is None


def test_importacao_cria_itens_e_entrada_inicial(db_path, planilha_itens):
    info = run_importar_itens(planilha_itens, db_path=db_path)
    assert info["total"] == 2
    assert info["sucessos"] == 2
    assert info["erros"] == []

    itens = {i.name: i for i in ItemRepo(db_path).get_all()}
    assert itens["Fita Isolante"].current_quantity == 12
    assert itens["Cola Branca"].current_quantity == 0

    movs = MovimentoRepo(db_path).get_all()
    assert [(m.item_id, m.type, m.quantity) for m in movs] == [(itens["Fita Isolante"].id, ENTRADA, 12)]


def test_importacao_csv(db_path, tmp_path):
    path = tmp_path / "itens.csv"
    path.write_text("Nome;Preço;Quantidade\nParafuso;0,30;100\n", encoding="utf-8")
    info = run_importar_itens(str(path), db_path=db_path)
    assert info["sucessos"] == 1
    item = ItemRepo(db_path).get_all()[0]
    assert (item.name, item.sale_price, item.current_quantity) == ("Parafuso", 0.3, 100)


def test_linha_recusada_nao_deixa_item_no_catalogo(db_path, tmp_path):
    path = tmp_path / "itens.csv"
    path.write_text("Nome;Quantidade\nParafuso;100\nArruela;inf\n", encoding="utf-8")

    info = run_importar_itens(str(path), db_path=db_path)

    assert info["sucessos"] == 1
    assert [e["registro"] for e in info["erros"]] == [2]
    assert [i.name for i in ItemRepo(db_path).get_all()] == ["Parafuso"]
    assert len(MovimentoRepo(db_path).get_all()) == 1
