# armazem/adapters/cli.py
"""
CLI do sistema de armazém (Typer).

Comandos principais:
- migrate                              -> cria/atualiza o armazenamento
- params show/set                      -> taxa de juros e desconto máximo
- itens listar/adicionar/importar      -> catálogo
- mov registrar/historico              -> motor de estoque e livro
- auditoria                            -> conciliação com contagem física
- ajuste solicitar/aprovar/rejeitar/listar
- venda simular/confirmar/historico    -> PDV
- clientes adicionar/listar
- usuarios listar
- rel estoque-baixo/gestao-dia/dashboard/enderecos/conferencia

Erros de domínio são exibidos em vermelho e encerram com código 1.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box
from rich.markup import escape

from armazem.config import DB_PATH, DEFAULTS, MASTER_USER
from armazem.domain.errors import EstoqueError, NotFound, ValidationError
from armazem.domain.models import APROVADO, REJEITADO, Customer, InventoryItem, User
from armazem.infra.migrations import apply_migrations
from armazem.infra.repositories import CustomerRepo, ItemRepo, MovimentoRepo, UserRepo
from armazem.usecases import cadastros
from armazem.usecases.ajustes import listar_ajustes, processar_ajuste, solicitar_ajuste
from armazem.usecases.auditoria import finalizar_auditoria
from armazem.usecases.importar_itens import run_importar_itens
from armazem.usecases.registrar_movimento import registrar_movimento
from armazem.usecases.relatorios import (
    buscar_enderecos,
    conferir_saldos,
    run_estoque_baixo,
    run_gestao_dia,
    run_historico,
    run_painel,
)
from armazem.usecases.vendas import historico_vendas, listar_vendas, processar_venda, simular_venda


app = typer.Typer(help="Armazém: CLI de estoque e PDV")
console = Console()

DB_OPT = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")
USER_OPT = typer.Option(MASTER_USER.username, "--usuario", "-u", help="Usuário que executa a operação")


# -----------------------
# util
# -----------------------

def _fmt_num(val: float) -> str:
    return f"{val:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")


def _fmt_ts(ts_ms: Optional[int]) -> str:
    if not ts_ms:
        return ""
    return datetime.fromtimestamp(ts_ms / 1000).strftime("%d/%m/%Y %H:%M")


def _display_table(data: List[Dict[str, Any]], title: str = "Resultado") -> None:
    """Exibe uma lista de registros em tabela Rich."""
    if not data:
        console.print(Panel("Nenhum dado encontrado", title=title, border_style="yellow"))
        return

    table = Table(title=title, box=box.ROUNDED)
    columns = list(data[0].keys())
    for column in columns:
        if column.lower() in ["quantidade", "saldo", "minimo", "preco", "custo", "total", "valor", "entradas", "saidas"]:
            table.add_column(column, justify="right")
        elif column.lower() in ["data", "quando"]:
            table.add_column(column, justify="center")
        else:
            table.add_column(column)

    for row in data:
        values = []
        for col in columns:
            val = row.get(col, "")
            if isinstance(val, (int, float)) and not isinstance(val, bool):
                values.append(_fmt_num(val))
            elif val is None:
                values.append("")
            else:
                values.append(str(val))
        table.add_row(*values)

    console.print(table)


def _display_kv(data: Dict[str, Any], title: str) -> None:
    """Exibe um único registro como tabela Campo/Valor."""
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Campo")
    table.add_column("Valor")
    for chave, valor in data.items():
        if isinstance(valor, (int, float)) and not isinstance(valor, bool):
            valor = _fmt_num(valor)
        table.add_row(chave, "" if valor is None else str(valor))
    console.print(table)


@contextmanager
def _erros_de_dominio():
    """Converte erros de domínio em mensagem vermelha + exit code 1."""
    try:
        yield
    except EstoqueError as e:
        console.print(f"[bold red]Erro:[/] {escape(str(e))}")
        raise typer.Exit(code=1)


def _operador(username: str, db_path: str) -> User:
    user = UserRepo(db_path).get_by_username(username)
    if user is None:
        raise NotFound(f"Usuário não encontrado: {username}")
    return user


def _resolver_item(ref: str, db_path: str) -> InventoryItem:
    """Aceita id ou SKU do item."""
    ref = (ref or "").strip()
    for item in ItemRepo(db_path).get_all():
        if item.id == ref or item.sku.upper() == ref.upper():
            return item
    raise NotFound(f"Produto não localizado: {ref}")


def _resolver_cliente(ref: str, db_path: str) -> Customer:
    """Aceita uuid ou id amigável (C-1001) do cliente."""
    ref = (ref or "").strip()
    for cliente in CustomerRepo(db_path).get_all():
        if cliente.uuid == ref or cliente.id.upper() == ref.upper():
            return cliente
    raise NotFound(f"Cliente não encontrado: {ref}")


def _parse_par(raw: str) -> Tuple[str, str]:
    """``REF:VALOR`` -> (REF, VALOR)."""
    ref, sep, val = (raw or "").rpartition(":")
    if not sep or not ref.strip():
        raise ValidationError(f"Use o formato ITEM:QUANTIDADE (recebido {raw!r})")
    return ref.strip(), val.strip()


def _linhas_venda(pares: List[str], db_path: str) -> List[Tuple[str, float]]:
    linhas: List[Tuple[str, float]] = []
    for raw in pares:
        ref, val = _parse_par(raw)
        try:
            qtd = float(val.replace(",", "."))
        except ValueError:
            raise ValidationError(f"Quantidade inválida: {val!r}") from None
        linhas.append((_resolver_item(ref, db_path).id, qtd))
    return linhas


def _parse_data(val: Optional[str]) -> Optional[date]:
    if not val:
        return None
    try:
        return datetime.strptime(val, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Data inválida (use AAAA-MM-DD): {val!r}") from None


# -----------------------
# comandos de infra
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = DB_OPT):
    """Cria/atualiza o armazenamento."""
    apply_migrations(db_path)
    typer.echo(f">> Migrações aplicadas em: {db_path}")


params_app = typer.Typer(help="Parâmetros de venda (juros e desconto máximo).")
app.add_typer(params_app, name="params")


@params_app.command("show")
def cmd_params_show(db_path: str = DB_OPT):
    """Exibe os parâmetros efetivos (com fallback para defaults)."""
    rows = [
        {"parametro": "interest_rate", "atual": cadastros.obter_taxa_juros(db_path),
         "padrao": DEFAULTS.interest_rate},
        {"parametro": "max_discount_rate", "atual": cadastros.obter_taxa_desconto_max(db_path),
         "padrao": DEFAULTS.max_discount_rate},
    ]
    _display_table(rows, title="Parâmetros do Sistema")
    console.print(f"[dim]Banco de dados: {db_path}[/dim]")


@params_app.command("set")
def cmd_params_set(
    interest_rate: Optional[float] = typer.Option(None, help="% de juros por parcela (ex.: 2.5)"),
    max_discount_rate: Optional[float] = typer.Option(None, help="% máximo de desconto (ex.: 10)"),
    db_path: str = DB_OPT,
):
    """Define parâmetros (apenas os informados são alterados)."""
    if interest_rate is None and max_discount_rate is None:
        typer.echo("Nada a alterar. Informe pelo menos um parâmetro.")
        raise typer.Exit(code=1)
    with _erros_de_dominio():
        if interest_rate is not None:
            cadastros.definir_taxa_juros(interest_rate, db_path)
        if max_discount_rate is not None:
            cadastros.definir_taxa_desconto_max(max_discount_rate, db_path)
    typer.echo(">> Parâmetros atualizados.")


# -----------------------
# catálogo
# -----------------------

itens_app = typer.Typer(help="Catálogo de itens.")
app.add_typer(itens_app, name="itens")


def _item_row(i: InventoryItem) -> Dict[str, Any]:
    return {
        "sku": i.sku,
        "nome": i.name,
        "categoria": i.category,
        "endereco": str(i.location),
        "saldo": i.current_quantity,
        "minimo": i.min_quantity,
        "preco": i.sale_price,
    }


@itens_app.command("listar")
def cmd_itens_listar(
    busca: Optional[str] = typer.Option(None, help="Filtra por nome, SKU ou EAN"),
    db_path: str = DB_OPT,
):
    """Lista o catálogo com saldo atual."""
    itens = cadastros.listar_itens(db_path)
    if busca:
        q = busca.strip().lower()
        itens = [i for i in itens if q in i.name.lower() or q in i.sku.lower() or q in i.ean]
    _display_table([_item_row(i) for i in itens], title="Itens")


@itens_app.command("adicionar")
def cmd_itens_adicionar(
    nome: str = typer.Argument(..., help="Nome do produto"),
    ean: str = typer.Option("", help="Código de barras"),
    categoria: str = typer.Option("", help="Categoria"),
    corredor: str = typer.Option(""),
    prateleira: str = typer.Option(""),
    andar: str = typer.Option(""),
    custo: float = typer.Option(0.0, help="Preço de custo"),
    preco: float = typer.Option(0.0, help="Preço de venda"),
    minimo: float = typer.Option(0.0, help="Estoque mínimo"),
    db_path: str = DB_OPT,
):
    """Cadastra um item (saldo inicial zero)."""
    with _erros_de_dominio():
        item = cadastros.adicionar_item(
            {
                "name": nome,
                "ean": ean,
                "category": categoria,
                "location": {"corridor": corredor, "shelf": prateleira, "floor": andar},
                "unit_price": custo,
                "sale_price": preco,
                "min_quantity": minimo,
            },
            db_path=db_path,
        )
    _display_kv({"id": item.id, "sku": item.sku, "nome": item.name}, title="Item Cadastrado")


@itens_app.command("importar")
def cmd_itens_importar(
    path: str = typer.Argument(..., help="Caminho do XLSX/CSV de itens"),
    usuario: str = USER_OPT,
    db_path: str = DB_OPT,
):
    """Importa itens de uma planilha; saldo inicial vira ENTRADA."""
    with _erros_de_dominio():
        op = _operador(usuario, db_path)
        info = run_importar_itens(path, op.id, op.username, db_path=db_path)

    console.print(Panel(
        f"Total de registros: {info['total']}\nProcessados com sucesso: {info['sucessos']}"
        + (f"\nErros: {len(info['erros'])}" if info["erros"] else ""),
        title="Itens em Lote",
    ))
    if info["erros"]:
        _display_table(info["erros"], title="Erros Encontrados")


# -----------------------
# movimentações
# -----------------------

mov_app = typer.Typer(help="Movimentações de estoque.")
app.add_typer(mov_app, name="mov")


@mov_app.command("registrar")
def cmd_mov_registrar(
    item: str = typer.Argument(..., help="Id ou SKU do item"),
    tipo: str = typer.Argument(..., help="ENTRADA | SAIDA | AJUSTE"),
    quantidade: float = typer.Argument(..., help="Quantidade (AJUSTE = saldo final)"),
    notas: Optional[str] = typer.Option(None, help="Observação"),
    usuario: str = USER_OPT,
    db_path: str = DB_OPT,
):
    """Registra uma movimentação e atualiza o saldo."""
    with _erros_de_dominio():
        op = _operador(usuario, db_path)
        alvo = _resolver_item(item, db_path)
        mov = registrar_movimento(op.id, op.username, alvo.id, tipo.upper(), quantidade, notas,
                                  db_path=db_path)
    saldo = ItemRepo(db_path).get_by_id(alvo.id).current_quantity
    _display_kv(
        {"id": mov.id, "item": f"{mov.sku} - {mov.item_name}", "tipo": mov.type,
         "quantidade": mov.quantity, "saldo": saldo},
        title="Movimentação Registrada",
    )


@mov_app.command("historico")
def cmd_mov_historico(
    tipo: Optional[str] = typer.Option(None, help="ENTRADA | SAIDA | AJUSTE"),
    busca: Optional[str] = typer.Option(None, help="Nome, SKU, observação ou usuário"),
    db_path: str = DB_OPT,
):
    """Histórico (mais recente primeiro) com o saldo após cada lançamento."""
    hist = run_historico(tipo=tipo, busca=busca, db_path=db_path)
    rows = [
        {
            "quando": _fmt_ts(h.movement.timestamp),
            "sku": h.movement.sku,
            "tipo": h.movement.type,
            "quantidade": h.movement.quantity,
            "saldo": h.balance_after,
            "usuario": h.movement.username,
            "notas": h.movement.notes or "",
        }
        for h in hist
    ]
    _display_table(rows, title="Histórico de Movimentações")


@app.command("auditoria")
def cmd_auditoria(
    contagem: List[str] = typer.Option(..., "--contagem", "-c", help="ITEM:QTD contada (repetível)"),
    categoria: Optional[str] = typer.Option(None, help="Rótulo da auditoria"),
    usuario: str = USER_OPT,
    db_path: str = DB_OPT,
):
    """Concilia o saldo com a contagem física."""
    with _erros_de_dominio():
        op = _operador(usuario, db_path)
        contagens: Dict[str, str] = {}
        for raw in contagem:
            ref, val = _parse_par(raw)
            contagens[_resolver_item(ref, db_path).id] = val
        criados = finalizar_auditoria(op.id, op.username, contagens, categoria, db_path=db_path)
    _display_table(
        [{"sku": m.sku, "tipo": m.type, "quantidade": m.quantity} for m in criados],
        title="Divergências Ajustadas",
    )


# -----------------------
# ajustes
# -----------------------

ajuste_app = typer.Typer(help="Ajustes com aprovação da gerência.")
app.add_typer(ajuste_app, name="ajuste")


def _ajuste_row(a) -> Dict[str, Any]:
    return {
        "id": a.id,
        "item": a.item_id,
        "tipo": a.adjustment_type,
        "quantidade": a.delta_quantity,
        "de": a.old_quantity,
        "para": a.new_quantity,
        "status": a.status,
        "motivo": a.reason,
    }


@ajuste_app.command("solicitar")
def cmd_ajuste_solicitar(
    item: str = typer.Argument(..., help="Id ou SKU do item"),
    tipo: str = typer.Argument(..., help="ENTRADA | SAIDA"),
    quantidade: float = typer.Argument(..., help="Delta do ajuste"),
    motivo: str = typer.Option(..., help="Justificativa"),
    usuario: str = USER_OPT,
    db_path: str = DB_OPT,
):
    """Registra um ajuste PENDENTE."""
    with _erros_de_dominio():
        op = _operador(usuario, db_path)
        alvo = _resolver_item(item, db_path)
        aj = solicitar_ajuste(alvo.id, op.username, tipo, quantidade, motivo, db_path=db_path)
    _display_kv(_ajuste_row(aj), title="Ajuste Solicitado")


def _revisar(ajuste_id: str, decisao: str, usuario: str, db_path: str) -> None:
    with _erros_de_dominio():
        op = _operador(usuario, db_path)
        aj = processar_ajuste(ajuste_id, decisao, op.id, db_path=db_path)
    _display_kv(_ajuste_row(aj), title=f"Ajuste {aj.status}")


@ajuste_app.command("aprovar")
def cmd_ajuste_aprovar(
    ajuste_id: str = typer.Argument(...),
    usuario: str = USER_OPT,
    db_path: str = DB_OPT,
):
    """Aprova o ajuste e registra a movimentação."""
    _revisar(ajuste_id, APROVADO, usuario, db_path)


@ajuste_app.command("rejeitar")
def cmd_ajuste_rejeitar(
    ajuste_id: str = typer.Argument(...),
    usuario: str = USER_OPT,
    db_path: str = DB_OPT,
):
    """Rejeita o ajuste (saldo inalterado)."""
    _revisar(ajuste_id, REJEITADO, usuario, db_path)


@ajuste_app.command("listar")
def cmd_ajuste_listar(
    status: Optional[str] = typer.Option(None, help="PENDENTE | APROVADO | REJEITADO"),
    db_path: str = DB_OPT,
):
    _display_table([_ajuste_row(a) for a in listar_ajustes(status, db_path=db_path)], title="Ajustes")


# -----------------------
# vendas
# -----------------------

venda_app = typer.Typer(help="Vendas no PDV.")
app.add_typer(venda_app, name="venda")

ITEM_OPT = typer.Option(..., "--item", "-i", help="ITEM:QTD (repetível)")


def _resumo_rows(r) -> Dict[str, Any]:
    return {
        "subtotal": r.subtotal,
        "margem": r.total_margin,
        "desconto": r.discount,
        "juros": r.interest_value,
        "total": r.final_total,
        "parcelas": str(r.installments),
    }


@venda_app.command("simular")
def cmd_venda_simular(
    item: List[str] = ITEM_OPT,
    pagamento: str = typer.Option("PIX", help="PIX | DINHEIRO | DEBITO | CREDITO"),
    desconto: float = typer.Option(0.0, help="Desconto solicitado (R$)"),
    parcelas: int = typer.Option(1, help="Parcelas (só crédito)"),
    db_path: str = DB_OPT,
):
    """Calcula o resumo da venda sem gravar nada."""
    with _erros_de_dominio():
        linhas = _linhas_venda(item, db_path)
        resumo = simular_venda(linhas, pagamento.upper(), desconto, parcelas, db_path=db_path)
    _display_kv(_resumo_rows(resumo), title="Simulação de Venda")


@venda_app.command("confirmar")
def cmd_venda_confirmar(
    cliente: str = typer.Option(..., help="Id (C-1001) ou uuid do cliente"),
    item: List[str] = ITEM_OPT,
    pagamento: str = typer.Option("PIX", help="PIX | DINHEIRO | DEBITO | CREDITO"),
    desconto: float = typer.Option(0.0, help="Desconto solicitado (R$)"),
    parcelas: int = typer.Option(1, help="Parcelas (só crédito)"),
    usuario: str = USER_OPT,
    db_path: str = DB_OPT,
):
    """Confirma a venda: baixa o estoque e grava a venda."""
    with _erros_de_dominio():
        op = _operador(usuario, db_path)
        cl = _resolver_cliente(cliente, db_path)
        linhas = _linhas_venda(item, db_path)
        venda = processar_venda(op.id, op.username, cl.uuid, linhas, pagamento.upper(),
                                desconto, parcelas, db_path=db_path)
    _display_kv(
        {"id": venda.id, "cliente": venda.customer_name, "subtotal": venda.subtotal,
         "desconto": venda.discount, "juros": venda.interest_value, "total": venda.total_price,
         "pagamento": venda.payment_method, "parcelas": str(venda.installments)},
        title="Venda Confirmada",
    )


@venda_app.command("historico")
def cmd_venda_historico(
    busca: Optional[str] = typer.Option(None, help="Cliente, documento ou id da venda"),
    inicio: Optional[str] = typer.Option(None, help="AAAA-MM-DD"),
    fim: Optional[str] = typer.Option(None, help="AAAA-MM-DD"),
    db_path: str = DB_OPT,
):
    """Vendas do período com totais."""
    with _erros_de_dominio():
        hist = historico_vendas(listar_vendas(db_path), busca, _parse_data(inicio), _parse_data(fim))
    _display_table(
        [{"data": _fmt_ts(s.timestamp), "cliente": s.customer_name, "pagamento": s.payment_method,
          "total": s.total_price} for s in hist.vendas],
        title="Vendas",
    )
    console.print(
        f"Vendas: {hist.count} | Total: R$ {_fmt_num(hist.total)} | "
        f"Descontos: R$ {_fmt_num(hist.total_discount)} | Juros: R$ {_fmt_num(hist.total_interest)} | "
        f"Ticket médio: R$ {_fmt_num(hist.average_ticket)}"
    )


# -----------------------
# clientes / usuários
# -----------------------

clientes_app = typer.Typer(help="Cadastro de clientes.")
app.add_typer(clientes_app, name="clientes")


@clientes_app.command("adicionar")
def cmd_clientes_adicionar(
    nome: str = typer.Argument(...),
    doc: str = typer.Option("", help="CPF/CNPJ"),
    email: str = typer.Option(""),
    contato: str = typer.Option(""),
    db_path: str = DB_OPT,
):
    with _erros_de_dominio():
        cl = cadastros.adicionar_cliente(nome, doc, email, contato, db_path=db_path)
    _display_kv({"id": cl.id, "uuid": cl.uuid, "nome": cl.name}, title="Cliente Cadastrado")


@clientes_app.command("listar")
def cmd_clientes_listar(
    busca: Optional[str] = typer.Option(None),
    db_path: str = DB_OPT,
):
    _display_table(
        [{"id": c.id, "nome": c.name, "doc": c.doc, "email": c.email, "contato": c.contact}
         for c in cadastros.listar_clientes(busca, db_path=db_path)],
        title="Clientes",
    )


usuarios_app = typer.Typer(help="Usuários do sistema.")
app.add_typer(usuarios_app, name="usuarios")


@usuarios_app.command("listar")
def cmd_usuarios_listar(db_path: str = DB_OPT):
    _display_table(
        [{"id": u.id, "usuario": u.username, "papel": u.role} for u in cadastros.listar_usuarios(db_path)],
        title="Usuários",
    )


# -----------------------
# relatórios
# -----------------------

rel_app = typer.Typer(help="Relatórios")
app.add_typer(rel_app, name="rel")


@rel_app.command("estoque-baixo")
def rel_estoque_baixo(db_path: str = DB_OPT):
    """Itens abaixo do mínimo e valor necessário para repor."""
    rel = run_estoque_baixo(db_path)
    _display_table(
        [{"sku": i.sku, "nome": i.name, "saldo": i.current_quantity, "minimo": i.min_quantity}
         for i in rel.itens],
        title="Estoque Baixo",
    )
    console.print(f"Valor em estoque: R$ {_fmt_num(rel.valor_total)} | "
                  f"Valor crítico: R$ {_fmt_num(rel.valor_critico)}")


@rel_app.command("gestao-dia")
def rel_gestao_dia(db_path: str = DB_OPT):
    """Faturamento, fluxo, alertas e tarefas urgentes de hoje."""
    g = run_gestao_dia(db_path)
    _display_kv(
        {"faturamento": g.faturamento, "vendas": str(g.vendas), "entradas": g.total_entradas,
         "saidas": g.total_saidas, "itens criticos": str(len(g.itens_criticos)),
         "valor ruptura": g.valor_ruptura, "tarefas urgentes": str(len(g.tarefas_urgentes))},
        title="Gestão do Dia",
    )


@rel_app.command("dashboard")
def rel_dashboard(
    dias: int = typer.Option(7, help="Dias do gráfico de fluxo"),
    db_path: str = DB_OPT,
):
    """Valor em estoque, unidades e fluxo diário."""
    p = run_painel(dias=dias, db_path=db_path)
    console.print(Panel(
        f"Valor em estoque: R$ {_fmt_num(p.valor_total)}\n"
        f"Unidades: {_fmt_num(p.unidades)}\nItens abaixo do mínimo: {p.itens_baixos}",
        title="Dashboard",
    ))
    fluxo = p.fluxo.assign(data=p.fluxo["data"].map(lambda d: d.strftime("%d/%m")))
    _display_table(fluxo.to_dict(orient="records"), title=f"Fluxo ({dias} dias)")


@rel_app.command("enderecos")
def rel_enderecos(
    busca: str = typer.Argument(..., help="Nome, SKU ou EAN"),
    db_path: str = DB_OPT,
):
    """Onde o item está guardado."""
    _display_table(buscar_enderecos(ItemRepo(db_path).get_all(), busca), title="Endereçamento")


@rel_app.command("conferencia")
def rel_conferencia(db_path: str = DB_OPT):
    """Itens cujo saldo difere do reconstruído pelo livro."""
    divs = conferir_saldos(ItemRepo(db_path).get_all(), MovimentoRepo(db_path).get_all())
    _display_table(
        [{"item": d.item_name, "saldo": d.saldo_catalogo, "livro": d.saldo_livro} for d in divs],
        title="Conferência de Saldos",
    )


def main():
    app()


if __name__ == "__main__":
    main()
