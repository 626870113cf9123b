# scges/adapters/cli.py
"""
CLI do SCGES (Typer).

Comandos principais:
- migrate                        -> aplica migrações e cria views
- produto add/list/show/update/delete/next-code/low
                                 -> catálogo de produtos
- entrada                        -> registra uma entrada (sem --produto: prompts)
- saida                          -> registra uma saída (sem --codigo: prompts)
- entrada-lotes <xlsx>           -> registra entradas em lote a partir de um XLSX
- saida-lotes <xlsx>             -> registra saídas em lote a partir de um XLSX
- historico                      -> consulta o livro de movimentações
- dashboard                      -> estatísticas, recentes e estoque baixo
- rel estoque/historico/excel    -> relatórios
- nota anexar/baixar/remover     -> nota fiscal (PDF) do produto
- formulario list/anexar/baixar/remover
                                 -> formulários em PDF

Erros de validação, estoque insuficiente e conflito terminam com código 1;
produto ou arquivo inexistente termina com código 2.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box
from rich.markup import escape

from scges.config import DB_PATH, DEFAULTS
from scges.domain.errors import NotFoundError, ScgesError, ValidationError
from scges.domain.models import Produto
from scges.domain.policies import estoque_baixo
from scges.infra.migrations import apply_migrations, schema_version
from scges.infra.views import create_views
from scges.usecases.arquivos import (
    anexar_formulario, anexar_nota_fiscal, listar_formularios, obter_formulario, obter_nota_fiscal,
    registrar_entrada_com_nota, remover_formulario, remover_nota_fiscal,
)
from scges.usecases.dashboard import estatisticas_painel, movimentacoes_recentes, produtos_estoque_baixo
from scges.usecases.movimentacoes import movimentacao_para_dict
from scges.usecases.registrar_entrada import run_entrada_unica, run_entrada_lote
from scges.usecases.registrar_saida import run_saida_unica, run_saida_lote
from scges.usecases.relatorios import exportar_excel, relatorio_estoque, relatorio_historico
from scges.usecases.servicos import Servicos, abrir_servicos


app = typer.Typer(help="SCGES: controle de estoque do almoxarifado")
console = Console()

DB_OPTION = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")


# -----------------------
# util
# -----------------------

@contextmanager
def _tratando_erros() -> Iterator[None]:
    """Converte erros do domínio em mensagem e código de saída."""
    try:
        yield
    except NotFoundError as e:
        console.print(f"[bold red]Erro:[/] {escape(str(e))}")
        raise typer.Exit(code=2)
    except ScgesError as e:
        console.print(f"[bold red]Erro ({e.code}):[/] {escape(str(e))}")
        raise typer.Exit(code=1)


def _print_json(obj) -> None:
    typer.echo(json.dumps(obj, ensure_ascii=False, indent=2, default=str))


def _fmt(val: Any) -> str:
    if isinstance(val, bool):
        return "[bold red]sim[/]" if val else "não"
    if isinstance(val, int):
        return f"{val:,}".replace(",", ".")
    if isinstance(val, float):
        return f"{val:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    if isinstance(val, datetime):
        return val.strftime("%d/%m/%Y %H:%M")
    if val is None:
        return ""
    return escape(str(val))


def _tabela(rows: List[Dict[str, Any]], title: str) -> None:
    table = Table(title=title, box=box.ROUNDED)
    columns = list(rows[0].keys())
    for column in columns:
        if column.lower() in ("quantidade", "total_entradas", "id"):
            table.add_column(column, justify="right")
        elif column.lower() in ("data", "codigo", "tipo"):
            table.add_column(column, justify="center")
        else:
            table.add_column(column)
    for row in rows:
        table.add_row(*[_fmt(row.get(col, "")) for col in columns])
    console.print(table)


def _resumo(resumo: Dict[str, Any], title: str) -> None:
    console.print(Panel("\n".join(f"{k}: {_fmt(v)}" for k, v in resumo.items()), title=title))


def _display_table(data: Any, title: str = "Resultado") -> None:
    """Exibe os dados em tabelas formatadas usando Rich."""
    if not data:
        console.print(Panel("Nenhum dado encontrado", title=title, border_style="yellow"))
        return

    # Lista de itens
    if isinstance(data, list) and isinstance(data[0], dict):
        _tabela(data, title)
        return

    # Relatório de estoque
    if isinstance(data, dict) and "produtos" in data and "resumo" in data:
        if data["produtos"]:
            _tabela(data["produtos"], title)
        _resumo(data["resumo"], "Resumo")
        return

    # Relatório de histórico
    if isinstance(data, dict) and "movimentacoes" in data and "resumo" in data:
        if data["movimentacoes"]:
            _tabela(data["movimentacoes"], title)
        _resumo(data["resumo"], "Resumo")
        return

    # Operações em lote
    if isinstance(data, dict) and "registros" in data and "total" in data:
        titulo = f"{data['tipo']} em Lote" if "tipo" in data else "Registros em Lote"
        panel_content = [
            f"Total de registros: {data['total']}",
            f"Processados com sucesso: {data.get('sucessos', 0)}",
        ]
        if data.get("erros"):
            panel_content.append(f"Erros: {len(data['erros'])}")
        console.print(Panel("\n".join(panel_content), title=titulo))

        if data.get("erros"):
            erro_table = Table(title="Erros Encontrados")
            erro_table.add_column("Linha")
            erro_table.add_column("Erro")
            for erro in data["erros"]:
                erro_table.add_row(str(erro.get("linha", "?")), escape(erro.get("mensagem", "Erro desconhecido")))
            console.print(erro_table)
        return

    # Registro único: campo/valor
    if isinstance(data, dict):
        table = Table(title=title, box=box.ROUNDED)
        table.add_column("Campo")
        table.add_column("Valor")
        for chave, valor in data.items():
            table.add_row(chave, _fmt(valor))
        console.print(table)
        return

    _print_json(data)


def _produto_linha(p: Produto, srv: Servicos) -> Dict[str, Any]:
    return {
        "codigo": p.codigo,
        "descricao": p.descricao,
        "unidade": p.unidade,
        "quantidade": p.quantidade,
        "total_entradas": p.total_entradas,
        "estoque_baixo": estoque_baixo(p.quantidade, p.total_entradas, srv.catalogo.limiar),
        "id": p.id,
    }


def _produto_detalhe(p: Produto) -> Dict[str, Any]:
    d = asdict(p)
    for k in ("created_at", "updated_at"):
        d[k] = d[k].strftime("%d/%m/%Y %H:%M") if d[k] else ""
    return d


def _busca_produto(srv: Servicos, ref: str) -> Produto:
    """Aceita o código ("001") ou o id interno."""
    produto = srv.catalogo.obter_por_codigo(ref) or srv.catalogo.obter(ref)
    if produto is None:
        raise NotFoundError("Produto", ref)
    return produto


# -----------------------
# comandos de infra
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = DB_OPTION):
    """Aplica migrações e recria as views auxiliares."""
    apply_migrations(db_path)
    create_views(db_path)
    typer.echo(f">> Migrações aplicadas (schema v{schema_version(db_path)}) e views criadas em: {db_path}")


# -----------------------
# catálogo
# -----------------------

produto_app = typer.Typer(help="Catálogo de produtos.")
app.add_typer(produto_app, name="produto")


@produto_app.command("add")
def cmd_produto_add(
    descricao: str = typer.Option(..., help="Descrição do produto"),
    unidade: str = typer.Option("", help="Unidade (UN, CX, ...)"),
    descricao_complementar: str = typer.Option("", help="Descrição complementar"),
    validade: str = typer.Option("", help="Validade (texto livre)"),
    fornecedor: str = typer.Option("", help="Fornecedor"),
    numero_processo: str = typer.Option("", help="Número do processo de compra"),
    observacoes: str = typer.Option("", help="Observações"),
    db_path: str = DB_OPTION,
):
    """Cadastra um produto com o próximo código (quantidade inicial 0)."""
    srv = abrir_servicos(db_path)
    with _tratando_erros():
        p = srv.catalogo.criar({
            "descricao": descricao,
            "unidade": unidade,
            "descricao_complementar": descricao_complementar,
            "validade": validade,
            "fornecedor": fornecedor,
            "numero_processo": numero_processo,
            "observacoes": observacoes,
        })
    _display_table(_produto_detalhe(p), title="Produto Cadastrado")


@produto_app.command("list")
def cmd_produto_list(
    busca: Optional[str] = typer.Option(None, help="Trecho da descrição, código ou fornecedor"),
    db_path: str = DB_OPTION,
):
    """Lista os produtos em ordem de descrição."""
    srv = abrir_servicos(db_path)
    rows = [_produto_linha(p, srv) for p in srv.catalogo.listar(busca)]
    _display_table(rows, title="Produtos")


@produto_app.command("show")
def cmd_produto_show(
    ref: str = typer.Argument(..., help="Código ou id do produto"),
    db_path: str = DB_OPTION,
):
    """Mostra um produto com a quantidade atual."""
    srv = abrir_servicos(db_path)
    with _tratando_erros():
        p = _busca_produto(srv, ref)
    _display_table(_produto_detalhe(p), title=f"Produto {p.codigo}")


@produto_app.command("update")
def cmd_produto_update(
    ref: str = typer.Argument(..., help="Código ou id do produto"),
    campos: List[str] = typer.Option([], "--set", help="campo=valor (repetível)"),
    db_path: str = DB_OPTION,
):
    """Atualiza campos descritivos (ex.: --set unidade=CX --set fornecedor=ACME)."""
    srv = abrir_servicos(db_path)
    with _tratando_erros():
        p = _busca_produto(srv, ref)
        atributos: Dict[str, str] = {}
        for item in campos:
            chave, sep, valor = item.partition("=")
            if not sep:
                typer.echo(f"Formato inválido: {item!r} (use campo=valor)")
                raise typer.Exit(code=1)
            atributos[chave.strip()] = valor
        if not atributos:
            typer.echo("Nada a alterar. Informe pelo menos um --set campo=valor.")
            raise typer.Exit(code=1)
        atualizado = srv.catalogo.atualizar(p.id, atributos)
        if atualizado is None:
            raise NotFoundError("Produto", ref)
    _display_table(_produto_detalhe(atualizado), title="Produto Atualizado")


@produto_app.command("delete")
def cmd_produto_delete(
    ref: str = typer.Argument(..., help="Código ou id do produto"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Não pedir confirmação"),
    db_path: str = DB_OPTION,
):
    """Exclui o produto e todas as suas movimentações."""
    srv = abrir_servicos(db_path)
    with _tratando_erros():
        p = _busca_produto(srv, ref)
        if not yes:
            typer.confirm(f"Excluir {p.codigo} - {p.descricao} e suas movimentações?", abort=True)
        srv.catalogo.remover(p.id)
    typer.echo(f">> Produto {p.codigo} excluído.")


@produto_app.command("next-code")
def cmd_produto_next_code(db_path: str = DB_OPTION):
    """Mostra o código que o próximo cadastro receberá."""
    srv = abrir_servicos(db_path)
    typer.echo(srv.catalogo.proximo_codigo())


@produto_app.command("low")
def cmd_produto_low(
    limite: int = typer.Option(10, help="Máximo de produtos"),
    db_path: str = DB_OPTION,
):
    """Produtos com estoque baixo (menor quantidade primeiro)."""
    srv = abrir_servicos(db_path)
    rows = [_produto_linha(p, srv) for p in srv.catalogo.estoque_baixo(limite)]
    _display_table(rows, title="Estoque Baixo")


# -----------------------
# comandos de movimentação
# -----------------------

@app.command("entrada")
def cmd_entrada(
    produto: Optional[str] = typer.Option(None, help="Descrição do produto (cadastra se não existir)"),
    quantidade: Optional[str] = typer.Option(None, help="Quantidade (inteiro > 0)"),
    servidor: Optional[str] = typer.Option(None, help="Servidor do almoxarifado"),
    data: Optional[str] = typer.Option(None, help="YYYY-MM-DD ou DD/MM/AAAA (padrão: agora)"),
    observacoes: Optional[str] = typer.Option(None, "--obs", help="Observações"),
    nota: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="PDF da nota fiscal"),
    db_path: str = DB_OPTION,
):
    """Registra uma entrada. Sem --produto, pergunta os dados no terminal."""
    srv = abrir_servicos(db_path)
    with _tratando_erros():
        if produto is None:
            if nota is not None:
                raise ValidationError("--nota exige --produto", field="nota")
            rec = run_entrada_unica(db_path=db_path, servicos=srv)
        elif nota is not None:
            mov = registrar_entrada_com_nota(
                srv, nota.read_bytes(), nota.name,
                produto=produto,
                quantidade=quantidade,
                data=data,
                servidor_almoxarifado=servidor,
                observacoes=observacoes,
            )
            rec = movimentacao_para_dict(mov)
            rec["nota_fiscal"] = mov.nota_fiscal_filename
        else:
            mov = srv.livro.registrar_entrada(
                produto=produto,
                quantidade=quantidade,
                data=data,
                servidor_almoxarifado=servidor,
                observacoes=observacoes,
            )
            rec = movimentacao_para_dict(mov)
    _display_table(rec, title="Entrada Registrada")


@app.command("saida")
def cmd_saida(
    codigo: Optional[str] = typer.Option(None, help="Código (ou id) do produto"),
    quantidade: Optional[str] = typer.Option(None, help="Quantidade (inteiro > 0)"),
    servidor: Optional[str] = typer.Option(None, help="Servidor do almoxarifado"),
    setor: Optional[str] = typer.Option(None, help="Setor responsável"),
    retirada: Optional[str] = typer.Option(None, help="Servidor que retirou"),
    data: Optional[str] = typer.Option(None, help="YYYY-MM-DD ou DD/MM/AAAA (padrão: agora)"),
    observacoes: Optional[str] = typer.Option(None, "--obs", help="Observações"),
    db_path: str = DB_OPTION,
):
    """Registra uma saída. Sem --codigo, pergunta os dados no terminal."""
    srv = abrir_servicos(db_path)
    with _tratando_erros():
        if codigo is None:
            rec = run_saida_unica(db_path=db_path, servicos=srv)
        else:
            mov = srv.livro.registrar_saida(
                produto_id=_busca_produto(srv, codigo).id,
                quantidade=quantidade,
                data=data,
                servidor_almoxarifado=servidor,
                setor_responsavel=setor,
                servidor_retirada=retirada,
                observacoes=observacoes,
            )
            rec = movimentacao_para_dict(mov)
    _display_table(rec, title="Saída Registrada")


@app.command("entrada-lotes")
def cmd_entrada_lotes(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Caminho do XLSX de ENTRADAS"),
    db_path: str = DB_OPTION,
):
    """Registra entradas em lote a partir de um XLSX."""
    with _tratando_erros():
        info = run_entrada_lote(str(path), db_path=db_path)
    _display_table(info, title="Processamento de Entradas em Lote")


@app.command("saida-lotes")
def cmd_saida_lotes(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Caminho do XLSX de SAÍDAS"),
    db_path: str = DB_OPTION,
):
    """Registra saídas em lote a partir de um XLSX."""
    with _tratando_erros():
        info = run_saida_lote(str(path), db_path=db_path)
    _display_table(info, title="Processamento de Saídas em Lote")


def _criterios(
    srv: Servicos,
    busca: Optional[str],
    tipo: Optional[str],
    inicio: Optional[str],
    fim: Optional[str],
    setor: Optional[str],
    produto: Optional[str],
) -> Dict[str, Any]:
    return {
        "busca": busca,
        "tipo": tipo,
        "data_inicio": inicio,
        "data_fim": fim,
        "setor": setor,
        "produto_id": _busca_produto(srv, produto).id if produto else None,
    }


@app.command("historico")
def cmd_historico(
    busca: Optional[str] = typer.Option(None, help="Trecho da descrição do produto"),
    tipo: Optional[str] = typer.Option(None, help="entrada | saida | all"),
    inicio: Optional[str] = typer.Option(None, help="Data inicial (YYYY-MM-DD)"),
    fim: Optional[str] = typer.Option(None, help="Data final, inclusiva (YYYY-MM-DD)"),
    setor: Optional[str] = typer.Option(None, help="Setor responsável"),
    produto: Optional[str] = typer.Option(None, help="Código ou id do produto"),
    limite: Optional[int] = typer.Option(None, help="Máximo de registros"),
    db_path: str = DB_OPTION,
):
    """Consulta o livro de movimentações (mais recentes primeiro)."""
    srv = abrir_servicos(db_path)
    with _tratando_erros():
        movs = srv.livro.consultar(limite=limite, **_criterios(srv, busca, tipo, inicio, fim, setor, produto))
    _display_table([movimentacao_para_dict(m) for m in movs], title="Histórico de Movimentações")


@app.command("dashboard")
def cmd_dashboard(
    limite: int = typer.Option(DEFAULTS.limite_recentes, help="Itens nas listas"),
    db_path: str = DB_OPTION,
):
    """Estatísticas gerais, movimentações recentes e estoque baixo."""
    srv = abrir_servicos(db_path)
    with _tratando_erros():
        painel = estatisticas_painel(srv)
        recentes = movimentacoes_recentes(srv, limite)
        baixos = produtos_estoque_baixo(srv, limite)
    _resumo(painel, "Painel")
    _display_table([movimentacao_para_dict(m) for m in recentes], title="Movimentações Recentes")
    _display_table([_produto_linha(p, srv) for p in baixos], title="Estoque Baixo")


# -----------------------
# relatórios
# -----------------------

rel_app = typer.Typer(help="Relatórios de estoque")
app.add_typer(rel_app, name="rel")


@rel_app.command("estoque")
def rel_estoque(db_path: str = DB_OPTION):
    """Relatório de estoque por código."""
    srv = abrir_servicos(db_path)
    _display_table(relatorio_estoque(srv), title="Relatório de Estoque")


@rel_app.command("historico")
def rel_historico(
    tipo: Optional[str] = typer.Option(None, help="entrada | saida | all"),
    inicio: Optional[str] = typer.Option(None, help="Data inicial (YYYY-MM-DD)"),
    fim: Optional[str] = typer.Option(None, help="Data final, inclusiva (YYYY-MM-DD)"),
    busca: Optional[str] = typer.Option(None, help="Trecho da descrição do produto"),
    setor: Optional[str] = typer.Option(None, help="Setor responsável"),
    db_path: str = DB_OPTION,
):
    """Relatório do histórico de movimentações com resumo do período."""
    srv = abrir_servicos(db_path)
    with _tratando_erros():
        res = relatorio_historico(srv, **_criterios(srv, busca, tipo, inicio, fim, setor, None))
    _display_table(res, title="Histórico de Movimentações")


@rel_app.command("excel")
def rel_excel(
    path: str = typer.Argument(..., help="Arquivo .xlsx de destino"),
    db_path: str = DB_OPTION,
):
    """Exporta produtos e movimentações para Excel."""
    srv = abrir_servicos(db_path)
    with _tratando_erros():
        info = exportar_excel(srv, path)
    typer.echo(f">> Excel gerado em {info['arquivo']} "
               f"({info['produtos']} produtos, {info['movimentacoes']} movimentações).")


# -----------------------
# nota fiscal
# -----------------------

nota_app = typer.Typer(help="Nota fiscal (PDF) dos produtos")
app.add_typer(nota_app, name="nota")


@nota_app.command("anexar")
def cmd_nota_anexar(
    ref: str = typer.Argument(..., help="Código ou id do produto"),
    arquivo: Path = typer.Argument(..., exists=True, dir_okay=False, help="PDF da nota fiscal"),
    db_path: str = DB_OPTION,
):
    """Anexa (ou substitui) a nota fiscal do produto."""
    srv = abrir_servicos(db_path)
    with _tratando_erros():
        p = _busca_produto(srv, ref)
        nf = anexar_nota_fiscal(srv, p.id, arquivo.read_bytes(), arquivo.name)
    typer.echo(f">> Nota fiscal {nf.filename} anexada ao produto {p.codigo}.")


@nota_app.command("baixar")
def cmd_nota_baixar(
    ref: str = typer.Argument(..., help="Código ou id do produto"),
    destino: Optional[Path] = typer.Option(None, help="Arquivo ou diretório de destino"),
    db_path: str = DB_OPTION,
):
    """Grava a nota fiscal do produto em disco."""
    srv = abrir_servicos(db_path)
    with _tratando_erros():
        arq = obter_nota_fiscal(srv, _busca_produto(srv, ref).id)
    alvo = destino or Path(arq.filename)
    if alvo.is_dir():
        alvo = alvo / arq.filename
    alvo.write_bytes(arq.conteudo)
    typer.echo(f">> {arq.tamanho} bytes gravados em {alvo}")


@nota_app.command("remover")
def cmd_nota_remover(
    ref: str = typer.Argument(..., help="Código ou id do produto"),
    db_path: str = DB_OPTION,
):
    """Remove a nota fiscal anexada ao produto."""
    srv = abrir_servicos(db_path)
    with _tratando_erros():
        p = _busca_produto(srv, ref)
        remover_nota_fiscal(srv, p.id)
    typer.echo(f">> Nota fiscal removida do produto {p.codigo}.")


# -----------------------
# formulários
# -----------------------

formulario_app = typer.Typer(help="Formulários em PDF")
app.add_typer(formulario_app, name="formulario")


@formulario_app.command("list")
def cmd_formulario_list(db_path: str = DB_OPTION):
    """Lista os formulários (upload mais recente primeiro)."""
    srv = abrir_servicos(db_path)
    with _tratando_erros():
        rows = listar_formularios(srv)
    _display_table(rows, title="Formulários")


@formulario_app.command("anexar")
def cmd_formulario_anexar(
    arquivo: Path = typer.Argument(..., exists=True, dir_okay=False, help="PDF do formulário"),
    data_inicial: Optional[str] = typer.Option(None, help="Início da vigência (YYYY-MM-DD)"),
    data_final: Optional[str] = typer.Option(None, help="Fim da vigência (YYYY-MM-DD)"),
    db_path: str = DB_OPTION,
):
    """Guarda um formulário em PDF."""
    srv = abrir_servicos(db_path)
    with _tratando_erros():
        file_id = anexar_formulario(srv, arquivo.read_bytes(), arquivo.name, data_inicial, data_final)
    typer.echo(f">> Formulário salvo com sucesso (id {file_id}).")


@formulario_app.command("baixar")
def cmd_formulario_baixar(
    file_id: str = typer.Argument(..., help="Id do formulário"),
    destino: Optional[Path] = typer.Option(None, help="Arquivo ou diretório de destino"),
    db_path: str = DB_OPTION,
):
    """Grava o formulário em disco."""
    srv = abrir_servicos(db_path)
    with _tratando_erros():
        arq = obter_formulario(srv, file_id)
    alvo = destino or Path(arq.filename)
    if alvo.is_dir():
        alvo = alvo / arq.filename
    alvo.write_bytes(arq.conteudo)
    typer.echo(f">> {arq.tamanho} bytes gravados em {alvo}")


@formulario_app.command("remover")
def cmd_formulario_remover(
    file_id: str = typer.Argument(..., help="Id do formulário"),
    db_path: str = DB_OPTION,
):
    """Apaga um formulário."""
    srv = abrir_servicos(db_path)
    with _tratando_erros():
        remover_formulario(srv, file_id)
    typer.echo(">> Formulário removido.")


# Entry point opcional:
def main():
    app()


if __name__ == "__main__":
    main()
