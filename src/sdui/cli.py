"""
Command-line interface.

- validate: load a document and report what would not build
- tree: print a page's rendered node tree
- eval: evaluate a binding expression
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.tree import Tree

from sdui.actions.base import ActionFlow
from sdui.actions.kinds import UnsupportedAction
from sdui.errors import ConfigurationError, ExpressionError
from sdui.expr.expr_or import ExprOr, is_binding
from sdui.expr.scope import ScopeContext
from sdui.expr.stdlib import STD_FUNCTIONS
from sdui.runtime.context import RuntimeContext
from sdui.settings import RuntimeSettings, load_settings
from sdui.specs.config import AppConfig
from sdui.widgets.node import ErrorNode, VirtualNode
from sdui.widgets.render import RenderedNode

console = Console()

app = typer.Typer(
    help="sdui - inspect and validate server-driven UI documents",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    if value:
        from sdui import __version__

        typer.echo(f"sdui {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version",
    ),
    settings_file: Path | None = typer.Option(  # noqa: B008
        None,
        "--settings",
        "-s",
        help="Path to sdui.toml (default: ./sdui.toml)",
    ),
) -> None:
    """sdui CLI main callback for global options."""
    settings = _load_settings(settings_file)
    ctx.obj = settings
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")


def _load_settings(path: Path | None) -> RuntimeSettings:
    try:
        return load_settings(path)
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


def _load_runtime(config_path: Path, settings: RuntimeSettings | None) -> RuntimeContext:
    """Load the document and build a runtime, exiting on configuration errors."""
    try:
        config = AppConfig.from_file(config_path)
        return RuntimeContext.create(config, settings)
    except ConfigurationError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=1)


def _problems(root: VirtualNode, where: str) -> list[str]:
    found: list[str] = []
    for node in root.walk():
        if isinstance(node, ErrorNode):
            found.append(f"{where}: {node.message}")
        for event, flow in node.events.items():
            found.extend(_unsupported(flow, f"{where}: {node.type}.{event}"))
    return found


def _unsupported(flow: ActionFlow, where: str) -> list[str]:
    return [f"{where}: {a.message}" for a in flow.walk() if isinstance(a, UnsupportedAction)]


# =============================================================================
# Commands
# =============================================================================


@app.command(name="validate")
def validate_command(
    ctx: typer.Context,
    config_path: Path = typer.Argument(..., help="Path to the app document (JSON)"),  # noqa: B008
    strict: bool = typer.Option(False, "--strict", help="Exit 1 on error nodes or unsupported actions"),
) -> None:
    """
    Load a document, initialize app state and build every page and component.

    Reports error nodes and unsupported actions. Exits 1 on configuration
    errors (and on any problem with --strict).
    """
    runtime = _load_runtime(config_path, ctx.obj)
    problems: list[str] = []

    for page_id, page in runtime.config.pages.items():
        if page.root is not None:
            problems.extend(_problems(runtime.registry.build(page.root), f"page {page_id}"))
    for component_id, component in runtime.config.components.items():
        if component.root is not None:
            problems.extend(_problems(runtime.registry.build(component.root), f"component {component_id}"))

    for problem in problems:
        console.print(f"[yellow]warning[/yellow] {problem}")

    summary = (
        f"{len(runtime.config.pages)} page(s), {len(runtime.config.components)} component(s), "
        f"{len(runtime.config.rest.resources)} API model(s)"
    )
    if problems:
        console.print(f"[yellow]{len(problems)} problem(s)[/yellow] in {summary}")
        if strict:
            raise typer.Exit(code=1)
    else:
        console.print(f"[green]OK[/green] {summary}")


@app.command(name="tree")
def tree_command(
    ctx: typer.Context,
    config_path: Path = typer.Argument(..., help="Path to the app document (JSON)"),  # noqa: B008
    page_id: str | None = typer.Option(None, "--page", "-p", help="Page id (default: initialRoute)"),
    args: list[str] = typer.Option([], "--arg", "-a", help="Page argument as name=json"),  # noqa: B008
) -> None:
    """
    Render a page and print its node tree.

    Examples:
        sdui tree app.json
        sdui tree app.json --page detail --arg id=7
    """
    runtime = _load_runtime(config_path, ctx.obj)
    target = page_id or runtime.config.initial_route
    if target is None or runtime.config.get_page(target) is None:
        typer.echo(f"Unknown page: {target}", err=True)
        raise typer.Exit(code=1)

    page = runtime.open_page(target, _parse_vars(args))
    tree = Tree(f"[bold]{target}[/bold]")
    _add_rendered(tree, page.render())
    console.print(tree)


def _add_rendered(parent: Tree, node: RenderedNode) -> None:
    label = node.type
    if node.ref_name:
        label += f" [cyan]#{node.ref_name}[/cyan]"
    if node.error:
        label += f" [red]{node.error}[/red]"
    elif not node.visible:
        label += " [dim](hidden)[/dim]"
    elif node.props:
        label += f" [dim]{json.dumps(node.props, default=str)}[/dim]"
    if node.events:
        label += f" [magenta]{', '.join(sorted(node.events))}[/magenta]"

    branch = parent.add(label)
    for slot, children in node.slots.items():
        target = branch if slot == "children" else branch.add(f"[italic]{slot}[/italic]")
        for child in children:
            _add_rendered(target, child)


@app.command(name="eval")
def eval_command(
    expression: str = typer.Argument(..., help="Expression, bare or wrapped in @{...}"),
    variables: list[str] = typer.Option([], "--var", help="Variable as name=json"),  # noqa: B008
) -> None:
    """
    Evaluate a binding expression against variables and the standard functions.

    Examples:
        sdui eval "1 + 2"
        sdui eval "@{concat(name, '!')}" --var 'name="hi"'
    """
    source = expression if is_binding(expression) else f"@{{{expression}}}"
    scope = ScopeContext("root", {**STD_FUNCTIONS, **_parse_vars(variables)})
    expr = ExprOr.from_value(source)
    assert expr is not None
    try:
        result = expr.evaluate(scope, strict=True)
    except ExpressionError as e:
        typer.echo(f"Expression error: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(result, default=str))


def _parse_vars(pairs: list[str]) -> dict[str, Any]:
    """Parse ``name=json`` pairs. Values that are not JSON are taken as text."""
    parsed: dict[str, Any] = {}
    for pair in pairs:
        name, sep, raw = pair.partition("=")
        if not sep or not name:
            typer.echo(f"Expected name=value, got {pair!r}", err=True)
            raise typer.Exit(code=2)
        try:
            parsed[name] = json.loads(raw)
        except ValueError:
            parsed[name] = raw
    return parsed


def main() -> None:
    app(standalone_mode=True)


if __name__ == "__main__":
    main()
