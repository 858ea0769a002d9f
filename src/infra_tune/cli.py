"""Command line interface.

Provides two commands:
- optimize: calculate optimized settings, optionally writing Hiera files
- current: show the settings currently defined in the classifier and Hiera

Collaborators are loaded from a backend import string, module:attribute.
The attribute is either a Backend or a callable taking
(CalculatorOptions, RuntimeContext) and returning one.
"""

from __future__ import annotations

import importlib
from pathlib import Path
from typing import Optional, Tuple

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from infra_tune.core.context import RuntimeContext
from infra_tune.core.errors import TuneError
from infra_tune.core.serialization import to_plain
from infra_tune.core.types import CollectedNode, NodeClassification
from infra_tune.core.units import parse_size_mb
from infra_tune.inventory.declared import DEFAULT_PE_CONF, PeConfTopology
from infra_tune.logging_setup import configure
from infra_tune.output.hiera import HieraWriter
from infra_tune.providers.base import Backend, CalculatorOptions
from infra_tune.providers.inventory import InventoryResourceProvider, ProviderComponentLookup
from infra_tune.topology.classify import ComponentLookup, MappingComponentLookup, classify
from infra_tune.topology.merge import TopologyMerger
from infra_tune.tuning.capacity import CapacityEstimate, CapacityEstimator
from infra_tune.tuning.engine import CurrentReport, TuneConfig, TuneEngine, TuneResult, build_engine

app = typer.Typer(
    name="infra-tune",
    help="Inspect infrastructure and output optimized settings",
    no_args_is_help=True,
)
console = Console()


def load_backend(import_path: str, options: CalculatorOptions, context: RuntimeContext) -> Backend:
    """Import a backend from a module:attribute string."""
    module_name, _, attr = import_path.partition(":")
    if not module_name or not attr:
        raise typer.BadParameter(f"Backend must look like module:attribute, got {import_path}")
    target = getattr(importlib.import_module(module_name), attr)
    backend = target if isinstance(target, Backend) else target(options, context)
    if not isinstance(backend, Backend):
        raise typer.BadParameter(f"{import_path} did not produce a Backend")
    return backend


def resolve_topology(
    context: RuntimeContext,
    pe_conf: Path,
    backend_path: str,
    options: CalculatorOptions,
    inventory: Optional[Path] = None,
    local: bool = False,
) -> Tuple[Backend, InventoryResourceProvider, ComponentLookup, NodeClassification]:
    """
    Merge sources, build the provider, and classify nodes.

    Conflicting overrides fail before the backend is loaded or any source is read.
    """
    declared = PeConfTopology(pe_conf, certname=context.certname)
    merger = TopologyMerger(context, declared, inventory_path=inventory, use_local=local)
    backend = load_backend(backend_path, options, context)
    merged = merger.merge()

    provider = InventoryResourceProvider(store=merged.nodes, context=context, fallback=backend.provider)
    lookup: ComponentLookup = ProviderComponentLookup(provider)
    if merged.components is not None:
        lookup = MappingComponentLookup(merged.components, fallback=lookup)

    classification = classify(merged.roles.puppet_master_host, lookup)
    return backend, provider, lookup, classification


def _capacity_factory(backend: Backend):
    def factory() -> CapacityEstimator:
        if backend.metrics is None or backend.formulas is None:
            raise TuneError("The backend does not provide metrics and formulas for --estimate")
        return CapacityEstimator(backend.formulas, backend.metrics)

    return factory


def _print_summary(classification: NodeClassification) -> None:
    console.print(f"[bold]### Puppet Infrastructure Summary: Found a {classification.summary()}[/bold]\n")


def _print_node(node: CollectedNode) -> None:
    console.print(
        f"## Found: {node.resources.cpu} CPU(s) / {node.resources.ram_mb} MB RAM "
        f"for {node.role_label} {node.hostname}"
    )
    if node.settings:
        console.print(
            f"## Specify the following optimized settings in Hiera in nodes/{node.hostname}.yaml\n"
        )
        console.print(f"[green]{escape(yaml.safe_dump(to_plain(node.settings), sort_keys=True))}[/green]")

    totals = node.totals
    for key, label in (("CPU", "CPU"), ("RAM", "RAM")):
        if key in totals:
            total, used = totals[key]["total"], totals[key]["used"]
            console.print(f"## {label} Summary: Total/Used/Free: {total}/{used}/{total - used} for {node.hostname}")
    if "MB_PER_JRUBY" in totals:
        console.print(
            f"## JVM Summary: Using {totals['MB_PER_JRUBY']} MB per Puppet Server JRuby for {node.hostname}"
        )
    console.print()


def _print_capacity(estimate: Optional[CapacityEstimate]) -> None:
    if estimate is None:
        return
    console.print(
        f"[bold]### Puppet Infrastructure Estimated Capacity Summary: "
        f"Found: Active Nodes: {estimate.active_nodes}[/bold]\n"
    )
    for line in estimate.explanation():
        console.print(f"## {line}")
    console.print()


def render_result(result: TuneResult) -> None:
    _print_summary(result.classification)
    for node in result.nodes:
        _print_node(node)
    if result.common:
        console.print("## Specify the following optimized settings in Hiera in common.yaml\n")
        console.print(escape(yaml.safe_dump(to_plain(result.common), sort_keys=True)))
    _print_capacity(result.capacity)


def render_current(report: CurrentReport) -> None:
    _print_summary(report.classification)
    for node in report.nodes:
        if not node.settings:
            console.print(f"## Default settings found for {node.role_label} {node.hostname}\n")
            continue
        console.print(f"## Current settings for {node.role_label} {node.hostname}\n")
        table = Table("Setting", "Value")
        for name, value in sorted(node.settings.items()):
            table.add_row(name, escape(str(value)))
        console.print(table)
        if node.duplicates:
            console.print("## Duplicate settings found in the Classifier and in Hiera:\n")
            console.print("[yellow]" + escape("\n".join(node.duplicates)) + "[/yellow]\n")
            console.print("## Define settings in Hiera (preferred) or the Classifier, but not both.\n")
    _print_capacity(report.capacity)


@app.command("optimize")
def optimize(
    backend: str = typer.Option(..., "--backend", envvar="INFRA_TUNE_BACKEND", help="Backend as module:attribute"),
    common: bool = typer.Option(False, "--common", help="Extract common settings from node-specific settings"),
    estimate: bool = typer.Option(False, "--estimate", help="Output estimated capacity summary"),
    force: bool = typer.Option(False, "--force", help="Do not enforce minimum system requirements"),
    hiera: Optional[Path] = typer.Option(None, "--hiera", help="Output Hiera YAML files to the specified directory"),
    inventory: Optional[Path] = typer.Option(None, "--inventory", help="Use a YAML file to define infrastructure nodes"),
    local: bool = typer.Option(False, "--local", help="Query the local system to define a monolithic master node"),
    memory_per_jruby: Optional[str] = typer.Option(
        None, "--memory-per-jruby", help="Amount of RAM to allocate for each Puppet Server JRuby"
    ),
    memory_reserved_for_os: Optional[str] = typer.Option(
        None, "--memory-reserved-for-os", help="Amount of RAM to reserve for the operating system"
    ),
    run_interval: int = typer.Option(1800, "--run-interval", help="Agent run interval in seconds"),
    pe_conf: Path = typer.Option(DEFAULT_PE_CONF, "--pe-conf", help="Path to pe.conf"),
    certname: Optional[str] = typer.Option(None, "--certname", help="Identity of this node"),
    debug: bool = typer.Option(False, "--debug", help="Enable logging of debug information"),
) -> None:
    """Calculate optimized settings for every infrastructure node."""
    configure(debug)
    try:
        context = RuntimeContext.from_environ(certname)
        options = CalculatorOptions(
            memory_per_jruby_mb=parse_size_mb(memory_per_jruby),
            memory_reserved_for_os_mb=parse_size_mb(memory_reserved_for_os),
        )
        config = TuneConfig(common=common, estimate=estimate, force=force, run_interval_seconds=run_interval)

        loaded, provider, lookup, classification = resolve_topology(
            context, pe_conf, backend, options, inventory=inventory, local=local
        )
        engine: TuneEngine = build_engine(
            classification, lookup, provider, loaded.calculator, config, _capacity_factory(loaded)
        )

        writer = HieraWriter(hiera) if hiera is not None else None
        if writer is not None:
            writer.prepare()

        result = engine.optimize()
        render_result(result)

        if writer is not None:
            for path in writer.write(result.nodes, result.common):
                console.print(f"## Wrote Hiera YAML file: {path}\n")
    except TuneError as exc:
        console.print(f"[red]Error: {escape(str(exc))}[/red]")
        raise typer.Exit(1)


@app.command("current")
def current(
    backend: str = typer.Option(..., "--backend", envvar="INFRA_TUNE_BACKEND", help="Backend as module:attribute"),
    estimate: bool = typer.Option(False, "--estimate", help="Output estimated capacity summary"),
    run_interval: int = typer.Option(1800, "--run-interval", help="Agent run interval in seconds"),
    pe_conf: Path = typer.Option(DEFAULT_PE_CONF, "--pe-conf", help="Path to pe.conf"),
    certname: Optional[str] = typer.Option(None, "--certname", help="Identity of this node"),
    debug: bool = typer.Option(False, "--debug", help="Enable logging of debug information"),
) -> None:
    """Output current settings and exit."""
    configure(debug)
    try:
        context = RuntimeContext.from_environ(certname)
        config = TuneConfig(estimate=estimate, run_interval_seconds=run_interval)
        loaded, provider, lookup, classification = resolve_topology(
            context, pe_conf, backend, CalculatorOptions()
        )
        engine = build_engine(
            classification, lookup, provider, loaded.calculator, config, _capacity_factory(loaded)
        )
        render_current(engine.current())
    except TuneError as exc:
        console.print(f"[red]Error: {escape(str(exc))}[/red]")
        raise typer.Exit(1)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
