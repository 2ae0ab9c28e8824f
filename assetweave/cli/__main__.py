"""Weave CLI - Main Entry Point.

The `weave` command inspects what the optimizer does with a request.

Commands:
    merge    - Print the merged manifest of the given entries
    resolve  - Print the manifest after shared dependency resolution
    validate - Check the resolved manifest's graph invariants
    order    - Print the assembly order of the resolved manifest
    assemble - Fetch and concatenate the resolved assets
"""

import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import click

from . import __version__, __cli_name__
from .colors import (
    success, error, warning, dim,
    section, kv, bullet,
    _CHECK, _CROSS,
)
from ..assembly import build_asset_graph
from ..config import ConfigError, ConfigLoader, WeaveConfig
from ..errors import WeaveError
from ..fingerprint import manifest_fingerprint
from ..manifest import Manifest
from ..optimizer import AssetOptimizer
from ..store import FilesystemAssetSource, FilesystemManifestStore
from ..validator import validate_manifest


# ═══════════════════════════════════════════════════════════════════════════
# Custom Click help formatter
# ═══════════════════════════════════════════════════════════════════════════


class WeaveGroup(click.Group):
    """Click group subclass with aligned command listing."""

    def format_commands(
        self, ctx: click.Context, formatter: click.HelpFormatter
    ) -> None:
        commands = []
        for subcommand in self.list_commands(ctx):
            cmd = self.get_command(ctx, subcommand)
            if cmd is None or cmd.hidden:
                continue
            commands.append((subcommand, cmd.get_short_help_str(limit=48)))

        if commands:
            with formatter.section(click.style("Commands", fg="cyan", bold=True)):
                max_len = max(len(c[0]) for c in commands) + 2
                for name, help_text in commands:
                    styled_name = click.style(name.ljust(max_len), fg="green")
                    formatter.write(f"  {styled_name} {help_text}\n")


@click.group(cls=WeaveGroup)
@click.version_option(version=__version__, prog_name=__cli_name__)
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.option('--quiet', '-q', is_flag=True, help='Minimal output')
@click.option(
    '--config', 'config_paths', multiple=True,
    type=click.Path(exists=True, dir_okay=False),
    help='YAML config file (repeatable, later files win)',
)
@click.option('--env-file', type=click.Path(dir_okay=False), help='.env file with WEAVE_* settings')
@click.pass_context
def cli(ctx, verbose: bool, quiet: bool, config_paths: Tuple[str, ...], env_file: Optional[str]):
    """Shared-dependency optimizer diagnostics.

    \b
    Quick start:
      weave merge feature-a feature-b -m build/manifests
      weave resolve feature-a feature-b -m build/manifests
      weave assemble feature-a feature-b -m build/manifests -a build/assets
    """
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet
    ctx.obj['config_paths'] = list(config_paths)
    ctx.obj['env_file'] = env_file


# ============================================================================
# Helpers
# ============================================================================

manifests_option = click.option(
    '--manifests', '-m', 'manifest_dir',
    type=click.Path(file_okay=False),
    help='Directory of <entry>.json manifests (default: config manifest_dir)',
)


def _fail(exc: Exception) -> None:
    if isinstance(exc, WeaveError):
        error(exc.format_error())
    else:
        error(f"{_CROSS} {exc}")
    sys.exit(1)


def _load_config(ctx, **overrides) -> WeaveConfig:
    return ConfigLoader.load(
        paths=ctx.obj['config_paths'] or None,
        env_file=ctx.obj['env_file'],
        overrides=overrides,
    )


def _optimizer(config: WeaveConfig) -> AssetOptimizer:
    if not config.manifest_dir:
        raise click.UsageError("No manifest directory: pass --manifests or set manifest_dir")

    fetch = FilesystemAssetSource(config.asset_dir) if config.asset_dir else None
    return AssetOptimizer(FilesystemManifestStore(config.manifest_dir), fetch, config=config)


def _echo_manifest(manifest: Manifest) -> None:
    click.echo(json.dumps(manifest.to_dict(), indent=2))


def _summary(ctx, title: str, manifest: Manifest) -> None:
    if ctx.obj['quiet']:
        return
    section(title)
    kv("Assets", str(len(manifest.assets)))
    kv("Modules", str(len(manifest.modules)))
    kv("Aliases", str(len(manifest.aliases)))
    kv("Fingerprint", manifest_fingerprint(manifest))


# ============================================================================
# Commands
# ============================================================================

@cli.command()
@click.argument('entries', nargs=-1, required=True)
@manifests_option
@click.pass_context
def merge(ctx, entries: Tuple[str, ...], manifest_dir: Optional[str]):
    """
    Print the merged manifest of ENTRIES.

    Examples:
      weave merge feature-a feature-b -m build/manifests
    """
    try:
        config = _load_config(ctx, manifest_dir=manifest_dir)
        manifest = _optimizer(config).merge(list(entries))
    except (WeaveError, ConfigError) as e:
        _fail(e)

    _echo_manifest(manifest)
    _summary(ctx, "Merged", manifest)


@cli.command()
@click.argument('entries', nargs=-1, required=True)
@manifests_option
@click.pass_context
def resolve(ctx, entries: Tuple[str, ...], manifest_dir: Optional[str]):
    """
    Print the manifest after the resolver pipeline.

    Examples:
      weave resolve feature-a feature-b -m build/manifests
    """
    try:
        config = _load_config(ctx, manifest_dir=manifest_dir)
        optimizer = _optimizer(config)
        merged = optimizer.merge(list(entries))
        manifest = optimizer.resolve(list(entries))
    except (WeaveError, ConfigError) as e:
        _fail(e)

    _echo_manifest(manifest)
    _summary(ctx, "Resolved", manifest)

    if not ctx.obj['quiet']:
        removed = [asset_id for asset_id in merged.assets if asset_id not in manifest.assets]
        for asset_id in removed:
            label = "aliased" if asset_id in manifest.aliases else "pruned"
            bullet(f"{asset_id} ({label})")


@cli.command()
@click.argument('entries', nargs=-1, required=True)
@manifests_option
@click.option('--merged-only', is_flag=True, help='Validate the merged manifest, skip resolvers')
@click.option('--json', 'as_json', is_flag=True, help='Print the report as JSON')
@click.pass_context
def validate(ctx, entries: Tuple[str, ...], manifest_dir: Optional[str], merged_only: bool, as_json: bool):
    """
    Check the manifest of ENTRIES for graph errors.

    Exits with status 1 when the report has errors.

    Examples:
      weave validate feature-a feature-b -m build/manifests
      weave validate feature-a --merged-only --json
    """
    try:
        config = _load_config(ctx, manifest_dir=manifest_dir)
        # Report dangling aliases instead of raising on them
        optimizer = _optimizer(dataclasses.replace(config, validate_aliases=False))
        if merged_only:
            manifest = optimizer.merge(list(entries))
        else:
            manifest = optimizer.resolve(list(entries))
    except (WeaveError, ConfigError) as e:
        _fail(e)

    report = validate_manifest(manifest)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    elif report.has_errors():
        error(report.format_report())
    elif report.warnings:
        warning(report.format_report())
    elif not ctx.obj['quiet']:
        success(f"{_CHECK} {len(manifest.assets)} assets, {len(manifest.aliases)} aliases: valid")

    if report.has_errors():
        sys.exit(1)


@cli.command()
@click.argument('entries', nargs=-1, required=True)
@manifests_option
@click.option('--dot', is_flag=True, help='Print the asset graph in DOT format instead')
@click.pass_context
def order(ctx, entries: Tuple[str, ...], manifest_dir: Optional[str], dot: bool):
    """
    Print the order in which ENTRIES' assets would be assembled.

    Examples:
      weave order feature-a feature-b -m build/manifests
      weave order feature-a --dot | dot -Tsvg > graph.svg
    """
    try:
        config = _load_config(ctx, manifest_dir=manifest_dir)
        manifest = _optimizer(config).resolve(list(entries))
        graph = build_asset_graph(manifest)
        ordered: List[str] = graph.topological_sort()
    except (WeaveError, ConfigError) as e:
        _fail(e)

    if dot:
        click.echo(graph.to_dot())
        return

    for asset_id in ordered:
        click.echo(asset_id)

    if not ctx.obj['quiet']:
        aliased = [asset_id for asset_id in ordered if asset_id in manifest.aliases]
        dim(f"{len(ordered)} assets ({len(aliased)} aliases)")


@cli.command()
@click.argument('entries', nargs=-1, required=True)
@manifests_option
@click.option(
    '--assets', '-a', 'asset_dir',
    type=click.Path(file_okay=False),
    help='Directory holding asset files (default: config asset_dir)',
)
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Write the bundle to a file')
@click.option('--alias-shims', is_flag=True, default=None, help='Emit alias registration fragments')
@click.pass_context
def assemble(
    ctx,
    entries: Tuple[str, ...],
    manifest_dir: Optional[str],
    asset_dir: Optional[str],
    output: Optional[str],
    alias_shims: Optional[bool],
):
    """
    Resolve ENTRIES and concatenate their assets.

    Examples:
      weave assemble feature-a feature-b -m build/manifests -a build/assets
      weave assemble feature-a -m build/manifests -a build/assets -o bundle.js
    """
    try:
        config = _load_config(
            ctx,
            manifest_dir=manifest_dir,
            asset_dir=asset_dir,
            emit_alias_shims=alias_shims,
        )
        if not config.asset_dir:
            raise click.UsageError("No asset directory: pass --assets or set asset_dir")
        payload = asyncio.run(_optimizer(config).compile_script(list(entries)))
    except (WeaveError, ConfigError) as e:
        _fail(e)

    if output:
        Path(output).write_text(payload, encoding="utf-8")
        if not ctx.obj['quiet']:
            success(f"{_CHECK} Wrote {output}")
            kv("Size", f"{len(payload)} chars")
    else:
        click.echo(payload)


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == '__main__':
    main()
