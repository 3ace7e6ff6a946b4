# cli.py - Command line interface for ccepub
"""
ccepub CLI - Turn a course into the document models of an e-book

COMMANDS:
    ccepub export SOURCE [--by-content] [--output DIR]   Assemble and write the export
    ccepub toc SOURCE [--by-content]                     Show the table of contents
    ccepub init [--force]                                Write a ccepub.yaml template
    ccepub version                                       Show version information

SOURCE is a course folder (with content/ or pages/) or a .zip of one.

EXAMPLES:
    # Export grouped by module (falls back to content type without modules)
    ccepub export ./bio-101

    # Group by content type instead
    ccepub export ./bio-101 --by-content

    # Keep files an EPUB reader cannot show
    ccepub export bio-101.zip --export-type html --output exports/
"""

import json
from pathlib import Path
from typing import Dict, Optional

import click

from ccepub import __version__
from ccepub.config_utils import EXPORT_TYPES, EpubConfig, create_config_template, get_config
from ccepub.errors import EpubExportError
from ccepub.exporter import Exporter
from ccepub.link_rewriter import assign_export_paths, export_paths, rewrite_links
from ccepub.template import Template


# ============================================================================
# Configuration & Utilities
# ============================================================================

class ExportContext:
    """Shared context for CLI commands"""

    def __init__(self):
        self.course_root = Path.cwd()
        self._configs: Dict[Path, EpubConfig] = {}

    def config_for(self, source: Optional[Path] = None) -> EpubConfig:
        """
        Configuration for a course source.

        A course folder is its own config root. Archives (and commands
        without a source) use the current directory.
        """
        root = Path(source) if source is not None and Path(source).is_dir() else self.course_root
        if root not in self._configs:
            try:
                self._configs[root] = get_config(root)
            except EpubExportError as e:
                raise click.ClickException(e.message)
        return self._configs[root]

    def build_exporter(
        self,
        source: Path,
        sort_by_content: Optional[bool],
        export_type: Optional[str],
        title: Optional[str],
    ) -> Exporter:
        config = self.config_for(source)
        try:
            return Exporter(
                source,
                sort_by_content=config.sort_by_content if sort_by_content is None else sort_by_content,
                export_type=export_type or config.export_type,
                title=title or config.title,
            )
        except EpubExportError as e:
            raise click.ClickException(str(e))


def _json_default(value):
    if isinstance(value, Template):
        return value.to_dict()
    if isinstance(value, Path):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _echo_toc(exporter: Exporter) -> None:
    toc = exporter.toc()
    mode = "content type" if exporter.sort_by_content else "module"
    click.echo(f"Table of contents (by {mode}):")
    if not toc.content:
        click.echo("  (empty)")
    for entry in toc.content:
        click.echo(f"  - {entry['title'] or entry['reference']} ({len(entry['resource_content'])} items)")


# ============================================================================
# Click Group Setup
# ============================================================================

@click.group()
@click.pass_context
def cli(ctx):
    """
    ccepub - Course content to e-book templates

    Decode a course, group its content by module or by type, and build the
    document models an e-book renderer needs.
    """
    ctx.obj = ExportContext()


@cli.command()
@click.argument('source', type=click.Path(exists=True, path_type=Path))
@click.option('--by-content/--by-module', 'sort_by_content', default=None,
              help='Group content by type instead of by module (default: from config)')
@click.option('--export-type', type=click.Choice(EXPORT_TYPES), help='epub or html (default: from config)')
@click.option('--title', '-t', help='Course title (default: from course content)')
@click.option('--output', '-o', type=click.Path(file_okay=False, path_type=Path),
              help='Output directory (default: output_dir from the course config, or exports/ in the course)')
@click.pass_obj
def export(ctx: ExportContext, source: Path, sort_by_content: Optional[bool],
           export_type: Optional[str], title: Optional[str], output: Optional[Path]):
    """
    Assemble the export and write its document models as JSON

    Examples:
        ccepub export ./bio-101
        ccepub export ./bio-101 --by-content
        ccepub export bio-101.zip --output exports/
    """
    if output is not None:
        output_dir = output
    else:
        config = ctx.config_for(source)
        output_dir = config.course_root / (config.output_dir or "exports")

    with ctx.build_exporter(source, sort_by_content, export_type, title) as exporter:
        try:
            templates = exporter.templates()
            assign_export_paths(exporter)
            rewrite_links(exporter)
        except EpubExportError as e:
            raise click.ClickException(str(e))

        _echo_toc(exporter)

        unsupported = exporter.unsupported_files() or []
        if unsupported:
            click.echo(f"\n[!] {len(unsupported)} files left out of the export:")
            for item in unsupported:
                click.echo(f"  - {item['path']} ({item['media_type']})")

        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / f"{exporter.filename_prefix()}.json"
        payload = {
            "filename_prefix": exporter.filename_prefix(),
            "sort_by_content": exporter.sort_by_content,
            "templates": templates,
            "paths": export_paths(exporter),
            "unsupported_files": unsupported,
        }
        output_path.write_text(
            json.dumps(payload, indent=2, default=_json_default),
            encoding="utf-8",
        )

    click.echo(f"\n[ok] Wrote {output_path}")


@cli.command()
@click.argument('source', type=click.Path(exists=True, path_type=Path))
@click.option('--by-content/--by-module', 'sort_by_content', default=None,
              help='Group content by type instead of by module (default: from config)')
@click.pass_obj
def toc(ctx: ExportContext, source: Path, sort_by_content: Optional[bool]):
    """Show the table of contents an export would have"""
    with ctx.build_exporter(source, sort_by_content, None, None) as exporter:
        _echo_toc(exporter)


@cli.command()
@click.option('--force', is_flag=True, help='Overwrite an existing ccepub.yaml')
@click.pass_obj
def init(ctx: ExportContext, force: bool):
    """Write a ccepub.yaml template to the current directory"""
    config_path = ctx.course_root / "ccepub.yaml"
    if config_path.exists() and not force:
        click.echo(f"[!] {config_path.name} already exists (use --force to overwrite)")
        return
    config_path.write_text(create_config_template(), encoding="utf-8")
    click.echo(f"[ok] Created {config_path.name}")


@cli.command()
def version():
    """Show version information"""
    click.echo(f"ccepub {__version__}")


if __name__ == '__main__':
    cli()
