"""
Flask CLI commands for database management.

Commands:
- flask init-db: Create missing tables
- flask seed-catalog: Load the initial catalogue into an empty database
- flask export-dump: Write a JSON backup of products, clients, sales and settings
"""

import json

import click
from flask import current_app

from posledger.database import create_all, get_engine, get_session
from posledger.services import factory
from posledger.services.backup_service import build_dump, seed_catalog


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create every table that does not exist yet."""
        create_all(get_engine())
        click.echo(click.style('✅ Tablas creadas', fg='green'))

    @app.cli.command('seed-catalog')
    def seed_catalog_command():
        """Insert the initial bakery catalogue if there are no products."""
        session = get_session()
        try:
            inserted = seed_catalog(session)
        except Exception as e:
            session.rollback()
            click.echo(click.style(f'❌ Error al sembrar el catálogo: {str(e)}', fg='red'))
            raise SystemExit(1)

        if inserted:
            click.echo(click.style(f'✅ {inserted} productos cargados', fg='green'))
        else:
            click.echo('El catálogo ya tiene productos, no se cargó nada.')

    @app.cli.command('export-dump')
    @click.option('--output', '-o', type=click.Path(dir_okay=False, writable=True), default=None,
                  help='File to write; prints to stdout when omitted')
    def export_dump_command(output):
        """Export a JSON backup of the whole store."""
        session = get_session()
        dump = build_dump(session, settings_service=factory.settings_service(session, current_app.config))
        text = json.dumps(dump, indent=2, ensure_ascii=False)

        if output:
            with open(output, 'w', encoding='utf-8') as fh:
                fh.write(text)
            click.echo(click.style(f'✅ Respaldo escrito en {output}', fg='green'))
        else:
            click.echo(text)
