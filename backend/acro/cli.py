import json
import time

import click
from flask import current_app
from flask.cli import AppGroup

from acro import db

delectus_cli = AppGroup('delectus', help='Run and inspect the Delectus game orchestrator.')


@delectus_cli.command('run')
@click.option('--interval', type=float, default=None, help='Seconds between ticks (default: DELECTUS_TICK_SEC).')
def run_command(interval):
    """Run the orchestrator in the foreground until interrupted."""
    from acro.services.games.scheduler import run_delectus
    run_delectus(current_app._get_current_object(), interval=interval, sleep=time.sleep)


@delectus_cli.command('tick')
def tick_command():
    """Process every playing game once."""
    from acro.services.games.scheduler import tick
    processed = tick()
    click.echo(f'Processed {processed} game(s)')


@delectus_cli.command('status')
def status_command():
    """Print counts of running and waiting games."""
    from acro.services.games.scheduler import delectus_status
    click.echo(json.dumps(delectus_status()))


@click.command('db-reset')
def db_reset_command():
    """Drops and recreates the database."""
    db.drop_all()
    db.create_all()
    click.echo('Database has been reset!')
