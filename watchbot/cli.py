"""CLI interface for watchbot."""

import logging
import signal
import sys
from typing import Optional

import click
from dotenv import load_dotenv

from watchbot import __version__
from watchbot.core.engine import WatchEngine
from watchbot.core.errors import ConfigError
from watchbot.core.filters import ActionabilityFilter
from watchbot.core.fingerprint_store import FingerprintStore, create_storage
from watchbot.core.locking import StoreLock
from watchbot.core.sequencer import TaskSequencer
from watchbot.core.task_sink import FileTaskSink
from watchbot.daemon.config import SOURCES, WatcherConfig, load_config_file
from watchbot.daemon.poller import Poller


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Per-request noise from urllib3 is only useful when debugging it directly.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


@click.group()
@click.version_option(__version__, prog_name="watchbot")
def main() -> None:
    """
    watchbot - turn new pull request reviews and Jira tickets into task files.
    """


@main.command(name="run")
@click.option(
    "--source",
    type=click.Choice(SOURCES),
    default="github",
    show_default=True,
    help="System to watch: github (PR review watcher) or jira (ticket watcher)",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML file with option overrides (keys are the environment variable names)",
)
@click.option(
    "--interval",
    type=int,
    default=None,
    help="Poll interval in seconds (default: WATCHBOT_POLL_INTERVAL, 15 for github, 10 for jira)",
)
@click.option(
    "--tasks-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory receiving task files (default: WATCHBOT_TASKS_DIR or ./watchbot_tasks)",
)
@click.option(
    "--once",
    is_flag=True,
    help="Run a single pass and exit",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Enable debug logging",
)
def run(
    source: str,
    config_file: Optional[str],
    interval: Optional[int],
    tasks_dir: Optional[str],
    once: bool,
    verbose: bool,
) -> None:
    """
    Poll the source system and write one task file per unit of new feedback.
    
    Example:
        watchbot run --source github
    
    Required for --source github:
    - GITHUB_OWNER, GITHUB_REPO
    - GITHUB_TOKEN, or GITHUB_APP_ID + GITHUB_APP_PRIVATE_KEY_PATH + GITHUB_APP_INSTALLATION_ID
    
    Required for --source jira:
    - JIRA_HOST, JIRA_EMAIL, JIRA_API_TOKEN, JIRA_PROJECT_KEY
    """
    load_dotenv()
    _configure_logging(verbose)
    
    store_lock = None
    store = None
    try:
        overrides = load_config_file(config_file) if config_file else {}
        if interval is not None:
            overrides["WATCHBOT_POLL_INTERVAL"] = interval
        if tasks_dir is not None:
            overrides["WATCHBOT_TASKS_DIR"] = tasks_dir
        
        config = WatcherConfig(source, overrides=overrides)
        connector = config.create_connector()
        
        store_lock = StoreLock(config.store_path)
        store_lock.acquire()
        store = FingerprintStore(create_storage(config.store_path, config.store_backend))
    except (ConfigError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        if store_lock is not None:
            store_lock.release()
        sys.exit(1)
    
    engine = WatchEngine(
        connector=connector,
        store=store,
        sink=FileTaskSink(config.tasks_dir, label=config.template.label),
        actionability=ActionabilityFilter(config.bot_logins, config.approved_states),
        sequencer=TaskSequencer(config.template),
    )
    poller = Poller(connector, engine, poll_interval=config.poll_interval)
    
    def _handle_signal(signum, frame):
        click.echo("\nStopping watcher after the current entity...", err=True)
        poller.stop()
    
    previous_handlers = {
        signum: signal.signal(signum, _handle_signal)
        for signum in (signal.SIGINT, signal.SIGTERM)
    }
    
    click.echo(f"watchbot {__version__} watching {connector.describe()}")
    click.echo(f"Polling every {config.poll_interval} seconds")
    click.echo(f"Task files will be created in: {config.tasks_dir}")
    click.echo(f"Fingerprint store: {config.store_path} ({config.store_backend})")
    click.echo("---")
    
    try:
        poller.start(max_passes=1 if once else None)
    finally:
        for signum, handler in previous_handlers.items():
            signal.signal(signum, handler)
        store.close()
        store_lock.release()


if __name__ == "__main__":
    main()
