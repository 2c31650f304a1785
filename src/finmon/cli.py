"""Click CLI entry point for the finmon command.

Handles argument parsing, config loading, and error display. All business
logic is delegated to ``learning``, ``context``, ``hooks``, ``agent``, and
``config`` modules.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from finmon import __version__
from finmon.models import AppConfig
from finmon.store import JsonFileRuleStore


def _configure_logging(verbose: bool, debug: bool) -> None:
    """Set up logging based on verbosity flags."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        force=True,
    )


def _load_project() -> tuple[AppConfig, JsonFileRuleStore]:
    """Load the config from the working directory and open its rule store.

    Exits with status 1 when the project has not been initialized.
    """
    from finmon.config import load_config, rules_path

    root = Path.cwd()
    try:
        config = load_config(root)
    except FileNotFoundError as exc:
        click.echo(
            f"Error: {exc}. Run 'finmon init' to create the project structure.",
            err=True,
        )
        sys.exit(1)
    except Exception as exc:
        click.echo(f"Error loading configuration: {exc}", err=True)
        sys.exit(1)
    return config, JsonFileRuleStore(rules_path(root, config))


verbose_option = click.option(
    "--verbose", is_flag=True, default=False, help="Detailed progress output."
)
debug_option = click.option(
    "--debug", is_flag=True, default=False, help="Developer-level diagnostics."
)


@click.group()
@click.version_option(version=__version__, prog_name="finmon")
def cli() -> None:
    """Teach, predict, and share FinMon spend-category rules."""


@cli.command()
@click.option(
    "--dir", "target_dir", default=".", type=click.Path(), help="Directory to initialize."
)
@click.option("--agent-url", default=None, help="URL of the FinMon agent endpoint.")
@click.option(
    "--context-max-rules",
    default=None,
    type=click.IntRange(min=0),
    help="Send at most N recent rules to the agent (0 = all).",
)
def init(target_dir: str, agent_url: str | None, context_max_rules: int | None) -> None:
    """Initialize a project directory with a default config.toml."""
    from finmon.config import initialize

    target = Path(target_dir).resolve()
    config = AppConfig()
    if agent_url:
        config.agent_url = agent_url
    if context_max_rules is not None:
        config.context_max_rules = context_max_rules

    try:
        written = initialize(target, config)
    except Exception as exc:
        click.echo(f"Error initializing project: {exc}", err=True)
        sys.exit(1)

    if written:
        click.echo(f"Initialized FinMon project in {target}")
    else:
        click.echo(f"Existing config.toml kept in {target}")


@cli.command()
@click.argument("description")
@click.argument("category")
@click.option("--note", default="", help="Why this category is correct.")
@verbose_option
@debug_option
def teach(description: str, category: str, note: str, verbose: bool, debug: bool) -> None:
    """Teach that DESCRIPTION belongs to CATEGORY."""
    _configure_logging(verbose, debug)
    _, store = _load_project()

    from finmon.learning import TeachingService

    outcome = TeachingService(store).teach_outcome(description, category, note)

    if outcome.status == "ignored":
        click.echo("Nothing to teach: description and category are required.")
    elif outcome.status == "existing":
        click.echo(f'Already known: "{outcome.rule.keyword}" -> {outcome.rule.category}')
    elif outcome.status == "failed":
        click.echo(f"Error: {outcome.error}", err=True)
        sys.exit(1)
    else:
        click.echo(f'Learned: "{outcome.rule.keyword}" -> {outcome.rule.category}')


@cli.command()
@click.argument("description")
@verbose_option
@debug_option
def predict(description: str, verbose: bool, debug: bool) -> None:
    """Print the learned category for DESCRIPTION."""
    _configure_logging(verbose, debug)
    config, store = _load_project()

    from finmon.learning import PredictionService

    rule = PredictionService(store, min_length=config.min_description_length).match(description)
    if rule is None:
        click.echo("No learned rule matches.")
        return

    click.echo(rule.category)
    if verbose:
        click.echo(f'  matched rule "{rule.keyword}" ({rule.id})')


@cli.command(name="rules")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the raw record.")
def list_rules(as_json: bool) -> None:
    """List learned rules, oldest first."""
    _, store = _load_project()

    from finmon.store import rules_to_payload

    rules = store.load()
    if as_json:
        click.echo(json.dumps(rules_to_payload(rules), indent=2, ensure_ascii=False))
        return

    if not rules:
        click.echo("No learned rules.")
        return

    for rule in rules:
        line = f'  "{rule.keyword}" -> {rule.category}'
        if rule.note:
            line += f"  ({rule.note})"
        click.echo(line)
    click.echo()
    click.echo(f"{len(rules)} rule(s)")


@cli.command()
def context() -> None:
    """Print the learned-rules context sent to the agent."""
    config, store = _load_project()

    from finmon.context import PromptContextBuilder

    builder = PromptContextBuilder(store, max_rules=config.context_max_rules)
    click.echo(json.dumps(builder.build_context(), indent=2, ensure_ascii=False))


@cli.command()
@click.option("--yes", is_flag=True, default=False, help="Do not ask for confirmation.")
@verbose_option
def clear(yes: bool, verbose: bool) -> None:
    """Wipe every learned rule."""
    _configure_logging(verbose, debug=False)
    _, store = _load_project()

    if not yes and not click.confirm("Delete all learned rules?", default=False):
        click.echo("Aborted.")
        return

    if not store.clear():
        click.echo("Error: learned rules could not be deleted.", err=True)
        sys.exit(1)
    click.echo("Learned rules wiped.")


@cli.command()
@verbose_option
def dojo(verbose: bool) -> None:
    """Confirm category hypotheses for ambiguous transactions."""
    _configure_logging(verbose, debug=False)
    _, store = _load_project()

    from finmon.hooks import TrainingDojo
    from finmon.learning import TeachingService

    session = TrainingDojo(TeachingService(store))
    while not session.finished:
        item = session.current
        click.echo(f"LVL {session.level}  {item.name}")
        is_correct = click.confirm(f"  Is it {item.probable}?", default=True)
        session.answer(is_correct)
        if session.combo > 1:
            click.echo(f"  {session.combo}x COMBO!")

    click.echo()
    click.echo("TRAINING COMPLETE!")
    click.echo(f"  Rules taught: {session.taught}")


@cli.command()
@click.argument("message")
@click.option(
    "--persona",
    type=click.Choice(["professor", "finmon"]),
    default="professor",
    help="Who answers the message.",
)
@click.option("--level", "user_level", default=1, type=int, help="Player level.")
@click.option("--offline", is_flag=True, default=False, help="Do not contact the agent.")
@verbose_option
@debug_option
def chat(
    message: str, persona: str, user_level: int, offline: bool, verbose: bool, debug: bool
) -> None:
    """Send MESSAGE to the agent along with the learned rules."""
    _configure_logging(verbose, debug)
    config, store = _load_project()

    from finmon.agent import AgentClient, NullAgentClient
    from finmon.context import PromptContextBuilder

    if offline:
        client = NullAgentClient()
    else:
        builder = PromptContextBuilder(store, max_rules=config.context_max_rules)
        client = AgentClient(config.agent_url, builder, timeout=config.agent_timeout)
        if verbose:
            click.echo(f"Using agent: {config.agent_url}")

    click.echo(client.chat(message, persona=persona, user_level=user_level))
