from __future__ import annotations

import logging
from typing import Tuple

import click

from retrieval_core.errors import RetrievalError


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@click.group()
def main() -> None:
    """CLI entrypoint for ingesting pages and asking questions about them."""


@main.command("ingest")
@click.argument("urls", nargs=-1, required=True)
@click.option("--replace", is_flag=True, help="Discard previously ingested pages.")
def ingest(urls: Tuple[str, ...], replace: bool) -> None:
    """Fetch, chunk and embed URLS into the vector store."""
    from agents.research_agent import ResearchAgent

    _setup_logging()
    agent = ResearchAgent.from_settings()
    if len(urls) > agent.settings.max_urls:
        raise click.BadParameter(f"at most {agent.settings.max_urls} URLs are allowed", param_hint="URLS")

    try:
        count = agent.ingest(list(urls), replace=replace)
    except RetrievalError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Ingested {count} segments")


@main.command("ask")
@click.argument("question")
@click.option("--url", "urls", multiple=True, help="Restrict context to this page (repeatable).")
def ask(question: str, urls: Tuple[str, ...]) -> None:
    """Answer QUESTION from ingested pages, or from --url pages only."""
    from agents.research_agent import ResearchAgent

    _setup_logging()
    if len(question.strip()) < 3:
        raise click.BadParameter("question must be at least 3 characters", param_hint="QUESTION")

    agent = ResearchAgent.from_settings()
    if len(urls) > agent.settings.max_urls:
        raise click.BadParameter(f"at most {agent.settings.max_urls} URLs are allowed", param_hint="--url")

    try:
        result = agent.ask(question, list(urls))
    except RetrievalError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(result.answer)
    if result.sources:
        click.echo("\nSources:")
        for src in result.sources:
            click.echo(f"- {src}")


if __name__ == "__main__":
    main()
