"""CLI for the reviewstream server and one-off branch reviews."""

import asyncio
import logging
import sys
from typing import Optional

import click

from reviewstream.config import settings
from reviewstream.github import FetchNarration, GitHubFileFetcher
from reviewstream.github.repo import parse_repo_full_name
from reviewstream.logging_config import configure_logging
from reviewstream.store import HistoryStore
from reviewstream.workflows.review import ReviewWorkflow, create_llm

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(package_name="reviewstream")
def cli():
    """reviewstream - live, deduplicated code review of repository branches."""
    configure_logging(settings.log_level)


@cli.command()
@click.option("--host", default=None, help="Interface to bind (default: HOST setting)")
@click.option("--port", type=int, default=None, help="Port to bind (default: PORT setting)")
def serve(host: Optional[str], port: Optional[int]):
    """Run the HTTP server."""
    import uvicorn

    from reviewstream.server import create_app

    uvicorn.run(create_app(settings), host=host or settings.host, port=port or settings.port)


@cli.command()
@click.option("--user", "user_id", required=True, help="User the review is recorded for")
@click.option("--repo", required=True, help="Repository to review, as owner/repo")
@click.option("--branch", default=None, help="Branch to review (default: DEFAULT_BRANCH setting)")
def review(user_id: str, repo: str, branch: Optional[str]):
    """Review a branch and print the result."""
    try:
        owner, repo_name = parse_repo_full_name(repo)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)
    branch = branch or settings.default_branch

    async def run():
        store = HistoryStore(settings.database_path)
        fetcher = GitHubFileFetcher(
            token=settings.github_token,
            api_url=settings.github_api_url,
            raw_url=settings.github_raw_url,
        )
        try:
            batch = None
            async for item in fetcher.fetch_files(f"{owner}/{repo_name}", branch):
                if isinstance(item, FetchNarration):
                    click.echo(item.message)
                else:
                    batch = item

            workflow = ReviewWorkflow(
                create_llm(settings), store, max_chars_per_file=settings.max_chars_per_file
            )
            state = workflow.create_initial_state(
                user_id=user_id,
                owner=owner,
                repo=repo_name,
                branch=branch,
                files=batch.files,
                commit_hash=batch.commit_sha,
            )
            result = await workflow.run(state)
            for log in result["logs"]:
                click.echo(log)
            click.echo("\n" + "=" * 50 + "\n")
            click.echo(result["review"])
        finally:
            await fetcher.aclose()
            store.close()

    try:
        asyncio.run(run())
    except Exception as e:
        logger.error(f"Code review failed: {e}", exc_info=True)
        sys.exit(1)


@cli.command()
@click.option("--user", "user_id", required=True, help="User whose history to list")
@click.option("--repo", "repo_name", required=True, help="Repository short name")
@click.option("--limit", type=int, default=10, show_default=True)
def history(user_id: str, repo_name: str, limit: int):
    """List stored reviews of a repository."""
    store = HistoryStore(settings.database_path)
    try:
        records = store.list_reviews(user_id, repo_name, limit=limit)
    finally:
        store.close()

    if not records:
        click.echo("No reviews recorded.")
        return

    for record in records:
        click.echo(f"{record.display_date}  {record.repo_key}  {record.commit_hash[:7]}")


@cli.command()
@click.option("--out", "out_file", default=None, help="Write the diagram to this file")
def diagram(out_file: Optional[str]):
    """Print the Mermaid diagram of the review workflow."""
    store = HistoryStore(":memory:")
    try:
        mermaid = ReviewWorkflow(None, store).render_mermaid()
    finally:
        store.close()

    if out_file:
        with open(out_file, "w") as fp:
            fp.write(mermaid)
        click.echo(f"✅ Mermaid diagram saved → {out_file}")
    else:
        click.echo(mermaid)


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
