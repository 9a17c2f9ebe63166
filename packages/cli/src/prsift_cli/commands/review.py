"""review command: generate, filter and post a review for one pull request."""

from __future__ import annotations

import signal
import threading

import click
from rich.console import Console

from prsift_core.cancel import CancelToken
from prsift_core.config import build_settings, load_config, require_credentials
from prsift_core.errors import ConfigurationError, ReviewCancelled, TransportError
from prsift_core.gh.pull_request import GitHubHost
from prsift_core.pipeline import ReviewPipeline, get_judge, get_reviewer

console = Console()


def _install_interrupt(cancel: CancelToken):
    """Route Ctrl-C to the cancel token so an in-flight run stops before posting."""
    if threading.current_thread() is not threading.main_thread():
        return None

    def _handler(signum, frame):
        console.print("\n[yellow]Interrupted: cancelling review, nothing will be posted.[/yellow]")
        cancel.cancel()

    return signal.signal(signal.SIGINT, _handler)


@click.command("review")
@click.option("--owner", required=True, help="Repository owner (user or organisation).")
@click.option("--repo", required=True, help="Repository name.")
@click.option("--pr", "pr_number", type=click.IntRange(min=1), required=True, help="Pull request number.")
@click.option(
    "--provider",
    type=click.Choice(["claude", "gemini"]),
    default=None,
    help="AI provider used to generate the review. [default: claude]",
)
@click.option("--dry-run", is_flag=True, help="Print the review without posting it to GitHub.")
@click.option("--judge", "use_judge", is_flag=True, help="Use an AI judge to filter low-quality findings.")
@click.option("--judge-model", default=None, help="Model used for judging. [default: gemini-2.5-flash]")
@click.option(
    "--judge-min-score",
    type=click.FloatRange(0.0, 1.0),
    default=None,
    help="Minimum judge score (0.0-1.0) to keep a finding. [default: 0.5]",
)
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=None, help="Deadline in seconds.")
@click.pass_context
def review_cmd(
    ctx,
    owner: str,
    repo: str,
    pr_number: int,
    provider: str | None,
    dry_run: bool,
    use_judge: bool,
    judge_model: str | None,
    judge_min_score: float | None,
    timeout: float | None,
):
    """Review a pull request with Claude or Gemini and post one GitHub review.

    Findings on lines inside the diff become inline comments; the rest are
    listed in the review body.

    \b
    Required environment variables:
      GITHUB_TOKEN         GitHub token with pull request write access
      ANTHROPIC_API_KEY    Required for --provider claude or a claude judge model
      GEMINI_API_KEY       Required for --provider gemini or a gemini judge model
    """
    config_path = (ctx.obj or {}).get("config_path", ".prsift.yml")
    overrides = {
        "provider": provider,
        # Flags only override the config file when given.
        "dry_run": dry_run or None,
        "judge": use_judge or None,
        "judge_model": judge_model,
        "judge_min_score": judge_min_score,
        "timeout": timeout,
    }

    try:
        config = load_config(config_path, cli_overrides=overrides)
        settings = build_settings(config)
        require_credentials(config, settings)
        pipeline = ReviewPipeline(
            host=GitHubHost(token=config["github_token"], timeout=settings.timeout),
            reviewer=get_reviewer(settings, config),
            settings=settings,
            judge=get_judge(settings, config),
        )
    except (ConfigurationError, ImportError) as e:
        raise click.UsageError(str(e))

    console.print(f"Reviewing PR {owner}/{repo}#{pr_number} using {settings.provider}...")

    cancel = CancelToken(settings.timeout)
    previous = _install_interrupt(cancel)
    try:
        outcome = pipeline.run(owner, repo, pr_number, cancel=cancel)
    except (TransportError, ReviewCancelled) as e:
        raise click.ClickException(f"Review failed during {e.stage}: {e}")
    except ConfigurationError as e:
        raise click.UsageError(str(e))
    finally:
        if previous is not None:
            signal.signal(signal.SIGINT, previous)

    if outcome.submitted:
        console.print("[green]Review posted successfully![/green]")
