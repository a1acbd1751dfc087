"""Command-line interface for the TikTok scraper.

    tiktok-scraper user someone
    tiktok-scraper --cookies cookies.json search "cats" --limit 50
    tiktok-scraper hashtag fyp --json-output
    tiktok-scraper login --username me@example.com --save-cookies cookies.json
"""

import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

import click

from ..client import TikTokClient
from ..config import ScraperConfig
from ..errors import ScraperError
from ..metrics import PERF_LOGGER_NAME
from ..models import Author, Video
from ..pagination import SearchResult


# Configure logging for CLI
def setup_logging(verbose: int = 0, debug_timing: bool = False) -> None:
    """Setup logging based on verbosity level."""
    if verbose == 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    if debug_timing:
        logging.getLogger(PERF_LOGGER_NAME).setLevel(logging.DEBUG)


def build_config(config_path: Optional[str], overrides: Dict[str, Any]) -> ScraperConfig:
    """Config file first, then command-line overrides that were actually given."""
    config = ScraperConfig.from_file(config_path) if config_path else ScraperConfig()
    given = {key: value for key, value in overrides.items() if value is not None}
    return config.with_overrides(**given) if given else config


@click.group()
@click.option('--verbose', '-v', count=True, help='Increase verbosity (use -vv for debug)')
@click.option('--config', '-c', 'config_path', type=click.Path(exists=True, dir_okay=False),
              help='JSON configuration file')
@click.option('--proxy', '-p', help='Proxy URL (http, https, socks5)')
@click.option('--cookies', type=click.Path(exists=True, dir_okay=False),
              help='Cookies JSON file from a previous login')
@click.option('--debug-timing', is_flag=True, default=None, help='Log per-step timings')
@click.option('--no-browser', is_flag=True, help='Skip browser signing (unsigned requests)')
@click.pass_context
def cli(ctx: click.Context, verbose: int, config_path: Optional[str], proxy: Optional[str],
        cookies: Optional[str], debug_timing: Optional[bool], no_browser: bool) -> None:
    """tiktok-scraper - profile, search and hashtag lookups on TikTok."""
    setup_logging(verbose, bool(debug_timing))

    try:
        config = build_config(config_path, {
            'proxy_url': proxy,
            'debug_timing': debug_timing,
            'browser_signing': False if no_browser else None,
        })
    except ScraperError as e:
        raise click.UsageError(str(e))

    ctx.ensure_object(dict)
    ctx.obj['config'] = config
    ctx.obj['cookies'] = cookies


def run_client(ctx: click.Context, action, needs_browser: bool = False):
    """Run action(client) on a fresh client; exit 1 on scraper errors."""
    config: ScraperConfig = ctx.obj['config']
    cookies: Optional[str] = ctx.obj['cookies']

    async def execute():
        async with TikTokClient(config) as client:
            if cookies:
                if needs_browser:
                    await client.login_with_cookies(cookies)
                else:
                    client.load_cookies(cookies)
            elif needs_browser:
                await client.init_browser()
            return await action(client)

    try:
        return asyncio.run(execute())
    except ScraperError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def format_author(author: Author) -> str:
    return "\n".join([
        f"User:       {author.username}",
        f"Nickname:   {author.nickname}",
        f"ID:         {author.id}",
        f"Followers:  {author.follower_count}",
        f"Following:  {author.following_count}",
        f"Videos:     {author.video_count}",
        f"Hearts:     {author.heart_count}",
        f"Diggs:      {author.digg_count}",
        f"Verified:   {author.verified}",
        f"Bio:        {author.bio}",
        f"Avatar:     {author.avatar_url}",
    ])


def format_videos(videos: List[Video]) -> str:
    lines = []
    for i, video in enumerate(videos, 1):
        created = video.created_at.strftime("%Y-%m-%d") if video.created_at else "-"
        lines.append(f"[{i}] {video.id} by @{video.username}: "
                     f"{video.views} views, {video.likes} likes ({created})")
        if video.description:
            lines.append(f"    {video.description}")
    lines.append(f"\nTotal: {len(videos)} videos")
    return "\n".join(lines)


def emit_search_result(result: SearchResult, json_output: bool) -> None:
    if json_output:
        click.echo(json.dumps({
            "videos": [video.to_dict() for video in result.records],
            "error": str(result.error) if result.error else None,
        }, indent=2))
    else:
        click.echo(format_videos(result.records))

    if result.error is not None:
        click.echo(f"Stopped early: {result.error}", err=True)
        sys.exit(1)


@cli.command()
@click.argument('username')
@click.option('--json-output', is_flag=True, help='Output as JSON')
@click.pass_context
def user(ctx: click.Context, username: str, json_output: bool) -> None:
    """Look up a user profile (plain HTTP, no browser)."""
    author = run_client(ctx, lambda client: client.get_user(username))
    if json_output:
        click.echo(json.dumps(author.to_dict(), indent=2))
    else:
        click.echo(format_author(author))


@cli.command()
@click.argument('keyword')
@click.option('--limit', '-n', default=10, show_default=True, help='Max videos to return')
@click.option('--json-output', is_flag=True, help='Output as JSON')
@click.pass_context
def search(ctx: click.Context, keyword: str, limit: int, json_output: bool) -> None:
    """Search videos by keyword."""
    result = run_client(ctx, lambda client: client.search_videos(keyword, limit),
                        needs_browser=True)
    emit_search_result(result, json_output)


@cli.command()
@click.argument('tag')
@click.option('--limit', '-n', default=10, show_default=True, help='Max videos to return')
@click.option('--json-output', is_flag=True, help='Output as JSON')
@click.pass_context
def hashtag(ctx: click.Context, tag: str, limit: int, json_output: bool) -> None:
    """List videos under a hashtag."""
    result = run_client(ctx, lambda client: client.search_by_hashtag(tag, limit),
                        needs_browser=True)
    emit_search_result(result, json_output)


@cli.command()
@click.option('--username', '-u', required=True, help='Account email or username')
@click.option('--password', prompt=True, hide_input=True, help='Account password')
@click.option('--save-cookies', default='cookies.json', show_default=True,
              type=click.Path(dir_okay=False), help='Where to write the session cookies')
@click.pass_context
def login(ctx: click.Context, username: str, password: str, save_cookies: str) -> None:
    """Log in through the browser and save the session cookies."""

    async def do_login(client: TikTokClient) -> None:
        click.echo("Logging in...")
        await client.login(username, password)
        client.save_cookies(save_cookies)

    run_client(ctx, do_login)
    click.echo(f"Logged in! Cookies saved to {save_cookies}")


def main() -> None:
    """Main CLI entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user.")
        sys.exit(1)


if __name__ == '__main__':
    main()


# Export public API
__all__ = [
    'cli',
    'main',
]
