import argparse
import logging
from contextlib import contextmanager

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

import config
from ai_analyzer import validate_openai_key
from errors import ChannelNotFoundError, GatewayError, MissingCredentialError
from exporters import (
    channel_report_to_text,
    keyword_report_to_text,
    opportunity_report_to_text,
    to_csv,
    to_json,
    write_export,
)
from formatters import format_date, format_interval, format_number
from keystore import KeyStore
from models import ChannelAnalysisResult, KeywordAnalysisResult, OpportunityResult, VideoRecord
from rising_channels import RECENCY_WINDOWS
from video_processing import SORT_KEYS, VIDEO_TYPES, process_videos, upload_cadence
from workflows import run_channel_analysis, run_keyword_analysis, run_opportunity_finder
from youtube_api import validate_api_key

console = Console()
logger = logging.getLogger("tubestrategy")


@contextmanager
def _spinner(description: str):
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(description, total=None)
        yield


def _print_videos(title: str, videos: list[VideoRecord], locale: str):
    table = Table(title=title, show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Title", style="cyan", max_width=50)
    table.add_column("Published", style="white")
    table.add_column("Views", justify="right", style="green")
    table.add_column("Likes", justify="right", style="yellow")
    table.add_column("Comments", justify="right")
    table.add_column("Score", justify="right", style="magenta")

    for i, v in enumerate(videos, start=1):
        table.add_row(
            str(i),
            v.title,
            format_date(v.published_at, locale),
            format_number(v.view_count, locale),
            format_number(v.like_count, locale),
            format_number(v.comment_count, locale),
            str(v.popularity_score),
        )
    console.print(table)


def _print_rising(result: OpportunityResult, locale: str):
    table = Table(title=f"Rising channels: {result.topic}", show_lines=True)
    table.add_column("Channel", style="cyan", max_width=25)
    table.add_column("Subs", justify="right", style="green")
    table.add_column("Created", style="white")
    table.add_column("Top video", max_width=40)
    table.add_column("Views", justify="right", style="yellow")
    table.add_column("Views/Sub", justify="right", style="magenta")

    for r in result.channels:
        table.add_row(
            r.channel.title,
            format_number(r.channel.subscriber_count, locale),
            format_date(r.channel.published_at, locale),
            r.top_video.title,
            format_number(r.top_video_views, locale),
            f"{r.score:.2f}",
        )
    console.print(table)


def _print_ai_status(result):
    if result.ai_error:
        console.print(f"[yellow]AI report unavailable: {result.ai_error}[/yellow]")
    elif result.report is not None:
        console.print(f"\n[bold]AI summary:[/bold] {result.report.summary}")


def _export(args, result, videos: list[VideoRecord], name: str):
    if not args.export:
        return

    if args.export == "json":
        content = to_json(result.report if result.report is not None else result)
    elif args.export == "csv":
        if isinstance(result, OpportunityResult):
            content = to_csv([
                {
                    "channel": r.channel.title,
                    "subscribers": r.channel.subscriber_count,
                    "top_video": r.top_video.title,
                    "top_video_views": r.top_video_views,
                    "score": round(r.score, 4),
                }
                for r in result.channels
            ])
        else:
            content = to_csv(videos)
    elif isinstance(result, OpportunityResult):
        content = opportunity_report_to_text(result.report, result.channels, result.topic)
    elif result.report is None:
        console.print("[red]No AI report to export as text.[/red]")
        return
    elif isinstance(result, ChannelAnalysisResult):
        content = channel_report_to_text(result.report, result.channel.title)
    else:
        content = keyword_report_to_text(result.report, result.keyword)

    path = write_export(content, args.output_dir, name, args.export)
    console.print(f"\n[green]Saved to {path}[/green]")


def _cmd_channel(args, credentials: config.Credentials):
    with _spinner(f"Analyzing channel {args.query}..."):
        result: ChannelAnalysisResult = run_channel_analysis(
            credentials, args.query, with_ai=not args.no_ai,
        )

    ch = result.channel
    console.print(
        f"[bold]{ch.title}[/bold]  subscribers {format_number(ch.subscriber_count, args.locale)}"
        f" · views {format_number(ch.view_count, args.locale)}"
        f" · videos {format_number(ch.video_count, args.locale)}"
    )
    cadence = upload_cadence(result.videos)
    if cadence:
        console.print(
            f"[dim]First upload {format_date(cadence.first_upload, args.locale)}"
            f" · average gap {format_interval(cadence.average_interval, args.locale)}"
            f" · latest gap {format_interval(cadence.recent_interval, args.locale)}[/dim]"
        )

    videos = process_videos(result.videos, args.type, args.sort, args.limit)
    _print_videos(f"{ch.title}: {len(videos)} videos", videos, args.locale)
    _print_ai_status(result)
    _export(args, result, videos, f"{ch.title}_analysis")


def _cmd_keyword(args, credentials: config.Credentials):
    with _spinner(f"Searching videos for {args.query}..."):
        result: KeywordAnalysisResult = run_keyword_analysis(
            credentials, args.query,
            region=args.region,
            category_id=args.category,
            with_ai=not args.no_ai,
        )

    if not result.videos:
        console.print("[red]No videos found.[/red]")
        return

    videos = process_videos(result.videos, args.type, args.sort, args.limit)
    _print_videos(f"Keyword: {args.query}", videos, args.locale)
    _print_ai_status(result)
    _export(args, result, videos, f"{args.query}_market")


def _cmd_opportunity(args, credentials: config.Credentials):
    with _spinner(f"Looking for rising channels in {args.query}..."):
        result: OpportunityResult = run_opportunity_finder(
            credentials, args.query,
            category_id=args.category,
            period=args.period,
            region=args.region,
            video_type=args.type,
            with_ai=not args.no_ai,
        )

    if not result.channels:
        console.print("[red]No rising channels found.[/red]")
        return

    _print_rising(result, args.locale)
    if result.report is not None:
        verdict = "Blue ocean" if result.report.type == "BLUE_OCEAN" else "Red ocean"
        console.print(f"\n[bold]{verdict}[/bold] · opportunity score {result.report.score}/100")
    _print_ai_status(result)
    _export(args, result, [], f"{args.query}_opportunity")


def _cmd_keys(args, credentials: config.Credentials):
    store = KeyStore(config.KEYSTORE_PATH)
    if args.clear:
        store.clear()
        console.print("[green]Stored keys removed.[/green]")
        return

    if args.youtube or args.openai:
        if args.youtube and not validate_api_key(args.youtube):
            raise SystemExit("YouTube API key is invalid")
        if args.openai and not validate_openai_key(args.openai):
            raise SystemExit("OpenAI API key is invalid")
        store.save(youtube_api_key=args.youtube, openai_api_key=args.openai)
        console.print(f"[green]Keys saved to {store.path}[/green]")
        return

    console.print(f"YouTube key: {'set' if credentials.has_youtube() else '[red]missing[/red]'}")
    console.print(f"OpenAI key: {'set' if credentials.has_openai() else '[red]missing[/red]'}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="YouTube channel and market strategy tool")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--locale", choices=("en", "ko"), default="en", help="Number/date format")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_common(p, video_types=VIDEO_TYPES):
        p.add_argument("query", help="Channel name, keyword or topic")
        p.add_argument("--no-ai", action="store_true", help="Skip the AI report")
        p.add_argument("--type", choices=video_types, default="all", help="Video length filter")
        p.add_argument("--export", choices=("csv", "txt", "json"), help="Save results to a file")
        p.add_argument("--output-dir", default=config.EXPORT_DIR, help="Export directory")

    p = sub.add_parser("channel", help="Analyze one channel's recent uploads")
    add_common(p)
    p.add_argument("--sort", choices=SORT_KEYS, default="popularity")
    p.add_argument("--limit", type=int, choices=(10, 20, 50), default=50)
    p.set_defaults(func=_cmd_channel)

    p = sub.add_parser("keyword", help="Analyze the market for a keyword")
    add_common(p)
    p.add_argument("--region", default="KR", help="Region code or Global")
    p.add_argument("--category", default="", help="Video category id")
    p.add_argument("--sort", choices=SORT_KEYS, default="views")
    p.add_argument("--limit", type=int, choices=(10, 20, 50), default=50)
    p.set_defaults(func=_cmd_keyword)

    p = sub.add_parser("opportunity", help="Find newly created channels going viral")
    add_common(p)
    p.add_argument("--region", default="KR", help="Region code or Global")
    p.add_argument("--category", default="", help="Video category id")
    p.add_argument("--period", choices=tuple(RECENCY_WINDOWS), default="1y", help="Channel age window")
    p.set_defaults(func=_cmd_opportunity)

    p = sub.add_parser("keys", help="Show, store or clear API keys")
    p.add_argument("--youtube", help="YouTube Data API key to store")
    p.add_argument("--openai", help="OpenAI API key to store")
    p.add_argument("--clear", action="store_true", help="Remove stored keys")
    p.set_defaults(func=_cmd_keys)

    return parser


def main(argv: list[str] | None = None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    credentials = config.load_credentials()
    try:
        args.func(args, credentials)
    except MissingCredentialError as e:
        console.print(f"[red]{e}. Run `keys --{e.service.lower()} KEY` or set it in .env[/red]")
        raise SystemExit(1)
    except ChannelNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    except GatewayError as e:
        logger.debug("Lookup failed", exc_info=True)
        console.print(f"[red]Data lookup failed or the API quota was exceeded: {e}[/red]")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
