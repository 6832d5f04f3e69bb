"""Command line interface for treefind."""

from __future__ import annotations

import logging
import os
import shlex
import signal
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import psutil
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from treefind.config import AppConfig, Settings, load_settings, save_settings
from treefind.models import FileMatch, LineMatch, SearchConfiguration, SearchMode
from treefind.report import MATCH, ResultReporter
from treefind.search.session import RootNotFoundError, SearchSession
from treefind.utils.text import file_size, format_percent, readable_duration

LOGGER = logging.getLogger(__name__)

console = Console()
app = typer.Typer(help="treefind - parallel file locate and content search")

LOG_FORMAT = "[%(levelname)s] %(message)s"
FILE_LOG_FORMAT = "[%(asctime)s]\t%(levelname)s\t%(message)s"


class _IssueCounter(logging.Handler):
    """Counts error records so a run can tell whether it finished cleanly."""

    def __init__(self) -> None:
        super().__init__(level=logging.ERROR)
        self.count = 0

    def emit(self, record: logging.LogRecord) -> None:
        self.count += 1


def _not_match(record: logging.LogRecord) -> bool:
    return record.levelno != MATCH


def _setup_logging(
    verbose: bool,
    log_path: Optional[Path] = None,
    *,
    append: bool = True,
    level_name: str = "INFO",
) -> None:
    level = logging.DEBUG if verbose else logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO

    stream_handler = logging.StreamHandler()
    stream_handler.addFilter(_not_match)
    handlers: List[logging.Handler] = [stream_handler]
    if log_path is not None:
        file_handler = logging.FileHandler(log_path, mode="a" if append else "w", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
        handlers.append(file_handler)
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)


def _rotate_log(log_path: Path) -> None:
    """Move an existing log aside so the next run starts a fresh file."""
    if log_path.exists():
        log_path.replace(_rotated_log(log_path))


def _rotated_log(log_path: Path) -> Path:
    return log_path.with_name(f"{log_path.name}.previous")


def _log_exclusions(log_path: Path) -> tuple[Path, Path]:
    """The run log and its rotated copy, which a search must not report."""
    return log_path, _rotated_log(log_path)


def _describe_command(ctx: typer.Context) -> str:
    """Rebuild the command line of the running command from its parsed parameters."""
    args = [ctx.info_name]
    for param in ctx.command.params:
        value = ctx.params.get(param.name)
        if value is None:
            continue
        if param.param_type_name == "argument":
            args.append(str(value))
        elif getattr(param, "is_flag", False):
            if value:
                args.append(param.opts[0])
            elif param.secondary_opts:
                args.append(param.secondary_opts[0])
        elif getattr(param, "multiple", False):
            for item in value:
                args.extend([param.opts[0], str(item)])
        else:
            args.extend([param.opts[0], str(value)])
    return shlex.join(args)


def _resolve_threads(threads: int) -> int:
    if threads < 1:
        LOGGER.warning("Thread count %s is too low, using 1", threads)
        return 1
    cpus = os.cpu_count() or 1
    if threads > cpus:
        LOGGER.warning(
            "Your processor count is %s, it's recommended that you don't exceed %s threads.", cpus, cpus
        )
    return threads


def _prepare(
    settings_file: Optional[Path], log_file: Optional[Path], verbose: bool
) -> tuple[AppConfig, Settings, Path, _IssueCounter]:
    config = AppConfig(settings_path=settings_file, log_path=log_file or AppConfig().log_path)
    settings = load_settings(config.settings_path)
    log_path = config.resolve_log_path(Path.cwd())
    log_path.parent.mkdir(parents=True, exist_ok=True)
    if not settings.append_log:
        _rotate_log(log_path)
    _setup_logging(verbose, log_path, level_name=settings.log_level)

    issues = _IssueCounter()
    logging.getLogger().addHandler(issues)
    if settings.first_run:
        LOGGER.info("Additional settings —▷ %s", config.settings_path)
    return config, settings, log_path, issues


def _execute(
    root: Path,
    search_config: SearchConfiguration,
    settings: Settings,
    *,
    show_progress: bool,
    reporter: ResultReporter,
) -> tuple[list, list, bool]:
    cancel = threading.Event()

    def _on_interrupt(signum, frame) -> None:  # pragma: no cover
        cancel.set()
        console.print()
        LOGGER.warning("Process canceled by user!")

    previous_handler = None
    if threading.current_thread() is threading.main_thread():
        previous_handler = signal.signal(signal.SIGINT, _on_interrupt)

    timer = threading.Timer(settings.timeout_minutes * 60, cancel.set)
    timer.daemon = True
    timer.start()

    session = SearchSession(
        search_config,
        progress_callback=reporter.render_progress if show_progress else None,
    )
    LOGGER.info("Searching with %s threads", search_config.workers)
    LOGGER.info("You can press <Ctrl-C> to cancel the search at any time. Any collected results will be displayed.")
    try:
        outcome = session.run(root, cancel)
    finally:
        timer.cancel()
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)
    if show_progress:
        console.print()
    if session.cancelled:
        LOGGER.warning("Search was cancelled, results are partial")
    LOGGER.debug("Discovered %s directories", session.directories_seen)
    return outcome.results, outcome.metrics, session.cancelled


def _finish(
    config: AppConfig,
    settings: Settings,
    log_path: Path,
    issues: _IssueCounter,
    *,
    total: int,
    command: str,
) -> None:
    console.print(f"Log file —▷ {log_path}")
    logging.getLogger().removeHandler(issues)
    if issues.count:
        console.print("[yellow]Process completed with issues[/yellow]")
        return
    console.print("Process completed without issue")
    settings.last_count = total
    settings.last_use = datetime.now().isoformat(timespec="seconds")
    settings.last_command = command
    settings.first_run = False
    save_settings(settings, config.settings_path)


def _log_stats(started: float, cpu_started: float, *, verbose: bool = False) -> None:
    LOGGER.info("Elapsed time during search was %s", readable_duration(time.perf_counter() - started))
    LOGGER.info(
        "Total processor use was %s",
        readable_duration(time.process_time() - cpu_started, report_milliseconds=True),
    )
    memory = psutil.Process().memory_full_info()
    LOGGER.info("Total memory use was %s", file_size(memory.uss))
    if verbose:
        LOGGER.info("Total working set was %s", file_size(memory.rss))


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    settings_file: Path = typer.Option(None, "--settings", help="Settings file path"),
) -> None:
    """Without a command, offer to repeat the last successful search."""
    if ctx.invoked_subcommand is not None:
        return
    current = load_settings(AppConfig(settings_path=settings_file).settings_path)
    if not current.last_command:
        typer.echo(ctx.get_help())
        raise typer.Exit()

    console.print(f"LastCommand ▷ [bold]{escape(current.last_command)}[/bold]", soft_wrap=True)
    if not typer.confirm("Run it again?", default=True):
        raise typer.Exit()
    code = ctx.command.main(
        args=shlex.split(current.last_command),
        prog_name=ctx.info_name,
        standalone_mode=False,
    )
    if isinstance(code, int) and code:
        raise typer.Exit(code=code)


@app.command()
def locate(
    ctx: typer.Context,
    root: Path = typer.Argument(..., help="Directory to search."),
    pattern: str = typer.Option(AppConfig().pattern, "--pattern", "-p", help="File name pattern, e.g. *.config"),
    months: int = typer.Option(0, "--months", "-m", help="Only files modified within this many months (0 disables)"),
    threads: int = typer.Option(AppConfig().workers, "--threads", "-n", help="Number of worker threads"),
    rearm: bool = typer.Option(False, "--rearm", help="Let idle workers wait for new directories"),
    progress: bool = typer.Option(True, "--progress/--no-progress", help="Show live progress"),
    settings_file: Path = typer.Option(None, "--settings", help="Settings file path"),
    log_file: Path = typer.Option(None, "--log", help="Run log path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Find files whose name matches a pattern."""
    config, settings, log_path, issues = _prepare(settings_file, log_file, verbose)
    LOGGER.info("Using pattern: %s", pattern)
    if months < 0:
        months = 0
    search_config = SearchConfiguration(
        pattern=pattern,
        months=months,
        workers=_resolve_threads(threads),
        mode=SearchMode.LOCATE,
        rearm_idle_workers=rearm,
        excluded_paths=_log_exclusions(log_path),
    )

    started, cpu_started = time.perf_counter(), time.process_time()
    reporter = ResultReporter(console, truncate_length=settings.truncate_length)
    try:
        results, metrics, _ = _execute(root, search_config, settings, show_progress=progress, reporter=reporter)
    except RootNotFoundError as exc:
        LOGGER.critical('Cannot find "%s". Try a different root folder.', exc.root)
        raise typer.Exit(code=1) from exc

    files = sorted((record for record in results if isinstance(record, FileMatch)), key=lambda r: str(r.path))
    total = reporter.report_files(files)
    LOGGER.info("Total match count was %s", total)
    if settings.show_stats:
        reporter.report_summary(metrics, verbose=verbose)
        _log_stats(started, cpu_started, verbose=verbose)

    _finish(config, settings, log_path, issues, total=total, command=_describe_command(ctx))


@app.command()
def grep(
    ctx: typer.Context,
    root: Path = typer.Argument(..., help="Directory to search."),
    pattern: str = typer.Option(AppConfig().pattern, "--pattern", "-p", help="File name pattern, e.g. *.log"),
    terms: List[str] = typer.Option(None, "--term", "-t", help="Term to look for; repeat for several"),
    keyword: Optional[str] = typer.Option(None, "--keyword", "-k", help="Single keyword, used when no terms are given"),
    percent: float = typer.Option(
        AppConfig().required_fraction, "--percent", help="Share of terms that must appear on one line (0.1-1.0)"
    ),
    threads: int = typer.Option(AppConfig().workers, "--threads", "-n", help="Number of worker threads"),
    rearm: bool = typer.Option(False, "--rearm", help="Let idle workers wait for new directories"),
    progress: bool = typer.Option(True, "--progress/--no-progress", help="Show live progress"),
    settings_file: Path = typer.Option(None, "--settings", help="Settings file path"),
    log_file: Path = typer.Option(None, "--log", help="Run log path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Report the first matching line of every file whose name matches a pattern."""
    terms = [term for term in (terms or []) if term.strip()]
    if not terms and not keyword:
        raise typer.BadParameter("Supply at least one --term or a --keyword")

    config, settings, log_path, issues = _prepare(settings_file, log_file, verbose)
    search_config = SearchConfiguration(
        pattern=pattern,
        keyword=keyword,
        terms=tuple(terms),
        required_fraction=percent,
        workers=_resolve_threads(threads),
        mode=SearchMode.CONTENT,
        rearm_idle_workers=rearm,
        excluded_paths=_log_exclusions(log_path),
    )
    LOGGER.info("Using pattern: %s", pattern)
    if terms:
        LOGGER.info("Using terms: %s", ", ".join(terms))
        LOGGER.info("Using percent: %s", format_percent(search_config.required_fraction))
    else:
        LOGGER.info("Using keyword: %s", keyword)

    started, cpu_started = time.perf_counter(), time.process_time()
    reporter = ResultReporter(console, truncate_length=settings.truncate_length)
    try:
        results, metrics, _ = _execute(root, search_config, settings, show_progress=progress, reporter=reporter)
    except RootNotFoundError as exc:
        LOGGER.critical('Cannot find "%s". Try a different root folder.', exc.root)
        raise typer.Exit(code=1) from exc

    lines = sorted((record for record in results if isinstance(record, LineMatch)), key=lambda r: str(r.path))
    if terms:
        qualifier = "" if search_config.required_fraction == 1.0 else " (or more)"
        LOGGER.info(
            "%s files matched %s%s of given terms",
            len(lines),
            format_percent(search_config.required_fraction),
            qualifier,
        )
    total = reporter.report_lines(lines)
    LOGGER.info("Total match count was %s", total)
    if settings.show_stats:
        reporter.report_summary(metrics, verbose=verbose)
        _log_stats(started, cpu_started, verbose=verbose)

    _finish(config, settings, log_path, issues, total=total, command=_describe_command(ctx))


@app.command()
def settings(
    settings_file: Path = typer.Option(None, "--settings", help="Settings file path"),
) -> None:
    """Show the persisted settings."""
    config = AppConfig(settings_path=settings_file)
    current = load_settings(config.settings_path)

    console.print(f"Settings file: [bold]{config.settings_path}[/bold]")
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in current.to_dict().items():
        table.add_row(key, str(value))
    console.print(table)
