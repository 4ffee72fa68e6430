# === FILE: site_crawl/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска краулера SiteCrawl через командную строку.

Команды:
  crawl     Обойти все страницы хоста и печатать найденные URL в stdout
  config    Показать итоговую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (по умолчанию configs/default.yaml, если есть)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (только stderr, если не указан)
  --log-format FORMAT Формат логирования (e.g. "%(asctime)s %(levelname)s %(message)s")

Опции crawl / config:
  --url URL                       Стартовый URL (обязателен, если не задан в конфиге)
  --max-requests-per-second INT   Глобальный лимит запросов/с (<= 0 — без лимита)
  --timeout SEC                   Таймаут одного запроса
  --retry-times N                 Повторы при сетевых ошибках и 5xx
  --concurrency N                 Число воркеров
  --queue-size N                  Ёмкость очереди
  --keep-alive / --exit-when-done Ждать после опустошения очереди или завершиться
  --crawl-timeout SEC             Таймаут всего обхода (только crawl)

Дополнительно:
  --version, -v       Показать версию SiteCrawl

Пример:
  site-crawl crawl --url https://example.com --max-requests-per-second 5 > urls.txt
"""
import asyncio
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from site_crawl import __version__
from site_crawl.config import build_config, read_config_file
from site_crawl.engine import start_crawl
from site_crawl.logger import logger, init_logging

CONTEXT_SETTINGS = dict(help_option_names=["--help", "-h"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def crawl_options(func):
    """Опции, переопределяющие значения из файла конфигурации."""
    options = [
        click.option('--url', '-u', 'base_url', default=None, help='Стартовый URL обхода.'),
        click.option(
            '--max-requests-per-second', '-r', 'max_requests_per_second',
            type=int, default=None,
            help='Глобальный лимит запросов в секунду (<= 0 — без лимита) [1]'
        ),
        click.option('--timeout', type=float, default=None, help='Таймаут одного запроса (секунд) [10]'),
        click.option('--retry-times', type=int, default=None, help='Повторы при ошибках сети и 5xx [0]'),
        click.option('--concurrency', type=int, default=None, help='Число воркеров'),
        click.option('--queue-size', type=int, default=None, help='Ёмкость очереди URL [1000]'),
        click.option(
            '--keep-alive/--exit-when-done', 'keep_alive',
            default=None,
            help='Ждать новых URL после опустошения очереди или завершиться'
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build(ctx, overrides):
    try:
        return build_config(ctx.obj['file_data'], **overrides)
    except ValidationError as e:
        missing = any(err.get('type') == 'missing' and err.get('loc') == ('base_url',) for err in e.errors())
        if missing:
            print_error('missing parameter: --url')
        print_error(f'Ошибка конфигурации: {e}')


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='SiteCrawl, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], case_sensitive=False),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (только stderr, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(message)s',
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд SiteCrawl CLI."""
    init_logging(
        level=log_level.upper(),
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        file_data = read_config_file(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    ctx.ensure_object(dict)
    ctx.obj['file_data'] = file_data


@cli.command('crawl', context_settings=CONTEXT_SETTINGS)
@crawl_options
@click.option(
    '--crawl-timeout', 'crawl_timeout',
    type=float,
    default=None,
    help='Таймаут всего обхода (секунд)'
)
@click.pass_context
def crawl(ctx, crawl_timeout, **overrides):
    """Обойти хост и печатать каждый найденный URL ровно один раз."""
    cfg = _build(ctx, overrides)
    try:
        stats = asyncio.run(start_crawl(cfg, click.echo, crawl_timeout=crawl_timeout))
    except asyncio.TimeoutError:
        print_error(f'Обход не завершён за {crawl_timeout} секунд')
    except KeyboardInterrupt:
        logger.info('Обход прерван пользователем')
        return
    except Exception as e:
        print_error(f'Ошибка при обходе: {e}')
    logger.info('Найдено URL: %d', stats.emitted)


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@crawl_options
@click.pass_context
def show_config(ctx, **overrides):
    """Показать итоговую конфигурацию в JSON."""
    cfg = _build(ctx, overrides)
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
