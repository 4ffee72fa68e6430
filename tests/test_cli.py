# File: tests/test_cli.py
"""Тесты для CLI (`site_crawl.cli`) с использованием click.testing.CliRunner.
Проверяют команды `crawl`, `config`, `--version`, а также обработку ошибок.
"""
import asyncio
import json

import pytest
import site_crawl.cli as cli_module
from click.testing import CliRunner
from site_crawl.cli import cli
from site_crawl.crawler.models import CrawlStats
from site_crawl.logger import init_logging

DISCOVERED = ["https://example.com/", "https://example.com/a", "https://example.com/b"]


@pytest.fixture(autouse=True)
def patch_start_crawl(monkeypatch):
    """Патчим start_crawl: без сети, отдаём фиксированный список URL."""
    calls = []

    async def fake_crawl(cfg, on_discovered, crawl_timeout=None):
        calls.append((cfg, crawl_timeout))
        for url in DISCOVERED:
            on_discovered(url)
        return CrawlStats(emitted=len(DISCOVERED))

    monkeypatch.setattr(cli_module, "start_crawl", fake_crawl)
    return calls


@pytest.fixture(autouse=True)
def restore_logging():
    """CLI перенастраивает логгер на поток CliRunner; возвращаем stderr."""
    yield
    init_logging()


@pytest.fixture()
def isolated(tmp_path, monkeypatch):
    """Рабочая директория без configs/default.yaml."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_version_option():
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "SiteCrawl" in result.output


def test_crawl_prints_each_url(isolated, patch_start_crawl):
    runner = CliRunner()
    result = runner.invoke(cli, ["crawl", "--url", "https://example.com", "--max-requests-per-second", "5"])
    assert result.exit_code == 0
    # stdout carries the URLs and nothing else
    assert result.stdout.splitlines() == DISCOVERED
    assert "Найдено URL: 3" in result.stderr
    cfg, crawl_timeout = patch_start_crawl[0]
    assert cfg.max_requests_per_second == 5
    assert crawl_timeout is None


def test_crawl_missing_url_is_fatal(isolated, patch_start_crawl):
    runner = CliRunner()
    result = runner.invoke(cli, ["crawl"])
    assert result.exit_code == 1
    assert "missing parameter: --url" in result.stderr
    assert result.stdout == ""
    assert patch_start_crawl == []


def test_crawl_unparsable_url_is_fatal(isolated, patch_start_crawl):
    runner = CliRunner()
    result = runner.invoke(cli, ["crawl", "--url", "not a url"])
    assert result.exit_code == 1
    assert "Ошибка конфигурации" in result.stderr
    assert result.stdout == ""
    assert patch_start_crawl == []


def test_crawl_url_from_config_file(isolated, patch_start_crawl):
    cfg_file = isolated / "crawl.yaml"
    cfg_file.write_text("base_url: https://example.com\nretry_times: 2\n", encoding="utf-8")

    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "crawl", "--keep-alive", "--crawl-timeout", "30"])
    assert result.exit_code == 0
    cfg, crawl_timeout = patch_start_crawl[0]
    assert cfg.retry_times == 2
    assert cfg.keep_alive
    assert crawl_timeout == 30.0


def test_bad_config_file(isolated):
    cfg_file = isolated / "crawl.yaml"
    cfg_file.write_text("- a\n- list\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "crawl", "--url", "https://example.com"])
    assert result.exit_code == 1
    assert "Ошибка загрузки конфигурации" in result.stderr


def test_crawl_timeout(monkeypatch, isolated):
    async def slow(cfg, on_discovered, crawl_timeout=None):
        await asyncio.wait_for(asyncio.sleep(2), timeout=crawl_timeout)

    monkeypatch.setattr(cli_module, "start_crawl", slow)

    runner = CliRunner()
    result = runner.invoke(cli, ["crawl", "--url", "https://example.com", "--crawl-timeout", "0.1"])
    assert result.exit_code == 1
    assert "не завершён" in result.stderr
    assert result.stdout == ""


def test_show_config(isolated):
    runner = CliRunner()
    result = runner.invoke(cli, ["config", "--url", "https://example.com", "-r", "0", "--concurrency", "3"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["base_url"].rstrip("/") == "https://example.com"
    assert data["max_requests_per_second"] == 0
    assert data["concurrency"] == 3
