# === FILE: site_crawl/config.py ===
"""
Модуль для загрузки и валидации конфигурации краулера SiteCrawl.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import math
import os
from pathlib import Path
from typing import Any, Optional, Tuple, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    ValidationError,
    field_validator,
)

DEFAULT_SKIP_PREFIXES: Tuple[str, ...] = ("mailto:", "tel:", "javascript:", "data:")


class CrawlerConfig(BaseModel):
    """Конфигурация для одного запуска обхода."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: HttpUrl = Field(..., description="Стартовый URL (seed) обхода.")
    max_requests_per_second: int = Field(
        1, description="Глобальный лимит запросов в секунду; <= 0 отключает ограничение."
    )
    window: float = Field(1.0, gt=0, description="Длина скользящего окна лимитера (секунд).")
    timeout: float = Field(10.0, gt=0, description="Таймаут на один запрос (секунд).")
    user_agent: str = Field("SiteCrawlBot/1.0", min_length=1, description="Заголовок User-Agent.")
    retry_times: int = Field(0, ge=0, description="Число повторных попыток при сетевых ошибках и 5xx.")
    retry_backoff: float = Field(1.0, ge=0, description="Базовая задержка экспоненциального backoff.")
    concurrency: Optional[int] = Field(None, ge=1, description="Явное число воркеров.")
    workers_per_request: int = Field(2, ge=1, description="Воркеров на один разрешённый запрос/с.")
    max_workers: int = Field(16, ge=1, description="Число воркеров, когда лимит отключён.")
    queue_size: int = Field(1000, ge=1, description="Ёмкость очереди URL.")
    enqueue_timeout: float = Field(
        1.0, gt=0, description="Сколько ждать места в очереди, прежде чем отложить URL."
    )
    skip_prefixes: Tuple[str, ...] = Field(
        DEFAULT_SKIP_PREFIXES, description="Префиксы ссылок, которые никогда не загружаются."
    )
    keep_alive: bool = Field(False, description="Не завершаться после опустошения очереди.")

    @field_validator("skip_prefixes", mode="before")
    def _lowercase_prefixes(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = [v]
        if isinstance(v, (list, tuple)):
            return tuple(str(p).strip().lower() for p in v if str(p).strip())
        return v

    @property
    def rate_limited(self) -> bool:
        return self.max_requests_per_second > 0

    @property
    def worker_count(self) -> int:
        """Размер пула воркеров: явный, либо пропорциональный лимиту запросов."""
        if self.concurrency is not None:
            return self.concurrency
        if not self.rate_limited:
            return self.max_workers
        return max(1, math.ceil(self.max_requests_per_second * self.workers_per_request))


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def read_config_file(path: Union[str, Path, None]) -> dict[str, Any]:
    """
    Читает YAML или JSON файл конфигурации в dict.
    Без явного пути использует configs/default.yaml, если он существует, иначе {}.
    """
    if path is None:
        if not _DEFAULT_CFG.is_file():
            return {}
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _read_yaml(path_obj)
    if suffix == ".json":
        return _read_json(path_obj)
    raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")


def build_config(data: dict[str, Any], **overrides: Any) -> CrawlerConfig:
    """Накладывает переопределения (опции CLI) на данные файла; None игнорируется."""
    merged = dict(data)
    merged.update({k: v for k, v in overrides.items() if v is not None})
    return CrawlerConfig(**merged)


def load_config(path: Union[str, Path, None] = None, **overrides: Any) -> CrawlerConfig:
    """
    Собирает CrawlerConfig из файла и переопределений.
    Бросает FileNotFoundError, ValueError/TypeError (битый файл) или ValidationError.
    """
    return build_config(read_config_file(path), **overrides)


__all__ = [
    "CrawlerConfig",
    "DEFAULT_SKIP_PREFIXES",
    "build_config",
    "ValidationError",
    "load_config",
    "read_config_file",
]
