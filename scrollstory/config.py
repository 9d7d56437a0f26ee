from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from scrollstory.schemas import InputConfig

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class AppConfig:
    input_config: InputConfig
    log_level: int = logging.WARNING

    @property
    def cache_dir(self) -> Path:
        return Path(self.input_config.provider.cache_dir)


def load_config(path: Path) -> InputConfig:
    data = json.loads(path.read_text(encoding="utf-8"))
    return InputConfig.model_validate(data)


def configure_logging(level: int = logging.WARNING) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))
