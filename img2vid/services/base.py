import logging
from dataclasses import dataclass

from img2vid.utils.logging_setup import configure_logging
from img2vid.config.config import config


@dataclass
class GeneratedVideo:
    data: bytes
    mime_type: str = "video/mp4"

    @property
    def size(self) -> int:
        return len(self.data)


def setup_logger(name: str) -> logging.Logger:
    configure_logging(config.get("logging", {}))
    return logging.getLogger(name)
