"""Question sets stored as plain-text files, one question per line."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

from .config import settings

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".txt", ".md"}


def resolve_questions_dir(configured: Optional[str] = None) -> Path:
    candidates = [Path(configured).resolve()] if configured else []
    candidates += [Path.cwd() / "questions", Path.cwd().parent / "questions"]
    for candidate in candidates:
        if candidate.is_dir():
            return candidate
    return candidates[0]


def is_allowed_name(name: str) -> bool:
    if not name or ".." in name or "/" in name or "\\" in name:
        return False
    return os.path.splitext(name)[1].lower() in ALLOWED_EXTENSIONS


def parse_questions(content: str) -> List[str]:
    return [line.strip() for line in normalise_newlines(content).split("\n") if line.strip()]


def normalise_newlines(content: str) -> str:
    return content.replace("\r\n", "\n").replace("\r", "\n")


class QuestionLibrary:
    def __init__(self, base_dir: Path):
        self.base_dir = base_dir

    def list_files(self) -> List[str]:
        try:
            entries = sorted(os.listdir(self.base_dir))
        except OSError:
            logger.debug("Questions directory %s is not readable", self.base_dir)
            return []
        return [name for name in entries if is_allowed_name(name) and (self.base_dir / name).is_file()]

    def load(self, name: str) -> dict:
        """Return the normalised file text and its question lines.

        Raises ``ValueError`` for names outside the library and
        ``FileNotFoundError`` when the file is missing.
        """
        if not is_allowed_name(name):
            raise ValueError("invalid file name")
        path = self.base_dir / name
        if not path.is_file():
            raise FileNotFoundError(name)
        content = normalise_newlines(path.read_text(encoding="utf-8"))
        return {"content": content, "questions": parse_questions(content)}


library = QuestionLibrary(resolve_questions_dir(settings.QUESTIONS_DIR))
