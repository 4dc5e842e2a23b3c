# datavista_app/services/file_intake.py
# -*- coding: utf-8 -*-
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

from flask import current_app

DEFAULT_MAX_BYTES = 2 * 1024 * 1024
DEFAULT_ALLOWED_TYPES = (
    "text/csv",
    "application/pdf",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/plain",
    "application/json",
)

# path separators, shell metacharacters and control chars
_DANGEROUS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


@dataclass
class IncomingFile:
    filename: str
    mimetype: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class IntakeResult:
    accepted: list[IncomingFile] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def _limits() -> tuple[int, tuple[str, ...]]:
    cfg = current_app.config if current_app else {}
    max_bytes = int(cfg.get("MAX_UPLOAD_BYTES") or DEFAULT_MAX_BYTES)
    allowed = tuple(cfg.get("ALLOWED_UPLOAD_TYPES") or DEFAULT_ALLOWED_TYPES)
    return max_bytes, allowed


def _fmt_mb(n: int) -> str:
    return f"{n / (1024 * 1024):.2f}MB"


def validate_file(filename: str, mimetype: str, size: int,
                  max_bytes: int | None = None, allowed_types: Iterable[str] | None = None) -> tuple[bool, str]:
    """
    Advisory checks, in order: size, type, name, empty.
    Returns (ok, message); message is empty when ok.
    """
    if max_bytes is None or allowed_types is None:
        cfg_max, cfg_allowed = _limits()
        max_bytes = cfg_max if max_bytes is None else max_bytes
        allowed_types = cfg_allowed if allowed_types is None else allowed_types

    name = filename or ""
    if size > max_bytes:
        return False, (f"{name} exceeds the {max_bytes // (1024 * 1024)}MB limit "
                       f"(current size: {_fmt_mb(size)}).")

    mime = (mimetype or "").split(";", 1)[0].strip().lower()
    if mime not in set(allowed_types):
        return False, f"{name} is not a supported file type."

    if not name.strip() or _DANGEROUS.search(name) or name.startswith(".."):
        return False, "File name contains invalid characters."

    if size == 0:
        return False, f"{name} is empty."

    return True, ""


def validate_uploads(files) -> IntakeResult:
    """
    Validates werkzeug FileStorage objects. Each file's bytes are read once;
    accepted files come back untouched as IncomingFile.
    """
    max_bytes, allowed = _limits()
    result = IntakeResult()
    for storage in files or []:
        if storage is None or not storage.filename:
            continue
        data = storage.read()
        ok, msg = validate_file(storage.filename, storage.mimetype, len(data),
                                max_bytes=max_bytes, allowed_types=allowed)
        if not ok:
            result.errors.append(msg)
            continue
        result.accepted.append(IncomingFile(filename=storage.filename,
                                            mimetype=storage.mimetype.split(";", 1)[0].strip().lower(),
                                            data=data))
    return result
