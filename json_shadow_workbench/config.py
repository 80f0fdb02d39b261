"""Runtime configuration for the workbench.

`WorkbenchConfig` is a frozen dataclass. Values can be overridden from the
environment with `JSON_WORKBENCH_*` variables via `WorkbenchConfig.from_env()`.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

ENV_PREFIX = 'JSON_WORKBENCH_'


@dataclass(frozen=True)
class WorkbenchConfig:
    """Tunable limits used by the index, classifier and UI.

    Attributes:
        preview_length: Code points kept in a string preview before the ellipsis.
        page_lines: Lines per page when showing long product texts.
        max_candidates: Upper bound on detected candidate fields.
        candidate_min_length: Shortest candidate string kept by the classifier.
        candidate_max_length: Longest candidate string kept by the classifier.
        log_level: Name of the root logging level used by `app.py`.
    """

    preview_length: int = 32
    page_lines: int = 300
    max_candidates: int = 20
    candidate_min_length: int = 2
    candidate_max_length: int = 50
    log_level: str = 'INFO'

    def __post_init__(self) -> None:
        if self.preview_length < 1:
            raise ValueError(f"preview_length must be >= 1, got {self.preview_length}")
        if self.page_lines < 1:
            raise ValueError(f"page_lines must be >= 1, got {self.page_lines}")
        if self.max_candidates < 0:
            raise ValueError(f"max_candidates must be >= 0, got {self.max_candidates}")
        if not 0 <= self.candidate_min_length <= self.candidate_max_length:
            raise ValueError(
                f"candidate length bounds are inconsistent: "
                f"{self.candidate_min_length}..{self.candidate_max_length}"
            )
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'WorkbenchConfig':
        environ = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw.strip() == '':
                continue
            if f.type in (int, 'int'):
                try:
                    overrides[f.name] = int(raw)
                except ValueError:
                    raise ValueError(f"{ENV_PREFIX}{f.name.upper()} must be an integer, got {raw!r}") from None
            else:
                overrides[f.name] = raw.strip()
        return cls(**overrides)


DEFAULT_CONFIG = WorkbenchConfig()
