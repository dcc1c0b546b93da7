"""Runtime settings read from the environment.

Every variable is prefixed with ``PAYMENT_FLOW_``:

``LOGO``                path or http(s) URL of the logo printed on PDFs
``LOGO_TIMEOUT``        seconds to wait for the logo (default 2)
``INDEX_DATABASE_URL``  SQLAlchemy URL of the monetary index table
``INDEX_NAME``          display name of the monetary index (default CUB/SC)
``COMPANY_LINE``        company line printed in export footers
``ROLE_LINE``           role line printed under the agent name
``LOG_LEVEL``           logging level name (default INFO)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

PREFIX = "PAYMENT_FLOW_"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    logo_source: Optional[str] = None
    logo_timeout: float = 2.0
    index_database_url: Optional[str] = None
    index_name: str = "CUB/SC"
    company_line: str = "COMARC - Corretores Associados"
    role_line: str = "Corretor de Imóveis"
    log_level: str = "INFO"


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ

    def get(name: str, default=None):
        value = env.get(PREFIX + name, "").strip()
        return value or default

    timeout_raw = get("LOGO_TIMEOUT", "2")
    try:
        timeout = float(timeout_raw)
    except ValueError as exc:
        raise ValueError(f"{PREFIX}LOGO_TIMEOUT must be a number; got {timeout_raw!r}") from exc

    defaults = Settings()
    return Settings(
        logo_source=get("LOGO"),
        logo_timeout=timeout,
        index_database_url=get("INDEX_DATABASE_URL"),
        index_name=get("INDEX_NAME", defaults.index_name),
        company_line=get("COMPANY_LINE", defaults.company_line),
        role_line=get("ROLE_LINE", defaults.role_line),
        log_level=get("LOG_LEVEL", defaults.log_level).upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
