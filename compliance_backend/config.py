from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class AppSettings:
    data_dir: Path
    extracts_csv_path: Path
    keywords_csv_path: Path
    summary_db_path: Path
    llm_base_url: str
    llm_api_key: str
    llm_model: str
    llm_temperature: float
    llm_max_tokens: int
    llm_timeout: float
    mcp_base_url: Optional[str]
    mcp_timeout: float
    mcp_simulated_latency: float
    research_max_attempts: int
    research_keyword_limit: int
    research_max_documents: int
    frontend_origin: str
    log_level: str

    @property
    def llm_configured(self) -> bool:
        return bool(self.llm_base_url and self.llm_api_key and self.llm_model)


def _int_env(name: str, default: str) -> int:
    return int(os.environ.get(name, default) or default)


def _float_env(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        return float(raw or default)
    except (TypeError, ValueError):
        return float(default)


def _str_env(name: str, default: str = "") -> str:
    return (os.environ.get(name, default) or default).strip()


def _path_env(name: str, default: Path) -> Path:
    raw = _str_env(name)
    return Path(raw) if raw else default


def load_settings() -> AppSettings:
    data_dir = Path(os.environ.get("DATA_DIR", "data"))
    data_dir.mkdir(parents=True, exist_ok=True)

    mcp_base_url = _str_env("MCP_BASE_URL").rstrip("/")

    return AppSettings(
        data_dir=data_dir,
        extracts_csv_path=_path_env("EXTRACTS_CSV", data_dir / "extracts.csv"),
        keywords_csv_path=_path_env("KEYWORDS_CSV", data_dir / "keywords.csv"),
        summary_db_path=_path_env("SUMMARY_DB_PATH", data_dir / "summaries.db"),
        llm_base_url=_str_env("LLM_BASE_URL"),
        llm_api_key=_str_env("LLM_API_KEY"),
        llm_model=_str_env("LLM_MODEL", "default"),
        llm_temperature=_float_env("LLM_TEMPERATURE", "0.2"),
        llm_max_tokens=_int_env("LLM_MAX_TOKENS", "2048"),
        llm_timeout=_float_env("LLM_TIMEOUT", "120"),
        mcp_base_url=mcp_base_url or None,
        mcp_timeout=_float_env("MCP_TIMEOUT", "30"),
        mcp_simulated_latency=max(0.0, _float_env("MCP_SIMULATED_LATENCY", "0")),
        research_max_attempts=max(1, _int_env("RESEARCH_MAX_ATTEMPTS", "2")),
        research_keyword_limit=max(1, _int_env("RESEARCH_KEYWORD_LIMIT", "8")),
        research_max_documents=max(1, _int_env("RESEARCH_MAX_DOCUMENTS", "15")),
        frontend_origin=f"http://localhost:{os.environ.get('FRONTEND_PORT', '5173')}",
        log_level=_str_env("LOG_LEVEL", "INFO").upper(),
    )
