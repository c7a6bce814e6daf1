"""
Configuration and environment loading for Pawn's Gambit.

- Loads settings.yml (YAML) from the repo root if present; falls back to environment variables.
- A .env file is loaded into the environment first.
- Exposes SETTINGS with the keys used across the project (LLM access, shop size, search depth, logging).
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable, Optional

import yaml
from dotenv import load_dotenv

load_dotenv()


def _repo_root() -> str:
    # this file: gambit/config.py -> repo root is one level up
    return os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


def _load_yaml(path: str) -> dict:
    if not os.path.isfile(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return data if isinstance(data, dict) else {}


_cfg = _load_yaml(os.environ.get("GAMBIT_SETTINGS_FILE", os.path.join(_repo_root(), "settings.yml")))


def _get(name: str, default: Any, cast: Optional[Callable[[Any], Any]] = None) -> Any:
    if name in _cfg:
        val = _cfg[name]
        return cast(val) if cast else val
    env = os.environ.get(name)
    if env is not None:
        return cast(env) if cast else env
    return default


@dataclass(frozen=True)
class Settings:
    # Ability generation (OpenAI-compatible endpoint)
    llm_api_key: str
    llm_base_url: str
    llm_model: str
    llm_timeout_s: float
    llm_retries: int

    # Game knobs
    shop_size: int
    max_search_depth: int

    log_level: str


SETTINGS = Settings(
    llm_api_key=_get("GAMBIT_LLM_API_KEY", _get("OPENAI_API_KEY", "")),
    llm_base_url=_get("GAMBIT_LLM_BASE_URL", ""),
    llm_model=_get("GAMBIT_LLM_MODEL", "gpt-4o-mini"),
    llm_timeout_s=float(_get("GAMBIT_LLM_TIMEOUT_S", 30.0, cast=float)),
    llm_retries=int(_get("GAMBIT_LLM_RETRIES", 2, cast=int)),
    shop_size=int(_get("GAMBIT_SHOP_SIZE", 3, cast=int)),
    max_search_depth=int(_get("GAMBIT_MAX_SEARCH_DEPTH", 3, cast=int)),
    log_level=str(_get("GAMBIT_LOG_LEVEL", "INFO")).upper(),
)
