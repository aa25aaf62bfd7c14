from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
import yaml
from dotenv import load_dotenv

from tv_analytics.exceptions.errors import ConfigurationError

load_dotenv()

DISCOUNT_POLICIES = ("keep", "exclude", "clamp", "error")
ZERO_RATING_POLICIES = ("exclude", "error")

def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)

def _env_bool(key: str, default: bool = False) -> bool:
    val = os.environ.get(key)
    if val is None:
        return default
    return val.strip().lower() in ("1", "true", "yes", "y", "on")

def _env_list(key: str, default: List[str]) -> List[str]:
    val = os.environ.get(key)
    if not val:
        return default
    return [x.strip() for x in val.split(",") if x.strip()]

def _choice(label: str, value: Optional[str], default: str, allowed: tuple) -> str:
    v = (value or default).strip().lower()
    if v not in allowed:
        raise ConfigurationError(f"Unknown {label} '{v}'; expected one of {', '.join(allowed)}")
    return v

@dataclass(frozen=True)
class Settings:
    env: str
    log_level: str
    log_file: str

    csv_path: str
    table_name: str
    view_name: str
    index_name: str

    delimiter: str
    fallback_encodings: List[str]
    drop_incomplete_rows: bool

    # Data-quality policies for the discount and price/rating queries
    discount_policy: str
    zero_rating_policy: str

    # Query thresholds (defaults reproduce the published statements)
    affordable_max_price: float
    affordable_min_rating: float
    brand_min_models: int
    discount_min_rating: float
    discount_min_models: int
    best_value_min_rating: float
    best_value_limit: int

    export_dir: str


def default_settings(**overrides) -> Settings:
    """Settings with built-in defaults, no config file required."""
    base = dict(
        env="default",
        log_level="INFO",
        log_file="logs/tv_analytics.log",
        csv_path="data/Ecommerce.csv",
        table_name="ecommerce",
        view_name="brand_resolution_summary",
        index_name="idx_brand_selling_price",
        delimiter=",",
        fallback_encodings=["utf-8", "utf-8-sig", "latin-1"],
        drop_incomplete_rows=False,
        discount_policy="keep",
        zero_rating_policy="exclude",
        affordable_max_price=20000.0,
        affordable_min_rating=4.5,
        brand_min_models=5,
        discount_min_rating=4.0,
        discount_min_models=3,
        best_value_min_rating=4.0,
        best_value_limit=10,
        export_dir="exports",
    )
    base.update(overrides)
    return Settings(**base)


def load_settings(config_dir: str = "config") -> Settings:
    app_env = _env("APP_ENV", "dev")
    cfg_path = Path(config_dir) / f"{app_env}.yaml"
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config not found: {cfg_path}")

    cfg = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
    app_cfg = cfg.get("app") or {}
    data_cfg = cfg.get("data") or {}
    ing_cfg = cfg.get("ingestion") or {}
    pol_cfg = cfg.get("policy") or {}
    exp_cfg = cfg.get("export") or {}

    delimiter = _env("DEFAULT_DELIMITER", str(ing_cfg.get("delimiter", ",")))
    fallback_encodings = _env_list(
        "FALLBACK_ENCODINGS", list(ing_cfg.get("fallback_encodings", ["utf-8", "latin-1"]))
    )
    drop_incomplete_rows = _env_bool("DROP_INCOMPLETE_ROWS", bool(ing_cfg.get("drop_incomplete_rows", False)))

    discount_policy = _choice(
        "discount policy", _env("DISCOUNT_POLICY", str(pol_cfg.get("discount", "keep"))), "keep", DISCOUNT_POLICIES
    )
    zero_rating_policy = _choice(
        "zero-rating policy",
        _env("ZERO_RATING_POLICY", str(pol_cfg.get("zero_rating", "exclude"))),
        "exclude",
        ZERO_RATING_POLICIES,
    )

    return Settings(
        env=app_env,
        log_level=_env("LOG_LEVEL", str(app_cfg.get("log_level", "INFO"))),
        log_file=_env("LOG_FILE", str(app_cfg.get("log_file", "logs/tv_analytics.log"))),
        csv_path=_env("CSV_PATH", str(data_cfg.get("csv_path", "data/Ecommerce.csv"))),
        table_name=str(data_cfg.get("table_name", "ecommerce")),
        view_name=str(data_cfg.get("view_name", "brand_resolution_summary")),
        index_name=str(data_cfg.get("index_name", "idx_brand_selling_price")),
        delimiter=delimiter,
        fallback_encodings=fallback_encodings,
        drop_incomplete_rows=drop_incomplete_rows,
        discount_policy=discount_policy,
        zero_rating_policy=zero_rating_policy,
        affordable_max_price=float(pol_cfg.get("affordable_max_price", 20000)),
        affordable_min_rating=float(pol_cfg.get("affordable_min_rating", 4.5)),
        brand_min_models=int(pol_cfg.get("brand_min_models", 5)),
        discount_min_rating=float(pol_cfg.get("discount_min_rating", 4.0)),
        discount_min_models=int(pol_cfg.get("discount_min_models", 3)),
        best_value_min_rating=float(pol_cfg.get("best_value_min_rating", 4.0)),
        best_value_limit=int(_env("BEST_VALUE_LIMIT", str(pol_cfg.get("best_value_limit", 10)))),
        export_dir=_env("EXPORT_DIR", str(exp_cfg.get("export_dir", "exports"))),
    )
