# backend/storefront/config.py
from __future__ import annotations
import os
from decimal import Decimal


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/storefront.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///storefront.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Flat tax applied over the cart/order subtotal. 1.0 == 100%, the value
    # the storefront has always shipped with.
    TAX_RATE = Decimal(os.environ.get("TAX_RATE", "1.0"))

    # Warehouse that order lines are fulfilled from (and restored to on cancel)
    DEFAULT_WAREHOUSE_ID = int(os.environ.get("DEFAULT_WAREHOUSE_ID", "1"))

    ORDER_NUMBER_PREFIX = os.environ.get("ORDER_NUMBER_PREFIX", "ORD")

    # Off: checkout leaves stock untouched (historical behaviour, allows overselling).
    # On: checkout debits the fulfillment warehouse and refuses to oversell.
    DEBIT_STOCK_ON_ORDER = _env_flag("DEBIT_STOCK_ON_ORDER", False)

    MOVEMENTS_PER_PAGE = int(os.environ.get("MOVEMENTS_PER_PAGE", "50"))
