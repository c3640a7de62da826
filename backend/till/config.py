# backend/till/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/till.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///till.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Z report listings never return more than this many rows per page
    REPORT_PAGE_SIZE = int(os.environ.get("REPORT_PAGE_SIZE", "50"))
    PRODUCT_SEARCH_LIMIT = 50

    # Zone used to derive "today" when a sale arrives without a business date
    BUSINESS_TIMEZONE = os.environ.get("BUSINESS_TIMEZONE", "UTC")

    # Identity is established by the upstream auth gateway
    AUTH_USER_HEADER = os.environ.get("AUTH_USER_HEADER", "X-User-Id")
    AUTH_ROLE_HEADER = os.environ.get("AUTH_ROLE_HEADER", "X-User-Role")
