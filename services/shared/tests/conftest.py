"""Test configuration for shared module tests."""

import os
import sys
from pathlib import Path

# Setup paths - add the services directory to the path
SERVICE_DIR = Path(__file__).resolve().parents[1]
ROOT_DIR = SERVICE_DIR.parent

# Add services directory to path so we can import shared
services_path = str(ROOT_DIR)
if services_path not in sys.path:
    sys.path.insert(0, services_path)

# Ensure Redis URL is not set to avoid actual connections
os.environ["REDIS_URL"] = ""

# Política padrão é lida na importação de shared.organization; testes esperam os valores de fábrica
for _policy_var in (
    "DEFAULT_TIMEZONE",
    "DEFAULT_RESERVATION_INTERVAL",
    "DEFAULT_RESERVATION_LIMIT_DAYS",
    "DEFAULT_AVAILABLE_CANCEL_DAYS",
    "DEFAULT_AVAILABLE_SHEET",
    "DEFAULT_TODAY_FIRST_LATER_MINUTES",
):
    os.environ.pop(_policy_var, None)
