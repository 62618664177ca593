"""
Configuration loading for dex_autotrader.

Runtime knobs live in environment variables (optionally loaded from ``.env``)
and are read as module-level constants by the module that uses them. Static
reference data (the tradable token set and the strategy seeds) lives in a
YAML file, ``config.yaml`` at the project root unless ``CONFIG_PATH`` points
elsewhere.
"""

from __future__ import annotations

import os
from typing import Any, Dict

import yaml  # type: ignore

# Used when config.yaml is missing; Sepolia-style testnet placeholders
DEFAULT_CONFIG: Dict[str, Any] = {
    "tokens": [
        {"id": 1, "symbol": "USDC", "address": "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238", "decimals": 6},
        {"id": 2, "symbol": "WBTC", "address": "0x29f2D40B0605204364af54EC677bD022dA425d03", "decimals": 8},
        {"id": 3, "symbol": "WETH", "address": "0xfFf9976782d46CC05630D1f6eBAb18b2324d6B14", "decimals": 18},
    ],
    "strategies": [
        {"name": "Conservative DCA", "risk_level": "low"},
        {"name": "RSI Mean Reversion", "risk_level": "medium"},
        {"name": "Momentum Breakout", "risk_level": "high", "has_limit_orders": True},
        {"name": "Memecoin Bracket", "risk_level": "high", "has_limit_orders": True, "is_memecoin": True},
    ],
}


def _config_path() -> str:
    env_path = os.getenv("CONFIG_PATH")
    if env_path:
        return os.path.abspath(os.path.expanduser(env_path))
    base_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir, os.pardir))
    return os.path.join(base_dir, "config.yaml")


def load_config() -> Dict[str, Any]:
    """Load application configuration from ``config.yaml``.

    :returns: A dictionary with at least the ``tokens`` and ``strategies``
        keys. Missing files or missing keys fall back to ``DEFAULT_CONFIG``.
    """
    config_path = _config_path()
    data: Dict[str, Any] = {}
    if os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    merged = dict(DEFAULT_CONFIG)
    merged.update({k: v for k, v in data.items() if v is not None})
    return merged


def env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"
