import os
from pathlib import Path
from typing import Optional

import yaml

from bbcoverage_core.bitbucket.transport import ProxyConfig
from bbcoverage_core.coverage import COVERAGE_ENV_KEY

DEFAULT_CONFIG: dict = {
    "owner": None,
    "repository": None,
    "client_name": "bbcoverage",
    "coverage_env_key": COVERAGE_ENV_KEY,
    "store": "sqlite",
    "store_path": ".bbcoverage.db",
    "gist_id": None,
    "proxy": None,  # mapping with host, port and optional username/password
}


def load_config(config_path: str = ".bbcoverage.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .bbcoverage.yml in the current directory
      3. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Resolve credentials from environment variables
    config["bitbucket_username"] = os.environ.get("BITBUCKET_USERNAME")
    config["bitbucket_password"] = os.environ.get("BITBUCKET_APP_PASSWORD") or os.environ.get("BITBUCKET_PASSWORD")
    config["github_token"] = os.environ.get("GITHUB_TOKEN")

    return config


def proxy_from_config(config: dict) -> Optional[ProxyConfig]:
    """
    Build the proxy settings for the HTTP transport.

    The ``proxy`` mapping from the config file wins; otherwise the
    BBCOVERAGE_PROXY_* environment variables are used. Returns None when no
    proxy host is configured.
    """
    proxy = config.get("proxy") or {
        "host": os.environ.get("BBCOVERAGE_PROXY_HOST"),
        "port": os.environ.get("BBCOVERAGE_PROXY_PORT"),
        "username": os.environ.get("BBCOVERAGE_PROXY_USER"),
        "password": os.environ.get("BBCOVERAGE_PROXY_PASSWORD"),
    }
    host = proxy.get("host")
    if not host:
        return None
    try:
        port = int(proxy.get("port") or 8080)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid proxy port: {proxy.get('port')!r}")
    return ProxyConfig(
        host=host,
        port=port,
        username=proxy.get("username"),
        password=proxy.get("password"),
    )
