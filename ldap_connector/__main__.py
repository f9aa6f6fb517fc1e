"""Serve the connectors: `python -m ldap_connector` (or the `ldap-connector` script)."""
from __future__ import annotations

import uvicorn

from .env_settings import get_env


def main() -> None:
    env = get_env()
    uvicorn.run(
        "ldap_connector.main:create_app",
        factory=True,
        host=env.host,
        port=env.port,
        # create_app installs our own handlers
        log_config=None,
    )


if __name__ == "__main__":
    main()
