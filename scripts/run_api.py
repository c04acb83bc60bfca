import logging
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

import uvicorn

from portfolio_api.api.server import create_app
from portfolio_api.config import ConfigError, load_config


def main() -> None:
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    try:
        cfg = load_config()
    except ConfigError as e:
        print(f"[api] {e}", file=sys.stderr)
        sys.exit(1)

    host = os.environ.get("API_HOST", "0.0.0.0")
    port = int(os.environ.get("API_PORT", "5000"))
    uvicorn.run(create_app(cfg), host=host, port=port)


if __name__ == "__main__":
    main()
