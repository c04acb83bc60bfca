import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from portfolio_api.config import ConfigError, load_config
from portfolio_api.db import init_db


def main() -> None:
    try:
        cfg = load_config()
    except ConfigError as e:
        print(e, file=sys.stderr)
        sys.exit(1)

    init_db(cfg.DB_DSN)
    print("DB initialized")


if __name__ == "__main__":
    main()
