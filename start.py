"""Container startup for the clipper API."""
import sys
from pathlib import Path

# Modules import each other as top-level packages (api, services, utils)
sys.path.insert(0, str(Path(__file__).parent / "src"))

import uvicorn

from utils.config import load_config


def main() -> None:
    config = load_config()
    print(f"[start.py] Starting clipper API on port {config['port']}", flush=True)
    uvicorn.run(
        "api.server:app",
        host="0.0.0.0",
        port=config["port"],
        log_level=config["log_level"].lower(),
        # Logging is configured by the app itself
        log_config=None,
    )


if __name__ == "__main__":
    main()
