"""Runs the TutorLedger API locally with uvicorn.

Usage:
    python scripts/run_server.py --port 8000 --reload
"""

import argparse
import sys
from pathlib import Path

# Third-party
import uvicorn
from dotenv import load_dotenv

# Make the src/ layout importable when running from a checkout
sys.path.append(str(Path(__file__).parent.parent / "src"))


def main():
    parser = argparse.ArgumentParser(description="Run the TutorLedger backend.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="Restart on code changes.")
    args = parser.parse_args()

    # Settings read the environment on import, so load .env first
    load_dotenv()

    uvicorn.run("tutor_ledger.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
