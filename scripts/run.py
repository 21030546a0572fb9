#!/usr/bin/env python3
"""Hiring Notifier — Application Runner.

Performs pre-flight checks and launches the main application.

Usage:
    python scripts/run.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

BANNER = r"""
╔══════════════════════════════════════════════════════════╗
║                                                          ║
║                  Hiring Notifier v1.0                    ║
║          New job postings, straight to Telegram          ║
║                                                          ║
╚══════════════════════════════════════════════════════════╝
"""

REQUIRED_ENV_VARS = [
    "JOBS_API_TOKEN",
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_CHAT_ID",
]

SETTINGS_FILE = "config/settings.yaml"


def preflight_checks() -> bool:
    """Run pre-flight checks before starting the application.

    Checks:
      - .env file exists
      - Required environment variables are set
      - Settings file exists (a default one is written otherwise)
      - data/ and logs/ directories exist (creates them)

    Returns:
        True if all checks pass, False otherwise.
    """
    os.chdir(str(PROJECT_ROOT))
    ok = True

    env_path = PROJECT_ROOT / ".env"
    if not env_path.exists():
        print("⚠️  .env file not found, relying on the shell environment")
    else:
        from dotenv import load_dotenv
        load_dotenv(env_path)
        print("✅ .env loaded")

    for var in REQUIRED_ENV_VARS:
        val = os.environ.get(var, "")
        if not val or val in ("your_key_here", "test"):
            print(f"❌ {var} not set or invalid")
            ok = False
        else:
            masked = val[:6] + "..." + val[-4:] if len(val) > 10 else "***"
            print(f"✅ {var} = {masked}")

    settings = PROJECT_ROOT / SETTINGS_FILE
    if not settings.exists():
        from hiring_notifier.config import write_default_settings
        write_default_settings(settings)
        print(f"⚠️  {SETTINGS_FILE} was missing, wrote defaults")
    else:
        print(f"✅ {SETTINGS_FILE} exists")

    for d in ("data", "logs"):
        (PROJECT_ROOT / d).mkdir(exist_ok=True)
        print(f"✅ {d}/ directory ready")

    return ok


def main() -> None:
    """Entry point: run checks then start the application."""
    print(BANNER)

    print("═══ Pre-flight Checks ═══\n")
    if not preflight_checks():
        print("\n❌ Pre-flight checks failed! Fix the issues above and try again.")
        sys.exit(1)

    print("\n✅ All checks passed!\n")
    print("═══ Starting Hiring Notifier ═══\n")

    from hiring_notifier.main import main as app_main
    app_main()


if __name__ == "__main__":
    main()
